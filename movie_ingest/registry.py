"""
Registry clients.
Thin requests-based wrappers around the master-data and movie registries, plus
the concurrent snapshot loader and duplicate-code lookup built on top of them.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, Iterable, List, Optional, Sequence

import requests
from loguru import logger
from pydantic import ValidationError

from .config import Settings, get_settings
from .errors import RegistryError
from .models import MATCHED_CATEGORIES, Category, DuplicateCheckResult, MasterDataItem, Movie, RegistrySnapshot


class _RegistryClient:
	"""Shared HTTP plumbing: bearer auth, timeout, raise_for_status, JSON body."""

	def __init__(
		self,
		base_url: str,
		access_token: Optional[str] = None,
		timeout: float = 10.0,
		session: Optional[requests.Session] = None,
	):
		self.base_url = base_url.rstrip("/")
		self.access_token = access_token
		self.timeout = timeout
		self.session = session or requests.Session()

	def _headers(self) -> Dict[str, str]:
		headers = {"Content-Type": "application/json"}
		if self.access_token:
			headers["Authorization"] = f"Bearer {self.access_token}"
		return headers

	def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
		url = f"{self.base_url}{path}"
		try:
			response = self.session.request(method, url, headers=self._headers(), json=json, timeout=self.timeout)
			response.raise_for_status()
			payload = response.json()
		except requests.exceptions.Timeout as e:
			logger.warning(f"[Registry] {method} {url} timed out after {self.timeout}s")
			raise RegistryError(f"{method} {url} timed out") from e
		except requests.exceptions.RequestException as e:
			logger.warning(f"[Registry] {method} {url} failed: {e}")
			raise RegistryError(f"{method} {url} failed: {e}") from e
		except ValueError as e:
			raise RegistryError(f"{method} {url} returned invalid JSON") from e
		return payload if isinstance(payload, dict) else {"data": payload}


class MasterDataClient(_RegistryClient):
	"""Master data: one list of named entities per category."""

	@classmethod
	def from_settings(cls, settings: Optional[Settings] = None) -> "MasterDataClient":
		settings = settings or get_settings()
		return cls(settings.master_data_url, settings.access_token, settings.request_timeout_s)

	def get_by_type(self, category: Category) -> List[MasterDataItem]:
		category = Category(category)
		payload = self._request("GET", f"/master/{category.value}")
		items: List[MasterDataItem] = []
		for raw in payload.get("data") or []:
			if not isinstance(raw, dict):
				continue
			raw.setdefault("type", category.value)
			try:
				items.append(MasterDataItem.model_validate(raw))
			except ValidationError as e:
				logger.warning(f"[Registry] Skipping malformed {category.value} record {raw.get('id')}: {e.error_count()} errors")
		logger.debug(f"[Registry] Fetched {len(items)} {category.value} records")
		return items

	def update_extended_with_sync(self, category: Category, item_id: str, patch: Dict[str, Any]) -> Optional[MasterDataItem]:
		"""Patch one record; the registry propagates renamed names into the movies that reference it."""
		category = Category(category)
		payload = self._request("PUT", f"/master/{category.value}/{item_id}/extended/sync", json=patch)
		data = payload.get("data")
		sync = payload.get("sync") or {}
		logger.info(f"[Registry] Updated {category.value} {item_id} ({sorted(patch)}), movies synced: {sync.get('moviesUpdated', 0)}")
		if not isinstance(data, dict):
			return None
		data.setdefault("type", category.value)
		try:
			return MasterDataItem.model_validate(data)
		except ValidationError as e:
			logger.warning(f"[Registry] Malformed {category.value} record returned for {item_id}: {e.error_count()} errors")
			raise RegistryError(f"Malformed {category.value} record returned for {item_id}") from e


class MovieRegistryClient(_RegistryClient):
	"""Movie records."""

	@classmethod
	def from_settings(cls, settings: Optional[Settings] = None) -> "MovieRegistryClient":
		settings = settings or get_settings()
		return cls(settings.movie_registry_url, settings.access_token, settings.request_timeout_s)

	def get_all_movies(self) -> List[Movie]:
		payload = self._request("GET", "/movies")
		return [Movie.model_validate(raw) for raw in payload.get("movies") or [] if isinstance(raw, dict)]

	def get_movie(self, movie_id: str) -> Movie:
		payload = self._request("GET", f"/movies/{movie_id}")
		return Movie.model_validate(payload.get("movie") or {})

	def create_movie(self, movie: Movie) -> Movie:
		payload = self._request("POST", "/movies", json=movie.to_wire())
		created = Movie.model_validate(payload.get("movie") or movie.to_wire())
		logger.info(f"[Registry] Created movie {created.code} ({created.id})")
		return created

	def update_movie(self, movie_id: str, movie: Movie) -> Movie:
		payload = self._request("PUT", f"/movies/{movie_id}", json=movie.to_wire())
		updated = Movie.model_validate(payload.get("movie") or movie.to_wire())
		logger.info(f"[Registry] Updated movie {updated.code} ({movie_id})")
		return updated


def load_snapshot(
	client: MasterDataClient,
	categories: Iterable[Category] = MATCHED_CATEGORIES,
	max_workers: int = 8,
) -> RegistrySnapshot:
	"""
	Fetch every category concurrently and freeze the result.
	A category whose fetch fails is logged and left empty so matching can go on for the others.
	"""
	categories = [Category(c) for c in categories]
	items: Dict[Category, Sequence[MasterDataItem]] = {}
	with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(categories) or 1)), thread_name_prefix="registry_fetch") as executor:
		futures = {executor.submit(client.get_by_type, category): category for category in categories}
		for future in as_completed(futures):
			category = futures[future]
			try:
				items[category] = future.result()
			except RegistryError as e:
				logger.warning(f"[Registry] {category.value} fetch failed, matching without it: {e}")
				items[category] = ()

	snapshot = RegistrySnapshot(items)
	logger.info(f"[Registry] Snapshot loaded: {len(snapshot)} records across {len(categories)} categories")
	return snapshot


def find_duplicate(code: str, movies: Iterable[Movie]) -> DuplicateCheckResult:
	"""First movie whose code equals `code` ignoring case."""
	key = (code or "").strip().lower()
	if key:
		for movie in movies:
			if (movie.code or "").strip().lower() == key:
				return DuplicateCheckResult(is_duplicate=True, existing_movie=movie)
	return DuplicateCheckResult(is_duplicate=False)


def check_duplicate_movie_code(code: str, client: MovieRegistryClient) -> DuplicateCheckResult:
	"""Look `code` up in the movie registry; an unreachable registry reads as 'not a duplicate'."""
	try:
		movies = client.get_all_movies()
	except RegistryError as e:
		logger.warning(f"[Registry] Duplicate check for {code} skipped: {e}")
		return DuplicateCheckResult(is_duplicate=False)
	result = find_duplicate(code, movies)
	if result.is_duplicate:
		logger.info(f"[Registry] {code} already exists as {result.existing_movie.id}")
	return result
