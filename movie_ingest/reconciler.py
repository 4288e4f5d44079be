"""
Reconciler module.
Turns a parse plus the person-reviewed match entries into a Movie record, either a
fresh one or one merged into an existing registry record, and backfills master-data gaps.
"""

import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Set, Tuple

from loguru import logger
from pydantic.alias_generators import to_camel

from .config import Settings, get_settings
from .errors import RegistryError
from .match_entry import MatchEntry, MatchedData, MatchState
from .models import Category, Movie, ParsedMovieData, SourceDialect

RE_DMCODE_PARTS = re.compile(r"^([a-z]+)(\d+)$")

# Fields a merge may touch; everything else on the existing record is left alone
MERGEABLE_FIELDS: Tuple[str, ...] = (
	"title_en", "release_date", "duration", "director", "studio", "series", "label",
	"actress", "actors", "dmcode", "cover_image", "gallery_images", "sample_url",
)
LIST_FIELDS = ("actress", "actors")

Patch = Tuple[Category, str, Dict[str, str]]


def _now() -> str:
	return datetime.now(timezone.utc).isoformat()


def generate_dmcode(code: str, studio: str) -> str:
	"""
	Distributor content id from a movie code: 'SNIS-217' -> 'snis00217'.
	WANZ titles with a 'wn' prefix carry a leading '3' ('WNZS-190' -> '3wnzs00190').
	Empty when either input is missing or the code is not letters followed by digits.
	"""
	if not code or not studio:
		return ""
	m = RE_DMCODE_PARTS.match(code.lower().replace("-", "").strip())
	if not m:
		return ""
	prefix, number = m.groups()
	studio_name = studio.lower()
	is_wanz = studio_name.startswith("wan") or "wanz" in studio_name or "wans" in studio_name
	if is_wanz and prefix.startswith("wn"):
		return f"3{prefix}00{number}"
	return f"{prefix}00{number}"


def split_names(value: Optional[str]) -> List[str]:
	return [part.strip() for part in (value or "").split(",") if part.strip()]


def same_name(a: str, b: str) -> bool:
	"""Equal ignoring case, or one contains the other ('Yui Hatano' ~ 'Yui Hatano (波多野結衣)')."""
	a, b = a.strip().lower(), b.strip().lower()
	if not a or not b:
		return False
	return a == b or a in b or b in a


def union_names(existing: Iterable[str], new: Iterable[str]) -> List[str]:
	"""Existing names in order, plus each new name no existing entry already covers."""
	result = [name for name in existing if name.strip()]
	for name in new:
		if name.strip() and not any(same_name(name, kept) for kept in result):
			result.append(name.strip())
	return result


def _unique(names: Iterable[Optional[str]]) -> List[str]:
	out: List[str] = []
	for name in names:
		if name and name not in out:
			out.append(name)
	return out


class Reconciler:
	"""Builds Movie records from reviewed matches; holds only configuration."""

	def __init__(self, settings: Optional[Settings] = None):
		self.settings = settings or get_settings()

	# Name substitution

	def resolve_name(self, entry: Optional[MatchEntry], original: str, source: SourceDialect) -> Optional[str]:
		"""
		Name to store for one parsed entity, or None to leave it out.
		Text pastes drop entities nobody resolved; JSON exports keep the parsed name.
		"""
		if entry is None:
			return original or None
		if entry.is_ignored:
			return None
		if entry.state == MatchState.UNRESOLVED and source != SourceDialect.JSON:
			return None
		if entry.custom_english_name:
			return entry.custom_english_name
		item = entry.matched
		if item is not None:
			if entry.category == Category.SERIES:
				return item.title_en or item.name or item.title_jp or item.jpname or original
			return item.name or item.jpname or original
		return original or None

	def _resolve_list(self, originals: List[str], entries: List[MatchEntry], source: SourceDialect) -> List[str]:
		resolved = []
		for i, original in enumerate(originals):
			entry = entries[i] if i < len(entries) else None
			resolved.append(self.resolve_name(entry, original, source))
		return _unique(resolved)

	def _resolve_single(self, original: Optional[str], entries: List[MatchEntry], source: SourceDialect) -> str:
		if not original:
			return ""
		return self.resolve_name(entries[0] if entries else None, original, source) or ""

	# Create / merge

	def build_movie(self, parsed: ParsedMovieData, matched: MatchedData, movie_type: Optional[str] = None) -> Movie:
		"""Fresh Movie record from a parse and its reviewed match entries."""
		source = parsed.source
		actresses = self._resolve_list(parsed.actresses, matched.actresses, source)
		actors = self._resolve_list(parsed.actors, matched.actors, source)
		studio = self._resolve_single(parsed.studio, matched.studios, source)
		movie_type = movie_type or self.settings.default_movie_type
		timestamp = _now()

		movie = Movie(
			code=parsed.code,
			dmcode=parsed.dmcode or generate_dmcode(parsed.code, studio or parsed.studio),
			title_jp=parsed.title_jp,
			title_en=parsed.title_en,
			release_date=parsed.release_date,
			duration=parsed.duration,
			director=self._resolve_single(parsed.director, matched.directors, source),
			studio=studio,
			series=self._resolve_single(parsed.series, matched.series, source),
			label=self._resolve_single(parsed.label, matched.labels, source),
			actress=", ".join(actresses),
			actors=", ".join(actors),
			type=movie_type,
			crop_cover=movie_type.lower() != "un",
			cover_image=parsed.cover_image,
			gallery_images=list(parsed.gallery_images) or None,
			sample_url=parsed.sample_url,
			created_at=timestamp,
			updated_at=timestamp,
		)
		logger.info(f"[Reconciler] Built {movie.code}: {len(actresses)} actresses, {len(actors)} actors, studio='{movie.studio}'")
		return movie

	def merge_movie(
		self,
		existing: Movie,
		parsed: ParsedMovieData,
		matched: Optional[MatchedData] = None,
		selected_fields: Optional[Iterable[str]] = None,
	) -> Movie:
		"""
		Fold a parse into an existing record. Scalars are replaced only by non-blank values,
		cast lists only grow, and fields outside `selected_fields` are never touched.
		"""
		incoming = self.build_movie(parsed, matched or MatchedData(), existing.type or None)
		selected = self._selected(selected_fields)
		updates: Dict[str, object] = {}

		for name in MERGEABLE_FIELDS:
			if name not in selected:
				continue
			new_value = getattr(incoming, name)
			if name in LIST_FIELDS:
				merged = union_names(split_names(getattr(existing, name)), split_names(new_value))
				updates[name] = ", ".join(merged)
			elif name == "gallery_images":
				if new_value:
					updates[name] = _unique([*(existing.gallery_images or []), *new_value])
			elif isinstance(new_value, str) and new_value.strip():
				updates[name] = new_value

		updates["updated_at"] = _now()
		merged_movie = existing.model_copy(update=updates)
		changed = sorted(k for k in updates if k != "updated_at" and getattr(existing, k) != updates[k])
		logger.info(f"[Reconciler] Merged into {existing.code} ({existing.id}), changed: {changed or 'nothing'}")
		return merged_movie

	@staticmethod
	def _selected(selected_fields: Optional[Iterable[str]]) -> Set[str]:
		if selected_fields is None:
			return set(MERGEABLE_FIELDS)
		wanted = set(selected_fields)
		return {name for name in MERGEABLE_FIELDS if name in wanted or to_camel(name) in wanted}

	# Master-data backfill

	def build_patches(self, matched: MatchedData) -> List[Patch]:
		"""One patch per registry record that a non-ignored entry can fill in."""
		patches: Dict[Tuple[Category, str], Dict[str, str]] = {}
		for _, _, entry in matched.entries():
			if not entry.should_update_data or entry.matched is None:
				continue
			key = (entry.category, entry.matched.id)
			patch = patches.setdefault(key, {})
			for field_name, value in entry.missing_data.items():
				patch.setdefault(field_name, value)
		return [(category, item_id, patch) for (category, item_id), patch in patches.items()]

	def push_master_data_patches(self, client, patches: List[Patch]) -> List[Tuple[Category, str]]:
		"""
		Send every patch concurrently and wait for all of them.
		A failed patch is logged and skipped; the ids that went through are returned.
		"""
		if not patches:
			return []
		done: List[Tuple[Category, str]] = []
		workers = max(1, min(self.settings.max_workers, len(patches)))
		with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="registry_patch") as executor:
			futures = {
				executor.submit(client.update_extended_with_sync, category, item_id, patch): (category, item_id)
				for category, item_id, patch in patches
			}
			for future in as_completed(futures):
				category, item_id = futures[future]
				try:
					future.result()
					done.append((category, item_id))
				except (RegistryError, ValueError) as e:
					logger.warning(f"[Reconciler] Patch for {category.value} {item_id} failed, continuing: {e}")
		logger.info(f"[Reconciler] Backfilled {len(done)}/{len(patches)} master-data records")
		return done
