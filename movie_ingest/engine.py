"""
Ingest engine module.
Runs the whole paste -> parse -> match -> review -> save pipeline against the registries.
"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from loguru import logger
from pydantic.alias_generators import to_camel

from .config import Settings, get_settings
from .errors import IngestError, TranslationError
from .gender import GenderClassifier, HeuristicGenderClassifier
from .match_entry import MatchedData
from .matcher import EntityMatcher
from .models import MATCHED_CATEGORIES, DuplicateCheckResult, Movie, ParsedMovieData, RegistrySnapshot, SourceDialect
from .parsers import build_parsers, parse
from .reconciler import Reconciler, generate_dmcode
from .registry import MasterDataClient, MovieRegistryClient, check_duplicate_movie_code, load_snapshot
from .translation import TranslationClient


def camelize(value: Any) -> Any:
	"""snake_case dict keys -> camelCase, recursively; enums become their values."""
	if isinstance(value, dict):
		return {to_camel(k): camelize(v) for k, v in value.items()}
	if isinstance(value, list):
		return [camelize(v) for v in value]
	if isinstance(value, Enum):
		return value.value
	return value


@dataclass
class IngestSession:
	"""Everything known about one pasted movie while a person reviews it."""
	source: SourceDialect
	parsed: ParsedMovieData
	snapshot: RegistrySnapshot
	matched: MatchedData
	duplicate: DuplicateCheckResult
	dmcode: str = ""

	@property
	def ready(self) -> bool:
		"""No entry is waiting for a decision."""
		return not self.matched.pending()

	def to_dict(self) -> Dict[str, Any]:
		existing = self.duplicate.existing_movie
		return {
			"source": self.source.value,
			"parsed": camelize(asdict(self.parsed)),
			"matched": self.matched.to_dict(),
			"duplicate": {
				"isDuplicate": self.duplicate.is_duplicate,
				"existingMovie": existing.to_wire() if existing else None,
			},
			"dmcode": self.dmcode,
			"pending": [f"{key}-{index}" for key, index, _ in self.matched.pending()],
		}


class IngestEngine:
	"""
	High-level API over parsers, matcher and reconciler.
	Registry clients are optional: without a master-data client matching runs against
	an empty registry, without a movie client duplicate checks and saves are skipped.
	"""

	def __init__(
		self,
		master_client: Optional[MasterDataClient] = None,
		movie_client: Optional[MovieRegistryClient] = None,
		translator: Optional[TranslationClient] = None,
		settings: Optional[Settings] = None,
		gender_classifier: Optional[GenderClassifier] = None,
	):
		self.settings = settings or get_settings()
		self.master_client = master_client
		self.movie_client = movie_client
		self.translator = translator
		classifier = gender_classifier or HeuristicGenderClassifier(default=self.settings.default_gender)
		self.parsers = build_parsers(classifier)
		self.matcher = EntityMatcher(self.settings)
		self.reconciler = Reconciler(self.settings)
		logger.debug(
			f"[Engine] Ready | master={'yes' if master_client else 'no'} movies={'yes' if movie_client else 'no'} "
			f"translation={'yes' if translator else 'no'}"
		)

	@classmethod
	def from_settings(cls, settings: Optional[Settings] = None) -> "IngestEngine":
		"""Engine wired to the HTTP registries configured in `settings`."""
		settings = settings or get_settings()
		translator = TranslationClient.from_settings(settings) if settings.translation_enabled else None
		return cls(
			master_client=MasterDataClient.from_settings(settings),
			movie_client=MovieRegistryClient.from_settings(settings),
			translator=translator,
			settings=settings,
		)

	# Pipeline stages

	def parse(self, raw: str) -> ParsedMovieData:
		return parse(raw, self.parsers)

	def load_snapshot(self) -> RegistrySnapshot:
		if self.master_client is None:
			return RegistrySnapshot()
		return load_snapshot(self.master_client, MATCHED_CATEGORIES, self.settings.max_workers)

	def check_duplicate(self, code: str) -> DuplicateCheckResult:
		if self.movie_client is None:
			return DuplicateCheckResult(is_duplicate=False)
		return check_duplicate_movie_code(code, self.movie_client)

	def prepare(self, raw: str, snapshot: Optional[RegistrySnapshot] = None) -> IngestSession:
		"""
		Parse the paste, match it against a registry snapshot and look for a duplicate code.
		Raises ParseError when the paste lacks a code, a Japanese title or a release date.
		"""
		parsed = self.parse(raw)
		snapshot = snapshot if snapshot is not None else self.load_snapshot()
		matched = self.matcher.match_with_database(parsed, snapshot)
		duplicate = self.check_duplicate(parsed.code)
		session = IngestSession(
			source=parsed.source,
			parsed=parsed,
			snapshot=snapshot,
			matched=matched,
			duplicate=duplicate,
			dmcode=parsed.dmcode or generate_dmcode(parsed.code, parsed.studio),
		)
		logger.info(
			f"[Engine] Prepared {parsed.code} ({parsed.source.value}) | pending={len(matched.pending())} "
			f"duplicate={duplicate.is_duplicate}"
		)
		return session

	def apply_decisions(self, session: IngestSession, decisions: Iterable[Mapping[str, Any]]) -> MatchedData:
		"""Apply serialised user decisions in order; an illegal one raises InvalidTransitionError."""
		for decision in decisions:
			entry = session.matched.apply(decision, session.snapshot)
			logger.debug(f"[Engine] {decision.get('action')} on {decision.get('key')}-{decision.get('index')} -> {entry.state.value}")
		return session.matched

	def translate_title(self, session: IngestSession) -> Optional[str]:
		"""Fill title_en from title_jp when the source had none; a failed translation only warns."""
		parsed = session.parsed
		if parsed.title_en or not parsed.title_jp or self.translator is None:
			return parsed.title_en
		try:
			parsed.title_en = self.translator.translate(parsed.title_jp)
		except TranslationError as e:
			logger.warning(f"[Engine] Title translation for {parsed.code} failed: {e}")
		return parsed.title_en

	def build_movie(
		self,
		session: IngestSession,
		existing: Optional[Movie] = None,
		selected_fields: Optional[Iterable[str]] = None,
		movie_type: Optional[str] = None,
	) -> Movie:
		"""
		Backfill the master-data gaps the reviewed entries found, then build the record:
		merged into `existing` when given, otherwise a new one.
		"""
		patches = self.reconciler.build_patches(session.matched)
		if patches and self.master_client is not None:
			self.reconciler.push_master_data_patches(self.master_client, patches)
		elif patches:
			logger.debug(f"[Engine] {len(patches)} master-data patches skipped, no registry client")

		if existing is not None:
			return self.reconciler.merge_movie(existing, session.parsed, session.matched, selected_fields)
		return self.reconciler.build_movie(session.parsed, session.matched, movie_type)

	def save(
		self,
		session: IngestSession,
		merge: bool = False,
		selected_fields: Optional[Iterable[str]] = None,
		movie_type: Optional[str] = None,
	) -> Movie:
		"""
		Build the record and persist it: update the duplicate when `merge` is set,
		create a new movie otherwise.
		"""
		existing = session.duplicate.existing_movie if merge else None
		if merge and existing is None:
			raise IngestError(
				f"{session.parsed.code} has no existing movie to merge into",
				user_message="There is no existing movie with this code to merge into.",
			)
		movie = self.build_movie(session, existing, selected_fields, movie_type)
		if self.movie_client is None:
			return movie
		if existing is not None and existing.id:
			return self.movie_client.update_movie(existing.id, movie)
		return self.movie_client.create_movie(movie)

	def pending_summary(self, session: IngestSession) -> List[str]:
		"""Human-readable list of what still needs a decision."""
		lines = []
		for key, index, entry in session.matched.pending():
			if entry.matched is None:
				hint = f" (did you mean {', '.join(entry.suggestions)}?)" if entry.suggestions else ""
				lines.append(f"{key}[{index}] '{entry.name}': not in the registry{hint}")
			elif entry.needs_english_name_selection and not entry.has_different_english_names:
				lines.append(f"{key}[{index}] '{entry.name}': choose between {entry.matched.english_name} and {entry.available_english_names}")
			else:
				lines.append(f"{key}[{index}] '{entry.name}': {len(entry.multiple_matches)} candidates")
		return lines
