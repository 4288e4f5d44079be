"""
Per-entity match bookkeeping.

Every parsed name (one actress, the studio, ...) becomes a MatchEntry whose
`state` says what it is waiting for. The flags the UI reads
(needs_confirmation, needs_english_name_selection, ...) are derived from that
state so contradictory combinations cannot be stored.

    UNRESOLVED ──select / keep_original──────┐
    AUTO_MATCHED ──confirm───────────────────┤
    AMBIGUOUS ──select / confirm─────────────┼──> RESOLVED (or ENGLISH_NAME_CONFLICT)
    ENGLISH_NAME_CONFLICT ──choose_english_name / keep_original──> RESOLVED
    any ──ignore──> IGNORED ──unignore──> previous state

AMBIGUOUS covers every high-score set of two or more candidates; whether they
are different entities or spellings of one is told apart by
has_different_english_names, and only the former needs a candidate picked
before an English name can be settled.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from loguru import logger

from .english_names import are_matches_truly_different, find_english_name_conflicts
from .errors import InvalidTransitionError
from .missing_data import detect_missing_data
from .models import Category, MasterDataItem, NameVariants, RegistrySnapshot


class MatchState(str, Enum):
	UNRESOLVED = "unresolved"  # nothing in the registry matched
	AUTO_MATCHED = "auto_matched"  # one clear winner
	AMBIGUOUS = "ambiguous"  # several high-scoring candidates
	ENGLISH_NAME_CONFLICT = "english_name_conflict"  # matched, but the source spells the English name differently
	IGNORED = "ignored"  # left out of the saved movie
	RESOLVED = "resolved"  # a person decided


@dataclass
class MatchEntry:
	name: str
	category: Category
	state: MatchState = MatchState.UNRESOLVED
	matched: Optional[MasterDataItem] = None
	multiple_matches: List[MasterDataItem] = field(default_factory=list)
	parsed_english_name: Optional[str] = None
	info: Optional[NameVariants] = None
	available_english_names: List[str] = field(default_factory=list)
	custom_english_name: Optional[str] = None
	missing_data: Optional[Dict[str, str]] = None
	suggestions: List[str] = field(default_factory=list)
	update_declined: bool = False
	previous_state: Optional[MatchState] = field(default=None, repr=False)

	@classmethod
	def build(
		cls,
		name: str,
		category: Category,
		matched: Optional[MasterDataItem],
		multiple_matches: List[MasterDataItem],
		parsed_english_name: Optional[str] = None,
		info: Optional[NameVariants] = None,
	) -> "MatchEntry":
		"""Create an entry straight from a matcher result and pick its initial state."""
		entry = cls(
			name=name,
			category=Category(category),
			matched=matched,
			multiple_matches=list(multiple_matches),
			parsed_english_name=parsed_english_name,
			info=info,
		)
		entry._refresh_match_details()
		if matched is None:
			entry.state = MatchState.UNRESOLVED
		elif len(entry.multiple_matches) > 1:
			entry.state = MatchState.AMBIGUOUS
		elif entry.available_english_names:
			entry.state = MatchState.ENGLISH_NAME_CONFLICT
		else:
			entry.state = MatchState.AUTO_MATCHED
		return entry

	# Derived flags

	@property
	def is_settled(self) -> bool:
		return self.state in (MatchState.RESOLVED, MatchState.IGNORED)

	@property
	def needs_confirmation(self) -> bool:
		"""No match, several high-scoring candidates, or an English-name conflict, until a person decides."""
		return self.state in (MatchState.UNRESOLVED, MatchState.AMBIGUOUS, MatchState.ENGLISH_NAME_CONFLICT)

	@property
	def needs_english_name_selection(self) -> bool:
		return not self.is_settled and bool(self.available_english_names)

	@property
	def has_different_english_names(self) -> bool:
		return len(self.multiple_matches) > 1 and are_matches_truly_different(self.multiple_matches)

	@property
	def is_ignored(self) -> bool:
		return self.state == MatchState.IGNORED

	@property
	def awaiting_input(self) -> bool:
		return self.needs_confirmation or self.needs_english_name_selection

	@property
	def should_update_data(self) -> bool:
		return bool(self.missing_data) and not self.is_ignored and not self.update_declined

	# Transitions

	def select(self, candidate: MasterDataItem) -> "MatchEntry":
		"""Pick a registry record for this entry (one of the candidates or any other of the same category)."""
		self._require_not(MatchState.IGNORED, action="select")
		if Category(candidate.type) != self.category:
			raise InvalidTransitionError(f"Cannot select a {candidate.type.value} for a {self.category.value} entry")
		self.matched = candidate
		self.custom_english_name = None
		self._refresh_match_details()
		self._settle()
		logger.debug("[Match] {} '{}' -> {} ({})", self.category.value, self.name, candidate.id, self.state.value)
		return self

	def confirm(self) -> "MatchEntry":
		"""Accept the provisional top candidate."""
		if self.state == MatchState.RESOLVED:
			return self
		self._require(MatchState.AUTO_MATCHED, MatchState.AMBIGUOUS, action="confirm")
		self._settle()
		return self

	def choose_english_name(self, english_name: str) -> "MatchEntry":
		"""Use `english_name` for this entity in the saved movie."""
		self._require_not(MatchState.IGNORED, action="choose an English name")
		self._require_candidate_picked(action="choose an English name")
		english_name = (english_name or "").strip()
		if not english_name:
			raise InvalidTransitionError("English name must not be empty")
		self.custom_english_name = english_name
		self.state = MatchState.RESOLVED
		return self

	def keep_original(self) -> "MatchEntry":
		"""
		Keep the registry's English name when the source disagrees, or keep
		the parsed name as-is for an entry the registry does not know.
		"""
		self._require(MatchState.ENGLISH_NAME_CONFLICT, MatchState.UNRESOLVED, MatchState.AMBIGUOUS, action="keep the original name")
		self._require_candidate_picked(action="keep the original name")
		self.custom_english_name = None
		self.state = MatchState.RESOLVED
		return self

	def ignore(self) -> "MatchEntry":
		if self.state != MatchState.IGNORED:
			self.previous_state = self.state
			self.state = MatchState.IGNORED
		return self

	def unignore(self) -> "MatchEntry":
		self._require(MatchState.IGNORED, action="unignore")
		self.state = self.previous_state or MatchState.UNRESOLVED
		self.previous_state = None
		return self

	def decline_update(self) -> "MatchEntry":
		"""Do not backfill the registry record from this entry."""
		if not self.missing_data:
			raise InvalidTransitionError(f"'{self.name}' has no registry update to decline")
		self.update_declined = True
		return self

	# Internals

	def _refresh_match_details(self) -> None:
		if self.matched is None:
			self.available_english_names = []
			self.missing_data = None
			return
		alternates = [self.parsed_english_name, self.info.name if self.info else None]
		self.available_english_names = find_english_name_conflicts(self.matched.english_name, alternates)
		self.missing_data = detect_missing_data(
			self.matched, self.category, self.name, self.info, self.parsed_english_name
		)
		self.update_declined = False

	def _settle(self) -> None:
		self.state = MatchState.ENGLISH_NAME_CONFLICT if self.available_english_names else MatchState.RESOLVED

	def _require(self, *states: MatchState, action: str) -> None:
		if self.state not in states:
			raise InvalidTransitionError(f"Cannot {action} '{self.name}' while it is {self.state.value}")

	def _require_not(self, *states: MatchState, action: str) -> None:
		if self.state in states:
			raise InvalidTransitionError(f"Cannot {action} '{self.name}' while it is {self.state.value}")

	def _require_candidate_picked(self, action: str) -> None:
		# distinct candidates: the English name depends on which one is meant
		if self.state == MatchState.AMBIGUOUS and self.has_different_english_names:
			raise InvalidTransitionError(f"Cannot {action} '{self.name}' before one of its candidates is selected")

	def to_dict(self) -> Dict[str, Any]:
		"""camelCase view for API responses."""
		return {
			"name": self.name,
			"category": self.category.value,
			"state": self.state.value,
			"parsedEnglishName": self.parsed_english_name,
			"matched": self.matched.to_wire() if self.matched else None,
			"multipleMatches": [item.to_wire() for item in self.multiple_matches],
			"needsConfirmation": self.needs_confirmation,
			"hasDifferentEnglishNames": self.has_different_english_names,
			"needsEnglishNameSelection": self.needs_english_name_selection,
			"availableEnglishNames": list(self.available_english_names),
			"customEnglishName": self.custom_english_name,
			"missingData": self.missing_data,
			"shouldUpdateData": self.should_update_data,
			"isIgnored": self.is_ignored,
			"suggestions": list(self.suggestions),
		}


ACTIONS = ("select", "confirm", "choose_english_name", "keep_original", "ignore", "unignore", "decline_update")


@dataclass
class MatchedData:
	"""All match entries of one movie, grouped the way the movie record groups them."""
	actresses: List[MatchEntry] = field(default_factory=list)
	actors: List[MatchEntry] = field(default_factory=list)
	directors: List[MatchEntry] = field(default_factory=list)
	studios: List[MatchEntry] = field(default_factory=list)
	series: List[MatchEntry] = field(default_factory=list)
	labels: List[MatchEntry] = field(default_factory=list)

	KEYS = ("actresses", "actors", "directors", "studios", "series", "labels")

	def entries(self) -> Iterator[Tuple[str, int, MatchEntry]]:
		for key in self.KEYS:
			for index, entry in enumerate(getattr(self, key)):
				yield key, index, entry

	def pending(self) -> List[Tuple[str, int, MatchEntry]]:
		"""Entries still waiting for a person to decide."""
		return [(key, index, entry) for key, index, entry in self.entries() if entry.awaiting_input]

	def get(self, key: str, index: int) -> MatchEntry:
		if key not in self.KEYS:
			raise InvalidTransitionError(f"Unknown match group '{key}'")
		group = getattr(self, key)
		if not 0 <= index < len(group):
			raise InvalidTransitionError(f"No {key} entry at position {index}")
		return group[index]

	def apply(self, decision: Mapping[str, Any], snapshot: Optional[RegistrySnapshot] = None) -> MatchEntry:
		"""
		Apply one serialised user decision:
		{"key": "actresses", "index": 0, "action": "select", "candidate_id": "..."}.
		Candidates are looked up among the entry's own candidates first, then in `snapshot`.
		"""
		action = decision.get("action")
		if action not in ACTIONS:
			raise InvalidTransitionError(f"Unknown action '{action}'")
		entry = self.get(decision.get("key", ""), int(decision.get("index", 0)))

		if action == "select":
			candidate = self._find_candidate(entry, decision.get("candidate_id"), snapshot)
			return entry.select(candidate)
		if action == "choose_english_name":
			return entry.choose_english_name(decision.get("english_name") or "")
		return getattr(entry, action)()

	def _find_candidate(self, entry: MatchEntry, candidate_id: Optional[str], snapshot: Optional[RegistrySnapshot]) -> MasterDataItem:
		if not candidate_id:
			raise InvalidTransitionError("A candidate id is required to select a match")
		for item in [entry.matched, *entry.multiple_matches]:
			if item is not None and item.id == candidate_id:
				return item
		found = snapshot.find(entry.category, candidate_id) if snapshot is not None else None
		if found is None:
			raise InvalidTransitionError(f"No {entry.category.value} with id '{candidate_id}'")
		return found

	def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
		return {key: [entry.to_dict() for entry in getattr(self, key)] for key in self.KEYS}
