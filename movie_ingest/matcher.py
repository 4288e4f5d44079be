"""
Entity matching module.
Scores every registry record of a category against a parsed name and turns the
result into MatchEntry objects the reconciler and the UI work with.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from loguru import logger
from rapidfuzz import fuzz, process, utils

from .config import Settings, get_settings
from .japanese import RE_BRACKETED
from .match_entry import MatchEntry, MatchedData
from .models import Category, MasterDataItem, NameVariants, ParsedMovieData, RegistrySnapshot


@dataclass
class MatchResult:
	matched: Optional[MasterDataItem] = None
	multiple_matches: List[MasterDataItem] = field(default_factory=list)
	scored: List[Tuple[MasterDataItem, int]] = field(default_factory=list)  # every retained candidate, best first


def _lower(value: Optional[str]) -> str:
	return (value or "").strip().lower()


class EntityMatcher:
	"""
	Additive scoring over the registry (higher wins):
	- exact jpname/kanjiName/kanaName +100, alias +80, English name +60
	- substring (record field contains the query) +50 / +40 / +30
	- group-scoped alias +70 exact, +35 substring
	- series titleJp +100 / +50, titleEn +60 / +30
	- labels whose Japanese and English names are the same string score +120 / +60 on it
	Candidates below the minimum score are dropped; everything within the
	high-score band of the best candidate counts as a possible match.
	"""

	EXACT_JAPANESE = 100
	EXACT_ALIAS = 80
	EXACT_ENGLISH = 60
	PARTIAL_JAPANESE = 50
	PARTIAL_ALIAS = 40
	PARTIAL_ENGLISH = 30
	EXACT_GROUP_ALIAS = 70
	PARTIAL_GROUP_ALIAS = 35
	EXACT_LABEL_SHARED = 120
	PARTIAL_LABEL_SHARED = 60
	EXACT_LABEL_NAME = 100

	def __init__(self, settings: Optional[Settings] = None):
		settings = settings or get_settings()
		self.min_score = settings.min_match_score
		self.label_same_name_min_score = settings.label_same_name_min_score
		self.high_score_ratio = settings.high_score_ratio
		self.suggestion_cutoff = settings.suggestion_cutoff
		self.suggestion_limit = settings.suggestion_limit

	# Scoring

	@staticmethod
	def is_same_name_label(candidate: MasterDataItem) -> bool:
		"""A label with no distinct Japanese form (jpname repeats the English name)."""
		return bool(candidate.jpname) and _lower(candidate.jpname) == _lower(candidate.name)

	def score(self, candidate: MasterDataItem, query: str, category: Category) -> int:
		q = _lower(query)
		if not q:
			return 0

		def exact(value: Optional[str]) -> bool:
			return bool(value) and _lower(value) == q

		def partial(value: Optional[str]) -> bool:
			return bool(value) and q in value.lower()

		score = 0
		category = Category(category)
		same_name_label = category == Category.LABEL and self.is_same_name_label(candidate)

		if same_name_label:
			if exact(candidate.jpname):
				score += self.EXACT_LABEL_SHARED
			elif partial(candidate.jpname):
				score += self.PARTIAL_LABEL_SHARED
			japanese_fields = (candidate.kanji_name, candidate.kana_name)
		elif category == Category.LABEL:
			if exact(candidate.jpname):
				score += self.EXACT_LABEL_NAME
			if exact(candidate.name):
				score += self.EXACT_LABEL_NAME
			if partial(candidate.jpname):
				score += self.PARTIAL_JAPANESE
			if partial(candidate.name):
				score += self.PARTIAL_ENGLISH
			japanese_fields = (candidate.kanji_name, candidate.kana_name)
		else:
			japanese_fields = (candidate.jpname, candidate.kanji_name, candidate.kana_name)

		for value in japanese_fields:
			if exact(value):
				score += self.EXACT_JAPANESE
			if partial(value):
				score += self.PARTIAL_JAPANESE

		if exact(candidate.alias):
			score += self.EXACT_ALIAS
		if partial(candidate.alias):
			score += self.PARTIAL_ALIAS

		if category != Category.LABEL:
			if exact(candidate.name):
				score += self.EXACT_ENGLISH
			if partial(candidate.name):
				score += self.PARTIAL_ENGLISH

		for group in (candidate.group_data or {}).values():
			if exact(group.alias):
				score += self.EXACT_GROUP_ALIAS
			if partial(group.alias):
				score += self.PARTIAL_GROUP_ALIAS

		if category == Category.SERIES:
			if exact(candidate.title_jp):
				score += self.EXACT_JAPANESE
			if exact(candidate.title_en):
				score += self.EXACT_ENGLISH
			if partial(candidate.title_jp):
				score += self.PARTIAL_JAPANESE
			if partial(candidate.title_en):
				score += self.PARTIAL_ENGLISH

		return score

	def _threshold(self, candidate: MasterDataItem, category: Category) -> int:
		if category == Category.LABEL and self.is_same_name_label(candidate):
			return self.label_same_name_min_score
		return self.min_score

	# Matching

	def find_matches(self, name: str, category: Category, snapshot: RegistrySnapshot) -> MatchResult:
		"""Score one query against every record of `category` and apply the threshold and high-score band."""
		category = Category(category)
		scored: List[Tuple[MasterDataItem, int]] = []
		for candidate in snapshot.by_category(category):
			s = self.score(candidate, name, category)
			if s >= self._threshold(candidate, category):
				scored.append((candidate, s))
				logger.debug(f"[Matcher] {category.value} '{name}' ~ {candidate.display_name} score={s}")

		if not scored:
			return MatchResult()

		# sorted() is stable: equal scores keep registry order
		scored = sorted(scored, key=lambda pair: pair[1], reverse=True)
		top_score = scored[0][1]
		high = [item for item, s in scored if s >= top_score * self.high_score_ratio]
		if len(high) > 1:
			return MatchResult(matched=high[0], multiple_matches=high, scored=scored)
		return MatchResult(matched=scored[0][0], scored=scored)

	def query_variants(self, name: str, category: Category, info: Optional[NameVariants] = None) -> List[str]:
		"""
		The parsed name first, then every other spelling the source gave, then for studios
		and labels written as 'マドンナ(Madonna)' the bracketed text and the text before it.
		"""
		variants: List[str] = []

		def add(value: Optional[str]) -> None:
			value = (value or "").strip()
			if value and value not in variants:
				variants.append(value)

		add(name)
		if info is not None:
			for value in info.candidates():
				add(value)
		if Category(category) in (Category.STUDIO, Category.LABEL):
			for value in list(variants):
				m = RE_BRACKETED.search(value)
				if m:
					add(m.group(1))
					add(value[:m.start()])
		return variants

	def suggest(self, name: str, category: Category, snapshot: RegistrySnapshot) -> List[str]:
		"""Close spellings from the registry for a name that did not match."""
		if not name or self.suggestion_limit <= 0:
			return []
		pool: List[Tuple[str, MasterDataItem]] = []
		for item in snapshot.by_category(category):
			for text in (item.jpname, item.kanji_name, item.kana_name, item.name, item.title_jp, item.title_en):
				if text:
					pool.append((text, item))
		if not pool:
			return []

		results = process.extract(
			name,
			[text for text, _ in pool],
			scorer=fuzz.WRatio,
			processor=utils.default_process,
			limit=None,
			score_cutoff=self.suggestion_cutoff,
		)
		suggestions: List[str] = []
		for _, _, index in results:
			label = pool[index][1].display_name
			if label not in suggestions:
				suggestions.append(label)
			if len(suggestions) >= self.suggestion_limit:
				break
		return suggestions

	def match_entry(
		self,
		name: str,
		category: Category,
		snapshot: RegistrySnapshot,
		info: Optional[NameVariants] = None,
		parsed_english_name: Optional[str] = None,
	) -> MatchEntry:
		"""Match one parsed name, retrying the other spellings until one of them hits."""
		category = Category(category)
		result = MatchResult()
		for variant in self.query_variants(name, category, info):
			result = self.find_matches(variant, category, snapshot)
			if result.matched is not None:
				if variant != name:
					logger.debug(f"[Matcher] {category.value} '{name}' matched through variant '{variant}'")
				break

		entry = MatchEntry.build(
			name=name,
			category=category,
			matched=result.matched,
			multiple_matches=result.multiple_matches,
			parsed_english_name=parsed_english_name,
			info=info,
		)
		if entry.matched is None:
			entry.suggestions = self.suggest(name, category, snapshot)
		return entry

	def match_with_database(self, parsed: ParsedMovieData, snapshot: RegistrySnapshot) -> MatchedData:
		"""Build match entries for every person and company named in `parsed`."""
		matched = MatchedData()

		def english(info: Optional[NameVariants]) -> Optional[str]:
			return (info.name or None) if info else None

		for i, actress in enumerate(parsed.actresses):
			info = parsed.actress_info[i] if i < len(parsed.actress_info) else None
			matched.actresses.append(self.match_entry(actress, Category.ACTRESS, snapshot, info, english(info)))

		for i, actor in enumerate(parsed.actors):
			info = parsed.actor_info[i] if i < len(parsed.actor_info) else None
			matched.actors.append(self.match_entry(actor, Category.ACTOR, snapshot, info, english(info)))

		singles = (
			("directors", parsed.director, Category.DIRECTOR, parsed.director_info),
			("studios", parsed.studio, Category.STUDIO, parsed.studio_info),
			("series", parsed.series, Category.SERIES, parsed.series_info),
			("labels", parsed.label, Category.LABEL, parsed.label_info),
		)
		for key, value, category, info in singles:
			if value:
				getattr(matched, key).append(self.match_entry(value, category, snapshot, info, english(info)))

		pending = len(matched.pending())
		total = sum(1 for _ in matched.entries())
		logger.info(f"[Matcher] {parsed.code}: matched {total} entries, {pending} awaiting a decision")
		return matched
