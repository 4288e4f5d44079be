"""
English-name conflict detection.
Compares the registry's English name against the English names the source supplied,
and decides whether a set of high-scoring candidates are really different entities.
"""

import re
from typing import Iterable, List, Optional, Sequence, Set

from loguru import logger

from .models import MasterDataItem

RE_NOISE = re.compile(r"[\W_]+", re.UNICODE)  # whitespace and punctuation


def normalize_english_name(name: Optional[str]) -> str:
	"""'Yui  Hatano' / 'yui-hatano' / 'Yui.Hatano' -> 'yuihatano'"""
	return RE_NOISE.sub("", (name or "").lower())


def find_english_name_conflicts(registry_name: Optional[str], alternates: Iterable[Optional[str]]) -> List[str]:
	"""
	Return the raw alternates whose normalized form differs from the registry's English name.
	An empty list means no choice is needed. Nothing to compare against -> no conflict.
	"""
	registry_key = normalize_english_name(registry_name)
	if not registry_key:
		return []
	conflicts: List[str] = []
	seen: Set[str] = set()
	for alternate in alternates:
		key = normalize_english_name(alternate)
		if not key or key == registry_key or key in seen:
			continue
		seen.add(key)
		conflicts.append(alternate.strip())
	if conflicts:
		logger.debug("[EnglishNames] registry '{}' vs alternates {}", registry_name, conflicts)
	return conflicts


def _japanese_names(item: MasterDataItem) -> Set[str]:
	return {v.strip().lower() for v in (item.jpname, item.kanji_name, item.kana_name, item.title_jp) if v and v.strip()}


def are_matches_truly_different(matches: Sequence[MasterDataItem]) -> bool:
	"""
	True when a high-score set holds genuinely distinct entities rather than
	spelling variants of one: their Japanese names are not all the same AND
	their English names are not all the same after normalization.
	"""
	if len(matches) <= 1:
		return False

	japanese: Set[str] = set()
	english: Set[str] = set()
	for item in matches:
		japanese |= _japanese_names(item)
		key = normalize_english_name(item.english_name)
		if key:
			english.add(key)

	if len(japanese) <= 1:
		logger.debug("[EnglishNames] candidates share one Japanese name, same entity")
		return False
	if len(english) <= 1:
		logger.debug("[EnglishNames] candidates share one English name, no choice needed")
		return False
	return True
