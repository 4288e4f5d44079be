"""
Missing-data detection: which registry fields a parsed movie could backfill.
"""

from typing import Dict, Optional

from loguru import logger

from .japanese import alias_exists, contains_hiragana, contains_japanese, contains_kanji, contains_katakana, merge_alias, split_aliases
from .models import Category, MasterDataItem, NameVariants

PERSON_CATEGORIES = (Category.ACTRESS, Category.ACTOR, Category.DIRECTOR)


def _blank(value: Optional[str]) -> bool:
	return not (value or "").strip()


def _same(a: Optional[str], b: Optional[str]) -> bool:
	return (a or "").strip().lower() == (b or "").strip().lower()


def _person_gaps(matched: MasterDataItem, parsed_name: str, info: Optional[NameVariants], english: str) -> Dict[str, str]:
	gaps: Dict[str, str] = {}

	# Japanese spellings the registry does not know yet
	japanese_values = [parsed_name]
	if info:
		japanese_values += [info.jpname, info.kanji_name, info.kana_name]
	for value in japanese_values:
		value = (value or "").strip()
		if not value or not contains_japanese(value):
			continue
		if _same(value, matched.kanji_name) or _same(value, matched.kana_name):
			continue
		if (contains_kanji(value) or contains_katakana(value)) and _blank(matched.kanji_name) and "kanjiName" not in gaps:
			gaps["kanjiName"] = value
		elif contains_hiragana(value) and not contains_kanji(value) and _blank(matched.kana_name) and "kanaName" not in gaps:
			gaps["kanaName"] = value

	if (
		parsed_name
		and not _same(parsed_name, matched.jpname)
		and not any(_same(parsed_name, v) for v in (matched.name, matched.kanji_name, matched.kana_name))
		and _blank(matched.alias)
	):
		gaps["alias"] = parsed_name

	# bracketed aliases from the source are merged into whatever the registry already has
	extra = [a for a in split_aliases(info.alias if info else "") if not alias_exists(matched.alias, a)]
	if extra:
		gaps["alias"] = merge_alias(matched.alias, ", ".join([gaps["alias"], *extra] if "alias" in gaps else extra))

	if english and _blank(matched.name):
		gaps["name"] = english
	return gaps


def _series_gaps(matched: MasterDataItem, parsed_name: str, info: Optional[NameVariants], english: str) -> Dict[str, str]:
	gaps: Dict[str, str] = {}
	japanese = (info.jpname if info and contains_japanese(info.jpname) else "") or (parsed_name if contains_japanese(parsed_name) else "")
	if japanese and _blank(matched.title_jp):
		gaps["titleJp"] = japanese
	if english and _blank(matched.title_en) and _blank(matched.name):
		gaps["titleEn"] = english
	return gaps


def _company_gaps(matched: MasterDataItem, parsed_name: str, info: Optional[NameVariants], english: str) -> Dict[str, str]:
	"""Studios and labels: a Japanese name distinct from the English one, and the English name."""
	gaps: Dict[str, str] = {}
	japanese = (info.jpname if info else "") or parsed_name
	if japanese and contains_japanese(japanese) and not _same(japanese, english):
		# a jpname that merely repeats the English name is a placeholder
		if _blank(matched.jpname) or _same(matched.jpname, matched.name):
			if not _same(japanese, matched.jpname):
				gaps["jpname"] = japanese
	if english and _blank(matched.name):
		gaps["name"] = english
	return gaps


def detect_missing_data(
	matched: Optional[MasterDataItem],
	category: Category,
	parsed_name: str,
	info: Optional[NameVariants] = None,
	parsed_english_name: Optional[str] = None,
) -> Optional[Dict[str, str]]:
	"""
	Compare a chosen registry record against what the parse knows about the same entity.
	Returns None when there is nothing to add, otherwise a patch holding only the
	discovered fields (camelCase, as the registry expects), never the full record.
	"""
	if matched is None:
		return None

	parsed_name = (parsed_name or "").strip()
	english = (parsed_english_name or (info.name if info else "") or "").strip()
	if contains_japanese(english):
		english = ""

	category = Category(category)
	if category in PERSON_CATEGORIES:
		gaps = _person_gaps(matched, parsed_name, info, english)
	elif category == Category.SERIES:
		gaps = _series_gaps(matched, parsed_name, info, english)
	elif category in (Category.STUDIO, Category.LABEL):
		gaps = _company_gaps(matched, parsed_name, info, english)
	else:
		gaps = {}

	if not gaps:
		return None
	logger.debug("[MissingData] {} {} can backfill {}", category.value, matched.id, sorted(gaps))
	return gaps
