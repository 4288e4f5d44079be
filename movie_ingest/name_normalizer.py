"""
Name normalization for JSON-dialect person records.
Collapses romaji/kanji/kana/English spellings into one NameVariants block without duplicating data.
"""

from typing import List, Optional

from loguru import logger

from .models import NameVariants
from .japanese import (
	parse_name_with_aliases,
	detect_character_type,
	contains_kanji,
	contains_kana,
	contains_hiragana,
	contains_katakana,
	is_latin_name,
)


def normalize_json_person(
	name_romaji: Optional[str] = None,
	name_kanji: Optional[str] = None,
	name_kana: Optional[str] = None,
	name_en: Optional[str] = None,
) -> NameVariants:
	"""
	Map the four source spellings onto the canonical slots.

	- bracketed aliases are removed from every field and collected
	  (romaji, English, kanji, kana order, deduplicated)
	- explicit fields fill their slot first; name_en wins over name_romaji for `name`
	- remaining empty slots are filled by character-type detection of the other fields
	- jpname = kanji, else kana, else romaji, else English
	"""
	romaji_main, romaji_aliases = parse_name_with_aliases((name_romaji or "").strip())
	kanji_main, kanji_aliases = parse_name_with_aliases((name_kanji or "").strip())
	kana_main, kana_aliases = parse_name_with_aliases((name_kana or "").strip())
	en_main, en_aliases = parse_name_with_aliases((name_en or "").strip())

	kanji_name = kanji_main
	kana_name = kana_main
	name = en_main or romaji_main

	# A field can arrive in the wrong slot (kana in name_kanji, kanji in name_romaji...)
	for value in (kanji_main, kana_main, romaji_main, en_main):
		if not value:
			continue
		kind = detect_character_type(value)
		if kind == "kanji" and not kanji_name:
			kanji_name = value
		elif kind == "kana" and not kana_name:
			kana_name = value
		elif kind == "romaji" and not name:
			name = value
		elif kind == "mixed":
			if contains_kanji(value) and not kanji_name:
				kanji_name = value
			elif contains_kana(value) and not kana_name:
				kana_name = value
			elif is_latin_name(value) and not name:
				name = value

	# A hiragana-only value filed as kanji moves to the kana slot; katakana stage names stay
	if kanji_name and contains_hiragana(kanji_name) and not (contains_kanji(kanji_name) or contains_katakana(kanji_name)):
		if not kana_name or kana_name == kanji_name:
			kana_name = kanji_name
		kanji_name = ""
	if name and (contains_kanji(name) or contains_kana(name)):
		name = ""

	jpname = kanji_name or kana_name or romaji_main or en_main

	# Identical spellings are kept once; everything else bracketed becomes an alias
	canonical = {v.lower() for v in (jpname, kanji_name, kana_name, name) if v}
	aliases: List[str] = []
	for alias in romaji_aliases + en_aliases + kanji_aliases + kana_aliases:
		if alias.lower() in canonical or alias in aliases:
			continue
		aliases.append(alias)

	variants = NameVariants(
		jpname=jpname,
		kanji_name=kanji_name,
		kana_name=kana_name,
		name=name,
		alias=", ".join(aliases),
		romaji=(name_romaji or "").strip(),
	)
	logger.debug(
		"[Names] romaji={!r} kanji={!r} kana={!r} en={!r} -> {}", name_romaji, name_kanji, name_kana, name_en, variants
	)
	return variants


def normalize_bilingual_name(name_ja: Optional[str], name_en: Optional[str]) -> Optional[NameVariants]:
	"""
	Studio/series/label names come as a ja/en pair. When both spellings are the
	same the entity has no distinct Japanese form and only one slot is filled.
	"""
	ja = (name_ja or "").strip()
	en = (name_en or "").strip()
	if not ja and not en:
		return None
	if ja and en and ja.lower() == en.lower():
		return NameVariants(jpname=ja, name=en)
	variants = NameVariants(jpname=ja or en, name=en)
	if contains_kanji(ja):
		variants.kanji_name = ja
	elif contains_kana(ja):
		variants.kana_name = ja
	return variants
