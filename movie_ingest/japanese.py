"""
Japanese script helpers: character-class tests, bracketed alias extraction and alias lists.
"""

import re
from typing import List, Optional, Tuple

RE_KANJI = re.compile(r"[\u4e00-\u9faf]")
RE_HIRAGANA = re.compile(r"[\u3040-\u309f]")
RE_KATAKANA = re.compile(r"[\u30a0-\u30ff]")
RE_LATIN_NAME = re.compile(r"^[A-Za-z\s]+$")
# ASCII and full-width brackets: "めぐり（ふじうらめぐ）", "name (alias1)(alias2)"
RE_BRACKETED = re.compile(r"[（(]([^）)]+)[）)]")


def contains_kanji(text: Optional[str]) -> bool:
	return bool(text) and RE_KANJI.search(text) is not None


def contains_hiragana(text: Optional[str]) -> bool:
	return bool(text) and RE_HIRAGANA.search(text) is not None


def contains_katakana(text: Optional[str]) -> bool:
	return bool(text) and RE_KATAKANA.search(text) is not None


def contains_kana(text: Optional[str]) -> bool:
	return contains_hiragana(text) or contains_katakana(text)


def contains_japanese(text: Optional[str]) -> bool:
	return contains_kanji(text) or contains_kana(text)


def is_latin_name(text: Optional[str]) -> bool:
	return bool(text) and RE_LATIN_NAME.match(text) is not None


def detect_character_type(text: str) -> str:
	"""
	Classify a name as 'kanji', 'kana', 'romaji', 'mixed' or 'unknown'.
	Kanji outranks kana, which outranks romaji, when several scripts are present.
	"""
	if not text or not text.strip():
		return "unknown"
	if contains_kanji(text):
		return "kanji"
	if contains_kana(text):
		return "kana"
	if is_latin_name(text):
		return "romaji"
	# Latin mixed with digits/punctuation, or some other script entirely
	return "mixed" if re.search(r"[A-Za-z]", text) else "unknown"


def parse_name_with_aliases(name: str) -> Tuple[str, List[str]]:
	"""
	Split a name into its main part and the aliases written in brackets.
	"めぐり（ふじうらめぐ）" -> ("めぐり", ["ふじうらめぐ"])
	"""
	if not name or not name.strip():
		return "", []
	aliases = [m.group(1).strip() for m in RE_BRACKETED.finditer(name) if m.group(1).strip()]
	main = RE_BRACKETED.sub("", name)
	main = " ".join(main.split())  # collapse the gaps left behind
	return main, aliases


def split_aliases(alias: Optional[str]) -> List[str]:
	if not alias:
		return []
	return [a.strip() for a in alias.split(",") if a.strip()]


def merge_alias(existing: Optional[str], new: Optional[str]) -> str:
	"""Union two comma-separated alias lists, case-insensitively, keeping first-seen order."""
	merged: List[str] = []
	seen = set()
	for alias in split_aliases(existing) + split_aliases(new):
		key = alias.lower()
		if key not in seen:
			seen.add(key)
			merged.append(alias)
	return ", ".join(merged)


def alias_exists(existing: Optional[str], alias: str) -> bool:
	return any(a.lower() == alias.strip().lower() for a in split_aliases(existing))
