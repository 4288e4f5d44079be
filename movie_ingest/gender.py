"""
Gender classification for unmarked Japanese performer names.

This is a heuristic, not ground truth: it looks at name endings typical for
women or men and otherwise falls back to a configurable prior (female, since
most performers in this catalog are women). A ♀/♂ marker in the source always
overrides it, and any object with a `classify(token) -> Gender` method can be
plugged into the text parser instead.
"""

import re
from typing import Iterable, Protocol, Tuple

from loguru import logger

from .models import Gender


class GenderClassifier(Protocol):
	def classify(self, token: str) -> Gender:
		...


class HeuristicGenderClassifier:
	"""Suffix lists first (male wins), then a kana-ending pattern, then the prior."""

	FEMALE_SUFFIXES: Tuple[str, ...] = (
		"子", "美", "香", "花", "菜", "奈", "愛", "恵", "絵", "里", "理", "由", "優", "友", "希",
		"衣", "江", "枝", "緒", "音", "楓", "風", "凜", "凛", "瑠",
		"るみ", "くるみ", "りん", "りほ", "みく", "あい", "ゆき", "さくら", "もも",
	)
	MALE_SUFFIXES: Tuple[str, ...] = (
		"郎", "太", "一", "二", "三", "四", "五", "六", "七", "八", "九", "十",
		"男", "夫", "雄", "勇", "健", "強", "正", "誠", "直", "治", "司", "志", "史", "士", "人",
		"内村", "いせどん", "うちむら",
	)
	# Checked anywhere in the name, not only at the end
	MALE_INDICATORS: Tuple[str, ...] = ("男優", "一郎", "二郎", "三郎", "太郎", "男", "夫", "雄", "郎")
	# Two to four trailing kana read as a given name, which in this catalog skews female
	RE_KANA_ENDING = re.compile(r"[ぁ-ん]{2,4}$|[ア-ン]{2,4}$")

	def __init__(
		self,
		default: Gender = Gender.FEMALE,
		female_suffixes: Iterable[str] = (),
		male_suffixes: Iterable[str] = (),
	):
		self.default = default
		self.female_suffixes = tuple(self.FEMALE_SUFFIXES) + tuple(female_suffixes)
		self.male_suffixes = tuple(self.MALE_SUFFIXES) + tuple(male_suffixes)

	def classify(self, token: str) -> Gender:
		name = (token or "").strip()
		if not name:
			return Gender.UNKNOWN

		if name.endswith(self.male_suffixes):
			logger.debug("[Gender] '{}' -> male (suffix)", name)
			return Gender.MALE
		if name.endswith(self.female_suffixes):
			logger.debug("[Gender] '{}' -> female (suffix)", name)
			return Gender.FEMALE
		if self.RE_KANA_ENDING.search(name):
			logger.debug("[Gender] '{}' -> female (kana ending)", name)
			return Gender.FEMALE
		if any(indicator in name for indicator in self.MALE_INDICATORS):
			logger.debug("[Gender] '{}' -> male (indicator)", name)
			return Gender.MALE

		logger.debug("[Gender] '{}' -> {} (prior)", name, self.default.value)
		return self.default
