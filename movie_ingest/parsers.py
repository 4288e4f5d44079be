"""
Dialect parsers.
Turn pasted movie metadata (JSON export or line-oriented text) into a ParsedMovieData.
Each dialect is an independent strategy; `parse` picks one with the source detector.
"""

import re  # line/key/code patterns
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from loguru import logger  # console logging
from pydantic import ValidationError

from .config import get_settings
from .models import ParsedMovieData, SourceDialect, Gender, NameVariants
from .schemas import SourceMovie, SourcePerson
from .errors import ParseError
from .gender import GenderClassifier, HeuristicGenderClassifier
from .japanese import contains_japanese
from .name_normalizer import normalize_json_person, normalize_bilingual_name
from .source_detector import detect_source, load_json_object

FEMALE_MARK = "♀"
MALE_MARK = "♂"

# Words that show up in titles but never in a performer's name
TITLE_STOPWORDS: Tuple[str, ...] = (
	"合コン", "SEX", "中出し", "美少女", "おじいちゃん", "老人", "ギャル", "ブル尻", "美乳", "中○し",
)


class MovieParser(ABC):
	"""A dialect strategy: raw text in, canonical ParsedMovieData out (or ParseError)."""

	dialect: SourceDialect

	@abstractmethod
	def _parse(self, raw: str) -> ParsedMovieData:
		...

	def parse(self, raw: str) -> ParsedMovieData:
		if not raw or not raw.strip():
			raise ParseError("empty input")
		parsed = self._parse(raw)
		parsed.source = self.dialect
		# Single validity gate shared by every dialect
		if not parsed.is_valid():
			missing = [
				f for f, v in (("code", parsed.code), ("title_jp", parsed.title_jp), ("release_date", parsed.release_date))
				if not (v or "").strip()
			]
			logger.info("[Parser] {} parse rejected, missing {}", self.dialect.value, missing)
			raise ParseError(f"missing required fields: {', '.join(missing)}")
		logger.info(
			"[Parser] {} parsed code={} actresses={} actors={}",
			self.dialect.value, parsed.code, len(parsed.actresses), len(parsed.actors),
		)
		return parsed


class JsonDialectParser(MovieParser):
	"""Parses the R18-style JSON export, normalizing each person's name variants."""

	dialect = SourceDialect.JSON

	def _parse(self, raw: str) -> ParsedMovieData:
		data = load_json_object(raw)
		if not isinstance(data, dict):
			raise ParseError("JSON dialect expects an object")
		try:
			src = SourceMovie.model_validate(data)
		except ValidationError as e:
			raise ParseError(f"JSON payload does not match the export schema: {e.error_count()} errors") from e

		actresses, actress_info = self._people(src.actresses)
		actors, actor_info = self._people(src.actors)
		directors, director_info = self._people(src.directors)

		studio_info = normalize_bilingual_name(src.maker_name_ja, src.maker_name_en)
		series_info = normalize_bilingual_name(src.series_name_ja, src.series_name_en)
		label_info = normalize_bilingual_name(src.label_name_ja, src.label_name_en)

		parsed = ParsedMovieData(
			code=(src.dvd_id or "").strip(),
			title_jp=(src.title_ja or "").strip(),
			title_en=(src.title_en or "").strip() or None,
			release_date=self._date_part(src.release_date),
			duration=self._duration(src.runtime_mins),
			director=directors[0] if directors else "",
			studio=studio_info.jpname if studio_info else "",
			series=series_info.jpname if series_info else "",
			label=label_info.jpname if label_info else None,
			actresses=actresses,
			actors=actors,
			dmcode=(src.content_id or "").strip() or None,
			raw_data=raw,
			director_info=director_info[0] if director_info else None,
			actress_info=actress_info,
			actor_info=actor_info,
			studio_info=studio_info,
			series_info=series_info,
			label_info=label_info,
			gallery_images=list(src.gallery),
			cover_image=src.jacket_full_url or None,
			sample_url=src.sample_url or None,
		)
		logger.debug("[Parser] JSON dialect mapped {} -> '{}'", parsed.code, parsed.title_jp[:40])
		return parsed

	def _people(self, people: List[SourcePerson]) -> Tuple[List[str], List[NameVariants]]:
		names: List[str] = []
		infos: List[NameVariants] = []
		for person in people:
			if person.is_empty():
				continue
			info = normalize_json_person(person.name_romaji, person.name_kanji, person.name_kana, person.name_en)
			primary = info.jpname or info.name
			if not primary:
				continue
			names.append(primary)
			infos.append(info)
		return names, infos

	def _date_part(self, value: Optional[str]) -> str:
		# "2015-06-01 10:00:00" / "2015-06-01T00:00:00Z" -> "2015-06-01"
		value = (value or "").strip()
		m = re.match(r"^(\d{4}-\d{2}-\d{2})", value)
		return m.group(1) if m else value

	def _duration(self, value) -> str:
		if value is None or value == "":
			return ""
		try:
			return f"{int(float(value))} min"
		except (TypeError, ValueError):
			return str(value).strip()


class TextDialectParser(MovieParser):
	"""
	Line-oriented parser ("simple" format, e.g. copied from a catalog page).
	Line 0 is "<CODE> <Japanese title>", the rest are "Key: Value" lines; a key
	with an empty value takes the following run of colon-free lines as its value.
	"""

	dialect = SourceDialect.TEXT

	RE_CODE = re.compile(r"^([A-Z0-9-]+)")
	RE_LIST_SEPARATORS = re.compile(r"\s*[,、/]\s*")
	SKIP_LINES = {"watch full movie"}

	# Recognised keys (lower-cased) -> canonical field
	KEYS: Dict[str, str] = {
		"id": "code",
		"release date": "release_date",
		"released date": "release_date",
		"duration": "duration",
		"director": "director",
		"studio": "studio",
		"maker": "studio",
		"publisher": "publisher",
		"series": "series",
		"label": "label",
		"rating": "rating",
		"actresses": "actresses",
		"actress": "actresses",
		"actors": "actors",
		"actor": "actors",
		"actor(s)": "actors",
		"tags": "tags",
	}

	def __init__(self, gender_classifier: Optional[GenderClassifier] = None):
		self.gender_classifier = gender_classifier or HeuristicGenderClassifier(default=get_settings().default_gender)

	def _parse(self, raw: str) -> ParsedMovieData:
		lines = [line.strip() for line in raw.splitlines() if line.strip()]
		if not lines:
			raise ParseError("no content")

		code, title = self._split_first_line(lines[0])
		fields = self._collect_fields(lines[1:])
		logger.debug("[Parser] Text fields: {}", {k: v[:3] for k, v in fields.items()})

		parsed = ParsedMovieData(code=code, title_jp=title, release_date="", raw_data=raw)
		if not parsed.code and fields.get("code"):
			parsed.code = fields["code"][0]
		parsed.release_date = self._first(fields, "release_date")
		parsed.duration = self._first(fields, "duration")
		parsed.director = self._first(fields, "director")
		parsed.studio = self._first(fields, "studio") or self._first(fields, "publisher")
		parsed.series = self._first(fields, "series")
		parsed.label = self._first(fields, "label") or None
		parsed.rating = self._first(fields, "rating") or None

		actresses = self._split_names(fields.get("actresses", []))
		mixed = self._split_names(fields.get("actors", []))
		if self._looks_like_title(mixed):
			logger.debug("[Parser] Actor(s) field holds a title, ignoring: {}", mixed)
			mixed = []
		female, male = self._split_by_gender(mixed)
		parsed.actresses = self._unique(actresses + female)
		parsed.actors = self._unique(male)
		self._after_cast(parsed)
		return parsed

	def _after_cast(self, parsed: ParsedMovieData) -> None:
		"""Hook for stricter/looser variants; the strict parser does nothing."""

	def _split_first_line(self, line: str) -> Tuple[str, str]:
		m = self.RE_CODE.match(line)
		if m and m.group(1).strip("-"):
			code = m.group(1)
			return code, line[len(code):].strip()
		return "", line  # whole line is the title

	def _collect_fields(self, lines: List[str]) -> Dict[str, List[str]]:
		fields: Dict[str, List[str]] = {}
		i = 0
		while i < len(lines):
			line = lines[i]
			i += 1
			if line.lower() in self.SKIP_LINES or ":" not in line:
				continue
			key, _, value = line.partition(":")
			canonical = self.KEYS.get(key.strip().lower())
			if canonical is None:
				continue
			values = [value.strip()] if value.strip() else []
			if not values:
				# "Key:" followed by one value per line until the next key line
				while i < len(lines) and ":" not in lines[i]:
					if lines[i].lower() not in self.SKIP_LINES:
						values.append(lines[i])
					i += 1
			if canonical == "tags":
				continue  # tagging is done by hand after import
			fields.setdefault(canonical, []).extend(values)
		return fields

	def _first(self, fields: Dict[str, List[str]], key: str) -> str:
		values = fields.get(key) or [""]
		return values[0].strip()

	def _split_names(self, values: List[str]) -> List[str]:
		names: List[str] = []
		for value in values:
			parts = [p for p in self.RE_LIST_SEPARATORS.split(value) if p.strip()]
			if len(parts) == 1 and contains_japanese(parts[0]) and re.search(r"\s", parts[0]):
				# Japanese names are space separated; Latin names keep their inner space
				parts = parts[0].split()
			names.extend(p.strip() for p in parts)
		return [n for n in names if n]

	def _looks_like_title(self, names: List[str]) -> bool:
		if len(names) != 1:
			return False
		name = names[0]
		return len(name) > 15 or any(word in name for word in TITLE_STOPWORDS)

	def _split_by_gender(self, names: List[str]) -> Tuple[List[str], List[str]]:
		female: List[str] = []
		male: List[str] = []
		for name in names:
			if FEMALE_MARK in name:
				female.append(name.replace(FEMALE_MARK, "").strip())
			elif MALE_MARK in name:
				male.append(name.replace(MALE_MARK, "").strip())
			elif self.gender_classifier.classify(name) == Gender.MALE:
				male.append(name)
			else:
				female.append(name)  # unknown goes with the catalog prior
		return [n for n in female if n], [n for n in male if n]

	def _unique(self, names: List[str]) -> List[str]:
		seen = set()
		out = []
		for n in names:
			if n not in seen:
				seen.add(n)
				out.append(n)
		return out


class PermissiveTextParser(TextDialectParser):
	"""
	Fallback for unrecognised pastes. Same rules as the text dialect, plus a
	best-effort recovery of an actress name left at the end of the title when
	the cast field only produced male names.
	"""

	dialect = SourceDialect.UNKNOWN

	RE_TITLE_NAME_PUNCT = re.compile(r"[◆●★☆！？。、!?]")
	MAX_TITLE_NAME_LEN = 10

	def _after_cast(self, parsed: ParsedMovieData) -> None:
		if parsed.actresses or not parsed.actors or not parsed.title_jp:
			return
		candidate = self.recover_name_from_title(parsed.title_jp)
		if candidate:
			logger.info("[Parser] Recovered actress '{}' from title tail", candidate)
			parsed.actresses = [candidate]

	def recover_name_from_title(self, title: str) -> Optional[str]:
		parts = title.split()
		if not parts:
			return None
		tail = parts[-1]
		if not contains_japanese(tail):
			return None
		if self.RE_TITLE_NAME_PUNCT.search(tail) or len(tail) > self.MAX_TITLE_NAME_LEN:
			return None
		if any(word in tail for word in TITLE_STOPWORDS):
			return None
		return tail


def build_parsers(gender_classifier: Optional[GenderClassifier] = None) -> Dict[SourceDialect, MovieParser]:
	"""One strategy per dialect, sharing the gender classifier (configured prior by default)."""
	classifier = gender_classifier or HeuristicGenderClassifier(default=get_settings().default_gender)
	return {
		SourceDialect.JSON: JsonDialectParser(),
		SourceDialect.TEXT: TextDialectParser(classifier),
		SourceDialect.UNKNOWN: PermissiveTextParser(classifier),
	}


def parse(raw: str, parsers: Optional[Dict[SourceDialect, MovieParser]] = None) -> ParsedMovieData:
	"""Detect the dialect and run its parser. Raises ParseError when the result is invalid."""
	source = detect_source(raw or "")
	logger.debug("[Parser] Detected source: {}", source.value)
	return (parsers or build_parsers())[source].parse(raw)


def parse_movie_data(raw: str, parsers: Optional[Dict[SourceDialect, MovieParser]] = None) -> Optional[ParsedMovieData]:
	"""Like `parse`, but returns None instead of raising on unparseable input."""
	try:
		return parse(raw, parsers)
	except ParseError as e:
		logger.info("[Parser] Parse failed: {}", e)
		return None
