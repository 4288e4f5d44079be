"""
Data models for the metadata ingestion engine.
Defines the canonical parse result, the registry records and the match bookkeeping.
"""

# dataclasses for the engine's own records, pydantic for anything exchanged with a registry
from dataclasses import dataclass, field  # auto-generates __init__, __repr__, etc.
from enum import Enum  # closed vocabularies (categories, dialects, genders)
from typing import Dict, List, Optional, Tuple, Iterable  # precise, self-documenting types

from pydantic import BaseModel, ConfigDict, Field, field_validator  # wire-format records
from pydantic.alias_generators import to_camel  # registry speaks camelCase


class Category(str, Enum):
	"""Master-data categories known to the registry."""
	ACTOR = "actor"
	ACTRESS = "actress"
	DIRECTOR = "director"
	STUDIO = "studio"
	SERIES = "series"
	LABEL = "label"
	TAG = "tag"
	GROUP = "group"
	TYPE = "type"


# Categories the engine extracts from a movie and reconciles
MATCHED_CATEGORIES: Tuple[Category, ...] = (
	Category.ACTRESS,
	Category.ACTOR,
	Category.DIRECTOR,
	Category.STUDIO,
	Category.SERIES,
	Category.LABEL,
)


class SourceDialect(str, Enum):
	JSON = "json"  # R18-style JSON object
	TEXT = "text"  # line-oriented "Key: Value" paste
	UNKNOWN = "unknown"  # anything else, parsed permissively


class Gender(str, Enum):
	FEMALE = "female"
	MALE = "male"
	UNKNOWN = "unknown"


@dataclass
class NameVariants:
	"""
	Up to four spellings of one entity's name plus the aliases pulled out of them.
	Filled by the JSON dialect; the text dialect only knows the raw name.
	"""
	jpname: str = ""  # canonical Japanese name (kanji > kana > romaji)
	kanji_name: str = ""  # kanji (or mixed kanji/kana) spelling
	kana_name: str = ""  # hiragana/katakana spelling
	name: str = ""  # English / romanised name
	alias: str = ""  # comma-separated aliases found in brackets
	romaji: str = ""  # original romaji as delivered by the source

	def candidates(self) -> List[str]:
		"""All non-empty variants in matcher fallback order, without repeats."""
		ordered = [self.jpname, self.kanji_name, self.kana_name, self.name, self.romaji]
		seen = set()
		out = []
		for value in ordered:
			value = (value or "").strip()
			if value and value not in seen:
				seen.add(value)
				out.append(value)
		return out


@dataclass
class ParsedMovieData:
	"""
	Canonical extraction result shared by every dialect parser.
	code, title_jp and release_date must be non-empty for a parse to succeed.
	"""
	code: str
	title_jp: str
	release_date: str
	raw_data: str  # original paste, kept for re-derivation
	title_en: Optional[str] = None
	duration: str = ""
	director: str = ""
	studio: str = ""
	series: str = ""
	label: Optional[str] = None
	rating: Optional[str] = None
	actresses: List[str] = field(default_factory=list)
	actors: List[str] = field(default_factory=list)
	dmcode: Optional[str] = None  # distributor content id when the source has one
	source: SourceDialect = SourceDialect.TEXT
	# per-entity name variants (JSON dialect)
	director_info: Optional[NameVariants] = None
	actress_info: List[NameVariants] = field(default_factory=list)
	actor_info: List[NameVariants] = field(default_factory=list)
	studio_info: Optional[NameVariants] = None
	series_info: Optional[NameVariants] = None
	label_info: Optional[NameVariants] = None
	# media
	gallery_images: List[str] = field(default_factory=list)
	cover_image: Optional[str] = None
	sample_url: Optional[str] = None

	def is_valid(self) -> bool:
		return bool(self.code.strip() and self.title_jp.strip() and self.release_date.strip())


class _RegistryModel(BaseModel):
	"""Base for records owned by the remote registries (camelCase on the wire)."""
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

	def to_wire(self) -> dict:
		return self.model_dump(by_alias=True, exclude_none=True)


class GroupInfo(_RegistryModel):
	photos: List[str] = Field(default_factory=list)
	alias: Optional[str] = None


class MasterDataItem(_RegistryModel):
	"""A named entity of one category, as stored in the master-data registry."""
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore", frozen=True)

	id: str
	type: Category
	name: Optional[str] = None  # English name
	jpname: Optional[str] = None
	kanji_name: Optional[str] = None
	kana_name: Optional[str] = None
	alias: Optional[str] = None
	title_en: Optional[str] = None  # series only
	title_jp: Optional[str] = None  # series only
	birthdate: Optional[str] = None
	tags: Optional[str] = None
	movie_count: Optional[int] = None
	group_data: Optional[Dict[str, GroupInfo]] = None

	@field_validator("id", mode="before")
	@classmethod
	def _id_as_text(cls, value):
		return str(value) if isinstance(value, int) else value

	@property
	def english_name(self) -> Optional[str]:
		return self.name or self.title_en

	@property
	def display_name(self) -> str:
		return self.name or self.title_en or self.jpname or self.title_jp or self.kanji_name or self.kana_name or self.id


class Movie(_RegistryModel):
	"""Movie record ready for persistence by the caller."""
	id: Optional[str] = None
	code: str = ""
	dmcode: str = ""
	title_jp: str = ""
	title_en: Optional[str] = None
	release_date: str = ""
	duration: str = ""
	director: str = ""
	studio: str = ""
	series: str = ""
	label: str = ""
	actress: str = ""  # comma-separated
	actors: str = ""  # comma-separated
	type: str = ""
	crop_cover: Optional[bool] = None
	cover: Optional[str] = None
	gallery: Optional[str] = None
	gallery_images: Optional[List[str]] = None
	cover_image: Optional[str] = None
	sample_url: Optional[str] = None
	tags: Optional[str] = None
	created_at: Optional[str] = None
	updated_at: Optional[str] = None

	@field_validator(
		"code", "dmcode", "title_jp", "release_date", "duration", "director", "studio", "series", "label",
		"actress", "actors", "type", mode="before",
	)
	@classmethod
	def _as_text(cls, value):
		# registries are loose about these: null, numbers and lists all occur
		if value is None:
			return ""
		if isinstance(value, (int, float)) and not isinstance(value, bool):
			return str(value)
		if isinstance(value, list):
			return ", ".join(str(v).strip() for v in value if str(v).strip())
		return value

	@field_validator("id", mode="before")
	@classmethod
	def _id_as_text(cls, value):
		return str(value) if isinstance(value, int) else value


@dataclass
class DuplicateCheckResult:
	is_duplicate: bool
	existing_movie: Optional[Movie] = None


class RegistrySnapshot:
	"""
	Point-in-time, read-only copy of the master-data registry, one tuple per category.
	The matcher only ever reads this; it is never refreshed mid-session.
	"""

	def __init__(self, items_by_category: Optional[Dict[Category, Iterable[MasterDataItem]]] = None):
		self._items: Dict[Category, Tuple[MasterDataItem, ...]] = {
			Category(cat): tuple(items) for cat, items in (items_by_category or {}).items()
		}

	@classmethod
	def from_items(cls, items: Iterable[MasterDataItem]) -> "RegistrySnapshot":
		grouped: Dict[Category, List[MasterDataItem]] = {}
		for item in items:
			grouped.setdefault(item.type, []).append(item)
		return cls(grouped)

	def by_category(self, category: Category) -> Tuple[MasterDataItem, ...]:
		return self._items.get(Category(category), ())

	def find(self, category: Category, item_id: str) -> Optional[MasterDataItem]:
		for item in self.by_category(category):
			if item.id == item_id:
				return item
		return None

	def categories(self) -> List[Category]:
		return list(self._items.keys())

	def __len__(self) -> int:
		return sum(len(v) for v in self._items.values())
