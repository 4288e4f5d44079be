"""
Pydantic schema of the JSON dialect (R18-style export).
Only the fields the engine reads are declared; everything else is ignored.
"""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class SourcePerson(BaseModel):
	"""One cast member or director as exported by the JSON source."""
	model_config = ConfigDict(extra="ignore")

	name_romaji: Optional[str] = None
	name_kanji: Optional[str] = None
	name_kana: Optional[str] = None
	name_en: Optional[str] = None

	@model_validator(mode="before")
	@classmethod
	def _accept_plain_name(cls, value):
		# some exports list people as bare strings
		if isinstance(value, str):
			return {"name_romaji": value}
		return value

	def is_empty(self) -> bool:
		return not any((self.name_romaji, self.name_kanji, self.name_kana, self.name_en))


class SourceMovie(BaseModel):
	model_config = ConfigDict(extra="ignore")

	dvd_id: Optional[str] = None
	content_id: Optional[str] = None
	title_ja: Optional[str] = None
	title_en: Optional[str] = None
	release_date: Optional[str] = None
	runtime_mins: Optional[Union[int, float, str]] = None
	actresses: List[SourcePerson] = []
	actors: List[SourcePerson] = []
	directors: List[SourcePerson] = []
	maker_name_en: Optional[str] = None
	maker_name_ja: Optional[str] = None
	series_name_en: Optional[str] = None
	series_name_ja: Optional[str] = None
	label_name_en: Optional[str] = None
	label_name_ja: Optional[str] = None
	gallery: List[str] = []
	jacket_full_url: Optional[str] = None
	sample_url: Optional[str] = None

	@field_validator("actresses", "actors", "directors", mode="before")
	@classmethod
	def _none_is_empty(cls, value):
		return [] if value is None else value

	@field_validator("gallery", mode="before")
	@classmethod
	def _gallery_urls(cls, value):
		# entries are either URLs or {"image_full": ..., "image_thumb": ...}
		urls = []
		for entry in value or []:
			if isinstance(entry, str):
				urls.append(entry)
			elif isinstance(entry, dict):
				url = entry.get("image_full") or entry.get("url") or entry.get("image_thumb")
				if url:
					urls.append(url)
		return urls
