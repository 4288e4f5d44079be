"""
Shared fixtures: a small registry, in-memory registry clients and an engine wired to them.
"""

import json
import threading

import pytest

from movie_ingest.config import Settings
from movie_ingest.engine import IngestEngine
from movie_ingest.errors import RegistryError
from movie_ingest.models import Category, MasterDataItem, Movie, RegistrySnapshot


TEXT_PASTE = """SNIS-217 ラブ◆キモメン ティア
Release Date: 2015-06-01
Duration: 120 min
Director: 嵐山みちる
Studio: エスワン ナンバーワンスタイル
Actresses: ティア
"""


JSON_EXPORT = {
	"dvd_id": "SNIS-217",
	"content_id": "snis00217",
	"title_ja": "ラブ◆キモメン 波多野結衣",
	"title_en": "Love Creep Yui Hatano",
	"release_date": "2015-06-01 10:00:00",
	"runtime_mins": 120,
	"actresses": [
		{"name_romaji": "Hatano Yui", "name_kanji": "波多野結衣", "name_kana": "はたのゆい", "name_en": "Yui Hatano"},
	],
	"actors": ["Ichiro Tanaka"],
	"directors": [{"name_romaji": "Arashiyama Michiru", "name_kanji": "嵐山みちる"}],
	"maker_name_en": "S1 NO.1 STYLE",
	"maker_name_ja": "エスワン ナンバーワンスタイル",
	"series_name_en": None,
	"series_name_ja": None,
	"label_name_en": "S1",
	"label_name_ja": "S1",
	"gallery": [
		{"image_full": "https://img.example/1.jpg", "image_thumb": "https://img.example/1s.jpg"},
		"https://img.example/2.jpg",
		{"image_thumb": "https://img.example/3s.jpg"},
	],
	"jacket_full_url": "https://img.example/cover.jpg",
	"sample_url": None,
}


def item(item_id, category, **fields):
	return MasterDataItem(id=item_id, type=category, **fields)


class FakeMasterDataClient:
	"""Serves master data from memory and records every patch."""

	def __init__(self, items=(), failing_categories=(), failing_ids=()):
		self.items = list(items)
		self.failing_categories = set(failing_categories)
		self.failing_ids = set(failing_ids)
		self.fetched = []
		self.updates = []
		self._lock = threading.Lock()

	def get_by_type(self, category):
		with self._lock:
			self.fetched.append(category)
		if category in self.failing_categories:
			raise RegistryError(f"{category.value} unavailable")
		return [i for i in self.items if i.type == category]

	def update_extended_with_sync(self, category, item_id, patch):
		if item_id in self.failing_ids:
			raise RegistryError(f"{item_id} rejected")
		with self._lock:
			self.updates.append((category, item_id, dict(patch)))
		return None


class FakeMovieClient:
	def __init__(self, movies=(), fail=False):
		self.movies = list(movies)
		self.fail = fail
		self.created = []
		self.updated = []

	def get_all_movies(self):
		if self.fail:
			raise RegistryError("movies unavailable")
		return list(self.movies)

	def create_movie(self, movie):
		created = movie.model_copy(update={"id": f"m{len(self.movies) + 1}"})
		self.created.append(created)
		self.movies.append(created)
		return created

	def update_movie(self, movie_id, movie):
		self.updated.append((movie_id, movie))
		return movie


@pytest.fixture
def text_paste():
	return TEXT_PASTE


@pytest.fixture
def settings():
	return Settings(_env_file=None, translation_enabled=False)


@pytest.fixture
def registry_items():
	return [
		item("a1", Category.ACTRESS, jpname="波多野結衣", kanji_name="波多野結衣", name="Yui Hatano"),
		item("a2", Category.ACTRESS, jpname="三上悠亜", name="Yua Mikami", alias="鬼頭桃菜"),
		item("a3", Category.ACTRESS, jpname="ティア", name="Tia"),
		item("m1", Category.ACTOR, jpname="田中一郎", name="Ichiro Tanaka"),
		item("d1", Category.DIRECTOR, jpname="嵐山みちる", name="Michiru Arashiyama"),
		item("s1", Category.STUDIO, jpname="エスワン ナンバーワンスタイル", name="S1 NO.1 STYLE"),
		item("s2", Category.STUDIO, jpname="マドンナ", name="Madonna"),
		item("r1", Category.SERIES, title_jp="ラブ◆キモメン", title_en="Love Creep"),
		item("l1", Category.LABEL, jpname="S1", name="S1"),
	]


@pytest.fixture
def snapshot(registry_items):
	return RegistrySnapshot.from_items(registry_items)


@pytest.fixture
def master_client(registry_items):
	return FakeMasterDataClient(registry_items)


@pytest.fixture
def movie_client():
	return FakeMovieClient([Movie(id="m0", code="snis-217", title_jp="既存", actress="Tia")])


@pytest.fixture
def engine(master_client, movie_client, settings):
	return IngestEngine(master_client=master_client, movie_client=movie_client, settings=settings)


@pytest.fixture
def json_export():
	return json.dumps(JSON_EXPORT, ensure_ascii=False)
