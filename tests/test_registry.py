"""
Registry clients over a stubbed requests session, snapshot loading and duplicate lookup.
"""

import pytest
import requests

from movie_ingest.errors import RegistryError
from movie_ingest.models import MATCHED_CATEGORIES, Category, Movie
from movie_ingest.registry import (
	MasterDataClient,
	MovieRegistryClient,
	check_duplicate_movie_code,
	find_duplicate,
	load_snapshot,
)

from conftest import FakeMasterDataClient, FakeMovieClient


class FakeResponse:
	def __init__(self, payload=None, status_code=200, body_is_json=True):
		self.payload = payload
		self.status_code = status_code
		self.body_is_json = body_is_json

	def raise_for_status(self):
		if self.status_code >= 400:
			raise requests.HTTPError(f"{self.status_code} Server Error")

	def json(self):
		if not self.body_is_json:
			raise ValueError("Expecting value")
		return self.payload


class FakeSession:
	"""Records requests and replays canned responses (or raises a canned error)."""

	def __init__(self, response=None, error=None):
		self.response = response
		self.error = error
		self.calls = []

	def request(self, method, url, headers=None, json=None, timeout=None):
		self.calls.append({"method": method, "url": url, "headers": headers, "json": json, "timeout": timeout})
		if self.error is not None:
			raise self.error
		return self.response


def master_client(session, token="tok"):
	return MasterDataClient("http://registry/", access_token=token, timeout=3, session=session)


def test_get_by_type_reads_records():
	session = FakeSession(FakeResponse({"data": [
		{"id": 1, "name": "Yui Hatano", "jpname": "波多野結衣", "kanjiName": "波多野結衣"},
		"junk",
		{"name": "record without an id"},
	]}))
	items = master_client(session).get_by_type(Category.ACTRESS)

	assert len(items) == 1
	assert items[0].id == "1"
	assert items[0].type == Category.ACTRESS
	assert items[0].kanji_name == "波多野結衣"

	call = session.calls[0]
	assert (call["method"], call["url"], call["timeout"]) == ("GET", "http://registry/master/actress", 3)
	assert call["headers"]["Authorization"] == "Bearer tok"


def test_no_token_no_auth_header():
	session = FakeSession(FakeResponse({"data": []}))
	master_client(session, token=None).get_by_type(Category.LABEL)
	assert "Authorization" not in session.calls[0]["headers"]


def test_update_extended_with_sync():
	session = FakeSession(FakeResponse({
		"data": {"id": "a3", "jpname": "ティア", "kanjiName": "ティア"},
		"sync": {"moviesUpdated": 4},
	}))
	updated = master_client(session).update_extended_with_sync(Category.ACTRESS, "a3", {"kanjiName": "ティア"})
	assert updated.kanji_name == "ティア"
	call = session.calls[0]
	assert (call["method"], call["url"]) == ("PUT", "http://registry/master/actress/a3/extended/sync")
	assert call["json"] == {"kanjiName": "ティア"}


def test_malformed_update_response_is_a_registry_error():
	session = FakeSession(FakeResponse({"data": {"jpname": "ティア"}, "sync": {}}))
	with pytest.raises(RegistryError):
		master_client(session).update_extended_with_sync(Category.ACTRESS, "a3", {"kanjiName": "ティア"})


@pytest.mark.parametrize("session", [
	FakeSession(FakeResponse({}, status_code=500)),
	FakeSession(error=requests.exceptions.Timeout("slow")),
	FakeSession(error=requests.exceptions.ConnectionError("refused")),
	FakeSession(FakeResponse(body_is_json=False)),
])
def test_transport_failures_become_registry_errors(session):
	with pytest.raises(RegistryError) as excinfo:
		master_client(session).get_by_type(Category.STUDIO)
	assert excinfo.value.user_message == "The catalog registry could not be reached. Please try again."


def test_movie_records_are_normalized():
	session = FakeSession(FakeResponse({"movies": [
		{"id": 5, "code": "SNIS-217", "titleJp": "ラブ◆キモメン", "actress": ["Tia", "Yui Hatano"], "director": None},
	]}))
	movies = MovieRegistryClient("http://registry", session=session).get_all_movies()
	assert movies[0].id == "5"
	assert movies[0].title_jp == "ラブ◆キモメン"
	assert movies[0].actress == "Tia, Yui Hatano"
	assert movies[0].director == ""
	assert session.calls[0]["url"] == "http://registry/movies"


def test_create_movie_posts_camel_case():
	session = FakeSession(FakeResponse({"movie": {"id": "m9", "code": "SNIS-217", "titleJp": "ラブ◆キモメン"}}))
	created = MovieRegistryClient("http://registry", session=session).create_movie(
		Movie(code="SNIS-217", title_jp="ラブ◆キモメン", release_date="2015-06-01")
	)
	assert created.id == "m9"
	body = session.calls[0]["json"]
	assert body["titleJp"] == "ラブ◆キモメン"
	assert body["releaseDate"] == "2015-06-01"
	assert "id" not in body


def test_update_movie():
	session = FakeSession(FakeResponse({}))
	movie = Movie(id="m0", code="SNIS-217")
	updated = MovieRegistryClient("http://registry", session=session).update_movie("m0", movie)
	assert updated.code == "SNIS-217"
	assert (session.calls[0]["method"], session.calls[0]["url"]) == ("PUT", "http://registry/movies/m0")


def test_snapshot_survives_a_failing_category(registry_items):
	client = FakeMasterDataClient(registry_items, failing_categories={Category.LABEL})
	snapshot = load_snapshot(client, max_workers=3)
	assert sorted(c.value for c in client.fetched) == sorted(c.value for c in MATCHED_CATEGORIES)
	assert snapshot.by_category(Category.LABEL) == ()
	assert [i.id for i in snapshot.by_category(Category.ACTRESS)] == ["a1", "a2", "a3"]
	assert len(snapshot) == len(registry_items) - 1


def test_find_duplicate_ignores_case():
	movies = [Movie(id="m0", code="snis-217"), Movie(id="m1", code="ABP-001")]
	result = find_duplicate("SNIS-217", movies)
	assert result.is_duplicate
	assert result.existing_movie.id == "m0"
	assert not find_duplicate("SNIS-218", movies).is_duplicate
	assert not find_duplicate("", movies).is_duplicate


def test_unreachable_movie_registry_is_not_a_duplicate():
	assert not check_duplicate_movie_code("SNIS-217", FakeMovieClient(fail=True)).is_duplicate
	assert check_duplicate_movie_code("SNIS-217", FakeMovieClient([Movie(id="m0", code="snis-217")])).is_duplicate
