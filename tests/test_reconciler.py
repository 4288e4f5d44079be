"""
Reconciler: new movie records, merges into existing ones and master-data backfill.
"""

import pytest

from movie_ingest.match_entry import MatchedData
from movie_ingest.matcher import EntityMatcher
from movie_ingest.models import Category, Movie, RegistrySnapshot
from movie_ingest.parsers import parse
from movie_ingest.reconciler import Reconciler, generate_dmcode, union_names

from conftest import FakeMasterDataClient


@pytest.fixture
def reconciler(settings):
	return Reconciler(settings)


@pytest.fixture
def matcher(settings):
	return EntityMatcher(settings)


@pytest.mark.parametrize("code, studio, expected", [
	("SNIS-217", "S1 NO.1 STYLE", "snis00217"),
	("WNZS-190", "WANZ FACTORY", "3wnzs00190"),
	("WNZS-190", "S1", "wnzs00190"),
	("SNIS-217X", "S1", ""),
	("", "S1", ""),
	("SNIS-217", "", ""),
])
def test_generate_dmcode(code, studio, expected):
	assert generate_dmcode(code, studio) == expected


def test_union_names_skips_covered_names():
	merged = union_names(["Yui Hatano (波多野結衣)", "Tia"], ["yui hatano", "Yua Mikami", "tia"])
	assert merged == ["Yui Hatano (波多野結衣)", "Tia", "Yua Mikami"]


def test_build_from_text_uses_registry_names(reconciler, matcher, snapshot, text_paste):
	parsed = parse(text_paste)
	movie = reconciler.build_movie(parsed, matcher.match_with_database(parsed, snapshot))
	assert movie.code == "SNIS-217"
	assert movie.dmcode == "snis00217"
	assert movie.title_jp == "ラブ◆キモメン ティア"
	assert movie.actress == "Tia"
	assert movie.director == "Michiru Arashiyama"
	assert movie.studio == "S1 NO.1 STYLE"
	assert movie.type == "HC"
	assert movie.crop_cover is True
	assert movie.created_at == movie.updated_at


def test_text_paste_drops_unresolved_and_ignored_names(reconciler, matcher, snapshot):
	parsed = parse("ABC-123 テスト\nRelease Date: 2020-01-01\nActresses: 謎の女優, ティア, 三上悠亜")
	matched = matcher.match_with_database(parsed, snapshot)
	matched.actresses[2].ignore()
	movie = reconciler.build_movie(parsed, matched)
	assert movie.actress == "Tia"


def test_json_export_keeps_parsed_names(reconciler, matcher, json_export):
	parsed = parse(json_export)
	matched = matcher.match_with_database(parsed, RegistrySnapshot())
	movie = reconciler.build_movie(parsed, matched, movie_type="UN")
	assert movie.actress == "波多野結衣"
	assert movie.actors == "Ichiro Tanaka"
	assert movie.director == "嵐山みちる"
	assert movie.label == "S1"
	assert movie.dmcode == "snis00217"
	assert movie.gallery_images == ["https://img.example/1.jpg", "https://img.example/2.jpg", "https://img.example/3s.jpg"]
	assert movie.type == "UN"
	assert movie.crop_cover is False


def test_chosen_english_name_wins(reconciler, matcher, snapshot, json_export):
	parsed = parse(json_export)
	matched = matcher.match_with_database(parsed, snapshot)
	matched.actresses[0].choose_english_name("Hatano Yui")
	assert reconciler.build_movie(parsed, matched).actress == "Hatano Yui"


@pytest.fixture
def existing():
	return Movie(
		id="m0", code="SNIS-217", title_jp="既存", actress="Tia", type="HC", duration="119 min",
		gallery_images=["https://img.example/1.jpg"], updated_at="2020-01-01T00:00:00+00:00",
	)


def test_merge_grows_cast_and_fills_scalars(reconciler, existing, json_export):
	merged = reconciler.merge_movie(existing, parse(json_export))
	assert merged.id == "m0"
	assert merged.title_jp == "既存"
	assert merged.actress == "Tia, 波多野結衣"
	assert merged.director == "嵐山みちる"
	assert merged.duration == "120 min"
	assert merged.gallery_images[0] == "https://img.example/1.jpg"
	assert len(merged.gallery_images) == 3
	assert merged.updated_at != existing.updated_at


def test_merge_is_idempotent(reconciler, existing, json_export):
	parsed = parse(json_export)
	once = reconciler.merge_movie(existing, parsed)
	twice = reconciler.merge_movie(once, parsed)
	assert twice.model_dump(exclude={"updated_at"}) == once.model_dump(exclude={"updated_at"})


def test_merge_never_blanks_a_field(reconciler, existing):
	parsed = parse("SNIS-217 テスト\nRelease Date: 2015-06-01")
	merged = reconciler.merge_movie(existing, parsed)
	assert merged.duration == "119 min"
	assert merged.actress == "Tia"


def test_merge_only_selected_fields(reconciler, existing, json_export):
	merged = reconciler.merge_movie(existing, parse(json_export), selected_fields=["releaseDate", "director"])
	assert merged.release_date == "2015-06-01"
	assert merged.director == "嵐山みちる"
	assert merged.actress == "Tia"
	assert merged.duration == "119 min"


def test_patches_for_registry_gaps(reconciler, matcher, snapshot, text_paste):
	matched = matcher.match_with_database(parse(text_paste), snapshot)
	patches = reconciler.build_patches(matched)
	assert sorted((c.value, i, p) for c, i, p in patches) == [
		("actress", "a3", {"kanjiName": "ティア"}),
		("director", "d1", {"kanjiName": "嵐山みちる"}),
	]

	matched.actresses[0].decline_update()
	assert [i for _, i, _ in reconciler.build_patches(matched)] == ["d1"]


def test_one_patch_per_record(reconciler, matcher, snapshot):
	matched = MatchedData()
	matched.actresses.append(matcher.match_entry("ティア", Category.ACTRESS, snapshot))
	matched.actresses.append(matcher.match_entry("ティア", Category.ACTRESS, snapshot))
	assert len(reconciler.build_patches(matched)) == 1


def test_failed_patch_does_not_stop_the_rest(reconciler, matcher, snapshot, text_paste):
	matched = matcher.match_with_database(parse(text_paste), snapshot)
	client = FakeMasterDataClient(failing_ids={"a3"})
	done = reconciler.push_master_data_patches(client, reconciler.build_patches(matched))
	assert done == [(Category.DIRECTOR, "d1")]
	assert client.updates == [(Category.DIRECTOR, "d1", {"kanjiName": "嵐山みちる"})]
	assert reconciler.push_master_data_patches(client, []) == []


class RejectingMasterDataClient(FakeMasterDataClient):
	"""Answers one record with a body that does not validate."""

	def __init__(self, bad_id):
		super().__init__()
		self.bad_id = bad_id

	def update_extended_with_sync(self, category, item_id, patch):
		if item_id == self.bad_id:
			raise ValueError(f"{item_id}: record without an id")
		return super().update_extended_with_sync(category, item_id, patch)


def test_malformed_patch_response_does_not_stop_the_rest(reconciler, matcher, snapshot, text_paste):
	matched = matcher.match_with_database(parse(text_paste), snapshot)
	client = RejectingMasterDataClient("d1")
	done = reconciler.push_master_data_patches(client, reconciler.build_patches(matched))
	assert done == [(Category.ACTRESS, "a3")]
