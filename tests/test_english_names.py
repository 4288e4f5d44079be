"""
English-name normalization, conflicts and the "truly different" rule for tied candidates.
"""

import pytest

from movie_ingest.english_names import are_matches_truly_different, find_english_name_conflicts, normalize_english_name
from movie_ingest.models import Category

from conftest import item


@pytest.mark.parametrize("raw", ["Yui Hatano", "yui  hatano", "yui-hatano", "Yui.Hatano", " YUI_HATANO "])
def test_normalized_form(raw):
	assert normalize_english_name(raw) == "yuihatano"


def test_conflicts_keep_raw_spelling_once():
	alternates = ["yui-hatano", None, "Hatano Yui", " hatano yui ", ""]
	assert find_english_name_conflicts("Yui Hatano", alternates) == ["Hatano Yui"]


def test_no_conflict_without_a_registry_name():
	assert find_english_name_conflicts(None, ["Yui Hatano"]) == []
	assert find_english_name_conflicts("", ["Yui Hatano"]) == []


def test_single_candidate_is_never_different():
	assert not are_matches_truly_different([item("a1", Category.ACTRESS, jpname="波多野結衣", name="Yui Hatano")])
	assert not are_matches_truly_different([])


def test_same_japanese_name_is_one_entity():
	matches = [
		item("a1", Category.ACTRESS, jpname="波多野結衣", name="Yui Hatano"),
		item("a2", Category.ACTRESS, jpname="波多野結衣", name="Hatano Yui"),
	]
	assert not are_matches_truly_different(matches)


def test_same_english_name_needs_no_choice():
	matches = [
		item("a1", Category.ACTRESS, jpname="波多野結衣", name="Yui Hatano"),
		item("a2", Category.ACTRESS, jpname="はたのゆい", name="yui hatano"),
	]
	assert not are_matches_truly_different(matches)


def test_different_on_both_sides():
	matches = [
		item("a1", Category.ACTRESS, jpname="波多野結衣", name="Yui Hatano"),
		item("a2", Category.ACTRESS, jpname="ゆい", name="Yui"),
	]
	assert are_matches_truly_different(matches)


def test_series_compare_titles():
	matches = [
		item("r1", Category.SERIES, title_jp="ラブ◆キモメン", title_en="Love Creep"),
		item("r2", Category.SERIES, title_jp="ラブ◆キモメン2", title_en="Love Creep 2"),
	]
	assert are_matches_truly_different(matches)
