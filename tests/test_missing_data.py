"""
Missing-data detection: patches hold only the fields a parse can add to a registry record.
"""

from movie_ingest.missing_data import detect_missing_data
from movie_ingest.models import Category, NameVariants
from movie_ingest.name_normalizer import normalize_bilingual_name

from conftest import item


def test_nothing_to_add():
	a1 = item("a1", Category.ACTRESS, jpname="波多野結衣", kanji_name="波多野結衣", kana_name="はたのゆい", name="Yui Hatano")
	assert detect_missing_data(a1, Category.ACTRESS, "波多野結衣") is None
	assert detect_missing_data(None, Category.ACTRESS, "波多野結衣") is None


def test_kana_spelling_from_json_variants():
	a1 = item("a1", Category.ACTRESS, jpname="波多野結衣", kanji_name="波多野結衣", name="Yui Hatano")
	info = NameVariants(jpname="波多野結衣", kanji_name="波多野結衣", kana_name="はたのゆい", name="Yui Hatano")
	assert detect_missing_data(a1, Category.ACTRESS, "波多野結衣", info) == {"kanaName": "はたのゆい"}


def test_katakana_stage_name_fills_kanji_slot():
	a3 = item("a3", Category.ACTRESS, jpname="ティア", name="Tia")
	assert detect_missing_data(a3, Category.ACTRESS, "ティア") == {"kanjiName": "ティア"}


def test_unknown_spelling_becomes_alias():
	a2 = item("a2", Category.ACTRESS, jpname="三上悠亜", kanji_name="三上悠亜", name="Yua Mikami")
	assert detect_missing_data(a2, Category.ACTRESS, "鬼頭桃菜") == {"alias": "鬼頭桃菜"}
	# the English name is not an alias
	assert detect_missing_data(a2, Category.ACTRESS, "Yua Mikami") is None


def test_bracket_aliases_merge_with_existing_alias():
	a2 = item("a2", Category.ACTRESS, jpname="三上悠亜", kanji_name="三上悠亜", name="Yua Mikami", alias="鬼頭桃菜")
	info = NameVariants(jpname="三上悠亜", kanji_name="三上悠亜", name="Yua Mikami", alias="Momona, 鬼頭桃菜")
	assert detect_missing_data(a2, Category.ACTRESS, "三上悠亜", info) == {"alias": "鬼頭桃菜, Momona"}


def test_english_name_backfill():
	d1 = item("d1", Category.DIRECTOR, jpname="嵐山みちる", kanji_name="嵐山みちる")
	patch = detect_missing_data(d1, Category.DIRECTOR, "嵐山みちる", parsed_english_name="Michiru Arashiyama")
	assert patch == {"name": "Michiru Arashiyama"}
	# Japanese text is never offered as the English name
	assert detect_missing_data(d1, Category.DIRECTOR, "嵐山みちる", parsed_english_name="嵐山") is None


def test_series_titles():
	r1 = item("r1", Category.SERIES, title_en="Love Creep")
	assert detect_missing_data(r1, Category.SERIES, "ラブ◆キモメン") == {"titleJp": "ラブ◆キモメン"}

	r2 = item("r2", Category.SERIES, title_jp="ラブ◆キモメン")
	info = normalize_bilingual_name("ラブ◆キモメン", "Love Creep")
	assert detect_missing_data(r2, Category.SERIES, "ラブ◆キモメン", info) == {"titleEn": "Love Creep"}


def test_studio_placeholder_jpname_is_replaced():
	s2 = item("s2", Category.STUDIO, jpname="Madonna", name="Madonna")
	info = normalize_bilingual_name("マドンナ", "Madonna")
	assert detect_missing_data(s2, Category.STUDIO, "マドンナ", info) == {"jpname": "マドンナ"}


def test_same_name_label_has_nothing_to_add():
	l1 = item("l1", Category.LABEL, jpname="S1", name="S1")
	assert detect_missing_data(l1, Category.LABEL, "S1", normalize_bilingual_name("S1", "S1")) is None
