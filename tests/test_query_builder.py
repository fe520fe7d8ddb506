import re

from services.query_builder import (
    MAX_LIMIT,
    MAX_PAGE,
    SORT_ORDERS,
    build_recipe_query,
    escape_regex,
    exact_pattern,
    split_terms,
    whole_word_pattern,
)


def matches(pattern: str, text: str) -> bool:
    # SQLite evaluates REGEXP with Python's re.search
    return re.search(pattern, text) is not None


def test_whole_word_rejects_mid_word_substring():
    pattern = whole_word_pattern("ca")

    assert not matches(pattern, "pancakes")
    assert matches(pattern, "Ca")
    assert matches(pattern, "a ca b")


def test_whole_word_is_case_insensitive_and_respects_punctuation():
    pattern = whole_word_pattern("pancakes")

    assert matches(pattern, "Fluffy PANCAKES")
    assert matches(pattern, "pancakes, with syrup")
    assert not matches(pattern, "pancakesy")
    assert not matches(pattern, "mini_pancakes")


def test_escape_regex_neutralises_metacharacters():
    assert escape_regex("a.b*c") == r"a\.b\*c"
    assert escape_regex("(x)[y]{z}") == r"\(x\)\[y\]\{z\}"

    pattern = whole_word_pattern("c++")
    assert matches(pattern, "learn c++ today")
    assert not matches(whole_word_pattern("a.c"), "abc")


def test_exact_pattern_anchors_whole_field():
    pattern = exact_pattern("vegan")

    assert matches(pattern, "Vegan")
    assert not matches(pattern, "vegan-ish")
    assert not matches(pattern, "non vegan")


def test_split_terms_trims_and_drops_empty():
    assert split_terms(" egg , flour,, ,milk ") == ["egg", "flour", "milk"]
    assert split_terms("   ") == []
    assert split_terms(None) == []


def test_defaults_when_nothing_given():
    query = build_recipe_query()

    assert query.conditions == []
    assert query.page == 1
    assert query.limit == 10
    assert query.offset == 0
    assert query.sort == "newest"


def test_pagination_clamps_and_falls_back():
    assert build_recipe_query(page="0", limit="-5").page == 1
    assert build_recipe_query(page="0", limit="-5").limit == 1
    assert build_recipe_query(page="abc", limit="xyz").limit == 10
    assert build_recipe_query(page="abc").page == 1

    query = build_recipe_query(page="3", limit="20")
    assert query.offset == 40
    assert query.total_pages(41) == 3
    assert query.total_pages(0) == 0


def test_unknown_sort_falls_back_to_newest():
    assert build_recipe_query(sort="popular").sort == "newest"
    assert build_recipe_query(sort="likes").sort == "likes"
    assert build_recipe_query(sort="time").order_by == SORT_ORDERS["time"]


def test_blank_and_malformed_filters_are_ignored():
    query = build_recipe_query(search="   ", cuisine="", diet_type=" ", ingredients=" , ", max_time="soon")

    assert query.conditions == []
    assert build_recipe_query(max_time="-3").conditions == []


def test_each_filter_contributes_one_predicate():
    query = build_recipe_query(
        search="cake",
        cuisine="Italian",
        diet_type="vegan",
        ingredients="egg, flour",
        max_time="30",
    )

    # search OR-group, dietType, two ingredients, cuisine, maxTime
    assert len(query.conditions) == 6


def test_page_and_limit_are_capped():
    query = build_recipe_query(page="1e20", limit="100000")

    assert query.limit == MAX_LIMIT
    assert query.page == MAX_PAGE
    assert query.offset < 2 ** 63
