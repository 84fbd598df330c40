from functools import reduce
from typing import Any, Dict, List

import pytest

from indextree.helper.parameters import SearchParameters
from indextree.state.translators import (
    ConfigureTranslator,
    FacetTranslator,
    GeoSearchTranslator,
    HierarchicalMenuTranslator,
    HitsPerPageTranslator,
    MenuTranslator,
    NumericMenuTranslator,
    PageTranslator,
    PlacesTranslator,
    QueryTranslator,
    RangeTranslator,
    RatingMenuTranslator,
    RefinementListTranslator,
    SortByTranslator,
    ToggleTranslator,
    facet_entry,
    with_facet_entry,
    without_facet_entry,
)

BASE = SearchParameters(index="products")


def round_trip(translator: FacetTranslator, ui_state: Dict[str, Any]) -> Dict[str, Any]:
    state = translator.to_search_parameters(ui_state, BASE)
    return translator.to_ui_state(state, {})


def apply_all(
    translators: List[FacetTranslator], ui_state: Dict[str, Any], state: SearchParameters = BASE
) -> SearchParameters:
    return reduce(lambda params, t: t.to_search_parameters(ui_state, params), translators, state)


def project_all(translators: List[FacetTranslator], state: SearchParameters) -> Dict[str, Any]:
    return reduce(lambda ui, t: t.to_ui_state(state, ui), translators, {})


@pytest.mark.parametrize(
    ("translator", "ui_state"),
    [
        (QueryTranslator(), {"query": "laptop"}),
        (RefinementListTranslator("brand"), {"refinementList": {"brand": ["Apple", "Dell"]}}),
        (
            RefinementListTranslator("brand", operator="and"),
            {"refinementList": {"brand": ["Apple"]}},
        ),
        (MenuTranslator("categories"), {"menu": {"categories": "Phones"}}),
        (
            HierarchicalMenuTranslator(["lvl0", "lvl1"]),
            {"hierarchicalMenu": {"lvl0": ["Audio", "Audio > Headphones"]}},
        ),
        (NumericMenuTranslator("price"), {"numericMenu": {"price": "10:20"}}),
        (NumericMenuTranslator("price"), {"numericMenu": {"price": "5"}}),
        (RangeTranslator("price"), {"range": {"price": ":500"}}),
        (RatingMenuTranslator("rating"), {"ratingMenu": {"rating": 4}}),
        (ToggleTranslator("free_shipping"), {"toggle": {"free_shipping": True}}),
        (GeoSearchTranslator(), {"geoSearch": {"boundingBox": "48,2,49,3"}}),
        (PlacesTranslator(), {"places": {"position": "48.85,2.35"}}),
        (SortByTranslator("products", allowed=["products_asc"]), {"sortBy": "products_asc"}),
        (PageTranslator(), {"page": 3}),
        (HitsPerPageTranslator(default=20, allowed=[10, 20]), {"hitsPerPage": 10}),
        (ConfigureTranslator({"hitsPerPage": 5}), {"configure": {"hitsPerPage": 5}}),
    ],
)
def test_facet_round_trip(translator: FacetTranslator, ui_state: Dict[str, Any]) -> None:
    assert round_trip(translator, ui_state) == ui_state


@pytest.mark.parametrize(
    "translator",
    [
        QueryTranslator(),
        RefinementListTranslator("brand"),
        MenuTranslator("categories"),
        HierarchicalMenuTranslator(["lvl0", "lvl1"]),
        NumericMenuTranslator("price"),
        RangeTranslator("price"),
        RatingMenuTranslator("rating"),
        ToggleTranslator("free_shipping"),
        GeoSearchTranslator(),
        PlacesTranslator(),
        SortByTranslator("products"),
        PageTranslator(),
        HitsPerPageTranslator(default=20),
    ],
)
def test_absent_facet_round_trips_to_empty(translator: FacetTranslator) -> None:
    assert round_trip(translator, {}) == {}


def test_empty_refinement_list_is_normalized_away() -> None:
    translator = RefinementListTranslator("brand")
    assert round_trip(translator, {"refinementList": {"brand": []}}) == {}


def test_conjunctive_refinement_produces_conjunctive_parameters() -> None:
    translator = RefinementListTranslator("brand", operator="and")
    state = translator.to_search_parameters({"refinementList": {"brand": ["Apple"]}}, BASE)

    assert state.facets == ("brand",)
    assert state.get_conjunctive_refinements("brand") == ["Apple"]
    assert state.disjunctive_facets == ()
    assert state.to_query_params()["facetFilters"] == ["brand:Apple"]


def test_unknown_operator_is_rejected() -> None:
    with pytest.raises(ValueError):
        RefinementListTranslator("brand", operator="xor")


@pytest.mark.parametrize(
    ("translator", "ui_state"),
    [
        (RefinementListTranslator("brand"), {"refinementList": {"brand": {"a": 1}}}),
        (RefinementListTranslator("brand"), {"refinementList": {"brand": [True]}}),
        (MenuTranslator("categories"), {"menu": {"categories": ""}}),
        (MenuTranslator("categories"), {"menu": {"categories": ["Phones"]}}),
        (HierarchicalMenuTranslator(["lvl0", "lvl1"]), {"hierarchicalMenu": {"lvl0": []}}),
        (NumericMenuTranslator("price"), {"numericMenu": {"price": "20:10"}}),
        (RangeTranslator("price"), {"range": {"price": "abc"}}),
        (RatingMenuTranslator("rating"), {"ratingMenu": {"rating": 9}}),
        (RatingMenuTranslator("rating"), {"ratingMenu": {"rating": "0"}}),
        (GeoSearchTranslator(), {"geoSearch": {"boundingBox": "1,2,3"}}),
        (PlacesTranslator(), {"places": {"position": "north"}}),
        (SortByTranslator("products"), {"sortBy": "unknown"}),
        (PageTranslator(), {"page": "zero"}),
        (PageTranslator(), {"page": 0}),
        (HitsPerPageTranslator(default=20, allowed=[10, 20]), {"hitsPerPage": 7}),
    ],
)
def test_malformed_facet_is_treated_as_absent(
    translator: FacetTranslator, ui_state: Dict[str, Any]
) -> None:
    assert translator.to_search_parameters(ui_state, BASE) == translator.to_search_parameters(
        {}, BASE
    )


def test_to_search_parameters_replaces_owned_parameters() -> None:
    translators: List[FacetTranslator] = [
        QueryTranslator(),
        RefinementListTranslator("brand"),
        RangeTranslator("price"),
        PageTranslator(),
    ]
    start = apply_all(
        translators,
        {
            "query": "phone",
            "refinementList": {"brand": ["Apple"]},
            "range": {"price": "10:100"},
            "page": 4,
        },
    )
    replaced = apply_all(translators, {"refinementList": {"brand": ["Dell"]}}, start)

    assert replaced.query == ""
    assert replaced.page == 0
    assert replaced.get_disjunctive_refinements("brand") == ["Dell"]
    assert replaced.numeric_refinements == {}
    assert project_all(translators, replaced) == {"refinementList": {"brand": ["Dell"]}}


def test_later_translators_see_earlier_projections() -> None:
    class Uppercase(QueryTranslator):
        def to_ui_state(self, state: SearchParameters, ui_state: Dict[str, Any]) -> Dict[str, Any]:
            query = ui_state.get("query")
            return {**ui_state, "query": query.upper()} if query else ui_state

    assert project_all([QueryTranslator(), Uppercase()], BASE.set_query("tv")) == {"query": "TV"}


def test_toggle_accepts_the_string_true() -> None:
    translator = ToggleTranslator("free_shipping")
    state = translator.to_search_parameters({"toggle": {"free_shipping": "true"}}, BASE)
    assert state.get_disjunctive_refinements("free_shipping") == ["true"]
    assert translator.to_ui_state(state, {}) == {"toggle": {"free_shipping": True}}

    off = translator.to_search_parameters({"toggle": {"free_shipping": "false"}}, BASE)
    assert off.get_disjunctive_refinements("free_shipping") == []


def test_toggle_off_value_applies_when_not_toggled() -> None:
    translator = ToggleTranslator("status", on="active", off="archived")
    state = translator.to_search_parameters({}, BASE)
    assert state.get_disjunctive_refinements("status") == ["archived"]
    assert translator.to_ui_state(state, {}) == {}


def test_places_default_position_is_omitted() -> None:
    translator = PlacesTranslator(default_position="40.71,-74")
    state = translator.to_search_parameters({}, BASE)
    assert state.around_lat_lng == "40.71,-74"
    assert translator.to_ui_state(state, {}) == {}


def test_sort_by_initial_index_is_omitted() -> None:
    translator = SortByTranslator("products", allowed=["products_asc"])
    state = translator.to_search_parameters({"sortBy": "products"}, BASE)
    assert state.index == "products"
    assert translator.to_ui_state(state, {}) == {}


def test_numeric_menu_equality_and_bounds() -> None:
    translator = NumericMenuTranslator("price")
    equal = translator.to_search_parameters({"numericMenu": {"price": "5"}}, BASE)
    assert equal.get_numeric_refinements("price") == {"=": [5.0]}
    bounded = translator.to_search_parameters({"numericMenu": {"price": "10:"}}, equal)
    assert bounded.get_numeric_refinements("price") == {">=": [10.0]}


def test_configure_cleanup_removes_only_its_parameters() -> None:
    translator = ConfigureTranslator({"hitsPerPage": 5, "optionalWords": ["x"]})
    state = translator.to_search_parameters({}, BASE.set_query("tv"))
    assert state.hits_per_page == 5
    assert state.extra == {"optionalWords": ["x"]}

    cleaned = translator.cleanup(state)
    assert cleaned.hits_per_page is None
    assert cleaned.extra == {}
    assert cleaned.query == "tv"


def test_cleanup_drops_facet_declarations() -> None:
    translator = RefinementListTranslator("brand")
    state = translator.to_search_parameters({"refinementList": {"brand": ["Apple"]}}, BASE)
    assert translator.cleanup(state) == BASE


def test_facet_entry_helpers() -> None:
    ui = with_facet_entry({}, "range", "price", "1:2")
    ui = with_facet_entry(ui, "range", "rating", "3:")
    assert facet_entry(ui, "range", "price") == "1:2"
    assert facet_entry({"range": "oops"}, "range", "price") is None

    ui = without_facet_entry(ui, "range", "price")
    assert ui == {"range": {"rating": "3:"}}
    assert without_facet_entry(ui, "range", "rating") == {}
