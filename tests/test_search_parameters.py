from typing import Any, List

import pytest

from indextree.helper.helper import SearchHelper
from indextree.helper.parameters import HierarchicalFacet, SearchParameters
from indextree.helper.results import SearchResults

CATEGORIES = HierarchicalFacet(name="lvl0", attributes=("lvl0", "lvl1", "lvl2"))


# ---------- SearchParameters ----------


def test_parameters_are_immutable_values() -> None:
    base = SearchParameters(index="products")
    changed = base.set_query("tv")

    assert base.query == ""
    assert changed.query == "tv"
    assert changed == SearchParameters(index="products", query="tv")
    with pytest.raises(AttributeError):
        base.query = "x"  # type: ignore[misc]


def test_empty_refinements_are_normalized_away() -> None:
    base = SearchParameters().add_disjunctive_facet("brand")
    toggled = base.add_disjunctive_facet_refinement("brand", "Apple").remove_disjunctive_facet_refinement(
        "brand", "Apple"
    )
    assert toggled == base
    assert toggled.disjunctive_facets_refinements == {}


def test_set_query_parameter_accepts_wire_and_field_names() -> None:
    state = SearchParameters().set_query_parameter("hitsPerPage", 5)
    assert state.hits_per_page == 5
    assert state.set_query_parameter("hits_per_page", 7).hits_per_page == 7
    assert state.get_query_parameter("hitsPerPage") == 5

    # None resets a field to its default
    assert state.set_query_parameter("hitsPerPage", None).hits_per_page is None


def test_unknown_parameters_go_to_extra() -> None:
    state = SearchParameters().set_query_parameters({"optionalWords": ["tv"], "page": 2})
    assert state.extra == {"optionalWords": ["tv"]}
    assert state.page == 2
    assert state.get_query_parameter("optionalWords") == ["tv"]
    assert state.set_query_parameter("optionalWords", None).extra == {}


def test_bounding_box_needs_four_coordinates() -> None:
    with pytest.raises(ValueError):
        SearchParameters().set_query_parameter("insideBoundingBox", [1, 2, 3])
    state = SearchParameters().set_query_parameter("insideBoundingBox", ["1", 2, 3, 4])
    assert state.inside_bounding_box == (1.0, 2.0, 3.0, 4.0)


def test_page_is_never_negative() -> None:
    assert SearchParameters().set_page(-3).page == 0
    assert SearchParameters(page=4).reset_page().page == 0


def test_refinements_are_strings_and_deduplicated() -> None:
    state = SearchParameters().add_facet("rating").add_facet_refinement("rating", 4)
    assert state.add_facet_refinement("rating", "4") is state
    assert state.is_facet_refined("rating", 4)
    assert state.get_conjunctive_refinements("rating") == ["4"]
    assert state.toggle_facet_refinement("rating", 4).is_facet_refined("rating") is False


def test_hierarchical_refinement_requires_declaration() -> None:
    with pytest.raises(ValueError):
        SearchParameters().add_hierarchical_facet_refinement("lvl0", "Audio")
    with pytest.raises(ValueError):
        SearchParameters().toggle_hierarchical_facet_refinement("lvl0", "Audio")


def test_toggle_hierarchical_goes_up_one_level() -> None:
    state = SearchParameters().add_hierarchical_facet(CATEGORIES)
    deep = state.toggle_hierarchical_facet_refinement("lvl0", "Audio > Headphones")
    assert deep.get_hierarchical_refinement("lvl0") == ["Audio > Headphones"]

    up = deep.toggle_hierarchical_facet_refinement("lvl0", "Audio > Headphones")
    assert up.get_hierarchical_refinement("lvl0") == ["Audio"]
    assert up.toggle_hierarchical_facet_refinement("lvl0", "Audio") == state


def test_numeric_refinements() -> None:
    state = SearchParameters().add_numeric_refinement("price", ">=", 10)
    state = state.add_numeric_refinement("price", "<=", 20)
    assert state.get_numeric_refinements("price") == {">=": [10], "<=": [20]}
    assert state.remove_numeric_refinement("price", ">=").get_numeric_refinements("price") == {
        "<=": [20]
    }
    assert state.remove_numeric_refinement("price").numeric_refinements == {}
    with pytest.raises(ValueError):
        state.add_numeric_refinement("price", "~", 1)


def test_clear_refinements_keeps_declarations_query_and_tags() -> None:
    state = (
        SearchParameters(query="tv")
        .add_disjunctive_facet("brand")
        .add_disjunctive_facet_refinement("brand", "Sony")
        .add_numeric_refinement("price", ">", 100)
        .add_tag_refinement("sale")
    )
    assert state.refined_attributes() == ["brand", "price"]
    assert state.has_refinements("price")

    cleared = state.clear_refinements()
    assert not cleared.has_refinements()
    assert cleared.disjunctive_facets == ("brand",)
    assert cleared.query == "tv"
    assert cleared.tag_refinements == ("sale",)
    assert state.clear_refinements("price").refined_attributes() == ["brand"]


def test_to_query_params() -> None:
    state = (
        SearchParameters(index="products", query="tv", page=2, hits_per_page=10)
        .add_facet("color")
        .add_facet_refinement("color", "black")
        .add_disjunctive_facet("brand")
        .add_disjunctive_facet_refinement("brand", "Sony")
        .add_disjunctive_facet_refinement("brand", "LG")
        .add_hierarchical_facet(CATEGORIES)
        .add_hierarchical_facet_refinement("lvl0", "TV > OLED")
        .add_numeric_refinement("price", ">=", 100.5)
        .add_tag_refinement("sale")
        .set_query_parameter("insideBoundingBox", [1, 2, 3, 4])
        .set_query_parameter("aroundLatLng", "1,2")
        .set_query_parameter("optionalWords", ["tv"])
    )
    assert state.to_query_params() == {
        "query": "tv",
        "page": 2,
        "hitsPerPage": 10,
        "facets": ["color", "brand", "lvl0", "lvl1", "lvl2"],
        "facetFilters": ["color:black", ["brand:Sony", "brand:LG"], "lvl1:TV > OLED"],
        "numericFilters": ["price>=100.5"],
        "tagFilters": ["sale"],
        "insideBoundingBox": [[1.0, 2.0, 3.0, 4.0]],
        "aroundLatLng": "1,2",
        "optionalWords": ["tv"],
    }


def test_default_query_params_are_minimal() -> None:
    assert SearchParameters(index="products").to_query_params() == {"query": ""}


# ---------- SearchResults ----------


def results_for(state: SearchParameters, **raw: Any) -> SearchResults:
    return SearchResults.from_response(state, {"hits": [], **raw})


def test_results_from_response() -> None:
    state = SearchParameters(index="products", query="tv", page=1)
    results = results_for(
        state,
        hits=[{"objectID": "1"}],
        nbHits=11,
        nbPages=2,
        hitsPerPage=10,
        processingTimeMS=3,
    )
    assert results.nb_hits == 11
    assert results.page == 1
    assert results.query == "tv"
    assert results.index == "products"
    assert results.processing_time_ms == 3
    assert results.state is state


def test_facet_values_sorted_by_refinement_count_then_name() -> None:
    state = (
        SearchParameters()
        .add_disjunctive_facet("brand")
        .add_disjunctive_facet_refinement("brand", "LG")
        .add_disjunctive_facet_refinement("brand", "Zenith")
    )
    results = results_for(state, facets={"brand": {"Sony": 5, "LG": 1, "Apple": 5, "Bose": 2}})
    values = results.get_facet_values("brand")

    assert [(v.name, v.count, v.is_refined) for v in values] == [
        ("LG", 1, True),
        ("Zenith", 0, True),
        ("Apple", 5, False),
        ("Sony", 5, False),
        ("Bose", 2, False),
    ]
    assert results.get_facet_values("missing") == []


def test_hierarchical_facet_values_expand_the_refined_path() -> None:
    state = (
        SearchParameters()
        .add_hierarchical_facet(CATEGORIES)
        .add_hierarchical_facet_refinement("lvl0", "Audio")
    )
    results = results_for(
        state,
        facets={
            "lvl0": {"Audio": 3, "TV": 5},
            "lvl1": {"Audio > Headphones": 1, "Audio > Speakers": 2, "TV > OLED": 5},
        },
    )
    tree = results.get_hierarchical_facet_values(CATEGORIES)

    assert [(v.value, v.count, v.is_refined) for v in tree] == [
        ("TV", 5, False),
        ("Audio", 3, True),
    ]
    assert tree[0].data is None
    children = tree[1].data
    assert children is not None
    assert [(v.name, v.value) for v in children] == [
        ("Speakers", "Audio > Speakers"),
        ("Headphones", "Audio > Headphones"),
    ]


def test_hierarchical_facet_values_from_root_path() -> None:
    facet = HierarchicalFacet(name="lvl0", attributes=("lvl0", "lvl1"), root_path="Audio")
    results = results_for(
        SearchParameters().add_hierarchical_facet(facet),
        facets={"lvl1": {"Audio > Headphones": 1, "TV > OLED": 5}},
    )
    assert [v.value for v in results.get_hierarchical_facet_values(facet)] == [
        "Audio > Headphones"
    ]


def test_facet_stats() -> None:
    results = results_for(SearchParameters(), facets_stats={"price": {"min": 1, "max": 9}})
    assert results.get_facet_stats("price") == {"min": 1, "max": 9}
    assert results.get_facet_stats("rating") is None


# ---------- SearchHelper ----------


def test_helper_emits_change_only_on_real_changes() -> None:
    helper = SearchHelper(SearchParameters(index="products"))
    changes: List[SearchParameters] = []
    helper.on("change", changes.append)

    helper.set_query("tv")
    helper.set_query("tv")
    helper.set_state(helper.state.set_page(3), silent=True)

    assert [c.query for c in changes] == ["tv"]
    assert helper.state.page == 3


def test_helper_search_emits_the_current_state() -> None:
    helper = SearchHelper(SearchParameters(index="products"))
    searched: List[SearchParameters] = []
    helper.on("search", searched.append)
    helper.set_query("tv").search()
    assert searched == [SearchParameters(index="products", query="tv")]


def test_helper_toggle_refinement_dispatches_on_facet_kind() -> None:
    state = (
        SearchParameters(page=2)
        .add_facet("color")
        .add_disjunctive_facet("brand")
        .add_hierarchical_facet(CATEGORIES)
    )
    helper = SearchHelper(state)

    helper.toggle_refinement("color", "black")
    assert helper.state.page == 0
    helper.toggle_refinement("brand", "Sony").toggle_refinement("lvl0", "Audio")

    assert helper.state.get_conjunctive_refinements("color") == ["black"]
    assert helper.state.get_disjunctive_refinements("brand") == ["Sony"]
    assert helper.state.get_hierarchical_refinement("lvl0") == ["Audio"]
    with pytest.raises(ValueError):
        helper.toggle_refinement("size", "XL")

    helper.clear_refinements()
    assert not helper.state.has_refinements()


def test_helper_receives_results_and_errors() -> None:
    helper = SearchHelper(SearchParameters())
    events: List[Any] = []
    helper.on("result", events.append)
    helper.on("error", events.append)

    results = results_for(helper.state)
    helper.receive_results(results)
    error = RuntimeError("boom")
    helper.receive_error(error)

    assert helper.last_results is results
    assert events == [results, error]
