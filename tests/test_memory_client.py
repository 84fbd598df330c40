from typing import Any, Dict, List

import pytest
from conftest import PRODUCTS

from indextree.client.base_client import SearchRequest
from indextree.client.memory_client import MemorySearchClient
from indextree.core.instantsearch import InstantSearch
from indextree.exceptions import QueryExecutionError
from indextree.widgets import RefinementList, SearchBox


async def run(client: MemorySearchClient, **params: Any) -> Dict[str, Any]:
    (result,) = await client.search([SearchRequest(index_name="products", params=params)])
    return result


def ids(result: Dict[str, Any]) -> List[str]:
    return [hit["objectID"] for hit in result["hits"]]


# ---------- Text ----------


@pytest.mark.asyncio
async def test_empty_query_matches_every_record(memory_client: MemorySearchClient) -> None:
    result = await run(memory_client, query="")
    assert ids(result) == ["1", "2", "3", "4"]
    assert result["nbHits"] == 4
    assert result["index"] == "products"


@pytest.mark.asyncio
async def test_text_query_uses_stemming(memory_client: MemorySearchClient) -> None:
    result = await run(memory_client, query="laptops")
    assert sorted(ids(result)) == ["3", "4"]


@pytest.mark.asyncio
async def test_searchable_attributes_restrict_matching() -> None:
    client = MemorySearchClient({"products": PRODUCTS}, searchable_attributes=["brand"])
    result = await run(client, query="laptop")
    assert result["nbHits"] == 0


# ---------- Filters ----------


@pytest.mark.asyncio
async def test_conjunctive_facet_filter(memory_client: MemorySearchClient) -> None:
    result = await run(memory_client, facetFilters=["brand:Apple"])
    assert ids(result) == ["1", "3"]


@pytest.mark.asyncio
async def test_disjunctive_counts_ignore_their_own_refinements(
    memory_client: MemorySearchClient,
) -> None:
    result = await run(
        memory_client, facets=["brand"], facetFilters=[["brand:Apple", "brand:Dell"]]
    )
    assert ids(result) == ["1", "3", "4"]
    assert result["facets"]["brand"] == {"Apple": 2, "Samsung": 1, "Dell": 1}


@pytest.mark.asyncio
async def test_negated_facet_filter(memory_client: MemorySearchClient) -> None:
    result = await run(memory_client, facetFilters=["brand:-Apple"])
    assert ids(result) == ["2", "4"]


@pytest.mark.asyncio
async def test_numeric_filters_and_stats(memory_client: MemorySearchClient) -> None:
    result = await run(memory_client, facets=["price"], numericFilters=["price>=1000"])
    assert ids(result) == ["3", "4"]
    assert result["facets_stats"]["price"] == {
        "min": 799.0,
        "max": 1999.0,
        "avg": 1274.0,
        "sum": 5096.0,
    }


@pytest.mark.asyncio
async def test_tag_and_bounding_box_filters(memory_client: MemorySearchClient) -> None:
    assert ids(await run(memory_client, tagFilters=["sale"])) == ["1"]
    assert ids(await run(memory_client, insideBoundingBox=[[48, 2, 49, 3]])) == ["1"]


@pytest.mark.asyncio
async def test_filters_expression(memory_client: MemorySearchClient) -> None:
    result = await run(memory_client, filters="NOT objectID:1 AND price < 1500")
    assert ids(result) == ["2", "4"]


@pytest.mark.asyncio
async def test_boolean_facet_values(memory_client: MemorySearchClient) -> None:
    result = await run(memory_client, facets=["free_shipping"])
    assert result["facets"]["free_shipping"] == {"true": 2, "false": 2}


@pytest.mark.asyncio
async def test_invalid_filter_is_a_query_error(memory_client: MemorySearchClient) -> None:
    with pytest.raises(QueryExecutionError):
        await run(memory_client, facetFilters=["brand"])


# ---------- Ranking and pagination ----------


@pytest.mark.asyncio
async def test_optional_filters_rank_matches_first(memory_client: MemorySearchClient) -> None:
    result = await run(memory_client, optionalFilters=["brand:Dell<score=2>", "brand:Samsung"])
    assert ids(result) == ["4", "2", "1", "3"]


@pytest.mark.asyncio
async def test_around_lat_lng_sorts_by_distance(memory_client: MemorySearchClient) -> None:
    result = await run(memory_client, aroundLatLng="40.7,-74.0")
    assert ids(result)[:2] == ["2", "1"]


@pytest.mark.asyncio
async def test_pagination(memory_client: MemorySearchClient) -> None:
    result = await run(memory_client, hitsPerPage=3, page=1)
    assert ids(result) == ["4"]
    assert result["nbPages"] == 2
    assert result["hitsPerPage"] == 3
    assert result["page"] == 1


@pytest.mark.asyncio
async def test_unknown_index_raises_not_found(memory_client: MemorySearchClient) -> None:
    with pytest.raises(QueryExecutionError) as exc_info:
        await memory_client.search([SearchRequest(index_name="missing")])
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_added_records_get_an_object_id() -> None:
    client = MemorySearchClient()
    client.add_records("notes", [{"title": "first"}, {"title": "second"}])
    (result,) = await client.search([SearchRequest(index_name="notes", params={"query": "second"})])
    assert ids(result) == ["1"]
    assert len(client.requests) == 1


# ---------- With the engine ----------


@pytest.mark.asyncio
async def test_refinement_list_against_memory_client(memory_client: MemorySearchClient) -> None:
    search = InstantSearch("products", memory_client)
    search.add_widgets([SearchBox(), RefinementList("brand")])
    search.start()
    await search.wait_for_idle()

    brand = search.render_state["products"]["refinementList"]["brand"]
    assert [(i["value"], i["count"]) for i in brand["items"]] == [
        ("Apple", 2),
        ("Dell", 1),
        ("Samsung", 1),
    ]
    brand["refine"]("Dell")
    await search.wait_for_idle()

    results = search.main_index.results
    assert results is not None
    assert [h["objectID"] for h in results.hits] == ["4"]
    items = search.render_state["products"]["refinementList"]["brand"]["items"]
    assert [i["value"] for i in items if i["is_refined"]] == ["Dell"]
    assert search.get_ui_state() == {"products": {"refinementList": {"brand": ["Dell"]}}}
