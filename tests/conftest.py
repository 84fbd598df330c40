import asyncio
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pytest

from indextree.client.base_client import BaseSearchClient, SearchRequest
from indextree.client.memory_client import MemorySearchClient
from indextree.core.widget import DisposeOptions, InitOptions, RenderOptions, Widget

# ---------- Fakes ----------


def default_response(request: SearchRequest) -> Dict[str, Any]:
    params = request.params
    return {
        "hits": [{"objectID": "1", "name": f"{request.index_name} hit"}],
        "nbHits": 1,
        "page": params.get("page", 0),
        "nbPages": 1,
        "hitsPerPage": params.get("hitsPerPage", 20),
        "query": params.get("query", ""),
        "index": request.index_name,
    }


class FakeSearchClient(BaseSearchClient):
    """Search client recording batches.

    With `auto=True` every batch resolves immediately with `responder`.
    With `auto=False` each batch waits until the test calls `resolve(i)` or `fail(i)`.
    """

    def __init__(
        self,
        *,
        auto: bool = True,
        responder: Callable[[SearchRequest], Dict[str, Any]] = default_response,
    ) -> None:
        self.auto = auto
        self.responder = responder
        self.batches: List[List[SearchRequest]] = []
        self.futures: List["asyncio.Future[List[Dict[str, Any]]]"] = []

    async def search(self, requests: Sequence[SearchRequest]) -> List[Dict[str, Any]]:
        self.batches.append(list(requests))
        if self.auto:
            return [self.responder(r) for r in requests]
        future: "asyncio.Future[List[Dict[str, Any]]]" = (
            asyncio.get_running_loop().create_future()
        )
        self.futures.append(future)
        return await future

    def resolve(self, index: int, results: Optional[List[Dict[str, Any]]] = None) -> None:
        batch = self.batches[index]
        self.futures[index].set_result(results or [self.responder(r) for r in batch])

    def fail(self, index: int, error: BaseException) -> None:
        self.futures[index].set_exception(error)


class RecordingWidget(Widget):
    """Widget appending (name, hook) to a shared log; optionally fails in one hook."""

    widget_type = "recording"

    def __init__(self, name: str, log: List[Tuple[str, str]], *, fail_on: Optional[str] = None):
        super().__init__({"name": name})
        self.name = name
        self.log = log
        self.fail_on = fail_on
        self.render_options: List[RenderOptions] = []
        self.owner_status_at_dispose: Optional[str] = None

    def _record(self, hook: str) -> None:
        self.log.append((self.name, hook))
        if hook == self.fail_on:
            raise RuntimeError(f"{self.name} failed in {hook}")

    def init(self, options: InitOptions) -> None:
        self._record("init")

    def render(self, options: RenderOptions) -> None:
        self.render_options.append(options)
        self._record("render")

    def dispose(self, options: DisposeOptions) -> None:
        if self.owner is not None:
            self.owner_status_at_dispose = self.owner.status.value
        self._record("dispose")

    def get_widget_render_state(self, options: RenderOptions) -> Dict[str, Any]:
        return {"name": self.name, "widget_params": self.widget_params}


async def settle(rounds: int = 5) -> None:
    """Let scheduled callbacks and ready tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# ---------- Fixtures ----------


@pytest.fixture
def client() -> FakeSearchClient:
    return FakeSearchClient()


@pytest.fixture
def manual_client() -> FakeSearchClient:
    return FakeSearchClient(auto=False)


@pytest.fixture
def log() -> List[Tuple[str, str]]:
    return []


PRODUCTS: List[Dict[str, Any]] = [
    {
        "objectID": "1",
        "name": "Apple iPhone",
        "brand": "Apple",
        "price": 999,
        "categories": ["Phones"],
        "free_shipping": True,
        "rating": 5,
        "_tags": ["sale"],
        "_geoloc": {"lat": 48.85, "lng": 2.35},
    },
    {
        "objectID": "2",
        "name": "Samsung Galaxy phone",
        "brand": "Samsung",
        "price": 799,
        "categories": ["Phones"],
        "free_shipping": False,
        "rating": 4,
        "_geoloc": {"lat": 40.71, "lng": -74.0},
    },
    {
        "objectID": "3",
        "name": "Apple MacBook laptop",
        "brand": "Apple",
        "price": 1999,
        "categories": ["Laptops"],
        "free_shipping": True,
        "rating": 4,
    },
    {
        "objectID": "4",
        "name": "Dell XPS laptop",
        "brand": "Dell",
        "price": 1299,
        "categories": ["Laptops"],
        "free_shipping": False,
        "rating": 3,
    },
]


@pytest.fixture
def memory_client() -> MemorySearchClient:
    return MemorySearchClient(
        {
            "products": PRODUCTS,
            "products_price_asc": sorted(PRODUCTS, key=lambda p: p["price"]),
        }
    )
