"""Root search instance: owns the main index, schedules queries and renders.

The instance is the explicit context shared by every node of the tree. It
holds the search client, the templates config, the optional routing
configuration and the process-wide `error` channel.

Events
------
search(batch_id)
    A query batch was sent to the client.
render()
    A render pass finished.
error(error)
    A widget hook failed (`WidgetHookError`), a query failed
    (`QueryExecutionError`) or a deferred tree change was rejected.
state_change(ui_state)
    The UiState changed; emitted at most once per tick.
"""

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Set, Union

from loguru import logger

from indextree.client.base_client import BaseSearchClient, SearchRequest
from indextree.core.index import Index
from indextree.core.widget import Widget
from indextree.events import EventEmitter
from indextree.exceptions import (
    ConfigError,
    IndexTreeError,
    QueryExecutionError,
    WidgetHookError,
    WidgetLifecycleError,
)
from indextree.helper.parameters import SearchParameters
from indextree.helper.results import SearchResults
from indextree.routing.router import RoutingOptions
from indextree.types import RenderState, RouteState, UiState

UiStateUpdater = Callable[[UiState], UiState]


class InstantSearch(EventEmitter):
    """Entry point of a search experience built from widgets."""

    def __init__(
        self,
        index_name: str,
        search_client: BaseSearchClient,
        *,
        index_id: Optional[str] = None,
        initial_ui_state: Optional[UiState] = None,
        routing: Optional[RoutingOptions] = None,
        stalled_search_delay: float = 0.2,
        templates_config: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__()
        self.main_index = Index(index_name, index_id=index_id)
        self.main_index.is_root = True
        self.client = search_client
        self.initial_ui_state: UiState = dict(initial_ui_state or {})
        self.routing = routing
        self.stalled_search_delay = stalled_search_delay
        self.templates_config: Dict[str, Any] = dict(templates_config or {})
        self.started = False
        self.disposed = False
        self.is_search_stalled = False

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._tick_handle: Optional[asyncio.Handle] = None
        self._state_change_handle: Optional[asyncio.Handle] = None
        self._stalled_handle: Optional[asyncio.TimerHandle] = None
        self._batch_id = 0
        self._last_resolved_batch = 0
        self._pending: Set["asyncio.Task[None]"] = set()
        self._traversal_depth = 0
        self._deferred: List[Callable[[], Any]] = []

    @classmethod
    def from_settings(
        cls,
        settings: Any,
        *,
        search_client: Optional[BaseSearchClient] = None,
        **kwargs: Any,
    ) -> "InstantSearch":
        """Build an instance from `indextree.config.Settings`."""
        from indextree.client.http_client import HttpSearchClient
        from indextree.routing.router import QueryStringRouter
        from indextree.routing.state_mapping import SimpleStateMapping, SingleIndexStateMapping
        from indextree.widgets.configure import Configure

        index_name = settings.search.index_name
        if not index_name:
            raise ConfigError("search.index_name is required")
        client = search_client or HttpSearchClient.from_config(settings.client)

        routing = None
        if settings.routing.enabled:
            if settings.routing.state_mapping == "single_index":
                mapping = SingleIndexStateMapping(settings.routing.index_key or index_name)
            else:
                mapping = SimpleStateMapping()
            routing = RoutingOptions(
                router=QueryStringRouter(base_url=settings.routing.base_url),
                state_mapping=mapping,
            )

        search = cls(
            index_name,
            client,
            routing=routing,
            stalled_search_delay=settings.search.stalled_search_delay,
            **kwargs,
        )
        if settings.search.hits_per_page is not None:
            search.add_widgets(
                [Configure({"hitsPerPage": settings.search.hits_per_page})]
            )
        return search

    # ----- Tree -----

    def add_widgets(self, widgets: Sequence[Widget]) -> "InstantSearch":
        self.main_index.add_widgets(widgets)
        return self

    def remove_widgets(self, widgets: Sequence[Widget]) -> "InstantSearch":
        self.main_index.remove_widgets(widgets)
        return self

    # ----- Lifecycle -----

    def start(self) -> None:
        """Initialise the tree and schedule the first query batch.

        Must be called from a running asyncio event loop.
        """
        if self.started:
            raise WidgetLifecycleError("start() was already called")
        if self.disposed:
            raise WidgetLifecycleError("a disposed instance cannot be restarted")
        self._loop = asyncio.get_running_loop()

        if self.routing is not None:
            route = self.routing.router.read()
            routed = self.routing.state_mapping.route_to_state(route)
            self.initial_ui_state = {**self.initial_ui_state, **routed}
            self.routing.router.on_update(self._on_route_update)

        self.started = True
        logger.debug(f"Starting search on {self.main_index!r}")
        self.main_index.init(self, None, self.initial_ui_state)
        self.schedule_search()

    def dispose(self) -> None:
        """Dispose the whole tree; in-flight results are dropped."""
        if self.disposed:
            return
        with self.traversal():
            self.main_index.dispose_subtree()
        for handle in (self._tick_handle, self._state_change_handle, self._stalled_handle):
            if handle is not None:
                handle.cancel()
        self._tick_handle = self._state_change_handle = self._stalled_handle = None
        for task in list(self._pending):
            task.cancel()
        if self.routing is not None:
            self.routing.router.dispose()
        self.started = False
        self.disposed = True
        logger.debug("Search instance disposed")

    # ----- Traversal guard -----

    @property
    def is_traversing(self) -> bool:
        return self._traversal_depth > 0

    @contextmanager
    def traversal(self) -> Iterator[None]:
        """Mark a walk over the tree; deferred mutations run when the outermost walk ends."""
        self._traversal_depth += 1
        try:
            yield
        finally:
            self._traversal_depth -= 1
            if self._traversal_depth == 0:
                self._flush_deferred()

    def defer(self, action: Callable[[], Any]) -> None:
        self._deferred.append(action)

    def _flush_deferred(self) -> None:
        while self._deferred and not self.is_traversing:
            action = self._deferred.pop(0)
            try:
                action()
            except IndexTreeError as exc:
                logger.error(f"Deferred tree change failed: {exc}")
                self.emit("error", exc)

    # ----- Hook dispatch -----

    def dispatch(self, widget: Widget, hook: str, *args: Any) -> Any:
        """Call `widget.<hook>(*args)`, reporting a failure instead of raising."""
        try:
            return getattr(widget, hook)(*args)
        except Exception as exc:
            self.report_widget_error(widget, hook, exc)
            return None

    def report_widget_error(self, widget: Widget, hook: str, exc: Exception) -> None:
        error = WidgetHookError(widget, hook, exc)
        error.__cause__ = exc
        logger.error(f"{error}")
        self.emit("error", error)

    # ----- Scheduling -----

    def _require_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            raise WidgetLifecycleError("the search instance was not started")
        return self._loop

    def schedule_search(self) -> None:
        """Request a query batch; mutations within the same tick share one batch."""
        if not self.started or self.disposed:
            return
        if self._tick_handle is None:
            self._tick_handle = self._require_loop().call_soon(self._search_tick)

    def _search_tick(self) -> None:
        self._tick_handle = None
        nodes = [node for node in self.main_index.iter_indices() if node.is_initialized]
        if not nodes:
            return
        self._batch_id += 1
        batch_id = self._batch_id
        states: List[SearchParameters] = []
        requests: List[SearchRequest] = []
        for node in nodes:
            assert node.helper is not None
            state = node.helper.state
            states.append(state)
            requests.append(
                SearchRequest(
                    index_name=state.index or node.index_name,
                    params=state.to_query_params(),
                    index_key=node.key,
                )
            )
            node.mark_issued(batch_id)

        logger.debug(f"Issuing batch {batch_id} with {len(requests)} request(s)")
        self.emit("search", batch_id)
        loop = self._require_loop()
        task = loop.create_task(self._execute(batch_id, nodes, states, requests))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        if self._stalled_handle is None:
            self._stalled_handle = loop.call_later(self.stalled_search_delay, self._mark_stalled)

    async def _execute(
        self,
        batch_id: int,
        nodes: List[Index],
        states: List[SearchParameters],
        requests: List[SearchRequest],
    ) -> None:
        try:
            raw_results = await self.client.search(requests)
            if len(raw_results) != len(requests):
                raise QueryExecutionError(
                    f"expected {len(requests)} results, got {len(raw_results)}"
                )
        except QueryExecutionError as exc:
            self._resolve_error(batch_id, nodes, exc)
            return
        except Exception as exc:
            error = QueryExecutionError(f"search client failed: {exc!r}")
            error.__cause__ = exc
            self._resolve_error(batch_id, nodes, error)
            return
        self._resolve(batch_id, nodes, states, raw_results)

    def _settle(self, batch_id: int) -> None:
        self._last_resolved_batch = max(self._last_resolved_batch, batch_id)
        if self._last_resolved_batch >= self._batch_id:
            if self._stalled_handle is not None:
                self._stalled_handle.cancel()
                self._stalled_handle = None
            self.is_search_stalled = False

    def _resolve(
        self,
        batch_id: int,
        nodes: List[Index],
        states: List[SearchParameters],
        raw_results: Sequence[Dict[str, Any]],
    ) -> None:
        if self.disposed:
            return
        self._settle(batch_id)
        fresh: Set[Index] = set()
        for node, state, raw in zip(nodes, states, raw_results):
            if node.accept_results(batch_id, SearchResults.from_response(state, raw)):
                fresh.add(node)
        self._render(fresh)

    def _resolve_error(self, batch_id: int, nodes: List[Index], error: QueryExecutionError) -> None:
        if self.disposed:
            return
        self._settle(batch_id)
        fresh = {node for node in nodes if node.accept_error(batch_id, error)}
        logger.error(f"Query batch {batch_id} failed: {error}")
        self.emit("error", error)
        self._render(fresh)

    def _mark_stalled(self) -> None:
        self._stalled_handle = None
        if self.disposed or self._last_resolved_batch >= self._batch_id:
            return
        logger.debug(f"Search stalled waiting for batch {self._batch_id}")
        self.is_search_stalled = True
        # Only nodes that already received an answer re-render
        self._render(
            {
                node
                for node in self.main_index.iter_indices()
                if node.is_initialized and (node.results is not None or node.error is not None)
            }
        )

    def _render(self, fresh: Set[Index]) -> None:
        if not fresh:
            return
        for node in self.main_index.iter_indices():
            node.is_search_stalled = self.is_search_stalled
        with self.traversal():
            self.main_index.render_pass(fresh)
        self.emit("render")

    # ----- UiState -----

    def schedule_state_change(self) -> None:
        if not self.started or self.disposed:
            return
        if self._state_change_handle is None:
            self._state_change_handle = self._require_loop().call_soon(self._flush_state_change)

    def _flush_state_change(self) -> None:
        self._state_change_handle = None
        ui_state = self.get_ui_state()
        self.emit("state_change", ui_state)
        if self.routing is not None:
            self.routing.router.write(self.routing.state_mapping.state_to_route(ui_state))

    def get_ui_state(self) -> UiState:
        if not self.started:
            return dict(self.initial_ui_state)
        return self.main_index.get_widget_ui_state({})

    def set_ui_state(self, ui_state: Union[UiState, UiStateUpdater]) -> None:
        """Replace the state of every node and schedule one query batch."""
        if not self.started:
            raise WidgetLifecycleError("set_ui_state() requires a started instance")
        if callable(ui_state):
            ui_state = ui_state(self.get_ui_state())
        self._apply_ui_state(ui_state)
        self.schedule_state_change()

    def _apply_ui_state(self, ui_state: UiState) -> None:
        for node in self.main_index.iter_indices():
            if node.is_initialized:
                node.apply_ui_state(ui_state.get(node.key) or {})
        self.schedule_search()

    def _on_route_update(self, route: RouteState) -> None:
        assert self.routing is not None
        logger.debug("Applying UiState from the router")
        self._apply_ui_state(self.routing.state_mapping.route_to_state(route))

    def create_url(self, ui_state: UiState) -> str:
        if self.routing is None:
            return "#"
        route = self.routing.state_mapping.state_to_route(ui_state)
        return self.routing.router.create_url(route)

    # ----- Render state / idling -----

    @property
    def render_state(self) -> RenderState:
        return self.main_index.collect_render_state({})

    async def wait_for_idle(self) -> None:
        """Wait until no tick is scheduled and no query batch is in flight."""
        while True:
            await asyncio.sleep(0)
            if self._pending:
                await asyncio.gather(*list(self._pending))
                continue
            if self._tick_handle is None and self._state_change_handle is None:
                return
