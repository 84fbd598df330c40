"""Index node: the composite unit of the widget tree.

An index owns a `SearchHelper` (its query parameters and last results), an
ordered list of child widgets (which may be nested `Index` nodes) and a weak
reference to its parent. It is the unit of UiState and RenderState keying.

Ordering rules
--------------
- Widget hooks run in mount order.
- Render dispatch runs the node's own widgets first, then nested indices in
  mount order, so ancestor data is in place before descendants compute.
- Removing an index disposes its subtree depth-first, children before the
  node itself.
- Structural changes requested while the tree is being walked are deferred
  to the end of the walk.
"""

from __future__ import annotations

import weakref
from functools import reduce
from typing import TYPE_CHECKING, Any, Dict, Iterable, Iterator, List, Optional, Sequence, Set

from loguru import logger

from indextree.core.render_state import build_index_render_state
from indextree.core.widget import (
    DisposeOptions,
    InitOptions,
    RenderOptions,
    ScopedResult,
    SearchParametersOptions,
    UiStateOptions,
    Widget,
    WidgetStatus,
)
from indextree.exceptions import DuplicateIndexIdError, WidgetLifecycleError
from indextree.helper.helper import SearchHelper
from indextree.helper.parameters import SearchParameters
from indextree.helper.results import SearchResults
from indextree.types import IndexRenderState, IndexUiState, RenderState, UiState

if TYPE_CHECKING:
    from indextree.core.instantsearch import InstantSearch

KEY_SEPARATOR = "/"


class Index(Widget):
    """A node of the search tree, mounted like any other widget."""

    widget_type = "index"

    def __init__(self, index_name: str, *, index_id: Optional[str] = None) -> None:
        if not index_name:
            raise ValueError("index_name is required")
        index_id = index_id or index_name
        if KEY_SEPARATOR in index_id:
            raise ValueError(f"index_id may not contain {KEY_SEPARATOR!r}: {index_id!r}")
        super().__init__({"index_name": index_name, "index_id": index_id})
        self.index_name = index_name
        self.index_id = index_id
        self._widgets: List[Widget] = []
        self._parent_ref: Optional["weakref.ReferenceType[Index]"] = None
        self._instance: Optional["InstantSearch"] = None
        self.helper: Optional[SearchHelper] = None
        self.local_ui_state: IndexUiState = {}
        self.results: Optional[SearchResults] = None
        self.error: Optional[BaseException] = None
        self.render_state: IndexRenderState = {}
        self.is_search_stalled = False
        self.is_root = False
        self._last_issued = 0
        self._last_resolved = 0

    def __repr__(self) -> str:
        return f"<Index {self.index_id!r} ({self.index_name})>"

    # ----- Tree accessors -----

    @property
    def parent(self) -> Optional["Index"]:
        return self._parent_ref() if self._parent_ref is not None else None

    @property
    def widgets(self) -> Sequence[Widget]:
        return tuple(self._widgets)

    @property
    def indices(self) -> List["Index"]:
        return [w for w in self._widgets if isinstance(w, Index)]

    @property
    def is_initialized(self) -> bool:
        return self.status is WidgetStatus.INITIALIZED and self.helper is not None

    @property
    def key(self) -> str:
        """UiState / RenderState key: root id, or id path relative to the root."""
        parent = self.parent
        if parent is None or parent.parent is None:
            return self.index_id
        return f"{parent.key}{KEY_SEPARATOR}{self.index_id}"

    def iter_indices(self) -> Iterator["Index"]:
        """Yield this node and every nested index, depth-first pre-order."""
        yield self
        for child in self.indices:
            yield from child.iter_indices()

    def get_scoped_results(self) -> List[ScopedResult]:
        """(index_id, results, helper) for each node from the root down to this one."""
        chain: List[Index] = []
        node: Optional[Index] = self
        while node is not None:
            chain.append(node)
            node = node.parent
        return [
            ScopedResult(index_id=n.index_id, results=n.results, helper=n.helper)
            for n in reversed(chain)
            if n.results is not None and n.helper is not None
        ]

    def _require_instance(self) -> "InstantSearch":
        if self._instance is None:
            raise WidgetLifecycleError(f"{self!r} is not attached to a search instance")
        return self._instance

    def _require_helper(self) -> SearchHelper:
        if self.helper is None:
            raise WidgetLifecycleError(f"{self!r} is not initialized")
        return self.helper

    # ----- Structure -----

    def add_widgets(self, widgets: Iterable[Widget]) -> "Index":
        widgets = list(widgets)
        for widget in widgets:
            if not isinstance(widget, Widget):
                raise WidgetLifecycleError(f"{widget!r} is not a Widget")
            if not (widget.implements("init") or widget.implements("render")):
                raise WidgetLifecycleError(
                    f"{widget!r} must implement at least one of init or render"
                )
            if widget.owner is not None or widget.status is not WidgetStatus.UNMOUNTED:
                raise WidgetLifecycleError(f"{widget!r} is already mounted or disposed")

        instance = self._instance
        if instance is not None and instance.is_traversing:
            logger.debug(f"Deferring add_widgets on {self!r} until the current pass ends")
            instance.defer(lambda: self.add_widgets(widgets))
            return self

        self._check_sibling_ids(widgets)
        for widget in widgets:
            widget.owner = self
        self._widgets.extend(widgets)
        if self.is_initialized:
            self._mount_started(widgets)
        return self

    def _check_sibling_ids(self, widgets: Sequence[Widget]) -> None:
        seen = {child.index_id for child in self.indices}
        for widget in widgets:
            if not isinstance(widget, Index):
                continue
            if self.is_root and widget.index_id == self.index_id:
                raise DuplicateIndexIdError(
                    f"Nested index key {widget.index_id!r} collides with the root index key"
                )
            if widget.index_id in seen:
                raise DuplicateIndexIdError(
                    f"{self!r} already has a nested index with id {widget.index_id!r}"
                )
            seen.add(widget.index_id)

    def _mount_started(self, widgets: Sequence[Widget]) -> None:
        instance = self._instance
        helper = self._require_helper()
        assert instance is not None
        # Contributions land in the state before the next query fires
        helper.set_state(
            self._widgets_search_parameters(helper.state, widgets, self.local_ui_state),
            silent=True,
        )
        with instance.traversal():
            options = self._init_options()
            for widget in widgets:
                if isinstance(widget, Index):
                    widget.init(instance, self, instance.initial_ui_state)
                else:
                    self._init_widget(widget, options)
        self.local_ui_state = self._widgets_ui_state(helper.state)
        instance.schedule_search()

    def remove_widgets(self, widgets: Iterable[Widget]) -> "Index":
        widgets = list(widgets)
        for widget in widgets:
            if widget.owner is not self:
                raise WidgetLifecycleError(f"{widget!r} is not mounted in {self!r}")

        instance = self._instance
        if instance is not None and instance.is_traversing:
            logger.debug(f"Deferring remove_widgets on {self!r} until the current pass ends")
            instance.defer(lambda: self.remove_widgets(widgets))
            return self

        for widget in widgets:
            self._widgets.remove(widget)
            widget.owner = None

        if not self.is_initialized or instance is None:
            for widget in widgets:
                widget.status = WidgetStatus.DISPOSED
            return self

        helper = self._require_helper()
        with instance.traversal():
            for widget in widgets:
                if isinstance(widget, Index):
                    widget.dispose_subtree()
                    continue
                next_state = self._dispose_widget(widget, helper)
                if next_state is not None:
                    helper.set_state(next_state, silent=True)
            self.render_state = build_index_render_state(self._widgets, self._render_options())
        self.local_ui_state = self._widgets_ui_state(helper.state)
        instance.schedule_search()
        instance.schedule_state_change()
        return self

    # ----- Lifecycle -----

    def init(  # type: ignore[override]
        self,
        instance: "InstantSearch",
        parent: Optional["Index"],
        ui_state: UiState,
    ) -> None:
        """Attach to `instance`, build the initial state and init the subtree."""
        if self.status is not WidgetStatus.UNMOUNTED:
            raise WidgetLifecycleError(f"{self!r} was already initialized")
        self._instance = instance
        self._parent_ref = weakref.ref(parent) if parent is not None else None

        self.local_ui_state = dict(ui_state.get(self.key) or {})
        helper = SearchHelper(SearchParameters(index=self.index_name))
        helper.set_state(
            self._widgets_search_parameters(helper.state, self._widgets, self.local_ui_state),
            silent=True,
        )
        helper.on("change", self._on_helper_change)
        helper.on("search", lambda _state: instance.schedule_search())
        self.helper = helper
        self.status = WidgetStatus.INITIALIZED

        with instance.traversal():
            options = self._init_options(ui_state)
            for widget in list(self._widgets):
                if isinstance(widget, Index):
                    widget.init(instance, self, ui_state)
                else:
                    self._init_widget(widget, options)
            self.render_state = build_index_render_state(self._widgets, options)

    def _init_widget(self, widget: Widget, options: InitOptions) -> None:
        assert self._instance is not None
        widget.status = WidgetStatus.INITIALIZED
        if widget.implements("init"):
            self._instance.dispatch(widget, "init", options)

    def render_pass(self, fresh: Set["Index"]) -> None:
        """Render this node if it has fresh results, then descend into nested indices."""
        if fresh and self in fresh:
            self._render_own_widgets()
        for child in self.indices:
            if child.is_initialized:
                child.render_pass(fresh)

    def _render_own_widgets(self) -> None:
        assert self._instance is not None
        options = self._render_options()
        self.render_state = build_index_render_state(self._widgets, options)
        options.render_state = self.render_state
        for widget in list(self._widgets):
            if isinstance(widget, Index) or widget.status is not WidgetStatus.INITIALIZED:
                continue
            if widget.implements("render"):
                self._instance.dispatch(widget, "render", options)

    def dispose_subtree(self) -> None:
        """Dispose nested widgets depth-first, then detach this node."""
        if self.status is WidgetStatus.DISPOSED:
            return
        helper = self.helper
        for widget in list(self._widgets):
            if isinstance(widget, Index):
                widget.dispose_subtree()
            elif helper is not None:
                next_state = self._dispose_widget(widget, helper)
                if next_state is not None:
                    helper.set_state(next_state, silent=True)
            else:
                widget.status = WidgetStatus.DISPOSED
            widget.owner = None
        self._widgets.clear()
        if helper is not None:
            helper.off("change", self._on_helper_change)
        self.status = WidgetStatus.DISPOSED
        self.render_state = {}
        logger.debug(f"Disposed {self!r}")

    def _dispose_widget(self, widget: Widget, helper: SearchHelper) -> Optional[SearchParameters]:
        assert self._instance is not None
        was_initialized = widget.status is WidgetStatus.INITIALIZED
        widget.status = WidgetStatus.DISPOSED
        if not was_initialized or not widget.implements("dispose"):
            return None
        result = self._instance.dispatch(
            widget, "dispose", DisposeOptions(helper=helper, state=helper.state)
        )
        return result if isinstance(result, SearchParameters) else None

    # ----- Results -----

    def mark_issued(self, batch_id: int) -> None:
        self._last_issued = batch_id

    def accept_results(self, batch_id: int, results: SearchResults) -> bool:
        """Store `results` unless a newer batch already resolved for this node."""
        if not self.is_initialized:
            return False
        if batch_id < self._last_resolved:
            logger.debug(f"Discarding stale results of batch {batch_id} for {self!r}")
            return False
        self._last_resolved = batch_id
        self.results = results
        self.error = None
        self._require_helper().receive_results(results)
        return True

    def accept_error(self, batch_id: int, error: BaseException) -> bool:
        if not self.is_initialized or batch_id < self._last_resolved:
            return False
        self._last_resolved = batch_id
        self.error = error
        self._require_helper().receive_error(error)
        return True

    # ----- UiState <-> SearchParameters -----

    def get_widget_ui_state(  # type: ignore[override]
        self, ui_state: UiState, options: Optional[UiStateOptions] = None
    ) -> UiState:
        """Fold the subtree's contributions into a copy of the full `ui_state`."""
        out: UiState = dict(ui_state)
        if self.helper is not None:
            out[self.key] = self._widgets_ui_state(self.helper.state, out.get(self.key) or {})
        for child in self.indices:
            if child.is_initialized:
                out = child.get_widget_ui_state(out)
        return out

    def _widgets_ui_state(
        self, state: SearchParameters, base: Optional[IndexUiState] = None
    ) -> IndexUiState:
        helper = self._require_helper()
        instance = self._require_instance()
        options = UiStateOptions(search_parameters=state, helper=helper)
        ui: IndexUiState = dict(base or {})
        for widget in self._widgets:
            if isinstance(widget, Index) or not widget.implements("get_widget_ui_state"):
                continue
            if widget.status is not WidgetStatus.INITIALIZED:
                continue
            contribution = instance.dispatch(widget, "get_widget_ui_state", dict(ui), options)
            if contribution is not None:
                # Shallow overwrite per facet: later widgets win
                ui = {**ui, **contribution}
        return ui

    def get_widget_search_parameters(  # type: ignore[override]
        self, state: SearchParameters, options: SearchParametersOptions
    ) -> SearchParameters:
        return self._widgets_search_parameters(state, self._widgets, options.ui_state)

    def _widgets_search_parameters(
        self, state: SearchParameters, widgets: Iterable[Widget], ui_state: IndexUiState
    ) -> SearchParameters:
        """Ordered reduce over `widgets`; a failing widget contributes nothing."""
        instance = self._require_instance()
        options = SearchParametersOptions(ui_state=ui_state)

        def apply(params: SearchParameters, widget: Widget) -> SearchParameters:
            result = instance.dispatch(widget, "get_widget_search_parameters", params, options)
            return result if isinstance(result, SearchParameters) else params

        contributors = [
            w
            for w in widgets
            if not isinstance(w, Index) and w.implements("get_widget_search_parameters")
        ]
        return reduce(apply, contributors, state)

    def apply_ui_state(self, ui_state: IndexUiState) -> None:
        """Rebuild the parameters from a fresh state; a full replace per facet."""
        helper = self._require_helper()
        self.local_ui_state = dict(ui_state)
        base = SearchParameters(index=self.index_name)
        helper.set_state(
            self._widgets_search_parameters(base, self._widgets, self.local_ui_state),
            silent=True,
        )

    def collect_render_state(self, render_state: Optional[RenderState] = None) -> RenderState:
        out: RenderState = dict(render_state or {})
        if self.is_initialized:
            out[self.key] = self.render_state
            for child in self.indices:
                out = child.collect_render_state(out)
        return out

    def create_url(self, next_state: SearchParameters) -> str:
        instance = self._instance
        if instance is None:
            return "#"
        ui_state = instance.get_ui_state()
        ui_state[self.key] = self._widgets_ui_state(next_state)
        return instance.create_url(ui_state)

    # ----- Internals -----

    def _on_helper_change(self, state: SearchParameters) -> None:
        self.local_ui_state = self._widgets_ui_state(state)
        if self._instance is not None:
            self._instance.schedule_state_change()

    def _base_options(self) -> Dict[str, Any]:
        instance = self._instance
        helper = self._require_helper()
        assert instance is not None
        return {
            "instant_search": instance,
            "parent": self,
            "helper": helper,
            "state": helper.state,
            "render_state": self.render_state,
            "scoped_results": self.get_scoped_results(),
            "create_url": self.create_url,
            "templates_config": instance.templates_config,
            "is_search_stalled": self.is_search_stalled,
        }

    def _init_options(self, ui_state: Optional[UiState] = None) -> InitOptions:
        assert self._instance is not None
        return InitOptions(
            **self._base_options(),
            ui_state=ui_state if ui_state is not None else self._instance.initial_ui_state,
        )

    def _render_options(self) -> RenderOptions:
        if self.error is not None:
            return RenderOptions(**self._base_options(), results=None, error=self.error)
        return RenderOptions(**self._base_options(), results=self.results)
