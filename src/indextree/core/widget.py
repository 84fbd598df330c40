"""Widget contract shared by every unit mounted into an index tree.

All lifecycle hooks are optional. A subclass declares a capability simply by
overriding the hook; the set of overridden hooks is computed once per class
(`capabilities`) and the engine dispatches on that set instead of probing
attributes at call time. A valid widget implements at least `init` or
`render`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Dict, FrozenSet, List, Mapping, Optional

from indextree.helper.helper import SearchHelper
from indextree.helper.parameters import SearchParameters
from indextree.helper.results import SearchResults
from indextree.types import IndexRenderState, IndexUiState, UiState

if TYPE_CHECKING:
    from indextree.core.index import Index
    from indextree.core.instantsearch import InstantSearch

HOOKS = (
    "init",
    "render",
    "dispose",
    "get_widget_ui_state",
    "get_widget_search_parameters",
    "get_widget_render_state",
)


class WidgetStatus(str, Enum):
    """Lifecycle of a widget: unmounted -> initialized -> disposed."""

    UNMOUNTED = "unmounted"
    INITIALIZED = "initialized"
    DISPOSED = "disposed"


@dataclass(frozen=True)
class ScopedResult:
    """Results of one index exposed to widgets of another node."""

    index_id: str
    results: SearchResults
    helper: SearchHelper


@dataclass
class RenderOptions:
    """Arguments passed to `render` and `get_widget_render_state`."""

    instant_search: "InstantSearch"
    parent: "Index"
    helper: SearchHelper
    state: SearchParameters
    render_state: IndexRenderState
    scoped_results: List[ScopedResult]
    create_url: Callable[[SearchParameters], str]
    templates_config: Mapping[str, Any] = field(default_factory=dict)
    is_search_stalled: bool = False
    results: Optional[SearchResults] = None
    error: Optional[BaseException] = None


@dataclass
class InitOptions(RenderOptions):
    """Arguments passed to `init`; results are never available yet."""

    ui_state: UiState = field(default_factory=dict)


@dataclass
class DisposeOptions:
    helper: SearchHelper
    state: SearchParameters


@dataclass
class UiStateOptions:
    search_parameters: SearchParameters
    helper: SearchHelper


@dataclass
class SearchParametersOptions:
    ui_state: IndexUiState


class Widget:
    """Base class of all widgets, including `Index` nodes."""

    widget_type: ClassVar[str] = "widget"
    capabilities: ClassVar[FrozenSet[str]] = frozenset()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls.capabilities = frozenset(
            hook for hook in HOOKS if getattr(cls, hook) is not getattr(Widget, hook)
        )

    def __init__(self, widget_params: Optional[Mapping[str, Any]] = None) -> None:
        self.widget_params: Dict[str, Any] = dict(widget_params or {})
        self.status = WidgetStatus.UNMOUNTED
        self.owner: Optional["Index"] = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.widget_type}>"

    def implements(self, hook: str) -> bool:
        return hook in self.capabilities

    @property
    def render_state_attribute(self) -> Optional[str]:
        """Attribute under which attribute-keyed widget types store their payload."""
        return None

    # ----- Optional hooks (overriding one declares the capability) -----

    def init(self, options: InitOptions) -> None:
        """Called once, before the first query of the owning index."""

    def render(self, options: RenderOptions) -> None:
        """Called after each accepted result for the owning index."""

    def dispose(self, options: DisposeOptions) -> Optional[SearchParameters]:
        """Called once on unmount; may return the cleaned-up parameters."""
        return None

    def get_widget_ui_state(self, ui_state: IndexUiState, options: UiStateOptions) -> IndexUiState:
        return ui_state

    def get_widget_search_parameters(
        self, state: SearchParameters, options: SearchParametersOptions
    ) -> SearchParameters:
        return state

    def get_widget_render_state(self, options: RenderOptions) -> Dict[str, Any]:
        return {}

    # ----- Render-state aggregation -----

    def get_render_state(
        self, render_state: IndexRenderState, options: RenderOptions
    ) -> IndexRenderState:
        """Merge this widget's payload into a copy of `render_state`."""
        if not self.implements("get_widget_render_state"):
            return render_state
        payload = self.get_widget_render_state(options)
        attribute = self.render_state_attribute
        if attribute is None:
            return {**render_state, self.widget_type: payload}
        return {
            **render_state,
            self.widget_type: {**(render_state.get(self.widget_type) or {}), attribute: payload},
        }


class ConnectorWidget(Widget):
    """Widget driven by an optional render callback, in the connector style.

    `render_fn(payload, is_first_render)` receives the widget's render state
    (plus `instant_search`) on init and on each render; `unmount_fn()` runs on
    dispose. Subclasses provide the state hooks and `cleanup`.
    """

    def __init__(
        self,
        widget_params: Optional[Mapping[str, Any]] = None,
        *,
        render_fn: Optional[Callable[[Dict[str, Any], bool], None]] = None,
        unmount_fn: Optional[Callable[[], None]] = None,
    ) -> None:
        super().__init__(widget_params)
        self.render_fn = render_fn
        self.unmount_fn = unmount_fn
        self.helper: Optional[SearchHelper] = None

    def _payload(self, options: RenderOptions) -> Dict[str, Any]:
        return {**self.get_widget_render_state(options), "instant_search": options.instant_search}

    def init(self, options: InitOptions) -> None:
        self.helper = options.helper
        if self.render_fn is not None:
            self.render_fn(self._payload(options), True)

    def render(self, options: RenderOptions) -> None:
        if self.render_fn is not None:
            self.render_fn(self._payload(options), False)

    def dispose(self, options: DisposeOptions) -> Optional[SearchParameters]:
        if self.unmount_fn is not None:
            self.unmount_fn()
        return self.cleanup(options.state)

    def cleanup(self, state: SearchParameters) -> Optional[SearchParameters]:
        """Return `state` without this widget's contributions."""
        return None

