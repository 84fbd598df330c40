"""Places: a geocoded location search around a position.

The place text typed by the user is widget state, not a search parameter;
it lives next to the position in the `places` facet.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from indextree.core.widget import RenderOptions, SearchParametersOptions, UiStateOptions
from indextree.helper.parameters import SearchParameters
from indextree.state import grammar
from indextree.state.translators import PlacesTranslator, facet_entry, with_facet_entry
from indextree.types import IndexUiState
from indextree.widgets.base import RenderFn, TranslatorWidget, UnmountFn, search_with


class Places(TranslatorWidget):
    widget_type = "places"

    def __init__(
        self,
        *,
        default_position: Optional[Tuple[float, float]] = None,
        render_fn: Optional[RenderFn] = None,
        unmount_fn: Optional[UnmountFn] = None,
    ) -> None:
        super().__init__(
            {"default_position": default_position}, render_fn=render_fn, unmount_fn=unmount_fn
        )
        position = grammar.format_position(*default_position) if default_position else None
        self.translator = PlacesTranslator(default_position=position)
        self.query = ""

    def get_widget_ui_state(self, ui_state: IndexUiState, options: UiStateOptions) -> IndexUiState:
        ui_state = super().get_widget_ui_state(ui_state, options)
        if not self.query:
            return ui_state
        return with_facet_entry(ui_state, self.translator.facet, "query", self.query)

    def get_widget_search_parameters(
        self, state: SearchParameters, options: SearchParametersOptions
    ) -> SearchParameters:
        query = facet_entry(options.ui_state, self.translator.facet, "query")
        self.query = query if isinstance(query, str) else ""
        return super().get_widget_search_parameters(state, options)

    def cleanup(self, state: SearchParameters) -> Optional[SearchParameters]:
        self.query = ""
        return state.set_query_parameter("around_lat_lng", None)

    def _refined(
        self, state: SearchParameters, query: str, position: Optional[Tuple[float, float]]
    ) -> SearchParameters:
        self.query = query
        if position is None:
            return self.state_for(None, state)
        return self.state_for({"position": grammar.format_position(*position)}, state)

    def _refine(
        self, options: RenderOptions, query: str, position: Optional[Tuple[float, float]] = None
    ) -> None:
        helper = options.helper
        search_with(helper, self._refined(helper.state, query, position))
        # The place text alone leaves the parameters untouched
        options.instant_search.schedule_state_change()

    def get_widget_render_state(self, options: RenderOptions) -> Dict[str, Any]:
        return {
            "query": self.query,
            "position": options.state.around_lat_lng,
            "refine": lambda query, position=None: self._refine(options, query, position),
            "widget_params": self.widget_params,
        }
