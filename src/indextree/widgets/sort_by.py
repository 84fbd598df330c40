"""Sort by: switch the owning index between replicas."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Sequence

from indextree.core.widget import RenderOptions, SearchParametersOptions, UiStateOptions
from indextree.helper.parameters import SearchParameters
from indextree.state.translators import SortByTranslator
from indextree.types import IndexUiState
from indextree.widgets.base import RenderFn, TranslatorWidget, UnmountFn, search_with


class SortBy(TranslatorWidget):
    """`items` are {"value": <index name>, "label": ...}; the mounted index is the default."""

    widget_type = "sortBy"

    def __init__(
        self,
        items: Sequence[Mapping[str, Any]],
        *,
        render_fn: Optional[RenderFn] = None,
        unmount_fn: Optional[UnmountFn] = None,
    ) -> None:
        if not items:
            raise ValueError("sort by needs at least one item")
        super().__init__(
            {"items": [dict(i) for i in items]}, render_fn=render_fn, unmount_fn=unmount_fn
        )
        self.items = [dict(i) for i in items]
        self.translator: Optional[SortByTranslator] = None  # type: ignore[assignment]

    def _translator(self, state: SearchParameters) -> SortByTranslator:
        if self.translator is None:
            self.translator = SortByTranslator(
                state.index, allowed=[str(i["value"]) for i in self.items]
            )
        return self.translator

    def get_widget_ui_state(self, ui_state: IndexUiState, options: UiStateOptions) -> IndexUiState:
        return self._translator(options.search_parameters).to_ui_state(
            options.search_parameters, ui_state
        )

    def get_widget_search_parameters(
        self, state: SearchParameters, options: SearchParametersOptions
    ) -> SearchParameters:
        return self._translator(state).to_search_parameters(options.ui_state, state)

    def cleanup(self, state: SearchParameters) -> Optional[SearchParameters]:
        if self.translator is None:
            return None
        return state.set_index(self.translator.initial_index)

    def get_widget_render_state(self, options: RenderOptions) -> Dict[str, Any]:
        helper = options.helper
        translator = self._translator(options.state)

        def refine(value: str) -> None:
            state = helper.state.reset_page()
            search_with(helper, translator.to_search_parameters({"sortBy": value}, state))

        return {
            "current_refinement": options.state.index,
            "options": self.items,
            "refine": refine,
            "has_no_results": options.results is None or options.results.nb_hits == 0,
            "widget_params": self.widget_params,
        }
