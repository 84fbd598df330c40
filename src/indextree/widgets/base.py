"""Shared plumbing for widgets whose state is owned by one facet translator."""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from indextree.core.widget import (
    ConnectorWidget,
    SearchParametersOptions,
    UiStateOptions,
)
from indextree.helper.helper import SearchHelper
from indextree.helper.parameters import SearchParameters
from indextree.state.translators import FacetTranslator
from indextree.types import IndexUiState

RenderFn = Callable[[Dict[str, Any], bool], None]
UnmountFn = Callable[[], None]


class TranslatorWidget(ConnectorWidget):
    """Connector widget delegating both state directions to `self.translator`."""

    translator: FacetTranslator

    def get_widget_ui_state(self, ui_state: IndexUiState, options: UiStateOptions) -> IndexUiState:
        return self.translator.to_ui_state(options.search_parameters, ui_state)

    def get_widget_search_parameters(
        self, state: SearchParameters, options: SearchParametersOptions
    ) -> SearchParameters:
        return self.translator.to_search_parameters(options.ui_state, state)

    def cleanup(self, state: SearchParameters) -> Optional[SearchParameters]:
        return self.translator.cleanup(state)

    def state_for(self, ui_entry: Any, state: SearchParameters) -> SearchParameters:
        """Parameters with this widget's facet replaced by `ui_entry` (None clears it)."""
        ui_state = {} if ui_entry is None else self._ui_fragment(ui_entry)
        return self.translator.to_search_parameters(ui_state, state.reset_page())

    def _ui_fragment(self, ui_entry: Any) -> IndexUiState:
        attribute = self.render_state_attribute
        if attribute is None:
            return {self.translator.facet: ui_entry}
        return {self.translator.facet: {attribute: ui_entry}}


def search_with(helper: SearchHelper, state: SearchParameters) -> None:
    helper.set_state(state).search()

