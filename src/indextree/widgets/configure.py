"""Configure: a passthrough block of raw search parameters."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from indextree.core.widget import RenderOptions
from indextree.state.translators import ConfigureTranslator
from indextree.widgets.base import RenderFn, TranslatorWidget, UnmountFn, search_with


class Configure(TranslatorWidget):
    """Apply `search_parameters` (wire names, e.g. {"hitsPerPage": 1}) to the owning index.

    The parameters are also exposed in the index UiState under `configure`.
    `refine(search_parameters)` replaces the whole block.
    """

    widget_type = "configure"

    def __init__(
        self,
        search_parameters: Mapping[str, Any],
        *,
        render_fn: Optional[RenderFn] = None,
        unmount_fn: Optional[UnmountFn] = None,
    ) -> None:
        if not isinstance(search_parameters, Mapping):
            raise TypeError("search_parameters must be a mapping")
        super().__init__(
            {"search_parameters": dict(search_parameters)},
            render_fn=render_fn,
            unmount_fn=unmount_fn,
        )
        self.translator = ConfigureTranslator(search_parameters)

    def get_widget_render_state(self, options: RenderOptions) -> Dict[str, Any]:
        helper = options.helper

        def refine(search_parameters: Mapping[str, Any]) -> None:
            state = self.translator.cleanup(helper.state)
            self.translator = ConfigureTranslator(search_parameters)
            self.widget_params = {"search_parameters": dict(search_parameters)}
            search_with(helper, state.set_query_parameters(search_parameters))

        return {"refine": refine, "widget_params": self.widget_params}
