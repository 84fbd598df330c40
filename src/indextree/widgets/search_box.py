"""Search box: owns the `query` facet."""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from indextree.core.widget import RenderOptions
from indextree.state.translators import QueryTranslator
from indextree.widgets.base import RenderFn, TranslatorWidget, UnmountFn, search_with


class SearchBox(TranslatorWidget):
    widget_type = "searchBox"

    def __init__(
        self,
        *,
        query_hook: Optional[Callable[[str, Callable[[str], None]], None]] = None,
        render_fn: Optional[RenderFn] = None,
        unmount_fn: Optional[UnmountFn] = None,
    ) -> None:
        super().__init__({"query_hook": query_hook}, render_fn=render_fn, unmount_fn=unmount_fn)
        self.translator = QueryTranslator()
        self.query_hook = query_hook

    def get_widget_render_state(self, options: RenderOptions) -> Dict[str, Any]:
        helper = options.helper

        def set_query(query: str) -> None:
            search_with(helper, helper.state.reset_page().set_query(query))

        def refine(query: str) -> None:
            if self.query_hook is not None:
                self.query_hook(query, set_query)
            else:
                set_query(query)

        return {
            "query": options.state.query,
            "refine": refine,
            "clear": lambda: set_query(""),
            "is_search_stalled": options.is_search_stalled,
            "widget_params": self.widget_params,
        }
