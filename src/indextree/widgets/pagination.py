"""Pagination over the owning index's result pages."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from indextree.core.widget import RenderOptions
from indextree.helper.parameters import SearchParameters
from indextree.state.translators import PageTranslator
from indextree.widgets.base import RenderFn, TranslatorWidget, UnmountFn, search_with


def page_window(current: int, nb_pages: int, padding: int) -> List[int]:
    """0-based pages around `current`, at most 2 * padding + 1 of them."""
    if nb_pages <= 0:
        return [0]
    size = min(2 * padding + 1, nb_pages)
    start = max(0, min(current - padding, nb_pages - size))
    return list(range(start, start + size))


class Pagination(TranslatorWidget):
    """Pages are 0-based here and 1-based in UiState."""

    widget_type = "pagination"

    def __init__(
        self,
        *,
        padding: int = 3,
        total_pages: Optional[int] = None,
        render_fn: Optional[RenderFn] = None,
        unmount_fn: Optional[UnmountFn] = None,
    ) -> None:
        super().__init__(
            {"padding": padding, "total_pages": total_pages},
            render_fn=render_fn,
            unmount_fn=unmount_fn,
        )
        self.padding = padding
        self.total_pages = total_pages
        self.translator = PageTranslator()

    def state_for(self, ui_entry: Any, state: SearchParameters) -> SearchParameters:
        # Changing page must not reset the page
        return self.translator.to_search_parameters({"page": ui_entry} if ui_entry else {}, state)

    def get_widget_render_state(self, options: RenderOptions) -> Dict[str, Any]:
        helper = options.helper
        results = options.results
        nb_pages = results.nb_pages if results is not None else 0
        if self.total_pages is not None:
            nb_pages = min(nb_pages, self.total_pages)
        current = options.state.page

        def refine(page: int) -> None:
            search_with(helper, self.state_for(page + 1, helper.state))

        return {
            "current_refinement": current,
            "nb_hits": results.nb_hits if results is not None else 0,
            "nb_pages": nb_pages,
            "pages": page_window(current, nb_pages, self.padding),
            "is_first_page": current == 0,
            "is_last_page": current >= nb_pages - 1,
            "refine": refine,
            "create_url": lambda page: options.create_url(self.state_for(page + 1, options.state)),
            "can_refine": nb_pages > 1,
            "widget_params": self.widget_params,
        }
