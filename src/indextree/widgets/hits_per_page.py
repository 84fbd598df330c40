"""Hits per page selector."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Sequence

from indextree.core.widget import RenderOptions
from indextree.state.translators import HitsPerPageTranslator
from indextree.widgets.base import RenderFn, TranslatorWidget, UnmountFn, search_with


class HitsPerPage(TranslatorWidget):
    """`items` are {"value": int, "label": str, "default": bool}; exactly one is the default."""

    widget_type = "hitsPerPage"

    def __init__(
        self,
        items: Sequence[Mapping[str, Any]],
        *,
        render_fn: Optional[RenderFn] = None,
        unmount_fn: Optional[UnmountFn] = None,
    ) -> None:
        defaults = [item for item in items if item.get("default")]
        if len(defaults) != 1:
            raise ValueError("exactly one hits per page item must be the default")
        super().__init__(
            {"items": [dict(i) for i in items]}, render_fn=render_fn, unmount_fn=unmount_fn
        )
        self.items = [dict(i) for i in items]
        self.translator = HitsPerPageTranslator(
            default=int(defaults[0]["value"]), allowed=[int(i["value"]) for i in items]
        )

    def get_widget_render_state(self, options: RenderOptions) -> Dict[str, Any]:
        helper = options.helper
        current = options.state.hits_per_page
        items = [
            {
                "value": int(item["value"]),
                "label": item.get("label", str(item["value"])),
                "is_refined": int(item["value"]) == current,
            }
            for item in self.items
        ]
        return {
            "items": items,
            "refine": lambda value: search_with(helper, self.state_for(int(value), helper.state)),
            "create_url": lambda value: options.create_url(
                self.state_for(int(value), options.state)
            ),
            "has_no_results": options.results is None or options.results.nb_hits == 0,
            "widget_params": self.widget_params,
        }
