"""Numeric menu: one choice among predefined numeric ranges."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from indextree.core.widget import RenderOptions
from indextree.helper.parameters import SearchParameters
from indextree.state import grammar
from indextree.state.translators import NumericMenuTranslator, facet_entry
from indextree.widgets.base import RenderFn, TranslatorWidget, UnmountFn, search_with


def encode_item(item: Mapping[str, Any]) -> str:
    """{"start": 10, "end": 20} -> "10:20"; equal bounds -> "10"; no bounds -> ""."""
    start, end = item.get("start"), item.get("end")
    if start is None and end is None:
        return ""
    if start is not None and start == end:
        return grammar.format_number(start)
    return grammar.format_range(start, end)


class NumericMenu(TranslatorWidget):
    widget_type = "numericMenu"

    def __init__(
        self,
        attribute: str,
        items: Sequence[Mapping[str, Any]],
        *,
        render_fn: Optional[RenderFn] = None,
        unmount_fn: Optional[UnmountFn] = None,
    ) -> None:
        if not items:
            raise ValueError("numeric menus need at least one item")
        super().__init__(
            {"attribute": attribute, "items": [dict(i) for i in items]},
            render_fn=render_fn,
            unmount_fn=unmount_fn,
        )
        self.attribute = attribute
        self.items = [dict(i) for i in items]
        self.translator = NumericMenuTranslator(attribute)

    @property
    def render_state_attribute(self) -> Optional[str]:
        return self.attribute

    def _current(self, state: SearchParameters) -> str:
        ui_state = self.translator.to_ui_state(state, {})
        return facet_entry(ui_state, self.translator.facet, self.attribute) or ""

    def _refined(self, state: SearchParameters, encoded: str) -> SearchParameters:
        return self.state_for(encoded or None, state)

    def get_widget_render_state(self, options: RenderOptions) -> Dict[str, Any]:
        helper = options.helper
        current = self._current(options.state)
        items: List[Dict[str, Any]] = []
        for item in self.items:
            encoded = encode_item(item)
            items.append(
                {
                    "label": item.get("label", encoded),
                    "value": encoded,
                    "is_refined": encoded == current,
                }
            )
        return {
            "items": items,
            "refine": lambda encoded: search_with(helper, self._refined(helper.state, encoded)),
            "create_url": lambda encoded: options.create_url(
                self._refined(options.state, encoded)
            ),
            "has_no_results": options.results is None or options.results.nb_hits == 0,
            "widget_params": self.widget_params,
        }
