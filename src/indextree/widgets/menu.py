"""Menu: single-select facet values of one attribute."""

from __future__ import annotations

from typing import Any, Dict, Optional

from indextree.core.widget import RenderOptions
from indextree.helper.parameters import SearchParameters
from indextree.state.translators import MenuTranslator
from indextree.widgets.base import RenderFn, TranslatorWidget, UnmountFn, search_with


class Menu(TranslatorWidget):
    widget_type = "menu"

    def __init__(
        self,
        attribute: str,
        *,
        limit: int = 10,
        render_fn: Optional[RenderFn] = None,
        unmount_fn: Optional[UnmountFn] = None,
    ) -> None:
        if not attribute:
            raise ValueError("attribute is required")
        super().__init__(
            {"attribute": attribute, "limit": limit}, render_fn=render_fn, unmount_fn=unmount_fn
        )
        self.attribute = attribute
        self.limit = limit
        self.translator = MenuTranslator(attribute)

    @property
    def render_state_attribute(self) -> Optional[str]:
        return self.attribute

    def _selected(self, state: SearchParameters, value: str) -> SearchParameters:
        # Selecting the current value clears the menu
        current = state.get_hierarchical_refinement(self.attribute)
        return self.state_for(None if current and current[0] == value else value, state)

    def get_widget_render_state(self, options: RenderOptions) -> Dict[str, Any]:
        helper = options.helper
        items = []
        if options.results is not None:
            values = options.results.get_hierarchical_facet_values(
                self.translator.hierarchical_facet
            )
            items = [
                {"value": v.value, "label": v.name, "count": v.count, "is_refined": v.is_refined}
                for v in values[: self.limit]
            ]
        return {
            "items": items,
            "refine": lambda value: search_with(helper, self._selected(helper.state, str(value))),
            "create_url": lambda value: options.create_url(
                self._selected(options.state, str(value))
            ),
            "can_refine": bool(items),
            "widget_params": self.widget_params,
        }
