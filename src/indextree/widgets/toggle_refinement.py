"""Toggle: an on/off filter on one attribute."""

from __future__ import annotations

from typing import Any, Dict, Optional

from indextree.core.widget import RenderOptions
from indextree.helper.parameters import SearchParameters
from indextree.state.translators import ToggleTranslator
from indextree.widgets.base import RenderFn, TranslatorWidget, UnmountFn, search_with


class ToggleRefinement(TranslatorWidget):
    widget_type = "toggleRefinement"

    def __init__(
        self,
        attribute: str,
        *,
        on: Any = True,
        off: Any = None,
        render_fn: Optional[RenderFn] = None,
        unmount_fn: Optional[UnmountFn] = None,
    ) -> None:
        super().__init__(
            {"attribute": attribute, "on": on, "off": off},
            render_fn=render_fn,
            unmount_fn=unmount_fn,
        )
        self.attribute = attribute
        self.translator = ToggleTranslator(attribute, on=on, off=off)

    @property
    def render_state_attribute(self) -> Optional[str]:
        return self.attribute

    def _is_refined(self, state: SearchParameters) -> bool:
        return state.is_disjunctive_facet_refined(self.attribute, self.translator.on_value)

    def _toggled(self, state: SearchParameters) -> SearchParameters:
        return self.state_for(None if self._is_refined(state) else True, state)

    def get_widget_render_state(self, options: RenderOptions) -> Dict[str, Any]:
        helper = options.helper
        counts = options.results.facets.get(self.attribute, {}) if options.results else {}
        off_value = self.translator.off_value
        return {
            "value": {
                "name": self.attribute,
                "is_refined": self._is_refined(options.state),
                "count": counts.get(self.translator.on_value),
                "on_facet_value": {"count": counts.get(self.translator.on_value, 0)},
                "off_facet_value": {
                    "count": counts.get(off_value, 0) if off_value is not None else sum(counts.values())
                },
            },
            "refine": lambda: search_with(helper, self._toggled(helper.state)),
            "create_url": lambda: options.create_url(self._toggled(options.state)),
            "can_refine": bool(counts),
            "widget_params": self.widget_params,
        }
