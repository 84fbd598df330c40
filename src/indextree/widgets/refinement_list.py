"""Refinement list: multi-select facet values of one attribute."""

from __future__ import annotations

from typing import Any, Dict, Optional

from indextree.core.widget import RenderOptions
from indextree.helper.parameters import SearchParameters
from indextree.state.translators import RefinementListTranslator, facet_entry
from indextree.widgets.base import RenderFn, TranslatorWidget, UnmountFn, search_with


class RefinementList(TranslatorWidget):
    """Facet values of `attribute`; "or" lists are disjunctive, "and" lists conjunctive."""

    widget_type = "refinementList"

    def __init__(
        self,
        attribute: str,
        *,
        operator: str = "or",
        limit: int = 10,
        render_fn: Optional[RenderFn] = None,
        unmount_fn: Optional[UnmountFn] = None,
    ) -> None:
        if not attribute:
            raise ValueError("attribute is required")
        super().__init__(
            {"attribute": attribute, "operator": operator, "limit": limit},
            render_fn=render_fn,
            unmount_fn=unmount_fn,
        )
        self.attribute = attribute
        self.limit = limit
        self.translator = RefinementListTranslator(attribute, operator=operator)

    @property
    def render_state_attribute(self) -> Optional[str]:
        return self.attribute

    def _toggled(self, state: SearchParameters, value: str) -> SearchParameters:
        ui_state = self.translator.to_ui_state(state, {})
        values = list(facet_entry(ui_state, self.translator.facet, self.attribute) or [])
        if value in values:
            values.remove(value)
        else:
            values.append(value)
        return self.state_for(values or None, state)

    def get_widget_render_state(self, options: RenderOptions) -> Dict[str, Any]:
        helper = options.helper
        items = []
        if options.results is not None:
            items = [
                {"value": v.name, "label": v.name, "count": v.count, "is_refined": v.is_refined}
                for v in options.results.get_facet_values(self.attribute)[: self.limit]
            ]
        return {
            "items": items,
            "refine": lambda value: search_with(helper, self._toggled(helper.state, str(value))),
            "create_url": lambda value: options.create_url(
                self._toggled(options.state, str(value))
            ),
            "can_refine": bool(items),
            "widget_params": self.widget_params,
        }
