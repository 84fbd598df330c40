"""Numeric range input / slider over one attribute."""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from indextree.core.widget import RenderOptions
from indextree.helper.parameters import SearchParameters
from indextree.state import grammar
from indextree.state.translators import RangeTranslator
from indextree.widgets.base import RenderFn, TranslatorWidget, UnmountFn, search_with

Bounds = Tuple[Optional[float], Optional[float]]


class Range(TranslatorWidget):
    """`min`/`max` bound the selectable range; missing bounds come from facet stats."""

    widget_type = "range"

    def __init__(
        self,
        attribute: str,
        *,
        min: Optional[float] = None,
        max: Optional[float] = None,
        render_fn: Optional[RenderFn] = None,
        unmount_fn: Optional[UnmountFn] = None,
    ) -> None:
        if min is not None and max is not None and min > max:
            raise ValueError("min must be lower than or equal to max")
        super().__init__(
            {"attribute": attribute, "min": min, "max": max},
            render_fn=render_fn,
            unmount_fn=unmount_fn,
        )
        self.attribute = attribute
        self.min = min
        self.max = max
        self.translator = RangeTranslator(attribute)

    @property
    def render_state_attribute(self) -> Optional[str]:
        return self.attribute

    def _refined(self, state: SearchParameters, bounds: Bounds) -> SearchParameters:
        lower, upper = bounds
        if lower is not None and self.min is not None:
            lower = self.min if lower < self.min else lower
        if upper is not None and self.max is not None:
            upper = self.max if upper > self.max else upper
        # Bounds equal to the full range mean "no refinement"
        if lower == self.min:
            lower = None
        if upper == self.max:
            upper = None
        if lower is None and upper is None:
            return self.state_for(None, state)
        return self.state_for(grammar.format_range(lower, upper), state)

    def get_widget_render_state(self, options: RenderOptions) -> Dict[str, Any]:
        helper = options.helper
        stats = options.results.get_facet_stats(self.attribute) if options.results else None
        range_min = self.min if self.min is not None else (stats or {}).get("min")
        range_max = self.max if self.max is not None else (stats or {}).get("max")
        lower = options.state.get_numeric_refinement(self.attribute, ">=")
        upper = options.state.get_numeric_refinement(self.attribute, "<=")
        return {
            "start": (lower[0] if lower else None, upper[0] if upper else None),
            "range": {"min": range_min, "max": range_max},
            "refine": lambda bounds: search_with(helper, self._refined(helper.state, bounds)),
            "can_refine": range_min is not None and range_max is not None and range_min < range_max,
            "widget_params": self.widget_params,
        }
