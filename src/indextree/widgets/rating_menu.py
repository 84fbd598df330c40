"""Rating menu: minimum star rating over an integer attribute."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from indextree.core.widget import RenderOptions
from indextree.helper.parameters import SearchParameters
from indextree.helper.results import SearchResults
from indextree.state.translators import RatingMenuTranslator
from indextree.widgets.base import RenderFn, TranslatorWidget, UnmountFn, search_with


class RatingMenu(TranslatorWidget):
    widget_type = "ratingMenu"

    def __init__(
        self,
        attribute: str,
        *,
        max: int = 5,
        render_fn: Optional[RenderFn] = None,
        unmount_fn: Optional[UnmountFn] = None,
    ) -> None:
        if max < 1:
            raise ValueError("max must be at least 1")
        super().__init__(
            {"attribute": attribute, "max": max}, render_fn=render_fn, unmount_fn=unmount_fn
        )
        self.attribute = attribute
        self.max = max
        self.translator = RatingMenuTranslator(attribute, max_rating=max)

    @property
    def render_state_attribute(self) -> Optional[str]:
        return self.attribute

    def _toggled(self, state: SearchParameters, rating: int) -> SearchParameters:
        current = state.get_numeric_refinement(self.attribute, ">=")
        if current and int(current[0]) == rating:
            return self.state_for(None, state)
        return self.state_for(rating, state)

    def _count(self, results: Optional[SearchResults], rating: int) -> int:
        if results is None:
            return 0
        total = 0
        for value, count in results.facets.get(self.attribute, {}).items():
            try:
                if float(value) >= rating:
                    total += count
            except ValueError:
                continue
        return total

    def get_widget_render_state(self, options: RenderOptions) -> Dict[str, Any]:
        helper = options.helper
        current = options.state.get_numeric_refinement(self.attribute, ">=")
        items: List[Dict[str, Any]] = []
        for rating in range(self.max - 1, 0, -1):
            items.append(
                {
                    "value": str(rating),
                    "label": str(rating),
                    "stars": [i < rating for i in range(self.max)],
                    "count": self._count(options.results, rating),
                    "is_refined": bool(current) and int(current[0]) == rating,
                }
            )
        return {
            "items": items,
            "refine": lambda value: search_with(helper, self._toggled(helper.state, int(value))),
            "create_url": lambda value: options.create_url(
                self._toggled(options.state, int(value))
            ),
            "widget_params": self.widget_params,
        }
