"""Geo search: hits with a `_geoloc` and a map bounding-box refinement."""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from indextree.core.widget import RenderOptions
from indextree.helper.parameters import SearchParameters
from indextree.state import grammar
from indextree.state.translators import GeoSearchTranslator
from indextree.widgets.base import RenderFn, TranslatorWidget, UnmountFn, search_with


class GeoSearch(TranslatorWidget):
    widget_type = "geoSearch"

    def __init__(
        self,
        *,
        render_fn: Optional[RenderFn] = None,
        unmount_fn: Optional[UnmountFn] = None,
    ) -> None:
        super().__init__({}, render_fn=render_fn, unmount_fn=unmount_fn)
        self.translator = GeoSearchTranslator()

    def _refined(self, state: SearchParameters, box: Optional[Sequence[float]]) -> SearchParameters:
        if box is None:
            return self.state_for(None, state)
        return self.state_for({"boundingBox": grammar.format_bounding_box(box)}, state)

    def get_widget_render_state(self, options: RenderOptions) -> Dict[str, Any]:
        helper = options.helper
        hits = options.results.hits if options.results is not None else []
        return {
            "items": [hit for hit in hits if isinstance(hit.get("_geoloc"), dict)],
            "current_refinement": options.state.inside_bounding_box,
            "refine": lambda box: search_with(helper, self._refined(helper.state, box)),
            "clear_map_refinement": lambda: search_with(helper, self._refined(helper.state, None)),
            "is_refined_with_map": options.state.inside_bounding_box is not None,
            "widget_params": self.widget_params,
        }
