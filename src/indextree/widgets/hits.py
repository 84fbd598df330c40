"""Hit list of the owning index."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from indextree.core.widget import ConnectorWidget, RenderOptions
from indextree.widgets.base import RenderFn, UnmountFn

TransformItems = Callable[[List[Dict[str, Any]]], List[Dict[str, Any]]]


class Hits(ConnectorWidget):
    widget_type = "hits"

    def __init__(
        self,
        *,
        transform_items: Optional[TransformItems] = None,
        render_fn: Optional[RenderFn] = None,
        unmount_fn: Optional[UnmountFn] = None,
    ) -> None:
        super().__init__(
            {"transform_items": transform_items}, render_fn=render_fn, unmount_fn=unmount_fn
        )
        self.transform_items = transform_items

    def get_widget_render_state(self, options: RenderOptions) -> Dict[str, Any]:
        hits: List[Dict[str, Any]] = []
        if options.results is not None:
            hits = list(options.results.hits)
            if self.transform_items is not None:
                hits = self.transform_items(hits)
        return {
            "hits": hits,
            "results": options.results,
            "widget_params": self.widget_params,
        }
