"""RenderState aggregation for one index node."""

from __future__ import annotations

from typing import Iterable

from indextree.core.widget import RenderOptions, Widget, WidgetStatus
from indextree.types import IndexRenderState


def build_index_render_state(widgets: Iterable[Widget], options: RenderOptions) -> IndexRenderState:
    """Fold the render payloads of `widgets` (mount order) into a fresh mapping.

    Nested indices and widgets that are not initialized contribute nothing.
    A widget failing to compute its payload is reported and skipped.
    """
    render_state: IndexRenderState = {}
    for widget in widgets:
        if widget.widget_type == "index" or widget.status is not WidgetStatus.INITIALIZED:
            continue
        if not widget.implements("get_widget_render_state"):
            continue
        try:
            render_state = widget.get_render_state(render_state, options)
        except Exception as exc:
            options.instant_search.report_widget_error(widget, "get_widget_render_state", exc)
    return render_state
