"""Clear refinements button."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from indextree.core.widget import ConnectorWidget, RenderOptions
from indextree.helper.parameters import SearchParameters
from indextree.widgets.base import RenderFn, UnmountFn, search_with


class ClearRefinements(ConnectorWidget):
    """Clear the refinements of `included_attributes` (default: all), minus excluded ones.

    The pseudo-attribute "query" stands for the query text and is excluded by default.
    """

    widget_type = "clearRefinements"

    def __init__(
        self,
        *,
        included_attributes: Optional[Sequence[str]] = None,
        excluded_attributes: Sequence[str] = ("query",),
        render_fn: Optional[RenderFn] = None,
        unmount_fn: Optional[UnmountFn] = None,
    ) -> None:
        if included_attributes is not None and excluded_attributes != ("query",):
            raise ValueError("use included_attributes or excluded_attributes, not both")
        super().__init__(
            {
                "included_attributes": list(included_attributes) if included_attributes else None,
                "excluded_attributes": list(excluded_attributes),
            },
            render_fn=render_fn,
            unmount_fn=unmount_fn,
        )
        self.included_attributes = list(included_attributes) if included_attributes else None
        self.excluded_attributes = list(excluded_attributes)

    def _attributes(self, state: SearchParameters) -> List[str]:
        attributes = state.refined_attributes()
        if state.query:
            attributes.append("query")
        if self.included_attributes is not None:
            return [a for a in attributes if a in self.included_attributes]
        return [a for a in attributes if a not in self.excluded_attributes]

    def _cleared(self, state: SearchParameters) -> SearchParameters:
        cleared = state.reset_page()
        for attribute in self._attributes(state):
            if attribute == "query":
                cleared = cleared.set_query("")
            else:
                cleared = cleared.clear_refinements(attribute)
        return cleared

    def get_widget_render_state(self, options: RenderOptions) -> Dict[str, Any]:
        helper = options.helper
        return {
            "has_refinements": bool(self._attributes(options.state)),
            "refine": lambda: search_with(helper, self._cleared(helper.state)),
            "create_url": lambda: options.create_url(self._cleared(options.state)),
            "widget_params": self.widget_params,
        }
