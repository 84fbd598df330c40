"""Hierarchical menu over several level attributes (lvl0, lvl1, ...)."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from indextree.core.widget import RenderOptions
from indextree.helper.parameters import SearchParameters
from indextree.helper.results import HierarchicalFacetValue
from indextree.state import grammar
from indextree.state.translators import HierarchicalMenuTranslator
from indextree.widgets.base import RenderFn, TranslatorWidget, UnmountFn, search_with


def _items(values: Sequence[HierarchicalFacetValue], limit: int) -> List[Dict[str, Any]]:
    return [
        {
            "value": v.value,
            "label": v.name,
            "count": v.count,
            "is_refined": v.is_refined,
            "data": _items(v.data, limit) if v.data is not None else None,
        }
        for v in values[:limit]
    ]


class HierarchicalMenu(TranslatorWidget):
    """Keyed in UiState and RenderState by the first attribute.

    `refine(path)` selects a node; refining the selected node moves up one level.
    """

    widget_type = "hierarchicalMenu"

    def __init__(
        self,
        attributes: Sequence[str],
        *,
        separator: str = " > ",
        root_path: Optional[str] = None,
        show_parent_level: bool = True,
        limit: int = 10,
        render_fn: Optional[RenderFn] = None,
        unmount_fn: Optional[UnmountFn] = None,
    ) -> None:
        super().__init__(
            {
                "attributes": list(attributes),
                "separator": separator,
                "root_path": root_path,
                "show_parent_level": show_parent_level,
                "limit": limit,
            },
            render_fn=render_fn,
            unmount_fn=unmount_fn,
        )
        self.translator = HierarchicalMenuTranslator(
            attributes,
            separator=separator,
            root_path=root_path,
            show_parent_level=show_parent_level,
        )
        self.limit = limit

    @property
    def render_state_attribute(self) -> Optional[str]:
        return self.translator.name

    def _toggled(self, state: SearchParameters, path: str) -> SearchParameters:
        toggled = state.reset_page().toggle_hierarchical_facet_refinement(self.translator.name, path)
        refinement = toggled.get_hierarchical_refinement(self.translator.name)
        if not refinement:
            return self.state_for(None, state)
        separator = self.translator.hierarchical_facet.separator
        return self.state_for(grammar.hierarchical_breadcrumb(refinement[0], separator), state)

    def get_widget_render_state(self, options: RenderOptions) -> Dict[str, Any]:
        helper = options.helper
        items: List[Dict[str, Any]] = []
        if options.results is not None:
            values = options.results.get_hierarchical_facet_values(
                self.translator.hierarchical_facet
            )
            items = _items(values, self.limit)
        return {
            "items": items,
            "refine": lambda path: search_with(helper, self._toggled(helper.state, str(path))),
            "create_url": lambda path: options.create_url(self._toggled(options.state, str(path))),
            "can_refine": bool(items),
            "widget_params": self.widget_params,
        }
