"""Related hits: records similar to a seed hit.

The seed hit usually comes from another index (see `RenderOptions.scoped_results`
or a `Hits.transform_items` callback). Similarity is expressed as optional
filters built from `matching_patterns`, e.g.

    RelatedHits(hit, matching_patterns={"brand": {"score": 3}, "categories": {"score": 2}})

ranks records sharing the seed's brand and categories first, and never
returns the seed itself.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional

from indextree.core.widget import ConnectorWidget, RenderOptions, SearchParametersOptions
from indextree.helper.parameters import SearchParameters
from indextree.state.translators import ConfigureTranslator
from indextree.widgets.base import RenderFn, UnmountFn, search_with

TransformParameters = Callable[[SearchParameters], SearchParameters]


def _lookup(hit: Mapping[str, Any], path: str) -> Any:
    node: Any = hit
    for part in path.split("."):
        if not isinstance(node, Mapping):
            return None
        node = node.get(part)
    return node


def build_optional_filters(
    hit: Mapping[str, Any], matching_patterns: Mapping[str, Mapping[str, Any]]
) -> List[Any]:
    """One filter per scalar attribute, one OR group per list attribute."""
    filters: List[Any] = []
    for attribute, pattern in matching_patterns.items():
        score = pattern.get("score") or 1
        value = _lookup(hit, attribute)
        if isinstance(value, (list, tuple)):
            filters.append([f"{attribute}:{v}<score={score}>" for v in value])
        elif isinstance(value, str):
            filters.append(f"{attribute}:{value}<score={score}>")
    return filters


class RelatedHits(ConnectorWidget):
    widget_type = "relatedHits"

    def __init__(
        self,
        hit: Mapping[str, Any],
        *,
        matching_patterns: Mapping[str, Mapping[str, Any]],
        limit: int = 5,
        transform_search_parameters: Optional[TransformParameters] = None,
        render_fn: Optional[RenderFn] = None,
        unmount_fn: Optional[UnmountFn] = None,
    ) -> None:
        if "objectID" not in hit:
            raise ValueError("the seed hit needs an objectID")
        super().__init__(
            {
                "hit": dict(hit),
                "matching_patterns": dict(matching_patterns),
                "limit": limit,
                "transform_search_parameters": transform_search_parameters,
            },
            render_fn=render_fn,
            unmount_fn=unmount_fn,
        )
        self.hit = dict(hit)
        self.limit = limit
        self.transform_search_parameters = transform_search_parameters
        # Derived from the seed hit, never routed
        self.parameters = ConfigureTranslator(
            {
                "hitsPerPage": limit,
                "optionalFilters": build_optional_filters(hit, matching_patterns),
                "filters": f"NOT objectID:{hit['objectID']}",
            }
        )

    def get_widget_search_parameters(
        self, state: SearchParameters, options: SearchParametersOptions
    ) -> SearchParameters:
        state = self.parameters.to_search_parameters({}, state)
        if self.transform_search_parameters is not None:
            state = self.transform_search_parameters(state)
        return state

    def cleanup(self, state: SearchParameters) -> Optional[SearchParameters]:
        return self.parameters.cleanup(state)

    def get_widget_render_state(self, options: RenderOptions) -> Dict[str, Any]:
        helper = options.helper
        results = options.results
        page = options.state.page
        nb_pages = results.nb_pages if results is not None else 0
        return {
            "items": list(results.hits) if results is not None else [],
            "show_previous": lambda: search_with(helper, helper.state.set_page(max(0, page - 1))),
            "show_next": lambda: search_with(helper, helper.state.set_page(page + 1)),
            "is_first_page": page == 0,
            "is_last_page": page >= nb_pages - 1,
            "widget_params": self.widget_params,
        }
