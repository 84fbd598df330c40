"""Search results wrapper built from a raw client response."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from indextree.helper.parameters import HierarchicalFacet, SearchParameters


@dataclass(slots=True)
class FacetValue:
    """One value of a facet with its count and refinement status."""

    name: str
    count: int
    is_refined: bool = False


@dataclass(slots=True)
class HierarchicalFacetValue:
    """A node of a hierarchical facet tree.

    Attributes
    ----------
    name: str
        The label of this level (last path segment).
    value: str
        The full path, e.g. "Audio > Headphones".
    count: int
        Number of hits under this node.
    is_refined: bool
        True when this node is on the currently refined path.
    data: list | None
        Children of this node, or None when it is not expanded.
    """

    name: str
    value: str
    count: int
    is_refined: bool = False
    data: Optional[List["HierarchicalFacetValue"]] = None


@dataclass
class SearchResults:
    """Results of one index query, paired with the parameters that produced them."""

    state: SearchParameters
    hits: List[Dict[str, Any]] = field(default_factory=list)
    nb_hits: int = 0
    page: int = 0
    nb_pages: int = 0
    hits_per_page: int = 0
    query: str = ""
    index: str = ""
    processing_time_ms: int = 0
    facets: Dict[str, Dict[str, int]] = field(default_factory=dict)
    facets_stats: Dict[str, Dict[str, float]] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_response(cls, state: SearchParameters, raw: Dict[str, Any]) -> "SearchResults":
        hits = list(raw.get("hits") or [])
        return cls(
            state=state,
            hits=hits,
            nb_hits=int(raw.get("nbHits", len(hits)) or 0),
            page=int(raw.get("page", state.page) or 0),
            nb_pages=int(raw.get("nbPages", 0) or 0),
            hits_per_page=int(raw.get("hitsPerPage", len(hits)) or 0),
            query=str(raw.get("query", state.query) or ""),
            index=str(raw.get("index", state.index) or ""),
            processing_time_ms=int(raw.get("processingTimeMS", 0) or 0),
            facets={k: dict(v) for k, v in (raw.get("facets") or {}).items()},
            facets_stats={k: dict(v) for k, v in (raw.get("facets_stats") or {}).items()},
            raw=dict(raw),
        )

    def _is_refined(self, attribute: str, value: str) -> bool:
        return self.state.is_facet_refined(
            attribute, value
        ) or self.state.is_disjunctive_facet_refined(attribute, value)

    def get_facet_values(self, attribute: str) -> List[FacetValue]:
        """Return facet values sorted by refinement, count (desc) then name."""
        counts = self.facets.get(attribute, {})
        values = [
            FacetValue(name=name, count=count, is_refined=self._is_refined(attribute, name))
            for name, count in counts.items()
        ]
        # Refined values that got no count still need to be shown
        for refined in (
            *self.state.get_conjunctive_refinements(attribute),
            *self.state.get_disjunctive_refinements(attribute),
        ):
            if refined not in counts:
                values.append(FacetValue(name=refined, count=0, is_refined=True))
        values.sort(key=lambda v: (not v.is_refined, -v.count, v.name))
        return values

    def get_facet_stats(self, attribute: str) -> Optional[Dict[str, float]]:
        return self.facets_stats.get(attribute)

    def get_hierarchical_facet_values(
        self, facet: HierarchicalFacet
    ) -> List[HierarchicalFacetValue]:
        """Build the facet tree, expanded along the refined path."""
        refinement = self.state.get_hierarchical_refinement(facet.name)
        refined_path = refinement[0] if refinement else ""
        refined_parts = refined_path.split(facet.separator) if refined_path else []

        def level(depth: int, parent: Optional[str]) -> List[HierarchicalFacetValue]:
            if depth >= len(facet.attributes):
                return []
            counts = self.facets.get(facet.attributes[depth], {})
            items: List[HierarchicalFacetValue] = []
            for value, count in counts.items():
                parts = value.split(facet.separator)
                if len(parts) != depth + 1:
                    continue
                if parent is not None and not value.startswith(parent + facet.separator):
                    continue
                is_refined = refined_parts[: depth + 1] == parts
                items.append(
                    HierarchicalFacetValue(
                        name=parts[-1],
                        value=value,
                        count=count,
                        is_refined=is_refined,
                        data=level(depth + 1, value) if is_refined else None,
                    )
                )
            items.sort(key=lambda v: (-v.count, v.name))
            return items

        if facet.root_path:
            depth = len(facet.root_path.split(facet.separator))
            return level(depth, facet.root_path)
        return level(0, None)
