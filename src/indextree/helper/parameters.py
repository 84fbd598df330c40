"""Immutable query-parameter value object consumed by search clients.

Every mutator returns a new `SearchParameters`; instances are never changed in
place. Empty refinement containers are normalized away so that two instances
describing the same query compare equal.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

BoundingBox = Tuple[float, float, float, float]

NUMERIC_OPERATORS = ("=", "!=", ">", ">=", "<", "<=")


@dataclass(frozen=True)
class HierarchicalFacet:
    """A multi-level facet whose levels are stored in separate attributes."""

    name: str
    attributes: Tuple[str, ...]
    separator: str = " > "
    root_path: Optional[str] = None
    show_parent_level: bool = True


# Wire name -> field name for parameters with a dedicated field
_WIRE_NAMES: Dict[str, str] = {
    "index": "index",
    "query": "query",
    "page": "page",
    "hitsPerPage": "hits_per_page",
    "facets": "facets",
    "disjunctiveFacets": "disjunctive_facets",
    "hierarchicalFacets": "hierarchical_facets",
    "facetsRefinements": "facets_refinements",
    "disjunctiveFacetsRefinements": "disjunctive_facets_refinements",
    "hierarchicalFacetsRefinements": "hierarchical_facets_refinements",
    "numericRefinements": "numeric_refinements",
    "tagRefinements": "tag_refinements",
    "insideBoundingBox": "inside_bounding_box",
    "aroundLatLng": "around_lat_lng",
}


def _tuple(values: Iterable[Any]) -> Tuple[Any, ...]:
    if isinstance(values, (str, bytes)):
        return (values,)
    return tuple(values)


def _without(mapping: Mapping[str, Any], key: str) -> Dict[str, Any]:
    return {k: v for k, v in mapping.items() if k != key}


def _set_values(
    mapping: Mapping[str, Tuple[str, ...]], key: str, values: Tuple[str, ...]
) -> Dict[str, Tuple[str, ...]]:
    out = _without(mapping, key)
    if values:
        out[key] = values
    return out


@dataclass(frozen=True)
class SearchParameters:
    """Filters, pagination and sort of one index query."""

    index: str = ""
    query: str = ""
    page: int = 0
    hits_per_page: Optional[int] = None
    facets: Tuple[str, ...] = ()
    disjunctive_facets: Tuple[str, ...] = ()
    hierarchical_facets: Tuple[HierarchicalFacet, ...] = ()
    facets_refinements: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    disjunctive_facets_refinements: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    hierarchical_facets_refinements: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    numeric_refinements: Mapping[str, Mapping[str, Tuple[float, ...]]] = field(
        default_factory=dict
    )
    tag_refinements: Tuple[str, ...] = ()
    inside_bounding_box: Optional[BoundingBox] = None
    around_lat_lng: Optional[str] = None
    # Passthrough parameters without a dedicated field (optionalWords, filters, ...)
    extra: Mapping[str, Any] = field(default_factory=dict)

    def _replace(self, **changes: Any) -> "SearchParameters":
        return dataclasses.replace(self, **changes)

    # ----- Generic parameters -----

    def set_query_parameter(self, name: str, value: Any) -> "SearchParameters":
        """Set one parameter by field or wire name; `None` resets it to its default."""
        field_name = _WIRE_NAMES.get(name, name)
        fields = {f.name: f for f in dataclasses.fields(self)}
        if field_name == "extra" or field_name not in fields:
            if value is None:
                return self._replace(extra=_without(self.extra, name))
            return self._replace(extra={**self.extra, name: value})

        if value is None:
            f = fields[field_name]
            if f.default is not dataclasses.MISSING:
                return self._replace(**{field_name: f.default})
            return self._replace(**{field_name: f.default_factory()})  # type: ignore[misc]
        return self._replace(**{field_name: _coerce(field_name, value)})

    def set_query_parameters(self, params: Mapping[str, Any]) -> "SearchParameters":
        state = self
        for name, value in params.items():
            state = state.set_query_parameter(name, value)
        return state

    def get_query_parameter(self, name: str) -> Any:
        field_name = _WIRE_NAMES.get(name, name)
        if field_name in {f.name for f in dataclasses.fields(self)} and field_name != "extra":
            return getattr(self, field_name)
        return self.extra.get(name)

    def set_index(self, index: str) -> "SearchParameters":
        return self._replace(index=index)

    def set_query(self, query: str) -> "SearchParameters":
        return self._replace(query=query)

    def set_page(self, page: int) -> "SearchParameters":
        return self._replace(page=max(0, int(page)))

    def reset_page(self) -> "SearchParameters":
        return self.set_page(0)

    def set_hits_per_page(self, hits_per_page: Optional[int]) -> "SearchParameters":
        return self._replace(hits_per_page=hits_per_page)

    # ----- Facet declarations -----

    def add_facet(self, attribute: str) -> "SearchParameters":
        if attribute in self.facets:
            return self
        return self._replace(facets=(*self.facets, attribute))

    def remove_facet(self, attribute: str) -> "SearchParameters":
        state = self.clear_refinements(attribute)
        return state._replace(facets=tuple(f for f in state.facets if f != attribute))

    def add_disjunctive_facet(self, attribute: str) -> "SearchParameters":
        if attribute in self.disjunctive_facets:
            return self
        return self._replace(disjunctive_facets=(*self.disjunctive_facets, attribute))

    def remove_disjunctive_facet(self, attribute: str) -> "SearchParameters":
        state = self.clear_refinements(attribute)
        return state._replace(
            disjunctive_facets=tuple(f for f in state.disjunctive_facets if f != attribute)
        )

    def add_hierarchical_facet(self, facet: HierarchicalFacet) -> "SearchParameters":
        if self.is_hierarchical_facet(facet.name):
            return self
        return self._replace(hierarchical_facets=(*self.hierarchical_facets, facet))

    def remove_hierarchical_facet(self, name: str) -> "SearchParameters":
        state = self.remove_hierarchical_facet_refinement(name)
        return state._replace(
            hierarchical_facets=tuple(f for f in state.hierarchical_facets if f.name != name)
        )

    def is_conjunctive_facet(self, attribute: str) -> bool:
        return attribute in self.facets

    def is_disjunctive_facet(self, attribute: str) -> bool:
        return attribute in self.disjunctive_facets

    def is_hierarchical_facet(self, name: str) -> bool:
        return self.get_hierarchical_facet_by_name(name) is not None

    def get_hierarchical_facet_by_name(self, name: str) -> Optional[HierarchicalFacet]:
        for facet in self.hierarchical_facets:
            if facet.name == name:
                return facet
        return None

    # ----- Conjunctive refinements -----

    def add_facet_refinement(self, attribute: str, value: Any) -> "SearchParameters":
        current = self.facets_refinements.get(attribute, ())
        value = str(value)
        if value in current:
            return self
        return self._replace(
            facets_refinements=_set_values(self.facets_refinements, attribute, (*current, value))
        )

    def remove_facet_refinement(
        self, attribute: str, value: Optional[Any] = None
    ) -> "SearchParameters":
        current = self.facets_refinements.get(attribute, ())
        kept = () if value is None else tuple(v for v in current if v != str(value))
        return self._replace(
            facets_refinements=_set_values(self.facets_refinements, attribute, kept)
        )

    def toggle_facet_refinement(self, attribute: str, value: Any) -> "SearchParameters":
        if self.is_facet_refined(attribute, value):
            return self.remove_facet_refinement(attribute, value)
        return self.add_facet_refinement(attribute, value)

    def is_facet_refined(self, attribute: str, value: Optional[Any] = None) -> bool:
        current = self.facets_refinements.get(attribute, ())
        return bool(current) if value is None else str(value) in current

    def get_conjunctive_refinements(self, attribute: str) -> List[str]:
        return list(self.facets_refinements.get(attribute, ()))

    # ----- Disjunctive refinements -----

    def add_disjunctive_facet_refinement(self, attribute: str, value: Any) -> "SearchParameters":
        current = self.disjunctive_facets_refinements.get(attribute, ())
        value = str(value)
        if value in current:
            return self
        return self._replace(
            disjunctive_facets_refinements=_set_values(
                self.disjunctive_facets_refinements, attribute, (*current, value)
            )
        )

    def remove_disjunctive_facet_refinement(
        self, attribute: str, value: Optional[Any] = None
    ) -> "SearchParameters":
        current = self.disjunctive_facets_refinements.get(attribute, ())
        kept = () if value is None else tuple(v for v in current if v != str(value))
        return self._replace(
            disjunctive_facets_refinements=_set_values(
                self.disjunctive_facets_refinements, attribute, kept
            )
        )

    def toggle_disjunctive_facet_refinement(
        self, attribute: str, value: Any
    ) -> "SearchParameters":
        if self.is_disjunctive_facet_refined(attribute, value):
            return self.remove_disjunctive_facet_refinement(attribute, value)
        return self.add_disjunctive_facet_refinement(attribute, value)

    def is_disjunctive_facet_refined(self, attribute: str, value: Optional[Any] = None) -> bool:
        current = self.disjunctive_facets_refinements.get(attribute, ())
        return bool(current) if value is None else str(value) in current

    def get_disjunctive_refinements(self, attribute: str) -> List[str]:
        return list(self.disjunctive_facets_refinements.get(attribute, ()))

    # ----- Hierarchical refinements -----

    def add_hierarchical_facet_refinement(self, name: str, value: str) -> "SearchParameters":
        """Refine a hierarchical facet; a facet holds at most one (deepest) path."""
        if not self.is_hierarchical_facet(name):
            raise ValueError(f"{name!r} is not declared as a hierarchical facet")
        return self._replace(
            hierarchical_facets_refinements=_set_values(
                self.hierarchical_facets_refinements, name, (str(value),)
            )
        )

    def remove_hierarchical_facet_refinement(self, name: str) -> "SearchParameters":
        return self._replace(
            hierarchical_facets_refinements=_set_values(
                self.hierarchical_facets_refinements, name, ()
            )
        )

    def toggle_hierarchical_facet_refinement(self, name: str, value: str) -> "SearchParameters":
        """Select `value`, or go up one level when `value` is already the refinement."""
        facet = self.get_hierarchical_facet_by_name(name)
        if facet is None:
            raise ValueError(f"{name!r} is not declared as a hierarchical facet")
        current = self.get_hierarchical_refinement(name)
        if current and current[0] == value:
            parts = value.split(facet.separator)
            if len(parts) > 1:
                return self.add_hierarchical_facet_refinement(
                    name, facet.separator.join(parts[:-1])
                )
            return self.remove_hierarchical_facet_refinement(name)
        return self.add_hierarchical_facet_refinement(name, value)

    def is_hierarchical_facet_refined(self, name: str, value: Optional[str] = None) -> bool:
        current = self.hierarchical_facets_refinements.get(name, ())
        return bool(current) if value is None else value in current

    def get_hierarchical_refinement(self, name: str) -> List[str]:
        return list(self.hierarchical_facets_refinements.get(name, ()))

    # ----- Numeric refinements -----

    def add_numeric_refinement(
        self, attribute: str, operator: str, value: float
    ) -> "SearchParameters":
        if operator not in NUMERIC_OPERATORS:
            raise ValueError(f"Unsupported numeric operator {operator!r}")
        ops = dict(self.numeric_refinements.get(attribute, {}))
        current = ops.get(operator, ())
        if value in current:
            return self
        ops[operator] = (*current, value)
        return self._replace(numeric_refinements={**self.numeric_refinements, attribute: ops})

    def remove_numeric_refinement(
        self,
        attribute: str,
        operator: Optional[str] = None,
        value: Optional[float] = None,
    ) -> "SearchParameters":
        if attribute not in self.numeric_refinements:
            return self
        ops: Dict[str, Tuple[float, ...]] = {}
        if operator is not None:
            for op, values in self.numeric_refinements[attribute].items():
                if op != operator:
                    ops[op] = values
                elif value is not None:
                    kept = tuple(v for v in values if v != value)
                    if kept:
                        ops[op] = kept
        refinements = _without(self.numeric_refinements, attribute)
        if ops:
            refinements[attribute] = ops
        return self._replace(numeric_refinements=refinements)

    def get_numeric_refinements(self, attribute: str) -> Dict[str, List[float]]:
        return {op: list(v) for op, v in self.numeric_refinements.get(attribute, {}).items()}

    def get_numeric_refinement(self, attribute: str, operator: str) -> List[float]:
        return list(self.numeric_refinements.get(attribute, {}).get(operator, ()))

    # ----- Tags -----

    def add_tag_refinement(self, tag: str) -> "SearchParameters":
        if tag in self.tag_refinements:
            return self
        return self._replace(tag_refinements=(*self.tag_refinements, tag))

    def remove_tag_refinement(self, tag: str) -> "SearchParameters":
        return self._replace(tag_refinements=tuple(t for t in self.tag_refinements if t != tag))

    def toggle_tag_refinement(self, tag: str) -> "SearchParameters":
        if tag in self.tag_refinements:
            return self.remove_tag_refinement(tag)
        return self.add_tag_refinement(tag)

    def is_tag_refined(self, tag: str) -> bool:
        return tag in self.tag_refinements

    # ----- Clearing -----

    def clear_refinements(self, attribute: Optional[str] = None) -> "SearchParameters":
        """Remove every refinement on `attribute`, or on all attributes when omitted.

        Facet declarations, the query and tags are kept.
        """
        if attribute is None:
            return self._replace(
                facets_refinements={},
                disjunctive_facets_refinements={},
                hierarchical_facets_refinements={},
                numeric_refinements={},
            )
        return self._replace(
            facets_refinements=_without(self.facets_refinements, attribute),
            disjunctive_facets_refinements=_without(self.disjunctive_facets_refinements, attribute),
            hierarchical_facets_refinements=_without(
                self.hierarchical_facets_refinements, attribute
            ),
            numeric_refinements=_without(self.numeric_refinements, attribute),
        )

    def clear_tags(self) -> "SearchParameters":
        return self._replace(tag_refinements=())

    def has_refinements(self, attribute: Optional[str] = None) -> bool:
        groups = (
            self.facets_refinements,
            self.disjunctive_facets_refinements,
            self.hierarchical_facets_refinements,
            self.numeric_refinements,
        )
        if attribute is None:
            return any(bool(g) for g in groups)
        return any(attribute in g for g in groups)

    def refined_attributes(self) -> List[str]:
        seen: List[str] = []
        for group in (
            self.facets_refinements,
            self.disjunctive_facets_refinements,
            self.hierarchical_facets_refinements,
            self.numeric_refinements,
        ):
            for attribute in group:
                if attribute not in seen:
                    seen.append(attribute)
        return seen

    # ----- Wire format -----

    def to_query_params(self) -> Dict[str, Any]:
        """Render the parameters with their wire names, omitting defaults."""
        params: Dict[str, Any] = {"query": self.query}
        if self.page:
            params["page"] = self.page
        if self.hits_per_page is not None:
            params["hitsPerPage"] = self.hits_per_page

        facets: List[str] = [*self.facets, *self.disjunctive_facets]
        for hierarchical in self.hierarchical_facets:
            facets.extend(hierarchical.attributes)
        if facets:
            params["facets"] = list(dict.fromkeys(facets))

        facet_filters: List[Any] = []
        for attribute, values in self.facets_refinements.items():
            facet_filters.extend(f"{attribute}:{v}" for v in values)
        for attribute, values in self.disjunctive_facets_refinements.items():
            facet_filters.append([f"{attribute}:{v}" for v in values])
        for name, values in self.hierarchical_facets_refinements.items():
            facet = self.get_hierarchical_facet_by_name(name)
            if facet is None or not values:
                continue
            depth = len(values[0].split(facet.separator)) - 1
            attribute = facet.attributes[min(depth, len(facet.attributes) - 1)]
            facet_filters.append(f"{attribute}:{values[0]}")
        if facet_filters:
            params["facetFilters"] = facet_filters

        numeric_filters = [
            f"{attribute}{op}{_format_number(v)}"
            for attribute, ops in self.numeric_refinements.items()
            for op, values in ops.items()
            for v in values
        ]
        if numeric_filters:
            params["numericFilters"] = numeric_filters
        if self.tag_refinements:
            params["tagFilters"] = list(self.tag_refinements)
        if self.inside_bounding_box is not None:
            params["insideBoundingBox"] = [list(self.inside_bounding_box)]
        if self.around_lat_lng:
            params["aroundLatLng"] = self.around_lat_lng
        params.update(self.extra)
        return params


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _coerce(field_name: str, value: Any) -> Any:
    if field_name in ("facets", "disjunctive_facets", "tag_refinements"):
        return _tuple(value)
    if field_name == "hierarchical_facets":
        return tuple(
            v
            if isinstance(v, HierarchicalFacet)
            else HierarchicalFacet(
                name=v["name"],
                attributes=_tuple(v["attributes"]),
                separator=v.get("separator", " > "),
                root_path=v.get("rootPath"),
                show_parent_level=v.get("showParentLevel", True),
            )
            for v in value
        )
    if field_name in (
        "facets_refinements",
        "disjunctive_facets_refinements",
        "hierarchical_facets_refinements",
    ):
        return {k: tuple(str(x) for x in _tuple(v)) for k, v in value.items() if v}
    if field_name == "numeric_refinements":
        return {
            attr: {op: _tuple(vals) for op, vals in ops.items() if vals}
            for attr, ops in value.items()
            if ops
        }
    if field_name == "inside_bounding_box":
        box = tuple(float(v) for v in value)
        if len(box) != 4:
            raise ValueError(f"insideBoundingBox needs 4 coordinates, got {value!r}")
        return box
    if field_name in ("page",):
        return max(0, int(value))
    if field_name == "hits_per_page":
        return int(value)
    return value
