"""Per-facet translation between UiState and SearchParameters.

Each translator owns one facet category (optionally for one attribute) and
exposes two pure rules:

- `to_ui_state(state, ui_state)`: project the parameters into the facet.
- `to_search_parameters(ui_state, state)`: rebuild the facet's parameters.
  A facet absent from `ui_state` means "no refinement of that kind": the rule
  always clears what it owns before applying, so a snapshot replaces rather
  than merges.

`cleanup(state)` removes everything the translator owns and is used by
widgets on dispose. Malformed facet values are logged and treated as absent.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from loguru import logger

from indextree.exceptions import MalformedFacetError
from indextree.helper.parameters import HierarchicalFacet, SearchParameters
from indextree.state import grammar
from indextree.types import IndexUiState


def with_facet_entry(ui_state: IndexUiState, facet: str, key: str, value: Any) -> IndexUiState:
    """Return a copy of `ui_state` with `ui_state[facet][key] = value`."""
    return {**ui_state, facet: {**(ui_state.get(facet) or {}), key: value}}


def without_facet_entry(ui_state: IndexUiState, facet: str, key: str) -> IndexUiState:
    """Return a copy without `ui_state[facet][key]`, dropping the facet when empty."""
    entries = {k: v for k, v in (ui_state.get(facet) or {}).items() if k != key}
    out = {k: v for k, v in ui_state.items() if k != facet}
    if entries:
        out[facet] = entries
    return out


def without_facet(ui_state: IndexUiState, facet: str) -> IndexUiState:
    return {k: v for k, v in ui_state.items() if k != facet}


def facet_entry(ui_state: IndexUiState, facet: str, key: str) -> Any:
    entries = ui_state.get(facet)
    if not isinstance(entries, Mapping):
        return None
    return entries.get(key)


def _log_malformed(error: MalformedFacetError) -> None:
    logger.debug(f"Ignoring malformed UiState facet: {error}")


def _coerce_bool(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() == "true"
    return raw is True


class FacetTranslator(ABC):
    """Bidirectional rule for one facet category."""

    facet: str = ""

    @abstractmethod
    def to_ui_state(self, state: SearchParameters, ui_state: IndexUiState) -> IndexUiState:
        """Project `state` into the facet of `ui_state`."""

    @abstractmethod
    def to_search_parameters(
        self, ui_state: IndexUiState, state: SearchParameters
    ) -> SearchParameters:
        """Rebuild the facet's parameters of `state` from `ui_state`."""

    def cleanup(self, state: SearchParameters) -> SearchParameters:
        """Remove the parameters owned by this translator."""
        return self.to_search_parameters({}, state)


class QueryTranslator(FacetTranslator):
    facet = "query"

    def to_ui_state(self, state: SearchParameters, ui_state: IndexUiState) -> IndexUiState:
        if not state.query:
            return without_facet(ui_state, self.facet)
        return {**ui_state, self.facet: state.query}

    def to_search_parameters(
        self, ui_state: IndexUiState, state: SearchParameters
    ) -> SearchParameters:
        query = ui_state.get(self.facet)
        return state.set_query(query if isinstance(query, str) else "")


class RefinementListTranslator(FacetTranslator):
    """Attribute -> list of values; "or" lists are disjunctive, "and" conjunctive."""

    facet = "refinementList"

    def __init__(self, attribute: str, *, operator: str = "or") -> None:
        if operator not in ("or", "and"):
            raise ValueError(f"operator must be 'or' or 'and', got {operator!r}")
        self.attribute = attribute
        self.operator = operator

    def _refinements(self, state: SearchParameters) -> List[str]:
        if self.operator == "or":
            return state.get_disjunctive_refinements(self.attribute)
        return state.get_conjunctive_refinements(self.attribute)

    def to_ui_state(self, state: SearchParameters, ui_state: IndexUiState) -> IndexUiState:
        values = self._refinements(state)
        if not values:
            return without_facet_entry(ui_state, self.facet, self.attribute)
        return with_facet_entry(ui_state, self.facet, self.attribute, values)

    def _declare(self, state: SearchParameters) -> SearchParameters:
        if self.operator == "or":
            return state.add_disjunctive_facet(self.attribute)
        return state.add_facet(self.attribute)

    def to_search_parameters(
        self, ui_state: IndexUiState, state: SearchParameters
    ) -> SearchParameters:
        state = self._declare(state)
        if self.operator == "or":
            state = state.remove_disjunctive_facet_refinement(self.attribute)
        else:
            state = state.remove_facet_refinement(self.attribute)
        raw = facet_entry(ui_state, self.facet, self.attribute)
        if raw is None:
            return state
        values: Sequence[Any] = [raw] if isinstance(raw, str) else raw
        if not isinstance(values, (list, tuple)) or not all(
            isinstance(v, (str, int, float)) and not isinstance(v, bool) for v in values
        ):
            _log_malformed(MalformedFacetError(self.facet, raw, "expected a list of strings"))
            return state
        for value in values:
            if self.operator == "or":
                state = state.add_disjunctive_facet_refinement(self.attribute, value)
            else:
                state = state.add_facet_refinement(self.attribute, value)
        return state

    def cleanup(self, state: SearchParameters) -> SearchParameters:
        if self.operator == "or":
            return state.remove_disjunctive_facet(self.attribute)
        return state.remove_facet(self.attribute)


class MenuTranslator(FacetTranslator):
    """Attribute -> single selected value, backed by a one-level hierarchical facet."""

    facet = "menu"

    def __init__(self, attribute: str) -> None:
        self.attribute = attribute
        self.hierarchical_facet = HierarchicalFacet(name=attribute, attributes=(attribute,))

    def to_ui_state(self, state: SearchParameters, ui_state: IndexUiState) -> IndexUiState:
        refinement = state.get_hierarchical_refinement(self.attribute)
        if not refinement:
            return without_facet_entry(ui_state, self.facet, self.attribute)
        return with_facet_entry(ui_state, self.facet, self.attribute, refinement[0])

    def to_search_parameters(
        self, ui_state: IndexUiState, state: SearchParameters
    ) -> SearchParameters:
        state = state.add_hierarchical_facet(self.hierarchical_facet)
        state = state.remove_hierarchical_facet_refinement(self.attribute)
        raw = facet_entry(ui_state, self.facet, self.attribute)
        if raw is None:
            return state
        if isinstance(raw, bool) or not isinstance(raw, (str, int, float)) or raw == "":
            _log_malformed(MalformedFacetError(self.facet, raw, "expected a non-empty string"))
            return state
        return state.add_hierarchical_facet_refinement(self.attribute, str(raw))

    def cleanup(self, state: SearchParameters) -> SearchParameters:
        return state.remove_hierarchical_facet(self.attribute)


class HierarchicalMenuTranslator(FacetTranslator):
    """First attribute -> cumulative breadcrumb, e.g. ["Audio", "Audio > Headphones"]."""

    facet = "hierarchicalMenu"

    def __init__(
        self,
        attributes: Sequence[str],
        *,
        separator: str = " > ",
        root_path: Optional[str] = None,
        show_parent_level: bool = True,
    ) -> None:
        if not attributes:
            raise ValueError("hierarchical menus need at least one attribute")
        self.hierarchical_facet = HierarchicalFacet(
            name=attributes[0],
            attributes=tuple(attributes),
            separator=separator,
            root_path=root_path,
            show_parent_level=show_parent_level,
        )

    @property
    def name(self) -> str:
        return self.hierarchical_facet.name

    def to_ui_state(self, state: SearchParameters, ui_state: IndexUiState) -> IndexUiState:
        refinement = state.get_hierarchical_refinement(self.name)
        if not refinement:
            return without_facet_entry(ui_state, self.facet, self.name)
        path = grammar.hierarchical_breadcrumb(refinement[0], self.hierarchical_facet.separator)
        return with_facet_entry(ui_state, self.facet, self.name, path)

    def to_search_parameters(
        self, ui_state: IndexUiState, state: SearchParameters
    ) -> SearchParameters:
        state = state.add_hierarchical_facet(self.hierarchical_facet)
        state = state.remove_hierarchical_facet_refinement(self.name)
        raw = facet_entry(ui_state, self.facet, self.name)
        if raw is None:
            return state
        try:
            path = grammar.parse_hierarchical_breadcrumb(raw, self.hierarchical_facet.separator)
        except MalformedFacetError as exc:
            _log_malformed(exc)
            return state
        return state.add_hierarchical_facet_refinement(self.name, path)

    def cleanup(self, state: SearchParameters) -> SearchParameters:
        return state.remove_hierarchical_facet(self.name)


class NumericMenuTranslator(FacetTranslator):
    """Attribute -> "min:max" tuple, or a bare number for equality."""

    facet = "numericMenu"

    def __init__(self, attribute: str) -> None:
        self.attribute = attribute

    def to_ui_state(self, state: SearchParameters, ui_state: IndexUiState) -> IndexUiState:
        equal = state.get_numeric_refinement(self.attribute, "=")
        if equal:
            value = grammar.format_number(equal[0])
        else:
            lower = state.get_numeric_refinement(self.attribute, ">=")
            upper = state.get_numeric_refinement(self.attribute, "<=")
            if not lower and not upper:
                return without_facet_entry(ui_state, self.facet, self.attribute)
            value = grammar.format_range(
                lower[0] if lower else None, upper[0] if upper else None
            )
        return with_facet_entry(ui_state, self.facet, self.attribute, value)

    def to_search_parameters(
        self, ui_state: IndexUiState, state: SearchParameters
    ) -> SearchParameters:
        state = state.remove_numeric_refinement(self.attribute)
        raw = facet_entry(ui_state, self.facet, self.attribute)
        if raw is None:
            return state
        try:
            kind, parsed = grammar.parse_numeric_menu(raw)
        except MalformedFacetError as exc:
            _log_malformed(exc)
            return state
        if kind == "=":
            return state.add_numeric_refinement(self.attribute, "=", parsed)
        return _apply_bounds(state, self.attribute, parsed)


def _apply_bounds(
    state: SearchParameters, attribute: str, bounds: grammar.Bounds
) -> SearchParameters:
    lower, upper = bounds
    if lower is not None:
        state = state.add_numeric_refinement(attribute, ">=", lower)
    if upper is not None:
        state = state.add_numeric_refinement(attribute, "<=", upper)
    return state


class RangeTranslator(FacetTranslator):
    """Attribute -> "min:max" with optional empty bounds."""

    facet = "range"

    def __init__(self, attribute: str) -> None:
        self.attribute = attribute

    def to_ui_state(self, state: SearchParameters, ui_state: IndexUiState) -> IndexUiState:
        lower = state.get_numeric_refinement(self.attribute, ">=")
        upper = state.get_numeric_refinement(self.attribute, "<=")
        if not lower and not upper:
            return without_facet_entry(ui_state, self.facet, self.attribute)
        value = grammar.format_range(lower[0] if lower else None, upper[0] if upper else None)
        return with_facet_entry(ui_state, self.facet, self.attribute, value)

    def to_search_parameters(
        self, ui_state: IndexUiState, state: SearchParameters
    ) -> SearchParameters:
        state = state.add_disjunctive_facet(self.attribute).remove_numeric_refinement(
            self.attribute
        )
        raw = facet_entry(ui_state, self.facet, self.attribute)
        if raw is None:
            return state
        try:
            bounds = grammar.parse_range(raw)
        except MalformedFacetError as exc:
            _log_malformed(exc)
            return state
        return _apply_bounds(state, self.attribute, bounds)

    def cleanup(self, state: SearchParameters) -> SearchParameters:
        return state.remove_disjunctive_facet(self.attribute)


class RatingMenuTranslator(FacetTranslator):
    """Attribute -> minimum rating (integer, 1..max)."""

    facet = "ratingMenu"

    def __init__(self, attribute: str, *, max_rating: int = 5) -> None:
        self.attribute = attribute
        self.max_rating = max_rating

    def to_ui_state(self, state: SearchParameters, ui_state: IndexUiState) -> IndexUiState:
        lower = state.get_numeric_refinement(self.attribute, ">=")
        if not lower:
            return without_facet_entry(ui_state, self.facet, self.attribute)
        return with_facet_entry(ui_state, self.facet, self.attribute, int(lower[0]))

    def to_search_parameters(
        self, ui_state: IndexUiState, state: SearchParameters
    ) -> SearchParameters:
        state = state.add_disjunctive_facet(self.attribute).remove_numeric_refinement(
            self.attribute
        )
        raw = facet_entry(ui_state, self.facet, self.attribute)
        if raw is None:
            return state
        try:
            rating = grammar.parse_integer(self.facet, raw, minimum=1)
        except MalformedFacetError as exc:
            _log_malformed(exc)
            return state
        if rating > self.max_rating:
            _log_malformed(MalformedFacetError(self.facet, raw, f"above {self.max_rating}"))
            return state
        return state.add_numeric_refinement(self.attribute, ">=", rating)

    def cleanup(self, state: SearchParameters) -> SearchParameters:
        return state.remove_disjunctive_facet(self.attribute)


class ToggleTranslator(FacetTranslator):
    """Attribute -> True when the "on" value is refined."""

    facet = "toggle"

    def __init__(self, attribute: str, *, on: Any = True, off: Any = None) -> None:
        self.attribute = attribute
        self.on_value = _facet_value(on)
        self.off_value = None if off is None else _facet_value(off)

    def to_ui_state(self, state: SearchParameters, ui_state: IndexUiState) -> IndexUiState:
        if state.is_disjunctive_facet_refined(self.attribute, self.on_value):
            return with_facet_entry(ui_state, self.facet, self.attribute, True)
        return without_facet_entry(ui_state, self.facet, self.attribute)

    def to_search_parameters(
        self, ui_state: IndexUiState, state: SearchParameters
    ) -> SearchParameters:
        state = state.add_disjunctive_facet(self.attribute).remove_disjunctive_facet_refinement(
            self.attribute
        )
        if _coerce_bool(facet_entry(ui_state, self.facet, self.attribute)):
            return state.add_disjunctive_facet_refinement(self.attribute, self.on_value)
        if self.off_value is not None:
            return state.add_disjunctive_facet_refinement(self.attribute, self.off_value)
        return state

    def cleanup(self, state: SearchParameters) -> SearchParameters:
        return state.remove_disjunctive_facet(self.attribute)


def _facet_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class GeoSearchTranslator(FacetTranslator):
    """{"boundingBox": "lat1,lng1,lat2,lng2"} <-> insideBoundingBox."""

    facet = "geoSearch"

    def to_ui_state(self, state: SearchParameters, ui_state: IndexUiState) -> IndexUiState:
        if state.inside_bounding_box is None:
            return without_facet(ui_state, self.facet)
        box = grammar.format_bounding_box(state.inside_bounding_box)
        return {**ui_state, self.facet: {"boundingBox": box}}

    def to_search_parameters(
        self, ui_state: IndexUiState, state: SearchParameters
    ) -> SearchParameters:
        state = state.set_query_parameter("inside_bounding_box", None)
        raw = facet_entry(ui_state, self.facet, "boundingBox")
        if raw is None:
            return state
        try:
            box = grammar.parse_bounding_box(raw)
        except MalformedFacetError as exc:
            _log_malformed(exc)
            return state
        return state.set_query_parameter("inside_bounding_box", box)


class PlacesTranslator(FacetTranslator):
    """{"position": "lat,lng"} <-> aroundLatLng.

    The places query text is not a search parameter; the Places widget
    contributes it on top of this rule.
    """

    facet = "places"

    def __init__(self, *, default_position: Optional[str] = None) -> None:
        self.default_position = default_position

    def to_ui_state(self, state: SearchParameters, ui_state: IndexUiState) -> IndexUiState:
        if not state.around_lat_lng or state.around_lat_lng == self.default_position:
            return without_facet_entry(ui_state, self.facet, "position")
        return with_facet_entry(ui_state, self.facet, "position", state.around_lat_lng)

    def to_search_parameters(
        self, ui_state: IndexUiState, state: SearchParameters
    ) -> SearchParameters:
        raw = facet_entry(ui_state, self.facet, "position")
        if raw is not None:
            try:
                lat, lng = grammar.parse_position(raw)
            except MalformedFacetError as exc:
                _log_malformed(exc)
            else:
                position = grammar.format_position(lat, lng)
                return state.set_query_parameter("around_lat_lng", position)
        return state.set_query_parameter("around_lat_lng", self.default_position)


class SortByTranslator(FacetTranslator):
    """Selected replica index name; the initial index is omitted."""

    facet = "sortBy"

    def __init__(self, initial_index: str, *, allowed: Iterable[str] = ()) -> None:
        self.initial_index = initial_index
        self.allowed = frozenset(allowed) | {initial_index}

    def to_ui_state(self, state: SearchParameters, ui_state: IndexUiState) -> IndexUiState:
        if not state.index or state.index == self.initial_index:
            return without_facet(ui_state, self.facet)
        return {**ui_state, self.facet: state.index}

    def to_search_parameters(
        self, ui_state: IndexUiState, state: SearchParameters
    ) -> SearchParameters:
        raw = ui_state.get(self.facet)
        if raw is not None and raw not in self.allowed:
            _log_malformed(MalformedFacetError(self.facet, raw, "unknown index"))
            raw = None
        return state.set_index(raw or self.initial_index)


class PageTranslator(FacetTranslator):
    """1-based page number; the first page is omitted."""

    facet = "page"

    def to_ui_state(self, state: SearchParameters, ui_state: IndexUiState) -> IndexUiState:
        if not state.page:
            return without_facet(ui_state, self.facet)
        return {**ui_state, self.facet: state.page + 1}

    def to_search_parameters(
        self, ui_state: IndexUiState, state: SearchParameters
    ) -> SearchParameters:
        raw = ui_state.get(self.facet)
        if raw is None:
            return state.set_page(0)
        try:
            page = grammar.parse_integer(self.facet, raw, minimum=1)
        except MalformedFacetError as exc:
            _log_malformed(exc)
            return state.set_page(0)
        return state.set_page(page - 1)


class HitsPerPageTranslator(FacetTranslator):
    """Number of hits per page; the default value is omitted."""

    facet = "hitsPerPage"

    def __init__(self, *, default: Optional[int] = None, allowed: Iterable[int] = ()) -> None:
        self.default = default
        self.allowed = frozenset(allowed)

    def to_ui_state(self, state: SearchParameters, ui_state: IndexUiState) -> IndexUiState:
        if state.hits_per_page is None or state.hits_per_page == self.default:
            return without_facet(ui_state, self.facet)
        return {**ui_state, self.facet: state.hits_per_page}

    def to_search_parameters(
        self, ui_state: IndexUiState, state: SearchParameters
    ) -> SearchParameters:
        raw = ui_state.get(self.facet)
        if raw is None:
            return state.set_hits_per_page(self.default)
        try:
            value = grammar.parse_integer(self.facet, raw, minimum=1)
        except MalformedFacetError as exc:
            _log_malformed(exc)
            return state.set_hits_per_page(self.default)
        if self.allowed and value not in self.allowed:
            _log_malformed(MalformedFacetError(self.facet, raw, "not one of the allowed values"))
            return state.set_hits_per_page(self.default)
        return state.set_hits_per_page(value)


class ConfigureTranslator(FacetTranslator):
    """Passthrough block of raw search parameters."""

    facet = "configure"

    def __init__(self, search_parameters: Optional[Mapping[str, Any]] = None) -> None:
        self.search_parameters: Dict[str, Any] = dict(search_parameters or {})

    def to_ui_state(self, state: SearchParameters, ui_state: IndexUiState) -> IndexUiState:
        if not self.search_parameters:
            return ui_state
        return {
            **ui_state,
            self.facet: {**(ui_state.get(self.facet) or {}), **self.search_parameters},
        }

    def to_search_parameters(
        self, ui_state: IndexUiState, state: SearchParameters
    ) -> SearchParameters:
        block = ui_state.get(self.facet)
        params = dict(block) if isinstance(block, Mapping) else {}
        params.update(self.search_parameters)
        return state.set_query_parameters(params)

    def cleanup(self, state: SearchParameters) -> SearchParameters:
        return state.set_query_parameters({name: None for name in self.search_parameters})
