"""String grammars of the compact UiState facet encodings.

- range / numericMenu: "<min>:<max>", an empty bound is unbounded (":5", "5:10", "10:")
- numericMenu equality: a bare number ("5")
- hierarchicalMenu: cumulative levels joined by a separator
  (["Audio", "Audio > Headphones"])
- geoSearch bounding box: "lat1,lng1,lat2,lng2"
- places position: "lat,lng"

Parsers raise `MalformedFacetError`; callers decide how to recover.
"""

from __future__ import annotations

import math
from typing import Any, List, Optional, Sequence, Tuple

from indextree.exceptions import MalformedFacetError

Bounds = Tuple[Optional[float], Optional[float]]


def format_number(value: float) -> str:
    """Render a number without a trailing ".0" for integral values."""
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def parse_number(facet: str, raw: Any) -> float:
    if isinstance(raw, bool):
        raise MalformedFacetError(facet, raw, "booleans are not numbers")
    try:
        number = float(str(raw).strip())
    except ValueError as exc:
        raise MalformedFacetError(facet, raw, "not a number") from exc
    if math.isnan(number) or math.isinf(number):
        raise MalformedFacetError(facet, raw, "not a finite number")
    return number


def parse_integer(facet: str, raw: Any, *, minimum: Optional[int] = None) -> int:
    number = parse_number(facet, raw)
    if not number.is_integer():
        raise MalformedFacetError(facet, raw, "not an integer")
    value = int(number)
    if minimum is not None and value < minimum:
        raise MalformedFacetError(facet, raw, f"must be >= {minimum}")
    return value


def format_range(lower: Optional[float], upper: Optional[float]) -> str:
    left = "" if lower is None else format_number(lower)
    right = "" if upper is None else format_number(upper)
    return f"{left}:{right}"


def parse_range(raw: Any, *, facet: str = "range") -> Bounds:
    """Parse "<min>:<max>"; both bounds empty is malformed (no refinement)."""
    if not isinstance(raw, str):
        raise MalformedFacetError(facet, raw, "expected a string")
    parts = raw.split(":")
    if len(parts) != 2:
        raise MalformedFacetError(facet, raw, "expected exactly one ':'")
    lower = parse_number(facet, parts[0]) if parts[0].strip() else None
    upper = parse_number(facet, parts[1]) if parts[1].strip() else None
    if lower is None and upper is None:
        raise MalformedFacetError(facet, raw, "both bounds are empty")
    if lower is not None and upper is not None and lower > upper:
        raise MalformedFacetError(facet, raw, "lower bound exceeds upper bound")
    return lower, upper


def parse_numeric_menu(raw: Any) -> Tuple[str, Any]:
    """Parse a numericMenu value into ("=", value) or ("range", (min, max))."""
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return "=", parse_number("numericMenu", raw)
    if not isinstance(raw, str):
        raise MalformedFacetError("numericMenu", raw, "expected a string")
    if ":" not in raw:
        return "=", parse_number("numericMenu", raw)
    return "range", parse_range(raw, facet="numericMenu")


def hierarchical_breadcrumb(path: str, separator: str) -> List[str]:
    """Expand "A > B > C" into ["A", "A > B", "A > B > C"]."""
    parts = path.split(separator)
    return [separator.join(parts[: i + 1]) for i in range(len(parts))]


def parse_hierarchical_breadcrumb(raw: Any, separator: str) -> str:
    """Validate a breadcrumb list and return its deepest path."""
    values: Sequence[Any]
    if isinstance(raw, str):
        values = [raw]
    elif isinstance(raw, (list, tuple)):
        values = raw
    else:
        raise MalformedFacetError("hierarchicalMenu", raw, "expected a list of strings")
    if not values:
        raise MalformedFacetError("hierarchicalMenu", raw, "empty path")
    previous: Optional[str] = None
    for value in values:
        if not isinstance(value, str) or not all(value.split(separator)):
            raise MalformedFacetError("hierarchicalMenu", raw, "levels must be non-empty strings")
        if previous is not None:
            if not value.startswith(previous + separator):
                raise MalformedFacetError(
                    "hierarchicalMenu", raw, f"{value!r} does not extend {previous!r}"
                )
            if separator in value[len(previous) + len(separator) :]:
                raise MalformedFacetError("hierarchicalMenu", raw, f"{value!r} skips a level")
        previous = value
    return str(previous)


def _parse_coordinates(facet: str, raw: Any, count: int) -> Tuple[float, ...]:
    if not isinstance(raw, str):
        raise MalformedFacetError(facet, raw, "expected a string")
    parts = raw.split(",")
    if len(parts) != count:
        raise MalformedFacetError(facet, raw, f"expected {count} comma-separated numbers")
    numbers = tuple(parse_number(facet, p) for p in parts)
    for lat, lng in zip(numbers[::2], numbers[1::2]):
        if not -90.0 <= lat <= 90.0 or not -180.0 <= lng <= 180.0:
            raise MalformedFacetError(facet, raw, "coordinates out of range")
    return numbers


def format_bounding_box(box: Sequence[float]) -> str:
    return ",".join(format_number(v) for v in box)


def parse_bounding_box(raw: Any) -> Tuple[float, float, float, float]:
    lat1, lng1, lat2, lng2 = _parse_coordinates("geoSearch", raw, 4)
    return lat1, lng1, lat2, lng2


def format_position(lat: float, lng: float) -> str:
    return f"{format_number(lat)},{format_number(lng)}"


def parse_position(raw: Any) -> Tuple[float, float]:
    lat, lng = _parse_coordinates("places", raw, 2)
    return lat, lng
