"""Bracket-nested query-string codec for route states.

    {"products": {"refinementList": {"brand": ["Apple", "Dell"]}, "page": 2}}

serializes to

    products[refinementList][brand][0]=Apple&products[refinementList][brand][1]=Dell&products[page]=2

Keys and values are percent-encoded. Parsing rebuilds nested dictionaries
and turns maps whose keys are exactly 0..n-1 back into lists. Scalars come
back as strings; translators coerce them.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterator, List, Mapping, Tuple
from urllib.parse import quote, unquote_plus

_KEY_SEGMENT = re.compile(r"\[([^\[\]]*)\]")


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _flatten(prefix: str, value: Any) -> Iterator[Tuple[str, str]]:
    if isinstance(value, Mapping):
        for key, item in value.items():
            yield from _flatten(f"{prefix}[{key}]", item)
    elif isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            yield from _flatten(f"{prefix}[{i}]", item)
    elif value is not None:
        yield prefix, _scalar(value)


def stringify_query_string(state: Mapping[str, Any]) -> str:
    """Serialize a nested mapping; `None` values and empty containers are dropped."""
    pairs: List[str] = []
    for key, value in state.items():
        for path, scalar in _flatten(str(key), value):
            pairs.append(f"{quote(path, safe='[]')}={quote(scalar, safe='')}")
    return "&".join(pairs)


def _split_key(raw_key: str) -> List[str]:
    head, bracket, rest = raw_key.partition("[")
    if not bracket:
        return [raw_key]
    return [head] + _KEY_SEGMENT.findall("[" + rest)


def _listify(node: Any) -> Any:
    if not isinstance(node, dict):
        return node
    converted = {key: _listify(value) for key, value in node.items()}
    keys = list(converted)
    if keys and all(k.isdigit() for k in keys):
        indices = sorted(int(k) for k in keys)
        if indices == list(range(len(indices))):
            return [converted[str(i)] for i in indices]
    return converted


def parse_query_string(query: str) -> Dict[str, Any]:
    """Parse a query string (with or without a leading "?") into nested data."""
    root: Dict[str, Any] = {}
    for pair in query.lstrip("?").split("&"):
        if not pair:
            continue
        raw_key, _, raw_value = pair.partition("=")
        path = _split_key(unquote_plus(raw_key))
        if not path[0]:
            continue
        value = unquote_plus(raw_value)
        node = root
        for segment in path[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = node[segment] = {}
            node = child
        node[path[-1]] = value
    return {key: _listify(value) for key, value in root.items()}
