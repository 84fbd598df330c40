"""In-memory search client over plain record lists using Whoosh.

Text matching uses a RAM Whoosh index per search index; filtering, facet
counts, ranking by optional filters and pagination are evaluated in Python
over the wire parameters produced by `SearchParameters.to_query_params()`.
Intended for tests, demos and small offline datasets.
"""

from __future__ import annotations

import math
import re
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from whoosh import scoring
from whoosh.analysis import StemmingAnalyzer
from whoosh.fields import NUMERIC, TEXT, Schema
from whoosh.filedb.filestore import RamStorage
from whoosh.index import Index as WhooshIndex
from whoosh.qparser import MultifieldParser, OrGroup

from indextree.client.base_client import BaseSearchClient, SearchRequest
from indextree.exceptions import QueryExecutionError

DEFAULT_HITS_PER_PAGE = 20

_NUMERIC_FILTER = re.compile(r"^\s*(.+?)\s*(<=|>=|!=|=|<|>)\s*(-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?)\s*$")
_OPTIONAL_SCORE = re.compile(r"<score=(\d+(?:\.\d+)?)>$")

Record = Dict[str, Any]


def _lookup(record: Mapping[str, Any], attribute: str) -> Any:
    node: Any = record
    for part in attribute.split("."):
        if not isinstance(node, Mapping):
            return None
        node = node.get(part)
    return node


def _as_facet_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def facet_values(record: Mapping[str, Any], attribute: str) -> List[str]:
    value = _lookup(record, attribute)
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [_as_facet_value(v) for v in value if v is not None]
    return [_as_facet_value(value)]


def numeric_values(record: Mapping[str, Any], attribute: str) -> List[float]:
    value = _lookup(record, attribute)
    items = value if isinstance(value, (list, tuple)) else [value]
    return [float(v) for v in items if isinstance(v, (int, float)) and not isinstance(v, bool)]


def _split_facet_filter(expression: str) -> Tuple[str, str, bool]:
    attribute, sep, value = expression.partition(":")
    if not sep:
        raise QueryExecutionError(f"invalid facet filter {expression!r}")
    negated = value.startswith("-")
    return attribute, value[1:] if negated else value, negated


def _compare(left: float, op: str, right: float) -> bool:
    if op == "=":
        return left == right
    if op == "!=":
        return left != right
    if op == ">":
        return left > right
    if op == ">=":
        return left >= right
    if op == "<":
        return left < right
    return left <= right


class _Filter:
    """A conjunction of predicates over one record."""

    def __init__(self, attribute: Optional[str], predicate: Any, *, disjunctive: bool = False):
        self.attribute = attribute
        self.predicate = predicate
        # OR groups and numeric filters are ignored when counting their own facet
        self.disjunctive = disjunctive

    def __call__(self, record: Record) -> bool:
        return bool(self.predicate(record))


def _facet_predicate(expression: str):
    attribute, value, negated = _split_facet_filter(expression)
    if negated:
        return attribute, lambda r: value not in facet_values(r, attribute)
    return attribute, lambda r: value in facet_values(r, attribute)


def _numeric_predicate(expression: str):
    match = _NUMERIC_FILTER.match(expression)
    if match is None:
        raise QueryExecutionError(f"invalid numeric filter {expression!r}")
    attribute, op, raw = match.groups()
    bound = float(raw)
    return attribute, lambda r: any(_compare(v, op, bound) for v in numeric_values(r, attribute))


def _group_attribute(attributes: Sequence[str]) -> Optional[str]:
    unique = set(attributes)
    return unique.pop() if len(unique) == 1 else None


def build_filters(params: Mapping[str, Any]) -> List[_Filter]:
    filters: List[_Filter] = []

    for item in params.get("facetFilters") or []:
        if isinstance(item, str):
            attribute, predicate = _facet_predicate(item)
            filters.append(_Filter(attribute, predicate))
            continue
        group = [_facet_predicate(expr) for expr in item]
        predicates = [p for _, p in group]
        filters.append(
            _Filter(
                _group_attribute([a for a, _ in group]),
                lambda r, ps=predicates: any(p(r) for p in ps),
                disjunctive=True,
            )
        )

    for item in params.get("numericFilters") or []:
        expressions = [item] if isinstance(item, str) else list(item)
        group = [_numeric_predicate(expr) for expr in expressions]
        predicates = [p for _, p in group]
        filters.append(
            _Filter(
                _group_attribute([a for a, _ in group]),
                lambda r, ps=predicates: any(p(r) for p in ps),
                disjunctive=True,
            )
        )

    for tag in params.get("tagFilters") or []:
        tags = [tag] if isinstance(tag, str) else list(tag)
        filters.append(
            _Filter(None, lambda r, ts=tags: any(t in facet_values(r, "_tags") for t in ts))
        )

    for box in params.get("insideBoundingBox") or []:
        filters.append(_Filter(None, lambda r, b=box: _inside_box(r, b)))

    expression = params.get("filters")
    if expression:
        filters.extend(_parse_filters(str(expression)))
    return filters


def _parse_filters(expression: str) -> List[_Filter]:
    """Parse a conjunction such as "NOT objectID:42 AND price > 10"."""
    out: List[_Filter] = []
    for clause in re.split(r"\s+AND\s+", expression.strip()):
        negate = clause.startswith("NOT ")
        body = clause[4:].strip() if negate else clause.strip()
        if _NUMERIC_FILTER.match(body):
            attribute, predicate = _numeric_predicate(body)
        else:
            attribute, predicate = _facet_predicate(body)
        if negate:
            out.append(_Filter(attribute, lambda r, p=predicate: not p(r)))
        else:
            out.append(_Filter(attribute, predicate))
    return out


def _geoloc(record: Mapping[str, Any]) -> Optional[Tuple[float, float]]:
    geo = record.get("_geoloc")
    if isinstance(geo, Mapping) and "lat" in geo and "lng" in geo:
        return float(geo["lat"]), float(geo["lng"])
    return None


def _inside_box(record: Mapping[str, Any], box: Sequence[float]) -> bool:
    point = _geoloc(record)
    if point is None:
        return False
    lat1, lng1, lat2, lng2 = (float(v) for v in box)
    lat, lng = point
    return min(lat1, lat2) <= lat <= max(lat1, lat2) and min(lng1, lng2) <= lng <= max(lng1, lng2)


def _distance_km(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    lat1, lng1, lat2, lng2 = map(math.radians, (*a, *b))
    h = math.sin((lat2 - lat1) / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(
        (lng2 - lng1) / 2
    ) ** 2
    return 6371.0 * 2 * math.asin(math.sqrt(h))


def _optional_score(record: Record, optional_filters: Iterable[Any]) -> float:
    score = 0.0
    for item in optional_filters:
        expressions = [item] if isinstance(item, str) else list(item)
        for expression in expressions:
            weight = 1.0
            match = _OPTIONAL_SCORE.search(expression)
            if match is not None:
                weight = float(match.group(1))
                expression = expression[: match.start()]
            _, predicate = _facet_predicate(expression)
            if predicate(record):
                score += weight
    return score


class MemorySearchClient(BaseSearchClient):
    """Search client answering from records held in memory.

    `indices` maps index names to record lists. Records without an
    `objectID` get their position as one. Text is matched on
    `searchable_attributes` (default: every top-level string attribute).
    """

    def __init__(
        self,
        indices: Optional[Mapping[str, Sequence[Mapping[str, Any]]]] = None,
        *,
        searchable_attributes: Optional[Sequence[str]] = None,
    ) -> None:
        self.searchable_attributes = list(searchable_attributes or [])
        self._records: Dict[str, List[Record]] = {}
        self._text_indexes: Dict[str, Tuple[WhooshIndex, List[str]]] = {}
        self.requests: List[SearchRequest] = []
        for name, records in (indices or {}).items():
            self.add_records(name, records)

    def add_records(self, index_name: str, records: Iterable[Mapping[str, Any]]) -> None:
        existing = self._records.setdefault(index_name, [])
        for record in records:
            row = dict(record)
            row.setdefault("objectID", str(len(existing)))
            existing.append(row)
        self._text_indexes.pop(index_name, None)

    async def search(self, requests: Sequence[SearchRequest]) -> List[Dict[str, Any]]:
        self.requests.extend(requests)
        return [self._search_one(request) for request in requests]

    # ----- Text index -----

    def _fields_for(self, records: Sequence[Record]) -> List[str]:
        if self.searchable_attributes:
            return list(self.searchable_attributes)
        names = {
            key
            for record in records
            for key, value in record.items()
            if key != "objectID" and not key.startswith("_") and isinstance(value, str)
        }
        return sorted(names)

    def _text_index(self, index_name: str) -> Tuple[WhooshIndex, List[str]]:
        cached = self._text_indexes.get(index_name)
        if cached is not None:
            return cached
        records = self._records[index_name]
        attributes = self._fields_for(records)
        fields = [f"a{i}" for i in range(len(attributes))]
        analyzer = StemmingAnalyzer()
        schema = Schema(
            docnum=NUMERIC(stored=True, unique=True),
            **{name: TEXT(analyzer=analyzer) for name in fields},
        )
        idx = RamStorage().create_index(schema)
        writer = idx.writer(limitmb=32)
        for docnum, record in enumerate(records):
            row = {
                name: " ".join(facet_values(record, attribute))
                for name, attribute in zip(fields, attributes)
            }
            writer.add_document(docnum=docnum, **row)
        writer.commit()
        self._text_indexes[index_name] = (idx, fields)
        return idx, fields

    def _match_text(self, index_name: str, query: str) -> Optional[Dict[int, float]]:
        """docnum -> score for `query`, or None when every record matches."""
        if not query or not query.strip():
            return None
        idx, fields = self._text_index(index_name)
        if not fields:
            return {}
        with idx.searcher(weighting=scoring.BM25F()) as searcher:
            parser = MultifieldParser(fields, schema=idx.schema, group=OrGroup)
            results = searcher.search(parser.parse(query), limit=None)
            return {int(hit["docnum"]): float(hit.score or 0.0) for hit in results}

    # ----- Query evaluation -----

    def _search_one(self, request: SearchRequest) -> Dict[str, Any]:
        started = time.perf_counter()
        if request.index_name not in self._records:
            raise QueryExecutionError(f"index {request.index_name!r} does not exist", status_code=404)
        params = request.params
        records = self._records[request.index_name]
        query = str(params.get("query") or "")

        text_scores = self._match_text(request.index_name, query)
        candidates = [
            (docnum, record)
            for docnum, record in enumerate(records)
            if text_scores is None or docnum in text_scores
        ]
        filters = build_filters(params)
        matched = [(n, r) for n, r in candidates if all(f(r) for f in filters)]

        optional_filters = params.get("optionalFilters") or []
        origin = _parse_position(params.get("aroundLatLng"))

        def rank(item: Tuple[int, Record]) -> Tuple[float, float, float, int]:
            docnum, record = item
            distance = 0.0
            if origin is not None:
                point = _geoloc(record)
                distance = _distance_km(origin, point) if point is not None else math.inf
            return (
                -_optional_score(record, optional_filters),
                distance,
                -(text_scores or {}).get(docnum, 0.0),
                docnum,
            )

        matched.sort(key=rank)

        hits_per_page = int(params.get("hitsPerPage") or DEFAULT_HITS_PER_PAGE)
        page = int(params.get("page") or 0)
        nb_hits = len(matched)
        start = page * hits_per_page
        hits = [dict(record) for _, record in matched[start : start + hits_per_page]]

        facets, stats = self._facets(params, candidates, filters)
        return {
            "hits": hits,
            "nbHits": nb_hits,
            "page": page,
            "nbPages": math.ceil(nb_hits / hits_per_page) if hits_per_page else 0,
            "hitsPerPage": hits_per_page,
            "query": query,
            "index": request.index_name,
            "facets": facets,
            "facets_stats": stats,
            "processingTimeMS": int((time.perf_counter() - started) * 1000),
        }

    def _facets(
        self,
        params: Mapping[str, Any],
        candidates: Sequence[Tuple[int, Record]],
        filters: Sequence[_Filter],
    ) -> Tuple[Dict[str, Dict[str, int]], Dict[str, Dict[str, float]]]:
        facets: Dict[str, Dict[str, int]] = {}
        stats: Dict[str, Dict[str, float]] = {}
        for attribute in params.get("facets") or []:
            active = [f for f in filters if not (f.disjunctive and f.attribute == attribute)]
            counts: Dict[str, int] = {}
            numbers: List[float] = []
            for _, record in candidates:
                if not all(f(record) for f in active):
                    continue
                for value in facet_values(record, attribute):
                    counts[value] = counts.get(value, 0) + 1
                numbers.extend(numeric_values(record, attribute))
            if counts:
                facets[attribute] = counts
            if numbers:
                stats[attribute] = {
                    "min": min(numbers),
                    "max": max(numbers),
                    "avg": sum(numbers) / len(numbers),
                    "sum": sum(numbers),
                }
        return facets, stats


def _parse_position(raw: Any) -> Optional[Tuple[float, float]]:
    if not raw:
        return None
    lat, _, lng = str(raw).partition(",")
    try:
        return float(lat), float(lng)
    except ValueError as exc:
        raise QueryExecutionError(f"invalid aroundLatLng {raw!r}") from exc
