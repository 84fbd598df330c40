"""Base interfaces for search clients.

A client receives one combined batch per search tick (one request per
mounted index) and returns one raw result per request, in order.
Implementations should be safe to construct without side effects and should
not perform network calls until `search` is awaited.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence


@dataclass(slots=True)
class SearchRequest:
    index_name: str
    params: Dict[str, Any] = field(default_factory=dict)
    # Key of the issuing index node; informational for clients
    index_key: str = ""


class BaseSearchClient(ABC):
    """Abstract search client interface."""

    @abstractmethod
    async def search(self, requests: Sequence[SearchRequest]) -> List[Dict[str, Any]]:
        """Execute `requests` and return raw results in the same order.

        Raises `QueryExecutionError` when the batch cannot be executed.
        """
        raise NotImplementedError
