"""HTTP search client speaking the Algolia multi-query protocol.

Uses httpx. Auth: application id + search-only API key headers.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlencode

import httpx
from loguru import logger

from indextree.client.base_client import BaseSearchClient, SearchRequest
from indextree.config import ClientConfig
from indextree.exceptions import ConfigError, QueryExecutionError

QUERIES_PATH = "/1/indexes/*/queries"


def encode_params(params: Dict[str, Any]) -> str:
    """URL-encode query params; lists and dicts are sent as JSON literals."""
    flat: Dict[str, str] = {}
    for key, value in params.items():
        if isinstance(value, (list, tuple, dict)):
            flat[key] = _json_literal(value)
        elif isinstance(value, bool):
            flat[key] = "true" if value else "false"
        else:
            flat[key] = str(value)
    return urlencode(flat)


def _json_literal(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


class HttpSearchClient(BaseSearchClient):
    def __init__(
        self,
        *,
        app_id: str,
        api_key: str,
        base_url: Optional[str] = None,
        verify_ssl: bool = True,
        timeout: float = 30.0,
    ) -> None:
        self.app_id = app_id
        self.api_key = api_key
        self.base_url = (base_url or f"https://{app_id}-dsn.algolia.net").rstrip("/")
        self.verify_ssl = verify_ssl
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: ClientConfig) -> "HttpSearchClient":
        if not config.app_id or not config.api_key:
            raise ConfigError("client.app_id and client.api_key are required")
        return cls(
            app_id=config.app_id,
            api_key=config.api_key,
            base_url=config.base_url,
            verify_ssl=config.verify_ssl,
            timeout=config.timeout,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            verify=self.verify_ssl,
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
                "X-Algolia-Application-Id": self.app_id,
                "X-Algolia-API-Key": self.api_key,
            },
        )

    async def search(self, requests: Sequence[SearchRequest]) -> List[Dict[str, Any]]:
        payload = {
            "requests": [
                {"indexName": r.index_name, "params": encode_params(r.params)} for r in requests
            ]
        }
        try:
            async with self._client() as client:
                resp = await client.post(QUERIES_PATH, json=payload)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise QueryExecutionError(
                f"search failed with HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise QueryExecutionError(f"search request failed: {exc!r}") from exc
        except ValueError as exc:
            raise QueryExecutionError("search response is not valid JSON") from exc

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list) or len(results) != len(requests):
            raise QueryExecutionError("search response has no matching 'results' list")
        logger.debug(f"Received {len(results)} result(s) from {self.base_url}")
        return [r if isinstance(r, dict) else {} for r in results]
