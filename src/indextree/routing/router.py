"""Routers read and write route states to a location.

`QueryStringRouter` keeps an in-process location and history (there is no
browser here): `write` pushes a new URL, `navigate` simulates the user
moving to a URL (back/forward, pasted link) and notifies the search.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional
from urllib.parse import urlsplit, urlunsplit

from loguru import logger

from indextree.routing.query_string import parse_query_string, stringify_query_string
from indextree.routing.state_mapping import SimpleStateMapping, StateMapping
from indextree.types import RouteState

RouteListener = Callable[[RouteState], None]


class Router(ABC):
    """Abstract router interface."""

    @abstractmethod
    def read(self) -> RouteState:
        """Return the route state of the current location."""
        raise NotImplementedError

    @abstractmethod
    def write(self, route: RouteState) -> None:
        """Persist `route` as the current location."""
        raise NotImplementedError

    @abstractmethod
    def create_url(self, route: RouteState) -> str:
        raise NotImplementedError

    @abstractmethod
    def on_update(self, listener: RouteListener) -> None:
        """Register `listener` for location changes not caused by `write`."""
        raise NotImplementedError

    def dispose(self) -> None:
        """Release listeners; the router is not used afterwards."""


class QueryStringRouter(Router):
    def __init__(self, base_url: str = "http://localhost/", *, location: Optional[str] = None) -> None:
        self.base_url = base_url
        self.location = location or base_url
        self.history: List[str] = [self.location]
        self._listeners: List[RouteListener] = []

    def read(self) -> RouteState:
        return parse_query_string(urlsplit(self.location).query)

    def create_url(self, route: RouteState) -> str:
        scheme, netloc, path, _, _ = urlsplit(self.base_url)
        return urlunsplit((scheme, netloc, path, stringify_query_string(route), ""))

    def write(self, route: RouteState) -> None:
        url = self.create_url(route)
        if url == self.location:
            return
        logger.debug(f"Router write: {url}")
        self.location = url
        self.history.append(url)

    def navigate(self, url: str) -> None:
        """Move to `url` and notify listeners with its route state."""
        self.location = url
        self.history.append(url)
        route = self.read()
        for listener in list(self._listeners):
            listener(route)

    def on_update(self, listener: RouteListener) -> None:
        self._listeners.append(listener)

    def dispose(self) -> None:
        self._listeners.clear()


@dataclass
class RoutingOptions:
    router: Router
    state_mapping: StateMapping

    @classmethod
    def default(cls, base_url: str = "http://localhost/") -> "RoutingOptions":
        return cls(router=QueryStringRouter(base_url), state_mapping=SimpleStateMapping())
