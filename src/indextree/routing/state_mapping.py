"""Mappings between the engine's UiState and the router's route state."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping

from indextree.types import RouteState, UiState


class StateMapping(ABC):
    """Pure, bidirectional projection between UiState and a route."""

    @abstractmethod
    def state_to_route(self, ui_state: UiState) -> RouteState:
        raise NotImplementedError

    @abstractmethod
    def route_to_state(self, route: RouteState) -> UiState:
        raise NotImplementedError


def _without_configure(index_state: Any) -> dict:
    if not isinstance(index_state, Mapping):
        return {}
    return {k: v for k, v in index_state.items() if k != "configure"}


class SimpleStateMapping(StateMapping):
    """Route = UiState without the `configure` blocks (they are code, not URL state)."""

    def state_to_route(self, ui_state: UiState) -> RouteState:
        return {key: _without_configure(value) for key, value in ui_state.items()}

    def route_to_state(self, route: RouteState) -> UiState:
        return {key: _without_configure(value) for key, value in route.items()}


class SingleIndexStateMapping(StateMapping):
    """Route = the flat state of one index, for single-index URLs."""

    def __init__(self, index_key: str) -> None:
        self.index_key = index_key

    def state_to_route(self, ui_state: UiState) -> RouteState:
        return _without_configure(ui_state.get(self.index_key))

    def route_to_state(self, route: RouteState) -> UiState:
        return {self.index_key: _without_configure(route)}
