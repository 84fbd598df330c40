"""Custom exception hierarchy for indextree.

These exceptions allow callers to discriminate error categories
and handle them appropriately while preserving the original context.
"""

from __future__ import annotations

from typing import Any, Optional


class IndexTreeError(Exception):
    """Base class for all indextree exceptions."""


class ConfigError(IndexTreeError):
    """Raised when configuration loading or validation fails."""


class MalformedFacetError(IndexTreeError, ValueError):
    """Raised when a serialized UiState facet does not follow its grammar.

    Translators catch it and treat the facet as absent.
    """

    def __init__(self, facet: str, value: Any, reason: str = "") -> None:
        self.facet = facet
        self.value = value
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Malformed {facet} value {value!r}{detail}")


class WidgetHookError(IndexTreeError):
    """Raised (and reported, never thrown into traversal) when a widget hook fails."""

    def __init__(self, widget: Any, hook: str, original: BaseException) -> None:
        self.widget = widget
        self.hook = hook
        self.original = original
        widget_type = getattr(widget, "widget_type", type(widget).__name__)
        super().__init__(f"{widget_type}.{hook} failed: {original!r}")


class WidgetLifecycleError(IndexTreeError):
    """Raised for invalid widgets or lifecycle operations in the wrong state."""


class DuplicateIndexIdError(WidgetLifecycleError):
    """Raised when two index nodes would share the same UiState key."""


class QueryExecutionError(IndexTreeError):
    """Raised by search clients when a query batch cannot be executed."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)
