"""Shared type aliases for the serialized and aggregated state shapes."""

from __future__ import annotations

from typing import Any, Dict

# Flat, JSON-serializable state of one index: facet name -> facet value
IndexUiState = Dict[str, Any]
# Index key -> IndexUiState
UiState = Dict[str, IndexUiState]

# Widget-type tag -> payload (or attribute -> payload for attribute-keyed widgets)
IndexRenderState = Dict[str, Any]
# Index key -> IndexRenderState
RenderState = Dict[str, IndexRenderState]

# Router-facing projection of a UiState
RouteState = Dict[str, Any]
