"""Per-index query helper: current parameters, last results and change events."""

from __future__ import annotations

from typing import Any, Optional

from indextree.events import EventEmitter
from indextree.helper.parameters import SearchParameters
from indextree.helper.results import SearchResults


class SearchHelper(EventEmitter):
    """Holds the live `SearchParameters` of one index node.

    Events
    ------
    change(state)
        The parameters were replaced (not emitted for silent updates).
    search(state)
        A search was requested; the owning index turns it into a scheduled tick.
    result(results)
        Fresh results were accepted for this helper.
    error(error)
        The query for this helper failed.
    """

    def __init__(self, state: SearchParameters) -> None:
        super().__init__()
        self.state = state
        self.last_results: Optional[SearchResults] = None

    def set_state(self, state: SearchParameters, *, silent: bool = False) -> "SearchHelper":
        changed = state != self.state
        self.state = state
        if changed and not silent:
            self.emit("change", state)
        return self

    def search(self) -> "SearchHelper":
        self.emit("search", self.state)
        return self

    # ----- Convenience mutators (chainable, like set_state) -----

    def set_query(self, query: str) -> "SearchHelper":
        return self.set_state(self.state.reset_page().set_query(query))

    def set_page(self, page: int) -> "SearchHelper":
        return self.set_state(self.state.set_page(page))

    def set_query_parameter(self, name: str, value: Any) -> "SearchHelper":
        return self.set_state(self.state.set_query_parameter(name, value))

    def toggle_refinement(self, attribute: str, value: Any) -> "SearchHelper":
        """Toggle `value` on whichever facet kind `attribute` is declared as."""
        state = self.state.reset_page()
        if state.is_hierarchical_facet(attribute):
            state = state.toggle_hierarchical_facet_refinement(attribute, str(value))
        elif state.is_disjunctive_facet(attribute):
            state = state.toggle_disjunctive_facet_refinement(attribute, value)
        elif state.is_conjunctive_facet(attribute):
            state = state.toggle_facet_refinement(attribute, value)
        else:
            raise ValueError(f"{attribute!r} is not declared as a facet")
        return self.set_state(state)

    def clear_refinements(self, attribute: Optional[str] = None) -> "SearchHelper":
        return self.set_state(self.state.reset_page().clear_refinements(attribute))

    def receive_results(self, results: SearchResults) -> None:
        self.last_results = results
        self.emit("result", results)

    def receive_error(self, error: BaseException) -> None:
        self.emit("error", error)
