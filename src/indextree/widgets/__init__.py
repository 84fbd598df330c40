"""Widget catalogue; `Index` is the widget of variant "index"."""

from indextree.core.index import Index

from .clear_refinements import ClearRefinements
from .configure import Configure
from .geo_search import GeoSearch
from .hierarchical_menu import HierarchicalMenu
from .hits import Hits
from .hits_per_page import HitsPerPage
from .menu import Menu
from .numeric_menu import NumericMenu
from .pagination import Pagination
from .places import Places
from .range import Range
from .rating_menu import RatingMenu
from .refinement_list import RefinementList
from .related_hits import RelatedHits
from .search_box import SearchBox
from .sort_by import SortBy
from .toggle_refinement import ToggleRefinement

__all__ = [
    "Index",
    "SearchBox",
    "Hits",
    "Configure",
    "RefinementList",
    "Menu",
    "HierarchicalMenu",
    "NumericMenu",
    "Range",
    "RatingMenu",
    "ToggleRefinement",
    "GeoSearch",
    "Places",
    "SortBy",
    "Pagination",
    "HitsPerPage",
    "ClearRefinements",
    "RelatedHits",
]
