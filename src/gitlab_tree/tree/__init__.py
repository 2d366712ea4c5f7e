"""In-memory catalog tree: arena store, visibility projection, navigation."""

from .navigation import KeyAction, Navigator, Toast
from .projector import VisibleRow, filter_rows, fuzzy_match, project
from .store import Node, NodeKind, TreeStore, build_parent_map

__all__ = [
    "KeyAction",
    "Navigator",
    "Node",
    "NodeKind",
    "Toast",
    "TreeStore",
    "VisibleRow",
    "build_parent_map",
    "filter_rows",
    "fuzzy_match",
    "project",
]
