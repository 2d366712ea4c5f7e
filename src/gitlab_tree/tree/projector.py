"""Flatten the forest into display rows, honouring expansion and the search filter."""

from dataclasses import dataclass
from typing import Optional

from gitlab_tree.tree.store import TreeStore


@dataclass(frozen=True)
class VisibleRow:
    """One display line: a node index and its depth below the root."""

    node: int
    depth: int


def project(store: TreeStore, query: Optional[str] = None) -> list[VisibleRow]:
    """Pre-order walk of every root; collapsed nodes hide their subtree.

    A non-empty ``query`` then keeps only rows whose name fuzzy-matches,
    as a flat list independent of ancestor matches.
    """
    rows: list[VisibleRow] = []
    # Explicit stack: catalog depth is unbounded by the API.
    stack = [(root, 0) for root in reversed(store.roots)]
    while stack:
        idx, depth = stack.pop()
        rows.append(VisibleRow(idx, depth))
        node = store.nodes[idx]
        if node.expanded:
            stack.extend((child, depth + 1) for child in reversed(node.children))
    if query:
        return filter_rows(rows, store, query)
    return rows


def filter_rows(rows: list[VisibleRow], store: TreeStore, query: str) -> list[VisibleRow]:
    needle = query.strip()
    if not needle:
        return list(rows)
    return [row for row in rows if fuzzy_match(needle, store.nodes[row.node].name)]


def fuzzy_match(needle: str, haystack: str) -> bool:
    """True if every character of ``needle`` occurs in ``haystack`` in order.

    Case-insensitive; the characters need not be contiguous.
    """
    remaining = iter(haystack.lower())
    return all(ch in remaining for ch in needle.lower())
