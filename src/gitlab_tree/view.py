"""Immutable rendering snapshots for the terminal UI.

Everything here is a pure function of navigator state, so the layout code in
:mod:`gitlab_tree.tui` only arranges strings.
"""

from dataclasses import dataclass
from typing import Optional

from gitlab_tree.tree.navigation import Navigator
from gitlab_tree.tree.projector import VisibleRow
from gitlab_tree.tree.store import Node, TreeStore


KEY_HINTS = (
    "q quit | r refresh | up/down move | right expand | left collapse "
    "| y yank | o open | / search"
)


@dataclass(frozen=True)
class RowView:
    """Display fields for one visible row."""

    node: int
    depth: int
    marker: str
    kind: str
    name: str

    @property
    def text(self) -> str:
        return f"{'  ' * self.depth}{self.marker} {self.kind} {self.name}"


@dataclass(frozen=True)
class RenderState:
    """Everything the layout needs for one frame."""

    rows: tuple[RowView, ...]
    selected: int
    details: tuple[str, ...]
    footer: str
    toast: Optional[str] = None
    toast_remaining: int = 0
    search_mode: bool = False
    search_query: Optional[str] = None


def node_marker(node: Node) -> str:
    if not node.has_children:
        return " * "
    return "[-]" if node.expanded else "[+]"


def row_view(store: TreeStore, row: VisibleRow) -> RowView:
    node = store.nodes[row.node]
    return RowView(
        node=row.node,
        depth=row.depth,
        marker=node_marker(node),
        kind=node.kind.value,
        name=node.name,
    )


def format_node_details(node: Node) -> list[str]:
    lines = [
        f"Name: {node.name}",
        f"Kind: {node.kind.label}",
        f"Path: {node.path}",
        f"Visibility: {node.visibility or 'unknown'}",
        f"URL: {node.url}",
    ]
    if node.last_activity:
        lines.append(f"Last activity: {node.last_activity}")
    return lines


def footer_text(
    gitlab_url: str,
    has_token: bool,
    status: Optional[str] = None,
    search_query: Optional[str] = None,
    search_mode: bool = False,
) -> str:
    token_state = "token: set" if has_token else "token: unset"
    footer = f"{KEY_HINTS} | {gitlab_url} | {token_state}"
    if status:
        footer += f" | {status}"
    if search_query is not None:
        label = "search*" if search_mode else "search"
        footer += f" | {label}: {search_query}"
    return footer


def render_state(navigator: Navigator, gitlab_url: str, has_token: bool) -> RenderState:
    """Snapshot the navigator for one frame."""
    visible = navigator.visible()
    navigator.ensure_selection(len(visible))
    rows = tuple(row_view(navigator.store, row) for row in visible)
    selected = navigator.selected_node(visible)
    details = tuple(format_node_details(selected)) if selected else ("No selection",)
    toast = navigator.toast

    return RenderState(
        rows=rows,
        selected=navigator.selected,
        details=details,
        footer=footer_text(
            gitlab_url,
            has_token,
            navigator.status,
            navigator.search_query,
            navigator.search_mode,
        ),
        toast=toast.message if toast else None,
        toast_remaining=toast.remaining if toast else 0,
        search_mode=navigator.search_mode,
        search_query=navigator.search_query,
    )


def scroll_offset(offset: int, selected: int, height: int) -> int:
    """First row to draw so that ``selected`` stays inside ``height`` rows."""
    if height <= 0:
        return 0
    if selected < offset:
        return selected
    if selected >= offset + height:
        return selected - height + 1
    return offset
