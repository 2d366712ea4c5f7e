"""Cursor, expand/collapse, chord and search state over a built tree.

The navigator consumes one logical key code per input event. Named keys use
the constants below; any other single-character string is a printable key.
All operations are total: empty views and out-of-range selections are
clamped, never raised.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from gitlab_tree.sinks import BrowserOpener, ClipboardSink, SinkError
from gitlab_tree.tree.projector import VisibleRow, project
from gitlab_tree.tree.store import Node, TreeStore


logger = logging.getLogger(__name__)

KEY_UP = "up"
KEY_DOWN = "down"
KEY_LEFT = "left"
KEY_RIGHT = "right"
KEY_ENTER = "enter"
KEY_ESCAPE = "escape"
KEY_BACKSPACE = "backspace"

CHORD_TOP = "g"

TOAST_TTL = 10  # UI ticks


class KeyAction(Enum):
    """What the interactive loop must do after a key press."""

    NONE = "none"
    QUIT = "quit"
    RELOAD = "reload"


@dataclass
class Toast:
    """Short-lived notice; ``remaining`` counts down once per UI tick."""

    message: str
    remaining: int = TOAST_TTL


def is_printable(key: str) -> bool:
    return len(key) == 1 and key.isprintable()


class Navigator:
    """Interactive state for one loaded tree."""

    def __init__(self, store: TreeStore, status: Optional[str] = None):
        self.store = store
        self.selected = 0
        self.status = status
        self.pending_g = False
        self.toast: Optional[Toast] = None
        self.search_query: Optional[str] = None
        self.search_mode = False

    def visible(self) -> list[VisibleRow]:
        """Current projection; recomputed on every call."""
        return project(self.store, self.search_query)

    def selected_row(self, visible: Optional[list[VisibleRow]] = None) -> Optional[VisibleRow]:
        if visible is None:
            visible = self.visible()
        if not visible:
            return None
        self.ensure_selection(len(visible))
        return visible[self.selected]

    def selected_node(self, visible: Optional[list[VisibleRow]] = None) -> Optional[Node]:
        row = self.selected_row(visible)
        return self.store.nodes[row.node] if row else None

    def ensure_selection(self, visible_len: int) -> None:
        if visible_len == 0:
            self.selected = 0
        elif self.selected >= visible_len:
            self.selected = visible_len - 1

    def _reanchor(self, node: Optional[int]) -> None:
        """Follow ``node`` to its new position, or clamp if it disappeared."""
        visible = self.visible()
        if node is not None:
            for pos, row in enumerate(visible):
                if row.node == node:
                    self.selected = pos
                    return
        self.ensure_selection(len(visible))

    def _select_node(self, node: int, visible: list[VisibleRow]) -> None:
        for pos, row in enumerate(visible):
            if row.node == node:
                self.selected = pos
                return

    # Movement

    def move_up(self) -> None:
        if self.selected > 0:
            self.selected -= 1

    def move_down(self, visible_len: int) -> None:
        if self.selected + 1 < visible_len:
            self.selected += 1

    def move_top(self) -> None:
        self.selected = 0

    def move_bottom(self, visible_len: int) -> None:
        if visible_len > 0:
            self.selected = visible_len - 1

    # Structure

    def expand_or_child(self, visible: list[VisibleRow]) -> None:
        """Expand a collapsed group; on an expanded one, drill into its first child."""
        row = self.selected_row(visible)
        if row is None:
            return
        node = self.store.nodes[row.node]
        if not node.has_children:
            return
        if not node.expanded:
            self.store.expand(row.node)
            self._reanchor(row.node)
        else:
            self._select_node(node.children[0], visible)

    def collapse_or_parent(self, visible: list[VisibleRow]) -> None:
        """Collapse an expanded node; otherwise move to its parent."""
        row = self.selected_row(visible)
        if row is None:
            return
        node = self.store.nodes[row.node]
        if node.expanded:
            self.store.collapse(row.node)
            self._reanchor(row.node)
            return
        parent = self.store.parent_of(row.node)
        if parent is not None:
            self._select_node(parent, visible)

    # Side effects

    def yank_selected(self, visible: list[VisibleRow], clipboard: ClipboardSink) -> str:
        node = self.selected_node(visible)
        if node is None:
            raise SinkError("no selection")
        clipboard.set_text(node.url)
        return node.url

    def open_selected(self, visible: list[VisibleRow], browser: BrowserOpener) -> str:
        node = self.selected_node(visible)
        if node is None:
            raise SinkError("no selection")
        browser.open(node.url)
        return node.url

    # Status and toast

    def set_status(self, message: str) -> None:
        self.status = message

    def set_toast(self, message: str) -> None:
        self.toast = Toast(message)

    def tick_toast(self) -> None:
        if self.toast is None:
            return
        if self.toast.remaining > 0:
            self.toast.remaining -= 1
        if self.toast.remaining == 0:
            self.toast = None

    # Search

    def start_search(self) -> None:
        anchor = self._anchor()
        self.search_mode = True
        self.search_query = ""
        self._reanchor(anchor)

    def exit_search_mode(self) -> None:
        """Confirm: keep the query applied; an empty query clears the filter."""
        self.search_mode = False
        if not self.search_query:
            self.search_query = None

    def clear_search(self) -> None:
        anchor = self._anchor()
        self.search_query = None
        self.search_mode = False
        self._reanchor(anchor)

    def push_search_char(self, ch: str) -> None:
        anchor = self._anchor()
        self.search_query = (self.search_query or "") + ch
        self._reanchor(anchor)

    def pop_search_char(self) -> None:
        if self.search_query is None:
            return
        anchor = self._anchor()
        self.search_query = self.search_query[:-1]
        if not self.search_query and not self.search_mode:
            self.search_query = None
        self._reanchor(anchor)

    def _anchor(self) -> Optional[int]:
        row = self.selected_row()
        return row.node if row else None

    # Key dispatch

    def handle_key(
        self,
        key: str,
        clipboard: Optional[ClipboardSink] = None,
        browser: Optional[BrowserOpener] = None,
    ) -> KeyAction:
        """Apply one logical key code and report any loop-level action."""
        if key != CHORD_TOP or self.search_mode:
            chord_armed = False
            self.pending_g = False
        else:
            chord_armed = self.pending_g

        if self.search_mode:
            self._handle_search_key(key)
            return KeyAction.NONE

        visible = self.visible()
        self.ensure_selection(len(visible))

        if key == "q":
            return KeyAction.QUIT
        if key == "r":
            return KeyAction.RELOAD

        if key in (KEY_UP, "k"):
            self.move_up()
        elif key in (KEY_DOWN, "j"):
            self.move_down(len(visible))
        elif key in (KEY_LEFT, "h"):
            self.collapse_or_parent(visible)
        elif key in (KEY_RIGHT, "l"):
            self.expand_or_child(visible)
        elif key == CHORD_TOP:
            if chord_armed:
                self.pending_g = False
                self.move_top()
            else:
                self.pending_g = True
        elif key == "G":
            self.move_bottom(len(visible))
        elif key == "y":
            self._copy(visible, clipboard)
        elif key == "o":
            self._open(visible, browser)
        elif key == "/":
            self.start_search()
        elif key == KEY_ESCAPE:
            self.clear_search()

        return KeyAction.NONE

    def _handle_search_key(self, key: str) -> None:
        if key == KEY_ESCAPE:
            self.clear_search()
        elif key == KEY_ENTER:
            self.exit_search_mode()
        elif key == KEY_BACKSPACE:
            self.pop_search_char()
        elif is_printable(key):
            self.push_search_char(key)

    def _copy(self, visible: list[VisibleRow], clipboard: Optional[ClipboardSink]) -> None:
        if clipboard is None:
            self.set_status("clipboard unavailable")
            return
        try:
            url = self.yank_selected(visible, clipboard)
        except SinkError as e:
            logger.warning("Copy failed: %s", e)
            self.set_status(f"copy failed: {e}")
            return
        self.set_status(f"copied {url}")
        self.set_toast("Copied URL")

    def _open(self, visible: list[VisibleRow], browser: Optional[BrowserOpener]) -> None:
        if browser is None:
            self.set_status("open failed: no browser opener")
            return
        try:
            url = self.open_selected(visible, browser)
        except SinkError as e:
            logger.warning("Open failed: %s", e)
            self.set_status(f"open failed: {e}")
            return
        self.set_status(f"opened {url}")
