"""Main gitlab-tree TUI application."""

import functools
import logging
from typing import Callable, Optional

from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Static
from textual.worker import Worker

from gitlab_tree.config import TreeConfig
from gitlab_tree.loader import LoadOutcome, loading_message, start_load_worker, worker_outcome
from gitlab_tree.pipeline import IngestResult, run_ingestion
from gitlab_tree.sinks import BrowserOpener, ClipboardSink, WebBrowserOpener
from gitlab_tree.tree import KeyAction, Navigator, Toast, TreeStore
from gitlab_tree.tree.navigation import (
    KEY_BACKSPACE,
    KEY_DOWN,
    KEY_ENTER,
    KEY_ESCAPE,
    KEY_LEFT,
    KEY_RIGHT,
    KEY_UP,
    TOAST_TTL,
)
from gitlab_tree.view import RenderState, render_state, scroll_offset


logger = logging.getLogger(__name__)

TICK_SECONDS = 0.2

JobFactory = Callable[[bool], Callable[[], IngestResult]]

_NAMED_KEYS = {
    "up": KEY_UP,
    "down": KEY_DOWN,
    "left": KEY_LEFT,
    "right": KEY_RIGHT,
    "enter": KEY_ENTER,
    "escape": KEY_ESCAPE,
    "backspace": KEY_BACKSPACE,
}


def translate_key(key: str, character: Optional[str]) -> Optional[str]:
    """Map a Textual key event onto a logical key code, or None to ignore it."""
    if key in _NAMED_KEYS:
        return _NAMED_KEYS[key]
    if character and len(character) == 1 and character.isprintable():
        return character
    return None


def default_job_factory(config: TreeConfig) -> JobFactory:
    """Jobs that run the real pipeline; a reload skips the cache read."""

    def factory(reload: bool) -> Callable[[], IngestResult]:
        return functools.partial(run_ingestion, config, use_cache=not reload)

    return factory


class CatalogPane(Static, can_focus=True):
    """Tree list; owns keyboard focus and forwards every key to the app."""

    def on_key(self, event: events.Key) -> None:
        key = translate_key(event.key, event.character)
        if key is None:
            return
        event.stop()
        event.prevent_default()
        self.app.handle_logical_key(key)


class GitLabTreeApp(App):
    """Interactive browser for GitLab groups and projects."""

    TITLE = "GitLab Tree"
    ENABLE_COMMAND_PALETTE = False

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-layout {
        height: 1fr;
    }

    #tree-pane {
        width: 60%;
        height: 100%;
        border: round $primary;
        border-title-align: left;
    }

    #details-pane {
        width: 40%;
        height: 100%;
        border: round $secondary;
    }

    #footer-bar {
        height: 2;
        padding: 0 1;
        color: $text-muted;
    }
    """

    def __init__(
        self,
        config: TreeConfig,
        job_factory: Optional[JobFactory] = None,
        clipboard: Optional[ClipboardSink] = None,
        browser: Optional[BrowserOpener] = None,
    ):
        super().__init__()
        self.config = config
        self.job_factory = job_factory or default_job_factory(config)
        self.navigator: Optional[Navigator] = None
        self.clipboard_sink = clipboard
        self.browser = browser or WebBrowserOpener()
        self.load_generation = 0
        self._load_worker: Optional[Worker[IngestResult]] = None
        self._spinner_tick = 0
        self._loading_text = ""
        self._notified_toast: Optional[Toast] = None
        self._offset = 0

    def compose(self) -> ComposeResult:
        with Vertical(id="app-body"):
            with Horizontal(id="main-layout"):
                yield CatalogPane("", id="tree-pane")
                yield Static("", id="details-pane")
            yield Static("", id="footer-bar")

    def on_mount(self) -> None:
        tree_pane = self.query_one("#tree-pane", CatalogPane)
        tree_pane.border_title = "GitLab Tree"
        self.query_one("#details-pane", Static).border_title = "Details"
        tree_pane.focus()

        self.start_load()
        self.set_interval(TICK_SECONDS, self.on_tick)

    def start_load(self, reload: bool = False) -> None:
        """Drop the current tree and start a background load.

        The new worker replaces the previous one, which is cancelled and
        never read again.
        """
        self.navigator = None
        self._offset = 0
        self._spinner_tick = 0
        self.load_generation += 1
        job = self.job_factory(reload)
        self._load_worker = start_load_worker(self, job, self.load_generation)
        self._advance_spinner()
        self.refresh_view()

    def on_tick(self) -> None:
        worker = self._load_worker
        if worker is not None and worker.is_finished:
            self._load_worker = None
            outcome = worker_outcome(worker)
            if outcome is not None:
                self.apply_outcome(outcome)
        if self.navigator is not None:
            self.navigator.tick_toast()
        elif self._load_worker is not None:
            self._advance_spinner()
        self.refresh_view()

    def _advance_spinner(self) -> None:
        self._loading_text = loading_message(self._spinner_tick)
        self._spinner_tick += 1

    def apply_outcome(self, outcome: LoadOutcome[IngestResult]) -> None:
        """Build a fresh navigator from the load result; selection starts at 0."""
        if outcome.ok and outcome.value is not None:
            store = TreeStore.from_snapshot(outcome.value.snapshot)
            self.navigator = Navigator(store, outcome.value.status)
        else:
            logger.error("Showing sample tree after load error: %s", outcome.error)
            self.navigator = Navigator(TreeStore.sample(), f"load error: {outcome.error}")
        self._offset = 0

    def handle_logical_key(self, key: str) -> None:
        if self.navigator is None:
            # Only quit is honoured while loading.
            if key == "q":
                self.exit()
            return

        action = self.navigator.handle_key(key, self.clipboard_sink, self.browser)
        if action is KeyAction.QUIT:
            self.exit()
        elif action is KeyAction.RELOAD:
            self.start_load(reload=True)
        else:
            self.refresh_view()

    def refresh_view(self) -> None:
        tree_pane = self.query_one("#tree-pane", CatalogPane)
        details_pane = self.query_one("#details-pane", Static)
        footer = self.query_one("#footer-bar", Static)

        if self.navigator is None:
            tree_pane.update(self._loading_text)
            details_pane.update("")
            footer.update("q quit")
            return

        state = render_state(self.navigator, self.config.gitlab_url, self.config.has_token)
        tree_pane.update(self._render_rows(state, tree_pane.content_size.height))
        details_pane.update(Text("\n".join(state.details)))
        footer.update(Text(state.footer))
        self._notify_toast(self.navigator.toast)

    def _notify_toast(self, toast: Optional[Toast]) -> None:
        # Each toast is shown once; Textual times the notification out.
        if toast is None or toast is self._notified_toast:
            return
        self._notified_toast = toast
        self.notify(toast.message, timeout=TOAST_TTL * TICK_SECONDS)

    def _render_rows(self, state: RenderState, height: int) -> Text:
        self._offset = scroll_offset(self._offset, state.selected, height)
        window = state.rows[self._offset:self._offset + height] if height > 0 else state.rows
        text = Text(no_wrap=True, overflow="ellipsis")
        for pos, row in enumerate(window, start=self._offset):
            if pos > self._offset:
                text.append("\n")
            style = "reverse" if pos == state.selected else ""
            text.append(row.text, style=style)
        return text


def run_tui(config: TreeConfig, clipboard: Optional[ClipboardSink] = None) -> None:
    """Run the gitlab-tree TUI application."""
    app = GitLabTreeApp(config, clipboard=clipboard)
    app.run()
