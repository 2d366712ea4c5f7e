"""Tests for the gitlab-tree TUI application."""

import threading
from typing import Callable

import pytest

from gitlab_tree.config import TreeConfig
from gitlab_tree.models import CatalogSnapshot, GitLabGroup, GitLabProject, GroupProjects
from gitlab_tree.pipeline import IngestResult
from gitlab_tree.sinks import BrowserOpener, ClipboardSink
from gitlab_tree.tree.navigation import TOAST_TTL
from gitlab_tree.tui import GitLabTreeApp
from gitlab_tree.tui.app import TICK_SECONDS, default_job_factory, translate_key


class NotifyRecordingApp(GitLabTreeApp):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.notices: list[tuple[str, float]] = []

    def notify(self, message, *, timeout=None, **kwargs) -> None:
        self.notices.append((message, timeout))
        super().notify(message, timeout=timeout, **kwargs)


class RecordingClipboard(ClipboardSink):
    def __init__(self):
        self.texts: list[str] = []

    def set_text(self, text: str) -> None:
        self.texts.append(text)


class RecordingBrowser(BrowserOpener):
    def __init__(self):
        self.urls: list[str] = []

    def open(self, url: str) -> None:
        self.urls.append(url)


def make_config() -> TreeConfig:
    return TreeConfig(gitlab_token="t", gitlab_url="https://gitlab.example.com")


def make_result(status: str = "groups: 1, projects: 2, personal: 0") -> IngestResult:
    snapshot = CatalogSnapshot(
        created_at=0,
        groups=[
            GitLabGroup(
                id=1,
                name="acme",
                web_url="https://gitlab.example.com/groups/acme",
                full_path="acme",
                visibility="private",
            )
        ],
        projects_by_group=[
            GroupProjects(
                group_id=1,
                projects=[
                    GitLabProject(
                        name=name,
                        web_url=f"https://gitlab.example.com/acme/{name}",
                        path_with_namespace=f"acme/{name}",
                    )
                    for name in ("api", "web")
                ],
            )
        ],
    )
    return IngestResult(snapshot=snapshot, status=status)


def fixed_factory(result: IngestResult):
    def factory(reload: bool) -> Callable[[], IngestResult]:
        return lambda: result

    return factory


async def wait_loaded(app: GitLabTreeApp, pilot) -> None:
    for _ in range(100):
        await pilot.pause(0.05)
        if app.navigator is not None:
            return
    raise AssertionError("tree did not load")


class TestTranslateKey:
    """Tests for Textual key translation."""

    def test_named_keys(self) -> None:
        """Test arrows and editing keys."""
        assert translate_key("up", None) == "up"
        assert translate_key("escape", None) == "escape"
        assert translate_key("backspace", None) == "backspace"

    def test_printable(self) -> None:
        """Test printable characters pass through."""
        assert translate_key("j", "j") == "j"
        assert translate_key("G", "G") == "G"
        assert translate_key("slash", "/") == "/"

    def test_ignored(self) -> None:
        """Test that other keys are dropped."""
        assert translate_key("f5", None) is None
        assert translate_key("tab", "\t") is None


class TestDefaultJobFactory:
    """Tests for the production job factory."""

    def test_reload_skips_cache(self) -> None:
        """Test that only the reload job bypasses the cache read."""
        factory = default_job_factory(make_config())
        assert factory(False).keywords == {"use_cache": True}
        assert factory(True).keywords == {"use_cache": False}


class TestGitLabTreeApp:
    """Pilot tests for GitLabTreeApp."""

    def test_app_class_attributes(self) -> None:
        """Test GitLabTreeApp has required attributes."""
        assert GitLabTreeApp.TITLE == "GitLab Tree"
        assert "#footer-bar" in GitLabTreeApp.CSS

    @pytest.mark.asyncio
    async def test_loads_tree(self) -> None:
        """Test that the background result becomes the tree."""
        app = GitLabTreeApp(make_config(), job_factory=fixed_factory(make_result()))
        async with app.run_test(size=(100, 30)) as pilot:
            await wait_loaded(app, pilot)
            assert app.navigator.status == "groups: 1, projects: 2, personal: 0"
            names = [app.navigator.store.nodes[r.node].name for r in app.navigator.visible()]
            assert names == ["acme", "api", "web"]
            assert app.navigator.selected == 0

    @pytest.mark.asyncio
    async def test_navigation_keys(self) -> None:
        """Test moving with j, G and gg."""
        app = GitLabTreeApp(make_config(), job_factory=fixed_factory(make_result()))
        async with app.run_test(size=(100, 30)) as pilot:
            await wait_loaded(app, pilot)
            await pilot.press("j")
            assert app.navigator.selected == 1
            await pilot.press("G")
            assert app.navigator.selected == 2
            await pilot.press("g", "g")
            assert app.navigator.selected == 0
            await pilot.press("down", "left")
            assert app.navigator.selected == 0

    def test_clipboard_sink_attribute(self) -> None:
        """Test that the clipboard sink does not shadow App.clipboard."""
        clipboard = RecordingClipboard()
        app = GitLabTreeApp(
            make_config(), job_factory=fixed_factory(make_result()), clipboard=clipboard
        )
        assert app.clipboard_sink is clipboard
        assert isinstance(app.clipboard, str)

    @pytest.mark.asyncio
    async def test_copy_notifies_once(self) -> None:
        """Test copying the selected URL raises one notification."""
        clipboard = RecordingClipboard()
        app = NotifyRecordingApp(
            make_config(), job_factory=fixed_factory(make_result()), clipboard=clipboard
        )
        async with app.run_test(size=(100, 30)) as pilot:
            await wait_loaded(app, pilot)
            await pilot.press("j", "y")
            await pilot.pause(0.5)
            assert clipboard.texts == ["https://gitlab.example.com/acme/api"]
            assert app.navigator.status == "copied https://gitlab.example.com/acme/api"
            assert app.notices == [("Copied URL", TOAST_TTL * TICK_SECONDS)]
            await pilot.press("y")
            await pilot.pause()
            assert len(app.notices) == 2

    @pytest.mark.asyncio
    async def test_open(self) -> None:
        """Test opening the selected URL."""
        browser = RecordingBrowser()
        app = GitLabTreeApp(
            make_config(), job_factory=fixed_factory(make_result()), browser=browser
        )
        async with app.run_test(size=(100, 30)) as pilot:
            await wait_loaded(app, pilot)
            await pilot.press("o")
            assert browser.urls == ["https://gitlab.example.com/groups/acme"]

    @pytest.mark.asyncio
    async def test_search(self) -> None:
        """Test typing a filter and clearing it."""
        app = GitLabTreeApp(make_config(), job_factory=fixed_factory(make_result()))
        async with app.run_test(size=(100, 30)) as pilot:
            await wait_loaded(app, pilot)
            await pilot.press("slash", "w", "e", "b", "enter")
            assert app.navigator.search_query == "web"
            assert len(app.navigator.visible()) == 1
            await pilot.press("escape")
            assert app.navigator.search_query is None
            assert len(app.navigator.visible()) == 3

    @pytest.mark.asyncio
    async def test_load_error_shows_sample(self) -> None:
        """Test that an ingestion failure falls back to the sample tree."""

        def factory(reload: bool) -> Callable[[], IngestResult]:
            def job() -> IngestResult:
                raise RuntimeError("boom")

            return job

        app = GitLabTreeApp(make_config(), job_factory=factory)
        async with app.run_test(size=(100, 30)) as pilot:
            await wait_loaded(app, pilot)
            assert app.navigator.status == "load error: boom"
            root = app.navigator.store.nodes[app.navigator.store.roots[0]]
            assert root.name == "dev-platform"

    @pytest.mark.asyncio
    async def test_reload(self) -> None:
        """Test that r starts a reload job."""
        seen: list[bool] = []
        release = threading.Event()

        def factory(reload: bool) -> Callable[[], IngestResult]:
            seen.append(reload)

            def job() -> IngestResult:
                if reload:
                    release.wait(5)
                return make_result("reloaded" if reload else "first")

            return job

        app = GitLabTreeApp(make_config(), job_factory=factory)
        try:
            async with app.run_test(size=(100, 30)) as pilot:
                await wait_loaded(app, pilot)
                await pilot.press("j", "r")
                assert app.navigator is None
                release.set()
                await wait_loaded(app, pilot)
                assert app.navigator.status == "reloaded"
                assert app.navigator.selected == 0
        finally:
            release.set()
        assert seen == [False, True]

    @pytest.mark.asyncio
    async def test_stale_result_is_never_applied(self) -> None:
        """Test that a reload abandons the in-flight load.

        The first job finishes only after the second one, yet only the
        second job's result ever reaches the tree.
        """
        first_release = threading.Event()
        first_done = threading.Event()

        def factory(reload: bool) -> Callable[[], IngestResult]:
            if reload:
                return lambda: make_result("fresh")

            def slow() -> IngestResult:
                first_release.wait(5)
                first_done.set()
                return make_result("stale")

            return slow

        app = GitLabTreeApp(make_config(), job_factory=factory)
        try:
            async with app.run_test(size=(100, 30)) as pilot:
                await pilot.pause()
                assert app.navigator is None
                app.start_load(reload=True)
                assert app.load_generation == 2
                await wait_loaded(app, pilot)
                assert app.navigator.status == "fresh"

                first_release.set()
                assert first_done.wait(5)
                await pilot.pause(TICK_SECONDS * 3)
                assert app.navigator.status == "fresh"
        finally:
            first_release.set()

    @pytest.mark.asyncio
    async def test_quit(self) -> None:
        """Test that q exits the application."""
        app = GitLabTreeApp(make_config(), job_factory=fixed_factory(make_result()))
        async with app.run_test(size=(100, 30)) as pilot:
            await wait_loaded(app, pilot)
            await pilot.press("q")
            await pilot.pause()
        assert app.return_code == 0

    @pytest.mark.asyncio
    async def test_only_quit_while_loading(self) -> None:
        """Test that keys other than q are ignored during a load."""
        release = threading.Event()

        def factory(reload: bool) -> Callable[[], IngestResult]:
            def job() -> IngestResult:
                release.wait(5)
                return make_result()

            return job

        app = GitLabTreeApp(make_config(), job_factory=factory)
        try:
            async with app.run_test(size=(100, 30)) as pilot:
                await pilot.press("j", "r")
                assert app.navigator is None
                assert app.load_generation == 1
                await pilot.press("q")
                await pilot.pause()
            assert app.return_code == 0
        finally:
            release.set()
