"""Clipboard and browser side effects.

The clipboard backend is chosen once at startup by a priority chain over a
small probe interface: the platform's native copy command, then ``wl-copy``
under Wayland, then ``xclip`` under X11, else no clipboard at all.
"""

import logging
import os
import shutil
import subprocess
import sys
import webbrowser
from abc import ABC, abstractmethod
from enum import Enum
from typing import Mapping, Optional


logger = logging.getLogger(__name__)

# Copy commands that ship with the operating system.
NATIVE_CLIPBOARD_COMMANDS: dict[str, list[str]] = {
    "darwin": ["pbcopy"],
    "win32": ["clip"],
}
WL_COPY_COMMAND = ["wl-copy"]
XCLIP_COMMAND = ["xclip", "-selection", "clipboard"]


class SinkError(Exception):
    """A side effect on the selected item failed."""


class ClipboardError(SinkError):
    pass


class BrowserError(SinkError):
    pass


class ClipboardSink(ABC):
    """Destination for copied text."""

    @abstractmethod
    def set_text(self, text: str) -> None:
        """Replace the clipboard contents.

        Raises:
            ClipboardError: If the copy did not happen.
        """


class BrowserOpener(ABC):
    """Opens a locator in the user's default handler."""

    @abstractmethod
    def open(self, url: str) -> None:
        """Open ``url``.

        Raises:
            BrowserError: If no handler accepted the URL.
        """


class ClipboardBackend(str, Enum):
    NATIVE = "native"
    WL_COPY = "wl-copy"
    XCLIP = "xclip"
    NONE = "none"


class ClipboardProbe(ABC):
    """Capability checks consulted by :func:`select_clipboard_backend`."""

    @abstractmethod
    def native_ok(self) -> bool:
        pass

    @abstractmethod
    def has_wayland(self) -> bool:
        pass

    @abstractmethod
    def has_display(self) -> bool:
        pass

    @abstractmethod
    def command_exists(self, command: str) -> bool:
        pass


def native_clipboard_command(platform: Optional[str] = None) -> Optional[list[str]]:
    return NATIVE_CLIPBOARD_COMMANDS.get(platform or sys.platform)


class SystemClipboardProbe(ClipboardProbe):
    """Probe the real environment and ``PATH``."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None, platform: Optional[str] = None):
        self.environ = os.environ if environ is None else environ
        self.platform = platform or sys.platform

    def native_ok(self) -> bool:
        command = native_clipboard_command(self.platform)
        return command is not None and self.command_exists(command[0])

    def has_wayland(self) -> bool:
        return bool(self.environ.get("WAYLAND_DISPLAY"))

    def has_display(self) -> bool:
        return bool(self.environ.get("DISPLAY"))

    def command_exists(self, command: str) -> bool:
        return shutil.which(command) is not None


def select_clipboard_backend(probe: ClipboardProbe) -> ClipboardBackend:
    """Pick the first available clipboard backend in priority order."""
    if probe.native_ok():
        return ClipboardBackend.NATIVE
    if probe.has_wayland() and probe.command_exists(WL_COPY_COMMAND[0]):
        return ClipboardBackend.WL_COPY
    if probe.has_display() and probe.command_exists(XCLIP_COMMAND[0]):
        return ClipboardBackend.XCLIP
    return ClipboardBackend.NONE


class CommandClipboard(ClipboardSink):
    """Pipe text into an external copy command."""

    def __init__(self, command: list[str]):
        self.command = command

    def set_text(self, text: str) -> None:
        try:
            subprocess.run(
                self.command,
                input=text,
                text=True,
                check=True,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            raise ClipboardError(f"clipboard command failed: {e}") from e
        except subprocess.CalledProcessError as e:
            raise ClipboardError(f"clipboard command exited with {e.returncode}") from e


def build_clipboard(probe: Optional[ClipboardProbe] = None) -> Optional[ClipboardSink]:
    """Create the clipboard sink for this session, or None when unavailable."""
    if probe is None:
        probe = SystemClipboardProbe()
    backend = select_clipboard_backend(probe)
    logger.info("Clipboard backend: %s", backend.value)

    if backend is ClipboardBackend.NATIVE:
        command = native_clipboard_command(getattr(probe, "platform", None))
        return CommandClipboard(command) if command else None
    if backend is ClipboardBackend.WL_COPY:
        return CommandClipboard(list(WL_COPY_COMMAND))
    if backend is ClipboardBackend.XCLIP:
        return CommandClipboard(list(XCLIP_COMMAND))
    return None


class WebBrowserOpener(BrowserOpener):
    """Open URLs with the standard library's browser controller."""

    def open(self, url: str) -> None:
        try:
            opened = webbrowser.open(url)
        except webbrowser.Error as e:
            raise BrowserError(str(e)) from e
        if not opened:
            raise BrowserError("no web browser available")
