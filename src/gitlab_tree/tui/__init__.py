"""Textual user interface for gitlab-tree."""

from .app import GitLabTreeApp, run_tui

__all__ = ["GitLabTreeApp", "run_tui"]
