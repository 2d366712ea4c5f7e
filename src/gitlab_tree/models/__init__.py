"""Data models for gitlab-tree."""

from .records import (
    CatalogSnapshot,
    GitLabGroup,
    GitLabProject,
    GitLabUser,
    GroupProjects,
    PersonalProjects,
    epoch_now,
)

__all__ = [
    "CatalogSnapshot",
    "GitLabGroup",
    "GitLabProject",
    "GitLabUser",
    "GroupProjects",
    "PersonalProjects",
    "epoch_now",
]
