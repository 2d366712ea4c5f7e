"""Pydantic schemas for raw GitLab records and the cached catalog snapshot."""

import time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def epoch_now() -> int:
    """Current time in whole epoch seconds."""
    return int(time.time())


class _Record(BaseModel):
    # GitLab responses carry far more fields than we keep.
    model_config = ConfigDict(extra="ignore")


class GitLabGroup(_Record):
    """One entry from ``GET /groups``."""

    id: int
    name: str
    web_url: str
    full_path: str
    visibility: str
    parent_id: Optional[int] = None


class GitLabProject(_Record):
    """One entry from a project listing (``simple=true`` shape)."""

    name: str
    web_url: str
    path_with_namespace: str
    visibility: Optional[str] = None
    last_activity_at: Optional[str] = None


class GitLabUser(_Record):
    username: str


class GroupProjects(_Record):
    """Projects fetched for a single group, keyed by the group's external id."""

    group_id: int
    projects: list[GitLabProject] = Field(default_factory=list)


class PersonalProjects(_Record):
    """Projects owned by the current user, shown under a synthetic root."""

    username: str
    web_url: str
    projects: list[GitLabProject] = Field(default_factory=list)


class CatalogSnapshot(_Record):
    """Complete raw result of one ingestion run, as persisted in the cache."""

    created_at: int = Field(default_factory=epoch_now)
    groups: list[GitLabGroup] = Field(default_factory=list)
    projects_by_group: list[GroupProjects] = Field(default_factory=list)
    personal: Optional[PersonalProjects] = None

    @property
    def project_count(self) -> int:
        return sum(len(entry.projects) for entry in self.projects_by_group)

    @property
    def personal_count(self) -> int:
        return len(self.personal.projects) if self.personal else 0

    def summary(self) -> str:
        """Counts line shown in the status bar."""
        return (
            f"groups: {len(self.groups)}, "
            f"projects: {self.project_count}, "
            f"personal: {self.personal_count}"
        )
