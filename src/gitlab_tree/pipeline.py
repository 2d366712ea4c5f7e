"""Ingestion pipeline: cache lookup, paginated fetch, snapshot persistence.

Steps, in order:
1. Serve a valid cached snapshot without touching the network.
2. Fetch every group, then every group's projects, one group at a time.
3. Best-effort fetch of the current user's own projects.
4. Persist the fresh snapshot (failures are logged and ignored).

A failure in step 2 aborts the whole run with :class:`IngestError`.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from gitlab_tree.cache import CacheStore
from gitlab_tree.client import FetchError, GitLabClient
from gitlab_tree.config import TreeConfig
from gitlab_tree.models import CatalogSnapshot, GitLabGroup, GroupProjects, PersonalProjects


logger = logging.getLogger(__name__)


class IngestError(Exception):
    """The core group/project fetch failed; no snapshot was produced."""


@dataclass
class IngestResult:
    """Snapshot handed to the tree build step, with its status line."""

    snapshot: CatalogSnapshot
    status: str


def fetch_projects_by_group(client: GitLabClient, groups: list[GitLabGroup]) -> list[GroupProjects]:
    """Fetch project lists sequentially, preserving group order."""
    projects = []
    for group in groups:
        projects.append(
            GroupProjects(group_id=group.id, projects=client.list_group_projects(group.id))
        )
    return projects


def fetch_personal_projects(client: GitLabClient) -> PersonalProjects:
    user = client.get_current_user()
    projects = client.list_owned_projects()
    return PersonalProjects(
        username=user.username,
        web_url=client.namespace_url(user.username),
        projects=projects,
    )


def acquire(
    client: GitLabClient,
    cache: Optional[CacheStore] = None,
    use_cache: bool = True,
    clock: Callable[[], float] = time.time,
) -> IngestResult:
    """Produce a catalog snapshot from the cache or the remote API.

    Args:
        client: Remote fetch capability.
        cache: Snapshot cache; ``None`` disables both read and write.
        use_cache: When False the cache read is skipped (explicit reload),
                   but the fresh snapshot is still persisted.
        clock: Epoch-seconds source, injectable for tests.

    Raises:
        IngestError: If the group or project fetch fails.
    """
    if cache is not None and use_cache:
        cached = cache.load(now=clock())
        if cached is not None:
            return IngestResult(
                snapshot=cached,
                status=f"cache hit | {cached.summary()}",
            )

    try:
        groups = client.list_groups()
        projects_by_group = fetch_projects_by_group(client, groups)
    except FetchError as e:
        logger.error("Ingestion aborted: %s", e)
        raise IngestError(str(e)) from e

    try:
        personal: Optional[PersonalProjects] = fetch_personal_projects(client)
    except FetchError as e:
        logger.warning("Skipping personal namespace: %s", e)
        personal = None

    snapshot = CatalogSnapshot(
        created_at=int(clock()),
        groups=groups,
        projects_by_group=projects_by_group,
        personal=personal,
    )

    if cache is not None:
        try:
            cache.store(snapshot)
        except OSError as e:
            logger.warning("Could not write cache %s: %s", cache.path, e)

    logger.info("Fetched catalog: %s", snapshot.summary())
    return IngestResult(snapshot=snapshot, status=snapshot.summary())


def run_ingestion(config: TreeConfig, use_cache: bool = True) -> IngestResult:
    """Run :func:`acquire` against the configured instance and cache file."""
    cache = CacheStore(config.cache_path, config.cache_ttl_seconds)
    with GitLabClient.from_config(config) as client:
        return acquire(client, cache, use_cache=use_cache)
