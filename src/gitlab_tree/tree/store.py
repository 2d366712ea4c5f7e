"""Arena-backed forest of groups and projects.

Every node lives in ``TreeStore.nodes``; everything else refers to nodes by
their integer index. The parent map is derived from the child lists and is
rebuilt whenever the arena is built.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from gitlab_tree.models import (
    CatalogSnapshot,
    GitLabGroup,
    GitLabProject,
    GroupProjects,
    PersonalProjects,
)


logger = logging.getLogger(__name__)


class NodeKind(str, Enum):
    """Kinds of tree entries."""

    GROUP = "group"  # May contain subgroups and projects
    PROJECT = "project"  # Always a leaf

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass
class Node:
    """One tree entry."""

    name: str
    kind: NodeKind
    url: str
    path: str
    visibility: Optional[str]
    last_activity: Optional[str] = None
    children: list[int] = field(default_factory=list)
    expanded: bool = False

    @property
    def has_children(self) -> bool:
        return bool(self.children)


def build_parent_map(nodes: list[Node]) -> list[Optional[int]]:
    """Derive node index -> parent index from the forward child lists."""
    parent: list[Optional[int]] = [None] * len(nodes)
    for idx, node in enumerate(nodes):
        for child in node.children:
            parent[child] = idx
    return parent


class TreeStore:
    """Owns all nodes, the root order, and the derived parent map."""

    def __init__(self, nodes: Optional[list[Node]] = None, roots: Optional[list[int]] = None):
        self.nodes: list[Node] = nodes if nodes is not None else []
        self.roots: list[int] = roots if roots is not None else []
        self.parent: list[Optional[int]] = build_parent_map(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, idx: int) -> Node:
        return self.nodes[idx]

    def push(
        self,
        name: str,
        kind: NodeKind,
        url: str,
        path: str,
        visibility: Optional[str],
        last_activity: Optional[str] = None,
    ) -> int:
        """Append a node to the arena and return its index."""
        self.nodes.append(
            Node(
                name=name,
                kind=kind,
                url=url,
                path=path,
                visibility=visibility,
                last_activity=last_activity,
            )
        )
        return len(self.nodes) - 1

    def push_project(self, project: GitLabProject) -> int:
        return self.push(
            project.name,
            NodeKind.PROJECT,
            project.web_url,
            project.path_with_namespace,
            project.visibility,
            project.last_activity_at,
        )

    def reindex(self) -> None:
        """Rebuild the parent map after the child lists changed."""
        self.parent = build_parent_map(self.nodes)

    def expand(self, idx: int) -> None:
        self.nodes[idx].expanded = True

    def collapse(self, idx: int) -> None:
        self.nodes[idx].expanded = False

    def parent_of(self, idx: int) -> Optional[int]:
        return self.parent[idx]

    def expand_all(self) -> None:
        for node in self.nodes:
            if node.has_children:
                node.expanded = True

    @classmethod
    def from_snapshot(cls, snapshot: CatalogSnapshot) -> "TreeStore":
        return cls.build(snapshot.groups, snapshot.projects_by_group, snapshot.personal)

    @classmethod
    def build(
        cls,
        groups: list[GitLabGroup],
        projects_by_group: list[GroupProjects],
        personal: Optional[PersonalProjects] = None,
    ) -> "TreeStore":
        """Build the forest from flat, possibly out-of-order records.

        Groups whose parent id is unknown become roots. Project lists for an
        unknown group id are skipped. The personal namespace, when present,
        becomes the last root. Every root starts expanded.
        """
        store = cls()
        index_by_id: dict[int, int] = {}
        registered: list[tuple[GitLabGroup, int]] = []

        for group in groups:
            if group.id in index_by_id:
                logger.debug("Ignoring duplicate group record id=%s", group.id)
                continue
            idx = store.push(
                group.name,
                NodeKind.GROUP,
                group.web_url,
                group.full_path,
                group.visibility,
            )
            index_by_id[group.id] = idx
            registered.append((group, idx))

        linked: dict[int, int] = {}
        for group, idx in registered:
            parent_idx = index_by_id.get(group.parent_id) if group.parent_id is not None else None
            if parent_idx is not None and not _creates_cycle(linked, idx, parent_idx):
                linked[idx] = parent_idx
                store.nodes[parent_idx].children.append(idx)
            else:
                store.roots.append(idx)

        for entry in projects_by_group:
            parent_idx = index_by_id.get(entry.group_id)
            if parent_idx is None:
                continue
            for project in entry.projects:
                store.nodes[parent_idx].children.append(store.push_project(project))

        if personal is not None:
            root = store.push(
                personal.username,
                NodeKind.GROUP,
                personal.web_url,
                personal.username,
                "private",
            )
            for project in personal.projects:
                store.nodes[root].children.append(store.push_project(project))
            store.roots.append(root)

        for root in store.roots:
            store.expand(root)

        store.reindex()
        return store

    @classmethod
    def sample(cls) -> "TreeStore":
        """Example forest shown when the catalog could not be loaded."""
        store = cls()
        base = "https://gitlab.example.com"

        def add(path: str, kind: NodeKind, parent: Optional[int] = None) -> int:
            idx = store.push(path.rsplit("/", 1)[-1], kind, f"{base}/{path}", path, "private")
            if parent is None:
                store.roots.append(idx)
            else:
                store.nodes[parent].children.append(idx)
            return idx

        dev_platform = add("dev-platform", NodeKind.GROUP)
        data = add("data", NodeKind.GROUP)
        security = add("security", NodeKind.GROUP)

        backend = add("dev-platform/backend", NodeKind.GROUP, dev_platform)
        frontend = add("dev-platform/frontend", NodeKind.GROUP, dev_platform)
        add("dev-platform/platform-tools", NodeKind.PROJECT, dev_platform)
        add("dev-platform/backend/api", NodeKind.PROJECT, backend)
        add("dev-platform/backend/auth", NodeKind.PROJECT, backend)
        add("dev-platform/frontend/web", NodeKind.PROJECT, frontend)
        add("dev-platform/frontend/design-system", NodeKind.PROJECT, frontend)

        ingest = add("data/ingest", NodeKind.GROUP, data)
        models = add("data/models", NodeKind.GROUP, data)
        add("data/data-tools", NodeKind.PROJECT, data)
        add("data/ingest/ingest", NodeKind.PROJECT, ingest)
        add("data/ingest/pipeline", NodeKind.PROJECT, ingest)
        add("data/models/fraud", NodeKind.PROJECT, models)
        add("data/models/churn", NodeKind.PROJECT, models)

        add("security/sec-tools", NodeKind.PROJECT, security)
        add("security/audits", NodeKind.PROJECT, security)

        for root in store.roots:
            store.expand(root)

        store.reindex()
        return store


def _creates_cycle(linked: dict[int, int], child: int, parent: int) -> bool:
    """True if ``child`` is ``parent`` or already one of its ancestors."""
    current: Optional[int] = parent
    while current is not None:
        if current == child:
            return True
        current = linked.get(current)
    return False
