#!/usr/bin/env python3
"""
Data model for GitLab Mirror.

Namespace nodes and repository descriptors are thin views over the GitLab API
objects; results describe what happened to each repository and each visited
node so the caller gets a structured report instead of log output only.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import List, Optional, Dict, Any


@dataclass(frozen=True)
class NamespaceNode:
    """A GitLab group."""

    id: int
    full_path: str


@dataclass(frozen=True)
class RepositoryDescriptor:
    """A GitLab project, as much of it as is needed to mirror it."""

    id: int
    path: str
    ssh_url: str

    def destination(self, namespace_path: str = "") -> str:
        """Relative destination of this repository under the mirror root."""
        if not namespace_path:
            return self.path
        return str(PurePosixPath(namespace_path) / self.path)


class SyncStatus(Enum):
    """Outcome of synchronising a single repository."""

    CLONED = "cloned"
    UPDATED = "updated"
    UP_TO_DATE = "up_to_date"
    SKIPPED = "skipped"
    FAILED = "failed"


class NodeStatus(Enum):
    """Outcome of visiting a group or a directly requested project."""

    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class SyncResult:
    """Result of one clone-or-update call."""

    path: str
    status: SyncStatus
    project_id: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is not SyncStatus.FAILED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'project_id': self.project_id,
            'path': self.path,
            'status': self.status.value,
            'error': self.error,
        }


@dataclass
class NodeResult:
    """Result of visiting one group (its direct projects only) or one project."""

    kind: str
    node_id: int
    full_path: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    repositories: List[SyncResult] = field(default_factory=list)
    skipped: bool = False

    @property
    def status(self) -> NodeStatus:
        if self.skipped:
            return NodeStatus.SKIPPED
        if self.errors or any(not r.ok for r in self.repositories):
            return NodeStatus.PARTIAL_FAILURE
        return NodeStatus.SUCCESS

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def add_repository(self, result: SyncResult) -> None:
        self.repositories.append(result)
        if result.error:
            self.errors.append(result.error)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind,
            'id': self.node_id,
            'full_path': self.full_path,
            'status': self.status.value,
            'errors': list(self.errors),
            'repositories': [r.to_dict() for r in self.repositories],
        }


@dataclass
class MirrorReport:
    """Aggregated results of a whole mirror run, in visiting order."""

    nodes: List[NodeResult] = field(default_factory=list)

    def extend(self, nodes: List[NodeResult]) -> None:
        self.nodes.extend(nodes)

    @property
    def repositories(self) -> List[SyncResult]:
        return [r for node in self.nodes for r in node.repositories]

    @property
    def failures(self) -> List[SyncResult]:
        return [r for r in self.repositories if not r.ok]

    @property
    def errors(self) -> List[str]:
        return [e for node in self.nodes for e in node.errors]

    @property
    def succeeded(self) -> bool:
        return not self.errors

    def count(self, status: SyncStatus) -> int:
        return sum(1 for r in self.repositories if r.status is status)

    @property
    def stats(self) -> Dict[str, int]:
        groups = [n for n in self.nodes if n.kind == 'group']
        return {
            'groups_processed': sum(1 for n in groups if not n.skipped),
            'groups_skipped': sum(1 for n in groups if n.skipped),
            'repositories_cloned': self.count(SyncStatus.CLONED),
            'repositories_updated': self.count(SyncStatus.UPDATED),
            'repositories_up_to_date': self.count(SyncStatus.UP_TO_DATE),
            'repositories_skipped': (self.count(SyncStatus.SKIPPED)
                                     + sum(1 for n in self.nodes if n.kind == 'project' and n.skipped)),
            'errors': len(self.errors),
        }
