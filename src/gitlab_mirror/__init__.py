"""
GitLab Mirror - Mirror GitLab group hierarchies to local disk.

This package provides:
- GitLabMirror: Clone or force-update every repository of GitLab groups and projects
- MirrorTraversal: Walk a group hierarchy and synchronise each repository found
- RepositorySyncer: Idempotent clone-or-update of a single working copy
"""

__version__ = "1.0.0"

from .config import Config, MirrorConfig
from .mirror import GitLabMirror
from .models import MirrorReport, NodeResult, NodeStatus, SyncResult, SyncStatus
from .sync import RepositorySyncer
from .traversal import MirrorTraversal

__all__ = [
    "GitLabMirror",
    "MirrorTraversal",
    "RepositorySyncer",
    "Config",
    "MirrorConfig",
    "MirrorReport",
    "NodeResult",
    "NodeStatus",
    "SyncResult",
    "SyncStatus",
]
