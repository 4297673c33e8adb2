#!/usr/bin/env python3
"""
Group hierarchy traversal.

Walks GitLab groups depth-first (projects before subgroups, subgroups in name
order) and synchronises every repository found. A failure only abandons the
repository or subtree it happened in; everything else is still visited.
"""

import logging
from typing import List, Iterable, Optional, Set

from .config import MirrorConfig
from .directory import GitLabDirectory
from .exceptions import MetadataFetchError
from .models import NamespaceNode, RepositoryDescriptor, NodeResult, MirrorReport, SyncResult, SyncStatus
from .sync import RepositorySyncer


class MirrorTraversal:
    """Visit groups and projects and hand each repository to the syncer."""

    def __init__(self, config: MirrorConfig, directory: GitLabDirectory, syncer: RepositorySyncer,
                 logger: Optional[logging.Logger] = None):
        self.config = config
        self.directory = directory
        self.syncer = syncer
        self.logger = logger or logging.getLogger('gitlab_mirror.traversal')

        # Only used when config.deduplicate is set
        self._seen_groups: Set[int] = set()
        self._seen_projects: Set[int] = set()

    def run(self, group_ids: Iterable[int] = (), project_ids: Iterable[int] = ()) -> MirrorReport:
        """
        Mirror the given group roots, then the given project roots.

        Returns:
            MirrorReport with one NodeResult per visited group or project
        """
        report = MirrorReport()
        for group_id in group_ids:
            report.extend(self.visit_group(group_id))
        for project_id in project_ids:
            report.extend([self.visit_project(project_id)])
        return report

    def visit_group(self, group_id: int) -> List[NodeResult]:
        """
        Mirror a group and all of its subgroups.

        Returns:
            One NodeResult per group in the subtree, in visiting order
        """
        results = []
        pending = [group_id]

        while pending:
            current_id = pending.pop()
            node, subgroups = self._process_group(current_id)
            results.append(node)
            # Reversed so the first subgroup by name is popped first
            pending.extend(reversed([g.id for g in subgroups]))

        return results

    def _process_group(self, group_id: int):
        """
        Sync the direct projects of one group and list its subgroups.

        Returns:
            (NodeResult, subgroups to visit next)
        """
        node = NodeResult(kind='group', node_id=group_id)

        if self.config.is_group_excluded(group_id):
            self.logger.warning(f"Ignoring excluded group (ID: {group_id})")
            node.skipped = True
            return node, []

        if self.config.deduplicate:
            if group_id in self._seen_groups:
                self.logger.info(f"Group already visited in this run, skipping (ID: {group_id})")
                node.skipped = True
                return node, []
            self._seen_groups.add(group_id)

        try:
            group = self.directory.get_group(group_id)
        except MetadataFetchError as e:
            self.logger.error(f"Get group error (ID: {group_id}): {e}")
            node.add_error(str(e))
            return node, []

        node.full_path = group.full_path
        self.logger.info(f"Processing group: {group.full_path} (ID: {group.id})")

        # Listing projects and listing subgroups are independent: one failing
        # must not hide the other.
        try:
            projects = self.directory.list_projects(group.id)
        except MetadataFetchError as e:
            self.logger.error(f"List projects error for group {group.full_path} (ID: {group.id}): {e}")
            node.add_error(str(e))
            projects = []

        for project in projects:
            node.add_repository(self._sync_listed_project(project, group))

        try:
            subgroups = self.directory.list_subgroups(group.id)
        except MetadataFetchError as e:
            self.logger.error(f"List subgroups error for group {group.full_path} (ID: {group.id}): {e}")
            node.add_error(str(e))
            subgroups = []

        self.logger.info(f"Group {group.full_path}: {len(projects)} projects, {len(subgroups)} subgroups")
        return node, subgroups

    def _sync_listed_project(self, project: RepositoryDescriptor, group: NamespaceNode) -> SyncResult:
        label = project.destination(group.full_path)

        if self.config.is_project_excluded(project.id):
            self.logger.warning(f"Ignoring excluded project {label} (ID: {project.id})")
            return SyncResult(label, SyncStatus.SKIPPED, project.id)

        if self._already_seen_project(project.id):
            return SyncResult(label, SyncStatus.SKIPPED, project.id)

        return self._sync(project, group.full_path)

    def visit_project(self, project_id: int) -> NodeResult:
        """
        Mirror a single project at the root of the destination directory.
        """
        node = NodeResult(kind='project', node_id=project_id)

        if self.config.is_project_excluded(project_id):
            self.logger.warning(f"Ignoring excluded project (ID: {project_id})")
            node.skipped = True
            return node

        if self._already_seen_project(project_id):
            node.skipped = True
            return node

        try:
            project = self.directory.get_project(project_id)
        except MetadataFetchError as e:
            self.logger.error(f"Get project error (ID: {project_id}): {e}")
            node.add_error(str(e))
            return node

        node.full_path = project.path
        node.add_repository(self._sync(project, ""))
        return node

    def _already_seen_project(self, project_id: int) -> bool:
        if not self.config.deduplicate:
            return False
        if project_id in self._seen_projects:
            self.logger.info(f"Project already synchronised in this run, skipping (ID: {project_id})")
            return True
        self._seen_projects.add(project_id)
        return False

    def _sync(self, project: RepositoryDescriptor, namespace_path: str) -> SyncResult:
        label = project.destination(namespace_path)
        return self.syncer.sync(
            project.ssh_url,
            self.config.destination / label,
            project_id=project.id,
            label=label,
        )
