#!/usr/bin/env python3
"""
GitLab directory service.

Resolves groups and projects through the GitLab REST API and hands back the
small NamespaceNode / RepositoryDescriptor views the traversal works with.
Every lookup failure surfaces as MetadataFetchError.
"""

import logging
from typing import List, Any

import gitlab
import requests

from .exceptions import MetadataFetchError
from .models import NamespaceNode, RepositoryDescriptor


LIST_ORDER = {'order_by': 'name', 'sort': 'asc'}


class GitLabDirectory:
    """Read-only view of the GitLab group/project hierarchy."""

    def __init__(self, gl: gitlab.Gitlab, page_size: int = 100, logger: logging.Logger = None):
        """
        Initialize the directory.

        Args:
            gl: Authenticated or unauthenticated python-gitlab client
            page_size: Items per page when listing projects and subgroups
            logger: Optional logger instance
        """
        self.gl = gl
        self.page_size = page_size
        self.logger = logger or logging.getLogger('gitlab_mirror.directory')

    def _list_options(self) -> dict:
        return dict(LIST_ORDER, per_page=self.page_size, get_all=True)

    def authenticate(self) -> str:
        """
        Check the token against the API.

        Returns:
            Username the token belongs to

        Raises:
            MetadataFetchError: If the credentials are rejected or the API is unreachable
        """
        try:
            self.gl.auth()
            user = self.gl.user
        except (gitlab.exceptions.GitlabError, requests.exceptions.RequestException) as e:
            raise MetadataFetchError(f"Authentication failed: {e}") from e
        if user is None:
            raise MetadataFetchError("Authentication failed: no current user")
        self.logger.info(f"Successfully authenticated as: {user.username}")
        return user.username

    def get_group(self, group_id: int) -> NamespaceNode:
        try:
            group = self.gl.groups.get(group_id)
        except (gitlab.exceptions.GitlabError, requests.exceptions.RequestException) as e:
            raise MetadataFetchError(f"get group {group_id} error: {e}", group_id) from e
        return NamespaceNode(id=group.id, full_path=group.full_path)

    def get_project(self, project_id: int) -> RepositoryDescriptor:
        try:
            project = self.gl.projects.get(project_id)
        except (gitlab.exceptions.GitlabError, requests.exceptions.RequestException) as e:
            raise MetadataFetchError(f"get project {project_id} error: {e}", project_id) from e
        return self._descriptor(project)

    def list_projects(self, group_id: int) -> List[RepositoryDescriptor]:
        """
        List projects owned directly by a group (subgroup projects excluded).

        Raises:
            MetadataFetchError: If any page of the listing fails
        """
        group = self.gl.groups.get(group_id, lazy=True)
        try:
            projects = group.projects.list(include_subgroups=False, **self._list_options())
        except (gitlab.exceptions.GitlabError, requests.exceptions.RequestException) as e:
            raise MetadataFetchError(f"list projects of group {group_id} error: {e}", group_id) from e
        self.logger.debug(f"Found {len(projects)} projects in group {group_id}")
        return [self._descriptor(p) for p in projects]

    def list_subgroups(self, group_id: int) -> List[NamespaceNode]:
        """
        List the direct subgroups of a group.

        Raises:
            MetadataFetchError: If any page of the listing fails
        """
        group = self.gl.groups.get(group_id, lazy=True)
        try:
            subgroups = group.subgroups.list(**self._list_options())
        except (gitlab.exceptions.GitlabError, requests.exceptions.RequestException) as e:
            raise MetadataFetchError(f"list subgroups of group {group_id} error: {e}", group_id) from e
        self.logger.debug(f"Found {len(subgroups)} subgroups in group {group_id}")
        return [NamespaceNode(id=g.id, full_path=g.full_path) for g in subgroups]

    @staticmethod
    def _descriptor(project: Any) -> RepositoryDescriptor:
        return RepositoryDescriptor(id=project.id, path=project.path, ssh_url=project.ssh_url_to_repo)
