#!/usr/bin/env python3
"""
Unit tests for GitLabMirror and the result model.
"""

import unittest
from unittest.mock import Mock, patch
import logging
import tempfile
import shutil
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import gitlab

from gitlab_mirror.config import MirrorConfig
from gitlab_mirror.exceptions import MetadataFetchError
from gitlab_mirror.mirror import GitLabMirror, setup_logging
from gitlab_mirror.models import (
    MirrorReport, NodeResult, NodeStatus, RepositoryDescriptor, SyncResult, SyncStatus,
)


class TestGitLabMirror(unittest.TestCase):
    """Test cases for GitLabMirror class."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.gitlab_url = "https://gitlab.example.com/"
        self.access_token = "test-token"
        self.destination = Path(self.temp_dir) / "repos"
        self.config = MirrorConfig.build(str(self.destination), excluded_group_ids=[13])

        with patch('gitlab_mirror.mirror.gitlab.Gitlab'):
            self.mirror = GitLabMirror(self.gitlab_url, self.access_token, self.config)

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_init(self):
        """Test GitLabMirror initialization."""
        self.assertEqual(self.mirror.gitlab_url, "https://gitlab.example.com")
        self.assertEqual(self.mirror.access_token, self.access_token)
        self.assertIs(self.mirror.traversal.config, self.config)
        self.assertIs(self.mirror.traversal.directory, self.mirror.directory)
        self.assertIs(self.mirror.traversal.syncer, self.mirror.syncer)
        self.assertEqual(self.mirror.directory.page_size, 100)

    @patch('gitlab_mirror.mirror.gitlab.Gitlab')
    def test_client_construction(self, mock_gitlab):
        """Test that the python-gitlab client gets the URL and token."""
        GitLabMirror(self.gitlab_url, self.access_token, self.config)

        mock_gitlab.assert_called_once_with("https://gitlab.example.com", private_token="test-token")

    def test_authenticate_success(self):
        """Test successful authentication."""
        self.mirror.gl.user = Mock(username="testuser")

        self.assertEqual(self.mirror.authenticate(), "testuser")
        self.mirror.gl.auth.assert_called_once()

    def test_authenticate_failure(self):
        """Test authentication failure."""
        self.mirror.gl.auth.side_effect = gitlab.exceptions.GitlabAuthenticationError("401 Unauthorized")

        with self.assertRaises(MetadataFetchError):
            self.mirror.authenticate()

    def test_mirror_creates_destination_and_runs(self):
        """Test that mirror() prepares the destination and delegates to the traversal."""
        report = MirrorReport([NodeResult(kind='group', node_id=10, full_path="acme")])

        with patch.object(self.mirror.traversal, 'run', return_value=report) as run:
            result = self.mirror.mirror(group_ids=(10,), project_ids=[7])

        self.assertIs(result, report)
        run.assert_called_once_with([10], [7])
        self.assertTrue(self.destination.is_dir())

    def test_mirror_scenario(self):
        """Test group 10 with project alpha and subgroup 11 with project beta."""
        directory = Mock()
        directory.get_group.side_effect = lambda gid: {10: Mock(id=10, full_path="acme"),
                                                       11: Mock(id=11, full_path="acme/backend")}[gid]
        directory.list_projects.side_effect = lambda gid: {
            10: [RepositoryDescriptor(1, "alpha", "git@host:acme/alpha.git")],
            11: [RepositoryDescriptor(2, "beta", "git@host:acme/backend/beta.git")],
        }[gid]
        directory.list_subgroups.side_effect = lambda gid: {10: [Mock(id=11)], 11: []}[gid]
        self.mirror.traversal.directory = directory

        with patch.object(self.mirror.syncer, 'sync',
                          side_effect=lambda url, path, project_id=None, label=None:
                          SyncResult(label, SyncStatus.CLONED, project_id)) as sync:
            report = self.mirror.mirror(group_ids=[10])

        destinations = [c.args[1] for c in sync.call_args_list]
        self.assertEqual(destinations, [
            self.config.destination / "acme" / "alpha",
            self.config.destination / "acme" / "backend" / "beta",
        ])
        self.assertTrue(report.succeeded)
        self.assertEqual(report.stats['groups_processed'], 2)


class TestMirrorReport(unittest.TestCase):
    """Test cases for the result model."""

    def test_node_status(self):
        """Test node status derivation."""
        ok = NodeResult(kind='group', node_id=1)
        ok.add_repository(SyncResult("a", SyncStatus.CLONED, 1))
        skipped = NodeResult(kind='group', node_id=2, skipped=True)
        partial = NodeResult(kind='group', node_id=3)
        partial.add_repository(SyncResult("b", SyncStatus.FAILED, 2, "b: clone repo error"))

        self.assertEqual(ok.status, NodeStatus.SUCCESS)
        self.assertEqual(skipped.status, NodeStatus.SKIPPED)
        self.assertEqual(partial.status, NodeStatus.PARTIAL_FAILURE)
        self.assertEqual(partial.errors, ["b: clone repo error"])

    def test_stats(self):
        """Test report statistics."""
        group = NodeResult(kind='group', node_id=1, full_path="acme")
        group.add_repository(SyncResult("acme/a", SyncStatus.CLONED, 1))
        group.add_repository(SyncResult("acme/b", SyncStatus.UPDATED, 2))
        group.add_repository(SyncResult("acme/c", SyncStatus.UP_TO_DATE, 3))
        group.add_repository(SyncResult("acme/d", SyncStatus.SKIPPED, 4))
        excluded = NodeResult(kind='group', node_id=2, skipped=True)
        project = NodeResult(kind='project', node_id=5, skipped=True)
        missing = NodeResult(kind='project', node_id=6)
        missing.add_error("get project 6 error: 404")

        report = MirrorReport([group, excluded, project, missing])

        self.assertEqual(report.stats, {
            'groups_processed': 1,
            'groups_skipped': 1,
            'repositories_cloned': 1,
            'repositories_updated': 1,
            'repositories_up_to_date': 1,
            'repositories_skipped': 2,
            'errors': 1,
        })
        self.assertFalse(report.succeeded)
        self.assertEqual(report.failures, [])

    def test_to_dict(self):
        """Test serialisation of a node."""
        node = NodeResult(kind='project', node_id=5, full_path="tools")
        node.add_repository(SyncResult("tools", SyncStatus.UP_TO_DATE, 5))

        self.assertEqual(node.to_dict(), {
            'kind': 'project',
            'id': 5,
            'full_path': "tools",
            'status': 'success',
            'errors': [],
            'repositories': [{'project_id': 5, 'path': "tools", 'status': 'up_to_date', 'error': None}],
        })

    def test_destination(self):
        """Test relative destination of a repository."""
        project = RepositoryDescriptor(1, "alpha", "git@host:acme/alpha.git")

        self.assertEqual(project.destination("acme/backend"), "acme/backend/alpha")
        self.assertEqual(project.destination(""), "alpha")


class TestSetupLogging(unittest.TestCase):
    """Test cases for logging setup."""

    def tearDown(self):
        """Reset the package logger."""
        logger = logging.getLogger('gitlab_mirror')
        for handler in list(logger.handlers):
            if getattr(handler, '_gitlab_mirror', False):
                logger.removeHandler(handler)

    def test_levels(self):
        """Test quiet and verbose levels."""
        self.assertEqual(setup_logging().level, logging.INFO)
        self.assertEqual(setup_logging(quiet=True).level, logging.WARNING)
        self.assertEqual(setup_logging(quiet=True, verbose=True).level, logging.DEBUG)

    def test_single_handler(self):
        """Test that repeated setup does not add handlers."""
        setup_logging()
        setup_logging()
        logger = logging.getLogger('gitlab_mirror')

        ours = [h for h in logger.handlers if getattr(h, '_gitlab_mirror', False)]
        self.assertEqual(len(ours), 1)


if __name__ == '__main__':
    unittest.main(verbosity=2)
