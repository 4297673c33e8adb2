#!/usr/bin/env python3
"""
GitLab Mirror

Recursively mirror Git repositories from GitLab group hierarchies to local
disk, cloning missing repositories and force-updating existing ones.
"""

import logging
from typing import Iterable, Optional

import gitlab

from .config import MirrorConfig
from .credentials import SSHAgentCredential
from .directory import GitLabDirectory
from .models import MirrorReport
from .sync import RepositorySyncer
from .traversal import MirrorTraversal


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(quiet: bool = False, verbose: bool = False) -> logging.Logger:
    """
    Configure the 'gitlab_mirror' logger hierarchy.

    Args:
        quiet: Only show warnings and errors
        verbose: Show debug output (wins over quiet)

    Returns:
        The package root logger
    """
    logger = logging.getLogger('gitlab_mirror')

    if verbose:
        log_level = logging.DEBUG
    elif quiet:
        log_level = logging.WARNING
    else:
        log_level = logging.INFO
    logger.setLevel(log_level)

    # Repeated setup (tests, library use) must not duplicate output
    if not any(getattr(h, '_gitlab_mirror', False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler._gitlab_mirror = True
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    for handler in logger.handlers:
        handler.setLevel(log_level)

    return logger


class GitLabMirror:
    """Main class for mirroring GitLab repositories recursively."""

    def __init__(self, gitlab_url: str, access_token: str, config: MirrorConfig,
                 credential: Optional[SSHAgentCredential] = None, progress: bool = False):
        """
        Initialize the GitLab mirror.

        Args:
            gitlab_url: Base URL of the GitLab instance
            access_token: GitLab API access token
            config: Immutable run configuration
            credential: SSH credential for git transport (None uses git's defaults)
            progress: If True, show git transfer progress on stdout
        """
        self.gitlab_url = gitlab_url.rstrip('/')
        self.access_token = access_token
        self.config = config

        self.logger = logging.getLogger('gitlab_mirror')

        # Initialize GitLab connection
        self.gl = gitlab.Gitlab(self.gitlab_url, private_token=self.access_token)

        self.directory = GitLabDirectory(self.gl, page_size=config.page_size)
        self.syncer = RepositorySyncer(credential=credential, progress=progress)
        self.traversal = MirrorTraversal(config, self.directory, self.syncer)

    def authenticate(self) -> str:
        """
        Check the access token once before doing any work.

        Raises:
            MetadataFetchError: If authentication fails
        """
        return self.directory.authenticate()

    def mirror(self, group_ids: Iterable[int] = (), project_ids: Iterable[int] = ()) -> MirrorReport:
        """
        Mirror the given groups (recursively) and projects.

        Args:
            group_ids: Root group ids, mirrored under their full path
            project_ids: Project ids, mirrored at the destination root

        Returns:
            MirrorReport for the whole run
        """
        group_ids = list(group_ids)
        project_ids = list(project_ids)

        self.config.destination.mkdir(parents=True, exist_ok=True)
        self.logger.info(f"Mirroring {len(group_ids)} groups and {len(project_ids)} projects "
                         f"to {self.config.destination}")

        report = self.traversal.run(group_ids, project_ids)
        self._print_statistics(report)
        return report

    def _print_statistics(self, report: MirrorReport) -> None:
        """Log mirroring statistics."""
        stats = report.stats
        self.logger.info("=" * 50)
        self.logger.info("MIRROR STATISTICS")
        self.logger.info("=" * 50)
        self.logger.info(f"Groups processed: {stats['groups_processed']}")
        self.logger.info(f"Groups skipped: {stats['groups_skipped']}")
        self.logger.info(f"Repositories cloned: {stats['repositories_cloned']}")
        self.logger.info(f"Repositories updated: {stats['repositories_updated']}")
        self.logger.info(f"Repositories up to date: {stats['repositories_up_to_date']}")
        self.logger.info(f"Repositories skipped: {stats['repositories_skipped']}")
        self.logger.info(f"Errors encountered: {stats['errors']}")
        self.logger.info("=" * 50)

        for error in report.errors:
            self.logger.warning(f"  - {error}")
