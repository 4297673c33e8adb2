#!/usr/bin/env python3
"""
Repository synchronisation.

Clone-or-update of a single working copy. The working copy is a mirror: the
update step discards local divergence and moves HEAD, index and working tree
to the remote tip.
"""

import sys
import logging
from pathlib import Path
from typing import Optional, Any, Tuple, TextIO

from git import Repo, RemoteProgress, GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from .credentials import SSHAgentCredential
from .exceptions import SyncError
from .models import SyncResult, SyncStatus


class ConsoleProgress(RemoteProgress):
    """Write git transfer progress lines to a stream."""

    def __init__(self, stream: TextIO = None):
        super().__init__()
        self.stream = stream or sys.stdout

    def update(self, op_code, cur_count, max_count=None, message=''):
        self.stream.write(self._cur_line + '\n')
        self.stream.flush()


class RepositorySyncer:
    """Clone or force-update local working copies."""

    def __init__(self, credential: Optional[SSHAgentCredential] = None, progress: bool = False,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize the syncer.

        Args:
            credential: Transport credential used for every clone and fetch
            progress: If True, write git progress output to stdout
            logger: Optional logger instance
        """
        self.credential = credential
        self.progress = progress
        self.logger = logger or logging.getLogger('gitlab_mirror.sync')

    def _environment(self) -> dict:
        return self.credential.git_environment() if self.credential else {}

    def _progress_handler(self) -> Optional[ConsoleProgress]:
        return ConsoleProgress() if self.progress else None

    def sync(self, remote_url: str, local_path: Path, project_id: Optional[int] = None,
             label: Optional[str] = None) -> SyncResult:
        """
        Make sure `local_path` is a working copy of `remote_url` at the remote tip.

        Never raises for repository level failures; they come back as a
        FAILED result after being logged.

        Args:
            remote_url: Clone URL of the remote repository
            local_path: Destination of the working copy
            project_id: GitLab project id, for logging and reporting
            label: Relative path reported in the result (defaults to local_path)

        Returns:
            SyncResult describing what happened
        """
        local_path = Path(local_path)
        label = label or str(local_path)
        context = f"project {project_id} at {label}" if project_id is not None else label

        self.logger.info(f"Syncing {context}")
        try:
            repo, cloned = self._clone_or_open(remote_url, local_path)
            with repo:
                updated = self._update(repo)
        except SyncError as e:
            self.logger.error(f"Sync failed for {context}: {e}")
            return SyncResult(label, SyncStatus.FAILED, project_id, f"{label}: {e}")

        if cloned:
            status = SyncStatus.CLONED
        elif updated:
            status = SyncStatus.UPDATED
        else:
            status = SyncStatus.UP_TO_DATE
        self.logger.info(f"{status.value.replace('_', ' ').capitalize()}: {context}")
        return SyncResult(label, status, project_id)

    def _clone_or_open(self, remote_url: str, local_path: Path) -> Tuple[Repo, bool]:
        """
        Clone into an empty destination, or open the repository already there.

        Returns:
            (repository, True if it was cloned now)
        """
        try:
            repo = Repo(local_path)
            self.logger.debug(f"Repository already exists: {local_path}")
            return repo, False
        except NoSuchPathError:
            pass
        except InvalidGitRepositoryError:
            if local_path.is_dir() and any(local_path.iterdir()):
                raise SyncError(f"clone repo error: {local_path} exists and is not a git repository", local_path)
        except OSError as e:
            raise SyncError(f"open repo error: {e}", local_path) from e

        try:
            local_path.parent.mkdir(parents=True, exist_ok=True)
            self.logger.debug(f"Clone URL: {remote_url}")
            repo = Repo.clone_from(
                remote_url,
                str(local_path),
                progress=self._progress_handler(),
                env=self._environment(),
            )
        except (GitCommandError, OSError) as e:
            raise SyncError(f"clone repo error: {e}", local_path) from e
        return repo, True

    def _get_origin_remote(self, repo: Repo) -> Optional[Any]:
        """Return the 'origin' remote of a repository, or None."""
        for remote in repo.remotes:
            if remote.name == 'origin':
                return remote
        return None

    def _resolve_target(self, repo: Repo, origin: Any) -> Optional[Any]:
        """
        Find the remote reference the working copy should mirror.

        The active branch's tracking branch wins; otherwise origin/HEAD,
        refreshed from the remote since it is only recorded at clone time and
        goes stale when the default branch is renamed or deleted.

        Returns:
            The target reference, or None if the remote has no branches

        Raises:
            SyncError: If the remote has branches but no resolvable default branch
        """
        if not repo.head.is_detached:
            tracking = repo.active_branch.tracking_branch()
            if tracking is not None and tracking.is_valid():
                return tracking

        if not any(ref.remote_head != 'HEAD' for ref in origin.refs):
            return None

        with repo.git.custom_environment(**self._environment()):
            repo.git.remote('set-head', origin.name, '--auto')

        for ref in origin.refs:
            if ref.remote_head == 'HEAD' and ref.is_valid():
                return ref
        raise SyncError("pull repo error: cannot resolve the default branch of 'origin'", repo.working_dir)

    def _update(self, repo: Repo) -> bool:
        """
        Fetch origin and force the working copy onto the remote tip.

        When HEAD already is the remote tip nothing is touched, so uncommitted
        edits to tracked files survive an UP_TO_DATE sync; the next update that
        moves HEAD discards them.

        Returns:
            True if HEAD moved, False if it was already up to date
        """
        origin = self._get_origin_remote(repo)
        if origin is None:
            raise SyncError("pull repo error: no 'origin' remote", repo.working_dir)

        try:
            with repo.git.custom_environment(**self._environment()):
                origin.fetch(progress=self._progress_handler(), prune=True, force=True)

            target = self._resolve_target(repo, origin)
            if target is None:
                self.logger.debug(f"Remote has no branches, nothing to update in {repo.working_dir}")
                return False

            if repo.head.is_valid() and repo.head.commit == target.commit:
                return False

            self.logger.debug(f"Resetting {repo.working_dir} to {target.name} ({target.commit.hexsha[:8]})")
            repo.head.reset(target.commit, index=True, working_tree=True)
            return True
        except (GitCommandError, ValueError, TypeError, OSError) as e:
            raise SyncError(f"pull repo error: {e}", repo.working_dir) from e
