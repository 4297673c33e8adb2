"""
Transport credentials for git over SSH.

Keys are never read by this tool: git's ssh client talks to the running
ssh-agent through SSH_AUTH_SOCK.
"""

import os
import shlex
import stat
from dataclasses import dataclass
from typing import Dict, Optional, Mapping

from .exceptions import CredentialError


@dataclass(frozen=True)
class SSHAgentCredential:
    """Authentication handle backed by an ssh-agent socket."""

    user: str
    auth_sock: str

    @classmethod
    def from_environment(cls, user: str = "git", environ: Optional[Mapping[str, str]] = None) -> 'SSHAgentCredential':
        """
        Locate the ssh-agent of the current session.

        Raises:
            CredentialError: If SSH_AUTH_SOCK is unset or not a socket
        """
        environ = os.environ if environ is None else environ
        sock = environ.get("SSH_AUTH_SOCK")
        if not sock:
            raise CredentialError("SSH_AUTH_SOCK is not set, start an ssh-agent and add your key")
        try:
            mode = os.stat(sock).st_mode
        except OSError as e:
            raise CredentialError(f"ssh-agent socket {sock} is not reachable: {e}") from e
        if not stat.S_ISSOCK(mode):
            raise CredentialError(f"SSH_AUTH_SOCK {sock} is not a socket")
        return cls(user=user, auth_sock=sock)

    def git_environment(self) -> Dict[str, str]:
        """Environment overrides for every git clone and fetch."""
        ssh_command = " ".join([
            "ssh",
            "-o", "BatchMode=yes",
            "-l", shlex.quote(self.user),
        ])
        return {
            "SSH_AUTH_SOCK": self.auth_sock,
            "GIT_SSH_COMMAND": ssh_command,
            "GIT_TERMINAL_PROMPT": "0",
        }
