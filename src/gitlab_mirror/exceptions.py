"""
Exceptions raised by GitLab Mirror.
"""


class MirrorError(Exception):
    """Base class for all GitLab Mirror errors."""


class ConfigurationError(MirrorError):
    """Invalid command line or settings file input."""


class CredentialError(MirrorError):
    """No usable transport credential (e.g. no running ssh-agent)."""


class MetadataFetchError(MirrorError):
    """A group or project lookup against the GitLab API failed."""

    def __init__(self, message: str, entity_id=None):
        super().__init__(message)
        self.entity_id = entity_id


class SyncError(MirrorError):
    """Clone, open, fetch or reset of a local working copy failed."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path
