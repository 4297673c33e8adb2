#!/usr/bin/env python3
"""
Command-line interface for GitLab Mirror.
"""

import sys
from typing import Tuple, List

import click

from .config import Config, MirrorConfig
from .credentials import SSHAgentCredential
from .exceptions import MirrorError
from .mirror import GitLabMirror, setup_logging


class IntListParamType(click.ParamType):
    """Comma separated integers, e.g. ``--group-ids 1,2,3``."""

    name = "ids"

    def convert(self, value, param, ctx):
        if isinstance(value, (list, tuple)):
            return [int(v) for v in value]
        try:
            return [int(part) for part in str(value).split(',') if part.strip()]
        except ValueError:
            self.fail(f"{value!r} is not a comma separated list of integers", param, ctx)


INT_LIST = IntListParamType()


def _flatten(values: Tuple[List[int], ...]) -> List[int]:
    return [v for chunk in values for v in chunk]


@click.command()
@click.option('--dest-dir', default=None, help='Local destination directory for mirrored repositories [default: ./repos]')
@click.option('--ignore-group-ids', type=INT_LIST, multiple=True, help='Group IDs to skip (comma separated, repeatable)')
@click.option('--ignore-project-ids', type=INT_LIST, multiple=True, help='Project IDs to skip (comma separated, repeatable)')
@click.option('--gitlab-host', default=None, help='GitLab base URL [default: https://gitlab.com]')
@click.option('--gitlab-token', envvar='GITLAB_TOKEN', default=None, help='GitLab API access token (or GITLAB_TOKEN)')
@click.option('--group-ids', type=INT_LIST, multiple=True, help='Group IDs to mirror recursively (comma separated, repeatable)')
@click.option('--project-ids', type=INT_LIST, multiple=True, help='Project IDs to mirror at the destination root (comma separated, repeatable)')
@click.option('--progress', is_flag=True, help='Show git transfer progress on stdout')
@click.option('--deduplicate', is_flag=True, help='Visit each group and project at most once per run')
@click.option('--config', 'config_file', default=None, type=click.Path(dir_okay=False), help='JSON settings file [default: ~/.gitlab_mirror_config.json]')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Quiet mode - show only warnings and errors')
def main(dest_dir, ignore_group_ids, ignore_project_ids, gitlab_host, gitlab_token, group_ids,
         project_ids, progress, deduplicate, config_file, verbose, quiet):
    """
    Mirror GitLab groups and projects to local disk.

    Every group given with --group-ids is walked recursively; its projects are
    cloned (or force-updated if already present) under
    DEST_DIR/<group full path>/<project path>. Projects given with
    --project-ids are placed directly under DEST_DIR.

    Repositories are cloned over SSH through the running ssh-agent.
    """
    logger = setup_logging(quiet=quiet, verbose=verbose)

    try:
        settings = Config(config_file)
        deduplicate = settings.get_bool('deduplicate') or deduplicate
    except MirrorError as e:
        logger.error(str(e))
        sys.exit(1)

    gitlab_host = gitlab_host or settings.get('gitlab_host')
    gitlab_token = gitlab_token or settings.get('gitlab_token')
    dest_dir = dest_dir or settings.get('dest_dir')

    if not settings.validate_gitlab_url(gitlab_host):
        logger.error(f"Invalid GitLab URL: {gitlab_host!r}")
        sys.exit(1)
    if not settings.validate_access_token(gitlab_token):
        logger.error("A GitLab access token is required (--gitlab-token or GITLAB_TOKEN)")
        sys.exit(1)
    if not settings.validate_destination_path(dest_dir):
        logger.error(f"Invalid destination directory: {dest_dir!r}")
        sys.exit(1)

    group_ids = _flatten(group_ids)
    project_ids = _flatten(project_ids)
    if not group_ids and not project_ids:
        logger.warning("Nothing to do: pass --group-ids and/or --project-ids")

    try:
        config = MirrorConfig.build(
            dest_dir,
            excluded_group_ids=_flatten(ignore_group_ids) or settings.get('ignore_group_ids'),
            excluded_project_ids=_flatten(ignore_project_ids) or settings.get('ignore_project_ids'),
            page_size=int(settings.get('page_size')),
            deduplicate=deduplicate,
        )
        credential = SSHAgentCredential.from_environment(user=settings.get('ssh_user'))
        mirror = GitLabMirror(gitlab_host, gitlab_token, config, credential=credential, progress=progress)
        mirror.authenticate()
    except (MirrorError, ValueError, TypeError) as e:
        logger.error(str(e))
        sys.exit(1)

    try:
        mirror.mirror(group_ids, project_ids)
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        sys.exit(1)

    sys.exit(0)


if __name__ == '__main__':
    main()
