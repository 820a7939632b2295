"""Config parser logic."""

from pathlib import Path
from typing import Any, Dict, Optional
import logging
import yaml

from ...jj.remote import resolve_github_remote
from ...typing import JjInterface, RemoteError, VcsError

# Get module logger
logger = logging.getLogger(__name__)

RepoConfig = Dict[str, Any]  # Use Any since yaml can return various types
Config = Dict[str, RepoConfig]

CONFIG_FILE_NAME = ".stakk.yaml"

def parse_config(jj_cmd: JjInterface, root: Optional[Path] = None) -> Config:
    """Parse config from the repository config file and jj remotes."""
    config: Config = {
        'repo': {
            'remote': 'origin',
            'trunk_revset': 'trunk()',
        },
        'user': {
            'draft': False,
        },
        'tool': {
            'concurrency': 4,
            'pretend': False,
        }
    }

    path = (root or Path.cwd()) / CONFIG_FILE_NAME
    try:
        with open(path, 'r') as f:
            logger.info(f"Found {CONFIG_FILE_NAME}, loading...")
            file_config = yaml.safe_load(f)
            logger.debug(f"Config from {CONFIG_FILE_NAME}: {file_config}")
    except FileNotFoundError:
        logger.debug(f"No {CONFIG_FILE_NAME} found, using defaults")
        file_config = None

    if file_config:
        for section in ('repo', 'user', 'tool'):
            if section in file_config and isinstance(file_config[section], dict):
                config[section].update(file_config[section])

    # Derive owner/name from the remote URL if not configured
    if not config['repo'].get('github_repo_owner') or not config['repo'].get('github_repo_name'):
        try:
            remote_name, repo = resolve_github_remote(jj_cmd.get_git_remote_list(),
                                                      config['repo'].get('remote'))
            logger.debug(f"Remote {remote_name} points at {repo}")
            if not config['repo'].get('github_repo_owner'):
                config['repo']['github_repo_owner'] = repo.owner
            if not config['repo'].get('github_repo_name'):
                config['repo']['github_repo_name'] = repo.repo
        except (RemoteError, VcsError) as e:
            logger.warning(f"Failed to derive GitHub repository from remote: {e}")

    return config
