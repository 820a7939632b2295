"""Config module."""

from typing import Dict, Any
from .models import RepoConfig, UserConfig, StakkConfig, ToolConfig

class Config(StakkConfig):
    """Config object holding repository, user and tool config.

    Built from the nested dict produced by the config parser.
    """
    def __init__(self, config: Dict[str, Dict[str, Any]]):
        """Initialize with parsed config dict."""
        super().__init__(
            repo=RepoConfig.model_validate(config.get('repo', {})),
            user=UserConfig.model_validate(config.get('user', {})),
            tool=ToolConfig.model_validate(config.get('tool', {})),
        )

def default_config() -> Config:
    """Get default config without consulting jj or the filesystem."""
    return Config({
        'repo': {
            'remote': 'origin',
        },
        'user': {},
        'tool': {
            'concurrency': 4,
        }
    })
