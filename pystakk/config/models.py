"""Pydantic models for config types."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

class RepoConfig(BaseModel):
    """Repository configuration."""
    model_config = ConfigDict(extra="allow")

    remote: str = "origin"
    github_repo_owner: Optional[str] = None
    github_repo_name: Optional[str] = None
    # Overrides the forge's default branch as the base of the bottom PR
    default_branch: Optional[str] = None
    trunk_revset: str = "trunk()"

class UserConfig(BaseModel):
    """User configuration."""
    model_config = ConfigDict(extra="allow")

    draft: bool = False

class ToolConfig(BaseModel):
    """Tool configuration."""
    model_config = ConfigDict(extra="allow")

    concurrency: int = 4
    pretend: bool = False

class StakkConfig(BaseModel):
    """Full pystakk configuration."""
    model_config = ConfigDict(extra="allow")

    repo: RepoConfig = Field(default_factory=RepoConfig)
    user: UserConfig = Field(default_factory=UserConfig)
    tool: ToolConfig = Field(default_factory=ToolConfig)
