"""CLI entry point."""

import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click
from click import Context

from ...config import Config, default_config
from ...config.config_parser import parse_config
from ...forge import Forge
from ...forge.auth import resolve_token
from ...forge.github import GitHubForge
from ...graph import build_change_graph
from ...jj import RealJj
from ...jj.remote import resolve_github_remote
from ...pretty import format_outcomes, format_plan, format_stacks, print_header
from ...submit import (
    OutcomeStatus, analyze_submission, create_submission_plan, execute_submission_plan,
)
from ...typing import AuthResolutionError, RemoteError, StakkError

# Get module logger
logger = logging.getLogger(__name__)


def check(err: Exception) -> None:
    """Log an error and exit."""
    logger.error(f"{err}")
    sys.exit(1)


class AliasedGroup(click.Group):
    """Command group with support for aliases and a default command."""

    def __init__(self, name: Optional[str] = None, commands: Optional[Dict[str, click.Command]] = None,
                 **attrs: Any) -> None:
        """Initialize with aliases map."""
        super().__init__(name, commands, **attrs)
        self.aliases: Dict[str, str] = {}

    def add_alias(self, alias: str, command: str) -> None:
        """Add an alias for a command."""
        self.aliases[alias] = command

    def get_command(self, ctx: Context, cmd_name: str) -> Optional[click.Command]:
        """Get a command by name, supporting aliases."""
        if cmd_name in self.aliases:
            cmd_name = self.aliases[cmd_name]
        return super().get_command(ctx, cmd_name)


@click.group(cls=AliasedGroup, invoke_without_command=True)
@click.pass_context
def cli(ctx: Context) -> None:
    """stakk - submit jj bookmark stacks as GitHub pull requests."""
    ctx.ensure_object(dict)
    if ctx.invoked_subcommand is None:
        ctx.invoke(show)


def setup_jj(directory: Optional[str] = None) -> Tuple[Config, RealJj]:
    """Setup jj command and config."""
    if directory:
        os.chdir(directory)

    jj_cmd = RealJj(default_config())
    try:
        root = jj_cmd.workspace_root()
    except StakkError as e:
        logger.error("Not in a jj repository")
        check(e)

    cfg = parse_config(jj_cmd, Path(root))
    config = Config(cfg)
    return config, RealJj(config)


def setup_forge(config: Config) -> Forge:
    """Create the GitHub forge for the configured repository."""
    owner = config.repo.github_repo_owner
    name = config.repo.github_repo_name
    if not owner or not name:
        raise RemoteError(f"could not determine the GitHub repository for remote "
                          f"'{config.repo.remote}'; set repo.github_repo_owner and "
                          "repo.github_repo_name in .stakk.yaml")
    token = resolve_token()
    logger.info(f"Using GitHub token from {token.source}")
    return GitHubForge.from_token(token.token, owner, name)


@cli.command(name="submit", help="Push a bookmark's stack and create or update its pull requests")
@click.argument('bookmark')
@click.option('-C', '--directory', type=click.Path(exists=True, file_okay=False, dir_okay=True),
              help='Run as if stakk was started in DIRECTORY instead of the current working directory')
@click.option('--dry-run', is_flag=True, help="Show the plan without pushing or touching pull requests")
@click.option('--draft', is_flag=True, default=None, help="Create new pull requests as drafts")
@click.option('--remote', type=str, default=None, help="Git remote to push to (default: repo.remote)")
@click.option('-y', '--yes', is_flag=True, help="Do not ask for confirmation")
@click.option('-v', '--verbose', count=True, help="Increase verbosity (can be used multiple times for more verbosity)")
def submit(bookmark: str, directory: Optional[str], dry_run: bool, draft: Optional[bool],
           remote: Optional[str], yes: bool, verbose: int) -> None:
    """Submit command."""
    from ... import setup_logging
    setup_logging(verbose)

    config, jj_cmd = setup_jj(directory)
    config.tool.pretend = dry_run
    if remote:
        config.repo.remote = remote
    if draft:
        config.user.draft = True

    try:
        graph = build_change_graph(jj_cmd, config.repo.trunk_revset)
        analysis = analyze_submission(bookmark, graph)
        forge = setup_forge(config)
        plan = create_submission_plan(
            analysis, forge,
            default_branch=config.repo.default_branch,
            remote=config.repo.remote,
            draft=config.user.draft,
            concurrency=config.tool.concurrency,
        )
    except StakkError as e:
        check(e)

    click.echo(format_plan(plan))
    if not plan.has_mutations:
        click.echo("\nNothing to push or change.")
        return
    if dry_run:
        click.echo("\nDry run: nothing was pushed or changed.")
        return
    if not yes and sys.stdin.isatty():
        if not click.confirm("Proceed?", default=True):
            click.echo("Aborted.")
            return

    result = execute_submission_plan(plan, jj_cmd, forge, config.tool.concurrency)
    click.echo("")
    click.echo(format_outcomes(result))
    if result.status != OutcomeStatus.SUCCESS:
        sys.exit(1)


@cli.command(name="show", help="Show the default branch, remotes and bookmark stacks")
@click.option('-C', '--directory', type=click.Path(exists=True, file_okay=False, dir_okay=True),
              help='Run as if stakk was started in DIRECTORY instead of the current working directory')
@click.option('-v', '--verbose', count=True, help="Increase verbosity (can be used multiple times for more verbosity)")
def show(directory: Optional[str] = None, verbose: int = 0) -> None:
    """Show command."""
    from ... import setup_logging
    setup_logging(verbose)

    config, jj_cmd = setup_jj(directory)
    try:
        default_branch = config.repo.default_branch or jj_cmd.get_default_branch()
        remotes = jj_cmd.get_git_remote_list()
        graph = build_change_graph(jj_cmd, config.repo.trunk_revset)
    except StakkError as e:
        check(e)

    print_header("stakk")
    click.echo(f"Default branch: {default_branch}")
    click.echo("Remotes:")
    for r in remotes:
        click.echo(f"  {r.name}  {r.url}")
    try:
        name, repo = resolve_github_remote(remotes, config.repo.remote)
        click.echo(f"GitHub repository: {repo} (via {name})")
    except RemoteError as e:
        click.echo(f"GitHub repository: unknown ({e})")
    click.echo("")
    click.echo("Stacks:")
    click.echo(format_stacks(graph))


@cli.group(name="auth", help="Check or set up GitHub authentication")
def auth() -> None:
    """Auth commands."""


@auth.command(name="test", help="Resolve a token and check it against GitHub")
@click.option('-C', '--directory', type=click.Path(exists=True, file_okay=False, dir_okay=True),
              help='Run as if stakk was started in DIRECTORY instead of the current working directory')
@click.option('-v', '--verbose', count=True, help="Increase verbosity (can be used multiple times for more verbosity)")
def auth_test(directory: Optional[str], verbose: int) -> None:
    """Auth test command."""
    from ... import setup_logging
    setup_logging(verbose)

    config, _ = setup_jj(directory)
    try:
        forge = setup_forge(config)
        login = forge.get_authenticated_identity()
    except StakkError as e:
        check(e)
    click.echo(f"Authenticated to GitHub as {login}")


@auth.command(name="setup", help="Explain how to provide a GitHub token")
def auth_setup() -> None:
    """Auth setup command."""
    try:
        token = resolve_token()
        click.echo(f"A GitHub token is already available from {token.source}.")
    except AuthResolutionError as e:
        click.echo(str(e))
    click.echo("")
    click.echo("stakk looks for a token in this order:")
    click.echo("  1. `gh auth token` (install the GitHub CLI and run `gh auth login`)")
    click.echo("  2. the GITHUB_TOKEN environment variable")
    click.echo("  3. the GH_TOKEN environment variable")
    click.echo("The token needs the `repo` scope to push branches and manage pull requests.")


def main() -> None:
    """Main entry point."""
    cli.aliases['s'] = 'submit'
    cli.aliases['st'] = 'show'
    cli(obj={})


if __name__ == "__main__":
    main()
