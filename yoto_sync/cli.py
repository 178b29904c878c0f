"""
Command-line interface for yoto-sync.

This module implements the CLI using Click, with rich-click for the help
and error colors.

Commands:
    yoto sync <url> [-p NAME]      Sync a YouTube playlist to a Yoto card
    yoto login                     Store a Yoto bearer token
    yoto logout                    Delete the stored token
    yoto status                    Show login status and token expiry
    yoto list                      List the account's Yoto cards
    yoto inspect <card_id>         Print a card's raw JSON (debug)
    yoto links                     List remembered playlist → card links

Global Options:
    --config <path>                Use this config.yaml
    --verbose                      Show debug messages on the console

Exit Codes:
    0    Success, or the operator cancelled
    1    Configuration or input error
    2    Not logged in / token expired
    3    Could not read the playlist or talk to Yoto
    4    Sync failed (download, upload or commit)
    130  Interrupted
"""

import json
import shutil
import sys
from pathlib import Path
from typing import Callable, Optional

import rich_click as click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100
click.rich_click.COMMAND_GROUPS = {
    "cli": [
        {"name": "Sync", "commands": ["sync", "links"]},
        {"name": "Yoto account", "commands": ["login", "logout", "status", "list", "inspect"]},
    ],
}

from yoto_sync import __version__
from yoto_sync.core import (
    AuthError,
    CatalogError,
    Config,
    ConfigError,
    DatabaseError,
    PlanningError,
    ValidationError,
    YotoApiError,
    YotoSyncError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from yoto_sync.core.associations import AssociationStore
from yoto_sync.sync import SyncOrchestrator, SyncResult
from yoto_sync.sync.prompt import ClickPrompt
from yoto_sync.sync.render import RichPlanRenderer
from yoto_sync.yoto import YotoClient, YotoPublisher
from yoto_sync.yoto import auth
from yoto_sync.youtube import YouTubeCatalog, YouTubeFetcher, cookie_options

logger = get_logger(__name__)

console = Console()


@click.group()
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml or ~/.config/yoto/config.yaml)"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Show debug messages on the console"
)
@click.version_option(__version__, prog_name="yoto-sync")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], verbose: bool) -> None:
    """
    yoto-sync: Sync YouTube playlists to Yoto cards.

    Downloads the audio of a YouTube playlist and mirrors it as the
    chapters of a Yoto MYO card. Chapters that are still in the playlist
    keep their icons; new videos are uploaded; chapters no longer in the
    playlist are removed after confirmation.

    \b
    FIRST RUN:
        yoto login                                  # Paste your Yoto token
        yoto sync "https://www.youtube.com/playlist?list=PL..."

    \b
    CHOOSING THE CARD:
        yoto sync <url> -p "Bedtime"                # Fuzzy match a card by name
        yoto sync <url>                             # Reuse the last card, or pick one
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


# =============================================================================
# Sync
# =============================================================================

@cli.command()
@click.argument("url", metavar="<playlist-url>")
@click.option(
    "--playlist", "-p", "card_name",
    type=str,
    default=None,
    metavar="<name>",
    help="Fuzzy match the Yoto card by name"
)
@click.pass_context
def sync(ctx: click.Context, url: str, card_name: Optional[str]) -> None:
    """Sync a YouTube playlist to a Yoto card."""
    _run(ctx, lambda config: _run_sync(config, url, card_name), log_to_files=True)


def _run_sync(config: Config, url: str, card_name: Optional[str]) -> None:
    """
    Build the collaborators, run one sync and report the outcome.

    Raises:
        ConfigError: If ffmpeg is missing.
        AuthError: If not logged in.
        YotoSyncError: Whatever the orchestrator raises.
    """
    _check_ffmpeg()
    token = auth.require_token(config.storage.auth_file)

    logger.info("=" * 60)
    logger.info(f"yoto-sync {__version__}")
    logger.info("=" * 60)

    client = YotoClient(token, config.yoto)

    with AssociationStore(config.storage.database_file) as store:
        orchestrator = SyncOrchestrator(
            catalog=YouTubeCatalog(cookie_options(config.download)),
            cards=client,
            fetcher=YouTubeFetcher(config.download),
            publisher=YotoPublisher(client, config.publish),
            associations=store,
            prompt=ClickPrompt(),
            renderer=RichPlanRenderer(console),
            threshold=config.sync.match_threshold,
            threads=config.sync.threads,
            workspace_parent=config.storage.workspace_directory,
            show_progress=True,
        )
        result = orchestrator.run(url, hint=card_name)

    _print_result(result)

    if result.changed and config.sync.open_browser:
        edit_url = client.edit_url(result.target.target_id)
        logger.debug(f"Opening {edit_url}")
        click.launch(edit_url)


def _check_ffmpeg() -> None:
    if shutil.which("ffmpeg") is None:
        raise ConfigError(
            "ffmpeg is not installed (needed to extract audio). "
            "Install it with: brew install ffmpeg (macOS) or apt install ffmpeg (Debian/Ubuntu)",
            details={"binary": "ffmpeg"}
        )


def _print_result(result: SyncResult) -> None:
    # Cancelled and already-in-sync runs are reported by the orchestrator
    if not result.changed:
        return

    plan = result.plan
    logger.info("=" * 60)
    logger.info("SYNC COMPLETE")
    logger.info("=" * 60)
    logger.info(f"Card:              {result.target.target_name}")
    logger.info(f"Kept:              {plan.keep_count}")
    logger.info(f"Added:             {plan.add_count}")
    logger.info(f"Removed:           {plan.remove_count}")
    if not result.association_saved:
        logger.info("Playlist link:     not saved (see log)")
    logger.info("=" * 60)


@cli.command()
@click.pass_context
def links(ctx: click.Context) -> None:
    """List remembered playlist → card links."""
    _run(ctx, _show_links)


def _show_links(config: Config) -> None:
    with AssociationStore(config.storage.database_file) as store:
        associations = store.all()

    if not associations:
        click.echo("No playlists synced yet")
        return

    table = Table()
    table.add_column("YouTube playlist")
    table.add_column("Yoto card")
    table.add_column("Last synced", style="dim")
    for association in associations:
        table.add_row(
            f"{escape(association.source_name)}\n[dim]{escape(association.source_id)}[/dim]",
            f"{escape(association.target_name)}\n[dim]{escape(association.target_id)}[/dim]",
            association.last_synced_at.astimezone().strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


# =============================================================================
# Account
# =============================================================================

@cli.command()
@click.pass_context
def login(ctx: click.Context) -> None:
    """Authenticate with Yoto using a bearer token."""
    def _login(config: Config) -> None:
        click.echo(auth.LOGIN_INSTRUCTIONS)
        token = click.prompt("Paste token", hide_input=True)
        expires_in = auth.login(token, config.storage.auth_file)
        click.echo(f"Logged in. Token expires in {expires_in}.")

    _run(ctx, _login)


@cli.command()
@click.pass_context
def logout(ctx: click.Context) -> None:
    """Clear the stored authentication token."""
    def _logout(config: Config) -> None:
        auth.logout(config.storage.auth_file)
        click.echo("Logged out. Token cleared.")

    _run(ctx, _logout)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show login status and token expiry."""
    def _status(config: Config) -> None:
        token_status = auth.status(config.storage.auth_file)
        if token_status.valid:
            click.echo("Logged in")
            click.echo(f"  Token expires in {token_status.expires_in}")
        elif token_status.reason == auth.EXPIRED:
            click.echo("Token expired")
            click.echo("  Run: yoto login")
        else:
            click.echo("Not logged in")
            click.echo("  Run: yoto login")

    _run(ctx, _status)


@cli.command(name="list")
@click.pass_context
def list_cards(ctx: click.Context) -> None:
    """Show all Yoto cards of the account."""
    def _list(config: Config) -> None:
        client = YotoClient(auth.require_token(config.storage.auth_file), config.yoto)
        containers = client.list_containers()
        if not containers:
            click.echo("No playlists found")
            return

        table = Table()
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name")
        for container in containers:
            table.add_row(escape(container.id), escape(container.name))
        console.print(table)
        click.echo(f"{len(containers)} playlist{'' if len(containers) == 1 else 's'}")

    _run(ctx, _list)


@cli.command()
@click.argument("card_id", metavar="<card-id>")
@click.pass_context
def inspect(ctx: click.Context, card_id: str) -> None:
    """Print the raw JSON of a Yoto card (debug)."""
    def _inspect(config: Config) -> None:
        client = YotoClient(auth.require_token(config.storage.auth_file), config.yoto)
        click.echo(json.dumps(client.get_card(card_id), indent=2, ensure_ascii=False))

    _run(ctx, _inspect)


# =============================================================================
# Error handling
# =============================================================================

def _run(ctx: click.Context, action: Callable[[Config], None], log_to_files: bool = False) -> None:
    """
    Load the configuration, run action and map errors to exit codes.

    Args:
        ctx: Click context holding the global options.
        action: Command body.
        log_to_files: Set up the full logging system (console + log files).

    Raises:
        SystemExit: On errors, with the exit code documented above.
    """
    verbose = ctx.obj.get("verbose", False)

    try:
        config = load_config(ctx.obj.get("config_path"))
        if log_to_files:
            setup_logging(config.storage.logs_directory, verbose=verbose)
        action(config)

    except (ConfigError, ValidationError) as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.debug(f"Details: {e.details}")
        sys.exit(1)

    except AuthError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(2)

    except (PlanningError, CatalogError, YotoApiError, DatabaseError) as e:
        click.echo(f"Error: {e.message}", err=True)
        api_error = e if isinstance(e, YotoApiError) else e.__cause__
        if isinstance(api_error, YotoApiError) and api_error.status_code == 401:
            click.echo("Your Yoto token was rejected. Run: yoto login", err=True)
        logger.error(f"Error: {e.message}", exc_info=verbose)
        sys.exit(3)

    except YotoSyncError as e:
        click.echo(f"Sync failed: {e.message}", err=True)
        logger.error(f"Sync failed: {e.message}", exc_info=True)
        sys.exit(4)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    except click.Abort:
        click.echo("\nAborted", err=True)
        sys.exit(130)

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        logger.exception("Unexpected error")
        sys.exit(1)

    finally:
        shutdown_logging()


def main() -> None:
    """
    Entry point for the CLI.

    Called when running `yoto` from the command line.
    """
    cli()


if __name__ == "__main__":
    main()
