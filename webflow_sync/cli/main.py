"""Main CLI entry point for webflow-sync command.

This module provides the Typer application that serves as the entry point
for the webflow-sync command-line tool. It uses options on the main command
rather than subcommands for a simpler user experience.
"""

import logging
import signal
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer

from webflow_sync import __version__
from webflow_sync.cli.models import ChangeSetContext, ExitCode, SyncMode
from webflow_sync.cli.output import OutputHandler
from webflow_sync.cli.sync_command import SyncCommand
from webflow_sync.file_mapper.config_loader import DEFAULT_CONFIG_PATH

app = typer.Typer(
    name="webflow-sync",
    help="""Sync markdown posts with YAML frontmatter to a Webflow CMS collection.

QUICK START:
  webflow-sync                      # Sync posts changed in the last commit
  webflow-sync --all                # Sync every post
  webflow-sync posts/hello.md       # Sync specific files
  webflow-sync --all --dry-run      # Preview without calling Webflow
  webflow-sync --validate           # Lint frontmatter only
  webflow-sync --create-fields      # Add missing collection fields""",
    add_completion=False,
    rich_markup_mode=None,
    no_args_is_help=False,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_REVISION = "HEAD~1"


def _configure_logging(verbosity: int, logdir: Optional[str] = None) -> None:
    """Configure logging based on verbosity level.

    Configures only the 'webflow_sync' namespace logger to avoid affecting
    third-party libraries. The root logger is left unchanged.

    Args:
        verbosity: Verbosity level (0=WARNING, 1=INFO, 2=DEBUG)
        logdir: Optional directory for log files (creates timestamped log file)
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:  # verbosity >= 2
        level = logging.DEBUG

    app_logger = logging.getLogger("webflow_sync")
    app_logger.setLevel(level)
    app_logger.handlers.clear()

    log_format = "%(asctime)s [%(levelname)8s] %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(log_format, datefmt=date_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    if logdir:
        log_path = Path(logdir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"webflow-sync_{timestamp}.log"

        file_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        file_formatter = logging.Formatter(file_format, datefmt=date_format)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(file_formatter)
        app_logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_file}")


def _install_signal_handlers(sync_cmd: SyncCommand) -> None:
    """Route SIGINT/SIGTERM to a graceful cancel between documents."""
    if threading.current_thread() is not threading.main_thread():
        return

    def _handler(signum, frame):
        sync_cmd.cancel()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


@app.command()
def main_command(
    files: Optional[List[str]] = typer.Argument(
        None,
        help="Specific markdown files to sync (overrides git change detection)",
    ),
    sync_all: bool = typer.Option(
        False,
        "--all",
        help="Sync every post under the posts directory",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "--dryrun",
        help="Preview create/update decisions without calling Webflow or writing files",
    ),
    base: Optional[str] = typer.Option(
        None,
        "--base",
        help=f"Git revision to diff from in delta mode (default: {DEFAULT_BASE_REVISION})",
        metavar="REV",
    ),
    head: str = typer.Option(
        "HEAD",
        "--head",
        help="Git revision to diff to in delta mode",
        metavar="REV",
    ),
    validate: bool = typer.Option(
        False,
        "--validate",
        help="Lint frontmatter of the selected posts and exit",
    ),
    show_schema: bool = typer.Option(
        False,
        "--show-schema",
        help="Print the Webflow collection fields and the frontmatter mapping",
    ),
    inspect_items: bool = typer.Option(
        False,
        "--inspect",
        help="Print the first items of the Webflow collection",
    ),
    limit: int = typer.Option(
        5,
        "--limit",
        min=1,
        max=100,
        help="Number of items shown by --inspect",
        metavar="N",
    ),
    create_fields: bool = typer.Option(
        False,
        "--create-fields",
        help="Add mapped fields missing from the collection (honours --dry-run)",
    ),
    config_path: str = typer.Option(
        DEFAULT_CONFIG_PATH,
        "--config",
        help="Path to the YAML configuration file",
        metavar="PATH",
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers",
        min=1,
        help="Posts reconciled concurrently (default from config, 1 = sequential)",
        metavar="N",
    ),
    logdir: Optional[str] = typer.Option(
        None,
        "--logdir",
        help="Directory for log files (creates timestamped log file)",
    ),
    verbosity: int = typer.Option(
        0,
        "--verbosity",
        "-v",
        help="Verbosity level: 0=summary, 1=info, 2=debug",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
    ),
) -> None:
    """Sync markdown posts with YAML frontmatter to a Webflow CMS collection.

    \b
    MODES:
      webflow-sync                      # Delta: posts changed since HEAD~1
      webflow-sync --base origin/main   # Delta against another revision
      webflow-sync --all                # Every post under posts/
      webflow-sync a.md b.md            # Only the given files

    \b
    COLLECTION:
      webflow-sync --show-schema        # Remote fields next to the mapping
      webflow-sync --inspect --limit 3  # First items of the collection
      webflow-sync --create-fields      # Add mapped fields that are missing

    \b
    EXIT CODES:
      0 success, 1 failures, 3 authentication, 4 network, 5 invalid frontmatter
    """
    if version:
        typer.echo(f"webflow-sync version {__version__}")
        raise typer.Exit()

    if sync_all and files:
        typer.echo("Error: --all cannot be combined with explicit files", err=True)
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    _configure_logging(verbosity, logdir)
    output = OutputHandler(verbosity=verbosity, no_color=no_color)
    sync_cmd = SyncCommand(config_path=config_path, output_handler=output)

    if show_schema:
        raise typer.Exit(sync_cmd.show_schema())

    if inspect_items:
        raise typer.Exit(sync_cmd.inspect(limit))

    if create_fields:
        raise typer.Exit(sync_cmd.create_fields(dry_run=dry_run))

    mode = SyncMode.ALL if sync_all else SyncMode.DELTA
    context = ChangeSetContext(
        explicit_locators=list(files) if files else None,
        base_revision=base or DEFAULT_BASE_REVISION,
        head_revision=head,
    )

    if validate:
        raise typer.Exit(sync_cmd.validate(mode, context))

    _install_signal_handlers(sync_cmd)
    exit_code = sync_cmd.run(
        mode=mode,
        context=context,
        dry_run=dry_run,
        max_workers=workers,
    )
    raise typer.Exit(exit_code)


def main() -> None:
    """Main entry point for the CLI application.

    This function is called when the module is executed directly or
    when the console script is invoked.
    """
    app()


# Allow running as: python -m webflow_sync.cli.main
if __name__ == "__main__":
    main()
