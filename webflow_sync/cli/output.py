"""Terminal output handling using Rich library.

This module provides the OutputHandler class for all CLI terminal output.
Uses Rich for progress bars, spinners, colored output, tables and
formatted summaries. Supports verbosity levels and the --no-color flag.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List

from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeRemainingColumn,
)
from rich.spinner import Spinner
from rich.table import Table

from webflow_sync.cli.collection_fields import FieldCreationResult
from webflow_sync.cli.models import RunSummary, SkipReason, SyncOperation
from webflow_sync.file_mapper.frontmatter_validator import ERROR, ValidationIssue
from webflow_sync.file_mapper.models import CollectionSchema


class OutputHandler:
    """Handles all terminal output using Rich library.

    Provides methods for displaying messages, progress bars, spinners,
    and summaries with color coding and verbosity level control.

    Attributes:
        verbosity: Verbosity level (0=summary, 1=info, 2=debug)
        console: Rich Console instance for output

    Example:
        >>> handler = OutputHandler(verbosity=1, no_color=False)
        >>> handler.success("Operation completed")
        >>> with handler.spinner("Processing..."):
        ...     pass
    """

    def __init__(self, verbosity: int = 0, no_color: bool = False):
        """Initialize output handler.

        Args:
            verbosity: Verbosity level (0=summary, 1=info, 2=debug)
            no_color: Disable color output if True
        """
        self.verbosity = verbosity
        self.console = Console(
            no_color=no_color,
            highlight=False,
        )

    def success(self, message: str) -> None:
        """Display success message in green."""
        self.console.print(f"[green]✓[/green] {escape(message)}")

    def error(self, message: str) -> None:
        """Display error message in red."""
        self.console.print(f"[red]✗[/red] {escape(message)}", style="red")

    def warning(self, message: str) -> None:
        """Display warning message in yellow."""
        self.console.print(f"[yellow]⚠[/yellow] {escape(message)}", style="yellow")

    def info(self, message: str) -> None:
        """Display info message (only if verbosity >= 1)."""
        if self.verbosity >= 1:
            self.console.print(escape(message))

    def debug(self, message: str) -> None:
        """Display debug message (only if verbosity >= 2)."""
        if self.verbosity >= 2:
            self.console.print(f"[dim]{escape(message)}[/dim]")

    def print(self, message: str) -> None:
        """Display message without formatting."""
        self.console.print(escape(message))

    @contextmanager
    def spinner(self, message: str) -> Iterator[None]:
        """Display spinner for single operations.

        Example:
            >>> with handler.spinner("Fetching collection..."):
            ...     pass
        """
        spinner = Spinner("dots", text=message)
        with Live(spinner, console=self.console, refresh_per_second=10):
            yield

    @contextmanager
    def progress_bar(self, total: int, description: str = "Processing") -> Iterator[Progress]:
        """Display progress bar for multi-item operations.

        Args:
            total: Total number of items to process
            description: Description text for progress bar

        Yields:
            Progress instance for updating progress

        Example:
            >>> with handler.progress_bar(10, "Syncing posts") as progress:
            ...     task = progress.add_task("Syncing posts", total=10)
            ...     progress.update(task, advance=1)
        """
        progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeRemainingColumn(),
            console=self.console,
        )
        with progress:
            yield progress

    def print_summary(self, summary: RunSummary) -> None:
        """Display sync summary with color coding.

        Args:
            summary: Aggregated outcomes of the run
        """
        self.console.print("\n[bold]Sync Summary:[/bold]")

        if summary.created_count > 0:
            self.console.print(f"  [green]+[/green] Created: {summary.created_count} post(s)")

        if summary.updated_count > 0:
            self.console.print(f"  [blue]↑[/blue] Updated: {summary.updated_count} post(s)")

        if summary.skipped_count > 0:
            self.console.print(f"  [dim]─[/dim] Skipped: {summary.skipped_count} post(s)")

        if summary.failed_count > 0:
            self.console.print(f"  [red]✗[/red] Failed: {summary.failed_count} post(s)")
            for outcome in summary.failures:
                kind = outcome.error_kind.value if outcome.error_kind else "error"
                self.console.print(
                    f"      {escape(outcome.locator)} [dim]({kind})[/dim]: {escape(outcome.error)}"
                )

        for locator in summary.write_back_failures:
            self.console.print(
                f"  [yellow]⚠[/yellow] Created but post_id not written back: {escape(locator)}"
            )

        # Overall status
        if summary.aborted_reason:
            self.console.print(f"\n[red]Sync aborted: {escape(summary.aborted_reason)}[/red]")
        elif not summary.outcomes:
            self.console.print("\n[yellow]No posts to sync[/yellow]")
        elif summary.has_failures:
            self.console.print("\n[red]Sync completed with errors[/red]")
        elif summary.created_count == 0 and summary.updated_count == 0:
            self.console.print("\n[green]Nothing to push. All posts skipped.[/green]")
        else:
            self.console.print("\n[green]Sync completed successfully[/green]")

    def print_dryrun_summary(self, summary: RunSummary) -> None:
        """Display dry run preview of changes."""
        self.console.print("\n[bold]Dry Run - Changes Preview:[/bold]")

        to_create = [o for o in summary.outcomes if o.operation == SyncOperation.CREATED]
        to_update = [o for o in summary.outcomes if o.operation == SyncOperation.UPDATED]
        disabled = [
            o for o in summary.outcomes
            if o.operation == SyncOperation.SKIPPED and o.skip_reason == SkipReason.SYNC_DISABLED
        ]

        if to_create:
            self.console.print(f"\n[green]Would create ({len(to_create)} post(s)):[/green]")
            for outcome in to_create:
                self.console.print(f"  • {escape(outcome.locator)}")

        if to_update:
            self.console.print(f"\n[blue]Would update ({len(to_update)} post(s)):[/blue]")
            for outcome in to_update:
                self.console.print(f"  • {escape(outcome.locator)} → {outcome.external_id}")

        if disabled:
            self.console.print(f"\n[dim]Would skip ({len(disabled)} post(s), push_to_webflow false):[/dim]")
            for outcome in disabled:
                self.console.print(f"  • {escape(outcome.locator)}")

        if summary.failures:
            self.console.print(f"\n[red]Would fail ({len(summary.failures)} post(s)):[/red]")
            for outcome in summary.failures:
                self.console.print(f"  • {escape(outcome.locator)}: {escape(outcome.error)}")

        if not summary.outcomes:
            self.console.print("\n[yellow]No posts to sync[/yellow]")

    def print_validation_issues(self, issues: List[ValidationIssue], checked: int) -> None:
        """Display frontmatter lint results.

        Args:
            issues: Lint findings for all checked documents
            checked: Number of documents checked
        """
        errors = [i for i in issues if i.severity == ERROR]
        warnings = [i for i in issues if i.severity != ERROR]

        for issue in errors:
            self.console.print(f"[red]✗[/red] {escape(str(issue))}")
        for issue in warnings:
            self.console.print(f"[yellow]⚠[/yellow] {escape(str(issue))}")

        if errors:
            self.console.print(
                f"\n[red]Frontmatter validation failed: {len(errors)} error(s), "
                f"{len(warnings)} warning(s) in {checked} file(s)[/red]"
            )
        else:
            self.console.print(
                f"\n[green]Frontmatter OK: {checked} file(s) checked, "
                f"{len(warnings)} warning(s)[/green]"
            )

    def print_schema(self, collection: Dict[str, Any], schema: CollectionSchema) -> None:
        """Display the remote collection fields next to the local mapping.

        Args:
            collection: Collection definition returned by the Webflow API
            schema: Local field mapping in effect
        """
        name = collection.get("displayName") or collection.get("slug") or collection.get("id", "")
        self.console.print(f"\n[bold]Collection:[/bold] {escape(str(name))}")

        mapped = {spec.target: spec.source for spec in schema.fields}
        table = Table(show_header=True, header_style="bold")
        table.add_column("Slug")
        table.add_column("Type")
        table.add_column("Required")
        table.add_column("Frontmatter key")

        remote_slugs = set()
        for remote_field in collection.get("fields", []):
            slug = str(remote_field.get("slug", ""))
            remote_slugs.add(slug)
            table.add_row(
                escape(slug),
                escape(str(remote_field.get("type", ""))),
                "yes" if remote_field.get("isRequired") else "",
                escape(mapped.get(slug, "-")),
            )
        self.console.print(table)

        unmapped = [spec for spec in schema.fields if spec.target not in remote_slugs]
        for spec in unmapped:
            self.console.print(
                f"[yellow]⚠[/yellow] Mapped field '{escape(spec.target)}' "
                f"({escape(spec.source)}) is not in the collection"
            )
        if unmapped:
            self.console.print("[dim]Run with --create-fields to add them[/dim]")

    def print_items(self, data: Dict[str, Any], max_value_length: int = 100) -> None:
        """Display collection items as returned by Webflow's list endpoint.

        Args:
            data: Response with ``items`` and optional ``pagination``
            max_value_length: Longer field values are truncated
        """
        items = data.get("items") or []
        total = (data.get("pagination") or {}).get("total", len(items))
        self.console.print(f"\n[bold]Items:[/bold] {len(items)} of {total}")

        if not items:
            self.console.print("[yellow]No items found in collection[/yellow]")
            return

        for item in items:
            field_data = item.get("fieldData") or {}
            title = field_data.get("name") or item.get("id", "")
            table = Table(title=escape(str(title)), show_header=False, title_justify="left")
            table.add_column("Field", style="bold")
            table.add_column("Value")
            table.add_row("id", escape(str(item.get("id", ""))))
            table.add_row("created", escape(str(item.get("createdOn") or "-")))
            table.add_row("updated", escape(str(item.get("lastUpdated") or "-")))
            table.add_row("draft", str(item.get("isDraft", "-")))
            for key, value in field_data.items():
                text = str(value)
                if len(text) > max_value_length:
                    text = text[:max_value_length] + "..."
                table.add_row(escape(key), escape(text))
            self.console.print(table)

    def print_field_creation(self, result: FieldCreationResult, dry_run: bool = False) -> None:
        """Display the outcome of --create-fields."""
        if not result.planned:
            self.console.print("[green]✓[/green] All mapped fields already exist in the collection")
            return

        if dry_run:
            self.console.print(f"\n[bold]Would create {len(result.planned)} field(s):[/bold]")
            for definition in result.planned:
                self.console.print(
                    f"  • {escape(definition['displayName'])} "
                    f"({escape(definition['slug'])}) - {definition['type']}"
                )
            return

        for definition in result.created:
            self.console.print(
                f"[green]+[/green] Created field {escape(str(definition.get('slug', '')))}"
            )
        for slug, error in result.failed.items():
            self.console.print(f"[red]✗[/red] {escape(slug)}: {escape(error)}")

        if result.failed:
            self.console.print(
                f"\n[red]{len(result.failed)} of {len(result.planned)} field(s) "
                f"could not be created[/red]"
            )
        else:
            self.console.print(f"\n[green]Created {len(result.created)} field(s)[/green]")
