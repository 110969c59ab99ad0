"""Sync command orchestration for CLI.

This module provides the SyncCommand class that orchestrates a sync run:
it loads configuration, resolves the change set, and pushes every document
through parse -> image link rewrite -> render -> map -> reconcile, writing
newly created item IDs back into the source frontmatter. It also provides
the frontmatter lint (--validate) and the collection-level modes:
--show-schema, --inspect and --create-fields.
"""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Dict, List, Optional

from webflow_sync.cli.change_detector import ChangeSetResolver
from webflow_sync.cli.collection_fields import FieldCreationResult, create_missing_fields
from webflow_sync.cli.errors import CLIError
from webflow_sync.cli.models import (
    ChangeSetContext,
    ErrorKind,
    ExitCode,
    RunSummary,
    SkipReason,
    SyncMode,
    SyncOperation,
    SyncOutcome,
)
from webflow_sync.cli.output import OutputHandler
from webflow_sync.cli.reconciler import ReconciliationEngine
from webflow_sync.content_converter.asset_urls import build_asset_base_url, rewrite_image_links
from webflow_sync.content_converter.markdown_converter import MarkdownConverter
from webflow_sync.file_mapper.config_loader import DEFAULT_CONFIG_PATH, ConfigLoader
from webflow_sync.file_mapper.errors import (
    ConfigError,
    FilesystemError,
    MalformedHeaderError,
    ValidationError,
)
from webflow_sync.file_mapper.field_mapper import EXTERNAL_ID_KEY, FieldMapper
from webflow_sync.file_mapper.frontmatter_handler import FrontmatterHandler
from webflow_sync.file_mapper.frontmatter_validator import (
    ERROR,
    FrontmatterValidator,
    ValidationIssue,
    has_errors,
)
from webflow_sync.file_mapper.models import SyncConfig
from webflow_sync.webflow_client.api_wrapper import WebflowClient
from webflow_sync.webflow_client.auth import Authenticator
from webflow_sync.webflow_client.errors import (
    APIUnreachableError,
    ConversionError,
    InvalidCredentialsError,
    WebflowError,
)
from webflow_sync.webflow_client.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class SyncCommand:
    """Orchestrates the complete sync workflow for the CLI.

    The sync workflow:
        1. Load configuration (.webflow-sync/config.yaml, optional)
        2. Resolve the documents to consider (ChangeSetResolver)
        3. For each document: read, parse, rewrite image links, render,
           map and reconcile; write back post_id after a create
        4. Summarize outcomes and return an exit code

    A per-document error only fails that document. An authentication
    failure aborts the run and every untried document is reported as not
    attempted; so does cancellation (SIGINT/SIGTERM or cancel()).

    Example:
        >>> output = OutputHandler(verbosity=1)
        >>> sync_cmd = SyncCommand(output_handler=output)
        >>> exit_code = sync_cmd.run(mode=SyncMode.ALL, dry_run=True)
        >>> sys.exit(exit_code)
    """

    def __init__(
        self,
        config_path: str = DEFAULT_CONFIG_PATH,
        output_handler: Optional[OutputHandler] = None,
        authenticator: Optional[Authenticator] = None,
        client: Optional[Any] = None,
        resolver: Optional[ChangeSetResolver] = None,
        converter: Optional[MarkdownConverter] = None,
        repo_root: str = ".",
        cancel_event: Optional[threading.Event] = None,
        synced_at: Optional[datetime] = None,
        retry_sleep=None,
    ):
        """Initialize sync command with dependencies.

        Args:
            config_path: Path to configuration YAML file
            output_handler: OutputHandler for terminal output (optional)
            authenticator: Authenticator for the Webflow API (optional)
            client: Record store client, normally a WebflowClient (optional)
            resolver: ChangeSetResolver (optional, built from config)
            converter: MarkdownConverter (optional)
            repo_root: Repository root that locators are relative to
            cancel_event: Event that stops the run between documents
            synced_at: Run timestamp (defaults to now, UTC)
            retry_sleep: Sleep function used between retries (optional)

        Note:
            All dependencies are optional to support testing. In production
            they are created on first use.
        """
        self.config_path = config_path
        self.output_handler = output_handler or OutputHandler()
        self.authenticator = authenticator
        self.client = client
        self.resolver = resolver
        self.converter = converter
        self.repo_root = repo_root
        self.cancel_event = cancel_event or threading.Event()
        self.synced_at = synced_at
        self.retry_sleep = retry_sleep

        self._abort_event = threading.Event()
        self._abort_reason: Optional[str] = None
        self._write_back_failures: List[str] = []
        self._lock = threading.Lock()

    def cancel(self) -> None:
        """Stop the run after the documents currently in flight."""
        logger.warning("Cancellation requested, finishing in-flight documents")
        self.cancel_event.set()

    def _load_config(self) -> SyncConfig:
        logger.info(f"Loading configuration from {self.config_path}")
        config = ConfigLoader.load(self.config_path)
        if not self.resolver:
            self.resolver = ChangeSetResolver(content_root=config.posts_dir, repo_root=self.repo_root)
        return config

    def _get_authenticator(self) -> Authenticator:
        if not self.authenticator:
            self.authenticator = Authenticator()
        return self.authenticator

    def _get_client(self, config: SyncConfig) -> Any:
        if not self.client:
            self.client = WebflowClient(
                self._get_authenticator(),
                rate_limiter=RateLimiter(max_calls=config.rate_limit_per_minute, period=60.0),
            )
        return self.client

    def run(
        self,
        mode: SyncMode = SyncMode.DELTA,
        context: Optional[ChangeSetContext] = None,
        dry_run: bool = False,
        max_workers: Optional[int] = None,
    ) -> ExitCode:
        """Execute a sync run.

        This is the main entry point for sync operations. It translates
        exceptions to exit codes.

        Args:
            mode: SyncMode.ALL or SyncMode.DELTA
            context: Explicit locators and git revisions for DELTA mode
            dry_run: If True, plan operations without calling Webflow or
                     writing files
            max_workers: Override of config.max_workers

        Returns:
            ExitCode indicating success or specific failure type
        """
        try:
            config = self._load_config()
            locators = self.resolver.resolve(mode, context)

            if not locators:
                self.output_handler.print_summary(RunSummary())
                return ExitCode.SUCCESS

            self.output_handler.info(
                f"{'Planning' if dry_run else 'Syncing'} {len(locators)} post(s) "
                f"({mode.value} mode)"
            )

            # Fail before any document when credentials are absent
            client = None
            if not dry_run:
                if not self.client:
                    self._get_authenticator().get_credentials()
                client = self._get_client(config)

            if not self.converter:
                self.converter = MarkdownConverter()

            summary = self.sync(locators, config, client, dry_run=dry_run, max_workers=max_workers)

        except InvalidCredentialsError as e:
            logger.error(f"Authentication failed: {e}")
            self.output_handler.error(f"Authentication failed: {e}")
            self.output_handler.info(
                "Check WEBFLOW_TOKEN and WEBFLOW_COLLECTION_ID environment variables"
            )
            return ExitCode.AUTH_ERROR

        except (ConfigError, FilesystemError) as e:
            logger.error(f"Configuration error: {e}")
            self.output_handler.error(f"Configuration error: {e}")
            return ExitCode.GENERAL_ERROR

        except ConversionError as e:
            logger.error(f"Conversion setup failed: {e}")
            self.output_handler.error(str(e))
            return ExitCode.GENERAL_ERROR

        except CLIError as e:
            logger.error(f"CLI error: {e}")
            self.output_handler.error(f"Error: {e}")
            return ExitCode.GENERAL_ERROR

        except Exception as e:
            logger.exception("Unexpected error during sync")
            self.output_handler.error(f"Unexpected error: {e}")
            return ExitCode.GENERAL_ERROR

        if dry_run:
            self.output_handler.print_dryrun_summary(summary)
        else:
            self.output_handler.print_summary(summary)

        return self._exit_code(summary)

    def sync(
        self,
        locators: List[str],
        config: SyncConfig,
        client: Any = None,
        dry_run: bool = False,
        max_workers: Optional[int] = None,
    ) -> RunSummary:
        """Reconcile every locator and collect outcomes.

        Args:
            locators: Ordered documents to process
            config: Loaded sync configuration
            client: Record store client (unused in dry-run)
            dry_run: Plan operations only
            max_workers: Concurrent documents (defaults to config.max_workers)

        Returns:
            RunSummary with one outcome per locator, in locator order
        """
        self._abort_event.clear()
        self._abort_reason = None
        self._write_back_failures = []

        synced_at = self.synced_at or datetime.now(timezone.utc)
        mapper = FieldMapper(
            schema=config.build_schema(),
            asset_base_url=build_asset_base_url(
                os.getenv("GITHUB_REPOSITORY"), os.getenv("GITHUB_SHA")
            ),
            synced_at=synced_at,
        )
        engine = ReconciliationEngine(
            client,
            max_retries=config.max_retries,
            sleep=self.retry_sleep,
            dry_run=dry_run,
        )
        write_back = config.write_back and not dry_run
        workers = max_workers or config.max_workers

        outcomes: Dict[str, SyncOutcome] = {}
        with self.output_handler.progress_bar(len(locators), "Syncing posts") as progress:
            task = progress.add_task("Syncing posts", total=len(locators))

            if workers <= 1:
                for locator in locators:
                    outcomes[locator] = self._guarded_sync(
                        locator, config, mapper, engine, write_back
                    )
                    progress.update(task, advance=1)
            else:
                logger.info(f"Reconciling with {workers} worker(s)")
                with ThreadPoolExecutor(max_workers=workers) as executor:
                    futures = {
                        executor.submit(
                            self._guarded_sync, locator, config, mapper, engine, write_back
                        ): locator
                        for locator in locators
                    }
                    for future in as_completed(futures):
                        outcomes[futures[future]] = future.result()
                        progress.update(task, advance=1)

        ordered = [outcomes[locator] for locator in locators]
        aborted_reason = self._abort_reason
        if aborted_reason is None and self.cancel_event.is_set() and any(
            o.skip_reason == SkipReason.NOT_ATTEMPTED for o in ordered
        ):
            aborted_reason = "cancelled"

        return RunSummary(
            outcomes=ordered,
            aborted_reason=aborted_reason,
            write_back_failures=sorted(self._write_back_failures),
        )

    def _guarded_sync(
        self,
        locator: str,
        config: SyncConfig,
        mapper: FieldMapper,
        engine: ReconciliationEngine,
        write_back: bool,
    ) -> SyncOutcome:
        """Sync one document unless the run was cancelled or aborted."""
        if self.cancel_event.is_set() or self._abort_event.is_set():
            logger.debug(f"Not attempting {locator}")
            return SyncOutcome.not_attempted(locator)

        try:
            return self._sync_document(locator, config, mapper, engine, write_back)
        except InvalidCredentialsError as e:
            with self._lock:
                if self._abort_reason is None:
                    self._abort_reason = f"authentication failed: {e}"
            self._abort_event.set()
            logger.error(f"Authentication failed while syncing {locator}, aborting run")
            return SyncOutcome.failure(locator, e, ErrorKind.AUTH)

    def _sync_document(
        self,
        locator: str,
        config: SyncConfig,
        mapper: FieldMapper,
        engine: ReconciliationEngine,
        write_back: bool,
    ) -> SyncOutcome:
        """Run the full pipeline for one document.

        Raises:
            InvalidCredentialsError: If Webflow rejects the token
        """
        logger.debug(f"Processing {locator}")
        path = Path(self.repo_root) / locator

        try:
            content = self._read(path, locator)
            doc = FrontmatterHandler.parse(content, locator)
            body = rewrite_image_links(
                doc.body,
                str(PurePosixPath(locator).parent),
                mapper.asset_base_url,
                images_dir=config.images_dir,
                repo_root=self.repo_root,
            )
            rendered = self.converter.markdown_to_html(body)
            record = mapper.map(doc, rendered)
        except FilesystemError as e:
            logger.error(str(e))
            return SyncOutcome.failure(locator, e, ErrorKind.FILESYSTEM)
        except MalformedHeaderError as e:
            logger.error(str(e))
            return SyncOutcome.failure(locator, e, ErrorKind.MALFORMED_HEADER)
        except ValidationError as e:
            logger.error(str(e))
            return SyncOutcome.failure(locator, e, ErrorKind.VALIDATION)
        except ConversionError as e:
            logger.error(f"Rendering {locator} failed: {e}")
            return SyncOutcome.failure(locator, e, ErrorKind.CONVERSION)
        except Exception as e:
            logger.exception(f"Unexpected error preparing {locator}")
            return SyncOutcome.failure(locator, e, ErrorKind.UNEXPECTED)

        try:
            outcome = engine.reconcile(record)
        except InvalidCredentialsError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected error reconciling {locator}")
            return SyncOutcome.failure(locator, e, ErrorKind.UNEXPECTED)

        if outcome.operation == SyncOperation.CREATED and write_back and outcome.external_id:
            self._write_back(path, locator, content, outcome.external_id)

        return outcome

    @staticmethod
    def _read(path: Path, locator: str) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise FilesystemError(locator, "read", "File not found")
        except (OSError, UnicodeDecodeError) as e:
            raise FilesystemError(locator, "read", str(e))

    def _write_back(self, path: Path, locator: str, content: str, item_id: str) -> None:
        """Store the new item ID under post_id so later runs update it.

        A failure leaves the item created but unbound: the next run would
        create a duplicate, so it is reported and fails the run.
        """
        try:
            updated = FrontmatterHandler.set_field(content, EXTERNAL_ID_KEY, item_id, locator)
            path.write_text(updated, encoding="utf-8")
            logger.info(f"Wrote {EXTERNAL_ID_KEY}={item_id} to {locator}")
        except (OSError, MalformedHeaderError) as e:
            logger.error(f"Could not write {EXTERNAL_ID_KEY} back to {locator}: {e}")
            with self._lock:
                self._write_back_failures.append(locator)

    @staticmethod
    def _exit_code(summary: RunSummary) -> ExitCode:
        failures = summary.failures
        if any(o.error_kind == ErrorKind.AUTH for o in failures):
            return ExitCode.AUTH_ERROR
        if failures and all(o.error_kind == ErrorKind.NETWORK for o in failures):
            return ExitCode.NETWORK_ERROR
        if summary.has_failures or summary.aborted_reason:
            return ExitCode.GENERAL_ERROR
        return ExitCode.SUCCESS

    def validate(
        self,
        mode: SyncMode = SyncMode.ALL,
        context: Optional[ChangeSetContext] = None,
    ) -> ExitCode:
        """Lint frontmatter of the resolved documents without syncing.

        Returns:
            ExitCode.VALIDATION_ERROR if any document has errors,
            ExitCode.SUCCESS otherwise (warnings do not fail)
        """
        try:
            self._load_config()
            locators = self.resolver.resolve(mode, context)
        except (ConfigError, FilesystemError, CLIError) as e:
            logger.error(f"Validation setup failed: {e}")
            self.output_handler.error(str(e))
            return ExitCode.GENERAL_ERROR

        validator = FrontmatterValidator(repo_root=self.repo_root)
        issues: List[ValidationIssue] = []
        for locator in locators:
            try:
                content = self._read(Path(self.repo_root) / locator, locator)
                doc = FrontmatterHandler.parse(content, locator)
            except (FilesystemError, MalformedHeaderError) as e:
                issues.append(ValidationIssue(locator, ERROR, str(e)))
                continue
            issues.extend(validator.validate(doc))

        self.output_handler.print_validation_issues(issues, len(locators))
        return ExitCode.VALIDATION_ERROR if has_errors(issues) else ExitCode.SUCCESS

    def _run_remote(
        self,
        description: str,
        action: Callable[[SyncConfig, Any], ExitCode],
    ) -> ExitCode:
        """Run a collection-level command and translate its errors to exit codes.

        Args:
            description: Spinner text shown while the command runs
            action: Called with the loaded config and the client; returns the
                    exit code for a run that raised nothing
        """
        try:
            config = self._load_config()
            client = self._get_client(config)
            with self.output_handler.spinner(description):
                result = action(config, client)
        except InvalidCredentialsError as e:
            self.output_handler.error(f"Authentication failed: {e}")
            return ExitCode.AUTH_ERROR
        except APIUnreachableError as e:
            self.output_handler.error(f"API error: {e}")
            self.output_handler.info("Check your internet connection and try again")
            return ExitCode.NETWORK_ERROR
        except (ConfigError, FilesystemError, WebflowError) as e:
            self.output_handler.error(str(e))
            return ExitCode.GENERAL_ERROR
        return result

    def show_schema(self) -> ExitCode:
        """Print the remote collection fields and the local mapping."""
        fetched: Dict[str, Any] = {}

        def _fetch(config: SyncConfig, client: Any) -> ExitCode:
            fetched["collection"] = client.get_collection()
            fetched["schema"] = config.build_schema()
            return ExitCode.SUCCESS

        exit_code = self._run_remote("Fetching collection schema...", _fetch)
        if exit_code == ExitCode.SUCCESS:
            self.output_handler.print_schema(fetched["collection"], fetched["schema"])
        return exit_code

    def inspect(self, limit: int = 5) -> ExitCode:
        """Print the first ``limit`` items of the collection."""
        fetched: Dict[str, Any] = {}

        def _fetch(config: SyncConfig, client: Any) -> ExitCode:
            fetched["items"] = client.list_records(limit=limit)
            return ExitCode.SUCCESS

        exit_code = self._run_remote("Fetching collection items...", _fetch)
        if exit_code == ExitCode.SUCCESS:
            self.output_handler.print_items(fetched["items"])
        return exit_code

    def create_fields(self, dry_run: bool = False) -> ExitCode:
        """Create the mapped fields the collection is missing.

        Returns:
            ExitCode.SUCCESS when every missing field was created (or would
            be, in dry-run), ExitCode.GENERAL_ERROR if any was rejected
        """
        outcome: Dict[str, FieldCreationResult] = {}

        def _create(config: SyncConfig, client: Any) -> ExitCode:
            result = create_missing_fields(client, config.build_schema(), dry_run=dry_run)
            outcome["result"] = result
            return ExitCode.GENERAL_ERROR if result.failed else ExitCode.SUCCESS

        exit_code = self._run_remote("Creating collection fields...", _create)
        if "result" in outcome:
            self.output_handler.print_field_creation(outcome["result"], dry_run=dry_run)
        return exit_code
