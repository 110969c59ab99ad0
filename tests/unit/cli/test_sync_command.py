"""Unit tests for cli.sync_command module."""

import threading
from datetime import datetime, timezone
from io import StringIO
from unittest.mock import Mock

import pytest
from rich.console import Console

from tests.fixtures.sample_markdown import (
    SAMPLE_POST_BOUND,
    SAMPLE_POST_DISABLED,
    SAMPLE_POST_MALFORMED,
    SAMPLE_POST_MISSING_FIELDS,
    SAMPLE_POST_NEW,
)
from webflow_sync.cli.change_detector import ChangeSetResolver
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
from webflow_sync.cli.sync_command import SyncCommand
from webflow_sync.file_mapper.frontmatter_handler import FrontmatterHandler
from webflow_sync.file_mapper.models import SyncConfig
from webflow_sync.webflow_client.errors import (
    APIUnreachableError,
    ConversionError,
    InvalidCredentialsError,
    MissingCredentialsError,
    RemoteValidationError,
)

BOUND_ID = "65f0a1b2c3d4e5f6a7b8c9d0"
NEW_ID = "66aa00bb11cc22dd33ee44ff"
SYNCED_AT = datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)
ALL_LOCATORS = ["posts/bound.md", "posts/disabled.md", "posts/new.md"]


@pytest.fixture
def repo(tmp_path):
    """Repository with one new, one bound and one opted-out post."""
    posts = tmp_path / "posts"
    posts.mkdir()
    (posts / "new.md").write_text(SAMPLE_POST_NEW, encoding="utf-8")
    (posts / "bound.md").write_text(SAMPLE_POST_BOUND, encoding="utf-8")
    (posts / "disabled.md").write_text(SAMPLE_POST_DISABLED, encoding="utf-8")
    return tmp_path


@pytest.fixture
def store():
    store = Mock()
    store.create_record.return_value = {
        "id": NEW_ID,
        "createdOn": "2025-05-01T12:00:00.000Z",
        "lastUpdated": "2025-05-01T12:00:00.000Z",
    }
    store.update_record.return_value = {
        "id": BOUND_ID,
        "lastUpdated": "2025-05-01T12:00:00.000Z",
    }
    return store


@pytest.fixture
def converter():
    converter = Mock()
    converter.markdown_to_html.return_value = "<p>Body text</p>"
    return converter


@pytest.fixture
def output():
    handler = OutputHandler(no_color=True)
    handler.console = Console(file=StringIO(), no_color=True, width=120)
    return handler


@pytest.fixture
def make_command(repo, store, converter, output):
    def _make(**overrides):
        kwargs = dict(
            config_path=str(repo / ".webflow-sync" / "config.yaml"),
            output_handler=output,
            client=store,
            resolver=ChangeSetResolver("posts", str(repo)),
            converter=converter,
            repo_root=str(repo),
            synced_at=SYNCED_AT,
            retry_sleep=Mock(),
        )
        kwargs.update(overrides)
        return SyncCommand(**kwargs)
    return _make


def write_config(repo, text):
    config_dir = repo / ".webflow-sync"
    config_dir.mkdir(exist_ok=True)
    (config_dir / "config.yaml").write_text(text, encoding="utf-8")


class TestRun:
    """Test cases for SyncCommand.run."""

    def test_full_sync_creates_updates_and_skips(self, repo, store, make_command):
        exit_code = make_command().run(mode=SyncMode.ALL)

        assert exit_code == ExitCode.SUCCESS
        store.create_record.assert_called_once()
        store.update_record.assert_called_once()

        payload = store.create_record.call_args.args[0]
        assert payload["name"] == "Hello World"
        assert payload["slug"] == "hello-world"
        assert payload["body_rich"] == "<p>Body text</p>"
        assert payload["tags_multi"] == ["python", "cms"]
        assert payload["last_update"] == "2025-05-01T12:00:00.000Z"
        assert store.create_record.call_args.kwargs == {"is_draft": False}

        assert store.update_record.call_args.args[0] == BOUND_ID
        assert store.update_record.call_args.kwargs == {"is_draft": True}

    def test_created_id_is_written_back(self, repo, make_command):
        make_command().run(mode=SyncMode.ALL)

        content = (repo / "posts" / "new.md").read_text(encoding="utf-8")
        doc = FrontmatterHandler.parse(content)
        assert doc.fields["post_id"] == NEW_ID
        assert doc.fields["title"] == "Hello World"
        assert doc.body.startswith("# Hello")

    def test_second_run_updates_written_back_item(self, repo, store, make_command):
        """Once post_id is written back the next run updates instead of creating."""
        make_command().run(mode=SyncMode.ALL)
        store.reset_mock()

        make_command().run(mode=SyncMode.ALL)

        store.create_record.assert_not_called()
        updated_ids = sorted(c.args[0] for c in store.update_record.call_args_list)
        assert updated_ids == sorted([BOUND_ID, NEW_ID])

    def test_write_back_disabled_in_config(self, repo, make_command):
        write_config(repo, "write_back: false\n")

        assert make_command().run(mode=SyncMode.ALL) == ExitCode.SUCCESS
        assert (repo / "posts" / "new.md").read_text(encoding="utf-8") == SAMPLE_POST_NEW

    def test_dry_run_makes_no_calls_and_no_writes(self, repo, store, make_command):
        exit_code = make_command().run(mode=SyncMode.ALL, dry_run=True)

        assert exit_code == ExitCode.SUCCESS
        store.create_record.assert_not_called()
        store.update_record.assert_not_called()
        assert (repo / "posts" / "new.md").read_text(encoding="utf-8") == SAMPLE_POST_NEW

    def test_dry_run_does_not_need_credentials(self, make_command):
        authenticator = Mock()
        authenticator.get_credentials.side_effect = MissingCredentialsError(["WEBFLOW_TOKEN"])

        cmd = make_command(client=None, authenticator=authenticator)

        assert cmd.run(mode=SyncMode.ALL, dry_run=True) == ExitCode.SUCCESS
        authenticator.get_credentials.assert_not_called()

    def test_missing_credentials_fail_before_any_document(self, repo, make_command, converter):
        authenticator = Mock()
        authenticator.get_credentials.side_effect = MissingCredentialsError(["WEBFLOW_TOKEN"])

        cmd = make_command(client=None, authenticator=authenticator)

        assert cmd.run(mode=SyncMode.ALL) == ExitCode.AUTH_ERROR
        converter.markdown_to_html.assert_not_called()

    def test_nothing_to_sync(self, tmp_path, make_command):
        (tmp_path / "empty").mkdir()
        cmd = make_command(resolver=ChangeSetResolver("empty", str(tmp_path)))

        assert cmd.run(mode=SyncMode.ALL) == ExitCode.SUCCESS

    def test_missing_content_root_is_general_error(self, tmp_path, store, make_command):
        cmd = make_command(resolver=ChangeSetResolver("nope", str(tmp_path)))

        assert cmd.run(mode=SyncMode.ALL) == ExitCode.GENERAL_ERROR
        store.create_record.assert_not_called()

    def test_invalid_config_is_general_error(self, repo, make_command):
        write_config(repo, "posts_dir: [unclosed\n")

        assert make_command().run(mode=SyncMode.ALL) == ExitCode.GENERAL_ERROR

    def test_per_document_failure_does_not_stop_run(self, repo, store, make_command):
        (repo / "posts" / "broken.md").write_text(SAMPLE_POST_MALFORMED, encoding="utf-8")

        exit_code = make_command().run(mode=SyncMode.ALL)

        assert exit_code == ExitCode.GENERAL_ERROR
        store.create_record.assert_called_once()
        store.update_record.assert_called_once()

    def test_network_failures_only_give_network_exit_code(self, store, make_command):
        store.create_record.side_effect = APIUnreachableError("https://api.webflow.com/v2")
        store.update_record.side_effect = APIUnreachableError("https://api.webflow.com/v2")

        assert make_command().run(mode=SyncMode.ALL) == ExitCode.NETWORK_ERROR

    def test_auth_failure_mid_run_exit_code(self, store, make_command):
        store.update_record.side_effect = InvalidCredentialsError("https://api.webflow.com/v2", 401)

        assert make_command().run(mode=SyncMode.ALL) == ExitCode.AUTH_ERROR

    def test_explicit_files_in_delta_mode(self, store, make_command):
        context = ChangeSetContext(explicit_locators=["posts/new.md"])
        assert make_command().run(mode=SyncMode.DELTA, context=context) == ExitCode.SUCCESS

        store.create_record.assert_called_once()
        store.update_record.assert_not_called()


class TestSync:
    """Test cases for SyncCommand.sync outcomes."""

    def test_outcomes_follow_locator_order(self, make_command, store):
        summary = make_command().sync(ALL_LOCATORS, SyncConfig(), store)

        assert [o.locator for o in summary.outcomes] == ALL_LOCATORS
        assert [o.operation for o in summary.outcomes] == [
            SyncOperation.UPDATED,
            SyncOperation.SKIPPED,
            SyncOperation.CREATED,
        ]
        assert summary.outcomes[1].skip_reason == SkipReason.SYNC_DISABLED
        assert summary.outcomes[2].external_id == NEW_ID

    def test_concurrent_workers_keep_order(self, make_command, store):
        summary = make_command().sync(ALL_LOCATORS, SyncConfig(), store, max_workers=3)

        assert [o.locator for o in summary.outcomes] == ALL_LOCATORS
        assert summary.created_count == 1
        assert summary.updated_count == 1

    def test_auth_failure_aborts_remaining_documents(self, make_command, store):
        store.update_record.side_effect = InvalidCredentialsError("https://api.webflow.com/v2", 401)

        summary = make_command().sync(ALL_LOCATORS, SyncConfig(), store)

        first, *rest = summary.outcomes
        assert first.error_kind == ErrorKind.AUTH
        assert all(o.skip_reason == SkipReason.NOT_ATTEMPTED for o in rest)
        assert summary.aborted_reason.startswith("authentication failed")
        store.create_record.assert_not_called()

    def test_failure_kinds(self, repo, make_command, store):
        (repo / "posts" / "broken.md").write_text(SAMPLE_POST_MALFORMED, encoding="utf-8")
        (repo / "posts" / "untitled.md").write_text(SAMPLE_POST_MISSING_FIELDS, encoding="utf-8")

        summary = make_command().sync(
            ["posts/broken.md", "posts/untitled.md", "posts/gone.md"], SyncConfig(), store
        )

        by_locator = summary.by_locator()
        assert by_locator["posts/broken.md"].error_kind == ErrorKind.MALFORMED_HEADER
        assert by_locator["posts/untitled.md"].error_kind == ErrorKind.VALIDATION
        assert "title" in by_locator["posts/untitled.md"].error
        assert "date" in by_locator["posts/untitled.md"].error
        assert by_locator["posts/gone.md"].error_kind == ErrorKind.FILESYSTEM
        store.create_record.assert_not_called()

    def test_conversion_failure(self, make_command, converter, store):
        converter.markdown_to_html.side_effect = ConversionError("pandoc exited with 1")

        summary = make_command().sync(["posts/new.md"], SyncConfig(), store)

        assert summary.outcomes[0].error_kind == ErrorKind.CONVERSION
        store.create_record.assert_not_called()

    def test_impossible_date_fails_only_that_document(self, repo, make_command, store):
        (repo / "posts" / "a.md").write_text(
            "---\ntitle: Bad Date\ndate: 2025-13-45\npush_to_webflow: true\n---\nBody\n",
            encoding="utf-8",
        )

        summary = make_command().sync(["posts/a.md", "posts/new.md"], SyncConfig(), store)

        assert summary.outcomes[0].error_kind == ErrorKind.MALFORMED_HEADER
        assert summary.outcomes[1].operation == SyncOperation.CREATED
        store.create_record.assert_called_once()

    def test_unexpected_error_fails_only_that_document(self, make_command, converter, store):
        converter.markdown_to_html.side_effect = [RuntimeError("renderer crashed"), "<p>ok</p>"]

        summary = make_command().sync(["posts/new.md", "posts/bound.md"], SyncConfig(), store)

        assert summary.outcomes[0].error_kind == ErrorKind.UNEXPECTED
        assert summary.outcomes[0].error == "renderer crashed"
        assert summary.outcomes[1].operation == SyncOperation.UPDATED

    def test_write_back_failure_is_recorded(self, mocker, make_command, store):
        mocker.patch(
            "webflow_sync.cli.sync_command.FrontmatterHandler.set_field",
            side_effect=OSError("Read-only file system"),
        )

        summary = make_command().sync(["posts/new.md"], SyncConfig(), store)

        assert summary.outcomes[0].operation == SyncOperation.CREATED
        assert summary.write_back_failures == ["posts/new.md"]
        assert summary.has_failures

    def test_cancel_before_start(self, make_command, store):
        cancel_event = threading.Event()
        cancel_event.set()

        summary = make_command(cancel_event=cancel_event).sync(ALL_LOCATORS, SyncConfig(), store)

        assert all(o.skip_reason == SkipReason.NOT_ATTEMPTED for o in summary.outcomes)
        assert summary.aborted_reason == "cancelled"
        store.update_record.assert_not_called()

    def test_cancel_between_documents(self, make_command, store):
        cmd = make_command()

        def update_then_cancel(*args, **kwargs):
            cmd.cancel()
            return {"id": BOUND_ID}

        store.update_record.side_effect = update_then_cancel

        summary = cmd.sync(ALL_LOCATORS, SyncConfig(), store)

        assert summary.outcomes[0].operation == SyncOperation.UPDATED
        assert all(o.skip_reason == SkipReason.NOT_ATTEMPTED for o in summary.outcomes[1:])
        assert summary.aborted_reason == "cancelled"
        store.create_record.assert_not_called()

    def test_image_links_are_pinned_to_commit(self, monkeypatch, repo, make_command, converter, store):
        monkeypatch.setenv("GITHUB_REPOSITORY", "acme/blog")
        monkeypatch.setenv("GITHUB_SHA", "abc123")
        (repo / "posts" / "pic.png").write_bytes(b"png")
        (repo / "posts" / "new.md").write_text(
            SAMPLE_POST_NEW + "\n![A pic](pic.png)\n", encoding="utf-8"
        )

        make_command().sync(["posts/new.md"], SyncConfig(), store)

        rendered_input = converter.markdown_to_html.call_args.args[0]
        assert "https://raw.githubusercontent.com/acme/blog/abc123/posts/pic.png" in rendered_input


class TestExitCode:
    """Test cases for SyncCommand._exit_code."""

    @pytest.mark.parametrize("kinds,expected", [
        ([], ExitCode.SUCCESS),
        ([ErrorKind.VALIDATION], ExitCode.GENERAL_ERROR),
        ([ErrorKind.NETWORK, ErrorKind.NETWORK], ExitCode.NETWORK_ERROR),
        ([ErrorKind.NETWORK, ErrorKind.SERVER_ERROR], ExitCode.GENERAL_ERROR),
        ([ErrorKind.AUTH, ErrorKind.VALIDATION], ExitCode.AUTH_ERROR),
    ])
    def test_exit_code_from_failures(self, kinds, expected):
        outcomes = [
            SyncOutcome.failure(f"posts/{i}.md", RuntimeError("boom"), kind)
            for i, kind in enumerate(kinds)
        ]
        outcomes.append(SyncOutcome("posts/ok.md", SyncOperation.UPDATED, external_id="x"))

        assert SyncCommand._exit_code(RunSummary(outcomes=outcomes)) == expected

    def test_cancelled_run_is_general_error(self):
        summary = RunSummary(
            outcomes=[SyncOutcome.not_attempted("posts/a.md")],
            aborted_reason="cancelled",
        )
        assert SyncCommand._exit_code(summary) == ExitCode.GENERAL_ERROR


class TestValidate:
    """Test cases for SyncCommand.validate."""

    def test_valid_posts(self, make_command):
        assert make_command().validate(SyncMode.ALL) == ExitCode.SUCCESS

    def test_invalid_posts(self, repo, make_command, output):
        (repo / "posts" / "untitled.md").write_text(SAMPLE_POST_MISSING_FIELDS, encoding="utf-8")

        assert make_command().validate(SyncMode.ALL) == ExitCode.VALIDATION_ERROR
        assert "Missing required field 'title'" in output.console.file.getvalue()

    def test_malformed_header_is_an_error(self, repo, make_command):
        (repo / "posts" / "broken.md").write_text(SAMPLE_POST_MALFORMED, encoding="utf-8")

        assert make_command().validate(SyncMode.ALL) == ExitCode.VALIDATION_ERROR

    def test_impossible_date_is_an_error(self, repo, make_command, output):
        (repo / "posts" / "a.md").write_text(
            "---\ntitle: Bad Date\ndate: 2025-13-45\npush_to_webflow: true\n---\nBody\n",
            encoding="utf-8",
        )

        assert make_command().validate(SyncMode.ALL) == ExitCode.VALIDATION_ERROR
        assert "posts/a.md" in output.console.file.getvalue()

    def test_validate_never_calls_store(self, make_command, store):
        make_command().validate(SyncMode.ALL)
        assert store.method_calls == []


class TestShowSchema:
    """Test cases for SyncCommand.show_schema."""

    def test_prints_collection(self, make_command, store, output):
        store.get_collection.return_value = {
            "displayName": "Blog Posts",
            "fields": [{"slug": "name", "type": "PlainText", "isRequired": True}],
        }

        assert make_command().show_schema() == ExitCode.SUCCESS
        assert "Blog Posts" in output.console.file.getvalue()

    @pytest.mark.parametrize("error,expected", [
        (InvalidCredentialsError("https://api.webflow.com/v2", 401), ExitCode.AUTH_ERROR),
        (APIUnreachableError("https://api.webflow.com/v2"), ExitCode.NETWORK_ERROR),
    ])
    def test_errors(self, make_command, store, error, expected):
        store.get_collection.side_effect = error

        assert make_command().show_schema() == expected


class TestInspect:
    """Test cases for SyncCommand.inspect."""

    def test_prints_items(self, make_command, store, output):
        store.list_records.return_value = {
            "items": [{"id": BOUND_ID, "fieldData": {"name": "Second Post", "slug": "second-post"}}],
            "pagination": {"total": 1},
        }

        assert make_command().inspect(limit=3) == ExitCode.SUCCESS
        store.list_records.assert_called_once_with(limit=3)
        assert "second-post" in output.console.file.getvalue()

    def test_auth_error(self, make_command, store):
        store.list_records.side_effect = InvalidCredentialsError("https://api.webflow.com/v2", 401)

        assert make_command().inspect() == ExitCode.AUTH_ERROR


class TestCreateFields:
    """Test cases for SyncCommand.create_fields."""

    @pytest.fixture
    def fresh_store(self, store):
        store.get_collection.return_value = {
            "fields": [{"slug": "name"}, {"slug": "slug"}],
        }
        store.create_field.side_effect = lambda d: {"id": "f", "slug": d["slug"]}
        return store

    def test_creates_mapped_fields(self, make_command, fresh_store, output):
        assert make_command().create_fields() == ExitCode.SUCCESS

        created = [c.args[0]["slug"] for c in fresh_store.create_field.call_args_list]
        assert "publish_date" in created
        assert "push_to_webflow" in created
        assert "Created field publish_date" in output.console.file.getvalue()

    def test_uses_configured_slugs(self, repo, make_command, fresh_store):
        write_config(repo, "field_ids:\n  author: writer\n")

        make_command().create_fields()

        created = [c.args[0]["slug"] for c in fresh_store.create_field.call_args_list]
        assert "writer" in created

    def test_dry_run(self, make_command, fresh_store, output):
        assert make_command().create_fields(dry_run=True) == ExitCode.SUCCESS

        fresh_store.create_field.assert_not_called()
        assert "Would create" in output.console.file.getvalue()

    def test_rejected_field_is_general_error(self, make_command, fresh_store):
        fresh_store.create_field.side_effect = RemoteValidationError("bad field", 400)

        assert make_command().create_fields() == ExitCode.GENERAL_ERROR
        assert fresh_store.create_field.call_count > 1

    def test_unreachable_api(self, make_command, store):
        store.get_collection.side_effect = APIUnreachableError("https://api.webflow.com/v2")

        assert make_command().create_fields() == ExitCode.NETWORK_ERROR
