"""CLI module for webflow-sync command-line tool.

This module provides the command-line interface: change set resolution,
the reconciliation engine, run orchestration and terminal output.
"""

from webflow_sync.cli.change_detector import ChangeSetResolver
from webflow_sync.cli.errors import CLIError, ResolutionError
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
from webflow_sync.cli.reconciler import ReconciliationEngine

__all__ = [
    'ChangeSetResolver',
    'CLIError',
    'ResolutionError',
    'ChangeSetContext',
    'ErrorKind',
    'ExitCode',
    'RunSummary',
    'SkipReason',
    'SyncMode',
    'SyncOperation',
    'SyncOutcome',
    'ReconciliationEngine',
]
