"""Change set resolution for one-way sync.

Decides which markdown documents a run should consider. ALL mode walks the
content root; DELTA mode asks git which posts changed between two
revisions, and falls back to ALL whenever git cannot answer (no base
revision, first commit, shallow clone, git missing).
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from webflow_sync.cli.errors import ResolutionError
from webflow_sync.cli.models import ChangeSetContext, SyncMode

logger = logging.getLogger(__name__)

# Git command timeout in seconds
GIT_TIMEOUT = 10

MARKDOWN_SUFFIX = ".md"


class GitUnavailableError(Exception):
    """Git could not answer; callers fall back to a full scan."""
    pass


class ChangeSetResolver:
    """Resolves the ordered list of document locators for a run.

    Locators are POSIX paths relative to the repository root, for example
    ``posts/2025/hello.md``. Resolution never modifies the working tree.

    Example:
        >>> resolver = ChangeSetResolver(content_root="posts")
        >>> resolver.resolve(SyncMode.ALL)
        ['posts/a.md', 'posts/b.md']
        >>> resolver.resolve(SyncMode.DELTA, ChangeSetContext(base_revision="HEAD~1"))
        ['posts/b.md']
    """

    def __init__(self, content_root: str = "posts", repo_root: str = "."):
        self.content_root = content_root
        self.repo_root = Path(repo_root)

    def resolve(
        self,
        mode: SyncMode,
        context: Optional[ChangeSetContext] = None,
    ) -> List[str]:
        """Resolve the documents to sync.

        Args:
            mode: SyncMode.ALL or SyncMode.DELTA
            context: Explicit locators and/or git revisions (DELTA only)

        Returns:
            Ordered, duplicate-free list of locators (may be empty)

        Raises:
            ResolutionError: If the content root does not exist
        """
        context = context or ChangeSetContext()

        if mode == SyncMode.DELTA and context.explicit_locators:
            locators = self._dedupe(context.explicit_locators)
            logger.info(f"Using {len(locators)} explicitly requested document(s)")
            return locators

        root = self.repo_root / self.content_root
        if not root.is_dir():
            raise ResolutionError(self.content_root, "directory does not exist")

        if mode == SyncMode.ALL:
            return self._scan_all(root)

        if not context.base_revision:
            logger.warning("No base revision given, syncing all documents")
            return self._scan_all(root)

        try:
            if not self._revision_exists(context.base_revision):
                logger.warning(
                    f"Base revision '{context.base_revision}' not found "
                    f"(first commit or shallow clone?), syncing all documents"
                )
                return self._scan_all(root)
            changed = self._git_changed_files(context.base_revision, context.head_revision)
        except GitUnavailableError as e:
            logger.warning(f"Git change detection unavailable ({e}), syncing all documents")
            return self._scan_all(root)

        locators = sorted(
            path for path in changed
            if path.endswith(MARKDOWN_SUFFIX) and (self.repo_root / path).is_file()
        )
        logger.info(
            f"Found {len(locators)} changed document(s) between "
            f"{context.base_revision} and {context.head_revision}"
        )
        return locators

    def _scan_all(self, root: Path) -> List[str]:
        locators = sorted(
            path.relative_to(self.repo_root).as_posix()
            for path in root.rglob(f"*{MARKDOWN_SUFFIX}")
            if path.is_file()
        )
        logger.info(f"Found {len(locators)} document(s) under {self.content_root}")
        return locators

    @staticmethod
    def _dedupe(locators: List[str]) -> List[str]:
        seen = set()
        result = []
        for locator in locators:
            normalized = Path(locator).as_posix()
            if normalized not in seen:
                seen.add(normalized)
                result.append(normalized)
        return result

    def _run_git(self, args: List[str]) -> subprocess.CompletedProcess:
        """Run a git command in the repository root.

        Raises:
            GitUnavailableError: If git is missing or times out
        """
        try:
            return subprocess.run(
                ["git", *args],
                cwd=str(self.repo_root),
                capture_output=True,
                text=True,
                timeout=GIT_TIMEOUT,
            )
        except subprocess.TimeoutExpired:
            raise GitUnavailableError(f"git {args[0]} timed out after {GIT_TIMEOUT} seconds")
        except FileNotFoundError:
            raise GitUnavailableError("git command not found")

    def _revision_exists(self, revision: str) -> bool:
        result = self._run_git(["rev-parse", "--verify", "--quiet", f"{revision}^{{commit}}"])
        return result.returncode == 0

    def _git_changed_files(self, base: str, head: str) -> List[str]:
        result = self._run_git([
            "diff", "--name-only", "--diff-filter=ACMR", base, head,
            "--", self.content_root,
        ])
        if result.returncode != 0:
            raise GitUnavailableError(f"git diff failed: {result.stderr.strip()}")
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]
