"""
Business logic / use cases for finding files in GitHub repositories.
This layer orchestrates resolution, fetching, filtering and output.
"""

import logging
import threading
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from core.entities import Repository, RepositorySpec, SearchOptions
from core.errors import (
    CanceledError,
    InvalidRepoSpecError,
    SearchCanceled,
    SearchFailedError,
)
from core.fetchers import CommitDateFetcher, TreeFetcher
from core.filters import apply_filters, filter_by_commit_date
from core.resolver import RepositoryResolver

logger = logging.getLogger(__name__)

# How often a blocked admission re-checks for cancellation, in seconds.
ADMISSION_POLL_INTERVAL = 0.1


@dataclass
class SearchSummary:
    """
    Result of a completed search.
    """
    repositories: int
    failed: int
    matches: int


@dataclass
class _TaskOutcome:
    repo: Repository
    matches: int = 0
    error: Optional[Exception] = None
    canceled: bool = False


def parse_repo_specs(texts: Iterable[str], output) -> list[RepositorySpec]:
    """
    Parse raw repository specs, warning about and skipping invalid ones.
    """
    specs = []
    for text in texts:
        try:
            specs.append(RepositorySpec.parse(text))
        except InvalidRepoSpecError as e:
            output.warning(str(e))
    return specs


class SearchRepository:
    """
    Use case for searching a single repository.
    Fetches the tree, filters it and emits matches in tree order.
    """

    def __init__(self, tree_fetcher: TreeFetcher, commit_fetcher: CommitDateFetcher, output):
        """
        Initialize the use case.

        Args:
            tree_fetcher: Recursive tree fetcher
            commit_fetcher: Last-commit date fetcher
            output: Output sink for matches and warnings
        """
        self.trees = tree_fetcher
        self.commit_dates = commit_fetcher
        self.output = output

    def execute(self, repo: Repository, options: SearchOptions) -> int:
        """
        Search one repository.

        Returns:
            Number of matches written
        """
        logger.debug(f"{repo.full_name}: fetching tree")
        tree = self.trees.fetch(repo)
        if tree.truncated:
            self.output.warning(
                f"{repo.full_name}: exceeds GitHub's API limit (100k files or 7MB) "
                "- results are incomplete"
            )

        logger.debug(f"{repo.full_name}: filtering {len(tree.entries)} entries")
        entries = apply_filters(tree.entries, options)

        if options.has_date_filter and entries:
            logger.debug(f"{repo.full_name}: fetching commit dates for {len(entries)} entries")
            commit_infos = self.commit_dates.fetch(repo, [entry.path for entry in entries])
            entries = filter_by_commit_date(
                entries, commit_infos, options.changed_after, options.changed_before
            )

        logger.debug(f"{repo.full_name}: emitting {len(entries)} matches")
        for entry in entries:
            self.output.match(repo, entry.path)

        return len(entries)


class FindFiles:
    """
    Use case for searching every repository named by the search options.

    Repositories are searched in parallel. Admission is bounded by a
    semaphore sized to options.jobs, and a failing repository is reported
    as a warning without affecting the others.
    """

    def __init__(self, github_client, output, cancel_event: Optional[threading.Event] = None):
        """
        Initialize the use case.

        Args:
            github_client: GitHub API transport
            output: Output sink for matches and diagnostics
            cancel_event: Event signalling cancellation; should be the same
                event the transport observes
        """
        self.output = output
        self.cancel_event = cancel_event or threading.Event()
        self.resolver = RepositoryResolver(github_client)
        self.search = SearchRepository(
            TreeFetcher(github_client), CommitDateFetcher(github_client), output
        )

    def execute(self, options: SearchOptions) -> SearchSummary:
        """
        Execute the search.

        Returns:
            Summary of the search

        Raises:
            SearchFailedError: If every repository failed
            SearchCanceled: If the search was canceled
        """
        try:
            repos = self.resolver.resolve_all(
                options.repo_specs, options.repo_types, self._report_spec_error
            )
            if not repos:
                self.output.info("No repositories match the filter")
                return SearchSummary(repositories=0, failed=0, matches=0)

            logger.info(f"Searching {len(repos)} repositories with {options.jobs} jobs")
            return self._search_all(repos, options)

        except KeyboardInterrupt:
            self.cancel_event.set()
            raise SearchCanceled() from None

    def _report_spec_error(self, spec: RepositorySpec, error: Exception):
        self.output.warning(f"{spec}: {error}")

    def _acquire(self, gate: threading.BoundedSemaphore) -> bool:
        """Block until a slot is free; False if canceled first."""
        while not self.cancel_event.is_set():
            if gate.acquire(timeout=ADMISSION_POLL_INTERVAL):
                return True
        return False

    def _run_task(self, gate: threading.BoundedSemaphore, repo: Repository, options: SearchOptions) -> _TaskOutcome:
        try:
            if self.cancel_event.is_set():
                return _TaskOutcome(repo, canceled=True)
            matches = self.search.execute(repo, options)
            logger.debug(f"{repo.full_name}: done ({matches} matches)")
            return _TaskOutcome(repo, matches=matches)
        except CanceledError:
            return _TaskOutcome(repo, canceled=True)
        except Exception as e:
            logger.debug(f"{repo.full_name}: failed", exc_info=True)
            self.output.warning(f"{repo.full_name}: {e}")
            return _TaskOutcome(repo, error=e)
        finally:
            gate.release()

    def _search_all(self, repos: list[Repository], options: SearchOptions) -> SearchSummary:
        gate = threading.BoundedSemaphore(options.jobs)
        executor = ThreadPoolExecutor(max_workers=options.jobs, thread_name_prefix="gh-find")
        futures = []
        interrupted = False

        try:
            for repo in repos:
                if not self._acquire(gate):
                    break
                futures.append(executor.submit(self._run_task, gate, repo, options))

            outcomes = [future.result() for future in futures]
        except KeyboardInterrupt:
            interrupted = True
            self.cancel_event.set()
            raise
        finally:
            # In-flight requests see the cancel event once they return; an
            # interrupt does not wait for them.
            executor.shutdown(wait=not interrupted, cancel_futures=True)

        if self.cancel_event.is_set():
            raise SearchCanceled()

        failed = sum(1 for outcome in outcomes if outcome.error is not None)
        matches = sum(outcome.matches for outcome in outcomes)

        if failed == len(repos):
            raise SearchFailedError(len(repos))

        logger.info(
            f"Searched {len(repos)} repositories: {matches} matches, {failed} failed"
        )
        return SearchSummary(repositories=len(repos), failed=failed, matches=matches)
