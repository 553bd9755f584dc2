"""
Error hierarchy for GitHubFind.

Configuration errors are fatal and raised before any network activity.
API errors come from the transport and are handled per repository or per
spec by the search orchestration layer.
"""

from datetime import datetime
from typing import Optional


class GitHubFindError(Exception):
    """Base exception for all GitHubFind errors."""


class ConfigurationError(GitHubFindError, ValueError):
    """Raised when search options are invalid."""


class PatternError(ConfigurationError):
    """Raised when a glob pattern is malformed."""

    def __init__(self, message: str, pattern: str):
        super().__init__(message)
        self.pattern = pattern


class InvalidRepoSpecError(ConfigurationError):
    """Raised when a repository spec cannot be parsed."""

    def __init__(self, spec: str, reason: str = ""):
        message = f"invalid repo spec: {spec} (expected owner, owner/repo or owner/repo@ref)"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.spec = spec


class GitHubAPIError(GitHubFindError):
    """Base class for failures reported by the GitHub API transport."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(GitHubAPIError):
    """The requested owner, repository or ref does not exist."""


class ForbiddenError(GitHubAPIError):
    """The resource exists but the credentials cannot access it."""


class RateLimitedError(GitHubAPIError):
    """Raised when the GitHub API rate limit is exhausted."""

    def __init__(self, message: str, reset_at: Optional[datetime] = None, status_code: Optional[int] = None):
        if reset_at is not None:
            message = f"{message} (resets at {reset_at.isoformat()})"
        super().__init__(message, status_code)
        self.reset_at = reset_at


class ServerError(GitHubAPIError):
    """GitHub answered with a 5xx status."""


class NetworkError(GitHubAPIError):
    """The request never produced a response (connection, DNS, timeout)."""


class GraphQLError(GitHubAPIError):
    """A GraphQL response carried an errors array."""


class CanceledError(GitHubAPIError):
    """A request was abandoned because the search was canceled."""


class EmptyRepositoryError(GitHubFindError):
    """Raised for repositories with no commits or no resolvable branch."""


class SearchFailedError(GitHubFindError):
    """Raised when every resolved repository failed to be searched."""

    def __init__(self, repository_count: int):
        super().__init__(f"failed to search all {repository_count} repositories")
        self.repository_count = repository_count


class SearchCanceled(GitHubFindError):
    """Raised when a search is stopped by the user."""

    def __init__(self, message: str = "search canceled"):
        super().__init__(message)
