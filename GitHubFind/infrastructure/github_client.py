"""
GitHub REST and GraphQL API client.

Handles authentication, response caching, retries for transient failures
and translation of HTTP failures into the typed errors in core.errors.
"""

import logging
import os
import threading
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import quote, urlencode

import requests

from core.entities import OwnerType
from core.errors import (
    CanceledError,
    ForbiddenError,
    GitHubAPIError,
    GraphQLError,
    NetworkError,
    NotFoundError,
    RateLimitedError,
    ServerError,
)
from infrastructure.response_cache import ResponseCache
from infrastructure.retry_utils import exponential_backoff

logger = logging.getLogger(__name__)

DEFAULT_HOST = "github.com"


class GitHubClient:
    """
    Client for GitHub's REST and GraphQL APIs.

    Every public method performs one logical request and either returns
    decoded JSON or raises a GitHubAPIError subclass.
    """

    API_VERSION = "2022-11-28"

    def __init__(
        self,
        token: Optional[str] = None,
        host: Optional[str] = None,
        cache: Optional[ResponseCache] = None,
        timeout: float = 30,
        cancel_event: Optional[threading.Event] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize GitHub client.

        Args:
            token: GitHub token (or uses GH_TOKEN / GITHUB_TOKEN env vars)
            host: GitHub host (or uses GH_HOST env var, default github.com)
            cache: Response cache for GET requests; None disables caching
            timeout: Per-request timeout in seconds
            cancel_event: Event that aborts pending and future requests
            session: requests session to use (mainly for tests)
        """
        self.token = token or os.environ.get("GH_TOKEN") or os.environ.get("GITHUB_TOKEN")
        if not self.token:
            raise ValueError(
                "GitHub token required. Set GH_TOKEN or GITHUB_TOKEN environment "
                "variable or pass token parameter."
            )

        self.host = host or os.environ.get("GH_HOST") or DEFAULT_HOST
        if self.host == DEFAULT_HOST:
            self.api_url = "https://api.github.com"
            self.graphql_url = "https://api.github.com/graphql"
        else:
            self.api_url = f"https://{self.host}/api/v3"
            self.graphql_url = f"https://{self.host}/api/graphql"

        self.cache = cache
        self.timeout = timeout
        self.cancel_event = cancel_event

        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": self.API_VERSION,
            "User-Agent": "gh-find",
        })

    def close(self):
        """Close the HTTP session and its pooled connections."""
        self.session.close()

    def _check_canceled(self):
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise CanceledError("request canceled")

    def _raise_for_status(self, response: requests.Response):
        """Translate an HTTP error response into a typed error."""
        status = response.status_code
        if status < 400:
            return

        try:
            message = response.json().get("message") or response.reason
        except ValueError:
            message = response.reason
        detail = f"HTTP {status}: {message} ({response.url})"

        remaining = response.headers.get("X-RateLimit-Remaining")
        if status == 429 or (
            status == 403
            and (remaining == "0" or "rate limit" in str(message).lower())
        ):
            reset = response.headers.get("X-RateLimit-Reset")
            reset_at = datetime.fromtimestamp(int(reset), tz=timezone.utc) if reset else None
            raise RateLimitedError(detail, reset_at, status)

        if status == 404:
            raise NotFoundError(detail, status)
        if status in (401, 403):
            raise ForbiddenError(detail, status)
        if status >= 500:
            raise ServerError(detail, status)
        raise GitHubAPIError(detail, status)

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        self._check_canceled()
        logger.debug(f"{method} {url}")

        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as e:
            raise NetworkError(f"request to {url} timed out") from e
        except requests.RequestException as e:
            raise NetworkError(f"request to {url} failed: {e}") from e

        # The search may have been canceled while the request was in flight.
        self._check_canceled()
        self._raise_for_status(response)
        return response

    def _decode(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise GitHubAPIError(
                f"invalid JSON in response from {response.url}: {e}", response.status_code
            ) from e

    @exponential_backoff(max_retries=3, base_delay=1.0, max_delay=30.0)
    def _get(self, endpoint: str, params: Optional[dict] = None) -> Any:
        """
        GET an API endpoint, consulting the response cache first.

        Args:
            endpoint: Path relative to the REST API root
            params: Query parameters

        Returns:
            Decoded JSON body
        """
        url = f"{self.api_url}/{endpoint}"
        if params:
            url = f"{url}?{urlencode(params)}"

        cache_key = f"{self.token}\n{url}"
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Cache hit for {url}")
                return cached

        data = self._decode(self._send("GET", url))

        if self.cache is not None:
            self.cache.set(cache_key, data)
        return data

    @exponential_backoff(max_retries=3, base_delay=1.0, max_delay=30.0)
    def _graphql(self, query: str, variables: Optional[dict] = None) -> dict:
        """
        Make a GraphQL request.

        Returns:
            The "data" member of the response

        Raises:
            RateLimitedError: If the query hit the rate limit
            GraphQLError: For any other reported GraphQL error
        """
        response = self._send(
            "POST",
            self.graphql_url,
            json={"query": query, "variables": variables or {}},
        )
        data = self._decode(response)

        if data.get("errors"):
            error_messages = [e.get("message", "") for e in data["errors"]]
            error_str = "; ".join(error_messages)

            if any("rate limit" in msg.lower() for msg in error_messages):
                raise RateLimitedError(f"GraphQL rate limit exceeded: {error_str}")

            logger.debug(f"GraphQL errors: {error_str}")
            raise GraphQLError(f"GraphQL query failed: {error_str}")

        return data.get("data") or {}

    def get_owner_type(self, name: str) -> OwnerType:
        """Determine whether name is a user or an organization."""
        data = self._get(f"users/{quote(name)}")
        if data.get("type") == OwnerType.ORGANIZATION.value:
            return OwnerType.ORGANIZATION
        return OwnerType.USER

    def list_repositories(
        self,
        owner: str,
        owner_type: OwnerType,
        page: int,
        per_page: int = 100,
        type_hint: str = "all",
    ) -> list[dict]:
        """
        Fetch one page of an owner's repositories.

        Args:
            owner: User or organization login
            owner_type: Selects the orgs/ or users/ listing endpoint
            page: 1-based page number
            per_page: Page size (max 100)
            type_hint: Server-side "type" filter
        """
        base = "orgs" if owner_type is OwnerType.ORGANIZATION else "users"
        return self._get(
            f"{base}/{quote(owner)}/repos",
            {"type": type_hint, "per_page": per_page, "page": page},
        )

    def get_repository(self, owner: str, name: str) -> dict:
        """Fetch a single repository."""
        return self._get(f"repos/{quote(owner)}/{quote(name)}")

    def get_tree(self, owner: str, name: str, ref: str) -> dict:
        """Fetch the full recursive tree of owner/name at ref."""
        return self._get(
            f"repos/{quote(owner)}/{quote(name)}/git/trees/{quote(ref)}",
            {"recursive": "1"},
        )

    def query_commit_history(self, owner: str, name: str, ref: str, query: str) -> dict:
        """Run a commit history query built for owner/name at ref."""
        logger.debug(f"Querying commit history for {owner}/{name}@{ref}")
        return self._graphql(query)
