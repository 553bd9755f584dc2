"""
Expansion of repository specs into concrete repositories.
"""

import logging
from collections.abc import Callable, Iterable

from core.entities import OwnerType, Repository, RepositorySpec, RepoType, RepoTypeSet
from core.errors import CanceledError, EmptyRepositoryError, GitHubFindError, SearchCanceled

logger = logging.getLogger(__name__)

PAGE_SIZE = 100

# Server-side "type" values GitHub supports per owner type. Anything not
# listed is fetched with "all" and filtered client-side.
#
#   sources:  orgs="sources", users="owner"
#   forks:    orgs="forks",   users=not supported
#   archives: not supported
#   mirrors:  not supported
REPO_TYPE_API_PARAMS = {
    RepoType.SOURCES: {
        OwnerType.ORGANIZATION: "sources",
        OwnerType.USER: "owner",
    },
    RepoType.FORKS: {
        OwnerType.ORGANIZATION: "forks",
    },
}


def api_type_hint(repo_types: RepoTypeSet, owner_type: OwnerType) -> str:
    """
    Return the listing endpoint's "type" parameter for repo_types.

    Only a single selected type can be pushed to the server; every other
    combination falls back to "all".
    """
    selected = repo_types.selected()
    if len(selected) == 1:
        params = REPO_TYPE_API_PARAMS.get(selected[0], {})
        if owner_type in params:
            return params[owner_type]
    return "all"


def deduplicate(repos: Iterable[Repository]) -> list[Repository]:
    """Drop repeated repositories by full name, keeping the first seen."""
    seen = set()
    unique = []
    for repo in repos:
        if repo.full_name not in seen:
            seen.add(repo.full_name)
            unique.append(repo)
    return unique


class RepositoryResolver:
    """
    Resolves a RepositorySpec into the repositories it names.
    """

    def __init__(self, github_client):
        """
        Args:
            github_client: GitHub API transport
        """
        self.github = github_client

    def resolve(self, spec: RepositorySpec, repo_types: RepoTypeSet) -> list[Repository]:
        """
        Resolve one spec.

        Explicit owner/repo specs are returned regardless of repo_types.
        Bare owners are expanded and filtered by repo_types.

        Raises:
            EmptyRepositoryError: If an explicit repository has no commits
            GitHubAPIError: If the API request fails
        """
        if spec.repo:
            return [self._get_repository(spec)]
        return self._list_repositories(spec.owner, repo_types)

    def _get_repository(self, spec: RepositorySpec) -> Repository:
        raw = self.github.get_repository(spec.owner, spec.repo)
        repo = Repository.from_api(raw, ref=spec.ref)

        if repo.size == 0:
            raise EmptyRepositoryError("repository is empty (no commits yet)")
        if not repo.ref:
            raise EmptyRepositoryError("repository has no default branch")

        logger.debug(f"Resolved {spec} -> {repo.full_name}@{repo.ref}")
        return repo

    def _list_repositories(self, owner: str, repo_types: RepoTypeSet) -> list[Repository]:
        owner_type = self.github.get_owner_type(owner)
        type_hint = api_type_hint(repo_types, owner_type)
        logger.debug(f"Listing repositories for {owner_type.value} {owner} (type={type_hint})")

        all_repos = []
        page = 1
        while True:
            raw_repos = self.github.list_repositories(
                owner, owner_type, page, PAGE_SIZE, type_hint
            )
            all_repos.extend(Repository.from_api(raw) for raw in raw_repos)

            if len(raw_repos) < PAGE_SIZE:
                break
            page += 1

        # Re-apply the full type semantics whatever the server filtered.
        filtered = [repo for repo in all_repos if repo_types.includes(repo)]
        logger.info(
            f"Owner {owner}: {len(filtered)} of {len(all_repos)} repositories "
            f"match repo types {repo_types}"
        )
        return filtered

    def resolve_all(
        self,
        specs: Iterable[RepositorySpec],
        repo_types: RepoTypeSet,
        on_error: Callable[[RepositorySpec, Exception], None],
    ) -> list[Repository]:
        """
        Resolve every spec, reporting failures through on_error.

        A failing spec is skipped; the others are still resolved. A malformed
        payload counts as a failure of its spec. The result
        is deduplicated by full name in input order.

        Raises:
            SearchCanceled: If the search was canceled during resolution
        """
        repos = []
        for spec in specs:
            try:
                repos.extend(self.resolve(spec, repo_types))
            except CanceledError as e:
                raise SearchCanceled() from e
            except (GitHubFindError, ValueError) as e:
                logger.debug(f"Failed to resolve {spec}: {e!r}")
                on_error(spec, e)

        return deduplicate(repos)
