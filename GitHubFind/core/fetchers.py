"""
Per-repository data fetching: recursive trees and last-commit dates.
"""

import json
import logging
from collections.abc import Sequence
from datetime import datetime

from core.entities import FileCommitInfo, Repository, TreeEntry, TreeResponse

logger = logging.getLogger(__name__)

# Number of paths per GraphQL request, within the API's node limits.
BATCH_SIZE = 100


class TreeFetcher:
    """
    Fetches the full recursive tree of a repository in one request.
    """

    def __init__(self, github_client):
        self.github = github_client

    def fetch(self, repo: Repository) -> TreeResponse:
        """
        Fetch the tree of repo at its resolved ref.

        A truncated tree is returned as-is with truncated=True; callers
        still search the partial listing.
        """
        raw = self.github.get_tree(repo.owner, repo.name, repo.ref)
        entries = tuple(TreeEntry.from_api(item) for item in raw.get("tree", []))
        truncated = bool(raw.get("truncated"))

        logger.debug(
            f"Fetched {len(entries)} tree entries for {repo.full_name}@{repo.ref}"
            + (" (truncated)" if truncated else "")
        )
        return TreeResponse(entries=entries, truncated=truncated)


def build_file_history_query(owner: str, name: str, ref: str, paths: Sequence[str]) -> str:
    """
    Build a compact GraphQL query with one aliased history lookup per path.

    Formatted for readability, the query is:

        {
          repository(owner: "owner", name: "repo") {
            object(expression: "ref") {
              ... on Commit {
                file0: history(first: 1, path: "path0") { nodes { committedDate } }
                file1: history(first: 1, path: "path1") { nodes { committedDate } }
              }
            }
          }
        }
    """
    parts = [
        f"{{repository(owner:{json.dumps(owner)},name:{json.dumps(name)})"
        f"{{object(expression:{json.dumps(ref)}){{...on Commit{{"
    ]
    for i, path in enumerate(paths):
        parts.append(f"file{i}:history(first:1,path:{json.dumps(path)}){{nodes{{committedDate}}}}")
    parts.append("}}}}")
    return "".join(parts)


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class CommitDateFetcher:
    """
    Looks up the last commit date of each path, in batches of BATCH_SIZE.
    """

    def __init__(self, github_client):
        self.github = github_client

    def fetch(self, repo: Repository, paths: Sequence[str]) -> list[FileCommitInfo]:
        """
        Fetch the last commit date for each path.

        Paths without any commit history are left out of the result. A
        failing batch fails the whole call, since a partial set of dates
        would skew date filtering.

        Args:
            repo: Repository to query
            paths: Candidate paths, already filtered

        Returns:
            FileCommitInfo for every path with a known commit
        """
        if not paths:
            return []

        results = []
        for start in range(0, len(paths), BATCH_SIZE):
            batch = paths[start:start + BATCH_SIZE]
            query = build_file_history_query(repo.owner, repo.name, repo.ref, batch)
            data = self.github.query_commit_history(repo.owner, repo.name, repo.ref, query)

            target = ((data.get("repository") or {}).get("object")) or {}
            for i, path in enumerate(batch):
                history = target.get(f"file{i}") or {}
                nodes = history.get("nodes") or []
                if not nodes:
                    continue
                results.append(
                    FileCommitInfo(path=path, committed_date=_parse_timestamp(nodes[0]["committedDate"]))
                )

            logger.debug(
                f"{repo.full_name}: batch {start // BATCH_SIZE + 1} resolved "
                f"{len(results)} commit dates so far"
            )

        return results
