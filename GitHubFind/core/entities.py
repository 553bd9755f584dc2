"""
Core domain entities for GitHubFind.
These represent the business objects in our system.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from core.errors import ConfigurationError, InvalidRepoSpecError, PatternError
from core.pattern import validate_pattern

MAX_JOBS = 100
DEFAULT_JOBS = 10


@dataclass(frozen=True)
class RepositorySpec:
    """
    A user-supplied repository selector: owner, owner/repo or owner/repo@ref.
    An empty repo means every repository of the owner.
    """
    owner: str
    repo: str = ""
    ref: str = ""

    @classmethod
    def parse(cls, text: str) -> "RepositorySpec":
        """
        Parse a repository spec.

        Args:
            text: "owner", "owner/repo" or "owner/repo@ref"

        Raises:
            InvalidRepoSpecError: If the spec is malformed
        """
        name, sep, ref = text.partition("@")
        if sep and not ref:
            raise InvalidRepoSpecError(text, "empty ref")

        parts = name.split("/")
        if len(parts) > 2:
            raise InvalidRepoSpecError(text)
        if not parts[0]:
            raise InvalidRepoSpecError(text, "empty owner")

        owner = parts[0]
        repo = parts[1] if len(parts) == 2 else ""
        if len(parts) == 2 and not repo:
            raise InvalidRepoSpecError(text, "empty repository name")
        if ref and not repo:
            raise InvalidRepoSpecError(text, "a ref requires a repository")

        return cls(owner=owner, repo=repo, ref=ref)

    def __str__(self) -> str:
        text = self.owner
        if self.repo:
            text = f"{text}/{self.repo}"
        if self.ref:
            text = f"{text}@{self.ref}"
        return text


class OwnerType(str, Enum):
    """GitHub account type."""
    USER = "User"
    ORGANIZATION = "Organization"


@dataclass(frozen=True)
class Repository:
    """
    Repository entity representing a resolved GitHub repository.
    ref is the branch, tag or SHA that will be searched.
    """
    owner: str
    name: str
    full_name: str
    ref: str
    fork: bool = False
    archived: bool = False
    mirror_url: str = ""
    size: int = 0

    def __post_init__(self):
        """Validate repository data."""
        if not self.name or not self.owner:
            raise ValueError("name and owner are required")

    @property
    def is_mirror(self) -> bool:
        return bool(self.mirror_url)

    @classmethod
    def from_api(cls, raw: dict, ref: str = "") -> "Repository":
        """
        Build a Repository from a REST API repository payload.

        Args:
            raw: Decoded JSON for one repository
            ref: Explicit ref; falls back to the default branch when empty
        """
        try:
            owner = raw["owner"]["login"]
            name = raw["name"]
        except (KeyError, TypeError) as e:
            raise ValueError(f"malformed repository payload: {e!r}") from None
        return cls(
            owner=owner,
            name=name,
            full_name=raw.get("full_name") or f"{owner}/{name}",
            ref=ref or raw.get("default_branch") or "",
            fork=bool(raw.get("fork")),
            archived=bool(raw.get("archived")),
            mirror_url=raw.get("mirror_url") or "",
            size=raw.get("size") or 0,
        )


class RepoType(str, Enum):
    """Repository classification used when expanding an owner."""
    SOURCES = "sources"
    FORKS = "forks"
    ARCHIVES = "archives"
    MIRRORS = "mirrors"


def classify_repository(repo: Repository) -> RepoType:
    """Classify a repository as a fork, a mirror or a source."""
    if repo.fork:
        return RepoType.FORKS
    if repo.is_mirror:
        return RepoType.MIRRORS
    return RepoType.SOURCES


@dataclass(frozen=True)
class RepoTypeSet:
    """
    Set of repository types to include when expanding an owner.

    archives is an orthogonal AND layered on the type dimensions: with it,
    only archived repositories of the selected types match (forks and
    archives selects archived forks); without it, archived repositories
    are excluded. archives alone selects archived repositories of any type,
    and the full set (all four) selects every non-empty repository.
    """
    sources: bool = False
    forks: bool = False
    archives: bool = False
    mirrors: bool = False

    @classmethod
    def all(cls) -> "RepoTypeSet":
        return cls(sources=True, forks=True, archives=True, mirrors=True)

    @classmethod
    def parse(cls, text: str) -> "RepoTypeSet":
        """Parse a comma-separated list such as "sources,forks" or "all"."""
        selected = set()
        for part in text.split(","):
            part = part.strip()
            if not part:
                continue
            if part == "all":
                return cls.all()
            try:
                selected.add(RepoType(part))
            except ValueError:
                valid = ", ".join(t.value for t in RepoType)
                raise ConfigurationError(
                    f"invalid repo type {part!r}: must be one of {valid}, or all"
                ) from None

        return cls(
            sources=RepoType.SOURCES in selected,
            forks=RepoType.FORKS in selected,
            archives=RepoType.ARCHIVES in selected,
            mirrors=RepoType.MIRRORS in selected,
        )

    def selected(self) -> list[RepoType]:
        flags = {
            RepoType.SOURCES: self.sources,
            RepoType.FORKS: self.forks,
            RepoType.ARCHIVES: self.archives,
            RepoType.MIRRORS: self.mirrors,
        }
        return [repo_type for repo_type in RepoType if flags[repo_type]]

    def includes(self, repo: Repository) -> bool:
        """Report whether repo belongs to this set."""
        # Empty repositories have no tree to search.
        if repo.size == 0:
            return False
        if self == RepoTypeSet.all():
            return True
        if repo.archived != self.archives:
            return False
        if not (self.sources or self.forks or self.mirrors):
            return self.archives

        repo_type = classify_repository(repo)
        if repo_type is RepoType.FORKS:
            return self.forks
        if repo_type is RepoType.MIRRORS:
            return self.mirrors
        return self.sources

    def __str__(self) -> str:
        return ",".join(t.value for t in self.selected())


class FileType(str, Enum):
    """File classification derived from a Git tree mode."""
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    EXECUTABLE = "executable"
    SUBMODULE = "submodule"

    @classmethod
    def from_mode(cls, mode: str) -> "FileType":
        # The API only emits these modes; anything else is treated as a file.
        return _MODE_TYPES.get(mode, cls.FILE)

    @classmethod
    def parse(cls, name: str) -> "FileType":
        """Parse a file type name or its short alias (f, d, l, x, s)."""
        try:
            return _TYPE_ALIASES[name]
        except KeyError:
            raise ConfigurationError(
                f"invalid file type {name!r}: must be one of "
                "f, file, d, dir, directory, l, symlink, x, executable, s, submodule"
            ) from None


_MODE_TYPES = {
    "040000": FileType.DIRECTORY,
    "120000": FileType.SYMLINK,
    "160000": FileType.SUBMODULE,
    "100755": FileType.EXECUTABLE,
    "100644": FileType.FILE,
    "100664": FileType.FILE,
}

_TYPE_ALIASES = {
    "f": FileType.FILE,
    "file": FileType.FILE,
    "d": FileType.DIRECTORY,
    "dir": FileType.DIRECTORY,
    "directory": FileType.DIRECTORY,
    "l": FileType.SYMLINK,
    "symlink": FileType.SYMLINK,
    "x": FileType.EXECUTABLE,
    "executable": FileType.EXECUTABLE,
    "s": FileType.SUBMODULE,
    "submodule": FileType.SUBMODULE,
}


@dataclass(frozen=True)
class TreeEntry:
    """One node of a repository's recursive tree."""
    path: str
    mode: str
    size: int = 0
    sha: str = ""

    @property
    def file_type(self) -> FileType:
        return FileType.from_mode(self.mode)

    @property
    def basename(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @classmethod
    def from_api(cls, raw: dict) -> "TreeEntry":
        return cls(
            path=raw["path"],
            mode=raw.get("mode", ""),
            size=raw.get("size") or 0,
            sha=raw.get("sha", ""),
        )


@dataclass(frozen=True)
class TreeResponse:
    """
    Result of a recursive tree fetch.
    truncated is set when GitHub cut the listing at its size/count ceiling.
    """
    entries: tuple[TreeEntry, ...]
    truncated: bool = False


@dataclass(frozen=True)
class FileCommitInfo:
    """Last commit date of one path."""
    path: str
    committed_date: datetime


def normalize_extension(extension: str) -> str:
    """Return the extension with exactly one leading dot."""
    return "." + extension.lstrip(".")


@dataclass(frozen=True)
class SearchOptions:
    """
    Full configuration for one search. Built once, never mutated.
    A min_size or max_size of 0 leaves that side unbounded.
    """
    pattern: str
    repo_specs: tuple[RepositorySpec, ...] = ()
    repo_types: RepoTypeSet = field(default_factory=lambda: RepoTypeSet(sources=True))
    file_types: tuple[FileType, ...] = ()
    ignore_case: bool = False
    full_path: bool = False
    extensions: tuple[str, ...] = ()
    excludes: tuple[str, ...] = ()
    min_size: int = 0
    max_size: int = 0
    changed_after: Optional[datetime] = None
    changed_before: Optional[datetime] = None
    jobs: int = DEFAULT_JOBS

    def __post_init__(self):
        """Validate search options before any network activity."""
        object.__setattr__(self, "repo_specs", tuple(self.repo_specs))
        object.__setattr__(self, "file_types", tuple(self.file_types))
        object.__setattr__(self, "excludes", tuple(self.excludes))
        object.__setattr__(
            self, "extensions", tuple(normalize_extension(ext) for ext in self.extensions)
        )

        if self.min_size < 0 or self.max_size < 0:
            raise ConfigurationError("sizes cannot be negative")
        if self.min_size > 0 and self.max_size > 0 and self.min_size > self.max_size:
            raise ConfigurationError("--min-size cannot be greater than --max-size")
        if not 1 <= self.jobs <= MAX_JOBS:
            raise ConfigurationError(f"jobs must be between 1 and {MAX_JOBS}")
        if (
            self.changed_after is not None
            and self.changed_before is not None
            and self.changed_after > self.changed_before
        ):
            raise ConfigurationError("--changed-after cannot be later than --changed-before")

        validate_pattern(self.pattern, self.ignore_case)
        for exclude in self.excludes:
            try:
                validate_pattern(exclude, self.ignore_case)
            except PatternError as e:
                raise PatternError(f"exclude pattern {exclude!r} is invalid: {e}", exclude) from e

    @property
    def has_date_filter(self) -> bool:
        return self.changed_after is not None or self.changed_before is not None
