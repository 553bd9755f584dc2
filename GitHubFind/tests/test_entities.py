"""
Tests for core domain entities.
"""

import pytest
from datetime import datetime, timezone

from core.entities import (
    FileType,
    OwnerType,
    Repository,
    RepositorySpec,
    RepoType,
    RepoTypeSet,
    SearchOptions,
    TreeEntry,
    classify_repository,
)
from core.errors import ConfigurationError, InvalidRepoSpecError, PatternError


def make_repo(name="repo", size=10, fork=False, archived=False, mirror_url=""):
    return Repository(
        owner="owner",
        name=name,
        full_name=f"owner/{name}",
        ref="main",
        fork=fork,
        archived=archived,
        mirror_url=mirror_url,
        size=size,
    )


class TestRepositorySpec:
    """Test RepositorySpec parsing."""

    def test_parse_owner(self):
        spec = RepositorySpec.parse("cli")
        assert spec == RepositorySpec(owner="cli")
        assert spec.repo == ""
        assert spec.ref == ""

    def test_parse_owner_repo(self):
        assert RepositorySpec.parse("cli/cli") == RepositorySpec(owner="cli", repo="cli")

    def test_parse_with_ref(self):
        spec = RepositorySpec.parse("cli/cli@v2.0.0")
        assert spec == RepositorySpec(owner="cli", repo="cli", ref="v2.0.0")

    def test_ref_may_contain_slashes(self):
        """Only the part before @ is checked for separators."""
        spec = RepositorySpec.parse("cli/cli@feature/new-thing")
        assert spec.ref == "feature/new-thing"

    @pytest.mark.parametrize("text", [
        "a/b/c",
        "",
        "/repo",
        "owner/",
        "owner/repo@",
        "owner@main",
    ])
    def test_invalid_specs(self, text):
        with pytest.raises(InvalidRepoSpecError, match="invalid repo spec"):
            RepositorySpec.parse(text)

    def test_str_round_trip(self):
        assert str(RepositorySpec.parse("cli/cli@main")) == "cli/cli@main"
        assert str(RepositorySpec.parse("cli")) == "cli"


class TestRepository:
    """Test Repository entity."""

    def test_from_api_uses_default_branch(self):
        raw = {
            "name": "Hello-World",
            "full_name": "octocat/Hello-World",
            "owner": {"login": "octocat"},
            "default_branch": "master",
            "size": 108,
            "fork": False,
            "archived": False,
            "mirror_url": None,
        }
        repo = Repository.from_api(raw)

        assert repo.owner == "octocat"
        assert repo.name == "Hello-World"
        assert repo.full_name == "octocat/Hello-World"
        assert repo.ref == "master"
        assert repo.size == 108
        assert repo.is_mirror is False

    def test_from_api_explicit_ref_wins(self):
        raw = {"name": "r", "owner": {"login": "o"}, "default_branch": "main", "size": 1}
        repo = Repository.from_api(raw, ref="v1.0")
        assert repo.ref == "v1.0"
        assert repo.full_name == "o/r"

    def test_empty_name(self):
        """Test that empty name raises error."""
        with pytest.raises(ValueError, match="name and owner are required"):
            Repository(owner="o", name="", full_name="o/", ref="main")


class TestRepoTypes:
    """Test repository classification and RepoTypeSet."""

    def test_classification(self):
        assert classify_repository(make_repo()) is RepoType.SOURCES
        assert classify_repository(make_repo(fork=True)) is RepoType.FORKS
        assert classify_repository(make_repo(mirror_url="https://example.com/x.git")) is RepoType.MIRRORS

    def test_parse(self):
        types = RepoTypeSet.parse("sources, forks")
        assert types == RepoTypeSet(sources=True, forks=True)
        assert RepoTypeSet.parse("all") == RepoTypeSet.all()

    def test_parse_invalid(self):
        with pytest.raises(ConfigurationError, match="invalid repo type"):
            RepoTypeSet.parse("sources,bogus")

    def test_selected_order(self):
        types = RepoTypeSet(mirrors=True, sources=True)
        assert types.selected() == [RepoType.SOURCES, RepoType.MIRRORS]

    def test_independence(self):
        """Archives intersect with the other dimensions."""
        source = make_repo("source")
        fork = make_repo("fork", fork=True)
        archived_fork = make_repo("archived-fork", fork=True, archived=True)
        archived_source = make_repo("archived-source", archived=True)
        repos = [source, fork, archived_fork, archived_source]

        def select(types):
            return [r.name for r in repos if types.includes(r)]

        assert select(RepoTypeSet(forks=True, archives=True)) == ["archived-fork"]
        assert select(RepoTypeSet(sources=True)) == ["source"]
        assert select(RepoTypeSet(sources=True, forks=True)) == ["source", "fork"]
        assert select(RepoTypeSet(sources=True, archives=True)) == ["archived-source"]

    def test_archives_alone(self):
        """Archives without a type dimension selects every archived repository."""
        repos = [
            make_repo("source"),
            make_repo("archived-fork", fork=True, archived=True),
            make_repo("archived-source", archived=True),
        ]
        selected = [r.name for r in repos if RepoTypeSet(archives=True).includes(r)]
        assert selected == ["archived-fork", "archived-source"]

    def test_all_includes_everything(self):
        repos = [
            make_repo("source"),
            make_repo("fork", fork=True),
            make_repo("archived-fork", fork=True, archived=True),
            make_repo("mirror", mirror_url="https://example.com/m.git"),
        ]
        assert all(RepoTypeSet.all().includes(r) for r in repos)

    def test_zero_size_excluded(self):
        assert RepoTypeSet.all().includes(make_repo(size=0)) is False

    def test_empty_set_matches_nothing(self):
        empty = RepoTypeSet()
        assert not any(empty.includes(r) for r in [make_repo(), make_repo(fork=True)])


class TestFileType:
    """Test mode classification."""

    @pytest.mark.parametrize("mode, expected", [
        ("100644", FileType.FILE),
        ("100664", FileType.FILE),
        ("100755", FileType.EXECUTABLE),
        ("120000", FileType.SYMLINK),
        ("040000", FileType.DIRECTORY),
        ("160000", FileType.SUBMODULE),
        ("999999", FileType.FILE),
    ])
    def test_from_mode(self, mode, expected):
        assert FileType.from_mode(mode) is expected

    def test_parse_aliases(self):
        assert FileType.parse("f") is FileType.FILE
        assert FileType.parse("dir") is FileType.DIRECTORY
        assert FileType.parse("x") is FileType.EXECUTABLE
        with pytest.raises(ConfigurationError):
            FileType.parse("socket")

    def test_tree_entry_properties(self):
        entry = TreeEntry.from_api({"path": "cmd/tool.go", "mode": "100755", "size": 42, "sha": "abc"})
        assert entry.basename == "tool.go"
        assert entry.file_type is FileType.EXECUTABLE
        assert entry.size == 42

    def test_tree_entry_without_size(self):
        entry = TreeEntry.from_api({"path": "cmd", "mode": "040000", "type": "tree"})
        assert entry.size == 0


class TestSearchOptions:
    """Test SearchOptions validation."""

    def test_defaults(self):
        options = SearchOptions(pattern="*")
        assert options.repo_types == RepoTypeSet(sources=True)
        assert options.jobs == 10
        assert options.has_date_filter is False

    def test_extensions_normalized(self):
        options = SearchOptions(pattern="*", extensions=["go", ".md", "..txt"])
        assert options.extensions == (".go", ".md", ".txt")

    def test_min_greater_than_max(self):
        with pytest.raises(ConfigurationError, match="--min-size cannot be greater"):
            SearchOptions(pattern="*", min_size=2000, max_size=1000)

    def test_only_one_bound(self):
        SearchOptions(pattern="*", min_size=2000)
        SearchOptions(pattern="*", max_size=1000)

    @pytest.mark.parametrize("jobs", [0, 101, -1])
    def test_jobs_out_of_range(self, jobs):
        with pytest.raises(ConfigurationError, match="jobs must be between"):
            SearchOptions(pattern="*", jobs=jobs)

    def test_bad_pattern_is_configuration_error(self):
        with pytest.raises(PatternError):
            SearchOptions(pattern="[abc")

    def test_pattern_validated_as_case_folded(self):
        """A pattern only invalid after case folding is rejected up front."""
        SearchOptions(pattern="[Z-a]*")
        with pytest.raises(PatternError, match="bad character range"):
            SearchOptions(pattern="[Z-a]*", ignore_case=True)

    def test_bad_exclude_is_configuration_error(self):
        with pytest.raises(PatternError, match="exclude pattern '{a,b' is invalid"):
            SearchOptions(pattern="*", excludes=("*.md", "{a,b"))

    def test_date_range(self):
        after = datetime(2024, 1, 2, tzinfo=timezone.utc)
        before = datetime(2024, 1, 1, tzinfo=timezone.utc)
        with pytest.raises(ConfigurationError):
            SearchOptions(pattern="*", changed_after=after, changed_before=before)

        options = SearchOptions(pattern="*", changed_after=before)
        assert options.has_date_filter is True

    def test_frozen(self):
        options = SearchOptions(pattern="*")
        with pytest.raises(AttributeError):
            options.pattern = "x"


class TestOwnerType:
    """Test OwnerType values."""

    def test_values(self):
        assert OwnerType("User") is OwnerType.USER
        assert OwnerType("Organization") is OwnerType.ORGANIZATION
