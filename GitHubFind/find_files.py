#!/usr/bin/env python3
"""
Command-line entry point for GitHubFind.
Finds files across GitHub repositories by glob pattern, without cloning.
"""

import argparse
import logging
import os
import signal
import sys
import threading
from datetime import datetime, timezone

from rich.console import Console

from core.entities import MAX_JOBS, DEFAULT_JOBS, FileType, RepoTypeSet, SearchOptions
from core.errors import GitHubFindError, SearchCanceled
from core.use_cases import FindFiles, parse_repo_specs
from core.value_parsing import parse_byte_size, parse_duration, parse_time
from infrastructure.github_client import DEFAULT_HOST, GitHubClient
from infrastructure.output import Output
from infrastructure.response_cache import DEFAULT_TTL, ResponseCache

__version__ = "0.1.0"

logger = logging.getLogger(__name__)

DESCRIPTION = """\
A find(1)-like utility for GitHub repositories.

<pattern> is a glob pattern to match files:
  *              Match any characters (e.g., "*.go")
  **             Match across directories (e.g., "**/*.js")
  ?              Match single character (e.g., "file?.txt")
  [...]          Match character class (e.g., "file[0-9].txt")
  {...}          Match alternatives (e.g., "*.{go,md}")

When a single argument is given it is a repository and the pattern
defaults to "*". Otherwise the first argument is the pattern and the rest
are repositories.

<repository> can be:
  <owner>             Search all repositories for a user or organization
  <owner>/<repo>      Search a specific repository
  <owner>/<repo>@ref  Search a specific branch, tag or commit
"""

EPILOG = """\
examples:
  gh-find "*.go" cli
  gh-find "*.go" cli/cli cli/go-gh
  gh-find -p "**/*_test.go" golang/go
  gh-find -e go -e md cli
  gh-find --min-size 50k "*.go" golang/go
  gh-find "*.js" -E "*.test.js" -E "*.spec.js" facebook/react
  gh-find --changed-within 2weeks "*.md" cli/cli
"""


def _argument_type(parse):
    """Adapt a parser raising ValueError into an argparse type."""
    def convert(text):
        try:
            return parse(text)
        except ValueError as e:
            raise argparse.ArgumentTypeError(str(e)) from None
    convert.__name__ = parse.__name__
    return convert


def _positive_size(text: str) -> int:
    size = parse_byte_size(text)
    if size <= 0:
        raise ValueError("must be greater than 0")
    return size


def _jobs(text: str) -> int:
    value = int(text)
    if not 1 <= value <= MAX_JOBS:
        raise ValueError(f"must be between 1 and {MAX_JOBS}")
    return value


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="gh-find",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "args",
        nargs="+",
        metavar="TARGET",
        help="[pattern] repository... (see below)",
    )

    # Pattern matching
    parser.add_argument(
        "-i", "--ignore-case",
        action="store_true",
        help="case-insensitive pattern matching",
    )
    parser.add_argument(
        "-p", "--full-path",
        action="store_true",
        help="match pattern against full path",
    )

    # File filtering
    parser.add_argument(
        "-t", "--type",
        dest="file_types",
        action="append",
        default=[],
        type=_argument_type(FileType.parse),
        help="filter by file type: f/file, d/dir/directory, l/symlink, x/executable, s/submodule",
    )
    parser.add_argument(
        "-e", "--extension",
        dest="extensions",
        action="append",
        default=[],
        help="filter by file extension (can be specified multiple times)",
    )
    parser.add_argument(
        "-E", "--exclude",
        dest="excludes",
        action="append",
        default=[],
        help="exclude patterns (can be specified multiple times)",
    )
    parser.add_argument(
        "--min-size",
        type=_argument_type(_positive_size),
        default=0,
        help="minimum file size (e.g., 1M, 500k, 1GB)",
    )
    parser.add_argument(
        "--max-size",
        type=_argument_type(_positive_size),
        default=0,
        help="maximum file size (e.g., 5M, 1GB)",
    )

    # Commit dates
    changed = parser.add_mutually_exclusive_group()
    changed.add_argument(
        "--changed-within",
        type=_argument_type(parse_duration),
        help="only files last committed within a duration (e.g., 10h, 2d, 3weeks)",
    )
    changed.add_argument(
        "--changed-after",
        type=_argument_type(parse_time),
        help="only files last committed at or after a time (YYYY-MM-DD, RFC3339)",
    )
    parser.add_argument(
        "--changed-before",
        type=_argument_type(parse_time),
        help="only files last committed at or before a time (YYYY-MM-DD, RFC3339)",
    )

    # Repository selection
    parser.add_argument(
        "--repo-types",
        type=_argument_type(RepoTypeSet.parse),
        default=RepoTypeSet(sources=True),
        help="repo types when expanding owners (sources,forks,archives,mirrors,all; default: sources)",
    )

    # Output control
    parser.add_argument(
        "-c", "--color",
        choices=("auto", "always", "never"),
        default="auto",
        help="colorize output (default: auto)",
    )
    parser.add_argument(
        "--hyperlink",
        choices=("auto", "always", "never"),
        default="auto",
        help="hyperlink output (default: auto)",
    )

    # Performance & caching
    parser.add_argument(
        "-j", "--jobs",
        type=_argument_type(_jobs),
        default=DEFAULT_JOBS,
        help=f"maximum concurrent API requests (default: {DEFAULT_JOBS})",
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="bypass cache, always fetch fresh data",
    )
    parser.add_argument(
        "--cache-dir",
        help="override cache directory location",
    )
    parser.add_argument(
        "--cache-ttl",
        type=_argument_type(parse_duration),
        default=DEFAULT_TTL,
        help="cache time-to-live (e.g., 1h, 30m, 24h; default: 24h)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="log API activity to stderr",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def split_args(args: list[str]) -> tuple[str, list[str]]:
    """
    Split positional arguments into a pattern and repository specs.

    A single argument is a repository searched with "*".
    """
    if len(args) == 1:
        return "*", list(args)
    return args[0] or "*", list(args[1:])


def color_enabled(stream) -> bool:
    """Report whether stream is a terminal that accepts color (honors NO_COLOR and TERM=dumb)."""
    console = Console(file=stream)
    return console.is_terminal and not console.is_dumb_terminal and not console.no_color


def resolve_mode(mode: str, auto: bool) -> bool:
    if mode == "always":
        return True
    if mode == "never":
        return False
    return auto


def build_options(args: argparse.Namespace, pattern: str, repo_specs) -> SearchOptions:
    """
    Build the immutable search options from parsed arguments.

    Raises:
        ConfigurationError: If the combination of options is invalid
    """
    changed_after = args.changed_after
    if args.changed_within is not None:
        changed_after = datetime.now(timezone.utc) - args.changed_within

    return SearchOptions(
        pattern=pattern,
        repo_specs=tuple(repo_specs),
        repo_types=args.repo_types,
        file_types=tuple(args.file_types),
        ignore_case=args.ignore_case,
        full_path=args.full_path,
        extensions=tuple(args.extensions),
        excludes=tuple(args.excludes),
        min_size=args.min_size,
        max_size=args.max_size,
        changed_after=changed_after,
        changed_before=args.changed_before,
        jobs=args.jobs,
    )


def main(argv=None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    colorize = resolve_mode(args.color, color_enabled(sys.stdout))
    hyperlinks = resolve_mode(args.hyperlink, colorize)
    output = Output(
        sys.stdout,
        sys.stderr,
        colorize=colorize,
        hyperlinks=hyperlinks,
        host=os.environ.get("GH_HOST") or DEFAULT_HOST,
    )

    # Let SIGTERM unwind like Ctrl-C so in-flight work is canceled.
    signal.signal(signal.SIGTERM, signal.default_int_handler)

    github = None
    try:
        pattern, raw_specs = split_args(args.args)
        repo_specs = parse_repo_specs(raw_specs, output)
        options = build_options(args, pattern, repo_specs)

        cancel_event = threading.Event()
        cache = None if args.no_cache else ResponseCache(args.cache_dir, args.cache_ttl)
        github = GitHubClient(cache=cache, cancel_event=cancel_event)

        summary = FindFiles(github, output, cancel_event).execute(options)
        logger.info(
            f"Found {summary.matches} matches in {summary.repositories} repositories"
        )
        return 0

    except (KeyboardInterrupt, SearchCanceled):
        output.info("Search interrupted by user")
        return 130  # Standard exit code for SIGINT

    except (GitHubFindError, ValueError) as e:
        output.error(str(e))
        return 1

    finally:
        if github is not None:
            github.close()


if __name__ == "__main__":
    sys.exit(main())
