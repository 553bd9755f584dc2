"""
Serialized output for matches and diagnostics.
"""

import threading
from typing import TextIO

from rich.console import Console
from rich.style import Style
from rich.text import Text

from core.entities import Repository


def blob_url(host: str, repo: Repository, path: str) -> str:
    """Return the web URL of path in repo at the repository's ref."""
    return f"https://{host}/{repo.owner}/{repo.name}/blob/{repo.ref}/{path}"


class Output:
    """
    Writes matches to stdout and diagnostics to stderr.

    One lock covers both streams and is held only while a single message
    is formatted and written, so lines from concurrent searches never
    interleave.
    """

    def __init__(
        self,
        stdout: TextIO,
        stderr: TextIO,
        colorize: bool = False,
        hyperlinks: bool = False,
        host: str = "github.com",
    ):
        self.colorize = colorize
        self.hyperlinks = hyperlinks
        self.host = host
        self._lock = threading.Lock()

        styled = colorize or hyperlinks
        self._stdout = self._console(stdout, styled)
        self._stderr = self._console(stderr, styled)

    @staticmethod
    def _console(file: TextIO, styled: bool) -> Console:
        return Console(
            file=file,
            force_terminal=styled,
            no_color=not styled,
            color_system="standard" if styled else None,
            highlight=False,
            emoji=False,
            markup=False,
            soft_wrap=True,
        )

    def _style(self, color: str) -> str:
        return color if self.colorize else ""

    def match(self, repo: Repository, path: str):
        """Write a match as owner/name:path."""
        text = Text()
        text.append(repo.owner, style=self._style("cyan"))
        text.append("/")
        text.append(repo.name, style=self._style("bold green"))
        text.append(":")
        text.append(path, style=self._style("white"))

        if self.hyperlinks:
            text.stylize(Style(link=blob_url(self.host, repo, path)))

        with self._lock:
            self._stdout.print(text)

    def warning(self, message: str):
        """Write "Warning: <message>" to stderr."""
        text = Text("Warning: ", style=self._style("yellow"))
        text.append(message)
        with self._lock:
            self._stderr.print(text)

    def error(self, message: str):
        """Write "Error: <message>" to stderr."""
        text = Text("Error: ", style=self._style("bold red"))
        text.append(message)
        with self._lock:
            self._stderr.print(text)

    def info(self, message: str):
        """Write a plain informational line to stderr."""
        with self._lock:
            self._stderr.print(Text(message))
