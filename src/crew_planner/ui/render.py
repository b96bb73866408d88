"""Output rendering for the crew-planner CLI, built on ``rich``.

Styling is applied only when color is allowed (no ``--no-color`` flag and no
``NO_COLOR`` environment variable); the text content is the same either way,
so output stays readable in a pipe or a file.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

if TYPE_CHECKING:
    from collections.abc import Sequence


class CLIRenderer:
    def __init__(
        self,
        *,
        no_color: bool = False,
        verbose: bool = False,
        console: Console | None = None,
    ) -> None:
        self.verbose = verbose
        self._color = not no_color and not os.environ.get("NO_COLOR", "")
        self._console = (
            console
            if console is not None
            else Console(no_color=not self._color, highlight=False, soft_wrap=True)
        )

    @property
    def console(self) -> Console:
        return self._console

    def kv(self, key: str, value: object) -> None:
        """Print a ``key: value`` line."""

        line = Text()
        line.append(f"{key}:", style="bold cyan" if self._color else "")
        line.append(f" {value}")
        self._console.print(line)

    def text(self, line: str) -> None:
        self._console.print(Text(line))

    def section(self, title: str) -> None:
        """Print a blank line, then ``title`` as a heading."""

        self._console.print()
        self._console.print(Text(title, style="bold" if self._color else ""))

    def table(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[str]],
        *,
        title: str | None = None,
        numeric_columns: Sequence[int] = (),
    ) -> None:
        """Print a table; nothing when ``rows`` is empty.

        Numeric columns are right-aligned and never wrap. Text columns keep at
        least their header's width and fold long values onto extra lines.
        """

        if not rows:
            return
        if title:
            self.section(title)
        table = Table(
            box=box.SIMPLE_HEAD,
            show_edge=False,
            header_style="bold" if self._color else "",
        )
        for index, header in enumerate(headers):
            numeric = index in numeric_columns
            table.add_column(
                header,
                justify="right" if numeric else "left",
                no_wrap=numeric,
                min_width=len(header),
                overflow="ellipsis" if numeric else "fold",
            )
        for row in rows:
            table.add_row(*(Text(str(cell)) for cell in row))
        self._console.print(table)


def create_renderer(*, no_color: bool = False, verbose: bool = False) -> CLIRenderer:
    return CLIRenderer(no_color=no_color, verbose=verbose)


__all__ = ["CLIRenderer", "create_renderer"]
