"""Shared utility functions for loopgen.

Provides name normalisation (slugs, Pascal/camel case), order-preserving JSON
I/O, file-system helpers and Rich-based console reporting.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def configure_logging(verbose: bool = False) -> None:
    """Route ``logging`` output through Rich.

    Debug traces from the generators are only shown with *verbose*.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


# ---------------------------------------------------------------------------
# String / name helpers
# ---------------------------------------------------------------------------

# Runs of letters and digits in any script; underscores and punctuation separate.
_RUN_RE = re.compile(r"[^\W_]+")


def split_words(value: str) -> list[str]:
    """Split an identifier into words on case changes, digits and punctuation.

    Letters from any script are kept; scripts without case stay one word.

    Examples::

        split_words("RPCLiteralTest2.0Binding") -> ["RPC", "Literal", "Test", "2", "0", "Binding"]
        split_words("get_quote") -> ["get", "quote"]
        split_words("GrößeAbfragen") -> ["Größe", "Abfragen"]
    """
    words: list[str] = []
    for run in _RUN_RE.findall(value):
        start = 0
        for index in range(1, len(run)):
            if _word_starts_at(run, index):
                words.append(run[start:index])
                start = index
        words.append(run[start:])
    return words


def _word_starts_at(run: str, index: int) -> bool:
    previous, char = run[index - 1], run[index]
    if previous.isdigit() != char.isdigit():
        return True
    if char.isupper() and previous.islower():
        return True
    # Last capital of an acronym run starts the next word ("RPC|Literal").
    following = run[index + 1 : index + 2]
    return char.isupper() and previous.isupper() and following.islower()


def kebab_case(value: str) -> str:
    """Convert a name to a lower-kebab-case slug safe for file names.

    Examples::

        kebab_case("GetQuoteResponse") -> "get-quote-response"
        kebab_case("Test2.0") -> "test-2-0"
    """
    return "-".join(word.lower() for word in split_words(value))


def pascal_case(value: str) -> str:
    """Convert ``some-thing`` or ``someThing`` to ``SomeThing``."""
    return "".join(word[:1].upper() + word[1:].lower() for word in split_words(value))


def camel_case(value: str) -> str:
    """Convert ``some-thing`` or ``SomeThing`` to ``someThing``."""
    pascal = pascal_case(value)
    if pascal:
        return pascal[0].lower() + pascal[1:]
    return ""


def sanitize_name(name: str) -> str:
    """Convert an arbitrary application name to a package-safe name.

    * Lowercases the input.
    * Replaces every run of characters other than letters, digits, hyphens
      and underscores with a single hyphen.
    * Strips leading/trailing hyphens.

    Examples::

        sanitize_name("x.y") -> "x-y"
        sanitize_name("x@y") -> "x-y"
        sanitize_name("  My App  ") -> "my-app"
    """
    result = re.sub(r"[^a-zA-Z0-9_-]", "-", name.strip().lower())
    result = re.sub(r"-+", "-", result)
    return result.strip("-")


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


def load_json(path: str | Path) -> dict[str, Any]:
    """Load and parse a JSON object file.

    Key order is kept as it appears in the file.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        ValueError: If the top-level value is not an object.
    """
    file_path = Path(path)
    raw = file_path.read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"{file_path} must contain a JSON object, found {type(data).__name__}")
    return data


def dump_json(data: Any) -> str:
    """Serialise *data* the way LoopBack projects format their JSON files."""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


async def save_json(data: dict[str, Any] | list[Any], path: str | Path) -> Path:
    """Save data as pretty-printed JSON.

    Parent directories are created automatically and the write runs in a
    worker thread.

    Returns:
        The written path.
    """
    file_path = Path(path)
    content = dump_json(data)
    await asyncio.to_thread(write_file, file_path, content)
    return file_path


def write_file(path: Path, content: str) -> None:
    """Write UTF-8 text, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


def relative_to(path: Path, root: Path) -> str:
    """Render *path* relative to *root* for display, falling back to the full path."""
    try:
        return str(path.relative_to(root))
    except ValueError:
        return str(path)


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------

FILE_ACTION_COLORS: dict[str, str] = {
    "create": "green",
    "update": "cyan",
    "skip": "yellow",
}


def print_file_action(action: str, path: str) -> None:
    """Print a ``create``/``update`` line for a written file."""
    color = FILE_ACTION_COLORS.get(action, "white")
    console.print(f"   [{color}]{action:>6}[/{color}] {path}")


def print_summary_table(
    rows: list[tuple[str, ...]],
    columns: tuple[str, ...] = ("Item", "Value"),
    title: str = "Summary",
) -> None:
    """Print a table with the given column headers."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    for index, column in enumerate(columns):
        table.add_column(column, style="dim" if index == 0 else None, no_wrap=index == 0)

    for row in rows:
        table.add_row(*(str(cell) for cell in row))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
