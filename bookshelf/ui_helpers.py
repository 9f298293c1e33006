import os
import json
from typing import List

from rich.console import Console
from rich.table import Table

from bookshelf.book import Book

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "BOOKSHELF_CLI_OUTPUT"
OUTPUT_MODES = {"plain", "json", "rich"}

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in OUTPUT_MODES:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    mode = os.environ.get(OUTPUT_MODE_ENV, "plain").lower()
    return mode if mode in OUTPUT_MODES else "plain"


def print_list_result(books: List[Book]) -> None:
    """Print the book list in the current output mode.
    - plain: 'Books in database:' followed by one line per book, or '(none)'
    - json: JSON array of book objects
    - rich: Rich table
    """
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
    elif mode == "rich":
        if not books:
            _console.print("[yellow]No books in database.[/]")
            return
        table = Table(title="📚 Books", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Released", style="green", no_wrap=True)
        for b in books:
            table.add_row(str(b.id), b.title, b.author, b.release_date_text)
        _console.print(table)
    else:
        print("Books in database:")
        if not books:
            print("  (none)")
            return
        for b in books:
            print(f'  "{b.title}" by {b.author}, released: {b.release_date_text}')
