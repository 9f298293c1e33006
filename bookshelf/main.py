import logging
import shlex
import subprocess
import sys
from typing import List, Optional

import typer
from rich.console import Console

from bookshelf.config import settings
from bookshelf.store import BookStore, DuplicateTitleError, StorageError, ValidationError
from bookshelf.ui_helpers import print_list_result, set_output_mode

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.WARNING))
logger = logging.getLogger(__name__)

APP_NAME = "Book Manager CLI"

HELP_TEXT = """Commands:
  add "Title" "Author" [YYYY-MM-DD]  Adds a book. Example: add "The Three Musketeers" "Alexandre Dumas" 1844-03-14
  remove "Title"                     Removes the book with that title (case-insensitive).
  list                               Lists all books.
  help                               Shows this message.
  exit / quit                        Exit the program."""

console = Console()


class StoreManager:
    """Single BookStore per database file, initialized on first use."""

    _instance: Optional[BookStore] = None
    _db_file_snapshot: Optional[str] = None

    @classmethod
    def get_instance(cls) -> BookStore:
        current_db = settings.db_file
        if cls._instance is None or cls._db_file_snapshot != current_db:
            store = BookStore(current_db)
            store.initialize()
            cls._instance = store
            cls._db_file_snapshot = current_db
            logger.info(f"Book store ready at {current_db}")
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None
        cls._db_file_snapshot = None


def _open_store() -> Optional[BookStore]:
    try:
        return StoreManager.get_instance()
    except StorageError as e:
        print(f"Error: {e}")
        return None


# --- Command handlers shared by the typer commands and the shell ---

def add_book(store: BookStore, title: str, author: str, release_date: Optional[str] = None) -> None:
    try:
        book = store.add(title, author, release_date)
    except ValidationError as e:
        print(str(e))
        return
    except DuplicateTitleError as e:
        print(f'A book with the title "{e.title}" already exists.')
        return
    except StorageError as e:
        print(f"Error: {e}")
        return
    print(f'Added book: "{book.title}" by {book.author} ({book.release_date_text})')


def remove_book(store: BookStore, title: str) -> None:
    try:
        removed = store.remove(title)
    except StorageError as e:
        print(f"Error: {e}")
        return
    if removed == 1:
        print(f'Removed book titled "{title}".')
    elif removed > 1:
        print(f'Removed {removed} books titled "{title}".')
    else:
        print(f'No book found with title "{title}".')


def list_books(store: BookStore) -> None:
    try:
        books = store.list()
    except StorageError as e:
        print(f"Error: {e}")
        return
    print_list_result(books)


# --- Interactive shell ---

def split_args(line: str) -> List[str]:
    """Split a command line on whitespace, keeping "double quoted" groups together."""
    lexer = shlex.shlex(line, posix=True)
    lexer.whitespace_split = True
    lexer.quotes = '"'
    lexer.escape = ""
    lexer.commenters = ""
    return list(lexer)


def execute_line(store: BookStore, line: str) -> bool:
    """Run one shell command. Returns False when the shell should exit."""
    if not line or not line.strip():
        return True
    try:
        parts = split_args(line)
    except ValueError as e:
        print(f"Error: {e}")
        return True
    if not parts:
        return True

    cmd = parts[0].lower()
    if cmd == "add":
        if len(parts) not in (3, 4):
            print('Usage: add "Title" "Author" [YYYY-MM-DD]')
            print("Note: If the title or author contains spaces, wrap them in quotes. Example:")
            print('  add "The Three Musketeers" "Alexandre Dumas" 1844-03-14')
            return True
        add_book(store, parts[1], parts[2], parts[3] if len(parts) == 4 else None)
    elif cmd == "remove":
        if len(parts) < 2:
            print('Usage: remove "Title"')
            return True
        remove_book(store, parts[1])
    elif cmd == "list":
        list_books(store)
    elif cmd == "help":
        print(HELP_TEXT)
    elif cmd in ("exit", "quit"):
        return False
    else:
        print(f"Unknown command: {cmd}. Type 'help' to see available commands.")
    return True


def run_shell(store: Optional[BookStore] = None) -> None:
    """Read-eval-print loop over the book store. A failing command never ends the loop."""
    store = store or _open_store()
    if store is None:
        return
    console.print(f"[bold cyan]{APP_NAME}.[/] Type 'help' for commands.")
    while True:
        try:
            line = console.input("> ")
        except (EOFError, KeyboardInterrupt):
            print()
            break
        try:
            if not execute_line(store, line):
                break
        except Exception as e:
            logger.exception("Command failed")
            print(f"Error: {e}")


# --- Typer CLI application ---
app = typer.Typer(help=APP_NAME)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format for list: plain | json | rich (default: plain)",
    )
):
    """Global options for the CLI (e.g. output mode)."""
    if output:
        set_output_mode(output)


@app.command("add")
def cli_add(
    title: str = typer.Argument(..., help="Book title"),
    author: str = typer.Argument(..., help="Book author"),
    release_date: Optional[str] = typer.Argument(None, help="Release date, YYYY-MM-DD"),
):
    """Add a book."""
    store = _open_store()
    if store:
        add_book(store, title, author, release_date)


@app.command("remove")
def cli_remove(title: str = typer.Argument(..., help="Title to remove (case-insensitive)")):
    """Remove the book with the given title."""
    store = _open_store()
    if store:
        remove_book(store, title)


@app.command("list")
def cli_list():
    """List all books ordered by title."""
    store = _open_store()
    if store:
        list_books(store)


@app.command("shell")
def cli_shell():
    """Start the interactive shell."""
    run_shell()


@app.command("serve")
def cli_serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default from API_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", help="Port (default from API_PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Restart the server on code changes"),
):
    """Start the HTTP API with uvicorn."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    print(f"Starting API on http://{host}:{port}/")
    args = [
        sys.executable,
        "-m", "uvicorn",
        "bookshelf.api:app",
        "--host", host,
        "--port", str(port),
    ]
    if reload:
        args.append("--reload")
    try:
        subprocess.run(args)
    except FileNotFoundError:
        print("Error: `uvicorn` could not be started. Make sure it is installed in your environment.")


def main():
    """Entry point: run a subcommand when given arguments, otherwise the interactive shell."""
    if len(sys.argv) > 1:
        app()
    else:
        run_shell()


if __name__ == "__main__":
    main()
