"""Bookshelf - book catalog manager

This package contains:
- Book store with title uniqueness and typed errors (store.py)
- SQLite connection and schema helpers (database.py)
- Data model (book.py)
- Input validation (validators.py)
- HTTP API with bearer-token login (api.py, auth.py)
- CLI and interactive shell (main.py, ui_helpers.py)
"""
