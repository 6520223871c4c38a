"""Books feature utilities."""

from .error_handling import book_error_handler, handle_book_repository_error
from .hashing import HashingReader
from .storage_paths import build_storage_path

__all__ = [
    "book_error_handler",
    "handle_book_repository_error",
    "HashingReader",
    "build_storage_path",
]
