"""Configuration for shelffy: settings, constants and logging."""

from .constants import (
    BOOK_HASH_SIZE,
    BookStreams,
    BookSubjects,
    DeletionDefaults,
    DeliverPolicy,
    StorageLimits,
)
from .logging_config import LoggingConfig, setup_logging
from .settings import ShelffySettings, get_settings

__all__ = [
    "BOOK_HASH_SIZE",
    "BookStreams",
    "BookSubjects",
    "DeletionDefaults",
    "DeliverPolicy",
    "StorageLimits",
    "LoggingConfig",
    "setup_logging",
    "ShelffySettings",
    "get_settings",
]
