"""Unified, cancellable navigation over remote storage providers."""

from remote_nav._cancel import CancelToken
from remote_nav._config import BackendConfig, SessionConfig
from remote_nav._errors import (
    BackendUnavailable,
    Cancelled,
    InvalidPath,
    NotFound,
    NotReady,
    OperationInProgress,
    PermissionDenied,
    RemoteNavError,
    root_cause,
)
from remote_nav._models import ZERO_TIME, Entry, EntryKind, format_size
from remote_nav._navigator import (
    Navigator,
    NavState,
    Operation,
    OpKind,
    Outcome,
    display_message,
    truncate_message,
)
from remote_nav._paging import PageResult, collect_remaining, iter_pages
from remote_nav._provider import ListPage, Provider
from remote_nav._registry import Session, create_provider, open_session, register_provider

__version__ = "0.1.0"

__all__ = [
    # Core
    "Provider",
    "ListPage",
    "Navigator",
    "Session",
    "open_session",
    "create_provider",
    "register_provider",
    # Models
    "Entry",
    "EntryKind",
    "ZERO_TIME",
    "format_size",
    # Paging
    "iter_pages",
    "collect_remaining",
    "PageResult",
    # Operations
    "CancelToken",
    "NavState",
    "OpKind",
    "Operation",
    "Outcome",
    "truncate_message",
    "display_message",
    # Config
    "BackendConfig",
    "SessionConfig",
    # Errors
    "RemoteNavError",
    "NotFound",
    "PermissionDenied",
    "InvalidPath",
    "BackendUnavailable",
    "NotReady",
    "Cancelled",
    "OperationInProgress",
    "root_cause",
    # Version
    "__version__",
]
