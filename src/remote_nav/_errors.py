"""Normalized error hierarchy for remote_nav."""

from __future__ import annotations

from typing import Optional


class RemoteNavError(Exception):
    """Base class for all remote_nav errors.

    :param message: Human-readable error description.
    :param path: The path or key involved in the error, if any.
    :param backend: The backend name involved, if any.
    """

    def __init__(self, message: str = "", *, path: Optional[str] = None, backend: Optional[str] = None) -> None:
        self.path = path
        self.backend = backend
        super().__init__(message)

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.path is not None:
            parts.append(f"path={self.path!r}")
        if self.backend is not None:
            parts.append(f"backend={self.backend!r}")
        return " | ".join(parts) if len(parts) > 1 else parts[0]

    def __repr__(self) -> str:
        cls = type(self).__name__
        args = [repr(super().__str__())]
        if self.path is not None:
            args.append(f"path={self.path!r}")
        if self.backend is not None:
            args.append(f"backend={self.backend!r}")
        return f"{cls}({', '.join(args)})"


class NotFound(RemoteNavError):
    """Raised when a file, object or directory does not exist."""


class PermissionDenied(RemoteNavError):
    """Raised when access is denied by the storage backend."""


class InvalidPath(RemoteNavError):
    """Raised for malformed or unusable paths and keys."""


class BackendUnavailable(RemoteNavError):
    """Raised when the backend cannot be reached, authenticated or initialized."""


class NotReady(RemoteNavError):
    """Raised by placeholder backends that are not implemented yet."""


class Cancelled(RemoteNavError):
    """Raised when an operation is aborted through its cancellation token."""

    def __init__(
        self,
        message: str = "operation cancelled",
        *,
        path: Optional[str] = None,
        backend: Optional[str] = None,
    ) -> None:
        super().__init__(message, path=path, backend=backend)


class OperationInProgress(RemoteNavError):
    """Raised when an operation of the same kind is already running.

    The caller is expected to ask the user whether the running operation
    should be cancelled instead of starting a second one.

    :param kind: The operation category that is busy (e.g. ``"refresh"``).
    """

    def __init__(self, message: str = "", *, kind: str = "", path: Optional[str] = None) -> None:
        self.kind = kind
        super().__init__(message or f"{kind} already in progress", path=path)


def root_cause(exc: BaseException) -> BaseException:
    """Return the innermost exception of an exception chain.

    Follows ``__cause__`` first and falls back to ``__context__`` unless the
    context was suppressed with ``raise ... from None``.
    """
    seen = {id(exc)}
    while True:
        nxt = exc.__cause__
        if nxt is None and not exc.__suppress_context__:
            nxt = exc.__context__
        if nxt is None or id(nxt) in seen:
            return exc
        seen.add(id(nxt))
        exc = nxt
