"""Navigator — current-directory state machine with single-flight operations."""

from __future__ import annotations

import contextlib
import dataclasses
import enum
import io
import logging
import mimetypes
import os
import threading
from typing import TYPE_CHECKING, Any, BinaryIO, Callable, Union

from remote_nav import _path
from remote_nav._cancel import CancelToken
from remote_nav._errors import Cancelled, OperationInProgress, root_cause
from remote_nav._models import Entry
from remote_nav._paging import collect_remaining

if TYPE_CHECKING:
    from remote_nav._provider import ListPage, Provider

log = logging.getLogger(__name__)

LocalSource = Union[str, "os.PathLike[str]", BinaryIO]

MAX_MESSAGE_LENGTH = 69
TRUNCATE_PREFIX_LENGTH = 42
TRUNCATE_SUFFIX_LENGTH = 21


def truncate_message(msg: str) -> str:
    """Shorten ``msg`` to fit a single-line status area.

    Messages longer than 69 characters keep their first 42 and last 21
    characters around a ``" ... "`` marker.
    """
    if len(msg) > MAX_MESSAGE_LENGTH:
        return f"{msg[:TRUNCATE_PREFIX_LENGTH]} ... {msg[-TRUNCATE_SUFFIX_LENGTH:]}"
    return msg


def display_message(exc: BaseException) -> str:
    """User-facing message of an error: its root cause, truncated."""
    cause = root_cause(exc)
    return truncate_message(str(cause) or type(cause).__name__)


class NavState(enum.Enum):
    """Listing state of a view."""

    IDLE = "idle"
    LISTING = "listing"


class OpKind(enum.Enum):
    """Operation categories; each allows one live operation at a time."""

    REFRESH = "refresh"
    UPLOAD = "upload"
    DOWNLOAD = "download"
    DELETE = "delete"


@dataclasses.dataclass(frozen=True)
class Outcome:
    """Result of a finished operation.

    :param ok: ``True`` on success.
    :param message: Truncated root-cause message on failure, ``""`` on success.
    :param error: The error that ended the operation, if any.
    :param cancelled: ``True`` if the operation was cancelled.
    """

    ok: bool
    message: str = ""
    error: BaseException | None = None
    cancelled: bool = False

    @classmethod
    def failure(cls, exc: BaseException) -> Outcome:
        return cls(False, display_message(exc), exc, cancelled=isinstance(exc, Cancelled))


class Operation:
    """Handle of one running navigator operation.

    :param kind: The operation category.
    :param token: Cancellation token owned by this operation.
    """

    def __init__(self, kind: OpKind, token: CancelToken, lock: threading.RLock) -> None:
        self.kind = kind
        self.token = token
        self._lock = lock
        self._finished = threading.Event()
        self._outcome: Outcome | None = None

    @property
    def done(self) -> bool:
        return self._finished.is_set()

    @property
    def outcome(self) -> Outcome | None:
        """The outcome once finished, else ``None``."""
        return self._outcome

    def cancel(self) -> None:
        """Cancel the operation. Nothing it fetched is applied afterwards."""
        # Same lock as every view mutation: a delivery either completed
        # before this call or is discarded.
        with self._lock:
            self.token.cancel()

    def wait(self, timeout: float | None = None) -> Outcome | None:
        """Block until the operation finishes; ``None`` on timeout."""
        self._finished.wait(timeout)
        return self._outcome

    def _finish(self, outcome: Outcome) -> None:
        self._outcome = outcome
        self._finished.set()

    def __repr__(self) -> str:
        return f"Operation(kind={self.kind.value!r}, done={self.done})"


class Navigator:
    """Owns the current path and entry sequence of one view.

    Every action returns an :class:`Operation` immediately and runs on its own
    background thread. At most one operation per :class:`OpKind` is live;
    starting another raises :class:`OperationInProgress` without touching the
    provider. All view mutations go through the navigator lock and are
    dropped once the owning operation has been cancelled.

    :param provider: The bound storage provider.
    :param path: Initial path (defaults to ``provider.home``).
    :param on_change: Called with the navigator after every view change.
    """

    def __init__(
        self,
        provider: Provider,
        *,
        path: str | None = None,
        on_change: Callable[[Navigator], Any] | None = None,
    ) -> None:
        self._provider = provider
        self._lock = threading.RLock()
        self._path = _path.normalize_dir(provider.home if path is None else path)
        self._entries: list[Entry] = []
        self._ops: dict[OpKind, Operation] = {}
        self._status = ""
        self._on_change = on_change

    # region: state accessors

    @property
    def provider(self) -> Provider:
        return self._provider

    @property
    def path(self) -> str:
        with self._lock:
            return self._path

    @property
    def entries(self) -> tuple[Entry, ...]:
        """Snapshot of the current entry sequence."""
        with self._lock:
            return tuple(self._entries)

    @property
    def state(self) -> NavState:
        with self._lock:
            return NavState.LISTING if OpKind.REFRESH in self._ops else NavState.IDLE

    @property
    def status(self) -> str:
        """Last status-line message (``""`` after a successful refresh)."""
        with self._lock:
            return self._status

    def busy(self, kind: OpKind) -> bool:
        with self._lock:
            return kind in self._ops

    def operation(self, kind: OpKind) -> Operation | None:
        """The live operation of ``kind``, if any."""
        with self._lock:
            return self._ops.get(kind)

    def key_for(self, entry: Entry | str) -> str:
        """Key of a regular entry (or file name) in the current path."""
        name = entry.name if isinstance(entry, Entry) else entry
        return _path.key(self.path, name)

    # endregion

    # region: navigation

    def refresh(self, path: str | None = None) -> Operation:
        """List ``path`` (default: the current path) from its first page.

        The first page replaces the view; the remaining pages are appended as
        one batch when the continuation finishes.

        :raises OperationInProgress: If a listing is already running.
        """
        target = self.path if path is None else _path.normalize_dir(path)
        return self._start(OpKind.REFRESH, lambda op: self._list_work(op, target, None), target)

    def open_listing(self, path: str, first_page: ListPage) -> Operation:
        """Show an already fetched first page, then continue paginating."""
        target = _path.normalize_dir(path)
        return self._start(OpKind.REFRESH, lambda op: self._list_work(op, target, first_page), target)

    def navigate_into(self, entry: Entry | str) -> Operation:
        """Refresh into a directory entry of the current path.

        :raises ValueError: If ``entry`` is a regular file.
        :raises OperationInProgress: If a listing is already running.
        """
        if isinstance(entry, Entry):
            if not entry.is_dir:
                raise ValueError(f"not a directory: {entry.name!r}")
            name = entry.name
        else:
            name = entry
        return self.refresh(_path.child(self.path, name))

    def navigate_up(self) -> Operation | None:
        """Refresh the parent directory.

        At the root there is nothing to go back to: no fetch is issued and
        ``None`` is returned (the view just scrolls to the top).

        :raises OperationInProgress: If a listing is already running.
        """
        current = self.path
        if _path.is_root(current):
            log.debug("navigate up at root path=%r", current)
            return None
        return self.refresh(_path.parent(current))

    def cancel(self, kind: OpKind = OpKind.REFRESH) -> Operation | None:
        """Cancel the live operation of ``kind`` and return it."""
        with self._lock:
            op = self._ops.get(kind)
            if op is not None:
                op.cancel()
        return op

    def cancel_all(self) -> list[Operation]:
        """Cancel every live operation."""
        with self._lock:
            ops = list(self._ops.values())
            for op in ops:
                op.cancel()
        return ops

    # endregion

    # region: transfers

    def upload(self, source: LocalSource, key: str | None = None, content_type: str | None = None) -> Operation:
        """Upload a local file path or binary stream.

        :param key: Destination key; defaults to the current path plus the
            source's base name.
        :param content_type: MIME type; guessed from the name when omitted.
        :raises ValueError: If no key is given and the source has no name.
        :raises OperationInProgress: If an upload is already running.
        """
        if isinstance(source, (str, os.PathLike)):
            local_name: str | None = os.path.basename(os.fspath(source))
        else:
            local_name = getattr(source, "name", None)
            local_name = os.path.basename(local_name) if isinstance(local_name, str) else None
        if key is None:
            if not local_name:
                raise ValueError("No file chosen to upload")
            key = self.key_for(local_name)
        if content_type is None:
            content_type = mimetypes.guess_type(local_name or key)[0]
        dest = key
        return self._start(OpKind.UPLOAD, lambda op: self._upload_work(op, source, dest, content_type), dest)

    def download(self, sink: LocalSource, key: Entry | str) -> Operation:
        """Download ``key`` into a local file path or writable binary stream.

        :raises ValueError: If ``key`` is a directory entry.
        :raises OperationInProgress: If a download is already running.
        """
        remote = self._resolve_key(key, "download")
        return self._start(OpKind.DOWNLOAD, lambda op: self._download_work(op, sink, remote), remote)

    def delete(self, key: Entry | str) -> Operation:
        """Delete a file; on success its entry leaves the view.

        :raises ValueError: If ``key`` is a directory entry.
        :raises OperationInProgress: If a delete is already running.
        """
        remote = self._resolve_key(key, "delete")
        entry = key if isinstance(key, Entry) else None
        return self._start(OpKind.DELETE, lambda op: self._delete_work(op, remote, entry), remote)

    def _resolve_key(self, key: Entry | str, action: str) -> str:
        if isinstance(key, Entry):
            if key.is_dir:
                raise ValueError(f"No file chosen to {action}")
            return self.key_for(key)
        if not key or key.endswith(_path.SEPARATOR):
            raise ValueError(f"No file chosen to {action}")
        return key

    # endregion

    # region: operation plumbing

    def _start(self, kind: OpKind, work: Callable[[Operation], Outcome], path: str) -> Operation:
        with self._lock:
            if kind in self._ops:
                raise OperationInProgress(kind=kind.value, path=path)
            op = Operation(kind, CancelToken(), self._lock)
            self._ops[kind] = op
        thread = threading.Thread(
            target=self._run,
            args=(op, work, path),
            name=f"remote-nav-{kind.value}",
            daemon=True,
        )
        thread.start()
        return op

    def _run(self, op: Operation, work: Callable[[Operation], Outcome], path: str) -> None:
        outcome: Outcome | None = None
        try:
            outcome = work(op)
        except Cancelled as exc:
            log.info("%s cancelled path=%r", op.kind.value, path)
            outcome = Outcome.failure(exc)
        except Exception as exc:
            log.warning("%s failed path=%r: %s", op.kind.value, path, exc)
            outcome = Outcome.failure(exc)
        finally:
            if outcome is None:  # pragma: no cover -- BaseException escaping work()
                outcome = Outcome(False, "operation aborted")
            with self._lock:
                if self._ops.get(op.kind) is op:
                    del self._ops[op.kind]
                if not outcome.ok:
                    self._status = outcome.message
            op._finish(outcome)
            self._notify()

    def _apply(self, op: Operation, mutate: Callable[[], None]) -> None:
        """Run a view mutation unless ``op`` has been cancelled."""
        with self._lock:
            op.token.raise_if_cancelled()
            mutate()
        self._notify()

    def _notify(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self)
        except Exception:
            log.exception("on_change callback failed")

    def _list_work(self, op: Operation, path: str, first_page: ListPage | None) -> Outcome:
        token = op.token
        page = first_page
        if page is None:
            log.debug("list prefix=%r marker=%r", path, "")
            page = self._provider.list_page(path, "", token=token)

        def _replace() -> None:
            self._path = path
            self._entries = list(page.entries)
            self._status = ""

        self._apply(op, _replace)

        rest = collect_remaining(self._provider, path, page.next_cursor, token=token)
        if rest.cancelled:
            raise Cancelled(path=path)
        self._apply(op, lambda: self._entries.extend(rest.entries))
        if rest.error is not None:
            return Outcome.failure(rest.error)
        return Outcome(True)

    def _upload_work(self, op: Operation, source: LocalSource, key: str, content_type: str | None) -> Outcome:
        with contextlib.ExitStack() as stack:
            if isinstance(source, (str, os.PathLike)):
                stream: BinaryIO = stack.enter_context(open(source, "rb"))  # noqa: SIM115
            else:
                stream = source
            if not stream.seekable():
                stream = io.BytesIO(stream.read())
            self._provider.upload(stream, key, content_type, token=op.token)
        log.info("upload success key=%r", key)

        with self._lock:
            # The object exists now, so a late cancel only skips the placeholder.
            # A running listing owns the entry sequence; it may or may not
            # include the new file, so only an idle view gets the placeholder.
            added = (
                not op.token.cancelled
                and _path.dirname(key) == self._path
                and OpKind.REFRESH not in self._ops
            )
            if added:
                self._entries.append(Entry.placeholder(_path.basename(key)))
        if added:
            self._notify()
        return Outcome(True)

    def _download_work(self, op: Operation, sink: LocalSource, key: str) -> Outcome:
        if not isinstance(sink, (str, os.PathLike)):
            self._provider.download(sink, key, token=op.token)
            log.info("download success key=%r", key)
            return Outcome(True)
        try:
            with open(sink, "wb") as f:
                self._provider.download(f, key, token=op.token)
        except BaseException:
            with contextlib.suppress(OSError):
                os.remove(sink)
            raise
        log.info("download success key=%r file=%r", key, os.fspath(sink))
        return Outcome(True)

    def _delete_work(self, op: Operation, key: str, entry: Entry | None) -> Outcome:
        self._provider.delete(key, token=op.token)
        log.info("delete success key=%r", key)

        def _remove() -> None:
            if entry is not None:
                # Identity match: a same-named entry from another listing stays.
                for i, candidate in enumerate(self._entries):
                    if candidate is entry:
                        del self._entries[i]
                        return
                return
            if _path.dirname(key) != self._path:
                return
            name = _path.basename(key)
            for i, candidate in enumerate(self._entries):
                if not candidate.is_dir and candidate.name == name:
                    del self._entries[i]
                    return

        self._apply(op, _remove)
        return Outcome(True)

    # endregion
