"""Cancellation tokens for long-running provider calls."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import TYPE_CHECKING, Any, BinaryIO, Callable, TypeVar

from remote_nav._errors import Cancelled

if TYPE_CHECKING:
    from collections.abc import Iterator

T = TypeVar("T")

log = logging.getLogger(__name__)

# RFC 4253 compliant chunk size, also used for object-store streaming
CHUNK_SIZE = 32768


class CancelToken:
    """One-shot cancellation signal shared between a caller and a worker.

    A token is created fresh for every operation. Once cancelled it stays
    cancelled; callbacks registered with :meth:`on_cancel` run exactly once.
    """

    __slots__ = ("_callbacks", "_event", "_lock")

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Signal cancellation. Idempotent."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for cb in callbacks:
            try:
                cb()
            except Exception:  # pragma: no cover -- callbacks are internal
                log.exception("cancel callback failed")

    def on_cancel(self, cb: Callable[[], None]) -> Callable[[], None]:
        """Run ``cb`` on cancellation (immediately if already cancelled).

        :returns: A function that unregisters the callback.
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(cb)

                def _remove() -> None:
                    with self._lock:
                        if cb in self._callbacks:
                            self._callbacks.remove(cb)

                return _remove
        cb()
        return lambda: None

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or ``timeout`` elapses; return ``cancelled``."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self, path: str | None = None) -> None:
        """:raises Cancelled: If the token has been cancelled."""
        if self._event.is_set():
            raise Cancelled(path=path)

    def call(
        self,
        fn: Callable[..., T],
        *args: Any,
        discard: Callable[[T], None] | None = None,
        **kwargs: Any,
    ) -> T:
        """Run a blocking call so that cancellation returns promptly.

        ``fn`` runs on a helper thread. When the token is cancelled first,
        :class:`Cancelled` is raised right away. A late error of ``fn`` is
        dropped; a late result is handed to ``discard`` (on the helper thread)
        so that handles and partial objects it represents can be released.

        :raises Cancelled: If the token is cancelled before ``fn`` finishes.
        """
        self.raise_if_cancelled()
        future: Future[T] = Future()
        wake = threading.Event()
        state = threading.Lock()
        abandoned = False

        def _run() -> None:
            if not future.set_running_or_notify_cancel():  # pragma: no cover
                return
            try:
                result = fn(*args, **kwargs)
            except BaseException as exc:
                with state:
                    if not abandoned:
                        future.set_exception(exc)
                return
            with state:
                if not abandoned:
                    future.set_result(result)
                    return
            if discard is not None:
                try:
                    discard(result)
                except Exception:
                    log.exception("releasing late result of %r failed", fn)

        future.add_done_callback(lambda _f: wake.set())
        remove = self.on_cancel(wake.set)
        threading.Thread(target=_run, name="remote-nav-call", daemon=True).start()
        try:
            wake.wait()
        finally:
            remove()
        with state:
            if not future.done():
                abandoned = True
        if abandoned:
            raise Cancelled()
        return future.result()

    def __repr__(self) -> str:
        return f"CancelToken(cancelled={self.cancelled})"


def ensure_token(token: CancelToken | None) -> CancelToken:
    """Return ``token`` or a fresh, never-cancelled token."""
    return token if token is not None else CancelToken()


def iter_chunks(source: BinaryIO, token: CancelToken, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """Yield chunks of ``source``, checking ``token`` before every read.

    :raises Cancelled: As soon as the token is cancelled.
    """
    while True:
        token.raise_if_cancelled()
        chunk = source.read(chunk_size)
        if not chunk:
            return
        yield chunk


def copy_stream(source: BinaryIO, sink: BinaryIO, token: CancelToken, chunk_size: int = CHUNK_SIZE) -> int:
    """Copy ``source`` into ``sink`` chunk by chunk without buffering it whole.

    :returns: Number of bytes copied.
    :raises Cancelled: If the token is cancelled mid-copy.
    """
    copied = 0
    for chunk in iter_chunks(source, token, chunk_size):
        sink.write(chunk)
        copied += len(chunk)
    return copied
