"""Provider abstract base class — the storage contract every backend satisfies."""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, BinaryIO, NamedTuple

if TYPE_CHECKING:
    from types import TracebackType

    from remote_nav._cancel import CancelToken
    from remote_nav._models import Entry


class ListPage(NamedTuple):
    """One page of a directory listing.

    :param entries: Entries of this page, directories first.
    :param next_cursor: Cursor for the following page; ``""`` once exhausted.
    """

    entries: list[Entry]
    next_cursor: str = ""


class Provider(abc.ABC):
    """Abstract base class for all storage providers.

    Every long-running method accepts an optional ``token``; cancelling it
    makes the call raise ``Cancelled`` promptly instead of returning a partial
    result. Backend-native exceptions must never leak unmapped; they are
    re-raised as ``remote_nav`` errors chained to the native cause.
    """

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Unique identifier for this backend type (e.g. ``'s3'``, ``'sftp'``)."""

    @property
    def home(self) -> str:
        """Path the navigator starts at. ``""`` means the configured root."""
        return ""

    @abc.abstractmethod
    def list_page(self, path: str, cursor: str = "", *, token: CancelToken | None = None) -> ListPage:
        """List one page of the directory ``path``.

        ``cursor == ""`` requests the first page. Calling again with the
        returned ``next_cursor`` yields the following page until
        ``next_cursor`` comes back empty.

        :raises NotFound: If ``path`` does not exist.
        :raises Cancelled: If ``token`` is cancelled during the call.
        """

    @abc.abstractmethod
    def upload(
        self,
        source: BinaryIO,
        key: str,
        content_type: str | None = None,
        *,
        token: CancelToken | None = None,
    ) -> None:
        """Stream a seekable binary ``source`` to ``key``.

        Implementations may seek and re-read the source (e.g. for checksums).

        :raises Cancelled: If ``token`` is cancelled; no partial object remains.
        """

    @abc.abstractmethod
    def download(self, sink: BinaryIO, key: str, *, token: CancelToken | None = None) -> None:
        """Stream the content of ``key`` into ``sink`` without buffering it whole.

        :raises NotFound: If ``key`` does not exist.
        """

    @abc.abstractmethod
    def delete(self, key: str, *, token: CancelToken | None = None) -> None:
        """Delete the file or object ``key``.

        :raises NotFound: If the backend reports ``key`` missing.
        """

    @abc.abstractmethod
    def stat(self, key: str, *, token: CancelToken | None = None) -> Entry:
        """Return metadata for ``key``.

        :raises NotFound: If ``key`` does not exist.
        """

    def close(self, *, token: CancelToken | None = None) -> None:  # noqa: B027
        """Release backend session resources. Idempotent; default is a no-op."""

    def __enter__(self) -> Provider:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, home={self.home!r})"
