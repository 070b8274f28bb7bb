"""Cursor-driven pagination over ``Provider.list_page``."""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING

from remote_nav._cancel import ensure_token
from remote_nav._errors import Cancelled

if TYPE_CHECKING:
    from collections.abc import Iterator

    from remote_nav._cancel import CancelToken
    from remote_nav._models import Entry
    from remote_nav._provider import ListPage, Provider

log = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class PageResult:
    """Outcome of a continuation loop.

    :param entries: Entries of every page fetched, in call order.
    :param pages: Number of pages fetched successfully.
    :param error: The error that stopped the loop, if any.
    :param cancelled: ``True`` if the loop stopped because of cancellation.
    :param cursor: Cursor the loop stopped at (``""`` once exhausted).
    """

    entries: list[Entry]
    pages: int = 0
    error: BaseException | None = None
    cancelled: bool = False
    cursor: str = ""

    @property
    def exhausted(self) -> bool:
        return self.error is None and not self.cancelled and self.cursor == ""


def iter_pages(
    provider: Provider,
    path: str,
    cursor: str = "",
    *,
    token: CancelToken | None = None,
) -> Iterator[ListPage]:
    """Lazily yield pages of ``path`` starting at ``cursor``.

    The sequence ends after the first page whose ``next_cursor`` is empty.
    Restart it from any point by passing the last cursor seen.

    :raises Cancelled: If ``token`` is cancelled between or during calls.
    """
    token = ensure_token(token)
    while True:
        token.raise_if_cancelled(path)
        log.debug("list prefix=%r marker=%r", path, cursor)
        page = provider.list_page(path, cursor, token=token)
        yield page
        cursor = page.next_cursor
        if not cursor:
            return


def collect_remaining(
    provider: Provider,
    path: str,
    cursor: str,
    *,
    token: CancelToken | None = None,
) -> PageResult:
    """Fetch every page after the first one and accumulate the entries.

    ``cursor`` is the ``next_cursor`` of the page already shown; an empty
    cursor means there is nothing left and no call is made. The loop stops at
    exhaustion, at the first error or on cancellation. It never raises:
    entries accumulated before an error are kept in the result.
    """
    entries: list[Entry] = []
    pages = 0
    if not cursor:
        return PageResult(entries)
    log.debug("more list prefix=%r marker=%r", path, cursor)
    try:
        for page in iter_pages(provider, path, cursor, token=token):
            entries.extend(page.entries)
            pages += 1
            cursor = page.next_cursor
    except Cancelled as exc:
        log.debug("more list cancelled prefix=%r marker=%r", path, cursor)
        return PageResult(entries, pages, error=exc, cancelled=True, cursor=cursor)
    except Exception as exc:
        log.error("more list failed prefix=%r marker=%r: %s", path, cursor, exc)
        return PageResult(entries, pages, error=exc, cursor=cursor)
    return PageResult(entries, pages)
