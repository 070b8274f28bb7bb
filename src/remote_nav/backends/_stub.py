"""Placeholder provider for backends that are not implemented yet."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, BinaryIO

from remote_nav._cancel import ensure_token
from remote_nav._errors import NotReady
from remote_nav._path import normalize_dir
from remote_nav._provider import ListPage, Provider

if TYPE_CHECKING:
    from remote_nav._cancel import CancelToken
    from remote_nav._models import Entry

log = logging.getLogger(__name__)


class StubProvider(Provider):
    """Provider whose every operation fails with :class:`NotReady`.

    Lets sessions and navigators run against a backend that exists only as a
    configuration entry. Calls never block and never touch the network.

    :param server: Server address (recorded, not contacted).
    :param username: User name (recorded, not used).
    :param password: Password (not used).
    :param directory: Start directory reported as :attr:`home`.
    """

    def __init__(
        self,
        server: str = "",
        *,
        username: str = "",
        password: str = "",
        directory: str = "",
    ) -> None:
        self._server = server
        self._username = username
        self._directory = normalize_dir(directory)

    @property
    def name(self) -> str:
        return "stub"

    @property
    def home(self) -> str:
        return self._directory

    def _not_ready(self, token: CancelToken | None, path: str) -> NotReady:
        ensure_token(token).raise_if_cancelled(path)
        return NotReady("not ready", path=path, backend=self.name)

    def list_buckets(self, *, token: CancelToken | None = None) -> list[str]:
        log.debug("stub list buckets")
        raise self._not_ready(token, "")

    def list_page(self, path: str, cursor: str = "", *, token: CancelToken | None = None) -> ListPage:
        log.debug("stub list prefix=%r marker=%r", path, cursor)
        raise self._not_ready(token, path)

    def upload(
        self,
        source: BinaryIO,
        key: str,
        content_type: str | None = None,
        *,
        token: CancelToken | None = None,
    ) -> None:
        raise self._not_ready(token, key)

    def download(self, sink: BinaryIO, key: str, *, token: CancelToken | None = None) -> None:
        raise self._not_ready(token, key)

    def delete(self, key: str, *, token: CancelToken | None = None) -> None:
        raise self._not_ready(token, key)

    def stat(self, key: str, *, token: CancelToken | None = None) -> Entry:
        raise self._not_ready(token, key)

    def close(self, *, token: CancelToken | None = None) -> None:
        pass
