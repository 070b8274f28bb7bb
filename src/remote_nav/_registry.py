"""Provider registry and session lifecycle."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from remote_nav._cancel import ensure_token
from remote_nav._errors import BackendUnavailable, RemoteNavError
from remote_nav._navigator import Navigator
from remote_nav._path import normalize_dir

if TYPE_CHECKING:
    from types import TracebackType

    from remote_nav._cancel import CancelToken
    from remote_nav._config import BackendConfig, SessionConfig
    from remote_nav._navigator import Operation
    from remote_nav._provider import Provider

log = logging.getLogger(__name__)

# Global provider factory registry: maps type strings to provider classes.
_PROVIDER_FACTORIES: dict[str, Callable[..., Provider]] = {}


def register_provider(type_name: str, factory: Callable[..., Provider]) -> None:
    """Register a provider class (or factory) for a given type string.

    :param type_name: The type identifier (e.g. ``"s3"``).
    :param factory: Called with the config options as keyword arguments.
    """
    _PROVIDER_FACTORIES[type_name] = factory


def _register_builtin_providers() -> None:
    """Register the built-in providers whose dependencies are importable."""
    from remote_nav.backends import _stub

    _PROVIDER_FACTORIES.setdefault("stub", _stub.StubProvider)
    try:
        from remote_nav.backends._s3 import S3Provider
    except ImportError:  # pragma: no cover
        pass
    else:
        _PROVIDER_FACTORIES.setdefault("s3", S3Provider)
    try:
        from remote_nav.backends._sftp import SFTPProvider
    except ImportError:  # pragma: no cover
        pass
    else:
        _PROVIDER_FACTORIES.setdefault("sftp", SFTPProvider)


def create_provider(config: BackendConfig) -> Provider:
    """Instantiate the provider described by ``config``. No network access.

    :raises ValueError: If the type is unknown or the options do not fit.
    """
    _register_builtin_providers()
    if config.type not in _PROVIDER_FACTORIES:
        raise ValueError(
            f"Unknown provider type '{config.type}'. Registered types: {sorted(_PROVIDER_FACTORIES.keys())}"
        )
    factory = _PROVIDER_FACTORIES[config.type]
    try:
        return factory(**config.options)
    except TypeError as exc:
        raise ValueError(
            f"Invalid options for provider type {config.type!r}: {exc}. "
            f"Provided options: {sorted(config.options.keys())}"
        ) from exc


class Session:
    """Binds one provider to one navigator for the lifetime of a connection.

    :param provider: The provider this session owns; closed with the session.
    :param on_change: Forwarded to the navigator.
    """

    def __init__(self, provider: Provider, *, on_change: Callable[[Navigator], Any] | None = None) -> None:
        self._provider = provider
        self._on_change = on_change
        self._navigator = Navigator(provider, on_change=on_change)
        self._closed = False

    def __repr__(self) -> str:
        return f"Session(provider={self._provider!r}, closed={self._closed})"

    @property
    def provider(self) -> Provider:
        return self._provider

    @property
    def navigator(self) -> Navigator:
        return self._navigator

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self, *, token: CancelToken | None = None) -> Operation:
        """Connect and list the provider's home.

        The first page is fetched before this returns, so connection and
        authentication problems surface here; the remaining pages continue in
        the background on the returned operation.

        :raises BackendUnavailable: If the backend cannot be reached.
        :raises RemoteNavError: If the first listing fails.
        """
        if self._closed:
            raise RemoteNavError("session is closed", backend=self._provider.name)
        token = ensure_token(token)
        connect = getattr(self._provider, "connect", None)
        try:
            if callable(connect):
                connect(token=token)
            home = normalize_dir(self._provider.home)
            page = self._provider.list_page(home, "", token=token)
        except RemoteNavError:
            raise
        except Exception as exc:
            raise BackendUnavailable(str(exc), backend=self._provider.name) from exc
        log.info("list file success backend=%s pwd=%r", self._provider.name, home)
        return self._navigator.open_listing(home, page)

    def switch(self, provider: Provider) -> None:
        """Replace the bound provider; the old one is cancelled and closed."""
        self._shutdown()
        self._provider = provider
        self._navigator = Navigator(provider, on_change=self._on_change)
        self._closed = False

    def _shutdown(self) -> None:
        for op in self._navigator.cancel_all():
            op.wait(timeout=5)
        self._provider.close()

    def close(self) -> None:
        """Cancel live operations and close the provider. Idempotent."""
        if self._closed:
            return
        self._closed = True
        log.info("exit session backend=%s pwd=%r", self._provider.name, self._navigator.path)
        self._shutdown()

    def __enter__(self) -> Session:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


def open_session(
    config: SessionConfig,
    name: str,
    *,
    on_change: Callable[[Navigator], Any] | None = None,
    token: CancelToken | None = None,
) -> Session:
    """Create the provider configured under ``name`` and open a session on it.

    The provider is closed again if the session cannot be opened.

    :raises KeyError: If ``name`` is not configured.
    :raises ValueError: If the config is invalid.
    :raises BackendUnavailable: If the backend cannot be reached.
    """
    config.validate()
    provider = create_provider(config.get(name))
    session = Session(provider, on_change=on_change)
    try:
        session.open(token=token)
    except BaseException as exc:
        log.warning("init provider failed backend=%s: %s", name, exc)
        session.close()
        raise
    return session
