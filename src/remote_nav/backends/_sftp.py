"""SFTP provider using pure paramiko."""

from __future__ import annotations

import contextlib
import errno
import logging
import os
import posixpath
import re
import stat
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from io import StringIO
from typing import TYPE_CHECKING, Any, BinaryIO

from remote_nav._cancel import copy_stream, ensure_token
from remote_nav._errors import (
    BackendUnavailable,
    NotFound,
    PermissionDenied,
    RemoteNavError,
)
from remote_nav._models import SEPARATOR, ZERO_TIME, Entry
from remote_nav._path import normalize_dir
from remote_nav._provider import ListPage, Provider

if TYPE_CHECKING:
    from collections.abc import Iterator

    from remote_nav._cancel import CancelToken

log = logging.getLogger(__name__)

DEFAULT_PORT = 22


# region: host key policy


class HostKeyPolicy(Enum):
    """Controls how unknown remote host keys are handled.

    :cvar STRICT: Reject unknown hosts (production default).
    :cvar TRUST_ON_FIRST_USE: Save on first connect, verify after.
    :cvar AUTO_ADD: Accept any key (dev/testing ONLY).
    """

    STRICT = "strict"
    TRUST_ON_FIRST_USE = "tofu"
    AUTO_ADD = "auto"


# endregion

# region: PEM handling

_NON_BASE64_PATTERN = re.compile(r"[^A-Za-z\d+/=]")
_PEM_SEPARATOR = "-----"


def _sanitize_pem(pem_content: str) -> str:
    """Normalize PEM line separators mangled by single-line secret stores."""
    parts = pem_content.split(_PEM_SEPARATOR)
    if len(parts) != 5:
        raise ValueError("Invalid PEM structure (expected 5 parts).")

    payload = parts[2]
    non_base64_chars = list(set(re.findall(_NON_BASE64_PATTERN, payload)))
    if len(non_base64_chars) != 1:
        raise ValueError(f"Unexpected PEM characters: {non_base64_chars}")

    parts[2] = payload.replace(non_base64_chars[0], "\n")
    return _PEM_SEPARATOR.join(parts)


def load_private_key(source: str, *, from_file: bool = False) -> Any:  # pragma: no cover
    """Load an RSA private key from a file path or a PEM string.

    Args:
        source: File path (if from_file=True) or PEM-encoded string.
        from_file: If True, treat source as a file path.

    Returns:
        paramiko.RSAKey
    """
    import paramiko

    if from_file:
        return paramiko.RSAKey.from_private_key_file(source)
    with StringIO(_sanitize_pem(source)) as buf:
        return paramiko.RSAKey.from_private_key(buf)


# endregion

# region: host key helpers


def _load_host_keys_from_string(ssh: Any, keys_content: str) -> None:
    """Parse a known_hosts-formatted string into an SSHClient's host keys."""
    import tempfile

    with tempfile.NamedTemporaryFile(mode="w", suffix=".known_hosts", delete=True) as tmp:
        tmp.write(keys_content)
        tmp.flush()
        ssh.load_host_keys(tmp.name)


def split_server(server: str, port: int = DEFAULT_PORT) -> tuple[str, int]:
    """Split ``host[:port]`` (or ``[v6addr]:port``) into host and port.

    :raises ValueError: If the port is not a number.
    """
    server = server.strip()
    if server.startswith("["):
        addr, _, rest = server[1:].partition("]")
        return addr, int(rest[1:]) if rest.startswith(":") else port
    if server.count(":") == 1:
        addr, _, raw_port = server.partition(":")
        return addr, int(raw_port)
    return server, port


# endregion


class SFTPProvider(Provider):
    """Remote filesystem provider over SFTP (paramiko).

    Directories are real, so a listing is a single page. The start directory
    is resolved to an absolute path when the connection is established and is
    used whenever an empty path is listed.

    :param host: SFTP server hostname, optionally ``host:port``.
    :param port: SSH port (default: 22, overridden by ``host:port``).
    :param username: SSH username.
    :param password: SSH password (also answers keyboard-interactive prompts).
    :param pkey: paramiko.PKey instance for key-based auth.
    :param directory: Start directory (default: the server's working directory).
    :param host_key_policy: Host key verification policy.
    :param known_host_keys: Known hosts string (code-level override).
    :param host_keys_path: Path to known_hosts file (default: ``~/.ssh/known_hosts``).
    :param timeout: SSH connection timeout in seconds.
    :param connect_retries: Connection attempts before giving up.
    :param connect_kwargs: Extra kwargs passed to ``SSHClient.connect()``.
    """

    def __init__(
        self,
        host: str,
        *,
        port: int = DEFAULT_PORT,
        username: str | None = None,
        password: str | None = None,
        pkey: Any = None,
        directory: str = "",
        host_key_policy: HostKeyPolicy = HostKeyPolicy.STRICT,
        known_host_keys: str | None = None,
        host_keys_path: str | None = None,
        timeout: int = 10,
        connect_retries: int = 3,
        connect_kwargs: dict[str, Any] | None = None,
    ) -> None:
        if not host or not host.strip():
            raise ValueError("host must be a non-empty string")
        self._host, self._port = split_server(host, port)
        self._username = username
        self._password = password or None
        self._pkey = pkey
        self._directory = directory
        self._host_key_policy = HostKeyPolicy(host_key_policy)
        self._host_keys_path = host_keys_path
        self._timeout = timeout
        self._connect_retries = max(1, connect_retries)
        self._connect_kwargs = connect_kwargs or {}
        self._resolved_host_keys = known_host_keys or None

        self._lock = threading.Lock()
        self._ssh_client: Any = None
        self._sftp_client: Any = None
        self._pwd = ""

    @property
    def name(self) -> str:
        return "sftp"

    @property
    def home(self) -> str:
        """Resolved working directory once connected, else the configured one."""
        return self._pwd or normalize_dir(self._directory)

    @property
    def server(self) -> str:
        return f"{self._host}:{self._port}"

    # region: lazy connection

    def connect(self, *, token: CancelToken | None = None) -> str:
        """Connect now and return the resolved working directory.

        :raises BackendUnavailable: If the server cannot be reached or
            authentication fails.
        :raises NotFound: If the start directory does not exist.
        """
        token = ensure_token(token)
        token.call(self._ensure_connected)
        return self.home

    def _ensure_connected(self) -> None:
        with self._lock:
            if not self._is_connected():
                self._connect()

    def _open_channel(self) -> Any:
        """Open a fresh SFTP channel on the shared SSH transport.

        An ``SFTPClient`` serves one request stream at a time, so every
        operation gets its own channel and closes it when done. Connects (or
        reconnects a stale transport) first.
        """
        with self._lock:
            if not self._is_connected():
                self._connect()
            return self._ssh_client.open_sftp()

    @contextmanager
    def _channel(self) -> Iterator[Any]:
        sftp = self._open_channel()
        try:
            yield sftp
        finally:
            sftp.close()

    def _connect(self) -> None:
        """Establish SSH + SFTP connection with tenacity retry, resolve the working directory."""
        import paramiko
        from tenacity import (
            before_sleep_log,
            retry,
            retry_if_exception_type,
            retry_if_not_exception_type,
            stop_after_attempt,
            wait_exponential,
        )

        # Close any existing stale connection
        self._close_clients()

        ssh = self._create_ssh_client()

        @retry(
            # wrong credentials will not fix themselves
            retry=retry_if_exception_type((paramiko.SSHException, OSError, EOFError))
            & retry_if_not_exception_type(paramiko.AuthenticationException),
            stop=stop_after_attempt(self._connect_retries),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            before_sleep=before_sleep_log(log, logging.WARNING),  # type: ignore[arg-type,unused-ignore]
            reraise=True,
        )
        def _do_connect() -> None:
            log.info("Connecting to %s:%d as %s", self._host, self._port, self._username)
            ssh.connect(
                hostname=self._host,
                port=self._port,
                username=self._username,
                password=self._password,
                pkey=self._pkey,
                timeout=self._timeout,
                banner_timeout=self._timeout,
                auth_timeout=self._timeout,
                channel_timeout=self._timeout,
                **self._connect_kwargs,
            )

        try:
            _do_connect()
            sftp = ssh.open_sftp()
        except paramiko.AuthenticationException as exc:
            ssh.close()
            raise BackendUnavailable(f"auth {self.server} error", backend=self.name) from exc
        except (paramiko.SSHException, OSError, EOFError) as exc:
            ssh.close()
            raise BackendUnavailable(f"dial {self.server} error", backend=self.name) from exc

        self._ssh_client = ssh
        self._sftp_client = sftp
        with self._errors(self._directory):
            self._pwd = normalize_dir(sftp.normalize(self._directory or "."))
        log.info("SFTP connection established, pwd=%s", self._pwd)

    def _create_ssh_client(self) -> Any:
        """Create and configure an SSHClient with host key policy."""
        import paramiko

        ssh = paramiko.SSHClient()

        # Load known host keys from the given string or the file fallback
        if self._resolved_host_keys:
            _load_host_keys_from_string(ssh, self._resolved_host_keys)
        elif self._host_key_policy in (
            HostKeyPolicy.STRICT,
            HostKeyPolicy.TRUST_ON_FIRST_USE,
        ):
            keys_path = self._host_keys_path or os.path.expanduser("~/.ssh/known_hosts")
            if os.path.isfile(keys_path):
                ssh.load_host_keys(keys_path)

        if self._host_key_policy == HostKeyPolicy.TRUST_ON_FIRST_USE:  # pragma: no cover
            ssh.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        elif self._host_key_policy == HostKeyPolicy.AUTO_ADD:
            log.warning("AUTO_ADD host key policy -- NOT safe for production.")
            ssh.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        return ssh

    def _is_connected(self) -> bool:
        """Check if the SFTP connection is alive."""
        if self._sftp_client is None or self._ssh_client is None:
            return False
        transport = self._ssh_client.get_transport()
        return transport is not None and transport.is_active()

    def _close_clients(self) -> None:
        """Close SFTP and SSH clients if open."""
        if self._sftp_client is not None:
            with contextlib.suppress(Exception):
                self._sftp_client.close()
            self._sftp_client = None
        if self._ssh_client is not None:
            with contextlib.suppress(Exception):
                self._ssh_client.close()
            self._ssh_client = None

    # endregion

    # region: path helpers

    def _sftp_path(self, path: str) -> str:
        """Absolute remote path; relative paths resolve against the working directory."""
        if not path:
            return self._pwd.rstrip(SEPARATOR) or SEPARATOR
        full = path if path.startswith(SEPARATOR) else posixpath.join(self._pwd, path)
        return full.rstrip(SEPARATOR) or SEPARATOR

    def _ensure_parent_dirs(self, sftp: Any, sftp_path: str) -> None:
        """Create parent directories for the given SFTP path if they don't exist."""
        parent = posixpath.dirname(sftp_path)
        if not parent or parent == SEPARATOR:
            return
        current = ""
        for part in parent.split(SEPARATOR):
            if not part:
                continue
            current = f"{current}/{part}"
            try:
                sftp.stat(current)
            except OSError:
                with contextlib.suppress(OSError):
                    sftp.mkdir(current)

    # endregion

    # region: error mapping

    @contextmanager
    def _errors(self, path: str = "") -> Iterator[None]:
        """Map paramiko/OS exceptions to remote_nav errors, keeping the cause."""
        import paramiko

        try:
            yield
        except RemoteNavError:
            raise
        except FileNotFoundError as exc:
            raise NotFound(f"Not found: {path}", path=path, backend=self.name) from exc
        except PermissionError as exc:
            raise PermissionDenied(f"Permission denied: {path}", path=path, backend=self.name) from exc
        except (paramiko.SSHException, paramiko.SFTPError) as exc:
            raise BackendUnavailable(str(exc), path=path, backend=self.name) from exc
        except (EOFError, ConnectionError, TimeoutError) as exc:
            raise BackendUnavailable(f"connection to {self.server} lost", path=path, backend=self.name) from exc
        except OSError as exc:
            code = getattr(exc, "errno", None)
            if code == errno.ENOENT:
                raise NotFound(f"Not found: {path}", path=path, backend=self.name) from exc
            if code == errno.EACCES:  # pragma: no cover -- requires server-side perm setup
                raise PermissionDenied(f"Permission denied: {path}", path=path, backend=self.name) from exc
            raise RemoteNavError(f"{exc}", path=path, backend=self.name) from exc

    # endregion

    # region: helpers

    @staticmethod
    def _attrs_to_entry(name: str, attrs: Any) -> Entry:
        """Convert paramiko SFTPAttributes to an Entry."""
        mtime = attrs.st_mtime
        modified = datetime.fromtimestamp(mtime, tz=timezone.utc) if mtime is not None else ZERO_TIME
        if stat.S_ISDIR(attrs.st_mode or 0):
            return Entry.directory(name, modified)
        return Entry.file(name, int(attrs.st_size or 0), modified)

    def _listdir(self, path: str) -> list[Any]:
        with self._channel() as sftp:
            return list(sftp.listdir_attr(self._sftp_path(path)))

    def _stat(self, key: str) -> Any:
        with self._channel() as sftp:
            return sftp.stat(self._sftp_path(key))

    def _remove(self, key: str) -> None:
        with self._channel() as sftp:
            sftp.remove(self._sftp_path(key))

    def _open_for_read(self, key: str) -> tuple[Any, Any]:
        """Open ``key`` for reading on its own channel; returns ``(channel, file)``."""
        sftp = self._open_channel()
        try:
            return sftp, sftp.open(self._sftp_path(key), "rb")
        except BaseException:
            sftp.close()
            raise

    def _open_for_write(self, key: str) -> tuple[Any, Any, str]:
        """Create parents and open ``key`` for writing; returns ``(channel, file, path)``."""
        sftp = self._open_channel()
        try:
            sftp_path = self._sftp_path(key)
            self._ensure_parent_dirs(sftp, sftp_path)
            return sftp, sftp.open(sftp_path, "wb"), sftp_path
        except BaseException:
            sftp.close()
            raise

    @staticmethod
    def _release(opened: tuple[Any, Any]) -> None:
        """Close a read handle whose caller was cancelled while it opened."""
        sftp, f = opened
        try:
            f.close()
        finally:
            sftp.close()

    @staticmethod
    def _release_partial(opened: tuple[Any, Any, str]) -> None:
        """Close and remove the empty file of an upload cancelled while it opened."""
        sftp, f, sftp_path = opened
        try:
            f.close()
            sftp.remove(sftp_path)
        finally:
            sftp.close()

    # endregion

    # region: listing

    def list_page(self, path: str, cursor: str = "", *, token: CancelToken | None = None) -> ListPage:
        token = ensure_token(token)
        log.debug("sftp list prefix=%r marker=%r", path, cursor)
        with self._errors(path):
            attrs = token.call(self._listdir, path)
        entries = [self._attrs_to_entry(a.filename, a) for a in attrs if a.filename not in (".", "..")]
        return ListPage(entries, "")

    # endregion

    # region: transfers

    def upload(
        self,
        source: BinaryIO,
        key: str,
        content_type: str | None = None,
        *,
        token: CancelToken | None = None,
    ) -> None:
        import paramiko

        token = ensure_token(token)
        with self._errors(key):
            sftp, f, sftp_path = token.call(self._open_for_write, key, discard=self._release_partial)
            try:
                with f:
                    f.set_pipelined(True)
                    copy_stream(source, f, token)
            except BaseException:
                with contextlib.suppress(OSError, EOFError, paramiko.SSHException, paramiko.SFTPError):
                    sftp.remove(sftp_path)
                raise
            finally:
                sftp.close()

    def download(self, sink: BinaryIO, key: str, *, token: CancelToken | None = None) -> None:
        token = ensure_token(token)
        with self._errors(key):
            sftp, f = token.call(self._open_for_read, key, discard=self._release)
            try:
                with f:
                    copy_stream(f, sink, token)
            finally:
                sftp.close()

    # endregion

    # region: metadata and delete

    def delete(self, key: str, *, token: CancelToken | None = None) -> None:
        token = ensure_token(token)
        with self._errors(key):
            token.call(self._remove, key)

    def stat(self, key: str, *, token: CancelToken | None = None) -> Entry:
        token = ensure_token(token)
        with self._errors(key):
            attrs = token.call(self._stat, key)
        name = posixpath.basename(key.rstrip(SEPARATOR))
        return self._attrs_to_entry(name or SEPARATOR, attrs)

    # endregion

    # region: lifecycle

    def close(self, *, token: CancelToken | None = None) -> None:
        with self._lock:
            self._close_clients()

    # endregion
