"""S3-compatible object storage provider using s3fs."""

from __future__ import annotations

import contextlib
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, BinaryIO

from remote_nav._cancel import copy_stream, ensure_token
from remote_nav._errors import (
    BackendUnavailable,
    NotFound,
    PermissionDenied,
    RemoteNavError,
)
from remote_nav._models import SEPARATOR, ZERO_TIME, Entry
from remote_nav._path import basename, normalize_dir, split_bucket
from remote_nav._provider import ListPage, Provider

if TYPE_CHECKING:
    from collections.abc import Iterator

    from remote_nav._cancel import CancelToken

log = logging.getLogger(__name__)

# Upper bound S3 accepts for MaxKeys
DEFAULT_PAGE_SIZE = 1000


def _close_late(f: Any) -> None:
    """Close a read handle whose caller was cancelled while it opened."""
    f.close()


class S3Provider(Provider):
    """S3-compatible object storage provider using s3fs.

    Directories are emulated with a delimiter listing: keys below the queried
    prefix are grouped at the next ``/`` into common prefixes, which are shown
    as directory entries ahead of the objects of the page.

    :param bucket: Bucket name (required, non-empty).
    :param prefix: Key prefix inside the bucket that acts as the root.
    :param endpoint_url: Custom endpoint URL (e.g. for MinIO).
    :param key: Access key ID. Anonymous access when neither key nor secret is set.
    :param secret: Secret access key.
    :param region_name: Region name.
    :param page_size: Maximum number of keys per listing page.
    :param client_options: Additional options passed to s3fs.
    """

    def __init__(
        self,
        bucket: str,
        *,
        prefix: str = "",
        endpoint_url: str | None = None,
        key: str | None = None,
        secret: str | None = None,
        region_name: str | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        client_options: dict[str, Any] | None = None,
    ) -> None:
        if not bucket or not bucket.strip():
            raise ValueError("bucket must be a non-empty string")
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self._bucket = bucket.strip()
        self._prefix = normalize_dir(prefix.lstrip(SEPARATOR))
        self._endpoint_url = endpoint_url or None
        self._key = key or None
        self._secret = secret or None
        self._region_name = region_name or None
        self._page_size = page_size
        self._client_options = client_options or {}
        self._fs_instance: Any = None

    @classmethod
    def from_bucket_path(cls, bucket_path: str, **kwargs: Any) -> S3Provider:
        """Build from a combined ``bucket/sub/path`` value."""
        bucket, prefix = split_bucket(bucket_path)
        return cls(bucket, prefix=prefix, **kwargs)

    @property
    def name(self) -> str:
        return "s3"

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def prefix(self) -> str:
        return self._prefix

    # region: lazy filesystem

    @property
    def _fs(self) -> Any:
        if self._fs_instance is None:
            import s3fs  # type: ignore[import-untyped]

            opts: dict[str, Any] = dict(self._client_options)
            if self._endpoint_url is not None:
                opts["endpoint_url"] = self._endpoint_url
            if self._key is not None:
                opts["key"] = self._key
            if self._secret is not None:
                opts["secret"] = self._secret
            if self._region_name is not None:
                client_kwargs: dict[str, Any] = opts.setdefault("client_kwargs", {})
                client_kwargs["region_name"] = self._region_name
            opts.setdefault("config_kwargs", {"s3": {"addressing_style": "path"}})
            opts.setdefault("anon", self._key is None and self._secret is None)
            # one filesystem per provider
            opts.setdefault("skip_instance_cache", True)
            self._fs_instance = s3fs.S3FileSystem(**opts)
        return self._fs_instance

    # endregion

    # region: path helpers

    def _full_key(self, key: str) -> str:
        return self._prefix + key.lstrip(SEPARATOR)

    def _s3_path(self, key: str) -> str:
        return f"{self._bucket}/{self._full_key(key)}"

    # endregion

    # region: error mapping

    @contextmanager
    def _errors(self, path: str = "") -> Iterator[None]:
        """Map s3fs/botocore exceptions to remote_nav errors, keeping the cause."""
        try:
            yield
        except RemoteNavError:
            raise
        except FileNotFoundError as exc:
            raise NotFound(f"Not found: {path}", path=path, backend=self.name) from exc
        except PermissionError as exc:
            raise PermissionDenied(f"Permission denied: {path}", path=path, backend=self.name) from exc
        except Exception as exc:
            raise self._classify_error(exc, path) from exc

    def _classify_error(self, exc: Exception, path: str) -> RemoteNavError:
        """Classify an unknown exception into a remote_nav error type."""
        msg = str(exc).lower()
        if "404" in msg or "nosuchkey" in msg or "nosuchbucket" in msg or "not found" in msg:
            return NotFound(f"Not found: {path}", path=path, backend=self.name)
        if "403" in msg or "accessdenied" in msg or "access denied" in msg:
            return PermissionDenied(f"Permission denied: {path}", path=path, backend=self.name)
        if any(kw in msg for kw in ("endpoint", "connect", "timeout", "dns", "name or service")):
            return BackendUnavailable(str(exc), path=path, backend=self.name)
        return RemoteNavError(str(exc), path=path, backend=self.name)

    # endregion

    # region: helpers

    @staticmethod
    def _timestamp(value: Any) -> datetime:
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        if value is None:
            return ZERO_TIME
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value

    @staticmethod
    def _strip(name: str, query: str) -> str:
        return name[len(query) :] if query and name.startswith(query) else name

    def _to_page(self, resp: dict[str, Any], query: str) -> ListPage:
        """Translate a ListObjects response into a page relative to ``query``."""
        prefixes = [p["Prefix"] for p in resp.get("CommonPrefixes") or []]
        contents = resp.get("Contents") or []

        entries: list[Entry] = [Entry.directory(self._strip(p, query)) for p in prefixes]
        for obj in contents:
            name = self._strip(obj["Key"], query)
            if not name:
                # zero-byte folder marker of the queried prefix itself
                continue
            if name.endswith(SEPARATOR):
                entries.append(Entry.directory(name, self._timestamp(obj.get("LastModified"))))
                continue
            entries.append(
                Entry.file(
                    name,
                    int(obj.get("Size") or 0),
                    self._timestamp(obj.get("LastModified")),
                )
            )

        return ListPage(entries, self._next_marker(resp, prefixes, contents))

    @staticmethod
    def _next_marker(resp: dict[str, Any], prefixes: list[str], contents: list[dict[str, Any]]) -> str:
        """Cursor of the following page, ``""`` when the listing is complete.

        Falls back to the greatest full key seen on the page when the server
        signals truncation without ``NextMarker``. S3 resumes strictly after
        the marker in key order, so using a trailing common prefix skips
        exactly the keys grouped under it.
        """
        if not resp.get("IsTruncated"):
            return ""
        marker = resp.get("NextMarker") or ""
        if marker:
            return str(marker)
        candidates = [str(contents[-1]["Key"])] if contents else []
        if prefixes:
            candidates.append(prefixes[-1])
        if not candidates:
            log.warning("truncated listing without keys or marker, stopping")
            return ""
        return max(candidates)

    # endregion

    # region: listing

    def list_page(self, path: str, cursor: str = "", *, token: CancelToken | None = None) -> ListPage:
        token = ensure_token(token)
        query = self._full_key(normalize_dir(path))
        params: dict[str, Any] = {
            "Bucket": self._bucket,
            "Delimiter": SEPARATOR,
            "MaxKeys": self._page_size,
        }
        if query:
            params["Prefix"] = query
        if cursor:
            params["Marker"] = cursor
        log.debug("s3 list prefix=%r marker=%r", query, cursor)
        with self._errors(path):
            resp = token.call(self._fs.call_s3, "list_objects", **params)
        return self._to_page(resp, query)

    def list_buckets(self, *, token: CancelToken | None = None) -> list[str]:
        """Names of all buckets visible to the credentials."""
        token = ensure_token(token)
        log.debug("s3 list buckets")
        with self._errors(""):
            resp = token.call(self._fs.call_s3, "list_buckets")
        return [str(b["Name"]) for b in resp.get("Buckets") or []]

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
        token = ensure_token(token)
        s3_path = self._s3_path(key)
        extra: dict[str, Any] = {"ContentType": content_type} if content_type else {}
        with self._errors(key):
            token.raise_if_cancelled(key)
            f = self._fs.open(s3_path, "wb", **extra)
            try:
                copy_stream(source, f, token)
            except BaseException:
                # Abort instead of close(): closing would commit the partial object.
                with contextlib.suppress(Exception):
                    f.discard()
                f.closed = True
                raise
            f.close()
            self._fs.invalidate_cache(s3_path)

    def download(self, sink: BinaryIO, key: str, *, token: CancelToken | None = None) -> None:
        token = ensure_token(token)
        with self._errors(key):
            f = token.call(self._fs.open, self._s3_path(key), "rb", discard=_close_late)
            with f:
                copy_stream(f, sink, token)

    # endregion

    # region: metadata and delete

    def delete(self, key: str, *, token: CancelToken | None = None) -> None:
        token = ensure_token(token)
        s3_path = self._s3_path(key)
        with self._errors(key):
            token.call(self._fs.rm_file, s3_path)
            self._fs.invalidate_cache(s3_path)

    def stat(self, key: str, *, token: CancelToken | None = None) -> Entry:
        token = ensure_token(token)
        with self._errors(key):
            info: dict[str, Any] = token.call(self._fs.info, self._s3_path(key))
        name = basename(key) or key
        if info.get("type") == "directory" or key.endswith(SEPARATOR):
            return Entry.directory(name)
        return Entry.file(
            name,
            int(info.get("size", info.get("Size", 0)) or 0),
            self._timestamp(info.get("LastModified", info.get("last_modified"))),
            content_type=info.get("ContentType"),
        )

    # endregion

    # region: lifecycle

    def close(self, *, token: CancelToken | None = None) -> None:
        # clear_instance_cache() would reach every provider's filesystem
        self._fs_instance = None

    # endregion
