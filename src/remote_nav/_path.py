"""Directory-path helpers used by the navigator and the providers.

Navigation paths are plain strings relative to a provider's home. ``""``
denotes the configured root; every other directory path ends with ``/``.
"""

from __future__ import annotations

import posixpath

from remote_nav._errors import InvalidPath
from remote_nav._models import SEPARATOR


def _check(raw: str) -> str:
    if "\0" in raw:
        raise InvalidPath("Path contains null byte", path=raw)
    return raw


def normalize_dir(path: str) -> str:
    """Return ``path`` with a trailing separator (``""`` stays ``""``).

    :raises InvalidPath: If the path contains a null byte.
    """
    path = _check(path)
    if path and not path.endswith(SEPARATOR):
        path += SEPARATOR
    return path


def is_root(path: str) -> bool:
    """``True`` for paths that have no parent to navigate back to."""
    return path in ("", SEPARATOR)


def parent(path: str) -> str:
    """Parent directory of a directory path.

    Example: ``parent("a/b/")`` is ``"a/"``, ``parent("a/")`` is ``""`` and
    ``parent("/home/u/")`` is ``"/home/"``.
    """
    head = posixpath.dirname(_check(path).rstrip(SEPARATOR))
    if not head:
        # dirname() has no parent left to report; that is the provider root.
        return "" if not path.startswith(SEPARATOR) else SEPARATOR
    return normalize_dir(head)


def child(path: str, name: str) -> str:
    """Directory path of ``name`` inside ``path``."""
    return normalize_dir(normalize_dir(path) + _check(name))


def key(path: str, name: str) -> str:
    """Key of the regular entry ``name`` inside directory ``path``."""
    name = _check(name)
    if not name or name.endswith(SEPARATOR):
        raise InvalidPath("Key must name a file, not a directory", path=f"{path}{name}")
    return normalize_dir(path) + name


def dirname(key_: str) -> str:
    """Directory path that contains ``key_`` (``""`` for top-level keys)."""
    head, _sep, _name = _check(key_).rpartition(SEPARATOR)
    return head + SEPARATOR if _sep else ""


def basename(key_: str) -> str:
    """Final component of a key."""
    return _check(key_).rstrip(SEPARATOR).rpartition(SEPARATOR)[2]


def split_bucket(value: str) -> tuple[str, str]:
    """Split a ``bucket/sub/path`` form value into bucket and key prefix.

    Example: ``split_bucket("photos/2024")`` returns ``("photos", "2024/")``.
    """
    bucket, _sep, prefix = _check(value).strip().partition(SEPARATOR)
    return bucket, normalize_dir(prefix)
