"""Immutable entry model shared by every provider."""

from __future__ import annotations

import dataclasses
import enum
from datetime import datetime, timezone

SEPARATOR = "/"

ZERO_TIME = datetime.min.replace(tzinfo=timezone.utc)
"""Timestamp of entries synthesized without backend metadata (e.g. common prefixes)."""

_UNITS = (
    ("E", 1 << 60),
    ("P", 1 << 50),
    ("T", 1 << 40),
    ("G", 1 << 30),
    ("M", 1 << 20),
    ("K", 1 << 10),
)


def format_size(size: int) -> str:
    """Render a byte count in short human form (``100B``, ``1.5K``, ``2G``)."""
    for unit, factor in _UNITS:
        if size >= factor:
            text = f"{size / factor:.1f}"
            if text.endswith(".0"):
                text = text[:-2]
            return text + unit
    return f"{size}B"


class EntryKind(enum.Enum):
    """Kind of a listed entry."""

    REGULAR = "regular"
    DIRECTORY = "directory"


@dataclasses.dataclass(frozen=True, eq=False)
class Entry:
    """Immutable description of one remote file or directory.

    Entries compare by identity: two listings may legitimately contain the
    same name twice, and the owning sequence position is what identifies them.

    :param name: Display name relative to the listed path. Directory names
        always end with ``/``.
    :param kind: Regular file or directory.
    :param size: Size in bytes (``0`` for directories).
    :param modified_at: Last modification time, ``ZERO_TIME`` when unknown.
    :param content_type: Optional MIME type.
    :raises ValueError: If ``kind`` and the trailing separator disagree.
    """

    name: str
    kind: EntryKind = EntryKind.REGULAR
    size: int = 0
    modified_at: datetime = ZERO_TIME
    content_type: str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("entry name must be non-empty")
        if (self.kind is EntryKind.DIRECTORY) != self.name.endswith(SEPARATOR):
            raise ValueError(f"directory entries, and only those, end with {SEPARATOR!r}: {self.name!r}")

    @classmethod
    def file(
        cls,
        name: str,
        size: int,
        modified_at: datetime,
        content_type: str | None = None,
    ) -> Entry:
        """Build a regular-file entry."""
        return cls(name=name, kind=EntryKind.REGULAR, size=size, modified_at=modified_at, content_type=content_type)

    @classmethod
    def directory(cls, name: str, modified_at: datetime = ZERO_TIME) -> Entry:
        """Build a directory entry, appending the separator when missing."""
        if not name.endswith(SEPARATOR):
            name += SEPARATOR
        return cls(name=name, kind=EntryKind.DIRECTORY, modified_at=modified_at)

    @classmethod
    def placeholder(cls, name: str) -> Entry:
        """Entry shown for a freshly uploaded file until the next refresh."""
        return cls.file(name, 1, datetime.now(tz=timezone.utc))

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    def info(self) -> str:
        """Short ``time size`` summary for a status line."""
        return f"{self.modified_at:%Y-%m-%d %H:%M:%S} {format_size(self.size):>8}"

    def __str__(self) -> str:
        return f"{self.info()} {self.name}"
