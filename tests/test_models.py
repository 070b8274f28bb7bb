"""Tests for the Entry model."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone

import pytest

from remote_nav._models import ZERO_TIME, Entry, EntryKind, format_size

NOW = datetime(2024, 1, 1, 12, 30, 0, tzinfo=timezone.utc)


class TestEntryImmutability:
    def test_frozen(self) -> None:
        e = Entry.file("a.txt", 1, NOW)
        with pytest.raises(dataclasses.FrozenInstanceError):
            e.size = 2  # type: ignore[misc]


class TestEntryKindSuffix:
    """Directory entries, and only those, end with a separator."""

    def test_directory_appends_separator(self) -> None:
        e = Entry.directory("docs")
        assert e.name == "docs/"
        assert e.kind is EntryKind.DIRECTORY
        assert e.is_dir

    def test_directory_keeps_separator(self) -> None:
        assert Entry.directory("docs/").name == "docs/"

    def test_directory_defaults(self) -> None:
        e = Entry.directory("d")
        assert e.size == 0
        assert e.modified_at == ZERO_TIME

    def test_file_with_separator_rejected(self) -> None:
        with pytest.raises(ValueError):
            Entry.file("bad/", 1, NOW)

    def test_directory_kind_without_separator_rejected(self) -> None:
        with pytest.raises(ValueError):
            Entry(name="d", kind=EntryKind.DIRECTORY)

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValueError):
            Entry.file("", 1, NOW)


class TestEntryIdentity:
    """Entries with equal fields stay distinct."""

    def test_equal_fields_not_equal(self) -> None:
        a = Entry.file("dup.txt", 1, NOW)
        b = Entry.file("dup.txt", 1, NOW)
        assert a != b
        assert a == a  # noqa: PLR0124

    def test_hashable(self) -> None:
        a = Entry.file("x", 1, NOW)
        assert len({a, Entry.file("x", 1, NOW)}) == 2


class TestPlaceholder:
    def test_placeholder(self) -> None:
        before = datetime.now(tz=timezone.utc)
        e = Entry.placeholder("new.bin")
        assert e.size == 1
        assert not e.is_dir
        assert e.modified_at >= before


class TestRendering:
    def test_info(self) -> None:
        e = Entry.file("a.txt", 1536, NOW)
        assert e.info() == "2024-01-01 12:30:00     1.5K"

    def test_str_includes_name(self) -> None:
        assert str(Entry.file("a.txt", 100, NOW)).endswith(" a.txt")

    @pytest.mark.parametrize(
        ("size", "expected"),
        [
            (0, "0B"),
            (100, "100B"),
            (1024, "1K"),
            (1536, "1.5K"),
            (5 * 1024 * 1024, "5M"),
            (3 << 30, "3G"),
        ],
    )
    def test_format_size(self, size: int, expected: str) -> None:
        assert format_size(size) == expected
