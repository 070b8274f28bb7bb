"""Tests for directory-path helpers."""

from __future__ import annotations

import pytest

from remote_nav import _path
from remote_nav._errors import InvalidPath


class TestNormalizeDir:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("", ""), ("a", "a/"), ("a/", "a/"), ("/home/u", "/home/u/"), ("/", "/")],
    )
    def test_normalize(self, raw: str, expected: str) -> None:
        assert _path.normalize_dir(raw) == expected

    def test_null_byte_rejected(self) -> None:
        with pytest.raises(InvalidPath):
            _path.normalize_dir("a\0b")


class TestParent:
    """Back navigation drops the last component."""

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("a/b/", "a/"),
            ("a/", ""),
            ("a/b/c/", "a/b/"),
            ("/home/u/", "/home/"),
            ("/home/", "/"),
        ],
    )
    def test_parent(self, path: str, expected: str) -> None:
        assert _path.parent(path) == expected

    @pytest.mark.parametrize("path", ["", "/"])
    def test_is_root(self, path: str) -> None:
        assert _path.is_root(path)

    def test_not_root(self) -> None:
        assert not _path.is_root("a/")


class TestChildAndKey:
    def test_child(self) -> None:
        assert _path.child("a/", "b/") == "a/b/"
        assert _path.child("", "docs") == "docs/"

    def test_key(self) -> None:
        assert _path.key("a/", "f.txt") == "a/f.txt"
        assert _path.key("", "f.txt") == "f.txt"

    def test_key_rejects_directory(self) -> None:
        with pytest.raises(InvalidPath):
            _path.key("a/", "sub/")

    def test_key_rejects_empty(self) -> None:
        with pytest.raises(InvalidPath):
            _path.key("a/", "")


class TestDirnameBasename:
    @pytest.mark.parametrize(
        ("key", "dirname", "basename"),
        [
            ("f.txt", "", "f.txt"),
            ("a/f.txt", "a/", "f.txt"),
            ("/home/u/f.txt", "/home/u/", "f.txt"),
            ("a/sub/", "a/sub/", "sub"),
        ],
    )
    def test_split(self, key: str, dirname: str, basename: str) -> None:
        assert _path.dirname(key) == dirname
        assert _path.basename(key) == basename


class TestSplitBucket:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("photos", ("photos", "")),
            ("photos/2024", ("photos", "2024/")),
            ("photos/2024/jan/", ("photos", "2024/jan/")),
            (" b/p ", ("b", "p/")),
        ],
    )
    def test_split(self, value: str, expected: tuple[str, str]) -> None:
        assert _path.split_bucket(value) == expected
