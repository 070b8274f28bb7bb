"""Tests for the error hierarchy."""

from __future__ import annotations

import pytest

from remote_nav._errors import (
    BackendUnavailable,
    Cancelled,
    InvalidPath,
    NotFound,
    NotReady,
    OperationInProgress,
    PermissionDenied,
    RemoteNavError,
    root_cause,
)


class TestBaseError:
    """RemoteNavError carries optional path and backend."""

    def test_default_attributes(self) -> None:
        e = RemoteNavError("boom")
        assert e.path is None
        assert e.backend is None

    def test_with_attributes(self) -> None:
        e = RemoteNavError("boom", path="a/b.txt", backend="s3")
        assert e.path == "a/b.txt"
        assert e.backend == "s3"

    def test_str_plain(self) -> None:
        assert str(RemoteNavError("boom")) == "boom"

    def test_str_with_context(self) -> None:
        e = RemoteNavError("boom", path="x", backend="sftp")
        assert str(e) == "boom | path='x' | backend='sftp'"

    def test_repr(self) -> None:
        e = NotFound("gone", path="k")
        assert repr(e) == "NotFound('gone', path='k')"


class TestSubclasses:
    """Every concrete error is a RemoteNavError."""

    @pytest.mark.parametrize(
        "cls",
        [NotFound, PermissionDenied, InvalidPath, BackendUnavailable, NotReady, Cancelled, OperationInProgress],
    )
    def test_is_remote_nav_error(self, cls: type[RemoteNavError]) -> None:
        assert issubclass(cls, RemoteNavError)

    def test_catch_all(self) -> None:
        with pytest.raises(RemoteNavError):
            raise NotReady("not ready", backend="stub")


class TestCancelled:
    def test_default_message(self) -> None:
        assert str(Cancelled()) == "operation cancelled"

    def test_path(self) -> None:
        assert Cancelled(path="a/").path == "a/"


class TestOperationInProgress:
    def test_kind_in_message(self) -> None:
        e = OperationInProgress(kind="refresh", path="a/")
        assert e.kind == "refresh"
        assert str(e).startswith("refresh already in progress")

    def test_custom_message(self) -> None:
        e = OperationInProgress("busy", kind="upload")
        assert str(e) == "busy"


class TestRootCause:
    """root_cause walks to the innermost error of a chain."""

    def test_unchained(self) -> None:
        e = ValueError("x")
        assert root_cause(e) is e

    def test_explicit_cause(self) -> None:
        inner = ConnectionRefusedError("dial tcp 10.0.0.1:22: connection refused")
        try:
            try:
                raise inner
            except OSError as exc:
                raise BackendUnavailable("dial error") from exc
        except BackendUnavailable as outer:
            assert root_cause(outer) is inner

    def test_implicit_context(self) -> None:
        try:
            try:
                raise KeyError("inner")
            except KeyError:
                raise RuntimeError("outer")  # noqa: B904
        except RuntimeError as outer:
            assert isinstance(root_cause(outer), KeyError)

    def test_suppressed_context(self) -> None:
        try:
            try:
                raise KeyError("inner")
            except KeyError:
                raise RuntimeError("outer") from None
        except RuntimeError as outer:
            assert root_cause(outer) is outer

    def test_cycle_terminates(self) -> None:
        a = ValueError("a")
        b = ValueError("b")
        a.__cause__ = b
        b.__cause__ = a
        assert root_cause(a) is b
