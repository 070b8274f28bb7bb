"""Placeholder provider tests."""

from __future__ import annotations

import io

import pytest

from remote_nav._cancel import CancelToken
from remote_nav._errors import Cancelled, NotReady
from remote_nav.backends._stub import StubProvider


@pytest.fixture
def stub() -> StubProvider:
    return StubProvider("ftp.example.com:21", username="me", password="pw", directory="pub")


class TestStubProvider:
    def test_identity(self, stub: StubProvider) -> None:
        assert stub.name == "stub"
        assert stub.home == "pub/"

    @pytest.mark.parametrize(
        "call",
        [
            lambda p: p.list_page(""),
            lambda p: p.list_page("pub/", "cursor"),
            lambda p: p.upload(io.BytesIO(b"x"), "k"),
            lambda p: p.download(io.BytesIO(), "k"),
            lambda p: p.delete("k"),
            lambda p: p.stat("k"),
            lambda p: p.list_buckets(),
        ],
    )
    def test_every_operation_not_ready(self, stub: StubProvider, call: object) -> None:
        with pytest.raises(NotReady, match="not ready") as info:
            call(stub)  # type: ignore[operator]
        assert info.value.backend == "stub"

    def test_cancelled_token_wins(self, stub: StubProvider) -> None:
        token = CancelToken()
        token.cancel()
        with pytest.raises(Cancelled):
            stub.list_page("", token=token)

    def test_close_is_noop(self, stub: StubProvider) -> None:
        stub.close()
        stub.close()

    def test_context_manager(self) -> None:
        with StubProvider() as p:
            assert p.home == ""
