"""Provider conformance suite -- the shared contract checked against every backend."""

from __future__ import annotations

import io

import pytest

from remote_nav._cancel import CancelToken
from remote_nav._errors import Cancelled, NotFound
from remote_nav._models import EntryKind
from remote_nav._navigator import Navigator
from remote_nav._paging import collect_remaining, iter_pages
from remote_nav._provider import ListPage, Provider

pytestmark = pytest.mark.integration


def _put(provider: Provider, key: str, data: bytes) -> None:
    provider.upload(io.BytesIO(data), key)


def _listing(provider: Provider, path: str) -> dict[str, EntryKind]:
    entries = [e for page in iter_pages(provider, path) for e in page.entries]
    return {e.name: e.kind for e in entries}


class TestProviderIdentity:
    def test_is_provider(self, provider: Provider) -> None:
        assert isinstance(provider, Provider)

    def test_name_is_string(self, provider: Provider) -> None:
        assert isinstance(provider.name, str)
        assert provider.name


class TestListing:
    def test_empty_root(self, provider: Provider) -> None:
        page = provider.list_page("")
        assert isinstance(page, ListPage)
        assert page.entries == []
        assert page.next_cursor == ""

    def test_files_and_directories(self, provider: Provider) -> None:
        _put(provider, "top.txt", b"t")
        _put(provider, "docs/a.txt", b"a")
        assert _listing(provider, "") == {"top.txt": EntryKind.REGULAR, "docs/": EntryKind.DIRECTORY}

    def test_nested_names_are_relative(self, provider: Provider) -> None:
        _put(provider, "docs/sub/deep.txt", b"d")
        _put(provider, "docs/a.txt", b"a")
        assert _listing(provider, "docs/") == {"sub/": EntryKind.DIRECTORY, "a.txt": EntryKind.REGULAR}
        assert _listing(provider, "docs/sub/") == {"deep.txt": EntryKind.REGULAR}

    def test_file_size(self, provider: Provider) -> None:
        _put(provider, "sized.bin", b"x" * 1234)
        (entry,) = provider.list_page("").entries
        assert entry.size == 1234

    def test_full_listing_via_collect(self, provider: Provider) -> None:
        for i in range(5):
            _put(provider, f"f{i}.txt", b"x")
        first = provider.list_page("")
        rest = collect_remaining(provider, "", first.next_cursor)
        assert rest.exhausted
        got = sorted(e.name for e in [*first.entries, *rest.entries])
        assert got == [f"f{i}.txt" for i in range(5)]

    def test_cancelled_token(self, provider: Provider) -> None:
        token = CancelToken()
        token.cancel()
        with pytest.raises(Cancelled):
            provider.list_page("", token=token)


class TestTransfers:
    def test_upload_download(self, provider: Provider) -> None:
        payload = bytes(range(256)) * 300
        _put(provider, "blob.bin", payload)
        sink = io.BytesIO()
        provider.download(sink, "blob.bin")
        assert sink.getvalue() == payload

    def test_upload_overwrites(self, provider: Provider) -> None:
        _put(provider, "k.txt", b"one")
        _put(provider, "k.txt", b"two")
        sink = io.BytesIO()
        provider.download(sink, "k.txt")
        assert sink.getvalue() == b"two"

    def test_download_missing(self, provider: Provider) -> None:
        with pytest.raises(NotFound):
            provider.download(io.BytesIO(), "missing.txt")

    def test_cancelled_upload_leaves_nothing(self, provider: Provider) -> None:
        token = CancelToken()
        token.cancel()
        with pytest.raises(Cancelled):
            provider.upload(io.BytesIO(b"data"), "never.txt", token=token)
        with pytest.raises(NotFound):
            provider.stat("never.txt")


class TestStatDelete:
    def test_stat(self, provider: Provider) -> None:
        _put(provider, "docs/s.txt", b"12345")
        entry = provider.stat("docs/s.txt")
        assert entry.name == "s.txt"
        assert entry.size == 5
        assert entry.kind is EntryKind.REGULAR

    def test_stat_missing(self, provider: Provider) -> None:
        with pytest.raises(NotFound):
            provider.stat("nope.txt")

    def test_delete(self, provider: Provider) -> None:
        _put(provider, "gone.txt", b"x")
        provider.delete("gone.txt")
        with pytest.raises(NotFound):
            provider.stat("gone.txt")
        assert "gone.txt" not in _listing(provider, "")

    def test_close_idempotent(self, provider: Provider) -> None:
        provider.close()
        provider.close()


class TestNavigatorIntegration:
    def test_browse(self, provider: Provider) -> None:
        _put(provider, "docs/readme.md", b"# hi")
        nav = Navigator(provider, path="")
        outcome = nav.refresh().wait(30)
        assert outcome is not None and outcome.ok
        (docs,) = nav.entries
        assert docs.name == "docs/"
        outcome = nav.navigate_into(docs).wait(30)
        assert outcome is not None and outcome.ok
        assert [e.name for e in nav.entries] == ["readme.md"]
        outcome = nav.navigate_up().wait(30)  # type: ignore[union-attr]
        assert outcome is not None and outcome.ok
        assert nav.path == ""
