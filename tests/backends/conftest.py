"""Backend test fixtures -- parameterized for conformance testing."""

from __future__ import annotations

import os
import shutil
import socket
import tempfile
import uuid
from typing import TYPE_CHECKING, NamedTuple

import pytest

if TYPE_CHECKING:
    from collections.abc import Iterator

    from remote_nav._provider import Provider


class SFTPServerInfo(NamedTuple):
    port: int
    host_key_entry: str
    root: str


def _s3_available() -> bool:
    try:
        import boto3  # noqa: F401
        import moto  # noqa: F401
        import s3fs  # noqa: F401

        return True
    except ImportError:
        return False


def _sftp_available() -> bool:
    try:
        import paramiko  # noqa: F401

        return True
    except ImportError:
        return False


def _free_port() -> int:
    with socket.socket() as s:
        s.bind(("", 0))
        return s.getsockname()[1]


@pytest.fixture(scope="session")
def moto_server() -> Iterator[str | None]:
    """Start a moto HTTP server for the test session.

    Uses server mode instead of mock_aws() so s3fs/aiobotocore talk real HTTP.
    """
    if not _s3_available():
        yield None
        return
    from moto.moto_server.threaded_moto_server import ThreadedMotoServer

    port = _free_port()
    server = ThreadedMotoServer(port=port, verbose=False)
    server.start()
    yield f"http://127.0.0.1:{port}"
    server.stop()


@pytest.fixture(scope="session")
def sftp_server() -> Iterator[SFTPServerInfo | None]:
    """Start an in-process SFTP server for the test session."""
    if not _sftp_available():
        yield None
        return

    from tests.backends.sftp_server import start_sftp_server, stop_sftp_server

    tmpdir = tempfile.mkdtemp(prefix="sftp_test_")
    thread, port, host_key, stop_event, server_socket = start_sftp_server(root=tmpdir, host="127.0.0.1")

    # known_hosts entry for the test server
    host_key_entry = f"[127.0.0.1]:{port} {host_key.get_name()} {host_key.get_base64()}"

    yield SFTPServerInfo(port, host_key_entry, tmpdir)

    stop_sftp_server(thread, stop_event, server_socket)
    shutil.rmtree(tmpdir, ignore_errors=True)


def make_bucket(endpoint: str, prefix: str = "nav") -> str:
    """Create a uniquely named bucket on the moto server."""
    import boto3

    bucket = f"{prefix}-{uuid.uuid4().hex[:8]}"
    client = boto3.client(
        "s3",
        endpoint_url=endpoint,
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        region_name="us-east-1",
    )
    client.create_bucket(Bucket=bucket)
    return bucket


def make_s3_provider(endpoint: str, bucket: str, **kwargs: object) -> Provider:
    from remote_nav.backends._s3 import S3Provider

    return S3Provider(
        bucket,
        key="testing",
        secret="testing",
        region_name="us-east-1",
        endpoint_url=endpoint,
        **kwargs,  # type: ignore[arg-type]
    )


def make_sftp_provider(server: SFTPServerInfo, **kwargs: object) -> Provider:
    from remote_nav.backends._sftp import HostKeyPolicy, SFTPProvider

    options: dict[str, object] = {
        "username": "testuser",
        "password": "testpass",
        "host_key_policy": HostKeyPolicy.AUTO_ADD,
        "connect_kwargs": {"allow_agent": False, "look_for_keys": False},
        "connect_retries": 1,
    }
    options.update(kwargs)
    return SFTPProvider(f"127.0.0.1:{server.port}", **options)  # type: ignore[arg-type]


_s3_param = pytest.param(
    "s3",
    marks=pytest.mark.skipif(not _s3_available(), reason="moto/s3fs not installed"),
)

_sftp_param = pytest.param(
    "sftp",
    marks=pytest.mark.skipif(not _sftp_available(), reason="paramiko not installed"),
)


@pytest.fixture(params=[_s3_param, _sftp_param])
def provider(
    request: pytest.FixtureRequest,
    moto_server: str | None,
    sftp_server: SFTPServerInfo | None,
) -> Iterator[Provider]:
    """Parameterized provider fixture rooted at an empty directory. Add new backends here."""
    if request.param == "s3":
        assert moto_server is not None
        p = make_s3_provider(moto_server, make_bucket(moto_server, "conformance"))
        yield p
        p.close()
    elif request.param == "sftp":
        assert sftp_server is not None
        base = f"/conformance_{uuid.uuid4().hex[:8]}"
        os.makedirs(os.path.join(sftp_server.root, base.lstrip("/")))
        p = make_sftp_provider(sftp_server, directory=base)
        yield p
        p.close()
    else:
        pytest.skip(f"Unknown backend: {request.param}")
