"""Provider implementations."""

from remote_nav.backends._stub import StubProvider

__all__ = ["StubProvider"]

try:
    from remote_nav.backends._s3 import S3Provider

    __all__ = [*__all__, "S3Provider"]
except ImportError:  # pragma: no cover
    pass

try:
    from remote_nav.backends._sftp import HostKeyPolicy, SFTPProvider

    __all__ = [*__all__, "HostKeyPolicy", "SFTPProvider"]
except ImportError:  # pragma: no cover
    pass
