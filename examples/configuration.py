"""Configuration — config-as-code, from_dict(), and per-backend options.

Demonstrates the connection settings for the S3, SFTP and placeholder
backends, and registering a custom provider type.
"""

from __future__ import annotations

from remote_nav import BackendConfig, SessionConfig, create_provider, register_provider
from remote_nav.backends import StubProvider

if __name__ == "__main__":
    # --- Option 1: Config-as-code with Python objects ---
    config = SessionConfig(
        backends={
            "S3": BackendConfig(
                type="s3",
                options={
                    "bucket": "my-bucket",
                    "prefix": "reports/2024",
                    "endpoint_url": "http://localhost:9000",
                    "key": "minioadmin",
                    "secret": "minioadmin",
                    "region_name": "us-east-1",
                    "page_size": 200,
                },
            ),
            "sftp": BackendConfig(
                type="sftp",
                options={
                    "host": "sftp.example.com:2222",
                    "username": "deploy",
                    "password": "secret",
                    "directory": "uploads",
                    "host_key_policy": "tofu",
                },
            ),
            "ftp": BackendConfig(type="stub", options={"server": "ftp.example.com"}),
        }
    )
    config.validate()

    # Providers are created lazily: nothing connects until the first call.
    for name in sorted(config.backends):
        provider = create_provider(config.get(name))
        print(f"{name}: {provider!r}")
        provider.close()

    # --- Option 2: from_dict(), e.g. loaded from TOML or JSON ---
    raw = {
        "backends": {
            "S3": {"type": "s3", "options": {"bucket": "public-data"}},
        }
    }
    s3 = create_provider(SessionConfig.from_dict(raw).get("S3"))
    print(f"\nfrom_dict: {s3!r} (anonymous access: no key/secret given)")

    # --- Option 3: custom provider types ---
    register_provider("ftp", StubProvider)
    ftp = create_provider(BackendConfig(type="ftp", options={"server": "ftp.example.com"}))
    print(f"\ncustom type: {ftp!r}")

    print("\nDone!")
