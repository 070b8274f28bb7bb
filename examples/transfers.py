"""Transfers — upload, download, delete and cancel through the navigator.

Demonstrates streaming transfers against an SFTP server. Each transfer runs
in the background and can be cancelled; a cancelled upload leaves no partial
remote file and a failed download leaves no partial local file.

Set SFTP_HOST, SFTP_USER and SFTP_PASSWORD before running.
"""

from __future__ import annotations

import io
import os
import tempfile

from remote_nav import BackendConfig, OpKind, SessionConfig, open_session

if __name__ == "__main__":
    config = SessionConfig(
        backends={
            "sftp": BackendConfig(
                type="sftp",
                options={
                    "host": os.environ["SFTP_HOST"],
                    "username": os.environ["SFTP_USER"],
                    "password": os.environ["SFTP_PASSWORD"],
                    "host_key_policy": "tofu",
                },
            )
        }
    )

    with open_session(config, "sftp") as session, tempfile.TemporaryDirectory() as tmp:
        nav = session.navigator
        print(f"Working directory: {nav.path}")

        # --- Upload a local file into the current directory ---
        local = os.path.join(tmp, "hello.txt")
        with open(local, "wb") as f:
            f.write(b"Hello, world!\n")
        outcome = nav.upload(local).wait()
        print(f"upload ok={outcome.ok}; view now ends with {nav.entries[-1].name if nav.entries else None!r}")

        # --- Download it back into a stream ---
        sink = io.BytesIO()
        key = nav.key_for("hello.txt")
        outcome = nav.download(sink, key).wait()
        print(f"download ok={outcome.ok}: {sink.getvalue()!r}")

        # --- Cancel a large upload ---
        op = nav.upload(io.BytesIO(b"\0" * (64 << 20)), nav.key_for("big.bin"))
        nav.cancel(OpKind.UPLOAD)
        outcome = op.wait()
        print(f"big upload cancelled={outcome.cancelled} message={outcome.message!r}")

        # --- Delete ---
        outcome = nav.delete(key).wait()
        print(f"delete ok={outcome.ok}")

    print("Done!")
