"""Error handling — failed listings, busy operations and status-line messages.

Demonstrates the normalized error hierarchy against the placeholder backend
(which fails every operation) and how the navigator reports failures as
outcomes instead of raising them.
"""

from __future__ import annotations

import io

from remote_nav import (
    BackendConfig,
    Navigator,
    NotReady,
    OperationInProgress,
    RemoteNavError,
    SessionConfig,
    create_provider,
    open_session,
    truncate_message,
)

if __name__ == "__main__":
    config = SessionConfig.from_dict({"backends": {"ftp": {"type": "stub", "options": {"server": "ftp.example.com"}}}})

    # --- Opening a session surfaces the first failure directly ---
    try:
        open_session(config, "ftp")
    except NotReady as exc:
        print(f"NotReady: {exc}")
        print(f"  path={exc.path!r}, backend={exc.backend}")

    # --- Navigator actions never raise backend errors; they finish with an outcome ---
    nav = Navigator(create_provider(config.get("ftp")))
    outcome = nav.refresh().wait()
    assert outcome is not None
    print(f"\nrefresh ok={outcome.ok} status={nav.status!r}")

    outcome = nav.upload(io.BytesIO(b"data"), "notes.txt").wait()
    assert outcome is not None
    print(f"upload ok={outcome.ok} error={type(outcome.error).__name__}")

    # --- Only one operation of a kind at a time ---
    first = nav.download(io.BytesIO(), "a.txt")
    try:
        nav.download(io.BytesIO(), "b.txt")
    except OperationInProgress as exc:
        print(f"\nOperationInProgress: {exc} (kind={exc.kind})")
    else:
        print("\nfirst download had already failed, second one started")
    first.wait()

    # --- Catch any remote-nav error with the base class ---
    try:
        nav.provider.stat("a.txt")
    except RemoteNavError as exc:
        print(f"\nRemoteNavError ({type(exc).__name__}): {exc}")

    # --- KeyError for unknown backend names ---
    try:
        config.get("sftp")
    except KeyError as exc:
        print(f"\nKeyError: {exc}")

    # --- Long messages are shortened for a single status line ---
    long_msg = "dial tcp 192.168.100.200:22: connect: connection timed out after several retries"
    print(f"\n{truncate_message(long_msg)}")

    print("\nDone!")
