"""Quickstart — open a session on an S3 bucket and browse it.

Demonstrates:
- Describing a backend with SessionConfig
- Opening a Session (connect + first page)
- Waiting for the background continuation and walking into a directory

Set S3_BUCKET (and optionally S3_ENDPOINT, AWS_ACCESS_KEY_ID,
AWS_SECRET_ACCESS_KEY, AWS_REGION) before running.
"""

from __future__ import annotations

import logging
import os

from remote_nav import BackendConfig, OpKind, SessionConfig, open_session

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    config = SessionConfig(
        backends={
            "S3": BackendConfig(
                type="s3",
                options={
                    "bucket": os.environ["S3_BUCKET"],
                    "endpoint_url": os.environ.get("S3_ENDPOINT"),
                    "key": os.environ.get("AWS_ACCESS_KEY_ID"),
                    "secret": os.environ.get("AWS_SECRET_ACCESS_KEY"),
                    "region_name": os.environ.get("AWS_REGION"),
                },
            )
        }
    )

    with open_session(config, "S3") as session:
        nav = session.navigator

        op = nav.operation(OpKind.REFRESH)
        if op is not None:
            outcome = op.wait()
            print(f"Listing of {nav.path or '/'} finished: ok={outcome.ok} {outcome.message}")

        for entry in nav.entries:
            print(entry)

        first_dir = next((e for e in nav.entries if e.is_dir), None)
        if first_dir is not None:
            outcome = nav.navigate_into(first_dir).wait()
            print(f"\n{nav.path}: {len(nav.entries)} entries (ok={outcome.ok})")

    print("Done!")
