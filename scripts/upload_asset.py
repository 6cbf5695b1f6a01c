#!/usr/bin/env python3
"""
Upload one file into a CloudKit asset field.

Why:
    Handy for smoke-testing a container: request an upload URL for a single
    record field, upload the file and print the confirmation (receipt,
    checksums, size) that a later record save needs.

Behavior:
    - Reads CloudKit settings from the environment (see cloudkit.config);
      a local `.env` is loaded unless running under pytest or
      CLOUDKIT_ENABLE_DOTENV=false.
    - CLOUDKIT_API_TOKEN, when set, is sent as the `ckAPIToken` query param
      on calls to the CloudKit API host (not on signed upload URLs).
    - Exits non-zero with a short message on any CloudKit error.

Security:
    Never prints the API token or the signed upload URL.
"""
from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Sequence

import httpx

from cloudkit.assets.ports import (
    AssetsServiceProtocol,
    BodyEncoding,
    Database,
    UploadConfirmation,
    UploadFieldRequest,
    index_upload_urls,
)
from cloudkit.client import CloudKitClient
from cloudkit.config import build_http_client, load_cloudkit_config
from cloudkit.errors import CloudKitError


def _should_load_dotenv() -> bool:
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("CLOUDKIT_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


async def upload_file(
    service: AssetsServiceProtocol,
    *,
    database: Database,
    request: UploadFieldRequest,
    payload: bytes,
    encoding: BodyEncoding | None = None,
) -> UploadConfirmation:
    """Request a URL for one field and upload `payload` to it."""
    results = await service.request_upload_urls(database, [request])
    match = index_upload_urls(results).get((request.record_name, request.field_name))
    if match is None and not request.record_name and len(results) == 1:
        # The service names new records itself.
        match = results[0]
    if match is None or not match.url:
        raise SystemExit("No upload URL returned for the requested field.")
    return await service.upload(match.url, payload, encoding=encoding)


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Upload a file into a CloudKit asset field.")
    parser.add_argument("file", type=Path, help="File to upload")
    parser.add_argument("--record-type", required=True)
    parser.add_argument("--field", required=True, help="Asset field name")
    parser.add_argument("--record-name", default="", help="Existing record name (optional)")
    parser.add_argument(
        "--database",
        choices=[d.value for d in Database],
        default=Database.PUBLIC.value,
    )
    parser.add_argument(
        "--encoding",
        choices=[e.value for e in BodyEncoding],
        default=None,
        help="Upload body encoding (default from CLOUDKIT_UPLOAD_ENCODING)",
    )
    return parser.parse_args(argv)


class APITokenAuth(httpx.Auth):
    """Append `ckAPIToken` to requests aimed at the CloudKit API host only.

    Signed upload URLs live on other hosts and must be sent untouched.
    """

    def __init__(self, token: str, api_host: str) -> None:
        self._token = token
        self._api_host = api_host

    def auth_flow(self, request: httpx.Request):
        if request.url.host == self._api_host:
            request.url = request.url.copy_merge_params({"ckAPIToken": self._token})
        yield request


async def _run(args: argparse.Namespace) -> UploadConfirmation:
    config = load_cloudkit_config()
    token = (os.getenv("CLOUDKIT_API_TOKEN") or "").strip()
    auth = APITokenAuth(token, httpx.URL(config.base_url).host) if token else None
    async with build_http_client(config, auth=auth) as http:
        client = CloudKitClient(http, config)
        return await upload_file(
            client.assets,
            database=Database(args.database),
            request=UploadFieldRequest(
                field_name=args.field,
                record_type=args.record_type,
                record_name=args.record_name,
            ),
            payload=args.file.read_bytes(),
            encoding=BodyEncoding(args.encoding) if args.encoding else None,
        )


def main(argv: Sequence[str] | None = None) -> None:
    if _should_load_dotenv():
        from dotenv import load_dotenv

        load_dotenv()
    args = _parse_args(argv)
    if not args.file.is_file():
        raise SystemExit(f"{args.file} is not a file.")
    try:
        confirmation = asyncio.run(_run(args))
    except ValueError as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc
    except CloudKitError as exc:
        raise SystemExit(f"Upload failed: {exc}") from exc
    print(json.dumps(asdict(confirmation), indent=2))


if __name__ == "__main__":
    main()
