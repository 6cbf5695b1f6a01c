"""
Assets service: request upload URLs and upload asset payloads.

Intent:
    Map the two CloudKit asset endpoints onto typed calls:
      - request_upload_urls(): POST {database}/assets/upload with the fields
        to fill and return one UploadUrlResult per token.
      - upload(): POST the payload to a returned URL and return the
        `singleFile` confirmation (checksums, receipt, size).

Wire contract (upload URLs):
    The response envelope `{"tokens": [...]}` is authoritative. A bare JSON
    array is still accepted because both shapes occur in the service's
    history; it is logged as a warning. Any other shape is a DecodeError.

Notes:
    - Logs never include signed URLs or payload bytes; only sizes, counts,
      status codes and error kinds.
    - Task cancellation propagates unchanged and aborts the request.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Sequence

from cloudkit.assets.ports import (
    FORM_CONTENT_TYPE,
    MULTIPART_FIELD,
    OP_UPLOAD,
    OP_UPLOAD_URL,
    BodyEncoding,
    Database,
    UploadConfirmation,
    UploadFieldRequest,
    UploadResponse,
    UploadUrlResult,
)
from cloudkit.errors import CloudKitError, DecodeError, ProtocolError

if TYPE_CHECKING:
    import httpx

    from cloudkit.client import CloudKitClient

LOG = logging.getLogger(__name__)


def _log_assets_event(*, action: str, level: int = logging.INFO, **fields: object) -> None:
    """Emit sanitized assets log lines (no URLs, no payloads)."""
    parts = [f"cloudkit.assets action={action}"]
    for key, value in fields.items():
        if value is None or value == "":
            continue
        parts.append(f"{key}={value}")
    LOG.log(level, " ".join(parts))


def _log_failure(action: str, exc: CloudKitError) -> None:
    status = exc.status_code if isinstance(exc, ProtocolError) else None
    _log_assets_event(
        action=action,
        level=logging.WARNING,
        error=type(exc).__name__,
        status=status,
    )


def _unwrap_tokens(data: Any) -> list[Any]:
    if isinstance(data, dict):
        tokens = data.get("tokens")
        if isinstance(tokens, list):
            return tokens
        raise DecodeError(OP_UPLOAD_URL, "tokens_missing")
    if isinstance(data, list):
        _log_assets_event(action="upload_urls_bare_array", level=logging.WARNING)
        return data
    raise DecodeError(OP_UPLOAD_URL, "unexpected_shape")


class AssetsService:
    """Asset transfer operations bound to a CloudKitClient."""

    base_path = "/assets/upload"

    def __init__(self, client: "CloudKitClient") -> None:
        self._client = client

    async def request_upload_urls(
        self,
        database: Database | str,
        requests: Sequence[UploadFieldRequest],
    ) -> list[UploadUrlResult]:
        """Ask for one upload URL per requested record field.

        Raises:
            ValueError: empty request list, missing field name or unknown
                database scope (before any network call).
            CloudKitError: RequestBuildError, TransportError, ProtocolError or
                DecodeError from the exchange.
        """
        items = list(requests)
        if not items:
            raise ValueError("requests must not be empty")
        if any(not item.field_name for item in items):
            raise ValueError("field_name is required for every request")
        url = self._client.database_url(database) + self.base_path
        body = {"tokens": [item.to_payload() for item in items]}
        try:
            data = await self._client.call(OP_UPLOAD_URL, "POST", url, body)
            results = [UploadUrlResult.from_payload(token) for token in _unwrap_tokens(data)]
        except CloudKitError as exc:
            _log_failure("upload_urls_failed", exc)
            raise
        _log_assets_event(
            action="upload_urls_issued",
            database=Database(database),
            requested=len(items),
            returned=len(results),
        )
        return results

    def _build_upload(self, url: str, payload: bytes, encoding: BodyEncoding) -> "httpx.Request":
        if encoding is BodyEncoding.MULTIPART:
            # httpx sets multipart/form-data with a generated boundary.
            files = {MULTIPART_FIELD: (MULTIPART_FIELD, payload, "application/octet-stream")}
            return self._client.build(OP_UPLOAD, "POST", url, files=files)
        return self._client.build(
            OP_UPLOAD,
            "POST",
            url,
            content=payload,
            headers={"Content-Type": FORM_CONTENT_TYPE},
        )

    async def upload(
        self,
        url: str,
        payload: bytes,
        *,
        encoding: BodyEncoding | str | None = None,
    ) -> UploadConfirmation:
        """Upload `payload` to a URL returned by request_upload_urls().

        Behavior:
            - Encodes the body as a raw form-urlencoded payload or as a
              multipart part named "file" (default from config).
            - Requires a 2xx status and parses `{"singleFile": {...}}`.

        Raises:
            ValueError: empty URL or unknown encoding.
            CloudKitError: RequestBuildError, TransportError, ProtocolError
                (status and raw body kept) or DecodeError.
        """
        if not url:
            raise ValueError("url is required")
        chosen = BodyEncoding(encoding or self._client.config.upload_encoding)
        data = bytes(payload)
        try:
            request = self._build_upload(url, data, chosen)
            response = await self._client.send(OP_UPLOAD, request)
            envelope = UploadResponse.from_payload(self._client.decode_json(OP_UPLOAD, response))
        except CloudKitError as exc:
            _log_failure("upload_failed", exc)
            raise
        _log_assets_event(
            action="upload_completed",
            encoding=chosen,
            size=len(data),
            status=response.status_code,
        )
        return envelope.single_file


__all__ = ["AssetsService"]
