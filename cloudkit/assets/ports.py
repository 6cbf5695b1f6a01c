"""
Ports for the assets service: wire types, body encodings and the protocol.

Intent:
    Keep the request/response shapes of the two asset endpoints in one
    framework-agnostic module so the service, the CLI and test fakes share
    them without circular imports.

Design:
    - Database scopes and request/result dataclasses: UploadFieldRequest,
      UploadUrlResult
    - Confirmation types: UploadConfirmation and its named envelope
      UploadResponse ({"singleFile": {...}})
    - BodyEncoding: how upload payloads are framed on the wire
    - AssetsServiceProtocol: what callers depend on

Notes:
    Field values are passed through verbatim; the service never rewrites
    record names, URLs, checksums or sizes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Protocol, Sequence, Tuple

from cloudkit.errors import DecodeError


OP_UPLOAD_URL = "assets.upload_url"
OP_UPLOAD = "assets.upload"


# ----------------------------- Scopes ---------------------------------------


class Database(str, Enum):
    """Database scope addressed by a request; renders as its path segment."""

    PUBLIC = "public"
    PRIVATE = "private"
    SHARED = "shared"

    def __str__(self) -> str:
        return self.value


# ----------------------------- Requests -------------------------------------


@dataclass(frozen=True)
class UploadFieldRequest:
    """Target asset slot for which an upload URL is requested.

    Parameters:
        field_name: Asset field on the record; required.
        record_type: Record type owning the field.
        record_name: Record name; empty when the record does not exist yet.
    """

    field_name: str
    record_type: str = ""
    record_name: str = ""

    def to_payload(self) -> Dict[str, str]:
        # Empty values are omitted on the wire.
        payload = {
            "recordName": self.record_name,
            "recordType": self.record_type,
            "fieldName": self.field_name,
        }
        return {k: v for k, v in payload.items() if v}


# ----------------------------- Results --------------------------------------


def _str_field(data: Dict[str, Any], name: str, *, operation: str) -> str:
    value = data.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise DecodeError(operation, f"invalid_field:{name}")
    return value


@dataclass(frozen=True)
class UploadUrlResult:
    """Upload location for one record field."""

    record_name: str
    field_name: str
    url: str

    @property
    def key(self) -> Tuple[str, str]:
        return (self.record_name, self.field_name)

    @classmethod
    def from_payload(cls, data: Any) -> "UploadUrlResult":
        if not isinstance(data, dict):
            raise DecodeError(OP_UPLOAD_URL, "token_not_object")
        return cls(
            record_name=_str_field(data, "recordName", operation=OP_UPLOAD_URL),
            field_name=_str_field(data, "fieldName", operation=OP_UPLOAD_URL),
            url=_str_field(data, "url", operation=OP_UPLOAD_URL),
        )


@dataclass(frozen=True)
class UploadConfirmation:
    """Metadata returned after a successful upload.

    Parameters:
        wrapping_key: Opaque key material reference; no encryption happens here.
        file_checksum: Checksum of the uploaded file as computed by the service.
        receipt: Opaque token needed to attach the asset to a record later.
        reference_checksum: Service-side reference checksum.
        size: Byte count as reported (int or float, untouched).
    """

    wrapping_key: str = ""
    file_checksum: str = ""
    receipt: str = ""
    reference_checksum: str = ""
    size: int | float = 0

    @classmethod
    def from_payload(cls, data: Any) -> "UploadConfirmation":
        if not isinstance(data, dict):
            raise DecodeError(OP_UPLOAD, "single_file_not_object")
        size = data.get("size", 0)
        if size is None:
            size = 0
        if isinstance(size, bool) or not isinstance(size, (int, float)):
            raise DecodeError(OP_UPLOAD, "invalid_field:size")
        return cls(
            wrapping_key=_str_field(data, "wrappingKey", operation=OP_UPLOAD),
            file_checksum=_str_field(data, "fileChecksum", operation=OP_UPLOAD),
            receipt=_str_field(data, "receipt", operation=OP_UPLOAD),
            reference_checksum=_str_field(data, "referenceChecksum", operation=OP_UPLOAD),
            size=size,
        )


@dataclass(frozen=True)
class UploadResponse:
    """Envelope of the upload endpoint: ``{"singleFile": {...}}``."""

    single_file: UploadConfirmation

    @classmethod
    def from_payload(cls, data: Any) -> "UploadResponse":
        if not isinstance(data, dict) or "singleFile" not in data:
            raise DecodeError(OP_UPLOAD, "single_file_missing")
        return cls(single_file=UploadConfirmation.from_payload(data["singleFile"]))


def index_upload_urls(results: Iterable[UploadUrlResult]) -> Dict[Tuple[str, str], UploadUrlResult]:
    """Map results by (record_name, field_name).

    The service does not promise response order, so callers should correlate
    results with their requests by identity rather than by position.
    """
    return {r.key: r for r in results}


# ----------------------------- Encodings ------------------------------------


class BodyEncoding(str, Enum):
    """How the upload payload is framed on the wire."""

    FORM = "form"
    MULTIPART = "multipart"

    def __str__(self) -> str:
        return self.value


FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
MULTIPART_FIELD = "file"


# ----------------------------- Protocol -------------------------------------


class AssetsServiceProtocol(Protocol):
    """Asset transfer operations used by callers and replaced by fakes in tests."""

    async def request_upload_urls(
        self, database: object, requests: Sequence[UploadFieldRequest]
    ) -> list[UploadUrlResult]: ...

    async def upload(
        self, url: str, payload: bytes, *, encoding: BodyEncoding | None = None
    ) -> UploadConfirmation: ...


__all__ = [
    "OP_UPLOAD_URL",
    "OP_UPLOAD",
    "Database",
    "UploadFieldRequest",
    "UploadUrlResult",
    "UploadConfirmation",
    "UploadResponse",
    "index_upload_urls",
    "BodyEncoding",
    "FORM_CONTENT_TYPE",
    "MULTIPART_FIELD",
    "AssetsServiceProtocol",
]
