"""
Thin async client for CloudKit Web Services.

This module owns the single outbound HTTP exchange every service method is
built on: build the request, send it through the injected httpx client,
require a 2xx status and decode the JSON body. Failures are mapped onto the
taxonomy in `cloudkit.errors` with the original exception chained.

The HTTP client is always injected; there is no process-wide default
transport. Authentication (API token query params, signed headers) is the
caller's concern and is configured on the injected client.
"""

from __future__ import annotations

from typing import Any

import httpx

from cloudkit.assets.ports import Database
from cloudkit.assets.service import AssetsService
from cloudkit.config import CloudKitConfig
from cloudkit.errors import DecodeError, ProtocolError, RequestBuildError, TransportError


class CloudKitClient:
    """Bind an httpx.AsyncClient to one CloudKit container configuration."""

    def __init__(self, http: httpx.AsyncClient, config: CloudKitConfig) -> None:
        self.http = http
        self.config = config
        self.assets = AssetsService(self)

    def database_url(self, database: Database | str) -> str:
        # Unknown scopes raise ValueError before any request is built.
        return self.config.database_url(Database(database))

    def build(self, operation: str, method: str, url: str, **kwargs: Any) -> httpx.Request:
        try:
            return self.http.build_request(method, url, **kwargs)
        except (httpx.InvalidURL, TypeError, ValueError) as exc:
            raise RequestBuildError(operation, "invalid_request") from exc

    async def send(self, operation: str, request: httpx.Request) -> httpx.Response:
        """Send a request and return the fully read response.

        The body is read before returning, so the connection is released on
        every path. Non-2xx statuses raise ProtocolError with the raw body.
        """
        try:
            response = await self.http.send(request)
        except httpx.UnsupportedProtocol as exc:
            raise RequestBuildError(operation, "unsupported_url") from exc
        except httpx.DecodingError as exc:
            raise DecodeError(operation, "invalid_content_encoding") from exc
        except httpx.RequestError as exc:
            raise TransportError(operation, type(exc).__name__) from exc
        if not response.is_success:
            raise ProtocolError(operation, response.status_code, response.content)
        return response

    @staticmethod
    def decode_json(operation: str, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise DecodeError(operation, "invalid_json") from exc

    async def call(self, operation: str, method: str, url: str, payload: Any = None) -> Any:
        """Send `payload` as JSON and return the decoded JSON response."""
        request = self.build(operation, method, url, json=payload)
        response = await self.send(operation, request)
        return self.decode_json(operation, response)


__all__ = ["CloudKitClient", "Database"]
