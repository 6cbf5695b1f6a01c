"""
CloudKit Web Services configuration parsing and validation.

Intent:
    Provide a single place to read the environment variables that address a
    CloudKit container (base URL, API version, container id, environment) and
    the client-side knobs (timeout, upload body encoding).

Behavior:
    - `load_cloudkit_config()` validates eagerly and raises ValueError naming
      the offending variable, so misconfiguration fails fast at startup.
    - No timeout is imposed unless CLOUDKIT_TIMEOUT_SECONDS is set; callers
      may also bound latency with their own deadline.

Permissions:
    Pure configuration; no external calls or privileges required.
"""
from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Any
from urllib.parse import urlparse

import httpx

from cloudkit.assets.ports import BodyEncoding


BASE_URL_DEFAULT = "https://api.apple-cloudkit.com"
API_VERSION_DEFAULT = "1"
ENVIRONMENTS = {"development", "production"}


@dataclass(frozen=True)
class CloudKitConfig:
    container: str
    base_url: str = BASE_URL_DEFAULT
    api_version: str = API_VERSION_DEFAULT
    environment: str = "development"
    timeout_seconds: float | None = None
    upload_encoding: BodyEncoding = BodyEncoding.FORM

    def database_url(self, database: object) -> str:
        """Return the URL prefix for one database scope (public/private/shared)."""
        base = self.base_url.rstrip("/")
        return f"{base}/database/{self.api_version}/{self.container}/{self.environment}/{database}"


def _timeout_env(name: str) -> float | None:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got: {raw!r}")
    if value <= 0 or value > 300:
        raise ValueError(f"{name} out of range (0..300], got: {value}")
    return value


def _validate_base_url(url: str) -> None:
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        raise ValueError("CLOUDKIT_BASE_URL must start with http:// or https:// and name a host")


def load_cloudkit_config() -> CloudKitConfig:
    """
    Parse and validate CloudKit configuration from environment variables.

    Env:
        CLOUDKIT_CONTAINER – required container identifier.
        CLOUDKIT_BASE_URL – optional, defaults to BASE_URL_DEFAULT.
        CLOUDKIT_API_VERSION – optional, defaults to "1".
        CLOUDKIT_ENVIRONMENT – "development" (default) or "production".
        CLOUDKIT_TIMEOUT_SECONDS – optional positive number (<= 300).
        CLOUDKIT_UPLOAD_ENCODING – "form" (default) or "multipart".
    """
    container = (os.getenv("CLOUDKIT_CONTAINER") or "").strip()
    if not container:
        raise ValueError("CLOUDKIT_CONTAINER is required")

    base_url = (os.getenv("CLOUDKIT_BASE_URL") or BASE_URL_DEFAULT).strip().rstrip("/")
    _validate_base_url(base_url)

    api_version = (os.getenv("CLOUDKIT_API_VERSION") or API_VERSION_DEFAULT).strip()

    environment = (os.getenv("CLOUDKIT_ENVIRONMENT") or "development").strip().lower()
    if environment not in ENVIRONMENTS:
        raise ValueError("CLOUDKIT_ENVIRONMENT must be 'development' or 'production'")

    raw_encoding = (os.getenv("CLOUDKIT_UPLOAD_ENCODING") or BodyEncoding.FORM.value).strip().lower()
    try:
        encoding = BodyEncoding(raw_encoding)
    except ValueError:
        raise ValueError("CLOUDKIT_UPLOAD_ENCODING must be 'form' or 'multipart'")

    return CloudKitConfig(
        container=container,
        base_url=base_url,
        api_version=api_version,
        environment=environment,
        timeout_seconds=_timeout_env("CLOUDKIT_TIMEOUT_SECONDS"),
        upload_encoding=encoding,
    )


def build_http_client(config: CloudKitConfig, **kwargs: Any) -> httpx.AsyncClient:
    """Create an AsyncClient honoring the configured timeout.

    Extra keyword arguments (params, headers, transport, ...) are forwarded to
    httpx. The caller owns the client and must close it.
    """
    kwargs.setdefault("timeout", config.timeout_seconds)
    return httpx.AsyncClient(**kwargs)


__all__ = [
    "BASE_URL_DEFAULT",
    "API_VERSION_DEFAULT",
    "CloudKitConfig",
    "load_cloudkit_config",
    "build_http_client",
]
