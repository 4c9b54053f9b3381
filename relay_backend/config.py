"""
Configuration for the Upload Relay Lambda handler

This module provides:
- Default limits and allowed MIME types
- RelayConfig, the explicit configuration passed into the relay
- load_relay_config() to build it from environment variables
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

# Constants
MAX_REQUEST_BYTES = 150 * 1024 * 1024  # 150MB of file data per request
ALLOWED_COVER_TYPES = frozenset({"image/jpeg", "image/png", "image/jpg"})
ALLOWED_PDF_TYPES = frozenset({"application/pdf"})
DEFAULT_API_URL = "https://api.netlify.com/api/v1"
REQUEST_TIMEOUT_SECONDS = 60
SOFT_DURATION_SECONDS = 26  # Netlify synchronous function timeout ceiling
STREAM_CHUNK_SIZE = 64 * 1024


class ConfigurationError(Exception):
    """Raised when required server configuration is missing."""


@dataclass(frozen=True)
class RelayConfig:
    auth_token: str
    site_id: str
    api_url: str = DEFAULT_API_URL
    max_request_bytes: int = MAX_REQUEST_BYTES
    allowed_cover_types: frozenset[str] = ALLOWED_COVER_TYPES
    allowed_pdf_types: frozenset[str] = ALLOWED_PDF_TYPES
    request_timeout: float = REQUEST_TIMEOUT_SECONDS
    soft_duration_seconds: float = SOFT_DURATION_SECONDS
    chunk_size: int = STREAM_CHUNK_SIZE

    @property
    def allowed_types(self) -> frozenset[str]:
        return self.allowed_cover_types | self.allowed_pdf_types


def load_relay_config(environ: Mapping[str, str] | None = None) -> RelayConfig:
    """
    Build relay configuration from environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        RelayConfig: Configuration for a single invocation

    Raises:
        ConfigurationError: If NETLIFY_AUTH_TOKEN or NETLIFY_SITE_ID is missing
    """
    env = os.environ if environ is None else environ

    auth_token = env.get("NETLIFY_AUTH_TOKEN", "").strip()
    site_id = env.get("NETLIFY_SITE_ID", "").strip()
    if not auth_token or not site_id:
        raise ConfigurationError(
            "Server not configured: set NETLIFY_AUTH_TOKEN and NETLIFY_SITE_ID env vars"
        )

    max_request_bytes = MAX_REQUEST_BYTES
    if env.get("MAX_REQUEST_BYTES"):
        try:
            max_request_bytes = int(env["MAX_REQUEST_BYTES"])
        except ValueError as e:
            raise ConfigurationError("MAX_REQUEST_BYTES must be an integer") from e

    return RelayConfig(
        auth_token=auth_token,
        site_id=site_id,
        api_url=env.get("NETLIFY_API_URL", DEFAULT_API_URL).rstrip("/"),
        max_request_bytes=max_request_bytes,
    )
