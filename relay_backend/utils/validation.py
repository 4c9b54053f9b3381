"""
Request validation utilities for the Upload Relay

Provides functions to validate and extract data from function events.
"""

from __future__ import annotations

import base64
import binascii
import logging

logger = logging.getLogger()


def get_header(event: dict, name: str) -> str | None:
    """
    Look up a request header case-insensitively.

    Args:
        event: Function event
        name: Header name

    Returns:
        str: Header value, or None if absent
    """
    headers = event.get("headers") or {}
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def get_multipart_content_type(event: dict) -> tuple[str | None, dict | None]:
    """
    Extract the Content-Type header and require multipart/form-data.

    Args:
        event: Function event

    Returns:
        tuple: (content_type, error_response) - If successful, error_response is None
    """
    from .response import error_response

    content_type = get_header(event, "Content-Type")
    if not content_type or not content_type.lower().startswith("multipart/form-data"):
        logger.warning(f"Unsupported request content type: {content_type}")
        return None, error_response(
            400, "Content-Type must be multipart/form-data"
        )
    return content_type, None


def decode_event_body(event: dict) -> tuple[bytes, dict | None]:
    """
    Decode the raw request body, honoring isBase64Encoded.

    Args:
        event: Function event

    Returns:
        tuple: (body_bytes, error_response) - If successful, error_response is None
               If error, body_bytes is empty (caller should check error first)
    """
    from .response import error_response

    body = event.get("body") or ""
    if event.get("isBase64Encoded"):
        try:
            return base64.b64decode(body, validate=True), None
        except (binascii.Error, ValueError):
            logger.warning("Invalid base64 in request body")
            return b"", error_response(400, "Invalid base64 request body")

    if isinstance(body, bytes):
        return body, None
    return body.encode("utf-8"), None
