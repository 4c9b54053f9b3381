"""
Response building utilities for the Upload Relay

Provides functions to create standardized function responses.
"""

from __future__ import annotations

import json
from typing import Any

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization,Accept",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def api_response(status_code: int, body: Any) -> dict:
    """
    Helper to format a function response with CORS headers.

    Args:
        status_code: HTTP status code
        body: Response body (will be JSON serialized)

    Returns:
        dict: Function response with headers
    """
    return {
        "statusCode": status_code,
        "body": json.dumps(body),
        "headers": {"Content-Type": "application/json", **CORS_HEADERS},
    }


def error_response(status_code: int, error: str, **extra: Any) -> dict:
    """
    Helper to create error response.

    Args:
        status_code: HTTP status code
        error: Human-readable error message
        **extra: Additional fields (e.g. path, details)

    Returns:
        dict: Function error response
    """
    body: dict[str, Any] = {"error": error}
    body.update({key: value for key, value in extra.items() if value is not None})
    return api_response(status_code, body)


def preflight_response() -> dict:
    """Empty 204 response for CORS preflight requests."""
    return {"statusCode": 204, "body": "", "headers": dict(CORS_HEADERS)}


def serialize_publish_result(result) -> dict:
    """
    Convert a PublicResult to the relay's success payload.

    Args:
        result: PublicResult from a completed publish

    Returns:
        dict: {"success": True, "cover": url, "pdf": url, "deploy": id}
    """
    return {
        "success": True,
        "cover": result.cover,
        "pdf": result.pdf,
        "deploy": result.deploy_id,
    }
