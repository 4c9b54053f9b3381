"""
HTTP client for the book upload relay

Posts the cover and PDF as multipart/form-data and checks the relay's
JSON response shape.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 300


class SubmissionError(Exception):
    """Base class for every failure of a book submission."""


class RelayConnectionError(SubmissionError):
    """The relay could not be reached."""


class RelayRequestError(SubmissionError):
    """The request could not be sent (bad endpoint URL, redirect loop)."""


class RelayServerError(SubmissionError):
    """The relay answered with a non-success status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"Upload failed: {message}")
        self.status_code = status_code


class RelayProtocolError(SubmissionError):
    """The relay answered 2xx without the expected fields."""


def _error_text(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason or str(response.status_code)
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.text


def upload_to_relay(
    cover,
    pdf,
    endpoint: str,
    session: requests.Session | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> dict[str, Any]:
    """
    Upload a cover and PDF to the relay.

    Args:
        cover: BookFile for the cover image
        pdf: BookFile for the book PDF
        endpoint: Absolute relay URL
        session: Optional requests session (a temporary one is closed after use)
        timeout: Request timeout in seconds

    Returns:
        dict: Relay payload containing success, cover, pdf and deploy

    Raises:
        RelayConnectionError: If the relay is unreachable
        RelayRequestError: If the request cannot be sent (e.g. malformed endpoint)
        RelayServerError: If the relay returns a non-2xx status
        RelayProtocolError: If the payload is missing success, cover or pdf
    """
    http = session or requests.Session()

    try:
        with cover.open() as cover_stream, pdf.open() as pdf_stream:
            response = http.post(
                endpoint,
                files={
                    "cover": (cover.filename, cover_stream, cover.content_type),
                    "pdf": (pdf.filename, pdf_stream, pdf.content_type),
                },
                headers={"Accept": "application/json"},
                timeout=timeout,
            )
    except (requests.ConnectionError, requests.Timeout) as e:
        logger.error(f"Could not reach relay at {endpoint}: {e}")
        raise RelayConnectionError(
            "Could not connect to the server. Please check your internet connection."
        ) from e
    except requests.RequestException as e:
        logger.error(f"Could not send upload to {endpoint}: {e}")
        raise RelayRequestError(f"Could not send the upload request: {e}") from e
    finally:
        if session is None:
            http.close()

    if not response.ok:
        raise RelayServerError(response.status_code, _error_text(response))

    try:
        result = response.json()
    except ValueError as e:
        raise RelayProtocolError("Relay returned a non-JSON response") from e

    if not isinstance(result, dict) or not (
        result.get("success") and result.get("cover") and result.get("pdf")
    ):
        raise RelayProtocolError("Failed to receive uploaded file URLs")

    return result
