"""
Multipart parsing utilities for the Upload Relay

Streams a buffered request body through python-multipart's callback parser,
collecting file parts in memory while enforcing a byte ceiling.
"""

from __future__ import annotations

import logging
from collections.abc import Collection
from dataclasses import dataclass, field

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

logger = logging.getLogger(__name__)

DEFAULT_PART_TYPE = "application/octet-stream"


class MultipartError(Exception):
    """Raised when the request body is not a usable multipart payload."""


class PayloadTooLargeError(MultipartError):
    """Raised when received bytes exceed the configured ceiling."""

    def __init__(self, max_bytes: int):
        super().__init__(f"Upload exceeds maximum size of {max_bytes // (1024 * 1024)}MB")
        self.max_bytes = max_bytes


@dataclass
class UploadedPart:
    field_name: str
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class ParsedUpload:
    parts: list[UploadedPart] = field(default_factory=list)
    # First disallowed-type error seen while parsing, reported after the body is consumed
    deferred_error: str | None = None


class _PartCollector:
    """Callback target for MultipartParser."""

    def __init__(self, allowed_types: Collection[str], max_bytes: int):
        self.allowed_types = allowed_types
        self.max_bytes = max_bytes
        self.result = ParsedUpload()
        self.received = 0
        self.finished = False
        self._reset_part()

    def _reset_part(self) -> None:
        self._headers: dict[str, bytes] = {}
        self._header_field = b""
        self._header_value = b""
        self._chunks: list[bytes] = []
        self._current: UploadedPart | None = None

    def callbacks(self) -> dict:
        return {
            "on_part_begin": self._reset_part,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
            "on_headers_finished": self.on_headers_finished,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
            "on_end": self.on_end,
        }

    def on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def on_header_end(self) -> None:
        self._headers[self._header_field.decode("latin-1").lower()] = self._header_value
        self._header_field = b""
        self._header_value = b""

    def on_headers_finished(self) -> None:
        _, disposition = parse_options_header(self._headers.get("content-disposition"))
        name = disposition.get(b"name", b"").decode("utf-8", errors="replace")
        filename = disposition.get(b"filename")

        # Plain form fields and empty file inputs carry nothing to publish
        if not filename:
            return

        content_type = DEFAULT_PART_TYPE
        if self._headers.get("content-type"):
            content_type = parse_options_header(self._headers["content-type"])[0].decode("latin-1").lower()

        filename_str = filename.decode("utf-8", errors="replace")
        if content_type not in self.allowed_types:
            logger.warning(f"Rejecting part '{name}' ({filename_str}) with type {content_type}")
            if self.result.deferred_error is None:
                self.result.deferred_error = f"Unsupported file type: {content_type}"
            return

        self._current = UploadedPart(
            field_name=name, filename=filename_str, content_type=content_type, data=b""
        )

    def on_part_data(self, data: bytes, start: int, end: int) -> None:
        self.received += end - start
        if self.received > self.max_bytes:
            raise PayloadTooLargeError(self.max_bytes)
        if self._current is not None:
            self._chunks.append(data[start:end])

    def on_part_end(self) -> None:
        if self._current is not None:
            self._current.data = b"".join(self._chunks)
            self.result.parts.append(self._current)
        self._reset_part()

    def on_end(self) -> None:
        self.finished = True


def parse_multipart(
    body: bytes,
    content_type: str,
    allowed_types: Collection[str],
    max_bytes: int,
    chunk_size: int = 64 * 1024,
) -> ParsedUpload:
    """
    Parse a multipart/form-data body into file parts.

    The body is fed to the parser in chunks so an oversize upload is
    aborted as soon as the byte ceiling is crossed.

    Args:
        body: Raw request body
        content_type: Request Content-Type header (must carry a boundary)
        allowed_types: MIME types accepted for file parts
        max_bytes: Maximum number of part bytes accepted
        chunk_size: Number of bytes written to the parser at a time

    Returns:
        ParsedUpload: Accepted parts plus any deferred type error

    Raises:
        PayloadTooLargeError: If received part bytes exceed max_bytes
        MultipartError: If the header or body is malformed
    """
    mimetype, params = parse_options_header(content_type)
    boundary = params.get(b"boundary")
    if mimetype.lower() != b"multipart/form-data" or not boundary:
        raise MultipartError("Missing multipart boundary")

    collector = _PartCollector(allowed_types, max_bytes)
    parser = MultipartParser(boundary, collector.callbacks())

    try:
        for offset in range(0, len(body), chunk_size):
            parser.write(body[offset : offset + chunk_size])
        parser.finalize()
    except MultipartParseError as e:
        raise MultipartError(f"Malformed multipart body: {e}") from e

    if not collector.finished:
        raise MultipartError("Malformed multipart body: missing closing boundary")

    logger.info(
        f"Parsed {len(collector.result.parts)} file part(s), {collector.received} bytes received"
    )
    return collector.result
