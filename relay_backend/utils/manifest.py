"""
Publish manifest utilities for the Upload Relay

Derives collision-resistant destination paths for uploaded parts and
builds the path -> SHA-1 manifest sent to the deploy API.
"""

from __future__ import annotations

import hashlib
import re
import secrets
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from .multipart import UploadedPart

COVER_KIND = "cover"
PDF_KIND = "pdf"

# Destination folder per logical kind
KIND_PREFIXES = {
    COVER_KIND: "covers/",
    PDF_KIND: "books/",
}

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9.]+")


class ManifestError(Exception):
    """Raised when uploaded parts cannot form a cover/pdf pair."""


@dataclass
class PublishManifest:
    files: dict[str, str] = field(default_factory=dict)  # path -> sha1
    buffers: dict[str, bytes] = field(default_factory=dict)  # path -> content
    kinds: dict[str, str] = field(default_factory=dict)  # path -> cover/pdf

    def add(self, path: str, kind: str, data: bytes) -> None:
        if path in self.files:
            raise ManifestError(f"Duplicate destination path: {path}")
        self.files[path] = sha1_hex(data)
        self.buffers[path] = data
        self.kinds[path] = kind


def sha1_hex(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def sanitize_filename(filename: str) -> str:
    """
    Replace every run of characters outside [A-Za-z0-9.] with an underscore.

    Example:
        "My Book (v2).pdf" -> "My_Book_v2_.pdf"
    """
    safe = _UNSAFE_FILENAME_CHARS.sub("_", filename.rsplit("/", 1)[-1].rsplit("\\", 1)[-1])
    safe = safe.lstrip(".")
    return safe or "file"


def classify_part(part: UploadedPart) -> str | None:
    """Map a part's MIME type to its logical kind (cover or pdf)."""
    if part.content_type.startswith("image/"):
        return COVER_KIND
    if part.content_type == "application/pdf":
        return PDF_KIND
    return None


def destination_path(
    kind: str,
    filename: str,
    now: Callable[[], float] = time.time,
    token: Callable[[], str] = lambda: secrets.token_hex(4),
) -> str:
    """
    Build a unique destination path for a part.

    Format: "<prefix><millis>-<token>-<sanitized filename>"

    Args:
        kind: Logical kind (cover or pdf)
        filename: Original client filename
        now: Clock returning seconds since epoch
        token: Random token source

    Returns:
        str: Destination path such as "covers/1700000000000-1a2b3c4d-cover.jpg"
    """
    millis = int(now() * 1000)
    return f"{KIND_PREFIXES[kind]}{millis}-{token()}-{sanitize_filename(filename)}"


def build_manifest(parts: Iterable[UploadedPart]) -> PublishManifest:
    """
    Build the publish manifest from accepted parts.

    Exactly one cover image and one PDF are required.

    Args:
        parts: Parts accepted by the multipart parser

    Returns:
        PublishManifest: Complete manifest for the create-deploy call

    Raises:
        ManifestError: If a kind is missing, duplicated or unrecognized
    """
    manifest = PublishManifest()
    seen: set[str] = set()

    for part in parts:
        kind = classify_part(part)
        if kind is None:
            raise ManifestError(f"Unsupported file type: {part.content_type}")
        if kind in seen:
            raise ManifestError(f"Only one {kind} file may be uploaded")
        seen.add(kind)
        manifest.add(destination_path(kind, part.filename), kind, part.data)

    missing = [kind for kind in (COVER_KIND, PDF_KIND) if kind not in seen]
    if missing:
        raise ManifestError(f"Missing required file(s): {', '.join(missing)}")

    return manifest
