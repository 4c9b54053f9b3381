"""
Book submission form controller

Validates book metadata and files, uploads the files through the relay and
builds the resulting book record. Nothing survives past a single attempt;
a failed submission is retried by submitting again.
"""

from __future__ import annotations

import io
import logging
import mimetypes
import os
import secrets
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from typing import BinaryIO

import requests

from .relay_client import (
    DEFAULT_TIMEOUT_SECONDS,
    SubmissionError,
    upload_to_relay,
)

logger = logging.getLogger(__name__)

MIB = 1024 * 1024


class SubmissionValidationError(SubmissionError):
    """Raised on the first invalid form value; no request is made."""


@dataclass(frozen=True)
class SubmissionLimits:
    max_cover_bytes: int = 10 * MIB
    max_pdf_bytes: int = 100 * MIB
    cover_types: frozenset[str] = frozenset({"image/jpeg", "image/png", "image/jpg"})
    pdf_types: frozenset[str] = frozenset({"application/pdf"})


@dataclass
class BookFile:
    filename: str
    content_type: str
    size: int
    opener: Callable[[], BinaryIO] = field(repr=False)

    def open(self) -> BinaryIO:
        return self.opener()

    @classmethod
    def from_path(cls, path: str, content_type: str | None = None) -> BookFile:
        guessed, _ = mimetypes.guess_type(path)
        return cls(
            filename=os.path.basename(path),
            content_type=content_type or guessed or "application/octet-stream",
            size=os.path.getsize(path),
            opener=lambda: open(path, "rb"),
        )

    @classmethod
    def from_bytes(cls, filename: str, data: bytes, content_type: str) -> BookFile:
        return cls(
            filename=filename,
            content_type=content_type,
            size=len(data),
            opener=lambda: io.BytesIO(data),
        )


@dataclass
class BookSubmission:
    title: str
    author: str
    category: str
    summary: str
    cover: BookFile | None
    pdf: BookFile | None


@dataclass
class BookRecord:
    id: str
    title: str
    author: str
    category: str
    summary: str
    cover: str
    downloadUrl: str

    def to_dict(self) -> dict:
        return asdict(self)


def validate_submission(
    submission: BookSubmission, limits: SubmissionLimits = SubmissionLimits()
) -> None:
    """
    Validate a submission, failing on the first violation.

    Raises:
        SubmissionValidationError: With a message describing the violation
    """
    for name in ("title", "author", "category", "summary"):
        if not (getattr(submission, name) or "").strip():
            raise SubmissionValidationError("All fields are required")

    cover, pdf = submission.cover, submission.pdf
    if cover is None or pdf is None:
        raise SubmissionValidationError("Please choose a cover file and a book file")

    if cover.content_type not in limits.cover_types:
        raise SubmissionValidationError("The cover must be a JPG or PNG image")

    if pdf.content_type not in limits.pdf_types:
        raise SubmissionValidationError("The book must be a PDF file")

    if cover.size > limits.max_cover_bytes:
        raise SubmissionValidationError(
            f"The cover must not exceed {limits.max_cover_bytes // MIB}MB"
        )

    if pdf.size > limits.max_pdf_bytes:
        raise SubmissionValidationError(
            f"The book must not exceed {limits.max_pdf_bytes // MIB}MB"
        )


def new_book_id() -> str:
    return f"book-{secrets.token_hex(4)}"


def build_book_record(submission: BookSubmission, result: dict) -> BookRecord:
    """Combine form values with the relay's URLs under a fresh id."""
    return BookRecord(
        id=new_book_id(),
        title=submission.title.strip(),
        author=submission.author.strip(),
        category=submission.category.strip(),
        summary=submission.summary.strip(),
        cover=result["cover"],
        downloadUrl=result["pdf"],
    )


ProgressReporter = Callable[[str, int | None, str | None], None]


def _log_progress(message: str, percent: int | None = None, error: str | None = None) -> None:
    if error:
        logger.error(f"Upload failed: {error}")
    else:
        logger.info(f"{message} ({percent}%)")


def submit_book(
    submission: BookSubmission,
    endpoint: str,
    limits: SubmissionLimits = SubmissionLimits(),
    session: requests.Session | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    report: ProgressReporter = _log_progress,
) -> BookRecord:
    """
    Validate, upload and build the record for one submission.

    Progress is reported at 25% (uploading), 75% (processing) and 100%.
    Failures are reported with a readable message and re-raised.

    Raises:
        SubmissionError: Any validation, transport or protocol failure
    """
    try:
        validate_submission(submission, limits)

        report("Uploading files...", 25, None)
        result = upload_to_relay(
            submission.cover, submission.pdf, endpoint=endpoint, session=session, timeout=timeout
        )

        report("Processing files...", 75, None)
        record = build_book_record(submission, result)

        report("Upload complete!", 100, None)
        return record

    except SubmissionError as e:
        report("Upload failed", None, f"An error occurred: {e}")
        raise
