#!/usr/bin/env python3
"""
Submit a book (cover image + PDF) through the upload relay.

This script:
1. Validates the metadata and files locally
2. Uploads both files to the relay function
3. Prints the generated book record as JSON

Usage:
    python scripts/submit-book.py --title "Title" --author "Author" \\
        --category "Fiction" --summary "..." \\
        --cover cover.jpg --pdf book.pdf \\
        --endpoint https://example.netlify.app/.netlify/functions/upload
"""

import argparse
import json
import os
import sys

from book_client.form import BookFile, BookSubmission, submit_book
from book_client.relay_client import SubmissionError


def print_progress(message, percent=None, error=None):
    if error:
        print(f"  ✗ {error}", file=sys.stderr)
    else:
        print(f"  [{percent:3d}%] {message}")


def main():
    parser = argparse.ArgumentParser(description="Submit a book through the upload relay")
    parser.add_argument("--title", required=True)
    parser.add_argument("--author", required=True)
    parser.add_argument("--category", required=True)
    parser.add_argument("--summary", required=True)
    parser.add_argument("--cover", required=True, help="Path to the cover image (JPG/PNG)")
    parser.add_argument("--pdf", required=True, help="Path to the book PDF")
    parser.add_argument(
        "--endpoint",
        default=os.environ.get("RELAY_URL"),
        help="Relay URL (default: $RELAY_URL)",
    )
    args = parser.parse_args()

    if not args.endpoint:
        parser.error("--endpoint is required when RELAY_URL is not set")

    for path in (args.cover, args.pdf):
        if not os.path.isfile(path):
            print(f"Error: file not found: {path}", file=sys.stderr)
            sys.exit(1)

    submission = BookSubmission(
        title=args.title,
        author=args.author,
        category=args.category,
        summary=args.summary,
        cover=BookFile.from_path(args.cover),
        pdf=BookFile.from_path(args.pdf),
    )

    try:
        record = submit_book(submission, endpoint=args.endpoint, report=print_progress)
    except SubmissionError:
        sys.exit(1)

    print(json.dumps(record.to_dict(), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
