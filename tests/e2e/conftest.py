"""
Pytest configuration for E2E tests against a deployed relay.
"""

import os

import pytest


@pytest.fixture(scope="session")
def relay_url():
    """Relay function URL from environment variable."""
    url = os.getenv("RELAY_URL")
    if not url:
        pytest.skip("Relay URL not provided. Set RELAY_URL to run E2E tests.")
    return url


@pytest.fixture(scope="session")
def allow_publish():
    """Publishing creates a real deploy, so it is opt-in."""
    if os.getenv("RELAY_E2E_PUBLISH") != "1":
        pytest.skip("Set RELAY_E2E_PUBLISH=1 to publish test files to the live site.")
    return True


@pytest.fixture
def sample_files(tmp_path):
    """Minimal cover and PDF files on disk."""
    cover = tmp_path / "e2e-cover.png"
    cover.write_bytes(
        b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
        b"\x08\x06\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f"
        b"\x00\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
    )
    pdf = tmp_path / "e2e-book.pdf"
    pdf.write_bytes(b"%PDF-1.4\n1 0 obj<<>>endobj\ntrailer<<>>\n%%EOF\n")
    return {"cover": str(cover), "pdf": str(pdf)}
