"""
Function handlers for the book upload relay

This module serves as the entry point for the serverless function.
It re-exports handlers from their respective modules for function configuration.

Architecture:
- Browser form -> upload_handler (multipart POST)
- upload_handler -> Deploy API: create deploy with path -> sha1 manifest
- upload_handler -> Deploy API: PUT each required file
- upload_handler -> Browser form: public cover/pdf URLs

Handlers:
1. upload_handler: Publishes a cover image and PDF and returns their public URLs
"""

# Re-export handlers for function configuration
# Support both local development (relay_backend.X) and flat deployment (X)
try:
    # Flat deployment (files are in root, not in relay_backend/)
    from handlers.upload_handlers import relay_upload, upload_handler
except ImportError:
    # Local development / testing (with relay_backend package structure)
    from relay_backend.handlers.upload_handlers import relay_upload, upload_handler

# Make handlers available at module level
__all__ = [
    "upload_handler",
    "relay_upload",
]
