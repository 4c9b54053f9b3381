"""
Function handler for the book upload relay

Accepts a multipart POST carrying a cover image and a PDF, republishes both
through the hosting provider's deploy API and returns their public URLs.
"""

from __future__ import annotations

import logging
import time

# Support both Lambda deployment and local development
try:
    # Lambda deployment
    from config import ConfigurationError, RelayConfig, load_relay_config
    from utils.deploy_api import DeployApiError, DeployClient
    from utils.manifest import ManifestError
    from utils.multipart import MultipartError, PayloadTooLargeError, parse_multipart
    from utils.publish import PublishSession
    from utils.response import (
        api_response,
        error_response,
        preflight_response,
        serialize_publish_result,
    )
    from utils.validation import decode_event_body, get_multipart_content_type
except ImportError:
    # Local development
    from relay_backend.config import ConfigurationError, RelayConfig, load_relay_config
    from relay_backend.utils.deploy_api import DeployApiError, DeployClient
    from relay_backend.utils.manifest import ManifestError
    from relay_backend.utils.multipart import MultipartError, PayloadTooLargeError, parse_multipart
    from relay_backend.utils.publish import PublishSession
    from relay_backend.utils.response import (
        api_response,
        error_response,
        preflight_response,
        serialize_publish_result,
    )
    from relay_backend.utils.validation import decode_event_body, get_multipart_content_type

logger = logging.getLogger()
logger.setLevel(logging.INFO)


def relay_upload(
    event: dict, relay_config: RelayConfig, deploy_client: DeployClient | None = None
) -> dict:
    """
    Parse a multipart upload event and publish its files.

    Args:
        event: Function event with a multipart body
        relay_config: Limits, allowed types and deploy credentials
        deploy_client: Client for the deploy API (built from relay_config if omitted)

    Returns:
        dict: Function response (200 with URLs, 400 on bad input, 500 on deploy failure)
    """
    started = time.monotonic()
    client = deploy_client or DeployClient.from_config(relay_config)
    session = PublishSession(client)

    try:
        content_type, error = get_multipart_content_type(event)
        if error:
            session.fail()
            return error

        body, error = decode_event_body(event)
        if error:
            session.fail()
            return error

        try:
            parsed = parse_multipart(
                body,
                content_type,
                allowed_types=relay_config.allowed_types,
                max_bytes=relay_config.max_request_bytes,
                chunk_size=relay_config.chunk_size,
            )
        except PayloadTooLargeError as e:
            logger.warning(f"Upload aborted: {str(e)}")
            session.fail()
            return error_response(400, str(e))
        except MultipartError as e:
            logger.warning(f"Invalid multipart body: {str(e)}")
            session.fail()
            return error_response(400, str(e))

        if parsed.deferred_error:
            session.fail()
            return error_response(400, parsed.deferred_error)

        try:
            result = session.run(parsed.parts)
        except ManifestError as e:
            logger.warning(f"Rejected upload: {str(e)}")
            return error_response(400, str(e))
        except DeployApiError as e:
            logger.error(f"Deploy API error: {e.message} ({e.status_code})")
            return error_response(500, e.message, path=e.path, details=e.details)

        logger.info(f"Published cover and pdf in deploy {result.deploy_id}")
        return api_response(200, serialize_publish_result(result))

    except Exception as e:
        logger.error(f"Server upload exception: {str(e)}", exc_info=True)
        session.fail()
        return error_response(500, str(e) or "Upload failed")

    finally:
        if deploy_client is None:
            client.close()
        elapsed = time.monotonic() - started
        if elapsed > relay_config.soft_duration_seconds:
            logger.warning(
                f"Upload took {elapsed:.1f}s, over the {relay_config.soft_duration_seconds}s guideline"
            )


def upload_handler(event, context):
    """
    Function handler for book uploads.

    Expects a multipart/form-data POST with parts:
    - cover: Cover image (image/jpeg, image/png or image/jpg)
    - pdf: Book file (application/pdf)

    Returns JSON {success, cover, pdf, deploy} with public URLs.
    """
    method = (event.get("httpMethod") or "").upper()
    logger.info(f"upload_handler invoked ({method})")

    if method == "OPTIONS":
        return preflight_response()

    if method != "POST":
        return error_response(405, "Method Not Allowed")

    try:
        relay_config = load_relay_config()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {str(e)}")
        return error_response(500, str(e))

    return relay_upload(event, relay_config)
