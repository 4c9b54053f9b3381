"""
Deploy API client for the Upload Relay

Wraps the hosting provider's two-phase publish protocol:
1. POST /sites/{site_id}/deploys with a path -> sha1 manifest
2. PUT each file the provider reports as required
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)

# Field names seen across provider API revisions, in order of preference
REQUIRED_FIELDS = ("required", "upload_required")
BASE_URL_FIELDS = ("deploy_ssl_url", "deploy_url", "ssl_url", "url")
DEPLOY_ID_FIELDS = ("deploy_id", "id")


class DeployApiError(Exception):
    """Raised when the deploy API rejects a request or cannot be reached."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: str | None = None,
        path: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details
        self.path = path


@dataclass
class Deploy:
    deploy_id: str | None
    base_url: str
    required: dict[str, str] = field(default_factory=dict)  # path -> upload URL


def _first_present(data: dict, names: tuple[str, ...]) -> Any:
    for name in names:
        if data.get(name):
            return data[name]
    return None


def file_upload_url(api_url: str, deploy_id: str, path: str) -> str:
    """Provider endpoint for uploading a single deploy file."""
    return f"{api_url}/deploys/{quote(deploy_id, safe='')}/files/{quote(path.lstrip('/'))}"


def parse_deploy_response(data: dict, manifest_files: dict[str, str], api_url: str) -> Deploy:
    """
    Normalize a create-deploy response.

    The required set may be a mapping of path -> upload URL, or a list of
    SHA-1 digests which are mapped back to manifest paths.

    Args:
        data: Decoded JSON response
        manifest_files: Manifest sent with the request (path -> sha1)
        api_url: API base used to build per-file upload URLs

    Returns:
        Deploy: Normalized deploy information

    Raises:
        DeployApiError: If the response is not an object or carries no usable base URL
    """
    if not isinstance(data, dict):
        raise DeployApiError("Unexpected deploy response")

    deploy_id = _first_present(data, DEPLOY_ID_FIELDS)
    base_url = _first_present(data, BASE_URL_FIELDS)
    if not base_url:
        raise DeployApiError("Deploy response did not include a site URL")

    raw_required = _first_present(data, REQUIRED_FIELDS) or {}
    required: dict[str, str] = {}

    if isinstance(raw_required, dict):
        required = {str(path): str(url) for path, url in raw_required.items()}
    elif isinstance(raw_required, list):
        if not deploy_id:
            raise DeployApiError("Deploy response listed required files without a deploy id")
        digests = set(raw_required)
        for path, sha in manifest_files.items():
            if sha in digests:
                required[path] = file_upload_url(api_url, str(deploy_id), path)
    else:
        raise DeployApiError(f"Unexpected required-files format: {type(raw_required).__name__}")

    return Deploy(
        deploy_id=str(deploy_id) if deploy_id is not None else None,
        base_url=str(base_url).rstrip("/"),
        required=required,
    )


class DeployClient:
    """HTTP client for the deploy API of a single site."""

    def __init__(
        self,
        auth_token: str,
        site_id: str,
        api_url: str,
        timeout: float = 60,
        session: requests.Session | None = None,
    ):
        self.auth_token = auth_token
        self.site_id = site_id
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._owns_session = session is None
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, relay_config, session: requests.Session | None = None) -> DeployClient:
        return cls(
            auth_token=relay_config.auth_token,
            site_id=relay_config.site_id,
            api_url=relay_config.api_url,
            timeout=relay_config.request_timeout,
            session=session,
        )

    def create_deploy(self, manifest_files: dict[str, str]) -> Deploy:
        """
        Create a deploy carrying the manifest.

        Args:
            manifest_files: Mapping of path -> sha1

        Returns:
            Deploy: Deploy id, base URL and required uploads

        Raises:
            DeployApiError: On network failure, non-2xx status or bad JSON
        """
        url = f"{self.api_url}/sites/{quote(self.site_id, safe='')}/deploys"
        logger.info(f"Creating deploy with {len(manifest_files)} file(s)")

        try:
            response = self.session.post(
                url,
                json={"files": manifest_files},
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.auth_token}",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise DeployApiError("Failed to create deploy", details=str(e)) from e

        if not response.ok:
            logger.error(f"Failed to create deploy: {response.status_code} {response.text}")
            raise DeployApiError(
                "Failed to create deploy",
                status_code=response.status_code,
                details=response.text,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise DeployApiError("Invalid JSON received from deploy API") from e

        deploy = parse_deploy_response(data, manifest_files, self.api_url)
        logger.info(
            f"Created deploy {deploy.deploy_id}: {len(deploy.required)} file(s) required"
        )
        return deploy

    def upload_file(self, path: str, upload_url: str, data: bytes) -> None:
        """
        Upload raw file bytes for one required path.

        Raises:
            DeployApiError: On network failure or non-2xx status (carries the path)
        """
        logger.info(f"Uploading {path} ({len(data)} bytes)")

        try:
            response = self.session.put(
                upload_url,
                data=data,
                headers={
                    "Content-Type": "application/octet-stream",
                    "Authorization": f"Bearer {self.auth_token}",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise DeployApiError("Failed to upload file", details=str(e), path=path) from e

        if not response.ok:
            logger.error(f"Failed to upload file: {path} {response.status_code} {response.text}")
            raise DeployApiError(
                "Failed to upload file",
                status_code=response.status_code,
                details=response.text,
                path=path,
            )

    def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session:
            self.session.close()
