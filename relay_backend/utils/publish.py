"""
Publish workflow for the Upload Relay

PublishSession drives one request through the deploy protocol:

    PARSING -> MANIFEST_BUILT -> DEPLOY_CREATED -> FILES_UPLOADING -> COMPLETED

Any stage may fall to FAILED. Transfers are all-or-nothing: one failed
upload fails the session and no URLs are produced.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from .deploy_api import Deploy, DeployClient
from .manifest import COVER_KIND, PDF_KIND, PublishManifest, build_manifest
from .multipart import UploadedPart

logger = logging.getLogger(__name__)


class PublishState(str, Enum):
    PARSING = "parsing"
    MANIFEST_BUILT = "manifest_built"
    DEPLOY_CREATED = "deploy_created"
    FILES_UPLOADING = "files_uploading"
    COMPLETED = "completed"
    FAILED = "failed"


_TRANSITIONS: dict[PublishState, frozenset[PublishState]] = {
    PublishState.PARSING: frozenset({PublishState.MANIFEST_BUILT, PublishState.FAILED}),
    PublishState.MANIFEST_BUILT: frozenset({PublishState.DEPLOY_CREATED, PublishState.FAILED}),
    PublishState.DEPLOY_CREATED: frozenset({PublishState.FILES_UPLOADING, PublishState.FAILED}),
    PublishState.FILES_UPLOADING: frozenset({PublishState.COMPLETED, PublishState.FAILED}),
    PublishState.COMPLETED: frozenset(),
    PublishState.FAILED: frozenset(),
}


class PublishStateError(Exception):
    """Raised on an illegal state transition."""


@dataclass(frozen=True)
class PublicResult:
    cover: str
    pdf: str
    deploy_id: str | None


def public_url(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


class PublishSession:
    """State machine for a single two-phase publish."""

    def __init__(self, client: DeployClient):
        self.client = client
        self.state = PublishState.PARSING
        self.manifest: PublishManifest | None = None
        self.deploy: Deploy | None = None
        self.uploaded: list[str] = []

    def _advance(self, new_state: PublishState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise PublishStateError(
                f"Cannot move from {self.state.value} to {new_state.value}"
            )
        logger.info(f"Publish state: {self.state.value} -> {new_state.value}")
        self.state = new_state

    def fail(self) -> None:
        if self.state not in (PublishState.COMPLETED, PublishState.FAILED):
            self._advance(PublishState.FAILED)

    def build_manifest(self, parts: Iterable[UploadedPart]) -> PublishManifest:
        manifest = build_manifest(parts)
        self.manifest = manifest
        self._advance(PublishState.MANIFEST_BUILT)
        return manifest

    def create_deploy(self) -> Deploy:
        if self.state is not PublishState.MANIFEST_BUILT or self.manifest is None:
            raise PublishStateError("Manifest must be built before creating a deploy")
        self.deploy = self.client.create_deploy(self.manifest.files)
        self._advance(PublishState.DEPLOY_CREATED)
        return self.deploy

    def upload_required(self) -> list[str]:
        """
        Upload every required file known to the manifest.

        Required paths missing from the manifest are skipped.

        Returns:
            list: Paths that were transferred
        """
        if self.deploy is None or self.manifest is None:
            raise PublishStateError("Deploy must be created before uploading files")
        self._advance(PublishState.FILES_UPLOADING)

        for path, upload_url in self.deploy.required.items():
            data = self.manifest.buffers.get(path)
            if data is None:
                logger.warning(f"Deploy requested unknown path, skipping: {path}")
                continue
            self.client.upload_file(path, upload_url, data)
            self.uploaded.append(path)

        return self.uploaded

    def complete(self) -> PublicResult:
        """Build public URLs for each manifest path and finish the session."""
        if self.deploy is None or self.manifest is None:
            raise PublishStateError("Deploy must be created before completing")

        urls: dict[str, str] = {}
        for path, kind in self.manifest.kinds.items():
            urls[kind] = public_url(self.deploy.base_url, path)

        self._advance(PublishState.COMPLETED)
        return PublicResult(
            cover=urls[COVER_KIND],
            pdf=urls[PDF_KIND],
            deploy_id=self.deploy.deploy_id,
        )

    def run(self, parts: Iterable[UploadedPart]) -> PublicResult:
        """
        Run every phase in order.

        Raises:
            ManifestError: If the parts do not form a cover/pdf pair
            DeployApiError: If either deploy API phase fails
        """
        try:
            self.build_manifest(parts)
            self.create_deploy()
            self.upload_required()
            return self.complete()
        except Exception:
            self.fail()
            raise
