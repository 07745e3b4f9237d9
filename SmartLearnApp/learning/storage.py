"""Artifact store boundary for uploaded submission files.

The workflow only ever keeps an opaque reference to a stored file; bytes live
in whatever Django storage backend is configured.
"""

import logging
from pathlib import PurePosixPath
from typing import Any, Protocol

from django.core.files.storage import Storage, default_storage
from django.utils import timezone
from django.utils.module_loading import import_string

from SmartLearnApp.core.conf import get_setting
from SmartLearnApp.core.exceptions import InfrastructureError
from SmartLearnApp.core.validators import artifact_extension

logger = logging.getLogger(__name__)


class ArtifactStore(Protocol):
    """Protocol defining the interface for storing submission artifacts."""

    def store(self, principal_id: int, assignment_id: int, file: Any) -> str:
        """Persist file and return an opaque artifact reference."""
        ...

    def resolve(self, artifact_ref: str) -> str:
        """Return a downloadable URL for an artifact reference."""
        ...

    def owns(self, principal_id: int, assignment_id: int, artifact_ref: str) -> bool:
        """True if artifact_ref was stored for this principal and assignment."""
        ...


class DefaultStorageArtifactStore:
    """Stores artifacts through a Django storage backend (``default_storage`` by default)."""

    prefix = "submissions"

    def __init__(self, storage: Storage | None = None) -> None:
        self.storage = storage or default_storage

    def scope(self, principal_id: int, assignment_id: int) -> str:
        return f"{self.prefix}/{principal_id}/{assignment_id}/"

    def build_name(self, principal_id: int, assignment_id: int, file: Any) -> str:
        stamp = int(timezone.now().timestamp() * 1000)
        ext = artifact_extension(file)
        suffix = f".{ext}" if ext else ""
        return f"{self.scope(principal_id, assignment_id)}{stamp}{suffix}"

    def store(self, principal_id: int, assignment_id: int, file: Any) -> str:
        name = self.build_name(principal_id, assignment_id, file)
        try:
            saved = self.storage.save(name, file)
        except OSError as exc:
            logger.exception("Artifact store failed to save %s", name)
            raise InfrastructureError("File storage is unavailable; retry the upload.") from exc
        logger.info("Stored artifact %s for principal %s", saved, principal_id)
        return saved

    def resolve(self, artifact_ref: str) -> str:
        return self.storage.url(artifact_ref)

    def owns(self, principal_id: int, assignment_id: int, artifact_ref: str) -> bool:
        if not artifact_ref.startswith(self.scope(principal_id, assignment_id)):
            return False
        if ".." in PurePosixPath(artifact_ref).parts:
            return False
        try:
            return self.storage.exists(artifact_ref)
        except OSError as exc:
            logger.exception("Artifact store failed to look up %s", artifact_ref)
            raise InfrastructureError("File storage is unavailable; retry the submission.") from exc


def get_artifact_store() -> ArtifactStore:
    """Instantiate the store configured in ``SMARTLEARN['ARTIFACT_STORE']``."""
    return import_string(get_setting("ARTIFACT_STORE"))()
