"""Access to the ``SMARTLEARN`` settings dict with defaults."""

from typing import Any

from django.conf import settings

DEFAULTS: dict[str, Any] = {
    "ALLOW_LATE_SUBMISSIONS": True,
    "MAX_ARTIFACT_MB": 10,
    "ARTIFACT_EXTENSIONS": ("pdf", "doc", "docx", "txt", "zip", "rar"),
    "ARTIFACT_STORE": "SmartLearnApp.learning.storage.DefaultStorageArtifactStore",
}


def get_setting(name: str) -> Any:
    """Return ``settings.SMARTLEARN[name]``, falling back to the built-in default.

    Read on every call so that overrides made at runtime (tests, settings
    reloads) take effect immediately.
    """
    overrides = getattr(settings, "SMARTLEARN", None) or {}
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]
