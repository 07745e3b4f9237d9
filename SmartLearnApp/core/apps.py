"""Core app configuration and startup checks (workflow policy settings)."""

from django.apps import AppConfig
from django.core.checks import Error, register
from django.utils.module_loading import import_string

from SmartLearnApp.core.conf import get_setting

class CoreConfig(AppConfig):
    """AppConfig registering a system check for the SMARTLEARN settings."""
    default_auto_field = "django.db.models.BigAutoField"
    name = "SmartLearnApp.core"

    def ready(self):
        """Register a Django system check validating workflow policy values."""
        @register()
        def smartlearn_settings_check(app_configs, **kwargs):
            errors = []
            max_mb = get_setting("MAX_ARTIFACT_MB")
            if isinstance(max_mb, bool) or not isinstance(max_mb, int) or max_mb < 1:
                errors.append(Error("SMARTLEARN['MAX_ARTIFACT_MB'] must be a positive integer.", id="smartlearn.E001"))
            if not get_setting("ARTIFACT_EXTENSIONS"):
                errors.append(Error("SMARTLEARN['ARTIFACT_EXTENSIONS'] must not be empty.", id="smartlearn.E002"))
            try:
                import_string(get_setting("ARTIFACT_STORE"))
            except ImportError as exc:
                errors.append(Error(f"SMARTLEARN['ARTIFACT_STORE'] cannot be imported: {exc}", id="smartlearn.E003"))
            return errors
