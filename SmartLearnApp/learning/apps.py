"""Learning app configuration."""

from django.apps import AppConfig

class LearningConfig(AppConfig):
    """AppConfig for the learning domain (assignments, submissions, grading)."""
    default_auto_field = "django.db.models.BigAutoField"
    name = "SmartLearnApp.learning"
