from django.apps import AppConfig

class CoursesConfig(AppConfig):
    """AppConfig for the course registry and enrollment ledger."""
    default_auto_field = "django.db.models.BigAutoField"
    name = "SmartLearnApp.courses"
