from django.apps import AppConfig

class UsersConfig(AppConfig):
    """Profile directory: users with a fixed teacher/student role."""
    default_auto_field = "django.db.models.BigAutoField"
    name = "SmartLearnApp.users"
