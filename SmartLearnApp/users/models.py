from django.contrib.auth.models import AbstractUser
from django.db import models

from SmartLearnApp.core.choices import UserRole
from SmartLearnApp.core.exceptions import InvalidInput

class User(AbstractUser):
    """Profile of an authenticated principal.

    Role is fixed at creation; only ``name`` and ``avatar_url`` are meant to
    change afterwards (see ``users.directory.update_profile``).
    """
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=150, blank=True)
    role = models.CharField(max_length=16, choices=UserRole.choices)
    avatar_url = models.URLField(blank=True)
    email_verified = models.BooleanField(default=False)
    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["username"]

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_role = instance.__dict__.get("role")
        return instance

    @property
    def user_role(self) -> UserRole:
        return UserRole(self.role)

    @property
    def display_name(self) -> str:
        return self.name or self.email

    def save(self, *args, **kwargs):
        loaded = getattr(self, "_loaded_role", None)
        if loaded is not None and self.role != loaded:
            raise InvalidInput("Role is fixed at creation and cannot be changed.")
        super().save(*args, **kwargs)
        self._loaded_role = self.role

    def __str__(self) -> str:
        return f"{self.display_name} ({self.role})"
