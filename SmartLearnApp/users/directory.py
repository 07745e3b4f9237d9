"""Profile directory: resolve principals to profiles and edit display attributes."""

import logging

from SmartLearnApp.core.exceptions import ProfileNotFound
from SmartLearnApp.users.models import User

logger = logging.getLogger(__name__)


def get_profile(principal_id: int) -> User:
    """Return the profile for a principal id or raise ProfileNotFound."""
    try:
        return User.objects.get(pk=principal_id)
    except User.DoesNotExist:
        raise ProfileNotFound(f"No profile for principal {principal_id}.")


def update_profile(profile: User, *, name: str | None = None, avatar_url: str | None = None) -> User:
    """Change the editable display attributes of a profile."""
    changed = []
    if name is not None:
        profile.name = name
        changed.append("name")
    if avatar_url is not None:
        profile.avatar_url = avatar_url
        changed.append("avatar_url")
    if changed:
        profile.save(update_fields=changed)
        logger.info("Profile %s updated: %s", profile.pk, ", ".join(changed))
    return profile


def mark_email_verified(email: str) -> User:
    """Record that the identity provider has verified this email address."""
    try:
        profile = User.objects.get(email__iexact=email)
    except User.DoesNotExist:
        raise ProfileNotFound(f"No profile with email {email}.")
    if not profile.email_verified:
        profile.email_verified = True
        profile.save(update_fields=["email_verified"])
        logger.info("Email verified for profile %s", profile.pk)
    return profile
