"""Identity provider boundary.

Authentication itself is delegated to Django auth and SimpleJWT; the
workflow only needs the current principal and a way to end its session.
"""

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from SmartLearnApp.core.exceptions import InvalidInput
from SmartLearnApp.users.directory import get_profile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    """Authenticated identity with its email-verification flag."""
    id: int
    email_verified: bool


class IdentityProvider(Protocol):
    """Protocol defining the interface consumed from the identity provider."""

    def current_principal(self, request: Any) -> Principal | None:
        ...

    def sign_out(self, refresh_token: str) -> None:
        ...


class JWTIdentityProvider:
    """Principal from the request's authenticated user; sign-out blacklists the refresh token."""

    def current_principal(self, request: Any) -> Principal | None:
        user = getattr(request, "user", None)
        if user is None or not user.is_authenticated:
            return None
        return Principal(id=user.pk, email_verified=bool(user.email_verified))

    def sign_out(self, refresh_token: str) -> None:
        try:
            RefreshToken(refresh_token).blacklist()
        except TokenError as exc:
            raise InvalidInput(f"Invalid refresh token: {exc}") from exc
        logger.info("Refresh token blacklisted on sign-out")


identity_provider: IdentityProvider = JWTIdentityProvider()


def resolve_caller(request: Any):
    """Profile of the current principal, or None when unauthenticated."""
    principal = identity_provider.current_principal(request)
    if principal is None:
        return None
    return get_profile(principal.id)
