"""Bearer-token verification and ownership checks."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from stylist_app.errors import AuthenticationError, AuthorizationError
from stylist_app.logging_config import get_logger, log_event

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class AuthenticatedUser:
    uid: str
    email: Optional[str] = None


class TokenVerifier(ABC):
    """Verifies an ID token and returns the decoded identity."""

    @abstractmethod
    def verify(self, token: str) -> AuthenticatedUser:
        """Raise ``AuthenticationError`` for any token that does not verify."""


class FirebaseTokenVerifier(TokenVerifier):
    """Verify Firebase ID tokens with firebase_admin.auth."""

    def __init__(self, app: Any = None) -> None:
        self.app = app

    def verify(self, token: str) -> AuthenticatedUser:
        from firebase_admin import auth

        try:
            decoded = auth.verify_id_token(token, app=self.app)
        except auth.ExpiredIdTokenError as exc:
            log_event(LOGGER, logging.WARNING, "token_expired", error=str(exc))
            raise AuthenticationError("Token has expired") from exc
        except (auth.InvalidIdTokenError, ValueError) as exc:
            log_event(LOGGER, logging.WARNING, "token_invalid", error=str(exc))
            raise AuthenticationError("Invalid token format") from exc
        except Exception as exc:
            log_event(LOGGER, logging.ERROR, "token_verification_failed", exc_info=True)
            raise AuthenticationError("Token verification failed") from exc
        return AuthenticatedUser(uid=decoded["uid"], email=decoded.get("email"))


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Return the token from an ``Authorization: Bearer <token>`` header."""

    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Missing or invalid authorization header")
    token = authorization[len("Bearer "):].strip()
    if not token:
        raise AuthenticationError("No token provided")
    return token


def verify_ownership(user: AuthenticatedUser, owner_id: Optional[str]) -> None:
    """Strict equality between the caller's uid and the resource owner."""

    if user.uid != owner_id:
        log_event(LOGGER, logging.WARNING, "ownership_denied", uid=user.uid, owner_id=owner_id)
        raise AuthorizationError()


__all__ = [
    "AuthenticatedUser",
    "TokenVerifier",
    "FirebaseTokenVerifier",
    "extract_bearer_token",
    "verify_ownership",
]
