"""Credential gate: basic-auth and bearer-token identity resolution."""

from __future__ import annotations

import base64
import binascii
import logging
import secrets
from dataclasses import dataclass
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import settings

logger = logging.getLogger("movienight.core.security")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass(frozen=True, slots=True)
class BasicCredentials:
    username: str
    password: str


@dataclass(frozen=True, slots=True)
class Identity:
    """Authenticated caller; the basic-auth variant always yields the same one."""
    id: str
    email: str | None
    username: str | None = None


def parse_authorization_header(header_value: str | None) -> Optional[BasicCredentials]:
    """Decode a `Basic` authorization header into credentials."""
    if not header_value:
        return None
    scheme, _, encoded = header_value.strip().partition(" ")
    encoded = encoded.strip()
    if scheme.lower() != "basic" or not encoded:
        return None
    try:
        decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        logger.warning("Failed to decode basic authorization header")
        return None
    username, separator, password = decoded.partition(":")
    if not separator:
        return None
    return BasicCredentials(username=username, password=password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against a stored hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password using the configured context."""
    return pwd_context.hash(password)


def _password_matches(candidate: str) -> bool:
    if settings.basic_auth_password_hash:
        return verify_password(candidate, settings.basic_auth_password_hash)
    return secrets.compare_digest(candidate.encode("utf-8"), settings.basic_auth_password.encode("utf-8"))


def identity_from_credentials(credentials: BasicCredentials | None) -> Optional[Identity]:
    """Map the one configured username/password pair to the fixed identity."""
    if not credentials:
        return None
    if not secrets.compare_digest(
        credentials.username.encode("utf-8"), settings.basic_auth_user.encode("utf-8")
    ):
        return None
    if not _password_matches(credentials.password):
        return None
    return Identity(
        id=settings.basic_auth_default_user_id,
        email=settings.basic_auth_default_email,
        username=credentials.username,
    )


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode an identity-provider JWT and return its claims if valid."""
    if not settings.jwt_secret_key:
        return None
    options = {"verify_aud": settings.jwt_audience is not None}
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options=options,
        )
    except JWTError:
        return None


def identity_from_token(token: str) -> Optional[Identity]:
    claims = decode_token(token)
    if not claims or not claims.get("sub"):
        return None
    return Identity(id=str(claims["sub"]), email=claims.get("email"))


def authenticate(header_value: str | None) -> Optional[Identity]:
    """Resolve an Authorization header into an identity, or None when invalid or absent."""
    if not header_value:
        return None
    scheme, _, rest = header_value.strip().partition(" ")
    if scheme.lower() == "bearer" and rest.strip():
        return identity_from_token(rest.strip())
    return identity_from_credentials(parse_authorization_header(header_value))


def challenge_headers() -> dict[str, str]:
    """Headers for a 401 response asking the client for credentials."""
    return {"WWW-Authenticate": f'Basic realm="{settings.basic_auth_realm}"'}
