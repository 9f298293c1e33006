import logging
import secrets
import time
from typing import Optional

from authlib.jose import JoseError, JsonWebToken

from bookshelf.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Raised when a bearer token is missing, malformed, forged or expired."""


def _jwt_for(config: Settings) -> JsonWebToken:
    # Only the configured algorithm is accepted; "none" and others are rejected
    return JsonWebToken([config.jwt_algorithm])


def check_credentials(username: str, password: str, config: Optional[Settings] = None) -> bool:
    """Compare a login attempt against the configured account."""
    config = config or default_settings
    user_ok = secrets.compare_digest(username.encode(), config.auth_username.encode())
    password_ok = secrets.compare_digest(password.encode(), config.auth_password.encode())
    return user_ok and password_ok


def create_access_token(subject: str, config: Optional[Settings] = None, expires_in_seconds: Optional[int] = None) -> str:
    """Issue a signed JWT for ``subject``.

    Args:
        subject: Subject (sub) claim, the username that logged in
        config: Settings holding the signing key and algorithm
        expires_in_seconds: Token lifetime; defaults to the configured minutes

    Returns:
        Signed JWT token string
    """
    config = config or default_settings
    if expires_in_seconds is None:
        expires_in_seconds = config.jwt_expiration_minutes * 60

    now = int(time.time())
    payload = {
        "iss": config.app_name,
        "sub": subject,
        "iat": now,
        "nbf": now,
        "exp": now + expires_in_seconds,
    }
    header = {"alg": config.jwt_algorithm, "typ": "JWT"}
    token = _jwt_for(config).encode(header, payload, config.jwt_secret_key)
    # authlib returns bytes
    return token.decode() if isinstance(token, bytes) else token


def verify_access_token(token: str, config: Optional[Settings] = None) -> str:
    """Validate ``token`` and return its subject. Raises ``AuthError`` otherwise."""
    config = config or default_settings
    if not token:
        raise AuthError("Missing bearer token")
    try:
        claims = _jwt_for(config).decode(
            token,
            config.jwt_secret_key,
            claims_options={
                "iss": {"essential": True, "value": config.app_name},
                "sub": {"essential": True},
                "exp": {"essential": True},
            },
        )
        claims.validate()
    except JoseError as e:
        logger.debug(f"Rejected bearer token: {e}")
        raise AuthError(f"Invalid token: {e}") from e
    except ValueError as e:
        # malformed base64/JSON segments surface as ValueError subclasses
        raise AuthError("Invalid token") from e
    return claims["sub"]
