"""
Session/Token Issuer
====================

Issues and validates signed, time-limited bearer tokens (JWT via PyJWT).

Claims:
    user_id  - primary key of the user
    role     - role at issue time (the gate re-reads the role from the DB)
    iat/exp  - issue and expiry timestamps

A decoded token is wrapped in a SessionCredential, which DRF exposes as
request.auth for the rest of the request.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone as dt_timezone

import jwt
from django.conf import settings

from portfolio.errors import AuthenticationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionCredential:
    """The explicit, expiring credential carried through request context."""
    user_id: int
    role: str
    expires_at: datetime


def issue_token(user, expires_delta: timedelta = None) -> str:
    """Create a signed token for the given user."""
    now = datetime.now(dt_timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(hours=settings.JWT_EXPIRATION_HOURS)

    payload = {
        'user_id': user.id,
        'role': user.role,
        'iat': now,
        'exp': now + expires_delta,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> SessionCredential:
    """
    Verify the signature and expiry of a token.

    Raises AuthenticationError with a reason the client can show.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            options={'require': ['exp', 'user_id']},
        )
    except jwt.ExpiredSignatureError:
        logger.warning("Token rejected: expired")
        raise AuthenticationError('Token has expired')
    except jwt.InvalidTokenError as e:
        logger.warning(f"Token rejected: {e}")
        raise AuthenticationError('Invalid token')

    try:
        user_id = int(payload['user_id'])
    except (TypeError, ValueError):
        logger.warning("Token rejected: malformed user_id claim")
        raise AuthenticationError('Invalid token')

    return SessionCredential(
        user_id=user_id,
        role=payload.get('role', ''),
        expires_at=datetime.fromtimestamp(payload['exp'], tz=dt_timezone.utc),
    )
