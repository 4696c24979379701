import logging
from typing import Optional

import jwt
from django.conf import settings

from .principal import AuthContext, MalformedClaims

logger = logging.getLogger("storehub.auth")

BEARER_PREFIX = 'Bearer '


def verify_token(token: str) -> Optional[AuthContext]:
    """Verify a bearer token and return its principal, or None when it cannot be trusted."""
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.InvalidTokenError as exc:
        logger.info("Rejected bearer token: %s", exc.__class__.__name__)
        return None

    try:
        return AuthContext.from_claims(claims)
    except MalformedClaims as exc:
        logger.info("Rejected bearer token: %s", exc)
        return None


def authenticate(request) -> Optional[AuthContext]:
    """
    Produce the request principal from the Authorization header.

    Called explicitly by every view; the result is passed on as a plain
    argument. A missing or invalid credential yields None, and it is up to
    the guard to decide whether the operation tolerates that.
    """
    header = request.META.get('HTTP_AUTHORIZATION', '')
    if not header.startswith(BEARER_PREFIX):
        return None

    token = header[len(BEARER_PREFIX):].strip()
    if not token:
        return None

    return verify_token(token)
