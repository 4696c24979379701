"""
Tenant scoping guard.

Pure decision functions turn (AuthContext, target store) into a Decision;
the ``authorize_*`` / ``resolve_*`` wrappers raise the matching domain error.
Every resource type goes through the same entry points.

Client-supplied store ids are honoured only for SUPER_ADMIN. Everyone else
is always scoped to the store bound to their own principal, whatever the
payload says.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from .errors import AuthorizationDenied, ConfigurationInvalid, Unauthenticated, ValidationFailed
from .principal import AuthContext, Role, has_admin_capability, has_super_capability

logger = logging.getLogger("storehub.guard")

UNAUTHENTICATED = 'UNAUTHENTICATED'
FORBIDDEN = 'FORBIDDEN'
STORE_MISMATCH = 'STORE_MISMATCH'
STORE_BINDING_MISSING = 'STORE_BINDING_MISSING'
STORE_REQUIRED = 'STORE_REQUIRED'

_ERRORS = {
    UNAUTHENTICATED: Unauthenticated,
    FORBIDDEN: AuthorizationDenied,
    STORE_MISMATCH: AuthorizationDenied,
    STORE_BINDING_MISSING: ConfigurationInvalid,
    STORE_REQUIRED: ValidationFailed,
}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None
    message: str = ''
    # Effective store for listing/creation. None on an allowed listing means "all stores".
    store_id: Optional[str] = None


def _allow(store_id: Optional[str] = None) -> Decision:
    return Decision(allowed=True, store_id=store_id)


def _deny(reason: str, message: str) -> Decision:
    return Decision(allowed=False, reason=reason, message=message)


def _normalize(store_id) -> Optional[str]:
    """Canonical text form of a store id; UUIDs compare equal whatever their case or dashes."""
    if store_id is None:
        return None
    value = str(store_id).strip()
    if not value:
        return None
    try:
        return str(uuid.UUID(value))
    except ValueError:
        return value


def check_admin(ctx: Optional[AuthContext]) -> Decision:
    if ctx is None:
        return _deny(UNAUTHENTICATED, 'Unauthorized')
    if not has_admin_capability(ctx):
        return _deny(FORBIDDEN, 'Forbidden')
    return _allow(_normalize(ctx.store_id))


def check_super(ctx: Optional[AuthContext]) -> Decision:
    if ctx is None:
        return _deny(UNAUTHENTICATED, 'Unauthorized')
    if not has_super_capability(ctx):
        return _deny(FORBIDDEN, 'Forbidden')
    return _allow()


def check_resource_access(ctx: Optional[AuthContext], resource_store_id, resource: str = 'resource') -> Decision:
    """Decide whether ``ctx`` may read or mutate one resource owned by ``resource_store_id``."""
    decision = check_admin(ctx)
    if not decision.allowed:
        return decision

    resource_store_id = _normalize(resource_store_id)
    if ctx.role == Role.SUPER_ADMIN:
        return _allow(resource_store_id)

    own_store_id = _normalize(ctx.store_id)
    if own_store_id is None or own_store_id != resource_store_id:
        return _deny(STORE_MISMATCH, f'You do not own this {resource}/store.')
    return _allow(resource_store_id)


def check_listing_scope(ctx: Optional[AuthContext], requested_store_id=None) -> Decision:
    """Effective store filter for an admin listing. SUPER_ADMIN may ask for one store or none."""
    decision = check_admin(ctx)
    if not decision.allowed:
        return decision

    if ctx.role == Role.SUPER_ADMIN:
        return _allow(_normalize(requested_store_id))

    if _normalize(ctx.store_id) is None:
        return _deny(STORE_BINDING_MISSING, 'This user is not associated with a store.')
    return _allow(_normalize(ctx.store_id))


def check_creation_scope(ctx: Optional[AuthContext], requested_store_id=None, resource: str = 'resource') -> Decision:
    """Store a new record is created in. Only SUPER_ADMIN's requested store is ever used."""
    decision = check_admin(ctx)
    if not decision.allowed:
        return decision

    if ctx.role == Role.SUPER_ADMIN:
        requested = _normalize(requested_store_id)
        if requested is None:
            return _deny(STORE_REQUIRED, f'SUPER_ADMIN must provide storeId for {resource}.')
        return _allow(requested)

    if _normalize(ctx.store_id) is None:
        return _deny(STORE_BINDING_MISSING, 'This user is not associated with a store.')
    return _allow(_normalize(ctx.store_id))


def enforce(decision: Decision, ctx: Optional[AuthContext] = None) -> Decision:
    if decision.allowed:
        return decision

    if decision.reason != UNAUTHENTICATED:
        logger.info(
            "Denied %s for principal=%s role=%s store=%s",
            decision.reason,
            ctx.id if ctx else None,
            ctx.role.value if ctx else None,
            ctx.store_id if ctx else None,
        )
    raise _ERRORS[decision.reason](decision.message)


def require_admin(ctx: Optional[AuthContext]) -> AuthContext:
    enforce(check_admin(ctx), ctx)
    return ctx


def require_super(ctx: Optional[AuthContext]) -> AuthContext:
    enforce(check_super(ctx), ctx)
    return ctx


def authorize_resource(ctx: Optional[AuthContext], resource_store_id, resource: str = 'resource') -> None:
    enforce(check_resource_access(ctx, resource_store_id, resource), ctx)


def resolve_listing_store(ctx: Optional[AuthContext], requested_store_id=None) -> Optional[str]:
    return enforce(check_listing_scope(ctx, requested_store_id), ctx).store_id


def resolve_creation_store(ctx: Optional[AuthContext], requested_store_id=None, resource: str = 'resource') -> str:
    return enforce(check_creation_scope(ctx, requested_store_id, resource), ctx).store_id
