"""
Principal & capability model.

An AuthContext is the verified identity of one request. It is built once
from token claims, never mutated and never persisted; a request without a
verified credential has no AuthContext at all (None), which is not the same
thing as a CUSTOMER.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional


class Role(str, Enum):
    SUPER_ADMIN = 'SUPER_ADMIN'
    ADMIN = 'ADMIN'
    STAFF = 'STAFF'
    CUSTOMER = 'CUSTOMER'


# STAFF is operationally equal to ADMIN within its own store.
ADMIN_ROLES = frozenset({Role.SUPER_ADMIN, Role.ADMIN, Role.STAFF})
SUPER_ROLES = frozenset({Role.SUPER_ADMIN})


class MalformedClaims(ValueError):
    pass


@dataclass(frozen=True)
class AuthContext:
    id: str
    email: str
    role: Role
    store_id: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "AuthContext":
        """Build a context from verified token claims `{id, email, role, storeId}`."""
        try:
            principal_id = claims['id']
            email = claims['email']
            role = Role(claims['role'])
        except (KeyError, ValueError) as exc:
            raise MalformedClaims(f"Token claims are incomplete: {exc}") from exc

        if not isinstance(principal_id, str) or not principal_id or not isinstance(email, str):
            raise MalformedClaims("Token claims carry an invalid id or email")

        store_id = claims.get('storeId')
        if store_id is not None:
            store_id = str(store_id)

        return cls(id=principal_id, email=email, role=role, store_id=store_id or None)

    def to_claims(self) -> dict:
        return {
            'id': self.id,
            'email': self.email,
            'role': self.role.value,
            'storeId': self.store_id,
        }


def has_admin_capability(ctx: Optional[AuthContext]) -> bool:
    return ctx is not None and ctx.role in ADMIN_ROLES


def has_super_capability(ctx: Optional[AuthContext]) -> bool:
    return ctx is not None and ctx.role in SUPER_ROLES
