"""
Access Policy Gate
==================

Authorization is a single capability: a policy looks at the requester and
returns a typed decision, Allow or Deny(reason). Routes declare which
policy protects them and PolicyPermission evaluates it once per request.

    Authenticated        valid token resolving to an active user, else 401
    AdminOnly            Authenticated, then role == admin, else 403
    OwnerOrAdmin(owner)  resource-level: requester owns it or is admin, else 403

OwnerOrAdmin depends on the resource, so it is evaluated inside the
service that loads the resource, not at the gate.
"""

from dataclasses import dataclass
from typing import Optional, Union

from rest_framework import status


@dataclass(frozen=True)
class Allow:
    allowed = True


@dataclass(frozen=True)
class Deny:
    reason: str
    status_code: int = status.HTTP_403_FORBIDDEN
    allowed = False


Decision = Union[Allow, Deny]


def _is_authenticated(user) -> bool:
    return bool(user is not None and user.is_authenticated and user.is_active)


class AccessPolicy:
    """Base policy. Subclasses implement evaluate()."""

    def evaluate(self, user) -> Decision:
        raise NotImplementedError


class Public(AccessPolicy):

    def evaluate(self, user) -> Decision:
        return Allow()


class Authenticated(AccessPolicy):

    def evaluate(self, user) -> Decision:
        if not _is_authenticated(user):
            return Deny('Authentication required.', status.HTTP_401_UNAUTHORIZED)
        return Allow()


class AdminOnly(AccessPolicy):

    def evaluate(self, user) -> Decision:
        decision = Authenticated().evaluate(user)
        if not decision.allowed:
            return decision
        if not getattr(user, 'is_admin', False):
            return Deny('Admin access required.')
        return Allow()


class OwnerOrAdmin(AccessPolicy):

    def __init__(self, owner_id: Optional[int]):
        self.owner_id = owner_id

    def evaluate(self, user) -> Decision:
        decision = Authenticated().evaluate(user)
        if not decision.allowed:
            return decision
        if getattr(user, 'is_admin', False) or user.id == self.owner_id:
            return Allow()
        return Deny('Only the author or an admin can modify this resource.')


PUBLIC = Public()
AUTHENTICATED = Authenticated()
ADMIN_ONLY = AdminOnly()
