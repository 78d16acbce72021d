from rest_framework.exceptions import NotAuthenticated, PermissionDenied
from rest_framework.permissions import BasePermission
from rest_framework import status

from portfolio.errors import AuthenticationError, AuthorizationError
from .policies import AUTHENTICATED, Decision


class PolicyPermission(BasePermission):
    """
    Evaluates the view's access policy.

    Views set `access_policy`, or `access_policies` keyed by HTTP method
    when the methods of one route differ. Views that declare nothing are
    treated as Authenticated.
    """

    def get_policy(self, request, view):
        policies = getattr(view, 'access_policies', None)
        if policies and request.method in policies:
            return policies[request.method]
        return getattr(view, 'access_policy', AUTHENTICATED)

    def has_permission(self, request, view):
        decision = self.get_policy(request, view).evaluate(request.user)
        if decision.allowed:
            return True
        if decision.status_code == status.HTTP_401_UNAUTHORIZED:
            raise NotAuthenticated(decision.reason)
        raise PermissionDenied(decision.reason)


def enforce(decision: Decision):
    """Raise the service-layer error matching a Deny decision."""
    if decision.allowed:
        return
    if decision.status_code == status.HTTP_401_UNAUTHORIZED:
        raise AuthenticationError(decision.reason)
    raise AuthorizationError(decision.reason)
