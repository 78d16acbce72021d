"""
Error taxonomy raised by the service layer.

Models, services and the authentication backend import from here.
portfolio.exceptions turns these into HTTP responses.
"""
from rest_framework import status


class ServiceError(Exception):
    """Base class for errors raised by the service layer."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = 'An unexpected error occurred.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Invalid input.'


class AuthenticationError(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = 'Authentication required.'


class AuthorizationError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = 'You do not have permission to perform this action.'


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Not found.'


class ConflictError(ServiceError):
    """A write lost a race that retrying cannot settle."""
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Resource was modified concurrently.'
