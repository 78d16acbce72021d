"""
DRF exception handler.

Services raise the errors defined in portfolio.errors and never build
responses themselves. The handler turns every failure into the same
JSON shape:

    {"error": "<message>"}

Serializer validation errors also carry a "details" object with the
per-field messages.
"""
import logging

from django.db import IntegrityError
from django.http import Http404
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .errors import AuthenticationError, ServiceError

logger = logging.getLogger(__name__)


def _first_message(detail):
    """Pull a readable message out of a DRF error detail structure."""
    if isinstance(detail, dict):
        for field, value in detail.items():
            message = _first_message(value)
            if field == 'non_field_errors':
                return message
            return f"{field}: {message}"
        return 'Invalid input.'
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else 'Invalid input.'
    return str(detail)


def custom_exception_handler(exc, context):
    """
    Custom exception handler that:
    1. Converts service errors to responses with their status code
    2. Normalizes DRF and Django errors into the {"error": ...} shape
    3. Logs unexpected exceptions and hides their details from the client
    """
    if isinstance(exc, ServiceError):
        if exc.status_code >= 500:
            logger.error(f"Service error: {exc.message}")
        response = Response({'error': exc.message}, status=exc.status_code)
        if isinstance(exc, AuthenticationError):
            response['WWW-Authenticate'] = 'Bearer'
        return response

    if isinstance(exc, Http404):
        return Response({'error': str(exc) or 'Not found.'}, status=status.HTTP_404_NOT_FOUND)

    # Call DRF's default exception handler for its own exception types
    response = exception_handler(exc, context)

    if response is not None:
        if isinstance(exc, drf_exceptions.ValidationError):
            response.data = {
                'error': _first_message(exc.detail),
                'details': exc.detail,
            }
        else:
            response.data = {'error': _first_message(exc.detail)}
        return response

    if isinstance(exc, IntegrityError):
        logger.warning(f"IntegrityError: {exc}")
        return Response(
            {'error': 'Data integrity error. This may be a duplicate entry.'},
            status=status.HTTP_409_CONFLICT
        )

    # Log unexpected exceptions
    logger.exception(f"Unhandled exception: {exc}")

    return Response(
        {'error': 'An unexpected error occurred.'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )
