"""
Tests for project wiring

Focus areas:
1. The URLconf, models and auth backend import together
2. Service errors render as {"error": ...} with their status code
"""

from importlib import import_module

from django.test import SimpleTestCase
from django.urls import resolve
from rest_framework import status

from .errors import ConflictError, NotFoundError, ValidationError
from .exceptions import custom_exception_handler


class WiringTestCase(SimpleTestCase):

    def test_urlconf_imports(self):
        urls = import_module('portfolio.urls')

        self.assertTrue(urls.urlpatterns)
        self.assertEqual(resolve('/api/posts/1/like').url_name, 'post-like')
        self.assertEqual(resolve('/api/auth/login').url_name, 'auth-login')

    def test_models_and_authentication_import(self):
        import_module('blog.models')
        authentication = import_module('accounts.authentication')

        self.assertEqual(authentication.BearerTokenAuthentication.keyword, 'Bearer')


class ExceptionHandlerTestCase(SimpleTestCase):

    def test_service_errors_map_to_status(self):
        cases = [
            (ValidationError('Invalid status'), status.HTTP_400_BAD_REQUEST),
            (NotFoundError('Post not found'), status.HTTP_404_NOT_FOUND),
            (ConflictError(), status.HTTP_409_CONFLICT),
        ]
        for exc, expected in cases:
            response = custom_exception_handler(exc, {})
            self.assertEqual(response.status_code, expected)
            self.assertEqual(response.data, {'error': exc.message})

    def test_unexpected_error_is_hidden(self):
        with self.assertLogs('portfolio.exceptions', level='ERROR'):
            response = custom_exception_handler(RuntimeError('boom'), {})

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data, {'error': 'An unexpected error occurred.'})
