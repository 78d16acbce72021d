"""
DRF authentication backed by bearer tokens.

    Authorization: Bearer <token>

No header means an anonymous request; the access policy decides whether
that is acceptable. A header that is present but invalid is rejected
outright with 401, on public routes too.
"""
import logging

from django.contrib.auth import get_user_model
from rest_framework import authentication, exceptions

from portfolio.errors import AuthenticationError
from .tokens import decode_token

logger = logging.getLogger(__name__)
User = get_user_model()


class BearerTokenAuthentication(authentication.BaseAuthentication):
    keyword = 'Bearer'

    def authenticate(self, request):
        header = authentication.get_authorization_header(request).split()

        if not header or header[0].lower() != self.keyword.lower().encode():
            return None

        if len(header) != 2:
            raise exceptions.AuthenticationFailed('Invalid authorization header.')

        try:
            token = header[1].decode()
        except UnicodeError:
            raise exceptions.AuthenticationFailed('Invalid token')

        return self.authenticate_credentials(token)

    def authenticate_credentials(self, token):
        try:
            credential = decode_token(token)
        except AuthenticationError as e:
            raise exceptions.AuthenticationFailed(e.message)

        try:
            user = User.objects.get(id=credential.user_id)
        except User.DoesNotExist:
            logger.warning(f"Token rejected: user {credential.user_id} not found")
            raise exceptions.AuthenticationFailed('User not found')

        if not user.is_active:
            raise exceptions.AuthenticationFailed('User account is disabled')

        return user, credential

    def authenticate_header(self, request):
        # Makes DRF answer 401 rather than 403 for unauthenticated requests
        return self.keyword
