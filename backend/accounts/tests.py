"""
Tests for accounts

Focus areas:
1. Token issue / expiry / tampering
2. Policy decisions (Allow / Deny with the right status)
3. Register, login and me endpoints
"""

from datetime import datetime, timedelta, timezone as dt_timezone

import jwt
from django.conf import settings
from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework import status
from rest_framework.test import APITestCase

from portfolio.errors import AuthenticationError
from .policies import ADMIN_ONLY, AUTHENTICATED, Allow, Deny, OwnerOrAdmin
from .tokens import decode_token, issue_token

User = get_user_model()


class TokenTestCase(TestCase):

    def setUp(self):
        self.user = User.objects.create_user('reader', 'reader@test.com', 'secret123')

    def test_round_trip_carries_user_and_role(self):
        credential = decode_token(issue_token(self.user))

        self.assertEqual(credential.user_id, self.user.id)
        self.assertEqual(credential.role, User.Role.USER)
        self.assertGreater(credential.expires_at, datetime.now(dt_timezone.utc))

    def test_expired_token_rejected(self):
        token = issue_token(self.user, expires_delta=timedelta(seconds=-1))

        with self.assertRaisesMessage(AuthenticationError, 'Token has expired'):
            decode_token(token)

    def test_token_signed_with_other_key_rejected(self):
        token = jwt.encode({'user_id': self.user.id, 'exp': 9999999999}, 'not-the-key', algorithm='HS256')

        with self.assertRaisesMessage(AuthenticationError, 'Invalid token'):
            decode_token(token)

    def test_garbage_token_rejected(self):
        with self.assertRaises(AuthenticationError):
            decode_token('not.a.token')


class PolicyTestCase(TestCase):
    """Every policy returns a typed decision instead of a bare boolean."""

    def setUp(self):
        self.user = User.objects.create_user('user', 'u@test.com', 'secret123')
        self.other = User.objects.create_user('other', 'o@test.com', 'secret123')
        self.admin = User.objects.create_user('admin', 'a@test.com', 'secret123', role=User.Role.ADMIN)

    def test_anonymous_denied_with_401(self):
        from django.contrib.auth.models import AnonymousUser

        decision = AUTHENTICATED.evaluate(AnonymousUser())
        self.assertIsInstance(decision, Deny)
        self.assertEqual(decision.status_code, status.HTTP_401_UNAUTHORIZED)

        decision = ADMIN_ONLY.evaluate(AnonymousUser())
        self.assertEqual(decision.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_admin_only(self):
        self.assertIsInstance(ADMIN_ONLY.evaluate(self.admin), Allow)

        decision = ADMIN_ONLY.evaluate(self.user)
        self.assertIsInstance(decision, Deny)
        self.assertEqual(decision.status_code, status.HTTP_403_FORBIDDEN)

    def test_owner_or_admin(self):
        policy = OwnerOrAdmin(self.user.id)

        self.assertTrue(policy.evaluate(self.user).allowed)
        self.assertTrue(policy.evaluate(self.admin).allowed)
        self.assertFalse(policy.evaluate(self.other).allowed)

    def test_superuser_defaults_to_admin_role(self):
        root = User.objects.create_superuser('root', 'root@test.com', 'secret123')
        self.assertTrue(root.is_admin)


class AuthApiTestCase(APITestCase):

    def test_register_creates_user_role(self):
        response = self.client.post('/api/auth/register', {
            'username': 'newbie',
            'email': 'Newbie@Test.com',
            'password': 'secret123',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user']['role'], 'user')
        self.assertEqual(response.data['user']['email'], 'newbie@test.com')
        self.assertTrue(User.objects.get(username='newbie').check_password('secret123'))

    def test_register_ignores_role_in_body(self):
        response = self.client.post('/api/auth/register', {
            'username': 'sneaky',
            'email': 'sneaky@test.com',
            'password': 'secret123',
            'role': 'admin',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(User.objects.get(username='sneaky').role, User.Role.USER)

    def test_register_duplicate_email_is_400(self):
        User.objects.create_user('first', 'taken@test.com', 'secret123')

        response = self.client.post('/api/auth/register', {
            'username': 'second',
            'email': 'taken@test.com',
            'password': 'secret123',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_register_missing_password_is_400(self):
        response = self.client.post('/api/auth/register', {
            'username': 'nopass',
            'email': 'nopass@test.com',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(response.data['error'].startswith('password'))

    def test_login_returns_token_and_user(self):
        user = User.objects.create_user('reader', 'reader@test.com', 'secret123')

        response = self.client.post('/api/auth/login', {
            'email': 'reader@test.com',
            'password': 'secret123',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user'], {
            'id': user.id,
            'username': 'reader',
            'email': 'reader@test.com',
            'role': 'user',
        })
        self.assertEqual(decode_token(response.data['token']).user_id, user.id)

    def test_login_wrong_password_is_401(self):
        User.objects.create_user('reader', 'reader@test.com', 'secret123')

        response = self.client.post('/api/auth/login', {
            'email': 'reader@test.com',
            'password': 'wrong-password',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data, {'error': 'Invalid email or password.'})

    def test_login_unknown_email_is_401(self):
        response = self.client.post('/api/auth/login', {
            'email': 'ghost@test.com',
            'password': 'secret123',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_with_stale_token_header_is_401(self):
        """An invalid header is rejected even on public routes."""
        user = User.objects.create_user('reader', 'reader@test.com', 'secret123')
        token = issue_token(user, expires_delta=timedelta(seconds=-5))
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

        response = self.client.post('/api/auth/login', {
            'email': 'reader@test.com',
            'password': 'secret123',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data, {'error': 'Token has expired'})

        self.client.credentials()
        response = self.client.post('/api/auth/login', {
            'email': 'reader@test.com',
            'password': 'secret123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_me_requires_token(self):
        response = self.client.get('/api/auth/me')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn('error', response.data)

    def test_me_with_token(self):
        user = User.objects.create_user('reader', 'reader@test.com', 'secret123')
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {issue_token(user)}')

        response = self.client.get('/api/auth/me')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['username'], 'reader')

    def test_expired_token_is_401(self):
        user = User.objects.create_user('reader', 'reader@test.com', 'secret123')
        token = issue_token(user, expires_delta=timedelta(seconds=-5))
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

        response = self.client.get('/api/auth/me')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data, {'error': 'Token has expired'})

    def test_token_for_deleted_user_is_401(self):
        user = User.objects.create_user('reader', 'reader@test.com', 'secret123')
        token = issue_token(user)
        user.delete()
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

        response = self.client.get('/api/auth/me')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    @override_settings(JWT_EXPIRATION_HOURS=1)
    def test_expiry_follows_settings(self):
        user = User.objects.create_user('reader', 'reader@test.com', 'secret123')
        payload = jwt.decode(
            issue_token(user), settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )

        self.assertEqual(payload['exp'] - payload['iat'], 3600)
