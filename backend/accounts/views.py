"""
Auth endpoints.

    POST /api/auth/register   create an account (role 'user')
    POST /api/auth/login      exchange email + password for a bearer token
    GET  /api/auth/me         resolve the current token to its user
"""

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .policies import AUTHENTICATED, PUBLIC
from .serializers import LoginSerializer, RegisterSerializer, UserSerializer
from .tokens import issue_token


class RegisterView(APIView):
    """
    Public, but a stale or malformed Bearer header is still rejected with
    401 rather than ignored. Clients drop the header to register.
    """
    access_policy = PUBLIC

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()

        return Response(
            {
                'message': 'User registered successfully',
                'user': UserSerializer(user).data,
            },
            status=status.HTTP_201_CREATED
        )


class LoginView(APIView):
    """
    Public. As with registration, an invalid Bearer header is a 401; a
    client holding an expired token logs in again without sending it.
    """
    access_policy = PUBLIC

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data['user']

        return Response({
            'token': issue_token(user),
            'user': UserSerializer(user).data,
        })


class MeView(APIView):
    access_policy = AUTHENTICATED

    def get(self, request):
        return Response({
            'user': UserSerializer(request.user).data,
            'expiresAt': request.auth.expires_at.isoformat() if request.auth else None,
        })
