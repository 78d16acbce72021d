"""
Serializers for registration, login and the user payload returned to clients.
"""
import logging

from django.contrib.auth import get_user_model
from rest_framework import serializers

from portfolio.errors import AuthenticationError

logger = logging.getLogger(__name__)
User = get_user_model()

INVALID_CREDENTIALS = 'Invalid email or password.'


class UserSerializer(serializers.ModelSerializer):
    """User representation returned by login, register and me."""

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'role']
        read_only_fields = fields


class RegisterSerializer(serializers.ModelSerializer):
    """
    Validates a registration request.

    Role is never taken from input; new accounts are always 'user'.
    """
    username = serializers.CharField(min_length=3, max_length=30)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=6, max_length=128)

    class Meta:
        model = User
        fields = ['username', 'email', 'password']

    def validate_username(self, value):
        value = value.strip()
        if len(value) < 3:
            raise serializers.ValidationError("Username must be at least 3 characters.")
        if User.objects.filter(username__iexact=value).exists():
            raise serializers.ValidationError("Username is already taken.")
        return value

    def validate_email(self, value):
        value = value.strip().lower()
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("Email is already registered.")
        return value

    def create(self, validated_data):
        user = User.objects.create_user(
            username=validated_data['username'],
            email=validated_data['email'],
            password=validated_data['password'],
            role=User.Role.USER,
        )
        logger.info(f"Registered user {user.id} ({user.username})")
        return user


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        """
        Resolve the user by email and check the password.

        Unknown email and wrong password produce the same error.
        """
        email = attrs['email'].strip().lower()
        user = User.objects.filter(email__iexact=email).first()

        if user is None or not user.check_password(attrs['password']) or not user.is_active:
            logger.warning(f"Failed login for {email}")
            raise AuthenticationError(INVALID_CREDENTIALS)

        attrs['user'] = user
        return attrs
