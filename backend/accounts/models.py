"""
Credential Store
================

Custom user model for the portfolio site.

- username and email are both unique; login is by email
- password is hashed by Django's configured hashers
- role is either 'user' or 'admin'; admins manage posts and read analytics

Users are created at registration and never deleted by the API.
"""

from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models


class PortfolioUserManager(UserManager):
    """Superusers created from the command line are blog admins."""

    def create_superuser(self, username, email=None, password=None, **extra_fields):
        extra_fields.setdefault('role', User.Role.ADMIN)
        return super().create_superuser(username, email, password, **extra_fields)


class User(AbstractUser):

    class Role(models.TextChoices):
        USER = 'user', 'User'
        ADMIN = 'admin', 'Admin'

    email = models.EmailField(unique=True)
    role = models.CharField(
        max_length=10,
        choices=Role.choices,
        default=Role.USER,
        db_index=True
    )

    objects = PortfolioUserManager()

    class Meta:
        ordering = ['id']

    def __str__(self):
        return f"{self.username} ({self.role})"

    @property
    def is_admin(self) -> bool:
        return self.role == self.Role.ADMIN
