"""
Django Admin Configuration for accounts
"""
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import User


@admin.register(User)
class PortfolioUserAdmin(UserAdmin):
    list_display = ['username', 'email', 'role', 'is_active', 'date_joined']
    list_filter = ['role', 'is_active', 'date_joined']
    search_fields = ['username', 'email']
    fieldsets = UserAdmin.fieldsets + (
        ('Blog', {'fields': ('role',)}),
    )
