"""
Accounts URL Configuration
"""
from django.urls import path
from .views import RegisterView, LoginView, MeView

urlpatterns = [
    path('register', RegisterView.as_view(), name='auth-register'),
    path('login', LoginView.as_view(), name='auth-login'),
    path('me', MeView.as_view(), name='auth-me'),
]
