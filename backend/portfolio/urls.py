"""
Portfolio URL Configuration
"""
from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse


def api_root(request):
    """Root endpoint with API information."""
    return JsonResponse({
        'message': 'Portfolio Blog API Server',
        'version': '1.0',
        'endpoints': {
            'auth': '/api/auth/',
            'posts': '/api/posts',
            'post': '/api/posts/<id>',
            'comments': '/api/posts/<id>/comments',
            'comment': '/api/comments/<id>',
            'analytics': '/api/analytics/',
        },
        'admin': '/admin/',
    })


urlpatterns = [
    path('', api_root, name='api-root'),
    path('admin/', admin.site.urls),
    path('api/auth/', include('accounts.urls')),
    path('api/', include('blog.urls')),
]
