"""
Django Admin Configuration for Blog Models
"""
from django.contrib import admin
from .models import Post, InteractionRecord, Comment


@admin.register(Post)
class PostAdmin(admin.ModelAdmin):
    list_display = ['title', 'category', 'status', 'views', 'likes', 'comments_count', 'date']
    list_filter = ['status', 'category', 'date']
    search_fields = ['title', 'excerpt', 'author']
    readonly_fields = ['views', 'likes', 'comments_count', 'created_at', 'updated_at']


@admin.register(InteractionRecord)
class InteractionRecordAdmin(admin.ModelAdmin):
    list_display = ['user', 'post', 'has_viewed', 'viewed_at', 'has_liked', 'liked_at']
    list_filter = ['has_viewed', 'has_liked']
    search_fields = ['user__username', 'post__title']
    readonly_fields = ['user', 'post', 'has_viewed', 'viewed_at', 'has_liked', 'liked_at',
                       'created_at', 'updated_at']

    def has_add_permission(self, request):
        # Ledger rows are only created by the view/like endpoints
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(Comment)
class CommentAdmin(admin.ModelAdmin):
    list_display = ['id', 'post', 'author_username', 'parent', 'likes', 'created_at']
    list_filter = ['created_at']
    search_fields = ['content', 'author_username']
    readonly_fields = ['likes', 'liked_by', 'created_at', 'updated_at']
