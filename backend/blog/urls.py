"""
Blog URL Configuration
"""
from django.urls import path
from .views import (
    PostListCreateView,
    PostDetailView,
    PostStatusView,
    PostViewCountView,
    PostLikeView,
    PostReconcileView,
    PostCommentsView,
    CommentDetailView,
    CommentLikeView,
    AnalyticsStatsView,
    AnalyticsCategoriesView,
    AnalyticsMonthlyView,
    AnalyticsDashboardView,
)

urlpatterns = [
    # Posts
    path('posts', PostListCreateView.as_view(), name='post-list'),
    path('posts/<int:post_id>', PostDetailView.as_view(), name='post-detail'),
    path('posts/<int:post_id>/status', PostStatusView.as_view(), name='post-status'),
    path('posts/<int:post_id>/view', PostViewCountView.as_view(), name='post-view'),
    path('posts/<int:post_id>/like', PostLikeView.as_view(), name='post-like'),
    path('posts/<int:post_id>/reconcile', PostReconcileView.as_view(), name='post-reconcile'),

    # Comments
    path('posts/<int:post_id>/comments', PostCommentsView.as_view(), name='post-comments'),
    path('comments/<int:comment_id>', CommentDetailView.as_view(), name='comment-detail'),
    path('comments/<int:comment_id>/like', CommentLikeView.as_view(), name='comment-like'),

    # Analytics (admin)
    path('analytics/stats', AnalyticsStatsView.as_view(), name='analytics-stats'),
    path('analytics/categories', AnalyticsCategoriesView.as_view(), name='analytics-categories'),
    path('analytics/monthly', AnalyticsMonthlyView.as_view(), name='analytics-monthly'),
    path('analytics/dashboard', AnalyticsDashboardView.as_view(), name='analytics-dashboard'),
]
