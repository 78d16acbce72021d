"""
DRF Views
=========

API endpoints for the blog.

ACCESS:
-------
Each view declares an access policy (accounts.policies) and the single
PolicyPermission evaluates it. Comment edit/delete additionally check
ownership inside the comment service, where the comment is loaded.

Views stay thin: parse input, call queries/services/comments/analytics,
serialize. Errors raised below them are rendered by
portfolio.exceptions.custom_exception_handler.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.policies import ADMIN_ONLY, AUTHENTICATED
from portfolio.errors import ValidationError
from . import analytics, comments, queries, services
from .serializers import (
    PostSerializer,
    PostStatusSerializer,
    CommentSerializer,
    CommentThreadSerializer,
    CommentCreateSerializer,
    CommentUpdateSerializer,
)

logger = logging.getLogger(__name__)


def _int_param(request, name, default):
    raw = request.query_params.get(name)
    if raw in (None, ''):
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


class PostListCreateView(APIView):
    """
    GET  /api/posts?status&category&sortBy&order
    POST /api/posts            (admin)
    """
    access_policies = {'GET': AUTHENTICATED, 'POST': ADMIN_ONLY}

    def get(self, request):
        posts = queries.list_posts(
            request.user,
            status=request.query_params.get('status'),
            category=request.query_params.get('category'),
            sort_by=request.query_params.get('sortBy', 'createdAt'),
            order=request.query_params.get('order', 'desc'),
        )
        return Response(PostSerializer(posts, many=True).data)

    def post(self, request):
        serializer = PostSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        post = serializer.save()

        logger.info(f"Admin {request.user.id} created post {post.id}")
        return Response(PostSerializer(post).data, status=status.HTTP_201_CREATED)


class PostDetailView(APIView):
    """
    GET    /api/posts/<id>
    PUT    /api/posts/<id>     (admin, partial update)
    DELETE /api/posts/<id>     (admin, cascades to comments and interactions)
    """
    access_policies = {'GET': AUTHENTICATED, 'PUT': ADMIN_ONLY, 'DELETE': ADMIN_ONLY}

    def get(self, request, post_id):
        post = queries.get_post_for_user(request.user, post_id)
        return Response(PostSerializer(post).data)

    def put(self, request, post_id):
        post = services.get_post(post_id)
        serializer = PostSerializer(post, data=request.data, partial=True, context={'request': request})
        serializer.is_valid(raise_exception=True)
        serializer.save()

        logger.info(f"Admin {request.user.id} updated post {post_id}")
        return Response(PostSerializer(queries.get_post_for_user(request.user, post_id)).data)

    def delete(self, request, post_id):
        removed = services.delete_post(post_id)
        return Response({
            'message': 'Post deleted successfully',
            'deletedComments': removed['comments'],
            'deletedInteractions': removed['interactions'],
        })


class PostStatusView(APIView):
    """
    PATCH /api/posts/<id>/status   {"status": "draft" | "published"}
    """
    access_policy = ADMIN_ONLY

    def patch(self, request, post_id):
        serializer = PostStatusSerializer(data=request.data)
        if not serializer.is_valid():
            raise ValidationError('Invalid status')

        services.set_post_status(post_id, serializer.validated_data['status'])
        return Response(PostSerializer(queries.get_post_for_user(request.user, post_id)).data)


class PostViewCountView(APIView):
    """
    PATCH /api/posts/<id>/view

    Counts the caller's first view only. Response carries viewIncremented.
    """
    access_policy = AUTHENTICATED

    def patch(self, request, post_id):
        result = services.record_view(request.user, post_id)
        data = PostSerializer(queries.get_post_for_user(request.user, post_id)).data
        data['viewIncremented'] = result.incremented
        return Response(data)


class PostLikeView(APIView):
    """
    PATCH /api/posts/<id>/like

    Toggles the caller's like. Response carries likeChange (+1 / -1)
    and userHasLiked.
    """
    access_policy = AUTHENTICATED

    def patch(self, request, post_id):
        result = services.toggle_like(request.user, post_id)
        data = PostSerializer(queries.get_post_for_user(request.user, post_id)).data
        data['likeChange'] = result.delta
        data['userHasLiked'] = result.liked
        return Response(data)


class PostReconcileView(APIView):
    """
    POST /api/posts/<id>/reconcile   (admin)

    Rebuilds the post's counters from the ledger and comment memberships.
    """
    access_policy = ADMIN_ONLY

    def post(self, request, post_id):
        post_drift = services.reconcile_post_counters(post_id)
        comment_drift = comments.reconcile_comment_likes(post_id)
        return Response({
            'post': PostSerializer(queries.get_post_for_user(request.user, post_id)).data,
            'postDrift': post_drift,
            'commentDrift': comment_drift,
        })


class PostCommentsView(APIView):
    """
    GET  /api/posts/<id>/comments?page&limit&sortBy&order
    POST /api/posts/<id>/comments   {"content": "...", "parentComment": 123?}
    """
    access_policy = AUTHENTICATED

    def get(self, request, post_id):
        result = queries.list_comments(
            post_id,
            page=_int_param(request, 'page', 1),
            limit=_int_param(request, 'limit', None),
            sort_by=request.query_params.get('sortBy', 'createdAt'),
            order=request.query_params.get('order', 'desc'),
        )
        threads = CommentThreadSerializer(
            result['threads'], many=True, context={'request': request}
        ).data
        return Response({
            'comments': threads,
            'pagination': result['pagination'],
        })

    def post(self, request, post_id):
        serializer = CommentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        comment = comments.create_comment(
            post_id,
            request.user,
            serializer.validated_data['content'],
            parent_id=serializer.validated_data.get('parentComment'),
        )
        return Response(
            CommentSerializer(comment, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )


class CommentDetailView(APIView):
    """
    PUT    /api/comments/<id>   {"content": "..."}   (author or admin)
    DELETE /api/comments/<id>                        (author or admin)
    """
    access_policy = AUTHENTICATED

    def put(self, request, comment_id):
        serializer = CommentUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        comment = comments.update_comment(comment_id, request.user, serializer.validated_data['content'])
        return Response(CommentSerializer(comment, context={'request': request}).data)

    def delete(self, request, comment_id):
        removed = comments.delete_comment(comment_id, request.user)
        return Response({
            'message': 'Comment deleted successfully',
            'deletedCount': removed,
        })


class CommentLikeView(APIView):
    """
    PATCH /api/comments/<id>/like
    """
    access_policy = AUTHENTICATED

    def patch(self, request, comment_id):
        result = comments.toggle_comment_like(comment_id, request.user)
        data = CommentSerializer(result.comment, context={'request': request}).data
        data['userHasLiked'] = result.liked
        return Response(data)


class AnalyticsStatsView(APIView):
    """GET /api/analytics/stats"""
    access_policy = ADMIN_ONLY

    def get(self, request):
        return Response(analytics.get_stats())


class AnalyticsCategoriesView(APIView):
    """GET /api/analytics/categories"""
    access_policy = ADMIN_ONLY

    def get(self, request):
        return Response(analytics.get_category_stats())


class AnalyticsMonthlyView(APIView):
    """GET /api/analytics/monthly"""
    access_policy = ADMIN_ONLY

    def get(self, request):
        return Response(analytics.get_monthly_stats())


class AnalyticsDashboardView(APIView):
    """GET /api/analytics/dashboard - stats, categories and monthly together."""
    access_policy = ADMIN_ONLY

    def get(self, request):
        return Response(analytics.get_dashboard())
