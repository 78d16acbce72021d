"""
Read-side Query Strategies
==========================

Listing posts:
    One query. userHasLiked / userHasViewed come from EXISTS subqueries
    against the interaction ledger, so annotating N posts for the caller
    costs nothing extra.

Listing comments:
    1. One query for the page of top-level comments
    2. One query for all replies of that page
    3. Prefetch of liked_by for both (to report likedBy and userHasLiked)
    Replies are attached to their parents in Python in a single pass.
"""

import math
from typing import Optional

from django.conf import settings
from django.db.models import Exists, OuterRef, Prefetch
from django.contrib.auth import get_user_model

from portfolio.errors import NotFoundError, ValidationError
from .models import Post, Comment, InteractionRecord

User = get_user_model()

POST_SORT_FIELDS = {
    'createdAt': 'created_at',
    'updatedAt': 'updated_at',
    'date': 'date',
    'title': 'title',
    'views': 'views',
    'likes': 'likes',
    'commentsCount': 'comments_count',
}

COMMENT_SORT_FIELDS = {
    'createdAt': 'created_at',
    'updatedAt': 'updated_at',
    'likes': 'likes',
}

SORT_ORDERS = ('asc', 'desc')


def _ordering(sort_by: str, order: str, fields: dict) -> list:
    if sort_by not in fields:
        raise ValidationError(f"Invalid sortBy '{sort_by}'. Allowed: {', '.join(fields)}")
    if order not in SORT_ORDERS:
        raise ValidationError("Invalid order. Allowed: asc, desc")
    prefix = '-' if order == 'desc' else ''
    # id breaks ties so pages are stable
    return [f"{prefix}{fields[sort_by]}", f"{prefix}id"]


def annotate_for_user(queryset, user):
    """Add user_has_liked / user_has_viewed flags for the requesting user."""
    ledger = InteractionRecord.objects.filter(post=OuterRef('pk'), user_id=user.id)
    return queryset.annotate(
        user_has_liked=Exists(ledger.filter(has_liked=True)),
        user_has_viewed=Exists(ledger.filter(has_viewed=True)),
    )


def list_posts(user, status: Optional[str] = None, category: Optional[str] = None,
               sort_by: str = 'createdAt', order: str = 'desc'):
    queryset = Post.objects.all()

    if status:
        if status not in Post.Status.values:
            raise ValidationError('Invalid status')
        queryset = queryset.filter(status=status)

    if category:
        if category not in Post.Category.values:
            raise ValidationError('Invalid category')
        queryset = queryset.filter(category=category)

    queryset = queryset.order_by(*_ordering(sort_by, order, POST_SORT_FIELDS))
    return annotate_for_user(queryset, user)


def get_post_for_user(user, post_id: int) -> Post:
    post = annotate_for_user(Post.objects.filter(id=post_id), user).first()
    if post is None:
        raise NotFoundError('Post not found')
    return post


def build_comment_tree(top_level: list[Comment], replies: list[Comment]) -> list[dict]:
    """
    Attach replies to their top-level comments.

    Replies are expected in chronological order and keep it.

    Output:
        [{'comment': Comment, 'replies': [Comment, ...]}, ...]
    """
    nodes = {comment.id: {'comment': comment, 'replies': []} for comment in top_level}

    for reply in replies:
        node = nodes.get(reply.parent_id)
        if node is not None:
            node['replies'].append(reply)

    return [nodes[comment.id] for comment in top_level]


def list_comments(post_id: int, page: int = 1, limit: Optional[int] = None,
                  sort_by: str = 'createdAt', order: str = 'desc') -> dict:
    """
    A page of top-level comments for a post, each with all of its replies.

    Top-level comments follow the requested sort; replies are always
    oldest first.

    Returns:
        {
            'threads': [{'comment': Comment, 'replies': [Comment, ...]}, ...],
            'pagination': {currentPage, totalPages, totalComments, hasMore}
        }
    """
    if limit is None:
        limit = settings.COMMENTS_PAGE_SIZE
    if page < 1:
        raise ValidationError('page must be at least 1')
    if limit < 1 or limit > settings.COMMENTS_MAX_PAGE_SIZE:
        raise ValidationError(f'limit must be between 1 and {settings.COMMENTS_MAX_PAGE_SIZE}')

    if not Post.objects.filter(id=post_id).exists():
        raise NotFoundError('Post not found')

    liked_by = Prefetch('liked_by', queryset=User.objects.only('id'))

    top_level_qs = Comment.objects.filter(post_id=post_id, parent__isnull=True)
    total = top_level_qs.count()
    skip = (page - 1) * limit

    top_level = list(
        top_level_qs
        .order_by(*_ordering(sort_by, order, COMMENT_SORT_FIELDS))
        .prefetch_related(liked_by)[skip:skip + limit]
    )

    replies = list(
        Comment.objects
        .filter(parent_id__in=[comment.id for comment in top_level])
        .order_by('created_at', 'id')
        .prefetch_related(liked_by)
    )

    return {
        'threads': build_comment_tree(top_level, replies),
        'pagination': {
            'currentPage': page,
            'totalPages': math.ceil(total / limit),
            'totalComments': total,
            'hasMore': skip + len(top_level) < total,
        },
    }
