"""
Comment Store
=============

Comments form a tree exactly two levels deep:

    top-level comment          parent = None, counts toward Post.comments_count
    └── reply                  parent = a top-level comment of the same post

Where a new comment goes is described by a Placement:

    TopLevel()          a new thread
    Reply(parent_id)    an answer to a top-level comment

Reply values are only produced by resolve_placement(), which refuses
parents that are missing, belong to another post, or are themselves
replies. A reply to a reply never reaches the database.

Comment likes are a membership set (Comment.liked_by). The likes counter
is always rewritten from the size of that set, never incremented on its own.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from django.db import transaction
from django.db.models import Count, F

from accounts.permissions import enforce
from accounts.policies import OwnerOrAdmin
from portfolio.errors import NotFoundError, ValidationError
from .models import Comment, Post
from .services import get_post

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 1000


@dataclass(frozen=True)
class TopLevel:
    pass


@dataclass(frozen=True)
class Reply:
    parent_id: int


Placement = Union[TopLevel, Reply]


class CommentLikeResult:
    def __init__(self, comment: Comment, liked: bool):
        self.comment = comment
        self.liked = liked


def get_comment(comment_id: int) -> Comment:
    try:
        return Comment.objects.select_related('post').get(id=comment_id)
    except Comment.DoesNotExist:
        raise NotFoundError('Comment not found')


def clean_content(content) -> str:
    if not isinstance(content, str) or not content.strip():
        raise ValidationError('Comment content is required')
    content = content.strip()
    if len(content) > MAX_COMMENT_LENGTH:
        raise ValidationError(f'Comment cannot exceed {MAX_COMMENT_LENGTH} characters')
    return content


def resolve_placement(post: Post, parent_id: Optional[int]) -> Placement:
    """Turn an optional parent id from a request into a validated Placement."""
    if parent_id is None:
        return TopLevel()

    parent = Comment.objects.filter(id=parent_id).only('id', 'post_id', 'parent_id').first()
    if parent is None:
        raise NotFoundError('Parent comment not found')
    if parent.post_id != post.id:
        raise ValidationError('Parent comment belongs to a different post')
    if parent.parent_id is not None:
        raise ValidationError('Cannot reply to a reply')

    return Reply(parent_id=parent.id)


def create_comment(post_id: int, author, content, parent_id: Optional[int] = None) -> Comment:
    """
    Add a comment or a reply to a post.

    Validation happens before any write. Only top-level comments bump
    Post.comments_count.
    """
    content = clean_content(content)
    post = get_post(post_id)
    placement = resolve_placement(post, parent_id)

    with transaction.atomic():
        comment = Comment.objects.create(
            post=post,
            author=author,
            author_username=author.username,
            parent_id=placement.parent_id if isinstance(placement, Reply) else None,
            content=content,
        )

        if isinstance(placement, TopLevel):
            Post.objects.filter(id=post.id).update(comments_count=F('comments_count') + 1)

    return comment


def update_comment(comment_id: int, user, content) -> Comment:
    comment = get_comment(comment_id)
    enforce(OwnerOrAdmin(comment.author_id).evaluate(user))

    comment.content = clean_content(content)
    comment.save(update_fields=['content', 'updated_at'])
    return comment


def delete_comment(comment_id: int, user) -> int:
    """
    Delete a comment. A top-level comment takes its replies with it.

    Post.comments_count drops by exactly one for a top-level comment and
    is untouched for a reply. Returns the number of comments removed.
    """
    comment = get_comment(comment_id)
    enforce(OwnerOrAdmin(comment.author_id).evaluate(user))

    with transaction.atomic():
        if comment.is_top_level:
            reply_count = comment.replies.count()
            comment.delete()
            Post.objects.filter(id=comment.post_id, comments_count__gt=0).update(
                comments_count=F('comments_count') - 1
            )
        else:
            reply_count = 0
            comment.delete()

    removed = reply_count + 1
    logger.info(f"User {user.id} deleted comment {comment_id} ({removed} removed)")
    return removed


def toggle_comment_like(comment_id: int, user) -> CommentLikeResult:
    """
    Add or remove the user from the comment's liked_by set.

    Works the same for top-level comments and replies.
    """
    comment = get_comment(comment_id)

    with transaction.atomic():
        if comment.liked_by.filter(id=user.id).exists():
            comment.liked_by.remove(user)
            liked = False
        else:
            comment.liked_by.add(user)
            liked = True

        Comment.objects.filter(id=comment.id).update(likes=comment.liked_by.count())

    comment.refresh_from_db()
    return CommentLikeResult(comment, liked)


def reconcile_comment_likes(post_id: Optional[int] = None, dry_run: bool = False) -> list:
    """Set every comment's likes to the size of its liked_by set."""
    queryset = Comment.objects.all()
    if post_id is not None:
        queryset = queryset.filter(post_id=post_id)

    drifted = []
    for comment in queryset.annotate(members=Count('liked_by')).order_by('id'):
        if comment.likes == comment.members:
            continue

        logger.warning(f"Like drift on comment {comment.id}: stored={comment.likes} members={comment.members}")
        drifted.append({'comment_id': comment.id, 'stored': comment.likes, 'expected': comment.members})

        if not dry_run:
            Comment.objects.filter(id=comment.id).update(likes=comment.members)

    return drifted
