"""
Post Store & Interaction Ledger
===============================

This module handles every write that touches post counters:
1. Recording a view (at most once per user per post)
2. Toggling a like
3. Deleting posts with their dependent rows
4. Recomputing counters from the ledger

CONCURRENCY STRATEGY:
---------------------
Problem: the same user opens a post in two tabs at the same moment.
Naive: Check if record exists -> Create if not -> RACE CONDITION!

The unique constraint on (user, post) settles it:
    - Try to insert the record inside a savepoint
    - DB rejects the second insert (IntegrityError)
    - The loser re-reads the row and continues as an update

Updates to an existing row are conditional on the value that was read
(has_viewed=False, has_liked=<old value>), so only one request can win
each flip. No other locking is used. Counter updates use F() expressions
so the increment itself is atomic in the database.

ORDERING:
---------
The ledger row is written first, the counter second, inside one
transaction. If the counter ever drifts, reconcile_post_counters()
rebuilds it from the ledger.
"""

import logging
from typing import List, Optional, Tuple

from django.db import IntegrityError, transaction
from django.db.models import Count, F, Q
from django.utils import timezone

from portfolio.errors import ConflictError, NotFoundError, ValidationError
from .models import Post, InteractionRecord

logger = logging.getLogger(__name__)


class ViewResult:
    """Result of recording a view."""
    def __init__(self, record: InteractionRecord, incremented: bool):
        self.record = record
        self.incremented = incremented


class LikeResult:
    """Result of a like toggle. delta is +1 or -1."""
    def __init__(self, record: InteractionRecord, delta: int):
        self.record = record
        self.delta = delta

    @property
    def liked(self) -> bool:
        return self.delta > 0


def get_post(post_id: int) -> Post:
    try:
        return Post.objects.get(id=post_id)
    except Post.DoesNotExist:
        raise NotFoundError('Post not found')


# ============================================================================
# POST STORE
# ============================================================================

def set_post_status(post_id: int, status: str) -> Post:
    """Publish or unpublish a post."""
    if status not in Post.Status.values:
        raise ValidationError('Invalid status')

    post = get_post(post_id)
    post.status = status
    post.save(update_fields=['status', 'updated_at'])

    logger.info(f"Post {post.id} status set to {status}")
    return post


def delete_post(post_id: int) -> dict:
    """
    Delete a post with everything that references it.

    Comments (replies included), their like memberships and the
    interaction ledger rows all go in the same transaction.
    """
    post = get_post(post_id)

    with transaction.atomic():
        _, per_model = post.delete()

    logger.info(f"Deleted post {post_id}: {per_model}")
    return {
        'comments': per_model.get('blog.Comment', 0),
        'interactions': per_model.get('blog.InteractionRecord', 0),
    }


# ============================================================================
# INTERACTION LEDGER
# ============================================================================

def _claim_record(user, post: Post, **initial) -> Tuple[InteractionRecord, bool]:
    """
    Fetch the user's ledger row for a post, creating it when absent.

    Returns (record, created). A concurrent insert for the same pair
    surfaces as IntegrityError; that case is read back and reported as
    not created, so the caller applies its update path.
    """
    record = InteractionRecord.objects.filter(user=user, post=post).first()
    if record is not None:
        return record, False

    try:
        with transaction.atomic():
            record = InteractionRecord.objects.create(user=user, post=post, **initial)
            return record, True
    except IntegrityError:
        logger.info(f"Ledger insert raced for user {user.id} on post {post.id}; updating instead")

    try:
        return InteractionRecord.objects.get(user=user, post=post), False
    except InteractionRecord.DoesNotExist:
        # The insert failed for another reason, e.g. the post was deleted meanwhile
        raise NotFoundError('Post not found')


def record_view(user, post_id: int) -> ViewResult:
    """
    Count the first view of a post by a user.

    Repeated views are a no-op: no counter change, no error.
    """
    post = get_post(post_id)
    now = timezone.now()

    with transaction.atomic():
        record, created = _claim_record(user, post, has_viewed=True, viewed_at=now)
        incremented = created

        if not created and not record.has_viewed:
            # Only one request can flip has_viewed from False to True
            flipped = (
                InteractionRecord.objects
                .filter(pk=record.pk, has_viewed=False)
                .update(has_viewed=True, viewed_at=now, updated_at=now)
            )
            incremented = flipped == 1
            record.refresh_from_db()

        if incremented:
            Post.objects.filter(id=post.id).update(views=F('views') + 1)

    return ViewResult(record, incremented)


LIKE_FLIP_ATTEMPTS = 3


def _flip_like(record: InteractionRecord, now) -> int:
    """
    Invert has_liked on an existing ledger row and return the counter delta.

    The update is conditional on the value we read, so two toggles by the
    same user apply one after the other: the loser re-reads the row and
    flips the new state instead of repeating the winner's change.
    """
    for _ in range(LIKE_FLIP_ATTEMPTS):
        liked = not record.has_liked
        flipped = (
            InteractionRecord.objects
            .filter(pk=record.pk, has_liked=record.has_liked)
            .update(has_liked=liked, liked_at=now if liked else None, updated_at=now)
        )
        record.refresh_from_db()
        if flipped:
            return 1 if liked else -1

    logger.warning(f"Like toggle on ledger row {record.pk} kept losing to concurrent updates")
    raise ConflictError('Like was modified concurrently, please retry')


def toggle_like(user, post_id: int) -> LikeResult:
    """
    Flip the user's like on a post and apply the matching counter delta.

    The decrement is floored at zero.
    """
    post = get_post(post_id)
    now = timezone.now()

    with transaction.atomic():
        record, created = _claim_record(user, post, has_liked=True, liked_at=now)

        delta = 1 if created else _flip_like(record, now)

        if delta > 0:
            Post.objects.filter(id=post.id).update(likes=F('likes') + 1)
        else:
            Post.objects.filter(id=post.id, likes__gt=0).update(likes=F('likes') - 1)

    return LikeResult(record, delta)


# ============================================================================
# RECONCILIATION
# ============================================================================

def reconcile_post_counters(post_id: Optional[int] = None, dry_run: bool = False) -> List[dict]:
    """
    Recompute views, likes and comments_count from their sources of truth.

    views           = ledger rows with has_viewed
    likes           = ledger rows with has_liked
    comments_count  = top-level comments

    Returns one entry per post whose stored counters differed. Unless
    dry_run is set, those posts are corrected.
    """
    queryset = Post.objects.all()
    if post_id is not None:
        get_post(post_id)
        queryset = queryset.filter(id=post_id)

    queryset = queryset.annotate(
        ledger_views=Count('interactions', filter=Q(interactions__has_viewed=True), distinct=True),
        ledger_likes=Count('interactions', filter=Q(interactions__has_liked=True), distinct=True),
        top_level_comments=Count('comments', filter=Q(comments__parent__isnull=True), distinct=True),
    ).order_by('id')

    drifted = []
    for post in queryset:
        expected = {
            'views': post.ledger_views,
            'likes': post.ledger_likes,
            'comments_count': post.top_level_comments,
        }
        actual = {
            'views': post.views,
            'likes': post.likes,
            'comments_count': post.comments_count,
        }
        if expected == actual:
            continue

        logger.warning(f"Counter drift on post {post.id}: stored={actual} ledger={expected}")
        drifted.append({'post_id': post.id, 'stored': actual, 'expected': expected})

        if not dry_run:
            Post.objects.filter(id=post.id).update(**expected)

    return drifted
