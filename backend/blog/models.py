"""
Data Models for the Blog
========================

Design Philosophy:
------------------
1. Post carries denormalized counters (views, likes, comments_count)
   - Counters are a cache for display and sorting
   - The ledger rows below are the source of truth; every counter can be
     recomputed from them (see services.reconcile_post_counters)

2. InteractionRecord is the per-(user, post) ledger
   - Exactly one row per pair, enforced by a unique constraint
   - The constraint is also the concurrency guard: two racing "first view"
     requests cannot both insert, the loser falls back to an update

3. Comments form a two-level tree
   - parent is null for top-level comments
   - a reply's parent is always top-level; replies cannot have replies
   - likes on comments are a membership set (liked_by), likes == |liked_by|

Indexes Strategy:
-----------------
- post.status + post.created_at: public listing filtered by status
- post.category: analytics rollups and category filter
- comment.post + comment.parent + comment.created_at: top-level page + replies
"""

from django.conf import settings
from django.db import models
from django.utils import timezone

from portfolio.errors import ValidationError


class Post(models.Model):
    """
    A blog post. Authored and edited by admins.

    `author` is a display label, not a foreign key.
    """

    class Category(models.TextChoices):
        TECHNOLOGY = 'Technology', 'Technology'
        DESIGN = 'Design', 'Design'
        DEVELOPMENT = 'Development', 'Development'

    class Status(models.TextChoices):
        DRAFT = 'draft', 'Draft'
        PUBLISHED = 'published', 'Published'

    title = models.CharField(max_length=200)
    excerpt = models.CharField(max_length=500)
    author = models.CharField(max_length=100)
    date = models.DateTimeField(default=timezone.now)
    read_time = models.CharField(max_length=50, blank=True, default='')
    category = models.CharField(max_length=20, choices=Category.choices, db_index=True)
    image = models.CharField(max_length=500)
    tags = models.JSONField(default=list, blank=True)
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.DRAFT
    )
    content = models.TextField(blank=True, default='')

    # Denormalized counters, maintained by the services module only
    views = models.PositiveIntegerField(default=0)
    likes = models.PositiveIntegerField(default=0)
    comments_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', '-created_at'], name='blog_post_status_created_idx'),
        ]

    def __str__(self):
        return f"{self.title[:50]} ({self.status})"


class InteractionRecord(models.Model):
    """
    Ledger of one user's interaction with one post.

    CONCURRENCY STRATEGY:
    - Unique constraint (user, post) enforced at DB level
    - Records are created lazily inside a savepoint
    - IntegrityError from a racing insert means "row exists now":
      re-read it and continue as an update
    """
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='interactions'
    )
    post = models.ForeignKey(
        Post,
        on_delete=models.CASCADE,
        related_name='interactions'
    )
    has_viewed = models.BooleanField(default=False)
    viewed_at = models.DateTimeField(null=True, blank=True)
    has_liked = models.BooleanField(default=False)
    liked_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'post'],
                name='unique_interaction_per_user_per_post'
            )
        ]
        indexes = [
            # For recounting a post's views/likes from the ledger
            models.Index(fields=['post', 'has_liked'], name='blog_interaction_liked_idx'),
            models.Index(fields=['post', 'has_viewed'], name='blog_interaction_viewed_idx'),
        ]

    def __str__(self):
        return f"{self.user_id} on post {self.post_id} (viewed={self.has_viewed}, liked={self.has_liked})"


class Comment(models.Model):
    """
    A comment on a post, or a reply to a top-level comment.

    author_username is denormalized so a page of comments renders without
    joining users.
    """
    post = models.ForeignKey(
        Post,
        on_delete=models.CASCADE,
        related_name='comments'
    )
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='comments'
    )
    author_username = models.CharField(max_length=150)
    parent = models.ForeignKey(
        'self',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='replies'
    )
    content = models.TextField(max_length=1000)

    likes = models.PositiveIntegerField(default=0)
    liked_by = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        related_name='liked_comments',
        blank=True
    )

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['post', 'parent', '-created_at'], name='blog_comment_thread_idx'),
            models.Index(fields=['parent', 'created_at'], name='blog_comment_replies_idx'),
        ]

    def __str__(self):
        return f"Comment by {self.author_username} on {self.post_id}"

    @property
    def is_top_level(self) -> bool:
        return self.parent_id is None

    def save(self, *args, **kwargs):
        # Replies may only hang off top-level comments of the same post
        if self.parent_id is not None:
            parent = self.parent
            if parent.parent_id is not None:
                raise ValidationError("Cannot reply to a reply")
            if parent.post_id != self.post_id:
                raise ValidationError("Parent comment belongs to a different post")
        super().save(*args, **kwargs)
