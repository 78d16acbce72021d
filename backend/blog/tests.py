"""
Tests for the blog

Focus areas:
1. Interaction ledger (first-view-only counting, like toggling, floor at 0)
2. Comment tree (two levels, cascade counts, comment likes)
3. Access policy on every route class
4. Analytics numbers and counter reconciliation
"""

from datetime import datetime, timezone as dt_timezone
from io import StringIO
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.db import IntegrityError
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from accounts.tokens import issue_token
from portfolio.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from .analytics import get_category_stats, get_monthly_stats, get_stats, round_half_up
from .comments import (
    Reply,
    TopLevel,
    create_comment,
    delete_comment,
    reconcile_comment_likes,
    resolve_placement,
    toggle_comment_like,
    update_comment,
)
from .models import Comment, InteractionRecord, Post
from .queries import list_comments, list_posts
from .services import (
    delete_post,
    reconcile_post_counters,
    record_view,
    set_post_status,
    toggle_like,
)

User = get_user_model()


def make_post(**overrides):
    data = {
        'title': 'Shipping a portfolio',
        'excerpt': 'What went into it',
        'author': 'Admin',
        'category': Post.Category.TECHNOLOGY,
        'image': '/images/cover.png',
        'status': Post.Status.PUBLISHED,
    }
    data.update(overrides)
    return Post.objects.create(**data)


class InteractionLedgerTestCase(TestCase):
    """
    The ledger decides whether counters move.

    CRITICAL: views count once per user; likes toggle and never go negative.
    """

    def setUp(self):
        self.alice = User.objects.create_user('alice', 'alice@test.com', 'secret123')
        self.bob = User.objects.create_user('bob', 'bob@test.com', 'secret123')
        self.post = make_post()

    def test_first_view_increments_once(self):
        first = record_view(self.alice, self.post.id)
        second = record_view(self.alice, self.post.id)

        self.assertTrue(first.incremented)
        self.assertFalse(second.incremented)
        self.post.refresh_from_db()
        self.assertEqual(self.post.views, 1)
        self.assertEqual(InteractionRecord.objects.filter(post=self.post).count(), 1)

    def test_views_from_two_users(self):
        """A views (0->1), B views (1->2), A again (stays 2)."""
        record_view(self.alice, self.post.id)
        self.post.refresh_from_db()
        self.assertEqual(self.post.views, 1)

        record_view(self.bob, self.post.id)
        self.post.refresh_from_db()
        self.assertEqual(self.post.views, 2)

        record_view(self.alice, self.post.id)
        self.post.refresh_from_db()
        self.assertEqual(self.post.views, 2)

    def test_view_after_like_only_record(self):
        """A record created by a like still counts the first view."""
        toggle_like(self.alice, self.post.id)

        result = record_view(self.alice, self.post.id)

        self.assertTrue(result.incremented)
        self.assertTrue(result.record.has_viewed)
        self.assertIsNotNone(result.record.viewed_at)
        self.post.refresh_from_db()
        self.assertEqual(self.post.views, 1)

    def test_like_toggle_parity(self):
        """Even number of toggles returns to the start, odd leaves +1."""
        for i in range(1, 6):
            result = toggle_like(self.alice, self.post.id)
            self.post.refresh_from_db()
            if i % 2:
                self.assertEqual(result.delta, 1)
                self.assertTrue(result.liked)
                self.assertEqual(self.post.likes, 1)
            else:
                self.assertEqual(result.delta, -1)
                self.assertFalse(result.liked)
                self.assertEqual(self.post.likes, 0)

    def test_unlike_clears_liked_at(self):
        toggle_like(self.alice, self.post.id)
        result = toggle_like(self.alice, self.post.id)

        self.assertIsNone(result.record.liked_at)

    def test_likes_never_negative(self):
        """Counter drifted to 0 while the ledger says liked: unlike stays at 0."""
        toggle_like(self.alice, self.post.id)
        Post.objects.filter(id=self.post.id).update(likes=0)

        result = toggle_like(self.alice, self.post.id)

        self.assertEqual(result.delta, -1)
        self.post.refresh_from_db()
        self.assertEqual(self.post.likes, 0)

    def test_missing_post_fails_before_ledger_write(self):
        with self.assertRaises(NotFoundError):
            record_view(self.alice, 999999)
        with self.assertRaises(NotFoundError):
            toggle_like(self.alice, 999999)

        self.assertEqual(InteractionRecord.objects.count(), 0)

    def test_unique_constraint_on_pair(self):
        InteractionRecord.objects.create(user=self.alice, post=self.post)

        with self.assertRaises(IntegrityError):
            InteractionRecord.objects.create(user=self.alice, post=self.post)

    def test_racing_insert_falls_back_to_update(self):
        """
        Simulate a concurrent first view: the lookup misses, then the insert
        hits the unique constraint because another request won.
        """
        InteractionRecord.objects.create(user=self.alice, post=self.post)

        real_filter = InteractionRecord.objects.filter
        calls = {'count': 0}

        def stale_filter(*args, **kwargs):
            queryset = real_filter(*args, **kwargs)
            calls['count'] += 1
            # The first lookup sees nothing, as if the row did not exist yet
            return queryset.none() if calls['count'] == 1 else queryset

        with patch.object(InteractionRecord.objects, 'filter', side_effect=stale_filter):
            result = record_view(self.alice, self.post.id)

        self.assertTrue(result.incremented)
        self.assertEqual(InteractionRecord.objects.filter(user=self.alice, post=self.post).count(), 1)
        self.post.refresh_from_db()
        self.assertEqual(self.post.views, 1)

    def test_stale_like_read_toggles_current_state(self):
        """
        Two tabs toggle at once: the second read the row before the first
        liked it. Its flip must apply to the new state, not repeat +1.
        """
        toggle_like(self.alice, self.post.id)
        stale = InteractionRecord.objects.get(user=self.alice, post=self.post)
        stale.has_liked = False

        with patch('blog.services._claim_record', return_value=(stale, False)):
            result = toggle_like(self.alice, self.post.id)

        self.assertEqual(result.delta, -1)
        self.assertFalse(result.liked)
        self.post.refresh_from_db()
        liked_rows = InteractionRecord.objects.filter(post=self.post, has_liked=True).count()
        self.assertEqual(liked_rows, 0)
        self.assertEqual(self.post.likes, liked_rows)

    def test_like_flip_gives_up_under_constant_contention(self):
        toggle_like(self.alice, self.post.id)

        with patch('django.db.models.query.QuerySet.update', return_value=0):
            with self.assertRaises(ConflictError):
                toggle_like(self.alice, self.post.id)

        self.post.refresh_from_db()
        self.assertEqual(self.post.likes, 1)
        self.assertTrue(InteractionRecord.objects.get(user=self.alice, post=self.post).has_liked)


class PostStoreTestCase(TestCase):

    def setUp(self):
        self.user = User.objects.create_user('user', 'u@test.com', 'secret123')
        self.post = make_post(status=Post.Status.DRAFT)

    def test_set_status(self):
        set_post_status(self.post.id, Post.Status.PUBLISHED)

        self.post.refresh_from_db()
        self.assertEqual(self.post.status, Post.Status.PUBLISHED)

    def test_set_invalid_status(self):
        with self.assertRaises(ValidationError):
            set_post_status(self.post.id, 'archived')

    def test_list_filters_and_annotates(self):
        published = make_post(title='Live')
        toggle_like(self.user, published.id)

        posts = list(list_posts(self.user, status=Post.Status.PUBLISHED))

        self.assertEqual([p.id for p in posts], [published.id])
        self.assertTrue(posts[0].user_has_liked)
        self.assertFalse(posts[0].user_has_viewed)

    def test_list_rejects_unknown_sort(self):
        with self.assertRaises(ValidationError):
            list_posts(self.user, sort_by='password')

    def test_delete_cascades(self):
        """Deleting a post removes its comments, replies and ledger rows."""
        top = create_comment(self.post.id, self.user, 'First!')
        create_comment(self.post.id, self.user, 'Reply', parent_id=top.id)
        toggle_comment_like(top.id, self.user)
        record_view(self.user, self.post.id)
        other = make_post(title='Other')
        create_comment(other.id, self.user, 'Elsewhere')

        removed = delete_post(self.post.id)

        self.assertEqual(removed, {'comments': 2, 'interactions': 1})
        self.assertFalse(Post.objects.filter(id=self.post.id).exists())
        self.assertFalse(Comment.objects.filter(post_id=self.post.id).exists())
        self.assertFalse(InteractionRecord.objects.filter(post_id=self.post.id).exists())
        self.assertEqual(Comment.objects.filter(post=other).count(), 1)

    def test_delete_missing_post(self):
        with self.assertRaises(NotFoundError):
            delete_post(999999)


class CommentTreeTestCase(TestCase):
    """
    Comment tree rules.

    CRITICAL: the tree never exceeds two levels and comments_count only
    tracks top-level comments.
    """

    def setUp(self):
        self.author = User.objects.create_user('author', 'a@test.com', 'secret123')
        self.stranger = User.objects.create_user('stranger', 's@test.com', 'secret123')
        self.admin = User.objects.create_user('admin', 'admin@test.com', 'secret123', role=User.Role.ADMIN)
        self.post = make_post()

    def test_top_level_increments_count_reply_does_not(self):
        top = create_comment(self.post.id, self.author, '  Nice post  ')
        reply = create_comment(self.post.id, self.stranger, 'Agreed', parent_id=top.id)

        self.post.refresh_from_db()
        self.assertEqual(self.post.comments_count, 1)
        self.assertEqual(top.content, 'Nice post')
        self.assertEqual(top.author_username, 'author')
        self.assertEqual(reply.parent_id, top.id)

    def test_reply_to_reply_rejected(self):
        top = create_comment(self.post.id, self.author, 'Top')
        reply = create_comment(self.post.id, self.author, 'Reply', parent_id=top.id)

        with self.assertRaisesMessage(ValidationError, 'Cannot reply to a reply'):
            create_comment(self.post.id, self.author, 'Too deep', parent_id=reply.id)

        self.assertEqual(Comment.objects.count(), 2)

    def test_model_refuses_nested_reply(self):
        top = create_comment(self.post.id, self.author, 'Top')
        reply = create_comment(self.post.id, self.author, 'Reply', parent_id=top.id)

        with self.assertRaises(ValidationError):
            Comment.objects.create(
                post=self.post, author=self.author, author_username='author',
                parent=reply, content='Sneaky'
            )

    def test_parent_from_other_post_rejected(self):
        other = make_post(title='Other')
        foreign = create_comment(other.id, self.author, 'Elsewhere')

        with self.assertRaises(ValidationError):
            create_comment(self.post.id, self.author, 'Cross-post', parent_id=foreign.id)

    def test_missing_parent_is_not_found(self):
        with self.assertRaises(NotFoundError):
            create_comment(self.post.id, self.author, 'Orphan', parent_id=999999)

    def test_blank_content_rejected(self):
        with self.assertRaises(ValidationError):
            create_comment(self.post.id, self.author, '   ')

    def test_resolve_placement(self):
        top = create_comment(self.post.id, self.author, 'Top')

        self.assertEqual(resolve_placement(self.post, None), TopLevel())
        self.assertEqual(resolve_placement(self.post, top.id), Reply(parent_id=top.id))

    def test_delete_top_level_cascades_and_decrements_once(self):
        """N replies: N+1 records removed, comments_count drops by exactly 1."""
        top = create_comment(self.post.id, self.author, 'Top')
        for i in range(3):
            create_comment(self.post.id, self.stranger, f'Reply {i}', parent_id=top.id)
        create_comment(self.post.id, self.stranger, 'Another thread')
        self.post.refresh_from_db()
        self.assertEqual(self.post.comments_count, 2)

        removed = delete_comment(top.id, self.author)

        self.assertEqual(removed, 4)
        self.assertEqual(Comment.objects.filter(post=self.post).count(), 1)
        self.post.refresh_from_db()
        self.assertEqual(self.post.comments_count, 1)

    def test_delete_reply_keeps_count(self):
        top = create_comment(self.post.id, self.author, 'Top')
        reply = create_comment(self.post.id, self.stranger, 'Reply', parent_id=top.id)

        removed = delete_comment(reply.id, self.stranger)

        self.assertEqual(removed, 1)
        self.post.refresh_from_db()
        self.assertEqual(self.post.comments_count, 1)

    def test_only_author_or_admin_can_delete(self):
        top = create_comment(self.post.id, self.author, 'Top')

        with self.assertRaises(AuthorizationError):
            delete_comment(top.id, self.stranger)

        self.assertEqual(delete_comment(top.id, self.admin), 1)

    def test_update_comment(self):
        top = create_comment(self.post.id, self.author, 'Top')

        with self.assertRaises(AuthorizationError):
            update_comment(top.id, self.stranger, 'Hijacked')

        updated = update_comment(top.id, self.author, ' Edited ')
        self.assertEqual(updated.content, 'Edited')

    def test_comment_likes_match_membership(self):
        top = create_comment(self.post.id, self.author, 'Top')
        reply = create_comment(self.post.id, self.author, 'Reply', parent_id=top.id)

        toggle_comment_like(top.id, self.author)
        toggle_comment_like(top.id, self.stranger)
        result = toggle_comment_like(top.id, self.admin)
        self.assertTrue(result.liked)
        self.assertEqual(result.comment.likes, 3)

        result = toggle_comment_like(top.id, self.stranger)
        self.assertFalse(result.liked)
        self.assertEqual(result.comment.likes, 2)
        self.assertEqual(result.comment.likes, result.comment.liked_by.count())

        result = toggle_comment_like(reply.id, self.stranger)
        self.assertEqual(result.comment.likes, 1)

    def test_list_comments_page(self):
        first = create_comment(self.post.id, self.author, 'First')
        second = create_comment(self.post.id, self.author, 'Second')
        third = create_comment(self.post.id, self.author, 'Third')
        early = create_comment(self.post.id, self.stranger, 'Early reply', parent_id=first.id)
        late = create_comment(self.post.id, self.stranger, 'Late reply', parent_id=first.id)

        page = list_comments(self.post.id, page=1, limit=2)

        threads = page['threads']
        self.assertEqual([t['comment'].id for t in threads], [third.id, second.id])
        self.assertEqual(page['pagination'], {
            'currentPage': 1,
            'totalPages': 2,
            'totalComments': 3,
            'hasMore': True,
        })

        page = list_comments(self.post.id, page=2, limit=2)
        self.assertEqual([t['comment'].id for t in page['threads']], [first.id])
        self.assertEqual([r.id for r in page['threads'][0]['replies']], [early.id, late.id])
        self.assertFalse(page['pagination']['hasMore'])

    def test_list_comments_ascending(self):
        first = create_comment(self.post.id, self.author, 'First')
        second = create_comment(self.post.id, self.author, 'Second')

        page = list_comments(self.post.id, order='asc')

        self.assertEqual([t['comment'].id for t in page['threads']], [first.id, second.id])

    def test_list_comments_bad_paging(self):
        with self.assertRaises(ValidationError):
            list_comments(self.post.id, page=0)
        with self.assertRaises(ValidationError):
            list_comments(self.post.id, limit=1000)
        with self.assertRaises(NotFoundError):
            list_comments(999999)


class AnalyticsTestCase(TestCase):

    def setUp(self):
        self.user = User.objects.create_user('user', 'u@test.com', 'secret123')

    def test_empty_stats(self):
        stats = get_stats()

        self.assertEqual(stats['totalPosts'], 0)
        self.assertEqual(stats['avgViews'], 0)
        self.assertEqual(get_category_stats(), [])
        self.assertEqual(get_monthly_stats(), [])

    def test_stats(self):
        p1 = make_post(views=3, likes=1)
        make_post(views=2, likes=4, status=Post.Status.DRAFT)
        create_comment(p1.id, self.user, 'Top')
        top = Comment.objects.get()
        create_comment(p1.id, self.user, 'Reply', parent_id=top.id)

        stats = get_stats()

        self.assertEqual(stats, {
            'totalPosts': 2,
            'publishedPosts': 1,
            'draftPosts': 1,
            'totalComments': 2,
            'totalViews': 5,
            'totalLikes': 5,
            'avgViews': 3,
        })

    def test_round_half_up(self):
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(2.4), 2)

    def test_category_rollup(self):
        make_post(category=Post.Category.DESIGN, views=1, likes=2, comments_count=3)
        make_post(category=Post.Category.DESIGN, views=4, likes=0, comments_count=1)
        make_post(category=Post.Category.TECHNOLOGY, views=7)

        rows = get_category_stats()

        self.assertEqual(rows, [
            {'category': 'Design', 'count': 2, 'totalViews': 5, 'totalLikes': 2, 'totalComments': 4},
            {'category': 'Technology', 'count': 1, 'totalViews': 7, 'totalLikes': 0, 'totalComments': 0},
        ])

    def test_monthly_only_published_in_order(self):
        make_post(date=datetime(2024, 3, 10, tzinfo=dt_timezone.utc), views=5, likes=1)
        make_post(date=datetime(2024, 1, 5, tzinfo=dt_timezone.utc), views=2)
        make_post(date=datetime(2024, 1, 20, tzinfo=dt_timezone.utc), views=1, likes=2)
        make_post(date=datetime(2024, 2, 1, tzinfo=dt_timezone.utc), views=50, status=Post.Status.DRAFT)

        rows = get_monthly_stats()

        self.assertEqual([row['period'] for row in rows], ['2024-01', '2024-03'])
        self.assertEqual(rows[0]['count'], 2)
        self.assertEqual(rows[0]['totalViews'], 3)
        self.assertEqual(rows[0]['totalLikes'], 2)


class ReconciliationTestCase(TestCase):

    def setUp(self):
        self.user = User.objects.create_user('user', 'u@test.com', 'secret123')
        self.post = make_post()

    def test_consistent_data_has_no_drift(self):
        record_view(self.user, self.post.id)
        toggle_like(self.user, self.post.id)
        create_comment(self.post.id, self.user, 'Top')

        self.assertEqual(reconcile_post_counters(), [])

    def test_drift_is_repaired(self):
        record_view(self.user, self.post.id)
        toggle_like(self.user, self.post.id)
        top = create_comment(self.post.id, self.user, 'Top')
        create_comment(self.post.id, self.user, 'Reply', parent_id=top.id)
        Post.objects.filter(id=self.post.id).update(views=10, likes=0, comments_count=7)

        drift = reconcile_post_counters(self.post.id)

        self.assertEqual(len(drift), 1)
        self.assertEqual(drift[0]['expected'], {'views': 1, 'likes': 1, 'comments_count': 1})
        self.post.refresh_from_db()
        self.assertEqual((self.post.views, self.post.likes, self.post.comments_count), (1, 1, 1))

    def test_dry_run_reports_only(self):
        Post.objects.filter(id=self.post.id).update(views=4)

        drift = reconcile_post_counters(dry_run=True)

        self.assertEqual(len(drift), 1)
        self.post.refresh_from_db()
        self.assertEqual(self.post.views, 4)

    def test_comment_likes_repaired(self):
        top = create_comment(self.post.id, self.user, 'Top')
        toggle_comment_like(top.id, self.user)
        Comment.objects.filter(id=top.id).update(likes=9)

        drift = reconcile_comment_likes()

        self.assertEqual(drift, [{'comment_id': top.id, 'stored': 9, 'expected': 1}])
        top.refresh_from_db()
        self.assertEqual(top.likes, 1)

    def test_management_command(self):
        Post.objects.filter(id=self.post.id).update(likes=3)
        out = StringIO()

        call_command('reconcile_counters', stdout=out)

        self.assertIn('Fixed 1 post(s)', out.getvalue())
        self.post.refresh_from_db()
        self.assertEqual(self.post.likes, 0)


class SeedDataTestCase(TestCase):

    def test_seeded_counters_are_consistent(self):
        call_command('seed_data', users=4, posts=3, comments=10, stdout=StringIO())

        self.assertTrue(User.objects.filter(username='admin', role=User.Role.ADMIN).exists())
        self.assertEqual(Post.objects.count(), 3)
        self.assertEqual(Comment.objects.count(), 10)
        self.assertEqual(reconcile_post_counters(dry_run=True), [])
        self.assertEqual(reconcile_comment_likes(dry_run=True), [])


class BlogApiTestCase(APITestCase):
    """End-to-end scenarios through the HTTP API."""

    def setUp(self):
        self.admin = User.objects.create_user('admin', 'admin@test.com', 'secret123', role=User.Role.ADMIN)
        self.alice = User.objects.create_user('alice', 'alice@test.com', 'secret123')
        self.bob = User.objects.create_user('bob', 'bob@test.com', 'secret123')

    def as_user(self, user):
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {issue_token(user)}')

    def create_post(self, **overrides):
        payload = {
            'title': 'Hello world',
            'excerpt': 'First post',
            'category': 'Technology',
            'image': '/images/hello.png',
            'tags': 'django, api, ',
            'readTime': '4 min read',
        }
        payload.update(overrides)
        self.as_user(self.admin)
        response = self.client.post('/api/posts', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        return response.data

    def test_requires_authentication(self):
        response = self.client.get('/api/posts')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn('error', response.data)

    def test_non_admin_cannot_create_post(self):
        self.as_user(self.alice)

        response = self.client.post('/api/posts', {
            'title': 'Nope', 'excerpt': 'x', 'category': 'Design', 'image': 'x',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(Post.objects.count(), 0)

    def test_create_post_defaults(self):
        data = self.create_post()

        self.assertEqual(data['status'], 'draft')
        self.assertEqual(data['tags'], ['django', 'api'])
        self.assertEqual(data['author'], 'admin')
        self.assertEqual(data['readTime'], '4 min read')
        self.assertEqual((data['views'], data['likes'], data['commentsCount']), (0, 0, 0))

    def test_counters_not_writable(self):
        data = self.create_post()

        response = self.client.put(f"/api/posts/{data['id']}", {'likes': 100, 'title': 'Renamed'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['likes'], 0)
        self.assertEqual(response.data['title'], 'Renamed')

    def test_invalid_category_is_400(self):
        self.as_user(self.admin)

        response = self.client.post('/api/posts', {
            'title': 'Bad', 'excerpt': 'x', 'category': 'Cooking', 'image': 'x',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('category', response.data['details'])

    def test_publish_flow(self):
        """Draft is hidden from ?status=published until it is published."""
        post_id = self.create_post()['id']

        self.as_user(self.alice)
        response = self.client.get('/api/posts', {'status': 'published'})
        self.assertNotIn(post_id, [p['id'] for p in response.data])

        self.as_user(self.alice)
        response = self.client.patch(f'/api/posts/{post_id}/status', {'status': 'published'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.as_user(self.admin)
        response = self.client.patch(f'/api/posts/{post_id}/status', {'status': 'published'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.as_user(self.alice)
        response = self.client.get('/api/posts', {'status': 'published'})
        self.assertIn(post_id, [p['id'] for p in response.data])

    def test_invalid_status_is_400(self):
        post_id = self.create_post()['id']

        response = self.client.patch(f'/api/posts/{post_id}/status', {'status': 'archived'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data, {'error': 'Invalid status'})

    def test_view_endpoint(self):
        post_id = self.create_post()['id']

        self.as_user(self.alice)
        first = self.client.patch(f'/api/posts/{post_id}/view')
        second = self.client.patch(f'/api/posts/{post_id}/view')

        self.assertTrue(first.data['viewIncremented'])
        self.assertFalse(second.data['viewIncremented'])
        self.assertEqual(second.data['views'], 1)
        self.assertTrue(second.data['userHasViewed'])

    def test_like_endpoint(self):
        post_id = self.create_post()['id']

        self.as_user(self.alice)
        liked = self.client.patch(f'/api/posts/{post_id}/like')
        unliked = self.client.patch(f'/api/posts/{post_id}/like')

        self.assertEqual((liked.data['likeChange'], liked.data['userHasLiked'], liked.data['likes']), (1, True, 1))
        self.assertEqual((unliked.data['likeChange'], unliked.data['userHasLiked'], unliked.data['likes']), (-1, False, 0))

    def test_missing_post_is_404(self):
        self.as_user(self.alice)

        for response in (
            self.client.get('/api/posts/999999'),
            self.client.patch('/api/posts/999999/view'),
            self.client.patch('/api/posts/999999/like'),
        ):
            self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
            self.assertEqual(response.data, {'error': 'Post not found'})

    def test_delete_post_cascades(self):
        post_id = self.create_post()['id']
        self.as_user(self.alice)
        comment = self.client.post(f'/api/posts/{post_id}/comments', {'content': 'Hi'}, format='json').data
        self.client.patch(f'/api/posts/{post_id}/view')

        self.as_user(self.admin)
        response = self.client.delete(f'/api/posts/{post_id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.as_user(self.alice)
        self.assertEqual(self.client.get(f'/api/posts/{post_id}').status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.client.patch(f"/api/comments/{comment['id']}/like").status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(InteractionRecord.objects.filter(post_id=post_id).exists())

    def test_comment_thread_api(self):
        post_id = self.create_post()['id']

        self.as_user(self.alice)
        top = self.client.post(f'/api/posts/{post_id}/comments', {'content': 'Great read'}, format='json')
        self.assertEqual(top.status_code, status.HTTP_201_CREATED)
        self.assertEqual(top.data['author'], {'id': self.alice.id, 'username': 'alice'})
        self.assertIsNone(top.data['parentComment'])

        self.as_user(self.bob)
        reply = self.client.post(
            f'/api/posts/{post_id}/comments',
            {'content': 'Agreed', 'parentComment': top.data['id']},
            format='json'
        )
        self.assertEqual(reply.status_code, status.HTTP_201_CREATED)

        nested = self.client.post(
            f'/api/posts/{post_id}/comments',
            {'content': 'Deeper', 'parentComment': reply.data['id']},
            format='json'
        )
        self.assertEqual(nested.status_code, status.HTTP_400_BAD_REQUEST)

        like = self.client.patch(f"/api/comments/{reply.data['id']}/like")
        self.assertTrue(like.data['userHasLiked'])
        self.assertEqual(like.data['likes'], 1)
        self.assertEqual(like.data['likedBy'], [self.bob.id])

        listing = self.client.get(f'/api/posts/{post_id}/comments', {'page': 1, 'limit': 5})
        self.assertEqual(listing.status_code, status.HTTP_200_OK)
        self.assertEqual(listing.data['pagination'], {
            'currentPage': 1, 'totalPages': 1, 'totalComments': 1, 'hasMore': False,
        })
        thread = listing.data['comments'][0]
        self.assertEqual(thread['replyCount'], 1)
        self.assertEqual(thread['replies'][0]['id'], reply.data['id'])
        self.assertTrue(thread['replies'][0]['userHasLiked'])

        post = self.client.get(f'/api/posts/{post_id}')
        self.assertEqual(post.data['commentsCount'], 1)

    def test_comment_edit_and_delete_ownership(self):
        post_id = self.create_post()['id']
        self.as_user(self.alice)
        comment = self.client.post(f'/api/posts/{post_id}/comments', {'content': 'Mine'}, format='json').data

        self.as_user(self.bob)
        self.assertEqual(
            self.client.put(f"/api/comments/{comment['id']}", {'content': 'Yours'}, format='json').status_code,
            status.HTTP_403_FORBIDDEN
        )
        self.assertEqual(self.client.delete(f"/api/comments/{comment['id']}").status_code, status.HTTP_403_FORBIDDEN)

        self.as_user(self.alice)
        response = self.client.put(f"/api/comments/{comment['id']}", {'content': 'Edited'}, format='json')
        self.assertEqual(response.data['content'], 'Edited')

        self.as_user(self.admin)
        response = self.client.delete(f"/api/comments/{comment['id']}")
        self.assertEqual(response.data['deletedCount'], 1)
        self.assertEqual(Post.objects.get(id=post_id).comments_count, 0)

    def test_bad_page_param_is_400(self):
        post_id = self.create_post()['id']
        self.as_user(self.alice)

        response = self.client.get(f'/api/posts/{post_id}/comments', {'page': 'two'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_analytics_admin_only(self):
        self.create_post(status='published')

        self.as_user(self.alice)
        self.assertEqual(self.client.get('/api/analytics/stats').status_code, status.HTTP_403_FORBIDDEN)

        self.as_user(self.admin)
        for path in ('stats', 'categories', 'monthly', 'dashboard'):
            response = self.client.get(f'/api/analytics/{path}')
            self.assertEqual(response.status_code, status.HTTP_200_OK, path)

        self.assertEqual(self.client.get('/api/analytics/stats').data['publishedPosts'], 1)
        self.assertEqual(len(self.client.get('/api/analytics/monthly').data), 1)

    def test_reconcile_endpoint(self):
        post_id = self.create_post()['id']
        Post.objects.filter(id=post_id).update(views=42)

        response = self.client.post(f'/api/posts/{post_id}/reconcile')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['post']['views'], 0)
        self.assertEqual(len(response.data['postDrift']), 1)
