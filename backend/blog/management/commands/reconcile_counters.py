"""
Rebuild denormalized counters from their sources of truth.

Usage:
    python manage.py reconcile_counters
    python manage.py reconcile_counters --post 12 --dry-run
"""

from django.core.management.base import BaseCommand, CommandError

from portfolio.errors import NotFoundError
from blog.comments import reconcile_comment_likes
from blog.services import reconcile_post_counters


class Command(BaseCommand):
    help = 'Recompute post views/likes/comments_count and comment likes'

    def add_arguments(self, parser):
        parser.add_argument('--post', type=int, help='Only reconcile this post')
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report drift without fixing it'
        )

    def handle(self, *args, **options):
        post_id = options.get('post')
        dry_run = options['dry_run']

        try:
            post_drift = reconcile_post_counters(post_id, dry_run=dry_run)
        except NotFoundError as e:
            raise CommandError(e.message)
        comment_drift = reconcile_comment_likes(post_id, dry_run=dry_run)

        for entry in post_drift:
            self.stdout.write(
                f"post {entry['post_id']}: {entry['stored']} -> {entry['expected']}"
            )
        for entry in comment_drift:
            self.stdout.write(
                f"comment {entry['comment_id']}: likes {entry['stored']} -> {entry['expected']}"
            )

        verb = 'Found' if dry_run else 'Fixed'
        self.stdout.write(self.style.SUCCESS(
            f"{verb} {len(post_drift)} post(s) and {len(comment_drift)} comment(s) with drift"
        ))
