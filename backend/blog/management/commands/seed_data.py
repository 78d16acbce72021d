"""
Management command to seed the database with sample data.

Usage: python manage.py seed_data

Views, likes and comments go through the services so every counter
matches the ledger afterwards.
"""

import random
from datetime import timedelta
from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model
from django.utils import timezone

from blog.models import Post, Comment, InteractionRecord
from blog.comments import create_comment, toggle_comment_like
from blog.services import record_view, toggle_like

User = get_user_model()


class Command(BaseCommand):
    help = 'Seed the database with sample data for testing'

    def add_arguments(self, parser):
        parser.add_argument(
            '--users',
            type=int,
            default=10,
            help='Number of users to create'
        )
        parser.add_argument(
            '--posts',
            type=int,
            default=12,
            help='Number of posts to create'
        )
        parser.add_argument(
            '--comments',
            type=int,
            default=60,
            help='Number of comments to create'
        )
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before seeding'
        )

    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            InteractionRecord.objects.all().delete()
            Comment.objects.all().delete()
            Post.objects.all().delete()
            User.objects.filter(is_superuser=False).delete()

        self.stdout.write('Creating users...')
        admin = self._create_admin()
        users = self._create_users(options['users'])

        self.stdout.write('Creating posts...')
        posts = self._create_posts(admin, options['posts'])

        self.stdout.write('Creating comments...')
        comments = self._create_comments(users, posts, options['comments'])

        self.stdout.write('Creating views and likes...')
        self._create_interactions(users, posts, comments)

        self.stdout.write(self.style.SUCCESS(
            f'Successfully created:\n'
            f'  - {len(users)} users (+ admin "{admin.username}")\n'
            f'  - {len(posts)} posts\n'
            f'  - {len(comments)} comments\n'
            f'  - Views and likes'
        ))

    def _create_admin(self):
        admin, created = User.objects.get_or_create(
            username='admin',
            defaults={'email': 'admin@example.com', 'role': User.Role.ADMIN},
        )
        if created:
            admin.set_password('password123')
            admin.save(update_fields=['password'])
        return admin

    def _create_users(self, count):
        users = []
        for i in range(count):
            username = f'user{i+1}'
            user = User.objects.filter(username=username).first()
            if user is None:
                user = User.objects.create_user(
                    username=username,
                    email=f'{username}@example.com',
                    password='password123'
                )
            users.append(user)
        return users

    def _create_posts(self, admin, count):
        posts = []
        titles = [
            "Building a portfolio with React and Three.js",
            "What I learned shipping my first API",
            "Design systems for solo developers",
            "Animating without hurting performance",
            "Notes on accessible color palettes",
            "Why I moved my side projects to Postgres",
            "Testing strategies that actually stick",
            "From Figma to production",
        ]

        excerpts = [
            "A short walkthrough of the decisions behind this project.",
            "Lessons, mistakes and the things I would do differently.",
            "A practical checklist you can apply today.",
        ]

        for i in range(count):
            post = Post.objects.create(
                title=f"{random.choice(titles)} #{i+1}",
                excerpt=random.choice(excerpts),
                author=admin.username,
                date=timezone.now() - timedelta(days=random.randint(0, 180)),
                read_time=f"{random.randint(3, 12)} min read",
                category=random.choice(Post.Category.values),
                image=f"/images/blog/post-{i+1}.png",
                tags=random.sample(['react', 'django', 'design', 'css', 'api', 'career'], k=2),
                status=random.choice(Post.Status.values),
                content="Lorem ipsum dolor sit amet, consectetur adipiscing elit.\n\n" * 3,
            )
            posts.append(post)
        return posts

    def _create_comments(self, users, posts, count):
        comments = []
        comment_texts = [
            "Great point! I totally agree.",
            "Hmm, I'm not sure about this...",
            "Thanks for sharing!",
            "Can you elaborate on this?",
            "This is exactly what I was looking for.",
            "Interesting take, but have you considered...",
        ]

        for i in range(count):
            post = random.choice(posts)

            # 30% chance of being a reply to an existing top-level comment
            parent_id = None
            threads = [c for c in comments if c.post_id == post.id and c.parent_id is None]
            if threads and random.random() < 0.3:
                parent_id = random.choice(threads).id

            comment = create_comment(
                post.id,
                random.choice(users),
                random.choice(comment_texts),
                parent_id=parent_id,
            )
            comments.append(comment)

        return comments

    def _create_interactions(self, users, posts, comments):
        # Each user reads about half of the posts and likes some of them
        for post in posts:
            readers = random.sample(users, k=len(users) // 2)
            for reader in readers:
                record_view(reader, post.id)
                if random.random() < 0.4:
                    toggle_like(reader, post.id)

        # Like 30% of comments
        for comment in comments:
            if random.random() < 0.3:
                for liker in random.sample(users, k=min(3, len(users))):
                    toggle_comment_like(comment.id, liker)
