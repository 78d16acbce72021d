"""
Analytics Aggregator
====================

Read-only statistics for the admin dashboard.

Everything is computed from Post and Comment on each request. There are
no stored rollups, so there is nothing to invalidate.

    get_stats()           totals across all posts
    get_category_stats()  per-category rollup
    get_monthly_stats()   published posts grouped by year-month of `date`
"""

import math
from typing import List, TypedDict

from django.db.models import Count, Q, Sum
from django.db.models.functions import Coalesce, TruncMonth

from .models import Comment, Post


class CategoryStats(TypedDict):
    category: str
    count: int
    totalViews: int
    totalLikes: int
    totalComments: int


class MonthlyStats(TypedDict):
    year: int
    month: int
    period: str
    count: int
    totalViews: int
    totalLikes: int


def round_half_up(value: float) -> int:
    """Round .5 upwards, like JavaScript's Math.round."""
    return math.floor(value + 0.5)


def get_stats() -> dict:
    totals = Post.objects.aggregate(
        total_posts=Count('id'),
        published_posts=Count('id', filter=Q(status=Post.Status.PUBLISHED)),
        draft_posts=Count('id', filter=Q(status=Post.Status.DRAFT)),
        total_views=Coalesce(Sum('views'), 0),
        total_likes=Coalesce(Sum('likes'), 0),
    )

    total_posts = totals['total_posts']
    avg_views = round_half_up(totals['total_views'] / total_posts) if total_posts else 0

    return {
        'totalPosts': total_posts,
        'publishedPosts': totals['published_posts'],
        'draftPosts': totals['draft_posts'],
        'totalComments': Comment.objects.count(),
        'totalViews': totals['total_views'],
        'totalLikes': totals['total_likes'],
        'avgViews': avg_views,
    }


def get_category_stats() -> List[CategoryStats]:
    rows = (
        Post.objects
        .values('category')
        .annotate(
            count=Count('id'),
            total_views=Coalesce(Sum('views'), 0),
            total_likes=Coalesce(Sum('likes'), 0),
            total_comments=Coalesce(Sum('comments_count'), 0),
        )
        .order_by('category')
    )

    return [
        {
            'category': row['category'],
            'count': row['count'],
            'totalViews': row['total_views'],
            'totalLikes': row['total_likes'],
            'totalComments': row['total_comments'],
        }
        for row in rows
    ]


def get_monthly_stats() -> List[MonthlyStats]:
    rows = (
        Post.objects
        .filter(status=Post.Status.PUBLISHED)
        .annotate(month=TruncMonth('date'))
        .values('month')
        .annotate(
            count=Count('id'),
            total_views=Coalesce(Sum('views'), 0),
            total_likes=Coalesce(Sum('likes'), 0),
        )
        .order_by('month')
    )

    result: List[MonthlyStats] = []
    for row in rows:
        month = row['month']
        result.append({
            'year': month.year,
            'month': month.month,
            'period': f"{month.year:04d}-{month.month:02d}",
            'count': row['count'],
            'totalViews': row['total_views'],
            'totalLikes': row['total_likes'],
        })
    return result


def get_dashboard() -> dict:
    return {
        'stats': get_stats(),
        'categories': get_category_stats(),
        'monthly': get_monthly_stats(),
    }
