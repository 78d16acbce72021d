"""
DRF Serializers
===============

Serializers handle:
1. Validation of incoming post data (admin forms)
2. Transformation of model instances to the JSON shape the front end uses
3. Comment threads (top-level comment + replies)

Field names in the API are camelCase; model fields stay snake_case and
are mapped with `source`.
"""

from rest_framework import serializers

from .models import Post, Comment


class TagListField(serializers.Field):
    """
    Tags as an ordered list of strings.

    Accepts a JSON list or a comma-separated string ("django, api").
    Whitespace is trimmed and empty entries are dropped.
    """
    default_error_messages = {
        'invalid': 'Tags must be a list of strings or a comma-separated string.',
    }

    def to_internal_value(self, data):
        if data is None or data == '':
            return []
        if isinstance(data, str):
            items = data.split(',')
        elif isinstance(data, (list, tuple)):
            if not all(isinstance(item, str) for item in data):
                self.fail('invalid')
            items = data
        else:
            self.fail('invalid')
        return [item.strip() for item in items if item.strip()]

    def to_representation(self, value):
        return list(value or [])


class PostSerializer(serializers.ModelSerializer):
    """
    Post as returned by every post endpoint.

    Counters are read-only; they only change through the ledger.
    userHasLiked / userHasViewed come from queries.annotate_for_user().
    """
    readTime = serializers.CharField(source='read_time', required=False, allow_blank=True, max_length=50)
    author = serializers.CharField(required=False, allow_blank=True, max_length=100)
    tags = TagListField(required=False)
    commentsCount = serializers.IntegerField(source='comments_count', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)
    userHasLiked = serializers.SerializerMethodField()
    userHasViewed = serializers.SerializerMethodField()

    class Meta:
        model = Post
        fields = [
            'id',
            'title',
            'excerpt',
            'author',
            'date',
            'readTime',
            'category',
            'image',
            'tags',
            'status',
            'content',
            'views',
            'likes',
            'commentsCount',
            'createdAt',
            'updatedAt',
            'userHasLiked',
            'userHasViewed',
        ]
        read_only_fields = ['views', 'likes']

    def get_userHasLiked(self, obj):
        return bool(getattr(obj, 'user_has_liked', False))

    def get_userHasViewed(self, obj):
        return bool(getattr(obj, 'user_has_viewed', False))

    def validate_title(self, value):
        if not value.strip():
            raise serializers.ValidationError("Title is required.")
        return value.strip()

    def validate_excerpt(self, value):
        if not value.strip():
            raise serializers.ValidationError("Excerpt is required.")
        return value.strip()

    def validate_author(self, value):
        return value.strip()

    def create(self, validated_data):
        # author is a free-text label; default to the admin who wrote it
        if not validated_data.get('author'):
            request = self.context.get('request')
            validated_data['author'] = request.user.username if request else 'Admin'
        return super().create(validated_data)


class PostStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Post.Status.choices)


class CommentSerializer(serializers.ModelSerializer):
    """
    A single comment without its replies.

    Expects liked_by to be prefetched when serializing many comments.
    """
    author = serializers.SerializerMethodField()
    postId = serializers.IntegerField(source='post_id', read_only=True)
    parentComment = serializers.IntegerField(source='parent_id', read_only=True)
    likedBy = serializers.SerializerMethodField()
    userHasLiked = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Comment
        fields = [
            'id',
            'content',
            'author',
            'postId',
            'parentComment',
            'likes',
            'likedBy',
            'userHasLiked',
            'createdAt',
            'updatedAt',
        ]
        read_only_fields = ['content', 'likes']

    def get_author(self, obj):
        return {'id': obj.author_id, 'username': obj.author_username}

    def get_likedBy(self, obj):
        return sorted(user.id for user in obj.liked_by.all())

    def get_userHasLiked(self, obj):
        request = self.context.get('request')
        if request is None or not request.user.is_authenticated:
            return False
        return request.user.id in self.get_likedBy(obj)


class CommentThreadSerializer(serializers.Serializer):
    """
    A top-level comment with its replies.

    Serializes the node dicts built by queries.build_comment_tree():
        {'comment': Comment, 'replies': [Comment, ...]}
    """

    def to_representation(self, node):
        data = CommentSerializer(node['comment'], context=self.context).data
        data['replies'] = CommentSerializer(node['replies'], many=True, context=self.context).data
        data['replyCount'] = len(node['replies'])
        return data


class CommentCreateSerializer(serializers.Serializer):
    """
    Input for a new comment.

    Tree rules (same post, no reply-to-reply) are enforced by
    comments.resolve_placement().
    """
    content = serializers.CharField(max_length=1000)
    parentComment = serializers.IntegerField(required=False, allow_null=True, min_value=1)


class CommentUpdateSerializer(serializers.Serializer):
    content = serializers.CharField(max_length=1000)
