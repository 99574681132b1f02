from rest_framework import serializers
from .models import Review, ReviewImage
from users.models import User


class AuthorSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ('id', 'name', 'avatar', 'reputation')


class ReviewImageSerializer(serializers.ModelSerializer):
    url = serializers.SerializerMethodField()

    class Meta:
        model = ReviewImage
        fields = ('id', 'url', 'filename', 'size')

    def get_url(self, obj):
        return obj.image.url if obj.image else ""


class ReviewSerializer(serializers.ModelSerializer):
    """Read representation; field names follow the public camelCase API."""

    author = AuthorSerializer(read_only=True)
    productName = serializers.CharField(source='product_name')
    sentimentScore = serializers.FloatField(source='sentiment_score')
    isFake = serializers.BooleanField(source='is_fake')
    fakeConfidence = serializers.FloatField(source='fake_confidence')
    aiProvider = serializers.CharField(source='ai_provider')
    isVerified = serializers.BooleanField(source='is_verified')
    purchaseData = serializers.JSONField(source='purchase_data')
    blockchainHash = serializers.CharField(source='blockchain_hash')
    blockchainVerified = serializers.BooleanField(source='blockchain_verified')
    contentAddress = serializers.CharField(source='content_address')
    reportCount = serializers.IntegerField(source='report_count')
    moderatedBy = serializers.UUIDField(source='moderated_by_id', allow_null=True)
    moderatedAt = serializers.DateTimeField(source='moderated_at', allow_null=True)
    moderationNotes = serializers.CharField(source='moderation_notes')
    images = ReviewImageSerializer(many=True, read_only=True)
    createdAt = serializers.DateTimeField(source='created_at')
    updatedAt = serializers.DateTimeField(source='updated_at')

    class Meta:
        model = Review
        fields = (
            'id', 'author', 'productName', 'category', 'title', 'content', 'rating', 'status',
            'sentiment', 'sentimentScore', 'summary', 'keywords', 'isFake', 'fakeConfidence',
            'aiProvider', 'isVerified', 'purchaseData', 'blockchainHash', 'blockchainVerified',
            'contentAddress', 'helpful', 'reportCount', 'views', 'moderatedBy', 'moderatedAt',
            'moderationNotes', 'images', 'createdAt', 'updatedAt',
        )
        read_only_fields = fields


class ReviewWriteSerializer(serializers.Serializer):
    productName = serializers.CharField(source='product_name', min_length=1, max_length=200)
    category = serializers.ChoiceField(choices=Review.Category.choices)
    title = serializers.CharField(min_length=1, max_length=200)
    content = serializers.CharField(min_length=10, max_length=2000)
    rating = serializers.IntegerField(min_value=1, max_value=5)
    qrCode = serializers.CharField(source='qr_code', required=False, allow_blank=True, max_length=200)


class ReviewStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[Review.Status.APPROVED, Review.Status.REJECTED])
    moderationNotes = serializers.CharField(required=False, allow_blank=True, max_length=500, default="")


class ReviewReportSerializer(serializers.Serializer):
    reason = serializers.CharField(min_length=1, max_length=500)


class VerifyPurchaseSerializer(serializers.Serializer):
    qrCode = serializers.CharField(max_length=200)


class ReviewImageUploadSerializer(serializers.Serializer):
    image = serializers.ImageField()
