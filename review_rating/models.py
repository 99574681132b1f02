import uuid

from django.db import models
from django.core.validators import MinLengthValidator, MinValueValidator, MaxValueValidator
from users.models import User


class Review(models.Model):

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        APPROVED = "approved", "Approved"
        REJECTED = "rejected", "Rejected"

    class Category(models.TextChoices):
        TECHNOLOGY = "Technology", "Technology"
        AUTOMOTIVE = "Automotive", "Automotive"
        FOOD_DINING = "Food & Dining", "Food & Dining"
        HEALTHCARE = "Healthcare", "Healthcare"
        EDUCATION = "Education", "Education"
        ENTERTAINMENT = "Entertainment", "Entertainment"
        TRAVEL = "Travel", "Travel"
        FINANCE = "Finance", "Finance"
        FASHION = "Fashion", "Fashion"
        HOME_GARDEN = "Home & Garden", "Home & Garden"
        SPORTS_FITNESS = "Sports & Fitness", "Sports & Fitness"
        BOOKS_MEDIA = "Books & Media", "Books & Media"
        OTHER = "Other", "Other"

    class Sentiment(models.TextChoices):
        POSITIVE = "positive", "Positive"
        NEGATIVE = "negative", "Negative"
        NEUTRAL = "neutral", "Neutral"

    class Provider(models.TextChoices):
        OPENAI = "openai", "OpenAI"
        HUGGINGFACE = "huggingface", "HuggingFace"
        FALLBACK = "fallback", "Heuristic"

    id = models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True)
    author = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='reviews'
    )

    product_name = models.CharField(max_length=200)
    category = models.CharField(max_length=30, choices=Category.choices)
    title = models.CharField(max_length=200)
    content = models.TextField(
        max_length=2000,
        validators=[MinLengthValidator(10)]
    )
    rating = models.PositiveSmallIntegerField(
        validators=[
            MinValueValidator(1),
            MaxValueValidator(5)
        ]
    )
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING, db_index=True)

    # enrichment
    sentiment = models.CharField(max_length=10, choices=Sentiment.choices, default=Sentiment.NEUTRAL)
    sentiment_score = models.FloatField(default=0.0)
    summary = models.CharField(max_length=500, blank=True, default="")
    keywords = models.JSONField(default=list, blank=True)
    is_fake = models.BooleanField(default=False)
    fake_confidence = models.FloatField(default=0.0)
    ai_provider = models.CharField(max_length=20, choices=Provider.choices, blank=True, default="")
    blockchain_hash = models.CharField(max_length=80, blank=True, default="")
    blockchain_verified = models.BooleanField(default=False)
    content_address = models.CharField(max_length=120, blank=True, default="")
    enriched_at = models.DateTimeField(null=True, blank=True)

    # purchase verification
    is_verified = models.BooleanField(default=False)
    qr_code = models.CharField(max_length=200, blank=True, default="")
    purchase_data = models.JSONField(default=dict, blank=True)

    # counters
    helpful = models.PositiveIntegerField(default=0)
    report_count = models.PositiveIntegerField(default=0)
    views = models.PositiveIntegerField(default=0)

    # moderation
    moderated_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='moderated_reviews'
    )
    moderated_at = models.DateTimeField(null=True, blank=True)
    moderation_notes = models.CharField(max_length=500, blank=True, default="")

    user_agent = models.CharField(max_length=300, blank=True, default="")
    ip_address = models.GenericIPAddressField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        # One review per product per author.
        constraints = [
            models.UniqueConstraint(fields=['author', 'product_name'], name='unique_author_product_review')
        ]
        indexes = [
            models.Index(fields=['status', 'category']),
            models.Index(fields=['status', 'sentiment']),
        ]

    def __str__(self):
        return f"Review by {self.author.email} on {self.product_name}"


class HelpfulVote(models.Model):
    review = models.ForeignKey(Review, on_delete=models.CASCADE, related_name='helpful_marks')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='helpful_marks_given')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['review', 'user'], name='unique_helpful_vote')
        ]


class ReviewReport(models.Model):
    review = models.ForeignKey(Review, on_delete=models.CASCADE, related_name='reports')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='review_reports')
    reason = models.CharField(max_length=500)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=['review', 'user'], name='unique_review_report')
        ]

    def __str__(self):
        return f"Report on {self.review_id} by {self.user_id}"


class ReviewImage(models.Model):
    review = models.ForeignKey(Review, on_delete=models.CASCADE, related_name='images')
    image = models.ImageField(upload_to='reviews/')
    filename = models.CharField(max_length=255)
    size = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
