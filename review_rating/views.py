import logging

from django.conf import settings
from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from drf_spectacular.types import OpenApiTypes
from rest_framework import status
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from analytics_app.services import ReviewAnalytics
from review_analysis.hashing import content_hash, review_hash_payload
from users.models import User
from users.permissions import IsAdminRole
from utils import errors
from utils.image_opt import process_uploaded_file
from utils.responses import success_response

from .filters import filters_from_params, pagination_meta
from .gateway import DatabaseTier
from .serializers import (
    ReviewImageSerializer,
    ReviewImageUploadSerializer,
    ReviewReportSerializer,
    ReviewSerializer,
    ReviewStatusSerializer,
    ReviewWriteSerializer,
    VerifyPurchaseSerializer,
)

logger = logging.getLogger("rest_framework")

REVIEW_LIST_PARAMETERS = [
    OpenApiParameter('status', OpenApiTypes.STR, description="Admins only; everyone else sees approved reviews."),
    OpenApiParameter('category', OpenApiTypes.STR),
    OpenApiParameter('sentiment', OpenApiTypes.STR, enum=['positive', 'negative', 'neutral']),
    OpenApiParameter('rating', OpenApiTypes.INT),
    OpenApiParameter('search', OpenApiTypes.STR),
    OpenApiParameter('sort', OpenApiTypes.STR, enum=['newest', 'oldest', 'highest', 'lowest', 'helpful']),
    OpenApiParameter('sortBy', OpenApiTypes.STR, enum=['createdAt', 'updatedAt', 'rating', 'helpful', 'views']),
    OpenApiParameter('sortOrder', OpenApiTypes.STR, enum=['asc', 'desc']),
    OpenApiParameter('page', OpenApiTypes.INT),
    OpenApiParameter('limit', OpenApiTypes.INT),
    OpenApiParameter('userId', OpenApiTypes.UUID),
]


def client_ip(request):
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR") or None


def _bearer_token(request):
    # JWTAuthentication stores the raw access token as request.auth
    return request.auth if isinstance(request.auth, str) else None


class AuthenticatedWritesMixin:
    def get_permissions(self):
        if self.request.method in ("GET", "HEAD", "OPTIONS"):
            return [AllowAny()]
        return [IsAuthenticated()]


@extend_schema_view(
    get=extend_schema(
        summary="List Reviews",
        description="Filtered, sorted and paginated reviews. Non-admin callers only see approved reviews. "
                    "`meta.source` names the tier that answered; `meta.degraded` is true when it was a fallback.",
        parameters=REVIEW_LIST_PARAMETERS,
        responses=ReviewSerializer(many=True),
    ),
    post=extend_schema(
        summary="Create Review",
        description="Submit a review. It starts as pending and is analysed in the background. "
                    "An optional `qrCode` is verified first and marks the review as a verified purchase.",
        request=ReviewWriteSerializer,
        responses={201: ReviewSerializer, 202: OpenApiTypes.OBJECT},
    ),
)
class ReviewListCreateAPIView(AuthenticatedWritesMixin, APIView):
    serializer_class = ReviewWriteSerializer

    def get(self, request):
        filters = filters_from_params(request.query_params, request.user)
        gateway = request.app_context.gateway_for(request.user, _bearer_token(request))
        result = gateway.load_reviews(filters)
        page = result.value
        return success_response(
            {"reviews": page.reviews, "pagination": pagination_meta(filters, page.total)},
            meta=result.as_meta(),
        )

    def post(self, request):
        context = request.app_context
        serializer = self.serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = dict(serializer.validated_data)
        qr_code = data.pop("qr_code", "")
        verification = None
        if qr_code and context.flag("ENABLE_QR_VERIFICATION"):
            verification = context.purchase_verifier.verify(qr_code)

        data["user_agent"] = request.META.get("HTTP_USER_AGENT", "")[:300]
        data["ip_address"] = client_ip(request)

        result = context.gateway_for(request.user, _bearer_token(request)).submit_review(
            request.user, data, verification=verification
        )
        review = result.value
        if review.get("status") == "queued":
            return success_response(
                {"review": review},
                message="Review queued and will be saved once the service is available.",
                meta=result.as_meta(),
                status_code=status.HTTP_202_ACCEPTED,
            )

        context.notifications_for(request.user).success(
            "Review submitted",
            f"Your review of {data['product_name']} is pending moderation.",
            action_url=f"/reviews/{review.get('id')}",
        )
        return success_response(
            {"review": review},
            message="Review submitted successfully and is pending moderation.",
            meta=result.as_meta(),
            status_code=status.HTTP_201_CREATED,
        )


@extend_schema_view(
    get=extend_schema(summary="Retrieve Review", responses=ReviewSerializer),
    put=extend_schema(summary="Replace Review", request=ReviewWriteSerializer, responses=ReviewSerializer),
    patch=extend_schema(summary="Update Review", request=ReviewWriteSerializer, responses=ReviewSerializer),
    delete=extend_schema(summary="Delete Review", description="Allowed for the author or an admin."),
)
class ReviewDetailAPIView(AuthenticatedWritesMixin, APIView):
    serializer_class = ReviewWriteSerializer

    def get(self, request, review_id):
        review = request.app_context.store.retrieve_for_view(review_id, request.user)
        return success_response({"review": ReviewSerializer(review).data})

    def put(self, request, review_id):
        return self._update(request, review_id, partial=False)

    def patch(self, request, review_id):
        return self._update(request, review_id, partial=True)

    def _update(self, request, review_id, partial):
        serializer = self.serializer_class(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        data.pop("qr_code", None)

        review = request.app_context.store.update(review_id, request.user, data)
        return success_response({"review": ReviewSerializer(review).data}, message="Review updated successfully.")

    def delete(self, request, review_id):
        request.app_context.store.delete(review_id, request.user)
        return success_response(message="Review deleted successfully.")


class ReviewStatusAPIView(APIView):
    permission_classes = [IsAdminRole]
    serializer_class = ReviewStatusSerializer

    @extend_schema(summary="Approve or reject a review", responses=ReviewSerializer)
    def patch(self, request, review_id):
        context = request.app_context
        serializer = self.serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data["status"]

        result = context.gateway_for(request.user, _bearer_token(request)).update_status(
            review_id, new_status, request.user, serializer.validated_data["moderationNotes"]
        )

        status_changed = result.value.pop("statusChanged", False)
        # repeating the current decision has no side effects
        if result.tier == DatabaseTier.name and status_changed:
            review = context.store.get(review_id)
            context.broadcaster.review_update(review)
            context.broadcaster.analytics_update(ReviewAnalytics.dashboard_counts())
            author = User.objects.filter(pk=review.author_id).first()
            notifier = context.notifications_for(author)
            if new_status == review.Status.APPROVED:
                notifier.success("Review approved", f"Your review \"{review.title}\" is now public.",
                                 action_url=f"/reviews/{review.pk}")
            else:
                notifier.warning("Review rejected", f"Your review \"{review.title}\" was not approved.",
                                 action_url=f"/reviews/{review.pk}")

        return success_response(
            {"review": result.value},
            message=f"Review {new_status} successfully.",
            meta=result.as_meta(),
        )


class ReviewHelpfulAPIView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = None

    @extend_schema(summary="Mark a review as helpful", request=None, responses=OpenApiTypes.OBJECT)
    def post(self, request, review_id):
        helpful = request.app_context.store.mark_helpful(review_id, request.user)
        return success_response({"helpful": helpful}, message="Review marked as helpful.")


class ReviewReportAPIView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ReviewReportSerializer

    @extend_schema(summary="Report a review", responses=OpenApiTypes.OBJECT)
    def post(self, request, review_id):
        serializer = self.serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        report_count = request.app_context.store.report(review_id, request.user, serializer.validated_data["reason"])
        return success_response({"reportCount": report_count}, message="Review reported successfully.")


class ReviewVerifyHashAPIView(APIView):
    """
    Recomputes the content hash of a review and compares it with the stored
    one. `stored` tells whether the canonical record is held by the content
    store under the recorded address.
    """

    permission_classes = [AllowAny]
    serializer_class = None

    @extend_schema(summary="Verify a review's content hash", responses=OpenApiTypes.OBJECT)
    def get(self, request, review_id):
        context = request.app_context
        review = context.store.get(review_id)
        context.store.ensure_visible(review, request.user)

        try:
            computed = content_hash(review_hash_payload(review))
        except errors.EncodingError as exc:
            logger.warning(f"Could not recompute hash of review {review.pk}: {exc.message}")
            computed = None

        stored = False
        if review.content_address:
            try:
                stored = context.content_store.exists(review.content_address)
            except errors.UpstreamUnavailableError as exc:
                logger.warning(f"Content store unavailable while verifying {review.pk}: {exc.message}")

        return success_response({
            "verified": bool(review.blockchain_hash) and computed == review.blockchain_hash,
            "blockchainHash": review.blockchain_hash,
            "computedHash": computed,
            "contentAddress": review.content_address,
            "stored": stored,
        })


class ReviewImageUploadAPIView(APIView):
    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]
    serializer_class = ReviewImageUploadSerializer

    @extend_schema(summary="Attach an image to a review", responses={201: ReviewImageSerializer})
    def post(self, request, review_id):
        serializer = self.serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        upload = serializer.validated_data["image"]

        optimized = process_uploaded_file(upload, max_size_mb=settings.UPLOAD_MAX_SIZE_MB)
        image = request.app_context.store.add_image(
            review_id, request.user, optimized, filename=upload.name, max_images=settings.MAX_IMAGES_PER_REVIEW
        )
        return success_response(
            {"image": ReviewImageSerializer(image).data},
            message="Image uploaded successfully.",
            status_code=status.HTTP_201_CREATED,
        )


class VerifyPurchaseAPIView(APIView):
    """
    Checks a product QR code (`PRODUCT_...`) against the purchase verifier.
    The verifier shipped here is simulated and says so in `simulated`.
    """

    permission_classes = [AllowAny]
    serializer_class = VerifyPurchaseSerializer
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'verify_purchase'

    @extend_schema(summary="Verify a purchase by QR code", responses=OpenApiTypes.OBJECT)
    def post(self, request):
        context = request.app_context
        if not context.flag("ENABLE_QR_VERIFICATION"):
            raise errors.NotFoundError("Purchase verification is disabled.")

        serializer = self.serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        verification = context.purchase_verifier.verify(serializer.validated_data["qrCode"])
        message = "Purchase verified." if verification.verified else "Purchase could not be verified."
        return success_response(verification.as_dict(), message=message)
