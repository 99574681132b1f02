from datetime import timedelta

import pytest

from review_rating.filters import ReviewFilters, filters_from_params, pagination_meta
from review_rating.models import Review
from review_rating.store import ReviewStore
from review_rating.verification import PurchaseVerification
from users.models import User
from utils import errors

from .conftest import ReviewFactory, UserFactory

pytestmark = pytest.mark.django_db


@pytest.fixture
def scheduled():
    return []


@pytest.fixture
def store(scheduled):
    return ReviewStore(on_content_change=scheduled.append)


def _data(**overrides):
    data = {
        "product_name": "Pixel 8",
        "category": Review.Category.TECHNOLOGY,
        "title": "  Great camera  ",
        "content": "The camera is excellent in low light and the battery lasts a day.",
        "rating": 5,
    }
    data.update(overrides)
    return data


class TestCreate:
    def test_creates_pending_review_and_schedules_enrichment(self, store, scheduled, user):
        review = store.create(user, _data())

        assert review.status == Review.Status.PENDING
        assert review.title == "Great camera"
        assert scheduled == [review.pk]
        user.refresh_from_db()
        assert user.review_count == 1

    def test_duplicate_product_is_a_conflict(self, store, user):
        store.create(user, _data())

        with pytest.raises(errors.ConflictError):
            store.create(user, _data(title="Again"))

    def test_other_authors_can_review_the_same_product(self, store, user, other_user):
        store.create(user, _data())
        store.create(other_user, _data())

        assert Review.objects.filter(product_name="Pixel 8").count() == 2

    @pytest.mark.parametrize("overrides", [
        {"rating": 6},
        {"rating": 0},
        {"category": "Groceries"},
        {"content": "too short"},
        {"title": ""},
    ])
    def test_rejects_invalid_fields(self, store, user, overrides):
        with pytest.raises(errors.ValidationError):
            store.create(user, _data(**overrides))

    def test_records_purchase_verification(self, store, user):
        verification = PurchaseVerification(
            verified=True, product_id="PRODUCT_PIXEL8", product_name="Pixel 8", retailer="Amazon", simulated=True
        )

        review = store.create(user, _data(), verification=verification)

        assert review.is_verified is True
        assert review.qr_code == "PRODUCT_PIXEL8"
        assert review.purchase_data["retailer"] == "Amazon"


class TestVisibility:
    def test_pending_review_hidden_from_strangers(self, store, other_user):
        review = ReviewFactory(status=Review.Status.PENDING)

        with pytest.raises(errors.NotFoundError):
            store.retrieve_for_view(review.pk, other_user)
        with pytest.raises(errors.NotFoundError):
            store.retrieve_for_view(review.pk, None)

    def test_pending_review_visible_to_author_and_admin(self, store, moderator):
        review = ReviewFactory(status=Review.Status.PENDING)

        assert store.retrieve_for_view(review.pk, review.author).views == 1
        assert store.retrieve_for_view(review.pk, moderator).views == 2

    def test_unknown_id_is_not_found(self, store):
        with pytest.raises(errors.NotFoundError):
            store.get("not-a-uuid")


class TestModeration:
    def test_approval_credits_reputation_once(self, store, moderator):
        review = ReviewFactory(status=Review.Status.PENDING)

        first = store.set_status(review.pk, Review.Status.APPROVED, moderator, "looks fine")
        second = store.set_status(review.pk, Review.Status.APPROVED, moderator)

        assert first.status_changed is True
        assert second.status_changed is False
        assert first.moderated_by == moderator
        review.author.refresh_from_db()
        assert review.author.reputation == User.STARTING_REPUTATION + 10

    def test_rejection_debits_reputation(self, store, moderator):
        review = ReviewFactory(status=Review.Status.PENDING)

        store.set_status(review.pk, Review.Status.REJECTED, moderator)

        review.author.refresh_from_db()
        assert review.author.reputation == User.STARTING_REPUTATION - 5

    def test_pending_is_not_a_moderation_target(self, store, moderator):
        review = ReviewFactory(status=Review.Status.APPROVED)

        with pytest.raises(errors.ValidationError):
            store.set_status(review.pk, Review.Status.PENDING, moderator)


class TestUpdate:
    def test_content_change_resets_moderation_and_reschedules(self, store, scheduled):
        review = ReviewFactory(status=Review.Status.PENDING, blockchain_hash="0xabc")

        updated = store.update(review.pk, review.author, {"content": "Changed my mind, the battery is merely okay."})

        assert updated.status == Review.Status.PENDING
        assert updated.blockchain_hash == ""
        assert scheduled == [review.pk]

    def test_category_change_keeps_moderation(self, store, scheduled, moderator):
        review = ReviewFactory(status=Review.Status.APPROVED, moderated_by=moderator)

        updated = store.update(review.pk, moderator, {"category": Review.Category.OTHER})

        assert updated.status == Review.Status.APPROVED
        assert updated.category == Review.Category.OTHER
        assert scheduled == []

    def test_admin_edit_of_approved_content_sends_it_back_to_pending(self, store, moderator):
        review = ReviewFactory(status=Review.Status.APPROVED)

        updated = store.update(review.pk, moderator, {"rating": 2})

        assert updated.status == Review.Status.PENDING
        assert updated.moderated_by is None

    def test_author_cannot_edit_after_moderation(self, store):
        review = ReviewFactory(status=Review.Status.APPROVED)

        with pytest.raises(errors.ValidationError):
            store.update(review.pk, review.author, {"rating": 1})

    def test_only_author_or_admin(self, store, other_user):
        review = ReviewFactory(status=Review.Status.PENDING)

        with pytest.raises(errors.AuthorizationError):
            store.update(review.pk, other_user, {"rating": 1})
        with pytest.raises(errors.AuthorizationError):
            store.delete(review.pk, other_user)


class TestCounters:
    def test_helpful_is_counted_once_per_user(self, store, other_user):
        review = ReviewFactory()

        assert store.mark_helpful(review.pk, other_user) == 1
        with pytest.raises(errors.ConflictError):
            store.mark_helpful(review.pk, other_user)

        review.author.refresh_from_db()
        assert review.author.helpful_votes == 1
        assert review.author.reputation == User.STARTING_REPUTATION + 2

    def test_author_cannot_mark_own_review(self, store):
        review = ReviewFactory()

        with pytest.raises(errors.ValidationError):
            store.mark_helpful(review.pk, review.author)

    def test_report_is_counted_once_per_user(self, store, user, other_user):
        review = ReviewFactory()

        assert store.report(review.pk, user, "spam") == 1
        assert store.report(review.pk, other_user, "off topic") == 2
        with pytest.raises(errors.ConflictError):
            store.report(review.pk, user, "spam again")

    def test_report_requires_reason(self, store, user):
        review = ReviewFactory()

        with pytest.raises(errors.ValidationError):
            store.report(review.pk, user, "   ")

    def test_enrichment_cannot_touch_moderation_fields(self, store):
        review = ReviewFactory()

        with pytest.raises(ValueError):
            store.apply_enrichment(review.pk, {"status": Review.Status.REJECTED})


class TestListing:
    def test_filters_and_pagination(self, store):
        author = UserFactory()
        for rating in (1, 3, 5, 5):
            ReviewFactory(author=author, rating=rating)
        ReviewFactory(author=author, rating=5, status=Review.Status.PENDING)

        items, total = store.list_by_filter(ReviewFilters(status=Review.Status.APPROVED, rating=5))
        assert total == 2

        items, total = store.list_by_filter(ReviewFilters(status=Review.Status.APPROVED, limit=3, page=2))
        assert total == 4
        assert len(items) == 1

    def test_sorting_by_rating(self, store):
        for rating in (3, 1, 4):
            ReviewFactory(rating=rating)

        items, _ = store.list_by_filter(ReviewFilters(status=Review.Status.APPROVED, sort="lowest"))

        assert [review.rating for review in items] == [1, 3, 4]

    def test_search_matches_title_and_content(self, store):
        ReviewFactory(title="Quiet keyboard", content="Typing on it is a pleasure, barely any noise at all.")
        ReviewFactory(title="Loud fan", content="The laptop fan is noisy whenever the processor is busy.")

        filters = filters_from_params({"search": "keyboard"})
        items, total = store.list_by_filter(filters)

        assert total == 1
        assert items[0].title == "Quiet keyboard"

    def test_non_admin_cannot_list_pending(self, user, moderator):
        assert filters_from_params({"status": "pending"}, user).status == Review.Status.APPROVED
        assert filters_from_params({"status": "pending"}, moderator).status == Review.Status.PENDING

    def test_status_and_category_filters_combine(self, store):
        ReviewFactory(category=Review.Category.TECHNOLOGY)
        ReviewFactory(category=Review.Category.TECHNOLOGY)
        ReviewFactory(category=Review.Category.TECHNOLOGY, status=Review.Status.PENDING)
        ReviewFactory(category=Review.Category.BOOKS_MEDIA)
        ReviewFactory(category=Review.Category.BOOKS_MEDIA, status=Review.Status.REJECTED)

        items, total = store.list_by_filter(
            ReviewFilters(status=Review.Status.APPROVED, category=Review.Category.TECHNOLOGY)
        )

        assert total == 2
        assert all(review.status == Review.Status.APPROVED for review in items)
        assert all(review.category == Review.Category.TECHNOLOGY for review in items)

    def test_page_past_the_end_is_empty(self, store):
        for _ in range(3):
            ReviewFactory()

        filters = ReviewFilters(status=Review.Status.APPROVED, limit=2, page=5)
        items, total = store.list_by_filter(filters)

        assert items == []
        assert pagination_meta(filters, total) == {"page": 5, "limit": 2, "total": 3, "pages": 2}

    @pytest.mark.parametrize("term", ["!!!", "  ?! ", "..."])
    def test_punctuation_only_search_lists_newest(self, store, term):
        older = ReviewFactory()
        newer = ReviewFactory()
        Review.objects.filter(pk=older.pk).update(created_at=newer.created_at - timedelta(days=1))

        filters = filters_from_params({"search": term})
        assert filters.search is None
        assert filters.sort != "relevance"

        items, total = store.list_by_filter(filters)
        assert total == 2
        assert [review.pk for review in items] == [newer.pk, older.pk]

    def test_relevance_sort_survives_an_empty_term(self, store):
        ReviewFactory()

        items, total = store.list_by_filter(
            ReviewFilters(status=Review.Status.APPROVED, search="!!!", sort="relevance")
        )

        assert total == 1

    def test_author_filter(self, store):
        mine = ReviewFactory()
        ReviewFactory()

        filters = filters_from_params({"userId": str(mine.author_id)})
        items, total = store.list_by_filter(filters)

        assert total == 1
        assert items[0].pk == mine.pk

    @pytest.mark.parametrize("params", [{"userId": "not-a-uuid"}, {"authorId": "42"}])
    def test_author_id_must_be_a_uuid(self, params):
        with pytest.raises(errors.ValidationError):
            filters_from_params(params)

    @pytest.mark.parametrize("params", [{"limit": "0"}, {"page": "x"}, {"rating": "9"}, {"sort": "random"}])
    def test_invalid_params(self, params):
        with pytest.raises(errors.ValidationError):
            filters_from_params(params)


def test_deleting_a_review_decrements_review_count(store):
    review = ReviewFactory()
    author = review.author
    author.refresh_from_db()
    assert author.review_count == 1

    store.delete(review.pk, author)

    author.refresh_from_db()
    assert author.review_count == 0
