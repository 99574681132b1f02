import uuid
from dataclasses import dataclass, asdict
from typing import Optional

from utils import errors
from utils.review_search import sanitize_search_input
from .models import Review

DEFAULT_LIMIT = 10
MAX_LIMIT = 100

# `sort` keywords -> ORM ordering
SORT_ORDERINGS = {
    "newest": ("-created_at",),
    "oldest": ("created_at",),
    "highest": ("-rating", "-created_at"),
    "lowest": ("rating", "-created_at"),
    "helpful": ("-helpful", "-created_at"),
    # only meaningful together with a search term
    "relevance": ("-rank", "-created_at"),
}

# `sortBy` query values -> model field
SORT_BY_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "rating": "rating",
    "helpful": "helpful",
    "views": "views",
}

for _sort_by, _field in SORT_BY_FIELDS.items():
    SORT_ORDERINGS[f"{_sort_by}:asc"] = (_field, "-created_at")
    SORT_ORDERINGS[f"{_sort_by}:desc"] = (f"-{_field}", "-created_at")


@dataclass
class ReviewFilters:
    status: Optional[str] = None
    category: Optional[str] = None
    sentiment: Optional[str] = None
    rating: Optional[int] = None
    author_id: Optional[str] = None
    search: Optional[str] = None
    sort: str = "newest"
    page: int = 1
    limit: int = DEFAULT_LIMIT

    def ordering(self):
        # id keeps page boundaries stable between equal keys
        return SORT_ORDERINGS[self.sort] + ("id",)

    @property
    def offset(self):
        return (self.page - 1) * self.limit

    def as_dict(self):
        return asdict(self)

    def cache_token(self):
        return "|".join(f"{key}={value}" for key, value in sorted(self.as_dict().items()) if value not in (None, ""))


def _int_param(params, name, default):
    raw = params.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise errors.ValidationError(f"'{name}' must be an integer.")


def _choice_param(params, name, choices):
    value = params.get(name) or None
    if value is not None and value not in choices:
        raise errors.ValidationError(f"Invalid {name}: {value}.")
    return value


def _uuid_param(params, *names):
    for name in names:
        raw = params.get(name)
        if raw in (None, ""):
            continue
        try:
            return str(uuid.UUID(str(raw)))
        except ValueError:
            raise errors.ValidationError(f"'{name}' must be a valid UUID.")
    return None


def resolve_sort(params):
    """
    Accepts either `sort=newest|oldest|highest|lowest|helpful` or the
    `sortBy` + `sortOrder` pair (defaults: createdAt, desc).
    """
    sort = params.get("sort")
    if sort:
        if sort not in SORT_ORDERINGS:
            raise errors.ValidationError(f"Invalid sort: {sort}.")
        return sort

    sort_by = params.get("sortBy") or "createdAt"
    sort_order = (params.get("sortOrder") or "desc").lower()
    if sort_by not in SORT_BY_FIELDS:
        raise errors.ValidationError(f"Invalid sortBy: {sort_by}.")
    if sort_order not in ("asc", "desc"):
        raise errors.ValidationError("sortOrder must be 'asc' or 'desc'.")

    return f"{sort_by}:{sort_order}"


def filters_from_params(params, viewer=None):
    """
    Builds a ReviewFilters from query params. Non-admin callers only ever see
    approved reviews, whatever status they ask for.
    """
    status = _choice_param(params, "status", Review.Status.values)
    if viewer is None or not getattr(viewer, "is_admin", False):
        status = Review.Status.APPROVED

    rating = _int_param(params, "rating", None)
    if rating is not None and not 1 <= rating <= 5:
        raise errors.ValidationError("rating must be between 1 and 5.")

    page = _int_param(params, "page", 1)
    limit = _int_param(params, "limit", DEFAULT_LIMIT)
    if page < 1:
        raise errors.ValidationError("page must be 1 or greater.")
    if not 1 <= limit <= MAX_LIMIT:
        raise errors.ValidationError(f"limit must be between 1 and {MAX_LIMIT}.")

    # terms made only of punctuation search for nothing
    search = sanitize_search_input(params.get("search")) or None
    sort = resolve_sort(params)
    if search and not (params.get("sort") or params.get("sortBy")):
        sort = "relevance"

    return ReviewFilters(
        status=status,
        category=_choice_param(params, "category", Review.Category.values),
        sentiment=_choice_param(params, "sentiment", Review.Sentiment.values),
        rating=rating,
        author_id=_uuid_param(params, "userId", "authorId"),
        search=search,
        sort=sort,
        page=page,
        limit=limit,
    )


def pagination_meta(filters, total):
    pages = (total + filters.limit - 1) // filters.limit if total else 0
    return {
        "page": filters.page,
        "limit": filters.limit,
        "total": total,
        "pages": pages,
    }
