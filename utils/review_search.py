from django.contrib.postgres.search import SearchVector, SearchQuery, SearchRank
from django.db import connection
from django.db.models import FloatField, Q, Value
import re


def sanitize_search_input(input_text: str) -> str:
    """
    Sanitize search input by allowing only alphanumeric characters and whitespace.
    This makes the input safe for constructing raw tsquery strings.
    """
    return re.sub(r'[^\w\s]', '', input_text or '').strip()


def apply_full_text_search(queryset, search_text):
    """
    Ranks reviews against a free-text query over product name, title and content.

    On PostgreSQL the query is tokenized, the last token is prefix-matched and
    results are annotated with `rank` (product name and title weigh more than
    the body) and ordered most relevant first. Other databases fall back to a
    case-insensitive containment match on any of the three fields, annotated
    with a constant rank so callers can order uniformly.

    Args:
        queryset: The review queryset to filter.
        search_text (str): The raw search query from the user.

    Returns:
        QuerySet: The filtered queryset with a `rank` annotation.
    """
    search_text = sanitize_search_input(search_text)
    if not search_text:
        # nothing to match on; a flat rank keeps relevance ordering valid
        return queryset.annotate(rank=Value(0.0, output_field=FloatField()))

    if connection.vendor != 'postgresql':
        matches = Q()
        for token in search_text.split():
            matches &= (
                Q(title__icontains=token)
                | Q(content__icontains=token)
                | Q(product_name__icontains=token)
            )
        return queryset.filter(matches).annotate(rank=Value(1.0, output_field=FloatField()))

    # Tokenize and construct the search query.
    tokens = search_text.split()
    last_token = tokens.pop()
    if tokens:
        ts_query_str = " & ".join(tokens + [f"{last_token}:*"])
    else:
        ts_query_str = f"{last_token}:*"
    search_query = SearchQuery(ts_query_str, search_type='raw')

    # Build a weighted search vector.
    search_vector = (
        SearchVector('product_name', weight='A')
        + SearchVector('title', weight='A')
        + SearchVector('content', weight='B')
    )

    return queryset.annotate(
        rank=SearchRank(search_vector, search_query)
    ).filter(rank__gt=0)
