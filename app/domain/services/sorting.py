from typing import Any, List, NamedTuple, Optional, Tuple

# Sort tokens accepted on the listing endpoint
SORT_PRICE_ASC = "price"
SORT_PRICE_DESC = "-price"
SORT_DATE_ASC = "date"
SORT_DATE_DESC = "-date"
SORT_POPULARITY_ASC = "popularity"
SORT_POPULARITY_DESC = "-popularity"
SORT_RELEVANCE = "relevance,-date"  # echoed label only, not an accepted token

ALL_SORTS = {
    SORT_PRICE_ASC,
    SORT_PRICE_DESC,
    SORT_DATE_ASC,
    SORT_DATE_DESC,
    SORT_POPULARITY_ASC,
    SORT_POPULARITY_DESC,
}

TEXT_SCORE = {"$meta": "textScore"}

SortKey = Tuple[str, Any]  # (field, 1 | -1 | {"$meta": "textScore"})


class ResolvedSort(NamedTuple):
    keys: List[SortKey]
    requires_aggregation: bool
    label: str


def resolve_sort(token: Optional[str], text_search_active: bool) -> ResolvedSort:
    """
    Effective sort for a listing request.

    Every order ends with ``_id`` descending so pages are stable when the
    primary keys tie. For popularity the leading key is ``review_count``,
    a field that only exists after the engagement join, hence
    ``requires_aggregation``. Unknown tokens fall back to the default order.
    """
    if token == SORT_PRICE_ASC:
        return ResolvedSort([("price", 1), ("_id", -1)], False, token)
    if token == SORT_PRICE_DESC:
        return ResolvedSort([("price", -1), ("_id", -1)], False, token)
    if token == SORT_DATE_ASC:
        return ResolvedSort([("created_at", 1), ("_id", -1)], False, token)
    if token == SORT_DATE_DESC:
        return ResolvedSort([("created_at", -1), ("_id", -1)], False, token)

    if token in (SORT_POPULARITY_ASC, SORT_POPULARITY_DESC):
        direction = 1 if token == SORT_POPULARITY_ASC else -1
        keys: List[SortKey] = [("review_count", direction)]
        if text_search_active:
            keys.append(("score", -1))
        keys += [("created_at", -1), ("_id", -1)]
        return ResolvedSort(keys, True, token)

    if text_search_active:
        # relevance first, newest as tie-break
        return ResolvedSort([("score", TEXT_SCORE), ("created_at", -1), ("_id", -1)], False, SORT_RELEVANCE)

    return ResolvedSort([("created_at", -1), ("_id", -1)], False, SORT_DATE_DESC)
