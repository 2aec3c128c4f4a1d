import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Union

from pydantic import TypeAdapter, ValidationError

from app.core.config import get_settings
from app.domain.errors import InvalidInputError
from app.domain.models.product import QueryRequest

RawMulti = Union[str, Iterable[str], None]

_datetime_adapter = TypeAdapter(datetime)

# skip and limit travel as BSON int64
_MAX_OFFSET = 2**63 - 1


class ListingFilter(NamedTuple):
    predicate: Dict[str, Any]
    text_search_active: bool


def _present(value: Optional[str]) -> bool:
    return value is not None and str(value).strip() != ""


def _as_list(value: RawMulti) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value if v is not None]


def normalize_categories(category: Optional[str] = None, categories: RawMulti = None) -> List[str]:
    """
    Merge a single category id with a list given either as repeated values or
    as comma-joined strings. Empty tokens are dropped, duplicates keep the
    position of their first use.
    """
    tokens: List[str] = []
    if category is not None:
        tokens.extend(str(category).split(","))
    for part in _as_list(categories):
        tokens.extend(part.split(","))

    out: List[str] = []
    for tok in tokens:
        tok = tok.strip()
        if tok and tok not in out:
            out.append(tok)
    return out


def _parse_price(name: str, raw: Optional[str]) -> Optional[float]:
    if not _present(raw):
        return None
    try:
        value = float(str(raw).strip())
    except ValueError:
        raise InvalidInputError(f"'{name}' must be a number", details={"param": name, "value": raw})
    if not math.isfinite(value):
        raise InvalidInputError(f"'{name}' must be a finite number", details={"param": name, "value": raw})
    return value


def _parse_date(name: str, raw: Optional[str]) -> Optional[datetime]:
    if not _present(raw):
        return None
    try:
        dt = _datetime_adapter.validate_python(str(raw).strip())
    except ValidationError:
        raise InvalidInputError(f"'{name}' is not a valid date", details={"param": name, "value": raw})
    # naive values are read as UTC
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _parse_int(name: str, raw: Optional[str]) -> Optional[int]:
    if not _present(raw):
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        raise InvalidInputError(f"'{name}' must be an integer", details={"param": name, "value": raw})


def build_query_request(
    *,
    q: Optional[str] = None,
    category: Optional[str] = None,
    categories: RawMulti = None,
    min_price: Optional[str] = None,
    max_price: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    sort: RawMulti = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
) -> QueryRequest:
    """
    Turn loosely-typed listing parameters into a QueryRequest.

    Pagination is clamped rather than rejected: page < 1 becomes 1, a zero or
    missing limit becomes the default page size, and the limit is kept within
    [1, max_page_size]. Only the first sort token is honoured.
    Malformed numbers or dates, and a page whose offset the store cannot
    represent, raise InvalidInputError.
    """
    settings = get_settings()

    page_num = max(_parse_int("page", page) or 1, 1)
    limit_num = _parse_int("limit", limit) or settings.default_page_size
    limit_num = min(max(limit_num, 1), settings.max_page_size)
    if page_num * limit_num > _MAX_OFFSET:
        raise InvalidInputError("'page' is out of range", details={"param": "page", "value": page})

    sort_tokens = [s.strip() for s in _as_list(sort) if s and s.strip()]
    keyword = q.strip() if isinstance(q, str) and q.strip() else None

    return QueryRequest(
        q=keyword,
        categories=normalize_categories(category, categories),
        min_price=_parse_price("minPrice", min_price),
        max_price=_parse_price("maxPrice", max_price),
        date_from=_parse_date("dateFrom", date_from),
        date_to=_parse_date("dateTo", date_to),
        sort=sort_tokens[0] if sort_tokens else None,
        page=page_num,
        limit=limit_num,
    )


def build_filter(request: QueryRequest) -> ListingFilter:
    """
    Canonical Mongo predicate for the public listing.
    Knows nothing about sorting or pagination.
    """
    # Public listing: active, non-deleted products only
    predicate: Dict[str, Any] = {"is_active": True, "deleted_at": None}

    text_search_active = False
    if request.q:
        predicate["$text"] = {"$search": request.q}
        text_search_active = True

    if request.categories:
        predicate["categories"] = {"$in": list(request.categories)}

    # Bounds are independent; an inverted range simply matches nothing
    if request.min_price is not None or request.max_price is not None:
        price: Dict[str, Any] = {}
        if request.min_price is not None:
            price["$gte"] = request.min_price
        if request.max_price is not None:
            price["$lte"] = request.max_price
        predicate["price"] = price

    if request.date_from is not None or request.date_to is not None:
        created: Dict[str, Any] = {}
        if request.date_from is not None:
            created["$gte"] = request.date_from
        if request.date_to is not None:
            created["$lte"] = request.date_to
        predicate["created_at"] = created

    return ListingFilter(predicate=predicate, text_search_active=text_search_active)
