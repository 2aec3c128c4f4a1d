"""
Execution plans for the product listing.

A listing is served by one of two retrieval strategies sharing the same
``execute(repo) -> (docs, total)`` contract:

  * DirectPlan:      find + sort + skip/limit, with count_documents run
                       concurrently.
  * AggregationPlan: a single aggregate() submission that joins engagement
                       records to rank by popularity and returns the page and
                       the total from one $facet.

``select_plan`` is the only place that decides between them. Both carry the
same filter and pagination, so the response built from either is identical
in shape.
"""
from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel

from app.core.config import get_settings
from app.domain.models.product import QueryRequest
from app.domain.services.filters import build_filter
from app.domain.services.sorting import TEXT_SCORE, SortKey, resolve_sort

PlanResult = Tuple[List[Dict[str, Any]], int]


class ExecutionPlan(BaseModel, ABC):
    kind: str
    filter: Dict[str, Any]
    sort: List[SortKey]
    sort_label: str
    skip: int
    limit: int
    text_search_active: bool = False
    requires_aggregation: bool = False

    model_config = {"frozen": True}

    @abstractmethod
    async def execute(self, repo) -> PlanResult:
        ...

    def describe(self) -> Dict[str, Any]:
        """Loggable view of the plan (used when the store fails)."""
        return self.model_dump()


class DirectPlan(ExecutionPlan):
    kind: Literal["direct"] = "direct"

    @property
    def projection(self) -> Optional[Dict[str, Any]]:
        # expose the relevance score alongside each document
        return {"score": TEXT_SCORE} if self.text_search_active else None

    async def execute(self, repo) -> PlanResult:
        # page and count are independent; a failure in either aborts both
        docs, total = await asyncio.gather(
            repo.find_page(
                self.filter,
                projection=self.projection,
                sort=self.sort,
                skip=self.skip,
                limit=self.limit,
            ),
            repo.count(self.filter),
        )
        return docs, total


class AggregationPlan(ExecutionPlan):
    kind: Literal["aggregation"] = "aggregation"
    requires_aggregation: bool = True
    pipeline: List[Dict[str, Any]]

    async def execute(self, repo) -> PlanResult:
        res = await repo.aggregate(self.pipeline)
        facet = res[0] if res else {}
        data = facet.get("data") or []
        meta = facet.get("meta") or []
        total = meta[0].get("total", 0) if meta else 0
        return data, total


def build_popularity_pipeline(
    filt: Dict[str, Any],
    sort: List[SortKey],
    *,
    skip: int,
    limit: int,
    text_search_active: bool,
    engagement_collection: str,
) -> List[Dict[str, Any]]:
    """
    Stage order matters: $text must sit in the first $match, the score has to
    be captured before the join, and the $facet must see the sorted set so the
    page and the count come from the same upstream documents.
    """
    pipeline: List[Dict[str, Any]] = [{"$match": filt}]

    if text_search_active:
        pipeline.append({"$addFields": {"score": TEXT_SCORE}})

    pipeline += [
        {"$lookup": {
            "from": engagement_collection,
            "localField": "_id",
            "foreignField": "product_id",
            "as": "reviews",
        }},
        {"$addFields": {
            "review_count": {"$size": "$reviews"},
            # no reviews -> null, never a division by zero
            "avg_rating": {"$cond": [
                {"$gt": [{"$size": "$reviews"}, 0]},
                {"$avg": "$reviews.rating"},
                None,
            ]},
        }},
        {"$project": {"reviews": 0}},
        {"$sort": {field: direction for field, direction in sort}},
        {"$facet": {
            "data": [{"$skip": skip}, {"$limit": limit}],
            "meta": [{"$count": "total"}],
        }},
    ]
    return pipeline


def select_plan(request: QueryRequest) -> ExecutionPlan:
    """Route a listing request to the direct or the aggregation strategy."""
    listing_filter = build_filter(request)
    resolved = resolve_sort(request.sort, listing_filter.text_search_active)

    common = dict(
        filter=listing_filter.predicate,
        sort=resolved.keys,
        sort_label=resolved.label,
        skip=request.skip,
        limit=request.limit,
        text_search_active=listing_filter.text_search_active,
    )

    if resolved.requires_aggregation:
        pipeline = build_popularity_pipeline(
            listing_filter.predicate,
            resolved.keys,
            skip=request.skip,
            limit=request.limit,
            text_search_active=listing_filter.text_search_active,
            engagement_collection=get_settings().engagement_collection,
        )
        return AggregationPlan(pipeline=pipeline, **common)

    return DirectPlan(**common)
