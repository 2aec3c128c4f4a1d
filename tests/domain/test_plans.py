"""Tests for plan selection and the two execution strategies."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.domain.services.filters import build_query_request
from app.domain.services.plans import AggregationPlan, DirectPlan, select_plan


def _stage_names(pipeline):
    return [next(iter(stage)) for stage in pipeline]


class TestSelectPlan:
    def test_default_is_direct(self) -> None:
        plan = select_plan(build_query_request())
        assert isinstance(plan, DirectPlan)
        assert plan.requires_aggregation is False
        assert plan.projection is None

    @pytest.mark.parametrize("sort", ["popularity", "-popularity"])
    def test_popularity_is_aggregation(self, sort: str) -> None:
        plan = select_plan(build_query_request(sort=sort))
        assert isinstance(plan, AggregationPlan)
        assert plan.requires_aggregation is True

    def test_both_paths_share_filter_and_pagination(self) -> None:
        params = dict(q="shoes", categories="a,b", min_price="1", page="2", limit="5")
        direct = select_plan(build_query_request(sort="-date", **params))
        agg = select_plan(build_query_request(sort="-popularity", **params))
        assert direct.filter == agg.filter
        assert (direct.skip, direct.limit) == (agg.skip, agg.limit) == (5, 5)
        assert agg.pipeline[0] == {"$match": direct.filter}

    def test_plans_are_deterministic(self) -> None:
        params = dict(q="red shoes", categories=["a", "b"], sort="-popularity", page="3")
        assert select_plan(build_query_request(**params)) == select_plan(build_query_request(**params))

    def test_direct_projection_carries_score_for_text_search(self) -> None:
        plan = select_plan(build_query_request(q="shoes"))
        assert plan.projection == {"score": {"$meta": "textScore"}}


class TestPopularityPipeline:
    def test_stage_order_without_text_search(self) -> None:
        plan = select_plan(build_query_request(sort="-popularity"))
        assert _stage_names(plan.pipeline) == [
            "$match", "$lookup", "$addFields", "$project", "$sort", "$facet",
        ]

    def test_stage_order_with_text_search(self) -> None:
        plan = select_plan(build_query_request(q="shoes", sort="popularity"))
        assert _stage_names(plan.pipeline) == [
            "$match", "$addFields", "$lookup", "$addFields", "$project", "$sort", "$facet",
        ]
        assert plan.pipeline[1] == {"$addFields": {"score": {"$meta": "textScore"}}}

    def test_lookup_joins_engagement_by_product_reference(self) -> None:
        plan = select_plan(build_query_request(sort="-popularity"))
        lookup = plan.pipeline[1]["$lookup"]
        assert lookup == {"from": "views", "localField": "_id", "foreignField": "product_id", "as": "reviews"}

    def test_raw_join_is_projected_away(self) -> None:
        plan = select_plan(build_query_request(sort="-popularity"))
        assert {"$project": {"reviews": 0}} in plan.pipeline

    def test_sort_and_facet(self) -> None:
        plan = select_plan(build_query_request(sort="-popularity", q="x", page="2", limit="10"))
        sort_stage = plan.pipeline[-2]["$sort"]
        assert list(sort_stage.items()) == [("review_count", -1), ("score", -1), ("created_at", -1), ("_id", -1)]
        assert plan.pipeline[-1] == {"$facet": {
            "data": [{"$skip": 10}, {"$limit": 10}],
            "meta": [{"$count": "total"}],
        }}


class TestExecute:
    async def test_direct_runs_page_and_count(self) -> None:
        repo = MagicMock()
        repo.find_page = AsyncMock(return_value=[{"_id": 1}])
        repo.count = AsyncMock(return_value=7)
        plan = select_plan(build_query_request(sort="price", page="2", limit="3"))

        docs, total = await plan.execute(repo)

        assert docs == [{"_id": 1}]
        assert total == 7
        repo.find_page.assert_awaited_once_with(
            plan.filter, projection=None, sort=plan.sort, skip=3, limit=3,
        )
        repo.count.assert_awaited_once_with(plan.filter)

    async def test_direct_count_failure_fails_the_request(self) -> None:
        repo = MagicMock()
        repo.find_page = AsyncMock(return_value=[])
        repo.count = AsyncMock(side_effect=RuntimeError("boom"))
        with pytest.raises(RuntimeError):
            await select_plan(build_query_request()).execute(repo)

    async def test_aggregation_reads_facet(self) -> None:
        repo = MagicMock()
        repo.aggregate = AsyncMock(return_value=[{"data": [{"_id": 1}], "meta": [{"total": 4}]}])
        plan = select_plan(build_query_request(sort="-popularity"))

        assert await plan.execute(repo) == ([{"_id": 1}], 4)
        repo.aggregate.assert_awaited_once_with(plan.pipeline)

    async def test_aggregation_empty_facet_is_zero_total(self) -> None:
        repo = MagicMock()
        repo.aggregate = AsyncMock(return_value=[{"data": [], "meta": []}])
        plan = select_plan(build_query_request(sort="popularity"))
        assert await plan.execute(repo) == ([], 0)
