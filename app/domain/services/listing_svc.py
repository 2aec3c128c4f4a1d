import logging
import math
import time
from typing import Any, Dict, List

from pymongo.errors import PyMongoError

from app.core.config import get_settings
from app.core.logging import json_preview
from app.domain.errors import upstream_from
from app.domain.models.product import ListingFilters, ListingMeta, Product, QueryRequest, ResultPage
from app.domain.repositories.product_repo import ProductRepo
from app.domain.services.plans import ExecutionPlan, select_plan

logger = logging.getLogger(__name__)


def total_pages(total: int, limit: int) -> int:
    return max(1, math.ceil(total / limit))


def assemble_page(request: QueryRequest, plan: ExecutionPlan, docs: List[Dict[str, Any]], total: int) -> ResultPage:
    """
    Single response envelope for both strategies. Metadata comes from the
    request and the plan's sort label only, never from the executor.
    """
    return ResultPage(
        data=[Product.from_doc(d) for d in docs],
        meta=ListingMeta(
            page=request.page,
            limit=request.limit,
            total=total,
            total_pages=total_pages(total, request.limit),
            sort=plan.sort_label,
            filters=ListingFilters(
                q=request.q,
                categories=list(request.categories),
                min_price=request.min_price,
                max_price=request.max_price,
            ),
        ),
    )


async def list_products_svc(db, request: QueryRequest) -> ResultPage:
    t0 = time.perf_counter()
    settings = get_settings()

    plan = select_plan(request)
    logger.info(
        "listing start plan=%s sort=%s page=%s limit=%s q=%s categories=%s",
        plan.kind, plan.sort_label, request.page, request.limit, request.q, request.categories,
    )
    logger.debug("listing plan=%s", json_preview(plan.describe(), limit=2000))

    repo = ProductRepo(db, settings.products_collection)
    db_t0 = time.perf_counter()
    try:
        docs, total = await plan.execute(repo)
    except PyMongoError as e:
        logger.error(
            "listing store_error plan=%s err=%s: %s details=%s",
            plan.kind, type(e).__name__, e, json_preview(plan.describe(), limit=4000),
        )
        raise upstream_from(e, f"listing:{plan.kind}") from e
    db_dt = time.perf_counter() - db_t0
    logger.info("listing db_ok plan=%s items=%s total=%s db_time=%.3fs", plan.kind, len(docs), total, db_dt)

    page = assemble_page(request, plan, docs, total)
    logger.info("listing done items=%s total_time=%.3fs", len(page.data), time.perf_counter() - t0)
    return page
