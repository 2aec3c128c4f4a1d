# app/api/v1/routers/products.py

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import ValidationError
from typing import List, Optional
import time

from app.api.deps import current_seller, image_processor_dep, mongo_db, notifier_dep, redis_dep
from app.api.v1.schemas.product import ProductCreateIn, ProductEnvelope, ProductEnvelopeData, ProductUpdateIn
from app.core.config import get_settings
from app.domain.errors import InvalidInputError
from app.domain.models.product import Product, ResultPage
from app.domain.services.filters import build_query_request
from app.domain.services.listing_svc import list_products_svc
from app.domain.services import product_svc

import logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])


def _validate(model, values: dict):
    try:
        return model.model_validate(values)
    except ValidationError as e:
        raise InvalidInputError(
            "Invalid product payload",
            details={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
        )


def _check_files(files: Optional[List[UploadFile]]) -> List[UploadFile]:
    files = [f for f in (files or []) if f.filename]
    max_images = get_settings().max_images
    if len(files) > max_images:
        raise InvalidInputError(f"At most {max_images} images are allowed", details={"received": len(files)})
    return files


def _envelope(message: str, product: Product, status: int = 200) -> ProductEnvelope:
    return ProductEnvelope(status=status, message=message, data=ProductEnvelopeData(product=product))


@router.get("", response_model=ResultPage, summary="List active products with search, filters, sort and pagination")
async def list_products(
    q: Optional[str] = Query(None, description="Keywords (full-text search)"),
    category: Optional[str] = Query(None, description="Single category id"),
    categories: Optional[List[str]] = Query(None, description="Category ids, repeated or comma-separated"),
    min_price: Optional[str] = Query(None, alias="minPrice"),
    max_price: Optional[str] = Query(None, alias="maxPrice"),
    date_from: Optional[str] = Query(None, alias="dateFrom", description="ISO-8601, inclusive"),
    date_to: Optional[str] = Query(None, alias="dateTo", description="ISO-8601, inclusive"),
    sort: Optional[List[str]] = Query(None, description="price | -price | date | -date | popularity | -popularity"),
    page: Optional[str] = Query(None, description="1-based, values below 1 are clamped"),
    limit: Optional[str] = Query(None, description="1..100, default 12"),
    db = Depends(mongo_db),
):
    t0 = time.perf_counter()
    request = build_query_request(
        q=q,
        category=category,
        categories=categories,
        min_price=min_price,
        max_price=max_price,
        date_from=date_from,
        date_to=date_to,
        sort=sort,
        page=page,
        limit=limit,
    )
    result = await list_products_svc(db, request)
    logger.info(
        "Response: list_products returned %s items (total=%s) in %.4fs",
        len(result.data), result.meta.total, time.perf_counter() - t0,
    )
    return result


@router.get("/{product_id}", response_model=ProductEnvelope)
async def get_product(product_id: str, db = Depends(mongo_db)):
    product = await product_svc.get_product_svc(db, product_id)
    return _envelope("Product found successfully", product)


@router.post("", response_model=ProductEnvelope, status_code=201)
async def create_product(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    stock: Optional[str] = Form(None),
    categories: Optional[List[str]] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    seller_id: str = Depends(current_seller),
    db = Depends(mongo_db),
    redis = Depends(redis_dep),
    notifier = Depends(notifier_dep),
    image_processor = Depends(image_processor_dep),
):
    data = _validate(ProductCreateIn, {
        "title": title,
        "description": description,
        "price": price,
        "stock": stock,
        "categories": categories,
    })
    product = await product_svc.create_product_svc(
        db,
        redis,
        seller_id=seller_id,
        data=data,
        files=_check_files(images),
        images=image_processor,
        notifier=notifier,
    )
    return _envelope("Product created successfully", product, status=201)


@router.put("/{product_id}", response_model=ProductEnvelope)
async def edit_product(
    product_id: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    stock: Optional[str] = Form(None),
    categories: Optional[List[str]] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    _seller_id: str = Depends(current_seller),
    db = Depends(mongo_db),
    image_processor = Depends(image_processor_dep),
):
    values = {
        "title": title,
        "description": description,
        "price": price,
        "stock": stock,
        "categories": categories,
    }
    data = _validate(ProductUpdateIn, {k: v for k, v in values.items() if v is not None})
    product = await product_svc.edit_product_svc(db, product_id, data, _check_files(images), image_processor)
    return _envelope("Product updated successfully", product)


@router.delete("/{product_id}", response_model=ProductEnvelope)
async def delete_product(product_id: str, _seller_id: str = Depends(current_seller), db = Depends(mongo_db)):
    await product_svc.delete_product_svc(db, product_id)
    return ProductEnvelope(message="Product deleted successfully", data=None)


@router.patch("/{product_id}/activate", response_model=ProductEnvelope)
async def activate_product(product_id: str, _seller_id: str = Depends(current_seller), db = Depends(mongo_db)):
    product = await product_svc.set_product_active_svc(db, product_id, True)
    return _envelope("Product activated successfully", product)


@router.patch("/{product_id}/deactivate", response_model=ProductEnvelope)
async def deactivate_product(product_id: str, _seller_id: str = Depends(current_seller), db = Depends(mongo_db)):
    product = await product_svc.set_product_active_svc(db, product_id, False)
    return _envelope("Product deactivated successfully", product)
