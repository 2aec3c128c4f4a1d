from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional
from datetime import datetime
from bson import ObjectId


class Product(BaseModel):
    """Product record as exposed on the wire (camelCase)."""

    id: str
    title: str
    description: Optional[str] = None
    price: float = Field(ge=0)
    stock: int = Field(ge=0)
    categories: List[str] = []
    seller: Optional[str] = None
    images: List[str] = []
    is_active: bool = True
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # listing extras: relevance (text search) and engagement (popularity path)
    score: Optional[float] = None
    review_count: Optional[int] = None
    avg_rating: Optional[float] = None

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "Product":
        """Map a Mongo document (snake_case, ObjectId) to the wire model."""
        _id = doc.get("_id")
        seller = doc.get("seller_id")
        return cls(
            id=str(_id) if isinstance(_id, ObjectId) else str(_id or ""),
            title=doc.get("title", ""),
            description=doc.get("description"),
            price=doc.get("price", 0),
            stock=doc.get("stock", 0),
            categories=[str(c) for c in doc.get("categories") or []],
            seller=str(seller) if seller is not None else None,
            images=list(doc.get("images") or []),
            is_active=bool(doc.get("is_active", True)),
            deleted_at=doc.get("deleted_at"),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
            score=doc.get("score"),
            review_count=doc.get("review_count"),
            avg_rating=doc.get("avg_rating"),
        )


class QueryRequest(BaseModel):
    """Normalized listing request; built fresh per call, never persisted."""

    q: Optional[str] = None
    categories: List[str] = []
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    sort: Optional[str] = None
    page: int = Field(1, ge=1)
    limit: int = Field(12, ge=1)

    model_config = {"frozen": True}  # immuable = safe

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


class ListingFilters(BaseModel):
    q: Optional[str] = None
    categories: List[str] = []
    min_price: Optional[float] = None
    max_price: Optional[float] = None

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class ListingMeta(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    sort: str
    filters: ListingFilters

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class ResultPage(BaseModel):
    success: bool = True
    message: str = "Products fetched successfully"
    data: List[Product]
    meta: ListingMeta

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)
