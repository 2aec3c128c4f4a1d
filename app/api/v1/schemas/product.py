# api/v1/schemas/product.py
from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional

from app.domain.models.product import Product


def _clean_categories(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is None:
        return None
    out: List[str] = []
    for part in v:
        for tok in str(part).split(","):
            tok = tok.strip()
            if tok and tok not in out:
                out.append(tok)
    return out


class ProductCreateIn(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    price: float = Field(ge=0)
    stock: int = Field(ge=0)
    categories: List[str] = Field(min_length=1)

    @field_validator("title", "description")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("categories")
    @classmethod
    def _categories(cls, v: List[str]) -> List[str]:
        v = _clean_categories(v) or []
        if not v:
            raise ValueError("at least one category is required")
        return v


class ProductUpdateIn(BaseModel):
    """Partial update: only fields that are set are written."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    categories: Optional[List[str]] = None

    @field_validator("title")
    @classmethod
    def _strip_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("categories")
    @classmethod
    def _categories(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        v = _clean_categories(v)
        if v is not None and not v:
            raise ValueError("at least one category is required")
        return v

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ProductEnvelopeData(BaseModel):
    product: Product


class ProductEnvelope(BaseModel):
    success: bool = True
    status: int = 200
    message: str
    data: Optional[ProductEnvelopeData] = None

