# api/v1/schemas/cart.py
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional

from app.domain.models.cart import Cart, CartItem, CartLineRequest

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CartCreateIn(BaseModel):
    items: List[CartLineRequest] = []
    conversation_id: Optional[str] = None

    model_config = _CAMEL

    @field_validator("items")
    @classmethod
    def _positive(cls, v: List[CartLineRequest]) -> List[CartLineRequest]:
        if any(line.quantity < 1 for line in v):
            raise ValueError("quantity must be at least 1")
        return v

class CartAddIn(BaseModel):
    sku: str = Field(..., min_length=1)
    quantity: int = Field(default=1, ge=1)

class CartUpdateIn(BaseModel):
    items: List[CartLineRequest] = Field(..., min_length=1)


class CartOut(BaseModel):
    id: str
    items: List[CartItem]
    total: float
    conversation_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = _CAMEL

    @classmethod
    def from_cart(cls, cart: Cart) -> "CartOut":
        return cls(
            id=cart.id,
            items=list(cart.items),
            total=cart.total,
            conversation_id=cart.conversation_id,
            created_at=cart.created_at,
            updated_at=cart.updated_at,
        )

class CartSummaryOut(BaseModel):
    id: str
    item_count: int
    total: float
    created_at: datetime

    model_config = _CAMEL
