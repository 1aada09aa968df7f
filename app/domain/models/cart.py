from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional
from datetime import datetime, timezone

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

class CartItem(BaseModel):
    """A cart line, priced and located from inventory when it was added."""
    sku: str
    name: str
    price: float = Field(ge=0)
    quantity: int = Field(ge=1)
    location: str

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

class Cart(BaseModel):
    id: str
    store_id: str
    user_id: str
    conversation_id: Optional[str] = None
    items: List[CartItem] = []
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def total(self) -> float:
        return round(sum(i.price * i.quantity for i in self.items), 2)

class CartLineRequest(BaseModel):
    """What a caller asks for: a SKU and a quantity (0 means remove, where allowed)."""
    sku: str = Field(..., min_length=1)
    quantity: int = Field(default=1, ge=0)

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)
