from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional
from app.domain.models.inventory import Constraints

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class TurnRequest(BaseModel):
    transcript: str = Field(..., min_length=1)
    conversation_id: Optional[str] = None
    constraints: Optional[Constraints] = None

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

class ProductCard(BaseModel):
    sku: str
    name: str
    price: float
    stock: int
    location: str
    why_it_works: str
    attributes: Dict[str, Any] = {}

    model_config = _CAMEL

class CartLine(BaseModel):
    sku: str
    name: str
    price: float
    quantity: int
    location: str

    model_config = _CAMEL

class TurnMetadata(BaseModel):
    processing_time_ms: int
    inventory_searched: bool
    items_considered: int
    fallback_reason: Optional[str] = None

    model_config = _CAMEL

class AssistantResponse(BaseModel):
    conversation_id: Optional[str] = None
    assistant_message: str
    follow_up_questions: List[str] = []
    recommended_items: List[ProductCard] = []
    add_on_items: List[ProductCard] = []
    cart_suggestion: List[CartLine] = []
    safety_notes: List[str] = []
    confidence: float = 0.0
    metadata: TurnMetadata

    model_config = _CAMEL
