# api/v1/schemas/assistant.py
from datetime import datetime
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional

from app.domain.models.assistant import AssistantResponse
from app.domain.models.inventory import InventoryItem

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TranscriptionMetadataOut(BaseModel):
    confidence: float
    duration_ms: int
    language: Optional[str] = None

    model_config = _CAMEL

class AudioTurnOut(AssistantResponse):
    transcript: str
    transcription_metadata: TranscriptionMetadataOut


class MessageOut(BaseModel):
    role: str
    content: str
    timestamp: datetime

    model_config = _CAMEL

class ConversationOut(BaseModel):
    id: str
    store_id: str
    user_id: str
    messages: List[MessageOut]
    recommended_skus: List[str]
    created_at: datetime
    updated_at: datetime

    model_config = _CAMEL


class InventoryItemOut(BaseModel):
    sku: str
    name: str
    description: str
    category: str
    price: float
    stock: int
    location: str
    tags: List[str]
    attributes: Dict[str, Any]

    model_config = _CAMEL

    @classmethod
    def from_item(cls, item: InventoryItem) -> "InventoryItemOut":
        return cls(
            sku=item.sku,
            name=item.name,
            description=item.description,
            category=item.category,
            price=item.price,
            stock=item.stock,
            location=item.location,
            tags=list(item.tags),
            attributes=dict(item.attributes),
        )

class InventorySearchOut(BaseModel):
    query: str
    items: List[InventoryItemOut]
    count: int
