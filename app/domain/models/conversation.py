from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime, timezone

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

class ConversationMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)

    model_config = {"frozen": True}

class Conversation(BaseModel):
    id: str
    store_id: str
    user_id: str
    messages: List[ConversationMessage] = []
    recommended_skus: List[str] = []
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

class TurnLog(BaseModel):
    conversation_id: Optional[str] = None
    store_id: str
    user_id: str
    user_message: str
    assistant_message: str
    recommended_skus: List[str] = []
    latency_ms: int = Field(ge=0)
    intent: str
    constraints: Dict[str, Any] = {}
    invalid_skus: List[str] = []
    fallback_reason: Optional[str] = None
    items_considered: int = 0
    metadata: Dict[str, Any] = {}
    created_at: datetime = Field(default_factory=_utcnow)

    model_config = {"frozen": True}  # write-once
