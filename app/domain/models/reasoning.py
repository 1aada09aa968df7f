from pydantic import BaseModel, Field, field_validator
from typing import Dict, List, Literal, Optional, Tuple

FallbackReason = Literal["no_inventory", "validation_failed", "system_error", "provider_error"]


class CartEntry(BaseModel):
    sku: str = Field(..., min_length=1)
    qty: int = Field(default=1, ge=1)

    model_config = {"frozen": True}


class ReasoningOutput(BaseModel):
    """
    Structured answer produced by a reasoning provider. Untrusted until it has
    gone through truth_mode.validate_truth_mode. Field names match the JSON
    keys providers are asked to emit.
    """
    assistant_message: str
    follow_up_questions: List[str] = []
    recommended_skus: List[str] = []
    add_on_skus: List[str] = []
    cart: List[CartEntry] = []
    safety_notes: List[str] = []
    reasoning: Dict[str, str] = {}
    confidence: float = 0.0
    # set only on safe fallbacks
    fallback_reason: Optional[FallbackReason] = None

    model_config = {"frozen": True}

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v):
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return 0.0
        return min(1.0, max(0.0, float(v)))


class ValidationResult(BaseModel):
    is_valid: bool
    invalid_skus: List[str]
    validated_output: ReasoningOutput

    model_config = {"frozen": True}


class HistoryMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str

    model_config = {"frozen": True}


class ReasoningContext(BaseModel):
    """Provider-agnostic input for one reasoning call."""
    system_prompt: str
    transcript: str
    history: List[HistoryMessage] = []
    allowed_skus: Tuple[str, ...] = ()
    inventory_section: str
    policy_instructions: List[str] = []
    constraint_instructions: List[str] = []
    user_prompt: str

    model_config = {"frozen": True}
