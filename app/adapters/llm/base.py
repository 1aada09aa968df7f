# app/adapters/llm/base.py

from __future__ import annotations
import re
import json
import logging
from abc import ABC, abstractmethod
from time import monotonic as _now
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from app.domain.models.reasoning import CartEntry, ReasoningContext, ReasoningOutput
from app.domain.services.truth_mode import safe_fallback

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Vendor call failed or returned nothing usable."""


class MalformedOutputError(ProviderError):
    """Text came back but holds no valid reasoning payload (worth a schema retry)."""


# =============================================================================
#                               VALIDATION SCHEMA
# =============================================================================

def _scalar_str(v: Any) -> str:
    """Strings and numbers as stripped text; anything else as ''."""
    if isinstance(v, bool) or not isinstance(v, (str, int, float)):
        return ""
    return str(v).strip()

def _str_list(v: Any) -> List[str]:
    if not isinstance(v, list):
        return []
    return [s for s in map(_scalar_str, v) if s]


class ReasoningPayload(BaseModel):
    """
    The single JSON object every provider must produce:
      {
        "assistant_message": "...",          # required
        "recommended_skus": ["SKU", ...],    # required
        "follow_up_questions": [...], "add_on_skus": [...],
        "cart": [{"sku": "...", "qty": 1}], "safety_notes": [...],
        "reasoning": {"SKU": "why"}, "confidence": 0.0-1.0
      }
    Optional keys default to empty/zero; unknown keys are ignored.
    """
    assistant_message: str = Field(..., min_length=1)
    recommended_skus: List[str]
    follow_up_questions: List[str] = []
    add_on_skus: List[str] = []
    cart: List[CartEntry] = []
    safety_notes: List[str] = []
    reasoning: Dict[str, str] = {}
    confidence: float = 0.0

    @field_validator("recommended_skus", mode="before")
    @classmethod
    def _required_list(cls, v):
        if not isinstance(v, list):
            raise ValueError("recommended_skus must be a list")
        return _str_list(v)

    @field_validator("follow_up_questions", "add_on_skus", "safety_notes", mode="before")
    @classmethod
    def _lists(cls, v):
        return _str_list(v)

    @field_validator("cart", mode="before")
    @classmethod
    def _cart(cls, v):
        if not isinstance(v, list):
            return []
        out = []
        for c in v:
            sku = _scalar_str(c.get("sku")) if isinstance(c, dict) else ""
            if not sku:
                continue
            qty = c.get("qty", c.get("quantity", 1))
            qty = int(qty) if isinstance(qty, (int, float)) and not isinstance(qty, bool) and qty >= 1 else 1
            out.append({"sku": sku, "qty": qty})
        return out

    @field_validator("reasoning", mode="before")
    @classmethod
    def _reasoning(cls, v):
        if not isinstance(v, dict):
            return {}
        return {str(k): str(r) for k, r in v.items() if isinstance(r, (str, int, float)) and not isinstance(r, bool)}

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v):
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return 0.0
        return min(1.0, max(0.0, float(v)))


# =============================================================================
#                               PARSING
# =============================================================================

# Regex to strip code fences (``` or ```json) from LLM output
_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)

def _strip_fences(s: str) -> str:
    """Remove ``` or ```json fences the LLM might add."""
    return _CODE_FENCE_RE.sub("", s).strip()

def _balanced_end(text: str, start: int) -> int:
    """Index of the brace closing text[start], or -1. Braces inside JSON strings do not count."""
    depth = 0
    in_str = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_str:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_str = False
            continue
        if ch == '"':
            in_str = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return -1

def extract_first_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced {...} substring of `text` that decodes to a JSON
    object, or None. Prose around it (or a stray "{x}" before it) is skipped.
    """
    if not text:
        return None
    start = text.find("{")
    while start != -1:
        end = _balanced_end(text, start)
        if end != -1:
            candidate = text[start:end + 1]
            try:
                if isinstance(json.loads(candidate), dict):
                    return candidate
            except json.JSONDecodeError:
                pass
        start = text.find("{", start + 1)
    return None

def parse_reasoning_output(text: str) -> ReasoningOutput:
    """
    Strict parse of a provider's raw text. Raises MalformedOutputError when there is no
    balanced JSON object, it does not decode, or required fields are missing.
    """
    blob = extract_first_json_object(_strip_fences(text or ""))
    if blob is None:
        raise MalformedOutputError("No JSON object found in provider response")
    try:
        parsed = json.loads(blob)
        payload = ReasoningPayload.model_validate(parsed)
    except (json.JSONDecodeError, ValidationError) as e:
        raise MalformedOutputError(f"Invalid provider JSON: {e}") from e
    return ReasoningOutput.model_validate(payload.model_dump())


# =============================================================================
#                               CONTRACT
# =============================================================================

class ReasoningProvider(ABC):
    """
    One implementation per vendor. Subclasses only implement `_complete`
    (context -> raw text); parsing, retries and the safe fallback live here so
    every vendor honours the same contract: `generate` never raises.
    """

    name: str = "provider"

    def __init__(self, *, max_retries: int = 0):
        self.max_retries = max_retries

    @abstractmethod
    async def _complete(self, context: ReasoningContext, *, retry_hint: Optional[str] = None) -> str:
        """Call the vendor and return its raw text output."""

    async def generate(self, context: ReasoningContext) -> ReasoningOutput:
        t0 = _now()
        retry_hint: Optional[str] = None
        for attempt in range(self.max_retries + 1):
            try:
                raw = await self._complete(context, retry_hint=retry_hint)
                out = parse_reasoning_output(raw)
                logger.info(
                    f"{self.name} ok attempt={attempt + 1} duration={_now() - t0:.3f}s "
                    f"recommended={len(out.recommended_skus)} confidence={out.confidence:.2f}"
                )
                return out
            except MalformedOutputError as e:
                # schema problems are worth one more try; the payload is never partially trusted
                logger.warning(f"{self.name} unusable response attempt={attempt + 1}: {e}")
                retry_hint = str(e)
            except Exception as e:
                logger.warning(f"{self.name} call failed attempt={attempt + 1}: {e}")
                break
        return safe_fallback("provider_error")

    async def aclose(self) -> None:
        return None
