# app/adapters/llm/static_provider.py

from __future__ import annotations
import json
from typing import Optional

from app.adapters.llm.base import ReasoningProvider
from app.domain.models.reasoning import ReasoningContext
from app.domain.services.constants import MAX_ADD_ONS, MAX_RECOMMENDED


class StaticProvider(ReasoningProvider):
    """
    Offline provider for local runs without vendor keys: recommends the top
    retrieved candidates in retrieval order. Goes through the same JSON parsing
    path as the real adapters.
    """

    name = "static"

    async def _complete(self, context: ReasoningContext, *, retry_hint: Optional[str] = None) -> str:
        skus = list(context.allowed_skus)
        recommended = skus[:MAX_RECOMMENDED]
        add_ons = skus[MAX_RECOMMENDED:MAX_RECOMMENDED + MAX_ADD_ONS]
        return json.dumps({
            "assistant_message": (
                "Here are the best in-stock matches I found for your request."
                if recommended else
                "I couldn't find an in-stock product that fits this request."
            ),
            "recommended_skus": recommended,
            "add_on_skus": add_ons,
            "cart": [{"sku": s, "qty": 1} for s in recommended[:1]],
            "confidence": 0.5 if recommended else 0.0,
        })
