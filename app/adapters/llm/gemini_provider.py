# app/adapters/llm/gemini_provider.py

from __future__ import annotations
import logging
from time import monotonic as _now
from typing import Any, Dict, Optional

import httpx

from app.adapters.llm.base import ProviderError, ReasoningProvider
from app.domain.models.reasoning import ReasoningContext
from app.domain.services.prompts import SCHEMA_RETRY_INSTRUCTION

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiProvider(ReasoningProvider):
    """Gemini over its REST generateContent endpoint (JSON response mime type)."""

    name = "google-gemini"

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_s: int = 30,
        max_tokens: int = 2048,
        max_retries: int = 1,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(max_retries=max_retries)
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.client = client or httpx.AsyncClient(base_url=GEMINI_BASE_URL, timeout=timeout_s)

    def build_body(self, context: ReasoningContext, retry_hint: Optional[str] = None) -> Dict[str, Any]:
        contents = [
            {"role": "user" if m.role == "user" else "model", "parts": [{"text": m.content}]}
            for m in context.history
        ]
        prompt = context.user_prompt
        if retry_hint:
            prompt += f"\n\n{SCHEMA_RETRY_INSTRUCTION}\nValidation error was:\n{retry_hint}"
        contents.append({"role": "user", "parts": [{"text": prompt}]})
        return {
            "contents": contents,
            "systemInstruction": {"parts": [{"text": context.system_prompt}]},
            "generationConfig": {
                "temperature": 0.7,
                "maxOutputTokens": self.max_tokens,
                "responseMimeType": "application/json",
            },
        }

    async def _complete(self, context: ReasoningContext, *, retry_hint: Optional[str] = None) -> str:
        if not self.api_key:
            raise ProviderError("AI not configured - missing GEMINI_API_KEY")
        t0 = _now()
        resp = await self.client.post(
            f"/models/{self.model}:generateContent",
            params={"key": self.api_key},
            json=self.build_body(context, retry_hint),
        )
        if resp.status_code >= 400:
            logger.error(f"Gemini API error status={resp.status_code} body={resp.text[:500]}")
            raise ProviderError(f"Gemini API error: {resp.status_code}")
        data = resp.json()
        logger.info(f"LLM call model={self.model} duration={_now() - t0:.3f}s")
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError("No text response from Gemini") from e

    async def aclose(self) -> None:
        await self.client.aclose()
