# app/adapters/llm/anthropic_provider.py

from __future__ import annotations
import logging
from time import monotonic as _now
from typing import List, Optional

import anthropic

from app.adapters.llm.base import ProviderError, ReasoningProvider
from app.domain.models.reasoning import ReasoningContext
from app.domain.services.prompts import SCHEMA_RETRY_INSTRUCTION

logger = logging.getLogger(__name__)


class AnthropicProvider(ReasoningProvider):
    name = "anthropic-claude"

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_s: int = 30,
        max_tokens: int = 2048,
        max_retries: int = 1,
        client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        super().__init__(max_retries=max_retries)
        self.client = client or (anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout_s) if api_key else None)
        self.model = model
        self.max_tokens = max_tokens

    @staticmethod
    def build_messages(context: ReasoningContext, retry_hint: Optional[str] = None) -> List[dict]:
        messages = [{"role": m.role, "content": m.content} for m in context.history]
        prompt = context.user_prompt
        if retry_hint:
            prompt += f"\n\n{SCHEMA_RETRY_INSTRUCTION}\nValidation error was:\n{retry_hint}"
        messages.append({"role": "user", "content": prompt})
        return messages

    async def _complete(self, context: ReasoningContext, *, retry_hint: Optional[str] = None) -> str:
        t0 = _now()
        if self.client is None:
            raise ProviderError("AI not configured - missing ANTHROPIC_API_KEY")
        resp = await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            system=context.system_prompt,
            messages=self.build_messages(context, retry_hint),
        )
        logger.info(f"LLM call model={self.model} duration={_now() - t0:.3f}s stop={getattr(resp, 'stop_reason', None)}")
        text = next((b.text for b in resp.content if getattr(b, "type", None) == "text"), None)
        if not text:
            raise ProviderError("No text response from Claude")
        return text

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.close()
