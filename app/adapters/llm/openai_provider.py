# app/adapters/llm/openai_provider.py

from __future__ import annotations
import logging
from time import monotonic as _now
from typing import List, Optional

from openai import AsyncOpenAI

from app.adapters.llm.base import ProviderError, ReasoningProvider
from app.domain.models.reasoning import ReasoningContext
from app.domain.services.prompts import SCHEMA_RETRY_INSTRUCTION

logger = logging.getLogger(__name__)


class OpenAIProvider(ReasoningProvider):
    name = "openai-chat"

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_s: int = 30,
        max_tokens: int = 2048,
        max_retries: int = 1,
        client: Optional[AsyncOpenAI] = None,
    ):
        super().__init__(max_retries=max_retries)
        # without a key the SDK refuses to build a client; turns then take the safe fallback
        self.client = client or (AsyncOpenAI(api_key=api_key) if api_key else None)
        self.model = model
        self.timeout_s = timeout_s
        self.max_tokens = max_tokens

    @staticmethod
    def build_messages(context: ReasoningContext, retry_hint: Optional[str] = None) -> List[dict]:
        messages = [{"role": "system", "content": context.system_prompt}]
        messages += [{"role": m.role, "content": m.content} for m in context.history]
        messages.append({"role": "user", "content": context.user_prompt})
        if retry_hint:
            messages += [
                {"role": "system", "content": SCHEMA_RETRY_INSTRUCTION},
                {"role": "user", "content": f"Validation error was:\n{retry_hint}"},
            ]
        return messages

    async def _complete(self, context: ReasoningContext, *, retry_hint: Optional[str] = None) -> str:
        t0 = _now()
        if self.client is None:
            raise ProviderError("AI not configured - missing OPENAI_API_KEY")
        resp = await self.client.chat.completions.create(
            model=self.model,
            messages=self.build_messages(context, retry_hint),
            max_tokens=self.max_tokens,
            temperature=0.2,
            timeout=self.timeout_s,
            response_format={"type": "json_object"},
        )
        dt = _now() - t0
        # Best-effort usage logging
        u = getattr(resp, "usage", None)
        logger.info(
            f"LLM call model={getattr(resp, 'model', self.model)} duration={dt:.3f}s "
            f"tokens(prompt={getattr(u, 'prompt_tokens', None)}, completion={getattr(u, 'completion_tokens', None)})"
        )
        if not resp.choices:
            raise ProviderError("No choices in OpenAI response")
        return resp.choices[0].message.content or ""

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.close()
