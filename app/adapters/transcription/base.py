# app/adapters/transcription/base.py

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional
from pydantic import BaseModel


class TranscriptionError(Exception):
    """Audio could not be turned into text."""


class TranscriptionResult(BaseModel):
    text: str
    confidence: float
    duration_ms: int
    language: Optional[str] = None

    model_config = {"frozen": True}


class Transcriber(ABC):
    name: str = "transcriber"

    @abstractmethod
    async def transcribe(self, audio: bytes, mime_type: str) -> TranscriptionResult:
        """Raises TranscriptionError on failure."""

    async def aclose(self) -> None:
        return None
