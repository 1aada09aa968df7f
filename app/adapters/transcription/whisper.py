# app/adapters/transcription/whisper.py

from __future__ import annotations
import logging
from time import monotonic as _now
from typing import Optional

from openai import AsyncOpenAI

from app.adapters.transcription.base import Transcriber, TranscriptionError, TranscriptionResult

logger = logging.getLogger(__name__)

_MIME_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/mp3": "mp3",
    "audio/mpeg": "mp3",
    "audio/wav": "wav",
    "audio/wave": "wav",
    "audio/ogg": "ogg",
    "audio/flac": "flac",
    "audio/m4a": "m4a",
    "audio/mp4": "m4a",
}

def extension_for(mime_type: Optional[str]) -> str:
    return _MIME_EXTENSIONS.get((mime_type or "").split(";")[0].strip().lower(), "webm")


class WhisperTranscriber(Transcriber):
    name = "openai-whisper"

    def __init__(self, *, api_key: str, model: str = "whisper-1", timeout_s: int = 30,
                 client: Optional[AsyncOpenAI] = None):
        self.client = client or (AsyncOpenAI(api_key=api_key) if api_key else None)
        self.model = model
        self.timeout_s = timeout_s

    async def transcribe(self, audio: bytes, mime_type: str) -> TranscriptionResult:
        if self.client is None:
            raise TranscriptionError("Transcription not configured - missing OPENAI_API_KEY")
        if not audio:
            raise TranscriptionError("Empty audio payload")
        t0 = _now()
        try:
            resp = await self.client.audio.transcriptions.create(
                model=self.model,
                file=(f"audio.{extension_for(mime_type)}", audio, mime_type or "audio/webm"),
                response_format="verbose_json",
                timeout=self.timeout_s,
            )
        except Exception as e:
            logger.error(f"Whisper transcription error: {e}")
            raise TranscriptionError(f"Transcription failed: {e}") from e

        duration_ms = int((_now() - t0) * 1000)
        text = (getattr(resp, "text", "") or "").strip()
        logger.info(f"Transcribed audio bytes={len(audio)} chars={len(text)} duration={duration_ms}ms")
        return TranscriptionResult(
            text=text,
            confidence=0.95,  # Whisper does not report a confidence score
            duration_ms=duration_ms,
            language=getattr(resp, "language", None),
        )

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.close()
