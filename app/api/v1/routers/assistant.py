# app/api/v1/routers/assistant.py
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import ValidationError
from typing import Annotated, Optional
import json
import time
import logging

from app.api.deps import Caller, caller_identity, conversation_repo, get_orchestrator, get_transcriber
from app.api.v1.schemas.assistant import AudioTurnOut, ConversationOut, TranscriptionMetadataOut
from app.adapters.transcription.base import Transcriber, TranscriptionError
from app.domain.models.assistant import AssistantResponse, TurnRequest
from app.domain.models.inventory import Constraints
from app.domain.repositories.conversation_repo import ConversationRepo
from app.domain.services.assistant_svc import TurnOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assistant", tags=["assistant"])

CallerDep = Annotated[Caller, Depends(caller_identity)]
OrchestratorDep = Annotated[TurnOrchestrator, Depends(get_orchestrator)]


@router.post("/ask", response_model=AssistantResponse, response_model_by_alias=True)
async def ask(body: TurnRequest, caller: CallerDep, orchestrator: OrchestratorDep):
    """
    One text turn: retrieve in-stock candidates, reason over them, keep only
    SKUs from that set, annotate safety, persist. Always answers 200 with either
    grounded recommendations or a safe fallback message.
    """
    logger.info(
        "Request: ask store_id=%s, user_id=%s, conversation_id=%s, chars=%s",
        caller.store_id, caller.user_id, body.conversation_id, len(body.transcript),
    )
    res = await orchestrator.handle_turn(body, store_id=caller.store_id, user_id=caller.user_id)
    logger.info(
        "Response: ask conversation_id=%s, recommended=%s, fallback=%s, elapsed_ms=%s",
        res.conversation_id, len(res.recommended_items), res.metadata.fallback_reason, res.metadata.processing_time_ms,
    )
    return res


def _parse_constraints(raw: Optional[str]) -> Optional[Constraints]:
    if not raw:
        return None
    try:
        return Constraints.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        raise HTTPException(status_code=422, detail=f"Invalid constraints: {e}")


@router.post("/ask-audio", response_model=AudioTurnOut, response_model_by_alias=True)
async def ask_audio(
    caller: CallerDep,
    orchestrator: OrchestratorDep,
    audio: UploadFile = File(...),
    conversation_id: Optional[str] = Form(None, alias="conversationId"),
    constraints: Optional[str] = Form(None, description="JSON-encoded constraints"),
    transcriber: Transcriber = Depends(get_transcriber),
):
    """Transcribe the uploaded audio, then run it as a regular text turn."""
    payload = await audio.read()
    if not payload:
        raise HTTPException(status_code=400, detail="Empty audio upload")
    parsed = _parse_constraints(constraints)

    start_time = time.perf_counter()
    try:
        tr = await transcriber.transcribe(payload, audio.content_type or "audio/webm")
    except TranscriptionError as e:
        logger.error("Transcription failed store_id=%s: %s", caller.store_id, e)
        raise HTTPException(status_code=502, detail="Audio transcription failed")
    if not tr.text:
        raise HTTPException(status_code=422, detail="No speech detected in audio")

    logger.info(
        "Transcribed audio store_id=%s, bytes=%s, chars=%s, elapsed_time=%.4fs",
        caller.store_id, len(payload), len(tr.text), time.perf_counter() - start_time,
    )
    res = await orchestrator.handle_turn(
        TurnRequest(transcript=tr.text, conversation_id=conversation_id, constraints=parsed),
        store_id=caller.store_id,
        user_id=caller.user_id,
    )
    return AudioTurnOut(
        **res.model_dump(),
        transcript=tr.text,
        transcription_metadata=TranscriptionMetadataOut(
            confidence=tr.confidence, duration_ms=tr.duration_ms, language=tr.language,
        ),
    )


@router.get("/conversations/{conversation_id}", response_model=ConversationOut, response_model_by_alias=True)
async def get_conversation(
    conversation_id: str,
    caller: CallerDep,
    conversations: ConversationRepo = Depends(conversation_repo),
):
    conv = await conversations.get(conversation_id, store_id=caller.store_id)
    if conv is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return ConversationOut.model_validate(conv.model_dump())
