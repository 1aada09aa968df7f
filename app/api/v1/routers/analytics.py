# app/api/v1/routers/analytics.py
from fastapi import APIRouter, Depends, Query
from typing import Annotated

from app.api.deps import Caller, caller_identity, turn_log_repo
from app.domain.repositories.turn_log_repo import TurnLogRepo

router = APIRouter(prefix="/analytics", tags=["analytics"])

CallerDep = Annotated[Caller, Depends(caller_identity)]


@router.get("/overview")
async def analytics_overview(caller: CallerDep, turn_logs: TurnLogRepo = Depends(turn_log_repo)):
    return await turn_logs.overview(caller.store_id)


@router.get("/conversations")
async def analytics_conversations(
    caller: CallerDep,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    turn_logs: TurnLogRepo = Depends(turn_log_repo),
):
    items = await turn_logs.recent(caller.store_id, limit=limit, offset=offset)
    return {"items": items, "count": len(items), "limit": limit, "offset": offset}
