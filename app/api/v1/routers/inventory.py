# app/api/v1/routers/inventory.py
from fastapi import APIRouter, Depends, Query
from typing import Annotated, Optional
import time
import logging

from app.api.deps import Caller, caller_identity, inventory_repo
from app.api.v1.schemas.assistant import InventoryItemOut, InventorySearchOut
from app.domain.models.inventory import Constraints
from app.domain.repositories.inventory_repo import InventoryRepo
from app.domain.services.retrieval import retrieve_candidates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inventory", tags=["inventory"])

CallerDep = Annotated[Caller, Depends(caller_identity)]


@router.get("/search", response_model=InventorySearchOut, response_model_by_alias=True)
async def search_inventory(
    caller: CallerDep,
    q: str = Query("", description="Free-text query; empty browses in-stock items"),
    limit: int = Query(20, ge=1, le=100),
    no_damage: Optional[bool] = Query(None, alias="noDamage"),
    no_tools: Optional[bool] = Query(None, alias="noTools"),
    no_drilling: Optional[bool] = Query(None, alias="noDrilling"),
    min_weight: Optional[float] = Query(None, alias="minWeight", ge=0),
    max_budget: Optional[float] = Query(None, alias="maxBudget", ge=0),
    surface_type: Optional[str] = Query(None, alias="surfaceType"),
    inventory: InventoryRepo = Depends(inventory_repo),
):
    """Same retrieval the assistant uses, without the reasoning step."""
    constraints = Constraints(
        no_damage=no_damage,
        no_tools=no_tools,
        no_drilling=no_drilling,
        min_weight=min_weight,
        max_budget=max_budget,
        surface_type=surface_type,
    )
    start_time = time.perf_counter()
    items = await retrieve_candidates(
        inventory, caller.store_id, q, constraints, limit=limit, breadth=max(limit, 50),
    )
    logger.info(
        "Response: search_inventory store_id=%s, q=%r, count=%s, elapsed_time=%.4fs",
        caller.store_id, q, len(items), time.perf_counter() - start_time,
    )
    return InventorySearchOut(query=q, items=[InventoryItemOut.from_item(it) for it in items], count=len(items))
