# app/api/v1/routers/stores.py
from fastapi import APIRouter, Depends, HTTPException
from typing import Annotated
import logging

from app.api.deps import Caller, caller_identity, store_repo
from app.api.v1.schemas.store import PolicyUpdateIn
from app.domain.models.inventory import StorePolicy
from app.domain.repositories.store_repo import StoreRepo

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stores", tags=["stores"])

CallerDep = Annotated[Caller, Depends(caller_identity)]


def _own_store(store_id: str, caller: Caller) -> None:
    if store_id != caller.store_id:
        raise HTTPException(status_code=403, detail="You can only access your own store policies")


@router.get("/{store_id}/policies", response_model=StorePolicy, response_model_by_alias=True)
async def get_policies(store_id: str, caller: CallerDep, stores: StoreRepo = Depends(store_repo)):
    """Effective policy: saved values over the defaults."""
    _own_store(store_id, caller)
    return await stores.get_policy(store_id)


@router.patch("/{store_id}/policies", response_model=StorePolicy, response_model_by_alias=True)
async def update_policies(
    store_id: str,
    body: PolicyUpdateIn,
    caller: CallerDep,
    stores: StoreRepo = Depends(store_repo),
):
    """Merge the sent keys into the store's policies; the next turn sees the change."""
    _own_store(store_id, caller)
    changes = body.policies.changes()
    logger.info("Request: update policies store_id=%s, user_id=%s, keys=%s", store_id, caller.user_id, sorted(changes))
    policy = await stores.update_policies(store_id, changes)
    if policy is None:
        raise HTTPException(status_code=404, detail="Store not found")
    return policy
