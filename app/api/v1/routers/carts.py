# app/api/v1/routers/carts.py
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Annotated, List
import logging

from app.api.deps import Caller, caller_identity, get_cart_service
from app.api.v1.schemas.cart import CartAddIn, CartCreateIn, CartOut, CartSummaryOut, CartUpdateIn
from app.domain.services.cart_svc import CartAccessError, CartNotFoundError, CartService, UnknownSkuError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/carts", tags=["carts"])

CallerDep = Annotated[Caller, Depends(caller_identity)]
CartsDep = Annotated[CartService, Depends(get_cart_service)]


async def _guard(aw):
    try:
        return await aw
    except UnknownSkuError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except CartNotFoundError:
        raise HTTPException(status_code=404, detail="Cart not found")
    except CartAccessError:
        raise HTTPException(status_code=403, detail="You cannot access this cart")


@router.get("", response_model=List[CartSummaryOut], response_model_by_alias=True)
async def list_carts(caller: CallerDep, carts: CartsDep, limit: int = Query(20, ge=1, le=100)):
    """The caller's carts, newest first."""
    found = await carts.list_carts(caller.store_id, caller.user_id, limit=limit)
    return [
        CartSummaryOut(id=c.id, item_count=len(c.items), total=c.total, created_at=c.created_at)
        for c in found
    ]


@router.get("/current", response_model=CartOut, response_model_by_alias=True)
async def current_cart(caller: CallerDep, carts: CartsDep):
    """The caller's most recently created cart; an empty one is created when there is none."""
    return CartOut.from_cart(await carts.current(caller.store_id, caller.user_id))


@router.post("", response_model=CartOut, response_model_by_alias=True)
async def create_cart(body: CartCreateIn, caller: CallerDep, carts: CartsDep):
    cart = await _guard(carts.create(caller.store_id, caller.user_id, body.items, body.conversation_id))
    logger.info("Response: create cart cart_id=%s, items=%s, total=%s", cart.id, len(cart.items), cart.total)
    return CartOut.from_cart(cart)


@router.post("/add", response_model=CartOut, response_model_by_alias=True)
async def add_to_cart(body: CartAddIn, caller: CallerDep, carts: CartsDep):
    logger.info("Request: add to cart store_id=%s, user_id=%s, sku=%s, quantity=%s",
                caller.store_id, caller.user_id, body.sku, body.quantity)
    return CartOut.from_cart(await _guard(carts.add(caller.store_id, caller.user_id, body.sku, body.quantity)))


@router.delete("/remove/{sku}", response_model=CartOut, response_model_by_alias=True)
async def remove_from_cart(sku: str, caller: CallerDep, carts: CartsDep):
    return CartOut.from_cart(await _guard(carts.remove(caller.store_id, caller.user_id, sku)))


@router.delete("/clear", response_model=CartOut, response_model_by_alias=True)
async def clear_cart(caller: CallerDep, carts: CartsDep):
    return CartOut.from_cart(await _guard(carts.clear(caller.store_id, caller.user_id)))


@router.get("/{cart_id}", response_model=CartOut, response_model_by_alias=True)
async def get_cart(cart_id: str, caller: CallerDep, carts: CartsDep):
    return CartOut.from_cart(await _guard(carts.get(cart_id, caller.store_id)))


@router.patch("/{cart_id}", response_model=CartOut, response_model_by_alias=True)
async def update_cart(cart_id: str, body: CartUpdateIn, caller: CallerDep, carts: CartsDep):
    """Set line quantities; 0 removes a line, lines not sent are left alone."""
    return CartOut.from_cart(await _guard(carts.update(cart_id, caller.store_id, body.items)))
