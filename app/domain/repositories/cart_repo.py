# app/domain/repositories/cart_repo.py

from __future__ import annotations
import uuid
import logging
from typing import Iterable, List, Optional
from datetime import datetime, timezone
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument
from app.domain.models.cart import Cart, CartItem

logger = logging.getLogger(__name__)

class CartRepo:
    """
    Carts backed by the 'carts' collection (_id = cart id, one document per cart).
    A user's "current" cart is their most recently created one in the store.
    Line changes are single server-side updates, never a read-modify-write of the items array.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "carts"):
        self.col = db[collection_name]

    @staticmethod
    def _from_doc(doc: dict) -> Cart:
        return Cart.model_validate({**doc, "id": doc["_id"]})

    async def _update(self, query: dict, update: dict) -> Optional[Cart]:
        update.setdefault("$set", {})["updated_at"] = datetime.now(timezone.utc)
        doc = await self.col.find_one_and_update(query, update, return_document=ReturnDocument.AFTER)
        return self._from_doc(doc) if doc else None

    # ---------- Reads ----------
    async def get(self, cart_id: str) -> Optional[Cart]:
        doc = await self.col.find_one({"_id": cart_id})
        return self._from_doc(doc) if doc else None

    async def current(self, store_id: str, user_id: str) -> Optional[Cart]:
        doc = await self.col.find_one(
            {"store_id": store_id, "user_id": user_id},
            sort=[("created_at", DESCENDING)],
        )
        return self._from_doc(doc) if doc else None

    async def list_for_user(self, store_id: str, user_id: str, limit: int = 20) -> List[Cart]:
        cursor = (
            self.col.find({"store_id": store_id, "user_id": user_id})
            .sort("created_at", DESCENDING)
            .limit(limit)
        )
        return [self._from_doc(doc) async for doc in cursor]

    # ---------- Writes ----------
    async def create(
        self,
        store_id: str,
        user_id: str,
        items: Iterable[CartItem] = (),
        conversation_id: Optional[str] = None,
    ) -> Cart:
        cart = Cart(
            id=uuid.uuid4().hex,
            store_id=store_id,
            user_id=user_id,
            conversation_id=conversation_id,
            items=list(items),
        )
        doc = cart.model_dump(exclude={"id"})
        doc["_id"] = cart.id
        await self.col.insert_one(doc)
        logger.info(f"Cart created cart_id={cart.id} store_id={store_id} items={len(cart.items)}")
        return cart

    async def add_item(self, cart_id: str, line: CartItem) -> Optional[Cart]:
        """Bump the quantity of an existing line, or append the line when its SKU is new."""
        cart = await self._update(
            {"_id": cart_id, "items.sku": line.sku},
            {"$inc": {"items.$.quantity": line.quantity}},
        )
        if cart is None:
            cart = await self._update(
                {"_id": cart_id, "items.sku": {"$ne": line.sku}},
                {"$push": {"items": line.model_dump()}},
            )
        return cart

    async def remove_item(self, cart_id: str, sku: str) -> Optional[Cart]:
        return await self._update({"_id": cart_id}, {"$pull": {"items": {"sku": sku}}})

    async def replace_items(self, cart_id: str, items: Iterable[CartItem]) -> Optional[Cart]:
        return await self._update({"_id": cart_id}, {"$set": {"items": [i.model_dump() for i in items]}})

    async def clear(self, cart_id: str) -> Optional[Cart]:
        return await self.replace_items(cart_id, [])
