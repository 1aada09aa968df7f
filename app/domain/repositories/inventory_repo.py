# app/domain/repositories/inventory_repo.py

from __future__ import annotations
import re
import logging
from typing import Any, Dict, List, Optional, Sequence
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError
from app.domain.models.inventory import InventoryItem, InventoryQuery

logger = logging.getLogger(__name__)

_PROJECTION = {
    "_id": 0,
    "sku": 1,
    "name": 1,
    "description": 1,
    "category": 1,
    "price": 1,
    "stock": 1,
    "aisle": 1,
    "bin": 1,
    "tags": 1,
    "attributes": 1,
    "store_id": 1,
}

class InventoryRepo:
    """
    Read-only catalog access backed by the 'inventory' collection.
    One document per (store_id, sku).
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "inventory"):
        self.col = db[collection_name]

    # ---------- Utils ----------
    @staticmethod
    def to_mql(store_id: str, query: InventoryQuery) -> Dict[str, Any]:
        """Translate an InventoryQuery into a MQL filter document."""
        where: Dict[str, Any] = {"store_id": store_id}
        if query.in_stock_only:
            where["stock"] = {"$gt": 0}
        if query.terms:
            ors: List[Dict[str, Any]] = []
            for term in query.terms:
                rx = {"$regex": re.escape(term), "$options": "i"}
                ors += [
                    {"name": rx},
                    {"description": rx},
                    {"category": rx},
                    {"tags": term.lower()},
                ]
            where["$or"] = ors
        return where

    @staticmethod
    def _to_item(doc: dict) -> Optional[InventoryItem]:
        try:
            return InventoryItem.model_validate(doc)
        except ValidationError as e:
            # a broken row must not take the whole search down
            logger.warning(f"Skipping malformed inventory doc sku={doc.get('sku')}: {e}")
            return None

    # ---------- Queries ----------
    async def find_by_store_with_filters(self, store_id: str, where: InventoryQuery) -> List[InventoryItem]:
        """
        Items of `store_id` matching `where`, ordered by stock desc then name asc,
        capped at `where.limit`.
        """
        mql = self.to_mql(store_id, where)
        cursor = (
            self.col.find(mql, _PROJECTION)
            .sort([("stock", -1), ("name", 1)])
            .limit(where.limit)
        )
        docs = [doc async for doc in cursor]
        logger.debug(f"Inventory query store_id={store_id} terms={len(where.terms)} rows={len(docs)}")
        return [it for it in (self._to_item(d) for d in docs) if it is not None]

    async def get_many_by_skus(self, store_id: str, skus: Sequence[str]) -> List[InventoryItem]:
        if not skus:
            return []
        cursor = self.col.find({"store_id": store_id, "sku": {"$in": list(skus)}}, _PROJECTION)
        docs = [doc async for doc in cursor]
        return [it for it in (self._to_item(d) for d in docs) if it is not None]
