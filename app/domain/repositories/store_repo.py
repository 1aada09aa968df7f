# app/domain/repositories/store_repo.py
from __future__ import annotations
import logging
from typing import Any, Dict, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError
from pymongo import ReturnDocument
from redis.asyncio import Redis
from app.domain.models.inventory import StorePolicy
from app.domain.services.constants import DEFAULT_STORE_POLICIES
from app.utils.cache import cache_delete, cache_get, cache_set

logger = logging.getLogger(__name__)

class StoreRepo:
    """
    Store policies from the 'stores' collection ({_id: store_id, policies: {...}}),
    keyed by their camelCase names. Redis (when available) caches the merged policy
    for a few minutes so every turn does not hit Mongo; updates drop the cached copy.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        redis: Optional[Redis] = None,
        *,
        cache_ttl: int = 300,
        collection_name: str = "stores",
    ):
        self.col = db[collection_name]
        self.redis = redis
        self.cache_ttl = cache_ttl

    @staticmethod
    def key(store_id: str) -> str:
        return f"store_policy:{store_id}"

    @staticmethod
    def _merge(store_id: str, doc: Optional[dict]) -> StorePolicy:
        raw = {**DEFAULT_STORE_POLICIES, **((doc or {}).get("policies") or {})}
        try:
            return StorePolicy.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Invalid policies for store_id={store_id}, using defaults: {e}")
            return StorePolicy.model_validate(DEFAULT_STORE_POLICIES)

    async def get_policy(self, store_id: str) -> StorePolicy:
        if self.redis is not None:
            try:
                if cached := await cache_get(self.redis, self.key(store_id)):
                    return StorePolicy.model_validate(cached)
            except Exception as e:
                logger.warning(f"Store policy cache read failed store_id={store_id}: {e}")

        doc = await self.col.find_one({"_id": store_id}, {"policies": 1})
        policy = self._merge(store_id, doc)

        if self.redis is not None:
            try:
                await cache_set(self.redis, self.key(store_id), policy.model_dump(by_alias=True), ex=self.cache_ttl)
            except Exception as e:
                logger.warning(f"Store policy cache write failed store_id={store_id}: {e}")
        return policy

    async def update_policies(self, store_id: str, changes: Dict[str, Any]) -> Optional[StorePolicy]:
        """
        Merge `changes` (camelCase policy keys) into the saved policies, one `$set`
        per key. Returns the effective policy, or None when the store does not exist.
        """
        if changes:
            doc = await self.col.find_one_and_update(
                {"_id": store_id},
                {"$set": {f"policies.{k}": v for k, v in changes.items()}},
                projection={"policies": 1},
                return_document=ReturnDocument.AFTER,
            )
        else:
            doc = await self.col.find_one({"_id": store_id}, {"policies": 1})
        if doc is None:
            return None

        if self.redis is not None:
            try:
                await cache_delete(self.redis, self.key(store_id))
            except Exception as e:
                logger.warning(f"Store policy cache invalidation failed store_id={store_id}: {e}")
        logger.info(f"Store policies updated store_id={store_id} keys={sorted(changes)}")
        return self._merge(store_id, doc)
