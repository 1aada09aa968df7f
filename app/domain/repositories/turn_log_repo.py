# app/domain/repositories/turn_log_repo.py

from __future__ import annotations
import logging
from typing import Any, Dict, List
from datetime import datetime, timedelta, timezone
from motor.motor_asyncio import AsyncIOMotorDatabase
from app.domain.models.conversation import TurnLog
from app.domain.services.constants import LOG_MESSAGE_PREVIEW_CHARS

logger = logging.getLogger(__name__)

def preview(text: str, limit: int = LOG_MESSAGE_PREVIEW_CHARS) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")

class TurnLogRepo:
    """
    Analytics sink: one write-once document per assistant turn in 'conversation_logs',
    plus the read-side aggregations used by the analytics endpoints.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "conversation_logs"):
        self.col = db[collection_name]
        self.inventory = db["inventory"]

    async def record_turn(self, log: TurnLog) -> None:
        await self.col.insert_one(log.model_dump())

    async def recent(self, store_id: str, limit: int = 50, offset: int = 0) -> List[Dict[str, Any]]:
        cursor = (
            self.col.find({"store_id": store_id}, {"_id": 0})
            .sort("created_at", -1)
            .skip(offset)
            .limit(limit)
        )
        out = []
        async for doc in cursor:
            doc["assistant_message"] = preview(doc.get("assistant_message") or "")
            out.append(doc)
        return out

    async def overview(self, store_id: str, now: datetime | None = None) -> Dict[str, Any]:
        now = now or datetime.now(timezone.utc)
        today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        week_start = now - timedelta(days=7)

        total = await self.col.count_documents({"store_id": store_id})
        today = await self.col.count_documents({"store_id": store_id, "created_at": {"$gte": today_start}})
        week = await self.col.count_documents({"store_id": store_id, "created_at": {"$gte": week_start}})

        latency = await self.col.aggregate([
            {"$match": {"store_id": store_id}},
            {"$group": {"_id": None, "avg": {"$avg": "$latency_ms"}}},
        ]).to_list(length=1)
        avg_latency = round((latency[0]["avg"] or 0) if latency else 0)

        intents = await self.col.aggregate([
            {"$match": {"store_id": store_id, "intent": {"$ne": None}}},
            {"$group": {"_id": "$intent", "count": {"$sum": 1}}},
            {"$sort": {"count": -1}},
            {"$limit": 5},
        ]).to_list(length=5)

        skus = await self.col.aggregate([
            {"$match": {"store_id": store_id}},
            {"$unwind": "$recommended_skus"},
            {"$group": {"_id": "$recommended_skus", "count": {"$sum": 1}}},
            {"$sort": {"count": -1}},
            {"$limit": 5},
        ]).to_list(length=5)

        names: Dict[str, str] = {}
        if skus:
            cursor = self.inventory.find(
                {"store_id": store_id, "sku": {"$in": [s["_id"] for s in skus]}},
                {"_id": 0, "sku": 1, "name": 1},
            )
            names = {d["sku"]: d.get("name") async for d in cursor}

        logger.debug(f"analytics overview store_id={store_id} total={total} intents={len(intents)} skus={len(skus)}")
        return {
            "totalConversations": total,
            "conversationsToday": today,
            "conversationsThisWeek": week,
            "averageLatencyMs": avg_latency,
            "topIntents": [{"intent": r["_id"] or "unknown", "count": r["count"]} for r in intents],
            "topRecommendedSkus": [
                {"sku": r["_id"], "name": names.get(r["_id"]) or r["_id"], "count": r["count"]} for r in skus
            ],
        }
