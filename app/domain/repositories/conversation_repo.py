# app/domain/repositories/conversation_repo.py

from __future__ import annotations
import uuid
import logging
from typing import Iterable, Optional
from datetime import datetime, timezone
from motor.motor_asyncio import AsyncIOMotorDatabase
from app.domain.models.conversation import Conversation, ConversationMessage

logger = logging.getLogger(__name__)

class ConversationRepo:
    """
    Conversation store backed by the 'conversations' collection (_id = conversation id).
    Turns are appended with a single atomic update so two concurrent turns on the
    same conversation both land, instead of one overwriting the other's snapshot.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "conversations"):
        self.col = db[collection_name]

    @staticmethod
    def _from_doc(doc: dict) -> Conversation:
        return Conversation.model_validate({**doc, "id": doc["_id"]})

    async def get(self, conversation_id: str, store_id: Optional[str] = None) -> Optional[Conversation]:
        query = {"_id": conversation_id}
        if store_id is not None:
            query["store_id"] = store_id
        doc = await self.col.find_one(query)
        return self._from_doc(doc) if doc else None

    async def get_or_create(self, conversation_id: Optional[str], store_id: str, user_id: str) -> Conversation:
        """
        Resolve a conversation by id (scoped to the store). Absent or unknown id
        starts a new conversation.
        """
        if conversation_id:
            if found := await self.get(conversation_id, store_id=store_id):
                return found
            logger.info(f"Unknown conversation_id={conversation_id} for store_id={store_id}, starting a new one")

        conv = Conversation(id=uuid.uuid4().hex, store_id=store_id, user_id=user_id)
        doc = conv.model_dump(exclude={"id"})
        doc["_id"] = conv.id
        await self.col.insert_one(doc)
        return conv

    async def append_turn(
        self,
        conversation_id: str,
        messages: Iterable[ConversationMessage],
        recommended_skus: Iterable[str],
    ) -> None:
        """Append messages and union SKUs into the cumulative set (server-side, no read-modify-write)."""
        now = datetime.now(timezone.utc)
        await self.col.update_one(
            {"_id": conversation_id},
            {
                "$push": {"messages": {"$each": [m.model_dump() for m in messages]}},
                "$addToSet": {"recommended_skus": {"$each": list(recommended_skus)}},
                "$set": {"updated_at": now},
            },
        )
