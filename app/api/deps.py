# app/api/deps.py
from fastapi import Depends, Header, HTTPException, Request
from pydantic import BaseModel
from app.core.config import Settings, get_settings
from app.db.mongo import get_db
from app.db.redis import get_redis
from app.adapters.llm.base import ReasoningProvider
from app.adapters.transcription.base import Transcriber
from app.domain.repositories.cart_repo import CartRepo
from app.domain.repositories.conversation_repo import ConversationRepo
from app.domain.repositories.inventory_repo import InventoryRepo
from app.domain.repositories.store_repo import StoreRepo
from app.domain.repositories.turn_log_repo import TurnLogRepo
from app.domain.services.assistant_svc import TurnOrchestrator
from app.domain.services.cart_svc import CartService

ANONYMOUS_USER = "anonymous"


class Caller(BaseModel):
    store_id: str
    user_id: str = ANONYMOUS_USER

    model_config = {"frozen": True}


# Dependency for injecting the MongoDB database into endpoints/services
async def mongo_db(db = Depends(get_db)):
    return db

# Dependency for injecting the Redis client (or None) into endpoints/services
def redis_dep():
    return get_redis()


async def caller_identity(
    x_store_id: str | None = Header(default=None),
    x_user_id: str | None = Header(default=None),
) -> Caller:
    """
    Resolve who is asking from request headers.
    - 'X-Store-Id' is required: every read and write is scoped to one store.
    - 'X-User-Id' is optional and defaults to 'anonymous'.
    """
    store_id = (x_store_id or "").strip()
    if not store_id:
        raise HTTPException(status_code=400, detail="Missing X-Store-Id header")
    return Caller(store_id=store_id, user_id=(x_user_id or "").strip() or ANONYMOUS_USER)


def get_reasoning_provider(request: Request) -> ReasoningProvider:
    return request.app.state.reasoning_provider


def get_transcriber(request: Request) -> Transcriber:
    return request.app.state.transcriber


def inventory_repo(db = Depends(mongo_db)) -> InventoryRepo:
    return InventoryRepo(db)

def conversation_repo(db = Depends(mongo_db)) -> ConversationRepo:
    return ConversationRepo(db)

def turn_log_repo(db = Depends(mongo_db)) -> TurnLogRepo:
    return TurnLogRepo(db)

def cart_repo(db = Depends(mongo_db)) -> CartRepo:
    return CartRepo(db)

def store_repo(
    db = Depends(mongo_db),
    redis = Depends(redis_dep),
    settings: Settings = Depends(get_settings),
) -> StoreRepo:
    return StoreRepo(db, redis, cache_ttl=settings.store_policy_cache_ttl)


def get_orchestrator(
    inventory: InventoryRepo = Depends(inventory_repo),
    stores: StoreRepo = Depends(store_repo),
    conversations: ConversationRepo = Depends(conversation_repo),
    turn_logs: TurnLogRepo = Depends(turn_log_repo),
    provider: ReasoningProvider = Depends(get_reasoning_provider),
    settings: Settings = Depends(get_settings),
) -> TurnOrchestrator:
    return TurnOrchestrator(
        inventory_repo=inventory,
        store_repo=stores,
        conversation_repo=conversations,
        analytics_sink=turn_logs,
        provider=provider,
        llm_timeout_s=settings.llm_timeout_s,
        repo_timeout_s=settings.repo_timeout_s,
        retrieval_limit=settings.retrieval_limit,
        retrieval_breadth=settings.retrieval_breadth,
        history_max_messages=settings.history_max_messages,
    )


def get_cart_service(
    carts: CartRepo = Depends(cart_repo),
    inventory: InventoryRepo = Depends(inventory_repo),
) -> CartService:
    return CartService(carts, inventory)
