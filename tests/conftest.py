"""
Shared fixtures: a small hardware-store catalog and in-memory stand-ins for
the Mongo repositories, so the pipeline runs without a database or an LLM.
"""

import os

# Settings are required at import time of app.* modules
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ.setdefault("MONGO_DB", "truthmode_test")
os.environ.setdefault("LLM_PROVIDER", "static")

import json
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

from app.adapters.llm.base import ReasoningProvider
from app.domain.models.cart import Cart, CartItem
from app.domain.models.conversation import Conversation, TurnLog
from app.domain.models.inventory import InventoryItem, InventoryQuery, StorePolicy
from app.domain.services.assistant_svc import TurnOrchestrator
from app.domain.services.cart_svc import CartService

STORE_ID = "store-1"


def _item(**kw) -> InventoryItem:
    kw.setdefault("store_id", STORE_ID)
    return InventoryItem(**kw)


SEED_ITEMS = [
    _item(
        sku="CMD-STRIPS-SM",
        name="Command Small Picture Hanging Strips (4-Pack)",
        description="Damage-free hanging strips. Holds up to 4 lbs. Perfect for small frames on smooth surfaces.",
        category="hanging", price=5.99, stock=52, aisle="A3", bin="11",
        tags=["no-damage", "rental-friendly", "no-tools", "picture-hanging"],
        attributes={"weight_capacity_lbs": 4, "surface_types": ["painted drywall", "glass", "tile", "metal"]},
    ),
    _item(
        sku="CMD-STRIPS-MED",
        name="Command Medium Picture Hanging Strips (6-Pack)",
        description="Damage-free hanging strips. Holds up to 12 lbs. Great for medium frames and canvases.",
        category="hanging", price=8.99, stock=45, aisle="A3", bin="12",
        tags=["no-damage", "rental-friendly", "no-tools", "picture-hanging"],
        attributes={"weight_capacity_lbs": 12, "surface_types": ["painted drywall", "glass", "tile", "metal"]},
    ),
    _item(
        sku="CMD-STRIPS-LG",
        name="Command Large Picture Hanging Strips (8-Pack)",
        description="Heavy duty damage-free strips. Holds up to 16 lbs. For larger frames and mirrors.",
        category="hanging", price=12.99, stock=38, aisle="A3", bin="13",
        tags=["no-damage", "rental-friendly", "no-tools", "picture-hanging", "heavy-duty"],
        attributes={"weight_capacity_lbs": 16, "surface_types": ["painted drywall", "glass", "tile", "metal"]},
    ),
    _item(
        sku="MONKEY-HOOK-10",
        name="Monkey Hooks Picture Hangers (10-Pack)",
        description="Innovative no-tool picture hangers. Simply push into drywall. Holds up to 35 lbs.",
        category="hanging", price=9.99, stock=25, aisle="A3", bin="14",
        tags=["no-tools", "minimal-damage", "picture-hanging", "drywall-only"],
        attributes={"weight_capacity_lbs": 35, "surface_types": ["drywall"], "requires_drill": False},
    ),
    _item(
        sku="DRYWALL-ANCHOR-50",
        name="Drywall Anchors Assorted (50-Pack)",
        description="Plastic expansion anchors for drywall. Various sizes. Requires drilling. Holds 20-75 lbs.",
        category="hardware", price=12.99, stock=30, aisle="B2", bin="5",
        tags=["drilling-required", "drywall", "anchors"],
        attributes={"weight_capacity_lbs": 75, "surface_types": ["drywall"], "requires_drill": True},
    ),
    _item(
        sku="TOGGLE-BOLT-20",
        name="Toggle Bolts Heavy Duty (20-Pack)",
        description="Spring-loaded toggle bolts for hollow walls. Requires 1/2\" hole. Holds up to 100 lbs.",
        category="hardware", price=18.99, stock=22, aisle="B2", bin="7",
        tags=["drilling-required", "heavy-duty", "anchors"],
        attributes={"weight_capacity_lbs": 100, "requires_drill": True},
    ),
    _item(
        sku="WIRE-NUTS-25",
        name="Wire Nuts Assorted (25-Pack)",
        description="Twist-on wire connectors for electrical wiring splices.",
        category="electrical", price=4.49, stock=0, aisle="E1", bin="2",
        tags=["electrical"],
    ),
]


# =============================================================================
#                               IN-MEMORY FAKES
# =============================================================================

class FakeInventoryRepo:
    """Mimics InventoryRepo.find_by_store_with_filters over a list."""

    def __init__(self, items: List[InventoryItem]):
        self.items = list(items)
        self.queries: List[InventoryQuery] = []

    @staticmethod
    def _matches(item: InventoryItem, term: str) -> bool:
        t = term.lower()
        return (
            t in item.name.lower()
            or t in item.description.lower()
            or t in item.category.lower()
            or t in item.tags
        )

    async def find_by_store_with_filters(self, store_id: str, where: InventoryQuery) -> List[InventoryItem]:
        self.queries.append(where)
        rows = [it for it in self.items if it.store_id == store_id]
        if where.in_stock_only:
            rows = [it for it in rows if it.stock > 0]
        if where.terms:
            rows = [it for it in rows if any(self._matches(it, t) for t in where.terms)]
        rows.sort(key=lambda it: (-it.stock, it.name))
        return rows[:where.limit]

    async def get_many_by_skus(self, store_id: str, skus) -> List[InventoryItem]:
        return [it for it in self.items if it.store_id == store_id and it.sku in skus]


class FakeStoreRepo:
    def __init__(self, policy: Optional[StorePolicy] = None, known_stores=(STORE_ID,)):
        self.policy = policy or StorePolicy()
        self.known_stores = set(known_stores)
        self.updates: List[dict] = []

    async def get_policy(self, store_id: str) -> StorePolicy:
        return self.policy

    async def update_policies(self, store_id: str, changes: dict) -> Optional[StorePolicy]:
        if store_id not in self.known_stores:
            return None
        self.updates.append(changes)
        self.policy = StorePolicy.model_validate({**self.policy.model_dump(by_alias=True), **changes})
        return self.policy


class FakeConversationRepo:
    def __init__(self):
        self.conversations: Dict[str, Conversation] = {}
        self.appends: List[tuple] = []

    async def get(self, conversation_id: str, store_id: Optional[str] = None) -> Optional[Conversation]:
        conv = self.conversations.get(conversation_id)
        if conv is None or (store_id is not None and conv.store_id != store_id):
            return None
        return conv

    async def get_or_create(self, conversation_id, store_id, user_id) -> Conversation:
        if conversation_id and (found := await self.get(conversation_id, store_id)):
            return found
        conv = Conversation(id=uuid.uuid4().hex, store_id=store_id, user_id=user_id)
        self.conversations[conv.id] = conv
        return conv

    async def append_turn(self, conversation_id, messages, recommended_skus) -> None:
        messages, recommended_skus = list(messages), list(recommended_skus)
        self.appends.append((conversation_id, messages, recommended_skus))
        conv = self.conversations[conversation_id]
        skus = list(conv.recommended_skus) + [s for s in recommended_skus if s not in conv.recommended_skus]
        self.conversations[conversation_id] = conv.model_copy(update={
            "messages": list(conv.messages) + messages,
            "recommended_skus": skus,
            "updated_at": datetime.now(timezone.utc),
        })


class FakeTurnLogSink:
    def __init__(self):
        self.logs: List[TurnLog] = []

    async def record_turn(self, log: TurnLog) -> None:
        self.logs.append(log)


class FakeCartRepo:
    """Carts in creation order; the last one created for a user is their current cart."""

    def __init__(self):
        self.carts: Dict[str, Cart] = {}

    def _save(self, cart: Cart, items) -> Cart:
        cart = cart.model_copy(update={"items": list(items), "updated_at": datetime.now(timezone.utc)})
        self.carts[cart.id] = cart
        return cart

    async def get(self, cart_id: str) -> Optional[Cart]:
        return self.carts.get(cart_id)

    async def current(self, store_id: str, user_id: str) -> Optional[Cart]:
        mine = [c for c in self.carts.values() if c.store_id == store_id and c.user_id == user_id]
        return mine[-1] if mine else None

    async def list_for_user(self, store_id: str, user_id: str, limit: int = 20) -> List[Cart]:
        mine = [c for c in self.carts.values() if c.store_id == store_id and c.user_id == user_id]
        return list(reversed(mine))[:limit]

    async def create(self, store_id, user_id, items=(), conversation_id=None) -> Cart:
        cart = Cart(id=uuid.uuid4().hex, store_id=store_id, user_id=user_id,
                    conversation_id=conversation_id, items=list(items))
        self.carts[cart.id] = cart
        return cart

    async def add_item(self, cart_id: str, line: CartItem) -> Optional[Cart]:
        cart = self.carts.get(cart_id)
        if cart is None:
            return None
        if any(i.sku == line.sku for i in cart.items):
            items = [i.model_copy(update={"quantity": i.quantity + line.quantity}) if i.sku == line.sku else i
                     for i in cart.items]
        else:
            items = list(cart.items) + [line]
        return self._save(cart, items)

    async def remove_item(self, cart_id: str, sku: str) -> Optional[Cart]:
        cart = self.carts.get(cart_id)
        return self._save(cart, [i for i in cart.items if i.sku != sku]) if cart else None

    async def replace_items(self, cart_id: str, items) -> Optional[Cart]:
        cart = self.carts.get(cart_id)
        return self._save(cart, items) if cart else None

    async def clear(self, cart_id: str) -> Optional[Cart]:
        return await self.replace_items(cart_id, [])


class ScriptedProvider(ReasoningProvider):
    """Returns canned raw texts in order (the last one repeats); records every context."""

    name = "scripted"

    def __init__(self, *responses, max_retries: int = 0):
        super().__init__(max_retries=max_retries)
        self.responses = [r if isinstance(r, (str, Exception)) else json.dumps(r) for r in responses]
        self.contexts = []
        self.hints = []

    async def _complete(self, context, *, retry_hint=None) -> str:
        self.contexts.append(context)
        self.hints.append(retry_hint)
        resp = self.responses[min(len(self.contexts), len(self.responses)) - 1]
        if isinstance(resp, Exception):
            raise resp
        return resp


def payload(**kw) -> dict:
    out = {
        "assistant_message": "Here is what I'd use.",
        "recommended_skus": [],
        "follow_up_questions": [],
        "add_on_skus": [],
        "cart": [],
        "safety_notes": [],
        "reasoning": {},
        "confidence": 0.8,
    }
    out.update(kw)
    return out


# =============================================================================
#                               FIXTURES
# =============================================================================

@pytest.fixture
def seed_items() -> List[InventoryItem]:
    return list(SEED_ITEMS)


@pytest.fixture
def inventory_repo(seed_items) -> FakeInventoryRepo:
    return FakeInventoryRepo(seed_items)


@pytest.fixture
def store_repo() -> FakeStoreRepo:
    return FakeStoreRepo()


@pytest.fixture
def conversation_repo() -> FakeConversationRepo:
    return FakeConversationRepo()


@pytest.fixture
def turn_log_sink() -> FakeTurnLogSink:
    return FakeTurnLogSink()


@pytest.fixture
def make_orchestrator(inventory_repo, store_repo, conversation_repo, turn_log_sink):
    def _make(provider, **kw) -> TurnOrchestrator:
        return TurnOrchestrator(
            inventory_repo=kw.pop("inventory_repo", inventory_repo),
            store_repo=kw.pop("store_repo", store_repo),
            conversation_repo=kw.pop("conversation_repo", conversation_repo),
            analytics_sink=kw.pop("analytics_sink", turn_log_sink),
            provider=provider,
            **kw,
        )
    return _make


@pytest.fixture
def cart_repo() -> FakeCartRepo:
    return FakeCartRepo()


@pytest.fixture
def cart_service(cart_repo, inventory_repo) -> CartService:
    return CartService(cart_repo, inventory_repo)
