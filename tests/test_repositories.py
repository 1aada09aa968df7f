"""Mongo/Redis repositories against mocked collections."""

import json
import re
from unittest.mock import AsyncMock, MagicMock

from pymongo import DESCENDING

from app.domain.models.cart import CartItem
from app.domain.models.conversation import ConversationMessage, TurnLog
from app.domain.models.inventory import InventoryQuery
from app.domain.repositories.cart_repo import CartRepo
from app.domain.repositories.conversation_repo import ConversationRepo
from app.domain.repositories.inventory_repo import InventoryRepo
from app.domain.repositories.store_repo import StoreRepo
from app.domain.repositories.turn_log_repo import TurnLogRepo, preview


class FakeRedis:
    def __init__(self):
        self.data = {}
        self.ttls = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.ttls[key] = ex

    async def delete(self, key):
        self.data.pop(key, None)


def _db(**collections):
    return {name: col for name, col in collections.items()}


class TestInventoryQuery:

    def test_terms_become_or_clauses(self):
        mql = InventoryRepo.to_mql("s1", InventoryQuery(terms=["Hooks"]))
        assert mql["store_id"] == "s1"
        assert mql["stock"] == {"$gt": 0}
        assert {"tags": "hooks"} in mql["$or"]
        assert {"name": {"$regex": "Hooks", "$options": "i"}} in mql["$or"]
        assert len(mql["$or"]) == 4

    def test_regex_metacharacters_are_escaped(self):
        mql = InventoryRepo.to_mql("s1", InventoryQuery(terms=["1/2\"(x)"]))
        rx = mql["$or"][0]["name"]["$regex"]
        assert re.search(rx, 'toggle 1/2"(x) bolt')

    def test_browse_has_no_text_filter(self):
        assert "$or" not in InventoryRepo.to_mql("s1", InventoryQuery())


class TestStoreRepo:

    async def test_saved_policy_over_defaults(self):
        col = MagicMock()
        col.find_one = AsyncMock(return_value={"_id": "s1", "policies": {"preferNoDamage": True, "maxBudgetDefault": 30}})
        policy = await StoreRepo(_db(stores=col)).get_policy("s1")
        assert policy.prefer_no_damage is True
        assert policy.max_budget_default == 30
        assert policy.safety_disclaimers is True

    async def test_unknown_store_gets_defaults(self):
        col = MagicMock()
        col.find_one = AsyncMock(return_value=None)
        policy = await StoreRepo(_db(stores=col)).get_policy("nope")
        assert policy.prefer_no_damage is False
        assert policy.safety_disclaimers is True

    async def test_invalid_policy_falls_back_to_defaults(self):
        col = MagicMock()
        col.find_one = AsyncMock(return_value={"_id": "s1", "policies": {"maxBudgetDefault": -5}})
        policy = await StoreRepo(_db(stores=col)).get_policy("s1")
        assert policy.max_budget_default is None

    async def test_cache_round_trip(self):
        col = MagicMock()
        col.find_one = AsyncMock(return_value={"_id": "s1", "policies": {"preferNoTools": True}})
        redis = FakeRedis()
        repo = StoreRepo(_db(stores=col), redis, cache_ttl=60)

        first = await repo.get_policy("s1")
        second = await repo.get_policy("s1")

        assert first == second
        assert col.find_one.await_count == 1
        assert redis.ttls["store_policy:s1"] == 60
        assert json.loads(redis.data["store_policy:s1"])["preferNoTools"] is True

    async def test_update_sets_only_sent_keys_and_drops_cache(self):
        col = MagicMock()
        col.find_one = AsyncMock(return_value={"_id": "s1", "policies": {"preferNoTools": True}})
        col.find_one_and_update = AsyncMock(
            return_value={"_id": "s1", "policies": {"preferNoTools": True, "maxBudgetDefault": 25}}
        )
        redis = FakeRedis()
        repo = StoreRepo(_db(stores=col), redis)
        await repo.get_policy("s1")
        assert "store_policy:s1" in redis.data

        policy = await repo.update_policies("s1", {"maxBudgetDefault": 25})

        filt, update = col.find_one_and_update.call_args.args
        assert filt == {"_id": "s1"}
        assert update == {"$set": {"policies.maxBudgetDefault": 25}}
        assert policy.max_budget_default == 25
        assert policy.prefer_no_tools is True
        assert "store_policy:s1" not in redis.data

    async def test_update_unknown_store(self):
        col = MagicMock()
        col.find_one_and_update = AsyncMock(return_value=None)
        assert await StoreRepo(_db(stores=col)).update_policies("nope", {"preferNoDamage": True}) is None


class TestConversationRepo:

    async def test_unknown_id_creates_new_conversation(self):
        col = MagicMock()
        col.find_one = AsyncMock(return_value=None)
        col.insert_one = AsyncMock()
        conv = await ConversationRepo(_db(conversations=col)).get_or_create("missing", "s1", "u1")
        assert conv.id != "missing"
        doc = col.insert_one.call_args.args[0]
        assert doc["_id"] == conv.id
        assert doc["store_id"] == "s1"

    async def test_lookup_is_store_scoped(self):
        col = MagicMock()
        col.find_one = AsyncMock(return_value=None)
        await ConversationRepo(_db(conversations=col)).get("c1", store_id="s1")
        assert col.find_one.call_args.args[0] == {"_id": "c1", "store_id": "s1"}

    async def test_append_is_a_single_atomic_update(self):
        col = MagicMock()
        col.update_one = AsyncMock()
        await ConversationRepo(_db(conversations=col)).append_turn(
            "c1",
            [ConversationMessage(role="user", content="hi"), ConversationMessage(role="assistant", content="hello")],
            ["A", "B"],
        )
        assert col.update_one.await_count == 1
        filt, update = col.update_one.call_args.args
        assert filt == {"_id": "c1"}
        assert len(update["$push"]["messages"]["$each"]) == 2
        assert update["$addToSet"]["recommended_skus"] == {"$each": ["A", "B"]}
        assert "updated_at" in update["$set"]


class TestCartRepo:

    @staticmethod
    def _doc(items):
        return {"_id": "k1", "store_id": "s1", "user_id": "u1", "items": items}

    async def test_current_is_newest_by_creation(self):
        col = MagicMock()
        col.find_one = AsyncMock(return_value=self._doc([]))
        cart = await CartRepo(_db(carts=col)).current("s1", "u1")
        assert cart.id == "k1"
        assert col.find_one.call_args.args[0] == {"store_id": "s1", "user_id": "u1"}
        assert col.find_one.call_args.kwargs["sort"] == [("created_at", DESCENDING)]

    async def test_add_existing_sku_increments_in_place(self):
        line = CartItem(sku="A", name="a", price=2.5, quantity=2, location="Aisle 1")
        col = MagicMock()
        col.find_one_and_update = AsyncMock(return_value=self._doc([{**line.model_dump(), "quantity": 3}]))
        cart = await CartRepo(_db(carts=col)).add_item("k1", line)

        assert col.find_one_and_update.await_count == 1
        filt, update = col.find_one_and_update.call_args.args
        assert filt == {"_id": "k1", "items.sku": "A"}
        assert update["$inc"] == {"items.$.quantity": 2}
        assert cart.total == 7.5

    async def test_add_new_sku_pushes_line(self):
        line = CartItem(sku="B", name="b", price=1, quantity=1, location="Aisle 2")
        col = MagicMock()
        col.find_one_and_update = AsyncMock(side_effect=[None, self._doc([line.model_dump()])])
        cart = await CartRepo(_db(carts=col)).add_item("k1", line)

        filt, update = col.find_one_and_update.call_args.args
        assert filt == {"_id": "k1", "items.sku": {"$ne": "B"}}
        assert update["$push"] == {"items": line.model_dump()}
        assert [i.sku for i in cart.items] == ["B"]

    async def test_remove_pulls_by_sku(self):
        col = MagicMock()
        col.find_one_and_update = AsyncMock(return_value=self._doc([]))
        await CartRepo(_db(carts=col)).remove_item("k1", "A")
        _, update = col.find_one_and_update.call_args.args
        assert update["$pull"] == {"items": {"sku": "A"}}
        assert "updated_at" in update["$set"]


class TestTurnLogRepo:

    async def test_record_turn_inserts_one_document(self):
        col = MagicMock()
        col.insert_one = AsyncMock()
        log = TurnLog(store_id="s1", user_id="u1", user_message="q", assistant_message="a", latency_ms=12, intent="repair")
        await TurnLogRepo(_db(conversation_logs=col, inventory=MagicMock())).record_turn(log)
        doc = col.insert_one.call_args.args[0]
        assert doc["latency_ms"] == 12
        assert doc["intent"] == "repair"

    def test_preview(self):
        assert preview("short") == "short"
        long = "x" * 250
        assert preview(long) == "x" * 200 + "..."
