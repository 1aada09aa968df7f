"""HTTP surface, with repositories, provider and transcriber swapped for fakes."""

import pytest
from fastapi.testclient import TestClient

from app.adapters.transcription.base import Transcriber, TranscriptionError, TranscriptionResult
from app.api import deps
from app.domain.services.constants import FALLBACK_MESSAGES
from app.main import app

from conftest import STORE_ID, ScriptedProvider, payload

HEADERS = {"X-Store-Id": STORE_ID, "X-User-Id": "emp-7"}


class FakeTranscriber(Transcriber):
    name = "fake"

    def __init__(self, text="hang a picture", error=None):
        self.text = text
        self.error = error

    async def transcribe(self, audio, mime_type):
        if self.error:
            raise self.error
        return TranscriptionResult(text=self.text, confidence=0.95, duration_ms=120, language="en")


class FakeTurnLogRepo:
    def __init__(self, sink):
        self.sink = sink

    async def record_turn(self, log):
        await self.sink.record_turn(log)

    async def recent(self, store_id, limit=50, offset=0):
        logs = [l for l in reversed(self.sink.logs) if l.store_id == store_id]
        return [l.model_dump() for l in logs[offset:offset + limit]]

    async def overview(self, store_id, now=None):
        return {"totalConversations": len([l for l in self.sink.logs if l.store_id == store_id])}


@pytest.fixture
def provider():
    return ScriptedProvider(payload(
        recommended_skus=["CMD-STRIPS-MED", "FAKE-SKU"],
        reasoning={"CMD-STRIPS-MED": "Holds 12 lbs"},
    ))


@pytest.fixture
def transcriber():
    return FakeTranscriber()


@pytest.fixture
def client(make_orchestrator, provider, transcriber, inventory_repo, conversation_repo, turn_log_sink,
           cart_service, store_repo):
    logs = FakeTurnLogRepo(turn_log_sink)
    app.dependency_overrides[deps.get_orchestrator] = lambda: make_orchestrator(provider)
    app.dependency_overrides[deps.get_transcriber] = lambda: transcriber
    app.dependency_overrides[deps.inventory_repo] = lambda: inventory_repo
    app.dependency_overrides[deps.conversation_repo] = lambda: conversation_repo
    app.dependency_overrides[deps.turn_log_repo] = lambda: logs
    app.dependency_overrides[deps.get_cart_service] = lambda: cart_service
    app.dependency_overrides[deps.store_repo] = lambda: store_repo
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestAsk:

    def test_ask_returns_grounded_items(self, client):
        resp = client.post("/assistant/ask", json={"transcript": "hang a picture"}, headers=HEADERS)
        assert resp.status_code == 200
        body = resp.json()
        assert [i["sku"] for i in body["recommendedItems"]] == ["CMD-STRIPS-MED"]
        assert body["recommendedItems"][0]["whyItWorks"] == "Holds 12 lbs"
        assert body["metadata"]["inventorySearched"] is True
        assert body["metadata"]["fallbackReason"] is None
        assert body["conversationId"]

    def test_constraints_in_camel_case(self, client, provider):
        resp = client.post(
            "/assistant/ask",
            json={"transcript": "hang a picture", "constraints": {"noDrilling": True, "maxBudget": 20}},
            headers=HEADERS,
        )
        assert resp.status_code == 200
        assert "DRYWALL-ANCHOR-50" not in provider.contexts[0].allowed_skus

    def test_store_header_required(self, client):
        resp = client.post("/assistant/ask", json={"transcript": "hang a picture"})
        assert resp.status_code == 400

    def test_empty_transcript_rejected(self, client):
        resp = client.post("/assistant/ask", json={"transcript": ""}, headers=HEADERS)
        assert resp.status_code == 422

    def test_user_defaults_to_anonymous(self, client, turn_log_sink):
        client.post("/assistant/ask", json={"transcript": "hang a picture"}, headers={"X-Store-Id": STORE_ID})
        assert turn_log_sink.logs[0].user_id == "anonymous"


class TestAskAudio:

    def test_transcribed_turn(self, client):
        resp = client.post(
            "/assistant/ask-audio",
            files={"audio": ("q.webm", b"\x1a\x45\xdf\xa3fake", "audio/webm")},
            headers=HEADERS,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["transcript"] == "hang a picture"
        assert body["transcriptionMetadata"]["confidence"] == 0.95
        assert [i["sku"] for i in body["recommendedItems"]] == ["CMD-STRIPS-MED"]

    def test_transcription_failure_is_502(self, client, transcriber):
        transcriber.error = TranscriptionError("whisper down")
        resp = client.post(
            "/assistant/ask-audio", files={"audio": ("q.webm", b"data", "audio/webm")}, headers=HEADERS
        )
        assert resp.status_code == 502

    def test_empty_upload_is_400(self, client):
        resp = client.post(
            "/assistant/ask-audio", files={"audio": ("q.webm", b"", "audio/webm")}, headers=HEADERS
        )
        assert resp.status_code == 400

    def test_bad_constraints_json_is_422(self, client):
        resp = client.post(
            "/assistant/ask-audio",
            files={"audio": ("q.webm", b"data", "audio/webm")},
            data={"constraints": "{not json"},
            headers=HEADERS,
        )
        assert resp.status_code == 422


class TestConversations:

    def test_fetch_after_turn(self, client):
        conv_id = client.post("/assistant/ask", json={"transcript": "hang a picture"}, headers=HEADERS).json()["conversationId"]
        resp = client.get(f"/assistant/conversations/{conv_id}", headers=HEADERS)
        assert resp.status_code == 200
        body = resp.json()
        assert [m["role"] for m in body["messages"]] == ["user", "assistant"]
        assert body["recommendedSkus"] == ["CMD-STRIPS-MED"]

    def test_other_store_gets_404(self, client):
        conv_id = client.post("/assistant/ask", json={"transcript": "hang a picture"}, headers=HEADERS).json()["conversationId"]
        resp = client.get(f"/assistant/conversations/{conv_id}", headers={"X-Store-Id": "store-2"})
        assert resp.status_code == 404


class TestInventoryAndAnalytics:

    def test_search_with_constraints(self, client):
        resp = client.get("/inventory/search", params={"q": "hang a picture", "noDrilling": "true"}, headers=HEADERS)
        assert resp.status_code == 200
        body = resp.json()
        skus = [i["sku"] for i in body["items"]]
        assert "CMD-STRIPS-MED" in skus
        assert "DRYWALL-ANCHOR-50" not in skus
        assert body["count"] == len(skus)

    def test_search_limit_bounds(self, client):
        assert client.get("/inventory/search", params={"limit": 0}, headers=HEADERS).status_code == 422
        assert client.get("/inventory/search", params={"limit": 101}, headers=HEADERS).status_code == 422

    def test_analytics_reflect_turns(self, client):
        client.post("/assistant/ask", json={"transcript": "hang a picture"}, headers=HEADERS)
        overview = client.get("/analytics/overview", headers=HEADERS).json()
        assert overview["totalConversations"] == 1
        recent = client.get("/analytics/conversations", headers=HEADERS).json()
        assert recent["count"] == 1
        assert recent["items"][0]["invalid_skus"] == ["FAKE-SKU"]


class TestCarts:

    def test_add_then_current(self, client):
        resp = client.post("/carts/add", json={"sku": "CMD-STRIPS-MED", "quantity": 2}, headers=HEADERS)
        assert resp.status_code == 200
        added = resp.json()
        assert added["items"][0]["location"] == "Aisle A3, Bin 12"
        assert added["total"] == 17.98

        current = client.get("/carts/current", headers=HEADERS).json()
        assert current["id"] == added["id"]
        assert [(i["sku"], i["quantity"]) for i in current["items"]] == [("CMD-STRIPS-MED", 2)]

    def test_unknown_sku_is_404(self, client):
        resp = client.post("/carts/add", json={"sku": "FAKE-SKU"}, headers=HEADERS)
        assert resp.status_code == 404
        assert "FAKE-SKU" in resp.json()["detail"]

    def test_cart_from_suggestion_newest_wins(self, client):
        client.post("/carts", json={"items": [{"sku": "CMD-STRIPS-SM", "quantity": 1}]}, headers=HEADERS)
        created = client.post(
            "/carts",
            json={"items": [{"sku": "MONKEY-HOOK-10", "quantity": 1}], "conversationId": "c-9"},
            headers=HEADERS,
        ).json()
        assert created["conversationId"] == "c-9"
        assert client.get("/carts/current", headers=HEADERS).json()["id"] == created["id"]
        listed = client.get("/carts", headers=HEADERS).json()
        assert [c["id"] for c in listed][0] == created["id"]
        assert listed[0]["itemCount"] == 1

    def test_zero_quantity_create_is_422(self, client):
        resp = client.post("/carts", json={"items": [{"sku": "CMD-STRIPS-SM", "quantity": 0}]}, headers=HEADERS)
        assert resp.status_code == 422

    def test_remove_and_clear(self, client):
        client.post("/carts/add", json={"sku": "CMD-STRIPS-SM"}, headers=HEADERS)
        client.post("/carts/add", json={"sku": "MONKEY-HOOK-10"}, headers=HEADERS)
        removed = client.delete("/carts/remove/CMD-STRIPS-SM", headers=HEADERS).json()
        assert [i["sku"] for i in removed["items"]] == ["MONKEY-HOOK-10"]
        cleared = client.delete("/carts/clear", headers=HEADERS).json()
        assert cleared["items"] == [] and cleared["total"] == 0

    def test_clear_without_cart_is_404(self, client):
        assert client.delete("/carts/clear", headers=HEADERS).status_code == 404

    def test_patch_and_store_scoping(self, client):
        cart = client.post("/carts/add", json={"sku": "CMD-STRIPS-SM"}, headers=HEADERS).json()
        patched = client.patch(
            f"/carts/{cart['id']}", json={"items": [{"sku": "CMD-STRIPS-SM", "quantity": 4}]}, headers=HEADERS,
        ).json()
        assert patched["items"][0]["quantity"] == 4

        other = {"X-Store-Id": "store-2"}
        assert client.get(f"/carts/{cart['id']}", headers=other).status_code == 403
        assert client.get("/carts/missing", headers=HEADERS).status_code == 404


class TestStorePolicies:

    def test_patch_merges_and_next_turn_sees_it(self, client, store_repo):
        resp = client.patch(
            f"/stores/{STORE_ID}/policies",
            json={"policies": {"safetyDisclaimers": False, "maxBudgetDefault": 20}},
            headers=HEADERS,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["safetyDisclaimers"] is False
        assert body["maxBudgetDefault"] == 20
        assert body["preferNoDamage"] is False
        assert store_repo.updates == [{"safetyDisclaimers": False, "maxBudgetDefault": 20}]

        turn = client.post(
            "/assistant/ask", json={"transcript": "hang a picture near electrical outlet"}, headers=HEADERS,
        ).json()
        assert turn["safetyNotes"] == []

    def test_null_flag_is_ignored(self, client, store_repo):
        client.patch(f"/stores/{STORE_ID}/policies", json={"policies": {"preferNoTools": None}}, headers=HEADERS)
        assert store_repo.updates == [{}]

    def test_unknown_policy_key_is_422(self, client):
        resp = client.patch(f"/stores/{STORE_ID}/policies", json={"policies": {"dropTables": True}}, headers=HEADERS)
        assert resp.status_code == 422

    def test_other_store_is_403(self, client):
        assert client.patch("/stores/store-2/policies", json={"policies": {}}, headers=HEADERS).status_code == 403
        assert client.get("/stores/store-2/policies", headers=HEADERS).status_code == 403

    def test_unknown_store_is_404(self, client):
        headers = {"X-Store-Id": "store-9"}
        resp = client.patch("/stores/store-9/policies", json={"policies": {"preferNoDamage": True}}, headers=headers)
        assert resp.status_code == 404


def test_fallback_message_over_http(client, provider):
    provider.responses = ["no json at all"]
    body = client.post("/assistant/ask", json={"transcript": "hang a picture"}, headers=HEADERS).json()
    assert body["assistantMessage"] == FALLBACK_MESSAGES["provider_error"]
    assert body["recommendedItems"] == []


def test_health_without_database(client):
    body = client.get("/health").json()
    assert body["status"] == "degraded"
    assert body["checks"]["mongodb"].startswith("error")
    assert body["checks"]["redis"] == "skipped"
