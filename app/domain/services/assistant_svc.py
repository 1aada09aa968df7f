import time
import asyncio
import logging
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from app.domain.models.assistant import AssistantResponse, CartLine, ProductCard, TurnMetadata, TurnRequest
from app.domain.models.conversation import Conversation, ConversationMessage, TurnLog
from app.domain.models.inventory import Constraints, InventoryItem
from app.domain.models.reasoning import CartEntry, ReasoningContext, ReasoningOutput
from app.domain.services.constants import (
    DEFAULT_INTENT,
    INTENT_BUCKETS,
    MAX_ADD_ONS,
    MAX_RECOMMENDED,
    RETRIEVAL_BREADTH,
    RETRIEVAL_LIMIT,
)
from app.domain.services.context_svc import assemble
from app.domain.services.filters import merge_constraints
from app.domain.services.retrieval import retrieve_candidates
from app.domain.services.safety import annotate, merge_safety_notes
from app.domain.services.truth_mode import needs_escalation, safe_fallback, validate_truth_mode

logger = logging.getLogger(__name__)


class TurnState(str, Enum):
    RETRIEVING = "retrieving"
    CONTEXT_BUILT = "context_built"
    REASONING = "reasoning"
    VALIDATING = "validating"
    ANNOTATING = "annotating"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


def extract_intent(transcript: str) -> str:
    """Coarse analytics tag from fixed keyword buckets (first bucket that matches wins)."""
    lower = (transcript or "").lower()
    for intent, keywords in INTENT_BUCKETS:
        if any(k in lower for k in keywords):
            return intent
    return DEFAULT_INTENT


def hydrate_cards(
    skus: Iterable[str],
    by_sku: Mapping[str, InventoryItem],
    reasoning: Mapping[str, str],
    cap: int,
) -> List[ProductCard]:
    """Turn validated SKUs back into product cards. SKUs that do not resolve are dropped."""
    cards: List[ProductCard] = []
    for sku in skus:
        item = by_sku.get(sku)
        if item is None or any(c.sku == sku for c in cards):
            continue
        cards.append(ProductCard(
            sku=item.sku,
            name=item.name,
            price=item.price,
            stock=item.stock,
            location=item.location,
            why_it_works=reasoning.get(sku) or item.description,
            attributes=dict(item.attributes),
        ))
        if len(cards) >= cap:
            break
    return cards


def cart_view(cart: Sequence[CartEntry], by_sku: Mapping[str, InventoryItem]) -> List[CartLine]:
    return [
        CartLine(sku=c.sku, name=by_sku[c.sku].name, price=by_sku[c.sku].price,
                 quantity=c.qty, location=by_sku[c.sku].location)
        for c in cart if c.sku in by_sku
    ]


class TurnOrchestrator:
    """
    Runs one assistant turn end to end:

      RETRIEVING -> CONTEXT_BUILT -> REASONING -> VALIDATING -> ANNOTATING -> PERSISTING -> DONE
                               (any state) -> FAILED  => system_error fallback

    Collaborators are injected (repositories, analytics sink, reasoning provider),
    so one instance serves every request for the life of the process.
    `handle_turn` never raises.
    """

    def __init__(
        self,
        *,
        inventory_repo,
        store_repo,
        conversation_repo,
        analytics_sink,
        provider,
        llm_timeout_s: float = 30,
        repo_timeout_s: float = 5,
        retrieval_limit: int = RETRIEVAL_LIMIT,
        retrieval_breadth: int = RETRIEVAL_BREADTH,
        history_max_messages: Optional[int] = 10,
    ):
        self.inventory_repo = inventory_repo
        self.store_repo = store_repo
        self.conversation_repo = conversation_repo
        self.analytics_sink = analytics_sink
        self.provider = provider
        self.llm_timeout_s = llm_timeout_s
        self.repo_timeout_s = repo_timeout_s
        self.retrieval_limit = retrieval_limit
        self.retrieval_breadth = retrieval_breadth
        self.history_max_messages = history_max_messages

    # ---- guarded collaborator calls -----------------------------------------

    async def _repo(self, aw):
        # repository timeouts surface as errors (=> system_error)
        return await asyncio.wait_for(aw, timeout=self.repo_timeout_s)

    async def _reason(self, context: ReasoningContext) -> Tuple[ReasoningOutput, bool]:
        """Provider output, and whether the provider failed (its own fallback, a timeout or an error)."""
        try:
            output = await asyncio.wait_for(self.provider.generate(context), timeout=self.llm_timeout_s)
            return output, output.fallback_reason == "provider_error"
        except asyncio.TimeoutError:
            logger.warning(f"Reasoning provider timed out after {self.llm_timeout_s}s")
        except Exception as e:
            logger.warning(f"Reasoning provider failed: {e}")
        return safe_fallback("provider_error"), True

    # ---- public API ---------------------------------------------------------

    async def handle_turn(self, request: TurnRequest, *, store_id: str, user_id: str) -> AssistantResponse:
        t0 = time.perf_counter()
        state = TurnState.RETRIEVING
        conversation: Optional[Conversation] = None
        logger.info(f"Turn start store_id={store_id} user_id={user_id} conversation_id={request.conversation_id}")

        try:
            # ---- 1) Conversation + policy ---------------------------------------
            conversation = await self._repo(
                self.conversation_repo.get_or_create(request.conversation_id, store_id, user_id)
            )
            policy = await self._repo(self.store_repo.get_policy(store_id))

            # ---- 2) Retrieval (allowed set) -------------------------------------
            constraints: Constraints = merge_constraints(request.constraints, policy)
            candidates: List[InventoryItem] = await self._repo(retrieve_candidates(
                self.inventory_repo,
                store_id,
                request.transcript,
                constraints,
                limit=self.retrieval_limit,
                breadth=self.retrieval_breadth,
            ))
            allowed_skus = tuple(it.sku for it in candidates)
            by_sku: Dict[str, InventoryItem] = {it.sku: it for it in candidates}
            invalid_skus: List[str] = []
            fallback_reason: Optional[str] = None

            if not candidates:
                # ---- 3) Nothing in stock matches: never ask the provider ----------
                logger.info(f"No inventory match store_id={store_id}, using no_inventory fallback")
                output = safe_fallback("no_inventory")
                fallback_reason = "no_inventory"
            else:
                # ---- 4) Context -> provider -> Truth Mode ------------------------
                context = assemble(
                    request.transcript,
                    conversation.messages,
                    candidates,
                    policy,
                    constraints,
                    max_history=self.history_max_messages,
                )
                state = TurnState.CONTEXT_BUILT
                logger.debug(f"Context built allowed_skus={list(allowed_skus)} prompt_chars={len(context.user_prompt)}")

                state = TurnState.REASONING
                output, provider_failed = await self._reason(context)
                if provider_failed:
                    fallback_reason = "provider_error"

                state = TurnState.VALIDATING
                result = validate_truth_mode(output, allowed_skus)
                output = result.validated_output
                if not result.is_valid:
                    invalid_skus = result.invalid_skus
                    logger.warning(f"Truth Mode violation store_id={store_id} invalid_skus={invalid_skus}")
                    if needs_escalation(result):
                        output = safe_fallback("validation_failed")
                        fallback_reason = "validation_failed"

            # ---- 5) Safety notes ----------------------------------------------------
            state = TurnState.ANNOTATING
            notes = merge_safety_notes(output.safety_notes, annotate(request.transcript, policy))
            output = output.model_copy(update={"safety_notes": notes})

            # ---- 6) Product cards -------------------------------------------------
            recommended = hydrate_cards(output.recommended_skus, by_sku, output.reasoning, MAX_RECOMMENDED)
            add_ons = hydrate_cards(output.add_on_skus, by_sku, output.reasoning, MAX_ADD_ONS)
            cart = cart_view(output.cart, by_sku)

            # ---- 7) Analytics -----------------------------------------------------
            # conversation is written last: it only holds answers the caller received
            state = TurnState.PERSISTING
            shown_skus = [c.sku for c in recommended] + [c.sku for c in add_ons]
            latency_ms = int((time.perf_counter() - t0) * 1000)
            await self._repo(self.analytics_sink.record_turn(TurnLog(
                conversation_id=conversation.id,
                store_id=store_id,
                user_id=user_id,
                user_message=request.transcript,
                assistant_message=output.assistant_message,
                recommended_skus=[c.sku for c in recommended],
                latency_ms=latency_ms,
                intent=extract_intent(request.transcript),
                constraints=constraints.active(),
                invalid_skus=invalid_skus,
                fallback_reason=fallback_reason,
                items_considered=len(candidates),
            )))

            # ---- 8) Conversation --------------------------------------------------
            await self._repo(self.conversation_repo.append_turn(
                conversation.id,
                [
                    ConversationMessage(role="user", content=request.transcript),
                    ConversationMessage(role="assistant", content=output.assistant_message),
                ],
                shown_skus,
            ))

            # ---- 9) Response ------------------------------------------------------
            state = TurnState.DONE
            logger.info(
                f"Turn done conversation_id={conversation.id} candidates={len(candidates)} "
                f"recommended={len(recommended)} add_ons={len(add_ons)} fallback={fallback_reason} "
                f"latency_ms={latency_ms}"
            )
            return AssistantResponse(
                conversation_id=conversation.id,
                assistant_message=output.assistant_message,
                follow_up_questions=list(output.follow_up_questions),
                recommended_items=recommended,
                add_on_items=add_ons,
                cart_suggestion=cart,
                safety_notes=list(output.safety_notes),
                confidence=output.confidence,
                metadata=TurnMetadata(
                    processing_time_ms=latency_ms,
                    inventory_searched=True,
                    items_considered=len(candidates),
                    fallback_reason=fallback_reason,
                ),
            )
        except Exception as e:
            logger.exception(f"Turn failed in state={state.value} store_id={store_id}: {e}")
            return await self._fail(request, store_id, user_id, conversation, state, e, t0)

    async def _fail(
        self,
        request: TurnRequest,
        store_id: str,
        user_id: str,
        conversation: Optional[Conversation],
        failed_state: TurnState,
        error: Exception,
        t0: float,
    ) -> AssistantResponse:
        fallback = safe_fallback("system_error")
        conversation_id = conversation.id if conversation else request.conversation_id
        latency_ms = int((time.perf_counter() - t0) * 1000)
        try:
            await self._repo(self.analytics_sink.record_turn(TurnLog(
                conversation_id=conversation_id,
                store_id=store_id,
                user_id=user_id,
                user_message=request.transcript,
                assistant_message=fallback.assistant_message,
                recommended_skus=[],
                latency_ms=latency_ms,
                intent=extract_intent(request.transcript),
                constraints=request.constraints.active() if request.constraints else {},
                fallback_reason="system_error",
                metadata={"error": str(error) or type(error).__name__, "failed_state": failed_state.value},
            )))
        except Exception as log_err:
            logger.error(f"Could not record failed turn store_id={store_id}: {log_err}")

        if conversation is not None:
            try:
                await self._repo(self.conversation_repo.append_turn(
                    conversation.id,
                    [
                        ConversationMessage(role="user", content=request.transcript),
                        ConversationMessage(role="assistant", content=fallback.assistant_message),
                    ],
                    [],
                ))
            except Exception as conv_err:
                logger.error(f"Could not store failed turn conversation_id={conversation.id}: {conv_err}")

        # error details stay in logs/analytics; the caller only sees the fallback
        return AssistantResponse(
            conversation_id=conversation_id,
            assistant_message=fallback.assistant_message,
            follow_up_questions=[],
            recommended_items=[],
            add_on_items=[],
            cart_suggestion=[],
            safety_notes=[],
            confidence=0.0,
            metadata=TurnMetadata(
                processing_time_ms=latency_ms,
                inventory_searched=False,
                items_considered=0,
                fallback_reason="system_error",
            ),
        )
