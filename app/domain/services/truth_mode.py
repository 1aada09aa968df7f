"""
Truth Mode: keep reasoning output grounded in the turn's allowed set.

validate_truth_mode is a pure, exact set-membership filter. No fuzzy matching:
a SKU is either in the allowed set verbatim or it is dropped.
"""
from typing import Iterable, List

from app.domain.models.reasoning import FallbackReason, ReasoningOutput, ValidationResult
from app.domain.services.constants import FALLBACK_MESSAGES, NO_INVENTORY_FOLLOW_UPS


def validate_truth_mode(output: ReasoningOutput, allowed_skus: Iterable[str]) -> ValidationResult:
    allowed = frozenset(allowed_skus)
    invalid: List[str] = []

    def _keep(sku: str) -> bool:
        if sku in allowed:
            return True
        if sku not in invalid:
            invalid.append(sku)
        return False

    recommended = [s for s in output.recommended_skus if _keep(s)]
    add_ons = [s for s in output.add_on_skus if _keep(s)]
    cart = [c for c in output.cart if _keep(c.sku)]
    # reasoning keys are not counted as violations, just dropped
    reasoning = {k: v for k, v in output.reasoning.items() if k in allowed}

    validated = output.model_copy(update={
        "recommended_skus": recommended,
        "add_on_skus": add_ons,
        "cart": cart,
        "reasoning": reasoning,
    })
    return ValidationResult(is_valid=not invalid, invalid_skus=invalid, validated_output=validated)


def needs_escalation(result: ValidationResult) -> bool:
    """Invalid output with nothing recommendable left is replaced wholesale."""
    out = result.validated_output
    return not result.is_valid and not out.recommended_skus and not out.add_on_skus


def safe_fallback(reason: FallbackReason) -> ReasoningOutput:
    return ReasoningOutput(
        assistant_message=FALLBACK_MESSAGES[reason],
        follow_up_questions=list(NO_INVENTORY_FOLLOW_UPS) if reason == "no_inventory" else [],
        recommended_skus=[],
        add_on_skus=[],
        cart=[],
        safety_notes=[],
        reasoning={},
        confidence=0.0,
        fallback_reason=reason,
    )
