"""
Reasoning context assembly.

Pure functions: the same utterance, history, candidates, policy and constraints
always render the same ReasoningContext. Nothing here touches I/O.
"""
from typing import Any, Iterable, List, Optional, Sequence

from app.domain.models.inventory import Constraints, InventoryItem, StorePolicy
from app.domain.models.reasoning import HistoryMessage, ReasoningContext
from app.domain.services.constants import ATTR_SURFACE_TYPES, ATTR_WEIGHT_CAPACITY
from app.domain.services.prompts import (
    NO_INVENTORY_SECTION,
    SYSTEM_PROMPT,
    closing_reminder,
    inventory_header,
)

def _fmt_money(v: float) -> str:
    return f"${v:.2f}"

def _fmt_number(v: float) -> str:
    return f"{v:g}"

def render_item(item: InventoryItem) -> str:
    attrs = item.attributes or {}
    surfaces = attrs.get(ATTR_SURFACE_TYPES)
    if isinstance(surfaces, (list, tuple)):
        surfaces = ", ".join(str(s) for s in surfaces)
    capacity = attrs.get(ATTR_WEIGHT_CAPACITY)
    return "\n".join([
        f"- SKU: {item.sku}",
        f"  Name: {item.name}",
        f"  Price: {_fmt_money(item.price)}",
        f"  Stock: {item.stock} units",
        f"  Location: {item.location}",
        f"  Category: {item.category}",
        f"  Tags: {', '.join(item.tags)}",
        f"  Weight Capacity: {capacity if capacity not in (None, '') else 'N/A'} lbs",
        f"  Surfaces: {surfaces or 'various'}",
        f"  Requires Drill: {'Yes' if item.requires_drill else 'No'}",
        f"  Description: {item.description}",
    ])

def render_inventory(items: Sequence[InventoryItem], allowed_skus: Sequence[str]) -> str:
    if not items:
        return NO_INVENTORY_SECTION
    listing = "\n\n".join(render_item(it) for it in items)
    return f"{inventory_header(allowed_skus)}\n\n{listing}"

def policy_instructions(policy: StorePolicy) -> List[str]:
    out: List[str] = []
    if policy.prefer_no_damage:
        out.append("Prefer damage-free/rental-friendly options")
    if policy.prefer_no_tools:
        out.append("Prefer no-tools-required options")
    if not policy.suggest_drilling_first:
        out.append("Only suggest drilling as a last resort")
    if policy.safety_disclaimers:
        out.append("Include safety disclaimers for electrical/plumbing tasks")
    if policy.custom_instructions:
        out.append(policy.custom_instructions)
    return out

def constraint_instructions(c: Constraints) -> List[str]:
    out: List[str] = []
    if c.no_damage:
        out.append("Customer wants NO DAMAGE / rental-friendly options")
    if c.no_tools:
        out.append("Customer wants NO TOOLS required")
    if c.no_drilling:
        out.append("Customer wants NO DRILLING")
    if c.min_weight is not None:
        out.append(f"Item weight capacity must support at least {_fmt_number(c.min_weight)} lbs")
    if c.max_weight is not None:
        out.append(f"Item being hung or mounted weighs up to {_fmt_number(c.max_weight)} lbs")
    if c.surface_type:
        out.append(f"Must work on: {c.surface_type}")
    if c.max_budget is not None:
        out.append(f"Budget: Under {_fmt_money(c.max_budget)}")
    return out

def _section(title: str, lines: List[str], empty: str) -> str:
    if not lines:
        return f"{title}: {empty}"
    return f"{title}:\n" + "\n".join(f"- {ln}" for ln in lines)

def _history(history: Optional[Iterable[Any]], max_messages: Optional[int]) -> List[HistoryMessage]:
    msgs: List[HistoryMessage] = []
    for m in history or []:
        role = getattr(m, "role", None) or (m.get("role") if isinstance(m, dict) else None)
        content = getattr(m, "content", None) or (m.get("content") if isinstance(m, dict) else None)
        if role in ("user", "assistant") and content:
            msgs.append(HistoryMessage(role=role, content=content))
    if max_messages is not None:
        msgs = msgs[-max_messages:] if max_messages > 0 else []
    return msgs

def assemble(
    utterance: str,
    history: Optional[Iterable[Any]],
    allowed_set: Sequence[InventoryItem],
    policy: StorePolicy,
    constraints: Constraints,
    *,
    max_history: Optional[int] = None,
) -> ReasoningContext:
    """
    Build the provider-agnostic context for one turn. The allow-list is spelled
    out twice in the user prompt (above the inventory and after the question).
    """
    allowed_skus = tuple(it.sku for it in allowed_set)
    inventory = render_inventory(allowed_set, allowed_skus)
    policies = policy_instructions(policy)
    constraint_lines = constraint_instructions(constraints)

    user_prompt = "\n\n".join([
        inventory,
        _section("STORE POLICIES", policies, "Standard recommendations."),
        _section("CUSTOMER CONSTRAINTS", constraint_lines, "None specified."),
        f'CUSTOMER QUESTION:\n"{utterance}"',
        closing_reminder(allowed_skus),
    ])

    return ReasoningContext(
        system_prompt=SYSTEM_PROMPT,
        transcript=utterance,
        history=_history(history, max_history),
        allowed_skus=allowed_skus,
        inventory_section=inventory,
        policy_instructions=policies,
        constraint_instructions=constraint_lines,
        user_prompt=user_prompt,
    )
