from typing import Optional
from app.domain.models.inventory import Constraints, InventoryItem, StorePolicy
from app.domain.services.constants import (
    ATTR_SURFACE_TYPES,
    ATTR_WEIGHT_CAPACITY,
    TAG_NO_DAMAGE,
    TAG_NO_TOOLS,
)

def _as_number(v) -> Optional[float]:
    """Numeric attribute value or None (bools and junk are treated as missing)."""
    if isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        return float(v)
    try:
        return float(v)
    except (TypeError, ValueError):
        return None

def _as_list(v) -> list:
    if v is None:
        return []
    if isinstance(v, (list, tuple, set)):
        return list(v)
    return [v]

def merge_constraints(requested: Optional[Constraints], policy: StorePolicy) -> Constraints:
    """
    Combine caller constraints with store policy defaults.
    - Anything the caller set explicitly is kept as-is (including explicit False).
    - Only `max_budget_default` is a real default; prefer_* flags are prompt
      preferences and never become hard filters.
    """
    requested = requested or Constraints()
    if requested.max_budget is None and policy.max_budget_default is not None:
        return requested.model_copy(update={"max_budget": policy.max_budget_default})
    return requested

# ---------- Post-filters (fixed order, each one a hard exclusion) ----------

def within_budget(item: InventoryItem, c: Constraints) -> bool:
    return c.max_budget is None or item.price <= c.max_budget

def drill_free(item: InventoryItem, c: Constraints) -> bool:
    if c.no_damage or c.no_drilling:
        return not item.requires_drill
    return True

def tool_free(item: InventoryItem, c: Constraints) -> bool:
    if c.no_tools:
        return TAG_NO_TOOLS in item.tags or TAG_NO_DAMAGE in item.tags
    return True

def holds_weight(item: InventoryItem, c: Constraints) -> bool:
    # Unknown capacity is not disqualifying
    if c.min_weight is None:
        return True
    capacity = _as_number(item.attributes.get(ATTR_WEIGHT_CAPACITY))
    return capacity is None or capacity >= c.min_weight

def fits_surface(item: InventoryItem, c: Constraints) -> bool:
    if not c.surface_type:
        return True
    surfaces = _as_list(item.attributes.get(ATTR_SURFACE_TYPES))
    if not surfaces:
        return True
    wanted = c.surface_type.lower()
    return any(wanted in str(s).lower() for s in surfaces)

POST_FILTERS = (within_budget, drill_free, tool_free, holds_weight, fits_surface)

def passes_constraints(item: InventoryItem, c: Constraints) -> bool:
    if c.in_stock_only and item.stock <= 0:
        return False
    return all(f(item, c) for f in POST_FILTERS)
