import re
import logging
from typing import List, Optional
from app.domain.models.inventory import Constraints, InventoryItem, InventoryQuery
from app.domain.services.constants import (
    MIN_TOKEN_LENGTH,
    RETRIEVAL_BREADTH,
    RETRIEVAL_LIMIT,
    STOP_WORDS,
    SYNONYMS,
)
from app.domain.services.filters import passes_constraints

logger = logging.getLogger(__name__)

_PUNCT_RE = re.compile(r"[^\w\s]")

def tokenize(utterance: str) -> List[str]:
    """Lowercase, strip punctuation, split on whitespace, drop short tokens and stop words."""
    words = _PUNCT_RE.sub("", (utterance or "").lower()).split()
    return [w for w in words if len(w) >= MIN_TOKEN_LENGTH and w not in STOP_WORDS]

def expand_terms(tokens: List[str]) -> List[str]:
    """Union of the tokens and their synonyms, first-seen order, no duplicates."""
    out: List[str] = []
    seen = set()
    for tok in tokens:
        for term in (tok, *SYNONYMS.get(tok, ())):
            if term not in seen:
                seen.add(term)
                out.append(term)
    return out

async def retrieve_candidates(
    inventory_repo,
    store_id: str,
    utterance: str,
    constraints: Optional[Constraints] = None,
    *,
    limit: int = RETRIEVAL_LIMIT,
    breadth: int = RETRIEVAL_BREADTH,
) -> List[InventoryItem]:
    """
    Term-based candidate retrieval for one turn.
      1) tokenize + synonym expansion (no usable tokens => browse, no text filter)
      2) repository query (store, stock > 0, text terms), capped at `breadth`
      3) attribute post-filters in fixed order (hard exclusions)
      4) truncate to `limit`
    An empty list is a valid outcome and is returned as such.
    """
    constraints = constraints or Constraints()
    tokens = tokenize(utterance)
    terms = expand_terms(tokens)
    logger.debug(f"Search terms store_id={store_id}: tokens={tokens} expanded={terms}")

    query = InventoryQuery(terms=terms, in_stock_only=True, limit=breadth)
    rows: List[InventoryItem] = await inventory_repo.find_by_store_with_filters(store_id, query)

    kept = [it for it in rows if passes_constraints(it, constraints)]
    logger.info(
        f"Retrieved candidates store_id={store_id}: fetched={len(rows)} kept={len(kept)} "
        f"browse={not terms} constraints={constraints.active()}"
    )

    # Dedupe by SKU so the allowed set is a proper set
    out: List[InventoryItem] = []
    seen = set()
    for it in kept:
        if it.sku in seen:
            continue
        seen.add(it.sku)
        out.append(it)
        if len(out) >= limit:
            break
    return out
