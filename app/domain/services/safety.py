from typing import List, Sequence
from app.domain.models.inventory import StorePolicy
from app.domain.services.constants import SAFETY_DISCLAIMER, SAFETY_KEYWORDS

def annotate(utterance: str, policy: StorePolicy) -> List[str]:
    """One fixed disclaimer when the store wants them and a hazard keyword shows up."""
    if not policy.safety_disclaimers:
        return []
    lower = (utterance or "").lower()
    if any(k in lower for k in SAFETY_KEYWORDS):
        return [SAFETY_DISCLAIMER]
    return []

def merge_safety_notes(existing: Sequence[str], extra: Sequence[str]) -> List[str]:
    # append-only; a note already present is not repeated
    out = list(existing)
    for note in extra:
        if note not in out:
            out.append(note)
    return out
