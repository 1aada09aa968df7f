# api/v1/schemas/store.py
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Dict, Optional

# policy keys a null value clears; for the flags a null is ignored
_CLEARABLE = frozenset({"max_budget_default", "custom_instructions"})


class StorePolicyPatch(BaseModel):
    """Partial policy update: only the keys sent are changed."""
    prefer_no_damage: Optional[bool] = None
    prefer_no_tools: Optional[bool] = None
    suggest_drilling_first: Optional[bool] = None
    safety_disclaimers: Optional[bool] = None
    max_budget_default: Optional[float] = Field(default=None, ge=0)
    custom_instructions: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    def changes(self) -> Dict[str, Any]:
        """Sent keys, camelCased the way they are stored."""
        sent = self.model_dump(exclude_unset=True)
        return {to_camel(k): v for k, v in sent.items() if v is not None or k in _CLEARABLE}

class PolicyUpdateIn(BaseModel):
    policies: StorePolicyPatch
