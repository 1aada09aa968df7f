from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional

from app.domain.services.constants import ATTR_REQUIRES_DRILL, TAG_DRILLING_REQUIRED

class InventoryItem(BaseModel):
    sku: str
    name: str
    description: str = ""
    category: str = "other"
    price: float = Field(ge=0)
    stock: int = Field(ge=0)
    aisle: str = ""
    bin: Optional[str] = None
    tags: List[str] = []
    attributes: Dict[str, Any] = {}
    store_id: Optional[str] = None

    model_config = {"frozen": True}  # immuable = safe

    @property
    def location(self) -> str:
        return f"Aisle {self.aisle}, Bin {self.bin}" if self.bin else f"Aisle {self.aisle}"

    @property
    def requires_drill(self) -> bool:
        return TAG_DRILLING_REQUIRED in self.tags or self.attributes.get(ATTR_REQUIRES_DRILL) is True


class Constraints(BaseModel):
    """
    Turn-scoped search constraints. `None` means "not specified by the caller",
    which is different from an explicit False (see filters.merge_constraints).
    """
    no_damage: Optional[bool] = None
    no_tools: Optional[bool] = None
    no_drilling: Optional[bool] = None
    min_weight: Optional[float] = Field(default=None, ge=0)
    max_weight: Optional[float] = Field(default=None, ge=0)
    max_budget: Optional[float] = Field(default=None, ge=0)
    surface_type: Optional[str] = None
    in_stock_only: bool = True

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def active(self) -> Dict[str, Any]:
        """Only the constraints the turn actually carries (for logs and analytics)."""
        return self.model_dump(exclude_none=True, exclude={"in_stock_only"}, by_alias=True)


class StorePolicy(BaseModel):
    prefer_no_damage: bool = False
    prefer_no_tools: bool = False
    suggest_drilling_first: bool = False
    safety_disclaimers: bool = True
    max_budget_default: Optional[float] = Field(default=None, ge=0)
    custom_instructions: Optional[str] = None

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class InventoryQuery(BaseModel):
    """
    Repository-level query: text terms (OR'ed across name/description/category
    substring and exact tag) restricted to a store and to stock > 0.
    Empty `terms` means browse.
    """
    terms: List[str] = []
    in_stock_only: bool = True
    limit: int = Field(default=50, ge=1)

    model_config = {"frozen": True}
