# ============================================================================
#  models.py — Pydantic Data Models
#  Version: 1.3.0
#  CHANGES: Lenient feed coercion for pictures, attributes and stock counts
# ============================================================================
import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_COLOR = "Default"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProductAttributes(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    device_manufacturer: Optional[str] = Field(None, alias="deviceManufacturer")
    device_model: Optional[str] = Field(None, alias="deviceModel")
    brand: Optional[str] = None
    category: Optional[str] = None
    color: str = DEFAULT_COLOR

    @field_validator("device_manufacturer", "device_model", "brand", "category", mode="before")
    @classmethod
    def _as_text(cls, value):
        return None if value is None else str(value)

    @field_validator("color", mode="before")
    @classmethod
    def _default_color(cls, value):
        return str(value) if value else DEFAULT_COLOR


class SourceProduct(BaseModel):
    """Normalized supplier product.

    sku, name and price_incl may be missing or malformed here; the
    reconciler's validation gate rejects such products.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    sku: Optional[str] = None
    name: Optional[str] = None
    description: str = ""
    price_incl: Any = Field(None, alias="priceIncl")
    price_excl: Any = Field(None, alias="priceExcl")
    images: List[str] = Field(default_factory=list)
    attributes: ProductAttributes = Field(default_factory=ProductAttributes)
    features: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("sku", "name", mode="before")
    @classmethod
    def _as_text(cls, value):
        return None if value is None else str(value)

    @field_validator("description", mode="before")
    @classmethod
    def _empty_description(cls, value):
        return str(value) if value else ""

    @field_validator("images", mode="before")
    @classmethod
    def _image_list(cls, value):
        # the feed sends nulls and the occasional bare string in Pictures
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)):
            return []
        return [url for url in value if isinstance(url, str) and url]

    @field_validator("attributes", "features", mode="before")
    @classmethod
    def _empty_mapping(cls, value):
        return value or {}

    @property
    def color(self) -> str:
        return self.attributes.color

    @property
    def vendor(self) -> str:
        return self.attributes.brand or "Unknown"

    @property
    def product_type(self) -> str:
        return self.attributes.category or "Other"


class StockLevel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    sku: str
    on_hand: int = Field(0, alias="onHand")

    @field_validator("sku", mode="before")
    @classmethod
    def _sku_text(cls, value):
        return value if value is None else str(value)

    @field_validator("on_hand", mode="before")
    @classmethod
    def _non_negative(cls, value):
        # "5.0" and 5.0 both arrive from the feed
        count = float(value or 0)
        if math.isnan(count) or math.isinf(count):
            raise ValueError(f"on hand is not a finite number: {value!r}")
        return max(int(count), 0)


class ProductOption(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[Union[int, str]] = None
    name: str
    values: List[str] = Field(default_factory=list)


class ProductVariant(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[Union[int, str]] = None
    sku: Optional[str] = None
    price: Optional[str] = None
    option1: Optional[str] = None
    inventory_item_id: Optional[Union[int, str]] = None
    inventory_quantity: Optional[int] = None

    @field_validator("price", mode="before")
    @classmethod
    def _price_text(cls, value):
        return None if value is None else str(value)


class ShopifyProduct(BaseModel):
    """A Shopify listing as returned by the Admin REST API."""
    model_config = ConfigDict(extra="ignore")

    id: Union[int, str]
    title: str = ""
    status: Optional[str] = None
    options: List[ProductOption] = Field(default_factory=list)
    variants: List[ProductVariant] = Field(default_factory=list)
    images: List[Dict[str, Any]] = Field(default_factory=list)

    def find_variant(self, sku: str) -> Optional[ProductVariant]:
        return next((v for v in self.variants if v.sku == sku), None)

    def option_values(self, name: str) -> List[str]:
        option = next((o for o in self.options if o.name == name), None)
        return list(option.values) if option else []


class ReconcileAction(str, Enum):
    CREATE = "create"
    ADD_VARIANT = "add_variant"
    UPDATE_VARIANT = "update_variant"


class SideEffectKind(str, Enum):
    INVENTORY = "inventory"
    METAFIELD = "metafield"


class PendingSideEffect(BaseModel):
    """A best-effort store call that failed and can be replayed later."""
    kind: SideEffectKind
    sku: str
    listing_id: Union[int, str]
    payload: Dict[str, Any]
    error: str = ""
    created_at: datetime = Field(default_factory=_utcnow)


class ReconcileResult(BaseModel):
    sku: str
    listing_id: Optional[Union[int, str]] = None
    action: ReconcileAction
    inventory_synced: bool = False
    metadata_attached: bool = False
    dry_run: bool = False
    pending: List[PendingSideEffect] = Field(default_factory=list)


class PassSummary(BaseModel):
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    failures: Dict[str, str] = Field(default_factory=dict)
    pending: List[PendingSideEffect] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None
# ============================================================================
# End of models.py — Version: 1.3.0
# ============================================================================
