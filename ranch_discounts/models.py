from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class GameType(str, Enum):
    CULLING = "culling"
    HARVEST = "harvest"
    LARVA_LAUNCH = "larva-launch"
    PATH_OF_THE_PUPA = "path-of-the-pupa"
    GARDEN = "garden"
    METAMORPHOSIS = "metamorphosis"
    LAST_RESORT = "last-resort"
    PULSE = "pulse"
    SNAKE = "snake"  # legacy


class Tier(NamedTuple):
    threshold: int
    discountPercent: int


class DiscountRecord(BaseModel):
    """One earned, not yet consumed discount grant for a single product."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    productId: str
    discountPercent: int = Field(ge=0, le=100)
    gameType: Union[GameType, str]  # informational; unknown tags pass through
    earnedAt: datetime
    expiresAt: datetime
    applied: bool = False

    @field_validator("earnedAt", "expiresAt")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # stored carts may carry naive timestamps
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def check_expiry_after_earned(self):
        if self.expiresAt <= self.earnedAt:
            raise ValueError("expiresAt must be later than earnedAt")
        return self


class Product(BaseModel):
    id: str
    name: str = ""
    slug: str = ""
    price: float = Field(ge=0)


class CartLineItem(BaseModel):
    id: str
    product: Product
    variantId: str
    quantity: int = Field(ge=1)
    earnedDiscount: int = Field(default=0, ge=0, le=100)
    addedAt: datetime = Field(default_factory=utc_now)


class Cart(BaseModel):
    items: List[CartLineItem] = Field(default_factory=list)
    discounts: List[DiscountRecord] = Field(default_factory=list)
    lastUpdated: datetime = Field(default_factory=utc_now)


class CartTotals(BaseModel):
    subtotal: float
    totalDiscount: float
    effectiveDiscountPercent: float
    total: float
    itemCount: int
    savings: float


class AppliedDiscount(BaseModel):
    appliedAmount: float
    appliedPercent: float


class NextThreshold(BaseModel):
    threshold: int
    pointsNeeded: int
    discountPercent: int


class DiscountResult(BaseModel):
    discountPercent: int
    message: str
    subtext: str
    emoji: str
    canRetry: bool


# ---------------------------
# Request / response payloads
# ---------------------------

class ScoreDiscountResponse(BaseModel):
    score: int
    result: DiscountResult
    formatted: str


class ThresholdResponse(BaseModel):
    score: int
    nextThreshold: Optional[NextThreshold]
    maxReached: bool
    message: str


class ApplyDiscountRequest(BaseModel):
    subtotal: float
    # validated in the handler so a malformed record is reported as InvalidInput
    records: List[Dict[str, Any]] = Field(default_factory=list)
    productId: Optional[str] = None
    now: Optional[datetime] = None


class GamePlayRequest(BaseModel):
    productId: str
    gameType: GameType
    score: int


class GamePlayResponse(BaseModel):
    result: DiscountResult
    discount: Optional[DiscountRecord]


class AddItemRequest(BaseModel):
    product: Product
    variantId: str
    quantity: int = 1
    earnedDiscount: int = Field(default=0, ge=0, le=100)


class UpdateQuantityRequest(BaseModel):
    quantity: int


class ApplyToItemRequest(BaseModel):
    itemId: str


class CartResponse(BaseModel):
    cart: Cart
    totals: CartTotals
