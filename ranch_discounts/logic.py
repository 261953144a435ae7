import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Tuple

from pydantic import ValidationError

from .config import settings
from .errors import InvalidInput
from .models import (
    AppliedDiscount,
    DiscountRecord,
    DiscountResult,
    GameType,
    NextThreshold,
    Tier,
    utc_now,
)

logger = logging.getLogger(__name__)

# Ascending by threshold. Shared by the mapper and the advisor.
TIERS: Tuple[Tier, ...] = (
    Tier(threshold=20, discountPercent=3),
    Tier(threshold=30, discountPercent=6),
    Tier(threshold=40, discountPercent=9),
    Tier(threshold=50, discountPercent=12),
    Tier(threshold=60, discountPercent=15),
)

RESULT_COPY = {
    15: (
        "Perfect care. They emerged exactly as they dreamed.",
        "You guided them through dissolution, terror, and remaking. They fly now. Because of you.",
        "🦋",
    ),
    12: (
        "Strong guidance. They will fly.",
        "The transformation was nearly perfect. Their wings catch the light.",
        "✨",
    ),
    9: (
        "They emerged. Some scars, but whole.",
        "The chrysalis was dark, but they made it through.",
        "🌙",
    ),
    6: (
        "The transformation was incomplete.",
        "They fly, but they remember the pain more than the beauty.",
        "🕯️",
    ),
    3: (
        "They emerged. Something is wrong with their wings.",
        "They try to fly. They cannot. But they are alive.",
        "👁️",
    ),
    0: (
        "The chrysalis failed.",
        "They trusted you to guide them through the dark. You were not ready.",
        "💀",
    ),
}


# ---------------------------
# Scores
# ---------------------------

def _check_score(score: int) -> None:
    if isinstance(score, bool) or not isinstance(score, int):
        raise InvalidInput(f"Score must be an integer, got {score!r}")
    if score < 0:
        raise InvalidInput(f"Score must be non-negative, got {score}")


def map_score_to_discount(score: int) -> int:
    """Return the discount percent of the highest tier the score reaches, or 0."""
    _check_score(score)
    for tier in reversed(TIERS):
        if score >= tier.threshold:
            return tier.discountPercent
    return 0


def next_threshold(current_score: int) -> Optional[NextThreshold]:
    """
    Nearest tier the score has not reached yet.
    Returns None once the top tier is reached.
    """
    _check_score(current_score)
    for tier in TIERS:
        if current_score < tier.threshold:
            return NextThreshold(
                threshold=tier.threshold,
                pointsNeeded=tier.threshold - current_score,
                discountPercent=tier.discountPercent,
            )
    return None


def discount_result(score: int) -> DiscountResult:
    percent = map_score_to_discount(score)
    message, subtext, emoji = RESULT_COPY[percent]
    return DiscountResult(
        discountPercent=percent,
        message=message,
        subtext=subtext,
        emoji=emoji,
        canRetry=percent == 0,
    )


def format_discount(discount_percent: int) -> str:
    if discount_percent == 0:
        return "No Trust Earned"
    return f"{discount_percent}% Trust"


def progress_message(current_score: int) -> str:
    upcoming = next_threshold(current_score)
    current = map_score_to_discount(current_score)

    if upcoming is None:
        return "Maximum trust. They will emerge perfect."
    if current == 0 and current_score < 10:
        return "They watch. They wait to trust you."
    if current == 0:
        return f"{upcoming.pointsNeeded} more to earn their trust"
    return f"{upcoming.pointsNeeded} more for {upcoming.discountPercent}% trust"


# ---------------------------
# Discount records
# ---------------------------

def create_discount_record(
    product_id: str,
    game_type: GameType,
    score: int,
    now: Optional[datetime] = None,
    ttl_minutes: Optional[int] = None,
) -> Optional[DiscountRecord]:
    """Build the record a finished game earns. A 0% result earns nothing."""
    percent = map_score_to_discount(score)
    if percent == 0:
        return None

    earned_at = now or utc_now()
    ttl = settings.DISCOUNT_TTL_MINUTES if ttl_minutes is None else ttl_minutes
    return DiscountRecord(
        productId=product_id,
        discountPercent=percent,
        gameType=game_type,
        earnedAt=earned_at,
        expiresAt=earned_at + timedelta(minutes=ttl),
    )


def parse_discount_records(raw: Iterable[dict]) -> List[DiscountRecord]:
    try:
        return [DiscountRecord.model_validate(item) for item in raw]
    except ValidationError as exc:
        raise InvalidInput(f"Malformed discount record: {exc}") from exc


def is_active(record: DiscountRecord, now: datetime) -> bool:
    return not record.applied and record.expiresAt > now


def active_records(
    records: Iterable[DiscountRecord],
    now: datetime,
    product_id: Optional[str] = None,
) -> List[DiscountRecord]:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return [
        r for r in records
        if (product_id is None or r.productId == product_id) and is_active(r, now)
    ]


# ---------------------------
# Applying discounts
# ---------------------------

def _check_subtotal(subtotal: float) -> None:
    if isinstance(subtotal, bool) or not isinstance(subtotal, (int, float)):
        raise InvalidInput(f"Subtotal must be a number, got {subtotal!r}")
    if subtotal < 0:
        raise InvalidInput(f"Subtotal must be non-negative, got {subtotal}")


def clamp_percent(percent: float, cap_percent: Optional[int] = None) -> float:
    """Clamp a claimed percent to the cap. Over-cap claims are logged, not rejected."""
    cap = settings.CAP_PERCENT if cap_percent is None else cap_percent
    if percent > cap:
        logger.warning("Discount of %s%% exceeds cap, clamped to %s%%", percent, cap)
        return cap
    return percent


def apply_discount(
    subtotal: float,
    records: Iterable[DiscountRecord],
    now: Optional[datetime] = None,
    product_id: Optional[str] = None,
    cap_percent: Optional[int] = None,
) -> AppliedDiscount:
    """
    Resolve the discount for one line item subtotal.

    Only the best active record counts (discounts never stack), and the cap is
    enforced after selection, so an honest record at the cap passes unchanged
    while a larger claim is clamped to the cap.
    """
    _check_subtotal(subtotal)
    if now is None:
        now = utc_now()

    survivors = active_records(records, now, product_id)
    if not survivors or subtotal == 0:
        return AppliedDiscount(appliedAmount=0.0, appliedPercent=0.0)

    selected = max(r.discountPercent for r in survivors)
    applied_percent = clamp_percent(selected, cap_percent)
    # min(requested, capped) == subtotal * min(selected, cap) / 100
    applied_amount = subtotal * applied_percent / 100

    return AppliedDiscount(
        appliedAmount=applied_amount,
        appliedPercent=applied_percent,
    )
