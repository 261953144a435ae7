import logging
from datetime import datetime
from typing import Optional
from uuid import uuid4

from .config import settings
from .logic import clamp_percent, is_active
from .models import Cart, CartLineItem, CartTotals, DiscountRecord, Product, utc_now

logger = logging.getLogger(__name__)

# Every operation returns a fresh Cart; callers replace the stored value whole.


def _clamp_quantity(quantity: int) -> int:
    return max(1, min(settings.MAX_QUANTITY, quantity))


def _touch(cart: Cart, **changes) -> Cart:
    changes["lastUpdated"] = utc_now()
    return cart.model_copy(update=changes)


def clear_cart() -> Cart:
    return Cart()


def add_item(
    cart: Cart,
    product: Product,
    variant_id: str,
    quantity: int = 1,
    earned_discount: int = 0,
) -> Cart:
    """
    Add a product variant to the cart.
    Lines only merge when product, variant and earned discount all match;
    a different discount starts a separate line.
    """
    items = list(cart.items)
    for index, item in enumerate(items):
        if (
            item.product.id == product.id
            and item.variantId == variant_id
            and item.earnedDiscount == earned_discount
        ):
            items[index] = item.model_copy(
                update={"quantity": _clamp_quantity(item.quantity + quantity)}
            )
            return _touch(cart, items=items)

    items.append(
        CartLineItem(
            id=f"{product.id}-{variant_id}-{uuid4().hex[:8]}",
            product=product,
            variantId=variant_id,
            quantity=_clamp_quantity(quantity),
            earnedDiscount=earned_discount,
        )
    )
    return _touch(cart, items=items)


def remove_item(cart: Cart, item_id: str) -> Cart:
    return _touch(cart, items=[item for item in cart.items if item.id != item_id])


def update_quantity(cart: Cart, item_id: str, quantity: int) -> Cart:
    items = [
        item.model_copy(update={"quantity": _clamp_quantity(quantity)})
        if item.id == item_id else item
        for item in cart.items
    ]
    return _touch(cart, items=items)


def add_discount(cart: Cart, record: DiscountRecord) -> Cart:
    """Store a newly earned discount. One discount per product: a newer one replaces it."""
    if any(d.id == record.id for d in cart.discounts):
        return cart

    discounts = [d for d in cart.discounts if d.productId != record.productId]
    discounts.append(record)
    return _touch(cart, discounts=discounts)


def apply_discount_to_item(
    cart: Cart,
    discount_id: str,
    item_id: str,
    now: Optional[datetime] = None,
) -> Cart:
    """Consume a discount record onto a cart line. Invalid requests leave the cart unchanged."""
    if now is None:
        now = utc_now()

    record = next((d for d in cart.discounts if d.id == discount_id), None)
    if record is None:
        logger.warning("Discount %s not found", discount_id)
        return cart

    if not is_active(record, now):
        logger.warning("Discount %s is expired or already applied", discount_id)
        return cart

    item = next((i for i in cart.items if i.id == item_id), None)
    if item is None:
        logger.warning("Cart item %s not found", item_id)
        return cart

    if record.productId != item.product.id:
        logger.warning("Discount %s does not apply to product %s", discount_id, item.product.id)
        return cart

    items = [
        i.model_copy(update={"earnedDiscount": record.discountPercent}) if i.id == item_id else i
        for i in cart.items
    ]
    discounts = [
        d.model_copy(update={"applied": True}) if d.id == discount_id else d
        for d in cart.discounts
    ]
    return _touch(cart, items=items, discounts=discounts)


def remove_discount(cart: Cart, discount_id: str) -> Cart:
    """Un-apply a discount and take it back off the lines it was applied to."""
    record = next((d for d in cart.discounts if d.id == discount_id), None)
    if record is None:
        return cart

    items = [
        i.model_copy(update={"earnedDiscount": 0})
        if i.product.id == record.productId and i.earnedDiscount == record.discountPercent
        else i
        for i in cart.items
    ]
    discounts = [
        d.model_copy(update={"applied": False}) if d.id == discount_id else d
        for d in cart.discounts
    ]
    return _touch(cart, items=items, discounts=discounts)


def calculate_totals(cart: Cart, cap_percent: Optional[int] = None) -> CartTotals:
    """Cart totals with every line, and the cart as a whole, held to the discount cap."""
    cap = settings.CAP_PERCENT if cap_percent is None else cap_percent

    if not cart.items:
        return CartTotals(
            subtotal=0.0,
            totalDiscount=0.0,
            effectiveDiscountPercent=0.0,
            total=0.0,
            itemCount=0,
            savings=0.0,
        )

    subtotal = 0.0
    discount_before_cap = 0.0
    for item in cart.items:
        line_subtotal = item.product.price * item.quantity
        subtotal += line_subtotal
        discount_before_cap += line_subtotal * clamp_percent(item.earnedDiscount, cap) / 100

    total_discount = min(discount_before_cap, subtotal * cap / 100)
    effective_percent = total_discount / subtotal * 100 if subtotal > 0 else 0.0

    return CartTotals(
        subtotal=round(subtotal, 2),
        totalDiscount=round(total_discount, 2),
        effectiveDiscountPercent=round(effective_percent, 1),
        total=round(subtotal - total_discount, 2),
        itemCount=sum(item.quantity for item in cart.items),
        savings=round(total_discount, 2),
    )
