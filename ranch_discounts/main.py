import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from . import cart as cart_ops
from . import storage
from .config import settings
from .errors import InvalidInput
from .logic import (
    apply_discount,
    create_discount_record,
    discount_result,
    format_discount,
    next_threshold,
    parse_discount_records,
    progress_message,
)
from .models import (
    AddItemRequest,
    AppliedDiscount,
    ApplyDiscountRequest,
    ApplyToItemRequest,
    Cart,
    CartResponse,
    GamePlayRequest,
    GamePlayResponse,
    ScoreDiscountResponse,
    ThresholdResponse,
    UpdateQuantityRequest,
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION)


@app.exception_handler(InvalidInput)
def invalid_input_handler(request: Request, exc: InvalidInput):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def _cart_response(cart: Cart) -> CartResponse:
    return CartResponse(cart=cart, totals=cart_ops.calculate_totals(cart))


def _save(session_token: str, cart: Cart) -> CartResponse:
    storage.save_cart(session_token, cart)
    return _cart_response(cart)


# ---------------------------
# Scores
# ---------------------------

@app.get("/health")
def health_check():
    return {"status": "ok", "capPercent": settings.CAP_PERCENT}


@app.get("/scores/{score}/discount", response_model=ScoreDiscountResponse)
def score_discount(score: int):
    result = discount_result(score)
    return ScoreDiscountResponse(
        score=score, result=result, formatted=format_discount(result.discountPercent)
    )


@app.get("/scores/{score}/next-threshold", response_model=ThresholdResponse)
def score_next_threshold(score: int):
    upcoming = next_threshold(score)
    return ThresholdResponse(
        score=score,
        nextThreshold=upcoming,
        maxReached=upcoming is None,
        message=progress_message(score),
    )


@app.post("/discounts/apply", response_model=AppliedDiscount)
def apply_discount_endpoint(payload: ApplyDiscountRequest):
    return apply_discount(
        payload.subtotal,
        parse_discount_records(payload.records),
        now=payload.now,
        product_id=payload.productId,
    )


# ---------------------------
# Sessions
# ---------------------------

@app.post("/sessions/{session_token}/games", response_model=GamePlayResponse)
def finish_game(session_token: str, payload: GamePlayRequest):
    if storage.was_played(session_token, payload.productId):
        raise HTTPException(status_code=409, detail="Game already played this session")

    result = discount_result(payload.score)
    record = create_discount_record(payload.productId, payload.gameType, payload.score)
    storage.mark_played(session_token, payload.productId)

    if record is not None:
        cart = cart_ops.add_discount(storage.load_cart(session_token), record)
        storage.save_cart(session_token, cart)
        logger.info(
            "Session %s earned %s%% on %s", session_token, record.discountPercent, record.productId
        )

    return GamePlayResponse(result=result, discount=record)


@app.get("/sessions/{session_token}/cart", response_model=CartResponse)
def get_cart(session_token: str):
    return _cart_response(storage.load_cart(session_token))


@app.post("/sessions/{session_token}/cart/items", response_model=CartResponse)
def add_cart_item(session_token: str, payload: AddItemRequest):
    cart = cart_ops.add_item(
        storage.load_cart(session_token),
        payload.product,
        payload.variantId,
        payload.quantity,
        payload.earnedDiscount,
    )
    return _save(session_token, cart)


@app.patch("/sessions/{session_token}/cart/items/{item_id}", response_model=CartResponse)
def update_cart_item(session_token: str, item_id: str, payload: UpdateQuantityRequest):
    cart = storage.load_cart(session_token)
    if not any(item.id == item_id for item in cart.items):
        raise HTTPException(status_code=404, detail="Cart item not found")
    return _save(session_token, cart_ops.update_quantity(cart, item_id, payload.quantity))


@app.delete("/sessions/{session_token}/cart/items/{item_id}", response_model=CartResponse)
def remove_cart_item(session_token: str, item_id: str):
    cart = cart_ops.remove_item(storage.load_cart(session_token), item_id)
    return _save(session_token, cart)


@app.post(
    "/sessions/{session_token}/cart/discounts/{discount_id}/apply",
    response_model=CartResponse,
)
def apply_cart_discount(session_token: str, discount_id: str, payload: ApplyToItemRequest):
    cart = storage.load_cart(session_token)
    updated = cart_ops.apply_discount_to_item(cart, discount_id, payload.itemId)
    if updated is cart:
        raise HTTPException(status_code=400, detail="Discount cannot be applied to this item")
    return _save(session_token, updated)


@app.delete("/sessions/{session_token}/cart/discounts/{discount_id}", response_model=CartResponse)
def remove_cart_discount(session_token: str, discount_id: str):
    cart = cart_ops.remove_discount(storage.load_cart(session_token), discount_id)
    return _save(session_token, cart)


@app.delete("/sessions/{session_token}/cart", response_model=CartResponse)
def clear_session_cart(session_token: str):
    storage.delete_cart(session_token)
    return _cart_response(cart_ops.clear_cart())


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "ranch_discounts.main:app",
        host="127.0.0.1",
        port=8000,
        reload=False,
    )
