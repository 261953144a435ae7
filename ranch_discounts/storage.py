import logging
from typing import Dict, Set

from pydantic import ValidationError

from .config import settings
from .models import Cart

logger = logging.getLogger(__name__)

# "<storage key>:<session token>" -> JSON-serialised cart
CART_STORE: Dict[str, str] = {}

# session token -> product ids whose game was already played this session
PLAYED_GAMES: Dict[str, Set[str]] = {}


def _cart_key(session_token: str) -> str:
    return f"{settings.CART_STORAGE_KEY}:{session_token}"


def load_cart(session_token: str) -> Cart:
    """Read a session's cart. A missing or unreadable document yields an empty cart."""
    raw = CART_STORE.get(_cart_key(session_token))
    if raw is None:
        return Cart()
    try:
        return Cart.model_validate_json(raw)
    except ValidationError as exc:
        logger.error("Failed to load cart for session %s: %s", session_token, exc)
        return Cart()


def save_cart(session_token: str, cart: Cart) -> None:
    CART_STORE[_cart_key(session_token)] = cart.model_dump_json()


def delete_cart(session_token: str) -> None:
    CART_STORE.pop(_cart_key(session_token), None)
    PLAYED_GAMES.pop(session_token, None)


def mark_played(session_token: str, product_id: str) -> None:
    PLAYED_GAMES.setdefault(session_token, set()).add(product_id)


def was_played(session_token: str, product_id: str) -> bool:
    return product_id in PLAYED_GAMES.get(session_token, set())
