from datetime import datetime, timedelta, timezone

import pytest

from ranch_discounts import storage
from ranch_discounts.models import DiscountRecord, GameType, Product

NOW = datetime(2025, 10, 31, 23, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clean_storage():
    storage.CART_STORE.clear()
    storage.PLAYED_GAMES.clear()
    yield
    storage.CART_STORE.clear()
    storage.PLAYED_GAMES.clear()


@pytest.fixture
def product():
    return Product(id="punk-edition", name="Punk Edition Tee", slug="punk-edition", price=25.0)


def make_record(percent, product_id="punk-edition", applied=False, expires_in=timedelta(minutes=30)):
    earned_at = NOW + min(expires_in, timedelta(0)) - timedelta(minutes=1)
    return DiscountRecord(
        productId=product_id,
        discountPercent=percent,
        gameType=GameType.CULLING,
        earnedAt=earned_at,
        expiresAt=NOW + expires_in,
        applied=applied,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def record():
    return make_record
