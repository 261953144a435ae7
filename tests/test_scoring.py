"""
Tests for score to discount mapping and next-threshold hints.
"""

import pytest

from ranch_discounts.errors import InvalidInput
from ranch_discounts.logic import (
    TIERS,
    discount_result,
    format_discount,
    map_score_to_discount,
    next_threshold,
    progress_message,
)


class TestMapScoreToDiscount:
    """Test tier lookup."""

    def test_zero_score_earns_nothing(self):
        assert map_score_to_discount(0) == 0

    def test_tier_boundaries(self):
        expected = [
            (19, 0),
            (20, 3),
            (29, 3),
            (30, 6),
            (40, 9),
            (49, 9),
            (50, 12),
            (59, 12),
            (60, 15),
        ]
        for score, percent in expected:
            assert map_score_to_discount(score) == percent, f"Score {score} should map to {percent}%"

    def test_far_above_top_tier_stays_at_top(self):
        assert map_score_to_discount(65) == 15
        assert map_score_to_discount(10_000) == 15

    def test_monotonic(self):
        previous = 0
        for score in range(0, 120):
            current = map_score_to_discount(score)
            assert current >= previous, f"Discount dropped at score {score}"
            previous = current

    @pytest.mark.parametrize("score", [-1, 12.5, "40", True, None])
    def test_invalid_scores_rejected(self, score):
        with pytest.raises(InvalidInput):
            map_score_to_discount(score)

    def test_tiers_are_ascending(self):
        thresholds = [tier.threshold for tier in TIERS]
        assert thresholds == sorted(thresholds)


class TestNextThreshold:
    """Test progress hints toward the next tier."""

    def test_gap_to_top_tier(self):
        upcoming = next_threshold(55)
        assert upcoming.threshold == 60
        assert upcoming.pointsNeeded == 5
        assert upcoming.discountPercent == 15

    def test_nearest_tier_is_returned(self):
        upcoming = next_threshold(0)
        assert (upcoming.threshold, upcoming.pointsNeeded, upcoming.discountPercent) == (20, 20, 3)

        upcoming = next_threshold(30)
        assert (upcoming.threshold, upcoming.pointsNeeded, upcoming.discountPercent) == (40, 10, 9)

    def test_max_reached(self):
        assert next_threshold(60) is None
        assert next_threshold(99) is None

    def test_idempotent(self):
        assert next_threshold(42) == next_threshold(42)

    def test_negative_score_rejected(self):
        with pytest.raises(InvalidInput):
            next_threshold(-5)


class TestResultCopy:
    """Test themed result and progress text."""

    def test_failed_run_can_retry(self):
        result = discount_result(5)
        assert result.discountPercent == 0
        assert result.canRetry is True
        assert result.message == "The chrysalis failed."

    def test_top_tier_result(self):
        result = discount_result(65)
        assert result.discountPercent == 15
        assert result.canRetry is False

    def test_format_discount(self):
        assert format_discount(0) == "No Trust Earned"
        assert format_discount(12) == "12% Trust"

    def test_progress_messages(self):
        assert progress_message(3) == "They watch. They wait to trust you."
        assert progress_message(15) == "5 more to earn their trust"
        assert progress_message(45) == "5 more for 12% trust"
        assert progress_message(60) == "Maximum trust. They will emerge perfect."
