"""
Tests for settings validation.
"""

import pytest
from pydantic import ValidationError

from ranch_discounts.config import Settings


class TestSettings:

    def test_defaults(self):
        settings = Settings()
        assert settings.CAP_PERCENT == 15
        assert settings.DISCOUNT_TTL_MINUTES == 30

    @pytest.mark.parametrize("cap", [-5, 101])
    def test_cap_out_of_range_rejected(self, cap):
        with pytest.raises(ValidationError):
            Settings(CAP_PERCENT=cap)

    def test_cap_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("CAP_PERCENT", "-10")
        with pytest.raises(ValidationError):
            Settings()

    def test_log_level_is_upper_cased(self):
        assert Settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"
