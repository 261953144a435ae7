from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "Caterpillar Ranch Discounts"
    VERSION: str = "1.0.0"

    # Hard ceiling on any discount applied to a cart, whatever the records claim
    CAP_PERCENT: int = Field(default=15, ge=0, le=100)
    DISCOUNT_TTL_MINUTES: int = 30

    MAX_QUANTITY: int = 99
    CART_STORAGE_KEY: str = "caterpillar-ranch-cart"

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()


settings = Settings()
