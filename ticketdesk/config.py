from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./ticketdesk.db"
    secret_key: str = "dev-secret-key-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    payment_token_secret: str = "dev-payment-secret"
    payment_token_expire_minutes: int = 10

    booking_fee_rate: Decimal = Decimal("0.05")
    booking_hold_minutes: int = 15

    ticket_expiry_grace_minutes: int = 0
    expiry_sweep_minutes: int = 5
    scheduler_enabled: bool = True
    rate_limit_enabled: bool = True

    admin_page_size: int = 20

    api_base_url: str = "http://localhost:8000"
    http_timeout_seconds: float = 10.0

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "testserver"]
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000

    class Config:
        env_file = ".env"
        env_prefix = "TICKETDESK_"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
