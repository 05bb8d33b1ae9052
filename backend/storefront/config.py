from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./dev.db"
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8000
    FRONTEND_ORIGINS: List[str] = ["http://localhost:5173"]
    LOG_LEVEL: str = "INFO"

    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_WEBHOOK_TOLERANCE_SECONDS: int = 300
    CHECKOUT_CURRENCY: str = "egp"
    CHECKOUT_SUCCESS_URL: str = "http://localhost:5173/user/orders"
    CHECKOUT_CANCEL_URL: str = "http://localhost:5173/cart"

    # order surcharges, in base currency units
    TAX_PRICE: float = 0
    SHIPPING_PRICE: float = 0

    CART_LOCK_TIMEOUT_SECONDS: int = 10
    RECONCILE_INTERVAL_SECONDS: int = 300

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
