# solarconnect/config.py
from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    # Database
    database_username: str
    database_password: str
    database_hostname: str
    database_port: str
    database_name: str

    # Auth
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Payments
    stripe_secret_key: str = ""
    payment_currency: str = "sar"

    # Lifecycle
    strict_status_transitions: bool = False

    # Logging
    log_level: str = "INFO"

    # CORS
    allowed_origins: List[str] = ["*"]

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
