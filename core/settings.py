import os
from typing import Literal

from dotenv import load_dotenv
from pydantic import ConfigDict
from pydantic_settings import BaseSettings

# Load .env file automatically
load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database (pending redirect store)
    DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20
    DATABASE_POOL_TIMEOUT: int = 30
    DATABASE_POOL_RECYCLE: int = 3600

    # Payment gateway
    GATEWAY_BASE_URL: str = "https://api.sandbox.gateway.example"
    GATEWAY_CLIENT_ID: str
    GATEWAY_SECRET: str
    GATEWAY_TIMEOUT_SECONDS: float = 20.0
    GATEWAY_MAX_ATTEMPTS: int = 3

    # Redirect handshake
    RETURN_URL_BASE: str = "http://localhost:8000/api/v1/checkout/return"
    REDIRECT_ALLOWED_HOSTS: str = "localhost,127.0.0.1"
    PENDING_REDIRECT_TTL_SECONDS: int = 3600
    CHECKOUT_COOKIE_NAME: str = "checkout_key"

    # App settings
    APP_NAME: str = "Redirect Checkout Service"
    DEBUG: bool = False
    ENVIRONMENT: Literal["development", "test", "production"] = "development"

    # Observability (Optional)
    OTEL_EXPORTER_OTLP_ENDPOINT: str = "http://localhost:4317"
    OTEL_SERVICE_NAME: str = "redirect-checkout"

    # Metrics (Optional)
    METRICS_ENABLED: bool = True

    model_config = ConfigDict(env_file=".env", case_sensitive=True)

    def __init__(self, **kwargs):
        # Check for DATABASE_URL before calling parent constructor
        if not os.getenv("DATABASE_URL") and "DATABASE_URL" not in kwargs:
            raise RuntimeError(
                "DATABASE_URL not set; create .env or export the variable"
            )
        super().__init__(**kwargs)

    @property
    def redirect_allowed_hosts(self) -> set[str]:
        """Hosts the return URL may point at, parsed from the comma list."""
        return {
            host.strip().lower()
            for host in self.REDIRECT_ALLOWED_HOSTS.split(",")
            if host.strip()
        }
