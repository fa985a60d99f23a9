from core.settings import Settings
from payments.gateway_service import GatewayService
from payments.models import CheckoutConfig

# Settings singleton
_settings = None
# Gateway singleton; holds the cached access token
_gateway = None


def get_settings() -> Settings:
    """Dependency that provides application settings."""
    assert (
        _settings is not None
    ), "Settings not initialized. Make sure startup() was called."
    return _settings


def init_settings():
    """Initialize settings singleton."""
    global _settings
    _settings = Settings()


def clear_settings():
    """Clear settings and gateway singletons."""
    global _settings, _gateway
    _settings = None
    _gateway = None


def get_gateway_service() -> GatewayService:
    """Dependency that provides the shared gateway transport."""
    global _gateway
    if _gateway is None:
        _gateway = GatewayService.from_settings(get_settings())
    return _gateway


def get_checkout_config() -> CheckoutConfig:
    return CheckoutConfig(return_url_base=get_settings().RETURN_URL_BASE)
