import structlog

from core.logging import BusinessEvents
from core.metrics import record_event
from payments.errors import ProviderDisabled, RedirectMisconfigured
from payments.interfaces import RedirectMechanism
from payments.models import CheckoutConfig, FlowKind, GatewayConfiguration

log = structlog.get_logger(__name__)


class ConfigurationGate:
    """Decides whether a redirect authorization may start at all."""

    def __init__(self, redirect: RedirectMechanism, config: CheckoutConfig):
        self.redirect = redirect
        self.config = config

    @staticmethod
    def can_proceed(configuration: GatewayConfiguration | None) -> None:
        if configuration is None or not configuration.paypal_enabled:
            raise ProviderDisabled()

    def redirect_target_registered(self) -> bool:
        return self.redirect.is_return_target_registered(self.config.return_url_base)

    def check(self, configuration: GatewayConfiguration | None, flow: FlowKind) -> None:
        try:
            self.can_proceed(configuration)
        except ProviderDisabled as e:
            record_event(f"{flow.event_prefix}.provider-disabled")
            log.warning(BusinessEvents.AUTHORIZATION_REJECTED, flow=flow.value, code=e.code)
            raise

        if not self.redirect_target_registered():
            record_event(f"{flow.event_prefix}.invalid-return-target")
            log.warning(
                BusinessEvents.AUTHORIZATION_REJECTED,
                flow=flow.value,
                code=RedirectMisconfigured.code,
                return_url_base=self.config.return_url_base,
            )
            raise RedirectMisconfigured()
