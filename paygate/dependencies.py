from dataclasses import dataclass

from fastapi import Request

from paygate.config import Settings
from paygate.models.capability_token import FlowKind
from paygate.services.checkout_gateway import CheckoutGateway, StripeCheckoutGateway
from paygate.services.deferred_action_broker import DeferredActionBroker
from paygate.services.mail_service import ContactMailer
from paygate.services.token_store import TokenStore


@dataclass
class Services:
    """Process-wide services, built once at startup."""

    gateway: CheckoutGateway
    donation_broker: DeferredActionBroker
    contact_broker: DeferredActionBroker
    mailer: ContactMailer

    @property
    def token_stores(self) -> dict[str, TokenStore]:
        return {
            self.donation_broker.flow.value: self.donation_broker.store,
            self.contact_broker.flow.value: self.contact_broker.store,
        }


def build_services(settings: Settings) -> Services:
    gateway = StripeCheckoutGateway(settings.stripe_secret_key)
    return Services(
        gateway=gateway,
        # Separate stores: donation and contact tokens never share a namespace
        donation_broker=DeferredActionBroker(
            FlowKind.DONATION, TokenStore(), gateway, description="Donation"
        ),
        contact_broker=DeferredActionBroker(
            FlowKind.CONTACT, TokenStore(), gateway, description="Contact request"
        ),
        mailer=ContactMailer(settings),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_donation_broker(request: Request) -> DeferredActionBroker:
    """Dependency for FastAPI endpoints to get the donation flow broker."""
    return get_services(request).donation_broker


def get_contact_broker(request: Request) -> DeferredActionBroker:
    """Dependency for FastAPI endpoints to get the contact flow broker."""
    return get_services(request).contact_broker


def get_mailer(request: Request) -> ContactMailer:
    return get_services(request).mailer
