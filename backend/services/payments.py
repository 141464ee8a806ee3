"""
Payment authorisation before a ride is booked.

Real processing is out of scope; the configured authorizer only decides
whether a booking may go ahead. PAYMENT_AUTHORIZER names the class.
"""

import logging
import uuid
from dataclasses import dataclass

from django.conf import settings
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


@dataclass
class PaymentAuthorization:
    approved: bool
    reference: str = ""
    message: str = ""


class PaymentAuthorizer:
    def authorize(self, passenger, amount: float) -> PaymentAuthorization:
        raise NotImplementedError


class MockPaymentAuthorizer(PaymentAuthorizer):
    """Approves every booking unless MOCK_PAYMENT_APPROVE is off."""

    def __init__(self, approve: bool = None):
        self.approve = getattr(settings, "MOCK_PAYMENT_APPROVE", True) if approve is None else approve

    def authorize(self, passenger, amount: float) -> PaymentAuthorization:
        if not self.approve:
            logger.info("Mock payment declined for user %s (%.2f)", getattr(passenger, "id", None), amount)
            return PaymentAuthorization(False, message="Payment was declined")
        return PaymentAuthorization(True, reference=f"mock_{uuid.uuid4().hex[:12]}")


def get_payment_authorizer() -> PaymentAuthorizer:
    return import_string(settings.PAYMENT_AUTHORIZER)()
