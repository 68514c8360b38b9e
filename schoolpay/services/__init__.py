from .payment_service import PaymentService
from .subscription_service import SubscriptionService

__all__ = ["PaymentService", "SubscriptionService"]
