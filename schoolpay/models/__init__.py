from .school import School
from .payment import Payment
from .subscription import Subscription

__all__ = ["School", "Payment", "Subscription"]
