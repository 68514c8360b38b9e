from enum import Enum


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class SubscriptionStatus(str, Enum):
    TRIAL = "trial"
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class InvalidStateTransition(Exception):
    pass


PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.COMPLETED: set(),
    PaymentStatus.FAILED: set(),
}

# active -> active is a renewal: same state, new end date
SUBSCRIPTION_TRANSITIONS = {
    SubscriptionStatus.TRIAL: {
        SubscriptionStatus.ACTIVE,
        SubscriptionStatus.EXPIRED,
        SubscriptionStatus.CANCELLED,
    },
    SubscriptionStatus.ACTIVE: {
        SubscriptionStatus.ACTIVE,
        SubscriptionStatus.EXPIRED,
        SubscriptionStatus.CANCELLED,
    },
    SubscriptionStatus.EXPIRED: set(),
    SubscriptionStatus.CANCELLED: set(),
}


def _check(table, enum_cls, current, target):
    current, target = enum_cls(current), enum_cls(target)
    if target not in table[current]:
        raise InvalidStateTransition(
            f"Cannot move {enum_cls.__name__} from {current.value} to {target.value}"
        )
    return target


def payment_transition(current, target) -> PaymentStatus:
    """Validate a payment status change and return the new status."""
    return _check(PAYMENT_TRANSITIONS, PaymentStatus, current, target)


def subscription_transition(current, target) -> SubscriptionStatus:
    """Validate a subscription status change and return the new status."""
    return _check(SUBSCRIPTION_TRANSITIONS, SubscriptionStatus, current, target)
