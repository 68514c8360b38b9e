"""
Payment provider variants.

Each provider knows how to recognise its own notifications (header
fingerprint first, payload shape as fallback), where its signature lives
and how to normalise a payload into a ``PaymentEvent``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional, Sequence

from schoolpay.errors import InvalidPayloadError


@dataclass(frozen=True)
class PaymentEvent:
    provider: str
    event_type: str
    succeeded: bool
    reference: Optional[str] = None
    transaction_id: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    raw: dict = field(default_factory=dict)


def _to_decimal(value, provider):
    if isinstance(value, bool) or value is None:
        raise InvalidPayloadError(f"{provider} payload has no valid amount")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidPayloadError(f"{provider} payload has no valid amount") from None
    if not amount.is_finite():
        raise InvalidPayloadError(f"{provider} payload has no valid amount")
    return amount


def _optional_str(value):
    return str(value) if value not in (None, "") else None


class PaymentProvider(ABC):
    name: str
    signature_header: str
    secret_config_key: str

    def matches_headers(self, headers: Mapping[str, str]) -> bool:
        return bool(headers.get(self.signature_header))

    def signature(self, headers: Mapping[str, str]) -> Optional[str]:
        return headers.get(self.signature_header)

    @abstractmethod
    def matches_payload(self, body) -> bool:
        ...

    @abstractmethod
    def parse(self, body: dict) -> PaymentEvent:
        ...

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.name}>"


class FlutterwaveProvider(PaymentProvider):
    """{event, data: {tx_ref, flw_ref, amount, currency, status}}"""

    name = "flutterwave"
    signature_header = "verif-hash"
    secret_config_key = "FLUTTERWAVE_SECRET_HASH"

    SUCCESS_EVENT = "charge.completed"
    SUCCESS_STATUS = "successful"

    def matches_payload(self, body):
        event = body.get("event") if isinstance(body, dict) else None
        return isinstance(event, str) and ("charge" in event or "transfer" in event)

    def parse(self, body):
        event_type = body.get("event")
        data = body.get("data")
        if not isinstance(event_type, str) or not isinstance(data, dict):
            raise InvalidPayloadError("Flutterwave payload must carry 'event' and 'data'")

        succeeded = event_type == self.SUCCESS_EVENT and data.get("status") == self.SUCCESS_STATUS
        if not succeeded:
            return PaymentEvent(self.name, event_type, False, reference=_optional_str(data.get("tx_ref")), raw=data)

        reference = _optional_str(data.get("tx_ref"))
        if not reference:
            raise InvalidPayloadError("Flutterwave payload is missing data.tx_ref")

        return PaymentEvent(
            provider=self.name,
            event_type=event_type,
            succeeded=True,
            reference=reference,
            transaction_id=_optional_str(data.get("flw_ref")),
            amount=_to_decimal(data.get("amount"), self.name),
            currency=_optional_str(data.get("currency")),
            raw=data,
        )


class PagaProvider(PaymentProvider):
    """{eventType, data: {merchantReference, transactionId, amount, currency}}"""

    name = "paga"
    signature_header = "x-paga-signature"
    secret_config_key = "PAGA_WEBHOOK_SECRET"

    SUCCESS_EVENT = "SUCCESSFUL_PAYMENT"

    def matches_payload(self, body):
        if not isinstance(body, dict):
            return False
        data = body.get("data")
        return (
            isinstance(body.get("eventType"), str)
            and isinstance(data, dict)
            and bool(data.get("merchantReference"))
        )

    def parse(self, body):
        event_type = body.get("eventType")
        data = body.get("data")
        if not isinstance(event_type, str) or not isinstance(data, dict):
            raise InvalidPayloadError("Paga payload must carry 'eventType' and 'data'")

        reference = _optional_str(data.get("merchantReference"))
        if event_type != self.SUCCESS_EVENT:
            return PaymentEvent(self.name, event_type, False, reference=reference, raw=data)

        if not reference:
            raise InvalidPayloadError("Paga payload is missing data.merchantReference")

        return PaymentEvent(
            provider=self.name,
            event_type=event_type,
            succeeded=True,
            reference=reference,
            transaction_id=_optional_str(data.get("transactionId")),
            amount=_to_decimal(data.get("amount"), self.name),
            currency=_optional_str(data.get("currency")),
            raw=data,
        )


# Detection order matters: earlier providers win ties
PROVIDERS: Sequence[PaymentProvider] = (FlutterwaveProvider(), PagaProvider())


def detect_provider(body, headers: Mapping[str, str], providers=PROVIDERS) -> Optional[PaymentProvider]:
    """
    Header fingerprints are checked first since they are unambiguous;
    payload shape is the fallback. ``headers`` must use lower-case keys.
    """
    for provider in providers:
        if provider.matches_headers(headers):
            return provider

    for provider in providers:
        if provider.matches_payload(body):
            return provider

    return None


def get_provider(name: str, providers=PROVIDERS) -> Optional[PaymentProvider]:
    for provider in providers:
        if provider.name == name:
            return provider
    return None
