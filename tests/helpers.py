"""Payload builders and signing helpers shared by the webhook tests."""

import json

from faker import Faker

from schoolpay.webhooks.security import compute_signature

fake = Faker()

PROVIDER_SIGNING = {
    "flutterwave": ("verif-hash", "flw-test-secret"),
    "paga": ("x-paga-signature", "paga-test-secret"),
}


def flutterwave_event(reference, amount, event="charge.completed", status="successful", currency="NGN"):
    return {
        "event": event,
        "data": {
            "id": fake.random_int(min=100000, max=999999),
            "tx_ref": reference,
            "flw_ref": f"FLW-MOCK-{fake.bothify('########')}",
            "amount": amount,
            "currency": currency,
            "status": status,
        },
    }


def paga_event(reference, amount, event_type="SUCCESSFUL_PAYMENT", currency="NGN"):
    return {
        "eventType": event_type,
        "data": {
            "merchantReference": reference,
            "transactionId": fake.bothify("PG-#########"),
            "amount": amount,
            "currency": currency,
        },
    }


def sign(body, provider="flutterwave", secret=None):
    """Serialize ``body`` and return (raw_bytes, headers) signed for ``provider``."""
    raw = body if isinstance(body, bytes) else json.dumps(body).encode()
    header, default_secret = PROVIDER_SIGNING[provider]
    headers = {
        "Content-Type": "application/json",
        header: compute_signature(raw, secret or default_secret),
    }
    return raw, headers

