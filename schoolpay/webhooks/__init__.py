from .ingestor import WebhookIngestor, WebhookResult
from .providers import PROVIDERS, PaymentEvent, detect_provider, get_provider

__all__ = [
    "PROVIDERS",
    "PaymentEvent",
    "WebhookIngestor",
    "WebhookResult",
    "detect_provider",
    "get_provider",
]
