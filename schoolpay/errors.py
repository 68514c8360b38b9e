class AppError(Exception):
    """Base application error rendered as JSON by the error handlers."""

    code = "app_error"
    status_code = 400

    def __init__(self, message=None, status_code=None, payload=None):
        super().__init__(message or self.code)
        self.message = message or self.code
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        body = {
            "status": "error",
            "error": self.code,
            "message": self.message,
        }
        body.update(self.payload or {})
        return body


class ValidationError(AppError):
    code = "validation_error"
    status_code = 400


class NotFoundError(AppError):
    code = "not_found"
    status_code = 404


# Webhook taxonomy

class WebhookError(AppError):
    code = "webhook_error"


class UnknownProviderError(WebhookError):
    code = "unknown_provider"
    status_code = 400


class InvalidSignatureError(WebhookError):
    code = "invalid_signature"
    status_code = 401


class InvalidPayloadError(WebhookError):
    code = "invalid_payload"
    status_code = 400


class PaymentNotFoundError(WebhookError):
    code = "payment_not_found"
    status_code = 404


class AmountMismatchError(WebhookError):
    code = "amount_mismatch"
    status_code = 400


class ReconciliationError(WebhookError):
    code = "reconciliation_failure"
    status_code = 500
