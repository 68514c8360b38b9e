import hmac
import logging

from flask import Blueprint, Response, current_app, jsonify, request

from schoolpay.errors import ValidationError
from schoolpay.services import PaymentService, SubscriptionService
from schoolpay.webhooks import WebhookIngestor

logger = logging.getLogger(__name__)

payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.route("/webhook", methods=["POST"])
def payment_webhook():
    """
    Provider notification endpoint (Flutterwave, Paga).

    Errors are raised as AppError subclasses and rendered by the
    application error handlers.
    """
    ingestor = WebhookIngestor.from_config(current_app.config)
    result = ingestor.handle(request.get_data(), request.headers)
    return jsonify(result.to_dict()), 200


@payments_bp.route("/webhook", methods=["GET"])
def verify_webhook():
    mode = request.args.get("hub.mode")
    token = request.args.get("hub.verify_token") or ""
    challenge = request.args.get("hub.challenge") or ""
    expected = current_app.config.get("WEBHOOK_VERIFY_TOKEN") or ""

    if mode == "subscribe" and expected and hmac.compare_digest(token.encode(), expected.encode()):
        logger.info("Webhook verification succeeded")
        return Response(challenge, status=200, mimetype="text/plain")

    logger.warning("Webhook verification failed")
    return Response("Forbidden", status=403, mimetype="text/plain")


@payments_bp.route("/initiate", methods=["POST"])
def initiate_payment():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    missing = [key for key in ("school_id", "plan_type", "provider") if not data.get(key)]
    if missing:
        raise ValidationError("Missing required fields", payload={"fields": missing})

    service = PaymentService(currency=current_app.config.get("DEFAULT_CURRENCY", "NGN"))
    payment = service.initiate_plan_payment(data["school_id"], data["plan_type"], data["provider"])

    return jsonify({
        "status": "success",
        "payment": payment.to_dict(),
        "plan": payment.meta,
    }), 201


@payments_bp.route("/audit/unreconciled", methods=["GET"])
def unreconciled_payments():
    payments = SubscriptionService().find_unreconciled_payments()
    return jsonify({"count": len(payments), "payments": payments}), 200
