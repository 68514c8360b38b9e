from flask import Blueprint, jsonify

from schoolpay.errors import NotFoundError
from schoolpay.extensions import db
from schoolpay.models import School
from schoolpay.services import PaymentService, SubscriptionService

schools_bp = Blueprint("schools", __name__, url_prefix="/api/schools")


@schools_bp.route("/<school_id>/subscription", methods=["GET"])
def subscription_summary(school_id):
    return jsonify(SubscriptionService().summary(school_id)), 200


@schools_bp.route("/<school_id>/payments", methods=["GET"])
def payment_history(school_id):
    if db.session.get(School, school_id) is None:
        raise NotFoundError(f"School not found: {school_id}")

    payments = PaymentService().history(school_id)
    return jsonify({
        "school_id": school_id,
        "payments": [p.to_dict() for p in payments],
    }), 200
