import time

import redis
from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from schoolpay.extensions import db

health_bp = Blueprint("health", __name__)


def _check_database():
    start = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        latency = round((time.time() - start) * 1000, 2)
        return {"status": "ok", "latency_ms": latency}
    except Exception as e:
        return {"status": "error", "error": str(e)}


def _check_redis():
    url = current_app.config.get("CELERY_BROKER_URL")
    if not url or current_app.testing:
        return {"status": "skipped", "reason": "broker not configured"}

    start = time.time()
    try:
        client = redis.from_url(url, socket_connect_timeout=1)
        client.ping()
        latency = round((time.time() - start) * 1000, 2)
        return {"status": "ok", "latency_ms": latency}
    except Exception as e:
        return {"status": "error", "error": str(e)}


def run_health_checks():
    started = time.time()

    checks = {
        "database": _check_database(),
        "redis": _check_redis(),
    }

    overall = "ok"
    if checks["database"]["status"] == "error":
        overall = "unhealthy"
    elif any(c["status"] == "error" for c in checks.values()):
        overall = "degraded"

    return {
        "status": overall,
        "timestamp": int(time.time()),
        "checks": checks,
        "duration_ms": round((time.time() - started) * 1000, 2),
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "version": current_app.config.get("APP_VERSION"),
    }


@health_bp.route("/health", methods=["GET"])
def health():
    report = run_health_checks()
    status_code = 503 if report["status"] == "unhealthy" else 200
    return jsonify(report), status_code
