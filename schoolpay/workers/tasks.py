from celery.utils.log import get_task_logger

from schoolpay.services import SubscriptionService
from schoolpay.workers.celery_app import celery

logger = get_task_logger(__name__)


@celery.task(name="schoolpay.workers.tasks.expire_subscriptions")
def expire_subscriptions():
    count = SubscriptionService().expire_lapsed_subscriptions()
    logger.info(f"Expiry sweep finished: {count} subscription(s) expired")
    return count


@celery.task(name="schoolpay.workers.tasks.audit_unreconciled_payments")
def audit_unreconciled_payments():
    payments = SubscriptionService().find_unreconciled_payments()
    for payment in payments:
        logger.error(
            "Completed payment has no subscription",
            extra={"reference": payment["reference"], "school_id": payment["school_id"]},
        )
    return len(payments)
