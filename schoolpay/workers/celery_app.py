import os

from celery import Celery
from celery.schedules import crontab

celery = Celery(
    "schoolpay",
    broker=os.getenv("CELERY_BROKER_URL", os.getenv("REDIS_URL", "redis://localhost:6379/0")),
    backend=os.getenv("CELERY_RESULT_BACKEND", os.getenv("REDIS_URL", "redis://localhost:6379/0")),
    include=["schoolpay.workers.tasks"],
)

celery.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
)

celery.conf.beat_schedule = {
    "expire-subscriptions-hourly": {
        "task": "schoolpay.workers.tasks.expire_subscriptions",
        "schedule": crontab(minute=0),
    },
    "audit-unreconciled-payments-hourly": {
        "task": "schoolpay.workers.tasks.audit_unreconciled_payments",
        "schedule": crontab(minute=30),
    },
}


def init_celery(app):
    celery.conf.update(
        broker_url=app.config.get("CELERY_BROKER_URL"),
        result_backend=app.config.get("CELERY_RESULT_BACKEND"),
    )

    class ContextTask(celery.Task):
        abstract = True

        def __call__(self, *args, **kwargs):
            with app.app_context():
                return super().__call__(*args, **kwargs)

    celery.Task = ContextTask
    return celery
