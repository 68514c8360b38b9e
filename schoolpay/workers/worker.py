"""
Celery entry point:

    celery -A schoolpay.workers.worker.celery worker --beat
"""

from dotenv import load_dotenv

load_dotenv()

from schoolpay import create_app  # noqa: E402
from schoolpay.logging_config import configure_logging_for_worker  # noqa: E402
from schoolpay.workers.celery_app import init_celery  # noqa: E402

configure_logging_for_worker()
app = create_app()
celery = init_celery(app)
