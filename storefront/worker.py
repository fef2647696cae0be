from celery import Celery
from celery.utils.log import get_task_logger

from .config import settings

logger = get_task_logger(__name__)

# Celery App Config
celery = Celery(__name__, broker=settings.CELERY_BROKER_URL, backend=settings.CELERY_BROKER_URL)
celery.conf.update(
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    task_ignore_result=True,
)


@celery.task(name="send_order_email")
def send_order_email(email: str, order_code: str, total: float):
    # Email delivery is simulated: the worker only logs the message
    logger.info("Sending confirmation to %s for order %s (total %.0f)", email, order_code, total)
    return True


@celery.task(name="send_order_status_email")
def send_order_status_email(email: str, order_code: str, status: str):
    logger.info("Sending status update to %s: order %s is now %s", email, order_code, status)
    return True
