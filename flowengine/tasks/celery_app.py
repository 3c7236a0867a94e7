import logging

from celery import Celery

from ..config import celery_broker_url

logger = logging.getLogger(__name__)

celery_app = Celery("flowengine")
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # a worker crash mid-run redelivers the event; completed steps replay
    task_acks_late=True,
)

_broker = celery_broker_url()
if _broker:
    celery_app.conf.broker_url = _broker


def broker_configured() -> bool:
    return bool(celery_broker_url())
