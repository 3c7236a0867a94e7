"""Background execution of workflow runs through Celery."""

from .celery_app import broker_configured, celery_app  # noqa: F401
from .workflow import dispatch_workflow_event, execute_workflow  # noqa: F401

__all__ = [
    "broker_configured",
    "celery_app",
    "dispatch_workflow_event",
    "execute_workflow",
]
