"""Celery task that runs one attempt of a workflow per delivery.

Retries go through Celery (``self.retry``) so every attempt of a run may land
on a different worker; the SQL step ledger lets a retried attempt skip the
steps that already completed. Once retries are exhausted the runner's
on-failure hook marks the execution record FAILED.
"""
import asyncio
import logging

from ..errors import is_retriable
from ..runner import build_runner
from ..schemas import TriggerEvent
from ..utils import redact_secrets
from .celery_app import broker_configured, celery_app

logger = logging.getLogger(__name__)

TASK_NAME = "flowengine.execute_workflow"


def _event_payload(event) -> dict:
    if isinstance(event, TriggerEvent):
        return event.model_dump(by_alias=True)
    return dict(event)


async def _run_attempt(runner, event):
    try:
        return await runner.run_attempt(event)
    finally:
        await runner.publisher.close()


@celery_app.task(name=TASK_NAME, bind=True)
def execute_workflow(self, event):
    runner = build_runner()
    try:
        return asyncio.run(_run_attempt(runner, event))
    except Exception as exc:
        trigger_event_id = (event or {}).get("triggerEventId")
        if not is_retriable(exc):
            logger.error("run %s failed permanently: %s", trigger_event_id, redact_secrets(str(exc)))
            raise
        policy = runner.retry_policy
        retries = self.request.retries or 0
        if retries >= policy.max_retries:
            logger.error("run %s giving up after %s attempts", trigger_event_id, retries + 1)
            runner.on_failure(event, exc)
            raise
        countdown = policy.delay(retries + 1)
        logger.info("run %s retrying in %.2fs (retry %s of %s)", trigger_event_id, countdown, retries + 1, policy.max_retries)
        raise self.retry(exc=exc, countdown=countdown, max_retries=policy.max_retries)


def run_workflow_inline(event) -> dict:
    """Run a workflow in the current process with the in-process retry loop.

    Used when no broker is configured. The outcome lands in the execution
    record, so a failed run is logged and reported rather than raised.
    """
    runner = build_runner()

    async def _go():
        try:
            return await runner.run(event)
        finally:
            await runner.publisher.close()

    try:
        return asyncio.run(_go())
    except Exception as exc:
        logger.exception("inline run %s failed", (event or {}).get("triggerEventId"))
        return {"status": "FAILED", "error": redact_secrets(str(exc))}


def dispatch_workflow_event(event, background_tasks=None) -> str:
    """Hand a trigger event to the configured executor.

    Returns how the run was scheduled: ``celery``, ``background`` or
    ``inline``.
    """
    payload = _event_payload(event)
    if broker_configured():
        try:
            execute_workflow.apply_async(args=(payload,))
            logger.info("scheduled %s trigger=%s", TASK_NAME, payload.get("triggerEventId"))
            return "celery"
        except Exception:
            logger.exception("celery dispatch failed for trigger %s; falling back to inline", payload.get("triggerEventId"))
    if background_tasks is not None:
        background_tasks.add_task(run_workflow_inline, payload)
        return "background"
    run_workflow_inline(payload)
    return "inline"
