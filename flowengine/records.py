"""Execution record lifecycle: RUNNING -> SUCCESS | FAILED, nothing after."""
import logging
import math
import traceback
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError

from . import models
from .errors import ExecutionStateError
from .models import ExecutionStatus
from .utils import redact_secrets

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 5
MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 100


def _format_error(error):
    if isinstance(error, BaseException):
        message = str(error) or error.__class__.__name__
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    else:
        message, stack = str(error), None
    return redact_secrets(message), (redact_secrets(stack) if stack else None)


class ExecutionRecordManager:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    def begin(self, workflow_id: str, trigger_event_id: str) -> models.Execution:
        """Return the RUNNING record for trigger_event_id, creating it if needed.

        Every attempt of a run calls begin with the same trigger event id; the
        existing record is reused and its attempt counter incremented. The
        returned record may already be terminal when a duplicate event
        arrives after the run finished; callers check ``status``.
        """
        db = self.session_factory()
        try:
            rec = self._by_trigger(db, trigger_event_id)
            if rec is None:
                rec = models.Execution(
                    workflow_id=workflow_id,
                    trigger_event_id=trigger_event_id,
                    status=ExecutionStatus.RUNNING.value,
                    started_at=datetime.utcnow(),
                    attempts=0,
                )
                db.add(rec)
                try:
                    db.flush()
                except IntegrityError:
                    # a concurrent delivery of the same event created it first
                    db.rollback()
                    rec = self._by_trigger(db, trigger_event_id)
            if rec.status == ExecutionStatus.RUNNING.value:
                rec.attempts = (rec.attempts or 0) + 1
            db.commit()
            db.refresh(rec)
            logger.info("execution %s for workflow %s trigger=%s status=%s attempt=%s",
                        rec.id, workflow_id, trigger_event_id, rec.status, rec.attempts)
            db.expunge(rec)
            return rec
        finally:
            db.close()

    def complete(self, record_id: str, output) -> models.Execution:
        def _apply(rec):
            rec.status = ExecutionStatus.SUCCESS.value
            rec.output = output
        return self._finish(record_id, _apply)

    def fail(self, record_id: str, error) -> models.Execution:
        message, stack = _format_error(error)

        def _apply(rec):
            rec.status = ExecutionStatus.FAILED.value
            rec.error = message
            rec.error_stack = stack
        return self._finish(record_id, _apply)

    def fail_by_trigger(self, trigger_event_id: str, error) -> Optional[models.Execution]:
        """On-failure hook once retries are exhausted.

        Returns None when no record exists (the run failed before creating
        one) or when it is already terminal.
        """
        rec = self.get_by_trigger(trigger_event_id)
        if rec is None or rec.status != ExecutionStatus.RUNNING.value:
            return None
        return self.fail(rec.id, error)

    def _finish(self, record_id, apply):
        db = self.session_factory()
        try:
            rec = db.query(models.Execution).filter(models.Execution.id == record_id).first()
            if rec is None:
                raise ExecutionStateError(f"Execution '{record_id}' not found")
            if rec.status != ExecutionStatus.RUNNING.value:
                raise ExecutionStateError(f"Execution '{record_id}' is already {rec.status}")
            apply(rec)
            rec.completed_at = datetime.utcnow()
            db.commit()
            db.refresh(rec)
            logger.info("execution %s finished status=%s", rec.id, rec.status)
            db.expunge(rec)
            return rec
        finally:
            db.close()

    @staticmethod
    def _by_trigger(db, trigger_event_id):
        return (
            db.query(models.Execution)
            .filter(models.Execution.trigger_event_id == trigger_event_id)
            .first()
        )

    def get(self, record_id: str) -> Optional[models.Execution]:
        db = self.session_factory()
        try:
            rec = db.query(models.Execution).filter(models.Execution.id == record_id).first()
            if rec is not None:
                db.expunge(rec)
            return rec
        finally:
            db.close()

    def get_by_trigger(self, trigger_event_id: str) -> Optional[models.Execution]:
        db = self.session_factory()
        try:
            rec = self._by_trigger(db, trigger_event_id)
            if rec is not None:
                db.expunge(rec)
            return rec
        finally:
            db.close()

    def list_page(self, page: int = DEFAULT_PAGE, page_size: int = DEFAULT_PAGE_SIZE, workflow_id: Optional[str] = None) -> dict:
        """Newest-first page of executions plus paging metadata."""
        page = max(1, int(page))
        page_size = min(MAX_PAGE_SIZE, max(MIN_PAGE_SIZE, int(page_size)))
        db = self.session_factory()
        try:
            q = db.query(models.Execution)
            if workflow_id:
                q = q.filter(models.Execution.workflow_id == workflow_id)
            total = q.count()
            items = (
                q.order_by(models.Execution.started_at.desc(), models.Execution.id.desc())
                .limit(page_size)
                .offset((page - 1) * page_size)
                .all()
            )
            for it in items:
                db.expunge(it)
        finally:
            db.close()
        total_pages = math.ceil(total / page_size) if total else 0
        return {
            "items": items,
            "page": page,
            "page_size": page_size,
            "total_count": total,
            "total_pages": total_pages,
            "has_next_page": page < total_pages,
            "has_previous_page": page > 1,
        }
