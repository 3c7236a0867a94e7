"""Durable step runtime.

Executors wrap every side-effecting operation in ``await step.run(name, fn)``.
The first time a step completes its result is written to a ledger keyed by
(run_key, step name); any later call with the same name in the same run (in
this attempt or a retried one) returns the recorded result without calling
``fn`` again. ``step.sleep`` is the only other suspension point and is
durable the same way: the wake-up time is recorded before waiting.

The run key is the trigger event id, which every attempt of a run shares.
Recorded results must be JSON-serializable when the SQL ledger is used.
"""
import asyncio
import copy
import inspect
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from sqlalchemy.exc import IntegrityError

from . import models

logger = logging.getLogger(__name__)

_MISSING = object()

_SLEEP_KEY = "__sleep_until__"


class StepLedger:
    """Key-value store of completed step results, scoped by run key."""

    def get(self, run_key: str, step_name: str, default=_MISSING):
        raise NotImplementedError

    def put(self, run_key: str, step_name: str, result: Any) -> Any:
        """Record result; if another writer got there first, return theirs."""
        raise NotImplementedError

    def clear(self, run_key: str) -> None:
        raise NotImplementedError


class InMemoryStepLedger(StepLedger):
    """Ledger held in process memory; enough for in-process retries."""

    def __init__(self):
        self._results = {}

    def get(self, run_key, step_name, default=_MISSING):
        try:
            return copy.deepcopy(self._results[(run_key, step_name)])
        except KeyError:
            return default

    def put(self, run_key, step_name, result):
        key = (run_key, step_name)
        if key not in self._results:
            self._results[key] = copy.deepcopy(result)
        return copy.deepcopy(self._results[key])

    def clear(self, run_key):
        for key in [k for k in self._results if k[0] == run_key]:
            del self._results[key]

    def __len__(self):
        return len(self._results)


class SqlStepLedger(StepLedger):
    """Ledger persisted in the step_results table.

    Needed when attempts of one run can land on different processes, as with
    Celery retries.
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def get(self, run_key, step_name, default=_MISSING):
        db = self.session_factory()
        try:
            row = (
                db.query(models.StepResult)
                .filter(models.StepResult.run_key == run_key, models.StepResult.step_name == step_name)
                .first()
            )
            if row is None:
                return default
            return row.result
        finally:
            db.close()

    def put(self, run_key, step_name, result):
        db = self.session_factory()
        try:
            db.add(models.StepResult(run_key=run_key, step_name=step_name, result=result))
            db.commit()
            return result
        except IntegrityError:
            db.rollback()
            logger.info("step %s for run %s already recorded; keeping the first result", step_name, run_key)
        finally:
            db.close()
        return self.get(run_key, step_name)

    def clear(self, run_key):
        db = self.session_factory()
        try:
            db.query(models.StepResult).filter(models.StepResult.run_key == run_key).delete()
            db.commit()
        finally:
            db.close()


class StepRuntime:
    """Per-run handle executors use for checkpointed work and durable sleeps."""

    def __init__(self, ledger: StepLedger, run_key: str, clock: Optional[Callable[[], datetime]] = None):
        self.ledger = ledger
        self.run_key = run_key
        self._clock = clock or datetime.utcnow
        self.executed = []
        self.replayed = []

    async def run(self, step_name: str, fn: Callable[[], Any]) -> Any:
        """Execute fn once per run and return its (recorded) result.

        fn may be a plain callable or a coroutine function; blocking work
        should be handed to a thread by the caller (asyncio.to_thread) so the
        event loop stays free for other runs.
        """
        recorded = self.ledger.get(self.run_key, step_name, _MISSING)
        if recorded is not _MISSING:
            logger.debug("step %s replayed for run %s", step_name, self.run_key)
            self.replayed.append(step_name)
            return recorded

        result = fn()
        if inspect.isawaitable(result):
            result = await result
        self.executed.append(step_name)
        logger.debug("step %s completed for run %s", step_name, self.run_key)
        return self.ledger.put(self.run_key, step_name, result)

    async def sleep(self, step_name: str, duration) -> None:
        """Suspend this run for duration (seconds or timedelta) without
        blocking other runs.

        A retried attempt waits only for whatever is left of the original
        sleep, and skips it entirely once it has elapsed.
        """
        seconds = duration.total_seconds() if isinstance(duration, timedelta) else float(duration)
        recorded = self.ledger.get(self.run_key, step_name, _MISSING)
        if isinstance(recorded, dict) and recorded.get(_SLEEP_KEY):
            wake_at = datetime.fromisoformat(recorded[_SLEEP_KEY])
            self.replayed.append(step_name)
        elif recorded is not _MISSING:
            raise ValueError(f"step name '{step_name}' is already used by a non-sleep step")
        else:
            wake_at = self._clock() + timedelta(seconds=max(0.0, seconds))
            stored = self.ledger.put(self.run_key, step_name, {_SLEEP_KEY: wake_at.isoformat()})
            wake_at = datetime.fromisoformat(stored[_SLEEP_KEY])
            self.executed.append(step_name)

        remaining = (wake_at - self._clock()).total_seconds()
        if remaining > 0:
            logger.info("run %s sleeping %.3fs at step %s", self.run_key, remaining, step_name)
            await asyncio.sleep(remaining)
