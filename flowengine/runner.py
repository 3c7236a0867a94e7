"""Workflow runner: the entry point that executes one run of a workflow.

One attempt walks LOADING_GRAPH -> SORTING -> CREATING_RECORD ->
EXECUTING_NODES -> FINALIZING_SUCCESS | FINALIZING_FAILURE. Nodes execute
strictly one after another in the order computed at the start of the run;
each executor receives the context produced by the previous one.

Retry happens at whole-run granularity. A retriable failure aborts the
attempt and the next attempt starts from the top, but the durable step
ledger makes it skip every step that already completed, so retries resume
rather than repeat. Non-retriable failures finalize the record as FAILED
immediately.
"""
import asyncio
import enum
import logging
from typing import Optional

from . import config
from .credentials import SqlCredentialSource
from .errors import MissingTriggerEventError, UnknownNodeTypeError, is_retriable
from .executors import get_executor
from .graph import sort_graph
from .models import ExecutionStatus
from .records import ExecutionRecordManager
from .schemas import NodeSpec, TriggerEvent
from .status import ERROR, WORKFLOW_CHANNEL, StatusPublisher, get_default_publisher
from .steps import SqlStepLedger, StepLedger, StepRuntime
from .utils import redact_secrets
from .workflows import SqlGraphSource

logger = logging.getLogger(__name__)

PREPARE_STEP = "prepare-workflow"


class RunPhase(str, enum.Enum):
    LOADING_GRAPH = "LOADING_GRAPH"
    SORTING = "SORTING"
    CREATING_RECORD = "CREATING_RECORD"
    EXECUTING_NODES = "EXECUTING_NODES"
    FINALIZING_SUCCESS = "FINALIZING_SUCCESS"
    FINALIZING_FAILURE = "FINALIZING_FAILURE"


class RetryPolicy:
    """Bounded whole-run retries with exponential backoff."""

    def __init__(self, max_retries: Optional[int] = None, backoff: Optional[float] = None):
        self.max_retries = max_retries if max_retries is not None else config.max_retries()
        self.backoff = backoff if backoff is not None else config.retry_backoff()

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        return self.backoff * (2 ** max(0, attempt - 1))


class WorkflowRunner:
    def __init__(
        self,
        graph_source,
        records: ExecutionRecordManager,
        ledger: StepLedger,
        publisher: StatusPublisher,
        credentials=None,
        retry_policy: Optional[RetryPolicy] = None,
        sleep=asyncio.sleep,
    ):
        self.graph_source = graph_source
        self.records = records
        self.ledger = ledger
        self.publisher = publisher
        self.credentials = credentials
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep

    def _enter(self, phase: RunPhase, event: TriggerEvent) -> None:
        logger.info("run %s workflow=%s phase=%s", event.trigger_event_id, event.workflow_id, phase.value)

    @staticmethod
    def _coerce_event(event) -> TriggerEvent:
        event_obj = event if isinstance(event, TriggerEvent) else TriggerEvent.model_validate(event or {})
        if not event_obj.trigger_event_id:
            raise MissingTriggerEventError("Trigger event id is missing")
        if not event_obj.workflow_id:
            raise MissingTriggerEventError("Workflow ID is missing")
        return event_obj

    async def _prepare(self, event: TriggerEvent, step: StepRuntime):
        def _load_and_sort():
            self._enter(RunPhase.LOADING_GRAPH, event)
            graph = self.graph_source.load_graph(event.workflow_id)
            self._enter(RunPhase.SORTING, event)
            return [n.model_dump(by_alias=True) for n in sort_graph(graph)]

        # checkpointed so every attempt of the run walks the same order
        ordered = await step.run(PREPARE_STEP, _load_and_sort)
        return [NodeSpec.model_validate(n) for n in ordered]

    async def run_attempt(self, event) -> dict:
        """Execute one attempt of a run.

        Returns ``{"workflow_id", "execution_id", "status", "result"}``.
        Raises the failure after finalizing the record when it is
        non-retriable; retriable failures leave the record RUNNING for the
        retry policy to decide.
        """
        event = self._coerce_event(event)
        step = StepRuntime(self.ledger, event.trigger_event_id)
        order = await self._prepare(event, step)

        self._enter(RunPhase.CREATING_RECORD, event)
        record = self.records.begin(event.workflow_id, event.trigger_event_id)
        if record.status != ExecutionStatus.RUNNING.value:
            logger.info("run %s already finished with %s; not executing again", event.trigger_event_id, record.status)
            return self._result(event, record.id, record.status, record.output)

        self._enter(RunPhase.EXECUTING_NODES, event)
        context = dict(event.initial_context)
        try:
            for node in order:
                try:
                    executor = get_executor(node.type)
                except UnknownNodeTypeError as e:
                    e.node_id = node.id
                    await self.publisher.status(WORKFLOW_CHANNEL, node.id, ERROR)
                    raise
                data = dict(node.data)
                if node.credential_id and not data.get("credentialId"):
                    data["credentialId"] = node.credential_id
                logger.debug("run %s executing node %s (%s)", event.trigger_event_id, node.id, node.type)
                context = await executor(data, node.id, context, step, self.publisher, credentials=self.credentials)
        except Exception as e:
            node_id = getattr(e, "node_id", None)
            if is_retriable(e):
                logger.warning("run %s attempt failed at node %s with retriable %s: %s",
                               event.trigger_event_id, node_id, e.__class__.__name__, redact_secrets(str(e)))
            else:
                self._enter(RunPhase.FINALIZING_FAILURE, event)
                logger.error("run %s failed at node %s: %s", event.trigger_event_id, node_id, redact_secrets(str(e)))
                self.records.fail(record.id, e)
            raise

        self._enter(RunPhase.FINALIZING_SUCCESS, event)
        self.records.complete(record.id, context)
        return self._result(event, record.id, ExecutionStatus.SUCCESS.value, context)

    async def run(self, event) -> dict:
        """Execute a run, re-attempting it on retriable failures.

        After max_retries retries the on-failure hook marks the record FAILED
        and the last error is raised.
        """
        event = self._coerce_event(event)
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self.run_attempt(event)
            except Exception as e:
                if not is_retriable(e):
                    raise
                if attempt >= self.retry_policy.max_attempts:
                    logger.error("run %s giving up after %s attempts", event.trigger_event_id, attempt)
                    self.on_failure(event, e)
                    raise
                delay = self.retry_policy.delay(attempt)
                logger.info("run %s retrying in %.2fs (attempt %s of %s)",
                            event.trigger_event_id, delay, attempt + 1, self.retry_policy.max_attempts)
                await self._sleep(delay)

    def on_failure(self, event, error) -> None:
        """Finalize the record once retries are exhausted."""
        event = self._coerce_event(event)
        self._enter(RunPhase.FINALIZING_FAILURE, event)
        self.records.fail_by_trigger(event.trigger_event_id, error)

    @staticmethod
    def _result(event, execution_id, status, context):
        return {
            "workflow_id": event.workflow_id,
            "execution_id": execution_id,
            "status": status,
            "result": context,
        }


def build_runner(session_factory=None, publisher: Optional[StatusPublisher] = None,
                 ledger: Optional[StepLedger] = None, retry_policy: Optional[RetryPolicy] = None) -> WorkflowRunner:
    """Runner wired to the relational store, with a persistent step ledger."""
    if session_factory is None:
        from .database import SessionLocal

        session_factory = SessionLocal
    return WorkflowRunner(
        graph_source=SqlGraphSource(session_factory),
        records=ExecutionRecordManager(session_factory),
        ledger=ledger or SqlStepLedger(session_factory),
        publisher=publisher or get_default_publisher(),
        credentials=SqlCredentialSource(session_factory),
        retry_policy=retry_policy,
    )


async def execute_workflow(event, session_factory=None) -> dict:
    """Run a workflow end to end with the default wiring and retry policy."""
    runner = build_runner(session_factory)
    try:
        return await runner.run(event)
    finally:
        await runner.publisher.close()
