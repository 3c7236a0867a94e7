import logging
import uuid
from typing import Optional

from fastapi import BackgroundTasks, Body, Depends, HTTPException, Query

from ..errors import GraphNotFoundError
from ..schemas import ExecuteWorkflowRequest, TriggerEvent
from ..workflows import SqlGraphSource
from .deps import get_dispatcher, get_session_factory

logger = logging.getLogger(__name__)


def _ensure_workflow(session_factory, workflow_id):
    try:
        SqlGraphSource(session_factory).load_graph(workflow_id)
    except GraphNotFoundError:
        raise HTTPException(status_code=404, detail="Workflow not found")


def _accepted(event: TriggerEvent, mode: str) -> dict:
    return {"workflowId": event.workflow_id, "triggerEventId": event.trigger_event_id, "dispatch": mode}


def register(app):
    @app.post('/api/workflows/{workflow_id}/execute', status_code=202)
    def execute_workflow(
        workflow_id: str,
        background_tasks: BackgroundTasks,
        body: Optional[ExecuteWorkflowRequest] = Body(None),
        session_factory=Depends(get_session_factory),
        dispatch=Depends(get_dispatcher),
    ):
        """Manual trigger: start a run and return its trigger event id."""
        _ensure_workflow(session_factory, workflow_id)
        event = TriggerEvent(
            workflow_id=workflow_id,
            trigger_event_id=uuid.uuid4().hex,
            initial_context=(body.initial_data if body else {}),
        )
        mode = dispatch(event, background_tasks)
        logger.info("manual trigger workflow=%s trigger=%s dispatch=%s", workflow_id, event.trigger_event_id, mode)
        return _accepted(event, mode)

    @app.post('/api/webhooks/google-form', status_code=202)
    def google_form_webhook(
        background_tasks: BackgroundTasks,
        payload: Optional[dict] = Body(None),
        workflow_id: Optional[str] = Query(None, alias="workflowId"),
        session_factory=Depends(get_session_factory),
        dispatch=Depends(get_dispatcher),
    ):
        """Google Form trigger. Redelivered submissions (same responseId)
        map to the same run."""
        if not workflow_id:
            raise HTTPException(status_code=400, detail="Missing required query parameter: workflowId")
        _ensure_workflow(session_factory, workflow_id)
        payload = payload or {}
        response_id = payload.get("responseId")
        trigger_event_id = f"google-form:{workflow_id}:{response_id}" if response_id else uuid.uuid4().hex
        event = TriggerEvent(
            workflow_id=workflow_id,
            trigger_event_id=trigger_event_id,
            initial_context={"googleForm": payload},
        )
        mode = dispatch(event, background_tasks)
        logger.info("google form trigger workflow=%s trigger=%s dispatch=%s", workflow_id, trigger_event_id, mode)
        return _accepted(event, mode)
