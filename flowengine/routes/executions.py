from typing import Optional

from fastapi import Depends, HTTPException, Query

from ..records import DEFAULT_PAGE, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, MIN_PAGE_SIZE, ExecutionRecordManager
from ..schemas import ExecutionOut, ExecutionsPage
from .deps import get_session_factory


def register(app):
    @app.get('/api/executions', response_model=ExecutionsPage)
    def list_executions(
        page: int = Query(DEFAULT_PAGE, ge=1),
        page_size: int = Query(DEFAULT_PAGE_SIZE, alias="pageSize", ge=MIN_PAGE_SIZE, le=MAX_PAGE_SIZE),
        workflow_id: Optional[str] = Query(None, alias="workflowId"),
        session_factory=Depends(get_session_factory),
    ):
        result = ExecutionRecordManager(session_factory).list_page(page, page_size, workflow_id=workflow_id)
        result["items"] = [ExecutionOut.model_validate(r) for r in result["items"]]
        return ExecutionsPage(**result)

    @app.get('/api/executions/{execution_id}', response_model=ExecutionOut)
    def get_execution(execution_id: str, session_factory=Depends(get_session_factory)):
        rec = ExecutionRecordManager(session_factory).get(execution_id)
        if rec is None:
            raise HTTPException(status_code=404, detail="Execution not found")
        return ExecutionOut.model_validate(rec)
