from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class NodeSpec(BaseModel):
    """One node of a workflow graph as the engine sees it."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True, frozen=True)

    id: str
    # plain string so unknown kinds surface from the executor registry
    type: str
    name: str = ""
    position: Optional[Any] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    credential_id: Optional[str] = Field(None, alias="credentialId")

    @field_validator("type", mode="before")
    @classmethod
    def _enum_value(cls, v):
        return v.value if isinstance(v, Enum) else v


class ConnectionSpec(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True, frozen=True)

    id: Optional[str] = None
    from_node_id: str = Field(..., alias="fromNodeId")
    to_node_id: str = Field(..., alias="toNodeId")
    from_output: str = Field("main", alias="fromOutput")
    to_input: str = Field("main", alias="toInput")

    @property
    def port_key(self):
        return (self.from_node_id, self.to_node_id, self.from_output, self.to_input)


class Graph(BaseModel):
    """Nodes and connections of one workflow.

    Build instances with flowengine.graph.build_graph so the connection
    uniqueness and node reference checks run.
    """

    model_config = ConfigDict(frozen=True)

    workflow_id: Optional[str] = None
    nodes: List[NodeSpec] = Field(default_factory=list)
    connections: List[ConnectionSpec] = Field(default_factory=list)


class TriggerEvent(BaseModel):
    """Inbound event that starts a run."""

    model_config = ConfigDict(populate_by_name=True)

    workflow_id: Optional[str] = Field(None, alias="workflowId")
    trigger_event_id: Optional[str] = Field(None, alias="triggerEventId")
    initial_context: Dict[str, Any] = Field(default_factory=dict, alias="initialContext")


class StatusEvent(BaseModel):
    node_id: str = Field(..., alias="nodeId")
    status: Literal["loading", "success", "error"]

    model_config = ConfigDict(populate_by_name=True)


class ExecuteWorkflowRequest(BaseModel):
    initial_data: Dict[str, Any] = Field(default_factory=dict, alias="initialData")

    model_config = ConfigDict(populate_by_name=True)


class ExecutionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    workflow_id: str
    trigger_event_id: str
    status: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    output: Optional[Any] = None
    error: Optional[str] = None
    error_stack: Optional[str] = None
    attempts: int = 0


class ExecutionsPage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[ExecutionOut]
    page: int
    page_size: int = Field(..., alias="pageSize")
    total_count: int = Field(..., alias="totalCount")
    total_pages: int = Field(..., alias="totalPages")
    has_next_page: bool = Field(..., alias="hasNextPage")
    has_previous_page: bool = Field(..., alias="hasPreviousPage")
