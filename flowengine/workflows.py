"""Graph source: loads and stores a workflow's nodes and connections."""
import logging
from typing import Optional

from . import models
from .errors import GraphNotFoundError
from .graph import build_graph
from .schemas import ConnectionSpec, Graph, NodeSpec

logger = logging.getLogger(__name__)


class SqlGraphSource:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    def create_workflow(self, name: str, graph: Optional[Graph] = None) -> str:
        db = self.session_factory()
        try:
            wf = models.Workflow(name=name)
            db.add(wf)
            db.commit()
            db.refresh(wf)
            workflow_id = wf.id
        finally:
            db.close()
        if graph is not None:
            self.save_graph(workflow_id, graph)
        return workflow_id

    def save_graph(self, workflow_id: str, graph: Graph) -> None:
        """Replace the stored nodes and connections of a workflow.

        The graph is re-validated first so duplicate connections are rejected
        before anything is written.
        """
        graph = build_graph(graph.nodes, graph.connections, workflow_id=workflow_id)
        db = self.session_factory()
        try:
            wf = db.query(models.Workflow).filter(models.Workflow.id == workflow_id).first()
            if wf is None:
                raise GraphNotFoundError(f"Workflow '{workflow_id}' not found")
            db.query(models.Connection).filter(models.Connection.workflow_id == workflow_id).delete()
            db.query(models.Node).filter(models.Node.workflow_id == workflow_id).delete()
            for node in graph.nodes:
                db.add(models.Node(
                    id=node.id,
                    workflow_id=workflow_id,
                    name=node.name or node.type,
                    type=node.type,
                    position=node.position,
                    data=dict(node.data),
                    credential_id=node.credential_id,
                ))
            db.flush()
            for conn in graph.connections:
                row = models.Connection(
                    workflow_id=workflow_id,
                    from_node_id=conn.from_node_id,
                    to_node_id=conn.to_node_id,
                    from_output=conn.from_output,
                    to_input=conn.to_input,
                )
                if conn.id:
                    row.id = conn.id
                db.add(row)
            db.commit()
            logger.info("saved workflow %s nodes=%s connections=%s", workflow_id, len(graph.nodes), len(graph.connections))
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def load_graph(self, workflow_id: str) -> Graph:
        """Return the workflow's graph.

        Raises:
            GraphNotFoundError: the workflow does not exist.
        """
        db = self.session_factory()
        try:
            wf = db.query(models.Workflow).filter(models.Workflow.id == workflow_id).first()
            if wf is None:
                raise GraphNotFoundError(f"Workflow '{workflow_id}' not found")
            nodes = [
                NodeSpec(
                    id=n.id,
                    type=n.type,
                    name=n.name,
                    position=n.position,
                    data=n.data or {},
                    credential_id=n.credential_id,
                )
                for n in wf.nodes
            ]
            connections = [
                ConnectionSpec(
                    id=c.id,
                    from_node_id=c.from_node_id,
                    to_node_id=c.to_node_id,
                    from_output=c.from_output,
                    to_input=c.to_input,
                )
                for c in wf.connections
            ]
        finally:
            db.close()
        return build_graph(nodes, connections, workflow_id=workflow_id)
