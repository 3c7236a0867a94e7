"""Graph construction and ordering.

build_graph() validates a node/connection set once, when the graph is put
together. topological_sort() turns a graph into the single linear order a
run follows.
"""
import heapq
import logging
from typing import Iterable, List

from .errors import ConfigurationError, CyclicGraphError, DuplicateConnectionError
from .schemas import ConnectionSpec, Graph, NodeSpec

logger = logging.getLogger(__name__)


def _as_node(n) -> NodeSpec:
    return n if isinstance(n, NodeSpec) else NodeSpec.model_validate(n)


def _as_connection(c) -> ConnectionSpec:
    return c if isinstance(c, ConnectionSpec) else ConnectionSpec.model_validate(c)


def build_graph(nodes: Iterable, connections: Iterable = (), workflow_id=None) -> Graph:
    """Validate nodes and connections and return a Graph.

    Accepts NodeSpec/ConnectionSpec instances or plain dicts (camelCase or
    snake_case keys).

    Raises:
        ConfigurationError: duplicate node ids, or a connection naming a node
            that is not part of the graph.
        DuplicateConnectionError: two connections share the same
            (from_node_id, to_node_id, from_output, to_input) tuple.
    """
    node_list = [_as_node(n) for n in nodes]
    conn_list = [_as_connection(c) for c in connections]

    ids = set()
    for node in node_list:
        if node.id in ids:
            raise ConfigurationError(f"Duplicate node id '{node.id}'")
        ids.add(node.id)

    seen = set()
    for conn in conn_list:
        for end in (conn.from_node_id, conn.to_node_id):
            if end not in ids:
                raise ConfigurationError(f"Connection references unknown node '{end}'")
        key = conn.port_key
        if key in seen:
            raise DuplicateConnectionError(
                "Duplicate connection from '%s' (%s) to '%s' (%s)"
                % (conn.from_node_id, conn.from_output, conn.to_node_id, conn.to_input)
            )
        seen.add(key)

    return Graph(workflow_id=workflow_id, nodes=node_list, connections=conn_list)


def topological_sort(nodes: Iterable[NodeSpec], connections: Iterable[ConnectionSpec]) -> List[NodeSpec]:
    """Order nodes so every connection's source precedes its target.

    Kahn's algorithm. Among nodes that are ready at the same time the one with
    the smallest id goes first, so the same graph always sorts the same way.
    Connections that differ only by port count once: ordering depends on
    which nodes are linked, not on how many ports link them.

    Raises:
        CyclicGraphError: when some nodes can never become ready.
    """
    by_id = {}
    for node in nodes:
        by_id[node.id] = node

    in_degree = {node_id: 0 for node_id in by_id}
    successors = {node_id: set() for node_id in by_id}
    for conn in connections:
        src, dst = conn.from_node_id, conn.to_node_id
        if src not in by_id or dst not in by_id:
            # dangling edges are rejected by build_graph; ignore them here
            logger.warning("topological_sort ignoring dangling connection %s -> %s", src, dst)
            continue
        if dst in successors[src]:
            continue
        successors[src].add(dst)
        in_degree[dst] += 1

    ready = [node_id for node_id, deg in in_degree.items() if deg == 0]
    heapq.heapify(ready)

    order = []
    while ready:
        node_id = heapq.heappop(ready)
        order.append(by_id[node_id])
        for nxt in successors[node_id]:
            in_degree[nxt] -= 1
            if in_degree[nxt] == 0:
                heapq.heappush(ready, nxt)

    if len(order) != len(by_id):
        unresolved = sorted(node_id for node_id, deg in in_degree.items() if deg > 0)
        raise CyclicGraphError(
            "Workflow contains a cycle involving node(s): %s" % ", ".join(unresolved),
            unresolved=unresolved,
        )
    return order


def sort_graph(graph: Graph) -> List[NodeSpec]:
    return topological_sort(graph.nodes, graph.connections)
