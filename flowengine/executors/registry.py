"""Process-wide mapping from node type to executor.

The mapping is frozen at import time and must cover every NodeType member;
adding a node kind without an executor fails on import rather than at run
time.
"""
from types import MappingProxyType
from typing import Mapping

from ..errors import UnknownNodeTypeError
from ..models import NodeType
from .ai import AnthropicExecutor, GeminiExecutor, OpenAiExecutor
from .base import NodeExecutor
from .http_request import HttpRequestExecutor
from .triggers import GoogleFormTriggerExecutor, InitialExecutor, ManualTriggerExecutor

_EXECUTOR_CLASSES = (
    InitialExecutor,
    ManualTriggerExecutor,
    GoogleFormTriggerExecutor,
    HttpRequestExecutor,
    GeminiExecutor,
    OpenAiExecutor,
    AnthropicExecutor,
)

EXECUTORS: Mapping[NodeType, NodeExecutor] = MappingProxyType({cls.node_type: cls() for cls in _EXECUTOR_CLASSES})

_missing = [t.value for t in NodeType if t not in EXECUTORS]
if _missing:
    raise RuntimeError(f"No executor registered for node type(s): {', '.join(_missing)}")


def get_executor(node_type) -> NodeExecutor:
    """Return the executor for node_type (a NodeType or its string value).

    Raises:
        UnknownNodeTypeError: node_type is not a known kind.
    """
    try:
        key = NodeType(node_type)
    except ValueError:
        raise UnknownNodeTypeError(f"No executor found for node type: {node_type}") from None
    return EXECUTORS[key]
