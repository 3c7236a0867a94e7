"""Node executors, one per NodeType, and the registry that resolves them."""
from .base import NodeExecutor
from .registry import EXECUTORS, get_executor

__all__ = ["NodeExecutor", "EXECUTORS", "get_executor"]
