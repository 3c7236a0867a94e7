"""Error taxonomy for workflow runs.

Every engine error carries a ``retriable`` flag. The runner and the retry
policy only look at that flag; they never interpret node-specific errors.
"""


class WorkflowError(Exception):
    """Base class for engine errors."""

    retriable = False

    def __init__(self, message, node_id=None):
        super().__init__(message)
        self.message = message
        self.node_id = node_id


class NonRetriableError(WorkflowError):
    retriable = False


class ConfigurationError(NonRetriableError):
    """A node is missing a required field or has an invalid value."""


class DuplicateConnectionError(ConfigurationError):
    """Two connections share (from_node_id, to_node_id, from_output, to_input)."""


class CredentialNotFoundError(NonRetriableError):
    pass


class UnknownNodeTypeError(NonRetriableError):
    """No executor is registered for a node type (deployment skew)."""


class CyclicGraphError(NonRetriableError):
    def __init__(self, message, unresolved=None):
        super().__init__(message)
        self.unresolved = list(unresolved or [])


class GraphNotFoundError(NonRetriableError):
    pass


class MissingTriggerEventError(NonRetriableError):
    pass


class TransientProviderError(WorkflowError):
    """Network, timeout or provider-side failure; the run may be retried."""

    retriable = True


class ExecutionStateError(RuntimeError):
    """An execution record was asked to leave a terminal state."""


def is_retriable(exc: BaseException) -> bool:
    """Classify an exception for the run-level retry policy.

    Engine errors decide for themselves. Anything else (an unexpected bug or a
    library error that escaped classification) is treated as transient.
    """
    if isinstance(exc, WorkflowError):
        return exc.retriable
    return True
