"""Dependencies shared by route modules; override them in tests with
``app.dependency_overrides``."""
from ..database import get_session_factory  # noqa: F401
from ..tasks import dispatch_workflow_event


def get_dispatcher():
    return dispatch_workflow_event
