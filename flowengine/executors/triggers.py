from ..models import NodeType
from ..node_schemas import TriggerConfig
from .base import NodeExecutor


class TriggerExecutor(NodeExecutor):
    """Entry nodes. Whatever started the run is already in the initial
    context, so the step simply checkpoints that context."""

    config_model = TriggerConfig
    step_slug = "trigger"

    async def execute(self, config, rendered, secret, *, node_id, context, step):
        return await step.run(f"{node_id}:{self.step_slug}", lambda: dict(context))

    def merge(self, context, config, payload):
        return payload


class InitialExecutor(TriggerExecutor):
    node_type = NodeType.INITIAL
    channel = "initial-execution"
    label = "Initial node"
    step_slug = "initial"


class ManualTriggerExecutor(TriggerExecutor):
    node_type = NodeType.MANUAL_TRIGGER
    channel = "manual-trigger-execution"
    label = "Manual trigger"
    step_slug = "manual-trigger"


class GoogleFormTriggerExecutor(TriggerExecutor):
    """Form responses arrive in the initial context under ``googleForm``."""

    node_type = NodeType.GOOGLE_FORM_TRIGGER
    channel = "google-form-trigger-execution"
    label = "Google Form trigger"
    step_slug = "google-form-trigger"
