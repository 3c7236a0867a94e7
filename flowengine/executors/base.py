"""Shared executor contract.

Every node kind runs the same sequence; only ``execute`` (the unit of work)
and the payload it returns differ:

1. publish ``loading``
2. parse and validate the node config (missing field -> ConfigurationError)
3. resolve the referenced credential, if the kind uses one
4. render template fields against the incoming context
5. ``execute``: the kind's work, wrapped in a durable step
6. publish ``success`` and return the context with the payload merged in

Any failure in 2-5 publishes ``error`` and re-raises with its retriable /
non-retriable classification intact.
"""
import logging
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError

from ..errors import ConfigurationError, CredentialNotFoundError, WorkflowError
from ..models import NodeType
from ..node_schemas import BaseNodeConfig
from ..status import ERROR, LOADING, SUCCESS
from ..templating import TemplateRenderError, render_template

logger = logging.getLogger(__name__)


class NodeExecutor:
    node_type: NodeType
    channel: str = ""
    label: str = ""
    config_model = BaseNodeConfig
    # (attribute, message) pairs checked in order
    required_fields: Tuple[Tuple[str, str], ...] = ()
    template_fields: Tuple[str, ...] = ()
    credential_field: Optional[str] = None

    async def __call__(self, data, node_id, context, step, publisher, credentials=None):
        await publisher.status(self.channel, node_id, LOADING)
        try:
            config = self.parse(data)
            self.validate(config)
            secret = self.resolve_credential(config, credentials)
            rendered = self.render(config, context)
            payload = await self.execute(config, rendered, secret, node_id=node_id, context=context, step=step)
            result = self.merge(context, config, payload)
        except Exception as e:
            if isinstance(e, WorkflowError) and e.node_id is None:
                e.node_id = node_id
            logger.info("%s %s failed: %s", self.label, node_id, e.__class__.__name__)
            await publisher.status(self.channel, node_id, ERROR)
            raise
        await publisher.status(self.channel, node_id, SUCCESS)
        return result

    def parse(self, data):
        try:
            return self.config_model.model_validate(data or {})
        except ValidationError as e:
            raise ConfigurationError(f"{self.label}: Invalid configuration: {e.errors()[0].get('msg')}") from e

    def validate(self, config) -> None:
        for attr, message in self.required_fields:
            value = getattr(config, attr, None)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ConfigurationError(f"{self.label}: {message}")

    def resolve_credential(self, config, credentials) -> Optional[str]:
        if not self.credential_field:
            return None
        credential_id = getattr(config, self.credential_field)
        if credentials is None:
            raise CredentialNotFoundError(f"{self.label}: No credential source configured")
        try:
            return credentials.resolve(credential_id)
        except CredentialNotFoundError as e:
            raise CredentialNotFoundError(f"{self.label}: Credential not found") from e

    def render(self, config, context) -> Dict[str, Any]:
        rendered = {}
        for field in self.template_fields:
            template = getattr(config, field, None)
            if template is None:
                continue
            try:
                rendered[field] = render_template(template, context)
            except TemplateRenderError as e:
                raise ConfigurationError(f"{self.label}: Could not render {field}: {e}") from e
        return rendered

    async def execute(self, config, rendered, secret, *, node_id, context, step):
        raise NotImplementedError

    def merge(self, context, config, payload):
        return {**context, config.variable_name: payload}

    def __repr__(self):
        return f"{self.__class__.__name__}(node_type={self.node_type.value})"
