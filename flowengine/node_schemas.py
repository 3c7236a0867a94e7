"""Configuration schemas for each node kind.

Fields are deliberately optional: the editor saves partially filled nodes,
and executors report missing required fields themselves so the error names
the field and reaches the status channel. Keys use the editor's camelCase.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import NodeType


class BaseNodeConfig(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class TriggerConfig(BaseNodeConfig):
    pass


class HttpRequestConfig(BaseNodeConfig):
    variable_name: Optional[str] = Field(None, alias="variableName")
    endpoint: Optional[str] = None
    method: Optional[str] = Field("GET")
    body: Optional[str] = None
    headers: Optional[Dict[str, Any]] = None


class AiConfig(BaseNodeConfig):
    variable_name: Optional[str] = Field(None, alias="variableName")
    credential_id: Optional[str] = Field(None, alias="credentialId")
    model: Optional[str] = None
    system_prompt: Optional[str] = Field(None, alias="systemPrompt")
    user_prompt: Optional[str] = Field(None, alias="userPrompt")


class GeminiConfig(AiConfig):
    pass


class OpenAiConfig(AiConfig):
    pass


class AnthropicConfig(AiConfig):
    pass


_NODE_SCHEMA_MAP = {
    NodeType.INITIAL: TriggerConfig,
    NodeType.MANUAL_TRIGGER: TriggerConfig,
    NodeType.GOOGLE_FORM_TRIGGER: TriggerConfig,
    NodeType.HTTP_REQUEST: HttpRequestConfig,
    NodeType.GEMINI: GeminiConfig,
    NodeType.OPENAI: OpenAiConfig,
    NodeType.ANTHROPIC: AnthropicConfig,
}


def get_node_json_schema(node_type) -> Dict[str, Any]:
    """Return a JSON Schema for the given node type, if known.

    Falls back to a permissive empty-object schema when unknown.
    """
    try:
        cls = _NODE_SCHEMA_MAP.get(NodeType(node_type))
    except ValueError:
        cls = None
    if not cls:
        return {"type": "object"}
    return cls.model_json_schema(by_alias=True)


__all__ = [
    "BaseNodeConfig",
    "TriggerConfig",
    "HttpRequestConfig",
    "AiConfig",
    "GeminiConfig",
    "OpenAiConfig",
    "AnthropicConfig",
    "get_node_json_schema",
]
