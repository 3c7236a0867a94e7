import asyncio

from ..adapters import AnthropicAdapter, GeminiAdapter, OpenAIAdapter
from ..models import NodeType
from ..node_schemas import AnthropicConfig, GeminiConfig, OpenAiConfig
from .base import NodeExecutor

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."


class AiExecutor(NodeExecutor):
    """Text generation through a model provider; payload is ``{"text": ...}``."""

    adapter_class = None
    step_slug = ""
    required_fields = (
        ("variable_name", "Variable name is missing"),
        ("credential_id", "Credential is required"),
        ("user_prompt", "User prompt is missing"),
    )
    template_fields = ("system_prompt", "user_prompt")
    credential_field = "credential_id"

    async def execute(self, config, rendered, secret, *, node_id, context, step):
        system = rendered.get("system_prompt") or DEFAULT_SYSTEM_PROMPT
        prompt = rendered["user_prompt"]
        adapter = self.adapter_class(api_key=secret, model=config.model)
        response = await step.run(
            f"{node_id}:{self.step_slug}-generate-text",
            lambda: asyncio.to_thread(adapter.generate, prompt, system),
        )
        return {"text": response.get("text") or ""}


class GeminiExecutor(AiExecutor):
    node_type = NodeType.GEMINI
    channel = "gemini-execution"
    label = "Gemini node"
    config_model = GeminiConfig
    adapter_class = GeminiAdapter
    step_slug = "gemini"


class OpenAiExecutor(AiExecutor):
    node_type = NodeType.OPENAI
    channel = "openai-execution"
    label = "OpenAI node"
    config_model = OpenAiConfig
    adapter_class = OpenAIAdapter
    step_slug = "openai"


class AnthropicExecutor(AiExecutor):
    node_type = NodeType.ANTHROPIC
    channel = "anthropic-execution"
    label = "Anthropic node"
    config_model = AnthropicConfig
    adapter_class = AnthropicAdapter
    step_slug = "anthropic"
