from .base import LLMAdapter

MESSAGES_URL = "https://api.anthropic.com/v1/messages"
API_VERSION = "2023-06-01"


class AnthropicAdapter(LLMAdapter):
    provider_name = "anthropic"
    default_model = "claude-3-5-haiku-latest"
    max_tokens = 1024

    def _request(self, system, prompt):
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": API_VERSION,
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            payload["system"] = system
        return MESSAGES_URL, headers, payload

    def _parse(self, data):
        blocks = data.get("content") or []
        return "".join(b.get("text", "") for b in blocks if isinstance(b, dict) and b.get("type") == "text")
