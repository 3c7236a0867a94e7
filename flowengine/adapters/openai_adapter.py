from .base import LLMAdapter

CHAT_COMPLETIONS_URL = "https://api.openai.com/v1/chat/completions"


class OpenAIAdapter(LLMAdapter):
    provider_name = "openai"
    default_model = "gpt-4o-mini"

    def _request(self, system, prompt):
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        return CHAT_COMPLETIONS_URL, headers, {"model": self.model, "messages": messages}

    def _parse(self, data):
        parts = []
        for c in data.get("choices") or []:
            if not isinstance(c, dict):
                continue
            msg = c.get("message") or {}
            # older/alternate shape: c['text']
            content = msg.get("content") if isinstance(msg, dict) else None
            content = content or c.get("text")
            if content:
                parts.append(content)
        return "\n".join(parts)
