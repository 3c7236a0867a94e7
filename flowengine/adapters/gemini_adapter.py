from .base import LLMAdapter

API_BASE = "https://generativelanguage.googleapis.com/v1beta"


class GeminiAdapter(LLMAdapter):
    provider_name = "gemini"
    default_model = "gemini-2.5-flash-lite"

    def _request(self, system, prompt):
        url = f"{API_BASE}/models/{self.model}:generateContent"
        # key in a header rather than the query string so it never shows up in error URLs
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}
        payload = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}
        return url, headers, payload

    def _parse(self, data):
        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        parts = ((candidates[0] or {}).get("content") or {}).get("parts") or []
        return "".join(p.get("text", "") for p in parts if isinstance(p, dict))
