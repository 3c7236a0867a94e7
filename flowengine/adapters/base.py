import logging
from typing import Optional

import requests

from ..config import llm_request_timeout
from ..errors import TransientProviderError
from ..llm_utils import is_live_llm_enabled

logger = logging.getLogger(__name__)


class LLMAdapter:
    """Shared request/mock plumbing for the provider adapters.

    By default the adapter returns a mocked response for safety in tests and
    CI. Real calls happen only when llm_utils.is_live_llm_enabled says so
    for the provider.
    """

    provider_name = ""
    default_model = ""

    def __init__(self, api_key: str, model: Optional[str] = None, timeout: Optional[float] = None):
        self.api_key = api_key
        self.model = model or self.default_model
        self.timeout = timeout if timeout is not None else llm_request_timeout()

    def _estimate_tokens(self, text: str) -> int:
        # rough fallback used only for mocked responses
        if not text:
            return 0
        return max(int(len(text.split()) / 0.75), 1)

    def _mock(self, system: str, prompt: str) -> dict:
        logger.info("%s adapter: live LLM disabled via env; returning mock", self.provider_name)
        return {
            "text": f"[mock] {self.__class__.__name__} would respond to prompt: {prompt[:100]}",
            "meta": {"model": self.model, "mock": True,
                     "usage": {"prompt_tokens": self._estimate_tokens(system) + self._estimate_tokens(prompt)}},
        }

    def _request(self, system: str, prompt: str):
        """Return (url, headers, payload) for one call."""
        raise NotImplementedError

    def _parse(self, data: dict) -> str:
        raise NotImplementedError

    def generate(self, prompt: str, system: Optional[str] = None) -> dict:
        system = system or ""
        if not is_live_llm_enabled(self.provider_name):
            return self._mock(system, prompt)

        url, headers, payload = self._request(system, prompt)
        try:
            resp = requests.post(url, json=payload, headers=headers, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.HTTPError as e:
            status = getattr(e.response, "status_code", None)
            logger.warning("%s adapter: provider returned HTTP %s model=%s", self.provider_name, status, self.model)
            raise TransientProviderError(f"{self.provider_name} request failed with HTTP {status}") from e
        except (requests.RequestException, ValueError) as e:
            logger.warning("%s adapter: request failed model=%s: %s", self.provider_name, self.model, e.__class__.__name__)
            raise TransientProviderError(f"{self.provider_name} request failed: {e}") from e

        text = self._parse(data)
        logger.info("%s adapter: call succeeded model=%s", self.provider_name, self.model)
        return {"text": text, "meta": {"model": self.model, "usage": data.get("usage") or data.get("usageMetadata") or {}}}
