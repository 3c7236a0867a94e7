import logging
from typing import Optional

from .config import _env_bool

logger = logging.getLogger(__name__)

_PROVIDER_FLAGS = {
    "gemini": "ENABLE_GEMINI",
    "openai": "ENABLE_OPENAI",
    "anthropic": "ENABLE_ANTHROPIC",
}


def is_live_llm_enabled(provider_name: Optional[str] = None) -> bool:
    """Return whether live model calls are enabled.

    Priority:
    - Global opt-in via ENABLE_LIVE_LLM or LIVE_LLM
    - Provider-specific opt-in (ENABLE_GEMINI, ENABLE_OPENAI, ENABLE_ANTHROPIC)

    Adapters consult this one helper so the guard stays consistent; with
    live calls disabled they return a mocked response instead of calling out.
    """
    global_flag = _env_bool("ENABLE_LIVE_LLM") or _env_bool("LIVE_LLM")
    logger.debug("is_live_llm_enabled: global_flag=%s provider_name=%s", global_flag, provider_name)
    if global_flag:
        return True

    if not provider_name:
        return False

    flag = _PROVIDER_FLAGS.get(provider_name.strip().lower())
    if flag is None:
        return False
    val = _env_bool(flag)
    logger.debug("is_live_llm_enabled: provider=%s enabled=%s", provider_name, val)
    return val
