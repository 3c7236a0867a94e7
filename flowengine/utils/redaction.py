"""Secret redaction for anything that leaves a run: error messages and
stacks written to execution records, and log lines.

Provider SDK errors routinely echo request URLs and headers, so every string
is scrubbed for key-shaped tokens and every dict for credential-named keys.
"""
import re

from .metrics import _note_redaction

SKIP_KEYS = {
    "password",
    "secret",
    "token",
    "api_key",
    "apikey",
    "x-api-key",
    "x-goog-api-key",
    "authorization",
    "auth",
    "private_key",
    "client_secret",
    "access_token",
    "refresh_token",
    "credential",
    "credentials",
}

# (name, pattern, replacement, flags)
_PATTERNS = [
    ('anthropic_key', r"sk-ant-[A-Za-z0-9_-]{8,}", "[REDACTED]", 0),
    ('openai_sk', r"sk-[A-Za-z0-9_-]{8,}", "[REDACTED]", 0),
    ('google_api_key', r"AIza[0-9A-Za-z\-_]{35,}", "[REDACTED]", 0),
    ('google_ya29', r"ya29\.[A-Za-z0-9_\-\.]{8,}", "[REDACTED]", 0),
    ('bearer_token', r"bearer\s+[A-Za-z0-9\._\-\=]{8,}", "[REDACTED]", re.I),
    ('token_param', r"(access_token|token)=([A-Za-z0-9_\-\.]{8,})", lambda m: f"{m.group(1)}=[REDACTED]", re.I),
    ('key_param', r"key=([A-Za-z0-9_\-\.]{8,})", "key=[REDACTED]", re.I),
    ('aws_akid', r"AKIA[0-9A-Z]{16}", "[REDACTED]", 0),
    ('jwt', r"eyJ[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+", "[REDACTED]", 0),
    ('pem_private', r"-----BEGIN [A-Z ]*PRIVATE KEY-----[\s\S]+?-----END [A-Z ]*PRIVATE KEY-----", "[REDACTED]", 0),
]

_COMPILED = [(name, re.compile(pat, flags), repl) for name, pat, repl, flags in _PATTERNS]


def _redact_str(s: str) -> str:
    for name, cre, repl in _COMPILED:
        s, n = cre.subn(repl, s)
        if n:
            _note_redaction(name, n)
    return s


def redact_secrets(obj):
    if isinstance(obj, dict):
        out = {}
        for k, v in obj.items():
            kl = k.lower() if isinstance(k, str) else k
            if isinstance(kl, str) and kl in SKIP_KEYS:
                out[k] = "[REDACTED]"
                _note_redaction('skip_key')
            else:
                out[k] = redact_secrets(v)
        return out

    if isinstance(obj, (list, tuple)):
        return [redact_secrets(v) for v in obj]

    if isinstance(obj, str):
        return _redact_str(obj)

    return obj
