"""Redaction helpers shared by the runner, the record manager and the adapters."""
from .redaction import redact_secrets
from .metrics import get_redaction_metrics, reset_redaction_metrics

__all__ = [
    'redact_secrets',
    'get_redaction_metrics',
    'reset_redaction_metrics',
]
