"""Utility modules for the Resource Server."""

from .correlation import generate_correlation_id, get_correlation_id, set_correlation_id
from .redaction import fingerprint, redact_metadata, redact_sensitive_info

__all__ = [
    "generate_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
    "fingerprint",
    "redact_metadata",
    "redact_sensitive_info",
]
