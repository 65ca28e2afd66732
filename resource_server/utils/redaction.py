# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Redaction rules applied to everything written to the audit log.

Two rules apply:

- Field rule: metadata keys marked sensitive are replaced wholesale. URLs
  become ``[url]``; credential-like keys become ``[REDACTED]``.
- Text rule: free-text values (error messages, stack traces) are scrubbed of
  bearer tokens, JWTs and ``key=value`` credential assignments.
"""

import hashlib
import re
from typing import Any

URL_PLACEHOLDER = "[url]"
REDACTED = "[REDACTED]"

# Metadata keys whose values are replaced regardless of content
SENSITIVE_FIELDS = {
    "url": URL_PLACEHOLDER,
    "token": REDACTED,
    "authorization": REDACTED,
    "password": REDACTED,
    "api_key": REDACTED,
    "apikey": REDACTED,
    "secret": REDACTED,
}

SENSITIVE_PATTERNS = {
    "bearer_token": [
        r"(?i)bearer\s+[A-Za-z0-9\-._~+/]+=*",
    ],
    "jwt": [
        r"eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]*",
    ],
    "credentials": [
        r"(?i)password['\"]?\s*[:=]\s*['\"]?[^\s'\",]+",
        r"(?i)api[_-]?key['\"]?\s*[:=]\s*['\"]?[^\s'\",]+",
        r"(?i)token['\"]?\s*[:=]\s*['\"]?[^\s'\",]+",
        r"(?i)secret['\"]?\s*[:=]\s*['\"]?[^\s'\",]+",
    ],
    "connection_string": [
        r"(?i)(?:postgres(?:ql)?|mysql|mongodb|redis)://[^\s]+",
    ],
}

# Compile patterns for performance
COMPILED_PATTERNS = {
    category: [re.compile(pattern) for pattern in patterns]
    for category, patterns in SENSITIVE_PATTERNS.items()
}


def fingerprint(secret: str) -> str:
    """
    Short, non-reversible fingerprint of a secret for log correlation.

    Args:
        secret: The value to fingerprint (e.g. a bearer token)

    Returns:
        First 8 characters of the SHA-256 hex digest
    """
    return hashlib.sha256(secret.encode()).hexdigest()[:8]


def redact_sensitive_info(text: str, replacement: str = REDACTED) -> str:
    """
    Redact credentials and connection strings from free text.

    Args:
        text: Text to redact
        replacement: String to use for redacted content

    Returns:
        Text with sensitive information redacted
    """
    if not text:
        return text

    result = text
    for patterns in COMPILED_PATTERNS.values():
        for pattern in patterns:
            result = pattern.sub(replacement, result)
    return result


def redact_value(key: str, value: Any) -> Any:
    """Apply the field rule, then the text rule, recursively."""
    placeholder = SENSITIVE_FIELDS.get(key.lower())
    if placeholder is not None and value is not None:
        return placeholder
    if isinstance(value, str):
        return redact_sensitive_info(value)
    if isinstance(value, dict):
        return redact_metadata(value)
    if isinstance(value, (list, tuple)):
        return [redact_value(key, item) for item in value]
    return value


def redact_metadata(metadata: dict[str, Any]) -> dict[str, Any]:
    """
    Return a redacted copy of audit metadata.

    Args:
        metadata: Arbitrary event metadata

    Returns:
        New dict with sensitive fields and text redacted
    """
    return {key: redact_value(str(key), value) for key, value in metadata.items()}
