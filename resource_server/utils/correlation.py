# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Correlation ID generation and context management for request tracing.

The correlation ID is held in a context variable so that audit events emitted
anywhere during a request carry the same identifier without it being passed
through every call.
"""

import contextvars
import uuid

CORRELATION_ID_HEADER = "X-Correlation-ID"

# Longest client-supplied correlation ID echoed back
MAX_CORRELATION_ID_LENGTH = 128

# Context variable to store correlation ID per request
_correlation_id_context: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)


def generate_correlation_id() -> str:
    """
    Generate a unique correlation ID using UUID4.

    Returns:
        A unique correlation ID string in UUID4 format
    """
    return str(uuid.uuid4())


def accept_correlation_id(candidate: str | None) -> str:
    """
    Use a client-supplied correlation ID if it is short and printable,
    otherwise generate a fresh one.
    """
    if (
        candidate
        and len(candidate) <= MAX_CORRELATION_ID_LENGTH
        and candidate.isascii()
        and candidate.isprintable()
    ):
        return candidate
    return generate_correlation_id()


def set_correlation_id(correlation_id: str) -> contextvars.Token:
    """
    Set the correlation ID in the current context.

    Args:
        correlation_id: The correlation ID to set

    Returns:
        Token that can restore the previous value
    """
    return _correlation_id_context.set(correlation_id)


def reset_correlation_id(token: contextvars.Token) -> None:
    """Restore the correlation ID that was active before ``set_correlation_id``."""
    _correlation_id_context.reset(token)


def get_correlation_id() -> str:
    """
    Get the correlation ID from the current context.

    Returns:
        The correlation ID if set, or an empty string if not set
    """
    return _correlation_id_context.get()
