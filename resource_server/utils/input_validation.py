# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Schema validators for resource server inputs.

Each validator is a pure function: it accepts untyped input (decoded JSON,
a query-string mapping, path parameters) and returns either ``Valid`` with a
typed, pruned model or ``Invalid`` with a ``field -> [messages]`` map. No
downstream code accepts untyped input.
"""

import logging
from typing import Any, Callable, TypeVar

from pydantic import BaseModel, ValidationError

from ..models.resource import (
    CreateResourceInput,
    ResourceListQuery,
    ResourcePath,
    UpdateResourceInput,
)
from ..models.validation import Invalid, Valid, ValidationResult

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# Key used when an error applies to the input as a whole
ROOT_FIELD = "input"

SchemaValidator = Callable[[Any], ValidationResult]


def format_field_errors(exc: ValidationError) -> dict[str, list[str]]:
    """
    Flatten pydantic diagnostics into a stable field -> messages map.

    Errors on nested locations (e.g. ``tags[3]``) are reported under their
    top-level field. Only the human-readable message is kept; error types,
    input values and documentation URLs are dropped.

    Args:
        exc: The pydantic validation error

    Returns:
        Mapping of field name to a de-duplicated list of messages
    """
    field_errors: dict[str, list[str]] = {}
    for error in exc.errors(include_url=False, include_input=False):
        loc = error.get("loc") or ()
        field = str(loc[0]) if loc else ROOT_FIELD
        messages = field_errors.setdefault(field, [])
        if error["msg"] not in messages:
            messages.append(error["msg"])
    return field_errors


def validate_model(model: type[M], raw: Any) -> ValidationResult:
    """
    Validate untyped input against a pydantic model.

    Unknown fields are stripped by the models' ``extra="ignore"`` config.

    Args:
        model: The pydantic model class to validate against
        raw: Untyped input

    Returns:
        Valid(model instance) or Invalid(field errors)
    """
    try:
        return Valid(model.model_validate(raw))
    except ValidationError as e:
        errors = format_field_errors(e)
        logger.debug(f"{model.__name__} rejected fields: {sorted(errors)}")
        return Invalid(errors)


def validate_create_input(raw: Any) -> ValidationResult:
    """Validate the body of a create request."""
    return validate_model(CreateResourceInput, raw)


def validate_update_input(raw: Any) -> ValidationResult:
    """Validate the body of a partial update request."""
    return validate_model(UpdateResourceInput, raw)


def validate_list_query(raw: Any) -> ValidationResult:
    """Validate list query parameters (tag, cursor, limit)."""
    return validate_model(ResourceListQuery, raw)


def validate_resource_path(raw: Any) -> ValidationResult:
    """Validate single-resource path parameters."""
    return validate_model(ResourcePath, raw)
