# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Resource record and request input models."""

from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    StringConstraints,
    TypeAdapter,
    ValidationError,
    field_serializer,
    field_validator,
)
from pydantic_core import PydanticCustomError

URL_MAX_LENGTH = 2048
TITLE_MAX_LENGTH = 500
DESCRIPTION_MAX_LENGTH = 2000
MAX_TAGS = 20
TAG_MAX_LENGTH = 50

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

Tag = Annotated[str, StringConstraints(min_length=1, max_length=TAG_MAX_LENGTH)]

_http_url = TypeAdapter(HttpUrl)


def _check_http_url(value: str) -> str:
    """Accept absolute http(s) URLs, returning the caller's string untouched."""
    try:
        _http_url.validate_python(value)
    except ValidationError:
        raise PydanticCustomError("url_invalid", "Must be an absolute http or https URL")
    return value


def _reject_null(value):
    if value is None:
        raise PydanticCustomError("null_not_allowed", "Field may not be null")
    return value


class ResourceRecord(BaseModel):
    """A stored resource exactly as the store returns it."""

    id: str
    user_id: str
    url: str
    title: str
    description: Optional[str] = None
    tags: Optional[list[str]] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    @field_serializer("created_at", "updated_at", "deleted_at")
    def serialize_timestamp(self, value: Optional[datetime]) -> Optional[str]:
        return value.isoformat() if value is not None else None

    def to_response(self) -> dict:
        """JSON-ready representation for response bodies."""
        return self.model_dump(mode="json")


class CreateResourceInput(BaseModel):
    """Validated body of a create request."""

    model_config = ConfigDict(extra="ignore")

    url: str = Field(max_length=URL_MAX_LENGTH)
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    tags: Optional[list[Tag]] = Field(default=None, max_length=MAX_TAGS)

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        return _check_http_url(value)


class UpdateResourceInput(BaseModel):
    """Validated body of a partial update request.

    Only fields present in ``model_fields_set`` are written. ``url`` and
    ``title`` may not be cleared; ``description`` and ``tags`` may be set to
    null explicitly.
    """

    model_config = ConfigDict(extra="ignore")

    url: Optional[str] = Field(default=None, max_length=URL_MAX_LENGTH)
    title: Optional[str] = Field(default=None, min_length=1, max_length=TITLE_MAX_LENGTH)
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    tags: Optional[list[Tag]] = Field(default=None, max_length=MAX_TAGS)

    @field_validator("url", "title", mode="before")
    @classmethod
    def required_when_supplied(cls, value):
        return _reject_null(value)

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: Optional[str]) -> Optional[str]:
        return _check_http_url(value) if value is not None else value

    def changes(self) -> dict:
        """Return only the fields the caller supplied."""
        return self.model_dump(include=self.model_fields_set)


class ResourceListQuery(BaseModel):
    """Validated query string of a list request."""

    model_config = ConfigDict(extra="ignore")

    tag: Optional[str] = Field(default=None, min_length=1, max_length=TAG_MAX_LENGTH)
    cursor: Optional[UUID] = None
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @field_validator("limit", mode="before")
    @classmethod
    def parse_limit(cls, value):
        if isinstance(value, str):
            if not (value.isascii() and value.isdigit()):
                raise PydanticCustomError("limit_format", "Must be a whole number")
            return int(value)
        return value


class ResourcePath(BaseModel):
    """Validated path parameters of a single-resource request."""

    model_config = ConfigDict(extra="ignore")

    id: UUID


class ResourcePage(BaseModel):
    """One page of a cursor-paginated listing."""

    items: list[ResourceRecord]
    has_more: bool
    cursor: Optional[str] = None

    def to_response(self) -> dict:
        meta: dict = {"hasMore": self.has_more}
        if self.cursor is not None:
            meta["cursor"] = self.cursor
        return {"data": [item.to_response() for item in self.items], "meta": meta}
