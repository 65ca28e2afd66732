"""Tagged results returned by schema validators."""

from dataclasses import dataclass, field
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Valid(Generic[T]):
    """Input conformed to the schema; ``value`` is typed and pruned."""

    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Invalid:
    """Input violated the schema; ``errors`` maps field name to messages."""

    errors: dict[str, list[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return False


ValidationResult = Union[Valid[T], Invalid]
