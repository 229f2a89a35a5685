from dataclasses import dataclass, field
from typing import Generic, List, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E


Result = Union[Ok[T], Err[E]]


@dataclass(frozen=True)
class FieldError:
    field_path: str
    message: str

    def to_dict(self):
        return {"fieldPath": self.field_path, "message": self.message}


@dataclass(frozen=True)
class ValidationError:
    """Every violation found while checking a payload against a schema."""

    details: List[FieldError] = field(default_factory=list)
    kind: str = "ValidationError"


@dataclass(frozen=True)
class NotFound:
    kind: str = "NotFound"
