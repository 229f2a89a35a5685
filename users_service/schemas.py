import re
from typing import Annotated

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, ConfigDict, constr
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

# Optional international prefix, then ASCII digits with optional dashes or whitespace
PHONE_PATTERN = re.compile(r"(\+[1-9][0-9]{0,3}[-\s]?)?[0-9\s-]{7,15}")
UUID_PATTERN = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[1-8][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}",
    re.IGNORECASE,
)

NonEmptyStr = constr(min_length=1, strict=True)


def check_email(value: str) -> str:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise PydanticCustomError("string.email", "Invalid email address")
    return value


def check_phone(value: str) -> str:
    if not PHONE_PATTERN.fullmatch(value):
        raise PydanticCustomError("string.pattern.base", "Invalid phone number")
    return value


def check_uuid(value: str) -> str:
    if not UUID_PATTERN.fullmatch(value):
        raise PydanticCustomError("string.uuid", "Invalid ID")
    return value


Email = Annotated[NonEmptyStr, AfterValidator(check_email)]
Phone = Annotated[NonEmptyStr, AfterValidator(check_phone)]
UserId = Annotated[NonEmptyStr, AfterValidator(check_uuid)]


class RequestSchema(BaseModel):
    """Base for request schemas: camelCase keys on the wire, unknown keys ignored."""

    model_config = ConfigDict(alias_generator=to_camel, extra="ignore")


class UserUpdate(RequestSchema):
    first_name: NonEmptyStr = None
    last_name: NonEmptyStr = None
    email: Email = None
    phone: Phone = None


class UserCreate(UserUpdate):
    first_name: NonEmptyStr
    last_name: NonEmptyStr


class UserIdParams(RequestSchema):
    id: UserId
