"""
Schema validation for incoming payloads.

A schema is a pydantic model. ``validate`` runs the raw input through it and
returns either the sanitized payload (unknown keys dropped, defaults applied,
values coerced) or every violation found, in field declaration order.
"""
from typing import Any, Dict, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .errors import Err, FieldError, Ok, Result, ValidationError

MESSAGES = {
    "missing": "{label} is required",
    "string_type": "{label} must be a string",
    "string_too_short": "{label} is not allowed to be empty",
    "int_type": "{label} must be a number",
    "int_parsing": "{label} must be a number",
    "float_type": "{label} must be a number",
    "float_parsing": "{label} must be a number",
    "greater_than": "{label} must be greater than {gt}",
    "greater_than_equal": "{label} must be greater than or equal to {ge}",
    "less_than": "{label} must be less than {lt}",
    "less_than_equal": "{label} must be less than or equal to {le}",
    "model_type": "{label} must be of type object",
    "model_attributes_type": "{label} must be of type object",
    "list_type": "{label} must be an array",
}


def validate(schema: Type[BaseModel], raw: Any) -> Result[Dict[str, Any], ValidationError]:
    if raw is None:
        raw = {}
    try:
        model = schema.model_validate(raw)
    except PydanticValidationError as exc:
        return Err(ValidationError(details=[_field_error(error) for error in exc.errors()]))
    return Ok(sanitize(model))


def sanitize(value: Any) -> Any:
    """Dump a validated model by alias, leaving out absent fields that have no default."""
    if isinstance(value, BaseModel):
        result = {}
        for name, info in type(value).model_fields.items():
            item = getattr(value, name)
            if item is None and name not in value.model_fields_set:
                continue
            result[info.alias or name] = sanitize(item)
        return result
    if isinstance(value, (list, tuple)):
        return [sanitize(item) for item in value]
    if isinstance(value, dict):
        return {key: sanitize(item) for key, item in value.items()}
    return value


def _field_error(error: Dict[str, Any]) -> FieldError:
    path = ".".join(str(part) for part in error["loc"])
    label = str(error["loc"][-1]) if error["loc"] else "value"
    template = MESSAGES.get(error["type"])
    if template is None:
        return FieldError(field_path=path, message=error["msg"])
    return FieldError(field_path=path, message=template.format(label=label, **error.get("ctx", {})))
