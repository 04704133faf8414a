"""
Shared API schema plumbing.

External payloads use camelCase names; models read from ORM attributes.
Timestamps are normalized to naive UTC on the way in.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from crm.derived import to_naive_utc
from crm.errors import ValidationError
from crm.field_guard import guard_update, to_columns

UTCDateTime = Annotated[datetime, AfterValidator(to_naive_utc)]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        use_enum_values=True,
    )


class MessageResponse(BaseModel):
    success: bool = True
    message: str


def describe_validation_error(exc: PydanticValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts) or "Invalid request"


def validated_changes(
    fields: type[Enum],
    schema: type[BaseModel],
    model,
    body: dict[str, Any],
    passthrough: frozenset[str] = frozenset(),
    allow_empty: bool = False,
) -> dict[str, Any]:
    """
    Run a PUT body through the field guard and the entity's update schema.

    Returns storage-column keyed values for the fields the caller actually sent.
    """
    accepted = guard_update(fields, body, passthrough=passthrough, allow_empty=allow_empty)
    try:
        parsed = schema.model_validate(accepted)
    except PydanticValidationError as exc:
        raise ValidationError(describe_validation_error(exc)) from exc

    changes = to_columns(fields, parsed.model_dump(by_alias=True, exclude_unset=True))
    for column, value in changes.items():
        if value is None and not model.__table__.c[column].nullable:
            raise ValidationError(f"{fields[column].value} cannot be null")
    return changes
