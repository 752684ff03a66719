"""Schema checks for the two network-facing operations.

Validation is local and total: every field is checked and all violations
come back together so the kiosk can show complete feedback.
"""

import re
from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID

from email_validator import EmailNotValidError, validate_email
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    StrictBool,
    TypeAdapter,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError

from photo_kiosk.domain.images import is_base64_image_data_url
from photo_kiosk.errors import FieldError, ValidationError

MAX_IMAGE_URL_LENGTH = 2048
MAX_DELIVERY_IMAGE_LENGTH = 10_000_000
MAX_PROMPT_LENGTH = 500
MAX_EMAIL_LENGTH = 255
MAX_NAME_LENGTH = 100
MAX_MESSAGE_LENGTH = 500

EMOJI_ALLOW_LIST = "🎨🦸🏴‍☠️💼🎭🌟"
PROMPT_PATTERN = re.compile(
    "^[a-zA-Z0-9 À-ſ.,!?'\"" + EMOJI_ALLOW_LIST + "-]+$"
)
DELIVERY_IMAGE_PREFIXES = ("data:image/", "http")

_HTTP_URL = TypeAdapter(HttpUrl)


class Operation(StrEnum):
    TRANSFORM = "transform"
    DELIVER = "deliver"


class TransformPayload(BaseModel):
    """Inbound body for the transform operation."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    image_url: str = Field(alias="imageUrl", max_length=MAX_IMAGE_URL_LENGTH)
    prompt: str = Field(min_length=1, max_length=MAX_PROMPT_LENGTH)
    session_id: UUID | None = Field(default=None, alias="sessionId")

    @field_validator("image_url")
    @classmethod
    def _image_url_is_url_or_data_url(cls, value: str) -> str:
        if is_base64_image_data_url(value):
            return value
        try:
            _HTTP_URL.validate_python(value)
        except PydanticValidationError as exc:
            raise ValueError(
                "must be an http(s) URL or a base64 image data URL"
            ) from exc
        return value

    @field_validator("prompt")
    @classmethod
    def _prompt_uses_allowed_characters(cls, value: str) -> str:
        if not PROMPT_PATTERN.fullmatch(value):
            raise ValueError("Prompt contains invalid characters")
        return value


class DeliverPayload(BaseModel):
    """Inbound body for the deliver operation."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    session_id: UUID = Field(alias="sessionId")
    email: str = Field(max_length=MAX_EMAIL_LENGTH)
    name: str | None = Field(default=None, max_length=MAX_NAME_LENGTH)
    company: str | None = Field(default=None, max_length=MAX_NAME_LENGTH)
    message: str | None = Field(default=None, max_length=MAX_MESSAGE_LENGTH)
    prompt: str | None = Field(default=None, max_length=MAX_PROMPT_LENGTH)
    consent_given: StrictBool = Field(default=False, alias="consentGiven")
    image_url: str = Field(alias="imageUrl", max_length=MAX_DELIVERY_IMAGE_LENGTH)
    original_image_url: str | None = Field(
        default=None, alias="originalImageUrl", max_length=MAX_DELIVERY_IMAGE_LENGTH
    )

    @field_validator("email")
    @classmethod
    def _email_is_well_formed(cls, value: str) -> str:
        try:
            result = validate_email(value, check_deliverability=False)
        except EmailNotValidError as exc:
            raise ValueError(str(exc)) from exc
        return result.normalized

    @field_validator("image_url", "original_image_url")
    @classmethod
    def _image_has_known_prefix(cls, value: str | None) -> str | None:
        if value is not None and not value.startswith(DELIVERY_IMAGE_PREFIXES):
            raise ValueError("must start with data:image/ or http")
        return value


@dataclass(frozen=True)
class ValidationOk:
    payload: TransformPayload | DeliverPayload


@dataclass(frozen=True)
class ValidationRejected:
    errors: list[FieldError]


_SCHEMAS: dict[Operation, type[BaseModel]] = {
    Operation.TRANSFORM: TransformPayload,
    Operation.DELIVER: DeliverPayload,
}


def validate(
    operation: Operation, payload: object
) -> ValidationOk | ValidationRejected:
    """Check ``payload`` against the schema for ``operation``."""
    schema = _SCHEMAS[operation]
    try:
        parsed = schema.model_validate(payload)
    except PydanticValidationError as exc:
        return ValidationRejected(errors=_field_errors(exc))
    return ValidationOk(payload=parsed)


def require_valid(
    operation: Operation, payload: object
) -> TransformPayload | DeliverPayload:
    """Return the typed payload or raise ``ValidationError`` with every issue."""
    outcome = validate(operation, payload)
    if isinstance(outcome, ValidationRejected):
        raise ValidationError(outcome.errors)
    return outcome.payload


def _field_errors(exc: PydanticValidationError) -> list[FieldError]:
    errors = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "body"
        message = error["msg"].removeprefix("Value error, ")
        errors.append(FieldError(field=location, message=message))
    return errors
