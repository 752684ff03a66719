"""Tests for inbound payload validation."""

from uuid import uuid4

import pytest

from photo_kiosk.domain.images import to_data_url
from photo_kiosk.errors import ValidationError
from photo_kiosk.services.validation import (
    DeliverPayload,
    Operation,
    TransformPayload,
    ValidationOk,
    ValidationRejected,
    require_valid,
    validate,
)
from tests.conftest import TINY_JPEG


def _transform_payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "imageUrl": to_data_url(TINY_JPEG),
        "prompt": "Gör mig till en pirat!",
    }
    payload.update(overrides)
    return payload


def _deliver_payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "sessionId": str(uuid4()),
        "email": "a@b.com",
        "imageUrl": to_data_url(TINY_JPEG),
    }
    payload.update(overrides)
    return payload


def test_transform_accepts_data_url_and_latin_prompt() -> None:
    outcome = validate(Operation.TRANSFORM, _transform_payload())

    assert isinstance(outcome, ValidationOk)
    assert isinstance(outcome.payload, TransformPayload)
    assert outcome.payload.prompt == "Gör mig till en pirat!"


def test_transform_accepts_http_url_and_allow_listed_emoji() -> None:
    outcome = validate(
        Operation.TRANSFORM,
        _transform_payload(
            imageUrl="https://images.example.org/photo.jpg",
            prompt="Make me a superhero 🦸 with stars 🌟",
        ),
    )

    assert isinstance(outcome, ValidationOk)


@pytest.mark.parametrize(
    "prompt",
    [
        "<script>alert(1)</script>",
        "hat\x00",
        "line one\nline two",
        "tab\tseparated",
        "rocket 🚀",
        "a{b}",
    ],
)
def test_transform_rejects_prompt_outside_character_class(prompt: str) -> None:
    outcome = validate(Operation.TRANSFORM, _transform_payload(prompt=prompt))

    assert isinstance(outcome, ValidationRejected)
    assert [error.field for error in outcome.errors] == ["prompt"]


def test_transform_rejects_empty_and_overlong_prompt() -> None:
    empty = validate(Operation.TRANSFORM, _transform_payload(prompt=""))
    overlong = validate(Operation.TRANSFORM, _transform_payload(prompt="a" * 501))
    at_limit = validate(Operation.TRANSFORM, _transform_payload(prompt="a" * 500))

    assert isinstance(empty, ValidationRejected)
    assert isinstance(overlong, ValidationRejected)
    assert isinstance(at_limit, ValidationOk)


def test_transform_rejects_bad_image_url() -> None:
    not_a_url = validate(Operation.TRANSFORM, _transform_payload(imageUrl="photo.jpg"))
    too_long = validate(
        Operation.TRANSFORM,
        _transform_payload(imageUrl="https://example.org/" + "a" * 2048),
    )

    assert isinstance(not_a_url, ValidationRejected)
    assert not_a_url.errors[0].field == "imageUrl"
    assert isinstance(too_long, ValidationRejected)


def test_transform_collects_every_violation() -> None:
    outcome = validate(
        Operation.TRANSFORM,
        {"imageUrl": "nope", "prompt": "<b>", "sessionId": "not-a-uuid"},
    )

    assert isinstance(outcome, ValidationRejected)
    assert {error.field for error in outcome.errors} == {
        "imageUrl",
        "prompt",
        "sessionId",
    }


def test_transform_reports_missing_fields() -> None:
    outcome = validate(Operation.TRANSFORM, {})

    assert isinstance(outcome, ValidationRejected)
    assert {error.field for error in outcome.errors} == {"imageUrl", "prompt"}


def test_non_object_payload_is_rejected_as_body() -> None:
    outcome = validate(Operation.DELIVER, ["not", "an", "object"])

    assert isinstance(outcome, ValidationRejected)
    assert outcome.errors[0].field == "body"


def test_deliver_accepts_minimal_payload() -> None:
    outcome = validate(Operation.DELIVER, _deliver_payload())

    assert isinstance(outcome, ValidationOk)
    assert isinstance(outcome.payload, DeliverPayload)
    assert outcome.payload.consent_given is False
    assert outcome.payload.name is None


@pytest.mark.parametrize(
    "image_url",
    ["ftp://example.org/a.jpg", "data:text/plain;base64,aGk=", "javascript:alert(1)"],
)
def test_deliver_rejects_unknown_image_prefix(image_url: str) -> None:
    outcome = validate(Operation.DELIVER, _deliver_payload(imageUrl=image_url))

    assert isinstance(outcome, ValidationRejected)
    assert [error.field for error in outcome.errors] == ["imageUrl"]


def test_deliver_accepts_http_image_url() -> None:
    outcome = validate(
        Operation.DELIVER,
        _deliver_payload(
            imageUrl="https://cdn.example.org/edited.png",
            originalImageUrl="http://cdn.example.org/original.jpg",
        ),
    )

    assert isinstance(outcome, ValidationOk)


def test_deliver_collects_every_violation() -> None:
    outcome = validate(
        Operation.DELIVER,
        {
            "sessionId": "abc",
            "email": "not-an-email",
            "name": "n" * 101,
            "imageUrl": "file:///etc/passwd",
            "originalImageUrl": "blob:xyz",
            "consentGiven": "yes",
        },
    )

    assert isinstance(outcome, ValidationRejected)
    assert {error.field for error in outcome.errors} == {
        "sessionId",
        "email",
        "name",
        "imageUrl",
        "originalImageUrl",
        "consentGiven",
    }


def test_deliver_rejects_overlong_email() -> None:
    outcome = validate(
        Operation.DELIVER, _deliver_payload(email="a" * 250 + "@b.com")
    )

    assert isinstance(outcome, ValidationRejected)
    assert outcome.errors[0].field == "email"


def test_require_valid_raises_with_all_errors() -> None:
    with pytest.raises(ValidationError) as exc_info:
        require_valid(Operation.DELIVER, {})

    fields = {error.field for error in exc_info.value.errors}
    assert fields == {"sessionId", "email", "imageUrl"}
