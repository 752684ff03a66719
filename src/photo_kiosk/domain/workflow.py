"""Kiosk flow states, events, and the pure transition function."""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import StrEnum

from photo_kiosk.domain.transform import Capture, TransformResult


class FlowStep(StrEnum):
    WELCOME = "WELCOME"
    CAPTURING = "CAPTURING"
    TRANSFORMING = "TRANSFORMING"
    DELIVERING = "DELIVERING"
    DELIVERED = "DELIVERED"
    ERROR = "ERROR"


@dataclass(frozen=True)
class FlowState:
    """Snapshot of one kiosk flow instance."""

    step: FlowStep = FlowStep.WELCOME
    capture: Capture | None = None
    result: TransformResult | None = None
    resume_step: FlowStep | None = None
    error_message: str | None = None
    message_id: str | None = None


@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class ImageCaptured:
    image_bytes: bytes
    captured_at: datetime


@dataclass(frozen=True)
class RetryTransform:
    pass


@dataclass(frozen=True)
class TransformSucceeded:
    image_url: str
    instruction: str


@dataclass(frozen=True)
class TransformFailed:
    message: str


@dataclass(frozen=True)
class Delivered:
    message_id: str


@dataclass(frozen=True)
class DeliveryFailed:
    message: str


@dataclass(frozen=True)
class DismissError:
    pass


@dataclass(frozen=True)
class DisplayElapsed:
    pass


@dataclass(frozen=True)
class Back:
    pass


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class InactivityTimeout:
    pass


FlowEvent = (
    Start
    | ImageCaptured
    | RetryTransform
    | TransformSucceeded
    | TransformFailed
    | Delivered
    | DeliveryFailed
    | DismissError
    | DisplayElapsed
    | Back
    | Reset
    | InactivityTimeout
)


class InvalidTransition(Exception):
    """Raised when an event is not accepted in the current step."""

    def __init__(self, step: FlowStep, event_name: str) -> None:
        super().__init__(f"{event_name} is not valid in {step}")
        self.step = step
        self.event_name = event_name


def transition(state: FlowState, event: FlowEvent) -> FlowState:  # noqa: PLR0911
    """Return the state that follows ``event``; never mutates ``state``."""
    if isinstance(event, Reset | InactivityTimeout):
        return FlowState()

    step = state.step
    if step == FlowStep.WELCOME and isinstance(event, Start):
        return FlowState(step=FlowStep.CAPTURING)

    if step == FlowStep.CAPTURING:
        if isinstance(event, ImageCaptured):
            capture = Capture(
                image_bytes=event.image_bytes, captured_at=event.captured_at
            )
            return FlowState(step=FlowStep.TRANSFORMING, capture=capture)
        if isinstance(event, RetryTransform) and state.capture is not None:
            return replace(state, step=FlowStep.TRANSFORMING, error_message=None)

    if step == FlowStep.TRANSFORMING:
        if isinstance(event, TransformSucceeded):
            result = TransformResult(
                image_url=event.image_url, instruction=event.instruction
            )
            return replace(
                state, step=FlowStep.DELIVERING, result=result, error_message=None
            )
        if isinstance(event, TransformFailed):
            return replace(
                state, step=FlowStep.CAPTURING, error_message=event.message
            )
        if isinstance(event, Back):
            return FlowState(step=FlowStep.CAPTURING)

    if step == FlowStep.DELIVERING:
        if isinstance(event, Delivered):
            return replace(
                state,
                step=FlowStep.DELIVERED,
                message_id=event.message_id,
                error_message=None,
            )
        if isinstance(event, DeliveryFailed):
            return replace(
                state,
                step=FlowStep.ERROR,
                resume_step=FlowStep.DELIVERING,
                error_message=event.message,
            )
        if isinstance(event, Back):
            return replace(state, step=FlowStep.TRANSFORMING, result=None)

    if step == FlowStep.ERROR and isinstance(event, DismissError):
        resume = state.resume_step or FlowStep.WELCOME
        return replace(state, step=resume, resume_step=None, error_message=None)

    if step == FlowStep.DELIVERED and isinstance(event, DisplayElapsed):
        return FlowState()

    raise InvalidTransition(step, type(event).__name__)
