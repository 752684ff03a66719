"""Kiosk-side effect shell around the pure flow transition function."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from photo_kiosk.domain.workflow import (
    Back,
    Delivered,
    DeliveryFailed,
    DismissError,
    DisplayElapsed,
    FlowEvent,
    FlowState,
    FlowStep,
    ImageCaptured,
    InactivityTimeout,
    InvalidTransition,
    Reset,
    RetryTransform,
    Start,
    TransformFailed,
    TransformSucceeded,
    transition,
)
from photo_kiosk.errors import KioskError
from photo_kiosk.services.session_provider import SessionProvider

logger = logging.getLogger(__name__)

IDLE_TIMEOUT = timedelta(seconds=60)
DELIVERED_DISPLAY = timedelta(seconds=2)


@dataclass(frozen=True)
class DeliveryForm:
    """What the visitor typed on the delivery screen."""

    email: str
    name: str | None = None
    company: str | None = None
    message: str | None = None
    consent_given: bool = False


class KioskBackend(Protocol):
    """The two network operations the kiosk depends on."""

    async def transform(
        self, image_bytes: bytes, instruction: str, session_id: str
    ) -> str:
        """Return the edited image URL."""

    async def deliver(  # noqa: PLR0913
        self,
        *,
        session_id: str,
        form: DeliveryForm,
        image_url: str,
        instruction: str | None,
    ) -> str:
        """Send the photo and return the provider message id."""


class FlowBusy(Exception):
    """Raised when a submit arrives while another operation is in flight."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class KioskFlow:
    """Drives one kiosk through capture, transform, and delivery.

    Only one network operation runs at a time. A reset while a call is in
    flight abandons the flow: the late result is discarded, not applied.
    """

    backend: KioskBackend
    sessions: SessionProvider
    idle_timeout: timedelta = IDLE_TIMEOUT
    delivered_display: timedelta = DELIVERED_DISPLAY
    clock: Callable[[], datetime] = _utcnow
    state: FlowState = field(default_factory=FlowState, init=False)
    session_id: str | None = field(default=None, init=False)
    idle_deadline: datetime | None = field(default=None, init=False)
    display_deadline: datetime | None = field(default=None, init=False)
    _busy_generation: int | None = field(default=None, init=False)
    _framing: bool = field(default=False, init=False)
    _generation: int = field(default=0, init=False)

    @property
    def busy(self) -> bool:
        return self._busy_generation == self._generation

    def start(self) -> FlowState:
        """Leave the welcome screen and open the camera."""
        self.session_id = self.sessions.get_or_create_id()
        return self._apply(Start())

    def begin_framing(self) -> None:
        """Suspend the idle timer while the visitor lines up a shot."""
        self._framing = True
        self._rearm()

    def end_framing(self) -> None:
        self._framing = False
        self._rearm()

    def capture(self, image_bytes: bytes) -> FlowState:
        """Store a new photo, superseding any earlier one."""
        self._framing = False
        return self._apply(
            ImageCaptured(image_bytes=image_bytes, captured_at=self.clock())
        )

    def retry_transform(self) -> FlowState:
        """Go back to choosing an instruction for the retained photo."""
        return self._apply(RetryTransform())

    async def transform(self, instruction: str) -> FlowState:
        """Request the AI edit; failures return the flow to capturing."""
        capture = self.state.capture
        if self.state.step != FlowStep.TRANSFORMING or capture is None:
            raise InvalidTransition(self.state.step, "transform")
        generation = self._enter_busy()
        try:
            image_url = await self.backend.transform(
                capture.image_bytes, instruction, self._current_session_id()
            )
            event: FlowEvent = TransformSucceeded(
                image_url=image_url, instruction=instruction
            )
        except KioskError as exc:
            logger.warning(
                "Transform failed",
                extra={"session_id": self.session_id, "error": type(exc).__name__},
            )
            event = TransformFailed(message=exc.public_message)
        finally:
            self._leave_busy(generation)
        return self._apply_if_current(generation, event)

    async def deliver(self, form: DeliveryForm) -> FlowState:
        """Email the edited photo; failures surface as a dismissable error."""
        result = self.state.result
        if self.state.step != FlowStep.DELIVERING or result is None:
            raise InvalidTransition(self.state.step, "deliver")
        generation = self._enter_busy()
        try:
            message_id = await self.backend.deliver(
                session_id=self._current_session_id(),
                form=form,
                image_url=result.image_url,
                instruction=result.instruction,
            )
            event: FlowEvent = Delivered(message_id=message_id)
        except KioskError as exc:
            logger.warning(
                "Delivery failed",
                extra={"session_id": self.session_id, "error": type(exc).__name__},
            )
            event = DeliveryFailed(message=exc.public_message)
        finally:
            self._leave_busy(generation)
        return self._apply_if_current(generation, event)

    def dismiss_error(self) -> FlowState:
        return self._apply(DismissError())

    def back(self) -> FlowState:
        return self._apply(Back())

    def reset(self) -> FlowState:
        """Return to the welcome screen, keeping the session id."""
        return self._apply(Reset())

    def register_activity(self) -> None:
        """Rearm the idle timer and keep the session alive."""
        self.sessions.refresh()
        self._rearm()

    def tick(self) -> FlowState:
        """Fire any elapsed display or inactivity deadline."""
        now = self.clock()
        if self.display_deadline is not None and now >= self.display_deadline:
            return self._apply(DisplayElapsed())
        if self.busy:
            return self.state
        if self.idle_deadline is not None and now >= self.idle_deadline:
            logger.info(
                "Returning to start after inactivity",
                extra={"session_id": self.session_id},
            )
            return self._apply(InactivityTimeout())
        return self.state

    async def run_watchdog(self, interval: float = 1.0) -> None:
        """Call ``tick`` forever; cancel the task to stop it."""
        while True:
            self.tick()
            await asyncio.sleep(interval)

    def _apply(self, event: FlowEvent) -> FlowState:
        self.state = transition(self.state, event)
        if isinstance(event, Reset | InactivityTimeout | DisplayElapsed):
            self._generation += 1
            self._framing = False
        self.display_deadline = (
            self.clock() + self.delivered_display
            if self.state.step == FlowStep.DELIVERED
            else None
        )
        self._rearm()
        return self.state

    def _apply_if_current(self, generation: int, event: FlowEvent) -> FlowState:
        if generation != self._generation:
            logger.info(
                "Discarding result of an abandoned flow",
                extra={"session_id": self.session_id},
            )
            return self.state
        return self._apply(event)

    def _enter_busy(self) -> int:
        if self.busy:
            raise FlowBusy("Another operation is already in progress")
        self._busy_generation = self._generation
        self.idle_deadline = None
        return self._generation

    def _leave_busy(self, generation: int) -> None:
        if self._busy_generation == generation:
            self._busy_generation = None

    def _current_session_id(self) -> str:
        if self.session_id is None:
            self.session_id = self.sessions.get_or_create_id()
        return self.session_id

    def _rearm(self) -> None:
        step = self.state.step
        idle = step in {FlowStep.WELCOME, FlowStep.DELIVERED} or (
            step == FlowStep.CAPTURING and self._framing
        )
        self.idle_deadline = None if idle else self.clock() + self.idle_timeout
