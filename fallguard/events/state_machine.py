"""
Fall state machine.

Fuses impact signals from both motion streams into one
pending/confirmed/cancelled decision. The 3 second confirmation is a
scheduled callback guarded by a cancellation token, never a blocking wait.

Transitions:
    IDLE      --impact-->   PENDING    (arm deadline, show warning)
    PENDING   --impact-->   PENDING    (ignored, timer not reset)
    PENDING   --cancel-->   IDLE       (disarm deadline, dismiss warning)
    PENDING   --deadline--> CONFIRMED  (raise emergency with location)
    CONFIRMED --impact/cancel--> CONFIRMED
    any       --reset-->    IDLE
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable

from ..detectors.impact_detector import ImpactSignal
from ..errors import SchedulingFailure
from ..location.provider import UNAVAILABLE
from ..utils.constants import DEFAULT_MONITOR_CONFIG, FallPhase

logger = logging.getLogger(__name__)


class LoopScheduler:
    """Deadline scheduling on an asyncio event loop (times in seconds)."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        # Bound to the running loop on first use
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable, *args) -> Any:
        return self.loop.call_later(delay, callback, *args)


class DeadlineToken:
    """Cancellation handle for one armed confirmation deadline."""

    def __init__(self, deadline: float, episode: int):
        self.deadline = deadline
        self.episode = episode
        self.cancelled = False
        self.handle = None

    def cancel(self):
        self.cancelled = True
        if self.handle is not None:
            self.handle.cancel()
            self.handle = None

    def __repr__(self) -> str:
        return (
            f"DeadlineToken(episode={self.episode}, deadline={self.deadline:.3f}, "
            f"cancelled={self.cancelled})"
        )


@dataclass
class FallState:
    """Mutable session state, written only by FallStateMachine."""

    phase: FallPhase = FallPhase.IDLE
    pending_deadline: float | None = None
    episode: int = 0


@dataclass(frozen=True)
class FallStateSnapshot:
    """Read-only view of FallState handed to readers."""

    phase: FallPhase
    pending_deadline: float | None
    episode: int

    @property
    def pending(self) -> bool:
        return self.phase == FallPhase.PENDING

    @property
    def confirmed(self) -> bool:
        return self.phase == FallPhase.CONFIRMED


class FallStateMachine:
    """
    Owns the FallState of one monitoring session.

    Every handler runs synchronously and returns True when the state
    changed. Handlers must be called from a single thread (the event
    loop); the monitor serializes all event sources for this.
    """

    def __init__(
        self,
        presenter,
        location_provider=None,
        scheduler: LoopScheduler | None = None,
        confirmation_window_ms: int = DEFAULT_MONITOR_CONFIG["confirmation_window_ms"],
        deadline_sink: Callable[[DeadlineToken], None] | None = None,
    ):
        """
        Initialize state machine.

        Args:
            presenter: AlertPresenter notified of every transition
            location_provider: Supplies current_location() at confirmation
            scheduler: Clock and deferred-call provider (event loop if None)
            confirmation_window_ms: Time the user has to cancel
            deadline_sink: Receives expired tokens instead of handle_deadline(),
                so that a queue can order them against cancels
        """
        if confirmation_window_ms <= 0:
            raise ValueError(
                f"confirmation_window_ms must be positive, got {confirmation_window_ms}"
            )

        self.presenter = presenter
        self.location_provider = location_provider
        self.scheduler = scheduler or LoopScheduler()
        self.confirmation_window_ms = confirmation_window_ms
        self.deadline_sink = deadline_sink

        self._state = FallState()
        self._token: DeadlineToken | None = None

        # Statistics
        self.timers_armed = 0
        self.signals_suppressed = 0
        self.emergencies_raised = 0

        logger.info(
            f"Initialized FallStateMachine: window={confirmation_window_ms}ms"
        )

    @property
    def phase(self) -> FallPhase:
        return self._state.phase

    def snapshot(self) -> FallStateSnapshot:
        return FallStateSnapshot(
            self._state.phase, self._state.pending_deadline, self._state.episode
        )

    def handle_impact(self, signal: ImpactSignal) -> bool:
        """
        Start an episode if idle; ignore the signal otherwise.

        Raises:
            SchedulingFailure: The deadline could not be armed; the machine
                is back in IDLE
        """
        if self._state.phase != FallPhase.IDLE:
            self.signals_suppressed += 1
            logger.debug(
                f"Impact on {signal.stream.value} ignored while {self._state.phase.value}"
            )
            return False

        window = self.confirmation_window_ms / 1000.0
        deadline = self.scheduler.now() + window

        self._state.phase = FallPhase.PENDING
        self._state.pending_deadline = deadline
        self._state.episode += 1

        token = DeadlineToken(deadline, self._state.episode)
        try:
            token.handle = self.scheduler.call_later(window, self._deadline_fired, token)
        except Exception as e:
            self._state.phase = FallPhase.IDLE
            self._state.pending_deadline = None
            logger.error(
                f"Could not arm confirmation deadline for episode {token.episode}: {e}"
            )
            raise SchedulingFailure(
                f"Confirmation countdown could not be scheduled: {e}"
            ) from e

        self._token = token
        self.timers_armed += 1

        logger.warning(
            f"Fall pending (episode {token.episode}): {signal.stream.value} "
            f"magnitude {signal.magnitude:.2f} > {signal.threshold:.2f}, "
            f"confirming in {self.confirmation_window_ms}ms"
        )
        self._notify("show_pending")
        return True

    def cancel(self) -> bool:
        """User cancel: PENDING -> IDLE. No-op in any other phase."""
        if self._state.phase != FallPhase.PENDING:
            logger.debug(f"Cancel ignored while {self._state.phase.value}")
            return False

        self._disarm()
        self._state.phase = FallPhase.IDLE
        self._state.pending_deadline = None

        logger.info(f"Fall cancelled by user (episode {self._state.episode})")
        self._notify("dismiss_pending")
        return True

    def handle_deadline(self, token: DeadlineToken) -> bool:
        """
        Confirm the episode if the token is still the armed one.

        Stale tokens (cancelled, reset, or from an earlier episode) are
        ignored even if their event was already queued.
        """
        if (
            token.cancelled
            or token is not self._token
            or self._state.phase != FallPhase.PENDING
        ):
            logger.debug(f"Stale deadline ignored: {token}")
            return False

        self._token = None
        self._state.phase = FallPhase.CONFIRMED
        self._state.pending_deadline = None

        location = self._current_location()
        self.emergencies_raised += 1
        logger.critical(
            f"Fall confirmed (episode {token.episode}), no response received"
        )
        self._notify("raise_emergency", location)
        return True

    def reset(self) -> bool:
        """Manual clear: back to IDLE from any phase."""
        previous = self._state.phase
        if previous == FallPhase.IDLE:
            return False

        self._disarm()
        self._state.phase = FallPhase.IDLE
        self._state.pending_deadline = None

        logger.info(f"Fall state reset from {previous.value}")
        if previous == FallPhase.PENDING:
            self._notify("dismiss_pending")
        return True

    def close(self):
        """Disarm any pending deadline without notifying the presenter."""
        self._disarm()

    def status_lines(self) -> list[str]:
        """Debug readout of the current phase."""
        pending = self._state.phase == FallPhase.PENDING
        confirmed = self._state.phase == FallPhase.CONFIRMED
        return [
            f"Fall pending: {'YES' if pending else 'NO'}",
            f"Fall confirmed: {'YES' if confirmed else 'NO'}",
        ]

    def _deadline_fired(self, token: DeadlineToken):
        token.handle = None
        if self.deadline_sink is not None:
            self.deadline_sink(token)
        else:
            self.handle_deadline(token)

    def _disarm(self):
        if self._token is not None:
            self._token.cancel()
            self._token = None

    def _current_location(self):
        if self.location_provider is None:
            return UNAVAILABLE
        try:
            return self.location_provider.current_location()
        except Exception as e:
            logger.warning(f"Location unavailable at confirmation: {e}")
            return UNAVAILABLE

    def _notify(self, method: str, *args):
        try:
            getattr(self.presenter, method)(*args)
        except Exception as e:
            logger.error(f"Alert presenter {method} failed: {e}", exc_info=True)

    def __repr__(self) -> str:
        return (
            f"FallStateMachine(phase={self._state.phase.value}, "
            f"episode={self._state.episode})"
        )
