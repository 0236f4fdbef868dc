"""Fall state machine and monitoring session."""

from .monitor import DeadlineElapsed, FallMonitor, ImpactObserved, ManualReset, UserCancel
from .state_machine import (
    DeadlineToken,
    FallState,
    FallStateMachine,
    FallStateSnapshot,
    LoopScheduler,
)

__all__ = [
    "FallMonitor",
    "FallStateMachine",
    "FallState",
    "FallStateSnapshot",
    "DeadlineToken",
    "LoopScheduler",
    "ImpactObserved",
    "UserCancel",
    "DeadlineElapsed",
    "ManualReset",
]
