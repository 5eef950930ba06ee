from __future__ import annotations

from enum import Enum


class Phase(str, Enum):
    SETUP = "setup"
    ACTIVE = "active"
    TERMINATED = "terminated"


class LifecycleState(str, Enum):
    SETUP = "setup"
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
    TERMINATED = "terminated"

    @property
    def phase(self) -> Phase:
        if self is LifecycleState.SETUP:
            return Phase.SETUP
        if self is LifecycleState.TERMINATED:
            return Phase.TERMINATED
        return Phase.ACTIVE


class LifecycleEvent(str, Enum):
    SCENARIO_STARTED = "scenario_started"
    SCENARIO_FAILED = "scenario_failed"
    ACTION_SUBMITTED = "action_submitted"
    TURN_RESOLVED = "turn_resolved"
    TURN_TERMINAL = "turn_terminal"
    TURN_FAILED = "turn_failed"
    TURN_CANCELLED = "turn_cancelled"


class TransitionError(ValueError):
    pass


TRANSITIONS: dict[tuple[LifecycleState, LifecycleEvent], LifecycleState] = {
    (LifecycleState.SETUP, LifecycleEvent.SCENARIO_STARTED): LifecycleState.IDLE,
    (LifecycleState.SETUP, LifecycleEvent.SCENARIO_FAILED): LifecycleState.SETUP,
    (LifecycleState.IDLE, LifecycleEvent.ACTION_SUBMITTED): LifecycleState.AWAITING_RESPONSE,
    (LifecycleState.AWAITING_RESPONSE, LifecycleEvent.TURN_RESOLVED): LifecycleState.IDLE,
    (
        LifecycleState.AWAITING_RESPONSE,
        LifecycleEvent.TURN_TERMINAL,
    ): LifecycleState.TERMINATED,
    (LifecycleState.AWAITING_RESPONSE, LifecycleEvent.TURN_FAILED): LifecycleState.IDLE,
    (LifecycleState.AWAITING_RESPONSE, LifecycleEvent.TURN_CANCELLED): LifecycleState.IDLE,
}


def next_state(state: LifecycleState, event: LifecycleEvent) -> LifecycleState:
    try:
        return TRANSITIONS[(state, event)]
    except KeyError:
        raise TransitionError(f"{event.value} is not allowed while {state.value}.") from None


def accepts_actions(state: LifecycleState) -> bool:
    return (state, LifecycleEvent.ACTION_SUBMITTED) in TRANSITIONS


def validate_transition_table() -> list[str]:
    errors: list[str] = []
    for (state, event), target in TRANSITIONS.items():
        if state is LifecycleState.TERMINATED:
            errors.append(f"{state.value} must be absorbing but leaves on {event.value}")
        if not isinstance(target, LifecycleState):
            errors.append(f"{state.value} on {event.value} has invalid target {target!r}")

    reachable = {LifecycleState.SETUP}
    frontier = [LifecycleState.SETUP]
    while frontier:
        current = frontier.pop()
        for (state, _event), target in TRANSITIONS.items():
            if state is current and target not in reachable:
                reachable.add(target)
                frontier.append(target)
    for state in LifecycleState:
        if state not in reachable:
            errors.append(f"{state.value} is unreachable from {LifecycleState.SETUP.value}")
    return errors
