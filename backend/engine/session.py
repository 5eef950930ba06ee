from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Mapping

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from engine.history import HistoryLog
from engine.phases import (
    LifecycleEvent,
    LifecycleState,
    Phase,
    TransitionError,
    accepts_actions,
    next_state,
)
from llm.client import GatewayFailure, ProviderGateway
from llm.schemas import ScenarioRequest, TurnPayload, TurnRequest
from models import GameStats, HistoryEntry, Profile, WorldContext
from rules.settings import EngineConfig
from rules.turn import resolve
from rules.validation import MalformedPayload, parse_turn_payload

logger = logging.getLogger(__name__)


class InitializationError(RuntimeError):
    pass


class SessionError(ValueError):
    pass


class ActionStatus(str, Enum):
    RESOLVED = "resolved"
    TERMINATED = "terminated"
    BUSY = "busy"
    INACTIVE = "inactive"
    MALFORMED = "malformed"
    GATEWAY_FAILURE = "gateway_failure"


@dataclass(frozen=True)
class ActionOutcome:
    status: ActionStatus
    error: str | None = None
    terminal_reason: str | None = None

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "error": self.error,
            "terminalReason": self.terminal_reason,
        }


class SessionSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    session_id: str
    phase: Phase
    state: LifecycleState
    profile: Profile | None
    stats: GameStats
    world: WorldContext
    current_payload: TurnPayload | None
    history: list[HistoryEntry]
    stats_trend: list[GameStats]
    terminal_reason: str | None = None


class Session:
    def __init__(
        self,
        gateway: ProviderGateway,
        config: EngineConfig | None = None,
        *,
        session_id: str | None = None,
    ) -> None:
        self.id = session_id or uuid.uuid4().hex
        self.config = config or EngineConfig()
        self._gateway = gateway
        self._state = LifecycleState.SETUP
        self._starting = False
        self.profile: Profile | None = None
        self.stats: GameStats = self.config.initial_stats
        self.world: WorldContext = self.config.initial_world
        self.current_payload: TurnPayload | None = None
        self.history = HistoryLog()
        self.stats_trend: list[GameStats] = []
        self.terminal_reason: str | None = None

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def gateway(self) -> ProviderGateway:
        return self._gateway

    async def start(self, profile: Profile) -> SessionSnapshot:
        if self._state is not LifecycleState.SETUP:
            raise TransitionError(f"Session {self.id} has already left setup.")
        if self._starting:
            raise TransitionError(f"Session {self.id} is already starting.")

        self._starting = True
        try:
            raw = await self._call_gateway(
                self._gateway.start_scenario(ScenarioRequest(profile=profile))
            )
            payload = parse_turn_payload(raw)
        except (GatewayFailure, MalformedPayload) as exc:
            self._state = next_state(self._state, LifecycleEvent.SCENARIO_FAILED)
            logger.warning("Session %s failed to initialise: %s", self.id, exc)
            raise InitializationError(f"Simulation engine initialization failed: {exc}") from exc
        finally:
            self._starting = False

        self.profile = profile
        self.stats = self.config.initial_stats
        if payload.world_update is not None:
            self.world = payload.world_update
        self.current_payload = payload
        self.stats_trend = [self.stats]
        self._state = next_state(self._state, LifecycleEvent.SCENARIO_STARTED)
        logger.info("Session %s started for %s", self.id, profile.name)
        return self.snapshot()

    async def submit_action(self, action: str, is_custom: bool = False) -> ActionOutcome:
        if self._state is LifecycleState.AWAITING_RESPONSE:
            logger.info("Session %s rejected an action while awaiting a response", self.id)
            return ActionOutcome(ActionStatus.BUSY, error="A turn is already in progress.")
        if not accepts_actions(self._state):
            return ActionOutcome(
                ActionStatus.INACTIVE,
                error=f"Session is {self._state.value}.",
                terminal_reason=self.terminal_reason,
            )

        text = (action or "").strip()
        if not text:
            raise SessionError("Action text must not be empty.")

        profile = self.profile
        presented = self.current_payload
        if profile is None or presented is None:
            raise TransitionError(f"Session {self.id} is idle without a scenario.")

        before = self.stats
        world = self.world
        self.history.append(
            HistoryEntry(
                turn=before.turn,
                narrative=presented.narrative,
                event_summary=presented.event_summary,
                stats_snapshot=before,
                choice_made=text,
                is_custom=is_custom,
            )
        )
        self._state = next_state(self._state, LifecycleEvent.ACTION_SUBMITTED)

        request = TurnRequest(
            profile=profile,
            current_stats=before,
            action=text,
            is_custom_action=is_custom,
            world_context=world,
            recent_history=self.history.recent_summaries(self.config.history_window),
        )
        try:
            raw = await self._call_gateway(self._gateway.advance_turn(request))
            resolution = resolve(before, profile, world, raw, self.config)
        except MalformedPayload as exc:
            self._state = next_state(self._state, LifecycleEvent.TURN_FAILED)
            logger.warning("Session %s received a malformed payload: %s", self.id, exc)
            return ActionOutcome(ActionStatus.MALFORMED, error=_describe(exc))
        except GatewayFailure as exc:
            self._state = next_state(self._state, LifecycleEvent.TURN_FAILED)
            logger.warning("Session %s gateway failure: %s", self.id, exc)
            return ActionOutcome(ActionStatus.GATEWAY_FAILURE, error=str(exc))
        except asyncio.CancelledError:
            self._state = next_state(self._state, LifecycleEvent.TURN_CANCELLED)
            logger.info("Session %s abandoned an in-flight turn", self.id)
            raise

        self.stats = resolution.stats
        self.world = resolution.world
        self.current_payload = resolution.payload
        self.stats_trend.append(resolution.stats)

        if resolution.is_terminal:
            self.terminal_reason = resolution.terminal_reason
            self._state = next_state(self._state, LifecycleEvent.TURN_TERMINAL)
            logger.info("Session %s terminated: %s", self.id, self.terminal_reason)
            return ActionOutcome(ActionStatus.TERMINATED, terminal_reason=self.terminal_reason)

        self._state = next_state(self._state, LifecycleEvent.TURN_RESOLVED)
        return ActionOutcome(ActionStatus.RESOLVED)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.id,
            phase=self.phase,
            state=self._state,
            profile=self.profile,
            stats=self.stats,
            world=self.world,
            current_payload=self.current_payload,
            history=list(self.history.entries),
            stats_trend=list(self.stats_trend),
            terminal_reason=self.terminal_reason,
        )

    async def _call_gateway(self, call: Awaitable[Mapping[str, Any]]) -> Mapping[str, Any]:
        try:
            if self.config.turn_timeout is None:
                return await call
            return await asyncio.wait_for(call, timeout=self.config.turn_timeout)
        except GatewayFailure:
            raise
        except asyncio.TimeoutError as exc:
            raise GatewayFailure(
                f"Provider did not respond within {self.config.turn_timeout} seconds."
            ) from exc
        except Exception as exc:
            raise GatewayFailure(f"{type(exc).__name__}: {exc}") from exc


async def create_session(
    profile: Profile,
    gateway: ProviderGateway,
    config: EngineConfig | None = None,
) -> Session:
    session = Session(gateway, config)
    await session.start(profile)
    return session


async def submit_action(session: Session, action: str, is_custom: bool = False) -> ActionOutcome:
    return await session.submit_action(action, is_custom)


def current_state(session: Session) -> SessionSnapshot:
    return session.snapshot()


async def reset_session(session: Session, gateway: ProviderGateway | None = None) -> Session:
    if session.profile is None:
        raise SessionError("Cannot reset a session that never left setup.")
    return await create_session(session.profile, gateway or session.gateway, session.config)


def _describe(exc: MalformedPayload) -> str:
    if not exc.errors:
        return str(exc)
    return f"{exc} ({'; '.join(exc.errors)})"
