from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from llm.schemas import TurnPayload
from models import GameStats, Profile, WorldContext
from rules.economy import (
    CashLedger,
    burn_rate_for_turn,
    clamp,
    floor_at_zero,
    is_bankrupt,
    settle_cash,
)
from rules.settings import EngineConfig
from rules.validation import parse_turn_payload

BANKRUPTCY = "bankruptcy"
BURNOUT = "burnout"
STRESS_LIMIT = 100


@dataclass(frozen=True)
class TurnResolution:
    stats: GameStats
    world: WorldContext
    payload: TurnPayload
    ledger: CashLedger
    terminal_reason: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.terminal_reason is not None


def resolve(
    current: GameStats,
    profile: Profile,
    world: WorldContext,
    payload: TurnPayload | dict[str, Any],
    config: EngineConfig | None = None,
) -> TurnResolution:
    config = config or EngineConfig()
    turn_payload = parse_turn_payload(payload)
    changes = turn_payload.stat_changes

    burn = burn_rate_for_turn(current.turn, profile.difficulty, config)
    ledger = settle_cash(
        current.cash,
        changes.cash,
        burn,
        allow_negative=config.allow_negative_cash,
    )
    next_stats = GameStats(
        cash=ledger.closing,
        users=floor_at_zero(current.users + changes.users),
        product_quality=clamp(current.product_quality + changes.product_quality),
        market_fit=clamp(current.market_fit + changes.market_fit),
        stress=clamp(current.stress + changes.stress),
        valuation=floor_at_zero(current.valuation + changes.valuation),
        turn=current.turn + 1,
        burn_rate=burn,
    )
    next_world = turn_payload.world_update if turn_payload.world_update is not None else world

    return TurnResolution(
        stats=next_stats,
        world=next_world,
        payload=turn_payload,
        ledger=ledger,
        terminal_reason=terminal_reason(turn_payload, next_stats, ledger, config),
    )


def terminal_reason(
    payload: TurnPayload,
    stats: GameStats,
    ledger: CashLedger,
    config: EngineConfig,
) -> str | None:
    if payload.is_game_over:
        reason = (payload.game_over_reason or "").strip()
        return reason or config.default_game_over_reason
    if is_bankrupt(ledger, config.bankruptcy_threshold):
        return BANKRUPTCY
    if stats.stress >= STRESS_LIMIT:
        return BURNOUT
    return None
