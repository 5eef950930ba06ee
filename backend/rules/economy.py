from __future__ import annotations

from dataclasses import dataclass

from rules.settings import EngineConfig

STAT_FLOOR = 0
STAT_CEILING = 100


class EconomyError(ValueError):
    pass


@dataclass(frozen=True)
class CashLedger:
    opening: int
    delta: int
    burn: int
    computed: int
    closing: int


def clamp(value: int, lower: int = STAT_FLOOR, upper: int = STAT_CEILING) -> int:
    return max(lower, min(upper, value))


def floor_at_zero(value: int) -> int:
    return max(STAT_FLOOR, value)


def burn_rate_for_turn(turn: int, difficulty: str, config: EngineConfig) -> int:
    if turn < 1:
        raise EconomyError("Turn must be at least 1.")
    if not config.burn_rate_enabled:
        return 0
    multiplier = config.difficulty_multiplier(difficulty)
    return max(0, int(round(turn * config.base_burn_unit * multiplier)))


def settle_cash(opening: int, delta: int, burn: int, *, allow_negative: bool) -> CashLedger:
    if burn < 0:
        raise EconomyError("Burn rate must be non-negative.")
    computed = opening + delta - burn
    closing = computed if allow_negative else floor_at_zero(computed)
    return CashLedger(
        opening=opening,
        delta=delta,
        burn=burn,
        computed=computed,
        closing=closing,
    )


def is_bankrupt(ledger: CashLedger, threshold: int) -> bool:
    return ledger.computed < threshold
