from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Mapping

from models import INITIAL_STATS, INITIAL_WORLD, GameStats, WorldContext

DEFAULT_DIFFICULTY_MULTIPLIERS: dict[str, float] = {
    "bootstrapper": 1.0,
    "venture-scale": 1.5,
}

DEFAULT_GAME_OVER_REASON = "The market was more ruthless than your vision today."


@dataclass(frozen=True)
class EngineConfig:
    base_burn_unit: int = 1000
    difficulty_multipliers: Mapping[str, float] = field(
        default_factory=lambda: dict(DEFAULT_DIFFICULTY_MULTIPLIERS)
    )
    burn_rate_enabled: bool = True
    allow_negative_cash: bool = True
    bankruptcy_threshold: int = -50000
    history_window: int = 5
    turn_timeout: float | None = 60.0
    default_game_over_reason: str = DEFAULT_GAME_OVER_REASON
    initial_stats: GameStats = INITIAL_STATS
    initial_world: WorldContext = INITIAL_WORLD

    def difficulty_multiplier(self, difficulty: str) -> float:
        return float(self.difficulty_multipliers.get(difficulty, 1.0))

    @classmethod
    def reduced(cls, **overrides) -> EngineConfig:
        base = cls(
            burn_rate_enabled=False,
            allow_negative_cash=False,
            bankruptcy_threshold=0,
            initial_stats=INITIAL_STATS.model_copy(update={"burn_rate": 0}),
        )
        return replace(base, **overrides)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EngineConfig:
        env = os.environ if environ is None else environ
        defaults = cls()
        multipliers = dict(defaults.difficulty_multipliers)
        venture = _env_float(env, "SIM_VENTURE_MULTIPLIER")
        if venture is not None:
            multipliers["venture-scale"] = venture
        timeout = defaults.turn_timeout
        raw_timeout = env.get("SIM_TURN_TIMEOUT")
        if raw_timeout is not None:
            timeout = None if raw_timeout.strip().lower() in {"", "none", "0"} else float(raw_timeout)
        return cls(
            base_burn_unit=_env_int(env, "SIM_BASE_BURN_UNIT", defaults.base_burn_unit),
            difficulty_multipliers=multipliers,
            burn_rate_enabled=_env_bool(env, "SIM_BURN_RATE_ENABLED", defaults.burn_rate_enabled),
            allow_negative_cash=_env_bool(
                env, "SIM_ALLOW_NEGATIVE_CASH", defaults.allow_negative_cash
            ),
            bankruptcy_threshold=_env_int(
                env, "SIM_BANKRUPTCY_THRESHOLD", defaults.bankruptcy_threshold
            ),
            history_window=_env_int(env, "SIM_HISTORY_WINDOW", defaults.history_window),
            turn_timeout=timeout,
        )


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    value = env.get(key)
    if value is None or not value.strip():
        return default
    return int(value)


def _env_float(env: Mapping[str, str], key: str) -> float | None:
    value = env.get(key)
    if value is None or not value.strip():
        return None
    return float(value)


def _env_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    value = env.get(key)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}
