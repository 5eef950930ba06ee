from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Degree = Literal["Bachelor's", "Master's", "PhD", "Dropout"]
Theme = Literal["light", "dark", "neon"]
Difficulty = Literal["bootstrapper", "venture-scale"]
MarketCycle = Literal["Bull", "Bear", "Stagnant"]


class StateModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Profile(StateModel):
    name: str
    degree: Degree
    background: str = ""
    specialty: str = ""
    theme: Theme = "dark"
    difficulty: Difficulty = "bootstrapper"

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Founder name must not be empty.")
        return cleaned


class GameStats(StateModel):
    cash: int
    users: int = Field(ge=0)
    product_quality: int = Field(ge=0, le=100)
    market_fit: int = Field(ge=0, le=100)
    stress: int = Field(ge=0, le=100)
    valuation: int = Field(ge=0)
    turn: int = Field(ge=1)
    burn_rate: int = Field(default=0, ge=0)


class WorldContext(StateModel):
    market_cycle: MarketCycle
    trending_tech: list[str] = Field(default_factory=list)
    global_event: str | None = None


class HistoryEntry(StateModel):
    turn: int = Field(ge=1)
    narrative: str
    event_summary: str
    stats_snapshot: GameStats
    choice_made: str
    is_custom: bool = False


INITIAL_STATS = GameStats(
    cash=30000,
    users=0,
    product_quality=10,
    market_fit=5,
    stress=5,
    valuation=100000,
    turn=1,
    burn_rate=2000,
)

INITIAL_WORLD = WorldContext(
    market_cycle="Bull",
    trending_tech=["Sustainable AI", "Modular Web"],
)
