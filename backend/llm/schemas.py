from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from models import GameStats, Profile, WorldContext

ChoiceType = Literal["risky", "safe", "expensive", "innovative"]


class WireModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        strict=True,
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class StoryChoice(WireModel):
    id: str
    text: str
    type: ChoiceType
    icon: str | None = None


class StatChanges(WireModel):
    cash: int
    users: int
    product_quality: int
    market_fit: int = Field(
        validation_alias=AliasChoices("marketFit", "hype", "market_fit"),
        serialization_alias="marketFit",
    )
    stress: int
    valuation: int


class TurnPayload(WireModel):
    narrative: str
    feedback: str
    event_summary: str
    choices: list[StoryChoice]
    stat_changes: StatChanges
    is_game_over: bool
    world_update: WorldContext | None = None
    game_over_reason: str | None = None
    visual_vibe: str | None = None

    @model_validator(mode="after")
    def _choices_on_open_turn(self) -> TurnPayload:
        if not self.is_game_over and not self.choices:
            raise ValueError("choices must not be empty on a non-terminal turn")
        return self


class ScenarioRequest(WireModel):
    profile: Profile


class TurnRequest(WireModel):
    profile: Profile
    current_stats: GameStats
    action: str
    is_custom_action: bool = False
    world_context: WorldContext | None = None
    recent_history: list[str] = Field(default_factory=list)
