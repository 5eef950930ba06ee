import pytest

from models import GameStats, Profile, WorldContext
from rules.settings import DEFAULT_GAME_OVER_REASON, EngineConfig
from rules.turn import BANKRUPTCY, BURNOUT, resolve
from rules.validation import MalformedPayload

VENTURE = Profile(name="Ada", degree="PhD", difficulty="venture-scale")
BOOTSTRAP = Profile(name="Lin", degree="Dropout", difficulty="bootstrapper")
WORLD = WorldContext(market_cycle="Bull", trending_tech=["Sustainable AI"])


def _stats(**overrides) -> GameStats:
    data = {
        "cash": 30000,
        "users": 0,
        "product_quality": 10,
        "market_fit": 5,
        "stress": 5,
        "valuation": 100000,
        "turn": 1,
        "burn_rate": 2000,
    }
    data.update(overrides)
    return GameStats(**data)


def _payload(changes: dict | None = None, **overrides) -> dict:
    stat_changes = {
        "cash": 0,
        "users": 0,
        "productQuality": 0,
        "marketFit": 0,
        "stress": 0,
        "valuation": 0,
    }
    stat_changes.update(changes or {})
    data = {
        "narrative": "A quiet week.",
        "feedback": "Watch the runway.",
        "eventSummary": "Quiet week",
        "choices": [{"id": "c1", "text": "Keep building", "type": "safe", "icon": "x"}],
        "statChanges": stat_changes,
        "isGameOver": False,
    }
    data.update(overrides)
    return data


def test_venture_scale_turn_applies_burn_and_deltas() -> None:
    payload = _payload(
        {
            "cash": -2000,
            "users": 50,
            "productQuality": 3,
            "marketFit": 1,
            "stress": 4,
            "valuation": 5000,
        }
    )
    result = resolve(_stats(), VENTURE, WORLD, payload)

    assert result.stats.cash == 26500
    assert result.stats.burn_rate == 1500
    assert result.stats.users == 50
    assert result.stats.product_quality == 13
    assert result.stats.market_fit == 6
    assert result.stats.stress == 9
    assert result.stats.valuation == 105000
    assert result.stats.turn == 2
    assert result.is_terminal is False


def test_clamps_and_floors() -> None:
    payload = _payload(
        {
            "users": -500,
            "productQuality": 500,
            "marketFit": -500,
            "stress": -50,
            "valuation": -10**9,
        }
    )
    result = resolve(_stats(users=10, stress=20), BOOTSTRAP, WORLD, payload)
    assert result.stats.users == 0
    assert result.stats.product_quality == 100
    assert result.stats.market_fit == 0
    assert result.stats.stress == 0
    assert result.stats.valuation == 0


@pytest.mark.parametrize("turn", [1, 2, 9, 40])
def test_turn_increments_by_one(turn: int) -> None:
    result = resolve(_stats(turn=turn, cash=10**9), BOOTSTRAP, WORLD, _payload())
    assert result.stats.turn == turn + 1


def test_inputs_are_not_mutated() -> None:
    current = _stats()
    before = current.model_copy()
    payload = _payload({"cash": -5000, "stress": 10})
    resolve(current, VENTURE, WORLD, payload)
    assert current == before
    assert payload["statChanges"]["cash"] == -5000


def test_resolution_is_deterministic() -> None:
    payload = _payload({"users": 3, "stress": 2})
    first = resolve(_stats(), VENTURE, WORLD, payload)
    second = resolve(_stats(), VENTURE, WORLD, payload)
    assert first.stats == second.stats
    assert first.world == second.world


def test_world_carried_over_without_update() -> None:
    result = resolve(_stats(), BOOTSTRAP, WORLD, _payload())
    assert result.world is WORLD


def test_world_replaced_wholesale() -> None:
    update = {"marketCycle": "Bear", "trendingTech": ["Quantum"], "globalEvent": "Rate hike"}
    result = resolve(_stats(), BOOTSTRAP, WORLD, _payload(worldUpdate=update))
    assert result.world.market_cycle == "Bear"
    assert result.world.trending_tech == ["Quantum"]
    assert result.world.global_event == "Rate hike"


def test_bankruptcy_without_game_over_flag() -> None:
    result = resolve(_stats(cash=-49000), VENTURE, WORLD, _payload({"cash": -1000}))
    assert result.stats.cash == -51500
    assert result.terminal_reason == BANKRUPTCY


def test_burnout_at_full_stress() -> None:
    result = resolve(_stats(stress=95), BOOTSTRAP, WORLD, _payload({"stress": 20}))
    assert result.stats.stress == 100
    assert result.terminal_reason == BURNOUT


def test_bankruptcy_checked_before_burnout() -> None:
    result = resolve(
        _stats(cash=-60000, stress=99), BOOTSTRAP, WORLD, _payload({"stress": 5})
    )
    assert result.terminal_reason == BANKRUPTCY


def test_payload_game_over_wins() -> None:
    payload = _payload(
        {"cash": -100000, "stress": 100},
        isGameOver=True,
        gameOverReason="Your cofounder walked out.",
    )
    result = resolve(_stats(stress=100), VENTURE, WORLD, payload)
    assert result.terminal_reason == "Your cofounder walked out."


def test_payload_game_over_without_reason_uses_default() -> None:
    result = resolve(_stats(), VENTURE, WORLD, _payload(isGameOver=True))
    assert result.terminal_reason == DEFAULT_GAME_OVER_REASON


def test_floor_policy_keeps_cash_at_zero_and_goes_bankrupt() -> None:
    config = EngineConfig(allow_negative_cash=False, bankruptcy_threshold=0)
    result = resolve(_stats(cash=500), BOOTSTRAP, WORLD, _payload(), config)
    assert result.stats.cash == 0
    assert result.ledger.computed == -500
    assert result.terminal_reason == BANKRUPTCY


def test_negative_policy_keeps_distress_cash() -> None:
    config = EngineConfig(allow_negative_cash=True, bankruptcy_threshold=-50000)
    result = resolve(_stats(cash=500), BOOTSTRAP, WORLD, _payload(), config)
    assert result.stats.cash == -500
    assert result.is_terminal is False


def test_reduced_mode_skips_burn() -> None:
    config = EngineConfig.reduced()
    result = resolve(_stats(cash=1000), VENTURE, WORLD, _payload({"cash": 250}), config)
    assert result.stats.cash == 1250
    assert result.stats.burn_rate == 0


def test_missing_delta_raises_malformed() -> None:
    payload = _payload()
    del payload["statChanges"]["stress"]
    with pytest.raises(MalformedPayload):
        resolve(_stats(), VENTURE, WORLD, payload)
