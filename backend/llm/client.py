from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import Any, Callable, Mapping, Protocol

import requests

from engine.history import summary_line
from llm.schemas import ScenarioRequest, TurnRequest
from models import Profile

logger = logging.getLogger(__name__)

PAYLOAD_SCHEMA = (
    "{"
    '"narrative": "string", '
    '"feedback": "string", '
    '"visualVibe": "calm|tense|explosive|string", '
    '"eventSummary": "string", '
    '"choices": [{"id": "string", "text": "string", '
    '"type": "risky|safe|expensive|innovative", "icon": "string"}], '
    '"statChanges": {"cash": 0, "users": 0, "productQuality": 0, '
    '"marketFit": 0, "stress": 0, "valuation": 0}, '
    '"worldUpdate": {"marketCycle": "Bull|Bear|Stagnant", '
    '"trendingTech": ["string"], "globalEvent": "string"} | null, '
    '"isGameOver": false, '
    '"gameOverReason": "string|null"'
    "}"
)

MessageBuilder = Callable[[Any, int, "str | None"], list[dict[str, str]]]


class GatewayFailure(RuntimeError):
    pass


class ProviderGateway(Protocol):
    async def start_scenario(self, request: ScenarioRequest) -> Mapping[str, Any]: ...

    async def advance_turn(self, request: TurnRequest) -> Mapping[str, Any]: ...


class OllamaClient:
    def __init__(
        self,
        *,
        base_url: str | None = None,
        model: str | None = None,
        timeout: int | None = None,
        max_attempts: int | None = None,
    ) -> None:
        self.base_url = (base_url or os.getenv("OLLAMA_URL") or "http://localhost:11434").rstrip(
            "/"
        )
        self.model = model or os.getenv("OLLAMA_MODEL") or "gpt-oss:20b"
        if timeout is None:
            timeout = int(os.getenv("OLLAMA_TIMEOUT", "30"))
        self.timeout = timeout
        if max_attempts is None:
            max_attempts = int(os.getenv("OLLAMA_MAX_ATTEMPTS", "1"))
        self.max_attempts = max(1, max_attempts)

    async def start_scenario(self, request: ScenarioRequest) -> dict[str, Any]:
        return await asyncio.to_thread(self._generate, _scenario_messages, request)

    async def advance_turn(self, request: TurnRequest) -> dict[str, Any]:
        return await asyncio.to_thread(self._generate, _turn_messages, request)

    def _generate(self, build_messages: MessageBuilder, request: Any) -> dict[str, Any]:
        attempts = 0
        last_error: str | None = None
        while attempts < self.max_attempts:
            attempts += 1
            try:
                content = self._chat(
                    messages=build_messages(request, attempts, last_error),
                    temperature=0.7,
                    format="json",
                )
                return _extract_json(content)
            except (requests.RequestException, GatewayFailure, ValueError) as exc:
                last_error = str(exc)
                logger.warning(
                    "Generation attempt %s/%s failed: %s", attempts, self.max_attempts, exc
                )
        raise GatewayFailure(f"Provider request failed: {last_error}")

    def _chat(
        self,
        *,
        messages: list[dict[str, str]],
        temperature: float,
        format: str | None = None,
    ) -> str:
        url = f"{self.base_url}/api/chat"
        payload = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "options": {"temperature": temperature},
        }
        if format:
            payload["format"] = format
        response = requests.post(url, json=payload, timeout=self.timeout)
        response.raise_for_status()
        data = response.json()
        message = data.get("message", {})
        content = message.get("content")
        if not isinstance(content, str):
            raise GatewayFailure("Invalid response from Ollama.")
        return content


def system_instruction(profile: Profile) -> str:
    if profile.difficulty == "bootstrapper":
        difficulty = "Bootstrapper (simpler wording, forgiving economics)"
    else:
        difficulty = "Venture Scale (complex business terminology, aggressive market shifts)"
    return (
        "You are a high-fidelity startup simulation engine. "
        f"Difficulty: {difficulty}. "
        f"Theme atmosphere: {profile.theme}; let it colour the narrative prose. "
        "Economics are grounded in reality. "
        "The player acts by picking a listed choice or by typing a custom action; "
        "interpret custom actions by their realistic impact on the startup. "
        "Avoid cliches and use current market realities "
        "(venture debt, churn, LTV/CAC, pivot fatigue). "
        "statChanges are signed integer deltas, not absolute values. "
        "Offer 3 or 4 choices unless the game is over. "
        f"Return JSON only, matching this schema: {PAYLOAD_SCHEMA}. "
        "No markdown, no extra keys."
    )


def _scenario_messages(
    request: ScenarioRequest,
    attempt: int,
    last_error: str | None,
) -> list[dict[str, str]]:
    profile = request.profile
    system = system_instruction(profile)
    if attempt > 1 and last_error:
        system += f" Previous output invalid: {last_error}. Return JSON only."

    user = {
        "instruction": (
            f"Start the game for {profile.name}. Degree: {profile.degree}. "
            f"Background: {profile.background}. Specialty: {profile.specialty}. "
            "Set the opening scene and offer initial ideas."
        ),
        "profile": profile.model_dump(mode="json", by_alias=True),
    }
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": json.dumps(user)},
    ]


def _turn_messages(
    request: TurnRequest,
    attempt: int,
    last_error: str | None,
) -> list[dict[str, str]]:
    stats = request.current_stats
    system = system_instruction(request.profile)
    if attempt > 1 and last_error:
        system += f" Previous output invalid: {last_error}. Return JSON only."

    action = f"[CUSTOM ACTION]: {request.action}" if request.is_custom_action else request.action
    market = request.world_context.market_cycle if request.world_context else "Unknown"
    instruction = (
        f"Turn {stats.turn}. Action: {action}. "
        f"Stats: Cash ${stats.cash}, Users {stats.users}, "
        f"Quality {stats.product_quality}, Market Fit {stats.market_fit}, "
        f"Stress {stats.stress}. Market: {market}. "
        "Calculate the outcome."
    )
    if request.is_custom_action:
        instruction += " It is a custom action: be critical but fair."
    recent = summary_line(request.recent_history)
    if recent:
        instruction += f" Recent events: {recent}."

    user = {
        "instruction": instruction,
        "context": request.model_dump(mode="json", by_alias=True, exclude={"profile"}),
    }
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": json.dumps(user)},
    ]


def _extract_json(content: str) -> dict[str, Any]:
    try:
        data = json.loads(content)
        if isinstance(data, dict):
            return data
    except json.JSONDecodeError:
        pass

    start = content.find("{")
    end = content.rfind("}")
    if start >= 0 and end > start:
        data = json.loads(content[start : end + 1])
        if isinstance(data, dict):
            return data
    raise GatewayFailure("Failed to parse turn payload JSON.")
