import logging
import os

from fastapi import FastAPI, HTTPException, Response
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from engine.phases import TransitionError
from engine.session import (
    InitializationError,
    Session,
    SessionError,
    create_session,
    current_state,
    reset_session,
    submit_action,
)
from llm.client import OllamaClient
from models import Profile
from rules.settings import EngineConfig

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

app = FastAPI(
    title="launchpad-runner API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

SESSIONS: dict[str, Session] = {}


class ActionRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    action: str = Field(min_length=1)
    is_custom: bool = False


def _get_session(session_id: str) -> Session:
    session = SESSIONS.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _snapshot_payload(session: Session) -> dict:
    return current_state(session).model_dump(mode="json", by_alias=True)


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "sessions": len(SESSIONS)}


@app.post("/sessions", status_code=201)
async def create_session_endpoint(profile: Profile) -> dict:
    try:
        session = await create_session(profile, OllamaClient(), EngineConfig.from_env())
    except InitializationError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    SESSIONS[session.id] = session
    return _snapshot_payload(session)


@app.get("/sessions/{session_id}")
def get_session(session_id: str) -> dict:
    return _snapshot_payload(_get_session(session_id))


@app.post("/sessions/{session_id}/actions")
async def submit_action_endpoint(session_id: str, payload: ActionRequest) -> dict:
    session = _get_session(session_id)
    try:
        outcome = await submit_action(session, payload.action, payload.is_custom)
    except (SessionError, TransitionError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"outcome": outcome.to_dict(), "session": _snapshot_payload(session)}


@app.post("/sessions/{session_id}/reset", status_code=201)
async def reset_session_endpoint(session_id: str) -> dict:
    session = _get_session(session_id)
    try:
        fresh = await reset_session(session, OllamaClient())
    except SessionError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except InitializationError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    SESSIONS.pop(session_id, None)
    SESSIONS[fresh.id] = fresh
    logger.info("Session %s reset as %s", session_id, fresh.id)
    return _snapshot_payload(fresh)


@app.delete("/sessions/{session_id}", status_code=204)
def delete_session(session_id: str) -> Response:
    _get_session(session_id)
    SESSIONS.pop(session_id, None)
    return Response(status_code=204)
