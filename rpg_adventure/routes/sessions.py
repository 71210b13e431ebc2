"""Session endpoints: start a game, read turns, submit actions."""

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from rpg_adventure.llm import LLMError
from rpg_adventure.sessions import Session, SessionStore

from .models import ActionBody

logger = logging.getLogger(__name__)

router = APIRouter()


def _store(request: Request) -> SessionStore:
    return request.app.state.sessions


def _session(request: Request, session_id: str) -> Session:
    try:
        return _store(request).get(session_id)
    except KeyError:
        raise HTTPException(404, "Session not found")


@router.post("/sessions")
async def start_session(request: Request):
    """Start a new game. Returns the session id and the intro turn."""
    session = _store(request).start_session()
    return {"session_id": session.id, "turn": session.turns[0]}


@router.get("/sessions")
async def list_sessions(request: Request):
    """List active sessions."""
    return _store(request).list_sessions()


@router.get("/sessions/{session_id}/turns/{turn_number}")
async def get_turn(request: Request, session_id: str, turn_number: int):
    """Get one completed turn."""
    session = _session(request, session_id)
    try:
        return session.get_turn(turn_number)
    except IndexError:
        raise HTTPException(404, "Turn not found")


@router.post("/sessions/{session_id}/actions")
async def submit_action(request: Request, session_id: str, body: ActionBody):
    """Submit a player action and stream the turn back as NDJSON events.

    The first event is pulled before the response starts so that an
    unreachable server still maps to a proper HTTP error.
    """
    session = _session(request, session_id)
    events = _store(request).play(session, body.action)
    try:
        first = await anext(events)
    except LLMError as e:
        raise HTTPException(502, str(e))
    except StopAsyncIteration:
        raise HTTPException(500, "Turn produced no events")

    async def ndjson():
        try:
            yield first.model_dump_json() + "\n"
            async for event in events:
                yield event.model_dump_json() + "\n"
        finally:
            await events.aclose()

    return StreamingResponse(ndjson(), media_type="application/x-ndjson")
