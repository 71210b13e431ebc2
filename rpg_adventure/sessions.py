"""In-memory game sessions and their turn history.

Each Session bundles the agent (conversation history), the current game
state and the list of completed turns behind one asyncio.Lock. A turn holds
the lock from the first byte of the request until turn_complete, so a tool
call from turn N can never land after turn N+1 has started.

Sessions live only as long as the process.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import aclosing
from typing import AsyncIterator, Callable

from rpg_adventure.agent import Agent
from rpg_adventure.llm import ChatClient
from rpg_adventure.models import GameState, TurnCompleteEvent, TurnEvent, TurnRecord

logger = logging.getLogger(__name__)

INTRO_STORY = (
    "You wake up in a dimly lit room. The air smells of old parchment and "
    "something... magical. Three doors stand before you, each humming with a "
    "different energy."
)

INTRO_CHOICES = [
    "Open the door radiating blue light",
    "Open the door with ancient runes carved into it",
    "Open the plain wooden door",
]


class Session:
    def __init__(self, session_id: str, agent: Agent, game_state: GameState) -> None:
        self.id = session_id
        self.agent = agent
        self.game_state = game_state
        self.turns: list[TurnRecord] = []
        self.lock = asyncio.Lock()

    def get_turn(self, turn_number: int) -> TurnRecord:
        if turn_number < 0:
            raise IndexError(turn_number)
        return self.turns[turn_number]


class SessionStore:
    """Registry of active sessions, keyed by id."""

    def __init__(self, client_factory: Callable[[], ChatClient]) -> None:
        self._client_factory = client_factory
        self._sessions: dict[str, Session] = {}

    def start_session(self) -> Session:
        """Create a session with a fresh agent and the intro turn as turn 0."""
        agent = Agent(self._client_factory())
        game_state = agent.start_session()
        session = Session(uuid.uuid4().hex, agent, game_state)
        self.append_turn(
            session,
            TurnRecord(
                turn_number=0,
                story_text=INTRO_STORY,
                choices=list(INTRO_CHOICES),
                game_state=game_state.model_copy(),
            ),
        )
        self._sessions[session.id] = session
        logger.info("session %s started", session.id)
        return session

    def get(self, session_id: str) -> Session:
        """Raises KeyError for an unknown id."""
        return self._sessions[session_id]

    def get_turn(self, session_id: str, turn_number: int) -> TurnRecord:
        return self.get(session_id).get_turn(turn_number)

    def append_turn(self, session: Session, record: TurnRecord) -> None:
        """Record a completed turn. Turn numbers must follow on from the last one."""
        if record.turn_number != len(session.turns):
            raise ValueError(
                f"Turn {record.turn_number} out of sequence, expected {len(session.turns)}"
            )
        session.turns.append(record)
        logger.debug("session %s recorded turn %d", session.id, record.turn_number)

    async def play(self, session: Session, action: str) -> AsyncIterator[TurnEvent]:
        """Run one turn under the session lock, recording it on completion."""
        async with session.lock:
            turn_number = len(session.turns)
            events = session.agent.process_action(action, session.game_state, turn_number)
            async with aclosing(events):
                async for event in events:
                    if isinstance(event, TurnCompleteEvent):
                        self.append_turn(
                            session,
                            TurnRecord(
                                turn_number=event.turn_number,
                                story_text=event.story_text,
                                choices=event.choices,
                                game_state=event.game_state,
                            ),
                        )
                    yield event

    def list_sessions(self) -> list[dict]:
        return [
            {
                "session_id": s.id,
                "turn_count": len(s.turns),
                "location": s.game_state.location,
            }
            for s in self._sessions.values()
        ]
