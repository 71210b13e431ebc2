"""Agent — the dungeon-master loop that runs one player turn end-to-end.

Turn flow:
  1. Append the player's action (with the current game state) to history.
  2. Open one streaming chat call with the full history and the game tools.
  3. Drain the stream in order:
       text       → accumulate, yield text_chunk
       reasoning  → accumulate separately, yield reasoning_chunk
       tool call  → yield tool_call, apply it, yield tool_result or error
       done       → stop
       bad line   → yield error, stop
  4. Append the narrative (never the reasoning) to history.
  5. Pull three choices out of the narrative.
  6. Yield turn_complete, always the last event of a successful turn.

The game state is passed in by the caller and mutated in place; the caller
must not run two turns against the same session at once (see sessions.py).
"""

from __future__ import annotations

import logging
from contextlib import aclosing
from typing import AsyncIterator

from rpg_adventure.llm import ChatClient
from rpg_adventure.models import (
    ChatMessage,
    Done,
    ErrorEvent,
    GameState,
    ReasoningChunk,
    ReasoningChunkEvent,
    TextChunk,
    TextChunkEvent,
    ToolCall,
    ToolCallEvent,
    ToolResultEvent,
    TurnCompleteEvent,
    TurnEvent,
)
from rpg_adventure.stream import StreamDecodeError
from rpg_adventure.tools import ToolError, create_game_tools, execute_tool

logger = logging.getLogger(__name__)

FALLBACK_CHOICES = [
    "Continue exploring",
    "Examine your surroundings carefully",
    "Take a different approach",
]


def initial_game_state() -> GameState:
    return GameState(time="Morning", location="Mysterious Room", outfit="Traveler's Cloak")


class Agent:
    """Owns the conversation history for one game session."""

    def __init__(self, client: ChatClient) -> None:
        self._client = client
        self.history: list[ChatMessage] = []

    def start_session(self) -> GameState:
        """Reset history to the system prompt and return a fresh game state."""
        self.history.clear()
        self.history.append(ChatMessage(role="system", content=SYSTEM_PROMPT))
        return initial_game_state()

    async def process_action(
        self, action: str, game_state: GameState, turn_number: int
    ) -> AsyncIterator[TurnEvent]:
        """Run one turn, yielding TurnEvents as the model streams.

        LLMError from the client propagates before any event is yielded. If
        the turn does not finish (error or the consumer stops early) the
        player's message is taken back out of history and any tool calls
        already applied to `game_state` are undone.
        """
        mark = len(self.history)
        snapshot = game_state.model_copy()
        self.history.append(
            ChatMessage(role="user", content=format_user_message(action, game_state))
        )
        logger.info("turn %d started action=%r", turn_number, action)

        story_text = ""
        reasoning = ""
        finished = False
        try:
            stream = self._client.chat_stream(list(self.history), create_game_tools())
            async with aclosing(stream):
                try:
                    async for chunk in stream:
                        if isinstance(chunk, TextChunk):
                            story_text += chunk.content
                            yield TextChunkEvent(content=chunk.content)

                        elif isinstance(chunk, ReasoningChunk):
                            reasoning += chunk.content
                            yield ReasoningChunkEvent(content=chunk.content)

                        elif isinstance(chunk, ToolCall):
                            logger.info("tool call %s args=%r", chunk.name, chunk.arguments)
                            yield ToolCallEvent(name=chunk.name, args=chunk.arguments)
                            try:
                                execute_tool(chunk.name, chunk.arguments, game_state)
                            except ToolError as e:
                                logger.warning("tool %s failed: %s", chunk.name, e)
                                yield ErrorEvent(message=f"Tool execution failed: {e}")
                            else:
                                yield ToolResultEvent(
                                    name=chunk.name, result=game_state.model_copy()
                                )

                        elif isinstance(chunk, Done):
                            break

                except StreamDecodeError as e:
                    logger.warning("turn %d stream error: %s", turn_number, e)
                    yield ErrorEvent(message=f"Stream error: {e}")

            logger.debug(
                "turn %d drained text=%d chars reasoning=%d chars",
                turn_number, len(story_text), len(reasoning),
            )
            if story_text:
                self.history.append(ChatMessage(role="assistant", content=story_text))

            choices = extract_choices(story_text)
            finished = True
            logger.info("turn %d complete choices=%s", turn_number, choices)
            yield TurnCompleteEvent(
                turn_number=turn_number,
                story_text=story_text,
                choices=choices,
                game_state=game_state.model_copy(),
            )
        finally:
            if not finished:
                del self.history[mark:]
                for field in GameState.model_fields:
                    setattr(game_state, field, getattr(snapshot, field))


# ---------------------------------------------------------------------------
# Choice extraction
# ---------------------------------------------------------------------------

_CHOICE_SEPARATORS = (".", ")", ":")


def _strip_choice_prefix(line: str, number: int) -> str | None:
    for sep in _CHOICE_SEPARATORS:
        prefix = f"{number}{sep}"
        if line.startswith(prefix):
            return line[len(prefix):].strip()
    return None


def extract_choices(text: str) -> list[str]:
    """Find the "1." / "2)" / "3:" lines in the narrative.

    Choices are ordered by their number, not by where they appear; the first
    line for a number wins. Unless all three are found the fixed fallback is
    returned, so the result always has exactly three entries.
    """
    found: dict[int, str] = {}
    for line in text.splitlines():
        trimmed = line.strip()
        for number in (1, 2, 3):
            rest = _strip_choice_prefix(trimmed, number)
            if rest is not None:
                found.setdefault(number, rest)
                break

    if len(found) < 3:
        return list(FALLBACK_CHOICES)
    return [found[1], found[2], found[3]]


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = """\
You are a creative and immersive dungeon master for a text-based adventure game.

Your role is to:
1. Generate vivid, engaging narrative text that brings the story to life
2. Always provide exactly 3 distinct choices for the player at the end of your response
3. Use the available tools to naturally update game state (time, location, outfit) as the story progresses
4. Maintain consistency with the current game state and previous events
5. Be creative but responsive to player actions

Available tools:
- set_time: Update time of day (Morning, Afternoon, Evening, Night)
- set_location: Change the player's location
- set_outfit: Update the player's outfit or equipment

Format your responses as narrative text followed by three choices prefixed with numbers:
1. [First choice]
2. [Second choice]
3. [Third choice]

Use tools when appropriate (e.g., call set_time when time passes, set_location when moving to a new place).

Remember: You are telling an interactive story. Make it memorable!"""


def format_user_message(action: str, state: GameState) -> str:
    return (
        "Current State:\n"
        f"- Time: {state.time}\n"
        f"- Location: {state.location}\n"
        f"- Outfit: {state.outfit}\n\n"
        f"Player Action: {action}\n\n"
        "Continue the story based on this action. Remember to provide exactly "
        "3 choices and use tools to update state if appropriate."
    )
