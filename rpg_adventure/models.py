"""Core domain models.

Every layer (decoder, agent, sessions, API) exchanges these types.
Pydantic is used for validation and serialisation at every data boundary.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant"]


class GameState(BaseModel):
    """The small world record the model mutates through tool calls."""

    time: str  # Morning | Afternoon | Evening | Night, not enforced
    location: str
    outfit: str


class ChatMessage(BaseModel):
    """One entry in the agent's append-only conversation history."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


# ---------------------------------------------------------------------------
# Tool definitions — the wire shape expected by /api/chat
# ---------------------------------------------------------------------------

class ToolParameters(BaseModel):
    type: Literal["object"] = "object"
    required: list[str]
    properties: dict[str, dict[str, Any]]


class ToolFunction(BaseModel):
    name: str
    description: str
    parameters: ToolParameters


class Tool(BaseModel):
    type: Literal["function"] = "function"
    function: ToolFunction


# ---------------------------------------------------------------------------
# Stream chunks — produced by the NDJSON decoder
# ---------------------------------------------------------------------------

class TextChunk(BaseModel):
    content: str


class ReasoningChunk(BaseModel):
    content: str


class ToolCall(BaseModel):
    name: str
    arguments: Any = None  # untyped; validated by the tool executor


class Done(BaseModel):
    pass


StreamChunk = Union[TextChunk, ReasoningChunk, ToolCall, Done]


# ---------------------------------------------------------------------------
# Turn events — produced by the agent, consumed by the UI
# ---------------------------------------------------------------------------

class TextChunkEvent(BaseModel):
    type: Literal["text_chunk"] = "text_chunk"
    content: str


class ReasoningChunkEvent(BaseModel):
    type: Literal["reasoning_chunk"] = "reasoning_chunk"
    content: str


class ToolCallEvent(BaseModel):
    type: Literal["tool_call"] = "tool_call"
    name: str
    args: Any = None


class ToolResultEvent(BaseModel):
    type: Literal["tool_result"] = "tool_result"
    name: str
    result: GameState


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str


class TurnCompleteEvent(BaseModel):
    type: Literal["turn_complete"] = "turn_complete"
    turn_number: int
    story_text: str
    choices: list[str] = Field(min_length=3, max_length=3)
    game_state: GameState


TurnEvent = Annotated[
    Union[
        TextChunkEvent,
        ReasoningChunkEvent,
        ToolCallEvent,
        ToolResultEvent,
        ErrorEvent,
        TurnCompleteEvent,
    ],
    Field(discriminator="type"),
]


class TurnRecord(BaseModel):
    """A completed turn as stored in a session's turn history."""

    turn_number: int
    story_text: str
    choices: list[str]
    game_state: GameState
