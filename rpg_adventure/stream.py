"""NDJSON stream decoder for /api/chat responses.

The server writes one JSON envelope per line:

    {"model": ..., "created_at": ..., "message": {"role": ..., "content": ...},
     "done": false}

but the transport hands us byte chunks that do not line up with those lines
(a chunk may end mid-line or even mid-way through a UTF-8 sequence). Bytes are
buffered until a newline arrives; only complete lines are decoded.

The message `content` field multiplexes three payloads with no discriminator:

    tool call  — content is itself JSON: {"tool_calls": [{"function": {...}}]}
    reasoning  — content starts with "<think>" or contains "reasoning:"
    text       — anything else

The classification is a heuristic, not a protocol guarantee. Narrative text
that happens to parse as a tool_calls object is treated as a tool call.
"""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterable, AsyncIterator

from pydantic import BaseModel, ValidationError

from rpg_adventure.models import (
    Done,
    ReasoningChunk,
    StreamChunk,
    TextChunk,
    ToolCall,
)

logger = logging.getLogger(__name__)

REASONING_PREFIX = "<think>"
REASONING_MARKER = "reasoning:"


class StreamDecodeError(ValueError):
    """Raised when a line of the response body is not a valid envelope."""


class _EnvelopeMessage(BaseModel):
    role: str = "assistant"
    content: str = ""


class _Envelope(BaseModel):
    done: bool
    message: _EnvelopeMessage | None = None


async def parse_stream(chunks: AsyncIterable[bytes]) -> AsyncIterator[StreamChunk]:
    """Decode a byte stream into StreamChunks.

    Ends after yielding Done, or when the byte source runs dry. A malformed
    line raises StreamDecodeError; there is no attempt to resynchronise.
    """
    buffer = bytearray()
    async for data in chunks:
        buffer.extend(data)
        while True:
            newline = buffer.find(b"\n")
            if newline < 0:
                break
            line = bytes(buffer[: newline + 1])
            del buffer[: newline + 1]

            chunk = decode_line(line)
            if chunk is None:
                continue
            yield chunk
            if isinstance(chunk, Done):
                logger.debug("stream marked as done")
                return

    if buffer.strip():
        logger.debug("discarding %d trailing bytes without line terminator", len(buffer))


def decode_line(line: bytes) -> StreamChunk | None:
    """Decode one NDJSON line. Returns None when the line carries nothing."""
    try:
        text = line.decode("utf-8")
    except UnicodeDecodeError as e:
        raise StreamDecodeError(f"Invalid UTF-8 in stream line: {e}") from e
    if not text.strip():
        return None

    try:
        envelope = _Envelope.model_validate_json(text)
    except ValidationError as e:
        raise StreamDecodeError(f"Failed to parse JSON: {e.errors()[0]['msg']}") from e

    if envelope.done:
        return Done()
    if envelope.message is None:
        return None

    content = envelope.message.content
    tool_call = parse_tool_call(content)
    if tool_call is not None:
        return tool_call
    if not content:
        return None
    return classify_content(content)


def parse_tool_call(content: str) -> ToolCall | None:
    """Return the first tool call encoded in `content`, if it is one.

    Only the first element of the tool_calls array is used. Arguments are
    passed through as-is.
    """
    try:
        payload: Any = json.loads(content)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None

    calls = payload.get("tool_calls")
    if not isinstance(calls, list) or not calls:
        return None
    first = calls[0]
    function = first.get("function") if isinstance(first, dict) else None
    if not isinstance(function, dict):
        return None
    name = function.get("name")
    if not isinstance(name, str) or "arguments" not in function:
        return None
    return ToolCall(name=name, arguments=function["arguments"])


def classify_content(content: str) -> TextChunk | ReasoningChunk:
    """Tell reasoning apart from narrative text. Heuristic, order-sensitive."""
    if content.startswith(REASONING_PREFIX) or REASONING_MARKER in content:
        return ReasoningChunk(content=content)
    return TextChunk(content=content)
