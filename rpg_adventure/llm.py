"""LLM client — streaming HTTP connection to an Ollama-compatible server.

The agent depends on anything matching the ChatClient protocol:

    def chat_stream(self, messages, tools) -> AsyncIterator[StreamChunk]: ...

OllamaClient is the real implementation: it POSTs the full history plus the
tool schema to {base_url}/api/chat with stream=true and hands the NDJSON body
to the decoder in rpg_adventure.stream. Tests use stub clients (defined in the
test helpers) that yield canned chunks instead.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator, Protocol, Sequence

import httpx

from rpg_adventure.models import ChatMessage, StreamChunk, Tool
from rpg_adventure.stream import parse_stream

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "qwen3:8b"


# ---------------------------------------------------------------------------
# Protocol — every chat client must match this signature
# ---------------------------------------------------------------------------

class ChatClient(Protocol):
    def chat_stream(
        self, messages: Sequence[ChatMessage], tools: Sequence[Tool]
    ) -> AsyncIterator[StreamChunk]: ...


def normalize_base_url(address: str) -> str:
    """Accept "host:port" or a full URL; return a URL without trailing slash."""
    address = address.strip().rstrip("/")
    if "://" not in address:
        address = f"http://{address}"
    return address


# ---------------------------------------------------------------------------
# OllamaClient — connects to a real server
# ---------------------------------------------------------------------------

class OllamaClient:
    """Async streaming client for the Ollama chat endpoint.

    Args:
        base_url:  Server address, e.g. "http://localhost:11434" or
                   "192.168.0.100:11434".
        model:     Model identifier sent with every request.
        timeout:   HTTP timeout in seconds (connect, and between body chunks).
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        base_url: str,
        model: str = DEFAULT_MODEL,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = normalize_base_url(base_url)
        self._model = model
        self._timeout = timeout
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def model(self) -> str:
        return self._model

    def _build_request(
        self, messages: Sequence[ChatMessage], tools: Sequence[Tool]
    ) -> tuple[str, dict]:
        """Return (url, body) for a streaming chat call."""
        url = f"{self._base_url}/api/chat"
        body: dict = {
            "model": self._model,
            "messages": [m.model_dump() for m in messages],
            "stream": True,
        }
        if tools:
            body["tools"] = [t.model_dump() for t in tools]
        return url, body

    async def chat_stream(
        self, messages: Sequence[ChatMessage], tools: Sequence[Tool]
    ) -> AsyncIterator[StreamChunk]:
        """Stream one chat exchange as decoded chunks.

        Raises LLMError (on first iteration) when the server cannot be reached
        or answers with a non-success status. The connection is held only
        while the caller keeps iterating.
        """
        url, body = self._build_request(messages, tools)
        logger.info(
            "chat request url=%s model=%s messages=%d tools=%d",
            url, self._model, len(messages), len(tools),
        )

        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            try:
                request = client.build_request("POST", url, json=body)
                resp = await client.send(request, stream=True)
            except httpx.InvalidURL as e:
                raise LLMError(f"Invalid Ollama address {self._base_url!r}: {e}") from e
            except httpx.ConnectError as e:
                raise LLMError(f"Cannot connect to Ollama at {self._base_url}") from e
            except httpx.TimeoutException as e:
                raise LLMError(f"Ollama timed out after {self._timeout}s") from e
            except httpx.TransportError as e:
                raise LLMError(f"Ollama request failed: {e}") from e

            try:
                try:
                    resp.raise_for_status()
                except httpx.HTTPStatusError as e:
                    raise LLMError(
                        f"Ollama request failed: HTTP {e.response.status_code}"
                    ) from e

                async for chunk in parse_stream(_iter_body(resp)):
                    logger.debug("chunk %r", chunk)
                    yield chunk
            finally:
                await resp.aclose()

    async def check_connection(self) -> bool:
        """Quick reachability check against GET /api/tags."""
        try:
            async with httpx.AsyncClient(timeout=5, transport=self._transport) as client:
                resp = await client.get(f"{self._base_url}/api/tags")
                resp.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.info("connection check failed for %s: %s", self._base_url, e)
            return False
        return True


async def _iter_body(resp: httpx.Response) -> AsyncIterator[bytes]:
    """Yield body bytes; a body that breaks off (dropped connection, corrupt
    encoding) just ends the stream."""
    try:
        async for data in resp.aiter_bytes():
            yield data
    except httpx.HTTPError as e:
        logger.warning("Ollama stream ended early: %s", e)


# ---------------------------------------------------------------------------
# LLMError — raised by OllamaClient for connection and status failures
# ---------------------------------------------------------------------------

class LLMError(RuntimeError):
    """Raised when the LLM server cannot be reached or returns an error."""
