from typing import Any

import pytest

from rpg_adventure import config


@pytest.fixture(autouse=True)
def clean_config(tmp_path, monkeypatch):
    """Point config at a fresh directory before every test, with no env overrides."""
    monkeypatch.delenv("OLLAMA_ADDRESS", raising=False)
    monkeypatch.delenv("OLLAMA_MODEL", raising=False)
    config.init_config(tmp_path / "data-tests")
    yield


class StubClient:
    """Chat client that yields canned chunks and records every call.

    An exception placed in `chunks` is raised at that point in the stream;
    `error` is raised before anything is yielded.
    """

    def __init__(self, chunks: list[Any] | None = None, error: Exception | None = None) -> None:
        self.chunks = list(chunks or [])
        self.error = error
        self.calls: list[tuple[list, list]] = []
        self.closed = False

    async def chat_stream(self, messages, tools):
        self.calls.append((list(messages), list(tools)))
        if self.error is not None:
            raise self.error
        try:
            for chunk in self.chunks:
                if isinstance(chunk, Exception):
                    raise chunk
                yield chunk
        finally:
            self.closed = True


@pytest.fixture
def stub_client():
    """Factory for StubClient instances."""
    return StubClient
