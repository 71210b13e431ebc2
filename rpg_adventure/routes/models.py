"""Pydantic request bodies for API endpoints."""

from pydantic import BaseModel


class ActionBody(BaseModel):
    action: str


class UpdateSettings(BaseModel):
    ollama_address: str | None = None
    model: str | None = None
    timeout: float | None = None
