"""Health check, settings and connection check endpoints."""

from fastapi import APIRouter

from rpg_adventure import config
from rpg_adventure.llm import OllamaClient

from .models import UpdateSettings

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/settings")
async def get_settings():
    """Get the inference server settings."""
    return config.get_config()


@router.patch("/settings")
async def update_settings(body: UpdateSettings):
    """Update inference server settings (partial merge). New sessions pick them up."""
    return config.update_config(body.model_dump(exclude_none=True))


@router.post("/check-connection")
async def check_connection():
    """Quick reachability check against the configured server."""
    client = OllamaClient(config.base_url(config.get_config()))
    return {"ok": await client.check_connection()}
