import os
from pathlib import Path
from typing import Callable

from dotenv import load_dotenv
from fastapi import FastAPI

from rpg_adventure import config
from rpg_adventure.llm import ChatClient, OllamaClient
from rpg_adventure.routes import router
from rpg_adventure.sessions import SessionStore

load_dotenv(Path(__file__).parent.parent / ".env")

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"


def ollama_client_from_config() -> OllamaClient:
    """Build a client from the current settings."""
    cfg = config.get_config()
    return OllamaClient(config.base_url(cfg), model=cfg["model"], timeout=cfg["timeout"])


def create_app(
    data_dir: Path | None = None,
    client_factory: Callable[[], ChatClient] | None = None,
) -> FastAPI:
    resolved = data_dir or Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR)))
    config.init_config(resolved)

    app = FastAPI(title="RPG Adventure")
    app.state.sessions = SessionStore(client_factory or ollama_client_from_config)
    app.include_router(router, prefix="/api")
    return app


# Default app instance for uvicorn (uses DATA_DIR env var or default)
app = create_app()
