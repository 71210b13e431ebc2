"""App configuration: where the inference server lives and which model to use.

Stored as {data_dir}/config.json. get_config() returns defaults merged with
stored values; update_config() applies partial updates and persists. The
OLLAMA_ADDRESS / OLLAMA_MODEL environment variables (usually from .env)
override the built-in defaults but not values saved through update_config().
"""

import json
import os
from pathlib import Path
from typing import Any

from rpg_adventure.llm import DEFAULT_MODEL, normalize_base_url

_data_dir: Path | None = None

_CONFIG_KEYS = ("ollama_address", "model", "timeout")


def _defaults() -> dict[str, Any]:
    return {
        "ollama_address": os.getenv("OLLAMA_ADDRESS", "localhost:11434"),
        "model": os.getenv("OLLAMA_MODEL", DEFAULT_MODEL),
        "timeout": 120.0,
    }


def init_config(data_dir: Path) -> None:
    global _data_dir
    _data_dir = data_dir
    _data_dir.mkdir(parents=True, exist_ok=True)


def _config_path() -> Path:
    assert _data_dir is not None, "Call init_config() before using config"
    return _data_dir / "config.json"


def get_config() -> dict[str, Any]:
    """Read config, returning defaults merged with stored values."""
    config = _defaults()
    path = _config_path()
    if path.is_file():
        stored = json.loads(path.read_text())
        for key in _CONFIG_KEYS:
            if key in stored:
                config[key] = stored[key]
    return config


def update_config(fields: dict[str, Any]) -> dict[str, Any]:
    """Merge known fields into config and persist. Returns full config."""
    config = get_config()
    for key in _CONFIG_KEYS:
        if key in fields:
            config[key] = fields[key]
    _config_path().write_text(json.dumps(config, indent=2))
    return config


def base_url(config: dict[str, Any]) -> str:
    """Resolve the server URL, e.g. "localhost:11434" → "http://localhost:11434"."""
    return normalize_base_url(config["ollama_address"])
