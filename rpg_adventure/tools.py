"""Game tools the model may call to change the world state.

Three tools are advertised with every chat request:

    set_time      {"time": str}      Morning | Afternoon | Evening | Night
    set_location  {"location": str}  free text
    set_outfit    {"outfit": str}    free text

The decoder passes tool arguments through untyped; each executor below checks
its own argument before touching the state. The time enum is advertised to
the model but not enforced.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from rpg_adventure.models import GameState, Tool, ToolFunction, ToolParameters

logger = logging.getLogger(__name__)

TIMES_OF_DAY = ["Morning", "Afternoon", "Evening", "Night"]


class ToolError(ValueError):
    """Base class for tool execution failures."""


class UnknownToolError(ToolError):
    pass


class ToolArgumentError(ToolError):
    pass


def _tool(name: str, description: str, arg: str, schema: dict[str, Any]) -> Tool:
    return Tool(
        function=ToolFunction(
            name=name,
            description=description,
            parameters=ToolParameters(required=[arg], properties={arg: schema}),
        )
    )


_GAME_TOOLS: list[Tool] = [
    _tool(
        "set_time",
        "Update the time of day in the game world",
        "time",
        {"type": "string", "description": "The time of day", "enum": TIMES_OF_DAY},
    ),
    _tool(
        "set_location",
        "Change the player's current location",
        "location",
        {"type": "string", "description": "The name of the new location"},
    ),
    _tool(
        "set_outfit",
        "Change the player's outfit or equipment",
        "outfit",
        {"type": "string", "description": "Description of the outfit or equipment"},
    ),
]


def create_game_tools() -> list[Tool]:
    """The standard tool set sent with every chat request."""
    return list(_GAME_TOOLS)


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

def _require_str(arguments: Any, field: str) -> str:
    value = arguments.get(field) if isinstance(arguments, dict) else None
    if not isinstance(value, str):
        raise ToolArgumentError(f"Missing '{field}' argument")
    return value


def _set_time(arguments: Any, state: GameState) -> None:
    state.time = _require_str(arguments, "time")


def _set_location(arguments: Any, state: GameState) -> None:
    state.location = _require_str(arguments, "location")


def _set_outfit(arguments: Any, state: GameState) -> None:
    state.outfit = _require_str(arguments, "outfit")


_EXECUTORS: dict[str, Callable[[Any, GameState], None]] = {
    "set_time": _set_time,
    "set_location": _set_location,
    "set_outfit": _set_outfit,
}


def execute_tool(name: str, arguments: Any, state: GameState) -> None:
    """Apply one tool call to `state` in place.

    Raises UnknownToolError or ToolArgumentError; the state is left untouched
    on failure.
    """
    executor = _EXECUTORS.get(name)
    if executor is None:
        raise UnknownToolError(f"Unknown tool: {name}")
    executor(arguments, state)
    logger.debug("tool %s applied, state=%s", name, state.model_dump())
