"""RPG Adventure — dev launcher. Serves the API, or plays in the terminal."""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
BACKEND_PORT = int(os.getenv("BACKEND_PORT", "13013"))


async def play() -> None:
    """Console game loop: type an action, or 1-3 to pick a choice."""
    from rpg_adventure.app import ollama_client_from_config
    from rpg_adventure.llm import LLMError
    from rpg_adventure.models import ErrorEvent, TextChunkEvent, ToolResultEvent, TurnCompleteEvent
    from rpg_adventure.sessions import SessionStore

    store = SessionStore(ollama_client_from_config)
    session = store.start_session()
    turn = session.turns[0]
    choices = turn.choices
    print(turn.story_text)

    while True:
        print()
        for i, choice in enumerate(choices, start=1):
            print(f"  {i}. {choice}")
        try:
            action = input("> ").strip()
        except EOFError:
            return
        if not action:
            continue
        if action in ("1", "2", "3"):
            action = choices[int(action) - 1]

        try:
            async for event in store.play(session, action):
                if isinstance(event, TextChunkEvent):
                    print(event.content, end="", flush=True)
                elif isinstance(event, ToolResultEvent):
                    s = event.result
                    print(f"\n[{s.time} · {s.location} · {s.outfit}]", flush=True)
                elif isinstance(event, ErrorEvent):
                    print(f"\n[error] {event.message}", file=sys.stderr)
                elif isinstance(event, TurnCompleteEvent):
                    choices = event.choices
        except LLMError as e:
            print(f"[error] {e}", file=sys.stderr)
        print()


def main():
    parser = argparse.ArgumentParser(description="RPG Adventure dev launcher")
    parser.add_argument("--host", default=HOST, help="Bind address for the API server")
    parser.add_argument("--port", type=int, default=BACKEND_PORT, help="API server port")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Config storage directory (default: ./data)")
    parser.add_argument("--play", action="store_true",
                        help="Play in the terminal instead of serving the API")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else (logging.WARNING if args.play else logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # The app module reads DATA_DIR at import time
    if args.data_dir:
        os.environ["DATA_DIR"] = str(args.data_dir.resolve())

    if args.play:
        asyncio.run(play())
        return

    import uvicorn

    print(f"Starting backend on http://localhost:{args.port} ...")
    uvicorn.run("rpg_adventure.app:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
