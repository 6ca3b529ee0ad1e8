"""VN Runtime — launcher. Plays a scene in the terminal or serves the API."""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Callable, Sequence

from dotenv import load_dotenv

from vn_runtime.config import load_config
from vn_runtime.models import PlaybackMode, ScriptLine, TextStyle
from vn_runtime.presenter import NullPresenter, choice_label
from vn_runtime.scripts import ScriptStore
from vn_runtime.session import PlayerSession
from vn_runtime.state import JsonStateStore

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = os.getenv("PORT", "13013")
SCRIPT_DIR = os.getenv("VN_SCRIPT_DIR", str(ROOT / "presets" / "dialogue"))
STATE_PATH = os.getenv("VN_STATE_PATH", str(ROOT / "data" / "state.json"))
CONFIG_PATH = os.getenv("VN_CONFIG_PATH", "")

HELP = "Enter: next   1-3: pick a choice   s: save   q: quit"


class ConsolePresenter(NullPresenter):
    """Writes the text box to stdout, revealing it as the typewriter ticks."""

    def __init__(self) -> None:
        self._shown = 0

    def on_line_display(self, speaker: str, text: str, progressive: bool, style: TextStyle) -> None:
        self._shown = 0
        if style == "aside":
            sys.stdout.write("\n  ~ ")
        elif speaker:
            sys.stdout.write(f"\n{speaker}: ")
        else:
            sys.stdout.write("\n")
        sys.stdout.flush()

    def on_text_reveal(self, visible: str) -> None:
        sys.stdout.write(visible[self._shown:])
        sys.stdout.flush()
        self._shown = len(visible)

    def on_choice_presented(self, prompt: str, options: Sequence[ScriptLine]) -> None:
        print(f"\n\n  {prompt}")
        for i, option in enumerate(options, start=1):
            print(f"    {i}. {choice_label(option)}")

    def on_action_confirmed(self, action_id: str) -> None:
        print(f"\n  [{action_id}]")

    def on_affinity_delta(self, delta: int) -> None:
        print(f"\n  (affinity {delta:+d})")


class ConsoleMinigame:
    """The play loop asks for the outcome once the machine is waiting for it."""

    def start(self, on_complete: Callable[[bool], None]) -> None:
        print("\n  [INTERCEPT] A data transfer is in progress.")


async def read_input(prompt: str = "") -> str:
    return await asyncio.to_thread(input, prompt)


async def play(session: PlayerSession, resume: bool) -> None:
    if resume:
        if not await session.continue_game():
            print("No save found — starting a new game.")
    else:
        await session.new_game()

    print(HELP)
    while session.machine is not None:
        machine = session.machine

        if machine.mode is PlaybackMode.JUMPING:
            await session.settle()
            continue

        if machine.awaiting_minigame:
            answer = await read_input("\n  Intercept the transfer? [y/n] ")
            session.minigame_complete(answer.strip().lower().startswith("y"))
            continue

        command = (await read_input()).strip().lower()
        if command == "q":
            break
        if command == "s":
            bookmark = session.save()
            print("  Saved." if bookmark else "  Cannot save right now.")
        elif command.isdigit():
            if not session.select_choice_index(int(command) - 1):
                print("  No such choice.")
        else:
            session.advance()

    session.close()


def serve() -> None:
    import uvicorn

    print(f"Starting API on http://localhost:{PORT} ...")
    uvicorn.run("backend.app:app", host=HOST, port=int(PORT))


def main():
    parser = argparse.ArgumentParser(description="VN Runtime launcher")
    parser.add_argument("--log-level", default="WARNING",
                        help="Logging level (default: WARNING)")
    sub = parser.add_subparsers(dest="command")

    play_parser = sub.add_parser("play", help="Play in the terminal (default)")
    play_parser.add_argument("--continue", dest="resume", action="store_true",
                             help="Resume the saved bookmark")
    play_parser.add_argument("--script-dir", type=Path, default=Path(SCRIPT_DIR),
                             help="Directory holding the <script>.csv files")
    play_parser.add_argument("--state", type=Path, default=Path(STATE_PATH),
                             help="Save/decision state file")

    sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "serve":
        serve()
        return

    session = PlayerSession(
        config=load_config(Path(CONFIG_PATH) if CONFIG_PATH else None),
        scripts=ScriptStore(getattr(args, "script_dir", Path(SCRIPT_DIR))),
        state=JsonStateStore(getattr(args, "state", Path(STATE_PATH))),
        presenter=ConsolePresenter(),
        minigame=ConsoleMinigame(),
    )
    try:
        asyncio.run(play(session, getattr(args, "resume", False)))
    except (KeyboardInterrupt, EOFError):
        print("\nBye.")


if __name__ == "__main__":
    main()
