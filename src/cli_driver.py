# cli_driver.py
# This file is intended to be run to play (or watch the search play) on the CLI

import asyncio
import logging
import os
import sys
from typing import Callable, Dict, Optional, TextIO

from capabilities import RenderMetadata
from controller import TurnController
from core import Direction
from game_state import GameSettings
from grid import Grid
from search import LookaheadSearch
from storage import JsonFileStorage, MemoryStorage

DIRECTION_KEYS: Dict[str, Direction] = {
    'W': Direction.UP,
    'A': Direction.LEFT,
    'S': Direction.DOWN,
    'D': Direction.RIGHT,
}

HELP = "W/A/S/D move, P autoplay, T throttle, +/- strength, C continue, R restart, Q quit"


class TerminalRenderer:
    """Prints the board and status lines to a text stream."""

    def __init__(self, out: Optional[TextIO] = None):
        self.out = out or sys.stdout
        self._score = 0

    async def render(self, grid: Grid, metadata: RenderMetadata) -> None:
        display_board_state(grid, metadata, metadata.score - self._score, self.out)
        self._score = metadata.score

    def continue_game(self) -> None:
        self._print("Message cleared. Play on!")

    def update_strength(self, strength: int) -> None:
        self._print(f"Strength: {strength}")

    def update_autoplay_button(self, on: bool) -> None:
        self._print("Autoplay ON (P to stop)" if on else "Autoplay OFF (P to start)")

    def update_throttle_button(self, on: bool) -> None:
        self._print("Throttle ON" if on else "Throttle OFF")

    def _print(self, text: str) -> None:
        print(text, file=self.out, flush=True)


# --- Display Function ---
def display_board_state(grid: Grid, metadata: RenderMetadata, difference: int, out: TextIO) -> None:
    """Prints the board, score, and game status to the stream."""
    score_line = f"\nScore: {metadata.score}"
    if difference > 0:
        score_line += f" (+{difference})"
    print(f"{score_line}   Best: {metadata.best_score}   Strength: {metadata.strength}", file=out)
    print(f"Autoplay: {'on' if metadata.autoplay_on() else 'off'}   "
          f"Throttle: {'on' if metadata.throttle_on() else 'off'}", file=out)

    for row in grid.as_rows():
        print("\t".join(str(value) if value else "." for value in row), file=out)
    print("-" * (grid.size * 6), file=out)  # Adjust width based on board size

    if metadata.terminated:
        if metadata.over:
            print("GAME OVER! R to restart.", file=out)
        elif metadata.won:
            print("YOU WON! C to keep playing, R to restart.", file=out)
    out.flush()


async def handle_command(controller: TurnController, command: str) -> bool:
    """
    Applies one line of user input to the controller.
    Returns:
        bool: False when the user asked to quit.
    """
    command = command.strip().upper()
    if command == 'Q':
        return False
    if command in DIRECTION_KEYS:
        await controller.move(DIRECTION_KEYS[command])
    elif command == 'P':
        controller.toggle_autoplay()
    elif command == 'T':
        controller.toggle_throttle()
    elif command == '+':
        controller.increase_strength()
    elif command == '-':
        controller.decrease_strength()
    elif command == 'C':
        controller.continue_playing()
    elif command == 'R':
        await controller.restart()
    else:
        print(f"Invalid input. {HELP}", flush=True)
    return True


def build_controller(settings: GameSettings, renderer: Optional[TerminalRenderer] = None) -> TurnController:
    storage = JsonFileStorage(settings.state_path) if settings.state_path else MemoryStorage()
    return TurnController(
        search=LookaheadSearch(),
        storage=storage,
        renderer=renderer or TerminalRenderer(),
        settings=settings,
    )


async def main(read_line: Callable[[str], str] = input) -> None:
    settings = GameSettings.from_env()
    controller = build_controller(settings)
    print(HELP)
    await controller.setup()

    try:
        while True:
            try:
                command = await asyncio.to_thread(read_line, "> ")
            except EOFError:
                break
            if not await handle_command(controller, command):
                print("Quitting game.")
                break
    finally:
        await controller.close()


def run() -> None:
    logging.basicConfig(
        level=os.environ.get("TILEGAME_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(main())


# --- Example Game Loop ---
if __name__ == "__main__":
    run()
