# capabilities.py
# Contracts for the collaborators the turn controller is built with.

from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Sequence

from core import Direction
from game_state import GameState
from grid import Grid

GridView = Sequence[Sequence[int]]


class SearchCapability(Protocol):
    """Proposes a direction for a board. How it decides is its own business."""

    async def choose_direction(self, grid: GridView) -> Direction: ...

    def increase_strength(self) -> int: ...

    def decrease_strength(self) -> int: ...

    def get_strength(self) -> int: ...

    def set_strength(self, level: int) -> None: ...


class StorageCapability(Protocol):
    def get_game_state(self) -> Optional[GameState]: ...

    def set_game_state(self, state: GameState) -> None: ...

    def clear_game_state(self) -> None: ...

    def get_best_score(self) -> int: ...

    def set_best_score(self, score: int) -> None: ...


@dataclass
class RenderMetadata:
    """What the renderer needs besides the grid. The two flags are queried lazily."""
    score: int
    over: bool
    won: bool
    best_score: int
    terminated: bool
    strength: int
    autoplay_on: Callable[[], bool]
    throttle_on: Callable[[], bool]


class RenderCapability(Protocol):
    async def render(self, grid: Grid, metadata: RenderMetadata) -> None:
        """`grid` is a snapshot of the board; the controller's own grid is never handed out."""
        ...

    def continue_game(self) -> None: ...

    def update_strength(self, strength: int) -> None: ...

    def update_autoplay_button(self, on: bool) -> None: ...

    def update_throttle_button(self, on: bool) -> None: ...
