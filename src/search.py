# search.py
# A plain lookahead search that lets the terminal front end play by itself.

import asyncio
import logging
from typing import Optional, Sequence, Tuple

import core
from core import Direction
from grid import Grid

logger = logging.getLogger(__name__)

MIN_STRENGTH = 1
MAX_STRENGTH = 5
DEFAULT_STRENGTH = 2


class LookaheadSearch:
    """
    Picks the direction with the best merge score over the player's next
    `strength` moves, ignoring spawns. Empty cells break ties.
    """

    def __init__(self, strength: int = DEFAULT_STRENGTH):
        self.strength = DEFAULT_STRENGTH
        self.set_strength(strength)

    async def choose_direction(self, grid: Sequence[Sequence[int]]) -> Direction:
        return await asyncio.to_thread(self.best_direction, grid)

    def increase_strength(self) -> int:
        self.set_strength(self.strength + 1)
        return self.strength

    def decrease_strength(self) -> int:
        self.set_strength(self.strength - 1)
        return self.strength

    def get_strength(self) -> int:
        return self.strength

    def set_strength(self, level: int) -> None:
        self.strength = max(MIN_STRENGTH, min(MAX_STRENGTH, level))

    def best_direction(self, rows: Sequence[Sequence[int]]) -> Direction:
        """
        Evaluates every legal direction for a board.
        Args:
            rows: Row-major board values, 0 for empty.
        Returns:
            Direction: The best legal direction, or UP if none is legal.
        """
        best: Optional[Tuple[Tuple[int, int], Direction]] = None
        for direction in Direction:
            grid = Grid.from_rows(rows)
            result = core.resolve_move(grid, direction)
            if not result.moved:
                continue
            gained, empty = self._evaluate(grid, self.strength - 1)
            value = (result.score_delta + gained, empty)
            if best is None or value > best[0]:
                best = (value, direction)
        if best is None:
            logger.debug("No legal direction for %s", rows)
            return Direction.UP
        return best[1]

    def _evaluate(self, grid: Grid, depth: int) -> Tuple[int, int]:
        if depth <= 0:
            return 0, len(grid.empty_positions())
        best = None
        for direction in Direction:
            child = grid.copy()
            result = core.resolve_move(child, direction)
            if not result.moved:
                continue
            gained, empty = self._evaluate(child, depth - 1)
            value = (result.score_delta + gained, empty)
            if best is None or value > best:
                best = value
        if best is None:
            return 0, len(grid.empty_positions())
        return best
