# core.py
# This file holds the move-resolution rules: sliding, merging, spawning and
# end-of-game detection. Everything operates on a grid.Grid in place.

import random
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from grid import Grid, Position, Tile

WIN_TILE = 65536
START_TILES = 2


class GameProgressState(Enum):
    """Represents the current progress state of the game."""
    IN_PROGRESS = 1
    GAME_OVER = 2  # Lost
    GAME_WON = 3


class Direction(Enum):
    """Represents the possible move directions."""
    UP = 0
    RIGHT = 1
    DOWN = 2
    LEFT = 3


VECTORS: Dict[Direction, Position] = {
    Direction.UP: Position(0, -1),
    Direction.RIGHT: Position(1, 0),
    Direction.DOWN: Position(0, 1),
    Direction.LEFT: Position(-1, 0),
}


@dataclass
class MoveResult:
    """Outcome of resolving one move against a grid."""
    moved: bool = False
    score_delta: int = 0
    won: bool = False


# --- Traversal Helpers ---

def build_traversals(vector: Position, size: int) -> Tuple[List[int], List[int]]:
    """
    Builds the order in which cells are visited for a move.
    Args:
        vector (Position): Unit displacement of the move.
        size (int): Board dimension.
    Returns:
        Tuple[List[int], List[int]]: x and y indices, farthest-first along the vector.
    """
    xs = list(range(size))
    ys = list(range(size))
    if vector.x == 1:
        xs.reverse()
    if vector.y == 1:
        ys.reverse()
    return xs, ys


def find_farthest_position(grid: Grid, position: Position, vector: Position) -> Tuple[Position, Position]:
    """
    Slides from `position` along `vector` until the next cell is blocked.
    Args:
        grid (Grid): The board.
        position (Position): Starting cell.
        vector (Position): Unit displacement of the move.
    Returns:
        Tuple[Position, Position]: The last free cell reached (`farthest`) and the
                                   cell right after it (`next`), which may be
                                   occupied or out of bounds.
    """
    while True:
        previous = position
        position = Position(previous.x + vector.x, previous.y + vector.y)
        if not (grid.within_bounds(position) and grid.cell_available(position)):
            return previous, position


def _prepare_tiles(grid: Grid) -> List[Tuple[Tile, Optional[Position], Optional[Tuple[Tile, Tile]]]]:
    """Clears merge info and records current positions. Returns the annotations it replaced."""
    replaced = []
    for tile in grid.tiles():
        replaced.append((tile, tile.previous_position, tile.merged_from))
        tile.merged_from = None
        tile.save_position()
    return replaced


# --- Core Game Move Processing ---

def resolve_move(grid: Grid, direction: Direction, win_tile: int = WIN_TILE) -> MoveResult:
    """
    Slides and merges every tile on `grid` in `direction`, in place.

    Tiles nearest the destination edge are resolved first. A tile that was
    produced by a merge during this move carries `merged_from` and is never
    merged into again, so each tile takes part in at most one merge per move.

    Args:
        grid (Grid): The board to mutate.
        direction (Direction): The direction to move.
        win_tile (int): Merge result that counts as a win.
    Returns:
        MoveResult: Whether anything moved, the score gained and whether
                    `win_tile` was produced.
    Raises:
        ValueError: If an invalid direction is specified.
    """
    if direction not in VECTORS:
        raise ValueError("Invalid direction specified for resolve_move.")
    vector = VECTORS[direction]
    xs, ys = build_traversals(vector, grid.size)
    result = MoveResult()

    replaced = _prepare_tiles(grid)

    for x in xs:
        for y in ys:
            position = Position(x, y)
            tile = grid.tile_at(position)
            if tile is None:
                continue

            farthest, next_position = find_farthest_position(grid, position, vector)
            next_tile = grid.tile_at(next_position)

            if next_tile is not None and next_tile.value == tile.value and next_tile.merged_from is None:
                merged = Tile(next_position, tile.value * 2)
                merged.merged_from = (tile, next_tile)
                grid.remove(next_tile)
                grid.remove(tile)
                grid.insert(merged)
                # Both sources converge on the merge cell
                tile.update_position(next_position)

                result.score_delta += merged.value
                if merged.value == win_tile:
                    result.won = True
            else:
                grid.relocate(tile, farthest)

            if tile.position != position:
                result.moved = True

    if not result.moved:
        for tile, previous_position, merged_from in replaced:
            tile.previous_position = previous_position
            tile.merged_from = merged_from

    return result


# --- Spawning ---

def add_random_tile(grid: Grid, rng: random.Random) -> Optional[Tile]:
    """
    Adds a new tile (90% chance of 2, 10% chance of 4) on a random empty cell.
    Args:
        grid (Grid): The board to mutate.
        rng (random.Random): Source of randomness.
    Returns:
        Optional[Tile]: The spawned tile, or None if the board had no empty cell.
    """
    position = grid.random_empty_position(rng)
    if position is None:
        return None
    tile = Tile(position, 2 if rng.random() < 0.9 else 4)
    grid.insert(tile)
    return tile


def initialize_grid(size: int, rng: random.Random, start_tiles: int = START_TILES) -> Grid:
    """
    Creates a fresh board with `start_tiles` spawned tiles.
    Raises:
        ValueError: If board size is invalid.
    """
    grid = Grid(size)
    for _ in range(start_tiles):
        add_random_tile(grid, rng)
    return grid


# --- Game State Checks ---

def tile_matches_available(grid: Grid) -> bool:
    """
    Checks whether any two axis-adjacent tiles hold the same value.
    Args:
        grid (Grid): The board to check.
    Returns:
        bool: True if at least one merge is possible somewhere.
    """
    for tile in grid.tiles():
        for vector in VECTORS.values():
            other = grid.tile_at(Position(tile.position.x + vector.x, tile.position.y + vector.y))
            if other is not None and other.value == tile.value:
                return True
    return False


def moves_available(grid: Grid) -> bool:
    return grid.has_empty_cell() or tile_matches_available(grid)


def determine_game_status(over: bool, won: bool, keep_playing: bool) -> GameProgressState:
    """
    Maps the game flags onto a progress state.
    Args:
        over (bool): The board is deadlocked.
        won (bool): The win tile has been produced at some point.
        keep_playing (bool): The player chose to continue after winning.
    Returns:
        GameProgressState: GAME_OVER, GAME_WON (terminated by a win) or IN_PROGRESS.
    """
    if over:
        return GameProgressState.GAME_OVER
    if won and not keep_playing:
        return GameProgressState.GAME_WON
    return GameProgressState.IN_PROGRESS
