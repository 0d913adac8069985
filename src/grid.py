# grid.py
# Positional data structure for the tile board. Knows nothing about moves.

import random
from dataclasses import dataclass
from typing import Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple


class Position(NamedTuple):
    """A cell coordinate; x is the column, y is the row."""
    x: int
    y: int


CellLayout = List[List[Optional[Dict[str, int]]]]


def is_power_of_two(value: int) -> bool:
    return value > 0 and value & (value - 1) == 0


@dataclass(eq=False)
class Tile:
    """
    A single tile on the board.

    `previous_position` and `merged_from` only describe the move that just
    happened, for whoever draws the board. Move resolution clears them before
    it looks at anything else.
    """
    position: Position
    value: int
    previous_position: Optional[Position] = None
    merged_from: Optional[Tuple["Tile", "Tile"]] = None

    def save_position(self) -> None:
        self.previous_position = self.position

    def update_position(self, position: Position) -> None:
        self.position = position


class Grid:
    """
    An N x N array of optional tiles, stored column-first (`cells[x][y]`).

    Invariant: a tile stored at `cells[x][y]` has `position == (x, y)`.
    """

    def __init__(self, size: int = 4):
        if not isinstance(size, int) or size <= 1:
            raise ValueError("Board size must be an integer greater than 1.")
        self.size = size
        self.cells: List[List[Optional[Tile]]] = [[None] * size for _ in range(size)]

    # --- Construction ---

    @classmethod
    def deserialize(cls, layout: Sequence[Sequence[Optional[Dict[str, int]]]]) -> "Grid":
        """
        Rebuilds a grid from the persisted cell layout.
        Args:
            layout: Column-first nested lists holding `{"value": n}` or None per cell.
        Returns:
            Grid: A new grid holding fresh tiles with no move annotations.
        Raises:
            ValueError: If the layout is not square or holds an invalid tile value.
        """
        size = len(layout)
        if not all(len(column) == size for column in layout):
            raise ValueError("Persisted grid must be a non-empty square layout.")
        grid = cls(size)
        for x, column in enumerate(layout):
            for y, cell in enumerate(column):
                if cell is not None:
                    grid.insert(Tile(Position(x, y), _checked_value(cell["value"])))
        return grid

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[int]]) -> "Grid":
        """
        Builds a grid from human-looking rows of numbers (0 means empty).
        Args:
            rows: Row-major board, e.g. [[2, 2, 4, 0], ...].
        Returns:
            Grid: The equivalent grid.
        Raises:
            ValueError: If the board is not square or a value is not a power of 2.
        """
        size = len(rows)
        if not rows or not all(len(row) == size for row in rows):
            raise ValueError("Board must be a non-empty square matrix.")
        grid = cls(size)
        for y, row in enumerate(rows):
            for x, value in enumerate(row):
                if value:
                    grid.insert(Tile(Position(x, y), _checked_value(value)))
        return grid

    # --- Queries ---

    def within_bounds(self, position: Position) -> bool:
        return 0 <= position.x < self.size and 0 <= position.y < self.size

    def tile_at(self, position: Position) -> Optional[Tile]:
        """Returns the tile at `position`, or None for an empty or out-of-bounds cell."""
        if not self.within_bounds(position):
            return None
        return self.cells[position.x][position.y]

    def cell_available(self, position: Position) -> bool:
        return self.tile_at(position) is None

    def empty_positions(self) -> List[Position]:
        return [
            Position(x, y)
            for x in range(self.size)
            for y in range(self.size)
            if self.cells[x][y] is None
        ]

    def has_empty_cell(self) -> bool:
        return any(cell is None for column in self.cells for cell in column)

    def random_empty_position(self, rng: random.Random) -> Optional[Position]:
        """
        Picks an empty cell uniformly at random.
        Args:
            rng: The random source to draw from.
        Returns:
            Optional[Position]: An empty position, or None when the grid is full.
        """
        empties = self.empty_positions()
        if not empties:
            return None
        return rng.choice(empties)

    def tiles(self) -> Iterator[Tile]:
        """Yields every tile on the board exactly once."""
        for column in self.cells:
            for tile in column:
                if tile is not None:
                    yield tile

    # --- Mutation ---

    def insert(self, tile: Tile) -> None:
        if not self.within_bounds(tile.position):
            raise ValueError(f"Position {tile.position} is outside the {self.size}x{self.size} grid.")
        if self.cells[tile.position.x][tile.position.y] is not None:
            raise ValueError(f"Cell {tile.position} is already occupied.")
        self.cells[tile.position.x][tile.position.y] = tile

    def remove(self, tile: Tile) -> None:
        if self.tile_at(tile.position) is tile:
            self.cells[tile.position.x][tile.position.y] = None

    def relocate(self, tile: Tile, position: Position) -> None:
        """Moves `tile` to an empty `position`, keeping the index invariant."""
        if position == tile.position:
            return
        self.remove(tile)
        tile.update_position(position)
        self.insert(tile)

    # --- Views ---

    def serialize(self) -> CellLayout:
        """Column-first layout of `{"value": n}` / None, the persisted grid shape."""
        return [
            [None if tile is None else {"value": tile.value} for tile in column]
            for column in self.cells
        ]

    def as_rows(self) -> Tuple[Tuple[int, ...], ...]:
        """Read-only row-major snapshot of tile values, 0 for an empty cell."""
        return tuple(
            tuple(0 if self.cells[x][y] is None else self.cells[x][y].value for x in range(self.size))
            for y in range(self.size)
        )

    def copy(self) -> "Grid":
        """An independent copy. Tiles keep the annotations of the last move."""
        duplicate = Grid(self.size)
        for tile in self.tiles():
            duplicate.insert(_copy_tile(tile))
        return duplicate

    def __repr__(self) -> str:
        return f"Grid(size={self.size}, rows={self.as_rows()})"


def _copy_tile(tile: Tile) -> Tile:
    merged_from = None
    if tile.merged_from is not None:
        merged_from = tuple(_copy_tile(source) for source in tile.merged_from)
    return Tile(tile.position, tile.value, tile.previous_position, merged_from)


def _checked_value(value: int) -> int:
    if not isinstance(value, int) or not is_power_of_two(value) or value < 2:
        raise ValueError(f"Tile value must be a power of 2 no smaller than 2, got {value!r}.")
    return value
