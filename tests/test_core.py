import random
from collections import Counter

import pytest

import core
from core import Direction, GameProgressState
from grid import Grid, Position


def rows_of(grid):
    return [list(row) for row in grid.as_rows()]


def slide_row_left(row):
    """Straightforward compress-merge-compress of one row, used as a reference."""
    values = [v for v in row if v]
    merged, gained, i = [], 0, 0
    while i < len(values):
        if i + 1 < len(values) and values[i] == values[i + 1]:
            merged.append(values[i] * 2)
            gained += values[i] * 2
            i += 2
        else:
            merged.append(values[i])
            i += 1
    return merged + [0] * (len(row) - len(merged)), gained


def reference_move(rows, direction):
    size = len(rows)
    if direction in (Direction.UP, Direction.DOWN):
        lines = [[rows[y][x] for y in range(size)] for x in range(size)]
    else:
        lines = [list(row) for row in rows]
    reverse = direction in (Direction.RIGHT, Direction.DOWN)
    out, total = [], 0
    for line in lines:
        slid, gained = slide_row_left(line[::-1] if reverse else line)
        out.append(slid[::-1] if reverse else slid)
        total += gained
    if direction in (Direction.UP, Direction.DOWN):
        out = [[out[x][y] for x in range(size)] for y in range(size)]
    return out, total


def random_rows(rng, size=4):
    choices = [0, 0, 0, 2, 2, 4, 4, 8, 16]
    return [[rng.choice(choices) for _ in range(size)] for _ in range(size)]


# --- Scenarios ---

def test_merge_then_slide_left():
    grid = Grid.from_rows([[2, 2, 4, 0], [0] * 4, [0] * 4, [0] * 4])
    result = core.resolve_move(grid, Direction.LEFT)

    assert rows_of(grid)[0] == [4, 4, 0, 0]
    assert result.moved
    assert result.score_delta == 4
    assert not result.won


def test_blocked_row_is_a_no_op():
    grid = Grid.from_rows([[2, 4, 8, 16], [0] * 4, [0] * 4, [0] * 4])
    result = core.resolve_move(grid, Direction.LEFT)

    assert rows_of(grid)[0] == [2, 4, 8, 16]
    assert not result.moved
    assert result.score_delta == 0


def test_three_equal_tiles_merge_the_pair_nearest_the_edge():
    grid = Grid.from_rows([[2, 2, 2, 0], [0] * 4, [0] * 4, [0] * 4])
    core.resolve_move(grid, Direction.RIGHT)
    assert rows_of(grid)[0] == [0, 0, 2, 4]

    grid = Grid.from_rows([[2, 2, 2, 0], [0] * 4, [0] * 4, [0] * 4])
    core.resolve_move(grid, Direction.LEFT)
    assert rows_of(grid)[0] == [4, 2, 0, 0]


def test_four_equal_tiles_make_two_merges():
    grid = Grid.from_rows([[2, 2, 2, 2], [0] * 4, [0] * 4, [0] * 4])
    result = core.resolve_move(grid, Direction.LEFT)
    assert rows_of(grid)[0] == [4, 4, 0, 0]
    assert result.score_delta == 8


def test_merged_tile_is_not_merged_again():
    grid = Grid.from_rows([[4, 2, 2, 0], [0] * 4, [0] * 4, [0] * 4])
    result = core.resolve_move(grid, Direction.LEFT)
    assert rows_of(grid)[0] == [4, 4, 0, 0]
    assert result.score_delta == 4


def test_vertical_moves():
    rows = [[2, 0, 0, 0],
            [2, 0, 4, 0],
            [0, 0, 4, 0],
            [4, 0, 0, 8]]
    grid = Grid.from_rows(rows)
    result = core.resolve_move(grid, Direction.UP)
    assert rows_of(grid) == [[4, 0, 8, 8],
                             [4, 0, 0, 0],
                             [0, 0, 0, 0],
                             [0, 0, 0, 0]]
    assert result.score_delta == 12

    grid = Grid.from_rows(rows)
    core.resolve_move(grid, Direction.DOWN)
    assert rows_of(grid) == [[0, 0, 0, 0],
                             [0, 0, 0, 0],
                             [4, 0, 0, 0],
                             [4, 0, 8, 8]]


def test_win_tile_is_reported():
    grid = Grid.from_rows([[32768, 32768, 0, 0], [0] * 4, [0] * 4, [0] * 4])
    result = core.resolve_move(grid, Direction.RIGHT)
    assert result.won
    assert result.score_delta == 65536
    assert rows_of(grid)[0] == [0, 0, 0, 65536]


def test_custom_win_tile():
    grid = Grid.from_rows([[4, 4], [0, 0]])
    assert core.resolve_move(grid, Direction.LEFT, win_tile=8).won


def test_annotations_describe_the_move():
    grid = Grid.from_rows([[0, 2, 0, 2], [0, 0, 0, 8], [0] * 4, [0] * 4])
    core.resolve_move(grid, Direction.LEFT)

    merged = grid.tile_at(Position(0, 0))
    assert merged.value == 4
    assert merged.previous_position is None
    first, second = merged.merged_from
    assert {first.previous_position, second.previous_position} == {Position(1, 0), Position(3, 0)}
    assert first.position == second.position == Position(0, 0)

    slid = grid.tile_at(Position(0, 1))
    assert slid.previous_position == Position(3, 1)
    assert slid.merged_from is None


def test_annotations_are_cleared_each_move():
    grid = Grid.from_rows([[2, 2, 0, 0], [0] * 4, [0] * 4, [0] * 4])
    core.resolve_move(grid, Direction.LEFT)
    core.resolve_move(grid, Direction.RIGHT)

    tile = grid.tile_at(Position(3, 0))
    assert tile.merged_from is None
    assert tile.previous_position == Position(0, 0)


def test_stale_merge_info_does_not_block_a_merge():
    grid = Grid.from_rows([[2, 2, 4, 0], [0] * 4, [0] * 4, [0] * 4])
    core.resolve_move(grid, Direction.LEFT)  # [4, 4, 0, 0], first 4 carries merged_from
    result = core.resolve_move(grid, Direction.LEFT)
    assert rows_of(grid)[0] == [8, 0, 0, 0]
    assert result.score_delta == 8


def test_no_op_leaves_annotations_untouched():
    grid = Grid.from_rows([[2, 2, 0, 0], [0] * 4, [0] * 4, [0] * 4])
    core.resolve_move(grid, Direction.LEFT)
    merged = grid.tile_at(Position(0, 0))
    sources = merged.merged_from

    result = core.resolve_move(grid, Direction.LEFT)
    assert not result.moved
    assert merged.merged_from is sources
    assert merged.previous_position is None


def test_invalid_direction():
    with pytest.raises(ValueError):
        core.resolve_move(Grid(4), "LEFT")


def test_traversals_run_far_to_near():
    assert core.build_traversals(core.VECTORS[Direction.RIGHT], 4) == ([3, 2, 1, 0], [0, 1, 2, 3])
    assert core.build_traversals(core.VECTORS[Direction.DOWN], 4) == ([0, 1, 2, 3], [3, 2, 1, 0])
    assert core.build_traversals(core.VECTORS[Direction.LEFT], 3) == ([0, 1, 2], [0, 1, 2])


def test_find_farthest_position():
    grid = Grid.from_rows([[0, 0, 2, 4], [0] * 4, [0] * 4, [0] * 4])
    farthest, next_position = core.find_farthest_position(grid, Position(2, 0), core.VECTORS[Direction.LEFT])
    assert farthest == Position(0, 0)
    assert next_position == Position(-1, 0)

    farthest, next_position = core.find_farthest_position(grid, Position(2, 0), core.VECTORS[Direction.RIGHT])
    assert farthest == Position(2, 0)
    assert next_position == Position(3, 0)


# --- Properties over random boards ---

@pytest.mark.parametrize("seed", range(40))
def test_matches_line_reference(seed):
    rng = random.Random(seed)
    rows = random_rows(rng)
    for direction in Direction:
        grid = Grid.from_rows(rows)
        result = core.resolve_move(grid, direction)
        expected_rows, expected_score = reference_move(rows, direction)

        assert rows_of(grid) == expected_rows
        assert result.score_delta == expected_score
        assert result.moved == (expected_rows != rows)


@pytest.mark.parametrize("seed", range(40))
def test_move_accounting(seed):
    rng = random.Random(1000 + seed)
    rows = random_rows(rng)
    for direction in Direction:
        grid = Grid.from_rows(rows)
        before = Counter(v for row in rows for v in row if v)
        result = core.resolve_move(grid, direction)

        tiles = list(grid.tiles())
        merged = [tile for tile in tiles if tile.merged_from]
        # Each merge consumes exactly two tiles, each of half the merged value
        assert len(tiles) == sum(before.values()) - len(merged)
        for tile in merged:
            assert all(source.value * 2 == tile.value for source in tile.merged_from)
            assert all(source.merged_from is None for source in tile.merged_from)
        sources = [id(source) for tile in merged for source in tile.merged_from]
        assert len(sources) == len(set(sources))

        assert result.score_delta == sum(tile.value for tile in merged)
        assert sum(tile.value for tile in tiles) == sum(v for row in rows for v in row)
        if not result.moved:
            assert rows_of(grid) == rows


# --- Spawning ---

def test_add_random_tile_uses_an_empty_cell():
    grid = Grid.from_rows([[2, 4], [0, 8]])
    tile = core.add_random_tile(grid, random.Random(3))
    assert tile.position == Position(0, 1)
    assert tile.value in (2, 4)
    assert grid.tile_at(Position(0, 1)) is tile


def test_add_random_tile_on_full_grid():
    grid = Grid.from_rows([[2, 4], [4, 2]])
    assert core.add_random_tile(grid, random.Random(3)) is None
    assert grid.as_rows() == ((2, 4), (4, 2))


def test_spawn_values_are_mostly_twos():
    rng = random.Random(11)
    values = Counter()
    for _ in range(2000):
        values[core.add_random_tile(Grid(2), rng).value] += 1
    assert set(values) == {2, 4}
    assert 0.85 < values[2] / 2000 < 0.95


def test_spawning_is_deterministic_per_seed():
    first = core.initialize_grid(4, random.Random(42))
    second = core.initialize_grid(4, random.Random(42))
    assert first.as_rows() == second.as_rows()
    assert len(list(first.tiles())) == core.START_TILES


# --- Game State Checks ---

def test_deadlocked_board_has_no_moves():
    grid = Grid.from_rows([[2, 4, 2, 4],
                           [4, 2, 4, 2],
                           [2, 4, 2, 4],
                           [4, 2, 4, 2]])
    assert not core.tile_matches_available(grid)
    assert not core.moves_available(grid)
    for direction in Direction:
        assert not core.resolve_move(grid, direction).moved


def test_full_board_with_a_pair_has_moves():
    grid = Grid.from_rows([[2, 4, 2, 4],
                           [4, 2, 4, 2],
                           [2, 4, 2, 4],
                           [4, 2, 4, 4]])
    assert core.tile_matches_available(grid)
    assert core.moves_available(grid)


def test_board_with_empty_cell_has_moves():
    assert core.moves_available(Grid.from_rows([[2, 4], [8, 0]]))


@pytest.mark.parametrize("over, won, keep_playing, expected", [
    (False, False, False, GameProgressState.IN_PROGRESS),
    (True, False, False, GameProgressState.GAME_OVER),
    (False, True, False, GameProgressState.GAME_WON),
    (False, True, True, GameProgressState.IN_PROGRESS),
    (True, True, True, GameProgressState.GAME_OVER),
])
def test_determine_game_status(over, won, keep_playing, expected):
    assert core.determine_game_status(over, won, keep_playing) is expected
