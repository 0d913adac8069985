import asyncio
import random

import pytest

from storage import MemoryStorage


class RecordingRenderer:
    """Renderer stand-in that remembers every call."""

    def __init__(self):
        self.renders = []
        self.events = []

    async def render(self, grid, metadata):
        self.renders.append((grid.as_rows(), metadata))

    def continue_game(self):
        self.events.append(("continue",))

    def update_strength(self, strength):
        self.events.append(("strength", strength))

    def update_autoplay_button(self, on):
        self.events.append(("autoplay", on))

    def update_throttle_button(self, on):
        self.events.append(("throttle", on))


class ScriptedSearch:
    """Returns directions from a script; raises once the script runs out."""

    def __init__(self, directions=(), strength=1):
        self.directions = list(directions)
        self.calls = []
        self.strength = strength
        self.gate = None

    async def choose_direction(self, grid):
        self.calls.append(grid)
        if self.gate is not None:
            await self.gate.wait()
        if not self.directions:
            raise RuntimeError("script exhausted")
        return self.directions.pop(0)

    def increase_strength(self):
        self.strength += 1
        return self.strength

    def decrease_strength(self):
        self.strength -= 1
        return self.strength

    def get_strength(self):
        return self.strength

    def set_strength(self, level):
        self.strength = level


class CountingStorage(MemoryStorage):
    def __init__(self):
        super().__init__()
        self.writes = 0
        self.clears = 0

    def set_game_state(self, state):
        self.writes += 1
        super().set_game_state(state)

    def clear_game_state(self):
        self.clears += 1
        super().clear_game_state()


class AlwaysTwo(random.Random):
    """Spawns 2s only; positions still come from the seeded generator."""

    def random(self):
        return 0.0


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def renderer():
    return RecordingRenderer()


@pytest.fixture
def storage():
    return CountingStorage()
