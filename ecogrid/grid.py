"""
EcoGrid Coordinate System
=========================
Immutable grid geometry shared read-only by the field, agents and engine.

Cells are (x, y) integer tuples. "Up" is +y and "right" is +x, matching the
world frame where a cell's anchor sits at (x * cell_size, y * cell_size).
"""

import math
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from .config import ConfigurationError, GridConfig

Cell = Tuple[int, int]

# Cardinal directions in canonical order: up, right, down, left
UP: Cell = (0, 1)
RIGHT: Cell = (1, 0)
DOWN: Cell = (0, -1)
LEFT: Cell = (-1, 0)
CARDINAL_OFFSETS: Tuple[Cell, ...] = (UP, RIGHT, DOWN, LEFT)


@dataclass(frozen=True)
class Grid:
    """Grid dimensions, cell size and master seed"""
    width: int
    height: int
    cell_size: float = 1.0
    seed: int = 0

    def __post_init__(self):
        if self.width < 2 or self.height < 2:
            raise ConfigurationError(
                f"Grid must be at least 2x2, got {self.width}x{self.height}"
            )
        if self.cell_size <= 0:
            raise ConfigurationError(f"Cell size must be positive, got {self.cell_size}")

    @classmethod
    def from_config(cls, config: GridConfig) -> 'Grid':
        return cls(
            width=config.width,
            height=config.height,
            cell_size=config.cell_size,
            seed=config.seed,
        )

    @property
    def n_cells(self) -> int:
        return self.width * self.height

    def in_bounds(self, cell: Cell) -> bool:
        x, y = cell
        return 0 <= x < self.width and 0 <= y < self.height

    def grid_to_world(self, cell: Cell) -> Tuple[float, float]:
        """Cell anchor in world coordinates"""
        return (cell[0] * self.cell_size, cell[1] * self.cell_size)

    def world_to_cell(self, world_x: float, world_y: float) -> Cell:
        """Cell containing a world position (may be out of bounds)"""
        return (
            int(math.floor(world_x / self.cell_size)),
            int(math.floor(world_y / self.cell_size)),
        )

    def random_cell(self, rng: np.random.Generator) -> Cell:
        """Uniform random in-bounds cell. Draws x first, then y."""
        x = int(rng.integers(0, self.width))
        y = int(rng.integers(0, self.height))
        return (x, y)

    def cardinal_neighborhood(self, cell: Cell, include_self: bool = True) -> List[Cell]:
        """Self (optional) then in-bounds up/right/down/left neighbors"""
        cells = [cell] if include_self else []
        for dx, dy in CARDINAL_OFFSETS:
            neighbor = (cell[0] + dx, cell[1] + dy)
            if self.in_bounds(neighbor):
                cells.append(neighbor)
        return cells
