"""
EcoGrid Resource Field
======================
Bounded, regenerating energy stored per grid cell.

- Procedural fill from multi-octave gradient (Perlin) noise
- Harvest: remove up to the available energy
- Deposit: add up to the per-cell cap
- Uniform regeneration once per tick

Every mutation keeps 0 <= energy <= max_energy_per_cell. Out-of-bounds
cells read as empty and absorb nothing; no operation raises.
"""

import numpy as np
from typing import Optional

from .config import FieldConfig
from .grid import Cell, Grid

# Gradient permutation table. Built from its own constant seed so that
# field generation never consumes the simulation's random stream.
_PERMUTATION_SEED = 0x5EED
_PERM = np.random.default_rng(_PERMUTATION_SEED).permutation(256).astype(np.int64)
_PERM = np.concatenate([_PERM, _PERM])


def _fade(t: np.ndarray) -> np.ndarray:
    """Quintic smoothstep 6t^5 - 15t^4 + 10t^3"""
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


def _lerp(a: np.ndarray, b: np.ndarray, t: np.ndarray) -> np.ndarray:
    return a + t * (b - a)


def _gradient(h: np.ndarray, x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Dot product with one of the four diagonal gradients picked by the hash"""
    u = np.where((h & 1) == 0, x, -x)
    v = np.where((h & 2) == 0, y, -y)
    return u + v


def perlin_noise(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """
    2-D gradient noise sampled at (x, y), mapped to [0, 1].

    Lattice points return exactly 0.5; the field is continuous and
    periodic with period 256 in both axes.
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)

    x_floor = np.floor(x)
    y_floor = np.floor(y)
    xi = x_floor.astype(np.int64) & 255
    yi = y_floor.astype(np.int64) & 255
    xf = x - x_floor
    yf = y - y_floor

    u = _fade(xf)
    v = _fade(yf)

    aa = _PERM[_PERM[xi] + yi]
    ab = _PERM[_PERM[xi] + yi + 1]
    ba = _PERM[_PERM[xi + 1] + yi]
    bb = _PERM[_PERM[xi + 1] + yi + 1]

    x1 = _lerp(_gradient(aa, xf, yf), _gradient(ba, xf - 1.0, yf), u)
    x2 = _lerp(_gradient(ab, xf, yf - 1.0), _gradient(bb, xf - 1.0, yf - 1.0), u)
    n = _lerp(x1, x2, v)

    return np.clip(0.5 * (n + 1.0), 0.0, 1.0)


def noise_offsets(seed: int, seed_offset: int = 1000):
    """Sample-space offsets derived from the seed (noise itself is unseeded)"""
    s = seed + seed_offset
    return (s * 0.12345) % 10000.0, (s * 0.54321) % 10000.0


def generate_energy(
    width: int,
    height: int,
    max_energy_per_cell: float,
    initial_fill: float,
    noise_scale: float,
    octaves: int,
    persistence: float,
    seed: int,
    seed_offset: int = 1000,
) -> np.ndarray:
    """
    Procedural energy layout, shape (height, width).

    n(x, y) = sum_i amp_i * noise((x + offX) * scale * freq_i, ...) / sum_i amp_i
    with amp decaying by clamp01(persistence) and freq doubling per octave.
    """
    off_x, off_y = noise_offsets(seed, seed_offset)
    scale = max(1e-4, noise_scale)
    persistence = float(np.clip(persistence, 0.0, 1.0))

    xx, yy = np.meshgrid(
        np.arange(width, dtype=np.float64),
        np.arange(height, dtype=np.float64),
    )

    total = np.zeros((height, width))
    amp = 1.0
    freq = 1.0
    norm = 0.0
    for _ in range(max(1, int(octaves))):
        total += amp * perlin_noise((xx + off_x) * scale * freq,
                                    (yy + off_y) * scale * freq)
        norm += amp
        amp *= persistence
        freq *= 2.0

    normalized = total / norm if norm > 0 else np.full((height, width), 0.5)
    filled = float(np.clip(initial_fill, 0.0, 1.0)) * normalized
    return np.clip(filled * max_energy_per_cell, 0.0, max_energy_per_cell)


class ResourceField:
    """
    Per-cell energy store agents forage from.

    The energy array is indexed [y, x]; the public API takes (x, y) cells.
    """

    def __init__(self, grid: Grid, config: FieldConfig):
        self.grid = grid
        self.config = config
        self.energy: np.ndarray = np.zeros((grid.height, grid.width))
        self.initialize()

    @property
    def max_energy_per_cell(self) -> float:
        return max(1e-4, self.config.max_energy_per_cell)

    def initialize(self, seed: Optional[int] = None):
        """(Re)build the field from noise. Defaults to the grid seed."""
        cfg = self.config
        self.energy = generate_energy(
            width=self.grid.width,
            height=self.grid.height,
            max_energy_per_cell=cfg.max_energy_per_cell,
            initial_fill=cfg.initial_fill,
            noise_scale=cfg.noise_scale,
            octaves=cfg.noise_octaves,
            persistence=cfg.noise_persistence,
            seed=self.grid.seed if seed is None else seed,
            seed_offset=cfg.noise_seed_offset,
        )

    def in_bounds(self, cell: Cell) -> bool:
        return self.grid.in_bounds(cell)

    def get_energy(self, cell: Cell) -> float:
        if not self.grid.in_bounds(cell):
            return 0.0
        x, y = cell
        return float(self.energy[y, x])

    def harvest(self, cell: Cell, amount: float) -> float:
        """Remove up to `amount`; returns what was actually taken"""
        if not self.grid.in_bounds(cell):
            return 0.0
        x, y = cell
        current = float(self.energy[y, x])
        take = min(max(amount, 0.0), current)
        remaining = current - take
        self.energy[y, x] = remaining
        # Amount the stored value actually lost; deposit() of it restores current
        return current - remaining

    def deposit(self, cell: Cell, amount: float) -> float:
        """Add up to `amount` without exceeding the cap; returns what was added"""
        if amount <= 0.0 or not self.grid.in_bounds(cell):
            return 0.0
        x, y = cell
        current = float(self.energy[y, x])
        add = min(amount, self.max_energy_per_cell - current)
        if add <= 0.0:
            return 0.0
        self.energy[y, x] = current + add
        return add

    def regenerate_tick(self, amount_per_cell: Optional[float] = None):
        """Uniform regrowth, capped per cell"""
        if amount_per_cell is None:
            amount_per_cell = self.config.regen_per_tick
        amount = max(0.0, amount_per_cell)
        np.minimum(self.energy + amount, self.max_energy_per_cell, out=self.energy)

    def total_energy(self) -> float:
        return float(self.energy.sum())

    def mean_fraction(self) -> float:
        """Mean fullness in [0, 1]"""
        return float(self.energy.mean() / self.max_energy_per_cell)

    def as_array(self) -> np.ndarray:
        """Copy of the energy array, shape (height, width)"""
        return self.energy.copy()
