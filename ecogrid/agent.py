"""
EcoGrid Agent
=============
One foraging organism: a position, a bounded energy store, a terminal
death state and reward accounting.

States: alive -> dead (terminal). While dead, every energy and reward
mutation is a no-op except `add_final_reward`, which the engine uses for
the penalties charged on the tick an agent dies.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .config import AgentConfig
from .grid import Cell, Grid
from .resource_field import ResourceField

# Residue left by repeated float subtraction counts as empty
ENERGY_EPSILON = 1e-9


@dataclass
class Agent:
    """Internal state of a single agent"""
    agent_id: str

    # Static parameters
    max_energy: float = 10.0
    start_energy: float = 5.0
    metabolism_per_tick: float = 0.2
    harvest_per_step: float = 0.4

    # Runtime state
    position: Cell = (0, 0)
    body_energy: float = 0.0
    is_dead: bool = False
    last_reward: float = 0.0
    cumulative_reward: float = 0.0
    last_gained: float = 0.0  # harvested this tick

    # Read-only collaborators
    grid: Optional[Grid] = None
    resource_field: Optional[ResourceField] = None

    @classmethod
    def from_config(cls, agent_id: str, config: AgentConfig) -> 'Agent':
        return cls(
            agent_id=agent_id,
            max_energy=config.max_energy,
            start_energy=config.start_energy,
            metabolism_per_tick=config.metabolism_per_tick,
            harvest_per_step=config.harvest_per_step,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def spawn(self, grid: Grid, rng: np.random.Generator,
              start_cell: Optional[Cell] = None,
              resource_field: Optional[ResourceField] = None,
              start_energy: Optional[float] = None):
        """
        Place the agent and reset its runtime state.

        Without `start_cell` the position is drawn uniformly from the grid
        (two draws from `rng`). `start_energy` overrides the configured
        start energy, e.g. for an offspring endowment.
        """
        self.grid = grid
        self.resource_field = resource_field

        self.position = tuple(start_cell) if start_cell is not None else grid.random_cell(rng)

        if start_energy is not None:
            self.start_energy = min(self.max_energy, max(0.0, start_energy))
        self.body_energy = min(max(self.start_energy, 0.0), self.max_energy)
        self.is_dead = False

        self.last_reward = 0.0
        self.cumulative_reward = 0.0
        self.last_gained = 0.0

    @property
    def is_alive(self) -> bool:
        return not self.is_dead

    @property
    def energy_fraction(self) -> float:
        return min(1.0, max(0.0, self.body_energy / max(1e-4, self.max_energy)))

    def apply_metabolism(self):
        if self.is_dead:
            return
        self.body_energy -= self.metabolism_per_tick
        if self.body_energy <= ENERGY_EPSILON:
            self.body_energy = 0.0
            self.is_dead = True

    def gain_energy(self, amount: float):
        if self.is_dead:
            return
        self.body_energy = min(self.max_energy, self.body_energy + max(0.0, amount))

    def try_split_for_offspring(self, threshold: float, fraction: float) -> Tuple[bool, float]:
        """
        Give `fraction` of body energy to an offspring if energy >= threshold.

        Returns (success, offspring_energy); (False, 0.0) when alive-ness,
        the threshold or the fraction rules it out.
        """
        if self.is_dead or self.body_energy < threshold:
            return False, 0.0
        if not (0.0 < fraction <= 1.0):
            return False, 0.0

        give = self.body_energy * fraction
        if give <= 0.0:
            return False, 0.0

        self.body_energy = min(max(self.body_energy - give, 0.0), self.max_energy)
        return True, give

    # ------------------------------------------------------------------
    # Environment interaction
    # ------------------------------------------------------------------

    def sense_energy(self, cell: Cell) -> float:
        if self.resource_field is None:
            return 0.0
        return self.resource_field.get_energy(cell)

    def harvest_here(self, amount: Optional[float] = None) -> float:
        """Take energy from the current cell. Caller feeds it to gain_energy."""
        if self.resource_field is None:
            return 0.0
        if amount is None:
            amount = self.harvest_per_step
        take = self.resource_field.harvest(self.position, amount)
        self.last_gained = take
        return take

    def move(self, target: Cell) -> bool:
        """Move if target is in bounds; returns whether the position changed"""
        if self.grid is None or not self.grid.in_bounds(target):
            return False
        target = (int(target[0]), int(target[1]))
        moved = target != self.position
        self.position = target
        return moved

    def candidate_cells(self) -> List[Cell]:
        """Stay plus in-bounds up/right/down/left"""
        if self.grid is None:
            return [self.position]
        return self.grid.cardinal_neighborhood(self.position, include_self=True)

    # ------------------------------------------------------------------
    # Rewards
    # ------------------------------------------------------------------

    def add_reward(self, reward: float):
        if self.is_dead:
            return
        self.last_reward += reward
        self.cumulative_reward += reward

    def add_final_reward(self, reward: float):
        """Reward that still counts on the tick the agent died"""
        self.last_reward += reward
        self.cumulative_reward += reward

    def reset_step_reward(self):
        self.last_reward = 0.0
        self.last_gained = 0.0
