"""
EcoGrid Decision Policies
=========================
Closed set of decision strategies, chosen once per run.

Two capability kinds:
- Cell policies:   decide(current_cell, candidates) -> chosen cell
- Action policies: decide_action(observation) -> action index in [0, 4]

Policies hold no per-tick state; the only thing they advance is the shared
random generator handed to them by the engine.

The external action bridge is an action policy whose decisions come from
the host application (e.g. an RL trainer). It knows nothing about any
learning framework: the host pushes actions in with `submit_action` or
supplies a `decision_fn` that is called once per tick with every agent's
observation.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, List, Optional

import numpy as np

from .config import ConfigurationError, PolicyConfig, PolicyType
from .grid import Cell
from .observation import ACTION_SIZE, Action
from .resource_field import ResourceField


class PolicyKind(Enum):
    """Policy capability variants"""
    CELL = "cell"
    ACTION = "action"


class CellPolicy(ABC):
    """Picks a destination cell among candidates (stay + cardinal neighbors)"""

    kind = PolicyKind.CELL
    name = "cell"

    @abstractmethod
    def decide(self, current_cell: Cell, candidates: List[Cell]) -> Cell:
        ...


class ActionPolicy(ABC):
    """Picks a discrete action from an observation vector"""

    kind = PolicyKind.ACTION
    name = "action"

    @abstractmethod
    def decide_action(self, observation: np.ndarray,
                      agent_id: Optional[str] = None) -> int:
        ...


# =============================================================================
# CELL POLICIES
# =============================================================================

class EpsilonGreedyEnergyPolicy(CellPolicy):
    """
    Richest candidate with probability `exploit_prob`, otherwise a uniform
    random candidate. Ties go to the first candidate seen.
    """

    name = PolicyType.EPSILON_GREEDY.value

    def __init__(self, resource_field: Optional[ResourceField],
                 rng: np.random.Generator, exploit_prob: float = 0.85):
        self.resource_field = resource_field
        self.rng = rng
        self.exploit_prob = exploit_prob

    def decide(self, current_cell: Cell, candidates: List[Cell]) -> Cell:
        if not candidates:
            return current_cell

        if self.rng.random() >= self.exploit_prob:
            return candidates[int(self.rng.integers(len(candidates)))]

        best = float("-inf")
        chosen = current_cell
        for cell in candidates:
            e = _sense(self.resource_field, cell)
            if e > best:
                best = e
                chosen = cell
        return chosen


class RichnessLingerPolicy(CellPolicy):
    """
    Stay on rich cells, otherwise climb toward the richest neighbor.

    1. With probability `explore_prob`, a uniform random candidate.
    2. Stay if the current cell holds >= linger_threshold_frac * max energy.
    3. Otherwise a uniform choice among candidates within `tie_epsilon` of
       the best energy.
    """

    name = PolicyType.RICHNESS_LINGER.value

    def __init__(self, resource_field: Optional[ResourceField],
                 rng: np.random.Generator,
                 linger_threshold_frac: float = 0.6,
                 explore_prob: float = 0.10,
                 tie_epsilon: float = 1e-6):
        self.resource_field = resource_field
        self.rng = rng
        self.linger_threshold_frac = linger_threshold_frac
        self.explore_prob = explore_prob
        self.tie_epsilon = tie_epsilon

    def decide(self, current_cell: Cell, candidates: List[Cell]) -> Cell:
        if not candidates:
            return current_cell

        if self.rng.random() < self.explore_prob:
            return candidates[int(self.rng.integers(len(candidates)))]

        max_cell_energy = (self.resource_field.max_energy_per_cell
                           if self.resource_field is not None else 1.0)
        if _sense(self.resource_field, current_cell) >= self.linger_threshold_frac * max_cell_energy:
            return current_cell

        best = float("-inf")
        bests: List[Cell] = []
        for cell in candidates:
            e = _sense(self.resource_field, cell)
            if e > best + self.tie_epsilon:
                best = e
                bests = [cell]
            elif abs(e - best) <= self.tie_epsilon:
                bests.append(cell)

        if not bests:
            return current_cell
        return bests[int(self.rng.integers(len(bests)))]


def _sense(resource_field: Optional[ResourceField], cell: Cell) -> float:
    return resource_field.get_energy(cell) if resource_field is not None else 0.0


# =============================================================================
# ACTION POLICIES
# =============================================================================

class GreedyObservationPolicy(ActionPolicy):
    """Argmax over the five field terms of the observation (first wins ties)"""

    name = PolicyType.OBSERVATION_GREEDY.value

    def decide_action(self, observation: np.ndarray,
                      agent_id: Optional[str] = None) -> int:
        best_idx = 0
        best = float("-inf")
        for i in range(min(ACTION_SIZE, len(observation))):
            if observation[i] > best:
                best = float(observation[i])
                best_idx = i
        return best_idx


DecisionFn = Callable[[Dict[str, np.ndarray]], Dict[str, int]]


class ExternalActionPolicy(ActionPolicy):
    """
    Action bridge to an external controller.

    Each tick the engine offers every agent's observation through
    `request_decisions`, then consumes one pending action per agent in
    `decide_action`. Agents with no pending action take `default_action`;
    actions left unclaimed after the move phase are discarded.
    """

    name = PolicyType.EXTERNAL.value

    def __init__(self, decision_fn: Optional[DecisionFn] = None,
                 default_action: int = Action.STAY):
        self.decision_fn = decision_fn
        self.default_action = int(default_action)
        self._pending: Dict[str, int] = {}
        self.last_observations: Dict[str, np.ndarray] = {}

    @staticmethod
    def _clamp(action: int) -> int:
        return int(min(max(int(action), 0), ACTION_SIZE - 1))

    def submit_action(self, agent_id: str, action: int):
        self._pending[agent_id] = self._clamp(action)

    def submit_actions(self, actions: Dict[str, int]):
        for agent_id, action in actions.items():
            self.submit_action(agent_id, action)

    def request_decisions(self, observations: Dict[str, np.ndarray]):
        """Offer this tick's observations to the host"""
        self.last_observations = observations
        if self.decision_fn is not None:
            self.submit_actions(self.decision_fn(observations))

    def has_pending(self, agent_id: str) -> bool:
        return agent_id in self._pending

    def decide_action(self, observation: np.ndarray,
                      agent_id: Optional[str] = None) -> int:
        if agent_id is None:
            return self.default_action
        return self._pending.pop(agent_id, self.default_action)

    def discard_pending(self) -> int:
        """Drop actions nobody consumed this tick; returns how many"""
        dropped = len(self._pending)
        self._pending.clear()
        return dropped

    def clear(self):
        self._pending.clear()
        self.last_observations = {}


# =============================================================================
# FACTORY
# =============================================================================

def create_policy(config: PolicyConfig,
                  resource_field: Optional[ResourceField],
                  rng: np.random.Generator,
                  external: Optional[ExternalActionPolicy] = None):
    """Resolve the configured policy type to an instance"""
    policy_type = config.policy_type

    if policy_type == PolicyType.EPSILON_GREEDY:
        return EpsilonGreedyEnergyPolicy(resource_field, rng, config.exploit_prob)

    if policy_type == PolicyType.RICHNESS_LINGER:
        return RichnessLingerPolicy(
            resource_field, rng,
            linger_threshold_frac=config.linger_threshold_frac,
            explore_prob=config.explore_prob,
            tie_epsilon=config.tie_epsilon,
        )

    if policy_type == PolicyType.OBSERVATION_GREEDY:
        return GreedyObservationPolicy()

    if policy_type == PolicyType.EXTERNAL:
        if external is None:
            raise ConfigurationError(
                "Policy 'external' requires an ExternalActionPolicy supplied by the host"
            )
        return external

    raise ConfigurationError(f"Unknown policy type: {policy_type!r}")
