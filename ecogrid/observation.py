"""
EcoGrid Observation / Action Codec
==================================
Fixed-size observation vector and discrete action decoding shared by
action policies and the external action bridge.

Observation (6 floats, all in [0, 1]):
    [E_self, E_up, E_right, E_down, E_left, body_energy_fraction]
Field terms are normalized by the field's max energy per cell and are 0
for out-of-bounds cells or when no field is attached.

Actions: 0=stay, 1=up, 2=right, 3=down, 4=left.
"""

from enum import IntEnum
from typing import Dict, Optional, TYPE_CHECKING

import numpy as np

from .grid import Cell, Grid, UP, RIGHT, DOWN, LEFT

if TYPE_CHECKING:
    from .agent import Agent
    from .resource_field import ResourceField

OBSERVATION_SIZE = 6
ACTION_SIZE = 5


class Action(IntEnum):
    """Discrete movement actions"""
    STAY = 0
    UP = 1
    RIGHT = 2
    DOWN = 3
    LEFT = 4


ACTION_OFFSETS: Dict[Action, Cell] = {
    Action.STAY: (0, 0),
    Action.UP: UP,
    Action.RIGHT: RIGHT,
    Action.DOWN: DOWN,
    Action.LEFT: LEFT,
}


def build_observation(agent: 'Agent',
                      resource_field: Optional['ResourceField'] = None) -> np.ndarray:
    """Local sensed state of `agent` as a float32 vector of OBSERVATION_SIZE"""
    if resource_field is None:
        resource_field = agent.resource_field

    obs = np.zeros(OBSERVATION_SIZE, dtype=np.float32)
    x, y = agent.position

    if resource_field is not None:
        e_max = resource_field.max_energy_per_cell
        for idx, action in enumerate((Action.STAY, Action.UP, Action.RIGHT,
                                      Action.DOWN, Action.LEFT)):
            dx, dy = ACTION_OFFSETS[action]
            cell = (x + dx, y + dy)
            if resource_field.in_bounds(cell):
                obs[idx] = min(1.0, max(0.0, resource_field.get_energy(cell) / e_max))

    obs[5] = agent.energy_fraction
    return obs


def action_to_cell(grid: Grid, cell: Cell, action: int) -> Cell:
    """Target cell for `action`; unknown actions and off-grid targets stay put"""
    try:
        dx, dy = ACTION_OFFSETS[Action(int(action))]
    except ValueError:
        return cell
    target = (cell[0] + dx, cell[1] + dy)
    return target if grid.in_bounds(target) else cell
