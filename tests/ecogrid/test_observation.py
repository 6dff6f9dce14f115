"""
Unit tests for ecogrid/observation.py
"""

import numpy as np
import pytest
from ecogrid.agent import Agent
from ecogrid.observation import (
    ACTION_SIZE, OBSERVATION_SIZE, Action, action_to_cell, build_observation,
)


class TestBuildObservation:
    """Tests for the observation vector"""

    def test_shape_and_dtype(self, agent):
        obs = build_observation(agent)
        assert obs.shape == (OBSERVATION_SIZE,)
        assert obs.dtype == np.float32

    def test_layout(self, agent, empty_field):
        empty_field.energy[5, 5] = 1.0   # self
        empty_field.energy[6, 5] = 2.0   # up
        empty_field.energy[5, 6] = 3.0   # right
        empty_field.energy[4, 5] = 4.0   # down
        empty_field.energy[5, 4] = 5.0   # left
        obs = build_observation(agent, empty_field)
        assert np.allclose(obs, [0.1, 0.2, 0.3, 0.4, 0.5, 0.5])

    def test_out_of_bounds_neighbors_are_zero(self, grid, rng, empty_field, agent_config):
        empty_field.energy[:] = 10.0
        a = Agent.from_config("corner", agent_config)
        a.spawn(grid, rng, start_cell=(0, 0), resource_field=empty_field)
        obs = build_observation(a)
        # self, up, right in bounds; down, left off-grid
        assert np.allclose(obs[:5], [1.0, 1.0, 1.0, 0.0, 0.0])

    def test_no_field(self, grid, rng, agent_config):
        a = Agent.from_config("bare", agent_config)
        a.spawn(grid, rng, start_cell=(3, 3))
        obs = build_observation(a)
        assert np.all(obs[:5] == 0.0)
        assert obs[5] == pytest.approx(0.5)

    def test_values_in_unit_range(self, resource_field, grid, rng, agent_config):
        a = Agent.from_config("a", agent_config)
        for _ in range(30):
            a.spawn(grid, rng, resource_field=resource_field)
            obs = build_observation(a)
            assert obs.min() >= 0.0
            assert obs.max() <= 1.0


class TestActionToCell:
    """Tests for action decoding"""

    def test_action_values(self):
        assert ACTION_SIZE == 5
        assert [int(a) for a in Action] == [0, 1, 2, 3, 4]

    def test_right_from_interior(self, grid):
        assert action_to_cell(grid, (5, 5), Action.RIGHT) == (6, 5)

    def test_right_at_edge_stays(self, grid):
        assert action_to_cell(grid, (9, 5), Action.RIGHT) == (9, 5)

    @pytest.mark.parametrize("action,expected", [
        (0, (5, 5)), (1, (5, 6)), (2, (6, 5)), (3, (5, 4)), (4, (4, 5)),
    ])
    def test_all_actions(self, grid, action, expected):
        assert action_to_cell(grid, (5, 5), action) == expected

    @pytest.mark.parametrize("action", [-1, 5, 99])
    def test_invalid_action_stays(self, grid, action):
        assert action_to_cell(grid, (5, 5), action) == (5, 5)

    def test_numpy_action(self, grid):
        assert action_to_cell(grid, (5, 5), np.int64(1)) == (5, 6)
