"""
Unit tests for ecogrid/agent.py

Tests the energy lifecycle, reproduction split, harvesting, movement
and reward accounting.
"""

import pytest
from ecogrid.agent import Agent
from ecogrid.config import AgentConfig


class TestSpawn:
    """Tests for Agent.spawn"""

    def test_from_config(self, agent_config):
        a = Agent.from_config("agent_007", agent_config)
        assert a.agent_id == "agent_007"
        assert a.max_energy == agent_config.max_energy
        assert a.harvest_per_step == agent_config.harvest_per_step

    def test_spawn_at_cell(self, agent):
        assert agent.position == (5, 5)
        assert agent.body_energy == 5.0
        assert agent.is_alive
        assert agent.cumulative_reward == 0.0

    def test_spawn_random_in_bounds(self, grid, rng, agent_config):
        for i in range(50):
            a = Agent.from_config(f"a{i}", agent_config)
            a.spawn(grid, rng)
            assert grid.in_bounds(a.position)

    def test_start_energy_override_clamped(self, grid, rng):
        a = Agent.from_config("a", AgentConfig(max_energy=10.0))
        a.spawn(grid, rng, start_cell=(1, 1), start_energy=25.0)
        assert a.body_energy == 10.0
        a.spawn(grid, rng, start_cell=(1, 1), start_energy=-3.0)
        assert a.body_energy == 0.0

    def test_respawn_resets_state(self, agent, grid, rng):
        agent.add_reward(3.0)
        for _ in range(30):
            agent.apply_metabolism()
        assert agent.is_dead
        agent.spawn(grid, rng, start_cell=(2, 2))
        assert agent.is_alive
        assert agent.cumulative_reward == 0.0
        assert agent.body_energy == 5.0


class TestMetabolism:
    """Tests for apply_metabolism and death"""

    def test_dies_after_exact_ticks(self, agent):
        """5.0 energy at 0.2 per tick lasts exactly 25 ticks"""
        for _ in range(24):
            agent.apply_metabolism()
            assert agent.is_alive
        agent.apply_metabolism()
        assert agent.is_dead
        assert agent.body_energy == 0.0

        agent.apply_metabolism()
        assert agent.is_dead
        assert agent.body_energy == 0.0

    def test_dead_is_terminal(self, agent):
        agent.metabolism_per_tick = 10.0
        agent.apply_metabolism()
        assert agent.is_dead
        agent.gain_energy(5.0)
        agent.apply_metabolism()
        assert agent.body_energy == 0.0
        assert agent.is_dead

    def test_energy_fraction(self, agent):
        assert agent.energy_fraction == pytest.approx(0.5)
        agent.body_energy = 20.0
        assert agent.energy_fraction == 1.0


class TestGainEnergy:
    """Tests for gain_energy"""

    def test_clamped_to_max(self, agent):
        agent.gain_energy(100.0)
        assert agent.body_energy == agent.max_energy

    def test_negative_ignored(self, agent):
        agent.gain_energy(-2.0)
        assert agent.body_energy == 5.0


class TestReproduction:
    """Tests for try_split_for_offspring"""

    def test_split(self, agent):
        agent.body_energy = 10.0
        ok, give = agent.try_split_for_offspring(8.0, 0.4)
        assert ok
        assert give == pytest.approx(4.0)
        assert agent.body_energy == pytest.approx(6.0)

        ok, give = agent.try_split_for_offspring(8.0, 0.4)
        assert not ok
        assert give == 0.0
        assert agent.body_energy == pytest.approx(6.0)

    def test_below_threshold(self, agent):
        ok, give = agent.try_split_for_offspring(8.0, 0.4)
        assert (ok, give) == (False, 0.0)
        assert agent.body_energy == 5.0

    @pytest.mark.parametrize("fraction", [0.0, -0.5, 1.5])
    def test_invalid_fraction(self, agent, fraction):
        agent.body_energy = 10.0
        assert agent.try_split_for_offspring(8.0, fraction) == (False, 0.0)
        assert agent.body_energy == 10.0

    def test_full_fraction(self, agent):
        agent.body_energy = 9.0
        ok, give = agent.try_split_for_offspring(8.0, 1.0)
        assert ok
        assert give == 9.0
        assert agent.body_energy == 0.0

    def test_dead_cannot_split(self, agent):
        agent.body_energy = 10.0
        agent.is_dead = True
        assert agent.try_split_for_offspring(8.0, 0.4) == (False, 0.0)


class TestFieldInteraction:
    """Tests for sensing, harvesting and moving"""

    def test_harvest_here(self, agent, empty_field):
        empty_field.energy[5, 5] = 1.0
        taken = agent.harvest_here()
        assert taken == pytest.approx(0.4)
        assert agent.last_gained == pytest.approx(0.4)
        assert empty_field.get_energy((5, 5)) == pytest.approx(0.6)
        # harvesting does not feed the agent by itself
        assert agent.body_energy == 5.0

    def test_harvest_limited_by_cell(self, agent, empty_field):
        empty_field.energy[5, 5] = 0.1
        assert agent.harvest_here() == pytest.approx(0.1)
        assert agent.harvest_here() == 0.0

    def test_without_field(self, grid, rng, agent_config):
        a = Agent.from_config("a", agent_config)
        a.spawn(grid, rng, start_cell=(0, 0))
        assert a.harvest_here() == 0.0
        assert a.sense_energy((0, 0)) == 0.0

    def test_sense_energy(self, agent, empty_field):
        empty_field.energy[6, 5] = 3.0
        assert agent.sense_energy((5, 6)) == 3.0
        assert agent.sense_energy((-1, 5)) == 0.0

    def test_move(self, agent):
        assert agent.move((5, 6))
        assert agent.position == (5, 6)
        assert not agent.move((5, 6))

    def test_move_out_of_bounds_ignored(self, agent):
        assert not agent.move((10, 5))
        assert agent.position == (5, 5)

    def test_candidate_cells(self, agent):
        assert agent.candidate_cells() == [(5, 5), (5, 6), (6, 5), (5, 4), (4, 5)]


class TestRewards:
    """Tests for reward accounting"""

    def test_add_reward(self, agent):
        agent.add_reward(1.5)
        agent.add_reward(-0.5)
        assert agent.last_reward == pytest.approx(1.0)
        assert agent.cumulative_reward == pytest.approx(1.0)

    def test_reset_step_reward_keeps_cumulative(self, agent):
        agent.add_reward(2.0)
        agent.reset_step_reward()
        assert agent.last_reward == 0.0
        assert agent.cumulative_reward == 2.0

    def test_dead_ignores_add_reward(self, agent):
        agent.is_dead = True
        agent.add_reward(5.0)
        assert agent.cumulative_reward == 0.0

    def test_final_reward_applies_when_dead(self, agent):
        agent.is_dead = True
        agent.add_final_reward(-1.0)
        assert agent.last_reward == -1.0
        assert agent.cumulative_reward == -1.0
