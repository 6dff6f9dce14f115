"""
Integration tests for ecogrid/environment.py

Tests the EcoGridEnv Gymnasium environment.
"""

import numpy as np
import pytest
from ecogrid.config import PolicyType
from ecogrid.observation import Action


class TestEcoGridEnvBasic:
    """Basic tests for EcoGridEnv"""

    @pytest.fixture
    def env(self, small_config):
        """Create environment for testing"""
        from ecogrid.environment import EcoGridEnv
        return EcoGridEnv(small_config)

    def test_initialization(self, env, small_config):
        """Test environment leaves the caller's config untouched"""
        assert env.config.policy.policy_type == PolicyType.EXTERNAL
        assert not env.config.episode.reset_when_extinct
        assert small_config.policy.policy_type == PolicyType.EPSILON_GREEDY
        assert small_config.episode.reset_when_extinct

    def test_spaces(self, env):
        assert env.observation_space.shape == (6,)
        assert env.observation_space.dtype == np.float32
        assert env.action_space.n == 5

    def test_reset(self, env):
        obs, info = env.reset()
        assert set(obs) == {"agent_000", "agent_001", "agent_002", "agent_003"}
        for agent_obs in obs.values():
            assert env.observation_space.contains(agent_obs)
        assert info["tick"] == 0

    def test_step_before_reset(self, env):
        with pytest.raises(RuntimeError):
            env.step({})

    def test_step(self, env):
        obs, _ = env.reset(seed=3)
        actions = {agent_id: env.action_space.sample() for agent_id in obs}

        obs, rewards, terminated, truncated, info = env.step(actions)

        assert set(rewards) >= set(obs)
        assert isinstance(terminated, bool)
        assert isinstance(truncated, bool)
        assert info["tick"] == 1
        assert "culled" in info

    def test_action_moves_agent(self, env):
        env.reset()
        agent = env.engine.get_agent("agent_000")
        agent.position = (5, 5)
        env.step({"agent_000": Action.RIGHT})
        assert agent.position == (6, 5)

    def test_missing_actions_stay(self, env):
        env.reset()
        before = {a.agent_id: a.position for a in env.engine.agents}
        env.step({})
        after = {a.agent_id: a.position for a in env.engine.agents}
        assert before == after

    def test_seed_reproducible(self, env):
        obs_a, _ = env.reset(seed=11)
        obs_b, _ = env.reset(seed=11)
        assert obs_a.keys() == obs_b.keys()
        for agent_id in obs_a:
            assert np.array_equal(obs_a[agent_id], obs_b[agent_id])


class TestEcoGridEnvEpisodes:
    """Episode boundaries are reported, not applied"""

    def test_extinction_terminates(self, small_config):
        from ecogrid.environment import EcoGridEnv
        small_config.agent.metabolism_per_tick = 10.0
        env = EcoGridEnv(small_config)
        env.reset()
        env.engine.resource_field.energy[:] = 0.0

        obs, rewards, terminated, truncated, info = env.step({})

        assert terminated
        assert obs == {}
        assert len(rewards) == 4
        assert all(r == pytest.approx(-11.0) for r in rewards.values())
        assert sorted(info["culled"]) == sorted(rewards)
        assert env.engine.episode == 0

    def test_tick_cap_truncates(self, small_config):
        from ecogrid.environment import EcoGridEnv
        small_config.episode.max_ticks_per_episode = 5
        small_config.agent.metabolism_per_tick = 0.0
        env = EcoGridEnv(small_config)
        env.reset()

        for _ in range(4):
            _, _, terminated, truncated, _ = env.step({})
            assert not truncated
        _, _, terminated, truncated, _ = env.step({})
        assert truncated
        assert not terminated
        assert env.engine.tick == 5

    def test_disabled_tick_cap_never_truncates(self, small_config):
        from ecogrid.environment import EcoGridEnv
        small_config.episode.max_ticks_per_episode = 3
        small_config.episode.reset_when_max_ticks = False
        small_config.agent.metabolism_per_tick = 0.0
        env = EcoGridEnv(small_config)
        env.reset()

        for _ in range(6):
            _, _, terminated, truncated, _ = env.step({})
            assert truncated is False
            assert not terminated
        assert env.engine.tick == 6

    def test_render_rgb(self, small_config):
        from ecogrid.environment import EcoGridEnv
        env = EcoGridEnv(small_config, render_mode="rgb_array")
        env.reset()
        frame = env.render()
        assert frame.shape == (10, 10, 3)
        assert frame.dtype == np.uint8
        env.close()
