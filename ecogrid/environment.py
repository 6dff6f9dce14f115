"""
EcoGrid Gymnasium Environment
=============================
Gym-compatible wrapper that drives a SimulationEngine with externally
supplied actions, one dict entry per live agent.

The population size changes over an episode, so the spaces below describe
a single agent; observations and actions are dicts keyed by agent id.
"""

import copy
from typing import Any, Dict, Optional, Tuple

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from .config import PolicyType, SimulationConfig
from .engine import SimulationEngine
from .observation import ACTION_SIZE, OBSERVATION_SIZE
from .policy import ExternalActionPolicy


class EcoGridEnv(gym.Env):
    """
    EcoGrid foraging environment.

    Automatic episode resets inside the engine are disabled; the caller
    resets after `terminated` (extinction) or `truncated` (tick cap).
    """

    metadata = {"render_modes": ["rgb_array"], "render_fps": 5}

    def __init__(self, config: SimulationConfig, render_mode: Optional[str] = None):
        super().__init__()
        self.config = copy.deepcopy(config)
        # The engine never resets itself; the caller's tick cap only drives `truncated`
        self.truncate_at_max_ticks = self.config.episode.reset_when_max_ticks
        self.config.policy.policy_type = PolicyType.EXTERNAL
        self.config.episode.reset_when_extinct = False
        self.config.episode.reset_when_max_ticks = False
        self.render_mode = render_mode

        self.bridge = ExternalActionPolicy()
        self.engine: Optional[SimulationEngine] = None

        # Per-agent spaces
        self.observation_space = spaces.Box(
            low=0.0, high=1.0, shape=(OBSERVATION_SIZE,), dtype=np.float32
        )
        self.action_space = spaces.Discrete(ACTION_SIZE)

    def reset(self, seed: Optional[int] = None,
              options: Optional[Dict] = None) -> Tuple[Dict[str, np.ndarray], Dict[str, Any]]:
        """Start a fresh engine; `seed` overrides the grid seed"""
        super().reset(seed=seed)
        if seed is not None:
            self.config.grid.seed = int(seed)

        self.engine = SimulationEngine(self.config, external_policy=self.bridge)
        return self.engine.observations(), self._get_info()

    def step(self, actions: Dict[str, int]) -> Tuple[Dict, Dict, bool, bool, Dict]:
        """
        Execute one tick.

        Agents missing from `actions` stay in place. Rewards cover live
        agents and those culled this tick.
        """
        if self.engine is None:
            raise RuntimeError("Call reset() before step()")

        self.bridge.clear()
        self.bridge.submit_actions(actions)
        record = self.engine.advance_one_tick()

        rewards = {a.agent_id: a.last_reward for a in self.engine.agents}
        for agent in self.engine.culled_last_tick:
            rewards[agent.agent_id] = agent.last_reward

        terminated = self.engine.agent_count == 0
        max_ticks = self.config.episode.max_ticks_per_episode
        truncated = (self.truncate_at_max_ticks and max_ticks > 0
                     and self.engine.tick >= max_ticks)

        info = record.to_dict()
        info["culled"] = [a.agent_id for a in self.engine.culled_last_tick]

        return self.engine.observations(), rewards, terminated, truncated, info

    def _get_info(self) -> Dict[str, Any]:
        return {
            "episode": self.engine.episode,
            "tick": self.engine.tick,
            "agent_count": self.engine.agent_count,
            "total_field_energy": self.engine.resource_field.total_energy(),
        }

    def render(self):
        """Render the environment"""
        if self.render_mode == "rgb_array":
            return self._render_rgb()

    def _render_rgb(self) -> np.ndarray:
        """Field energy in green, agents in yellow; row 0 is the top (max y)"""
        field = self.engine.resource_field
        h, w = field.energy.shape
        img = np.zeros((h, w, 3), dtype=np.uint8)

        energy_normalized = np.clip(field.energy / field.max_energy_per_cell, 0, 1)
        img[:, :, 1] = (energy_normalized * 200).astype(np.uint8)

        for agent in self.engine.agents:
            x, y = agent.position
            img[y, x] = [255, 255, 0]

        return np.flipud(img)

    def close(self):
        """Clean up resources"""
        if self.engine is not None:
            self.engine.close_sinks()
