"""
EcoGrid Simulation Engine
=========================
Owns the resource field, the population and the seeded random generator,
and advances them one discrete tick at a time.

Order of operations per tick (the order is part of the model):
1. Reset per-step rewards
2. Offer observations to the external action bridge (if in use)
3. Each agent harvests its cell, decides and moves
4. Metabolism (may kill agents)
5. Metabolism reward penalty for every tracked agent, dead or alive
6. Cull dead agents after charging the death penalty
7. Reproduction by energy split, births applied after all decisions
8. Field regeneration
9. Tick counter + population sample + telemetry
10. Episode termination check (extinction / tick cap) and reset

Everything is single-threaded and synchronous. Agents are always processed
in population (insertion) order, and the random generator is only
advanced by grid sampling and policies, so a fixed seed reproduces the run
exactly.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from .agent import Agent
from .config import SimulationConfig, config_to_dict
from .grid import Cell, Grid
from .observation import action_to_cell, build_observation
from .policy import ActionPolicy, ExternalActionPolicy, PolicyKind, create_policy
from .resource_field import ResourceField
from .telemetry import SimulationSnapshot, TelemetrySink, TickRecord

logger = logging.getLogger(__name__)


class SimulationEngine:
    """
    Deterministic tick pipeline for a foraging population.

    Args:
        config: Validated on construction; a ConfigurationError is fatal.
        external_policy: Action bridge used when the policy type is EXTERNAL.
        sinks: Telemetry consumers notified after every tick.
    """

    def __init__(self, config: SimulationConfig,
                 external_policy: Optional[ExternalActionPolicy] = None,
                 sinks: Optional[Iterable[TelemetrySink]] = None):
        config.validate()
        self.config = config
        self.external_policy = external_policy
        self.sinks: List[TelemetrySink] = list(sinks or [])

        self.grid = Grid.from_config(config.grid)
        self.resource_field = ResourceField(self.grid, config.resource)

        self.rng: np.random.Generator = np.random.default_rng(self.grid.seed)
        self.policy = None
        self.agents: List[Agent] = []
        self.culled_last_tick: List[Agent] = []

        self.episode = 0
        self.tick = 0
        self.population_history: List[int] = []
        self.births_last_tick = 0
        self.deaths_last_tick = 0
        self.last_record: Optional[TickRecord] = None
        self._next_agent_id = 0

        self._start_episode()
        logger.info(
            f"Engine initialized: {self.grid.width}x{self.grid.height} grid, "
            f"seed={self.grid.seed}, policy={self.policy_name}, "
            f"agents={len(self.agents)}"
        )

    # ===================================================================
    # Episode management
    # ===================================================================

    def _start_episode(self):
        """Reseed, rebuild the policy and spawn the initial population"""
        self.rng = np.random.default_rng(self.grid.seed)

        if self.external_policy is not None:
            self.external_policy.clear()
        self.policy = create_policy(
            self.config.policy, self.resource_field, self.rng, self.external_policy
        )

        self.agents = []
        self.culled_last_tick = []
        self._next_agent_id = 0
        for _ in range(self.config.population.n_agents):
            self._spawn_agent()

        self.tick = 0
        self.births_last_tick = 0
        self.deaths_last_tick = 0
        self.population_history = [len(self.agents)]

    def reset_episode(self, reason: str = "manual"):
        """Start a new episode from the configured seed"""
        logger.info(
            f"Episode {self.episode} ended at tick {self.tick} "
            f"({reason}), population={len(self.agents)}"
        )
        self.episode += 1
        if self.config.episode.regenerate_field_on_reset:
            self.resource_field.initialize()
        self._start_episode()

    def _spawn_agent(self, start_cell: Optional[Cell] = None,
                     start_energy: Optional[float] = None) -> Agent:
        agent = Agent.from_config(f"agent_{self._next_agent_id:03d}", self.config.agent)
        self._next_agent_id += 1
        agent.spawn(self.grid, self.rng, start_cell, self.resource_field, start_energy)
        self.agents.append(agent)
        return agent

    # ===================================================================
    # Tick pipeline
    # ===================================================================

    def advance_one_tick(self) -> TickRecord:
        """Run all ten phases of one tick and return its telemetry"""
        reward_cfg = self.config.reward

        # 1. Per-step rewards
        for agent in self.agents:
            agent.reset_step_reward()

        # 2. External bridge: offer observations before anyone moves
        if isinstance(self.policy, ExternalActionPolicy):
            self.policy.request_decisions(self.observations())

        # 3. Harvest, decide, move
        for agent in self.agents:
            self._step_agent(agent)
        if isinstance(self.policy, ExternalActionPolicy):
            dropped = self.policy.discard_pending()
            if dropped:
                logger.debug(f"Discarded {dropped} unclaimed external action(s)")

        # 4. Metabolism
        for agent in self.agents:
            agent.apply_metabolism()

        # 5. Metabolism penalty, charged before culling
        for agent in self.agents:
            penalty = -reward_cfg.metabolism_penalty_scale * agent.metabolism_per_tick
            if agent.is_dead:
                agent.add_final_reward(penalty)
            else:
                agent.add_reward(penalty)

        # 6. Cull
        survivors = []
        culled = []
        for agent in self.agents:
            if agent.is_dead:
                agent.add_final_reward(-reward_cfg.death_penalty)
                culled.append(agent)
            else:
                survivors.append(agent)
        self.agents = survivors
        self.culled_last_tick = culled

        # 7. Reproduction
        births = self._reproduce()

        # 8. Field regrowth
        self.resource_field.regenerate_tick()

        # 9. Bookkeeping
        self.tick += 1
        self.births_last_tick = births
        self.deaths_last_tick = len(culled)
        self.population_history.append(len(self.agents))

        # 10. Episode boundary
        reset_reason = self._termination_reason()

        record = TickRecord(
            episode=self.episode,
            tick=self.tick,
            agent_count=len(self.agents),
            births=births,
            deaths=len(culled),
            mean_energy=self.mean_energy_fraction(),
            total_field_energy=self.resource_field.total_energy(),
            total_reward=float(sum(a.last_reward for a in self.agents)
                               + sum(a.last_reward for a in culled)),
            episode_reset=reset_reason is not None,
        )
        self.last_record = record
        for sink in self.sinks:
            sink.record(record)

        logger.debug(
            f"tick={record.tick} agents={record.agent_count} "
            f"births={record.births} deaths={record.deaths} "
            f"mean_energy={record.mean_energy:.3f}"
        )
        log_every = self.config.run.log_every
        if log_every and self.tick % log_every == 0:
            logger.info(
                f"Episode {self.episode} tick {self.tick}: agents={record.agent_count} "
                f"mean_energy={record.mean_energy:.3f} "
                f"field_energy={record.total_field_energy:.1f}"
            )

        if reset_reason is not None:
            self.reset_episode(reset_reason)

        return record

    def _step_agent(self, agent: Agent):
        """Harvest the current cell, then decide and move"""
        gained = agent.harvest_here()
        agent.gain_energy(gained)
        agent.add_reward(self.config.reward.harvest_reward_scale * gained)

        if self.policy.kind == PolicyKind.CELL:
            target = self.policy.decide(agent.position, agent.candidate_cells())
        else:
            observation = build_observation(agent, self.resource_field)
            action = self.policy.decide_action(observation, agent_id=agent.agent_id)
            target = action_to_cell(self.grid, agent.position, action)

        agent.move(target)

    def _reproduce(self) -> int:
        """Collect energy splits in population order, then spawn births"""
        pop_cfg = self.config.population
        if not pop_cfg.enable_reproduction or len(self.agents) >= pop_cfg.max_agents:
            return 0

        births: List[Tuple[Cell, float]] = []
        for agent in self.agents:
            if len(self.agents) + len(births) >= pop_cfg.max_agents:
                break
            ok, offspring_energy = agent.try_split_for_offspring(
                pop_cfg.reproduce_threshold, pop_cfg.offspring_energy_fraction
            )
            if ok:
                births.append((self.choose_birth_cell(agent.position), offspring_energy))

        for cell, energy in births:
            self._spawn_agent(start_cell=cell, start_energy=energy)

        return len(births)

    def choose_birth_cell(self, center: Cell) -> Cell:
        """Richest of parent cell + in-bounds cardinal neighbors (first seen wins)"""
        chosen = center
        best = float("-inf")
        for cell in self.grid.cardinal_neighborhood(center, include_self=True):
            e = self.resource_field.get_energy(cell)
            if e > best:
                best = e
                chosen = cell
        return chosen

    def _termination_reason(self) -> Optional[str]:
        ep = self.config.episode
        if ep.reset_when_extinct and not self.agents:
            return "extinct"
        if (ep.reset_when_max_ticks and ep.max_ticks_per_episode > 0
                and self.tick >= ep.max_ticks_per_episode):
            return "max_ticks"
        return None

    def run(self, n_ticks: int) -> List[TickRecord]:
        """Advance n_ticks synchronously"""
        return [self.advance_one_tick() for _ in range(n_ticks)]

    # ===================================================================
    # Read-only views
    # ===================================================================

    def observations(self) -> Dict[str, np.ndarray]:
        """Current observation vector for every live agent"""
        return {
            agent.agent_id: build_observation(agent, self.resource_field)
            for agent in self.agents
        }

    def get_agent(self, agent_id: str) -> Optional[Agent]:
        for agent in self.agents:
            if agent.agent_id == agent_id:
                return agent
        return None

    @property
    def agent_count(self) -> int:
        return len(self.agents)

    @property
    def policy_name(self) -> str:
        return getattr(self.policy, "name", type(self.policy).__name__)

    @property
    def is_action_policy(self) -> bool:
        return isinstance(self.policy, ActionPolicy)

    def mean_energy_fraction(self) -> float:
        if not self.agents:
            return 0.0
        return float(np.mean([a.energy_fraction for a in self.agents]))

    def add_sink(self, sink: TelemetrySink):
        self.sinks.append(sink)

    def close_sinks(self):
        for sink in self.sinks:
            sink.close()

    def snapshot(self) -> SimulationSnapshot:
        return SimulationSnapshot(
            episode=self.episode,
            tick=self.tick,
            agent_count=len(self.agents),
            seed=self.grid.seed,
            policy_name=self.policy_name,
            width=self.grid.width,
            height=self.grid.height,
            max_agents=self.config.population.max_agents,
            total_field_energy=self.resource_field.total_energy(),
            config=config_to_dict(self.config),
        )
