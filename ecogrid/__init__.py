"""
EcoGrid Simulator
=================
A discrete-time, grid-based multi-agent ecosystem simulation.

Agents forage a renewable, noise-generated energy field, pay a metabolic
cost each tick, reproduce by splitting their energy, and die when it runs
out. Decisions come from built-in stochastic policies or from an external
controller through the observation/action codec.

Modules:
--------
- config: Configuration dataclasses, presets and JSON loading
- grid: Integer cell coordinates and neighborhoods
- resource_field: Per-cell energy field with Perlin initialization
- agent: Agent energy lifecycle and reward accounting
- observation: Observation vector and discrete action decoding
- policy: Cell and action policies, external action bridge
- engine: Deterministic ten-phase tick pipeline
- telemetry: Per-tick records, in-memory and CSV sinks
- environment: Gymnasium wrapper driven by external actions
- main: CLI and simulation runner

Example Usage:
--------------
>>> from ecogrid import create_default_config, SimulationEngine
>>> engine = SimulationEngine(create_default_config())
>>> record = engine.advance_one_tick()
>>> record.agent_count
1

Gymnasium:
----------
>>> from ecogrid import EcoGridEnv, create_small_test_config
>>> env = EcoGridEnv(create_small_test_config())
>>> obs, info = env.reset(seed=7)
>>> obs, rewards, terminated, truncated, info = env.step(
...     {agent_id: env.action_space.sample() for agent_id in obs})
"""

__version__ = "1.0.0"
__author__ = "EcoGrid Research Team"

# Configuration
from .config import (
    SimulationConfig,
    GridConfig,
    FieldConfig,
    AgentConfig,
    PolicyConfig,
    PopulationConfig,
    RewardConfig,
    EpisodeConfig,
    RunConfig,
    PolicyType,
    ConfigurationError,
    create_default_config,
    create_small_test_config,
    create_preset_config,
    load_config,
    save_config,
)

# Core model
from .grid import Grid
from .resource_field import ResourceField, perlin_noise
from .agent import Agent
from .observation import (
    Action,
    OBSERVATION_SIZE,
    ACTION_SIZE,
    build_observation,
    action_to_cell,
)
from .policy import (
    CellPolicy,
    ActionPolicy,
    EpsilonGreedyEnergyPolicy,
    RichnessLingerPolicy,
    GreedyObservationPolicy,
    ExternalActionPolicy,
    create_policy,
)

# Engine and telemetry
from .engine import SimulationEngine
from .telemetry import (
    TickRecord,
    SimulationSnapshot,
    TelemetryHistory,
    CsvTelemetrySink,
)

# Gymnasium environment
from .environment import EcoGridEnv

# Main runner utilities
from .main import (
    run_simulation,
    create_benchmark_config,
    visualize_simulation,
    print_config_summary,
)

__all__ = [
    # Version
    "__version__",

    # Configuration
    "SimulationConfig",
    "GridConfig",
    "FieldConfig",
    "AgentConfig",
    "PolicyConfig",
    "PopulationConfig",
    "RewardConfig",
    "EpisodeConfig",
    "RunConfig",
    "PolicyType",
    "ConfigurationError",
    "create_default_config",
    "create_small_test_config",
    "create_preset_config",
    "load_config",
    "save_config",

    # Core model
    "Grid",
    "ResourceField",
    "perlin_noise",
    "Agent",
    "Action",
    "OBSERVATION_SIZE",
    "ACTION_SIZE",
    "build_observation",
    "action_to_cell",

    # Policies
    "CellPolicy",
    "ActionPolicy",
    "EpsilonGreedyEnergyPolicy",
    "RichnessLingerPolicy",
    "GreedyObservationPolicy",
    "ExternalActionPolicy",
    "create_policy",

    # Engine
    "SimulationEngine",
    "TickRecord",
    "SimulationSnapshot",
    "TelemetryHistory",
    "CsvTelemetrySink",

    # Environment
    "EcoGridEnv",

    # Runner
    "run_simulation",
    "create_benchmark_config",
    "visualize_simulation",
    "print_config_summary",
]
