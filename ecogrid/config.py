"""
EcoGrid Simulator Configuration
================================
Configuration dataclasses for the grid, resource field, agents, policies,
population dynamics, reward shaping and episode limits.

All values are plain numbers/booleans. `SimulationConfig.validate()` is the
single gate between a loaded configuration and a running engine: anything
it rejects is fatal at startup.
"""

from dataclasses import dataclass, field, asdict, fields, is_dataclass
from typing import Any, Dict, Optional
from enum import Enum
from pathlib import Path
import json


class ConfigurationError(ValueError):
    """Raised when a static configuration cannot be run."""
    pass


class PolicyType(Enum):
    """Decision policies selectable for a run"""
    EPSILON_GREEDY = "epsilon_greedy"
    RICHNESS_LINGER = "richness_linger"
    OBSERVATION_GREEDY = "observation_greedy"
    EXTERNAL = "external"


@dataclass
class GridConfig:
    """Grid coordinate system configuration"""
    width: int = 32  # cells along x
    height: int = 32  # cells along y
    cell_size: float = 1.0  # world units per cell
    seed: int = 12345  # master seed for agents and field


@dataclass
class FieldConfig:
    """Resource field configuration"""
    max_energy_per_cell: float = 10.0
    initial_fill: float = 0.6  # average fullness [0, 1]
    noise_scale: float = 0.25  # larger = more variation per cell
    noise_octaves: int = 1
    noise_persistence: float = 0.5  # amplitude decay per octave
    regen_per_tick: float = 0.05

    # Field noise is decorrelated from the agent random stream
    noise_seed_offset: int = 1000


@dataclass
class AgentConfig:
    """Per-agent energy parameters"""
    max_energy: float = 10.0
    start_energy: float = 5.0
    metabolism_per_tick: float = 0.2
    harvest_per_step: float = 0.4


@dataclass
class PolicyConfig:
    """Decision policy configuration"""
    policy_type: PolicyType = PolicyType.EPSILON_GREEDY

    # Epsilon-greedy
    exploit_prob: float = 0.85  # chance to pick the richest candidate

    # Richness-linger
    explore_prob: float = 0.10  # chance to pick a random candidate anyway
    linger_threshold_frac: float = 0.6  # stay if cell >= frac * max cell energy
    tie_epsilon: float = 1e-6


@dataclass
class PopulationConfig:
    """Initial population and reproduction"""
    n_agents: int = 1
    enable_reproduction: bool = True
    reproduce_threshold: float = 8.0
    offspring_energy_fraction: float = 0.4
    max_agents: int = 200


@dataclass
class RewardConfig:
    """Reward shaping"""
    harvest_reward_scale: float = 1.0  # reward per unit of energy harvested
    metabolism_penalty_scale: float = 1.0  # reward -= scale * metabolism_per_tick
    death_penalty: float = 1.0  # one-time penalty applied before culling


@dataclass
class EpisodeConfig:
    """Episode boundaries"""
    max_ticks_per_episode: int = 2000  # 0 disables the cap
    reset_when_max_ticks: bool = True
    reset_when_extinct: bool = True
    regenerate_field_on_reset: bool = False


@dataclass
class RunConfig:
    """Run pacing and logging. Never read by the tick pipeline."""
    ticks_per_second: float = 5.0
    log_every: int = 100  # ticks between INFO summaries, 0 disables


@dataclass
class SimulationConfig:
    """Master configuration combining all subsystems"""
    grid: GridConfig = field(default_factory=GridConfig)
    resource: FieldConfig = field(default_factory=FieldConfig)
    agent: AgentConfig = field(default_factory=AgentConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    population: PopulationConfig = field(default_factory=PopulationConfig)
    reward: RewardConfig = field(default_factory=RewardConfig)
    episode: EpisodeConfig = field(default_factory=EpisodeConfig)
    run: RunConfig = field(default_factory=RunConfig)

    scenario_name: str = "default"

    def validate(self) -> bool:
        """Validate configuration consistency, raising ConfigurationError"""
        _require(self.grid.width >= 2, f"Grid width must be >= 2, got {self.grid.width}")
        _require(self.grid.height >= 2, f"Grid height must be >= 2, got {self.grid.height}")
        _require(self.grid.cell_size > 0, f"Cell size must be positive, got {self.grid.cell_size}")

        res = self.resource
        _require(res.max_energy_per_cell > 0, "max_energy_per_cell must be positive")
        _require_fraction(res.initial_fill, "initial_fill")
        _require(res.noise_scale > 0, "noise_scale must be positive")
        _require(res.noise_octaves >= 1, "noise_octaves must be >= 1")
        _require_fraction(res.noise_persistence, "noise_persistence")
        _require(res.regen_per_tick >= 0, "regen_per_tick must be non-negative")

        agent = self.agent
        _require(agent.max_energy > 0, "Agent max_energy must be positive")
        _require(agent.start_energy >= 0, "Agent start_energy must be non-negative")
        _require(agent.metabolism_per_tick >= 0, "metabolism_per_tick must be non-negative")
        _require(agent.harvest_per_step >= 0, "harvest_per_step must be non-negative")

        pol = self.policy
        _require(isinstance(pol.policy_type, PolicyType), f"Unknown policy type: {pol.policy_type!r}")
        _require_fraction(pol.exploit_prob, "exploit_prob")
        _require_fraction(pol.explore_prob, "explore_prob")
        _require_fraction(pol.linger_threshold_frac, "linger_threshold_frac")
        _require(pol.tie_epsilon >= 0, "tie_epsilon must be non-negative")

        pop = self.population
        _require(pop.n_agents >= 0, "n_agents must be non-negative")
        _require(pop.max_agents >= 1, "max_agents must be >= 1")
        _require(pop.n_agents <= pop.max_agents,
                 f"n_agents ({pop.n_agents}) exceeds max_agents ({pop.max_agents})")
        _require(pop.reproduce_threshold > 0, "reproduce_threshold must be positive")
        _require(0 < pop.offspring_energy_fraction <= 1,
                 "offspring_energy_fraction must be in (0, 1]")

        _require(self.reward.death_penalty >= 0, "death_penalty must be non-negative")
        _require(self.episode.max_ticks_per_episode >= 0, "max_ticks_per_episode must be non-negative")
        _require(self.run.ticks_per_second > 0, "ticks_per_second must be positive")
        _require(self.run.log_every >= 0, "log_every must be non-negative")

        return True


def _require(condition: bool, message: str):
    if not condition:
        raise ConfigurationError(message)


def _require_fraction(value: float, name: str):
    _require(0.0 <= value <= 1.0, f"{name} must be in [0, 1], got {value}")


# =============================================================================
# FACTORIES & PRESETS
# =============================================================================

def create_default_config() -> SimulationConfig:
    """Create default configuration"""
    return SimulationConfig()


def create_small_test_config() -> SimulationConfig:
    """Create small configuration for testing"""
    config = SimulationConfig()
    config.grid.width = 10
    config.grid.height = 10
    config.population.n_agents = 4
    config.population.max_agents = 20
    config.episode.max_ticks_per_episode = 200
    config.scenario_name = "small_test"
    return config


# Preset overrides, one dict per section
PRESETS: Dict[str, Dict[str, Dict[str, Any]]] = {
    "default": {},
    "sparse": {
        "resource": {"max_energy_per_cell": 1.0, "initial_fill": 0.5,
                     "noise_scale": 10.0, "regen_per_tick": 0.01},
        "population": {"n_agents": 1},
    },
    "lush": {
        "resource": {"initial_fill": 0.9, "noise_octaves": 3, "regen_per_tick": 0.1},
        "population": {"n_agents": 10},
    },
    "crowded": {
        "grid": {"width": 48, "height": 48},
        "population": {"n_agents": 60, "max_agents": 400},
    },
    "linger": {
        "policy": {"policy_type": PolicyType.RICHNESS_LINGER},
        "population": {"n_agents": 10},
    },
    "greedy_obs": {
        "policy": {"policy_type": PolicyType.OBSERVATION_GREEDY},
        "population": {"n_agents": 10},
    },
}


def create_preset_config(name: str) -> SimulationConfig:
    """Create a configuration from a named preset"""
    if name not in PRESETS:
        raise ConfigurationError(
            f"Unknown preset '{name}'. Available: {', '.join(sorted(PRESETS))}"
        )
    config = create_default_config()
    for section, overrides in PRESETS[name].items():
        target = getattr(config, section)
        for key, value in overrides.items():
            setattr(target, key, value)
    config.scenario_name = name
    return config


# =============================================================================
# SERIALIZATION
# =============================================================================

def config_to_dict(config: SimulationConfig) -> Dict[str, Any]:
    """Convert a configuration to a JSON-compatible dict"""
    data = asdict(config)
    data["policy"]["policy_type"] = config.policy.policy_type.value
    return data


def config_from_dict(data: Dict[str, Any]) -> SimulationConfig:
    """
    Build a configuration from a (possibly partial) dict.

    Missing keys keep their defaults; unknown keys are rejected.
    """
    config = SimulationConfig()
    known = {f.name for f in fields(config)}

    for key, value in data.items():
        if key not in known:
            raise ConfigurationError(f"Unknown configuration section: '{key}'")

        current = getattr(config, key)
        if not is_dataclass(current):
            setattr(config, key, value)
            continue

        if not isinstance(value, dict):
            raise ConfigurationError(f"Section '{key}' must be a mapping")

        section_fields = {f.name for f in fields(current)}
        for sub_key, sub_value in value.items():
            if sub_key not in section_fields:
                raise ConfigurationError(f"Unknown key '{key}.{sub_key}'")
            if key == "policy" and sub_key == "policy_type":
                sub_value = _parse_policy_type(sub_value)
            setattr(current, sub_key, sub_value)

    return config


def _parse_policy_type(value: Any) -> PolicyType:
    if isinstance(value, PolicyType):
        return value
    try:
        return PolicyType(value)
    except ValueError:
        raise ConfigurationError(
            f"Unknown policy type '{value}'. "
            f"Available: {', '.join(p.value for p in PolicyType)}"
        ) from None


def save_config(config: SimulationConfig, path: str) -> Path:
    """Dump configuration to JSON"""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, 'w') as f:
        json.dump(config_to_dict(config), f, indent=2)
    return out


def load_config(path: str, validate: bool = True) -> SimulationConfig:
    """Load a configuration from JSON"""
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Top level of {config_path} must be a mapping")

    config = config_from_dict(data)
    if validate:
        config.validate()
    return config


def resolve_policy_type(name: Optional[str]) -> Optional[PolicyType]:
    """Map a CLI policy name to PolicyType (None passes through)"""
    if name is None:
        return None
    return _parse_policy_type(name)
