"""
Pytest configuration and shared fixtures for EcoGrid tests.
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests"""
    return np.random.default_rng(42)


@pytest.fixture
def grid():
    """10x10 grid"""
    from ecogrid.grid import Grid
    return Grid(width=10, height=10, cell_size=1.0, seed=12345)


@pytest.fixture
def field_config():
    """Default field configuration"""
    from ecogrid.config import FieldConfig
    return FieldConfig()


@pytest.fixture
def resource_field(grid, field_config):
    """Noise-initialized field on the 10x10 grid"""
    from ecogrid.resource_field import ResourceField
    return ResourceField(grid, field_config)


@pytest.fixture
def empty_field(grid, field_config):
    """Field with every cell at zero energy"""
    from ecogrid.resource_field import ResourceField
    field = ResourceField(grid, field_config)
    field.energy[:] = 0.0
    return field


@pytest.fixture
def agent_config():
    """Default agent configuration"""
    from ecogrid.config import AgentConfig
    return AgentConfig()


@pytest.fixture
def agent(grid, rng, empty_field, agent_config):
    """Agent spawned at (5, 5) on an empty field"""
    from ecogrid.agent import Agent
    a = Agent.from_config("agent_000", agent_config)
    a.spawn(grid, rng, start_cell=(5, 5), resource_field=empty_field)
    return a


@pytest.fixture
def simulation_config():
    """Default simulation configuration"""
    from ecogrid.config import SimulationConfig
    return SimulationConfig()


@pytest.fixture
def small_config():
    """Small configuration for fast engine tests"""
    from ecogrid.config import create_small_test_config
    return create_small_test_config()


@pytest.fixture
def engine(small_config):
    """Engine on the small test configuration"""
    from ecogrid.engine import SimulationEngine
    return SimulationEngine(small_config)
