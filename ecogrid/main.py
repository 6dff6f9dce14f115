"""
EcoGrid Main Simulation Runner
==============================
Entry point for running EcoGrid simulations.

Provides:
- CLI interface
- Benchmark scenarios
- Real-time pacing and progress display
- Visualization of population and energy curves
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from tqdm import tqdm

from .config import (
    ConfigurationError, PRESETS, PolicyType, SimulationConfig,
    create_default_config, create_preset_config, load_config,
    resolve_policy_type, save_config,
)
from .engine import SimulationEngine
from .telemetry import CsvTelemetrySink, TelemetrySink

logger = logging.getLogger(__name__)

SCENARIOS = ["small", "standard", "large", "sparse", "lush"]


def create_benchmark_config(scenario: str = "standard") -> SimulationConfig:
    """
    Create configuration for benchmark scenarios.

    Args:
        scenario: One of "small", "standard", "large", "sparse", "lush"

    Returns:
        SimulationConfig for the scenario
    """
    if scenario == "small":
        # Small quick test
        config = create_default_config()
        config.grid.width = 16
        config.grid.height = 16
        config.population.n_agents = 4
        config.population.max_agents = 50
        config.episode.max_ticks_per_episode = 500

    elif scenario == "standard":
        config = create_default_config()
        config.population.n_agents = 10

    elif scenario == "large":
        config = create_default_config()
        config.grid.width = 96
        config.grid.height = 96
        config.population.n_agents = 50
        config.population.max_agents = 1000
        config.episode.max_ticks_per_episode = 5000

    elif scenario in ("sparse", "lush"):
        config = create_preset_config(scenario)

    else:
        raise ConfigurationError(
            f"Unknown scenario '{scenario}'. Available: {', '.join(SCENARIOS)}"
        )

    config.scenario_name = scenario
    return config


def run_simulation(
    config: Optional[SimulationConfig] = None,
    n_ticks: int = 1000,
    sinks: Optional[Iterable[TelemetrySink]] = None,
    progress: bool = False,
    ticks_per_second: Optional[float] = None
) -> Dict[str, Any]:
    """
    Run a simulation with the configured built-in policy.

    Args:
        config: Simulation configuration
        n_ticks: Number of ticks to run
        sinks: Extra telemetry sinks, closed by the caller
        progress: Show a tqdm progress bar
        ticks_per_second: Pace the loop in wall-clock time (None = as fast as possible)

    Returns:
        Simulation results dictionary
    """
    if config is None:
        config = create_default_config()

    engine = SimulationEngine(config, sinks=sinks)

    results: Dict[str, List] = {
        "ticks": [],
        "episodes": [],
        "agent_counts": [],
        "births": [],
        "deaths": [],
        "mean_energy": [],
        "field_energy": [],
        "rewards": [],
    }

    interval = 1.0 / ticks_per_second if ticks_per_second else 0.0
    iterator = range(n_ticks)
    if progress:
        iterator = tqdm(iterator, desc="EcoGrid Simulation")

    resets = 0
    start = time.time()
    for step in iterator:
        tick_start = time.time()
        record = engine.advance_one_tick()

        results["ticks"].append(step + 1)
        results["episodes"].append(record.episode)
        results["agent_counts"].append(record.agent_count)
        results["births"].append(record.births)
        results["deaths"].append(record.deaths)
        results["mean_energy"].append(record.mean_energy)
        results["field_energy"].append(record.total_field_energy)
        results["rewards"].append(record.total_reward)
        if record.episode_reset:
            resets += 1

        if interval > 0:
            remaining = interval - (time.time() - tick_start)
            if remaining > 0:
                time.sleep(remaining)

    results["episode_resets"] = resets
    results["total_births"] = sum(results["births"])
    results["total_deaths"] = sum(results["deaths"])
    results["wall_time"] = time.time() - start
    results["final_snapshot"] = engine.snapshot().to_dict()

    return results


def visualize_simulation(results: Dict[str, Any], output_path: Optional[str] = None):
    """
    Create visualization of simulation results.

    Args:
        results: Results from run_simulation
        output_path: Path to save figure (optional)
    """
    import matplotlib
    if output_path:
        matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    fig, axes = plt.subplots(2, 2, figsize=(12, 10))
    ticks = results["ticks"]

    # Population
    axes[0, 0].plot(ticks, results["agent_counts"])
    axes[0, 0].set_xlabel("Tick")
    axes[0, 0].set_ylabel("Agents")
    axes[0, 0].set_title("Population")

    # Births / deaths
    axes[0, 1].plot(ticks, results["births"], label="births")
    axes[0, 1].plot(ticks, results["deaths"], label="deaths")
    axes[0, 1].set_xlabel("Tick")
    axes[0, 1].set_ylabel("Count")
    axes[0, 1].set_title("Births and Deaths")
    axes[0, 1].legend()

    # Agent energy
    axes[1, 0].plot(ticks, results["mean_energy"])
    axes[1, 0].set_xlabel("Tick")
    axes[1, 0].set_ylabel("Mean Energy Fraction")
    axes[1, 0].set_ylim(0, 1)
    axes[1, 0].set_title("Agent Energy")

    # Field
    axes[1, 1].plot(ticks, results["field_energy"])
    axes[1, 1].set_xlabel("Tick")
    axes[1, 1].set_ylabel("Total Field Energy")
    axes[1, 1].set_title("Resource Field")

    plt.tight_layout()

    if output_path:
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        plt.savefig(output_path)
        plt.close(fig)
        print(f"Saved visualization to {output_path}")
    else:
        plt.show()


def print_config_summary(config: SimulationConfig):
    """Print a summary of the configuration"""
    print("\n" + "="*60)
    print("EcoGrid Configuration Summary")
    print("="*60)
    print(f"Scenario: {config.scenario_name}")
    print(f"Grid size: {config.grid.width}x{config.grid.height} (seed {config.grid.seed})")
    print(f"Policy: {config.policy.policy_type.value}")
    print()
    print("Resource field:")
    print(f"  - Max energy/cell: {config.resource.max_energy_per_cell}")
    print(f"  - Initial fill: {config.resource.initial_fill}")
    print(f"  - Noise scale/octaves: {config.resource.noise_scale}/{config.resource.noise_octaves}")
    print(f"  - Regen/tick: {config.resource.regen_per_tick}")
    print()
    print("Population:")
    print(f"  - Initial agents: {config.population.n_agents}")
    print(f"  - Max agents: {config.population.max_agents}")
    print(f"  - Reproduction: {config.population.enable_reproduction} "
          f"(threshold {config.population.reproduce_threshold}, "
          f"fraction {config.population.offspring_energy_fraction})")
    print(f"  - Metabolism/tick: {config.agent.metabolism_per_tick}")
    print(f"  - Harvest/step: {config.agent.harvest_per_step}")
    print()
    print("Episodes:")
    print(f"  - Max ticks/episode: {config.episode.max_ticks_per_episode}")
    print(f"  - Reset on extinction: {config.episode.reset_when_extinct}")
    print("="*60 + "\n")


def _setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="EcoGrid Multi-Agent Ecosystem Simulation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run quick test simulation
  python -m ecogrid.main --scenario small --ticks 500

  # Named preset with a different policy
  python -m ecogrid.main --preset lush --policy richness_linger

  # Watch it at 5 ticks per second and log every tick to CSV
  python -m ecogrid.main --realtime --csv runs/telemetry.csv

  # Load a saved configuration and plot the run
  python -m ecogrid.main --config runs/config.json --output runs/run.png
        """
    )

    parser.add_argument("--scenario", choices=SCENARIOS, default="standard",
                        help="Benchmark scenario")
    parser.add_argument("--preset", choices=sorted(PRESETS),
                        help="Named preset (overrides --scenario)")
    parser.add_argument("--config", type=str,
                        help="JSON configuration file (overrides --scenario/--preset)")
    parser.add_argument("--policy",
                        choices=[p.value for p in PolicyType if p != PolicyType.EXTERNAL],
                        help="Decision policy")

    parser.add_argument("--ticks", type=int, default=1000, help="Simulation ticks")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("--width", type=int, help="Grid width")
    parser.add_argument("--height", type=int, help="Grid height")
    parser.add_argument("--n-agents", type=int, help="Initial number of agents")
    parser.add_argument("--max-agents", type=int, help="Population cap")

    parser.add_argument("--csv", type=str, help="Write per-tick telemetry to CSV")
    parser.add_argument("--output", type=str, help="Output path for the results chart")
    parser.add_argument("--save-config", type=str, help="Save the resolved configuration to JSON")

    parser.add_argument("--realtime", action="store_true",
                        help="Pace ticks in wall-clock time")
    parser.add_argument("--ticks-per-second", type=float,
                        help="Pacing rate for --realtime")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", type=str, help="Also log to this file")

    return parser


def resolve_config(args: argparse.Namespace) -> SimulationConfig:
    """Base configuration from --config/--preset/--scenario plus CLI overrides"""
    if args.config:
        config = load_config(args.config, validate=False)
    elif args.preset:
        config = create_preset_config(args.preset)
    else:
        config = create_benchmark_config(args.scenario)

    if args.seed is not None:
        config.grid.seed = args.seed
    if args.width is not None:
        config.grid.width = args.width
    if args.height is not None:
        config.grid.height = args.height
    if args.n_agents is not None:
        config.population.n_agents = args.n_agents
    if args.max_agents is not None:
        config.population.max_agents = args.max_agents
    if args.policy:
        config.policy.policy_type = resolve_policy_type(args.policy)
    if args.ticks_per_second is not None:
        config.run.ticks_per_second = args.ticks_per_second

    config.validate()
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point"""
    args = build_parser().parse_args(argv)
    _setup_logging(args.log_level, args.log_file)

    try:
        config = resolve_config(args)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    print_config_summary(config)

    if args.save_config:
        path = save_config(config, args.save_config)
        print(f"Saved configuration to {path}")

    sinks: List[TelemetrySink] = []
    if args.csv:
        sinks.append(CsvTelemetrySink(args.csv))

    print("Running simulation...")
    try:
        results = run_simulation(
            config=config,
            n_ticks=args.ticks,
            sinks=sinks,
            progress=not args.realtime,
            ticks_per_second=config.run.ticks_per_second if args.realtime else None,
        )
    finally:
        for sink in sinks:
            sink.close()

    print(f"\nSimulation complete!")
    print(f"Ticks run: {len(results['ticks'])} ({results['wall_time']:.1f}s)")
    print(f"Episode resets: {results['episode_resets']}")
    print(f"Births/deaths: {results['total_births']}/{results['total_deaths']}")
    if results["agent_counts"]:
        print(f"Final agents alive: {results['agent_counts'][-1]}")
        print(f"Final field energy: {results['field_energy'][-1]:.1f}")
    if args.csv:
        print(f"Telemetry written to {args.csv}")

    if args.output:
        visualize_simulation(results, args.output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
