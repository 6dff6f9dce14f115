"""
EcoGrid Telemetry
=================
Read-only reporting from the engine to external observers.

- TickRecord: per-tick aggregate (population, births, deaths, energy)
- TelemetrySink: anything with record()/close()
- TelemetryHistory: in-memory sink for analysis and plotting
- CsvTelemetrySink: one CSV row per tick
- SimulationSnapshot: configuration + aggregate state for export

Sinks only observe; recording never changes simulation state.
"""

import csv
from collections import deque
from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import Any, Deque, Dict, Optional, Protocol

import numpy as np


@dataclass(frozen=True)
class TickRecord:
    """Aggregate state after one tick"""
    episode: int
    tick: int
    agent_count: int
    births: int
    deaths: int
    mean_energy: float  # mean body energy fraction of live agents
    total_field_energy: float
    total_reward: float  # sum of last_reward over live and culled agents
    episode_reset: bool = False  # an episode boundary followed this tick

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SimulationSnapshot:
    """Configuration and aggregate state, for external serialization"""
    episode: int
    tick: int
    agent_count: int
    seed: int
    policy_name: str
    width: int
    height: int
    max_agents: int
    total_field_energy: float
    config: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class TelemetrySink(Protocol):
    """Consumer of per-tick records"""

    def record(self, record: TickRecord) -> None:
        ...

    def close(self) -> None:
        ...


class TelemetryHistory:
    """Keeps records in memory, the most recent `max_records` when bounded"""

    def __init__(self, max_records: Optional[int] = None):
        self.max_records = max_records
        self.records: Deque[TickRecord] = deque(maxlen=max_records)

    def record(self, record: TickRecord) -> None:
        self.records.append(record)

    def close(self) -> None:
        pass

    def clear(self):
        self.records.clear()

    def __len__(self) -> int:
        return len(self.records)

    def as_arrays(self) -> Dict[str, np.ndarray]:
        """Column-wise numpy arrays, one per TickRecord field"""
        return {
            f.name: np.array([getattr(r, f.name) for r in self.records])
            for f in fields(TickRecord)
        }


class CsvTelemetrySink:
    """
    Writes one CSV row per tick.

    Usage:
        with CsvTelemetrySink("runs/run.csv") as sink:
            engine.add_sink(sink)
            engine.run(1000)
    """

    COLUMNS = [f.name for f in fields(TickRecord)]

    def __init__(self, path: str, flush_every: int = 60):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.flush_every = max(1, flush_every)
        self._counter = 0
        self._file = open(self.path, 'w', newline='')
        self._writer = csv.writer(self._file)
        self._writer.writerow(self.COLUMNS)
        self._file.flush()

    @property
    def closed(self) -> bool:
        return self._file is None

    def record(self, record: TickRecord) -> None:
        if self._file is None:
            return
        row = record.to_dict()
        self._writer.writerow([_format(row[c]) for c in self.COLUMNS])
        self._counter += 1
        if self._counter % self.flush_every == 0:
            self._file.flush()

    def close(self) -> None:
        if self._file is not None:
            self._file.flush()
            self._file.close()
            self._file = None

    def __enter__(self) -> 'CsvTelemetrySink':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def _format(value: Any) -> Any:
    if isinstance(value, float):
        return f"{value:.6f}"
    if isinstance(value, bool):
        return int(value)
    return value
