# coding: utf-8
"""Data models for the portfolio coordination layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from parsat.utils.exceptions import ConfigurationError
from parsat.utils.types import Verdict

# Signed DIMACS literals forced on one worker before solving
AssumptionSet = Tuple[int, ...]
# Entry i-1 is the value of variable i; None means unassigned
Model = Tuple[Optional[bool], ...]

ASSUMPTION_MODES = ("permanent", "incremental")
LAUNCHERS = ("local", "mpi")

DEFAULT_RECEIVE_TIMEOUT = 3600.0
RECEIVE_TIMEOUT_GRACE = 60.0


# ------------------------------ Data classes ------------------------------ #


@dataclass(frozen=True)
class Problem:
    """An immutable CNF formula over variables 1..num_vars."""

    num_vars: int
    clauses: Tuple[Tuple[int, ...], ...]

    @property
    def num_clauses(self) -> int:
        return len(self.clauses)

    def is_satisfied_by(self, model: Model) -> bool:
        """Check every clause against a (possibly partial) model."""
        for clause in self.clauses:
            if not any(_literal_true(lit, model) for lit in clause):
                return False
        return True


def _literal_true(lit: int, model: Model) -> bool:
    var = abs(lit)
    if var > len(model) or model[var - 1] is None:
        return False
    return model[var - 1] == (lit > 0)


def model_from_literals(literals: List[int], num_vars: int) -> Model:
    """Build a Model from signed literals; variables not mentioned stay unassigned."""
    values: List[Optional[bool]] = [None] * num_vars
    for lit in literals:
        var = abs(lit)
        if var > num_vars:
            values.extend([None] * (var - num_vars))
            num_vars = var
        values[var - 1] = lit > 0
    return tuple(values)


def model_to_literals(model: Model) -> List[int]:
    """Signed literals of the assigned variables, in increasing variable order."""
    return [
        (i + 1) if value else -(i + 1)
        for i, value in enumerate(model)
        if value is not None
    ]


@dataclass(frozen=True)
class WorkerResult:
    """Local verdict of one worker, sent exactly once to the collector."""

    worker_id: int
    verdict: Verdict
    model: Optional[Model] = None
    # engine counters for diagnostics; never transmitted
    stats: Dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if self.verdict is not Verdict.SAT and self.model is not None:
            raise ValueError("only a satisfiable result may carry a model")

    @classmethod
    def unknown(cls, worker_id: int, **stats: Any) -> "WorkerResult":
        return cls(worker_id=worker_id, verdict=Verdict.UNKNOWN, stats=dict(stats))


@dataclass(frozen=True)
class AggregateVerdict:
    """Portfolio answer computed once by the collector."""

    verdict: Verdict
    model: Optional[Model] = None
    worker_id: Optional[int] = None


@dataclass
class PortfolioConfig:  # pylint: disable=too-many-instance-attributes
    """Configuration for one portfolio run."""

    num_workers: Optional[int] = 4  # None under MPI: the world size
    seed_variables: Optional[List[int]] = None  # default: 1..ceil(log2 W)
    engine: str = "m22"  # MiniSat 2.2 in PySAT; "z3" selects Z3
    assumption_mode: str = "permanent"  # permanent | incremental
    cpu_limit: int = 0  # seconds, 0 = unlimited
    mem_limit: int = 0  # megabytes, 0 = unlimited
    conflict_budget: int = 0  # 0 = unlimited
    receive_timeout: Optional[float] = None  # default: cpu_limit + grace, or 1h
    strict: bool = False
    verbosity: int = 1
    result_path: Optional[str] = None
    worker_output_dir: Optional[str] = None
    launcher: str = "local"  # local | mpi

    def validate(self) -> None:
        """Reject settings that cannot start a portfolio."""
        if self.num_workers is None or self.num_workers < 1:
            raise ConfigurationError(
                f"worker count must be positive, got {self.num_workers}"
            )
        if self.assumption_mode not in ASSUMPTION_MODES:
            raise ConfigurationError(
                f"unknown assumption mode {self.assumption_mode!r}"
            )
        if self.launcher not in LAUNCHERS:
            raise ConfigurationError(f"unknown launcher {self.launcher!r}")
        if self.verbosity not in (0, 1, 2):
            raise ConfigurationError("verbosity must be 0, 1 or 2")
        for name in ("cpu_limit", "mem_limit", "conflict_budget"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must not be negative")
        if self.receive_timeout is not None and self.receive_timeout <= 0:
            raise ConfigurationError("receive timeout must be positive")

    @property
    def effective_receive_timeout(self) -> float:
        if self.receive_timeout is not None:
            return self.receive_timeout
        if self.cpu_limit:
            return self.cpu_limit + RECEIVE_TIMEOUT_GRACE
        return DEFAULT_RECEIVE_TIMEOUT

    @property
    def collector_id(self) -> int:
        return self.num_workers - 1
