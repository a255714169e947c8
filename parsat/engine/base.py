# coding: utf-8
"""Engine abstraction: the narrow interface the portfolio needs from a SAT solver."""

from __future__ import annotations

import functools
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Sequence

from parsat.portfolio.models import Model, Problem
from parsat.utils.exceptions import EngineOutOfMemory
from parsat.utils.types import Verdict

logger = logging.getLogger(__name__)

# Granularity of the wait loop around a blocking engine call
POLL_INTERVAL = 0.05


class Engine(ABC):
    """One solver instance, owned by exactly one worker.

    Engines are context managers so that their native resources are
    released on every exit path.
    """

    name = "engine"

    @abstractmethod
    def load_problem(self, problem: Problem) -> None:
        """Load the clauses of the problem into a fresh solver."""

    @abstractmethod
    def add_unit_clause(self, literal: int) -> None:
        """Permanently assert one literal."""

    @abstractmethod
    def simplify(self, assumptions: Sequence[int] = ()) -> bool:
        """Preprocess; False means unsatisfiability was already proven."""

    @abstractmethod
    def solve(
        self, deadline: Optional[float] = None, assumptions: Sequence[int] = ()
    ) -> Verdict:
        """Bounded search; deadline is a time.monotonic() instant."""

    @abstractmethod
    def interrupt(self) -> None:
        """Ask a running search to stop; safe to call from another thread."""

    @abstractmethod
    def model(self) -> Model:
        """Model of the last satisfiable search."""

    @abstractmethod
    def variable_count(self) -> int:
        """Number of variables known to the solver."""

    def statistics(self) -> Dict[str, Any]:
        return {}

    def close(self) -> None:
        """Release resources (optional)."""

    def __enter__(self) -> "Engine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -------------------------- helpers for subclasses ------------------------- #

    def _run_blocking(
        self, fn: Callable[[], Any], deadline: Optional[float] = None
    ) -> Any:
        """Run a blocking native call in a helper thread.

        The calling (main) thread keeps waiting in short joins so that Python
        signal handlers still run and can reach interrupt(); once the deadline
        passes the engine is interrupted and the call is awaited.
        """
        outcome: Dict[str, Any] = {}

        def _target() -> None:
            try:
                outcome["value"] = fn()
            except MemoryError as exc:
                outcome["error"] = EngineOutOfMemory(f"{self.name}: {exc}")
            except Exception as exc:  # pylint: disable=broad-except
                outcome["error"] = exc

        thread = threading.Thread(target=_target, name=f"{self.name}-search", daemon=True)
        thread.start()
        interrupted = False
        while thread.is_alive():
            thread.join(POLL_INTERVAL)
            if (
                not interrupted
                and deadline is not None
                and time.monotonic() >= deadline
            ):
                logger.debug("%s: deadline reached, interrupting", self.name)
                self.interrupt()
                interrupted = True
        if "error" in outcome:
            raise outcome["error"]
        return outcome.get("value")


def load_engine(name: str, conflict_budget: int = 0) -> Callable[[], Engine]:
    """Return a zero-argument factory for the named engine.

    "z3" selects the Z3 engine; every other name is passed to PySAT
    (m22, g3, g4, cd, mc, ...).
    """
    if name == "z3":
        from .z3_engine import Z3Engine  # pylint: disable=import-outside-toplevel

        return functools.partial(Z3Engine, conflict_budget=conflict_budget)
    from .pysat_engine import PySATEngine  # pylint: disable=import-outside-toplevel

    return functools.partial(
        PySATEngine, solver_name=name, conflict_budget=conflict_budget
    )
