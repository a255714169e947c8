# coding: utf-8
"""
PySAT-backed engine (MiniSat 2.2 by default, the solver the portfolio was
first built around).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from pysat.solvers import Solver, SolverNames

from parsat.portfolio.models import Model, Problem, model_from_literals
from parsat.utils.exceptions import ConfigurationError, EngineOutOfMemory
from parsat.utils.types import Verdict

from .base import Engine

logger = logging.getLogger(__name__)


def pysat_solver_names() -> List[str]:
    """All solver names PySAT accepts."""
    names: List[str] = []
    for attr, aliases in vars(SolverNames).items():
        if not attr.startswith("_") and isinstance(aliases, tuple):
            names.extend(aliases)
    return sorted(names)


class PySATEngine(Engine):
    """PySAT solver wrapper."""

    def __init__(self, solver_name: str = "m22", conflict_budget: int = 0):
        if solver_name not in pysat_solver_names():
            raise ConfigurationError(f"unknown PySAT solver: {solver_name}")
        self.name = solver_name
        self.conflict_budget = conflict_budget
        self._solver: Optional[Solver] = None
        self._num_vars = 0

    @property
    def solver(self) -> Solver:
        if self._solver is None:
            raise RuntimeError("no problem loaded")
        return self._solver

    def load_problem(self, problem: Problem) -> None:
        self.close()
        try:
            self._solver = Solver(
                name=self.name, bootstrap_with=[list(c) for c in problem.clauses]
            )
        except MemoryError as exc:
            raise EngineOutOfMemory(f"{self.name}: {exc}") from exc
        self._num_vars = problem.num_vars

    def add_unit_clause(self, literal: int) -> None:
        self.solver.add_clause([literal])
        self._num_vars = max(self._num_vars, abs(literal))

    def simplify(self, assumptions: Sequence[int] = ()) -> bool:
        """Top-level unit propagation."""
        try:
            status, _ = self.solver.propagate(assumptions=list(assumptions))
        except NotImplementedError:
            # e.g. CaDiCaL has no standalone propagation; leave it to search
            return True
        return bool(status)

    def solve(
        self, deadline: Optional[float] = None, assumptions: Sequence[int] = ()
    ) -> Verdict:
        if self.conflict_budget:
            self.solver.conf_budget(self.conflict_budget)
        status = self._run_blocking(
            lambda: self.solver.solve_limited(
                assumptions=list(assumptions), expect_interrupt=True
            ),
            deadline,
        )
        self.solver.clear_interrupt()
        if status is True:
            return Verdict.SAT
        if status is False:
            return Verdict.UNSAT
        return Verdict.UNKNOWN

    def interrupt(self) -> None:
        if self._solver is not None:
            self._solver.interrupt()

    def model(self) -> Model:
        lits = self.solver.get_model()
        if lits is None:
            raise RuntimeError("no model available")
        return model_from_literals(lits, self.variable_count())

    def variable_count(self) -> int:
        return max(self._num_vars, self.solver.nof_vars())

    def statistics(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {
            "variables": self.variable_count(),
            "clauses": self.solver.nof_clauses(),
        }
        stats.update(self.solver.accum_stats() or {})
        return stats

    def close(self) -> None:
        if self._solver is not None:
            self._solver.delete()
            self._solver = None
