# coding: utf-8
"""
Z3 as a portfolio engine.

Clauses are loaded from integer literals the same way as a plain Boolean
formula; each engine owns its own z3.Context so that interrupt() only stops
this worker's search.
"""
from __future__ import annotations

import time
from typing import Any, Dict, Optional, Sequence

import z3

from parsat.portfolio.models import Model, Problem
from parsat.utils.exceptions import EngineOutOfMemory
from parsat.utils.types import Verdict

from .base import Engine


class Z3Engine(Engine):
    """Z3 SAT engine wrapper."""

    name = "z3"

    def __init__(self, logic: str = "QF_FD", conflict_budget: int = 0):
        # conflict budgets are a PySAT notion; Z3 is bounded by the deadline only
        self.logic = logic
        self.conflict_budget = conflict_budget
        self.ctx = z3.Context()
        self.int2z3var: Dict[int, z3.BoolRef] = {}
        self.solver: Optional[z3.Solver] = None
        self._num_vars = 0

    def get_z3var(self, var: int) -> z3.BoolRef:
        if var not in self.int2z3var:
            self.int2z3var[var] = z3.Bool(f"k!{var}", self.ctx)
            self._num_vars = max(self._num_vars, var)
        return self.int2z3var[var]

    def _lit(self, lit: int) -> z3.BoolRef:
        b = self.get_z3var(abs(lit))
        return z3.Not(b, self.ctx) if lit < 0 else b

    def load_problem(self, problem: Problem) -> None:
        self.solver = z3.SolverFor(self.logic, ctx=self.ctx)
        self._num_vars = problem.num_vars
        try:
            for clause in problem.clauses:
                lits = [self._lit(t) for t in clause]
                self.solver.add(z3.Or(lits) if lits else z3.BoolVal(False, self.ctx))
        except z3.Z3Exception as exc:
            if "memory" in str(exc).lower():
                raise EngineOutOfMemory(str(exc)) from exc
            raise

    def add_unit_clause(self, literal: int) -> None:
        self.solver.add(self._lit(literal))

    def simplify(self, assumptions: Sequence[int] = ()) -> bool:
        """Propagate values over the asserted formula plus the assumptions."""
        goal = z3.Goal(ctx=self.ctx)
        goal.add(*self.solver.assertions())
        for lit in assumptions:
            goal.add(self._lit(lit))
        tactic = z3.Then("simplify", "propagate-values", ctx=self.ctx)
        result = tactic(goal)
        return not all(subgoal.inconsistent() for subgoal in result)

    def solve(
        self, deadline: Optional[float] = None, assumptions: Sequence[int] = ()
    ) -> Verdict:
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return Verdict.UNKNOWN
            self.solver.set("timeout", max(1, int(remaining * 1000)))
        lits = [self._lit(a) for a in assumptions]
        res = self._run_blocking(lambda: self.solver.check(*lits), deadline)
        if res == z3.sat:
            return Verdict.SAT
        if res == z3.unsat:
            return Verdict.UNSAT
        if "memory" in self.solver.reason_unknown().lower():
            raise EngineOutOfMemory(self.solver.reason_unknown())
        return Verdict.UNKNOWN

    def interrupt(self) -> None:
        self.ctx.interrupt()

    def model(self) -> Model:
        m = self.solver.model()
        values = []
        for var in range(1, self.variable_count() + 1):
            if var not in self.int2z3var:
                values.append(None)
                continue
            val = m.eval(self.int2z3var[var], model_completion=False)
            if z3.is_true(val):
                values.append(True)
            elif z3.is_false(val):
                values.append(False)
            else:
                values.append(None)
        return tuple(values)

    def variable_count(self) -> int:
        return self._num_vars

    def statistics(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {"variables": self.variable_count()}
        if self.solver is not None:
            st = self.solver.statistics()
            for key in st.keys():
                stats[key] = st.get_key_value(key)
        return stats

    def close(self) -> None:
        self.solver = None
        self.int2z3var.clear()
