# coding: utf-8
"""Shared helpers for the parsat test-suite."""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from parsat.engine.base import Engine
from parsat.portfolio.channel import Channel
from parsat.portfolio.models import Model, Problem
from parsat.utils.exceptions import ChannelTimeout
from parsat.utils.types import Verdict

# (x1 v x2): satisfiable in every cube over {x1, x2} except (-1, -2)
SCENARIO_CNF = "c two-variable scenario\np cnf 2 1\n1 2 0\n"


class FakeEngine(Engine):
    """Scriptable engine that records the calls the worker makes."""

    name = "fake"

    def __init__(
        self,
        simplify_result: bool = True,
        verdict: Verdict = Verdict.SAT,
        model: Optional[Model] = None,
        solve_error: Optional[BaseException] = None,
    ) -> None:
        self.simplify_result = simplify_result
        self.verdict = verdict
        self._model = model
        self.solve_error = solve_error
        self.calls: List[Tuple[str, Any]] = []
        self.interrupted = 0
        self.closed = False
        self.problem: Optional[Problem] = None

    def load_problem(self, problem: Problem) -> None:
        self.problem = problem
        self.calls.append(("load", problem.num_vars))

    def add_unit_clause(self, literal: int) -> None:
        self.calls.append(("unit", literal))

    def simplify(self, assumptions: Sequence[int] = ()) -> bool:
        self.calls.append(("simplify", tuple(assumptions)))
        return self.simplify_result

    def solve(self, deadline=None, assumptions: Sequence[int] = ()) -> Verdict:
        self.calls.append(("solve", tuple(assumptions)))
        if self.solve_error is not None:
            raise self.solve_error
        return self.verdict

    def interrupt(self) -> None:
        self.interrupted += 1

    def model(self) -> Model:
        return self._model

    def variable_count(self) -> int:
        return self.problem.num_vars if self.problem else 0

    def statistics(self) -> Dict[str, Any]:
        return {"conflicts": 0}

    def close(self) -> None:
        self.closed = True


class FakeChannel(Channel):
    """In-memory channel for one rank; inbound messages are queued up front."""

    def __init__(self, rank: int, size: int) -> None:
        self.rank = rank
        self.size = size
        self.inbound: Dict[Tuple[int, int], List[Any]] = {}
        self.sent: List[Tuple[int, int, Any]] = []
        self.recv_order: List[int] = []
        self.barrier_result = True
        self.aborted: List[int] = []

    def deliver(self, source: int, tag: int, payload: Any) -> None:
        self.inbound.setdefault((source, tag), []).append(payload)

    def send(self, dest: int, tag: int, payload: Any) -> None:
        self.sent.append((dest, tag, payload))

    def recv(self, source: int, tag: int, timeout: Optional[float]) -> Any:
        self.recv_order.append(source)
        pending = self.inbound.get((source, tag))
        if not pending:
            raise ChannelTimeout(f"nothing from {source}")
        return pending.pop(0)

    def barrier(self, timeout=None, drain_tag=None) -> bool:
        return self.barrier_result

    def abort(self, code: int) -> None:
        self.aborted.append(code)
