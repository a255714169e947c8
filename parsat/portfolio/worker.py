# coding: utf-8
"""One local solve: load, assert the worker's cube, simplify, bounded search."""

from __future__ import annotations

import logging
import os
import time
from typing import Callable, Optional

from parsat.engine.base import Engine, load_engine
from parsat.engine.dimacs import ProblemSource, load_dimacs
from parsat.utils.exceptions import EngineOutOfMemory, ParseError
from parsat.utils.types import Verdict

from .interrupts import InterruptRegistry
from .models import (
    AggregateVerdict,
    AssumptionSet,
    Model,
    PortfolioConfig,
    Problem,
    WorkerResult,
)
from .reporter import format_result

logger = logging.getLogger(__name__)


class Worker:  # pylint: disable=too-few-public-methods
    """Runs the external engine on the shared problem restricted to one cube.

    solve() always returns exactly one WorkerResult; local failures (bad
    input, out of memory, engine errors, interrupts) become UNKNOWN so that
    the collector's fixed-count receive loop can complete.
    """

    def __init__(
        self,
        worker_id: int,
        assumptions: AssumptionSet,
        config: PortfolioConfig,
        engine_factory: Optional[Callable[[], Engine]] = None,
        interrupts: Optional[InterruptRegistry] = None,
    ) -> None:
        self.worker_id = worker_id
        self.assumptions = tuple(assumptions)
        self.cfg = config
        self.engine_factory = engine_factory or load_engine(
            config.engine, config.conflict_budget
        )
        self.interrupts = interrupts or InterruptRegistry()

    def solve(self, source: ProblemSource) -> WorkerResult:
        start = time.monotonic()
        deadline = start + self.cfg.cpu_limit if self.cfg.cpu_limit else None

        try:
            problem = load_dimacs(source, strict=self.cfg.strict)
        except ParseError as exc:
            logger.error("worker %d: parse error: %s", self.worker_id, exc)
            return self._finish(WorkerResult.unknown(self.worker_id, error=str(exc)))

        logger.info(
            "worker %d | variables: %d | clauses: %d | parse time: %.2f s",
            self.worker_id,
            problem.num_vars,
            problem.num_clauses,
            time.monotonic() - start,
        )
        logger.debug("worker %d: assumptions %s", self.worker_id, list(self.assumptions))

        try:
            with self.engine_factory() as engine, self.interrupts.watching(
                self.worker_id, engine
            ):
                result = self._solve_loaded(engine, problem, deadline)
        except (EngineOutOfMemory, MemoryError) as exc:
            logger.warning("worker %d: out of memory: %s", self.worker_id, exc)
            result = WorkerResult.unknown(self.worker_id, error="out of memory")
        except Exception as exc:  # pylint: disable=broad-except
            # any engine failure still has to reach the collector as a result
            logger.exception("worker %d: engine failed: %s", self.worker_id, exc)
            result = WorkerResult.unknown(self.worker_id, error=str(exc))

        logger.info(
            "worker %d: %s in %.2f s",
            self.worker_id,
            result.verdict.banner,
            time.monotonic() - start,
        )
        return self._finish(result)

    def _solve_loaded(
        self, engine: Engine, problem: Problem, deadline: Optional[float]
    ) -> WorkerResult:
        engine.load_problem(problem)
        outside = [lit for lit in self.assumptions if abs(lit) > problem.num_vars]
        if outside:
            logger.warning(
                "worker %d: seed literals %s are outside the problem's %d variables",
                self.worker_id,
                outside,
                problem.num_vars,
            )
        if self.cfg.assumption_mode == "incremental":
            pending = self.assumptions
        else:
            for lit in self.assumptions:
                engine.add_unit_clause(lit)
            pending = ()

        if not engine.simplify(pending):
            logger.info("worker %d: solved by unit propagation", self.worker_id)
            return WorkerResult(
                self.worker_id, Verdict.UNSAT, stats=engine.statistics()
            )

        if self.interrupts.interrupted:
            return WorkerResult.unknown(self.worker_id, error="interrupted")

        verdict = engine.solve(deadline, pending)
        model = (
            _align_model(engine.model(), problem.num_vars)
            if verdict is Verdict.SAT
            else None
        )
        stats = engine.statistics()
        if self.interrupts.interrupted and verdict is Verdict.UNKNOWN:
            stats["error"] = "interrupted"
        for key, value in sorted(stats.items()):
            logger.info("worker %d | %-12s: %s", self.worker_id, key, value)
        return WorkerResult(self.worker_id, verdict, model, stats)

    def _finish(self, result: WorkerResult) -> WorkerResult:
        """Optionally keep a worker-local copy of the result; never the shared artifact."""
        if self.cfg.worker_output_dir:
            path = os.path.join(
                self.cfg.worker_output_dir, f"worker-{self.worker_id}.out"
            )
            local = AggregateVerdict(result.verdict, result.model, result.worker_id)
            try:
                with open(path, "w", encoding="utf-8") as f:
                    f.write(format_result(local))
            except OSError as exc:
                logger.warning("worker %d: could not write %s: %s", self.worker_id, path, exc)
        return result


def _align_model(model: Model, num_vars: int) -> Model:
    """Restrict a model to variables 1..num_vars of the problem.

    Seed variables beyond the problem are fresh variables of the engine only;
    their values do not belong in the reported model.
    """
    model = tuple(model[:num_vars])
    return model + (None,) * (num_vars - len(model))
