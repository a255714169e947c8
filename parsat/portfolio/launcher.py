# coding: utf-8
"""Start the process group, run one worker per rank, and shut the group down."""

from __future__ import annotations

import dataclasses
import logging
import multiprocessing as mp
import signal
import sys
from typing import List, Optional

from parsat.engine.base import load_engine
from parsat.engine.dimacs import ProblemSource
from parsat.utils.exceptions import ConfigurationError
from parsat.utils.logs import configure_logging

from .channel import Channel, MPIChannel, QueueGroup, finalize_mpi
from .coordinator import PROTOCOL_TAG, Coordinator
from .diversifier import default_seed_variables, generate_all
from .interrupts import InterruptRegistry
from .limits import limit_memory, limit_time
from .models import AssumptionSet, PortfolioConfig, WorkerResult
from .reporter import report
from .worker import Worker

logger = logging.getLogger(__name__)

# Seconds to wait for stragglers once the collector is done
JOIN_GRACE = 5.0
# Barrier wait of a collector that already gave up on some contributor
BARRIER_GRACE = 5.0

STDIN = "-"


def prepare(config: PortfolioConfig) -> List[AssumptionSet]:
    """Validate the configuration and compute every worker's cube.

    Runs before any worker starts; a ConfigurationError here means no
    process is launched and nothing is written.
    """
    config.validate()
    seeds = config.seed_variables or default_seed_variables(config.num_workers)
    assumption_sets = generate_all(seeds, config.num_workers)
    with load_engine(config.engine, config.conflict_budget)():
        pass
    return assumption_sets


def run_rank(
    channel: Channel,
    config: PortfolioConfig,
    source: ProblemSource,
    assumptions: AssumptionSet,
) -> int:
    """Body of every worker process; returns the process exit code.

    The collector returns the aggregate verdict code, contributors their
    local one.
    """
    limit_time(config.cpu_limit)
    limit_memory(config.mem_limit)
    timeout = config.effective_receive_timeout

    with InterruptRegistry() as interrupts:
        try:
            worker = Worker(channel.rank, assumptions, config, interrupts=interrupts)
            result = worker.solve(source)
        except Exception as exc:  # pylint: disable=broad-except
            # the collector expects exactly one message from every rank
            logger.exception("worker %d: failed before reporting: %s", channel.rank, exc)
            result = WorkerResult.unknown(channel.rank, error=str(exc))
        coordinator = Coordinator(channel, timeout)

        if not coordinator.is_collector:
            coordinator.contribute(result)
            if not channel.barrier(timeout=timeout * channel.size):
                logger.warning("worker %d: collector never finished", channel.rank)
                # an unfinished barrier must not reach finalization
                channel.abort(result.verdict.exit_code)
            return result.verdict.exit_code

        aggregate = coordinator.collect(result)
        try:
            report(aggregate, config.result_path)
        finally:
            print(aggregate.verdict.banner)
            sys.stdout.flush()
            grace = BARRIER_GRACE if coordinator.timed_out else timeout
            if not channel.barrier(timeout=grace, drain_tag=PROTOCOL_TAG):
                logger.warning(
                    "collector: contributors %s never finished", coordinator.timed_out
                )
                # the artifact is written; stragglers must not hold up finalization
                channel.abort(aggregate.verdict.exit_code)
        return aggregate.verdict.exit_code


# ------------------------------ local processes ------------------------------ #


def _rank_main(
    channel: Channel,
    config: PortfolioConfig,
    source: ProblemSource,
    assumptions: AssumptionSet,
) -> None:
    configure_logging(config.verbosity)
    try:
        code = run_rank(channel, config, source, assumptions)
    except Exception as exc:  # pylint: disable=broad-except
        logger.error("worker %d: %s", channel.rank, exc)
        print(f"Error: {exc}", file=sys.stderr)
        code = 1
    sys.exit(code)


def run_local(config: PortfolioConfig, source: ProblemSource) -> int:
    """Run the portfolio as W local processes; returns the collector's exit code."""
    assumption_sets = prepare(config)
    if source == STDIN:
        # read once, hand every worker its own copy
        source = sys.stdin.buffer.read()

    ctx = mp.get_context()
    group = QueueGroup(config.num_workers, ctx)
    procs = [
        ctx.Process(
            target=_rank_main,
            args=(group.channel(rank), config, source, assumption_sets[rank]),
            name=f"parsat-worker-{rank}",
        )
        for rank in range(config.num_workers)
    ]
    for p in procs:
        p.start()

    try:
        previous = signal.signal(signal.SIGINT, signal.SIG_IGN)
    except ValueError:
        previous = None
    try:
        collector = procs[config.collector_id]
        collector.join()
        for p in procs:
            p.join(timeout=JOIN_GRACE)
            if p.is_alive():
                logger.warning("terminating %s", p.name)
                p.terminate()
                p.join()
    finally:
        if previous is not None:
            signal.signal(signal.SIGINT, previous)

    code = collector.exitcode
    if code is None or code < 0:
        logger.error("collector exited abnormally (%s)", code)
        return 0
    return code


# ------------------------------ MPI world ------------------------------ #


def run_mpi(config: PortfolioConfig, source: ProblemSource) -> int:
    """Run this process as one rank of an MPI job (started with mpiexec)."""
    channel = MPIChannel()
    try:
        if source == STDIN:
            raise ConfigurationError(
                "MPI ranks cannot share standard input; pass a file path"
            )
        if config.num_workers not in (None, channel.size):
            raise ConfigurationError(
                f"{config.num_workers} workers requested but the MPI world has "
                f"{channel.size} ranks"
            )
        config = dataclasses.replace(config, num_workers=channel.size)
        assumption_sets = prepare(config)
        return run_rank(channel, config, source, assumption_sets[channel.rank])
    finally:
        finalize_mpi()


def run(config: PortfolioConfig, source: ProblemSource) -> int:
    if config.launcher == "mpi":
        return run_mpi(config, source)
    return run_local(config, source)


__all__ = ["prepare", "run", "run_local", "run_mpi", "run_rank"]
