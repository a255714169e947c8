# coding: utf-8
"""Route termination signals to the engines of the workers in this process."""

from __future__ import annotations

import logging
import os
import signal
import sys
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional

from parsat.engine.base import Engine

logger = logging.getLogger(__name__)

# Signals that ask for a graceful stop; a second one forces an exit
ESCALATING_SIGNALS = (signal.SIGINT, signal.SIGTERM)
# CPU-limit notifications repeat every second past the soft limit, so they
# only ever interrupt
CPU_LIMIT_SIGNAL = getattr(signal, "SIGXCPU", None)


class InterruptRegistry:
    """
    Process-wide table of running engines, keyed by worker id.

    install() must be called from the main thread before solving and
    uninstall() after it; both are explicit so that nothing relies on a
    global solver pointer. The first interrupt asks every registered engine
    to stop (or is remembered until an engine registers); a second one while
    shutdown is in progress exits immediately without cleanup.
    """

    def __init__(self, exit_fn: Callable[[int], None] = os._exit) -> None:
        self._engines: Dict[int, Engine] = {}
        self._previous: Dict[int, object] = {}
        self._exit = exit_fn
        self.shutting_down = False
        self.pending = False

    # -------------------------- lifecycle ------------------------- #

    def install(self) -> None:
        sigs = list(ESCALATING_SIGNALS)
        if CPU_LIMIT_SIGNAL is not None:
            sigs.append(CPU_LIMIT_SIGNAL)
        for sig in sigs:
            try:
                self._previous[sig] = signal.signal(sig, self.handle)
            except ValueError:
                # not the main thread of the main interpreter
                logger.debug("cannot install handler for signal %d", sig)

    def uninstall(self) -> None:
        for sig, previous in self._previous.items():
            try:
                signal.signal(sig, previous)
            except (ValueError, TypeError):
                logger.debug("cannot restore handler for signal %d", sig)
        self._previous.clear()
        self._engines.clear()

    def __enter__(self) -> "InterruptRegistry":
        self.install()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.uninstall()

    # -------------------------- engines ------------------------- #

    def register(self, worker_id: int, engine: Engine) -> None:
        self._engines[worker_id] = engine
        if self.pending:
            engine.interrupt()

    def unregister(self, worker_id: int) -> None:
        self._engines.pop(worker_id, None)

    @contextmanager
    def watching(self, worker_id: int, engine: Engine) -> Iterator[Engine]:
        self.register(worker_id, engine)
        try:
            yield engine
        finally:
            self.unregister(worker_id)

    @property
    def interrupted(self) -> bool:
        return self.pending or self.shutting_down

    # -------------------------- signal handler ------------------------- #

    def handle(self, signum: int, _frame: Optional[object] = None) -> None:
        escalates = signum != CPU_LIMIT_SIGNAL
        if self.shutting_down and escalates:
            print()
            print("*** INTERRUPTED ***")
            sys.stdout.flush()
            self._exit(1)
            return
        self.shutting_down = True
        logger.warning("received signal %d, interrupting search", signum)
        if not self._engines:
            self.pending = True
        for engine in list(self._engines.values()):
            engine.interrupt()
