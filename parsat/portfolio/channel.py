# coding: utf-8
"""
Point-to-point transport between the workers of one portfolio run.

Two backends share the Channel interface:
- QueueChannel: a local group of processes started by multiprocessing, one
  inbox queue per rank;
- MPIChannel: an MPI world (mpi4py) started with mpiexec, one process per rank.

Receives are always scoped to an expected sender and tag and bounded by a
timeout, so a silent peer cannot block the receiver forever.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
import pickle
import queue
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple

from parsat.utils.exceptions import (
    BackendNotAvailable,
    ChannelPayloadError,
    ChannelTimeout,
)

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.01


class Channel(ABC):
    """Rank-addressable messaging endpoint of one worker."""

    rank: int
    size: int

    @abstractmethod
    def send(self, dest: int, tag: int, payload: Any) -> None:
        """Blocking send of one message."""

    @abstractmethod
    def recv(self, source: int, tag: int, timeout: Optional[float]) -> Any:
        """Receive the next message from source with tag; ChannelTimeout on expiry."""

    @abstractmethod
    def barrier(self, timeout: Optional[float] = None, drain_tag: Optional[int] = None) -> bool:
        """Wait for every rank; False if the timeout expired first.

        Messages with drain_tag that arrive while waiting are discarded.
        """

    def abort(self, code: int) -> None:
        """Tear the whole group down (used after a failed barrier)."""

    def close(self) -> None:
        """Release the endpoint (optional)."""


# ------------------------------ local group ------------------------------ #


class QueueChannel(Channel):
    """Channel over multiprocessing queues; picklable into child processes."""

    def __init__(self, rank: int, inboxes: List[Any], barrier: Any) -> None:
        self.rank = rank
        self.size = len(inboxes)
        self._inboxes = inboxes
        self._barrier = barrier
        # messages received while waiting for another (source, tag)
        self._stash: List[Tuple[int, int, Any]] = []

    def send(self, dest: int, tag: int, payload: Any) -> None:
        self._inboxes[dest].put((self.rank, tag, payload))

    def recv(self, source: int, tag: int, timeout: Optional[float]) -> Any:
        for i, (src, t, payload) in enumerate(self._stash):
            if src == source and t == tag:
                del self._stash[i]
                return payload

        deadline = None if timeout is None else time.monotonic() + timeout
        inbox = self._inboxes[self.rank]
        while True:
            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                raise ChannelTimeout(
                    f"rank {self.rank}: no message from rank {source} within {timeout}s"
                )
            try:
                msg = inbox.get(timeout=remaining)
            except queue.Empty as exc:
                raise ChannelTimeout(
                    f"rank {self.rank}: no message from rank {source} within {timeout}s"
                ) from exc
            if not (isinstance(msg, tuple) and len(msg) == 3):
                logger.warning("rank %d: dropping malformed envelope %r", self.rank, msg)
                continue
            if msg[0] == source and msg[1] == tag:
                return msg[2]
            self._stash.append(msg)

    def barrier(self, timeout: Optional[float] = None, drain_tag: Optional[int] = None) -> bool:
        try:
            self._barrier.wait(timeout)
        except threading.BrokenBarrierError:
            logger.warning("rank %d: barrier timed out", self.rank)
            return False
        return True


class QueueGroup:
    """A local, rank-addressable group of `size` endpoints."""

    def __init__(self, size: int, ctx: Optional[Any] = None) -> None:
        ctx = ctx or mp.get_context()
        self.size = size
        self.inboxes = [ctx.Queue() for _ in range(size)]
        self.barrier = ctx.Barrier(size)

    def channel(self, rank: int) -> QueueChannel:
        return QueueChannel(rank, self.inboxes, self.barrier)


# ------------------------------ MPI world ------------------------------ #


def _require_mpi():
    try:
        import mpi4py  # pylint: disable=import-outside-toplevel
    except ImportError as exc:
        raise BackendNotAvailable(
            "MPI launcher requires mpi4py; install with `pip install parsat[mpi]`."
        ) from exc
    return mpi4py


def init_mpi():
    """Explicitly initialise MPI before any worker starts parsing."""
    mpi4py = _require_mpi()
    mpi4py.rc.initialize = False
    mpi4py.rc.finalize = False
    from mpi4py import MPI  # pylint: disable=import-outside-toplevel

    if not MPI.Is_initialized():
        MPI.Init()
    return MPI


def finalize_mpi() -> None:
    from mpi4py import MPI  # pylint: disable=import-outside-toplevel

    if MPI.Is_initialized() and not MPI.Is_finalized():
        MPI.Finalize()


class MPIChannel(Channel):
    """Channel over an MPI communicator (COMM_WORLD by default)."""

    def __init__(self, comm: Optional[Any] = None) -> None:
        mpi = init_mpi()
        self._mpi = mpi
        self.comm = comm if comm is not None else mpi.COMM_WORLD
        self.rank = self.comm.Get_rank()
        self.size = self.comm.Get_size()

    def send(self, dest: int, tag: int, payload: Any) -> None:
        self.comm.send(payload, dest=dest, tag=tag)

    def recv(self, source: int, tag: int, timeout: Optional[float]) -> Any:
        deadline = None if timeout is None else time.monotonic() + timeout
        while not self.comm.Iprobe(source=source, tag=tag):
            if deadline is not None and time.monotonic() >= deadline:
                raise ChannelTimeout(
                    f"rank {self.rank}: no message from rank {source} within {timeout}s"
                )
            time.sleep(POLL_INTERVAL)
        try:
            return self.comm.recv(source=source, tag=tag)
        except (pickle.UnpicklingError, EOFError, AttributeError, ImportError) as exc:
            raise ChannelPayloadError(
                f"rank {self.rank}: undecodable message from rank {source}: {exc}"
            ) from exc

    def barrier(self, timeout: Optional[float] = None, drain_tag: Optional[int] = None) -> bool:
        deadline = None if timeout is None else time.monotonic() + timeout
        req = self.comm.Ibarrier()
        while not req.Test():
            if drain_tag is not None:
                status = self._mpi.Status()
                while self.comm.Iprobe(
                    source=self._mpi.ANY_SOURCE, tag=drain_tag, status=status
                ):
                    self.comm.recv(source=status.Get_source(), tag=drain_tag)
                    logger.info(
                        "rank %d: discarded late message from rank %d",
                        self.rank,
                        status.Get_source(),
                    )
            if deadline is not None and time.monotonic() >= deadline:
                logger.warning("rank %d: barrier timed out", self.rank)
                return False
            time.sleep(POLL_INTERVAL)
        return True

    def abort(self, code: int) -> None:
        self.comm.Abort(code)
