# coding: utf-8
"""
Aggregation protocol.

Workers 0..W-2 are contributors: each sends its WorkerResult to the
collector (worker W-1) exactly once. The collector solves its own cube
first, then receives once from every contributor in ascending id order,
scoped by sender and PROTOCOL_TAG, and resolves

    SAT > UNSAT > UNKNOWN

taking the model from the lowest-id satisfiable result. A slot that times
out or carries an invalid payload counts as UNKNOWN.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from parsat.utils.exceptions import ChannelPayloadError, ChannelTimeout
from parsat.utils.types import Verdict

from .channel import Channel
from .models import AggregateVerdict, WorkerResult, model_from_literals, model_to_literals

logger = logging.getLogger(__name__)

# Tag of verdict messages; nothing else in the group uses it
PROTOCOL_TAG = 0x5A7


# ------------------------------ Wire payload ------------------------------ #


def encode_result(result: WorkerResult) -> Dict[str, Any]:
    """Plain-data message for one WorkerResult; the model travels only for SAT."""
    payload: Dict[str, Any] = {
        "sender": result.worker_id,
        "verdict": result.verdict.value,
    }
    if result.verdict is Verdict.SAT and result.model is not None:
        payload["num_vars"] = len(result.model)
        payload["model"] = model_to_literals(result.model)
    return payload


def decode_result(payload: Any, expected_sender: int) -> WorkerResult:
    """Validate a received payload; ChannelPayloadError on anything off-protocol."""
    if not isinstance(payload, dict):
        raise ChannelPayloadError(f"payload is not a mapping: {type(payload).__name__}")
    sender = payload.get("sender")
    if sender != expected_sender or isinstance(sender, bool):
        raise ChannelPayloadError(
            f"payload from rank {expected_sender} claims sender {sender!r}"
        )
    code = payload.get("verdict")
    if isinstance(code, bool) or not isinstance(code, int):
        raise ChannelPayloadError(f"verdict code is not an integer: {code!r}")
    try:
        verdict = Verdict.from_code(code)
    except ValueError as exc:
        raise ChannelPayloadError(f"unknown verdict code {code}") from exc

    extra = set(payload) - {"sender", "verdict", "num_vars", "model"}
    if extra:
        raise ChannelPayloadError(f"unexpected payload fields {sorted(extra)}")

    if verdict is not Verdict.SAT:
        if "model" in payload or "num_vars" in payload:
            raise ChannelPayloadError(f"{verdict.name} payload carries a model")
        return WorkerResult(worker_id=sender, verdict=verdict)

    num_vars = payload.get("num_vars")
    literals = payload.get("model")
    if isinstance(num_vars, bool) or not isinstance(num_vars, int) or num_vars < 0:
        raise ChannelPayloadError(f"invalid model size {num_vars!r}")
    if not isinstance(literals, list):
        raise ChannelPayloadError("SAT payload without a model")
    seen = set()
    for lit in literals:
        if isinstance(lit, bool) or not isinstance(lit, int) or lit == 0:
            raise ChannelPayloadError(f"invalid model literal {lit!r}")
        if abs(lit) > num_vars:
            raise ChannelPayloadError(f"model literal {lit} exceeds {num_vars} variables")
        if abs(lit) in seen:
            raise ChannelPayloadError(f"variable {abs(lit)} assigned twice")
        seen.add(abs(lit))
    return WorkerResult(
        worker_id=sender,
        verdict=verdict,
        model=model_from_literals(literals, num_vars),
    )


# ------------------------------ Resolution ------------------------------ #


def resolve(results: Iterable[WorkerResult]) -> AggregateVerdict:
    """Order-independent merge of all local verdicts."""
    results = list(results)
    sat = [r for r in results if r.verdict is Verdict.SAT]
    if sat:
        winner = min(sat, key=lambda r: r.worker_id)
        return AggregateVerdict(Verdict.SAT, winner.model, winner.worker_id)
    unsat = [r for r in results if r.verdict is Verdict.UNSAT]
    if unsat:
        return AggregateVerdict(
            Verdict.UNSAT, None, min(r.worker_id for r in unsat)
        )
    return AggregateVerdict(Verdict.UNKNOWN)


# ------------------------------ Coordinator ------------------------------ #


class Coordinator:
    """One instance of the aggregation protocol per process."""

    def __init__(self, channel: Channel, receive_timeout: Optional[float]) -> None:
        self.channel = channel
        self.receive_timeout = receive_timeout
        self._sent = False
        self._collected = False
        # contributors whose receive expired; they may still be running
        self.timed_out: List[int] = []

    @property
    def collector_id(self) -> int:
        return self.channel.size - 1

    @property
    def is_collector(self) -> bool:
        return self.channel.rank == self.collector_id

    def contribute(self, result: WorkerResult) -> None:
        """Send this contributor's result to the collector, once."""
        if self.is_collector:
            raise RuntimeError("the collector does not contribute")
        if self._sent:
            raise RuntimeError(f"worker {self.channel.rank} already sent its result")
        self._sent = True
        logger.debug(
            "worker %d: sending %s to collector %d",
            self.channel.rank,
            result.verdict.name,
            self.collector_id,
        )
        self.channel.send(self.collector_id, PROTOCOL_TAG, encode_result(result))

    def receive_from(self, source: int) -> WorkerResult:
        """One scoped, bounded receive; failures degrade to UNKNOWN."""
        try:
            payload = self.channel.recv(source, PROTOCOL_TAG, self.receive_timeout)
            result = decode_result(payload, source)
        except ChannelTimeout as exc:
            logger.warning("collector: worker %d timed out: %s", source, exc)
            self.timed_out.append(source)
            return WorkerResult.unknown(source, error="timeout")
        except ChannelPayloadError as exc:
            logger.warning("collector: rejected payload from worker %d: %s", source, exc)
            return WorkerResult.unknown(source, error="payload")
        logger.info("collector: worker %d reported %s", source, result.verdict.banner)
        return result

    def collect(self, own_result: WorkerResult) -> AggregateVerdict:
        """Receive from every contributor in ascending id order, then resolve."""
        if not self.is_collector:
            raise RuntimeError("only the collector aggregates")
        if self._collected:
            raise RuntimeError("results were already collected")
        self._collected = True
        results: List[WorkerResult] = [own_result]
        for source in range(self.collector_id):
            results.append(self.receive_from(source))
        aggregate = resolve(results)
        logger.info(
            "collector: aggregate %s (worker %s)",
            aggregate.verdict.banner,
            aggregate.worker_id,
        )
        return aggregate
