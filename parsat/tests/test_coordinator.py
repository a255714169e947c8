import itertools

import pytest

from parsat.portfolio.coordinator import (
    PROTOCOL_TAG,
    Coordinator,
    decode_result,
    encode_result,
    resolve,
)
from parsat.portfolio.models import WorkerResult
from parsat.tests import FakeChannel
from parsat.utils.exceptions import ChannelPayloadError
from parsat.utils.types import Verdict


def _sat(worker_id, model=(True, False)):
    return WorkerResult(worker_id, Verdict.SAT, tuple(model))


def _unsat(worker_id):
    return WorkerResult(worker_id, Verdict.UNSAT)


def _unknown(worker_id):
    return WorkerResult(worker_id, Verdict.UNKNOWN)


# --- resolution ---

def test_sat_wins_in_any_order():
    results = [_unknown(0), _unsat(1), _sat(2, (False, True)), _sat(3, (True, True))]
    for perm in itertools.permutations(results):
        agg = resolve(perm)
        assert agg.verdict is Verdict.SAT
        assert agg.worker_id == 2
        assert agg.model == (False, True)


def test_all_unsat_is_unsat():
    agg = resolve([_unsat(i) for i in range(4)])
    assert agg.verdict is Verdict.UNSAT
    assert agg.model is None


def test_unsat_beats_unknown():
    assert resolve([_unknown(0), _unsat(1), _unknown(2)]).verdict is Verdict.UNSAT


def test_all_unknown_is_unknown():
    agg = resolve([_unknown(i) for i in range(3)])
    assert agg.verdict is Verdict.UNKNOWN
    assert agg.worker_id is None


# --- protocol ---

def test_collector_receives_in_ascending_order():
    ch = FakeChannel(rank=3, size=4)
    for src in (2, 0, 1):
        ch.deliver(src, PROTOCOL_TAG, encode_result(_unsat(src)))
    agg = Coordinator(ch, receive_timeout=0.1).collect(_sat(3))
    assert ch.recv_order == [0, 1, 2]
    assert agg.verdict is Verdict.SAT
    assert agg.worker_id == 3


def test_lowest_id_model_is_reported():
    ch = FakeChannel(rank=2, size=3)
    ch.deliver(0, PROTOCOL_TAG, encode_result(_unsat(0)))
    ch.deliver(1, PROTOCOL_TAG, encode_result(_sat(1, (True, None, False))))
    agg = Coordinator(ch, receive_timeout=0.1).collect(_sat(2, (True, True, True)))
    assert agg.worker_id == 1
    assert agg.model == (True, None, False)


def test_timed_out_slot_counts_as_unknown():
    ch = FakeChannel(rank=2, size=3)
    ch.deliver(0, PROTOCOL_TAG, encode_result(_unknown(0)))
    coordinator = Coordinator(ch, receive_timeout=0.1)
    agg = coordinator.collect(_unknown(2))
    assert agg.verdict is Verdict.UNKNOWN
    assert coordinator.timed_out == [1]


def test_malformed_payload_is_not_coerced():
    ch = FakeChannel(rank=1, size=2)
    ch.deliver(0, PROTOCOL_TAG, {"sender": 0, "verdict": 10})
    agg = Coordinator(ch, receive_timeout=0.1).collect(_unsat(1))
    assert agg.verdict is Verdict.UNSAT


def test_other_tags_are_not_mistaken_for_verdicts():
    ch = FakeChannel(rank=1, size=2)
    ch.deliver(0, PROTOCOL_TAG + 1, encode_result(_sat(0)))
    agg = Coordinator(ch, receive_timeout=0.1).collect(_unknown(1))
    assert agg.verdict is Verdict.UNKNOWN


def test_contributor_sends_exactly_once():
    ch = FakeChannel(rank=0, size=3)
    coordinator = Coordinator(ch, receive_timeout=0.1)
    coordinator.contribute(_unsat(0))
    assert ch.sent == [(2, PROTOCOL_TAG, {"sender": 0, "verdict": 20})]
    with pytest.raises(RuntimeError):
        coordinator.contribute(_unsat(0))


def test_roles_are_enforced():
    with pytest.raises(RuntimeError):
        Coordinator(FakeChannel(rank=1, size=2), 0.1).contribute(_unsat(1))
    with pytest.raises(RuntimeError):
        Coordinator(FakeChannel(rank=0, size=2), 0.1).collect(_unsat(0))


def test_single_worker_collects_only_itself():
    ch = FakeChannel(rank=0, size=1)
    agg = Coordinator(ch, receive_timeout=0.1).collect(_unsat(0))
    assert agg.verdict is Verdict.UNSAT
    assert ch.recv_order == []


# --- payload validation ---

def test_sat_payload_carries_only_assigned_literals():
    payload = encode_result(_sat(4, (True, None, False)))
    assert payload == {"sender": 4, "verdict": 10, "num_vars": 3, "model": [1, -3]}
    decoded = decode_result(payload, 4)
    assert decoded.model == (True, None, False)


@pytest.mark.parametrize(
    "payload",
    [
        None,
        [0, 10],
        {"sender": 1, "verdict": 20},
        {"sender": 0, "verdict": 11},
        {"sender": 0, "verdict": "10"},
        {"sender": 0, "verdict": True},
        {"sender": 0, "verdict": 20, "model": [1], "num_vars": 1},
        {"sender": 0, "verdict": 10, "num_vars": 2, "model": [1, 3]},
        {"sender": 0, "verdict": 10, "num_vars": 2, "model": [1, -1]},
        {"sender": 0, "verdict": 10, "num_vars": 2, "model": [1, 0]},
        {"sender": 0, "verdict": 10, "num_vars": 2, "model": "1 2"},
        {"sender": 0, "verdict": 0, "extra": 1},
    ],
)
def test_off_protocol_payloads_are_rejected(payload):
    with pytest.raises(ChannelPayloadError):
        decode_result(payload, 0)
