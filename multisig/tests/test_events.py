import logging

import pytest

from multisig.config import MultisigConfig
from multisig.errors import ExecutionFailed, QuorumNotMet, Unauthorized
from multisig.events import (
    ACTION_CONFIRMED,
    ACTION_EXECUTED,
    ACTION_FAILED,
    ACTION_SUBMITTED,
    CONFIRMATION_REVOKED,
    OWNER_ADDED,
    OWNER_REMOVED,
    THRESHOLD_CHANGED,
    EventError,
    EventSink,
)
from multisig.wallet import MultiSigWallet

from . import pass_action

TARGET = "0x00000000000000000000000000000000000000dd"


def test_operation_events_in_order(wallet):
    i = wallet.submit("alice", TARGET, 9, b"\x01")
    wallet.confirm("alice", i)
    wallet.revoke("alice", i)
    wallet.confirm("alice", i)
    wallet.execute("alice", i)

    names = [e.name for e in wallet.events.events()]
    assert names == [
        ACTION_SUBMITTED,
        ACTION_CONFIRMED,
        CONFIRMATION_REVOKED,
        ACTION_CONFIRMED,
        ACTION_EXECUTED,
    ]
    submitted = wallet.events.events(ACTION_SUBMITTED)[0]
    assert submitted.args == {
        "proposer": "alice",
        "index": i,
        "target": TARGET,
        "amount": 9,
        "payload": b"\x01",
    }
    assert wallet.events.events(CONFIRMATION_REVOKED)[0].args == {"caller": "alice", "index": i}
    assert wallet.events.events(ACTION_EXECUTED)[0].args == {"caller": "alice", "index": i}
    assert [e.seq for e in wallet.events.events()] == list(range(5))


def test_rejected_operations_emit_nothing(wallet):
    with pytest.raises(Unauthorized):
        wallet.submit("mallory", TARGET)
    i = wallet.submit("alice", TARGET)
    with pytest.raises(QuorumNotMet):
        wallet.execute("alice", i)
    assert [e.name for e in wallet.events.events()] == [ACTION_SUBMITTED]


def test_governance_events(wallet):
    pass_action(wallet, wallet.propose_add_owner("alice", "bob"))
    pass_action(wallet, wallet.propose_set_threshold("alice", 2))
    pass_action(wallet, wallet.propose_remove_owner("alice", "bob"))

    assert [e.args["identity"] for e in wallet.events.events(OWNER_ADDED)] == ["bob"]
    assert [e.args["identity"] for e in wallet.events.events(OWNER_REMOVED)] == ["bob"]
    # set to 2, then clamped back to 1 on removal
    assert [e.args["threshold"] for e in wallet.events.events(THRESHOLD_CHANGED)] == [2, 1]


def test_failed_execute_emits_action_failed(wallet, dispatcher):
    dispatcher.fail(TARGET)
    i = wallet.submit("alice", TARGET)
    wallet.confirm("alice", i)
    with pytest.raises(ExecutionFailed):
        wallet.execute("alice", i)
    assert wallet.events.events(ACTION_EXECUTED) == ()
    (failed,) = wallet.events.events(ACTION_FAILED)
    assert failed.args["index"] == i
    assert "rejected" in failed.args["error"]


def test_subscriber_receives_events_and_can_unsubscribe(wallet):
    got = []
    unsubscribe = wallet.events.subscribe(got.append)
    wallet.submit("alice", TARGET)
    unsubscribe()
    wallet.submit("alice", TARGET)
    assert [e.args["index"] for e in got] == [0]
    unsubscribe()  # idempotent


def test_observer_failure_does_not_undo_operation(wallet, caplog):
    def bad(ev):
        raise RuntimeError("observer down")

    wallet.events.subscribe(bad)
    with caplog.at_level(logging.ERROR, logger="multisig"):
        i = wallet.submit("alice", TARGET)
    assert wallet.count() == 1
    assert wallet.get_action(i).proposer == "alice"
    assert any("event observer failed" in r.getMessage() for r in caplog.records)


def test_events_can_be_disabled(dispatcher):
    w = MultiSigWallet("alice", dispatcher=dispatcher, config=MultisigConfig(emit_events=False))
    pass_action(w, w.submit("alice", TARGET))
    assert len(w.events) == 0


def test_receipt_encoding():
    sink = EventSink()
    sink.emit("Probe", s="x", b=b"\xab", i=3, z=True, n=None)
    (rec,) = sink.to_receipt()
    assert rec.name == "Probe"
    assert list(rec.args) == [
        {"k": "s", "t": "s", "v": "x"},
        {"k": "b", "t": "b", "v": "0xab"},
        {"k": "i", "t": "i", "v": 3},
        {"k": "z", "t": "z", "v": True},
        {"k": "n", "t": "n", "v": None},
    ]


@pytest.mark.parametrize(
    "name,args",
    [
        ("lowercase", {}),
        ("", {}),
        ("X" * 65, {}),
        ("Ok", {"1bad": 1}),
        ("Ok", {"v": 1.5}),
        ("Ok", {"v": [1, 2]}),
    ],
)
def test_sink_validation(name, args):
    sink = EventSink()
    with pytest.raises(EventError):
        sink.emit(name, **args)
    assert len(sink) == 0
