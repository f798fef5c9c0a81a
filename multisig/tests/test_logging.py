from __future__ import annotations

import io
import json
import logging

import pytest

from multisig import logging as mlog
from multisig.config import MultisigConfig
from multisig.errors import ExecutionFailed, Unauthorized
from multisig.wallet import MultiSigWallet


@pytest.fixture
def json_stream():
    buf = io.StringIO()
    mlog.configure(json=True, level="DEBUG", stream=buf)
    yield buf
    root = logging.getLogger("multisig")
    for h in list(root.handlers):
        root.removeHandler(h)
    root.setLevel(logging.NOTSET)


def _lines(buf: io.StringIO):
    return [json.loads(line) for line in buf.getvalue().splitlines() if line.strip()]


def test_transitions_are_logged_as_json(json_stream):
    w = MultiSigWallet("alice", config=MultisigConfig())
    i = w.submit("alice", "0xabc", 1, b"\x00")
    w.confirm("alice", i)
    w.execute("alice", i)

    recs = _lines(json_stream)
    msgs = [r["msg"] for r in recs]
    assert msgs == ["wallet created", "submitted", "confirmed", "executed"]
    submitted = recs[1]
    assert submitted["level"] == "INFO"
    assert submitted["logger"] == "multisig.queue"
    assert submitted["index"] == i
    assert submitted["caller"] == "alice"
    assert recs[0]["wallet"] == w.address


def test_rejection_logged_at_debug_and_failure_at_warning(json_stream, dispatcher):
    w = MultiSigWallet("alice", dispatcher=dispatcher, config=MultisigConfig())
    with pytest.raises(Unauthorized):
        w.submit("mallory", "0xabc")
    dispatcher.fail("0xabc")
    i = w.submit("alice", "0xabc")
    w.confirm("alice", i)
    with pytest.raises(ExecutionFailed):
        w.execute("alice", i)

    by_msg = {r["msg"]: r for r in _lines(json_stream)}
    assert by_msg["rejected non-owner"]["level"] == "DEBUG"
    assert by_msg["rejected non-owner"]["operation"] == "submit"
    assert by_msg["execution failed"]["level"] == "WARNING"
    assert "rejected" in by_msg["execution failed"]["reason"]


def test_trace_scope_and_bind(json_stream):
    log = mlog.get_logger("multisig.test")
    with mlog.trace_scope("t-123") as tid:
        mlog.bind(component="replay")
        log.info("inside")
        assert mlog.context()["trace_id"] == tid == "t-123"
    log.info("outside")
    inside, outside = _lines(json_stream)
    assert inside["trace_id"] == "t-123"
    assert inside["component"] == "replay"
    assert "trace_id" not in outside
    assert "component" not in outside


def test_with_fields_adapter(json_stream):
    log = mlog.with_fields(mlog.get_logger("multisig.test"), wallet="0xw", index=1)
    log.info("hello", extra={"index": 2, "blob": b"\x01\x02"})
    (rec,) = _lines(json_stream)
    assert rec["wallet"] == "0xw"
    assert rec["index"] == 2  # call-site wins
    assert rec["blob"] == "0x0102"


def test_text_formatter_includes_context_and_extras():
    fmt = mlog.TextFormatter()
    rec = logging.LogRecord("multisig.queue", logging.INFO, __file__, 1, "executed", None, None)
    rec.index = 4
    mlog.bind(wallet="0xw")
    line = fmt.format(rec)
    assert "| INFO  | multisig.queue" in line
    assert "wallet=0xw" in line
    assert "index=4" in line
    assert line.endswith("| executed")


def test_env_selects_format(monkeypatch):
    buf = io.StringIO()
    monkeypatch.setenv(mlog.LOG_FORMAT_ENV, "json")
    mlog.configure(level="INFO", stream=buf)
    try:
        mlog.get_logger("multisig.test").info("x")
        assert json.loads(buf.getvalue())["msg"] == "x"
    finally:
        root = logging.getLogger("multisig")
        for h in list(root.handlers):
            root.removeHandler(h)
        root.setLevel(logging.NOTSET)


def test_non_terminal_stream_defaults_to_json():
    buf = io.StringIO()
    mlog.configure(level="INFO", stream=buf)
    try:
        mlog.get_logger("multisig.test").info("plain")
        assert json.loads(buf.getvalue())["msg"] == "plain"
    finally:
        root = logging.getLogger("multisig")
        for h in list(root.handlers):
            root.removeHandler(h)
        root.setLevel(logging.NOTSET)


def test_file_logging(tmp_path):
    path = tmp_path / "logs" / "multisig.jsonl"
    mlog.configure_from_config(MultisigConfig(log_format="text", log_file=str(path)))
    try:
        mlog.get_logger("multisig.test").warning("to file", extra={"k": 1})
        for h in logging.getLogger("multisig").handlers:
            h.flush()
        rec = json.loads(path.read_text(encoding="utf-8").splitlines()[-1])
        assert rec["msg"] == "to file"
        assert rec["k"] == 1
    finally:
        root = logging.getLogger("multisig")
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        root.setLevel(logging.NOTSET)
