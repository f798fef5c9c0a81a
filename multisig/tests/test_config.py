from __future__ import annotations

import json

import pytest

from multisig import config as mcfg
from multisig.config import MultisigConfig, from_env, from_file, load_config, reload_config
from multisig.errors import ConfigError, ExecutionFailed, OwnerLimitReached
from multisig.wallet import MultiSigWallet

from . import add_owners


def test_defaults():
    cfg = load_config()
    assert cfg == MultisigConfig()
    assert cfg.as_dict() == {
        "log_level": "INFO",
        "log_format": "auto",
        "log_file": None,
        "max_owners": 0,
        "max_payload_bytes": 0,
        "emit_events": True,
    }


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("MULTISIG_LOG_LEVEL", "debug")
    monkeypatch.setenv("MULTISIG_MAX_OWNERS", "5")
    monkeypatch.setenv("MULTISIG_MAX_PAYLOAD_BYTES", "0x400")
    monkeypatch.setenv("MULTISIG_EMIT_EVENTS", "off")
    cfg = reload_config()
    assert cfg.log_level == "DEBUG"
    assert cfg.max_owners == 5
    assert cfg.max_payload_bytes == 1024
    assert cfg.emit_events is False


def test_load_config_is_cached(monkeypatch):
    first = load_config()
    monkeypatch.setenv("MULTISIG_MAX_OWNERS", "3")
    assert load_config() is first
    assert reload_config().max_owners == 3


def test_bad_env_int(monkeypatch):
    monkeypatch.setenv("MULTISIG_MAX_OWNERS", "lots")
    with pytest.raises(ConfigError):
        from_env()


@pytest.mark.parametrize(
    "kw",
    [
        {"log_level": "LOUD"},
        {"log_format": "xml"},
        {"max_owners": -1},
        {"max_payload_bytes": -1},
    ],
)
def test_validate_rejects(kw):
    with pytest.raises(ConfigError):
        MultisigConfig(**kw).validate()


def test_yaml_file_then_env(tmp_path, monkeypatch):
    p = tmp_path / "multisig.yaml"
    p.write_text("multisig:\n  max_owners: 4\n  log_format: json\n", encoding="utf-8")
    monkeypatch.setenv(mcfg.CONFIG_FILE_ENV, str(p))
    monkeypatch.setenv("MULTISIG_MAX_OWNERS", "6")
    cfg = reload_config()
    assert cfg.log_format == "json"
    assert cfg.max_owners == 6  # env wins over file


def test_json_file(tmp_path):
    p = tmp_path / "cfg.json"
    p.write_text(json.dumps({"emit_events": False, "max_payload_bytes": 64}), encoding="utf-8")
    cfg = from_file(p)
    assert cfg.emit_events is False
    assert cfg.max_payload_bytes == 64


@pytest.mark.parametrize("raw,expected", [("false", False), ("off", False), ("True", True), (0, False)])
def test_file_emit_events_parses_strings(tmp_path, raw, expected):
    p = tmp_path / "cfg.json"
    p.write_text(json.dumps({"emit_events": raw}), encoding="utf-8")
    assert from_file(p).emit_events is expected


@pytest.mark.parametrize(
    "name,text",
    [
        ("unknown.json", '{"colour": "blue"}'),
        ("badtype.json", '{"max_owners": "3"}'),
        ("broken.yaml", "max_owners: [1,\n"),
        ("list.yaml", "- 1\n- 2\n"),
    ],
)
def test_bad_files(tmp_path, name, text):
    p = tmp_path / name
    p.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        from_file(p)


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        from_file(tmp_path / "nope.yaml")


def test_wallet_picks_up_loaded_config(monkeypatch):
    monkeypatch.setenv("MULTISIG_MAX_OWNERS", "2")
    reload_config()
    w = MultiSigWallet("alice")
    assert w.config.max_owners == 2
    add_owners(w, ["bob"])
    i = w.propose_add_owner("alice", "carol")
    w.confirm("alice", i)
    with pytest.raises(ExecutionFailed) as ei:
        w.execute("alice", i)
    assert isinstance(ei.value.cause, OwnerLimitReached)
