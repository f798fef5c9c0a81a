from __future__ import annotations

import os

import pytest

from multisig import config as mcfg
from multisig import logging as mlog
from multisig.config import MultisigConfig
from multisig.dispatch import RecordingDispatcher
from multisig.wallet import MultiSigWallet

from . import add_owners, set_threshold


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """No MULTISIG_* leakage from the host; fresh config cache and log context."""
    for key in list(os.environ):
        if key.startswith("MULTISIG_"):
            monkeypatch.delenv(key, raising=False)
    mcfg.load_config.cache_clear()
    mlog.clear_context()
    yield
    mcfg.load_config.cache_clear()
    mlog.clear_context()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def wallet(dispatcher) -> MultiSigWallet:
    """Single-owner wallet: owners=[alice], threshold=1."""
    return MultiSigWallet("alice", dispatcher=dispatcher, config=MultisigConfig())


@pytest.fixture
def wallet_2of3(wallet) -> MultiSigWallet:
    """owners=[alice, bob, carol], threshold=2."""
    add_owners(wallet, ["bob", "carol"])
    set_threshold(wallet, 2)
    return wallet
