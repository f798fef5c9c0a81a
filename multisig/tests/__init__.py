"""
multisig.tests helpers

- Hypothesis profiles (local / ci), picked by HYPOTHESIS_PROFILE or CI.
- Governance helpers shared by the test modules:
    pass_action(), add_owners(), set_threshold()
"""

from __future__ import annotations

import os
from typing import Iterable, Optional, Sequence

from hypothesis import settings

from multisig.dispatch import DispatchResult
from multisig.wallet import MultiSigWallet

# Local: fewer examples for snappy feedback; no deadline to avoid flakiness on CI
settings.register_profile("local", settings(max_examples=60, deadline=None))
settings.register_profile("ci", settings(max_examples=300, deadline=None))
settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE") or ("ci" if os.environ.get("CI") else "local"))


def pass_action(
    wallet: MultiSigWallet,
    index: int,
    confirmers: Optional[Iterable[str]] = None,
    executor: Optional[str] = None,
) -> DispatchResult:
    """
    Confirm `index` by `confirmers` (default: the first `threshold` owners) and
    execute it as `executor` (default: the first confirmer).
    """
    if confirmers is None:
        confirmers = wallet.list_owners()[: wallet.threshold]
    confirmers = list(confirmers)
    for who in confirmers:
        wallet.confirm(who, index)
    return wallet.execute(executor or confirmers[0], index)


def add_owners(wallet: MultiSigWallet, owners: Sequence[str]) -> None:
    """Grow the owner set through governance actions (one per owner)."""
    for who in owners:
        proposer = wallet.owner_at(0)
        pass_action(wallet, wallet.propose_add_owner(proposer, who))


def set_threshold(wallet: MultiSigWallet, threshold: int) -> None:
    pass_action(wallet, wallet.propose_set_threshold(wallet.owner_at(0), threshold))
