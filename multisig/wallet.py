"""
multisig.wallet: the composite: one owner registry, one action queue.

    wallet = MultiSigWallet("alice")
    i = wallet.propose_add_owner("alice", "bob")
    wallet.confirm("alice", i)
    wallet.execute("alice", i)          # bob is now an owner

All operations on one wallet are serialized by a re-entrant lock, so each
operation is observed atomically by every other. Re-entrant calls made from
inside a dispatcher (same thread) go through the normal gates: executing the
action that is currently dispatching fails AlreadyExecuted, and the governance
primitives still require a live token.
"""

from __future__ import annotations

import hashlib
import threading
from typing import Any, Dict, List, Optional

from .config import MultisigConfig, load_config
from .dispatch import Dispatcher, DispatchResult, NullDispatcher
from .events import EventSink
from .governance import (
    encode_add_owner,
    encode_remove_owner,
    encode_replace_owner,
    encode_set_threshold,
)
from .logging import get_logger, with_fields
from .queue import ActionQueue
from .registry import GovernanceToken, OwnerRegistry
from .types import ActionSnapshot, Identity, normalize_identity

log = get_logger(__name__)

ADDRESS_TAG = b"multisig/wallet/v1"


def derive_address(creator: Identity, salt: int = 0) -> str:
    """Deterministic 20-byte hex address for a wallet created by `creator`."""
    h = hashlib.sha3_256()
    h.update(ADDRESS_TAG)
    h.update(normalize_identity(creator, field_name="creator").encode("utf-8"))
    h.update(int(salt).to_bytes(8, "big"))
    return "0x" + h.hexdigest()[:40]


class MultiSigWallet:
    def __init__(
        self,
        creator: Identity,
        *,
        dispatcher: Optional[Dispatcher] = None,
        address: Optional[str] = None,
        salt: int = 0,
        config: Optional[MultisigConfig] = None,
    ) -> None:
        cfg = config if config is not None else load_config()
        self.config = cfg
        if address:
            self.address = normalize_identity(address, field_name="address")
        else:
            self.address = derive_address(creator, salt)
        self.events = EventSink(enabled=cfg.emit_events)
        self.registry = OwnerRegistry(creator, events=self.events, max_owners=cfg.max_owners)
        self.queue = ActionQueue(
            self.registry,
            self.registry.issue_authority(),
            dispatcher if dispatcher is not None else NullDispatcher(),
            self_address=self.address,
            events=self.events,
            max_payload_bytes=cfg.max_payload_bytes,
        )
        self._lock = threading.RLock()
        self._log = with_fields(log, wallet=self.address)
        self._log.info("wallet created", extra={"caller": self.registry.owner_at(0)})

    # ------------------------------------------------------------ registry

    @property
    def threshold(self) -> int:
        with self._lock:
            return self.registry.threshold

    def is_owner(self, identity: Identity) -> bool:
        with self._lock:
            return self.registry.is_owner(identity)

    def list_owners(self) -> List[Identity]:
        with self._lock:
            return self.registry.list_owners()

    def owner_at(self, position: int) -> Identity:
        with self._lock:
            return self.registry.owner_at(position)

    # Governance primitives. Reachable only with the token of an executing
    # governance action; direct calls fail Unauthorized.

    def add_owner(self, identity: Identity, token: Optional[GovernanceToken] = None) -> None:
        with self._lock:
            self.registry.add_owner(identity, token)

    def remove_owner(self, identity: Identity, token: Optional[GovernanceToken] = None) -> None:
        with self._lock:
            self.registry.remove_owner(identity, token)

    def replace_owner(self, old: Identity, new: Identity, token: Optional[GovernanceToken] = None) -> None:
        with self._lock:
            self.registry.replace_owner(old, new, token)

    def set_threshold(self, threshold: int, token: Optional[GovernanceToken] = None) -> None:
        with self._lock:
            self.registry.set_threshold(threshold, token)

    # --------------------------------------------------------------- queue

    def submit(self, proposer: Identity, target: Identity, amount: int = 0, payload: bytes = b"") -> int:
        with self._lock:
            return self.queue.submit(proposer, target, amount, payload)

    def confirm(self, caller: Identity, index: int) -> None:
        with self._lock:
            self.queue.confirm(caller, index)

    def revoke(self, caller: Identity, index: int) -> None:
        with self._lock:
            self.queue.revoke(caller, index)

    def execute(self, caller: Identity, index: int) -> DispatchResult:
        with self._lock:
            return self.queue.execute(caller, index)

    def get_action(self, index: int) -> ActionSnapshot:
        with self._lock:
            return self.queue.get_action(index)

    def count(self) -> int:
        with self._lock:
            return self.queue.count()

    def is_confirmed(self, index: int, identity: Identity) -> bool:
        with self._lock:
            return self.queue.is_confirmed(index, identity)

    def pending(self) -> List[int]:
        with self._lock:
            return self.queue.pending()

    def actions(self) -> List[ActionSnapshot]:
        with self._lock:
            return self.queue.actions()

    # ------------------------------------------------- governance proposals

    def propose_add_owner(self, proposer: Identity, identity: Identity) -> int:
        return self.submit(proposer, self.address, 0, encode_add_owner(identity))

    def propose_remove_owner(self, proposer: Identity, identity: Identity) -> int:
        return self.submit(proposer, self.address, 0, encode_remove_owner(identity))

    def propose_replace_owner(self, proposer: Identity, old: Identity, new: Identity) -> int:
        return self.submit(proposer, self.address, 0, encode_replace_owner(old, new))

    def propose_set_threshold(self, proposer: Identity, threshold: int) -> int:
        return self.submit(proposer, self.address, 0, encode_set_threshold(threshold))

    # ------------------------------------------------------------ summary

    def state(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "address": self.address,
                "owners": self.registry.list_owners(),
                "threshold": self.registry.threshold,
                "actions": [a.to_dict() for a in self.queue.actions()],
                "pending": self.queue.pending(),
                "events": len(self.events),
            }

    def __repr__(self) -> str:
        return (
            f"MultiSigWallet(address={self.address!r}, owners={self.registry.owner_count}, "
            f"threshold={self.registry.threshold}, actions={self.queue.count()})"
        )


__all__ = ["MultiSigWallet", "derive_address", "ADDRESS_TAG"]
