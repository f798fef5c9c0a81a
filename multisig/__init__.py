"""
multisig - M-of-N authorization registry.

An owner registry plus an action queue: owners submit actions, confirm them,
and any owner may execute once confirmations meet the live threshold. Changes
to the owner set or threshold are themselves actions targeting the wallet's
own address, so they go through the same M-of-N approval.

Public surface:
- MultiSigWallet (composite), OwnerRegistry, ActionQueue
- dispatchers: NullDispatcher, RecordingDispatcher, RoutingDispatcher
- errors, events, governance codec, config, logging
"""

from __future__ import annotations

from .dispatch import (
    DispatchResult,
    Dispatcher,
    NullDispatcher,
    RecordingDispatcher,
    RoutingDispatcher,
)
from .errors import (
    AlreadyConfirmed,
    AlreadyExecuted,
    DuplicateOwner,
    ExecutionFailed,
    InvalidThreshold,
    MultisigError,
    NotConfirmed,
    NotFound,
    QuorumNotMet,
    Unauthorized,
    UnknownOwner,
)
from .events import Event, EventSink
from .queue import ActionQueue
from .registry import OwnerRegistry
from .types import ActionSnapshot
from .version import __version__
from .wallet import MultiSigWallet

__all__ = [
    "__version__",
    "MultiSigWallet",
    "OwnerRegistry",
    "ActionQueue",
    "ActionSnapshot",
    "Event",
    "EventSink",
    "DispatchResult",
    "Dispatcher",
    "NullDispatcher",
    "RecordingDispatcher",
    "RoutingDispatcher",
    "MultisigError",
    "Unauthorized",
    "NotFound",
    "AlreadyExecuted",
    "AlreadyConfirmed",
    "NotConfirmed",
    "QuorumNotMet",
    "ExecutionFailed",
    "DuplicateOwner",
    "UnknownOwner",
    "InvalidThreshold",
]
