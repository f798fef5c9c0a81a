"""
multisig.types: action records and their immutable snapshots.

`Action` is the queue's private, mutable record (confirmations and the executed
flag change in place until the action is frozen). Callers only ever see
`ActionSnapshot`, a frozen copy taken at read time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional, Set

from .errors import InvalidAction

Identity = str


def normalize_identity(value: Any, *, field_name: str = "identity") -> Identity:
    """Identities are non-empty strings; surrounding whitespace is not significant."""
    if not isinstance(value, str):
        raise InvalidAction(f"{field_name} must be a string", field=field_name)
    ident = value.strip()
    if not ident:
        raise InvalidAction(f"{field_name} must be non-empty", field=field_name)
    return ident


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome recorded on an action when execute ran the dispatch step."""

    success: bool
    ret: bytes = b""
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "ret": "0x" + self.ret.hex(),
            "error": self.error,
        }


@dataclass
class Action:
    index: int
    proposer: Identity
    target: Identity
    amount: int
    payload: bytes
    confirmed_by: Set[Identity] = field(default_factory=set)
    executed: bool = False
    result: Optional[ExecutionResult] = None

    @property
    def confirmation_count(self) -> int:
        return len(self.confirmed_by)

    def snapshot(self) -> "ActionSnapshot":
        return ActionSnapshot(
            index=self.index,
            proposer=self.proposer,
            target=self.target,
            amount=self.amount,
            payload=self.payload,
            confirmed_by=frozenset(self.confirmed_by),
            executed=self.executed,
            result=self.result,
        )


@dataclass(frozen=True)
class ActionSnapshot:
    """
    Read-only view of an action at the time it was read.

    Fields
    ------
    index:        stable handle assigned at submission (0-based).
    proposer:     owner that submitted the action.
    target:       opaque effect target; the wallet's own address marks governance.
    amount:       non-negative amount passed through to dispatch.
    payload:      opaque bytes passed through to dispatch.
    confirmed_by: owners that currently confirm the action.
    executed:     true once execute committed (even if dispatch then failed).
    result:       dispatch outcome, or None while pending.
    """

    index: int
    proposer: Identity
    target: Identity
    amount: int
    payload: bytes
    confirmed_by: FrozenSet[Identity]
    executed: bool
    result: Optional[ExecutionResult] = None

    @property
    def confirmation_count(self) -> int:
        return len(self.confirmed_by)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "proposer": self.proposer,
            "target": self.target,
            "amount": self.amount,
            "payload": "0x" + self.payload.hex(),
            "confirmed_by": sorted(self.confirmed_by),
            "confirmations": self.confirmation_count,
            "executed": self.executed,
            "result": self.result.to_dict() if self.result is not None else None,
        }


__all__ = [
    "Identity",
    "normalize_identity",
    "ExecutionResult",
    "Action",
    "ActionSnapshot",
]
