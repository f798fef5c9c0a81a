"""
multisig.governance: payload codec for actions that target the registry itself.

A governance payload is a canonical CBOR map::

    {"op": "addOwner",     "args": ["bob"]}
    {"op": "removeOwner",  "args": ["alice"]}
    {"op": "replaceOwner", "args": ["alice", "carol"]}
    {"op": "setThreshold", "args": [2]}

`apply_call` runs a decoded call against the registry with the governance token
of the executing action. Decoding problems raise `DispatchError`; rejections from
the registry primitives (DuplicateOwner, InvalidThreshold, ...) propagate as-is.
Both are reported to the caller of execute as `ExecutionFailed`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Tuple

import cbor2

from .errors import DispatchError
from .registry import GovernanceToken, OwnerRegistry

OP_ADD_OWNER = "addOwner"
OP_REMOVE_OWNER = "removeOwner"
OP_REPLACE_OWNER = "replaceOwner"
OP_SET_THRESHOLD = "setThreshold"

# op -> (arity, argument type)
_SIGNATURES: Dict[str, Tuple[int, type]] = {
    OP_ADD_OWNER: (1, str),
    OP_REMOVE_OWNER: (1, str),
    OP_REPLACE_OWNER: (2, str),
    OP_SET_THRESHOLD: (1, int),
}


@dataclass(frozen=True)
class GovernanceCall:
    op: str
    args: Tuple[Any, ...]

    def encode(self) -> bytes:
        return cbor2.dumps({"op": self.op, "args": list(self.args)}, canonical=True)


def _check(op: str, args: Tuple[Any, ...]) -> GovernanceCall:
    sig = _SIGNATURES.get(op)
    if sig is None:
        raise DispatchError("unknown governance op", details={"op": op})
    arity, typ = sig
    if len(args) != arity:
        raise DispatchError("wrong number of governance args", details={"op": op, "got": len(args)})
    for a in args:
        if isinstance(a, bool) or not isinstance(a, typ):
            raise DispatchError("bad governance arg type", details={"op": op, "arg": repr(a)})
    return GovernanceCall(op, tuple(args))


def encode_call(op: str, *args: Any) -> bytes:
    return _check(op, tuple(args)).encode()


def encode_add_owner(identity: str) -> bytes:
    return encode_call(OP_ADD_OWNER, identity)


def encode_remove_owner(identity: str) -> bytes:
    return encode_call(OP_REMOVE_OWNER, identity)


def encode_replace_owner(old: str, new: str) -> bytes:
    return encode_call(OP_REPLACE_OWNER, old, new)


def encode_set_threshold(threshold: int) -> bytes:
    return encode_call(OP_SET_THRESHOLD, threshold)


def decode_call(payload: bytes) -> GovernanceCall:
    try:
        obj = cbor2.loads(payload)
    except (cbor2.CBORDecodeError, EOFError, ValueError, TypeError) as e:
        raise DispatchError("governance payload is not valid CBOR") from e
    if not isinstance(obj, dict) or set(obj) != {"op", "args"}:
        raise DispatchError("governance payload must be a map of op/args")
    op, args = obj["op"], obj["args"]
    if not isinstance(op, str) or not isinstance(args, list):
        raise DispatchError("governance payload has bad op/args types")
    return _check(op, tuple(args))


def _handlers(registry: OwnerRegistry) -> Dict[str, Callable[..., None]]:
    return {
        OP_ADD_OWNER: registry.add_owner,
        OP_REMOVE_OWNER: registry.remove_owner,
        OP_REPLACE_OWNER: registry.replace_owner,
        OP_SET_THRESHOLD: registry.set_threshold,
    }


def apply_call(registry: OwnerRegistry, call: GovernanceCall, token: GovernanceToken) -> None:
    _handlers(registry)[call.op](*call.args, token=token)


__all__ = [
    "GovernanceCall",
    "OP_ADD_OWNER",
    "OP_REMOVE_OWNER",
    "OP_REPLACE_OWNER",
    "OP_SET_THRESHOLD",
    "encode_call",
    "encode_add_owner",
    "encode_remove_owner",
    "encode_replace_owner",
    "encode_set_threshold",
    "decode_call",
    "apply_call",
]
