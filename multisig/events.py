from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple

from .errors import MultisigError
from .logging import get_logger

log = get_logger(__name__)

# Event names emitted by the registry and the queue.
ACTION_SUBMITTED = "ActionSubmitted"
ACTION_CONFIRMED = "ActionConfirmed"
CONFIRMATION_REVOKED = "ConfirmationRevoked"
ACTION_EXECUTED = "ActionExecuted"
ACTION_FAILED = "ActionFailed"
OWNER_ADDED = "OwnerAdded"
OWNER_REMOVED = "OwnerRemoved"
THRESHOLD_CHANGED = "ThresholdChanged"

MAX_EVENT_NAME_LEN = 64
MAX_KEY_LEN = 64

# Names are CamelCase identifiers; keys are snake_case-ish identifiers.
_NAME_RE = re.compile(r"^[A-Z][A-Za-z0-9]*$")
_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

ArgValue = Any  # constrained at runtime: str | int | bool | bytes | None
Subscriber = Callable[["Event"], None]


class EventError(MultisigError):
    code = "EventInvalid"


@dataclass(frozen=True)
class Event:
    """A notification emitted after a committed state change."""

    seq: int
    name: str
    args: Dict[str, ArgValue]

    def to_dict(self) -> Dict[str, Any]:
        return {"seq": self.seq, "name": self.name, "args": dict(self.args)}


@dataclass(frozen=True)
class CanonicalEvent:
    """
    Canonical event representation for external observers:

        name: event name
        args: sequence of {"k", "t", "v"} dicts
              t="s" => str
              t="b" => bytes encoded as 0x-prefixed hex
              t="i" => integer
              t="z" => boolean
              t="n" => null
    """

    name: str
    args: Sequence[Mapping[str, Any]]


class EventSink:
    """
    Per-wallet, append-only event log with synchronous observers.

    Observers run after the state change they describe has been committed; an
    observer that raises is logged and skipped, it never rolls the change back.
    """

    def __init__(self, *, enabled: bool = True) -> None:
        self.enabled = enabled
        self._events: List[Event] = []
        self._subscribers: List[Subscriber] = []

    # --- Validation helpers -------------------------------------------------

    def _check_name(self, name: Any) -> str:
        if not isinstance(name, str) or not _NAME_RE.match(name) or len(name) > MAX_EVENT_NAME_LEN:
            raise EventError("invalid event name", details={"name": repr(name)})
        return name

    def _check_key(self, key: Any) -> str:
        if not isinstance(key, str) or not _KEY_RE.match(key) or len(key) > MAX_KEY_LEN:
            raise EventError("invalid event key", details={"key": repr(key)})
        return key

    def _check_value(self, value: Any) -> ArgValue:
        if value is None or isinstance(value, (str, bool, int)):
            return value
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        raise EventError("unsupported event arg type", details={"py_type": type(value).__name__})

    # --- Core sink operations -----------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register an observer; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def emit(self, name: str, **args: Any) -> None:
        if not self.enabled:
            return
        checked = {self._check_key(k): self._check_value(v) for k, v in args.items()}
        ev = Event(len(self._events), self._check_name(name), checked)
        self._events.append(ev)
        for sub in tuple(self._subscribers):
            try:
                sub(ev)
            except Exception:
                log.exception("event observer failed", extra={"event": ev.name, "seq": ev.seq})

    def events(self, name: str | None = None) -> Tuple[Event, ...]:
        if name is None:
            return tuple(self._events)
        return tuple(e for e in self._events if e.name == name)

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)

    def to_receipt(self) -> List[CanonicalEvent]:
        """Convert the log into canonical, JSON-safe events."""
        out: List[CanonicalEvent] = []
        for ev in self._events:
            enc: List[Dict[str, Any]] = []
            for k, v in ev.args.items():
                if v is None:
                    enc.append({"k": k, "t": "n", "v": None})
                elif isinstance(v, bytes):
                    enc.append({"k": k, "t": "b", "v": "0x" + v.hex()})
                elif isinstance(v, bool):
                    enc.append({"k": k, "t": "z", "v": v})
                elif isinstance(v, int):
                    enc.append({"k": k, "t": "i", "v": v})
                else:
                    enc.append({"k": k, "t": "s", "v": v})
            out.append(CanonicalEvent(name=ev.name, args=tuple(enc)))
        return out


__all__ = [
    "Event",
    "CanonicalEvent",
    "EventSink",
    "EventError",
    "ACTION_SUBMITTED",
    "ACTION_CONFIRMED",
    "CONFIRMATION_REVOKED",
    "ACTION_EXECUTED",
    "ACTION_FAILED",
    "OWNER_ADDED",
    "OWNER_REMOVED",
    "THRESHOLD_CHANGED",
]
