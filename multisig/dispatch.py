"""
multisig.dispatch
=================

The dispatch collaborator performs the real effect of an executed action. The
queue only decides *whether* and *once*; it calls::

    dispatcher.invoke(target, amount, payload) -> DispatchResult

exactly once per successful execute gate, synchronously. A result with
``success=False``, or any exception raised by the dispatcher, fails the execute
with `ExecutionFailed`.

Provided implementations
------------------------
- NullDispatcher      : every effect succeeds with empty return data.
- RecordingDispatcher : records calls; selected targets can be made to fail.
- RoutingDispatcher   : target → handler map, with an optional fallback.

Handlers used by RoutingDispatcher may return a DispatchResult, a bool, bytes
(success with return data) or None (success), or raise to signal failure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Set, runtime_checkable

from .errors import DispatchError
from .logging import get_logger

log = get_logger(__name__)

Handler = Callable[[str, int, bytes], Any]


@dataclass(frozen=True)
class DispatchResult:
    success: bool
    ret: bytes = b""
    error: Optional[str] = None

    @classmethod
    def ok(cls, ret: bytes = b"") -> "DispatchResult":
        return cls(True, bytes(ret))

    @classmethod
    def failed(cls, error: str) -> "DispatchResult":
        return cls(False, b"", error)


@runtime_checkable
class Dispatcher(Protocol):
    def invoke(self, target: str, amount: int, payload: bytes) -> DispatchResult: ...


def coerce_result(value: Any) -> DispatchResult:
    """Normalize a handler's return value into a DispatchResult."""
    if isinstance(value, DispatchResult):
        return value
    if value is None:
        return DispatchResult.ok()
    if isinstance(value, bool):
        return DispatchResult.ok() if value else DispatchResult.failed("handler returned False")
    if isinstance(value, (bytes, bytearray)):
        return DispatchResult.ok(bytes(value))
    raise DispatchError("unsupported dispatch result", details={"py_type": type(value).__name__})


class NullDispatcher:
    """Accepts every effect without doing anything."""

    def invoke(self, target: str, amount: int, payload: bytes) -> DispatchResult:
        return DispatchResult.ok()


@dataclass(frozen=True)
class DispatchCall:
    target: str
    amount: int
    payload: bytes


@dataclass
class RecordingDispatcher:
    """
    Test/diagnostic dispatcher: remembers every call and fails the targets in
    `failing_targets`. An optional `hook` runs inside invoke (before recording
    the outcome) and may re-enter the wallet or raise.
    """

    failing_targets: Set[str] = field(default_factory=set)
    hook: Optional[Callable[[DispatchCall], Any]] = None
    calls: List[DispatchCall] = field(default_factory=list)

    def fail(self, *targets: str) -> None:
        self.failing_targets.update(targets)

    def invoke(self, target: str, amount: int, payload: bytes) -> DispatchResult:
        call = DispatchCall(target, amount, bytes(payload))
        self.calls.append(call)
        if self.hook is not None:
            out = self.hook(call)
            if out is not None:
                return coerce_result(out)
        if target in self.failing_targets:
            return DispatchResult.failed(f"target {target} rejected the call")
        return DispatchResult.ok()


class RoutingDispatcher:
    """Route each effect to the handler registered for its target."""

    def __init__(
        self,
        routes: Optional[Mapping[str, Handler]] = None,
        *,
        fallback: Optional[Handler] = None,
    ) -> None:
        self._routes: Dict[str, Handler] = dict(routes or {})
        self._fallback = fallback

    def register(self, target: str, handler: Handler) -> None:
        self._routes[target] = handler

    def targets(self) -> Iterable[str]:
        return tuple(self._routes)

    def invoke(self, target: str, amount: int, payload: bytes) -> DispatchResult:
        handler = self._routes.get(target, self._fallback)
        if handler is None:
            log.warning("no route for dispatch target", extra={"target": target})
            return DispatchResult.failed(f"no route for target {target}")
        return coerce_result(handler(target, amount, payload))


__all__ = [
    "DispatchResult",
    "Dispatcher",
    "DispatchCall",
    "NullDispatcher",
    "RecordingDispatcher",
    "RoutingDispatcher",
    "coerce_result",
]
