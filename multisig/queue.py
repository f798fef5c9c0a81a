"""
multisig.queue
==============

Action queue / confirmation ledger.

Actions live in an append-only list; the list position is the action's index
and its stable external handle. Nothing is ever removed or reordered.

Per-action state machine::

    Pending(confirmed_by={}) ⇄ Pending(confirmed_by=S)   (confirm / revoke)
    Pending(|S| >= live threshold) → Executed              (execute, terminal)

Execute commits ``executed = True`` *before* the effect runs, so a re-entrant
execute of the same index observes AlreadyExecuted. If the effect then fails,
the action stays consumed and the caller gets ExecutionFailed.

Actions whose target is the wallet's own address are governance actions: their
payload is decoded by `multisig.governance` and applied to the registry with a
token that only lives for that execute step.
"""

from __future__ import annotations

from typing import Any, List, MutableSequence, NoReturn, Optional

from .dispatch import Dispatcher, DispatchResult, coerce_result
from .errors import (
    AlreadyConfirmed,
    AlreadyExecuted,
    ExecutionFailed,
    InvalidAction,
    MultisigError,
    NotConfirmed,
    NotFound,
    QuorumNotMet,
    Unauthorized,
)
from .events import (
    ACTION_CONFIRMED,
    ACTION_EXECUTED,
    ACTION_FAILED,
    ACTION_SUBMITTED,
    CONFIRMATION_REVOKED,
    EventSink,
)
from .governance import apply_call, decode_call
from .logging import get_logger
from .registry import GovernanceAuthority, OwnerRegistry
from .types import Action, ActionSnapshot, ExecutionResult, Identity, normalize_identity

log = get_logger(__name__)


class ActionQueue:
    def __init__(
        self,
        registry: OwnerRegistry,
        authority: GovernanceAuthority,
        dispatcher: Dispatcher,
        *,
        self_address: Identity,
        events: Optional[EventSink] = None,
        max_payload_bytes: int = 0,
    ) -> None:
        if authority.registry is not registry:
            raise Unauthorized("authority belongs to another registry", operation="queue_init")
        self._registry = registry
        self._authority = authority
        self._dispatcher = dispatcher
        self._self_address = normalize_identity(self_address, field_name="self_address")
        self._events = events if events is not None else EventSink()
        self._max_payload = int(max_payload_bytes)
        self._actions: MutableSequence[Action] = []

    @property
    def self_address(self) -> Identity:
        return self._self_address

    # ------------------------------------------------------------------ views

    def count(self) -> int:
        return len(self._actions)

    def get_action(self, index: int) -> ActionSnapshot:
        return self._get(index).snapshot()

    def actions(self) -> List[ActionSnapshot]:
        return [a.snapshot() for a in self._actions]

    def pending(self) -> List[int]:
        return [a.index for a in self._actions if not a.executed]

    def is_confirmed(self, index: int, identity: Identity) -> bool:
        action = self._get(index)
        return isinstance(identity, str) and identity.strip() in action.confirmed_by

    # ------------------------------------------------------------- operations

    def submit(self, proposer: Identity, target: Identity, amount: int = 0, payload: bytes = b"") -> int:
        proposer = self._require_owner(proposer, "submit")
        if not isinstance(target, str):
            raise InvalidAction("target must be a string", field="target")
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise InvalidAction("amount must be a non-negative integer", field="amount")
        if not isinstance(payload, (bytes, bytearray)):
            raise InvalidAction("payload must be bytes", field="payload")
        if self._max_payload and len(payload) > self._max_payload:
            raise InvalidAction(
                "payload too large",
                field="payload",
                details={"len": len(payload), "max": self._max_payload},
            )

        index = len(self._actions)
        action = Action(index=index, proposer=proposer, target=target, amount=amount, payload=bytes(payload))
        self._actions.append(action)
        log.info(
            "submitted",
            extra={"index": index, "caller": proposer, "target": target, "amount": amount},
        )
        self._events.emit(
            ACTION_SUBMITTED,
            proposer=proposer,
            index=index,
            target=target,
            amount=amount,
            payload=action.payload,
        )
        return index

    def confirm(self, caller: Identity, index: int) -> None:
        caller = self._require_owner(caller, "confirm")
        action = self._pending(index)
        if caller in action.confirmed_by:
            raise AlreadyConfirmed(index=index, caller=caller)
        action.confirmed_by.add(caller)
        log.info(
            "confirmed",
            extra={"index": index, "caller": caller, "confirmations": action.confirmation_count},
        )
        self._events.emit(ACTION_CONFIRMED, caller=caller, index=index)

    def revoke(self, caller: Identity, index: int) -> None:
        caller = self._require_owner(caller, "revoke")
        action = self._pending(index)
        if caller not in action.confirmed_by:
            raise NotConfirmed(index=index, caller=caller)
        action.confirmed_by.discard(caller)
        log.info(
            "revoked",
            extra={"index": index, "caller": caller, "confirmations": action.confirmation_count},
        )
        self._events.emit(CONFIRMATION_REVOKED, caller=caller, index=index)

    def execute(self, caller: Identity, index: int) -> DispatchResult:
        caller = self._require_owner(caller, "execute")
        action = self._pending(index)
        threshold = self._registry.threshold
        if action.confirmation_count < threshold:
            raise QuorumNotMet(index=index, confirmations=action.confirmation_count, threshold=threshold)

        # Commit first: the action is consumed whatever the effect does.
        action.executed = True
        try:
            result = self._run(action)
        except Exception as exc:
            self._fail(action, caller, exc)
        if not result.success:
            self._fail(action, caller, None, reason=result.error or "dispatch reported failure")

        action.result = ExecutionResult(True, result.ret)
        log.info("executed", extra={"index": index, "caller": caller, "target": action.target})
        self._events.emit(ACTION_EXECUTED, caller=caller, index=index)
        return result

    # --------------------------------------------------------------- internals

    def _run(self, action: Action) -> DispatchResult:
        if action.target == self._self_address:
            call = decode_call(action.payload)
            with self._authority.session(action.index) as token:
                apply_call(self._registry, call, token)
            return DispatchResult.ok()
        return coerce_result(self._dispatcher.invoke(action.target, action.amount, action.payload))

    def _fail(
        self,
        action: Action,
        caller: Identity,
        exc: Optional[BaseException],
        *,
        reason: Optional[str] = None,
    ) -> NoReturn:
        if reason is None:
            if isinstance(exc, MultisigError):
                reason = f"{exc.code}: {exc.message}"
            else:
                reason = f"{type(exc).__name__}: {exc}"
        action.result = ExecutionResult(False, b"", reason)
        log.warning(
            "execution failed",
            extra={"index": action.index, "caller": caller, "target": action.target, "reason": reason},
        )
        self._events.emit(ACTION_FAILED, caller=caller, index=action.index, error=reason)
        raise ExecutionFailed(index=action.index, reason=reason, cause=exc) from exc

    def _require_owner(self, caller: Any, operation: str) -> Identity:
        if not self._registry.is_owner(caller):
            log.debug("rejected non-owner", extra={"caller": str(caller), "operation": operation})
            raise Unauthorized(caller=str(caller), operation=operation)
        return caller.strip()

    def _get(self, index: Any) -> Action:
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self._actions):
            raise NotFound(index=index if isinstance(index, int) else None, count=len(self._actions))
        return self._actions[index]

    def _pending(self, index: Any) -> Action:
        action = self._get(index)
        if action.executed:
            raise AlreadyExecuted(index=index)
        return action


__all__ = ["ActionQueue"]
