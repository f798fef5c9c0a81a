# multisig/errors.py
"""
Error types for the multisig authorization registry. These are lightweight,
serializable, and safe to surface over logs or any host-provided bridge.

Every failure is local and synchronous: it is raised to the caller of the
failing operation and nothing is retried internally.

Hierarchy
---------
MultisigError (base)
 ├─ Unauthorized        : caller is not an owner / governance primitive called directly
 ├─ NotFound            : action index (or owner position) out of range
 ├─ AlreadyExecuted     : action is frozen
 ├─ AlreadyConfirmed    : caller already confirmed this action
 ├─ NotConfirmed        : caller has no confirmation to revoke
 ├─ QuorumNotMet        : confirmations < live threshold
 ├─ ExecutionFailed     : dispatch failed *after* the action was consumed
 ├─ DuplicateOwner
 ├─ UnknownOwner
 ├─ InvalidThreshold
 ├─ OwnerLimitReached   : configured max_owners would be exceeded
 ├─ InvalidAction       : malformed submit input
 ├─ DispatchError       : raised by collaborators / governance decoding
 ├─ InvariantViolation  : internal bug signal, never expected in practice
 └─ ConfigError
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Mapping, Optional, Type
import json


class ErrorCode(str, Enum):
    UNAUTHORIZED = "Unauthorized"
    NOT_FOUND = "NotFound"
    ALREADY_EXECUTED = "AlreadyExecuted"
    ALREADY_CONFIRMED = "AlreadyConfirmed"
    NOT_CONFIRMED = "NotConfirmed"
    QUORUM_NOT_MET = "QuorumNotMet"
    EXECUTION_FAILED = "ExecutionFailed"
    DUPLICATE_OWNER = "DuplicateOwner"
    UNKNOWN_OWNER = "UnknownOwner"
    INVALID_THRESHOLD = "InvalidThreshold"
    OWNER_LIMIT_REACHED = "OwnerLimitReached"
    INVALID_ACTION = "InvalidAction"
    DISPATCH_ERROR = "DispatchError"
    INVARIANT_VIOLATION = "InvariantViolation"
    CONFIG = "ConfigError"
    INTERNAL = "MultisigError"


class MultisigError(Exception):
    """Base class for multisig domain errors."""

    code: str = ErrorCode.INTERNAL.value

    def __init__(self, message: str = "", *, details: Optional[Mapping[str, Any]] = None) -> None:
        self.message = message or self.__class__.__name__
        self.details = dict(details or {})
        super().__init__(self.__str__())

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.details:
            try:
                packed = json.dumps(self.details, sort_keys=True, separators=(",", ":"), default=str)
            except Exception:
                packed = str(self.details)
            return f"{self.code}: {self.message} [{packed}]"
        return f"{self.code}: {self.message}"


def _details(base: Optional[Mapping[str, Any]], **fields: Any) -> Dict[str, Any]:
    d = dict(base or {})
    for k, v in fields.items():
        if v is not None:
            d.setdefault(k, v)
    return d


class Unauthorized(MultisigError):
    """Caller is not a current owner, or a governance primitive was called without a live token."""
    code = ErrorCode.UNAUTHORIZED.value

    def __init__(
        self,
        message: str = "not owner",
        *,
        caller: Optional[str] = None,
        operation: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=_details(details, caller=caller, operation=operation))


class NotFound(MultisigError):
    code = ErrorCode.NOT_FOUND.value

    def __init__(
        self,
        message: str = "action does not exist",
        *,
        index: Optional[int] = None,
        count: Optional[int] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=_details(details, index=index, count=count))


class AlreadyExecuted(MultisigError):
    code = ErrorCode.ALREADY_EXECUTED.value

    def __init__(
        self,
        message: str = "action already executed",
        *,
        index: Optional[int] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=_details(details, index=index))


class AlreadyConfirmed(MultisigError):
    code = ErrorCode.ALREADY_CONFIRMED.value

    def __init__(
        self,
        message: str = "action already confirmed",
        *,
        index: Optional[int] = None,
        caller: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=_details(details, index=index, caller=caller))


class NotConfirmed(MultisigError):
    code = ErrorCode.NOT_CONFIRMED.value

    def __init__(
        self,
        message: str = "action not confirmed",
        *,
        index: Optional[int] = None,
        caller: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=_details(details, index=index, caller=caller))


class QuorumNotMet(MultisigError):
    code = ErrorCode.QUORUM_NOT_MET.value

    def __init__(
        self,
        message: str = "cannot execute action",
        *,
        index: Optional[int] = None,
        confirmations: Optional[int] = None,
        threshold: Optional[int] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(
            message,
            details=_details(details, index=index, confirmations=confirmations, threshold=threshold),
        )


class ExecutionFailed(MultisigError):
    """
    The dispatch step failed. The action was already marked executed before the
    collaborator ran, so it is consumed and will never be retried; resubmit it
    as a new action instead.
    """
    code = ErrorCode.EXECUTION_FAILED.value

    def __init__(
        self,
        message: str = "action failed",
        *,
        index: Optional[int] = None,
        reason: Optional[str] = None,
        cause: Optional[BaseException] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.cause = cause
        super().__init__(message, details=_details(details, index=index, reason=reason))


class DuplicateOwner(MultisigError):
    code = ErrorCode.DUPLICATE_OWNER.value

    def __init__(
        self,
        message: str = "owner already exists",
        *,
        identity: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=_details(details, identity=identity))


class UnknownOwner(MultisigError):
    code = ErrorCode.UNKNOWN_OWNER.value

    def __init__(
        self,
        message: str = "owner not found",
        *,
        identity: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=_details(details, identity=identity))


class InvalidThreshold(MultisigError):
    code = ErrorCode.INVALID_THRESHOLD.value

    def __init__(
        self,
        message: str = "threshold out of range",
        *,
        threshold: Any = None,
        owners: Optional[int] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=_details(details, threshold=threshold, owners=owners))


class OwnerLimitReached(MultisigError):
    code = ErrorCode.OWNER_LIMIT_REACHED.value

    def __init__(
        self,
        message: str = "owner limit reached",
        *,
        limit: Optional[int] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=_details(details, limit=limit))


class InvalidAction(MultisigError):
    code = ErrorCode.INVALID_ACTION.value

    def __init__(
        self,
        message: str = "invalid action",
        *,
        field: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=_details(details, field=field))


class DispatchError(MultisigError):
    """Raised by dispatch collaborators (or governance decoding) to report a failed effect."""
    code = ErrorCode.DISPATCH_ERROR.value


class InvariantViolation(MultisigError):
    code = ErrorCode.INVARIANT_VIOLATION.value


class ConfigError(MultisigError):
    code = ErrorCode.CONFIG.value


_BY_CODE: Dict[str, Type[MultisigError]] = {
    cls.code: cls
    for cls in (
        Unauthorized,
        NotFound,
        AlreadyExecuted,
        AlreadyConfirmed,
        NotConfirmed,
        QuorumNotMet,
        ExecutionFailed,
        DuplicateOwner,
        UnknownOwner,
        InvalidThreshold,
        OwnerLimitReached,
        InvalidAction,
        DispatchError,
        InvariantViolation,
        ConfigError,
        MultisigError,
    )
}


def error_from_code(code: str) -> Type[MultisigError]:
    """Map a stable error code (e.g. ``"QuorumNotMet"``) back to its class."""
    try:
        return _BY_CODE[str(code)]
    except KeyError:
        raise ValueError(f"unknown error code: {code!r}") from None


__all__ = [
    "ErrorCode",
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
    "OwnerLimitReached",
    "InvalidAction",
    "DispatchError",
    "InvariantViolation",
    "ConfigError",
    "error_from_code",
]
