"""
multisig.registry
=================

Owner registry: an ordered, duplicate-free set of owner identities plus the
approval threshold.

Invariants (checked before and after every mutation):
- owners is non-empty and contains no duplicates
- 1 <= threshold <= len(owners)

Privileged path
---------------
Mutators (`add_owner`, `remove_owner`, `replace_owner`, `set_threshold`) take a
`GovernanceToken`. Tokens are minted only by the single `GovernanceAuthority`
this registry hands out (to the action queue), and only live for the duration of
the queue's execute step of one governance action. Any other call, with no
token, a stale token, or another registry's token, fails `Unauthorized`. There
is no admin override.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List, Optional, Set

from .errors import (
    DuplicateOwner,
    InvalidThreshold,
    InvariantViolation,
    NotFound,
    OwnerLimitReached,
    Unauthorized,
    UnknownOwner,
)
from .events import OWNER_ADDED, OWNER_REMOVED, THRESHOLD_CHANGED, EventSink
from .logging import get_logger
from .types import Identity, normalize_identity

log = get_logger(__name__)


class GovernanceToken:
    """Short-lived proof that a call originates from a governance execute step."""

    __slots__ = ("_registry", "action_index", "_live")

    def __init__(self, registry: "OwnerRegistry", action_index: int) -> None:
        self._registry = registry
        self.action_index = action_index
        self._live = True

    @property
    def live(self) -> bool:
        return self._live

    def __repr__(self) -> str:
        state = "live" if self._live else "spent"
        return f"GovernanceToken(action_index={self.action_index}, {state})"


class GovernanceAuthority:
    """Mints governance tokens for one registry. Issued once, to the action queue."""

    def __init__(self, registry: "OwnerRegistry") -> None:
        self._registry = registry

    @property
    def registry(self) -> "OwnerRegistry":
        return self._registry

    @contextmanager
    def session(self, action_index: int) -> Iterator[GovernanceToken]:
        token = GovernanceToken(self._registry, action_index)
        prev = self._registry._live_token
        self._registry._live_token = token
        try:
            yield token
        finally:
            token._live = False
            self._registry._live_token = prev


class OwnerRegistry:
    def __init__(
        self,
        creator: Identity,
        *,
        events: Optional[EventSink] = None,
        max_owners: int = 0,
    ) -> None:
        first = normalize_identity(creator, field_name="creator")
        self._owners: List[Identity] = [first]
        self._index: Set[Identity] = {first}
        self._threshold = 1
        self._max_owners = int(max_owners)
        self._events = events if events is not None else EventSink()
        self._authority: Optional[GovernanceAuthority] = None
        self._live_token: Optional[GovernanceToken] = None
        self._check_invariants()

    # ------------------------------------------------------------------ views

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def owner_count(self) -> int:
        return len(self._owners)

    def is_owner(self, identity: Identity) -> bool:
        return isinstance(identity, str) and identity.strip() in self._index

    def list_owners(self) -> List[Identity]:
        return list(self._owners)

    def owner_at(self, position: int) -> Identity:
        if isinstance(position, bool) or not isinstance(position, int):
            raise NotFound("owner does not exist", details={"position": repr(position)})
        if not 0 <= position < len(self._owners):
            raise NotFound("owner does not exist", details={"position": position, "owners": len(self._owners)})
        return self._owners[position]

    # --------------------------------------------------------- authority

    def issue_authority(self) -> GovernanceAuthority:
        """Hand out the one and only authority for this registry."""
        if self._authority is not None:
            raise Unauthorized("governance authority already issued", operation="issue_authority")
        self._authority = GovernanceAuthority(self)
        return self._authority

    def _authorize(self, token: Optional[GovernanceToken], operation: str) -> None:
        if (
            not isinstance(token, GovernanceToken)
            or token._registry is not self
            or not token.live
            or self._live_token is not token
        ):
            log.debug("governance primitive called directly", extra={"operation": operation})
            raise Unauthorized("need to be called through an executed action", operation=operation)

    # --------------------------------------------------------- mutators

    def add_owner(self, identity: Identity, token: Optional[GovernanceToken] = None) -> None:
        self._authorize(token, "add_owner")
        self._check_invariants()
        ident = normalize_identity(identity)
        if ident in self._index:
            raise DuplicateOwner(identity=ident)
        if self._max_owners and len(self._owners) >= self._max_owners:
            raise OwnerLimitReached(limit=self._max_owners)
        self._owners.append(ident)
        self._index.add(ident)
        self._check_invariants()
        log.info("owner added", extra={"identity": ident, "owners": len(self._owners)})
        self._events.emit(OWNER_ADDED, identity=ident)

    def remove_owner(self, identity: Identity, token: Optional[GovernanceToken] = None) -> None:
        self._authorize(token, "remove_owner")
        self._check_invariants()
        ident = normalize_identity(identity)
        if ident not in self._index:
            raise UnknownOwner(identity=ident)
        if len(self._owners) == 1:
            raise InvalidThreshold("cannot remove the last owner", threshold=self._threshold, owners=1)
        self._owners.remove(ident)
        self._index.discard(ident)
        clamped = self._threshold > len(self._owners)
        if clamped:
            self._threshold = len(self._owners)
        self._check_invariants()
        log.info(
            "owner removed",
            extra={"identity": ident, "owners": len(self._owners), "threshold": self._threshold},
        )
        self._events.emit(OWNER_REMOVED, identity=ident)
        if clamped:
            self._events.emit(THRESHOLD_CHANGED, threshold=self._threshold)

    def replace_owner(
        self, old: Identity, new: Identity, token: Optional[GovernanceToken] = None
    ) -> None:
        """Swap `old` for `new` in place, keeping its position in the owner order."""
        self._authorize(token, "replace_owner")
        self._check_invariants()
        old_id = normalize_identity(old, field_name="old")
        new_id = normalize_identity(new, field_name="new")
        if old_id not in self._index:
            raise UnknownOwner(identity=old_id)
        if new_id in self._index:
            raise DuplicateOwner(identity=new_id)
        pos = self._owners.index(old_id)
        self._owners[pos] = new_id
        self._index.discard(old_id)
        self._index.add(new_id)
        self._check_invariants()
        log.info("owner replaced", extra={"identity": new_id, "replaced": old_id, "position": pos})
        self._events.emit(OWNER_REMOVED, identity=old_id)
        self._events.emit(OWNER_ADDED, identity=new_id)

    def set_threshold(self, threshold: int, token: Optional[GovernanceToken] = None) -> None:
        self._authorize(token, "set_threshold")
        self._check_invariants()
        if isinstance(threshold, bool) or not isinstance(threshold, int):
            raise InvalidThreshold("threshold must be an integer", threshold=repr(threshold))
        if not 1 <= threshold <= len(self._owners):
            raise InvalidThreshold(threshold=threshold, owners=len(self._owners))
        self._threshold = threshold
        self._check_invariants()
        log.info("threshold changed", extra={"threshold": threshold, "owners": len(self._owners)})
        self._events.emit(THRESHOLD_CHANGED, threshold=threshold)

    # --------------------------------------------------------- internals

    def _check_invariants(self) -> None:
        if not self._owners:
            raise InvariantViolation("owner set is empty")
        if len(self._index) != len(self._owners) or self._index != set(self._owners):
            raise InvariantViolation("owner list and membership index diverged")
        if not 1 <= self._threshold <= len(self._owners):
            raise InvariantViolation(
                "threshold out of range",
                details={"threshold": self._threshold, "owners": len(self._owners)},
            )


__all__ = ["OwnerRegistry", "GovernanceAuthority", "GovernanceToken"]
