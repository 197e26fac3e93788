"""Lock state value type and the wire contract around it.

The producer pushes whole LockState payloads, never deltas:
    {"lockActive": bool, "allowedDomains": [str, ...]}

The relay forwards the same shape to consumers inside a tagged message:
    {"type": "STATE", "lockActive": ..., "allowedDomains": [...]}   push / query answer
    {"type": "GET_STATE"}                                           query

Pure functions, no I/O.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping

# Message tags on the relay <-> enforcer channel.
STATE = "STATE"
GET_STATE = "GET_STATE"


class LockStateError(ValueError):
    """Raised when a payload is not a well-formed LockState."""


@dataclass(frozen=True)
class LockState:
    """Whether a focus lock is active and which domains are exempt.

    An empty allowed_domains while locked means "exempt nothing": every
    context is blocked. When unlocked, allowed_domains is never consulted.
    """

    lock_active: bool = False
    allowed_domains: tuple[str, ...] = ()

    def to_wire(self) -> dict[str, Any]:
        return {
            "lockActive": self.lock_active,
            "allowedDomains": list(self.allowed_domains),
        }

    @classmethod
    def from_wire(cls, data: Any) -> LockState:
        """Build a LockState from a decoded JSON object.

        A missing allowedDomains is read as empty (the producer sends a
        bare {"lockActive": false} when a lock ends). Unknown keys are ignored.
        """
        if not isinstance(data, Mapping):
            raise LockStateError(f"Expected a JSON object, got {type(data).__name__}")

        lock_active = data.get("lockActive")
        if not isinstance(lock_active, bool):
            raise LockStateError("lockActive must be a boolean")

        domains = data.get("allowedDomains")
        if domains is None:
            domains = []
        if not isinstance(domains, list) or not all(isinstance(d, str) for d in domains):
            raise LockStateError("allowedDomains must be a list of strings")

        return cls(lock_active=lock_active, allowed_domains=tuple(domains))


# Fail-open value: used before the first producer message and after any disconnect.
SAFE_DEFAULT = LockState()


def parse_lock_state(raw: str | bytes) -> LockState:
    """Decode a raw producer payload. Raises LockStateError on any bad input."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise LockStateError(f"Invalid JSON: {exc}") from exc
    return LockState.from_wire(data)


def state_message(state: LockState) -> dict[str, Any]:
    """Tagged STATE message carrying the full state."""
    return {"type": STATE, **state.to_wire()}


def query_message() -> dict[str, Any]:
    return {"type": GET_STATE}


def state_from_message(message: Any) -> LockState:
    """Read a STATE message back into a LockState."""
    if not isinstance(message, Mapping) or message.get("type") != STATE:
        raise LockStateError("Not a STATE message")
    return LockState.from_wire(message)
