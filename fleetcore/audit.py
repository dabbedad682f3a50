"""Audit records for justification-gated operations."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .errors import ReasonRequired
from .status import AuditAction

MANAGER = "manager"
DRIVER = "driver"


@dataclass(frozen=True)
class Actor:
    """Who performs an operation."""

    id: str
    name: str
    role: str = DRIVER

    @property
    def is_manager(self) -> bool:
        return self.role == MANAGER


SYSTEM = Actor(id="sys", name="System", role=MANAGER)


@dataclass(frozen=True)
class AuditEntry:
    """Who did what to which record, when and why."""

    action: AuditAction
    reason: str
    actor_id: str
    timestamp: datetime
    entity_id: str
    actor_name: Optional[str] = None
    previous_value: Optional[str] = None
    new_value: Optional[str] = None

    @classmethod
    def record(
        cls,
        action: AuditAction,
        reason: str,
        actor: Actor,
        entity_id: str,
        timestamp: datetime,
        previous_value: Optional[str] = None,
        new_value: Optional[str] = None,
    ) -> "AuditEntry":
        return cls(
            action=action,
            reason=reason.strip(),
            actor_id=actor.id,
            actor_name=actor.name,
            timestamp=timestamp,
            entity_id=entity_id,
            previous_value=previous_value,
            new_value=new_value,
        )


def require_reason(reason: Optional[str], what: str) -> str:
    """Return the stripped reason, or raise ReasonRequired when blank."""
    if reason is None or not reason.strip():
        raise ReasonRequired(f"A reason is required to {what}")
    return reason.strip()
