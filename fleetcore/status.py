"""Enums for vehicle availability, trip state and conflict verdicts."""

from enum import Enum

from . import errors


class VehicleStatus(Enum):
    """Exclusive availability condition of a vehicle."""

    AVAILABLE = "AVAILABLE"
    IN_USE = "IN_USE"
    MAINTENANCE = "MAINTENANCE"


class ReservationKind(Enum):
    SINGLE = "SINGLE"
    RECURRING_RANGE = "RECURRING_RANGE"


class TripState(Enum):
    """Lifecycle state of a trip. COMPLETED and CANCELLED are terminal."""

    SCHEDULED = "SCHEDULED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (TripState.COMPLETED, TripState.CANCELLED)


class Verdict(Enum):
    """Conflict classification of a candidate reservation. Lower value = checked first."""

    MAINTENANCE_BLOCK = 1
    VEHICLE_OVERLAP = 2
    DRIVER_OVERLAP = 3
    ACTIVE_CONFLICT = 4
    REGIONAL_RESTRICTION = 5  # Soft block: needs a justification
    NONE = 6

    @property
    def is_hard_block(self) -> bool:
        return self.value <= Verdict.ACTIVE_CONFLICT.value

    @property
    def is_admissible(self) -> bool:
        return self is Verdict.NONE

    @property
    def error(self):
        """Exception class raised when a commit meets this verdict, if any."""
        return {
            Verdict.MAINTENANCE_BLOCK: errors.MaintenanceBlock,
            Verdict.VEHICLE_OVERLAP: errors.VehicleOverlap,
            Verdict.DRIVER_OVERLAP: errors.DriverOverlap,
            Verdict.ACTIVE_CONFLICT: errors.ActiveConflict,
            Verdict.REGIONAL_RESTRICTION: errors.RegionalRestrictionUnjustified,
        }.get(self)


class Severity(Enum):
    """Alert severity. Lower value = more urgent."""

    CRITICAL = 1
    WARNING = 2


class AuditAction(Enum):
    RESERVATION_UPDATED = "RESERVATION_UPDATED"
    RESERVATION_DELETED = "RESERVATION_DELETED"
    REGIONAL_OVERRIDE = "REGIONAL_OVERRIDE"
    CANCELLED = "CANCELLED"
    ROUTE_CHANGE = "ROUTE_CHANGE"
