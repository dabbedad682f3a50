"""Exceptions raised by reservation and trip operations.

All of them are local, recoverable conditions for the caller to surface and,
for StaleState only, retry after re-fetching.
"""


class FleetError(Exception):
    """Base class for every fleet core error."""

    retryable = False

    def __init__(self, message: str = "", **context):
        super().__init__(message or self.__class__.__doc__)
        self.context = context


class InvalidDateKind(FleetError):
    """Start date is after end date, or a single-day reservation spans days."""


class HardBlock(FleetError):
    """The request is inadmissible; retrying with the same inputs will fail again."""


class MaintenanceBlock(HardBlock):
    """Vehicle is under maintenance."""


class VehicleOverlap(HardBlock):
    """Vehicle already has a reservation for an overlapping window."""


class DriverOverlap(HardBlock):
    """Driver already has a reservation for an overlapping window."""


class ActiveConflict(HardBlock):
    """Vehicle or driver is on an active trip during the window."""


class RegionalRestrictionUnjustified(FleetError):
    """Plate rotation applies on this date and no justification was given."""


class OdometerRegression(FleetError):
    """Odometer reading is lower than the previous one."""


class ReasonRequired(FleetError):
    """A non-empty reason is required for this operation."""


class AlreadyPromoted(FleetError):
    """Reservation has already been promoted to a trip."""


class StaleState(FleetError):
    """Stored state changed since it was read; re-fetch and try again."""

    retryable = True


class DuplicateId(FleetError):
    """A record with this id already exists."""


class ChecklistIncomplete(FleetError):
    """Departure checklist has unchecked items."""


class InvalidTransition(FleetError):
    """Trip is not in a state that allows this transition."""


class NotFound(FleetError):
    """No record with this id."""
