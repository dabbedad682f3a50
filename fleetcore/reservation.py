"""Reservation class: a future-dated booking of a vehicle and driver."""

import copy
from datetime import date
from typing import List, Optional, Tuple

from .audit import AuditEntry
from .errors import InvalidDateKind
from .intervals import DayLike, as_date, check_window
from .status import AuditAction, ReservationKind

MATERIAL_FIELDS = ("vehicle_id", "driver_id", "start_date", "end_date", "kind")


class Reservation:
    """A scheduled trip that has not started yet."""

    def __init__(
        self,
        id: str,
        driver_id: str,
        vehicle_id: str,
        start_date: DayLike,
        end_date: Optional[DayLike] = None,
        kind: ReservationKind = ReservationKind.SINGLE,
        origin: str = "",
        destination: str = "",
        city: str = "",
        state: str = "",
        notes: str = "",
        waypoints: Optional[List[str]] = None,
        audit: Optional[List[AuditEntry]] = None,
        promoted_trip_id: Optional[str] = None,
        version: int = 0,
    ):
        start = as_date(start_date)
        end = as_date(end_date) if end_date is not None else start
        check_window(start, end)
        if kind == ReservationKind.SINGLE and end != start:
            raise InvalidDateKind(
                "Single-day reservation must end on its start date",
                start=start,
                end=end,
            )
        self.id = id
        self.driver_id = driver_id
        self.vehicle_id = vehicle_id
        self.start_date = start
        self.end_date = end
        self.kind = kind
        self.origin = origin
        self.destination = destination
        self.city = city
        self.state = state
        self.notes = notes
        self.waypoints = waypoints or []
        self.audit = audit or []
        self.promoted_trip_id = promoted_trip_id
        self.version = version

    @property
    def window(self) -> Tuple[date, date]:
        return self.start_date, self.end_date

    @property
    def is_promoted(self) -> bool:
        return self.promoted_trip_id is not None

    @property
    def has_regional_override(self) -> bool:
        return any(e.action == AuditAction.REGIONAL_OVERRIDE for e in self.audit)

    def replace(self, **changes) -> "Reservation":
        """
        Copy of this reservation with fields changed.

        Changing start_date on a SINGLE reservation moves end_date with it.
        The copy is validated like a new reservation.
        """
        fields = {
            "id": self.id,
            "driver_id": self.driver_id,
            "vehicle_id": self.vehicle_id,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "kind": self.kind,
            "origin": self.origin,
            "destination": self.destination,
            "city": self.city,
            "state": self.state,
            "notes": self.notes,
            "waypoints": list(self.waypoints),
            "audit": list(self.audit),
            "promoted_trip_id": self.promoted_trip_id,
            "version": self.version,
        }
        unknown = set(changes) - set(fields)
        if unknown:
            raise TypeError(f"Unknown reservation fields: {', '.join(sorted(unknown))}")
        fields.update(copy.deepcopy(changes))
        kind = fields["kind"]
        if (
            kind == ReservationKind.SINGLE
            and "start_date" in changes
            and "end_date" not in changes
        ):
            fields["end_date"] = None
        return Reservation(**fields)

    def material_changes(self, other: "Reservation") -> List[str]:
        """Names of vehicle, driver, date or kind fields that differ from other."""
        return [f for f in MATERIAL_FIELDS if getattr(self, f) != getattr(other, f)]
