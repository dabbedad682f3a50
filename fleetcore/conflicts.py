"""Conflict classification for a candidate reservation."""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from .calendar_rules import LocationMatcher, SaoPauloMatcher, is_restricted
from .intervals import as_date, check_window, overlaps
from .maintenance import MaintenanceRecord
from .reservation import Reservation
from .status import VehicleStatus, Verdict
from .trip import Trip
from .vehicle import Vehicle

DEFAULT_MATCHER = SaoPauloMatcher()


@dataclass
class Candidate:
    """A proposed reservation: who, which vehicle, when and where to."""

    vehicle_id: str
    driver_id: str
    start_date: date
    end_date: Optional[date] = None
    destination: str = ""
    city: str = ""
    state: str = ""

    def __post_init__(self):
        self.start_date = as_date(self.start_date)
        self.end_date = as_date(self.end_date) if self.end_date is not None else self.start_date
        check_window(self.start_date, self.end_date)

    @classmethod
    def from_reservation(cls, reservation: Reservation) -> "Candidate":
        return cls(
            vehicle_id=reservation.vehicle_id,
            driver_id=reservation.driver_id,
            start_date=reservation.start_date,
            end_date=reservation.end_date,
            destination=reservation.destination,
            city=reservation.city,
            state=reservation.state,
        )


def _is_under_maintenance(vehicle: Vehicle, maintenance_records: Iterable[MaintenanceRecord]) -> bool:
    if vehicle.status == VehicleStatus.MAINTENANCE:
        return True
    return any(m.is_open and m.vehicle_id == vehicle.id for m in maintenance_records)


def _overlapping_reservation(
    candidate: Candidate,
    reservations: Iterable[Reservation],
    field: str,
    exclude_reservation_id: Optional[str],
) -> bool:
    wanted = getattr(candidate, field)
    for reservation in reservations:
        if reservation.id == exclude_reservation_id or reservation.is_promoted:
            continue
        if getattr(reservation, field) != wanted:
            continue
        if overlaps(candidate.start_date, candidate.end_date, *reservation.window):
            return True
    return False


def _conflicting_trip(candidate: Candidate, active_trips: Iterable[Trip], any_active: bool) -> bool:
    for trip in active_trips:
        if not trip.is_active:
            continue
        if trip.vehicle_id != candidate.vehicle_id and trip.driver_id != candidate.driver_id:
            continue
        if any_active or overlaps(candidate.start_date, candidate.end_date, *trip.window):
            return True
    return False


def classify(
    candidate: Candidate,
    reservations: Iterable[Reservation],
    active_trips: Iterable[Trip],
    vehicle: Vehicle,
    exclude_reservation_id: Optional[str] = None,
    maintenance_records: Iterable[MaintenanceRecord] = (),
    location_matcher: Optional[LocationMatcher] = None,
    any_active: bool = False,
) -> Verdict:
    """
    Classify a candidate reservation. The first matching verdict wins:

    1. MAINTENANCE_BLOCK    - vehicle in maintenance or with an open record
    2. VEHICLE_OVERLAP      - another reservation books the vehicle in the window
    3. DRIVER_OVERLAP       - another reservation books the driver in the window
    4. ACTIVE_CONFLICT      - vehicle or driver on an active trip in the window
                              (any active trip at all when any_active is set)
    5. REGIONAL_RESTRICTION - plate rotation on the start date, destination matched
    6. NONE

    Pass exclude_reservation_id when re-classifying an edit so the
    reservation does not conflict with its own stored entry.
    """
    reservations = list(reservations)
    matcher = location_matcher or DEFAULT_MATCHER

    if _is_under_maintenance(vehicle, maintenance_records):
        return Verdict.MAINTENANCE_BLOCK
    if _overlapping_reservation(candidate, reservations, "vehicle_id", exclude_reservation_id):
        return Verdict.VEHICLE_OVERLAP
    if _overlapping_reservation(candidate, reservations, "driver_id", exclude_reservation_id):
        return Verdict.DRIVER_OVERLAP
    if _conflicting_trip(candidate, active_trips, any_active):
        return Verdict.ACTIVE_CONFLICT
    if is_restricted(vehicle.plate, candidate.start_date) and matcher.matches(
        candidate.city, candidate.state, candidate.destination
    ):
        return Verdict.REGIONAL_RESTRICTION
    return Verdict.NONE
