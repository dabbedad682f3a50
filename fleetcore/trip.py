"""Trip class plus the departure checklist and expense values."""

from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Tuple

from .audit import AuditEntry
from .intervals import as_date
from .status import TripState


@dataclass
class Checklist:
    """Departure checklist filled in when a trip starts."""

    fuel_level: float
    odometer: Optional[int] = None
    oil_checked: bool = False
    water_checked: bool = False
    tires_checked: bool = False
    comments: str = ""
    damage_description: Optional[str] = None

    @property
    def missing_items(self) -> List[str]:
        checks = {
            "oil": self.oil_checked,
            "water": self.water_checked,
            "tires": self.tires_checked,
        }
        return [name for name, done in checks.items() if not done]

    @property
    def is_complete(self) -> bool:
        return not self.missing_items


@dataclass
class Expenses:
    """Expenses reported when a trip is completed."""

    fuel: float = 0
    other: float = 0
    notes: str = ""

    @property
    def total(self) -> float:
        return self.fuel + self.other


class Trip:
    """A trip opened by promoting a reservation."""

    def __init__(
        self,
        id: str,
        driver_id: str,
        vehicle_id: str,
        start_time: datetime,
        start_odometer: int,
        reservation_id: Optional[str] = None,
        origin: str = "",
        destination: str = "",
        city: str = "",
        state: str = "",
        waypoints: Optional[List[str]] = None,
        planned_arrival: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        end_odometer: Optional[int] = None,
        distance: Optional[int] = None,
        is_cancelled: bool = False,
        cancellation_reason: Optional[str] = None,
        cancelled_by: Optional[str] = None,
        fuel_expense: float = 0,
        other_expense: float = 0,
        expense_notes: str = "",
        audit: Optional[List[AuditEntry]] = None,
        version: int = 0,
    ):
        self.id = id
        self.driver_id = driver_id
        self.vehicle_id = vehicle_id
        self.start_time = start_time
        self.start_odometer = start_odometer
        self.reservation_id = reservation_id
        self.origin = origin
        self.destination = destination
        self.city = city
        self.state = state
        self.waypoints = waypoints or []
        self.planned_arrival = planned_arrival
        self.end_time = end_time
        self.end_odometer = end_odometer
        self.distance = distance
        self.is_cancelled = is_cancelled
        self.cancellation_reason = cancellation_reason
        self.cancelled_by = cancelled_by
        self.fuel_expense = fuel_expense
        self.other_expense = other_expense
        self.expense_notes = expense_notes
        self.audit = audit or []
        self.version = version

    @property
    def trip_state(self) -> TripState:
        if self.is_cancelled:
            return TripState.CANCELLED
        if self.end_odometer is not None:
            return TripState.COMPLETED
        return TripState.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.trip_state == TripState.ACTIVE

    @property
    def window(self) -> Tuple[date, date]:
        """Days the trip occupies: start day to planned arrival or end day."""
        start = as_date(self.start_time)
        last = self.planned_arrival or self.end_time
        end = as_date(last) if last is not None else start
        return start, max(start, end)

    @property
    def total_expenses(self) -> float:
        return (self.fuel_expense or 0) + (self.other_expense or 0)
