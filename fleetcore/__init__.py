"""
Fleet reservation and trip-lifecycle core.

This package decides whether a vehicle+driver reservation is admissible and
moves trips through their lifecycle:
- intervals: Calendar-day normalization and closed-range overlap
- calendar_rules: São Paulo plate rotation and destination matching
- conflicts: Candidate reservations and their Verdict
- ReservationStore: Validated create/update/delete of reservations
- TripLifecycle: promote, complete, cancel and re-route trips
- AlertGenerator: Tire and fuel threshold alerts
- FleetRepository: Versioned in-memory record store
- loader: YAML fleet files
"""

from .status import AuditAction, ReservationKind, Severity, TripState, VehicleStatus, Verdict
from .errors import (
    FleetError,
    HardBlock,
    InvalidDateKind,
    MaintenanceBlock,
    VehicleOverlap,
    DriverOverlap,
    ActiveConflict,
    RegionalRestrictionUnjustified,
    OdometerRegression,
    ReasonRequired,
    AlreadyPromoted,
    StaleState,
    DuplicateId,
    ChecklistIncomplete,
    InvalidTransition,
    NotFound,
)
from .intervals import as_date, normalize_day, check_window, overlaps
from .calendar_rules import (
    plate_last_digit,
    is_restricted,
    restriction_label,
    applies_to_location,
    LocationMatcher,
    SaoPauloMatcher,
)
from .audit import Actor, AuditEntry
from .vehicle import Vehicle, Driver
from .reservation import Reservation
from .trip import Trip, Checklist, Expenses
from .maintenance import MaintenanceRecord, TireRecord, open_maintenance, close_maintenance
from .repository import FleetRepository, new_id
from .conflicts import Candidate, classify
from .alerts import Alert, AlertGenerator, refresh_alerts
from .reservations import ReservationStore
from .lifecycle import TripLifecycle
from .loader import load_fleet, save_fleet, parse_fleet

__all__ = [
    "AuditAction",
    "ReservationKind",
    "Severity",
    "TripState",
    "VehicleStatus",
    "Verdict",
    "FleetError",
    "HardBlock",
    "InvalidDateKind",
    "MaintenanceBlock",
    "VehicleOverlap",
    "DriverOverlap",
    "ActiveConflict",
    "RegionalRestrictionUnjustified",
    "OdometerRegression",
    "ReasonRequired",
    "AlreadyPromoted",
    "StaleState",
    "DuplicateId",
    "ChecklistIncomplete",
    "InvalidTransition",
    "NotFound",
    "as_date",
    "normalize_day",
    "check_window",
    "overlaps",
    "plate_last_digit",
    "is_restricted",
    "restriction_label",
    "applies_to_location",
    "LocationMatcher",
    "SaoPauloMatcher",
    "Actor",
    "AuditEntry",
    "Vehicle",
    "Driver",
    "Reservation",
    "Trip",
    "Checklist",
    "Expenses",
    "MaintenanceRecord",
    "TireRecord",
    "open_maintenance",
    "close_maintenance",
    "FleetRepository",
    "new_id",
    "Candidate",
    "classify",
    "Alert",
    "AlertGenerator",
    "refresh_alerts",
    "ReservationStore",
    "TripLifecycle",
    "load_fleet",
    "save_fleet",
    "parse_fleet",
]
