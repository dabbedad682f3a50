"""
In-memory record store for the fleet collections.

Every stored record carries a version token that is bumped on each save.
Saving a copy whose version no longer matches the stored record, or passing
an expected_version that does not match, raises StaleState. Commits that
check and then write hold serialized() locks on the vehicle and driver
involved so that two near-simultaneous requests cannot both pass the check.
"""

import threading
import uuid
from contextlib import contextmanager
from typing import TYPE_CHECKING, Dict, Iterable, Iterator, List, Optional

from .errors import DuplicateId, NotFound, StaleState

if TYPE_CHECKING:
    from .alerts import Alert
    from .audit import AuditEntry
    from .maintenance import MaintenanceRecord, TireRecord
    from .reservation import Reservation
    from .trip import Trip
    from .vehicle import Driver, Vehicle


def new_id() -> str:
    """Short random record id."""
    return uuid.uuid4().hex[:9]


class FleetRepository:
    """Vehicles, drivers, reservations, trips, maintenance and tire records."""

    def __init__(
        self,
        vehicles: Optional[Iterable["Vehicle"]] = None,
        drivers: Optional[Iterable["Driver"]] = None,
        reservations: Optional[Iterable["Reservation"]] = None,
        trips: Optional[Iterable["Trip"]] = None,
        maintenance: Optional[Iterable["MaintenanceRecord"]] = None,
        tires: Optional[Iterable["TireRecord"]] = None,
        audit_log: Optional[Iterable["AuditEntry"]] = None,
        notifications: Optional[Iterable["Alert"]] = None,
    ):
        self.vehicles: Dict[str, "Vehicle"] = {v.id: v for v in vehicles or []}
        self.drivers: Dict[str, "Driver"] = {d.id: d for d in drivers or []}
        self.reservations: Dict[str, "Reservation"] = {r.id: r for r in reservations or []}
        self.trips: Dict[str, "Trip"] = {t.id: t for t in trips or []}
        self.maintenance: Dict[str, "MaintenanceRecord"] = {m.id: m for m in maintenance or []}
        self.tires: Dict[str, "TireRecord"] = {t.id: t for t in tires or []}
        self.audit_log: List["AuditEntry"] = list(audit_log or [])
        self.notifications: Dict[str, "Alert"] = {a.key: a for a in notifications or []}
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    @contextmanager
    def serialized(self, *keys: str) -> Iterator[None]:
        """Hold re-entrant locks for the given keys, acquired in sorted order."""
        with self._guard:
            locks = [self._locks.setdefault(k, threading.RLock()) for k in sorted(set(keys))]
        for lock in locks:
            lock.acquire()
        try:
            yield
        finally:
            for lock in reversed(locks):
                lock.release()

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    @staticmethod
    def _get(table: Dict, record_id: str, kind: str):
        try:
            return table[record_id]
        except KeyError:
            raise NotFound(f"{kind} '{record_id}' not found", id=record_id) from None

    def get_vehicle(self, vehicle_id: str) -> "Vehicle":
        return self._get(self.vehicles, vehicle_id, "Vehicle")

    def get_driver(self, driver_id: str) -> "Driver":
        return self._get(self.drivers, driver_id, "Driver")

    def get_reservation(self, reservation_id: str) -> "Reservation":
        return self._get(self.reservations, reservation_id, "Reservation")

    def get_trip(self, trip_id: str) -> "Trip":
        return self._get(self.trips, trip_id, "Trip")

    def get_maintenance(self, record_id: str) -> "MaintenanceRecord":
        return self._get(self.maintenance, record_id, "Maintenance record")

    def live_reservations(self) -> List["Reservation"]:
        """Reservations not yet promoted to a trip."""
        return [r for r in self.reservations.values() if not r.is_promoted]

    def active_trips(
        self, vehicle_id: Optional[str] = None, driver_id: Optional[str] = None
    ) -> List["Trip"]:
        """ACTIVE trips, optionally those of a vehicle or (or-ed) a driver."""
        trips = [t for t in self.trips.values() if t.is_active]
        if vehicle_id is None and driver_id is None:
            return trips
        return [t for t in trips if t.vehicle_id == vehicle_id or t.driver_id == driver_id]

    def open_maintenance(self, vehicle_id: Optional[str] = None) -> List["MaintenanceRecord"]:
        records = [m for m in self.maintenance.values() if m.is_open]
        if vehicle_id is None:
            return records
        return [m for m in records if m.vehicle_id == vehicle_id]

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    @staticmethod
    def ensure_new(table: Dict, record_id: str, kind: str) -> None:
        """Raise DuplicateId if the table already holds record_id."""
        if record_id in table:
            raise DuplicateId(f"{kind} '{record_id}' already exists", id=record_id)

    @staticmethod
    def _save(table: Dict, record, expected_version: Optional[int]):
        stored = table.get(record.id)
        current = stored.version if stored is not None else None
        if expected_version is not None and expected_version != (current or 0):
            raise StaleState(
                f"{type(record).__name__} '{record.id}' is at version {current or 0}, "
                f"expected {expected_version}",
                id=record.id,
            )
        if stored is not None and stored is not record and record.version != current:
            raise StaleState(
                f"{type(record).__name__} '{record.id}' changed since it was read",
                id=record.id,
            )
        record.version = (current if current is not None else record.version) + 1
        table[record.id] = record
        return record

    def save_vehicle(self, vehicle: "Vehicle", expected_version: Optional[int] = None) -> "Vehicle":
        return self._save(self.vehicles, vehicle, expected_version)

    def save_driver(self, driver: "Driver") -> "Driver":
        self.drivers[driver.id] = driver
        return driver

    def save_reservation(
        self, reservation: "Reservation", expected_version: Optional[int] = None
    ) -> "Reservation":
        return self._save(self.reservations, reservation, expected_version)

    def save_trip(self, trip: "Trip", expected_version: Optional[int] = None) -> "Trip":
        return self._save(self.trips, trip, expected_version)

    def save_maintenance(
        self, record: "MaintenanceRecord", expected_version: Optional[int] = None
    ) -> "MaintenanceRecord":
        return self._save(self.maintenance, record, expected_version)

    def save_tire(self, tire: "TireRecord") -> "TireRecord":
        self.tires[tire.id] = tire
        return tire

    def delete_reservation(
        self, reservation_id: str, expected_version: Optional[int] = None
    ) -> "Reservation":
        reservation = self.get_reservation(reservation_id)
        if expected_version is not None and expected_version != reservation.version:
            raise StaleState(
                f"Reservation '{reservation_id}' is at version {reservation.version}, "
                f"expected {expected_version}",
                id=reservation_id,
            )
        del self.reservations[reservation_id]
        return reservation

    def record_audit(self, entry: "AuditEntry") -> None:
        self.audit_log.append(entry)

    def publish_alerts(self, alerts: Iterable["Alert"]) -> List["Alert"]:
        """Store alerts whose key is not already known. Returns the new ones."""
        fresh = []
        for alert in alerts:
            if alert.key not in self.notifications:
                self.notifications[alert.key] = alert
                fresh.append(alert)
        return fresh
