"""YAML loading and saving of a whole fleet file."""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dateutil.parser import isoparse

from .alerts import Alert
from .audit import AuditEntry
from .maintenance import MaintenanceRecord, TireRecord
from .repository import FleetRepository
from .reservation import Reservation
from .status import AuditAction, ReservationKind, Severity, VehicleStatus
from .trip import Checklist, Trip
from .vehicle import Driver, Vehicle


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return isoparse(str(value))


def _iso(value: Any) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _compact(d: Dict[str, Any]) -> Dict[str, Any]:
    """Drop None values and empty lists for cleaner YAML."""
    return {k: v for k, v in d.items() if v is not None and v != []}


# =============================================================================
# Parsing
# =============================================================================


def _parse_audit(dct: Dict[str, Any]) -> AuditEntry:
    return AuditEntry(
        action=AuditAction(dct["action"]),
        reason=dct["reason"],
        actor_id=dct["actorId"],
        actor_name=dct.get("actorName"),
        timestamp=_as_datetime(dct["timestamp"]),
        entity_id=dct["entityId"],
        previous_value=dct.get("previousValue"),
        new_value=dct.get("newValue"),
    )


def _parse_checklist(dct: Optional[Dict[str, Any]]) -> Optional[Checklist]:
    if not dct:
        return None
    return Checklist(
        fuel_level=dct["fuelLevel"],
        odometer=dct.get("odometer"),
        oil_checked=dct.get("oilChecked", False),
        water_checked=dct.get("waterChecked", False),
        tires_checked=dct.get("tiresChecked", False),
        comments=dct.get("comments", ""),
        damage_description=dct.get("damageDescription"),
    )


def _parse_vehicle(dct: Dict[str, Any]) -> Vehicle:
    return Vehicle(
        dct["id"],
        dct["plate"],
        dct["model"],
        dct["brand"],
        year=dct.get("year"),
        current_odometer=dct.get("currentOdometer", 0),
        fuel_level=dct.get("fuelLevel", 100),
        status=VehicleStatus(dct.get("status", "AVAILABLE")),
        fuel_type=dct.get("fuelType"),
        last_checklist=_parse_checklist(dct.get("lastChecklist")),
        version=dct.get("version", 0),
    )


def _parse_driver(dct: Dict[str, Any]) -> Driver:
    return Driver(
        dct["id"],
        dct["name"],
        license_category=dct.get("licenseCategory"),
        username=dct.get("username"),
    )


def _parse_reservation(dct: Dict[str, Any]) -> Reservation:
    return Reservation(
        dct["id"],
        dct["driverId"],
        dct["vehicleId"],
        dct["startDate"],
        dct.get("endDate"),
        kind=ReservationKind(dct.get("kind", "SINGLE")),
        origin=dct.get("origin", ""),
        destination=dct.get("destination", ""),
        city=dct.get("city", ""),
        state=dct.get("state", ""),
        notes=dct.get("notes", ""),
        waypoints=dct.get("waypoints"),
        audit=[_parse_audit(a) for a in dct.get("audit") or []],
        promoted_trip_id=dct.get("promotedTripId"),
        version=dct.get("version", 0),
    )


def _parse_trip(dct: Dict[str, Any]) -> Trip:
    return Trip(
        dct["id"],
        dct["driverId"],
        dct["vehicleId"],
        _as_datetime(dct["startTime"]),
        dct["startOdometer"],
        reservation_id=dct.get("reservationId"),
        origin=dct.get("origin", ""),
        destination=dct.get("destination", ""),
        city=dct.get("city", ""),
        state=dct.get("state", ""),
        waypoints=dct.get("waypoints"),
        planned_arrival=_as_datetime(dct.get("plannedArrival")),
        end_time=_as_datetime(dct.get("endTime")),
        end_odometer=dct.get("endOdometer"),
        distance=dct.get("distance"),
        is_cancelled=dct.get("isCancelled", False),
        cancellation_reason=dct.get("cancellationReason"),
        cancelled_by=dct.get("cancelledBy"),
        fuel_expense=dct.get("fuelExpense", 0),
        other_expense=dct.get("otherExpense", 0),
        expense_notes=dct.get("expenseNotes", ""),
        audit=[_parse_audit(a) for a in dct.get("audit") or []],
        version=dct.get("version", 0),
    )


def _parse_maintenance(dct: Dict[str, Any]) -> MaintenanceRecord:
    return MaintenanceRecord(
        dct["id"],
        dct["vehicleId"],
        dct["openDate"],
        close_date=dct.get("closeDate"),
        categories=dct.get("categories"),
        service_type=dct.get("serviceType", ""),
        cost=dct.get("cost", 0),
        odometer=dct.get("odometer"),
        notes=dct.get("notes", ""),
        return_notes=dct.get("returnNotes", ""),
        version=dct.get("version", 0),
    )


def _parse_tire(dct: Dict[str, Any]) -> TireRecord:
    return TireRecord(
        dct["id"],
        dct["vehicleId"],
        dct["installedAtKm"],
        dct["nextChangeAtKm"],
        position=dct.get("position"),
        brand=dct.get("brand"),
        model=dct.get("model"),
        installed_on=dct.get("installedOn"),
    )


def _parse_alert(dct: Dict[str, Any]) -> Alert:
    return Alert(
        key=dct["key"],
        kind=dct["kind"],
        severity=Severity[dct["severity"]],
        vehicle_id=dct["vehicleId"],
        title=dct["title"],
        message=dct["message"],
        tire_id=dct.get("tireId"),
        remaining_km=dct.get("remainingKm"),
    )


def parse_fleet(data: Optional[Dict[str, Any]]) -> FleetRepository:
    """Build a repository from the raw YAML mapping."""
    data = data or {}
    return FleetRepository(
        vehicles=[_parse_vehicle(d) for d in data.get("vehicles") or []],
        drivers=[_parse_driver(d) for d in data.get("drivers") or []],
        reservations=[_parse_reservation(d) for d in data.get("reservations") or []],
        trips=[_parse_trip(d) for d in data.get("trips") or []],
        maintenance=[_parse_maintenance(d) for d in data.get("maintenance") or []],
        tires=[_parse_tire(d) for d in data.get("tires") or []],
        audit_log=[_parse_audit(d) for d in data.get("auditLog") or []],
        notifications=[_parse_alert(d) for d in data.get("notifications") or []],
    )


def load_fleet(filename: Union[str, Path]) -> FleetRepository:
    """Load a fleet from a YAML file."""
    with open(filename, "r") as fp:
        return parse_fleet(yaml.load(fp, Loader=yaml.SafeLoader))


# =============================================================================
# Serializing
# =============================================================================


def _audit_to_dict(entry: AuditEntry) -> Dict[str, Any]:
    return _compact({
        "action": entry.action.value,
        "reason": entry.reason,
        "actorId": entry.actor_id,
        "actorName": entry.actor_name,
        "timestamp": _iso(entry.timestamp),
        "entityId": entry.entity_id,
        "previousValue": entry.previous_value,
        "newValue": entry.new_value,
    })


def _checklist_to_dict(checklist: Checklist) -> Dict[str, Any]:
    return _compact({
        "fuelLevel": checklist.fuel_level,
        "odometer": checklist.odometer,
        "oilChecked": checklist.oil_checked,
        "waterChecked": checklist.water_checked,
        "tiresChecked": checklist.tires_checked,
        "comments": checklist.comments or None,
        "damageDescription": checklist.damage_description,
    })


def _vehicle_to_dict(vehicle: Vehicle) -> Dict[str, Any]:
    return _compact({
        "id": vehicle.id,
        "plate": vehicle.plate,
        "model": vehicle.model,
        "brand": vehicle.brand,
        "year": vehicle.year,
        "fuelType": vehicle.fuel_type,
        "currentOdometer": vehicle.current_odometer,
        "fuelLevel": vehicle.fuel_level,
        "status": vehicle.status.value,
        "lastChecklist": _checklist_to_dict(vehicle.last_checklist) if vehicle.last_checklist else None,
        "version": vehicle.version,
    })


def _driver_to_dict(driver: Driver) -> Dict[str, Any]:
    return _compact({
        "id": driver.id,
        "name": driver.name,
        "licenseCategory": driver.license_category,
        "username": driver.username,
    })


def _reservation_to_dict(reservation: Reservation) -> Dict[str, Any]:
    return _compact({
        "id": reservation.id,
        "driverId": reservation.driver_id,
        "vehicleId": reservation.vehicle_id,
        "kind": reservation.kind.value,
        "startDate": reservation.start_date.isoformat(),
        "endDate": reservation.end_date.isoformat(),
        "origin": reservation.origin,
        "destination": reservation.destination,
        "city": reservation.city,
        "state": reservation.state,
        "notes": reservation.notes or None,
        "waypoints": reservation.waypoints,
        "promotedTripId": reservation.promoted_trip_id,
        "audit": [_audit_to_dict(a) for a in reservation.audit],
        "version": reservation.version,
    })


def _trip_to_dict(trip: Trip) -> Dict[str, Any]:
    return _compact({
        "id": trip.id,
        "driverId": trip.driver_id,
        "vehicleId": trip.vehicle_id,
        "reservationId": trip.reservation_id,
        "origin": trip.origin,
        "destination": trip.destination,
        "city": trip.city,
        "state": trip.state,
        "waypoints": trip.waypoints,
        "plannedArrival": _iso(trip.planned_arrival),
        "startTime": _iso(trip.start_time),
        "startOdometer": trip.start_odometer,
        "endTime": _iso(trip.end_time),
        "endOdometer": trip.end_odometer,
        "distance": trip.distance,
        "isCancelled": trip.is_cancelled or None,
        "cancellationReason": trip.cancellation_reason,
        "cancelledBy": trip.cancelled_by,
        "fuelExpense": trip.fuel_expense or None,
        "otherExpense": trip.other_expense or None,
        "expenseNotes": trip.expense_notes or None,
        "audit": [_audit_to_dict(a) for a in trip.audit],
        "version": trip.version,
    })


def _maintenance_to_dict(record: MaintenanceRecord) -> Dict[str, Any]:
    return _compact({
        "id": record.id,
        "vehicleId": record.vehicle_id,
        "openDate": record.open_date.isoformat(),
        "closeDate": _iso(record.close_date),
        "categories": record.categories,
        "serviceType": record.service_type or None,
        "cost": record.cost,
        "odometer": record.odometer,
        "notes": record.notes or None,
        "returnNotes": record.return_notes or None,
        "version": record.version,
    })


def _tire_to_dict(tire: TireRecord) -> Dict[str, Any]:
    return _compact({
        "id": tire.id,
        "vehicleId": tire.vehicle_id,
        "installedAtKm": tire.installed_at_km,
        "nextChangeAtKm": tire.next_change_at_km,
        "position": tire.position,
        "brand": tire.brand,
        "model": tire.model,
        "installedOn": _iso(tire.installed_on),
    })


def _alert_to_dict(alert: Alert) -> Dict[str, Any]:
    return _compact({
        "key": alert.key,
        "kind": alert.kind,
        "severity": alert.severity.name,
        "vehicleId": alert.vehicle_id,
        "title": alert.title,
        "message": alert.message,
        "tireId": alert.tire_id,
        "remainingKm": alert.remaining_km,
    })


def fleet_to_dict(repository: FleetRepository) -> Dict[str, List[Dict[str, Any]]]:
    """Raw YAML mapping for a repository (camelCase keys)."""
    return {
        "vehicles": [_vehicle_to_dict(v) for v in repository.vehicles.values()],
        "drivers": [_driver_to_dict(d) for d in repository.drivers.values()],
        "reservations": [_reservation_to_dict(r) for r in repository.reservations.values()],
        "trips": [_trip_to_dict(t) for t in repository.trips.values()],
        "maintenance": [_maintenance_to_dict(m) for m in repository.maintenance.values()],
        "tires": [_tire_to_dict(t) for t in repository.tires.values()],
        "auditLog": [_audit_to_dict(a) for a in repository.audit_log],
        "notifications": [_alert_to_dict(a) for a in repository.notifications.values()],
    }


def save_fleet(filename: Union[str, Path], repository: FleetRepository) -> None:
    """Write the whole fleet back to a YAML file."""
    with open(filename, "w") as fp:
        yaml.dump(
            fleet_to_dict(repository),
            fp,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
            width=120,
        )
