"""Maintenance and tire records, and opening/closing maintenance on a vehicle."""

from typing import TYPE_CHECKING, List, Optional

from .errors import ActiveConflict, InvalidTransition, OdometerRegression
from .intervals import DayLike, as_date, check_window
from .status import VehicleStatus

if TYPE_CHECKING:
    from .repository import FleetRepository
    from .vehicle import Vehicle


class MaintenanceRecord:
    """A workshop visit. While open, the vehicle is blocked."""

    def __init__(
        self,
        id: str,
        vehicle_id: str,
        open_date: DayLike,
        close_date: Optional[DayLike] = None,
        categories: Optional[List[str]] = None,
        service_type: str = "",
        cost: float = 0,
        odometer: Optional[int] = None,
        notes: str = "",
        return_notes: str = "",
        version: int = 0,
    ):
        self.id = id
        self.vehicle_id = vehicle_id
        self.open_date = as_date(open_date)
        self.close_date = as_date(close_date) if close_date is not None else None
        if self.close_date is not None:
            check_window(self.open_date, self.close_date)
        self.categories = categories or []
        self.service_type = service_type
        self.cost = cost
        self.odometer = odometer
        self.notes = notes
        self.return_notes = return_notes
        self.version = version

    @property
    def is_open(self) -> bool:
        return self.close_date is None


class TireRecord:
    """A tire change with the odometer reading at which the next one is due."""

    def __init__(
        self,
        id: str,
        vehicle_id: str,
        installed_at_km: int,
        next_change_at_km: int,
        position: Optional[str] = None,
        brand: Optional[str] = None,
        model: Optional[str] = None,
        installed_on: Optional[DayLike] = None,
    ):
        self.id = id
        self.vehicle_id = vehicle_id
        self.installed_at_km = installed_at_km
        self.next_change_at_km = next_change_at_km
        self.position = position
        self.brand = brand
        self.model = model
        self.installed_on = as_date(installed_on) if installed_on is not None else None

    def remaining_km(self, vehicle: "Vehicle") -> int:
        return self.next_change_at_km - vehicle.current_odometer


def open_maintenance(repository: "FleetRepository", record: MaintenanceRecord) -> MaintenanceRecord:
    """Send a vehicle to the workshop. Refused while the vehicle is on a trip."""
    with repository.serialized(f"vehicle:{record.vehicle_id}"):
        vehicle = repository.get_vehicle(record.vehicle_id)
        if not record.is_open:
            raise InvalidTransition(f"Maintenance {record.id} is already closed")
        if repository.active_trips(vehicle_id=vehicle.id):
            raise ActiveConflict(
                f"Vehicle {vehicle.plate} is on an active trip", vehicle_id=vehicle.id
            )
        repository.save_maintenance(record)
        vehicle.status = VehicleStatus.MAINTENANCE
        repository.save_vehicle(vehicle)
        return record


def close_maintenance(
    repository: "FleetRepository",
    record_id: str,
    odometer: int,
    close_date: DayLike,
    cost: Optional[float] = None,
    return_notes: Optional[str] = None,
) -> MaintenanceRecord:
    """
    Return a vehicle from the workshop.

    The odometer may not go backwards. The vehicle becomes AVAILABLE unless
    another open record still holds it.
    """
    record = repository.get_maintenance(record_id)
    with repository.serialized(f"vehicle:{record.vehicle_id}"):
        vehicle = repository.get_vehicle(record.vehicle_id)
        if not record.is_open:
            raise InvalidTransition(f"Maintenance {record.id} is already closed")
        closed_on = as_date(close_date)
        check_window(record.open_date, closed_on)
        if odometer < vehicle.current_odometer:
            raise OdometerRegression(
                f"Odometer {odometer} is below current {vehicle.current_odometer}",
                vehicle_id=vehicle.id,
            )

        record.close_date = closed_on
        record.odometer = odometer
        if cost is not None:
            record.cost = cost
        if return_notes is not None:
            record.return_notes = return_notes
        repository.save_maintenance(record)

        vehicle.current_odometer = odometer
        if not repository.open_maintenance(vehicle.id):
            vehicle.status = VehicleStatus.AVAILABLE
        repository.save_vehicle(vehicle)
        return record
