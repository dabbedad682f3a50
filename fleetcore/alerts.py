"""Threshold alerts for tire wear and fuel level."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

from .maintenance import TireRecord
from .status import Severity
from .vehicle import Vehicle

if TYPE_CHECKING:
    from .repository import FleetRepository

TIRE_ALERT = "tire_alert"
LOW_FUEL = "low_fuel"


@dataclass(frozen=True)
class Alert:
    """A condition worth notifying. Equal keys mean the same condition."""

    key: str
    kind: str
    severity: Severity
    vehicle_id: str
    title: str
    message: str
    tire_id: Optional[str] = None
    remaining_km: Optional[int] = None


class AlertGenerator:
    """
    Derive alerts from vehicle and tire state without changing anything.

    Tires: remaining = next_change_at_km - current_odometer.
    - remaining <= 0 -> CRITICAL
    - remaining <= tire_warning_km -> WARNING
    Fuel: fuel_level < low_fuel_percent -> WARNING, one per vehicle.
    """

    def __init__(self, tire_warning_km: int = 2000, low_fuel_percent: float = 10):
        self.tire_warning_km = tire_warning_km
        self.low_fuel_percent = low_fuel_percent

    def _tire_alert(self, vehicle: Vehicle, tire: TireRecord) -> Optional[Alert]:
        remaining = tire.remaining_km(vehicle)
        if remaining > self.tire_warning_km:
            return None
        severity = Severity.CRITICAL if remaining <= 0 else Severity.WARNING
        where = f" ({tire.position})" if tire.position else ""
        if severity == Severity.CRITICAL:
            title = "Tire change overdue"
            message = f"Tire{where} on {vehicle.plate} is past its change point by {-remaining:,} km."
        else:
            title = "Tire change due soon"
            message = f"Tire{where} on {vehicle.plate} has {remaining:,} km left before its change."
        return Alert(
            key=f"tire-alert-{vehicle.id}-{tire.id}-{severity.name.lower()}",
            kind=TIRE_ALERT,
            severity=severity,
            vehicle_id=vehicle.id,
            title=title,
            message=message,
            tire_id=tire.id,
            remaining_km=remaining,
        )

    def _fuel_alert(self, vehicle: Vehicle) -> Optional[Alert]:
        if vehicle.fuel_level >= self.low_fuel_percent:
            return None
        return Alert(
            key=f"low-fuel-{vehicle.id}",
            kind=LOW_FUEL,
            severity=Severity.WARNING,
            vehicle_id=vehicle.id,
            title="Low fuel",
            message=f"Vehicle {vehicle.plate} is at {vehicle.fuel_level:g}% fuel.",
        )

    def scan(self, vehicles: Iterable[Vehicle], tires: Iterable[TireRecord]) -> List[Alert]:
        """All current alerts, one per key, sorted by key."""
        by_id: Dict[str, Vehicle] = {v.id: v for v in vehicles}
        alerts: Dict[str, Alert] = {}

        for tire in tires:
            vehicle = by_id.get(tire.vehicle_id)
            if vehicle is None:
                continue
            alert = self._tire_alert(vehicle, tire)
            if alert is not None:
                alerts.setdefault(alert.key, alert)

        for vehicle in by_id.values():
            alert = self._fuel_alert(vehicle)
            if alert is not None:
                alerts.setdefault(alert.key, alert)

        return [alerts[k] for k in sorted(alerts)]

    def new_alerts(
        self,
        vehicles: Iterable[Vehicle],
        tires: Iterable[TireRecord],
        known_keys: Iterable[str] = (),
    ) -> List[Alert]:
        """Alerts whose key has not been seen before."""
        known = set(known_keys)
        return [a for a in self.scan(vehicles, tires) if a.key not in known]


def refresh_alerts(
    repository: "FleetRepository", generator: Optional[AlertGenerator] = None
) -> List[Alert]:
    """Scan the repository and hand new alerts to its notification sink."""
    generator = generator or AlertGenerator()
    fresh = generator.new_alerts(
        repository.vehicles.values(), repository.tires.values(), repository.notifications
    )
    return repository.publish_alerts(fresh)
