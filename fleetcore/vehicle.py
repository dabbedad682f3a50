"""Vehicle and Driver classes."""

from typing import Optional, TYPE_CHECKING

from .calendar_rules import plate_last_digit, restriction_label
from .status import VehicleStatus

if TYPE_CHECKING:
    from .trip import Checklist


class Vehicle:
    """A fleet vehicle with its odometer, fuel level and availability."""

    def __init__(
        self,
        id: str,
        plate: str,
        model: str,
        brand: str,
        year: Optional[int] = None,
        current_odometer: int = 0,
        fuel_level: float = 100,
        status: VehicleStatus = VehicleStatus.AVAILABLE,
        fuel_type: Optional[str] = None,
        last_checklist: Optional["Checklist"] = None,
        version: int = 0,
    ):
        if not 0 <= fuel_level <= 100:
            raise ValueError(f"Fuel level must be 0-100, got {fuel_level}")
        self.id = id
        self.plate = plate
        self.model = model
        self.brand = brand
        self.year = year
        self.current_odometer = current_odometer
        self.fuel_level = fuel_level
        self.status = status
        self.fuel_type = fuel_type
        self.last_checklist = last_checklist
        self.version = version

    @property
    def name(self) -> str:
        """Human-readable vehicle name."""
        return f"{self.brand} {self.model} ({self.plate})"

    @property
    def plate_digit(self) -> Optional[int]:
        return plate_last_digit(self.plate)

    @property
    def rotation_day(self) -> str:
        """Weekday on which plate rotation applies, or "none"."""
        return restriction_label(self.plate)

    @property
    def is_available(self) -> bool:
        return self.status == VehicleStatus.AVAILABLE


class Driver:
    """A driver, referenced by reservations and trips by id."""

    def __init__(
        self,
        id: str,
        name: str,
        license_category: Optional[str] = None,
        username: Optional[str] = None,
    ):
        self.id = id
        self.name = name
        self.license_category = license_category
        self.username = username
