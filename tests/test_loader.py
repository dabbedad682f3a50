#!/usr/bin/env python3
"""Tests for YAML loading and saving of fleet files."""

from datetime import date, datetime
from pathlib import Path

import yaml

from fleetcore import (
    Actor,
    AuditAction,
    Checklist,
    FleetRepository,
    Reservation,
    ReservationKind,
    ReservationStore,
    Severity,
    TripLifecycle,
    TripState,
    VehicleStatus,
    load_fleet,
    parse_fleet,
    save_fleet,
)
from fleetcore.audit import MANAGER

FLEET_YAML = """
vehicles:
  - id: v1
    plate: ABC1D21
    brand: Fiat
    model: Strada
    year: 2021
    currentOdometer: 15200
    fuelLevel: 80
  - id: v2
    plate: QRS4E50
    brand: Volkswagen
    model: Saveiro
    currentOdometer: 48210
    fuelLevel: 8
    status: MAINTENANCE

drivers:
  - id: d1
    name: Ana Souza
    licenseCategory: B

reservations:
  - id: r1
    driverId: d1
    vehicleId: v1
    startDate: 2024-06-04
    destination: Rio de Janeiro
  - id: r2
    driverId: d1
    vehicleId: v1
    kind: RECURRING_RANGE
    startDate: '2024-06-10'
    endDate: '2024-06-14'
    destination: Sorocaba

maintenance:
  - id: m1
    vehicleId: v2
    openDate: 2024-06-01
    categories: [brakes]

tires:
  - id: t1
    vehicleId: v1
    installedAtKm: 0
    nextChangeAtKm: 16500
"""


def write_fleet(tmp_path: Path, content: str = FLEET_YAML) -> Path:
    path = tmp_path / "fleet.yaml"
    path.write_text(content)
    return path


class TestLoadFleet:
    """Tests for load_fleet."""

    def test_loads_records(self, tmp_path):
        repo = load_fleet(write_fleet(tmp_path))

        assert isinstance(repo, FleetRepository)
        assert set(repo.vehicles) == {"v1", "v2"}
        v1 = repo.vehicles["v1"]
        assert v1.plate == "ABC1D21"
        assert v1.current_odometer == 15200
        assert v1.status == VehicleStatus.AVAILABLE
        assert repo.vehicles["v2"].status == VehicleStatus.MAINTENANCE
        assert repo.drivers["d1"].license_category == "B"
        assert repo.maintenance["m1"].categories == ["brakes"]
        assert repo.tires["t1"].next_change_at_km == 16500

    def test_dates_quoted_or_not(self, tmp_path):
        repo = load_fleet(write_fleet(tmp_path))
        r1, r2 = repo.reservations["r1"], repo.reservations["r2"]
        assert r1.start_date == r1.end_date == date(2024, 6, 4)
        assert r1.kind == ReservationKind.SINGLE
        assert r2.window == (date(2024, 6, 10), date(2024, 6, 14))
        assert r2.kind == ReservationKind.RECURRING_RANGE

    def test_empty_file(self, tmp_path):
        repo = load_fleet(write_fleet(tmp_path, ""))
        assert repo.vehicles == {}
        assert repo.audit_log == []

    def test_parse_fleet_none(self):
        assert parse_fleet(None).reservations == {}

    def test_sample_fleet_file_loads(self):
        repo = load_fleet(Path(__file__).parent.parent / "data" / "fleet.yaml")
        assert repo.vehicles
        assert repo.reservations


class TestSaveFleet:
    """Tests for save_fleet."""

    def test_writes_camel_case_keys(self, tmp_path):
        path = write_fleet(tmp_path)
        save_fleet(path, load_fleet(path))
        data = yaml.safe_load(path.read_text())
        assert data["vehicles"][0]["currentOdometer"] == 15200
        assert data["reservations"][0]["vehicleId"] == "v1"
        assert data["maintenance"][0]["openDate"] == "2024-06-01"

    def test_keeps_unicode_readable(self, tmp_path):
        path = write_fleet(tmp_path)
        repo = load_fleet(path)
        repo.reservations["r1"].destination = "São Paulo"
        save_fleet(path, repo)
        assert "São Paulo" in path.read_text(encoding="utf-8")

    def test_round_trip_after_operations(self, tmp_path):
        path = write_fleet(tmp_path)
        repo = load_fleet(path)
        manager = Actor("m1", "Marta", MANAGER)

        def clock():
            return datetime(2024, 6, 3, 9, 0)

        ReservationStore(repo, clock=clock).create(
            Reservation("r3", "d1", "v1", "2024-06-03", destination="São Paulo"),
            manager,
            justification="Urgent delivery",
        )
        lifecycle = TripLifecycle(repo, clock=clock)
        checklist = Checklist(fuel_level=5, oil_checked=True, water_checked=True, tires_checked=True)
        trip = lifecycle.promote("r3", 15200, checklist=checklist, trip_id="t100")
        lifecycle.cancel(trip.id, "customer no-show", actor=manager)
        save_fleet(path, repo)

        loaded = load_fleet(path)
        r3 = loaded.reservations["r3"]
        assert r3.promoted_trip_id == "t100"
        assert r3.has_regional_override
        assert r3.audit[0].timestamp == datetime(2024, 6, 3, 9, 0)
        assert r3.version == repo.reservations["r3"].version

        t100 = loaded.trips["t100"]
        assert t100.trip_state == TripState.CANCELLED
        assert t100.cancelled_by == "Marta"
        assert t100.start_time == datetime(2024, 6, 3, 9, 0)
        assert t100.planned_arrival == datetime(2024, 6, 3, 12, 0)
        assert t100.audit[0].action == AuditAction.CANCELLED

        v1 = loaded.vehicles["v1"]
        assert v1.status == VehicleStatus.AVAILABLE
        assert v1.last_checklist.fuel_level == 5
        assert v1.last_checklist.is_complete

        assert [e.action for e in loaded.audit_log] == [
            AuditAction.REGIONAL_OVERRIDE,
            AuditAction.CANCELLED,
        ]
        assert loaded.notifications["low-fuel-v1"].severity == Severity.WARNING
