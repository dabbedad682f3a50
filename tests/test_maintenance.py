#!/usr/bin/env python3
"""Tests for maintenance records and tire records."""

from datetime import date, datetime

import pytest

from fleetcore import (
    ActiveConflict,
    Driver,
    FleetRepository,
    InvalidDateKind,
    InvalidTransition,
    MaintenanceRecord,
    OdometerRegression,
    TireRecord,
    Trip,
    Vehicle,
    VehicleStatus,
    close_maintenance,
    open_maintenance,
)


@pytest.fixture
def repo():
    return FleetRepository(
        vehicles=[Vehicle("v1", "ABC1D21", "Strada", "Fiat", current_odometer=15000)],
        drivers=[Driver("d1", "Ana Souza")],
    )


class TestMaintenanceRecord:
    """Tests for MaintenanceRecord."""

    def test_open_until_closed(self):
        record = MaintenanceRecord("m1", "v1", "2024-06-01")
        assert record.is_open
        assert record.open_date == date(2024, 6, 1)

    def test_close_before_open_rejected(self):
        with pytest.raises(InvalidDateKind):
            MaintenanceRecord("m1", "v1", "2024-06-05", close_date="2024-06-01")


class TestOpenMaintenance:
    """Tests for open_maintenance."""

    def test_blocks_vehicle(self, repo):
        open_maintenance(repo, MaintenanceRecord("m1", "v1", "2024-06-01"))
        assert repo.vehicles["v1"].status == VehicleStatus.MAINTENANCE
        assert repo.open_maintenance("v1")[0].id == "m1"

    def test_refused_during_trip(self, repo):
        repo.save_trip(Trip("t1", "d1", "v1", datetime(2024, 6, 1, 8, 0), 15000))
        with pytest.raises(ActiveConflict):
            open_maintenance(repo, MaintenanceRecord("m1", "v1", "2024-06-01"))
        assert repo.maintenance == {}

    def test_closed_record_rejected(self, repo):
        record = MaintenanceRecord("m1", "v1", "2024-06-01", close_date="2024-06-02")
        with pytest.raises(InvalidTransition):
            open_maintenance(repo, record)


class TestCloseMaintenance:
    """Tests for close_maintenance."""

    def test_returns_vehicle(self, repo):
        open_maintenance(repo, MaintenanceRecord("m1", "v1", "2024-06-01"))
        record = close_maintenance(repo, "m1", 15012, "2024-06-03", cost=850.0, return_notes="Pads")
        vehicle = repo.vehicles["v1"]
        assert not record.is_open
        assert record.cost == 850.0
        assert record.return_notes == "Pads"
        assert vehicle.status == VehicleStatus.AVAILABLE
        assert vehicle.current_odometer == 15012

    def test_odometer_regression(self, repo):
        open_maintenance(repo, MaintenanceRecord("m1", "v1", "2024-06-01"))
        with pytest.raises(OdometerRegression):
            close_maintenance(repo, "m1", 14000, "2024-06-03")
        assert repo.maintenance["m1"].is_open

    def test_close_date_before_open(self, repo):
        open_maintenance(repo, MaintenanceRecord("m1", "v1", "2024-06-05"))
        with pytest.raises(InvalidDateKind):
            close_maintenance(repo, "m1", 15000, "2024-06-01")

    def test_close_twice(self, repo):
        open_maintenance(repo, MaintenanceRecord("m1", "v1", "2024-06-01"))
        close_maintenance(repo, "m1", 15000, "2024-06-02")
        with pytest.raises(InvalidTransition):
            close_maintenance(repo, "m1", 15000, "2024-06-03")

    def test_other_open_record_keeps_vehicle_blocked(self, repo):
        open_maintenance(repo, MaintenanceRecord("m1", "v1", "2024-06-01"))
        open_maintenance(repo, MaintenanceRecord("m2", "v1", "2024-06-02"))
        close_maintenance(repo, "m1", 15000, "2024-06-03")
        assert repo.vehicles["v1"].status == VehicleStatus.MAINTENANCE


class TestTireRecord:
    """Tests for TireRecord."""

    def test_remaining_km(self):
        vehicle = Vehicle("v1", "ABC1D21", "Strada", "Fiat", current_odometer=15000)
        tire = TireRecord("t1", "v1", 0, 16500, installed_on="2023-01-10")
        assert tire.remaining_km(vehicle) == 1500
        assert tire.installed_on == date(2023, 1, 10)
