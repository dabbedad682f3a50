#!/usr/bin/env python3
"""Tests for ReservationStore create/update/delete."""

from datetime import datetime

import pytest

from fleetcore import (
    Actor,
    AlreadyPromoted,
    AuditAction,
    Candidate,
    Driver,
    DriverOverlap,
    DuplicateId,
    FleetRepository,
    ReasonRequired,
    RegionalRestrictionUnjustified,
    Reservation,
    ReservationKind,
    ReservationStore,
    StaleState,
    Vehicle,
    VehicleOverlap,
    Verdict,
)
from fleetcore.audit import MANAGER

MONDAY = "2024-06-03"
NEXT_MONDAY = "2024-06-10"
NOW = datetime(2024, 6, 1, 9, 0)


@pytest.fixture
def repo():
    return FleetRepository(
        vehicles=[
            Vehicle("v1", "ABC1D21", "Strada", "Fiat", current_odometer=15000),
            Vehicle("v2", "QRS4E53", "Saveiro", "Volkswagen", current_odometer=40000),
        ],
        drivers=[Driver("d1", "Ana Souza"), Driver("d2", "Bruno Lima")],
    )


@pytest.fixture
def store(repo):
    return ReservationStore(repo, clock=lambda: NOW)


@pytest.fixture
def manager():
    return Actor("m1", "Marta", MANAGER)


def make_reservation(id="r1", vehicle_id="v1", driver_id="d1", start="2024-06-04", end=None, **kwargs):
    kind = ReservationKind.RECURRING_RANGE if end else ReservationKind.SINGLE
    kwargs.setdefault("destination", "Campinas")
    return Reservation(id, driver_id, vehicle_id, start, end, kind=kind, **kwargs)


def sao_paulo_monday(id="r1"):
    return make_reservation(id=id, start=MONDAY, destination="São Paulo", city="São Paulo", state="SP")


class TestReservationModel:
    """Tests for Reservation construction and copying."""

    def test_single_defaults_end_to_start(self):
        r = make_reservation()
        assert r.start_date == r.end_date

    def test_single_spanning_days_rejected(self):
        from fleetcore import InvalidDateKind

        with pytest.raises(InvalidDateKind):
            Reservation("r1", "d1", "v1", "2024-06-04", "2024-06-05")

    def test_replace_moves_single_end_date(self):
        r = make_reservation()
        moved = r.replace(start_date="2024-06-06")
        assert moved.end_date == moved.start_date
        assert r.start_date.isoformat() == "2024-06-04"

    def test_replace_unknown_field(self):
        with pytest.raises(TypeError):
            make_reservation().replace(colour="red")

    def test_material_changes(self):
        r = make_reservation()
        assert r.replace(notes="x").material_changes(r) == []
        assert r.replace(driver_id="d2").material_changes(r) == ["driver_id"]


class TestEvaluate:
    """Tests for the advisory evaluate."""

    def test_does_not_write(self, store, repo):
        verdict = store.evaluate(Candidate("v1", "d1", MONDAY, destination="São Paulo"))
        assert verdict == Verdict.REGIONAL_RESTRICTION
        assert repo.reservations == {}
        assert repo.audit_log == []


class TestCreate:
    """Tests for ReservationStore.create."""

    def test_create_saves_and_versions(self, store, repo, manager):
        saved = store.create(make_reservation(), manager)
        assert repo.reservations["r1"] is saved
        assert saved.version == 1
        assert saved.audit == []

    def test_vehicle_overlap_rejected(self, store, repo, manager):
        store.create(make_reservation(), manager)
        with pytest.raises(VehicleOverlap) as exc:
            store.create(make_reservation(id="r2", driver_id="d2"), manager)
        assert exc.value.context["verdict"] == Verdict.VEHICLE_OVERLAP
        assert "r2" not in repo.reservations

    def test_duplicate_id_rejected(self, store, repo, manager):
        first = store.create(make_reservation(), manager)
        with pytest.raises(DuplicateId) as exc:
            store.create(make_reservation(start="2024-06-20"), manager)
        assert not exc.value.retryable
        assert repo.reservations["r1"] is first

    def test_driver_overlap_rejected(self, store, manager):
        store.create(make_reservation(), manager)
        with pytest.raises(DriverOverlap):
            store.create(make_reservation(id="r2", vehicle_id="v2"), manager)

    def test_regional_without_justification_rejected(self, store, repo, manager):
        with pytest.raises(RegionalRestrictionUnjustified):
            store.create(sao_paulo_monday(), manager)
        with pytest.raises(RegionalRestrictionUnjustified):
            store.create(sao_paulo_monday(), manager, justification="   ")
        assert repo.reservations == {}

    def test_regional_with_justification_audited(self, store, repo, manager):
        saved = store.create(sao_paulo_monday(), manager, justification=" Urgent delivery ")
        assert saved.has_regional_override
        entry = saved.audit[0]
        assert entry.action == AuditAction.REGIONAL_OVERRIDE
        assert entry.reason == "Urgent delivery"
        assert entry.actor_id == "m1"
        assert entry.actor_name == "Marta"
        assert entry.timestamp == NOW
        assert repo.audit_log == [entry]

    def test_notes_stay_free_text(self, store, manager):
        saved = store.create(sao_paulo_monday(), manager, justification="Urgent delivery")
        assert saved.notes == ""

    def test_stale_verdict_snapshot(self, store, manager):
        """The user saw NONE but plate rotation now applies."""
        with pytest.raises(StaleState) as exc:
            store.create(
                sao_paulo_monday(), manager, verdict=Verdict.NONE, justification="Urgent delivery"
            )
        assert exc.value.retryable is True

    def test_hard_block_reported_over_stale_snapshot(self, store, manager):
        store.create(make_reservation(), manager)
        with pytest.raises(VehicleOverlap):
            store.create(make_reservation(id="r2", driver_id="d2"), manager, verdict=Verdict.NONE)

    def test_matching_snapshot_accepted(self, store, manager):
        saved = store.create(make_reservation(), manager, verdict=Verdict.NONE)
        assert saved.version == 1


class TestUpdate:
    """Tests for ReservationStore.update."""

    def test_non_material_change_needs_no_reason(self, store, repo, manager):
        store.create(make_reservation(), manager)
        updated = store.update("r1", manager, {"notes": "Bring the invoice"})
        assert updated.notes == "Bring the invoice"
        assert updated.version == 2
        assert repo.audit_log == []

    def test_does_not_conflict_with_itself(self, store, manager):
        store.create(make_reservation(), manager)
        updated = store.update("r1", manager, {"destination": "Sorocaba"})
        assert updated.destination == "Sorocaba"

    def test_date_change_requires_reason(self, store, repo, manager):
        store.create(make_reservation(), manager)
        with pytest.raises(ReasonRequired):
            store.update("r1", manager, {"start_date": "2024-06-05"})
        assert repo.reservations["r1"].start_date.isoformat() == "2024-06-04"

    def test_date_change_audited(self, store, repo, manager):
        store.create(make_reservation(), manager)
        updated = store.update("r1", manager, {"start_date": "2024-06-05"}, reason="Client moved it")
        assert updated.start_date.isoformat() == "2024-06-05"
        entry = updated.audit[-1]
        assert entry.action == AuditAction.RESERVATION_UPDATED
        assert entry.reason == "Client moved it"
        assert "2024-06-04" in entry.previous_value
        assert "2024-06-05" in entry.new_value
        assert repo.audit_log[-1] == entry

    def test_update_into_conflict_rejected(self, store, repo, manager):
        store.create(make_reservation(), manager)
        store.create(make_reservation(id="r2", vehicle_id="v2", driver_id="d2"), manager)
        with pytest.raises(VehicleOverlap):
            store.update("r2", manager, {"vehicle_id": "v1"}, reason="Swap vehicles")
        assert repo.reservations["r2"].vehicle_id == "v2"

    def test_override_carries_over_non_material_edit(self, store, manager):
        store.create(sao_paulo_monday(), manager, justification="Urgent delivery")
        updated = store.update("r1", manager, {"notes": "Gate 3"})
        assert updated.has_regional_override

    def test_override_must_be_renewed_on_material_edit(self, store, manager):
        store.create(sao_paulo_monday(), manager, justification="Urgent delivery")
        with pytest.raises(RegionalRestrictionUnjustified):
            store.update("r1", manager, {"start_date": NEXT_MONDAY}, reason="Moved a week")
        updated = store.update(
            "r1",
            manager,
            {"start_date": NEXT_MONDAY},
            reason="Moved a week",
            justification="Still urgent",
        )
        overrides = [e for e in updated.audit if e.action == AuditAction.REGIONAL_OVERRIDE]
        assert [e.reason for e in overrides] == ["Urgent delivery", "Still urgent"]

    def test_expected_version_mismatch(self, store, manager):
        store.create(make_reservation(), manager)
        with pytest.raises(StaleState):
            store.update("r1", manager, {"notes": "x"}, expected_version=0)
        updated = store.update("r1", manager, {"notes": "x"}, expected_version=1)
        assert updated.version == 2

    def test_promoted_reservation_is_frozen(self, store, repo, manager):
        store.create(make_reservation(), manager)
        repo.reservations["r1"].promoted_trip_id = "t1"
        with pytest.raises(AlreadyPromoted):
            store.update("r1", manager, {"start_date": "2024-06-05"})


class TestDelete:
    """Tests for ReservationStore.delete."""

    def test_requires_reason(self, store, repo, manager):
        store.create(make_reservation(), manager)
        for reason in (None, "", "   "):
            with pytest.raises(ReasonRequired):
                store.delete("r1", manager, reason)
        assert "r1" in repo.reservations

    def test_delete_audited(self, store, repo, manager):
        store.create(make_reservation(), manager)
        removed = store.delete("r1", manager, "Client postponed")
        assert "r1" not in repo.reservations
        entry = repo.audit_log[-1]
        assert entry.action == AuditAction.RESERVATION_DELETED
        assert entry.entity_id == "r1"
        assert entry.reason == "Client postponed"
        assert removed.audit[-1] == entry

    def test_frees_the_slot(self, store, manager):
        store.create(make_reservation(), manager)
        store.delete("r1", manager, "Client postponed")
        assert store.create(make_reservation(id="r2", driver_id="d2"), manager).id == "r2"

    def test_promoted_cannot_be_deleted(self, store, repo, manager):
        store.create(make_reservation(), manager)
        repo.reservations["r1"].promoted_trip_id = "t1"
        with pytest.raises(AlreadyPromoted):
            store.delete("r1", manager, "Oops")

    def test_expected_version_mismatch(self, store, manager):
        store.create(make_reservation(), manager)
        with pytest.raises(StaleState):
            store.delete("r1", manager, "Client postponed", expected_version=7)
