"""ReservationStore: validated create, update and delete of reservations."""

from datetime import datetime
from typing import Any, Callable, Dict, Optional

from .audit import Actor, AuditEntry, require_reason
from .calendar_rules import LocationMatcher
from .conflicts import Candidate, classify
from .errors import AlreadyPromoted, RegionalRestrictionUnjustified, StaleState
from .repository import FleetRepository
from .reservation import Reservation
from .status import AuditAction, Verdict


def _describe(reservation: Reservation) -> str:
    dates = reservation.start_date.isoformat()
    if reservation.end_date != reservation.start_date:
        dates += f"..{reservation.end_date.isoformat()}"
    return f"vehicle={reservation.vehicle_id} driver={reservation.driver_id} {dates}"


class ReservationStore:
    """
    Owns scheduled reservations.

    evaluate() is the advisory check a form can call on every change. The
    authoritative check runs again inside create/update/delete, serialized
    on the vehicle and driver involved, right before anything is written.
    """

    def __init__(
        self,
        repository: FleetRepository,
        location_matcher: Optional[LocationMatcher] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.repository = repository
        self.location_matcher = location_matcher
        self.clock = clock

    def evaluate(self, candidate: Candidate, exclude_reservation_id: Optional[str] = None) -> Verdict:
        """Classify a candidate against the current reservations, trips and vehicle."""
        repo = self.repository
        return classify(
            candidate,
            repo.live_reservations(),
            repo.active_trips(),
            repo.get_vehicle(candidate.vehicle_id),
            exclude_reservation_id=exclude_reservation_id,
            maintenance_records=repo.open_maintenance(candidate.vehicle_id),
            location_matcher=self.location_matcher,
        )

    def _lock_keys(self, *reservations: Reservation):
        keys = []
        for r in reservations:
            keys += [f"vehicle:{r.vehicle_id}", f"driver:{r.driver_id}"]
        return keys

    def _revalidate(
        self,
        reservation: Reservation,
        snapshot: Optional[Verdict],
        justification: Optional[str],
        has_override: bool,
        exclude_reservation_id: Optional[str] = None,
    ) -> Verdict:
        """Fresh verdict for a commit. Raises unless it may be written."""
        verdict = self.evaluate(Candidate.from_reservation(reservation), exclude_reservation_id)
        if verdict.is_hard_block:
            raise verdict.error(
                f"{verdict.name}: {_describe(reservation)}",
                verdict=verdict,
                reservation_id=reservation.id,
            )
        if snapshot is not None and snapshot != verdict:
            raise StaleState(
                f"Verdict changed from {snapshot.name} to {verdict.name}; re-check and retry",
                verdict=verdict,
                reservation_id=reservation.id,
            )
        if verdict == Verdict.REGIONAL_RESTRICTION and not has_override:
            if justification is None or not justification.strip():
                raise RegionalRestrictionUnjustified(
                    f"Plate rotation applies on {reservation.start_date.isoformat()}; "
                    "a justification is required",
                    verdict=verdict,
                    reservation_id=reservation.id,
                )
        return verdict

    def _audit(
        self,
        reservation: Reservation,
        action: AuditAction,
        reason: str,
        actor: Actor,
        previous_value: Optional[str] = None,
        new_value: Optional[str] = None,
    ) -> AuditEntry:
        entry = AuditEntry.record(
            action,
            reason,
            actor,
            reservation.id,
            self.clock(),
            previous_value=previous_value,
            new_value=new_value,
        )
        reservation.audit.append(entry)
        self.repository.record_audit(entry)
        return entry

    def create(
        self,
        reservation: Reservation,
        actor: Actor,
        verdict: Optional[Verdict] = None,
        justification: Optional[str] = None,
    ) -> Reservation:
        """
        Store a new reservation.

        Args:
            verdict: The verdict the caller showed the user, if any. A commit
                whose fresh verdict differs raises StaleState.
            justification: Required when plate rotation applies.

        Raises DuplicateId if the reservation id is already taken.
        """
        with self.repository.serialized(*self._lock_keys(reservation)):
            self.repository.ensure_new(self.repository.reservations, reservation.id, "Reservation")
            fresh = self._revalidate(reservation, verdict, justification, has_override=False)
            saved = self.repository.save_reservation(reservation)
            if fresh == Verdict.REGIONAL_RESTRICTION:
                self._audit(saved, AuditAction.REGIONAL_OVERRIDE, justification, actor)
            return saved

    def update(
        self,
        reservation_id: str,
        actor: Actor,
        changes: Dict[str, Any],
        reason: Optional[str] = None,
        verdict: Optional[Verdict] = None,
        justification: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Reservation:
        """
        Change fields of a reservation and re-validate it against everything else.

        Changing the vehicle, driver, kind or either date requires a reason,
        recorded in the audit trail. A plate rotation override carries over
        only when none of those fields change.
        """
        current = self.repository.get_reservation(reservation_id)
        updated = current.replace(**changes)
        material = updated.material_changes(current)

        with self.repository.serialized(*self._lock_keys(current, updated)):
            if self.repository.reservations.get(reservation_id) is not current:
                raise StaleState(
                    f"Reservation {reservation_id} changed since it was read",
                    reservation_id=reservation_id,
                )
            if current.is_promoted:
                raise AlreadyPromoted(
                    f"Reservation {reservation_id} became trip {current.promoted_trip_id}",
                    reservation_id=reservation_id,
                )
            if expected_version is not None and expected_version != current.version:
                raise StaleState(
                    f"Reservation {reservation_id} is at version {current.version}, "
                    f"expected {expected_version}",
                    reservation_id=reservation_id,
                )
            if material:
                reason = require_reason(reason, "change a reservation's " + ", ".join(material))
            fresh = self._revalidate(
                updated,
                verdict,
                justification,
                has_override=current.has_regional_override and not material,
                exclude_reservation_id=reservation_id,
            )
            saved = self.repository.save_reservation(updated)
            if material:
                self._audit(
                    saved,
                    AuditAction.RESERVATION_UPDATED,
                    reason,
                    actor,
                    previous_value=_describe(current),
                    new_value=_describe(updated),
                )
            if fresh == Verdict.REGIONAL_RESTRICTION and justification and justification.strip():
                self._audit(saved, AuditAction.REGIONAL_OVERRIDE, justification, actor)
            return saved

    def delete(
        self,
        reservation_id: str,
        actor: Actor,
        reason: str,
        expected_version: Optional[int] = None,
    ) -> Reservation:
        """Remove a reservation that has not been promoted. A reason is required."""
        current = self.repository.get_reservation(reservation_id)
        with self.repository.serialized(*self._lock_keys(current)):
            if current.is_promoted:
                raise AlreadyPromoted(
                    f"Reservation {reservation_id} became trip {current.promoted_trip_id}",
                    reservation_id=reservation_id,
                )
            reason = require_reason(reason, "delete a reservation")
            removed = self.repository.delete_reservation(reservation_id, expected_version)
            self._audit(
                removed,
                AuditAction.RESERVATION_DELETED,
                reason,
                actor,
                previous_value=_describe(removed),
            )
            return removed
