"""
Trip lifecycle: SCHEDULED -> ACTIVE -> COMPLETED | CANCELLED.

A reservation is the SCHEDULED state. promote() opens the trip and puts the
vehicle IN_USE; complete() and cancel() close it and give the vehicle back.
Every transition runs all of its checks before changing anything.
"""

from datetime import datetime
from typing import Callable, Optional

from .alerts import AlertGenerator, refresh_alerts
from .audit import SYSTEM, Actor, AuditEntry, require_reason
from .calendar_rules import LocationMatcher
from .conflicts import Candidate, classify
from .errors import (
    AlreadyPromoted,
    ChecklistIncomplete,
    InvalidTransition,
    OdometerRegression,
    RegionalRestrictionUnjustified,
)
from .intervals import normalize_day
from .repository import FleetRepository, new_id
from .status import AuditAction, VehicleStatus, Verdict
from .trip import Checklist, Expenses, Trip
from .vehicle import Vehicle


def _check_fuel(level: float) -> None:
    if not 0 <= level <= 100:
        raise ValueError(f"Fuel level must be 0-100, got {level}")


class TripLifecycle:
    """State transitions of trips and the vehicle state that follows them."""

    def __init__(
        self,
        repository: FleetRepository,
        location_matcher: Optional[LocationMatcher] = None,
        clock: Callable[[], datetime] = datetime.now,
        alerts: Optional[AlertGenerator] = None,
    ):
        self.repository = repository
        self.location_matcher = location_matcher
        self.clock = clock
        self.alerts = alerts or AlertGenerator()

    def _locks(self, vehicle_id: str, driver_id: str):
        return self.repository.serialized(f"vehicle:{vehicle_id}", f"driver:{driver_id}")

    def _release(self, vehicle: Vehicle) -> None:
        """Give the vehicle back: AVAILABLE unless maintenance still holds it."""
        if self.repository.open_maintenance(vehicle.id):
            vehicle.status = VehicleStatus.MAINTENANCE
        else:
            vehicle.status = VehicleStatus.AVAILABLE

    def _active_trip(self, trip_id: str, action: str) -> Trip:
        trip = self.repository.get_trip(trip_id)
        if not trip.is_active:
            raise InvalidTransition(
                f"Cannot {action} trip {trip_id}: it is {trip.trip_state.name}", trip_id=trip_id
            )
        return trip

    def promote(
        self,
        reservation_id: str,
        start_odometer: int,
        start_time: Optional[datetime] = None,
        checklist: Optional[Checklist] = None,
        actor: Optional[Actor] = None,
        trip_id: Optional[str] = None,
    ) -> Trip:
        """
        Start the trip for a reservation.

        The reservation is classified again with every active trip counting
        as a conflict, so a vehicle or driver can only be on one trip at a
        time. A plate rotation restriction passes only if the reservation
        was justified when booked. The trip's planned arrival is the
        reservation's last day, so a range booking keeps its whole window.

        Raises:
            AlreadyPromoted, MaintenanceBlock, VehicleOverlap, DriverOverlap,
            ActiveConflict, RegionalRestrictionUnjustified,
            OdometerRegression (start below the vehicle's odometer),
            ChecklistIncomplete (oil, water or tires unchecked),
            DuplicateId (trip_id already taken)
        """
        repo = self.repository
        reservation = repo.get_reservation(reservation_id)
        with self._locks(reservation.vehicle_id, reservation.driver_id):
            if reservation.is_promoted:
                raise AlreadyPromoted(
                    f"Reservation {reservation_id} became trip {reservation.promoted_trip_id}",
                    reservation_id=reservation_id,
                )
            vehicle = repo.get_vehicle(reservation.vehicle_id)
            verdict = classify(
                Candidate.from_reservation(reservation),
                repo.live_reservations(),
                repo.active_trips(),
                vehicle,
                exclude_reservation_id=reservation.id,
                maintenance_records=repo.open_maintenance(vehicle.id),
                location_matcher=self.location_matcher,
                any_active=True,
            )
            if verdict.is_hard_block:
                raise verdict.error(
                    f"{verdict.name}: cannot start reservation {reservation_id}",
                    verdict=verdict,
                    reservation_id=reservation_id,
                )
            if verdict == Verdict.REGIONAL_RESTRICTION and not reservation.has_regional_override:
                raise RegionalRestrictionUnjustified(
                    f"Plate rotation applies to {vehicle.plate} on "
                    f"{reservation.start_date.isoformat()} and the booking was not justified",
                    reservation_id=reservation_id,
                )
            if start_odometer < vehicle.current_odometer:
                raise OdometerRegression(
                    f"Start odometer {start_odometer} is below current {vehicle.current_odometer}",
                    vehicle_id=vehicle.id,
                )
            if checklist is not None:
                if not checklist.is_complete:
                    raise ChecklistIncomplete(
                        "Unchecked items: " + ", ".join(checklist.missing_items),
                        missing=checklist.missing_items,
                    )
                _check_fuel(checklist.fuel_level)
            trip_id = trip_id or new_id()
            repo.ensure_new(repo.trips, trip_id, "Trip")

            trip = Trip(
                id=trip_id,
                driver_id=reservation.driver_id,
                vehicle_id=reservation.vehicle_id,
                start_time=start_time or self.clock(),
                start_odometer=start_odometer,
                reservation_id=reservation.id,
                origin=reservation.origin,
                destination=reservation.destination,
                city=reservation.city,
                state=reservation.state,
                waypoints=list(reservation.waypoints),
                planned_arrival=normalize_day(reservation.end_date),
            )
            vehicle.status = VehicleStatus.IN_USE
            vehicle.current_odometer = start_odometer
            if checklist is not None:
                vehicle.fuel_level = checklist.fuel_level
                vehicle.last_checklist = checklist
            reservation.promoted_trip_id = trip.id

            repo.save_trip(trip)
            repo.save_vehicle(vehicle)
            repo.save_reservation(reservation)

        refresh_alerts(repo, self.alerts)
        return trip

    def complete(
        self,
        trip_id: str,
        end_odometer: int,
        end_time: Optional[datetime] = None,
        fuel_level: Optional[float] = None,
        expenses: Optional[Expenses] = None,
    ) -> Trip:
        """
        Close a trip that reached its destination.

        end_odometer equal to the start odometer is allowed (zero-distance
        trip, e.g. a test run); lower raises OdometerRegression.
        """
        repo = self.repository
        trip = repo.get_trip(trip_id)
        with self._locks(trip.vehicle_id, trip.driver_id):
            trip = self._active_trip(trip_id, "complete")
            vehicle = repo.get_vehicle(trip.vehicle_id)
            if end_odometer < trip.start_odometer:
                raise OdometerRegression(
                    f"End odometer {end_odometer} is below start {trip.start_odometer}",
                    trip_id=trip_id,
                )
            if end_odometer < vehicle.current_odometer:
                raise OdometerRegression(
                    f"End odometer {end_odometer} is below current {vehicle.current_odometer}",
                    vehicle_id=vehicle.id,
                )
            if fuel_level is not None:
                _check_fuel(fuel_level)
            expenses = expenses or Expenses()

            trip.end_time = end_time or self.clock()
            trip.end_odometer = end_odometer
            trip.distance = end_odometer - trip.start_odometer
            trip.fuel_expense = expenses.fuel
            trip.other_expense = expenses.other
            trip.expense_notes = expenses.notes

            self._release(vehicle)
            vehicle.current_odometer = end_odometer
            if fuel_level is not None:
                vehicle.fuel_level = fuel_level

            repo.save_trip(trip)
            repo.save_vehicle(vehicle)

        refresh_alerts(repo, self.alerts)
        return trip

    def cancel(
        self,
        trip_id: str,
        reason: str,
        actor: Optional[Actor] = None,
        cancelled_at: Optional[datetime] = None,
    ) -> Trip:
        """Cancel an active trip. The vehicle never moved: odometer and fuel stay."""
        reason = require_reason(reason, "cancel a trip")
        actor = actor or SYSTEM
        repo = self.repository
        trip = repo.get_trip(trip_id)
        with self._locks(trip.vehicle_id, trip.driver_id):
            trip = self._active_trip(trip_id, "cancel")
            vehicle = repo.get_vehicle(trip.vehicle_id)
            now = cancelled_at or self.clock()

            trip.is_cancelled = True
            trip.cancellation_reason = reason
            trip.cancelled_by = actor.name
            trip.end_time = now
            entry = AuditEntry.record(AuditAction.CANCELLED, reason, actor, trip.id, now)
            trip.audit.append(entry)
            self._release(vehicle)

            repo.save_trip(trip)
            repo.save_vehicle(vehicle)
            repo.record_audit(entry)

        refresh_alerts(repo, self.alerts)
        return trip

    def change_route(
        self,
        trip_id: str,
        destination: str,
        reason: str,
        actor: Actor,
        city: Optional[str] = None,
        state: Optional[str] = None,
    ) -> Trip:
        """Re-route an active trip, keeping the old destination in the audit trail."""
        reason = require_reason(reason, "change a trip's route")
        repo = self.repository
        trip = repo.get_trip(trip_id)
        with self._locks(trip.vehicle_id, trip.driver_id):
            trip = self._active_trip(trip_id, "re-route")
            entry = AuditEntry.record(
                AuditAction.ROUTE_CHANGE,
                reason,
                actor,
                trip.id,
                self.clock(),
                previous_value=trip.destination,
                new_value=destination,
            )
            trip.destination = destination
            if city is not None:
                trip.city = city
            if state is not None:
                trip.state = state
            trip.audit.append(entry)
            repo.save_trip(trip)
            repo.record_audit(entry)
        return trip
