"""Flask JSON API for the dispatch desk."""

import os
from pathlib import Path
from typing import Optional

from flask import Flask, jsonify, request

# Add parent directory to path for fleetcore imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from fleetcore import (
    Actor,
    Candidate,
    Checklist,
    DuplicateId,
    Expenses,
    FleetError,
    HardBlock,
    NotFound,
    Reservation,
    ReservationKind,
    ReservationStore,
    StaleState,
    TripLifecycle,
    Verdict,
    load_fleet,
    new_id,
    save_fleet,
)
from fleetcore.audit import DRIVER

app = Flask(__name__)
app.secret_key = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-prod")

# Fleet file (relative to project root unless FLEET_FILE is set)
app.config["FLEET_FILE"] = Path(
    os.environ.get("FLEET_FILE", Path(__file__).parent.parent / "data" / "fleet.yaml")
)
app.config["REPOSITORY"] = None


def get_repository():
    """The fleet loaded from FLEET_FILE, kept for the life of the app."""
    repo = app.config["REPOSITORY"]
    if repo is None:
        repo = load_fleet(app.config["FLEET_FILE"])
        app.config["REPOSITORY"] = repo
    return repo


def persist():
    save_fleet(app.config["FLEET_FILE"], get_repository())


def get_payload() -> dict:
    return request.get_json(silent=True) or {}


def parse_verdict(payload: dict) -> Optional[Verdict]:
    """Verdict the client showed the user, if it sent one."""
    name = payload.get("verdict")
    if not name:
        return None
    try:
        return Verdict[name]
    except KeyError:
        raise ValueError(f"Unknown verdict: {name}") from None


def get_actor(payload: dict) -> Actor:
    """Actor from the request body, e.g. {"actor": {"id": "u1", "name": "Ana", "role": "manager"}}."""
    actor = payload.get("actor") or {}
    actor_id = actor.get("id", "web")
    return Actor(id=actor_id, name=actor.get("name", actor_id), role=actor.get("role", DRIVER))


def error_status(error: FleetError) -> int:
    if isinstance(error, NotFound):
        return 404
    if isinstance(error, (HardBlock, StaleState, DuplicateId)):
        return 409
    return 422


def reservation_json(reservation: Reservation) -> dict:
    return {
        "id": reservation.id,
        "vehicleId": reservation.vehicle_id,
        "driverId": reservation.driver_id,
        "kind": reservation.kind.value,
        "startDate": reservation.start_date.isoformat(),
        "endDate": reservation.end_date.isoformat(),
        "origin": reservation.origin,
        "destination": reservation.destination,
        "city": reservation.city,
        "state": reservation.state,
        "regionalOverride": reservation.has_regional_override,
        "promotedTripId": reservation.promoted_trip_id,
        "version": reservation.version,
    }


def trip_json(trip) -> dict:
    return {
        "id": trip.id,
        "vehicleId": trip.vehicle_id,
        "driverId": trip.driver_id,
        "reservationId": trip.reservation_id,
        "tripState": trip.trip_state.name,
        "startOdometer": trip.start_odometer,
        "endOdometer": trip.end_odometer,
        "distance": trip.distance,
        "destination": trip.destination,
        "city": trip.city,
        "state": trip.state,
        "plannedArrival": trip.planned_arrival.isoformat() if trip.planned_arrival else None,
        "cancellationReason": trip.cancellation_reason,
        "cancelledBy": trip.cancelled_by,
        "totalExpenses": trip.total_expenses,
        "version": trip.version,
    }


def verdict_json(verdict: Verdict) -> dict:
    return {
        "verdict": verdict.name,
        "hardBlock": verdict.is_hard_block,
        "requiresJustification": verdict == Verdict.REGIONAL_RESTRICTION,
    }


def override_refused(verdict: Verdict, actor: Actor, justification):
    """403 response when a non-manager tries to justify a plate rotation booking."""
    if verdict == Verdict.REGIONAL_RESTRICTION and justification and not actor.is_manager:
        app.logger.warning("Plate rotation override refused for %s", actor.id)
        return jsonify({"error": "Plate rotation overrides are restricted to managers"}), 403
    return None


@app.errorhandler(FleetError)
def handle_fleet_error(error: FleetError):
    status = error_status(error)
    app.logger.warning("Rejected %s %s: %s", request.method, request.path, error)
    return (
        jsonify(
            {
                "error": str(error),
                "type": type(error).__name__,
                "retryable": error.retryable,
            }
        ),
        status,
    )


@app.errorhandler(ValueError)
def handle_bad_value(error: ValueError):
    return jsonify({"error": str(error), "type": "ValueError", "retryable": False}), 400


@app.errorhandler(KeyError)
def handle_missing_field(error: KeyError):
    return jsonify({"error": f"Missing field: {error.args[0]}", "type": "KeyError", "retryable": False}), 400


# =============================================================================
# Reservations
# =============================================================================


def candidate_from(payload: dict) -> Candidate:
    return Candidate(
        vehicle_id=payload["vehicleId"],
        driver_id=payload["driverId"],
        start_date=payload["startDate"],
        end_date=payload.get("endDate"),
        destination=payload.get("destination", ""),
        city=payload.get("city", ""),
        state=payload.get("state", ""),
    )


@app.route("/api/reservations/check", methods=["POST"])
def check_reservation():
    """Advisory verdict for a proposed reservation; nothing is written."""
    payload = get_payload()
    store = ReservationStore(get_repository())
    verdict = store.evaluate(candidate_from(payload), payload.get("excludeReservationId"))
    return jsonify(verdict_json(verdict))


@app.route("/api/reservations", methods=["POST"])
def create_reservation():
    payload = get_payload()
    actor = get_actor(payload)
    end_date = payload.get("endDate")
    reservation = Reservation(
        payload.get("id") or new_id(),
        payload["driverId"],
        payload["vehicleId"],
        payload["startDate"],
        end_date,
        kind=ReservationKind.RECURRING_RANGE if end_date else ReservationKind.SINGLE,
        origin=payload.get("origin", ""),
        destination=payload.get("destination", ""),
        city=payload.get("city", ""),
        state=payload.get("state", ""),
        notes=payload.get("notes", ""),
        waypoints=payload.get("waypoints"),
    )
    store = ReservationStore(get_repository())
    verdict = parse_verdict(payload)
    justification = payload.get("justification")

    refused = override_refused(
        store.evaluate(Candidate.from_reservation(reservation)), actor, justification
    )
    if refused:
        return refused

    store.create(reservation, actor, verdict=verdict, justification=justification)
    persist()
    return jsonify(reservation_json(reservation)), 201


RESERVATION_FIELDS = {
    "vehicleId": "vehicle_id",
    "driverId": "driver_id",
    "startDate": "start_date",
    "endDate": "end_date",
    "origin": "origin",
    "destination": "destination",
    "city": "city",
    "state": "state",
    "notes": "notes",
    "waypoints": "waypoints",
}


@app.route("/api/reservations/<reservation_id>", methods=["PATCH"])
def update_reservation(reservation_id: str):
    payload = get_payload()
    actor = get_actor(payload)
    changes = {
        field: payload[key] for key, field in RESERVATION_FIELDS.items() if key in payload
    }
    if payload.get("endDate"):
        changes["kind"] = ReservationKind.RECURRING_RANGE
    if "kind" in payload:
        changes["kind"] = ReservationKind(payload["kind"])

    repo = get_repository()
    store = ReservationStore(repo)
    preview = repo.get_reservation(reservation_id).replace(**changes)
    justification = payload.get("justification")
    refused = override_refused(
        store.evaluate(Candidate.from_reservation(preview), reservation_id), actor, justification
    )
    if refused:
        return refused

    updated = store.update(
        reservation_id,
        actor,
        changes,
        reason=payload.get("reason"),
        verdict=parse_verdict(payload),
        justification=justification,
        expected_version=payload.get("version"),
    )
    persist()
    return jsonify(reservation_json(updated))


@app.route("/api/reservations/<reservation_id>", methods=["DELETE"])
def delete_reservation(reservation_id: str):
    payload = get_payload()
    store = ReservationStore(get_repository())
    removed = store.delete(
        reservation_id,
        get_actor(payload),
        payload.get("reason"),
        expected_version=payload.get("version"),
    )
    persist()
    return jsonify(reservation_json(removed))


# =============================================================================
# Trips
# =============================================================================


@app.route("/api/reservations/<reservation_id>/promote", methods=["POST"])
def promote_reservation(reservation_id: str):
    """Start the trip for a reservation."""
    payload = get_payload()
    checklist = None
    if payload.get("checklist"):
        items = payload["checklist"]
        checklist = Checklist(
            fuel_level=items["fuelLevel"],
            odometer=payload["startOdometer"],
            oil_checked=items.get("oilChecked", False),
            water_checked=items.get("waterChecked", False),
            tires_checked=items.get("tiresChecked", False),
            comments=items.get("comments", ""),
            damage_description=items.get("damageDescription"),
        )
    trip = TripLifecycle(get_repository()).promote(
        reservation_id,
        payload["startOdometer"],
        checklist=checklist,
        actor=get_actor(payload),
    )
    persist()
    return jsonify(trip_json(trip)), 201


@app.route("/api/trips/<trip_id>/complete", methods=["POST"])
def complete_trip(trip_id: str):
    payload = get_payload()
    expenses = Expenses(
        fuel=payload.get("fuelExpense", 0),
        other=payload.get("otherExpense", 0),
        notes=payload.get("expenseNotes", ""),
    )
    trip = TripLifecycle(get_repository()).complete(
        trip_id, payload["endOdometer"], fuel_level=payload.get("fuelLevel"), expenses=expenses
    )
    persist()
    return jsonify(trip_json(trip))


@app.route("/api/trips/<trip_id>/cancel", methods=["POST"])
def cancel_trip(trip_id: str):
    payload = get_payload()
    trip = TripLifecycle(get_repository()).cancel(
        trip_id, payload.get("reason"), actor=get_actor(payload)
    )
    persist()
    return jsonify(trip_json(trip))


# =============================================================================
# Fleet state
# =============================================================================


@app.route("/api/vehicles")
def list_vehicles():
    repo = get_repository()
    vehicles = sorted(repo.vehicles.values(), key=lambda v: v.plate)
    return jsonify(
        [
            {
                "id": v.id,
                "plate": v.plate,
                "name": v.name,
                "status": v.status.value,
                "currentOdometer": v.current_odometer,
                "fuelLevel": v.fuel_level,
                "rotationDay": v.rotation_day,
                "version": v.version,
            }
            for v in vehicles
        ]
    )


@app.route("/api/alerts")
def list_alerts():
    """Every known alert, most severe first."""
    repo = get_repository()
    alerts = sorted(repo.notifications.values(), key=lambda a: (a.severity.value, a.key))
    return jsonify(
        [
            {
                "key": a.key,
                "kind": a.kind,
                "severity": a.severity.name,
                "vehicleId": a.vehicle_id,
                "title": a.title,
                "message": a.message,
            }
            for a in alerts
        ]
    )


if __name__ == "__main__":
    # Run with debug mode for development
    # Using 5001 to avoid conflict with macOS AirPlay Receiver on 5000
    app.run(debug=True, host="0.0.0.0", port=5001)
