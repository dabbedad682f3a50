#!/usr/bin/env python3
"""
Command-line dispatch desk for a fleet file.

Commands:
  vehicles   - List vehicles with status, odometer, fuel and rotation day
  schedule   - List reservations
  check      - Classify a proposed reservation without saving it
  reserve    - Book a vehicle and driver
  edit       - Change a reservation
  unreserve  - Delete a reservation
  start      - Promote a reservation to an active trip
  finish     - Complete an active trip
  cancel     - Cancel an active trip
  alerts     - Scan for tire and fuel alerts
  audit      - Show the audit log
"""

import argparse
import sys
from pathlib import Path
from tabulate import tabulate
from typing import Dict, List, Optional

from fleetcore import (
    Actor,
    Candidate,
    Checklist,
    Expenses,
    FleetError,
    FleetRepository,
    Reservation,
    ReservationKind,
    ReservationStore,
    TripLifecycle,
    Verdict,
    load_fleet,
    new_id,
    refresh_alerts,
    save_fleet,
)
from fleetcore.audit import DRIVER, MANAGER

# =============================================================================
# Formatting helpers
# =============================================================================


def format_km(km: Optional[float]) -> str:
    """Format odometer or distance for display."""
    return f"{km:,.0f}" if km is not None else "-"


def format_window(reservation: Reservation) -> str:
    """Format a reservation's dates (single day or range)."""
    start = reservation.start_date.isoformat()
    if reservation.end_date == reservation.start_date:
        return start
    return f"{start} .. {reservation.end_date.isoformat()}"


def truncate(text: Optional[str], max_len: int = 30) -> str:
    """Truncate text with ellipsis if too long."""
    if not text:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def describe_verdict(verdict: Verdict, repo: FleetRepository, vehicle_id: str) -> str:
    """Human-readable message for a verdict."""
    vehicle = repo.get_vehicle(vehicle_id)
    messages = {
        Verdict.MAINTENANCE_BLOCK: f"BLOCKED: vehicle {vehicle.plate} is under maintenance",
        Verdict.VEHICLE_OVERLAP: "CONFLICT: vehicle already booked for these dates",
        Verdict.DRIVER_OVERLAP: "CONFLICT: driver already booked for these dates",
        Verdict.ACTIVE_CONFLICT: "CONFLICT: vehicle or driver is on an active trip on these dates",
        Verdict.REGIONAL_RESTRICTION: (
            f"PLATE ROTATION: {vehicle.plate} is restricted on {vehicle.rotation_day}"
        ),
        Verdict.NONE: "OK",
    }
    return messages[verdict]


def get_actor(args) -> Actor:
    return Actor(id=args.actor, name=args.actor, role=args.role)


def finish(args, repo: FleetRepository, message: str) -> int:
    """Save unless this is a dry run."""
    if args.dry_run:
        print("(dry run - no changes made)")
        return 0
    save_fleet(args.fleet_file, repo)
    print(message)
    return 0


# =============================================================================
# Listing commands
# =============================================================================


def make_vehicle_table(repo: FleetRepository) -> List[List[str]]:
    """Convert vehicles to table rows."""
    rows = []
    for vehicle in sorted(repo.vehicles.values(), key=lambda v: v.plate):
        rows.append(
            [
                vehicle.plate,
                f"{vehicle.brand} {vehicle.model}",
                vehicle.status.value,
                format_km(vehicle.current_odometer),
                f"{vehicle.fuel_level:g}%",
                vehicle.rotation_day,
            ]
        )
    return rows


def cmd_vehicles(args, repo: FleetRepository) -> int:
    """List vehicles."""
    print(f"Vehicles: {len(repo.vehicles)}")
    print()
    headers = ["Plate", "Vehicle", "Status", "Odometer", "Fuel", "Rotation"]
    print(tabulate(make_vehicle_table(repo), headers=headers, tablefmt="simple"))
    return 0


def make_schedule_table(
    reservations: List[Reservation], repo: FleetRepository
) -> List[List[str]]:
    """Convert reservations to table rows."""
    rows = []
    for reservation in reservations:
        vehicle = repo.vehicles.get(reservation.vehicle_id)
        driver = repo.drivers.get(reservation.driver_id)
        rows.append(
            [
                reservation.id,
                format_window(reservation),
                vehicle.plate if vehicle else reservation.vehicle_id,
                driver.name if driver else reservation.driver_id,
                truncate(reservation.destination),
                "override" if reservation.has_regional_override else "-",
                reservation.promoted_trip_id or "-",
            ]
        )
    return rows


def cmd_schedule(args, repo: FleetRepository) -> int:
    """List reservations, soonest first."""
    reservations = list(repo.reservations.values()) if args.all else repo.live_reservations()
    if args.vehicle:
        reservations = [r for r in reservations if r.vehicle_id == args.vehicle]
    reservations.sort(key=lambda r: (r.start_date, r.end_date))

    if not reservations:
        print("No reservations found.")
        return 0

    headers = ["Id", "Dates", "Vehicle", "Driver", "Destination", "Rotation", "Trip"]
    print(tabulate(make_schedule_table(reservations, repo), headers=headers, tablefmt="simple"))
    return 0


def cmd_audit(args, repo: FleetRepository) -> int:
    """Show the audit log, newest first."""
    entries = sorted(repo.audit_log, key=lambda e: e.timestamp, reverse=True)
    if not entries:
        print("No audit entries found.")
        return 0
    rows = [
        [
            e.timestamp.isoformat(timespec="minutes"),
            e.action.value,
            e.entity_id,
            e.actor_name or e.actor_id,
            truncate(e.reason, 40),
        ]
        for e in entries
    ]
    headers = ["When", "Action", "Record", "By", "Reason"]
    print(tabulate(rows, headers=headers, tablefmt="simple"))
    return 0


def cmd_alerts(args, repo: FleetRepository) -> int:
    """Scan for new alerts and list every known one."""
    fresh = refresh_alerts(repo)
    alerts = sorted(repo.notifications.values(), key=lambda a: (a.severity.value, a.key))
    print(f"New alerts: {len(fresh)}")
    print()
    if alerts:
        rows = [[a.severity.name, a.title, a.message] for a in alerts]
        print(tabulate(rows, headers=["Severity", "Alert", "Details"], tablefmt="simple"))
        print()
    if not fresh:
        return 0
    return finish(args, repo, "Alerts saved.")


# =============================================================================
# Reservation commands
# =============================================================================


def check_override_allowed(verdict: Verdict, args) -> Optional[str]:
    """Plate rotation overrides are restricted to managers with a justification."""
    if verdict != Verdict.REGIONAL_RESTRICTION:
        return None
    if args.role != MANAGER:
        return "Booking on a plate rotation day is restricted to managers"
    if not (args.justification or "").strip():
        return "A plate rotation justification is required (--justification)"
    return None


def cmd_check(args, repo: FleetRepository) -> int:
    """Classify a proposed reservation."""
    store = ReservationStore(repo)
    candidate = Candidate(
        args.vehicle, args.driver, args.date, args.end_date, args.destination, args.city, args.state
    )
    verdict = store.evaluate(candidate, exclude_reservation_id=args.exclude)
    print(describe_verdict(verdict, repo, args.vehicle))
    return 0 if not verdict.is_hard_block else 1


def cmd_reserve(args, repo: FleetRepository) -> int:
    """Book a vehicle and driver."""
    kind = ReservationKind.RECURRING_RANGE if args.end_date else ReservationKind.SINGLE
    reservation = Reservation(
        args.id or new_id(),
        args.driver,
        args.vehicle,
        args.date,
        args.end_date,
        kind=kind,
        origin=args.origin,
        destination=args.destination,
        city=args.city,
        state=args.state,
        notes=args.notes or "",
    )
    store = ReservationStore(repo)
    verdict = store.evaluate(Candidate.from_reservation(reservation))
    print(describe_verdict(verdict, repo, reservation.vehicle_id))
    if verdict.is_hard_block:
        return 1
    refusal = check_override_allowed(verdict, args)
    if refusal:
        print(f"Error: {refusal}")
        return 1

    store.create(reservation, get_actor(args), verdict=verdict, justification=args.justification)
    print(f"Reservation {reservation.id}: {format_window(reservation)} -> {reservation.destination}")
    return finish(args, repo, "Reservation saved.")


def reservation_changes(args) -> Dict[str, object]:
    """Fields given on the command line for an edit."""
    changes = {}
    for arg, field in [
        ("vehicle", "vehicle_id"),
        ("driver", "driver_id"),
        ("date", "start_date"),
        ("end_date", "end_date"),
        ("origin", "origin"),
        ("destination", "destination"),
        ("city", "city"),
        ("state", "state"),
        ("notes", "notes"),
    ]:
        value = getattr(args, arg)
        if value is not None:
            changes[field] = value
    if args.end_date:
        changes["kind"] = ReservationKind.RECURRING_RANGE
    return changes


def cmd_edit(args, repo: FleetRepository) -> int:
    """Change a reservation."""
    store = ReservationStore(repo)
    current = repo.get_reservation(args.reservation_id)
    preview = current.replace(**reservation_changes(args))
    verdict = store.evaluate(Candidate.from_reservation(preview), exclude_reservation_id=current.id)
    print(describe_verdict(verdict, repo, preview.vehicle_id))
    if verdict.is_hard_block:
        return 1
    if not current.has_regional_override or preview.material_changes(current):
        refusal = check_override_allowed(verdict, args)
        if refusal:
            print(f"Error: {refusal}")
            return 1

    store.update(
        current.id,
        get_actor(args),
        reservation_changes(args),
        reason=args.reason,
        verdict=verdict,
        justification=args.justification,
    )
    return finish(args, repo, "Reservation updated.")


def cmd_unreserve(args, repo: FleetRepository) -> int:
    """Delete a reservation."""
    store = ReservationStore(repo)
    removed = store.delete(args.reservation_id, get_actor(args), args.reason)
    print(f"Deleting reservation {removed.id}: {format_window(removed)}")
    return finish(args, repo, "Reservation deleted.")


# =============================================================================
# Trip commands
# =============================================================================


def cmd_start(args, repo: FleetRepository) -> int:
    """Promote a reservation to an active trip."""
    checklist = Checklist(
        fuel_level=args.fuel,
        odometer=args.odometer,
        oil_checked=args.oil,
        water_checked=args.water,
        tires_checked=args.tires,
        comments=args.comments or "",
    )
    trip = TripLifecycle(repo).promote(
        args.reservation_id, args.odometer, checklist=checklist, actor=get_actor(args)
    )
    vehicle = repo.get_vehicle(trip.vehicle_id)
    print(f"Trip {trip.id} started: {vehicle.plate} at {format_km(trip.start_odometer)} km")
    return finish(args, repo, "Trip saved.")


def cmd_finish(args, repo: FleetRepository) -> int:
    """Complete an active trip."""
    expenses = Expenses(fuel=args.fuel_expense, other=args.other_expense, notes=args.notes or "")
    trip = TripLifecycle(repo).complete(
        args.trip_id, args.odometer, fuel_level=args.fuel, expenses=expenses
    )
    print(f"Trip {trip.id} completed: {format_km(trip.distance)} km")
    if expenses.total:
        print(f"Expenses: ${expenses.total:,.2f}")
    return finish(args, repo, "Trip saved.")


def cmd_cancel(args, repo: FleetRepository) -> int:
    """Cancel an active trip."""
    trip = TripLifecycle(repo).cancel(args.trip_id, args.reason, actor=get_actor(args))
    print(f"Trip {trip.id} cancelled by {trip.cancelled_by}: {trip.cancellation_reason}")
    return finish(args, repo, "Trip saved.")


# =============================================================================
# Main
# =============================================================================


def add_route_arguments(parser, required: bool) -> None:
    parser.add_argument("--origin", type=str, required=required, help="Departure point")
    parser.add_argument("--destination", type=str, required=required, help="Destination")
    parser.add_argument("--city", type=str, default=None if not required else "", help="City")
    parser.add_argument("--state", type=str, default=None if not required else "", help="State code")
    parser.add_argument("--notes", type=str, help="Notes")


def add_dry_run(parser) -> None:
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would change without saving",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fleet dispatch desk",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s data/fleet.yaml vehicles
  %(prog)s data/fleet.yaml check --vehicle v1 --driver d1 --date 2024-06-03 \\
      --destination "São Paulo, SP"
  %(prog)s data/fleet.yaml reserve --vehicle v1 --driver d1 --date 2024-06-03 \\
      --origin Campinas --destination "Rio de Janeiro"
  %(prog)s data/fleet.yaml --role manager reserve --vehicle v1 --driver d1 \\
      --date 2024-06-03 --origin Campinas --destination "São Paulo" \\
      --justification "Urgent delivery authorized"
  %(prog)s data/fleet.yaml unreserve r1 --reason "Client postponed"
  %(prog)s data/fleet.yaml start r1 --odometer 15200 --fuel 80 --oil --water --tires
  %(prog)s data/fleet.yaml finish abc123 --odometer 15480 --fuel 55
  %(prog)s data/fleet.yaml cancel abc123 --reason "customer no-show"
""",
    )
    parser.add_argument("fleet_file", type=Path, help="Path to fleet YAML file")
    parser.add_argument("--actor", type=str, default="admin", help="Who is acting (default: admin)")
    parser.add_argument(
        "--role",
        choices=[DRIVER, MANAGER],
        default=DRIVER,
        help="Role of the actor (default: driver)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("vehicles", help="List vehicles")

    schedule_parser = subparsers.add_parser("schedule", help="List reservations")
    schedule_parser.add_argument("--vehicle", type=str, help="Only this vehicle id")
    schedule_parser.add_argument(
        "--all", action="store_true", help="Include reservations already started"
    )

    check_parser = subparsers.add_parser("check", help="Classify a proposed reservation")
    check_parser.add_argument("--vehicle", type=str, required=True, help="Vehicle id")
    check_parser.add_argument("--driver", type=str, required=True, help="Driver id")
    check_parser.add_argument("--date", type=str, required=True, help="Start date (YYYY-MM-DD)")
    check_parser.add_argument("--end-date", type=str, help="End date for a range (YYYY-MM-DD)")
    check_parser.add_argument("--destination", type=str, default="", help="Destination")
    check_parser.add_argument("--city", type=str, default="", help="City")
    check_parser.add_argument("--state", type=str, default="", help="State code")
    check_parser.add_argument("--exclude", type=str, help="Reservation id being edited")

    reserve_parser = subparsers.add_parser("reserve", help="Book a vehicle and driver")
    reserve_parser.add_argument("--id", type=str, help="Reservation id (default: generated)")
    reserve_parser.add_argument("--vehicle", type=str, required=True, help="Vehicle id")
    reserve_parser.add_argument("--driver", type=str, required=True, help="Driver id")
    reserve_parser.add_argument("--date", type=str, required=True, help="Start date (YYYY-MM-DD)")
    reserve_parser.add_argument("--end-date", type=str, help="End date for a range (YYYY-MM-DD)")
    add_route_arguments(reserve_parser, required=True)
    reserve_parser.add_argument(
        "--justification", type=str, help="Why booking on a plate rotation day is needed"
    )
    add_dry_run(reserve_parser)

    edit_parser = subparsers.add_parser("edit", help="Change a reservation")
    edit_parser.add_argument("reservation_id", type=str, help="Reservation id")
    edit_parser.add_argument("--vehicle", type=str, help="New vehicle id")
    edit_parser.add_argument("--driver", type=str, help="New driver id")
    edit_parser.add_argument("--date", type=str, help="New start date (YYYY-MM-DD)")
    edit_parser.add_argument("--end-date", type=str, help="New end date (YYYY-MM-DD)")
    add_route_arguments(edit_parser, required=False)
    edit_parser.add_argument("--reason", type=str, help="Why (required for vehicle/driver/date changes)")
    edit_parser.add_argument(
        "--justification", type=str, help="Why booking on a plate rotation day is needed"
    )
    add_dry_run(edit_parser)

    unreserve_parser = subparsers.add_parser("unreserve", help="Delete a reservation")
    unreserve_parser.add_argument("reservation_id", type=str, help="Reservation id")
    unreserve_parser.add_argument("--reason", type=str, required=True, help="Why")
    add_dry_run(unreserve_parser)

    start_parser = subparsers.add_parser("start", help="Start the trip for a reservation")
    start_parser.add_argument("reservation_id", type=str, help="Reservation id")
    start_parser.add_argument("--odometer", type=int, required=True, help="Odometer at departure")
    start_parser.add_argument("--fuel", type=float, required=True, help="Fuel level (0-100)")
    start_parser.add_argument("--oil", action="store_true", help="Oil checked")
    start_parser.add_argument("--water", action="store_true", help="Water checked")
    start_parser.add_argument("--tires", action="store_true", help="Tires checked")
    start_parser.add_argument("--comments", type=str, help="Checklist comments")
    add_dry_run(start_parser)

    finish_parser = subparsers.add_parser("finish", help="Complete an active trip")
    finish_parser.add_argument("trip_id", type=str, help="Trip id")
    finish_parser.add_argument("--odometer", type=int, required=True, help="Odometer at arrival")
    finish_parser.add_argument("--fuel", type=float, help="Fuel level at arrival (0-100)")
    finish_parser.add_argument("--fuel-expense", type=float, default=0, help="Fuel spent")
    finish_parser.add_argument("--other-expense", type=float, default=0, help="Other expenses")
    finish_parser.add_argument("--notes", type=str, help="Expense notes")
    add_dry_run(finish_parser)

    cancel_parser = subparsers.add_parser("cancel", help="Cancel an active trip")
    cancel_parser.add_argument("trip_id", type=str, help="Trip id")
    cancel_parser.add_argument("--reason", type=str, required=True, help="Why")
    add_dry_run(cancel_parser)

    alerts_parser = subparsers.add_parser("alerts", help="Scan for tire and fuel alerts")
    add_dry_run(alerts_parser)

    subparsers.add_parser("audit", help="Show the audit log")

    return parser


COMMANDS = {
    "vehicles": cmd_vehicles,
    "schedule": cmd_schedule,
    "check": cmd_check,
    "reserve": cmd_reserve,
    "edit": cmd_edit,
    "unreserve": cmd_unreserve,
    "start": cmd_start,
    "finish": cmd_finish,
    "cancel": cmd_cancel,
    "alerts": cmd_alerts,
    "audit": cmd_audit,
}


def main(argv=None):
    args = build_parser().parse_args(argv)

    # Validate fleet file exists
    if not args.fleet_file.exists():
        print(f"Error: File not found: {args.fleet_file}")
        return 1

    repo = load_fleet(args.fleet_file)
    try:
        return COMMANDS[args.command](args, repo)
    except FleetError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
