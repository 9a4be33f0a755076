"""Command-line interface for the farm store.

Every command works on one identity's document: the shared demo document by
default, or a user's own with --user.
"""

import argparse
import asyncio
import json
import logging

from pydantic import ValidationError

from porkyfarm.core.config import get_farm_today
from porkyfarm.core.units import format_currency, format_quantity, format_weight
from porkyfarm.data.dashboard import Dashboard
from porkyfarm.data.derived import describe_animal, gestation_progress
from porkyfarm.data.feed import stock_percent
from porkyfarm.data.models import CATEGORIES
from porkyfarm.data.schemas import field_errors
from porkyfarm.data.status import StatusTransitionError
from porkyfarm.data.store import DuplicateIdentifierError, FarmStore, UnknownStockError
from porkyfarm.notify import send_weekly_report


def _print_validation(error: ValidationError) -> None:
    print("Error: invalid input")
    for name, message in field_errors(error).items():
        print(f"  {name}: {message}")


def _report_save(store: FarmStore) -> None:
    if not store.is_durable:
        result = store.last_save
        if result is not None and result.conflict:
            print("Warning: the document changed on disk; this change was NOT saved. Run again to reload.")
        else:
            print("Warning: this change could not be saved to disk.")


# =============================================================================
# Animals
# =============================================================================


async def cmd_animals(store: FarmStore, args: argparse.Namespace) -> None:
    if args.action == "list":
        animals = store.animals_by_category(args.category) if args.category else store.list("animals")
        today = get_farm_today()
        rows = [describe_animal(a, today) for a in animals]
        if args.json:
            print(json.dumps(rows, indent=2, default=str))
            return
        if not rows:
            print("No animals found.")
            return
        print(f"{'ID':<18} {'Tag':<10} {'Name':<14} {'Category':<16} {'Status':<10} {'Weight':<10} Age")
        print("-" * 96)
        for a in rows:
            print(
                f"{a['id']:<18} {a['identifier']:<10} {a['name']:<14} {a['category']:<16} "
                f"{a['status']:<10} {format_weight(a.get('weight')):<10} {a['age']}"
            )

    elif args.action == "add":
        payload = {"identifier": args.identifier, "name": args.name, "category": args.category}
        if args.breed:
            payload["breed"] = args.breed
        if args.birth_date:
            payload["birth_date"] = args.birth_date
        if args.weight is not None:
            payload["weight"] = args.weight
        try:
            animal = store.add_animal(payload)
        except ValidationError as e:
            _print_validation(e)
            return
        except DuplicateIdentifierError as e:
            print(f"Error: {e}")
            return
        print(f"Added {animal['name']} ({animal['identifier']}) as {animal['id']}")
        _report_save(store)

    elif args.action in ("sell", "dead"):
        operation = store.sell_animal if args.action == "sell" else store.mark_animal_deceased
        animal = operation(args.id)
        if animal is None:
            print(f"Error: no animal with id {args.id}")
            return
        print(f"{animal['name']} is now {animal['status']}")
        _report_save(store)


# =============================================================================
# Health
# =============================================================================


async def cmd_health(store: FarmStore, args: argparse.Namespace) -> None:
    if args.action == "open":
        try:
            case = store.add_health_case(
                {"animal_id": args.animal_id, "issue": args.issue, "priority": args.priority}
            )
        except ValidationError as e:
            _print_validation(e)
            return
        animal = store.get("animals", args.animal_id)
        print(f"Opened case {case['id']} for {case['animal_name']} ({case['priority']})")
        if animal is not None:
            print(f"  Animal status: {animal['status']}, health: {animal['health_status']}")
        _report_save(store)

    elif args.action == "resolve":
        case = store.resolve_health_case(args.id)
        if case is None:
            print(f"Error: no health case with id {args.id}")
            return
        print(f"Resolved case {case['id']} ({case['issue']})")
        _report_save(store)

    elif args.action == "list":
        cases = store.list("health_cases") if args.all else store.active_health_cases()
        if not cases:
            print("No health cases.")
            return
        for c in cases:
            print(f"{c['id']:<18} {c['animal_name']:<14} {c['priority']:<9} {c['status']:<12} {c['issue']}")


# =============================================================================
# Reproduction
# =============================================================================


async def cmd_gestation(store: FarmStore, args: argparse.Namespace) -> None:
    if args.action == "start":
        payload = {"sow_id": args.sow_id, "breeding_date": args.date or get_farm_today().isoformat()}
        if args.boar:
            payload["boar_id"] = args.boar
        try:
            gestation = store.add_gestation(payload)
        except ValidationError as e:
            _print_validation(e)
            return
        print(f"Gestation {gestation['id']} for {gestation['sow_name']}, due {gestation['expected_due_date']}")
        _report_save(store)

    elif args.action == "complete":
        try:
            gestation = store.complete_gestation(args.id, args.piglets, args.survived)
        except ValidationError as e:
            _print_validation(e)
            return
        if gestation is None:
            print(f"Error: no gestation with id {args.id}")
            return
        print(
            f"{gestation['sow_name']}: {gestation['piglets_survived']}/{gestation['piglet_count']} piglets "
            f"({gestation['status']})"
        )
        _report_save(store)

    elif args.action == "list":
        gestations = store.active_gestations()
        if not gestations:
            print("No active gestations.")
            return
        today = get_farm_today()
        print(f"{'ID':<18} {'Sow':<14} {'Bred':<12} {'Due':<12} {'Day':>5} {'%':>6}  Stage")
        print("-" * 80)
        for g in gestations:
            p = gestation_progress(g["breeding_date"], today)
            stage = "overdue" if p["overdue"] else p["stage"]
            print(
                f"{g['id']:<18} {g['sow_name']:<14} {g['breeding_date']:<12} {g['expected_due_date']:<12} "
                f"{p['elapsed_days']:>5} {p['percent']:>5.1f}%  {stage}"
            )


# =============================================================================
# Dashboard
# =============================================================================


async def cmd_dashboard(store: FarmStore, args: argparse.Namespace) -> None:
    dashboard = Dashboard(store)
    stats = dashboard.stats()
    if args.json:
        print(json.dumps({"stats": stats, "alerts": dashboard.alerts()}, indent=2, default=str))
        return

    print("=" * 50)
    print(f"PorkyFarm dashboard ({'demo' if store.is_demo else store.user_id})")
    print("=" * 50)
    print(f"Animals: {stats['total_animals']}")
    for category in CATEGORIES:
        print(f"  {category}: {stats['by_category'].get(category, 0)}")
    print(f"Healthy: {stats['healthy']}   Sick: {stats['sick']}")
    print(f"Open health cases: {stats['active_health_cases']}")
    print(f"Active gestations: {stats['active_gestations']} ({stats['upcoming_births']} due within 14 days)")
    print(f"Feed cost this month: {format_currency(stats['monthly_feeding_cost'])}")
    print(
        f"Feed stock: {format_quantity(stats['total_feed_stock'])} "
        f"(~{format_quantity(stats['daily_feed_need'])}/day, {stats['days_of_stock']} days)"
    )
    print(f"Alerts: {stats['alert_count']}")


async def cmd_alerts(store: FarmStore, args: argparse.Namespace) -> None:
    alerts = Dashboard(store).alerts()
    if not alerts:
        print("No alerts.")
        return
    for a in alerts:
        print(f"[{a['priority'].upper():<8}] {a['title']}: {a['description']}")


async def cmd_activity(store: FarmStore, args: argparse.Namespace) -> None:
    activities = store.recent_activities(args.limit)
    if not activities:
        print("No recent activity.")
        return
    for a in activities:
        print(f"{a['created_at'][:16].replace('T', ' ')}  {a['title']}: {a['description']}")


# =============================================================================
# Feed
# =============================================================================


def _parse_ingredient(value: str) -> dict:
    stock_id, _, qty = value.partition(":")
    try:
        return {"stock_id": stock_id, "qty": float(qty)}
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"expected STOCK_ID:QTY, got {value!r}") from e


async def cmd_feed(store: FarmStore, args: argparse.Namespace) -> None:
    if args.action == "stock":
        rows = store.list("feed_stock")
        if not rows:
            print("No feed stock recorded.")
            return
        for row in rows:
            print(
                f"{row['id']:<18} {row['name']:<18} {format_quantity(row['current_qty']):>10} / "
                f"{format_quantity(row['max_qty']):<10} {stock_percent(row):>5.0f}%"
            )

    elif args.action == "consume":
        try:
            record = store.record_consumption(args.stock_id, args.quantity, args.category or "", args.count)
        except ValidationError as e:
            _print_validation(e)
            return
        if record is None:
            print(f"Error: no feed stock with id {args.stock_id}")
            return
        print(f"Recorded {format_quantity(record['quantity'])} of {record['stock_name']}")
        _report_save(store)

    elif args.action == "produce":
        try:
            production = store.record_feed_production(args.quantity, args.ingredient or [], args.notes or "")
        except ValidationError as e:
            _print_validation(e)
            return
        except UnknownStockError as e:
            print(f"Error: {e}")
            return
        print(
            f"Produced {format_quantity(production['total_produced'])} of compound feed "
            f"for {format_currency(production['cost_total'])}"
        )
        _report_save(store)


# =============================================================================
# Report / reset
# =============================================================================


async def cmd_report(store: FarmStore, args: argparse.Namespace) -> None:
    dashboard = Dashboard(store)
    result = await send_weekly_report(args.email, dashboard.stats(), dashboard.alerts(), farm_name=args.farm)
    if result.success:
        print(f"Report sent to {args.email} (id {result.message_id})")
    else:
        print(f"Error: report not sent after {result.attempts} attempt(s): {result.error}")


async def cmd_reset(store: FarmStore, args: argparse.Namespace) -> None:
    result = store.reset()
    if result.ok:
        print("Store reset.")
    else:
        print(f"Error: reset not saved ({'conflict' if result.conflict else result.error})")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="PorkyFarm farm records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  porkyfarm animals list                       List the demo herd
  porkyfarm --user alice animals add --identifier TR-001 --name Bella --category breeding_female
  porkyfarm health open <animal-id> "Lameness" --priority high
  porkyfarm gestation start <sow-id> --date 2025-01-01
  porkyfarm dashboard --json                   Stats and alerts as JSON
  porkyfarm report --email me@example.com      Email the weekly report
""",
    )
    parser.add_argument("--user", help="User identity (default: shared demo data)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # animals
    animals = subparsers.add_parser("animals", help="Herd registry").add_subparsers(dest="action", required=True)
    list_parser = animals.add_parser("list", help="List animals")
    list_parser.add_argument("--category", choices=CATEGORIES, help="Filter by category")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")
    add_parser = animals.add_parser("add", help="Register an animal")
    add_parser.add_argument("--identifier", required=True, help="Ear tag, e.g. TR-001")
    add_parser.add_argument("--name", required=True)
    add_parser.add_argument("--category", required=True, choices=CATEGORIES)
    add_parser.add_argument("--breed")
    add_parser.add_argument("--birth-date", help="YYYY-MM-DD")
    add_parser.add_argument("--weight", type=float, help="Weight in kg")
    animals.add_parser("sell", help="Mark an animal sold").add_argument("id")
    animals.add_parser("dead", help="Mark an animal deceased").add_argument("id")

    # health
    health = subparsers.add_parser("health", help="Health cases").add_subparsers(dest="action", required=True)
    open_parser = health.add_parser("open", help="Open a health case")
    open_parser.add_argument("animal_id")
    open_parser.add_argument("issue")
    open_parser.add_argument("--priority", default="medium", choices=["low", "medium", "high", "critical"])
    health.add_parser("resolve", help="Resolve a health case").add_argument("id")
    health_list = health.add_parser("list", help="List open health cases")
    health_list.add_argument("--all", action="store_true", help="Include resolved cases")

    # gestation
    gestation = subparsers.add_parser("gestation", help="Reproduction").add_subparsers(dest="action", required=True)
    start_parser = gestation.add_parser("start", help="Record a service")
    start_parser.add_argument("sow_id")
    start_parser.add_argument("--date", help="Breeding date YYYY-MM-DD (default: today)")
    start_parser.add_argument("--boar", help="Boar animal id")
    complete_parser = gestation.add_parser("complete", help="Record a farrowing")
    complete_parser.add_argument("id")
    complete_parser.add_argument("--piglets", type=int, required=True, help="Piglets born")
    complete_parser.add_argument("--survived", type=int, help="Piglets alive (default: all)")
    gestation.add_parser("list", help="List active gestations")

    # dashboard / alerts / activity
    dashboard_parser = subparsers.add_parser("dashboard", help="Show dashboard stats")
    dashboard_parser.add_argument("--json", action="store_true", help="Output stats and alerts as JSON")
    subparsers.add_parser("alerts", help="Show prioritized alerts")
    activity_parser = subparsers.add_parser("activity", help="Show recent activity")
    activity_parser.add_argument("--limit", type=int, default=10, help="Entries to show (default: 10)")

    # feed
    feed = subparsers.add_parser("feed", help="Feed stock").add_subparsers(dest="action", required=True)
    feed.add_parser("stock", help="Show stock levels")
    consume_parser = feed.add_parser("consume", help="Record feed used")
    consume_parser.add_argument("stock_id")
    consume_parser.add_argument("quantity", type=float, help="Quantity in kg")
    consume_parser.add_argument("--category", choices=CATEGORIES)
    consume_parser.add_argument("--count", type=int, default=0, help="Animals fed")
    produce_parser = feed.add_parser("produce", help="Record a compound feed batch")
    produce_parser.add_argument("quantity", type=float, help="Quantity produced in kg")
    produce_parser.add_argument(
        "--ingredient", action="append", type=_parse_ingredient, metavar="STOCK_ID:QTY", help="Repeatable"
    )
    produce_parser.add_argument("--notes")

    # report / reset
    report_parser = subparsers.add_parser("report", help="Email the weekly report")
    report_parser.add_argument("--email", required=True, help="Recipient address")
    report_parser.add_argument("--farm", default="My farm", help="Farm name for the report")
    subparsers.add_parser("reset", help="Restore the demo data (or empty a user's store)")

    return parser


async def cli_main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # Dispatch to command handlers
    commands = {
        "animals": cmd_animals,
        "health": cmd_health,
        "gestation": cmd_gestation,
        "dashboard": cmd_dashboard,
        "alerts": cmd_alerts,
        "activity": cmd_activity,
        "feed": cmd_feed,
        "report": cmd_report,
        "reset": cmd_reset,
    }

    if args.command not in commands:
        parser.print_help()
        return

    store = FarmStore.open(args.user)
    try:
        await commands[args.command](store, args)
    except StatusTransitionError as e:
        print(f"Error: {e}")
    finally:
        store.close()


def cli() -> None:
    """CLI entry point."""
    asyncio.run(cli_main())


if __name__ == "__main__":
    cli()
