#!/usr/bin/env python3
"""
DRONEFLEET API CLI Tool.

Command-line interface for administrative tasks:
- Database operations
- Fleet inspection (paths, drones, timeline)
- Path import and drone creation
- Health checks

Usage:
    python -m api.cli init-db
    python -m api.cli show-fleet
    python -m api.cli import-path route.json --name "Survey A"
    python -m api.cli check-health --url http://localhost:8000
"""
import argparse
import sys
from typing import Optional

DEFAULT_API_URL = "http://localhost:8000"


def _run_with_service(operation):
    """Run operation(service) against the configured fleet store.

    Fleet errors (e.g. tables missing before init-db) are printed and exit
    with status 1.
    """
    from api.config import settings
    from api.database import get_db_context
    from api.state import build_fleet_service
    from fleet.errors import FleetError

    try:
        if settings.uses_memory_store:
            return operation(build_fleet_service())

        with get_db_context() as db:
            return operation(build_fleet_service(db))
    except FleetError as e:
        print(f"\nError: {e.message}")
        sys.exit(1)


def init_db() -> None:
    """Initialize the database."""
    from api.database import init_db as do_init

    print("Initializing database...")
    do_init()
    print("Database initialized successfully.")


def show_fleet() -> None:
    """Print the fleet with its paths and drones."""
    fleet = _run_with_service(lambda service: service.get_fleet())

    print("\n" + "=" * 80)
    print(f"FLEET: {fleet.name} (key: {fleet.fleet_key}, version: {fleet.version})")
    print("=" * 80)

    print(f"\nPaths ({len(fleet.paths)})")
    print(f"{'ID':<26} {'Name':<30} {'Waypoints':<10} {'Created':<20}")
    print("-" * 80)
    for path in fleet.paths:
        print(
            f"{path.id:<26} "
            f"{path.name[:28]:<30} "
            f"{path.waypoint_count:<10} "
            f"{path.created_at.strftime('%Y-%m-%d %H:%M'):<20}"
        )

    print(f"\nDrones ({len(fleet.drones)})")
    print(f"{'ID':<26} {'Name':<20} {'Color':<9} {'Path':<26} {'Position':<8}")
    print("-" * 80)
    for drone in fleet.drones:
        print(
            f"{drone.id:<26} "
            f"{drone.name[:18]:<20} "
            f"{drone.color:<9} "
            f"{(drone.current_path_id or '-'):<26} "
            f"{drone.current_position:<8g}"
        )

    print("=" * 80 + "\n")


def show_timeline() -> None:
    """Print the per-path timeline."""
    entries = _run_with_service(lambda service: service.compute_timeline())

    if not entries:
        print("\nNo paths found.")
        return

    print(f"\n{'ID':<26} {'Name':<30} {'Duration':<10} {'Created':<20}")
    print("-" * 80)
    for entry in entries:
        print(
            f"{entry.id:<26} "
            f"{entry.name[:28]:<30} "
            f"{entry.duration:<10} "
            f"{entry.created_at.strftime('%Y-%m-%d %H:%M'):<20}"
        )
    print(f"\nTotal: {len(entries)} path(s)\n")


def add_drone(name: Optional[str] = None, color: Optional[str] = None) -> None:
    """Create a drone instance."""
    drone = _run_with_service(lambda service: service.create_drone(name=name, color=color))
    print(f"\nCreated drone {drone.name} ({drone.color})")
    print(f"Drone ID: {drone.id}")


def import_path(file_path: str, name: Optional[str] = None) -> None:
    """Import a path file into the fleet."""
    from fleet.errors import FleetError
    from fleet.paths.path_file import parse_path_file

    try:
        coordinates = parse_path_file(file_path)
        path = _run_with_service(lambda service: service.create_path(coordinates, name=name))
    except FleetError as e:
        print(f"\nError: {e.message}")
        sys.exit(1)

    print(f"\nImported {path.waypoint_count} waypoint(s) as {path.name}")
    print(f"Path ID: {path.id}")


def check_health(base_url: str = DEFAULT_API_URL) -> None:
    """Check API health."""
    import requests

    url = f"{base_url.rstrip('/')}/api/health"
    try:
        response = requests.get(url, timeout=5)
        if response.status_code == 200:
            data = response.json()
            print(f"\nAPI Status: {data.get('status', 'unknown')}")
            print(f"Version: {data.get('version', 'unknown')}")
            print(f"Timestamp: {data.get('timestamp', 'unknown')}")
            for component, info in data.get("components", {}).items():
                print(f"  {component}: {info.get('status')} ({info.get('message')})")
        else:
            print(f"\nAPI returned status code: {response.status_code}")
            sys.exit(1)
    except requests.exceptions.ConnectionError:
        print("\nError: Could not connect to API. Is the server running?")
        sys.exit(1)
    except requests.exceptions.RequestException as e:
        print(f"\nError: {e}")
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="DRONEFLEET API CLI Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Initialize database:
    python -m api.cli init-db

  Show paths and drones:
    python -m api.cli show-fleet

  Show the playback timeline:
    python -m api.cli timeline

  Add a drone:
    python -m api.cli add-drone --name "Scout" --color "#ff8800"

  Import a path file:
    python -m api.cli import-path survey.geojson --name "Survey A"

  Check API health:
    python -m api.cli check-health --url http://localhost:8000
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init-db", help="Initialize the database")
    subparsers.add_parser("show-fleet", help="Show the fleet's paths and drones")
    subparsers.add_parser("timeline", help="Show the per-path timeline")

    drone_parser = subparsers.add_parser("add-drone", help="Add a drone instance")
    drone_parser.add_argument("--name", help="Drone name (default: Drone {n})")
    drone_parser.add_argument("--color", help="Display color (default: random #rrggbb)")

    import_parser = subparsers.add_parser("import-path", help="Import a path file")
    import_parser.add_argument("file", help="JSON or GeoJSON path file")
    import_parser.add_argument("--name", help="Path name (default: Path {n})")

    health_parser = subparsers.add_parser("check-health", help="Check API health")
    health_parser.add_argument(
        "--url",
        default=DEFAULT_API_URL,
        help=f"API base URL (default: {DEFAULT_API_URL})"
    )

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "init-db":
        init_db()
    elif args.command == "show-fleet":
        show_fleet()
    elif args.command == "timeline":
        show_timeline()
    elif args.command == "add-drone":
        add_drone(args.name, args.color)
    elif args.command == "import-path":
        import_path(args.file, args.name)
    elif args.command == "check-health":
        check_health(args.url)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
