import argparse
import logging
import sys
from pathlib import Path

from fietsroute import __version_date__
from fietsroute.distance import route_length
from fietsroute.fietssport import RouteError, get_route, is_fietssport_url, resolve_route
from fietsroute.gpx import gpx_filename, serialize
from fietsroute.logging_config import setup_logging
from fietsroute.profile import profile_summary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fietsroute",
        description="Convert a fietssport.nl toertocht to a GPX file.",
    )
    parser.add_argument("url", help="fietssport.nl toertocht URL")
    parser.add_argument(
        "--distance",
        type=str,
        default=None,
        help="Distance variant to export, e.g. 60 (default: first listed on the route page)",
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Output GPX path (default: <route name>.gpx in the current directory)",
    )
    parser.add_argument(
        "--list-distances",
        action="store_true",
        help="Only list the available distance variants",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log upstream requests",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version_date__}",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    if not is_fietssport_url(args.url):
        print(f"Error: Not a fietssport.nl toertocht URL: {args.url}", file=sys.stderr)
        sys.exit(1)

    if args.list_distances:
        try:
            route = resolve_route(args.url)
        except RouteError as e:
            print(f"Error: {e.message}", file=sys.stderr)
            sys.exit(1)
        print(f"{route.name} (route {route.id})")
        for variant in route.variants:
            print(f"  {variant.distance_key:>5}  {variant.label}")
        return

    try:
        route, waypoints = get_route(args.url, args.distance)
    except RouteError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)

    if not waypoints:
        print("Error: Route contains no waypoints.", file=sys.stderr)
        sys.exit(1)

    output = Path(args.output) if args.output else Path(gpx_filename(route.name))
    output.write_text(serialize(waypoints, route.name), encoding="utf-8")

    summary = profile_summary(waypoints)
    distance_key = args.distance or route.default_variant.distance_key
    print(f"=== {route.name} ({distance_key} km variant) ===")
    print(f"Waypoints:      {len(waypoints)}")
    print(f"Distance:       {route_length(waypoints) / 1000:.2f} km")
    print(f"Total Ascent:   {summary['ascent']:.0f} m")
    print(f"Total Descent:  {summary['descent']:.0f} m")
    print(f"Min Elevation:  {summary['min_elevation']:.0f} m")
    print(f"Max Elevation:  {summary['max_elevation']:.0f} m")
    print(f"Saved:          {output}")
