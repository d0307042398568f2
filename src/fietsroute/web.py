"""JSON API in front of fietssport.nl, plus GPX and elevation profile downloads."""

import io
import logging

from flask import Flask, Response, jsonify, request, send_file

from fietsroute import __version_date__, get_git_hash
from fietsroute.charts import generate_elevation_profile
from fietsroute.fietssport import RouteError, discover_variants, fetch_waypoints
from fietsroute.gpx import GPX_MIMETYPE, gpx_filename, serialize
from fietsroute.logging_config import setup_logging
from fietsroute.models import DEFAULT_VARIANT
from fietsroute.profile import ProfileProjector, profile_summary

logger = logging.getLogger(__name__)

app = Flask(__name__)


def _upstream_failure(error: str, e: RouteError):
    return jsonify({"error": error, "message": e.message}), 500


def _route_id_required():
    return jsonify({"error": "Route ID is required"}), 400


@app.route("/api/routeInfo/", defaults={"route_id": ""})
@app.route("/api/routeInfo/<route_id>")
def route_info(route_id: str):
    """List the distance variants of a toertocht."""
    if not route_id:
        return _route_id_required()
    try:
        variants = discover_variants(route_id)
    except RouteError as e:
        logger.error("Error fetching route info: %s", e)
        return _upstream_failure("Failed to fetch route info", e)
    return jsonify({"distances": [v.to_dict() for v in variants]})


@app.route("/api/routeWaypoints/", defaults={"route_id": ""})
@app.route("/api/routeWaypoints/<route_id>")
def route_waypoints(route_id: str):
    """Waypoints of one distance variant, as upstream-shaped records."""
    if not route_id:
        return _route_id_required()
    distance = request.args.get("distance", DEFAULT_VARIANT.distance_key)
    try:
        waypoints = fetch_waypoints(route_id, distance)
    except RouteError as e:
        logger.error("Error fetching route waypoints: %s", e)
        return _upstream_failure("Failed to fetch route data", e)
    return jsonify([wp.to_record() for wp in waypoints])


@app.route("/api/routeSummary/<route_id>")
def route_summary(route_id: str):
    """Ascent, descent and elevation extremes of one distance variant."""
    distance = request.args.get("distance", DEFAULT_VARIANT.distance_key)
    try:
        waypoints = fetch_waypoints(route_id, distance)
    except RouteError as e:
        logger.error("Error fetching route summary: %s", e)
        return _upstream_failure("Failed to fetch route data", e)

    summary = profile_summary(waypoints)
    summary["waypoints"] = len(waypoints)
    projector = ProfileProjector.build(waypoints)
    summary["profile_path"] = projector.svg_path() if projector else None
    return jsonify(summary)


@app.route("/api/gpx/<route_id>")
def route_gpx(route_id: str):
    """Download one distance variant as a GPX file."""
    distance = request.args.get("distance", DEFAULT_VARIANT.distance_key)
    name = request.args.get("name", "").strip() or f"Toertocht {route_id}"
    try:
        waypoints = fetch_waypoints(route_id, distance)
    except RouteError as e:
        logger.error("Error fetching waypoints for GPX export: %s", e)
        return _upstream_failure("Failed to fetch route data", e)

    return Response(
        serialize(waypoints, name),
        mimetype=GPX_MIMETYPE,
        headers={"Content-Disposition": f'attachment; filename="{gpx_filename(name)}"'},
    )


@app.route("/elevation-profile/<route_id>")
def elevation_profile(route_id: str):
    """PNG elevation profile of one variant, with the cursor at ``index``."""
    distance = request.args.get("distance", DEFAULT_VARIANT.distance_key)
    name = request.args.get("name") or None
    index_str = request.args.get("index", "")
    try:
        current_index = int(index_str) if index_str else None
    except ValueError:
        return jsonify({"error": "Invalid index"}), 400

    try:
        waypoints = fetch_waypoints(route_id, distance)
    except RouteError as e:
        logger.error("Error fetching waypoints for profile: %s", e)
        return _upstream_failure("Failed to fetch route data", e)

    projector = ProfileProjector.build(waypoints)
    if projector is None:
        return "Elevation profile too flat to display", 404

    img_bytes = generate_elevation_profile(projector, current_index=current_index, title=name)
    return send_file(io.BytesIO(img_bytes), mimetype="image/png")


@app.route("/api/version")
def version():
    return {"version_date": __version_date__, "git_hash": get_git_hash()}


def main():
    """Run the web server."""
    import os
    setup_logging()
    port = int(os.environ.get("PORT", 3001))
    logger.info("Server running at http://localhost:%d", port)
    app.run(host="0.0.0.0", port=port, debug=os.environ.get("FLASK_DEBUG") == "1")


if __name__ == "__main__":
    main()
