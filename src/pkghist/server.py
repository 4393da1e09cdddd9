"""HTTP interface serving cached package download statistics."""

import logging
from datetime import datetime, timedelta, timezone

from flask import Flask, current_app, jsonify, request

from .config import DEFAULT_AVERAGE_DAYS, Settings
from .service import get_package_statistics, query_average_downloads
from .types import StatisticStore, Upstream
from .utils import parse_day, validate_package_name

logger = logging.getLogger("pkghist")


def _text(body: str, status: int):
    return current_app.response_class(body + "\n", status=status, mimetype="text/plain")


def package_downloads(name: str = ""):
    """
    HEAD|GET /packages/<name>/downloads

    Fetch another range of downloads for the package, then return everything
    stored for it as JSON (headers only for HEAD). An empty name requests
    counts for all packages.
    """
    is_valid, message = validate_package_name(name)
    if not is_valid:
        return _text(f"invalid package name: {message}", 400)

    settings: Settings = current_app.config["PKGHIST_SETTINGS"]
    store: StatisticStore = current_app.config["PKGHIST_STORE"]
    upstream: Upstream = current_app.config["PKGHIST_UPSTREAM"]

    try:
        statistics = get_package_statistics(
            store, upstream, name, settings.policy_for(name)
        )
    except Exception as e:
        logger.exception('Error getting statistics for "%s"', name)
        return _text(f"error getting package statistics: {e}", 500)

    return jsonify(
        [
            {"day": s["day"].isoformat(), "downloads": s["downloads"]}
            for s in statistics
        ]
    )


def package_averages():
    """
    GET /packages/averages?start=<date>&end=<date>

    `end` defaults to the current date, `start` to 60 days before `end`.
    This scans every stored statistic in the period and can be slow.
    """
    try:
        end_arg = request.args.get("end")
        end = parse_day(end_arg) if end_arg else datetime.now(timezone.utc).date()
        start_arg = request.args.get("start")
        start = parse_day(start_arg) if start_arg else end - timedelta(days=DEFAULT_AVERAGE_DAYS)
    except ValueError as e:
        return _text(f"invalid date: {e}", 400)

    store: StatisticStore = current_app.config["PKGHIST_STORE"]
    try:
        averages = query_average_downloads(store, start, end)
    except Exception as e:
        logger.exception("Error averaging downloads from %s to %s", start, end)
        return _text(f"error getting package averages: {e}", 500)

    return jsonify(averages)


def create_app(store: StatisticStore, upstream: Upstream, settings: Settings) -> Flask:
    """Create the Flask application around an initialized store and upstream."""
    app = Flask(__name__)
    app.config["PKGHIST_SETTINGS"] = settings
    app.config["PKGHIST_STORE"] = store
    app.config["PKGHIST_UPSTREAM"] = upstream

    # /packages//downloads is the all-packages aggregate
    app.url_map.merge_slashes = False
    app.add_url_rule(
        "/packages/averages", view_func=package_averages, methods=["GET"]
    )
    app.add_url_rule(
        "/packages//downloads",
        endpoint="global_downloads",
        view_func=package_downloads,
        methods=["GET", "HEAD"],
        defaults={"name": ""},
    )
    app.add_url_rule(
        "/packages/<path:name>/downloads",
        view_func=package_downloads,
        methods=["GET", "HEAD"],
    )

    @app.before_request
    def log_request():
        logger.debug("%s %s", request.method, request.full_path.rstrip("?"))

    return app
