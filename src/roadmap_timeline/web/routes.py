"""HTTP route handlers for the Roadmap Timeline JSON service."""

import logging
from datetime import date, timedelta

from flask import Blueprint, jsonify, request

from roadmap_timeline.config import DEFAULT_CONFIG, EngineConfig, config_exists, load_config
from roadmap_timeline.exceptions import InvalidConfigError, InvalidPayloadError
from roadmap_timeline.models import Viewport
from roadmap_timeline.settings import TimelineSettings
from roadmap_timeline.timeline import build_timeline, parse_work_items, timeline_result_to_dict

logger = logging.getLogger(__name__)

bp = Blueprint("main", __name__)


def _engine_config() -> EngineConfig:
    """Configured engine constants, or the defaults when no file exists."""
    if not config_exists():
        return DEFAULT_CONFIG
    try:
        return load_config()
    except (FileNotFoundError, ValueError) as e:
        raise InvalidConfigError(str(e)) from e


def _number(data: dict, name: str) -> float:
    try:
        return float(data.get(name) or 0)
    except (TypeError, ValueError):
        raise InvalidPayloadError(f"Viewport field '{name}' must be a number")


def _parse_payload(payload) -> tuple[list, dict, Viewport]:
    if not isinstance(payload, dict):
        raise InvalidPayloadError("Request body must be a JSON object.")

    items = payload.get("items", [])
    if not isinstance(items, list):
        raise InvalidPayloadError("'items' must be a list of work item records.")

    settings = payload.get("settings") or {}
    if not isinstance(settings, dict):
        raise InvalidPayloadError("'settings' must be an object.")

    viewport_data = payload.get("viewport") or {}
    if not isinstance(viewport_data, dict):
        raise InvalidPayloadError("'viewport' must be an object.")

    viewport = Viewport(
        width=_number(viewport_data, "width"),
        height=_number(viewport_data, "height"),
        scroll_top=_number(viewport_data, "scrollTop"),
        scroll_left=_number(viewport_data, "scrollLeft"),
    )
    return items, settings, viewport


@bp.route("/health")
def health():
    """Health check endpoint."""
    return jsonify({"status": "ok", "config_loaded": config_exists()})


@bp.route("/api/timeline", methods=["POST"])
def api_timeline():
    """Run one timeline update cycle over the posted items and settings."""
    try:
        items, settings_data, viewport = _parse_payload(request.get_json(silent=True))
    except InvalidPayloadError as e:
        return jsonify({"error": str(e)}), 400

    try:
        config = _engine_config()
    except InvalidConfigError as e:
        return jsonify({"error": str(e)}), 503

    settings = TimelineSettings.from_dict(settings_data, config)
    work_items = parse_work_items(items)
    result = build_timeline(work_items, settings, viewport, config)
    logger.debug("Timeline built: %d rows, %d connectors", len(result.rows), len(result.connectors))

    return jsonify(timeline_result_to_dict(result, config))


def demo_items(today: date) -> list[dict]:
    """Built-in demo records with dates relative to ``today``."""

    def d(offset_days):
        return (today + timedelta(days=offset_days)).isoformat()

    return [
        {"workItemId": 1, "title": "Platform Modernisation", "workItemType": "Epic",
         "state": "Active", "startDate": d(-45), "targetDate": d(180),
         "areaPath": "Roadmap\\Platform", "iterationPath": "2026\\H1"},
        {"workItemId": 11, "title": "API Gateway migration", "workItemType": "Feature",
         "state": "Active", "startDate": d(-45), "targetDate": d(45), "parentId": 1,
         "areaPath": "Roadmap\\Platform", "assignedTo": "Platform Team", "priority": 1},
        {"workItemId": 12, "title": "Service mesh rollout", "workItemType": "Feature",
         "state": "New", "startDate": d(30), "targetDate": d(120), "parentId": 1,
         "predecessorId": 11, "areaPath": "Roadmap\\Platform", "priority": 2},
        {"workItemId": 13, "title": "Gateway cutover", "workItemType": "Milestone",
         "state": "New", "targetDate": d(45), "parentId": 1, "areaPath": "Roadmap\\Platform"},
        {"workItemId": 2, "title": "Mobile App Launch", "workItemType": "Epic",
         "state": "Active", "startDate": d(-20), "targetDate": d(150),
         "areaPath": "Roadmap\\Mobile"},
        {"workItemId": 21, "title": "iOS MVP", "workItemType": "Feature",
         "state": "Active", "startDate": d(-20), "targetDate": d(60), "parentId": 2,
         "areaPath": "Roadmap\\Mobile", "assignedTo": "Mobile Team", "priority": 1},
        {"workItemId": 22, "title": "Android MVP", "workItemType": "Feature",
         "state": "New", "startDate": d(50), "targetDate": d(120), "parentId": 2,
         "predecessorId": "F-21", "areaPath": "Roadmap\\Mobile", "priority": 2},
        {"workItemId": 23, "title": "Store submission", "workItemType": "Milestone",
         "state": "New", "targetDate": d(125), "parentId": 2, "predecessorId": 22,
         "areaPath": "Roadmap\\Mobile"},
        {"workItemId": 24, "title": "Push notifications", "workItemType": "Feature",
         "state": "New", "parentId": 2, "areaPath": "Roadmap\\Mobile"},
    ]


@bp.route("/demo")
def demo():
    """Timeline for built-in demo data; query parameters override settings."""
    settings = TimelineSettings.from_dict(
        {"showDependencies": True, **request.args.to_dict()}, DEFAULT_CONFIG
    )
    result = build_timeline(parse_work_items(demo_items(date.today())), settings)
    return jsonify(timeline_result_to_dict(result))
