"""
Scheduling Blueprint — JSON routes for schedules, the short-term board and WIP.

Business logic lives in wipsync.scheduling / wipsync.wip; routes only parse
the request, open a connection and map {"error": ...} results to 4xx codes.
"""

from datetime import date

from flask import Blueprint, jsonify, request

from wipsync.core import get_db, get_logger
from wipsync.scheduling import sync as sched_sync
from wipsync.scheduling.overrides import OverrideResolver, group_by_foreman
from wipsync.scheduling.repository import ScheduleRepository, StaleScheduleError
from wipsync.wip.aggregator import wip_summary

bp = Blueprint("scheduling", __name__, url_prefix="/scheduling")

logger = get_logger("wipsync.api.scheduling")


# ---------------------------------------------------------------------------
# Schedules aggregate
# ---------------------------------------------------------------------------


@bp.route("/api/schedules", methods=["GET"])
def api_list_schedules():
    job_key = request.args.get("jobKey")
    with get_db(readonly=True) as conn:
        repo = ScheduleRepository(conn)
        if job_key:
            record = repo.get_schedule(job_key)
            return jsonify(record.to_payload() if record else None)
        return jsonify([r.to_payload() for r in repo.list_schedules()])


@bp.route("/api/schedules", methods=["POST"])
def api_save_schedule():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "JSON body required"}), 400

    try:
        with get_db() as conn:
            result = sched_sync.save_manual_reschedule(conn, data)
    except StaleScheduleError as e:
        logger.warning(f"Rejected stale reschedule: {e}")
        return jsonify({"error": str(e), "currentVersion": e.actual}), 409

    if "error" in result:
        return jsonify(result), 400
    return jsonify(result)


# ---------------------------------------------------------------------------
# Short-term board
# ---------------------------------------------------------------------------


@bp.route("/api/short-term", methods=["GET"])
def api_short_term():
    try:
        start = date.fromisoformat(request.args.get("start", ""))
        end = date.fromisoformat(request.args.get("end", ""))
    except ValueError:
        return jsonify({"error": "start and end must be YYYY-MM-DD"}), 400
    if end < start:
        return jsonify({"error": "end is before start"}), 400

    job_key = request.args.get("jobKey")
    with get_db(readonly=True) as conn:
        resolver = OverrideResolver.load(conn, job_key)
    days = resolver.resolve_job(job_key, start, end) if job_key else resolver.resolve(start, end)
    return jsonify({
        "start": start.isoformat(),
        "end": end.isoformat(),
        "foremen": group_by_foreman(days),
        "totalHours": round(sum(d.hours for d in days), 2),
    })


@bp.route("/api/short-term/day", methods=["POST"])
def api_short_term_day():
    data = request.get_json(silent=True) or {}
    if "hours" not in data:
        return jsonify({"error": "hours is required"}), 400

    with get_db() as conn:
        result = sched_sync.record_day_edit(
            conn,
            data.get("jobKey", ""),
            data.get("date"),
            data.get("hours"),
            foreman=data.get("foreman"),
            employees=data.get("employees"),
        )
    if "error" in result:
        return jsonify(result), 400
    return jsonify(result)


# ---------------------------------------------------------------------------
# WIP
# ---------------------------------------------------------------------------


@bp.route("/api/wip", methods=["GET"])
def api_wip():
    year = request.args.get("year", type=int)
    with get_db(readonly=True) as conn:
        return jsonify(wip_summary(conn, year=year))


@bp.route("/api/outlook", methods=["GET"])
def api_outlook():
    weeks = request.args.get("weeks", type=int)
    job_key = request.args.get("jobKey")
    with get_db(readonly=True) as conn:
        return jsonify(sched_sync.weekly_outlook(conn, job_key=job_key, weeks=weeks))
