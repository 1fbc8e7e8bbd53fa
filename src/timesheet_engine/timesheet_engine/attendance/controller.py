from __future__ import annotations

import csv
import io
import logging
from datetime import date, datetime, time
from functools import wraps
from typing import Optional

from flask import Flask, jsonify, request, session

from ..common.datetime_utils import local_instant, parse_hhmm, parse_iso_date, to_local, week_monday
from ..common.validators import optional_text, require_employee_id
from ..core.constants import DEFAULT_BREAK_END, DEFAULT_BREAK_START, USER_ENTRIES_LIMIT
from ..core.enums import BreakType, Role
from ..core.exceptions import (
    AlreadyClockedIn,
    AuthorizationError,
    ConcurrentUpdate,
    DomainError,
    NoActiveSession,
    NotFound,
    StoreUnavailable,
    ValidationError,
)
from ..container import Container
from ..timesheet.report_service import REPORT_FIELDS
from .model import GpsLocation
from .service import ManualBreak

logger = logging.getLogger(__name__)

# most specific first; InvalidInterval is a ValidationError
_ERROR_STATUS = [
    (AlreadyClockedIn, 409),
    (NoActiveSession, 409),
    (ConcurrentUpdate, 409),
    (NotFound, 404),
    (ValidationError, 400),
    (AuthorizationError, 403),
    (StoreUnavailable, 503),
]


def error_status(exc: DomainError) -> int:
    for kind, status in _ERROR_STATUS:
        if isinstance(exc, kind):
            return status
    return 400


def register(app: Flask, container: Container) -> None:
    service = container.clock_service

    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify({"success": False, "error": "unauthorized", "message": "Please log in"}), 401
            return view(*args, **kwargs)

        return wrapper

    def admin_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify({"success": False, "error": "unauthorized", "message": "Please log in"}), 401

            if session.get("role") != Role.ADMIN.value:
                raise AuthorizationError("Administrator access required")

            return view(*args, **kwargs)

        return wrapper

    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        body = {"success": False, "error": exc.code, "message": str(exc)}
        # the client's view of the clock state is stale
        if isinstance(exc, (AlreadyClockedIn, NoActiveSession)):
            body["refresh"] = True
        return jsonify(body), error_status(exc)

    def _current_employee() -> int:
        return require_employee_id(session["user_id"])

    def _body() -> dict:
        data = request.get_json(silent=True)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        return data

    def _parse_date(value: str) -> date:
        try:
            return parse_iso_date(value)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid date: {value!r}") from None

    def _parse_time(value: str) -> time:
        try:
            return parse_hhmm(value)
        except (AttributeError, ValueError):
            raise ValidationError(f"Invalid time: {value!r}") from None

    def _instant(work_date: date, value: Optional[str]) -> Optional[datetime]:
        if not value:
            return None
        return local_instant(work_date, _parse_time(value), service.tz)

    def _on_date(value: Optional[datetime], work_date: date) -> Optional[datetime]:
        # same wall-clock time, moved to work_date
        if value is None:
            return None
        return local_instant(work_date, to_local(value, service.tz).time(), service.tz)

    def _break_type(value: Optional[str]) -> BreakType:
        try:
            return BreakType((value or BreakType.OTHER.value).lower())
        except ValueError:
            raise ValidationError(f"Unknown break type: {value!r}") from None

    def _gps(payload) -> Optional[GpsLocation]:
        if not payload:
            return None
        try:
            return GpsLocation(
                latitude=float(payload["latitude"]),
                longitude=float(payload["longitude"]),
                accuracy=float(payload["accuracy"]) if payload.get("accuracy") is not None else None,
            )
        except (KeyError, TypeError, ValueError):
            raise ValidationError("Invalid GPS location") from None

    def _range_args() -> tuple[date, date]:
        today = service.today()
        start_s = request.args.get("start") or today.replace(day=1).strftime("%Y-%m-%d")
        end_s = request.args.get("end") or today.strftime("%Y-%m-%d")
        return _parse_date(start_s), _parse_date(end_s)

    def _week_arg() -> date:
        week = request.args.get("week")
        return week_monday(_parse_date(week) if week else service.today())

    def _entry_payload(entry) -> dict:
        return {
            "entry": service.to_ui(entry),
            "summary": service.summarize(entry).as_dict(),
            "timeline": [s.as_dict() for s in service.get_timeline_segments(entry)],
        }

    # ---- employee ------------------------------------------------------

    @app.route("/api/clock/user/status", methods=["GET"], endpoint="clock_status")
    @login_required
    def clock_status():
        state = service.get_status(_current_employee())
        return jsonify(
            {
                "success": True,
                "status": state.status.value,
                "pollInterval": state.poll_interval_seconds,
                **_entry_payload(state.entry),
            }
        )

    @app.route("/api/clock/user/in", methods=["POST"], endpoint="clock_in")
    @login_required
    def clock_in():
        data = _body()
        entry = service.clock_in(
            _current_employee(),
            location=optional_text(data.get("location"), "") or None,
            work_type=optional_text(data.get("workType"), "") or None,
            gps_location=_gps(data.get("gpsLocation")),
        )
        return jsonify({"success": True, "message": "Clocked in", **_entry_payload(entry)}), 201

    @app.route("/api/clock/user/break", methods=["POST"], endpoint="clock_break")
    @login_required
    def clock_break():
        data = _body()
        entry = service.start_break(_current_employee(), break_type=_break_type(data.get("breakType")))
        return jsonify({"success": True, "message": "Break started", **_entry_payload(entry)})

    @app.route("/api/clock/user/resume", methods=["POST"], endpoint="clock_resume")
    @login_required
    def clock_resume():
        entry = service.resume_work(_current_employee())
        return jsonify({"success": True, "message": "Work resumed", **_entry_payload(entry)})

    @app.route("/api/clock/user/out", methods=["POST"], endpoint="clock_out")
    @login_required
    def clock_out():
        result = service.clock_out(_current_employee())
        return jsonify(
            {
                "success": True,
                "message": "Clocked out",
                "entry": service.to_ui(result.entry),
                "summary": result.summary.as_dict(),
                "timeline": [s.as_dict() for s in service.get_timeline_segments(result.entry)],
            }
        )

    @app.route("/api/clock/user/timesheet", methods=["GET"], endpoint="clock_user_timesheet")
    @login_required
    def clock_user_timesheet():
        sheet = service.get_weekly_timesheet(_current_employee(), _week_arg())
        return jsonify({"success": True, **sheet.as_dict()})

    @app.route("/api/clock/user/export", methods=["GET"], endpoint="clock_user_export")
    @login_required
    def clock_user_export():
        start, end = _range_args()
        data = container.report_service.build_report(start=start, end=end, employee_id=_current_employee())
        filename = f"my_timesheet_{start.strftime('%Y%m%d')}_{end.strftime('%Y%m%d')}.csv"
        return _write_report_csv(data=data, filename=filename)

    @app.route("/api/clock/user/entries", methods=["GET"], endpoint="clock_user_entries")
    @login_required
    def clock_user_entries():
        start, end = _range_args()
        entries = service.list_entries(start=start, end=end, employee_id=_current_employee())
        recent = sorted(entries, key=lambda e: e.work_date, reverse=True)
        return jsonify({"success": True, "entries": [service.to_ui(e) for e in recent[:USER_ENTRIES_LIMIT]]})

    # ---- admin ---------------------------------------------------------

    @app.route("/api/clock/status", methods=["GET"], endpoint="clock_status_board")
    @admin_required
    def clock_status_board():
        work_date = _parse_date(request.args["date"]) if request.args.get("date") else service.today()
        ids_s = request.args.get("employeeIds") or ""
        employee_ids = [require_employee_id(s) for s in ids_s.split(",") if s.strip()]

        board = service.get_status_board(work_date, employee_ids)
        data = []
        for employee_id, state in board.items():
            ui = service.to_ui(state.entry)
            data.append(
                {
                    "employeeId": employee_id,
                    "status": state.status.value,
                    "clockIn": ui["clockIn"],
                    "clockOut": ui["clockOut"],
                    "location": ui["location"],
                }
            )
        return jsonify({"success": True, "date": work_date.isoformat(), "data": data})

    @app.route("/api/clock/in", methods=["POST"], endpoint="clock_admin_in")
    @admin_required
    def clock_admin_in():
        data = _body()
        entry = service.clock_in(
            require_employee_id(data.get("employeeId")),
            location=optional_text(data.get("location"), "") or None,
            work_type=optional_text(data.get("workType"), "") or None,
            created_by=int(session["user_id"]),
        )
        return jsonify({"success": True, "message": "Employee clocked in", **_entry_payload(entry)}), 201

    @app.route("/api/clock/out", methods=["POST"], endpoint="clock_admin_out")
    @admin_required
    def clock_admin_out():
        data = _body()
        result = service.clock_out(require_employee_id(data.get("employeeId")))
        return jsonify(
            {
                "success": True,
                "message": "Employee clocked out",
                "entry": service.to_ui(result.entry),
                "summary": result.summary.as_dict(),
            }
        )

    @app.route("/api/clock/timesheet/<int:employee_id>", methods=["GET"], endpoint="clock_admin_timesheet")
    @admin_required
    def clock_admin_timesheet(employee_id: int):
        sheet = service.get_weekly_timesheet(require_employee_id(employee_id), _week_arg())
        return jsonify({"success": True, "employeeId": employee_id, **sheet.as_dict()})

    @app.route("/api/clock/entries", methods=["GET"], endpoint="clock_entries")
    @admin_required
    def clock_entries():
        start, end = _range_args()
        employee_s = request.args.get("employeeId")
        employee_id = require_employee_id(employee_s) if employee_s else None
        entries = service.list_entries(start=start, end=end, employee_id=employee_id)
        return jsonify({"success": True, "entries": [service.to_ui(e) for e in entries]})

    @app.route("/api/clock/entry", methods=["POST"], endpoint="clock_entry_create")
    @admin_required
    def clock_entry_create():
        data = _body()
        employee_id = require_employee_id(data.get("employeeId"))
        work_date = _parse_date(data.get("date"))
        clock_in_at = _instant(work_date, data.get("clockIn"))
        if clock_in_at is None:
            raise ValidationError("Clock in time is required")

        raw_breaks = data.get("breaks") or []
        if not isinstance(raw_breaks, list) or not all(isinstance(b, dict) for b in raw_breaks):
            raise ValidationError("breaks must be a list of objects")
        breaks = [
            ManualBreak(
                start=_instant(work_date, b.get("startTime")) or clock_in_at,
                end=_instant(work_date, b.get("endTime")) or clock_in_at,
                break_type=_break_type(b.get("type")),
            )
            for b in raw_breaks
        ]
        entry = service.add_manual_entry(
            employee_id=employee_id,
            clock_in=clock_in_at,
            clock_out=_instant(work_date, data.get("clockOut")),
            breaks=breaks,
            location=optional_text(data.get("location"), "") or None,
            work_type=optional_text(data.get("workType"), "") or None,
            notes=optional_text(data.get("notes"), ""),
            created_by=int(session["user_id"]),
        )
        return jsonify({"success": True, "message": "Time entry created", "entry": service.to_ui(entry)}), 201

    @app.route("/api/clock/entry/<int:entry_id>", methods=["PUT"], endpoint="clock_entry_update")
    @admin_required
    def clock_entry_update(entry_id: int):
        data = _body()
        current = service.get_entry(entry_id)
        work_date = _parse_date(data["date"]) if data.get("date") else current.work_date
        # absent keys keep the stored value; an explicit null clears clockOut
        clock_in_at = _instant(work_date, data["clockIn"]) if "clockIn" in data else _on_date(current.clock_in, work_date)
        clock_out_at = (
            _instant(work_date, data["clockOut"]) if "clockOut" in data else _on_date(current.clock_out, work_date)
        )
        entry = service.manual_edit(
            entry_id=entry_id,
            employee_id=current.employee_id,
            work_date=work_date,
            clock_in=clock_in_at,
            clock_out=clock_out_at,
            created_by=int(session["user_id"]),
        )
        return jsonify({"success": True, "message": "Time entry updated", "entry": service.to_ui(entry)})

    @app.route("/api/clock/entry/<int:entry_id>", methods=["DELETE"], endpoint="clock_entry_delete")
    @admin_required
    def clock_entry_delete(entry_id: int):
        service.delete_entry(entry_id)
        return jsonify({"success": True, "message": "Time entry deleted"})

    @app.route("/api/clock/entry/<int:entry_id>/break", methods=["POST"], endpoint="clock_entry_break")
    @admin_required
    def clock_entry_break(entry_id: int):
        data = _body()
        current = service.get_entry(entry_id)
        entry = service.add_break(
            entry_id,
            start=_instant(current.work_date, data.get("startTime") or DEFAULT_BREAK_START),
            end=_instant(current.work_date, data.get("endTime") or DEFAULT_BREAK_END),
            break_type=_break_type(data.get("breakType")),
        )
        return jsonify({"success": True, "message": "Break added", "entry": service.to_ui(entry)})

    def _write_report_csv(*, data, filename: str):
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=REPORT_FIELDS)
        writer.writeheader()
        for row in data.rows:
            writer.writerow(row)

        csv_bytes = out.getvalue().encode("utf-8-sig")
        return app.response_class(
            csv_bytes,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route("/api/clock/export", methods=["GET"], endpoint="clock_export")
    @admin_required
    def clock_export():
        start, end = _range_args()
        employee_s = request.args.get("employeeId")
        employee_id = require_employee_id(employee_s) if employee_s else None

        data = container.report_service.build_report(start=start, end=end, employee_id=employee_id)
        logger.info("export rows=%d start=%s end=%s", len(data.rows), start, end)

        filename = f"timesheet_report_{start.strftime('%Y%m%d')}_{end.strftime('%Y%m%d')}.csv"
        return _write_report_csv(data=data, filename=filename)
