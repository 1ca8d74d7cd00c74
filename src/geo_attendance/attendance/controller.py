from __future__ import annotations

import json
import logging
import time
from datetime import date
from typing import Optional

from flask import Flask, Response, jsonify, request, stream_with_context

from ..common.datetime_utils import parse_client_timestamp, parse_iso_date, to_epoch_ms
from ..common.validators import require_non_empty
from ..container import Container
from ..core.enums import AttendanceAction
from ..core.exceptions import (
    DomainError,
    InfrastructureError,
    IntegrityRejected,
    StateConflictError,
    ValidationError,
)
from ..location.model import LocationSample

logger = logging.getLogger(__name__)


def _error(e: Exception, status: int):
    return jsonify({"error": getattr(e, "code", type(e).__name__), "message": str(e)}), status


def _status_for(e: Exception) -> int:
    if isinstance(e, ValidationError):
        return 400
    if isinstance(e, StateConflictError):
        return 409
    if isinstance(e, IntegrityRejected):
        return 422
    if isinstance(e, InfrastructureError):
        return 503
    return 400


def _parse_date(value: Optional[str], field_name: str = "date") -> Optional[date]:
    if value is None or value == "":
        return None
    try:
        return parse_iso_date(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {field_name} format") from None


def _sse(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service
    sync = container.status_sync

    def _parse_cursor(value: Optional[str]) -> Optional[int]:
        if value is None or value == "":
            return None
        try:
            cursor = int(value)
        except ValueError:
            raise ValidationError("Invalid cursor") from None
        if cursor < 0:
            raise ValidationError("Invalid cursor")
        return cursor

    def _transition(action: AttendanceAction):
        prefix = "checkIn" if action == AttendanceAction.CHECKIN else "checkOut"
        try:
            body = request.get_json(silent=True) or {}
            username = require_non_empty(body.get("username"), "username")
            work_date = _parse_date(require_non_empty(body.get("date"), "date"))

            received_at = service.now()
            client_time = None
            raw_time = body.get(f"{prefix}Time")
            if raw_time:
                try:
                    client_time = parse_client_timestamp(str(raw_time), service.timezone)
                except ValueError:
                    raise ValidationError(f"Invalid {prefix}Time format") from None

            sample = LocationSample.create(
                latitude=body.get(f"{prefix}Latitude"),
                longitude=body.get(f"{prefix}Longitude"),
                accuracy_meters=body.get(f"{prefix}Accuracy"),
                captured_at_epoch_ms=to_epoch_ms(received_at),
                field_prefix=prefix,
            )

            if action == AttendanceAction.CHECKIN:
                result = service.request_check_in(username, work_date, sample, client_time=client_time)
            else:
                result = service.request_check_out(username, work_date, sample, client_time=client_time)
            return jsonify(result.to_dict()), 200
        except (DomainError, InfrastructureError) as e:
            if isinstance(e, InfrastructureError):
                logger.error("%s failed: %s", action.value, e)
            return _error(e, _status_for(e))
        except Exception:
            logger.exception("Error during %s", action.value)
            return jsonify({"error": "InternalError", "message": "Internal Server Error"}), 500

    @app.route("/attendance/checkin", methods=["POST"], endpoint="attendance_checkin")
    def attendance_checkin():
        return _transition(AttendanceAction.CHECKIN)

    @app.route("/attendance/checkout", methods=["POST"], endpoint="attendance_checkout")
    def attendance_checkout():
        return _transition(AttendanceAction.CHECKOUT)

    @app.route("/attendance/status", methods=["GET"], endpoint="attendance_status")
    def attendance_status():
        try:
            username = require_non_empty(request.args.get("username"), "username")
            work_date = _parse_date(request.args.get("date"))
            return jsonify(service.get_status(username, work_date).to_dict()), 200
        except (DomainError, InfrastructureError) as e:
            return _error(e, _status_for(e))

    @app.route("/attendance/history", methods=["GET"], endpoint="attendance_history")
    def attendance_history():
        try:
            username = require_non_empty(request.args.get("username"), "username")
            try:
                days = int(request.args.get("days") or 30)
            except ValueError:
                raise ValidationError("days must be an integer") from None
            rows = service.get_history(username, days=days)
            return jsonify([r.to_dict() for r in rows]), 200
        except (DomainError, InfrastructureError) as e:
            return _error(e, _status_for(e))

    @app.route("/attendance/today", methods=["GET"], endpoint="attendance_today")
    def attendance_today():
        try:
            return jsonify([r.to_dict() for r in service.get_today()]), 200
        except InfrastructureError as e:
            return _error(e, 503)

    @app.route("/attendance/updates", methods=["GET"], endpoint="attendance_updates")
    def attendance_updates():
        """Polling mode of the dashboard feed: records committed after ``since``."""

        try:
            batch = sync.updates_since(_parse_cursor(request.args.get("since")))
            return jsonify(batch.to_dict()), 200
        except (DomainError, InfrastructureError) as e:
            return _error(e, _status_for(e))

    @app.route("/attendance/stream", methods=["GET"], endpoint="attendance_stream")
    def attendance_stream():
        """Server-sent events mode of the dashboard feed."""

        try:
            cursor = _parse_cursor(request.args.get("since"))
            if cursor is None:
                cursor = sync.current_cursor()
        except (DomainError, InfrastructureError) as e:
            return _error(e, _status_for(e))
        interval = container.settings.sse_poll_seconds

        def wait() -> bool:
            time.sleep(interval)
            return True

        def generate():
            yield _sse({"type": "serverReady", "message": "Connection established"})
            try:
                for batch in sync.iter_batches(cursor, wait=wait):
                    for update in batch.updates:
                        yield _sse({"type": "attendanceUpdate", "payload": update.to_dict()})
            except InfrastructureError as e:
                logger.error("attendance stream stopped: %s", e)
                yield _sse({"type": "error", "message": "Error checking updates"})

        return Response(
            stream_with_context(generate()),
            mimetype="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )
