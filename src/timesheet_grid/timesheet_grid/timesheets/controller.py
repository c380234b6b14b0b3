from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from ..container import Container
from ..core.exceptions import CancellationNotAllowedError, DomainError, ValidationError
from ..grids.model import TimesheetGrid
from ..persistence.engine import SaveOptions

logger = logging.getLogger(__name__)


def _grid_from_request() -> TimesheetGrid:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return TimesheetGrid.from_dict(body.get("grid", body))


def _options_from_request() -> SaveOptions:
    body = request.get_json(silent=True) or {}
    raw = body.get("options") or {}
    return SaveOptions(
        created_by=raw.get("createdBy"),
        grid_session_id=raw.get("gridSessionId"),
        grid_title=raw.get("gridTitle"),
        force_create=bool(raw.get("forceCreate", False)),
        check_duplicates=bool(raw.get("checkDuplicates", True)),
    )


def register(app: Flask, container: Container) -> None:
    engine = container.engine

    @app.errorhandler(ValidationError)
    def handle_validation_error(e: ValidationError):
        return jsonify({"success": False, "message": str(e)}), 400

    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        logger.exception("Request failed")
        return jsonify({"success": False, "message": "Internal error"}), 500

    @app.route("/api/timesheets/validate", methods=["POST"], endpoint="validate_timesheet")
    async def validate_timesheet():
        result = await engine.validate(_grid_from_request())
        return jsonify(result.to_dict()), 200 if result.is_valid else 422

    @app.route("/api/timesheets/check-duplicate", methods=["POST"], endpoint="check_duplicate")
    async def check_duplicate():
        result = await engine.check_duplication(_grid_from_request())
        return jsonify(result.to_dict())

    @app.route("/api/timesheets/save", methods=["POST"], endpoint="save_timesheet")
    async def save_timesheet():
        result = await engine.save_timesheet_grid(_grid_from_request(), _options_from_request())
        if result.success:
            return jsonify(result.to_dict())
        if result.is_duplicate_blocked:
            return jsonify(result.to_dict()), 409
        if result.validation is not None or result.cancelled:
            return jsonify(result.to_dict()), 422
        return jsonify(result.to_dict()), 500

    @app.route("/api/timesheets/<grid_id>", methods=["GET"], endpoint="get_timesheet")
    async def get_timesheet(grid_id: str):
        grid = await engine.load_grid_for_edit(grid_id)
        if grid is None:
            return jsonify({"success": False, "message": "Timesheet not found"}), 404
        return jsonify(grid.to_dict())

    @app.route("/api/timesheets/sessions/<session_id>/status", methods=["GET"], endpoint="save_session_status")
    def save_session_status(session_id: str):
        return jsonify(
            {
                "sessionId": session_id,
                "state": engine.session_state(session_id).value,
                "isSaving": engine.is_saving(session_id),
            }
        )

    @app.route("/api/timesheets/sessions/<session_id>/cancel", methods=["POST"], endpoint="cancel_save")
    def cancel_save(session_id: str):
        try:
            cancelled = engine.request_cancel(session_id)
        except CancellationNotAllowedError as e:
            return jsonify({"success": False, "message": str(e)}), 409
        return jsonify({"success": True, "cancelled": cancelled})
