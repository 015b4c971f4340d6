## routes.py
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from avd_portal.domain.errors import (
    NotFoundError,
    PortalError,
    RemoteJobError,
    SubmissionError,
    TransportError,
    ValidationError,
)
from avd_portal.services.run_session import INPUT_FIELDS, RunSession

_CONFIRM_VALUES = {"1", "true", "yes"}


def _status_for(error: PortalError) -> int:
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, RemoteJobError):
        return 409
    if isinstance(error, (TransportError, SubmissionError)):
        return 502
    return 500


def create_blueprint(session: RunSession) -> Blueprint:
    """HTTP endpoints only. Every decision is made by the session."""
    bp = Blueprint("api", __name__)

    @bp.errorhandler(PortalError)
    def handle_portal_error(e: PortalError):
        code = _status_for(e)
        if code >= 500:
            current_app.logger.exception("%s: %s", type(e).__name__, e)
        else:
            current_app.logger.info("%s: %s", type(e).__name__, e)
        body = {"error": str(e), "kind": type(e).__name__}
        if isinstance(e, ValidationError) and e.fields:
            body["fields"] = list(e.fields)
        if isinstance(e, RemoteJobError):
            body["runError"] = e.error
        return jsonify(body), code

    @bp.get("/session")
    def get_session():
        return jsonify(session.snapshot())

    @bp.post("/inputs")
    def update_inputs():
        payload = request.get_json(silent=True) or {}
        if not isinstance(payload, dict):
            raise ValidationError("Inputs must be a JSON object.")
        fields = {k: v for k, v in payload.items() if k in INPUT_FIELDS}
        session.update_inputs(**fields)
        return jsonify(session.snapshot())

    @bp.post("/subscriptions/<sub_id>/toggle")
    def toggle_subscription(sub_id: str):
        selected = session.toggle_subscription(sub_id)
        return jsonify({"id": sub_id, "selected": selected})

    @bp.post("/assess")
    def start_assessment():
        run_id = session.submit()
        current_app.logger.info("Run %s started", run_id)
        return jsonify({"runId": run_id}), 202

    @bp.post("/runs/<run_id>/open")
    def open_run(run_id: str):
        session.open_run(run_id)
        return jsonify(session.snapshot())

    @bp.delete("/runs/<run_id>")
    def delete_run(run_id: str):
        confirmed = (request.args.get("confirm") or "").strip().lower() in _CONFIRM_VALUES
        deleted = session.delete_run(run_id, confirm=lambda prompt: confirmed)
        if not deleted:
            return jsonify({"deleted": False, "error": "Deletion requires confirm=yes"}), 400
        current_app.logger.info("Run %s deleted", run_id)
        return jsonify({"deleted": True, "runId": run_id})

    @bp.get("/runs")
    def list_runs():
        runs = session.registry.list()
        return jsonify({"runs": [{"runId": r.run_id, "files": r.files, "totalSize": r.total_size} for r in runs]})

    @bp.get("/results")
    def results():
        manifest = session.results()
        report = manifest.first_report()
        return jsonify(
            {
                "runId": manifest.run_id,
                "hasViewableReport": manifest.has_viewable_report(),
                "report": report.to_dict() if report else None,
                "files": [f.to_dict() for f in manifest.downloads()],
            }
        )

    return bp
