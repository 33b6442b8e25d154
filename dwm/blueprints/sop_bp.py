"""
SOP Blueprint — SOP lifecycle, steps, versions and business processes.

Endpoints:
    GET    /api/v1/sops                              — list (?status=, ?businessProcessId=)
    POST   /api/v1/sops                              — create (Draft, v0.1)
    GET    /api/v1/sops/<id>                         — detail incl. version history
    PUT    /api/v1/sops/<id>                         — shallow-merge update
    DELETE /api/v1/sops/<id>                         — delete
    POST   /api/v1/sops/<id>/transition              — status change
    POST   /api/v1/sops/<id>/versions                — cut next major version
    POST   /api/v1/sops/<id>/steps                   — append step
    PUT    /api/v1/sops/<id>/steps/order             — reorder steps
    PUT    /api/v1/sops/<id>/steps/<step_id>         — update step
    DELETE /api/v1/sops/<id>/steps/<step_id>         — remove step

    GET    /api/v1/business-processes                — list
    POST   /api/v1/business-processes                — create
    GET    /api/v1/business-processes/<id>           — detail
    PUT    /api/v1/business-processes/<id>           — update
    DELETE /api/v1/business-processes/<id>           — delete, unlinking SOPs

Layer contract:
    - No ORM calls here — all DB work delegated to sop_service.
    - TransitionError / SopLockedError surface as 409 via dwm.utils.errors.
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from dwm.models.sop import DEFAULT_APPROVER, SOP_FORMATS, SOP_STATUSES
from dwm.services import sop_service
from dwm.utils.errors import E, api_error
from dwm.utils.helpers import non_string_errors, parse_bool, to_service_fields, validation_error

logger = logging.getLogger(__name__)

sop_bp = Blueprint("sop", __name__, url_prefix="/api/v1")

_SOP_FIELDS = {
    "title": "title",
    "format": "format",
    "owner": "owner",
    "steps": "steps",
    "fileName": "file_name",
    "aiAnalysis": "ai_analysis",
    "lastEditedBy": "last_edited_by",
    "businessProcessId": "business_process_id",
}
# Moved only through their own endpoints
_READ_ONLY_SOP_FIELDS = {
    "status": "Use POST /sops/<id>/transition.",
    "currentVersion": "Use POST /sops/<id>/versions.",
    "versions": "Version history is append-only.",
    "approvedBy": "Set by the Approved / Effective transitions.",
    "effectiveDate": "Set by the Effective transition.",
}
_SOP_TEXT_FIELDS = ("title", "owner", "fileName", "aiAnalysis", "lastEditedBy", "businessProcessId")
_STEP_FIELDS = ("instruction", "requirePhoto", "requireEvidenceFile", "requireMeasurement",
                "inputs", "outputs")
_BP_FIELDS = {"name": "name", "description": "description"}


def _steps_payload_errors(steps) -> dict[str, str]:
    if steps is None:
        return {}
    if not isinstance(steps, list) or not all(isinstance(s, dict) for s in steps):
        return {"steps": "Must be a list of step objects."}
    return {}


# ── SOP CRUD ──────────────────────────────────────────────────────────────────


@sop_bp.route("/sops", methods=["GET"])
def list_sops():
    status = request.args.get("status")
    if status and status not in SOP_STATUSES:
        return validation_error({"status": f"Must be one of: {', '.join(SOP_STATUSES)}."})
    sops = sop_service.list_sops(
        status=status,
        business_process_id=request.args.get("businessProcessId"),
    )
    return jsonify([s.to_dict(include_versions=False) for s in sops]), 200


@sop_bp.route("/sops", methods=["POST"])
def create_sop():
    """Create an SOP.

    Body (JSON):
        title (str, required)
        format (str, optional): block | file (default block)
        owner (str, optional): role name; blank becomes "Unassigned"
        steps (list, optional): initial steps for block SOPs
        fileName (str, optional)
        businessProcessId (str, optional)
    """
    data = request.get_json(silent=True) or {}

    errors = non_string_errors(data, _SOP_TEXT_FIELDS)
    if "title" not in errors and not (data.get("title") or "").strip():
        errors["title"] = "SOP title is required."
    fmt = data.get("format", "block")
    if fmt not in SOP_FORMATS:
        errors["format"] = f"Must be one of: {', '.join(SOP_FORMATS)}."
    errors.update(_steps_payload_errors(data.get("steps")))
    if errors:
        return validation_error(errors)

    sop = sop_service.create_sop(
        data["title"],
        fmt,
        data.get("owner"),
        data.get("steps"),
        file_name=data.get("fileName"),
        business_process_id=data.get("businessProcessId"),
    )
    return jsonify(sop.to_dict()), 201


@sop_bp.route("/sops/<sop_id>", methods=["GET"])
def get_sop(sop_id):
    return jsonify(sop_service.get_sop(sop_id).to_dict()), 200


@sop_bp.route("/sops/<sop_id>", methods=["PUT"])
def update_sop(sop_id):
    data = request.get_json(silent=True) or {}

    errors = {k: msg for k, msg in _READ_ONLY_SOP_FIELDS.items() if k in data}
    errors.update(non_string_errors(data, _SOP_TEXT_FIELDS))
    errors.update(_steps_payload_errors(data.get("steps")))
    if errors:
        return validation_error(errors)

    sop = sop_service.update_sop(sop_id, to_service_fields(data, _SOP_FIELDS))
    return jsonify(sop.to_dict()), 200


@sop_bp.route("/sops/<sop_id>", methods=["DELETE"])
def delete_sop(sop_id):
    sop_service.delete_sop(sop_id)
    return jsonify({"deleted": True, "id": sop_id}), 200


# ── Lifecycle ─────────────────────────────────────────────────────────────────


@sop_bp.route("/sops/<sop_id>/transition", methods=["POST"])
def transition_sop(sop_id):
    """Move an SOP along Draft → In Review → Approved → Effective.

    Body (JSON):
        status (str, required): target status.
        approvedBy (str, optional): stamped on Approved / Effective.
        force (bool, optional): set the status directly, skipping the edge
            check. Only honoured when SOP_ALLOW_STATUS_OVERRIDE is enabled.
    """
    data = request.get_json(silent=True) or {}

    new_status = data.get("status")
    if new_status not in SOP_STATUSES:
        return validation_error({"status": f"Must be one of: {', '.join(SOP_STATUSES)}."})

    errors = non_string_errors(data, ("approvedBy",))
    if errors:
        return validation_error(errors)

    force = parse_bool(data.get("force"))
    if force and not current_app.config.get("SOP_ALLOW_STATUS_OVERRIDE"):
        return api_error(E.FORBIDDEN, "Status override is disabled on this server")

    sop = sop_service.transition_status(
        sop_id,
        new_status,
        approved_by=data.get("approvedBy") or DEFAULT_APPROVER,
        force=force,
    )
    return jsonify(sop.to_dict()), 200


@sop_bp.route("/sops/<sop_id>/versions", methods=["POST"])
def create_version(sop_id):
    data = request.get_json(silent=True) or {}
    errors = non_string_errors(data, ("createdBy",))
    if errors:
        return validation_error(errors)
    sop = sop_service.create_new_version(sop_id, created_by=data.get("createdBy"))
    return jsonify(sop.to_dict()), 201


# ── Steps ─────────────────────────────────────────────────────────────────────


@sop_bp.route("/sops/<sop_id>/steps", methods=["POST"])
def add_step(sop_id):
    data = request.get_json(silent=True) or {}
    step = sop_service.add_step(sop_id, {k: data[k] for k in _STEP_FIELDS if k in data})
    return jsonify(step), 201


@sop_bp.route("/sops/<sop_id>/steps/order", methods=["PUT"])
def reorder_steps(sop_id):
    """Body: {"stepIds": [...]} listing every current step id once."""
    data = request.get_json(silent=True) or {}
    step_ids = data.get("stepIds")
    if not isinstance(step_ids, list):
        return validation_error({"stepIds": "A list of step ids is required."})
    sop = sop_service.reorder_steps(sop_id, [str(s) for s in step_ids])
    return jsonify(sop.to_dict(include_versions=False)), 200


@sop_bp.route("/sops/<sop_id>/steps/<step_id>", methods=["PUT"])
def update_step(sop_id, step_id):
    data = request.get_json(silent=True) or {}
    step = sop_service.update_step(
        sop_id, step_id, {k: data[k] for k in _STEP_FIELDS if k in data},
    )
    return jsonify(step), 200


@sop_bp.route("/sops/<sop_id>/steps/<step_id>", methods=["DELETE"])
def remove_step(sop_id, step_id):
    sop_service.remove_step(sop_id, step_id)
    return jsonify({"deleted": True, "id": step_id}), 200


# ── Business processes ────────────────────────────────────────────────────────


@sop_bp.route("/business-processes", methods=["GET"])
def list_business_processes():
    return jsonify([bp.to_dict() for bp in sop_service.list_business_processes()]), 200


@sop_bp.route("/business-processes", methods=["POST"])
def create_business_process():
    data = request.get_json(silent=True) or {}
    errors = non_string_errors(data, _BP_FIELDS)
    if "name" not in errors and not (data.get("name") or "").strip():
        errors["name"] = "Business process name is required."
    if errors:
        return validation_error(errors)
    bp = sop_service.create_business_process(to_service_fields(data, _BP_FIELDS))
    return jsonify(bp.to_dict()), 201


@sop_bp.route("/business-processes/<bp_id>", methods=["GET"])
def get_business_process(bp_id):
    return jsonify(sop_service.get_business_process(bp_id).to_dict()), 200


@sop_bp.route("/business-processes/<bp_id>", methods=["PUT"])
def update_business_process(bp_id):
    data = request.get_json(silent=True) or {}
    errors = non_string_errors(data, _BP_FIELDS)
    if errors:
        return validation_error(errors)
    bp = sop_service.update_business_process(bp_id, to_service_fields(data, _BP_FIELDS))
    return jsonify(bp.to_dict()), 200


@sop_bp.route("/business-processes/<bp_id>", methods=["DELETE"])
def delete_business_process(bp_id):
    unlinked = sop_service.delete_business_process(bp_id)
    return jsonify({"deleted": True, "id": bp_id, "unlinkedSops": unlinked}), 200
