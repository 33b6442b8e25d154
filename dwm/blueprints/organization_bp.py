"""
Organization Blueprint — tiers, RACI roles and the department tree.

Endpoints:
    GET    /api/v1/org/tiers                              — list tiers
    PUT    /api/v1/org/tiers/<id>                         — rename tier
    GET    /api/v1/org/roles                              — list roles (?tierId=)
    POST   /api/v1/org/roles                              — create role
    GET    /api/v1/org/roles/options                      — dropdown options
    GET    /api/v1/org/raci-types                         — RACI reference
    GET    /api/v1/org/roles/<id>                         — role detail
    PUT    /api/v1/org/roles/<id>                         — update role
    DELETE /api/v1/org/roles/<id>                         — delete role
    GET    /api/v1/org/departments                        — list (?parentId=, ?roots=1)
    POST   /api/v1/org/departments                        — create department
    GET    /api/v1/org/departments/<id>                   — department detail
    PUT    /api/v1/org/departments/<id>                   — update department
    DELETE /api/v1/org/departments/<id>                   — delete + promote children
    GET    /api/v1/org/departments/<id>/children          — direct children
    GET    /api/v1/org/departments/<id>/breadcrumbs       — root-to-self path
    GET    /api/v1/org/departments/<id>/parent-options    — legal new parents

Layer contract:
    - No ORM calls here — all DB work delegated to organization_service.
    - No db.session.commit() here.
    - Service exceptions are mapped by dwm.utils.errors.
"""

import logging

from flask import Blueprint, jsonify, request

from dwm.models.organization import RACI_TYPES, TIER_IDS
from dwm.services import organization_service
from dwm.utils.helpers import non_string_errors, parse_bool, to_service_fields, validation_error

logger = logging.getLogger(__name__)

organization_bp = Blueprint("organization", __name__, url_prefix="/api/v1/org")

_TIER_FIELDS = {"name": "name", "description": "description"}
_ROLE_FIELDS = {
    "name": "name",
    "description": "description",
    "tierId": "tier_id",
    "raciType": "raci_type",
}
_DEPARTMENT_FIELDS = {
    "name": "name",
    "description": "description",
    "headOfDepartment": "head_of_department",
    "parentId": "parent_id",
}


# ── Tiers ─────────────────────────────────────────────────────────────────────


@organization_bp.route("/tiers", methods=["GET"])
def list_tiers():
    return jsonify([t.to_dict() for t in organization_service.list_tiers()]), 200


@organization_bp.route("/tiers/<tier_id>", methods=["PUT"])
def update_tier(tier_id):
    data = request.get_json(silent=True) or {}
    errors = non_string_errors(data, _TIER_FIELDS)
    if errors:
        return validation_error(errors)
    tier = organization_service.update_tier(tier_id, to_service_fields(data, _TIER_FIELDS))
    return jsonify(tier.to_dict()), 200


# ── Roles ─────────────────────────────────────────────────────────────────────


@organization_bp.route("/roles", methods=["GET"])
def list_roles():
    """List roles, optionally for one tier (?tierId=managerial)."""
    tier_id = request.args.get("tierId")
    roles = organization_service.list_roles(tier_id=tier_id)
    return jsonify([r.to_dict() for r in roles]), 200


@organization_bp.route("/roles", methods=["POST"])
def create_role():
    """Create a RACI role.

    Body (JSON):
        name (str, required)
        tierId (str, required): strategic | managerial | operational
        raciType (str, required): responsible | accountable | consulted | informed
        description (str, optional)
    """
    data = request.get_json(silent=True) or {}

    errors = non_string_errors(data, ("name", "description"))
    if not isinstance(data.get("name"), str) or not data["name"].strip():
        errors["name"] = "Role name is required."
    if data.get("tierId") not in TIER_IDS:
        errors["tierId"] = f"Must be one of: {', '.join(TIER_IDS)}."
    if data.get("raciType") not in RACI_TYPES:
        errors["raciType"] = f"Must be one of: {', '.join(RACI_TYPES)}."
    if errors:
        return validation_error(errors)

    role = organization_service.create_role(to_service_fields(data, _ROLE_FIELDS))
    return jsonify(role.to_dict()), 201


@organization_bp.route("/roles/options", methods=["GET"])
def role_options():
    return jsonify(organization_service.get_role_options()), 200


@organization_bp.route("/raci-types", methods=["GET"])
def raci_types():
    return jsonify(organization_service.get_raci_types()), 200


@organization_bp.route("/roles/<role_id>", methods=["GET"])
def get_role(role_id):
    return jsonify(organization_service.get_role(role_id).to_dict()), 200


@organization_bp.route("/roles/<role_id>", methods=["PUT"])
def update_role(role_id):
    data = request.get_json(silent=True) or {}
    errors = non_string_errors(data, ("name", "description"))
    if errors:
        return validation_error(errors)
    role = organization_service.update_role(role_id, to_service_fields(data, _ROLE_FIELDS))
    return jsonify(role.to_dict()), 200


@organization_bp.route("/roles/<role_id>", methods=["DELETE"])
def delete_role(role_id):
    organization_service.delete_role(role_id)
    return jsonify({"deleted": True, "id": role_id}), 200


# ── Departments ───────────────────────────────────────────────────────────────


@organization_bp.route("/departments", methods=["GET"])
def list_departments():
    """List departments.

    Query params:
        parentId (str, optional): only direct children of this department.
        roots (bool, optional): only departments without a parent.
    """
    parent_id = request.args.get("parentId")
    if parent_id:
        departments = organization_service.get_child_departments(parent_id)
    elif parse_bool(request.args.get("roots")):
        departments = organization_service.get_root_departments()
    else:
        departments = organization_service.list_departments()
    return jsonify([d.to_dict() for d in departments]), 200


@organization_bp.route("/departments", methods=["POST"])
def create_department():
    """Create a department.

    Body (JSON):
        name (str, required)
        parentId (str, optional): must reference an existing department.
        headOfDepartment (str, optional): a role name.
        description (str, optional)
    """
    data = request.get_json(silent=True) or {}

    errors = non_string_errors(data, _DEPARTMENT_FIELDS)
    if "name" not in errors and not (data.get("name") or "").strip():
        errors["name"] = "Department name is required."
    if errors:
        return validation_error(errors)

    dept = organization_service.create_department(to_service_fields(data, _DEPARTMENT_FIELDS))
    return jsonify(dept.to_dict()), 201


@organization_bp.route("/departments/<department_id>", methods=["GET"])
def get_department(department_id):
    return jsonify(organization_service.get_department(department_id).to_dict()), 200


@organization_bp.route("/departments/<department_id>", methods=["PUT"])
def update_department(department_id):
    data = request.get_json(silent=True) or {}
    errors = non_string_errors(data, _DEPARTMENT_FIELDS)
    if errors:
        return validation_error(errors)
    dept = organization_service.update_department(
        department_id, to_service_fields(data, _DEPARTMENT_FIELDS),
    )
    return jsonify(dept.to_dict()), 200


@organization_bp.route("/departments/<department_id>", methods=["DELETE"])
def delete_department(department_id):
    organization_service.delete_department(department_id)
    return jsonify({"deleted": True, "id": department_id}), 200


@organization_bp.route("/departments/<department_id>/children", methods=["GET"])
def department_children(department_id):
    organization_service.get_department(department_id)
    children = organization_service.get_child_departments(department_id)
    return jsonify([d.to_dict() for d in children]), 200


@organization_bp.route("/departments/<department_id>/breadcrumbs", methods=["GET"])
def department_breadcrumbs(department_id):
    organization_service.get_department(department_id)
    trail = organization_service.get_department_breadcrumbs(department_id)
    return jsonify([{"id": d.id, "name": d.name} for d in trail]), 200


@organization_bp.route("/departments/<department_id>/parent-options", methods=["GET"])
def department_parent_options(department_id):
    organization_service.get_department(department_id)
    options = organization_service.get_parent_options(department_id)
    return jsonify([{"id": d.id, "name": d.name} for d in options]), 200
