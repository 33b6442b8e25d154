"""
Work Inventory Blueprint — modules, tasks, KPI roll-ups.

Endpoints:
    GET    /api/v1/work/modules                    — list (?departmentId=)
    POST   /api/v1/work/modules                    — create
    GET    /api/v1/work/modules/<id>               — detail
    PUT    /api/v1/work/modules/<id>               — update
    DELETE /api/v1/work/modules/<id>               — delete incl. tasks
    GET    /api/v1/work/modules/<id>/tasks         — tasks of a module
    GET    /api/v1/work/modules/<id>/kpi           — KPI score, RAG, counts
    GET    /api/v1/work/modules/<id>/operations    — tasks grouped by operation

    GET    /api/v1/work/tasks                      — list (?moduleId=)
    POST   /api/v1/work/tasks                      — create (autoIo flag)
    GET    /api/v1/work/tasks/<id>                 — detail incl. linked SOP titles
    PUT    /api/v1/work/tasks/<id>                 — update
    DELETE /api/v1/work/tasks/<id>                 — delete
    POST   /api/v1/work/tasks/suggest-io           — heuristic inputs/outputs for a name
"""

import logging

from flask import Blueprint, jsonify, request

from dwm.models.work_inventory import RISK_LEVELS, TASK_STATUSES
from dwm.services import work_inventory_service
from dwm.services.task_io_generator import generate_task_ios
from dwm.services.workspace_service import linked_sops_for_task
from dwm.utils.helpers import non_string_errors, parse_bool, to_service_fields, validation_error

logger = logging.getLogger(__name__)

work_inventory_bp = Blueprint("work_inventory", __name__, url_prefix="/api/v1/work")

_MODULE_FIELDS = {
    "name": "name",
    "description": "description",
    "owner": "owner",
    "departmentId": "department_id",
    "riskLevel": "risk_level",
}
_TASK_FIELDS = {
    "moduleId": "module_id",
    "operation": "operation",
    "name": "name",
    "description": "description",
    "owner": "owner",
    "riskLevel": "risk_level",
    "status": "status",
    "inputs": "inputs",
    "outputs": "outputs",
    "linkedSopIds": "linked_sop_ids",
}
_TEXT_FIELDS = ("name", "description", "owner", "departmentId", "moduleId", "operation")


def _payload_errors(data: dict) -> dict[str, str]:
    errors = non_string_errors(data, _TEXT_FIELDS)
    if "riskLevel" in data and data["riskLevel"] not in RISK_LEVELS:
        errors["riskLevel"] = f"Must be one of: {', '.join(RISK_LEVELS)}."
    if "status" in data and data["status"] not in TASK_STATUSES:
        errors["status"] = f"Must be one of: {', '.join(TASK_STATUSES)}."
    for key in ("inputs", "outputs", "linkedSopIds"):
        if key in data and data[key] is not None and not isinstance(data[key], list):
            errors[key] = "Must be a list."
    return errors


# ── Modules ───────────────────────────────────────────────────────────────────


@work_inventory_bp.route("/modules", methods=["GET"])
def list_modules():
    modules = work_inventory_service.list_modules(request.args.get("departmentId"))
    return jsonify([m.to_dict() for m in modules]), 200


@work_inventory_bp.route("/modules", methods=["POST"])
def create_module():
    """Create a module.

    Body (JSON):
        name (str, required)
        departmentId (str, required)
        owner (str, required): a role name
        riskLevel (str, optional): Low | Medium | High | Critical
        description (str, optional)
    """
    data = request.get_json(silent=True) or {}

    errors = _payload_errors(data)
    for key in ("name", "departmentId", "owner"):
        if not str(data.get(key) or "").strip():
            errors[key] = f"{key} is required."
    if errors:
        return validation_error(errors)

    module = work_inventory_service.create_module(to_service_fields(data, _MODULE_FIELDS))
    return jsonify(module.to_dict()), 201


@work_inventory_bp.route("/modules/<module_id>", methods=["GET"])
def get_module(module_id):
    module = work_inventory_service.get_module(module_id)
    result = module.to_dict()
    result["summary"] = work_inventory_service.get_module_summary(module_id)
    return jsonify(result), 200


@work_inventory_bp.route("/modules/<module_id>", methods=["PUT"])
def update_module(module_id):
    data = request.get_json(silent=True) or {}
    errors = _payload_errors(data)
    if errors:
        return validation_error(errors)
    module = work_inventory_service.update_module(module_id, to_service_fields(data, _MODULE_FIELDS))
    return jsonify(module.to_dict()), 200


@work_inventory_bp.route("/modules/<module_id>", methods=["DELETE"])
def delete_module(module_id):
    deleted_tasks = work_inventory_service.delete_module(module_id)
    return jsonify({"deleted": True, "id": module_id, "deletedTasks": deleted_tasks}), 200


@work_inventory_bp.route("/modules/<module_id>/tasks", methods=["GET"])
def module_tasks(module_id):
    work_inventory_service.get_module(module_id)
    tasks = work_inventory_service.get_module_tasks(module_id)
    return jsonify([t.to_dict() for t in tasks]), 200


@work_inventory_bp.route("/modules/<module_id>/kpi", methods=["GET"])
def module_kpi(module_id):
    return jsonify(work_inventory_service.get_module_summary(module_id)), 200


@work_inventory_bp.route("/modules/<module_id>/operations", methods=["GET"])
def module_operations(module_id):
    groups = work_inventory_service.group_tasks_by_operation(module_id)
    return jsonify([
        {"operation": name, "tasks": [t.to_dict() for t in tasks]}
        for name, tasks in groups.items()
    ]), 200


# ── Tasks ─────────────────────────────────────────────────────────────────────


@work_inventory_bp.route("/tasks", methods=["GET"])
def list_tasks():
    tasks = work_inventory_service.list_tasks(request.args.get("moduleId"))
    return jsonify([t.to_dict() for t in tasks]), 200


@work_inventory_bp.route("/tasks", methods=["POST"])
def create_task():
    """Create a task.

    Body (JSON):
        moduleId (str, required)
        name (str, required)
        owner (str, required)
        operation, description, riskLevel, status (optional)
        inputs / outputs (list[TaskIO], optional)
        linkedSopIds (list[str], optional)
        autoIo (bool, optional): fill inputs/outputs from the task name when
            neither is supplied.
    """
    data = request.get_json(silent=True) or {}

    errors = _payload_errors(data)
    for key in ("moduleId", "name", "owner"):
        if not str(data.get(key) or "").strip():
            errors[key] = f"{key} is required."
    if errors:
        return validation_error(errors)

    task = work_inventory_service.create_task(
        to_service_fields(data, _TASK_FIELDS),
        auto_io=parse_bool(data.get("autoIo")),
    )
    return jsonify(task.to_dict()), 201


@work_inventory_bp.route("/tasks/suggest-io", methods=["POST"])
def suggest_io():
    """Body: {"name": "..."} → {"inputs": [...], "outputs": [...]}. Nothing is stored."""
    data = request.get_json(silent=True) or {}
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        return validation_error({"name": "Task name is required."})
    return jsonify(generate_task_ios(name.strip())), 200


@work_inventory_bp.route("/tasks/<task_id>", methods=["GET"])
def get_task(task_id):
    task = work_inventory_service.get_task(task_id)
    result = task.to_dict()
    result["linkedSops"] = linked_sops_for_task(task)
    result["kpiContribution"] = work_inventory_service.get_task_kpi_score(task_id)
    return jsonify(result), 200


@work_inventory_bp.route("/tasks/<task_id>", methods=["PUT"])
def update_task(task_id):
    data = request.get_json(silent=True) or {}
    errors = _payload_errors(data)
    if errors:
        return validation_error(errors)
    task = work_inventory_service.update_task(task_id, to_service_fields(data, _TASK_FIELDS))
    return jsonify(task.to_dict()), 200


@work_inventory_bp.route("/tasks/<task_id>", methods=["DELETE"])
def delete_task(task_id):
    work_inventory_service.delete_task(task_id)
    return jsonify({"deleted": True, "id": task_id}), 200
