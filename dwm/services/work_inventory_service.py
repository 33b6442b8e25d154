"""Work Inventory service layer — modules, tasks and KPI roll-ups.

Transaction policy: every public mutation ends in one db.session.commit().

Operations:
- Module CRUD (delete cascades to the module's tasks in the same commit)
- Task CRUD with typed I/O validation and optional heuristic I/O suggestion
- Control status (Controlled iff the task links at least one SOP)
- KPI score / RAG status per module, weight and contribution per task
- Operation grouping and a per-module summary
"""
import logging
import uuid
from collections import OrderedDict

from sqlalchemy import select

from dwm.core.exceptions import NotFoundError, ValidationError
from dwm.models import db
from dwm.models.work_inventory import (
    DEFAULT_OPERATION,
    IO_TYPES,
    RISK_LEVELS,
    TASK_STATUSES,
    WorkModule,
    WorkTask,
    calculate_kpi_score,
    control_status,
    kpi_rag_status,
    task_kpi_contribution,
    task_weight,
)
from dwm.services.id_generator import generate_module_id, generate_task_id
from dwm.services.task_io_generator import generate_task_ios
from dwm.utils.helpers import clean_text

logger = logging.getLogger(__name__)


# ── Validation helpers ───────────────────────────────────────────────────


def _required_text(data, field, errors):
    value = (data.get(field) or "").strip() if isinstance(data.get(field), str) else ""
    if not value:
        errors[field] = "required"
    return value


def _check_enum(value, allowed, field, errors):
    if value not in allowed:
        errors[field] = f"must be one of {', '.join(allowed)}"


def _normalize_ios(items, field):
    """Validate a TaskIO list and return a fresh copy with ids filled in."""
    if items is None:
        return []
    if not isinstance(items, list):
        raise ValidationError(f"{field} must be a list", details={field: "not a list"})
    result = []
    for idx, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError(f"{field}[{idx}] must be an object", details={field: "bad item"})
        label = raw.get("label").strip() if isinstance(raw.get("label"), str) else ""
        if not label:
            raise ValidationError(f"{field}[{idx}].label is required", details={field: "label required"})
        io_type = raw.get("type", "other")
        if io_type not in IO_TYPES:
            raise ValidationError(
                f"{field}[{idx}].type '{io_type}' is invalid",
                details={field: f"type must be one of {', '.join(IO_TYPES)}"},
            )
        result.append({
            "id": str(raw.get("id") or uuid.uuid4()),
            "label": label,
            "type": io_type,
            "description": clean_text(raw.get("description"), f"{field}[{idx}].description"),
        })
    return result


def _normalize_sop_links(ids):
    """Distinct SOP ids, first occurrence wins."""
    if ids is None:
        return []
    if not isinstance(ids, list):
        raise ValidationError("linked_sop_ids must be a list", details={"linked_sop_ids": "not a list"})
    return list(OrderedDict.fromkeys(str(i) for i in ids if i))


# ── Module ───────────────────────────────────────────────────────────────


def list_modules(department_id=None):
    stmt = select(WorkModule)
    if department_id:
        stmt = stmt.where(WorkModule.department_id == department_id)
    return db.session.execute(stmt.order_by(WorkModule.id)).scalars().all()


def get_module(module_id):
    module = db.session.get(WorkModule, module_id)
    if not module:
        raise NotFoundError(resource="WorkModule", resource_id=module_id)
    return module


def create_module(data):
    """Create a module. Requires name, department_id and owner."""
    errors = {}
    name = _required_text(data, "name", errors)
    department_id = _required_text(data, "department_id", errors)
    owner = _required_text(data, "owner", errors)
    risk_level = data.get("risk_level", "Medium")
    _check_enum(risk_level, RISK_LEVELS, "risk_level", errors)
    if errors:
        raise ValidationError("Module validation failed", details=errors)

    module = WorkModule(
        id=generate_module_id(),
        department_id=department_id,
        name=name,
        description=clean_text(data.get("description"), "description"),
        owner=owner,
        risk_level=risk_level,
    )
    db.session.add(module)
    db.session.commit()
    logger.info("Module created", extra={"module_id": module.id, "department_id": department_id})
    return module


def update_module(module_id, data):
    module = get_module(module_id)

    errors = {}
    for field in ("name", "department_id", "owner"):
        if field in data:
            _required_text(data, field, errors)
    if "risk_level" in data:
        _check_enum(data["risk_level"], RISK_LEVELS, "risk_level", errors)
    if errors:
        raise ValidationError("Module validation failed", details=errors)
    description = clean_text(data.get("description"), "description")

    for field in ("name", "department_id", "owner"):
        if field in data:
            setattr(module, field, data[field].strip())
    if "description" in data:
        module.description = description
    if "risk_level" in data:
        module.risk_level = data["risk_level"]

    db.session.commit()
    logger.info("Module updated", extra={"module_id": module_id})
    return module


def delete_module(module_id):
    """Delete a module and every task inside it.

    Returns:
        Number of tasks removed with the module.
    """
    module = get_module(module_id)
    task_count = len(module.tasks)
    db.session.delete(module)
    db.session.commit()
    logger.info("Module deleted", extra={"module_id": module_id, "deleted_tasks": task_count})
    return task_count


# ── Task ─────────────────────────────────────────────────────────────────


def list_tasks(module_id=None):
    stmt = select(WorkTask)
    if module_id:
        stmt = stmt.where(WorkTask.module_id == module_id)
    return db.session.execute(stmt.order_by(WorkTask.id)).scalars().all()


def get_module_tasks(module_id):
    return list_tasks(module_id=module_id)


def get_task(task_id):
    task = db.session.get(WorkTask, task_id)
    if not task:
        raise NotFoundError(resource="WorkTask", resource_id=task_id)
    return task


def create_task(data, *, auto_io=False):
    """Create a task inside an existing module.

    With auto_io=True and neither inputs nor outputs supplied, the heuristic
    generator fills both from the task name.
    """
    errors = {}
    name = _required_text(data, "name", errors)
    owner = _required_text(data, "owner", errors)
    module_id = _required_text(data, "module_id", errors)
    risk_level = data.get("risk_level", "Medium")
    _check_enum(risk_level, RISK_LEVELS, "risk_level", errors)
    status = data.get("status", "Not Started")
    _check_enum(status, TASK_STATUSES, "status", errors)
    if module_id and db.session.get(WorkModule, module_id) is None:
        errors["module_id"] = "not found"
    if errors:
        raise ValidationError("Task validation failed", details=errors)

    inputs = _normalize_ios(data.get("inputs"), "inputs")
    outputs = _normalize_ios(data.get("outputs"), "outputs")
    if auto_io and not inputs and not outputs:
        suggested = generate_task_ios(name)
        inputs, outputs = suggested["inputs"], suggested["outputs"]

    task = WorkTask(
        id=generate_task_id(),
        module_id=module_id,
        operation=clean_text(data.get("operation"), "operation") or None,
        name=name,
        description=clean_text(data.get("description"), "description"),
        owner=owner,
        risk_level=risk_level,
        status=status,
        inputs=inputs,
        outputs=outputs,
        linked_sop_ids=_normalize_sop_links(data.get("linked_sop_ids")),
    )
    db.session.add(task)
    db.session.commit()
    logger.info(
        "Task created",
        extra={"task_id": task.id, "module_id": module_id, "auto_io": auto_io},
    )
    return task


def update_task(task_id, data):
    """Shallow-merge updates into a task. List fields are replaced whole."""
    task = get_task(task_id)

    errors = {}
    for field in ("name", "owner", "module_id"):
        if field in data:
            _required_text(data, field, errors)
    if "risk_level" in data:
        _check_enum(data["risk_level"], RISK_LEVELS, "risk_level", errors)
    if "status" in data:
        _check_enum(data["status"], TASK_STATUSES, "status", errors)
    if "module_id" not in errors and data.get("module_id"):
        if db.session.get(WorkModule, data["module_id"].strip()) is None:
            errors["module_id"] = "not found"
    if errors:
        raise ValidationError("Task validation failed", details=errors)

    # Normalize everything before touching the task
    changes = {}
    for field in ("name", "owner", "module_id"):
        if field in data:
            changes[field] = data[field].strip()
    for field in ("risk_level", "status"):
        if field in data:
            changes[field] = data[field]
    if "description" in data:
        changes["description"] = clean_text(data["description"], "description")
    if "operation" in data:
        changes["operation"] = clean_text(data["operation"], "operation") or None
    for field in ("inputs", "outputs"):
        if field in data:
            changes[field] = _normalize_ios(data[field], field)
    if "linked_sop_ids" in data:
        changes["linked_sop_ids"] = _normalize_sop_links(data["linked_sop_ids"])

    for field, value in changes.items():
        setattr(task, field, value)

    db.session.commit()
    logger.info("Task updated", extra={"task_id": task_id})
    return task


def delete_task(task_id):
    task = get_task(task_id)
    db.session.delete(task)
    db.session.commit()
    logger.info("Task deleted", extra={"task_id": task_id})


# ── Control status / KPI ─────────────────────────────────────────────────


def get_task_control_status(task_id):
    return control_status(get_task(task_id).linked_sop_ids)


def get_task_weight(module_id):
    """Weight each task of the module carries: 100 / N (0 when empty)."""
    get_module(module_id)
    return task_weight(len(get_module_tasks(module_id)))


def get_task_kpi_score(task_id):
    """Points this task contributes to its module's KPI score."""
    task = get_task(task_id)
    siblings = len(get_module_tasks(task.module_id))
    return task_kpi_contribution(task.status, siblings)


def get_module_kpi_score(module_id):
    get_module(module_id)
    return calculate_kpi_score(t.status for t in get_module_tasks(module_id))


def get_module_rag_status(module_id):
    return kpi_rag_status(get_module_kpi_score(module_id))


def group_tasks_by_operation(module_id):
    """Tasks of a module keyed by operation, in first-seen order.

    Tasks without an operation fall under DEFAULT_OPERATION.
    """
    get_module(module_id)
    groups = OrderedDict()
    for task in get_module_tasks(module_id):
        groups.setdefault(task.operation or DEFAULT_OPERATION, []).append(task)
    return groups


def get_module_summary(module_id):
    """Task count, controlled count, status breakdown, KPI score and RAG."""
    module = get_module(module_id)
    tasks = get_module_tasks(module_id)
    score = calculate_kpi_score(t.status for t in tasks)
    by_status = {s: 0 for s in TASK_STATUSES}
    for t in tasks:
        by_status[t.status] = by_status.get(t.status, 0) + 1
    controlled = sum(1 for t in tasks if t.linked_sop_ids)
    return {
        "moduleId": module.id,
        "taskCount": len(tasks),
        "controlledCount": controlled,
        "uncontrolledCount": len(tasks) - controlled,
        "byStatus": by_status,
        "taskWeight": round(task_weight(len(tasks)), 2),
        "kpiScore": score,
        "ragStatus": kpi_rag_status(score),
    }
