"""
Workspace Service — cross-model reads.

The model services never call each other; anything that joins SOPs, work
inventory and the organization by their denormalized string references
lives here:

  - global_search():            one box across SOPs and tasks
  - resolve_sop_titles():       id → title for a task's linked SOPs
  - find_dangling_references(): data-quality report for name/id strings
                                that no longer resolve

Read-only: nothing here writes to the session.
"""

import logging

from sqlalchemy import select

from dwm.models import db
from dwm.models.organization import Department, OrgRole
from dwm.models.sop import BusinessProcess, SopRecord
from dwm.models.work_inventory import DEFAULT_OPERATION, WorkModule, WorkTask

logger = logging.getLogger(__name__)

UNKNOWN_TITLE = "Unknown"
DEFAULT_SEARCH_LIMIT = 5


def _contains(haystack, needle: str) -> bool:
    return bool(haystack) and needle in str(haystack).lower()


def global_search(query: str, department_id: str | None = None, limit: int = DEFAULT_SEARCH_LIMIT) -> dict:
    """Case-insensitive substring search over SOPs and tasks.

    SOPs match on id, title, owner or business-process name. Tasks match on
    id, name, owner, module name or operation; department_id narrows tasks to
    that department's modules. Each list holds at most ``limit`` hits.

    Returns:
        {"sops": [...], "tasks": [...]} — empty lists for a blank query.
    """
    needle = (query or "").strip().lower()
    if not needle:
        return {"sops": [], "tasks": []}

    bp_names = {bp.id: bp.name for bp in db.session.execute(select(BusinessProcess)).scalars()}

    sop_hits = []
    for sop in db.session.execute(select(SopRecord).order_by(SopRecord.id)).scalars():
        bp_name = bp_names.get(sop.business_process_id, "")
        if any(_contains(v, needle) for v in (sop.id, sop.title, sop.owner, bp_name)):
            sop_hits.append({
                "id": sop.id,
                "title": sop.title,
                "status": sop.status,
                "owner": sop.owner,
                "currentVersion": sop.current_version,
                "businessProcessName": bp_name or None,
            })
            if len(sop_hits) >= limit:
                break

    module_stmt = select(WorkModule)
    if department_id:
        module_stmt = module_stmt.where(WorkModule.department_id == department_id)
    modules = {m.id: m for m in db.session.execute(module_stmt).scalars()}

    task_hits = []
    if modules:
        task_stmt = (
            select(WorkTask)
            .where(WorkTask.module_id.in_(list(modules)))
            .order_by(WorkTask.id)
        )
        for task in db.session.execute(task_stmt).scalars():
            module = modules[task.module_id]
            fields = (task.id, task.name, task.owner, module.name, task.operation)
            if any(_contains(v, needle) for v in fields):
                task_hits.append({
                    "id": task.id,
                    "name": task.name,
                    "owner": task.owner,
                    "moduleId": module.id,
                    "moduleName": module.name,
                    "departmentId": module.department_id,
                    "operation": task.operation or DEFAULT_OPERATION,
                    "controlStatus": task.control_status,
                })
                if len(task_hits) >= limit:
                    break

    logger.debug(
        "Global search q=%r sops=%d tasks=%d", needle, len(sop_hits), len(task_hits),
    )
    return {"sops": sop_hits, "tasks": task_hits}


def resolve_sop_titles(sop_ids) -> dict[str, str]:
    """Map each id to its SOP title, "Unknown" when the SOP is gone."""
    ids = [i for i in (sop_ids or []) if i]
    if not ids:
        return {}
    rows = db.session.execute(
        select(SopRecord.id, SopRecord.title).where(SopRecord.id.in_(ids))
    ).all()
    titles = {row.id: row.title for row in rows}
    return {i: titles.get(i, UNKNOWN_TITLE) for i in ids}


def linked_sops_for_task(task: WorkTask) -> list[dict]:
    titles = resolve_sop_titles(task.linked_sop_ids)
    return [{"id": sop_id, "title": titles[sop_id]} for sop_id in task.linked_sop_ids or []]


def find_dangling_references() -> dict:
    """Report denormalized references that no longer resolve.

    Checks:
    - Department heads with no role of that name.
    - Departments whose parent no longer exists.
    - Task SOP links pointing at missing SOPs.
    - SOPs pointing at a missing business process.
    - Module / task owners with no role of that name.
    - Modules whose department no longer exists.
    """
    role_names = set(db.session.execute(select(OrgRole.name)).scalars())
    dept_ids = set(db.session.execute(select(Department.id)).scalars())
    sop_ids = set(db.session.execute(select(SopRecord.id)).scalars())
    bp_ids = set(db.session.execute(select(BusinessProcess.id)).scalars())

    department_heads = []
    orphan_departments = []
    for dept in db.session.execute(select(Department).order_by(Department.id)).scalars():
        if dept.head_of_department and dept.head_of_department not in role_names:
            department_heads.append({"departmentId": dept.id, "headOfDepartment": dept.head_of_department})
        if dept.parent_id and dept.parent_id not in dept_ids:
            orphan_departments.append({"departmentId": dept.id, "parentId": dept.parent_id})

    sop_business_processes = [
        {"sopId": sop.id, "businessProcessId": sop.business_process_id}
        for sop in db.session.execute(select(SopRecord).order_by(SopRecord.id)).scalars()
        if sop.business_process_id and sop.business_process_id not in bp_ids
    ]

    module_owners = []
    module_departments = []
    for module in db.session.execute(select(WorkModule).order_by(WorkModule.id)).scalars():
        if module.owner and module.owner not in role_names:
            module_owners.append({"moduleId": module.id, "owner": module.owner})
        if module.department_id not in dept_ids:
            module_departments.append({"moduleId": module.id, "departmentId": module.department_id})

    task_owners = []
    task_sop_links = []
    for task in db.session.execute(select(WorkTask).order_by(WorkTask.id)).scalars():
        if task.owner and task.owner not in role_names:
            task_owners.append({"taskId": task.id, "owner": task.owner})
        missing = [s for s in (task.linked_sop_ids or []) if s not in sop_ids]
        if missing:
            task_sop_links.append({"taskId": task.id, "missingSopIds": missing})

    report = {
        "departmentHeads": department_heads,
        "departmentParents": orphan_departments,
        "taskSopLinks": task_sop_links,
        "sopBusinessProcesses": sop_business_processes,
        "moduleOwners": module_owners,
        "moduleDepartments": module_departments,
        "taskOwners": task_owners,
    }
    report["total"] = sum(len(v) for v in report.values())
    logger.info("Dangling reference scan complete", extra={"dangling_total": report["total"]})
    return report
