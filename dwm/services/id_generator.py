"""
Sequential ID Generator

Generates human-readable primary keys:
  - SOPs:               SOP-{seq:03d}    (e.g. SOP-001)
  - Business processes: BP-{seq:03d}     (e.g. BP-004)
  - Work modules:       MOD-{seq:03d}
  - Work tasks:         TSK-{seq:03d}
  - Departments:        DEP-{seq:04d}    (e.g. DEP-0012)
  - Roles:              ROLE-{seq:04d}

The sequence is one past the highest numeric suffix in use, so an id is
never handed out again while its holder still exists, even after deletes
in the middle of the range.
"""

import re

from sqlalchemy import select

from dwm.models import db


def next_id(model_class, prefix: str, width: int = 3) -> str:
    """Generate next id: {PREFIX}-{SEQ:0{width}d}."""
    pattern = re.compile(rf"^{re.escape(prefix)}-(\d+)$")
    existing = db.session.execute(
        select(model_class.id).where(model_class.id.like(f"{prefix}-%"))
    ).scalars().all()

    highest = 0
    for value in existing:
        match = pattern.match(value or "")
        if match:
            highest = max(highest, int(match.group(1)))

    return f"{prefix}-{highest + 1:0{width}d}"


def generate_sop_id() -> str:
    """SOP-001, SOP-002, ..."""
    from dwm.models.sop import SopRecord  # lazy import, circular otherwise
    return next_id(SopRecord, "SOP")


def generate_business_process_id() -> str:
    """BP-001, BP-002, ..."""
    from dwm.models.sop import BusinessProcess
    return next_id(BusinessProcess, "BP")


def generate_module_id() -> str:
    """MOD-001, MOD-002, ..."""
    from dwm.models.work_inventory import WorkModule
    return next_id(WorkModule, "MOD")


def generate_task_id() -> str:
    """TSK-001, TSK-002, ..."""
    from dwm.models.work_inventory import WorkTask
    return next_id(WorkTask, "TSK")


def generate_department_id() -> str:
    """DEP-0001, DEP-0002, ..."""
    from dwm.models.organization import Department
    return next_id(Department, "DEP", width=4)


def generate_role_id() -> str:
    """ROLE-0001, ROLE-0002, ..."""
    from dwm.models.organization import OrgRole
    return next_id(OrgRole, "ROLE", width=4)
