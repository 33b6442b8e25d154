"""
Seed Service — loads fixed reference rows and the demo workspace.

  ensure_default_tiers():  the three RoleTier rows; always run at startup
  seed_demo_data():        roles, departments, business processes, SOPs,
                           modules and tasks from dwm.seed_data

Both are safe to run repeatedly: rows whose id already exists are skipped.
"""

import copy
import logging

from dwm.models import db
from dwm.models.organization import Department, OrgRole, RoleTier
from dwm.models.sop import BusinessProcess, SopRecord, SopVersion
from dwm.models.work_inventory import WorkModule, WorkTask
from dwm.seed_data.organization import DEPARTMENTS, ORG_ROLES, ROLE_TIERS
from dwm.seed_data.sop import BUSINESS_PROCESSES, SOPS
from dwm.seed_data.work_inventory import WORK_MODULES, WORK_TASKS

logger = logging.getLogger(__name__)


def _insert_missing(model, rows) -> int:
    created = 0
    for row in rows:
        if db.session.get(model, row["id"]) is None:
            db.session.add(model(**copy.deepcopy(row)))
            created += 1
    return created


def ensure_default_tiers() -> int:
    """Insert any of the three tiers that are missing. Returns rows created."""
    created = _insert_missing(RoleTier, ROLE_TIERS)
    if created:
        db.session.commit()
        logger.info("Seeded %d role tiers", created)
    return created


def _seed_sops() -> int:
    created = 0
    for row in SOPS:
        if db.session.get(SopRecord, row["id"]) is not None:
            continue
        data = copy.deepcopy(row)
        versions = data.pop("versions")
        sop = SopRecord(**data)
        for v in versions:
            v.setdefault("steps", [])
            sop.versions.append(SopVersion(**v))
        db.session.add(sop)
        created += 1
    return created


def seed_demo_data() -> dict:
    """Load the demo workspace in one commit.

    Returns:
        Count of rows created per entity.
    """
    ensure_default_tiers()
    counts = {
        "roles": _insert_missing(OrgRole, ORG_ROLES),
        "departments": _insert_missing(Department, DEPARTMENTS),
        "business_processes": _insert_missing(BusinessProcess, BUSINESS_PROCESSES),
    }
    counts["sops"] = _seed_sops()
    counts["modules"] = _insert_missing(WorkModule, WORK_MODULES)
    db.session.flush()
    counts["tasks"] = _insert_missing(WorkTask, WORK_TASKS)
    db.session.commit()
    logger.info("Demo data seeded", extra={"seed_counts": counts})
    return counts
