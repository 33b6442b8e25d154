"""
DWM Platform
Work Inventory models.

Models:
    - WorkModule: a business process owned by a department
    - WorkTask: a unit of work inside a module, with typed inputs/outputs and
      links to the SOPs that control it

Architecture chain: Department → WorkModule → WorkTask (→ SOP by id)

KPI scoring is defined here as pure functions, alongside the models whose
fields feed it.
"""

import math
from datetime import datetime, timezone

from dwm.models import db


# ── Constants ────────────────────────────────────────────────────────────────

RISK_LEVELS = ("Low", "Medium", "High", "Critical")
TASK_STATUSES = ("Not Started", "In Progress", "Completed")
IO_TYPES = ("document", "material", "data", "approval", "other")

CONTROLLED = "Controlled"
UNCONTROLLED = "Uncontrolled"

DEFAULT_OPERATION = "Standard Operations"

# Share of a task's weight credited per completion state
_STATUS_CREDIT = {
    "Completed": 1.0,
    "In Progress": 0.5,
    "Not Started": 0.0,
}

RAG_GREEN_THRESHOLD = 75
RAG_AMBER_THRESHOLD = 40


# ── KPI Scoring ──────────────────────────────────────────────────────────────

def round_half_up(value: float, digits: int = 1) -> float:
    """Round half away from zero (12.25 → 12.3), unlike round()'s banker's rule."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def task_weight(task_count: int) -> float:
    """Equal share of 100 points per task; 0 for an empty module."""
    if task_count <= 0:
        return 0.0
    return 100 / task_count


def task_kpi_contribution(status: str, task_count: int) -> float:
    """Weighted points one task adds to its module score."""
    return task_weight(task_count) * _STATUS_CREDIT.get(status, 0.0)


def calculate_kpi_score(statuses) -> float:
    """
    Module KPI score from the completion states of its tasks.

    score = Σ weight × credit, rounded to one decimal.
    Completed = full weight, In Progress = half, Not Started = 0.
    """
    statuses = list(statuses)
    n = len(statuses)
    if n == 0:
        return 0.0
    return round_half_up(sum(task_kpi_contribution(s, n) for s in statuses))


def kpi_rag_status(score: float) -> str:
    """
    RAG band for a KPI score.
      >= 75      → Green
      40 – <75   → Amber
      < 40       → Red
    """
    if score >= RAG_GREEN_THRESHOLD:
        return "Green"
    if score >= RAG_AMBER_THRESHOLD:
        return "Amber"
    return "Red"


def control_status(linked_sop_ids) -> str:
    return CONTROLLED if linked_sop_ids else UNCONTROLLED


def _utcnow():
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════
#  MODULE
# ═══════════════════════════════════════════════════════════════════════════

class WorkModule(db.Model):
    """A process in the work inventory. Deleting it deletes its tasks."""

    __tablename__ = "work_modules"

    id = db.Column(db.String(20), primary_key=True, comment="MOD-001")
    department_id = db.Column(db.String(20), nullable=False, index=True, comment="Department.id")
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    owner = db.Column(db.String(150), default="", comment="OrgRole.name")
    risk_level = db.Column(db.String(10), nullable=False, default="Medium")
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    tasks = db.relationship(
        "WorkTask",
        backref="module",
        cascade="all, delete-orphan",
        lazy="select",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "departmentId": self.department_id,
            "name": self.name,
            "description": self.description or "",
            "owner": self.owner or "",
            "riskLevel": self.risk_level,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<WorkModule {self.id}: {self.name}>"


# ═══════════════════════════════════════════════════════════════════════════
#  TASK
# ═══════════════════════════════════════════════════════════════════════════

class WorkTask(db.Model):
    """
    A task inside a module.

    inputs / outputs are JSON lists of TaskIO dicts {id, label, type, description}.
    linked_sop_ids is a JSON list of SOP id strings (no FK).
    control_status is derived, never stored.
    """

    __tablename__ = "work_tasks"

    id = db.Column(db.String(20), primary_key=True, comment="TSK-001")
    module_id = db.Column(
        db.String(20), db.ForeignKey("work_modules.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    operation = db.Column(db.String(200), nullable=True)
    name = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    owner = db.Column(db.String(150), default="", comment="OrgRole.name")
    risk_level = db.Column(db.String(10), nullable=False, default="Medium")
    status = db.Column(db.String(20), nullable=False, default="Not Started")
    inputs = db.Column(db.JSON, nullable=False, default=list)
    outputs = db.Column(db.JSON, nullable=False, default=list)
    linked_sop_ids = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    @property
    def control_status(self) -> str:
        return control_status(self.linked_sop_ids)

    def to_dict(self):
        return {
            "id": self.id,
            "moduleId": self.module_id,
            "operation": self.operation,
            "name": self.name,
            "description": self.description or "",
            "owner": self.owner or "",
            "riskLevel": self.risk_level,
            "status": self.status,
            "inputs": list(self.inputs or []),
            "outputs": list(self.outputs or []),
            "linkedSopIds": list(self.linked_sop_ids or []),
            "controlStatus": self.control_status,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<WorkTask {self.id}: {self.name[:40]}>"
