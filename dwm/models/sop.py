"""
DWM Platform
SOP domain models.

Models:
    - BusinessProcess: flat grouping tag for SOPs
    - SopRecord: a Standard Operating Procedure with steps and lifecycle
    - SopVersion: immutable snapshot appended each time a version is cut

Lifecycle: Draft → In Review → Approved → Effective.
create_new_version() returns an SOP of any status to Draft under a new
major version label.
"""

import re
import uuid
from datetime import datetime, timezone

from dwm.models import db


# ── Constants ────────────────────────────────────────────────────────────────

SOP_STATUSES = ("Draft", "In Review", "Approved", "Effective")
SOP_FORMATS = ("block", "file")

# Forward-only, single-step edges
SOP_TRANSITIONS = {
    "Draft":     ["In Review"],
    "In Review": ["Approved"],
    "Approved":  ["Effective"],
    "Effective": [],
}

INITIAL_VERSION = "v0.1"
DEFAULT_APPROVER = "System Admin"
DEFAULT_OWNER = "Unassigned"

# Fields that cannot change while an SOP is Effective
LOCKED_FIELDS = frozenset({"title", "owner", "format", "steps", "file_name"})

STEP_FLAGS = ("requirePhoto", "requireEvidenceFile", "requireMeasurement")

_MAJOR_RE = re.compile(r"^\s*v?(\d+)", re.IGNORECASE)


def validate_sop_transition(old_status, new_status):
    """Return True if new_status is the legal next state after old_status."""
    return new_status in SOP_TRANSITIONS.get(old_status, [])


def parse_major_version(label: str | None) -> int:
    """
    Leading integer of a ``vMAJOR.MINOR`` label.

    Unparseable labels count as major 0.
    """
    match = _MAJOR_RE.match(label or "")
    return int(match.group(1)) if match else 0


def next_major_version(label: str | None) -> str:
    """v2.1 → v3.0, v0.3 → v1.0, garbage → v1.0"""
    return f"v{parse_major_version(label) + 1}.0"


def blank_step(instruction: str = "") -> dict:
    """A new step dict with a fresh id and every evidence flag off."""
    return {
        "id": str(uuid.uuid4()),
        "instruction": instruction,
        "requirePhoto": False,
        "requireEvidenceFile": False,
        "requireMeasurement": False,
    }


def _utcnow():
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════
#  BUSINESS PROCESS
# ═══════════════════════════════════════════════════════════════════════════

class BusinessProcess(db.Model):
    """A grouping tag for SOPs. SOPs outlive it (delete unlinks)."""

    __tablename__ = "business_processes"

    id = db.Column(db.String(20), primary_key=True, comment="BP-001")
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description or "",
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<BusinessProcess {self.id}: {self.name}>"


# ═══════════════════════════════════════════════════════════════════════════
#  SOP RECORD
# ═══════════════════════════════════════════════════════════════════════════

class SopRecord(db.Model):
    """
    A Standard Operating Procedure.

    steps is a JSON list of step dicts, always replaced as a whole list.
    business_process_id is a loose reference (no FK): deleting the process
    clears it on every SOP.
    """

    __tablename__ = "sop_records"

    id = db.Column(db.String(20), primary_key=True, comment="SOP-001")
    title = db.Column(db.String(300), nullable=False)
    format = db.Column(db.String(10), nullable=False, default="block", comment="block|file")
    owner = db.Column(db.String(150), default=DEFAULT_OWNER)
    last_edited_by = db.Column(db.String(150), default="")
    approved_by = db.Column(db.String(150), nullable=True)
    current_version = db.Column(db.String(20), nullable=False, default=INITIAL_VERSION)
    status = db.Column(db.String(20), nullable=False, default="Draft", index=True)
    effective_date = db.Column(db.Date, nullable=True)
    steps = db.Column(db.JSON, nullable=False, default=list)
    file_name = db.Column(db.String(300), nullable=True)
    ai_analysis = db.Column(db.Text, nullable=True)
    business_process_id = db.Column(db.String(20), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    versions = db.relationship(
        "SopVersion",
        backref="sop",
        cascade="all, delete-orphan",
        order_by="SopVersion.id",
        lazy="select",
    )

    @property
    def is_locked(self) -> bool:
        return self.status == "Effective"

    def to_dict(self, include_versions=True):
        d = {
            "id": self.id,
            "title": self.title,
            "format": self.format,
            "owner": self.owner,
            "lastEditedBy": self.last_edited_by,
            "approvedBy": self.approved_by,
            "currentVersion": self.current_version,
            "status": self.status,
            "effectiveDate": self.effective_date.isoformat() if self.effective_date else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "steps": list(self.steps or []),
            "fileName": self.file_name,
            "aiAnalysis": self.ai_analysis,
            "businessProcessId": self.business_process_id,
            "locked": self.is_locked,
        }
        if include_versions:
            d["versions"] = [v.to_dict() for v in self.versions]
        return d

    def __repr__(self):
        return f"<SopRecord {self.id} {self.current_version} [{self.status}]>"


# ═══════════════════════════════════════════════════════════════════════════
#  SOP VERSION
# ═══════════════════════════════════════════════════════════════════════════

class SopVersion(db.Model):
    """Immutable snapshot of an SOP at the moment a version was cut."""

    __tablename__ = "sop_versions"

    id = db.Column(db.Integer, primary_key=True)
    sop_id = db.Column(
        db.String(20), db.ForeignKey("sop_records.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    version = db.Column(db.String(20), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    created_by = db.Column(db.String(150), default="")
    status = db.Column(db.String(20), nullable=False, default="Draft")
    steps = db.Column(db.JSON, nullable=False, default=list)
    file_name = db.Column(db.String(300), nullable=True)
    ai_analysis = db.Column(db.Text, nullable=True)

    def to_dict(self):
        d = {
            "version": self.version,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "createdBy": self.created_by,
            "status": self.status,
            "steps": list(self.steps or []),
        }
        if self.file_name:
            d["fileName"] = self.file_name
        if self.ai_analysis:
            d["aiAnalysis"] = self.ai_analysis
        return d

    def __repr__(self):
        return f"<SopVersion {self.sop_id} {self.version}>"
