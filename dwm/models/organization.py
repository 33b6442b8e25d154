"""
DWM Platform
Organization Structure models.

Models:
    - RoleTier: the three fixed organizational tiers (labels editable)
    - OrgRole: abstract role ("chair, not a person") with a RACI designation
    - Department: self-referential department forest (parent_id)

Roles are referenced from departments, modules and tasks by *name*, not by
id, so renaming a role does not cascade to those strings.
"""

from datetime import datetime, timezone

from dwm.models import db


# ── Constants ────────────────────────────────────────────────────────────────

TIER_IDS = ("strategic", "managerial", "operational")

RACI_TYPES = ("responsible", "accountable", "consulted", "informed")

RACI_LABELS = {
    "responsible": "Responsible",
    "accountable": "Accountable",
    "consulted": "Consulted",
    "informed": "Informed",
}

RACI_DESCRIPTIONS = {
    "responsible": "Does the work to complete the task or deliverable",
    "accountable": "Ultimately answerable for the correct completion; approves/signs off",
    "consulted": "Provides input and expertise before or during execution",
    "informed": "Kept up to date on progress and outcomes",
}

# Upper bound on parent hops when walking toward a root
BREADCRUMB_MAX_DEPTH = 20


def _utcnow():
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════
#  TIER
# ═══════════════════════════════════════════════════════════════════════════

class RoleTier(db.Model):
    """One of the three organizational tiers. Only name/description change."""

    __tablename__ = "role_tiers"

    id = db.Column(db.String(20), primary_key=True, comment="strategic|managerial|operational")
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, default="")
    sort_order = db.Column(db.Integer, default=0)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description or "",
        }

    def __repr__(self):
        return f"<RoleTier {self.id}>"


# ═══════════════════════════════════════════════════════════════════════════
#  ROLE
# ═══════════════════════════════════════════════════════════════════════════

class OrgRole(db.Model):
    """An organizational role within a tier, carrying a RACI type."""

    __tablename__ = "org_roles"

    id = db.Column(db.String(20), primary_key=True, comment="ROLE-0001")
    name = db.Column(db.String(150), nullable=False, index=True)
    description = db.Column(db.Text, default="")
    tier_id = db.Column(
        db.String(20), db.ForeignKey("role_tiers.id"), nullable=False, index=True,
    )
    raci_type = db.Column(db.String(20), nullable=False, default="responsible")
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description or "",
            "tierId": self.tier_id,
            "raciType": self.raci_type,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<OrgRole {self.id}: {self.name}>"


# ═══════════════════════════════════════════════════════════════════════════
#  DEPARTMENT
# ═══════════════════════════════════════════════════════════════════════════

class Department(db.Model):
    """
    A department node in the organization forest.

    parent_id is a plain string column (no FK) so that the tree can be
    rewritten in one pass when a node is deleted.
    head_of_department holds a role *name*.
    """

    __tablename__ = "departments"

    id = db.Column(db.String(20), primary_key=True, comment="DEP-0001")
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    head_of_department = db.Column(db.String(150), default="", comment="OrgRole.name")
    parent_id = db.Column(db.String(20), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description or "",
            "headOfDepartment": self.head_of_department or "",
            "parentId": self.parent_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Department {self.id}: {self.name}>"
