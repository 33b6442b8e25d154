"""
Organization Structure — Seed Data

Three fixed tiers (always loaded), plus the demo role catalog and four
root departments whose heads reference role names.

  Strategic    →  3 roles (accountable)
  Managerial   →  7 roles (accountable / consulted)
  Operational  →  6 roles (responsible)
"""

from datetime import datetime, timezone

_seeded_at = datetime(2025, 6, 1, tzinfo=timezone.utc)


# ═════════════════════════════════════════════════════════════════════════════
# TIERS
# ═════════════════════════════════════════════════════════════════════════════

ROLE_TIERS = [
    {
        "id": "strategic",
        "name": "Strategic",
        "description": "Sets direction and priorities. Owns governance and organizational outcomes.",
        "sort_order": 1,
    },
    {
        "id": "managerial",
        "name": "Managerial",
        "description": (
            "Translates strategy to plans. Manages departments, KPIs, "
            "and coordinates cross-functions."
        ),
        "sort_order": 2,
    },
    {
        "id": "operational",
        "name": "Operational",
        "description": (
            "Executes daily operations. Delivers services and products. "
            "Provides frontline insights."
        ),
        "sort_order": 3,
    },
]


# ═════════════════════════════════════════════════════════════════════════════
# ROLES
# ═════════════════════════════════════════════════════════════════════════════

ORG_ROLES = [
    # ── Strategic ──
    {"id": "ROLE-0001", "name": "Director of Operations",
     "description": "Oversees all operational functions and strategic alignment",
     "tier_id": "strategic", "raci_type": "accountable"},
    {"id": "ROLE-0002", "name": "Facilities Director",
     "description": "Leads all facility management, infrastructure, and capital planning",
     "tier_id": "strategic", "raci_type": "accountable"},
    {"id": "ROLE-0003", "name": "IT Director",
     "description": "Drives IT strategy, cybersecurity, and digital infrastructure",
     "tier_id": "strategic", "raci_type": "accountable"},

    # ── Managerial ──
    {"id": "ROLE-0004", "name": "Senior Manager",
     "description": "Manages cross-functional teams and departmental objectives",
     "tier_id": "managerial", "raci_type": "accountable"},
    {"id": "ROLE-0005", "name": "Maintenance Manager",
     "description": "Plans and oversees preventive and corrective maintenance programs",
     "tier_id": "managerial", "raci_type": "accountable"},
    {"id": "ROLE-0006", "name": "HR Manager",
     "description": "Manages recruitment, onboarding, training, and employee relations",
     "tier_id": "managerial", "raci_type": "accountable"},
    {"id": "ROLE-0007", "name": "Compliance Lead",
     "description": "Ensures regulatory compliance and coordinates audits",
     "tier_id": "managerial", "raci_type": "consulted"},
    {"id": "ROLE-0008", "name": "QC Lead",
     "description": "Leads quality control processes and inspection standards",
     "tier_id": "managerial", "raci_type": "accountable"},
    {"id": "ROLE-0009", "name": "Logistics Coordinator",
     "description": "Coordinates inbound/outbound logistics and warehouse operations",
     "tier_id": "managerial", "raci_type": "consulted"},
    {"id": "ROLE-0010", "name": "IT Manager",
     "description": "Manages day-to-day IT operations and help desk",
     "tier_id": "managerial", "raci_type": "accountable"},

    # ── Operational ──
    {"id": "ROLE-0011", "name": "Maintenance Technician",
     "description": "Performs hands-on preventive and corrective maintenance tasks",
     "tier_id": "operational", "raci_type": "responsible"},
    {"id": "ROLE-0012", "name": "Senior Technician",
     "description": "Handles complex repairs and mentors junior technicians",
     "tier_id": "operational", "raci_type": "responsible"},
    {"id": "ROLE-0013", "name": "Facility Supervisor",
     "description": "Supervises daily facility cleaning and hygiene operations",
     "tier_id": "operational", "raci_type": "responsible"},
    {"id": "ROLE-0014", "name": "QC Inspector",
     "description": "Inspects incoming materials and in-process quality checks",
     "tier_id": "operational", "raci_type": "responsible"},
    {"id": "ROLE-0015", "name": "HSE Officer",
     "description": "Implements workplace safety protocols and incident response",
     "tier_id": "operational", "raci_type": "responsible"},
    {"id": "ROLE-0016", "name": "System Administrator",
     "description": "Manages system backups, server administration, and disaster recovery",
     "tier_id": "operational", "raci_type": "responsible"},
]

for _role in ORG_ROLES:
    _role["created_at"] = _seeded_at


# ═════════════════════════════════════════════════════════════════════════════
# DEPARTMENTS
# ═════════════════════════════════════════════════════════════════════════════

DEPARTMENTS = [
    {"id": "DEP-0001", "name": "Facility Management",
     "description": "Cleaning, maintenance, and facility operations across all locations",
     "head_of_department": "Facilities Director", "parent_id": None},
    {"id": "DEP-0002", "name": "IT & Data Operations",
     "description": "Data backup, recovery, IT infrastructure, and cybersecurity",
     "head_of_department": "IT Director", "parent_id": None},
    {"id": "DEP-0003", "name": "Safety & Compliance",
     "description": "Incident response, chemical handling, and regulatory compliance",
     "head_of_department": "Compliance Lead", "parent_id": None},
    {"id": "DEP-0004", "name": "Human Resources",
     "description": "Employee onboarding, training, and HR procedures",
     "head_of_department": "HR Manager", "parent_id": None},
]

for _dept in DEPARTMENTS:
    _dept["created_at"] = _seeded_at
