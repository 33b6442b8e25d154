"""
Work Inventory — Demo Seed Data

Five modules owned by the seeded departments and six tasks:

  MOD-001  Maintenance Operations      DEP-0001  →  TSK-001, TSK-002, TSK-003
  MOD-002  Quality Control             DEP-0003  →  TSK-004
  MOD-003  Logistics & Warehousing     DEP-0001  →  (empty)
  MOD-004  Safety & Environment        DEP-0003  →  TSK-005
  MOD-005  IT Infrastructure           DEP-0002  →  TSK-006

Owners are role names from seed_data.organization.
"""

from datetime import datetime, timezone


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


def _io(io_id, label, io_type, description):
    return {"id": io_id, "label": label, "type": io_type, "description": description}


# ═════════════════════════════════════════════════════════════════════════════
# MODULES
# ═════════════════════════════════════════════════════════════════════════════

WORK_MODULES = [
    {
        "id": "MOD-001", "department_id": "DEP-0001", "name": "Maintenance Operations",
        "description": (
            "Preventive and corrective maintenance across all facilities and equipment. "
            "Covers scheduled inspections, unplanned repairs, facility cleaning, and "
            "equipment calibration to ensure operational continuity and compliance."
        ),
        "owner": "Maintenance Manager", "risk_level": "High", "created_at": _ts("2025-06-01"),
    },
    {
        "id": "MOD-002", "department_id": "DEP-0003", "name": "Quality Control",
        "description": (
            "Inspection, testing and quality assurance for all production outputs. "
            "Includes incoming material inspection, in-process checks, final product "
            "testing, and supplier quality management."
        ),
        "owner": "QC Lead", "risk_level": "Critical", "created_at": _ts("2025-06-01"),
    },
    {
        "id": "MOD-003", "department_id": "DEP-0001", "name": "Logistics & Warehousing",
        "description": (
            "Inbound receiving, storage, inventory management and outbound dispatch. "
            "Manages goods receipt, cycle counting, pick-pack-ship, and carrier coordination."
        ),
        "owner": "Logistics Coordinator", "risk_level": "Medium", "created_at": _ts("2025-06-15"),
    },
    {
        "id": "MOD-004", "department_id": "DEP-0003", "name": "Safety & Environment",
        "description": (
            "Workplace safety protocols, environmental compliance and incident response. "
            "Encompasses hazard identification, safety training, emergency drills, waste "
            "handling, and regulatory reporting."
        ),
        "owner": "HSE Officer", "risk_level": "Critical", "created_at": _ts("2025-07-01"),
    },
    {
        "id": "MOD-005", "department_id": "DEP-0002", "name": "IT Infrastructure",
        "description": (
            "Network management, system backups, cybersecurity and help desk operations. "
            "Covers server administration, data protection policies, user access "
            "management, and disaster recovery planning."
        ),
        "owner": "IT Manager", "risk_level": "High", "created_at": _ts("2025-07-10"),
    },
]


# ═════════════════════════════════════════════════════════════════════════════
# TASKS
# ═════════════════════════════════════════════════════════════════════════════

WORK_TASKS = [
    {
        "id": "TSK-001", "module_id": "MOD-001", "operation": "Equipment Maintenance",
        "name": "Preventive Maintenance Schedule",
        "description": "Routine scheduled maintenance for all production equipment",
        "owner": "Maintenance Technician", "risk_level": "High", "status": "Completed",
        "inputs": [
            _io("io-1", "Equipment Registry", "data", "List of all equipment with maintenance intervals"),
            _io("io-2", "Spare Parts Inventory", "material", "Available spare parts and consumables"),
        ],
        "outputs": [
            _io("io-3", "Maintenance Log", "document", "Completed maintenance record with findings"),
            _io("io-4", "Equipment Status Report", "data", "Updated equipment health status"),
        ],
        "linked_sop_ids": ["SOP-002"], "created_at": _ts("2025-06-10"),
    },
    {
        "id": "TSK-002", "module_id": "MOD-001", "operation": "Equipment Maintenance",
        "name": "Corrective Maintenance Response",
        "description": "Unplanned breakdown repair and root cause analysis",
        "owner": "Senior Technician", "risk_level": "Critical", "status": "In Progress",
        "inputs": [
            _io("io-5", "Breakdown Notification", "data", "Alert from monitoring system or operator report"),
            _io("io-6", "Equipment Manual", "document", "OEM technical documentation"),
        ],
        "outputs": [
            _io("io-7", "Repair Report", "document", "Details of repair actions and parts replaced"),
            _io("io-8", "Root Cause Analysis", "document", "Investigation findings and preventive recommendations"),
        ],
        "linked_sop_ids": [], "created_at": _ts("2025-06-12"),
    },
    {
        "id": "TSK-003", "module_id": "MOD-001", "operation": None,
        "name": "Facility Cleaning & Hygiene",
        "description": "Scheduled cleaning of production and office areas",
        "owner": "Facility Supervisor", "risk_level": "Medium", "status": "Completed",
        "inputs": [
            _io("io-9", "Cleaning Schedule", "data", "Weekly/monthly cleaning rotation plan"),
            _io("io-10", "Cleaning Supplies", "material", "Approved cleaning agents and tools"),
        ],
        "outputs": [
            _io("io-11", "Cleaning Checklist", "document", "Signed checklist confirming completion"),
        ],
        "linked_sop_ids": ["SOP-001"], "created_at": _ts("2025-06-15"),
    },
    {
        "id": "TSK-004", "module_id": "MOD-002", "operation": "Inbound Quality",
        "name": "Incoming Material Inspection",
        "description": "Quality check on raw materials and components upon receipt",
        "owner": "QC Inspector", "risk_level": "High", "status": "Not Started",
        "inputs": [
            _io("io-12", "Purchase Order", "document", "PO with material specifications"),
            _io("io-13", "Supplier COA", "document", "Certificate of analysis from vendor"),
        ],
        "outputs": [
            _io("io-14", "Inspection Report", "document", "Pass/fail results with measurements"),
            _io("io-15", "Material Release", "approval", "Authorization to use material in production"),
        ],
        "linked_sop_ids": [], "created_at": _ts("2025-06-20"),
    },
    {
        "id": "TSK-005", "module_id": "MOD-004", "operation": "Incident Management",
        "name": "Incident Investigation & Reporting",
        "description": "Investigate workplace incidents and file regulatory reports",
        "owner": "HSE Officer", "risk_level": "Critical", "status": "In Progress",
        "inputs": [
            _io("io-16", "Incident Notification", "data", "Initial incident report from site"),
            _io("io-17", "Witness Statements", "document", "Written accounts from witnesses"),
        ],
        "outputs": [
            _io("io-18", "Investigation Report", "document",
                "Full investigation with root cause and corrective actions"),
            _io("io-19", "Regulatory Filing", "document", "OSHA/EPA filing if required"),
        ],
        "linked_sop_ids": ["SOP-003"], "created_at": _ts("2025-07-05"),
    },
    {
        "id": "TSK-006", "module_id": "MOD-005", "operation": "Data Protection",
        "name": "Data Backup & Disaster Recovery",
        "description": "Daily backup procedures and quarterly DR drills",
        "owner": "System Administrator", "risk_level": "High", "status": "Completed",
        "inputs": [
            _io("io-20", "Backup Policy", "document", "Defined RPO/RTO targets and backup scope"),
            _io("io-21", "System Inventory", "data", "Servers and databases in scope"),
        ],
        "outputs": [
            _io("io-22", "Backup Verification Log", "document", "Checksum validation and restore test results"),
            _io("io-23", "DR Test Report", "document", "Quarterly disaster recovery drill outcome"),
        ],
        "linked_sop_ids": ["SOP-006"], "created_at": _ts("2025-07-15"),
    },
]
