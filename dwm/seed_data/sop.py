"""
SOP Library — Demo Seed Data

Three business processes and six SOPs spread across the lifecycle:

  SOP-001  Facility Cleaning Protocol        block  v2.1  Effective
  SOP-002  Equipment Calibration Procedure   file   v1.3  Effective
  SOP-003  Incident Response Plan            block  v1.0  In Review
  SOP-004  Chemical Waste Disposal           block  v0.3  Draft
  SOP-005  Employee Onboarding Checklist     file   v1.0  Approved
  SOP-006  Data Backup & Recovery            block  v3.0  Effective

Version entries keep their historical status; only the last one of each
SOP carries a step snapshot.
"""

from datetime import date, datetime, timezone


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


def _step(sid, instruction, photo=False, evidence=False, measurement=False):
    return {
        "id": sid,
        "instruction": instruction,
        "requirePhoto": photo,
        "requireEvidenceFile": evidence,
        "requireMeasurement": measurement,
    }


# ═════════════════════════════════════════════════════════════════════════════
# BUSINESS PROCESSES
# ═════════════════════════════════════════════════════════════════════════════

BUSINESS_PROCESSES = [
    {"id": "BP-001", "name": "Facility Operations",
     "description": "Cleaning, calibration and upkeep of sites and equipment",
     "created_at": _ts("2025-06-01")},
    {"id": "BP-002", "name": "Safety & Incident Management",
     "description": "Incident response, hazardous waste and regulatory reporting",
     "created_at": _ts("2025-06-01")},
    {"id": "BP-003", "name": "IT Service Continuity",
     "description": "Backups, recovery drills and system availability",
     "created_at": _ts("2025-07-01")},
]


# ═════════════════════════════════════════════════════════════════════════════
# SOPS
# ═════════════════════════════════════════════════════════════════════════════

_CLEANING_STEPS = [
    _step("s1", "Prepare cleaning solution according to MSDS guidelines.", measurement=True),
    _step("s2", "Begin with high-touch surfaces: door handles, light switches, railings.", photo=True),
    _step("s3", "Mop floors using approved disinfectant. Allow 10-minute dwell time.",
          evidence=True, measurement=True),
    _step("s4", "Document completion and any anomalies in the facility log.", photo=True),
]

_INCIDENT_STEPS = [
    _step("s1", "Identify and classify the incident severity (Critical, Major, Minor)."),
    _step("s2", "Notify the incident commander and assemble the response team."),
    _step("s3", "Contain the incident and document initial findings with photos.",
          photo=True, evidence=True),
]

_WASTE_STEPS = [
    _step("s1", "Categorize waste type per EPA classification.", evidence=True, measurement=True),
    _step("s2", "Use appropriate PPE and containment vessels.", photo=True),
]

_BACKUP_STEPS = [
    _step("s1", "Verify all critical databases are included in the backup scope."),
    _step("s2", "Run incremental backup and verify checksums.", evidence=True, measurement=True),
    _step("s3", "Test recovery on staging environment. Record RTO/RPO metrics.",
          photo=True, evidence=True, measurement=True),
]

SOPS = [
    {
        "id": "SOP-001", "title": "Facility Cleaning Protocol", "format": "block",
        "owner": "Sarah Chen", "last_edited_by": "Sarah Chen", "approved_by": "James Rodriguez",
        "current_version": "v2.1", "status": "Effective", "effective_date": date(2026, 1, 15),
        "created_at": _ts("2025-08-10"), "steps": _CLEANING_STEPS,
        "business_process_id": "BP-001",
        "versions": [
            {"version": "v1.0", "created_at": _ts("2025-08-10"), "created_by": "Sarah Chen", "status": "Effective"},
            {"version": "v2.0", "created_at": _ts("2025-12-01"), "created_by": "Sarah Chen", "status": "Effective"},
            {"version": "v2.1", "created_at": _ts("2026-01-15"), "created_by": "Sarah Chen", "status": "Effective",
             "steps": _CLEANING_STEPS},
        ],
    },
    {
        "id": "SOP-002", "title": "Equipment Calibration Procedure", "format": "file",
        "owner": "Mike Torres", "last_edited_by": "Mike Torres", "approved_by": "Sarah Chen",
        "current_version": "v1.3", "status": "Effective", "effective_date": date(2025, 11, 1),
        "created_at": _ts("2025-06-15"), "steps": [],
        "file_name": "calibration-procedure-v1.3.pdf",
        "business_process_id": "BP-001",
        "versions": [
            {"version": "v1.0", "created_at": _ts("2025-06-15"), "created_by": "Mike Torres", "status": "Effective"},
            {"version": "v1.3", "created_at": _ts("2025-11-01"), "created_by": "Mike Torres", "status": "Effective",
             "file_name": "calibration-procedure-v1.3.pdf"},
        ],
    },
    {
        "id": "SOP-003", "title": "Incident Response Plan", "format": "block",
        "owner": "Emily Park", "last_edited_by": "Emily Park", "approved_by": None,
        "current_version": "v1.0", "status": "In Review", "effective_date": None,
        "created_at": _ts("2026-02-01"), "steps": _INCIDENT_STEPS,
        "business_process_id": "BP-002",
        "versions": [
            {"version": "v1.0", "created_at": _ts("2026-02-01"), "created_by": "Emily Park", "status": "In Review",
             "steps": _INCIDENT_STEPS},
        ],
    },
    {
        "id": "SOP-004", "title": "Chemical Waste Disposal", "format": "block",
        "owner": "James Rodriguez", "last_edited_by": "James Rodriguez", "approved_by": None,
        "current_version": "v0.3", "status": "Draft", "effective_date": None,
        "created_at": _ts("2026-02-10"), "steps": _WASTE_STEPS,
        "business_process_id": "BP-002",
        "versions": [
            {"version": "v0.1", "created_at": _ts("2026-02-10"), "created_by": "James Rodriguez", "status": "Draft"},
            {"version": "v0.3", "created_at": _ts("2026-02-18"), "created_by": "James Rodriguez", "status": "Draft",
             "steps": _WASTE_STEPS},
        ],
    },
    {
        "id": "SOP-005", "title": "Employee Onboarding Checklist", "format": "file",
        "owner": "Lisa Wang", "last_edited_by": "Lisa Wang", "approved_by": None,
        "current_version": "v1.0", "status": "Approved", "effective_date": None,
        "created_at": _ts("2026-01-20"), "steps": [],
        "file_name": "onboarding-checklist-v1.pdf",
        "business_process_id": None,
        "versions": [
            {"version": "v1.0", "created_at": _ts("2026-01-20"), "created_by": "Lisa Wang", "status": "Approved",
             "file_name": "onboarding-checklist-v1.pdf"},
        ],
    },
    {
        "id": "SOP-006", "title": "Data Backup & Recovery", "format": "block",
        "owner": "David Kim", "last_edited_by": "Sarah Chen", "approved_by": "James Rodriguez",
        "current_version": "v3.0", "status": "Effective", "effective_date": date(2026, 2, 1),
        "created_at": _ts("2025-03-10"), "steps": _BACKUP_STEPS,
        "business_process_id": "BP-003",
        "versions": [
            {"version": "v1.0", "created_at": _ts("2025-03-10"), "created_by": "David Kim", "status": "Effective"},
            {"version": "v2.0", "created_at": _ts("2025-09-01"), "created_by": "David Kim", "status": "Effective"},
            {"version": "v3.0", "created_at": _ts("2026-02-01"), "created_by": "Sarah Chen", "status": "Effective",
             "steps": _BACKUP_STEPS},
        ],
    },
]
