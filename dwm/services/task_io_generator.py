"""
Task I/O Heuristic Generator

Suggests typed inputs/outputs for a work task from keywords in its name.

Rules are checked in order; every rule with at least one keyword found in
the lower-cased name (plain substring match, so "it" also hits "facility")
contributes all of its templates. Each generated item gets a fresh UUID.
When nothing matches, a single generic input and output are returned.

Pure function — no DB access, safe to call from any layer.
"""

import uuid

IO_RULES: list[dict] = [
    {
        "keywords": ("cleaning", "hygiene", "sanitize"),
        "inputs": [
            {"label": "Cleaning Supplies", "type": "material", "description": "Approved cleaning agents and tools"},
            {"label": "Safety Protocol", "type": "document", "description": "Personal protective equipment requirements"},
        ],
        "outputs": [
            {"label": "Cleaning Log", "type": "document", "description": "Record of sanitized areas"},
        ],
    },
    {
        "keywords": ("calibration", "maintenance", "repair", "service"),
        "inputs": [
            {"label": "Equipment Manual", "type": "document", "description": "Technical specifications and procedures"},
            {"label": "Spare Parts", "type": "material", "description": "Components for replacement or service"},
        ],
        "outputs": [
            {"label": "Service Report", "type": "document", "description": "Details of work performed"},
            {"label": "Equipment Status", "type": "data", "description": "Current health/calibration state"},
        ],
    },
    {
        "keywords": ("review", "assess", "check", "inspect", "audit"),
        "inputs": [
            {"label": "Standard/Checklist", "type": "document", "description": "Reference criteria for inspection"},
            {"label": "Raw Data/Observations", "type": "data", "description": "Current state to be reviewed"},
        ],
        "outputs": [
            {"label": "Audit Findings", "type": "document", "description": "Discovered gaps or confirmations"},
            {"label": "Approval Status", "type": "approval", "description": "Official sign-off or rejection"},
        ],
    },
    {
        "keywords": ("recruit", "hire", "interview", "onboarding"),
        "inputs": [
            {"label": "Candidate Profile", "type": "data", "description": "Resume and background information"},
            {"label": "Job Description", "type": "document", "description": "Role requirements and scope"},
        ],
        "outputs": [
            {"label": "Interview Feedback", "type": "document", "description": "Assessment of candidate fit"},
            {"label": "Hiring Decision", "type": "approval", "description": "Final selection status"},
        ],
    },
    {
        "keywords": ("backup", "data", "it", "setup", "it infrastructure"),
        "inputs": [
            {"label": "System Config", "type": "data", "description": "Current environment settings"},
            {"label": "Access Rights", "type": "approval", "description": "Required permissions for tasks"},
        ],
        "outputs": [
            {"label": "System Log", "type": "data", "description": "Trace of actions taken"},
            {"label": "Configuration Snapshot", "type": "document", "description": "New state documentation"},
        ],
    },
    {
        "keywords": ("payroll", "tax", "timecard"),
        "inputs": [
            {"label": "Time Records", "type": "data", "description": "Logged hours for the period"},
            {"label": "Tax Regulations", "type": "document", "description": "Compliance guidelines"},
        ],
        "outputs": [
            {"label": "Payment Summary", "type": "document", "description": "Calculated payroll details"},
            {"label": "Compliance Filing", "type": "document", "description": "Submitted records for authority"},
        ],
    },
]


def _with_id(template: dict) -> dict:
    return {"id": str(uuid.uuid4()), **template}


def matching_rules(name: str) -> list[dict]:
    lowered = (name or "").lower()
    return [rule for rule in IO_RULES if any(k in lowered for k in rule["keywords"])]


def generate_task_ios(name: str) -> dict:
    """Suggest inputs/outputs for a task name.

    Returns:
        {"inputs": [TaskIO, ...], "outputs": [TaskIO, ...]} — never empty lists.
    """
    inputs: list[dict] = []
    outputs: list[dict] = []
    for rule in matching_rules(name):
        inputs.extend(_with_id(t) for t in rule["inputs"])
        outputs.extend(_with_id(t) for t in rule["outputs"])

    if not inputs:
        inputs.append(_with_id({
            "label": "Prerequisites",
            "type": "other",
            "description": f"Required items for {name}",
        }))
    if not outputs:
        outputs.append(_with_id({
            "label": "Result/Output",
            "type": "data",
            "description": f"Outcome of {name}",
        }))

    return {"inputs": inputs, "outputs": outputs}
