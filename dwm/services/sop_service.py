"""
SOP Lifecycle Service

Manages Standard Operating Procedures with:
  - Status transitions (SOP_TRANSITIONS), strict forward-only by default
  - Side effects (Approved/Effective stamp approved_by, Effective stamps
    effective_date)
  - Version cutting (major bump, snapshot of current steps, back to Draft)
  - Step editing (add / update / remove / reorder)
  - Content lock while an SOP is Effective
  - Business-process grouping (delete unlinks, never cascades)

Usage:
    from dwm.services import sop_service

    sop = sop_service.create_sop("Forklift Pre-Use Check", "block", "HSE Officer")
    sop_service.transition_status(sop.id, "In Review")
"""

import copy
import logging
from datetime import date

from sqlalchemy import select

from dwm.core.exceptions import NotFoundError, StateConflictError, ValidationError
from dwm.models import db
from dwm.models.sop import (
    DEFAULT_APPROVER,
    DEFAULT_OWNER,
    INITIAL_VERSION,
    LOCKED_FIELDS,
    SOP_FORMATS,
    SOP_STATUSES,
    SOP_TRANSITIONS,
    STEP_FLAGS,
    BusinessProcess,
    SopRecord,
    SopVersion,
    blank_step,
    next_major_version,
    validate_sop_transition,
)
from dwm.services.id_generator import generate_business_process_id, generate_sop_id
from dwm.utils.helpers import clean_text, parse_bool

logger = logging.getLogger(__name__)


class TransitionError(StateConflictError):
    """Raised when a requested SOP status change is not a legal edge."""

    def __init__(self, sop_id: str, current: str, requested: str, reason: str | None = None):
        msg = f"Cannot move SOP {sop_id} from '{current}' to '{requested}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
        self.sop_id = sop_id
        self.current_status = current
        self.requested_status = requested
        self.reason = reason


class SopLockedError(StateConflictError):
    """Raised when content of an Effective SOP is edited."""

    def __init__(self, sop_id: str, fields: list[str] | None = None):
        msg = f"SOP {sop_id} is Effective and locked; create a new version to edit it"
        if fields:
            msg += f" (fields: {', '.join(sorted(fields))})"
        super().__init__(msg)
        self.sop_id = sop_id
        self.fields = fields or []


# ── Lifecycle helpers ─────────────────────────────────────────────────────────


def get_next_status(status: str) -> str | None:
    """The single forward status after *status*, or None at the end."""
    targets = SOP_TRANSITIONS.get(status, [])
    return targets[0] if targets else None


def validate_transition(current: str, requested: str) -> dict:
    """
    Validate whether a status change is legal from the current state.

    Returns:
        {"valid": bool, "from": str, "to": str, "reason": str|None}
    """
    if requested not in SOP_STATUSES:
        return {"valid": False, "from": current, "to": requested,
                "reason": f"Unknown status: {requested}"}
    if not validate_sop_transition(current, requested):
        expected = get_next_status(current)
        reason = (
            f"Next status from '{current}' is '{expected}'" if expected
            else f"'{current}' is final; create a new version instead"
        )
        return {"valid": False, "from": current, "to": requested, "reason": reason}
    return {"valid": True, "from": current, "to": requested, "reason": None}


# ── Step helpers ──────────────────────────────────────────────────────────────


def _normalize_step(raw: dict) -> dict:
    """Coerce an incoming step dict to the stored shape, keeping its id."""
    step = blank_step(str(raw.get("instruction") or ""))
    if raw.get("id"):
        step["id"] = str(raw["id"])
    for flag in STEP_FLAGS:
        step[flag] = parse_bool(raw.get(flag))
    for io_key in ("inputs", "outputs"):
        if io_key in raw and raw[io_key] is not None:
            if not isinstance(raw[io_key], list):
                raise ValidationError(f"Step {io_key} must be a list", details={io_key: "not a list"})
            step[io_key] = copy.deepcopy(raw[io_key])
    return step


def _default_steps(fmt: str) -> list[dict]:
    return [blank_step()] if fmt == "block" else []


def _assert_unlocked(sop: SopRecord, fields: list[str] | None = None) -> None:
    if sop.is_locked:
        raise SopLockedError(sop.id, fields)


# ── SOP CRUD ──────────────────────────────────────────────────────────────────


def list_sops(status: str | None = None, business_process_id: str | None = None) -> list[SopRecord]:
    stmt = select(SopRecord)
    if status:
        stmt = stmt.where(SopRecord.status == status)
    if business_process_id:
        stmt = stmt.where(SopRecord.business_process_id == business_process_id)
    stmt = stmt.order_by(SopRecord.id)
    return db.session.execute(stmt).scalars().all()


def get_sop(sop_id: str) -> SopRecord:
    sop = db.session.get(SopRecord, sop_id)
    if not sop:
        raise NotFoundError(resource="SOP", resource_id=sop_id)
    return sop


def create_sop(
    title: str,
    format: str = "block",
    owner: str | None = None,
    steps: list[dict] | None = None,
    *,
    file_name: str | None = None,
    business_process_id: str | None = None,
) -> SopRecord:
    """Create an SOP in Draft at v0.1 with one matching version entry.

    Block SOPs start with one empty step unless steps are supplied; file SOPs
    start with none.

    Raises:
        ValidationError: Empty title, unknown format or unknown business process.
    """
    title = clean_text(title, "title")
    if not title:
        raise ValidationError("SOP title is required", details={"title": "required"})
    if format not in SOP_FORMATS:
        raise ValidationError(
            f"Invalid format '{format}'", details={"format": f"must be one of {', '.join(SOP_FORMATS)}"},
        )
    owner = clean_text(owner, "owner") or DEFAULT_OWNER
    file_name = clean_text(file_name, "file_name") or None
    business_process_id = clean_text(business_process_id, "business_process_id") or None
    if business_process_id:
        _assert_business_process_exists(business_process_id)

    initial_steps = [_normalize_step(s) for s in steps] if steps else _default_steps(format)

    sop = SopRecord(
        id=generate_sop_id(),
        title=title,
        format=format,
        owner=owner,
        last_edited_by=owner,
        approved_by=None,
        current_version=INITIAL_VERSION,
        status="Draft",
        effective_date=None,
        steps=initial_steps,
        file_name=file_name,
        business_process_id=business_process_id or None,
    )
    sop.versions.append(
        SopVersion(
            version=INITIAL_VERSION,
            created_by=owner,
            status="Draft",
            steps=copy.deepcopy(initial_steps),
            file_name=file_name,
        )
    )
    db.session.add(sop)
    db.session.commit()
    logger.info("SOP created", extra={"sop_id": sop.id, "format": format})
    return sop


def update_sop(sop_id: str, data: dict) -> SopRecord:
    """Shallow-merge updates into an SOP.

    Status and version are not writable here; use transition_status() and
    create_new_version(). Content fields (LOCKED_FIELDS) raise SopLockedError
    while the SOP is Effective; metadata stays writable. All fields are
    validated before any is written.
    """
    sop = get_sop(sop_id)
    changes = _sop_changes(data)

    if sop.is_locked:
        touched = [
            f for f in LOCKED_FIELDS
            if f in changes and getattr(sop, f) != changes[f]
        ]
        if touched:
            raise SopLockedError(sop_id, touched)
    if changes.get("business_process_id"):
        _assert_business_process_exists(changes["business_process_id"])

    for field, value in changes.items():
        setattr(sop, field, value)

    db.session.commit()
    logger.info("SOP updated", extra={"sop_id": sop_id, "fields": sorted(data)})
    return sop


def _sop_changes(data: dict) -> dict:
    """Normalize the writable fields present in data, raising on the first bad one."""
    changes = {}
    if "title" in data:
        changes["title"] = clean_text(data["title"], "title")
        if not changes["title"]:
            raise ValidationError("SOP title is required", details={"title": "required"})
    if "format" in data:
        if data["format"] not in SOP_FORMATS:
            raise ValidationError(
                f"Invalid format '{data['format']}'",
                details={"format": f"must be one of {', '.join(SOP_FORMATS)}"},
            )
        changes["format"] = data["format"]
    if "owner" in data:
        changes["owner"] = clean_text(data["owner"], "owner") or DEFAULT_OWNER
    if "steps" in data:
        steps = data["steps"] or []
        if not isinstance(steps, list) or not all(isinstance(s, dict) for s in steps):
            raise ValidationError("steps must be a list of objects", details={"steps": "bad list"})
        changes["steps"] = [_normalize_step(s) for s in steps]
    for field in ("file_name", "ai_analysis", "business_process_id"):
        if field in data:
            changes[field] = clean_text(data[field], field) or None
    if "last_edited_by" in data:
        changes["last_edited_by"] = clean_text(data["last_edited_by"], "last_edited_by")
    return changes


def delete_sop(sop_id: str) -> None:
    """Hard-delete an SOP and its version history."""
    sop = get_sop(sop_id)
    db.session.delete(sop)
    db.session.commit()
    logger.info("SOP deleted", extra={"sop_id": sop_id})


# ── Lifecycle ─────────────────────────────────────────────────────────────────


def transition_status(
    sop_id: str,
    new_status: str,
    *,
    approved_by: str = DEFAULT_APPROVER,
    force: bool = False,
) -> SopRecord:
    """Move an SOP to new_status.

    Only the single forward edge is accepted unless force=True, which sets
    any known status directly. Either way:
      - Effective stamps effective_date with today's date
      - Approved / Effective stamp approved_by

    Raises:
        TransitionError: Unknown status, or an illegal edge without force.
    """
    sop = get_sop(sop_id)
    old_status = sop.status

    if new_status not in SOP_STATUSES:
        raise TransitionError(sop_id, old_status, new_status, "unknown status")
    if not force:
        check = validate_transition(old_status, new_status)
        if not check["valid"]:
            raise TransitionError(sop_id, old_status, new_status, check["reason"])

    sop.status = new_status
    if new_status == "Effective":
        sop.effective_date = date.today()
    if new_status in ("Approved", "Effective"):
        sop.approved_by = approved_by or DEFAULT_APPROVER

    db.session.commit()
    logger.info(
        "SOP transitioned %s → %s",
        old_status, new_status,
        extra={"sop_id": sop_id, "forced": force},
    )
    return sop


def create_new_version(sop_id: str, *, created_by: str | None = None) -> SopRecord:
    """Cut the next major version: v2.1 → v3.0.

    Appends a version snapshot carrying a copy of the current steps, returns
    the SOP to Draft and clears approved_by. The id and history are kept.
    """
    sop = get_sop(sop_id)
    old_version = sop.current_version
    new_version = next_major_version(old_version)

    sop.versions.append(
        SopVersion(
            version=new_version,
            created_by=created_by or sop.owner,
            status="Draft",
            steps=copy.deepcopy(list(sop.steps or [])),
            file_name=sop.file_name,
            ai_analysis=sop.ai_analysis,
        )
    )
    sop.current_version = new_version
    sop.status = "Draft"
    sop.approved_by = None

    db.session.commit()
    logger.info(
        "SOP version cut %s → %s", old_version, new_version,
        extra={"sop_id": sop_id},
    )
    return sop


# ── Steps ─────────────────────────────────────────────────────────────────────


def add_step(sop_id: str, data: dict | None = None) -> dict:
    """Append a step (blank unless data given). Returns the new step."""
    sop = get_sop(sop_id)
    _assert_unlocked(sop, ["steps"])
    step = _normalize_step({**(data or {}), "id": None})
    sop.steps = list(sop.steps or []) + [step]
    db.session.commit()
    logger.info("SOP step added", extra={"sop_id": sop_id, "step_id": step["id"]})
    return step


def update_step(sop_id: str, step_id: str, data: dict) -> dict:
    """Merge fields into one step. The step id never changes."""
    sop = get_sop(sop_id)
    _assert_unlocked(sop, ["steps"])

    steps = copy.deepcopy(list(sop.steps or []))
    for idx, step in enumerate(steps):
        if step.get("id") == step_id:
            merged = {**step, **{k: v for k, v in data.items() if k != "id"}}
            merged["id"] = step_id
            steps[idx] = _normalize_step(merged)
            break
    else:
        raise NotFoundError(resource="SOPStep", resource_id=step_id)

    sop.steps = steps
    db.session.commit()
    logger.info("SOP step updated", extra={"sop_id": sop_id, "step_id": step_id})
    return steps[idx]


def remove_step(sop_id: str, step_id: str) -> None:
    sop = get_sop(sop_id)
    _assert_unlocked(sop, ["steps"])
    remaining = [s for s in (sop.steps or []) if s.get("id") != step_id]
    if len(remaining) == len(sop.steps or []):
        raise NotFoundError(resource="SOPStep", resource_id=step_id)
    sop.steps = remaining
    db.session.commit()
    logger.info("SOP step removed", extra={"sop_id": sop_id, "step_id": step_id})


def reorder_steps(sop_id: str, step_ids: list[str]) -> SopRecord:
    """Reorder steps to match step_ids, which must be a permutation of the current ids.

    Raises:
        ValidationError: step_ids adds, drops or repeats an id.
    """
    sop = get_sop(sop_id)
    _assert_unlocked(sop, ["steps"])

    by_id = {s.get("id"): s for s in (sop.steps or [])}
    if len(step_ids) != len(by_id) or set(step_ids) != set(by_id):
        raise ValidationError(
            "Step order must list every existing step id exactly once",
            details={"step_ids": "not a permutation of current steps"},
        )
    sop.steps = [copy.deepcopy(by_id[sid]) for sid in step_ids]
    db.session.commit()
    logger.info("SOP steps reordered", extra={"sop_id": sop_id})
    return sop


# ── AI results ────────────────────────────────────────────────────────────────


def apply_ai_analysis(sop_id: str, analysis: str) -> SopRecord:
    """Store an AI analysis on the SOP. Allowed while Effective."""
    sop = get_sop(sop_id)
    sop.ai_analysis = analysis
    db.session.commit()
    logger.info("AI analysis stored", extra={"sop_id": sop_id})
    return sop


def import_extracted_steps(sop_id: str, steps: list[dict]) -> SopRecord:
    """Replace the SOP's steps with AI-extracted ones and switch it to block format.

    Each extracted step gets a fresh id; requireMeasurement starts off.
    """
    sop = get_sop(sop_id)
    _assert_unlocked(sop, ["steps", "format"])
    if not steps:
        raise ValidationError("No steps to import", details={"steps": "empty"})

    imported = []
    for raw in steps:
        step = blank_step(str(raw.get("instruction") or ""))
        step["requirePhoto"] = parse_bool(raw.get("requirePhoto"))
        step["requireEvidenceFile"] = parse_bool(raw.get("requireEvidenceFile"))
        imported.append(step)

    sop.steps = imported
    sop.format = "block"
    db.session.commit()
    logger.info("Extracted steps imported", extra={"sop_id": sop_id, "count": len(imported)})
    return sop


# ── Business processes ────────────────────────────────────────────────────────


def list_business_processes() -> list[BusinessProcess]:
    stmt = select(BusinessProcess).order_by(BusinessProcess.id)
    return db.session.execute(stmt).scalars().all()


def get_business_process(bp_id: str) -> BusinessProcess:
    bp = db.session.get(BusinessProcess, bp_id)
    if not bp:
        raise NotFoundError(resource="BusinessProcess", resource_id=bp_id)
    return bp


def _assert_business_process_exists(bp_id: str) -> None:
    if db.session.get(BusinessProcess, bp_id) is None:
        raise ValidationError(
            f"Business process {bp_id} does not exist",
            details={"business_process_id": "not found"},
        )


def create_business_process(data: dict) -> BusinessProcess:
    name = clean_text(data.get("name"), "name")
    if not name:
        raise ValidationError("Business process name is required", details={"name": "required"})
    bp = BusinessProcess(
        id=generate_business_process_id(),
        name=name,
        description=clean_text(data.get("description"), "description"),
    )
    db.session.add(bp)
    db.session.commit()
    logger.info("Business process created", extra={"business_process_id": bp.id})
    return bp


def update_business_process(bp_id: str, data: dict) -> BusinessProcess:
    bp = get_business_process(bp_id)
    name = clean_text(data.get("name"), "name")
    if "name" in data and not name:
        raise ValidationError("Business process name is required", details={"name": "required"})
    description = clean_text(data.get("description"), "description")

    if "name" in data:
        bp.name = name
    if "description" in data:
        bp.description = description
    db.session.commit()
    logger.info("Business process updated", extra={"business_process_id": bp_id})
    return bp


def delete_business_process(bp_id: str) -> int:
    """Delete a business process and unlink its SOPs.

    Returns:
        Number of SOPs that were unlinked.
    """
    bp = get_business_process(bp_id)
    linked = list_sops(business_process_id=bp_id)
    for sop in linked:
        sop.business_process_id = None
    db.session.delete(bp)
    db.session.commit()
    logger.info(
        "Business process deleted",
        extra={"business_process_id": bp_id, "unlinked_sops": len(linked)},
    )
    return len(linked)
