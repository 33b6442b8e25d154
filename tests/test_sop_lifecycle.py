"""
Tests: SOP lifecycle service.

State machine:
    Draft -> In Review -> Approved -> Effective
    create_new_version(): any status -> Draft, next major version

Covers:
    - create_sop defaults and the v0.1 version entry
    - Forward-only transitions, side effects, force override
    - Version cutting (major bump, step snapshot, approved_by cleared)
    - Content lock while Effective (metadata stays writable)
    - Step add / update / remove / reorder
    - AI result import
    - Business processes (delete unlinks SOPs)
"""

from datetime import date

import pytest

from dwm.core.exceptions import NotFoundError, ValidationError
from dwm.models import db as _db
from dwm.models.sop import next_major_version, parse_major_version
from dwm.services import sop_service as svc
from dwm.services.sop_service import SopLockedError, TransitionError


def _make_effective(sop_id):
    for status in ("In Review", "Approved", "Effective"):
        svc.transition_status(sop_id, status)
    return svc.get_sop(sop_id)


# ── Creation ─────────────────────────────────────────────────────────────────


def test_create_sop_starts_in_draft_at_v01_with_one_version():
    sop = svc.create_sop("Forklift Pre-Use Check", "block", "HSE Officer")

    assert sop.id == "SOP-001"
    assert sop.status == "Draft"
    assert sop.current_version == "v0.1"
    assert sop.last_edited_by == "HSE Officer"
    assert sop.approved_by is None
    assert sop.effective_date is None
    assert len(sop.versions) == 1
    assert sop.versions[0].version == "v0.1"
    assert sop.versions[0].status == "Draft"


def test_block_sop_gets_one_empty_step_file_sop_none():
    block = svc.create_sop("Block SOP", "block", "QC Lead")
    file_sop = svc.create_sop("File SOP", "file", "QC Lead", file_name="procedure.pdf")

    assert len(block.steps) == 1
    assert block.steps[0]["instruction"] == ""
    assert block.steps[0]["requirePhoto"] is False
    assert file_sop.steps == []
    assert file_sop.file_name == "procedure.pdf"


def test_create_sop_blank_owner_becomes_unassigned():
    sop = svc.create_sop("Untitled owner", "block", "   ")
    assert sop.owner == "Unassigned"


def test_create_sop_requires_title():
    with pytest.raises(ValidationError):
        svc.create_sop("  ", "block", "QC Lead")


def test_create_sop_rejects_unknown_business_process():
    with pytest.raises(ValidationError):
        svc.create_sop("Linked", "block", "QC Lead", business_process_id="BP-404")


# ── Transitions ──────────────────────────────────────────────────────────────


def test_full_forward_sequence_sets_side_effects():
    sop = svc.create_sop("Lockout Tagout", "block", "HSE Officer")

    svc.transition_status(sop.id, "In Review")
    assert sop.effective_date is None
    assert sop.approved_by is None

    svc.transition_status(sop.id, "Approved", approved_by="Compliance Lead")
    assert sop.effective_date is None
    assert sop.approved_by == "Compliance Lead"

    svc.transition_status(sop.id, "Effective")
    assert sop.status == "Effective"
    assert sop.effective_date == date.today()
    assert sop.approved_by == "System Admin"


@pytest.mark.parametrize(
    "start,target",
    [
        ("Draft", "Approved"),
        ("Draft", "Effective"),
        ("In Review", "Draft"),
        ("Approved", "In Review"),
        ("Effective", "Draft"),
    ],
)
def test_illegal_transition_raises(start, target):
    sop = svc.create_sop("Edge check", "block", "QC Lead")
    sop.status = start
    _db.session.commit()

    with pytest.raises(TransitionError):
        svc.transition_status(sop.id, target)
    assert svc.get_sop(sop.id).status == start


def test_force_sets_status_directly():
    sop = svc.create_sop("Override", "block", "QC Lead")
    svc.transition_status(sop.id, "Effective", force=True)
    assert sop.status == "Effective"
    assert sop.effective_date == date.today()


def test_unknown_status_rejected_even_with_force():
    sop = svc.create_sop("Unknown", "block", "QC Lead")
    with pytest.raises(TransitionError):
        svc.transition_status(sop.id, "Archived", force=True)


def test_validate_transition_and_next_status():
    assert svc.get_next_status("Draft") == "In Review"
    assert svc.get_next_status("Effective") is None
    assert svc.validate_transition("Approved", "Effective")["valid"] is True
    check = svc.validate_transition("Effective", "Draft")
    assert check["valid"] is False
    assert "new version" in check["reason"]


# ── Versioning ───────────────────────────────────────────────────────────────


def test_version_labels():
    assert next_major_version("v2.1") == "v3.0"
    assert next_major_version("v0.3") == "v1.0"
    assert parse_major_version("draft") == 0
    assert next_major_version("draft") == "v1.0"


def test_new_version_from_v21_bumps_major_and_snapshots_steps():
    sop = svc.create_sop("Calibration", "block", "QC Lead", steps=[
        {"instruction": "Zero the gauge", "requirePhoto": True},
        {"instruction": "Record reading", "requireEvidenceFile": True},
    ])
    sop.current_version = "v2.1"
    _db.session.commit()
    _make_effective(sop.id)
    steps_before = list(sop.steps)

    svc.create_new_version(sop.id)

    assert sop.id == "SOP-001"
    assert sop.current_version == "v3.0"
    assert sop.status == "Draft"
    assert sop.approved_by is None
    assert len(sop.versions) == 2
    latest = sop.versions[-1]
    assert latest.version == "v3.0"
    assert latest.status == "Draft"
    assert latest.steps == steps_before


# ── Lock ─────────────────────────────────────────────────────────────────────


def test_effective_sop_rejects_content_edits():
    sop = svc.create_sop("Locked", "block", "QC Lead")
    _make_effective(sop.id)

    with pytest.raises(SopLockedError):
        svc.update_sop(sop.id, {"title": "Renamed"})
    with pytest.raises(SopLockedError):
        svc.add_step(sop.id, {"instruction": "Extra"})
    with pytest.raises(SopLockedError):
        svc.remove_step(sop.id, sop.steps[0]["id"])
    assert svc.get_sop(sop.id).title == "Locked"


def test_effective_sop_accepts_unchanged_content_and_metadata():
    bp = svc.create_business_process({"name": "Facility Operations"})
    sop = svc.create_sop("Locked", "block", "QC Lead")
    _make_effective(sop.id)

    updated = svc.update_sop(sop.id, {
        "title": "Locked",
        "business_process_id": bp.id,
        "ai_analysis": "## Summary",
        "last_edited_by": "Compliance Lead",
    })
    assert updated.business_process_id == bp.id
    assert updated.ai_analysis == "## Summary"
    assert updated.last_edited_by == "Compliance Lead"


def test_new_version_unlocks_editing():
    sop = svc.create_sop("Locked", "block", "QC Lead")
    _make_effective(sop.id)
    svc.create_new_version(sop.id)

    svc.update_sop(sop.id, {"title": "Revised"})
    assert sop.title == "Revised"


def test_update_sop_cannot_move_status():
    sop = svc.create_sop("Status stays", "block", "QC Lead")
    svc.update_sop(sop.id, {"status": "Effective"})
    assert sop.status == "Draft"


# ── Steps ────────────────────────────────────────────────────────────────────


def test_step_add_update_remove():
    sop = svc.create_sop("Steps", "block", "QC Lead")
    first_id = sop.steps[0]["id"]

    added = svc.add_step(sop.id, {"instruction": "Wear gloves", "requirePhoto": True})
    assert added["id"] != first_id
    assert added["requirePhoto"] is True
    assert len(sop.steps) == 2

    changed = svc.update_step(sop.id, added["id"], {"instruction": "Wear nitrile gloves", "id": "hijack"})
    assert changed["id"] == added["id"]
    assert changed["instruction"] == "Wear nitrile gloves"
    assert changed["requirePhoto"] is True

    svc.remove_step(sop.id, first_id)
    assert [s["id"] for s in sop.steps] == [added["id"]]


def test_unknown_step_raises_not_found():
    sop = svc.create_sop("Steps", "block", "QC Lead")
    with pytest.raises(NotFoundError):
        svc.update_step(sop.id, "missing", {"instruction": "x"})
    with pytest.raises(NotFoundError):
        svc.remove_step(sop.id, "missing")


def test_reorder_steps_requires_permutation():
    sop = svc.create_sop("Order", "block", "QC Lead", steps=[
        {"instruction": "one"}, {"instruction": "two"}, {"instruction": "three"},
    ])
    ids = [s["id"] for s in sop.steps]

    svc.reorder_steps(sop.id, list(reversed(ids)))
    assert [s["instruction"] for s in sop.steps] == ["three", "two", "one"]

    with pytest.raises(ValidationError):
        svc.reorder_steps(sop.id, ids[:2])
    with pytest.raises(ValidationError):
        svc.reorder_steps(sop.id, [ids[0], ids[0], ids[1]])


# ── AI results ───────────────────────────────────────────────────────────────


def test_import_extracted_steps_replaces_steps_and_switches_to_block():
    sop = svc.create_sop("Uploaded", "file", "QC Lead", file_name="sop.docx")
    svc.import_extracted_steps(sop.id, [
        {"instruction": "Inspect the valve", "requirePhoto": True, "requireEvidenceFile": False},
        {"instruction": "Log the reading", "requirePhoto": False, "requireEvidenceFile": True},
    ])

    assert sop.format == "block"
    assert [s["instruction"] for s in sop.steps] == ["Inspect the valve", "Log the reading"]
    assert sop.steps[0]["requirePhoto"] is True
    assert sop.steps[1]["requireEvidenceFile"] is True
    assert all(s["requireMeasurement"] is False for s in sop.steps)


def test_import_extracted_steps_rejects_empty_list():
    sop = svc.create_sop("Uploaded", "file", "QC Lead")
    with pytest.raises(ValidationError):
        svc.import_extracted_steps(sop.id, [])


def test_apply_ai_analysis_allowed_while_effective():
    sop = svc.create_sop("Reviewed", "block", "QC Lead")
    _make_effective(sop.id)
    svc.apply_ai_analysis(sop.id, "## Risk Level\nLow")
    assert sop.ai_analysis == "## Risk Level\nLow"


# ── Business processes ───────────────────────────────────────────────────────


def test_delete_business_process_unlinks_sops():
    bp = svc.create_business_process({"name": "Safety"})
    a = svc.create_sop("A", "block", "QC Lead", business_process_id=bp.id)
    b = svc.create_sop("B", "block", "QC Lead", business_process_id=bp.id)

    unlinked = svc.delete_business_process(bp.id)

    assert unlinked == 2
    assert svc.get_sop(a.id).business_process_id is None
    assert svc.get_sop(b.id).business_process_id is None
    assert svc.list_business_processes() == []


def test_list_sops_filters():
    bp = svc.create_business_process({"name": "Safety"})
    svc.create_sop("A", "block", "QC Lead", business_process_id=bp.id)
    b = svc.create_sop("B", "block", "QC Lead")
    svc.transition_status(b.id, "In Review")

    assert [s.title for s in svc.list_sops(status="In Review")] == ["B"]
    assert [s.title for s in svc.list_sops(business_process_id=bp.id)] == ["A"]


# ── Rejected updates / input types ───────────────────────────────────────────


def test_rejected_sop_update_writes_nothing():
    sop = svc.create_sop("Original", "block", "QC Lead")

    with pytest.raises(ValidationError):
        svc.update_sop(sop.id, {"title": "Changed", "business_process_id": "BP-999"})
    svc.create_business_process({"name": "Unrelated"})
    _db.session.expire_all()

    stored = svc.get_sop(sop.id)
    assert stored.title == "Original"
    assert stored.business_process_id is None


@pytest.mark.parametrize("payload", [{"title": 123}, {"owner": ["QC Lead"]}, {"steps": "one"}])
def test_update_sop_rejects_wrongly_typed_fields(payload):
    sop = svc.create_sop("Typed", "block", "QC Lead")
    with pytest.raises(ValidationError):
        svc.update_sop(sop.id, payload)


def test_create_sop_rejects_non_string_title():
    with pytest.raises(ValidationError):
        svc.create_sop(123, "block", "QC Lead")


@pytest.mark.parametrize("value, expected", [("false", False), ("0", False), ("true", True), (1, True), (None, False)])
def test_step_flags_parse_strings(value, expected):
    sop = svc.create_sop("Flags", "block", "QC Lead")
    step = svc.add_step(sop.id, {"instruction": "Photo", "requirePhoto": value})
    assert step["requirePhoto"] is expected


def test_step_io_must_be_a_list():
    sop = svc.create_sop("Step IO", "block", "QC Lead")
    with pytest.raises(ValidationError):
        svc.add_step(sop.id, {"instruction": "x", "inputs": 5})
