"""
Tests: Work Inventory service — modules, tasks, control status and KPI.

KPI: weight = 100 / N per task; Completed = full weight, In Progress = half,
Not Started = 0; summed and rounded half-up to one decimal.
RAG: >= 75 Green, 40..75 Amber, < 40 Red.
"""

import pytest

from dwm.core.exceptions import NotFoundError, ValidationError
from dwm.models import db as _db
from dwm.models.work_inventory import (
    WorkTask,
    calculate_kpi_score,
    kpi_rag_status,
    round_half_up,
)
from dwm.services import work_inventory_service as svc


def _module(name="Maintenance Operations", department_id="DEP-0001", owner="Maintenance Manager"):
    return svc.create_module({"name": name, "department_id": department_id, "owner": owner})


def _task(module_id, name="Inspect pump", status="Not Started", **extra):
    data = {"module_id": module_id, "name": name, "owner": "Maintenance Technician", "status": status}
    data.update(extra)
    return svc.create_task(data)


# ── Pure scoring ─────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "statuses,score,rag",
    [
        ([], 0.0, "Red"),
        (["Completed", "In Progress", "Not Started", "Not Started"], 37.5, "Red"),
        (["Completed", "Completed", "Not Started", "Not Started"], 50.0, "Amber"),
        (["Completed", "Completed", "Completed", "In Progress"], 87.5, "Green"),
        (["Completed", "In Progress", "Completed"], 83.3, "Green"),
        (["In Progress", "Not Started", "Not Started"], 16.7, "Red"),
    ],
)
def test_calculate_kpi_score(statuses, score, rag):
    assert calculate_kpi_score(statuses) == score
    assert kpi_rag_status(calculate_kpi_score(statuses)) == rag


def test_rag_band_edges():
    assert kpi_rag_status(75) == "Green"
    assert kpi_rag_status(74.9) == "Amber"
    assert kpi_rag_status(40) == "Amber"
    assert kpi_rag_status(39.9) == "Red"


def test_round_half_up_rounds_away_from_even():
    assert round_half_up(12.25) == 12.3
    assert round_half_up(0.05) == 0.1


# ── Modules ──────────────────────────────────────────────────────────────────


def test_create_module_requires_name_department_owner():
    with pytest.raises(ValidationError) as exc_info:
        svc.create_module({"name": "", "department_id": "", "owner": ""})
    assert set(exc_info.value.details) == {"name", "department_id", "owner"}


def test_create_module_rejects_unknown_risk_level():
    with pytest.raises(ValidationError):
        svc.create_module({"name": "QC", "department_id": "DEP-0001", "owner": "QC Lead", "risk_level": "Severe"})


def test_delete_module_cascades_to_tasks():
    module = _module()
    for name in ("Inspect pump", "Replace filter", "Grease bearings"):
        _task(module.id, name)
    other = _module("Quality Control")
    survivor = _task(other.id, "Sample batch")

    deleted = svc.delete_module(module.id)

    assert deleted == 3
    with pytest.raises(NotFoundError):
        svc.get_module(module.id)
    assert _db.session.query(WorkTask).filter_by(module_id=module.id).count() == 0
    assert [t.id for t in svc.list_tasks()] == [survivor.id]


def test_list_modules_by_department():
    _module("A", department_id="DEP-0001")
    _module("B", department_id="DEP-0002")
    assert [m.name for m in svc.list_modules("DEP-0002")] == ["B"]


# ── Tasks ────────────────────────────────────────────────────────────────────


def test_create_task_requires_existing_module():
    with pytest.raises(ValidationError) as exc_info:
        _task("MOD-404")
    assert exc_info.value.details == {"module_id": "not found"}


def test_create_task_validates_io_type():
    module = _module()
    with pytest.raises(ValidationError):
        _task(module.id, inputs=[{"label": "Manual", "type": "spreadsheet"}])


def test_create_task_fills_io_ids():
    module = _module()
    task = _task(module.id, inputs=[{"label": "Manual", "type": "document"}])
    assert task.inputs[0]["id"]
    assert task.inputs[0]["description"] == ""


def test_auto_io_fills_from_task_name():
    module = _module()
    task = svc.create_task(
        {"module_id": module.id, "name": "Facility Cleaning & Hygiene", "owner": "Facility Supervisor"},
        auto_io=True,
    )
    assert "Cleaning Supplies" in [i["label"] for i in task.inputs]
    assert "Cleaning Log" in [o["label"] for o in task.outputs]


def test_auto_io_keeps_supplied_ios():
    module = _module()
    task = svc.create_task(
        {
            "module_id": module.id,
            "name": "Facility Cleaning",
            "owner": "Facility Supervisor",
            "inputs": [{"label": "Mop", "type": "material"}],
        },
        auto_io=True,
    )
    assert [i["label"] for i in task.inputs] == ["Mop"]
    assert task.outputs == []


def test_control_status_follows_linked_sops():
    module = _module()
    task = _task(module.id)
    assert svc.get_task_control_status(task.id) == "Uncontrolled"

    svc.update_task(task.id, {"linked_sop_ids": ["SOP-001", "SOP-001", "SOP-002"]})
    assert task.linked_sop_ids == ["SOP-001", "SOP-002"]
    assert svc.get_task_control_status(task.id) == "Controlled"

    svc.update_task(task.id, {"linked_sop_ids": []})
    assert svc.get_task_control_status(task.id) == "Uncontrolled"
    assert task.to_dict()["controlStatus"] == "Uncontrolled"


def test_update_task_can_move_between_modules():
    a = _module("A")
    b = _module("B")
    task = _task(a.id)
    svc.update_task(task.id, {"module_id": b.id})
    assert [t.id for t in svc.get_module_tasks(b.id)] == [task.id]
    with pytest.raises(ValidationError):
        svc.update_task(task.id, {"module_id": "MOD-404"})


# ── KPI through the service ──────────────────────────────────────────────────


def test_module_kpi_and_rag():
    module = _module()
    _task(module.id, "a", "Completed")
    _task(module.id, "b", "In Progress")
    _task(module.id, "c", "Not Started")
    _task(module.id, "d", "Not Started")

    assert svc.get_task_weight(module.id) == 25
    assert svc.get_module_kpi_score(module.id) == 37.5
    assert svc.get_module_rag_status(module.id) == "Red"


def test_task_kpi_contribution():
    module = _module()
    done = _task(module.id, "a", "Completed")
    half = _task(module.id, "b", "In Progress")
    assert svc.get_task_kpi_score(done.id) == 50
    assert svc.get_task_kpi_score(half.id) == 25


def test_empty_module_scores_zero():
    module = _module()
    assert svc.get_task_weight(module.id) == 0
    assert svc.get_module_kpi_score(module.id) == 0
    assert svc.get_module_rag_status(module.id) == "Red"


def test_group_tasks_by_operation_defaults_to_standard_operations():
    module = _module()
    _task(module.id, "a", operation="Equipment Maintenance")
    _task(module.id, "b")
    _task(module.id, "c", operation="Equipment Maintenance")

    groups = svc.group_tasks_by_operation(module.id)
    assert list(groups) == ["Equipment Maintenance", "Standard Operations"]
    assert [t.name for t in groups["Equipment Maintenance"]] == ["a", "c"]


def test_module_summary():
    module = _module()
    _task(module.id, "a", "Completed", linked_sop_ids=["SOP-001"])
    _task(module.id, "b", "In Progress")

    summary = svc.get_module_summary(module.id)
    assert summary == {
        "moduleId": module.id,
        "taskCount": 2,
        "controlledCount": 1,
        "uncontrolledCount": 1,
        "byStatus": {"Not Started": 0, "In Progress": 1, "Completed": 1},
        "taskWeight": 50.0,
        "kpiScore": 75.0,
        "ragStatus": "Green",
    }


# ── Rejected updates / input types ───────────────────────────────────────────


def test_rejected_task_update_writes_nothing():
    module = _module()
    task = _task(module.id, "Original")

    with pytest.raises(ValidationError):
        svc.update_task(task.id, {"name": "Changed", "inputs": [{"label": ""}]})
    _module("Unrelated")
    _db.session.expire_all()

    assert svc.get_task(task.id).name == "Original"


def test_update_task_rejects_non_string_operation():
    module = _module()
    task = _task(module.id)
    with pytest.raises(ValidationError):
        svc.update_task(task.id, {"name": "Renamed", "operation": 3})
    _db.session.expire_all()
    assert svc.get_task(task.id).name == "Inspect pump"


def test_io_label_must_be_a_string():
    module = _module()
    with pytest.raises(ValidationError):
        _task(module.id, inputs=[{"label": 42, "type": "data"}])
