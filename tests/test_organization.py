"""
Tests: Organization service — tiers, roles, department tree.

Covers:
    - Tier listing / renaming
    - Role CRUD, case-insensitive name uniqueness, dropdown options
    - Department create / update with parent validation and cycle guard
    - delete_department promoting children to the grandparent
    - Breadcrumbs (root-first, bounded on cyclic data)
    - Parent options excluding the subtree
"""

import pytest

from dwm.core.exceptions import ConflictError, NotFoundError, ValidationError
from dwm.models import db as _db
from dwm.models.organization import BREADCRUMB_MAX_DEPTH, Department
from dwm.services import organization_service as svc


# ── Helpers ──────────────────────────────────────────────────────────────────


def _dept(name, parent_id=None, head=""):
    return svc.create_department({"name": name, "parent_id": parent_id, "head_of_department": head})


def _role(name="QC Lead", tier_id="managerial", raci_type="consulted"):
    return svc.create_role({"name": name, "tier_id": tier_id, "raci_type": raci_type})


# ── Tiers ────────────────────────────────────────────────────────────────────


def test_three_tiers_in_sort_order():
    tiers = svc.list_tiers()
    assert [t.id for t in tiers] == ["strategic", "managerial", "operational"]


def test_update_tier_changes_labels_only():
    tier = svc.update_tier("operational", {"name": "Frontline", "description": "Shop floor"})
    assert tier.id == "operational"
    assert tier.name == "Frontline"
    assert tier.description == "Shop floor"


def test_update_unknown_tier_raises_not_found():
    with pytest.raises(NotFoundError):
        svc.update_tier("executive", {"name": "Exec"})


def test_update_tier_rejects_blank_name():
    with pytest.raises(ValidationError):
        svc.update_tier("strategic", {"name": "  "})


# ── Roles ────────────────────────────────────────────────────────────────────


def test_create_role_generates_sequential_ids():
    first = _role("QC Lead")
    second = _role("HSE Officer", "operational", "responsible")
    assert first.id == "ROLE-0001"
    assert second.id == "ROLE-0002"


def test_role_name_unique_case_insensitive():
    _role("QC Lead")
    with pytest.raises(ConflictError):
        _role("qc lead")


def test_update_role_may_keep_its_own_name():
    role = _role("QC Lead")
    updated = svc.update_role(role.id, {"name": "QC Lead", "raci_type": "accountable"})
    assert updated.raci_type == "accountable"


def test_create_role_rejects_unknown_tier_and_raci_type():
    with pytest.raises(ValidationError) as exc_info:
        svc.create_role({"name": "Auditor", "tier_id": "board", "raci_type": "owner"})
    assert set(exc_info.value.details) == {"tier_id", "raci_type"}


def test_roles_by_tier_and_all_names():
    _role("Director of Operations", "strategic", "accountable")
    _role("QC Lead", "managerial", "consulted")
    _role("QC Inspector", "operational", "responsible")

    assert [r.name for r in svc.get_roles_by_tier("operational")] == ["QC Inspector"]
    assert sorted(svc.get_all_role_names()) == ["Director of Operations", "QC Inspector", "QC Lead"]


def test_role_options_label_includes_tier_name():
    _role("Director of Operations", "strategic", "accountable")
    options = svc.get_role_options()
    assert options == [
        {"label": "Director of Operations — Strategic", "value": "Director of Operations"},
    ]


def test_delete_role():
    role = _role()
    svc.delete_role(role.id)
    with pytest.raises(NotFoundError):
        svc.get_role(role.id)


# ── Departments ──────────────────────────────────────────────────────────────


def test_create_department_requires_existing_parent():
    with pytest.raises(ValidationError) as exc_info:
        _dept("Orphan", parent_id="DEP-9999")
    assert exc_info.value.details == {"parent_id": "not found"}


def test_roots_and_children():
    root = _dept("Operations")
    child = _dept("Maintenance", parent_id=root.id)
    _dept("Finance")

    assert [d.name for d in svc.get_root_departments()] == ["Operations", "Finance"]
    assert [d.id for d in svc.get_child_departments(root.id)] == [child.id]


def test_get_department_by_id_returns_none_when_missing():
    assert svc.get_department_by_id("DEP-0404") is None


def test_delete_department_promotes_children_to_grandparent():
    root = _dept("Operations")
    mid = _dept("Facilities", parent_id=root.id)
    leaf_a = _dept("Cleaning", parent_id=mid.id)
    leaf_b = _dept("Security", parent_id=mid.id)

    svc.delete_department(mid.id)

    assert svc.get_department_by_id(mid.id) is None
    assert len(svc.list_departments()) == 3
    assert svc.get_department(leaf_a.id).parent_id == root.id
    assert svc.get_department(leaf_b.id).parent_id == root.id


def test_delete_root_department_makes_children_roots():
    root = _dept("Operations")
    child = _dept("Facilities", parent_id=root.id)

    svc.delete_department(root.id)

    assert svc.get_department(child.id).parent_id is None


def test_breadcrumbs_root_first():
    root = _dept("Operations")
    mid = _dept("Facilities", parent_id=root.id)
    leaf = _dept("Cleaning", parent_id=mid.id)

    trail = svc.get_department_breadcrumbs(leaf.id)
    assert [d.id for d in trail] == [root.id, mid.id, leaf.id]


def test_breadcrumbs_unknown_department_is_empty():
    assert svc.get_department_breadcrumbs("DEP-0404") == []


def test_breadcrumbs_terminate_on_cyclic_data():
    a = _dept("A")
    b = _dept("B", parent_id=a.id)
    # Corrupt the tree directly; the service would refuse this edit.
    _db.session.get(Department, a.id).parent_id = b.id
    _db.session.commit()

    trail = svc.get_department_breadcrumbs(a.id)
    assert len(trail) == BREADCRUMB_MAX_DEPTH


def test_update_department_rejects_cycle():
    root = _dept("Operations")
    mid = _dept("Facilities", parent_id=root.id)
    leaf = _dept("Cleaning", parent_id=mid.id)

    with pytest.raises(ValidationError):
        svc.update_department(root.id, {"parent_id": leaf.id})
    with pytest.raises(ValidationError):
        svc.update_department(mid.id, {"parent_id": mid.id})
    assert svc.get_department(root.id).parent_id is None


def test_update_department_reparents():
    a = _dept("A")
    b = _dept("B")
    updated = svc.update_department(b.id, {"parent_id": a.id, "head_of_department": "QC Lead"})
    assert updated.parent_id == a.id
    assert updated.head_of_department == "QC Lead"


def test_parent_options_exclude_self_and_descendants():
    root = _dept("Operations")
    mid = _dept("Facilities", parent_id=root.id)
    leaf = _dept("Cleaning", parent_id=mid.id)
    other = _dept("Finance")

    assert svc.get_descendant_ids(root.id) == {mid.id, leaf.id}
    options = {d.id for d in svc.get_parent_options(mid.id)}
    assert options == {root.id, other.id}
    assert len(svc.get_parent_options()) == 4


def test_rejected_department_update_writes_nothing():
    root = _dept("Root")
    child = _dept("Child", parent_id=root.id)

    with pytest.raises(ValidationError):
        svc.update_department(root.id, {"name": "Renamed", "parent_id": child.id})
    _dept("Unrelated")
    _db.session.expire_all()

    stored = svc.get_department(root.id)
    assert stored.name == "Root"
    assert stored.parent_id is None


@pytest.mark.parametrize("payload", [{"name": 5}, {"name": "Ok", "parent_id": 7}, {"name": "Ok", "description": ["x"]}])
def test_department_text_fields_must_be_strings(payload):
    with pytest.raises(ValidationError):
        svc.create_department(payload)


def test_role_name_must_be_a_string():
    with pytest.raises(ValidationError) as exc_info:
        svc.create_role({"name": 12, "tier_id": "managerial", "raci_type": "consulted"})
    assert exc_info.value.details == {"name": "required"}


def test_raci_types_reference():
    rows = svc.get_raci_types()
    assert [r["value"] for r in rows] == ["responsible", "accountable", "consulted", "informed"]
    assert rows[1]["label"] == "Accountable"
    assert all(r["description"] for r in rows)
