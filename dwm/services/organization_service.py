"""
Organization Structure Service

Business context:
    Three fixed tiers group an abstract role catalog ("chairs, not people").
    Every role carries a RACI designation. Departments form a forest through
    parent_id; department heads, module owners and task owners point at roles
    by *name*.

    Invariants enforced here:
      - Exactly the three tiers exist; only their labels change.
      - Role names are unique, compared case-insensitively.
      - A department's parent exists and is never the department itself or
        one of its descendants.
      - Deleting a department promotes its children to its own parent.

Transaction policy: every public mutation ends in one db.session.commit().
"""

import logging

from sqlalchemy import func, select

from dwm.core.exceptions import ConflictError, NotFoundError, ValidationError
from dwm.models import db
from dwm.models.organization import (
    BREADCRUMB_MAX_DEPTH,
    RACI_DESCRIPTIONS,
    RACI_LABELS,
    RACI_TYPES,
    TIER_IDS,
    Department,
    OrgRole,
    RoleTier,
)
from dwm.services.id_generator import generate_department_id, generate_role_id
from dwm.utils.helpers import clean_text

logger = logging.getLogger(__name__)


# ── Tiers ─────────────────────────────────────────────────────────────────────


def list_tiers() -> list[RoleTier]:
    stmt = select(RoleTier).order_by(RoleTier.sort_order, RoleTier.id)
    return db.session.execute(stmt).scalars().all()


def get_tier(tier_id: str) -> RoleTier:
    tier = db.session.get(RoleTier, tier_id)
    if not tier:
        raise NotFoundError(resource="RoleTier", resource_id=tier_id)
    return tier


def update_tier(tier_id: str, data: dict) -> RoleTier:
    """Rename or re-describe a tier. Ids are fixed, so nothing else changes."""
    tier = get_tier(tier_id)
    name = clean_text(data.get("name"), "name")
    if "name" in data and not name:
        raise ValidationError("Tier name is required", details={"name": "required"})
    description = clean_text(data.get("description"), "description")

    if "name" in data:
        tier.name = name
    if "description" in data:
        tier.description = description
    db.session.commit()
    logger.info("Tier updated", extra={"tier_id": tier_id})
    return tier


# ── Roles ─────────────────────────────────────────────────────────────────────


def list_roles(tier_id: str | None = None) -> list[OrgRole]:
    stmt = select(OrgRole)
    if tier_id:
        stmt = stmt.where(OrgRole.tier_id == tier_id)
    stmt = stmt.order_by(OrgRole.id)
    return db.session.execute(stmt).scalars().all()


def get_role(role_id: str) -> OrgRole:
    role = db.session.get(OrgRole, role_id)
    if not role:
        raise NotFoundError(resource="OrgRole", resource_id=role_id)
    return role


def get_roles_by_tier(tier_id: str) -> list[OrgRole]:
    return list_roles(tier_id=tier_id)


def get_all_role_names() -> list[str]:
    stmt = select(OrgRole.name).order_by(OrgRole.id)
    return list(db.session.execute(stmt).scalars().all())


def get_raci_types() -> list[dict]:
    """RACI reference rows in R, A, C, I order."""
    return [
        {"value": raci, "label": RACI_LABELS[raci], "description": RACI_DESCRIPTIONS[raci]}
        for raci in RACI_TYPES
    ]


def get_role_options() -> list[dict]:
    """Dropdown options: ``{"label": "<role> — <tier name>", "value": <role name>}``."""
    tier_names = {t.id: t.name for t in list_tiers()}
    return [
        {
            "label": f"{role.name} — {tier_names.get(role.tier_id, role.tier_id)}",
            "value": role.name,
        }
        for role in list_roles()
    ]


def _validate_role_fields(data: dict, *, partial: bool) -> None:
    errors: dict[str, str] = {}
    if not partial or "name" in data:
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            errors["name"] = "required"
    if data.get("description") is not None and not isinstance(data["description"], str):
        errors["description"] = "not a string"
    if not partial or "tier_id" in data:
        if data.get("tier_id") not in TIER_IDS:
            errors["tier_id"] = f"must be one of {', '.join(TIER_IDS)}"
    if not partial or "raci_type" in data:
        if data.get("raci_type") not in RACI_TYPES:
            errors["raci_type"] = f"must be one of {', '.join(RACI_TYPES)}"
    if errors:
        raise ValidationError("Role validation failed", details=errors)


def _assert_role_name_free(name: str, exclude_id: str | None = None) -> None:
    stmt = select(OrgRole.id).where(func.lower(OrgRole.name) == name.strip().lower())
    if exclude_id:
        stmt = stmt.where(OrgRole.id != exclude_id)
    if db.session.execute(stmt).first() is not None:
        raise ConflictError(resource="OrgRole", field="name", value=name.strip())


def create_role(data: dict) -> OrgRole:
    """Create a role with a generated ROLE-#### id.

    Raises:
        ValidationError: Missing name or an unknown tier / RACI type.
        ConflictError: Another role already uses this name.
    """
    _validate_role_fields(data, partial=False)
    name = data["name"].strip()
    _assert_role_name_free(name)

    role = OrgRole(
        id=generate_role_id(),
        name=name,
        description=data.get("description") or "",
        tier_id=data["tier_id"],
        raci_type=data["raci_type"],
    )
    db.session.add(role)
    db.session.commit()
    logger.info("Role created", extra={"role_id": role.id, "tier_id": role.tier_id})
    return role


def update_role(role_id: str, data: dict) -> OrgRole:
    """Shallow-merge updates into a role.

    Renaming does not touch department heads or owners that still carry the
    old name.
    """
    role = get_role(role_id)
    _validate_role_fields(data, partial=True)
    if "name" in data:
        _assert_role_name_free(data["name"], exclude_id=role_id)
        role.name = data["name"].strip()
    if "description" in data:
        role.description = data["description"] or ""
    for field in ("tier_id", "raci_type"):
        if field in data:
            setattr(role, field, data[field])
    db.session.commit()
    logger.info("Role updated", extra={"role_id": role_id})
    return role


def delete_role(role_id: str) -> None:
    role = get_role(role_id)
    db.session.delete(role)
    db.session.commit()
    logger.info("Role deleted", extra={"role_id": role_id})


# ── Departments ───────────────────────────────────────────────────────────────


def list_departments() -> list[Department]:
    stmt = select(Department).order_by(Department.id)
    return db.session.execute(stmt).scalars().all()


def get_department_by_id(department_id: str) -> Department | None:
    return db.session.get(Department, department_id)


def get_department(department_id: str) -> Department:
    dept = get_department_by_id(department_id)
    if not dept:
        raise NotFoundError(resource="Department", resource_id=department_id)
    return dept


def get_root_departments() -> list[Department]:
    stmt = select(Department).where(Department.parent_id.is_(None)).order_by(Department.id)
    return db.session.execute(stmt).scalars().all()


def get_child_departments(parent_id: str) -> list[Department]:
    stmt = select(Department).where(Department.parent_id == parent_id).order_by(Department.id)
    return db.session.execute(stmt).scalars().all()


def _parent_map() -> dict[str, str | None]:
    rows = db.session.execute(select(Department.id, Department.parent_id)).all()
    return {row.id: row.parent_id for row in rows}


def get_department_breadcrumbs(department_id: str) -> list[Department]:
    """Ancestor chain root-first, ending with the department itself.

    The walk stops after BREADCRUMB_MAX_DEPTH hops, so cyclic parent links
    still terminate. An unknown id yields an empty list.
    """
    by_id = {d.id: d for d in list_departments()}
    chain: list[Department] = []
    current = by_id.get(department_id)
    while current is not None and len(chain) < BREADCRUMB_MAX_DEPTH:
        chain.append(current)
        current = by_id.get(current.parent_id) if current.parent_id else None
    chain.reverse()
    return chain


def get_descendant_ids(department_id: str) -> set[str]:
    """Every department below department_id, at any depth (self excluded)."""
    children: dict[str, list[str]] = {}
    for dept_id, parent_id in _parent_map().items():
        if parent_id:
            children.setdefault(parent_id, []).append(dept_id)

    found: set[str] = set()
    queue = list(children.get(department_id, []))
    while queue:
        dept_id = queue.pop()
        if dept_id in found or dept_id == department_id:
            continue
        found.add(dept_id)
        queue.extend(children.get(dept_id, []))
    return found


def get_parent_options(department_id: str | None = None) -> list[Department]:
    """Departments that may become the parent of department_id.

    Excludes the department itself and its whole subtree. With no id
    (a department being created) every department qualifies.
    """
    if not department_id:
        return list_departments()
    excluded = get_descendant_ids(department_id) | {department_id}
    return [d for d in list_departments() if d.id not in excluded]


def _would_create_cycle(department_id: str, new_parent_id: str) -> bool:
    """Walk up from new_parent_id; reaching department_id means a cycle."""
    parents = _parent_map()
    visited: set[str] = set()
    current = new_parent_id
    while current and current not in visited:
        if current == department_id:
            return True
        visited.add(current)
        current = parents.get(current)
    return False


def _validate_parent(parent_id: str | None, department_id: str | None = None) -> None:
    if not parent_id:
        return
    if get_department_by_id(parent_id) is None:
        raise ValidationError(
            f"Parent department {parent_id} does not exist",
            details={"parent_id": "not found"},
        )
    if department_id and _would_create_cycle(department_id, parent_id):
        raise ValidationError(
            "A department cannot be placed under itself or one of its descendants",
            details={"parent_id": "cycle"},
        )


def create_department(data: dict) -> Department:
    """Create a department with a generated DEP-#### id.

    Raises:
        ValidationError: Missing name or a parent that does not exist.
    """
    name = clean_text(data.get("name"), "name")
    if not name:
        raise ValidationError("Department name is required", details={"name": "required"})
    parent_id = clean_text(data.get("parent_id"), "parent_id") or None
    _validate_parent(parent_id)

    dept = Department(
        id=generate_department_id(),
        name=name,
        description=clean_text(data.get("description"), "description"),
        head_of_department=clean_text(data.get("head_of_department"), "head_of_department"),
        parent_id=parent_id,
    )
    db.session.add(dept)
    db.session.commit()
    logger.info("Department created", extra={"department_id": dept.id, "parent_id": parent_id})
    return dept


def update_department(department_id: str, data: dict) -> Department:
    """Shallow-merge updates into a department, re-parenting cycle-safely.

    Every field is checked before any is written, so a rejected update
    leaves the department untouched.
    """
    dept = get_department(department_id)

    changes = {}
    if "name" in data:
        changes["name"] = clean_text(data["name"], "name")
        if not changes["name"]:
            raise ValidationError("Department name is required", details={"name": "required"})
    if "parent_id" in data:
        changes["parent_id"] = clean_text(data["parent_id"], "parent_id") or None
        _validate_parent(changes["parent_id"], department_id=department_id)
    for field in ("description", "head_of_department"):
        if field in data:
            changes[field] = clean_text(data[field], field)

    for field, value in changes.items():
        setattr(dept, field, value)

    db.session.commit()
    logger.info("Department updated", extra={"department_id": department_id})
    return dept


def delete_department(department_id: str) -> None:
    """Remove a department and promote its direct children to its parent."""
    dept = get_department(department_id)
    new_parent = dept.parent_id
    children = get_child_departments(department_id)
    for child in children:
        child.parent_id = new_parent
    db.session.delete(dept)
    db.session.commit()
    logger.info(
        "Department deleted",
        extra={
            "department_id": department_id,
            "promoted_children": len(children),
        },
    )
