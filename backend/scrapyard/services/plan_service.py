# Overview: Service-layer operations for subscription plans (platform operator only).

from __future__ import annotations

from typing import Any, Mapping

from ..domain import BackupMode, Plan, Role
from ..store import COMPANIES, PLANS, ScrapyardStore
from ..validation import ValidationError, parse_money, require_fields
from .audit_service import log_current_action
from .results import OperationResult


def list_plans(store: ScrapyardStore) -> list[Plan]:
    """Plans are public: anyone may read them (signup page)."""
    return list(store.plans)


def _plan_values(data: Mapping[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for field in ("name", "description", "storage_limit", "support_level"):
        if field in data:
            values[field] = str(data[field] or "")
    for field in ("price_monthly", "price_annual"):
        if field in data:
            values[field] = parse_money(data[field], field)
    if "max_users" in data:
        try:
            max_users = int(data["max_users"])
        except (TypeError, ValueError):
            raise ValidationError("max_users must be a whole number")
        if max_users < 1:
            raise ValidationError("max_users must be at least 1")
        values["max_users"] = max_users
    if "backup_type" in data:
        try:
            values["backup_type"] = BackupMode(data["backup_type"])
        except ValueError:
            raise ValidationError("backup_type must be manual, auto or both")
    if "features" in data:
        values["features"] = [str(f) for f in data["features"] or []]
    if "is_popular" in data:
        values["is_popular"] = bool(data["is_popular"])
    return values


def _is_operator(store: ScrapyardStore) -> bool:
    return store.require_user().role is Role.SUPER_ADMIN


def add_plan(store: ScrapyardStore, data: Mapping[str, Any]) -> OperationResult:
    if not _is_operator(store):
        return OperationResult.fail("Permission denied.", "permission_denied")

    try:
        require_fields(data, ["id", "name", "price_monthly", "price_annual", "max_users"])
        values = _plan_values(data)
    except ValidationError as e:
        return OperationResult.fail(str(e), "validation_error")

    plan_id = str(data["id"]).strip()
    if store.find(PLANS, plan_id) is not None:
        return OperationResult.fail("A plan with this id already exists.", "plan_exists")

    plan = Plan(id=plan_id, created_at=store.now(), **values)
    with store.mutation(PLANS):
        store.plans.append(plan)
        log_current_action(store, "Plans", f"Created plan: {plan.name}")
    return OperationResult.ok("Plan created.", data=plan)


def update_plan(store: ScrapyardStore, plan_id: str, data: Mapping[str, Any]) -> OperationResult:
    if not _is_operator(store):
        return OperationResult.fail("Permission denied.", "permission_denied")

    plan = store.find(PLANS, plan_id)
    if plan is None:
        return OperationResult.fail("Plan not found.", "not_found")

    try:
        values = _plan_values(data)
    except ValidationError as e:
        return OperationResult.fail(str(e), "validation_error")

    with store.mutation(PLANS):
        for field, value in values.items():
            setattr(plan, field, value)
        log_current_action(store, "Plans", f"Updated plan: {plan.name}")
    return OperationResult.ok("Plan updated.", data=plan)


def delete_plan(store: ScrapyardStore, plan_id: str) -> OperationResult:
    if not _is_operator(store):
        return OperationResult.fail("Permission denied.", "permission_denied")

    plan = store.find(PLANS, plan_id)
    if plan is None:
        return OperationResult.fail("Plan not found.", "not_found")
    if any(company.plan == plan_id for company in store.collection(COMPANIES)):
        return OperationResult.fail("Plan is still used by a company.", "plan_in_use")

    with store.mutation(PLANS):
        store.plans.remove(plan)
        log_current_action(store, "Plans", f"Deleted plan ID: {plan_id}")
    return OperationResult.ok("Plan deleted.")
