# utils/kpi_tracking/approval.py
"""
Plan Approval / Adjustment Workflow

Transitions (manager or admin only, actor and UTC timestamp recorded):
- status:            pending -> approved | rejected
- adjustment_status: pending -> approved | rejected

Rejections need a non-blank reason and are refused before any store call.
Approving an adjustment parses adjustment_data into a TargetPatch first; a
malformed payload raises AdjustmentPayloadError and nothing is written.
"""

import logging
from dataclasses import replace
from typing import Iterable, List, Optional

import pandas as pd

from .data_service import KPIDataService, utc_now_iso
from .exceptions import (
    ApprovalPermissionError,
    InvalidTransitionError,
    ValidationError,
)
from .models import AdjustmentStatus, Plan, PlanStatus, TargetPatch, User

logger = logging.getLogger(__name__)


# =============================================================================
# GUARDS
# =============================================================================

def require_reason(reason: Optional[str]) -> str:
    cleaned = (reason or '').strip()
    if not cleaned:
        raise ValidationError("Vui lòng nhập lý do từ chối!")
    return cleaned


def require_approver(actor: User):
    if not actor.can_approve:
        raise ApprovalPermissionError(
            f"{actor.employee_name or actor.employee_id} không có quyền phê duyệt"
        )


def _require_pending_plan(plan: Plan):
    if plan.status != PlanStatus.PENDING:
        raise InvalidTransitionError(f"Kế hoạch {plan.id} không ở trạng thái chờ duyệt")


def _require_pending_adjustment(plan: Plan):
    if not plan.has_pending_adjustment:
        raise InvalidTransitionError(f"Kế hoạch {plan.id} không có điều chỉnh chờ duyệt")


# =============================================================================
# TRANSITIONS (pure)
# =============================================================================

def approve_plan(plan: Plan, actor: User, now: str = None) -> Plan:
    require_approver(actor)
    _require_pending_plan(plan)
    return replace(
        plan,
        status=PlanStatus.APPROVED,
        approved_by=actor.employee_name,
        approved_at=now or utc_now_iso(),
    )


def reject_plan(plan: Plan, actor: User, reason: str, now: str = None) -> Plan:
    cleaned = require_reason(reason)
    require_approver(actor)
    _require_pending_plan(plan)
    return replace(
        plan,
        status=PlanStatus.REJECTED,
        returned_reason=cleaned,
        approved_by=actor.employee_name,
        approved_at=now or utc_now_iso(),
    )


def approve_adjustment(plan: Plan, actor: User, now: str = None) -> Plan:
    """Merge the staged targets into the plan and clear the staging payload."""
    require_approver(actor)
    _require_pending_adjustment(plan)
    patch = TargetPatch.from_json(plan.adjustment_data)
    return replace(
        patch.apply(plan),
        adjustment_status=AdjustmentStatus.APPROVED,
        adjustment_data=None,
        approved_by=actor.employee_name,
        approved_at=now or utc_now_iso(),
    )


def reject_adjustment(plan: Plan, actor: User, reason: str, now: str = None) -> Plan:
    """Keep the current targets, drop the staged payload, record the reason."""
    cleaned = require_reason(reason)
    require_approver(actor)
    _require_pending_adjustment(plan)
    return replace(
        plan,
        adjustment_status=AdjustmentStatus.REJECTED,
        adjustment_data=None,
        returned_reason=cleaned,
        approved_by=actor.employee_name,
        approved_at=now or utc_now_iso(),
    )


# =============================================================================
# QUEUES
# =============================================================================

def _timestamp(value: Optional[str]) -> float:
    if not value:
        return 0
    try:
        parsed = pd.to_datetime(value, utc=True)
    except (ValueError, TypeError, OverflowError):
        return 0
    if pd.isna(parsed):
        return 0
    return parsed.timestamp()


def pending_plans(plans: Iterable[Plan]) -> List[Plan]:
    """New plans awaiting approval, newest submission first."""
    queue = [p for p in plans if p.status == PlanStatus.PENDING]
    return sorted(queue, key=lambda p: _timestamp(p.submitted_at), reverse=True)


def pending_adjustments(plans: Iterable[Plan]) -> List[Plan]:
    """Plans with a staged adjustment, newest submission first."""
    queue = [p for p in plans if p.has_pending_adjustment]
    return sorted(queue, key=lambda p: _timestamp(p.submitted_at), reverse=True)


# =============================================================================
# WORKFLOW (transition + persist)
# =============================================================================

class ApprovalWorkflow:
    """
    Applies a manager action and persists the whole record.

    Usage:
        workflow = ApprovalWorkflow(KPIDataService(), current_user)
        try:
            workflow.reject(plan, reason)
        except ValidationError as e:
            st.warning(str(e))

    Callers reload the snapshot after each call.
    """

    def __init__(self, service: KPIDataService, actor: User):
        self.service = service
        self.actor = actor

    def approve(self, plan: Plan) -> Plan:
        updated = approve_plan(plan, self.actor)
        self.service.update_plan(updated)
        logger.info(f"Plan {plan.id} approved by {self.actor.employee_id}")
        return updated

    def reject(self, plan: Plan, reason: str) -> Plan:
        updated = reject_plan(plan, self.actor, reason)
        self.service.update_plan(updated)
        logger.info(f"Plan {plan.id} rejected by {self.actor.employee_id}")
        return updated

    def approve_adjustment(self, plan: Plan) -> Plan:
        updated = approve_adjustment(plan, self.actor)
        self.service.update_plan(updated)
        logger.info(f"Adjustment on plan {plan.id} approved by {self.actor.employee_id}")
        return updated

    def reject_adjustment(self, plan: Plan, reason: str) -> Plan:
        updated = reject_adjustment(plan, self.actor, reason)
        self.service.update_plan(updated)
        logger.info(f"Adjustment on plan {plan.id} rejected by {self.actor.employee_id}")
        return updated
