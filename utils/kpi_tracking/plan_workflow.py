# utils/kpi_tracking/plan_workflow.py
"""
Employee-side plan lifecycle and the manager rating pass.

- submit_plan: new weekly plan, status pending
- request_adjustment: stage a target patch on an approved plan
- report_results: record results, status completed
- rate_plan: manager rating and bonus/penalty scores
"""

import logging
from dataclasses import replace
from typing import Dict, Optional

from .constants import RESULT_FIELDS
from .data_service import KPIDataService, utc_now_iso
from .exceptions import InvalidTransitionError, ValidationError
from .approval import require_approver
from .models import (
    AdjustmentStatus,
    Plan,
    PlanStatus,
    TargetPatch,
    User,
    to_number,
)

logger = logging.getLogger(__name__)

REQUIRED_PLAN_FIELDS = {
    'date': "Ngày",
    'week_number': "Tuần",
    'work_content': "Nội dung công việc",
}


def submit_plan(owner: User, values: Dict, now: str = None) -> Plan:
    """Validate form values and build a pending plan owned by `owner`."""
    missing = [label for name, label in REQUIRED_PLAN_FIELDS.items() if not str(values.get(name) or '').strip()]
    if missing:
        raise ValidationError(f"Thiếu thông tin: {', '.join(missing)}")

    record = dict(values)
    record.update({
        'id': '',
        'employee_id': owner.employee_id,
        'employee_name': owner.employee_name,
        'position': owner.position,
        'status': PlanStatus.PENDING.value,
        'submitted_at': now or utc_now_iso(),
    })
    plan = Plan.from_record(record)
    for name in TargetPatch.PATCHABLE_FIELDS:
        if getattr(plan, name) < 0:
            raise ValidationError("Chỉ tiêu không được âm")
    return plan


def request_adjustment(plan: Plan, owner: User, changes: Dict, reason: str) -> Plan:
    """Stage a target change for manager review without touching the targets."""
    if plan.employee_id != owner.employee_id:
        raise ValidationError("Chỉ người lập kế hoạch mới được đề nghị điều chỉnh")
    if plan.status != PlanStatus.APPROVED:
        raise InvalidTransitionError("Chỉ điều chỉnh được kế hoạch đã duyệt")
    if plan.has_pending_adjustment:
        raise InvalidTransitionError("Kế hoạch đang có đề nghị điều chỉnh chờ duyệt")
    cleaned = (reason or '').strip()
    if not cleaned:
        raise ValidationError("Vui lòng nhập lý do điều chỉnh!")

    patch = TargetPatch.from_mapping(changes)
    if not patch.diff(plan):
        raise ValidationError("Không có chỉ tiêu nào thay đổi")

    return replace(
        plan,
        adjustment_status=AdjustmentStatus.PENDING,
        adjustment_reason=cleaned,
        adjustment_data=patch.to_json(),
    )


def report_results(plan: Plan, owner: User, results: Dict) -> Plan:
    """Record actual results and mark the plan completed."""
    if plan.employee_id != owner.employee_id:
        raise ValidationError("Chỉ người lập kế hoạch mới được báo cáo kết quả")
    if plan.status != PlanStatus.APPROVED:
        raise InvalidTransitionError("Chỉ báo cáo kết quả cho kế hoạch đã duyệt")

    allowed = set(RESULT_FIELDS) | {'customers_contacted', 'contracts_signed', 'challenges', 'evidence_photo'}
    unknown = sorted(k for k in results if k not in allowed)
    if unknown:
        raise ValidationError(f"Trường không hợp lệ: {', '.join(unknown)}")

    changes = {}
    for name, value in results.items():
        if name in ('challenges', 'evidence_photo'):
            changes[name] = value or None
            continue
        number = to_number(value)
        if number < 0:
            raise ValidationError("Kết quả không được âm")
        changes[name] = number

    return replace(plan, status=PlanStatus.COMPLETED, **changes)


def rate_plan(
    plan: Plan,
    actor: User,
    comment: Optional[str],
    attitude_score: Optional[str] = None,
    discipline_score: Optional[str] = None,
    effectiveness_score: Optional[str] = None,
    bonus_score=0,
    penalty_score=0,
) -> Plan:
    """Manager rating pass on a completed plan."""
    require_approver(actor)
    if plan.status != PlanStatus.COMPLETED:
        raise InvalidTransitionError("Chỉ đánh giá kế hoạch đã hoàn thành")
    bonus, penalty = to_number(bonus_score), to_number(penalty_score)
    if bonus < 0 or penalty < 0:
        raise ValidationError("Điểm cộng/trừ không được âm")
    return replace(
        plan,
        rating='rated',
        manager_comment=(comment or '').strip() or None,
        attitude_score=attitude_score,
        discipline_score=discipline_score,
        effectiveness_score=effectiveness_score,
        bonus_score=bonus,
        penalty_score=penalty,
    )


class PlanWorkflow:
    """
    Persisting wrapper for the employee-side lifecycle.

    Usage:
        workflow = PlanWorkflow(KPIDataService(), current_user)
        plan = workflow.submit(form_values)
    """

    def __init__(self, service: KPIDataService, actor: User):
        self.service = service
        self.actor = actor

    def submit(self, values: Dict) -> Plan:
        plan = self.service.create_plan(submit_plan(self.actor, values))
        logger.info(f"Plan {plan.id} submitted by {self.actor.employee_id}")
        return plan

    def request_adjustment(self, plan: Plan, changes: Dict, reason: str) -> Plan:
        updated = request_adjustment(plan, self.actor, changes, reason)
        self.service.update_plan(updated)
        logger.info(f"Adjustment requested on plan {plan.id} by {self.actor.employee_id}")
        return updated

    def report_results(self, plan: Plan, results: Dict) -> Plan:
        updated = report_results(plan, self.actor, results)
        self.service.update_plan(updated)
        logger.info(f"Results reported on plan {plan.id} by {self.actor.employee_id}")
        return updated

    def rate(self, plan: Plan, **rating) -> Plan:
        updated = rate_plan(plan, self.actor, **rating)
        self.service.update_plan(updated)
        logger.info(f"Plan {plan.id} rated by {self.actor.employee_id}")
        return updated
