# tests/test_approval.py
import json
from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from utils.kpi_tracking.approval import (
    ApprovalWorkflow,
    approve_adjustment,
    approve_plan,
    pending_adjustments,
    pending_plans,
    reject_adjustment,
    reject_plan,
)
from utils.kpi_tracking.exceptions import (
    AdjustmentPayloadError,
    ApprovalPermissionError,
    InvalidTransitionError,
    ValidationError,
)
from utils.kpi_tracking.models import AdjustmentStatus, PlanStatus

from .conftest import make_plan

NOW = '2025-03-05T08:00:00+00:00'


@pytest.fixture
def pending():
    return make_plan('p1', sim_target=10, status=PlanStatus.PENDING)


@pytest.fixture
def adjusting():
    return make_plan(
        'p2',
        sim_target=10,
        fiber_target=3,
        status=PlanStatus.APPROVED,
        adjustment_status=AdjustmentStatus.PENDING,
        adjustment_reason='Khách hàng hoãn',
        adjustment_data=json.dumps({'sim_target': 15}),
    )


# =============================================================================
# PLAN DECISIONS
# =============================================================================

def test_approve_plan_records_actor_and_time(pending, manager):
    approved = approve_plan(pending, manager, now=NOW)

    assert approved.status == PlanStatus.APPROVED
    assert approved.approved_by == 'Trần Quản Lý'
    assert approved.approved_at == NOW
    assert pending.status == PlanStatus.PENDING


def test_reject_plan_sets_reason(pending, admin):
    rejected = reject_plan(pending, admin, '  Thiếu địa bàn ', now=NOW)

    assert rejected.status == PlanStatus.REJECTED
    assert rejected.returned_reason == 'Thiếu địa bàn'
    assert rejected.approved_by == 'Quản Trị'


@pytest.mark.parametrize("reason", [None, '', '   '])
def test_reject_plan_requires_reason(pending, manager, reason):
    with pytest.raises(ValidationError):
        reject_plan(pending, manager, reason)


def test_employee_cannot_approve(pending, employees):
    with pytest.raises(ApprovalPermissionError):
        approve_plan(pending, employees[0])


def test_only_pending_plans_can_be_decided(manager):
    for status in (PlanStatus.APPROVED, PlanStatus.REJECTED, PlanStatus.COMPLETED):
        plan = make_plan('p', status=status)
        with pytest.raises(InvalidTransitionError):
            approve_plan(plan, manager)
        with pytest.raises(InvalidTransitionError):
            reject_plan(plan, manager, 'lý do')


# =============================================================================
# ADJUSTMENT DECISIONS
# =============================================================================

def test_approve_adjustment_merges_patch(adjusting, manager):
    approved = approve_adjustment(adjusting, manager, now=NOW)

    assert approved.sim_target == 15
    assert approved.fiber_target == 3
    assert approved.adjustment_status == AdjustmentStatus.APPROVED
    assert approved.adjustment_data is None
    assert approved.status == PlanStatus.APPROVED
    assert approved.approved_at == NOW


@pytest.mark.parametrize("payload", [
    '{not json',
    '[1, 2]',
    '{}',
    '{"sim_result": 99}',
    '{"employee_id": "E999"}',
    '{"sim_target": "abc"}',
    '{"sim_target": -1}',
    '{"sim_target": true}',
    '',
])
def test_bad_adjustment_payload_leaves_plan_untouched(adjusting, manager, payload):
    plan = replace(adjusting, adjustment_data=payload)

    with pytest.raises(AdjustmentPayloadError):
        approve_adjustment(plan, manager)
    assert plan.sim_target == 10
    assert plan.adjustment_status == AdjustmentStatus.PENDING


def test_reject_adjustment_keeps_targets(adjusting, manager):
    rejected = reject_adjustment(adjusting, manager, 'Không hợp lý', now=NOW)

    assert rejected.sim_target == 10
    assert rejected.adjustment_status == AdjustmentStatus.REJECTED
    assert rejected.adjustment_data is None
    assert rejected.returned_reason == 'Không hợp lý'
    assert rejected.status == PlanStatus.APPROVED


def test_reject_adjustment_requires_reason(adjusting, manager):
    with pytest.raises(ValidationError):
        reject_adjustment(adjusting, manager, ' ')


def test_adjustment_decision_needs_pending_adjustment(pending, manager):
    with pytest.raises(InvalidTransitionError):
        approve_adjustment(pending, manager)


# =============================================================================
# QUEUES
# =============================================================================

def test_pending_queues_sorted_newest_first(adjusting):
    plans = [
        make_plan('a', status=PlanStatus.PENDING, submitted_at='2025-03-01T08:00:00Z'),
        make_plan('b', status=PlanStatus.PENDING, submitted_at='not a date'),
        make_plan('c', status=PlanStatus.PENDING, submitted_at='2025-03-03T08:00:00Z'),
        make_plan('d', status=PlanStatus.APPROVED),
        adjusting,
    ]

    assert [p.id for p in pending_plans(plans)] == ['c', 'a', 'b']
    assert [p.id for p in pending_adjustments(plans)] == ['p2']


# =============================================================================
# WORKFLOW (with store)
# =============================================================================

def test_blank_reason_makes_no_store_call(pending, manager):
    service = MagicMock()
    workflow = ApprovalWorkflow(service, manager)

    with pytest.raises(ValidationError):
        workflow.reject(pending, '')
    service.update_plan.assert_not_called()


def test_bad_payload_makes_no_store_call(adjusting, manager):
    service = MagicMock()
    workflow = ApprovalWorkflow(service, manager)

    with pytest.raises(AdjustmentPayloadError):
        workflow.approve_adjustment(replace(adjusting, adjustment_data='{oops'))
    service.update_plan.assert_not_called()


def test_workflow_persists_adjustment(service, adjusting, manager):
    service.create_plan(adjusting)
    stored = service.load_system_data()[0].plans[0]

    ApprovalWorkflow(service, manager).approve_adjustment(stored)

    reloaded, error = service.load_system_data()
    plan = reloaded.plans[0]
    assert error is None
    assert plan.sim_target == 15
    assert plan.adjustment_status == AdjustmentStatus.APPROVED
    assert plan.adjustment_data is None
    assert plan.approved_by == 'Trần Quản Lý'


def test_workflow_persists_approval(service, pending, manager):
    created = service.create_plan(pending)

    ApprovalWorkflow(service, manager).approve(created)

    plan = service.load_system_data()[0].find_plan(created.id)
    assert plan.status == PlanStatus.APPROVED
    assert plan.approved_at is not None
