# tests/test_plan_workflow.py
import json
from unittest.mock import MagicMock

import pytest

from utils.kpi_tracking.exceptions import (
    AdjustmentPayloadError,
    ApprovalPermissionError,
    InvalidTransitionError,
    ValidationError,
)
from utils.kpi_tracking.models import AdjustmentStatus, PlanStatus
from utils.kpi_tracking.plan_workflow import (
    PlanWorkflow,
    submit_plan,
    rate_plan,
    report_results,
    request_adjustment,
)

from .conftest import make_plan

FORM = {
    'date': '2025-03-03',
    'week_number': 'Tuần 10',
    'area': 'Phường 1',
    'work_content': 'Tiếp thị gói Fiber',
    'sim_target': 5,
    'fiber_target': '3',
}


def test_submit_plan_is_pending_and_owned(employees):
    plan = submit_plan(employees[0], FORM, now='2025-03-02T00:00:00+00:00')

    assert plan.status == PlanStatus.PENDING
    assert plan.employee_id == 'E001'
    assert plan.employee_name == 'Nguyễn Văn An'
    assert plan.fiber_target == 3
    assert plan.submitted_at == '2025-03-02T00:00:00+00:00'


def test_submit_plan_requires_core_fields(employees):
    with pytest.raises(ValidationError):
        submit_plan(employees[0], {**FORM, 'work_content': '  '})


def test_submit_plan_rejects_negative_targets(employees):
    with pytest.raises(ValidationError):
        submit_plan(employees[0], {**FORM, 'sim_target': -1})


def test_submit_persists_plan(service, employees):
    created = PlanWorkflow(service, employees[0]).submit(FORM)

    data, error = service.load_system_data()
    assert error is None
    assert data.find_plan(created.id).work_content == 'Tiếp thị gói Fiber'


# =============================================================================
# ADJUSTMENT REQUEST
# =============================================================================

def test_request_adjustment_keeps_targets(employees):
    plan = make_plan('p1', sim_target=10, status=PlanStatus.APPROVED)
    staged = request_adjustment(plan, employees[0], {'sim_target': 15}, 'Thêm khách hàng')

    assert staged.sim_target == 10
    assert staged.adjustment_status == AdjustmentStatus.PENDING
    assert json.loads(staged.adjustment_data) == {'sim_target': 15}
    assert staged.adjustment_reason == 'Thêm khách hàng'


def test_request_adjustment_rules(employees):
    approved = make_plan('p1', sim_target=10, status=PlanStatus.APPROVED)

    with pytest.raises(InvalidTransitionError):
        request_adjustment(make_plan('p2', status=PlanStatus.PENDING), employees[0], {'sim_target': 1}, 'x')
    with pytest.raises(ValidationError):
        request_adjustment(approved, employees[1], {'sim_target': 1}, 'x')
    with pytest.raises(ValidationError):
        request_adjustment(approved, employees[0], {'sim_target': 1}, ' ')
    with pytest.raises(ValidationError):
        request_adjustment(approved, employees[0], {'sim_target': 10}, 'không đổi')
    with pytest.raises(AdjustmentPayloadError):
        request_adjustment(approved, employees[0], {'sim_result': 1}, 'x')


# =============================================================================
# RESULTS / RATING
# =============================================================================

def test_report_results_completes_plan(employees):
    plan = make_plan('p1', sim_target=10, status=PlanStatus.APPROVED)
    done = report_results(plan, employees[0], {'sim_result': '8', 'customers_contacted': 4, 'challenges': ''})

    assert done.status == PlanStatus.COMPLETED
    assert done.sim_result == 8
    assert done.customers_contacted == 4
    assert done.challenges is None


def test_report_results_rules(employees):
    approved = make_plan('p1', status=PlanStatus.APPROVED)

    with pytest.raises(InvalidTransitionError):
        report_results(make_plan('p2', status=PlanStatus.PENDING), employees[0], {'sim_result': 1})
    with pytest.raises(ValidationError):
        report_results(approved, employees[0], {'sim_target': 1})
    with pytest.raises(ValidationError):
        report_results(approved, employees[0], {'sim_result': -2})


def test_rate_completed_plan(manager):
    plan = make_plan('p1', status=PlanStatus.COMPLETED)
    rated = rate_plan(plan, manager, ' Tốt ', attitude_score='A', bonus_score='2', penalty_score=0)

    assert rated.rating == 'rated'
    assert rated.manager_comment == 'Tốt'
    assert rated.attitude_score == 'A'
    assert rated.bonus_score == 2


def test_rate_rules(manager, employees):
    with pytest.raises(ApprovalPermissionError):
        rate_plan(make_plan('p1', status=PlanStatus.COMPLETED), employees[0], 'x')
    with pytest.raises(InvalidTransitionError):
        rate_plan(make_plan('p1', status=PlanStatus.APPROVED), manager, 'x')
    with pytest.raises(ValidationError):
        rate_plan(make_plan('p1', status=PlanStatus.COMPLETED), manager, 'x', penalty_score=-1)


def test_workflow_writes_through_service(employees):
    service = MagicMock()
    plan = make_plan('p1', status=PlanStatus.APPROVED)

    updated = PlanWorkflow(service, employees[0]).report_results(plan, {'fiber_result': 2})

    service.update_plan.assert_called_once_with(updated)
