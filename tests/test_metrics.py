# tests/test_metrics.py
import pandas as pd
import pytest

from utils.kpi_tracking.filters import DashboardFilter
from utils.kpi_tracking.metrics import (
    KPIMetrics,
    MonthlyTotals,
    achievement_ratio,
    radar_value,
)
from utils.kpi_tracking.models import PerformanceBand, PlanStatus, SystemData

from .conftest import make_plan


ALL = DashboardFilter(year='All', month='All', week='All', employee_id='All')


# =============================================================================
# RATIO / BAND
# =============================================================================

@pytest.mark.parametrize("result, target, expected", [
    (5, 0, 0),
    (0, 0, 0),
    (25, 20, 125),
    (1, 3, 33),
    (1, 8, 13),
    (0, 10, 0),
])
def test_achievement_ratio(result, target, expected):
    assert achievement_ratio(result, target) == expected


@pytest.mark.parametrize("ratio, band", [
    (150, PerformanceBand.EXCELLENT),
    (100, PerformanceBand.EXCELLENT),
    (99, PerformanceBand.GOOD),
    (80, PerformanceBand.GOOD),
    (79, PerformanceBand.AVERAGE),
    (50, PerformanceBand.AVERAGE),
    (49, PerformanceBand.WEAK),
    (0, PerformanceBand.WEAK),
])
def test_band_boundaries(ratio, band):
    assert PerformanceBand.from_ratio(ratio) is band


# =============================================================================
# SERVICE TOTALS
# =============================================================================

def test_service_target_counts_all_plans_result_only_completed(system_data):
    totals = KPIMetrics(system_data).service_totals(ALL).set_index('key')

    assert totals.loc['sim', 'target'] == 20
    assert totals.loc['sim', 'actual'] == 5
    assert totals.loc['sim', 'ratio'] == 25


def test_service_totals_zero_target_gives_zero_ratio(system_data):
    totals = KPIMetrics(system_data).service_totals(ALL).set_index('key')

    assert totals.loc['cntt', 'target'] == 0
    assert totals.loc['cntt', 'ratio'] == 0


def test_service_totals_row_order_and_columns(system_data):
    totals = KPIMetrics(system_data).service_totals(ALL)

    assert list(totals['key']) == ['sim', 'fiber', 'mytv', 'mesh_camera', 'cntt']
    assert list(totals.columns) == ['key', 'name', 'color', 'target', 'actual', 'ratio']


def test_service_totals_respect_month_filter(system_data):
    april = DashboardFilter(year='2025', month='4')
    totals = KPIMetrics(system_data).service_totals(april).set_index('key')

    assert totals.loc['sim', 'target'] == 0
    assert totals.loc['mytv', 'target'] == 8


def test_service_totals_respect_employee_filter(system_data):
    only_binh = DashboardFilter(employee_id='E002')
    totals = KPIMetrics(system_data).service_totals(only_binh).set_index('key')

    assert totals.loc['sim', 'target'] == 0
    assert totals.loc['fiber', 'actual'] == 4


# =============================================================================
# EMPLOYEE ROLLUP
# =============================================================================

def test_employee_rollup_lists_only_employees_ranked_by_actual(system_data):
    rollup = KPIMetrics(system_data).employee_rollup(ALL)

    assert list(rollup['employee_id']) == ['E001', 'E002', 'E003']
    assert list(rollup['actual']) == [5, 4, 0]
    assert 'A001' not in set(rollup['employee_id'])
    assert 'M001' not in set(rollup['employee_id'])


def test_employee_rollup_bands(system_data):
    rollup = KPIMetrics(system_data).employee_rollup(ALL).set_index('employee_id')

    # E001: 5 / 20 -> 25%
    assert rollup.loc['E001', 'ratio'] == 25
    assert rollup.loc['E001', 'band'] == 'weak'
    # E002: 4 / 4 -> 100%
    assert rollup.loc['E002', 'ratio'] == 100
    assert rollup.loc['E002', 'band'] == 'excellent'
    # E003: approved, not completed
    assert rollup.loc['E003', 'actual'] == 0
    assert rollup.loc['E003', 'band'] == 'weak'


def test_employee_rollup_ignores_employee_selection(system_data):
    rollup = KPIMetrics(system_data).employee_rollup(DashboardFilter(employee_id='E001'))

    assert set(rollup['employee_id']) == {'E001', 'E002', 'E003'}


def test_employee_rollup_applies_period_filters(system_data):
    rollup = KPIMetrics(system_data).employee_rollup(DashboardFilter(week='Tuần 14'))
    rollup = rollup.set_index('employee_id')

    assert rollup.loc['E001', 'target'] == 0
    assert rollup.loc['E003', 'target'] == 8


def test_employee_rollup_ties_keep_user_order(employees):
    data = SystemData(users=tuple(employees), plans=())
    rollup = KPIMetrics(data).employee_rollup(ALL)

    assert list(rollup['employee_id']) == ['E001', 'E002', 'E003']


# =============================================================================
# WEEKLY SERIES
# =============================================================================

def _weekly_data(employees, weeks):
    plans = [
        make_plan(f"w{i}", sim_target=i + 1, sim_result=1, week_number=week, status=PlanStatus.COMPLETED)
        for i, week in enumerate(weeks)
    ]
    return SystemData(users=tuple(employees), plans=tuple(plans))


def test_weekly_series_keeps_last_eight_labels(employees):
    weeks = [f"Tuần {i}" for i in range(1, 10)]
    series = KPIMetrics(_weekly_data(employees, weeks)).weekly_series(ALL)

    assert len(series) == 8
    assert list(series['week']) == weeks[1:]


def test_weekly_series_sorts_labels_as_text(employees):
    weeks = ['Tuần 2', 'Tuần 10', 'Tuần 1']
    series = KPIMetrics(_weekly_data(employees, weeks)).weekly_series(ALL)

    assert list(series['week']) == ['Tuần 1', 'Tuần 10', 'Tuần 2']


def test_weekly_series_applies_only_employee_filter(system_data):
    metrics = KPIMetrics(system_data)
    flt = DashboardFilter(year='2024', employee_id='E003')
    series = metrics.weekly_series(flt).set_index('week')

    assert series.loc['Tuần 14', 'target'] == 8
    assert series.loc['Tuần 10', 'target'] == 0


def test_weekly_series_result_only_completed(system_data):
    series = KPIMetrics(system_data).weekly_series(ALL).set_index('week')

    # p1 (completed) sim 5 + p3 (completed) fiber 4; p2 pending excluded
    assert series.loc['Tuần 10', 'actual'] == 9
    assert series.loc['Tuần 10', 'target'] == 24


def test_weekly_series_empty_snapshot():
    series = KPIMetrics(SystemData.empty()).weekly_series(ALL)

    assert series.empty
    assert list(series.columns) == ['week', 'target', 'actual']


# =============================================================================
# SUMMARY
# =============================================================================

def test_summary_kpis(system_data):
    stats = KPIMetrics(system_data).calculate_dashboard(ALL)
    summary = stats.summary

    assert summary['total_output'] == 9
    # (25 + 100 + 0) / 3 = 41.67
    assert summary['avg_plan_percent'] == 42
    assert summary['employee_count'] == 3
    assert list(summary['weak']['employee_id']) == ['E001', 'E003']
    assert list(summary['excellent']['employee_id']) == ['E002']


def test_summary_kpis_without_employees():
    stats = KPIMetrics(SystemData.empty()).calculate_dashboard(ALL)

    assert stats.summary['avg_plan_percent'] == 0
    assert stats.summary['total_output'] == 0
    assert stats.employees.empty


def test_summary_kpis_outreach_totals_cover_every_plan(employees):
    data = SystemData(users=tuple(employees), plans=(
        make_plan('p1', customers_contacted=12, contracts_signed=2, status=PlanStatus.COMPLETED),
        make_plan('p2', 'E002', 'lê thị bình', date='2024-12-02', customers_contacted=5),
        make_plan('p3', 'E003', 'Phạm Chí', customers_contacted=3, contracts_signed=1),
    ))

    summary = KPIMetrics(data).calculate_dashboard(DashboardFilter(year='2025', employee_id='E001')).summary

    assert summary['customers_contacted'] == 20
    assert summary['contracts_signed'] == 3
    assert KPIMetrics(SystemData.empty()).calculate_dashboard(ALL).summary['customers_contacted'] == 0


def test_filter_option_lists(system_data):
    metrics = KPIMetrics(system_data)

    assert metrics.distinct_weeks() == ['Tuần 10', 'Tuần 14']
    assert metrics.distinct_years() == ['2025']


def test_distinct_years_with_mixed_timestamp_formats(employees):
    data = SystemData(users=tuple(employees), plans=(
        make_plan('p1', date='2024-12-30', sim_target=5),
        make_plan('p2', date='2025-02-01T10:00:00+07:00', sim_target=10),
        make_plan('p3', date=None),
    ))
    metrics = KPIMetrics(data)

    assert metrics.distinct_years() == ['2024', '2025']
    assert metrics.service_totals(DashboardFilter(year='2025')).set_index('key').loc['sim', 'target'] == 10
    assert metrics.monthly_totals('E001', 2, 2025).count == 1


# =============================================================================
# AI INPUTS
# =============================================================================

def test_monthly_totals_include_every_status(employees):
    plans = [
        make_plan('m1', sim_target=10, sim_result=4, revenue_cntt_target=5_000_000,
                  status=PlanStatus.PENDING, manager_comment='Cần cố gắng'),
        make_plan('m2', sim_target=5, sim_result=6, revenue_cntt_result=2_500_000,
                  status=PlanStatus.COMPLETED, manager_comment='Tốt'),
        make_plan('m3', sim_target=100, date='2025-04-02'),
        make_plan('m4', 'E002', 'lê thị bình', sim_target=100),
    ]
    data = SystemData(users=tuple(employees), plans=tuple(plans))
    totals = KPIMetrics(data).monthly_totals('E001', 3, 2025)

    assert totals.count == 2
    assert totals.sim_target == 15
    assert totals.sim_result == 10
    assert totals.revenue_target_millions == '5.0'
    assert totals.revenue_result_millions == '2.5'
    assert totals.manager_comments == ['Cần cố gắng', 'Tốt']


@pytest.mark.parametrize("target, result, expected", [
    (0, 0, 0),
    (0, 3, 100),
    (10, 5, 50),
    (10, 30, 120),
])
def test_radar_value(target, result, expected):
    assert radar_value(target, result) == expected


def test_radar_data_points():
    totals = MonthlyTotals(
        employee_id='E001', month=3, year=2025,
        sim_target=10, sim_result=5, fiber_target=0, fiber_result=2,
        revenue_target=1_000_000, revenue_result=3_000_000, count=1,
    )
    radar = KPIMetrics.radar_data(totals).set_index('subject')

    assert list(radar.index) == ['SIM', 'Fiber', 'MyTV', 'CNTT', 'Doanh Thu']
    assert radar.loc['SIM', 'value'] == 50
    assert radar.loc['Fiber', 'value'] == 100
    assert radar.loc['MyTV', 'value'] == 0
    assert radar.loc['Doanh Thu', 'value'] == 120
    assert bool(radar.loc['Doanh Thu', 'is_revenue']) is True


def test_radar_data_empty_month():
    totals = MonthlyTotals(employee_id='E001', month=3, year=2025)

    assert KPIMetrics.radar_data(totals).empty
    assert isinstance(KPIMetrics.radar_data(None), pd.DataFrame)
