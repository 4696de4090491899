# utils/kpi_tracking/metrics.py
"""
KPI Calculations for the Dashboard and AI Analysis

Handles all aggregations over the plan snapshot:
- Per-service totals (target from all plans, result from completed plans)
- Per-employee rollup, ranking and performance band
- Weekly target vs actual series
- Summary KPI cards and filter option lists
- Radar chart normalisation and monthly totals for the AI helper
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pandas as pd

from .constants import (
    DASHBOARD_SERVICES,
    DASHBOARD_SERVICE_KEYS,
    MONEY_DIVISOR,
    RADAR_CAP_PERCENT,
    WEEKLY_SERIES_LENGTH,
)
from .filters import DashboardFilter, parse_plan_dates
from .models import PerformanceBand, PlanStatus, SystemData, to_number

logger = logging.getLogger(__name__)

TARGET_COLUMNS = [f"{key}_target" for key in DASHBOARD_SERVICE_KEYS]
RESULT_COLUMNS = [f"{key}_result" for key in DASHBOARD_SERVICE_KEYS]

EMPLOYEE_COLUMNS = ['employee_id', 'employee_name', 'target', 'actual', 'ratio', 'band']


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def achievement_ratio(result, target) -> int:
    """round(result / target * 100), or 0 when there is no target."""
    if not target > 0:
        return 0
    return round_half_up(result / target * 100)


def radar_value(target, result) -> float:
    """Achievement percentage for the radar chart, capped at 120."""
    if target == 0:
        return 100 if result > 0 else 0
    return min(result / target * 100, RADAR_CAP_PERCENT)


def _py(value):
    return to_number(float(value))


@dataclass
class MonthlyTotals:
    """One employee's totals for a month, fed to the AI prompt."""
    employee_id: str
    month: int
    year: int
    sim_target: float = 0
    sim_result: float = 0
    fiber_target: float = 0
    fiber_result: float = 0
    mytv_target: float = 0
    mytv_result: float = 0
    cntt_target: float = 0
    cntt_result: float = 0
    revenue_target: float = 0
    revenue_result: float = 0
    count: int = 0
    manager_comments: List[str] = field(default_factory=list)

    @property
    def revenue_target_millions(self) -> str:
        return f"{self.revenue_target / MONEY_DIVISOR:.1f}"

    @property
    def revenue_result_millions(self) -> str:
        return f"{self.revenue_result / MONEY_DIVISOR:.1f}"


@dataclass
class DashboardStats:
    service_totals: pd.DataFrame
    employees: pd.DataFrame
    weekly: pd.DataFrame
    summary: Dict


class KPIMetrics:
    """
    KPI calculations over a SystemData snapshot.

    Usage:
        metrics = KPIMetrics(data)

        stats = metrics.calculate_dashboard(DashboardFilter(year='2025'))
        stats.service_totals   # one row per service line
        stats.employees        # ranked employee rollup
        stats.weekly           # last 8 week labels, target vs actual
    """

    def __init__(self, data: SystemData):
        self.data = data
        self.plans_df = data.plans_df()

    # =========================================================================
    # DASHBOARD
    # =========================================================================

    def calculate_dashboard(
        self,
        flt: DashboardFilter,
        weekly_length: int = WEEKLY_SERIES_LENGTH,
    ) -> DashboardStats:
        service_totals = self.service_totals(flt)
        employees = self.employee_rollup(flt)
        return DashboardStats(
            service_totals=service_totals,
            employees=employees,
            weekly=self.weekly_series(flt, length=weekly_length),
            summary=self.summary_kpis(service_totals, employees),
        )

    def service_totals(self, flt: DashboardFilter) -> pd.DataFrame:
        """
        Totals per service line under every active filter.

        Target sums all filtered plans; result sums only completed ones.

        Returns:
            DataFrame[key, name, color, target, actual, ratio]
        """
        df = flt.apply(self.plans_df)
        completed = df[df['status'] == PlanStatus.COMPLETED.value]

        rows = []
        for service in DASHBOARD_SERVICES:
            key = service['key']
            target = _py(df[f"{key}_target"].sum())
            actual = _py(completed[f"{key}_result"].sum())
            rows.append({
                'key': key,
                'name': service['name'],
                'color': service['color'],
                'target': target,
                'actual': actual,
                'ratio': achievement_ratio(actual, target),
            })

        return pd.DataFrame(rows, columns=['key', 'name', 'color', 'target', 'actual', 'ratio'])

    def employee_rollup(self, flt: DashboardFilter) -> pd.DataFrame:
        """
        One row per employee-role user, ranked by descending actual.

        Only the week/month/year constraints apply here; the employee
        selection is deliberately not reapplied, so every employee is ranked.

        Returns:
            DataFrame[employee_id, employee_name, target, actual, ratio, band]
        """
        df = flt.apply(self.plans_df, include_employee=False)
        df = df.assign(
            total_target=df[TARGET_COLUMNS].sum(axis=1),
            total_result=df[RESULT_COLUMNS].sum(axis=1),
        )
        targets = df.groupby('employee_id')['total_target'].sum()
        completed = df[df['status'] == PlanStatus.COMPLETED.value]
        actuals = completed.groupby('employee_id')['total_result'].sum()

        rows = []
        for user in self.data.employees():
            target = _py(targets.get(user.employee_id, 0))
            actual = _py(actuals.get(user.employee_id, 0))
            ratio = achievement_ratio(actual, target)
            rows.append({
                'employee_id': user.employee_id,
                'employee_name': user.employee_name,
                'target': target,
                'actual': actual,
                'ratio': ratio,
                'band': PerformanceBand.from_ratio(ratio).value,
            })

        result = pd.DataFrame(rows, columns=EMPLOYEE_COLUMNS)
        # mergesort keeps user order for equal totals
        return result.sort_values('actual', ascending=False, kind='mergesort').reset_index(drop=True)

    def weekly_series(
        self,
        flt: DashboardFilter,
        length: int = WEEKLY_SERIES_LENGTH,
    ) -> pd.DataFrame:
        """
        Target vs actual for the most recent week labels.

        Week labels are free text and sorted as strings, so "Tuần 10" comes
        before "Tuần 2". Only the employee filter applies.

        Returns:
            DataFrame[week, target, actual]
        """
        df = self.plans_df
        weeks = self.distinct_weeks()[-length:] if length > 0 else []
        scoped = df[flt.employee_mask(df)]

        rows = []
        for week in weeks:
            week_df = scoped[scoped['week_number'] == week]
            completed = week_df[week_df['status'] == PlanStatus.COMPLETED.value]
            rows.append({
                'week': week,
                'target': _py(week_df[TARGET_COLUMNS].to_numpy().sum()),
                'actual': _py(completed[RESULT_COLUMNS].to_numpy().sum()),
            })

        return pd.DataFrame(rows, columns=['week', 'target', 'actual'])

    def summary_kpis(self, service_totals: pd.DataFrame, employees: pd.DataFrame) -> Dict:
        """
        Header cards: total output, average plan %, weak/excellent shortlists.

        Outreach totals (customers contacted, contracts signed) cover every
        plan in the snapshot, whatever the filter.
        """
        total_output = _py(service_totals['actual'].sum()) if not service_totals.empty else 0
        if employees.empty:
            avg_ratio = 0
        else:
            avg_ratio = round_half_up(employees['ratio'].sum() / len(employees))

        return {
            'total_output': total_output,
            'avg_plan_percent': avg_ratio,
            'employee_count': len(employees),
            'customers_contacted': _py(self.plans_df['customers_contacted'].sum()),
            'contracts_signed': _py(self.plans_df['contracts_signed'].sum()),
            'weak': employees[employees['band'] == PerformanceBand.WEAK.value].head(3),
            'excellent': employees[employees['band'] == PerformanceBand.EXCELLENT.value].head(3),
        }

    # =========================================================================
    # FILTER OPTIONS
    # =========================================================================

    def distinct_weeks(self) -> List[str]:
        weeks = self.plans_df['week_number'].dropna()
        return sorted({w for w in weeks if isinstance(w, str) and w})

    def distinct_years(self) -> List[str]:
        years = parse_plan_dates(self.plans_df).dropna().dt.year
        return sorted({str(int(y)) for y in years})

    # =========================================================================
    # AI ANALYSIS INPUTS
    # =========================================================================

    def monthly_totals(self, employee_id: str, month: int, year: int) -> MonthlyTotals:
        """
        Totals of one employee's plans in a month, whatever their status.
        """
        totals = MonthlyTotals(employee_id=employee_id, month=int(month), year=int(year))
        df = self.plans_df
        if df.empty:
            return totals

        dates = parse_plan_dates(df)
        df = df[
            (df['employee_id'] == employee_id)
            & (dates.dt.month == int(month))
            & (dates.dt.year == int(year))
        ]

        totals.count = len(df)
        for key in ('sim', 'fiber', 'mytv', 'cntt'):
            setattr(totals, f"{key}_target", _py(df[f"{key}_target"].sum()))
            setattr(totals, f"{key}_result", _py(df[f"{key}_result"].sum()))
        totals.revenue_target = _py(df['revenue_cntt_target'].sum())
        totals.revenue_result = _py(df['revenue_cntt_result'].sum())
        totals.manager_comments = [c for c in df['manager_comment'] if isinstance(c, str) and c]
        return totals

    @staticmethod
    def radar_data(totals: Optional[MonthlyTotals]) -> pd.DataFrame:
        """Normalised radar points; empty when the month has no plans."""
        columns = ['subject', 'value', 'actual', 'target', 'is_revenue']
        if totals is None or totals.count == 0:
            return pd.DataFrame(columns=columns)

        points = [
            ('SIM', totals.sim_target, totals.sim_result, False),
            ('Fiber', totals.fiber_target, totals.fiber_result, False),
            ('MyTV', totals.mytv_target, totals.mytv_result, False),
            ('CNTT', totals.cntt_target, totals.cntt_result, False),
            ('Doanh Thu', totals.revenue_target, totals.revenue_result, True),
        ]
        return pd.DataFrame(
            [
                {
                    'subject': subject,
                    'value': radar_value(target, result),
                    'actual': result,
                    'target': target,
                    'is_revenue': is_revenue,
                }
                for subject, target, result, is_revenue in points
            ],
            columns=columns,
        )
