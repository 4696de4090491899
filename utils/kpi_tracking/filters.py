# utils/kpi_tracking/filters.py
"""
Filter State and Filter Components for KPI Tracking

- DashboardFilter: year / month / week / employee ('All' = unconstrained)
- ExportFilter: week / date / employee / status (blank = unconstrained)
- Streamlit renderers returning the dataclasses above
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, List, Optional

import pandas as pd
import streamlit as st

from .constants import ALL_OPTION, STATUS_LABELS, WEEK_LABEL_FORMAT, WEEKS_PER_YEAR
from .models import User

logger = logging.getLogger(__name__)


def is_active(value: Any) -> bool:
    """A filter value constrains the data unless it is blank or 'All'."""
    return value is not None and value != '' and value != ALL_OPTION


def parse_plan_dates(df: pd.DataFrame) -> pd.Series:
    """
    Plan dates as naive calendar days; unparseable values become NaT.

    Only the leading YYYY-MM-DD part is read, so a stored timestamp keeps
    its local day and mixed offsets never reach pandas.
    """
    return pd.to_datetime(df['date'].astype(str).str[:10], errors='coerce', format='%Y-%m-%d')


# =============================================================================
# DASHBOARD FILTER
# =============================================================================

@dataclass(frozen=True)
class DashboardFilter:
    """
    Dashboard filter tuple.

    Attributes:
        year: Calendar year of the plan date
        month: Month (1-12) of the plan date
        week: Exact week label, e.g. "Tuần 12"
        employee_id: Owning employee
    """
    year: Optional[Any] = None
    month: Optional[Any] = None
    week: Optional[str] = None
    employee_id: Optional[str] = None

    def mask(self, df: pd.DataFrame, include_employee: bool = True) -> pd.Series:
        """Boolean mask of rows matching the active constraints."""
        mask = pd.Series(True, index=df.index)
        if df.empty:
            return mask

        if is_active(self.year) or is_active(self.month):
            dates = parse_plan_dates(df)
            if is_active(self.year):
                mask &= dates.dt.year == int(self.year)
            if is_active(self.month):
                mask &= dates.dt.month == int(self.month)

        if is_active(self.week):
            mask &= df['week_number'] == self.week

        if include_employee and is_active(self.employee_id):
            mask &= df['employee_id'] == self.employee_id

        return mask

    def apply(self, df: pd.DataFrame, include_employee: bool = True) -> pd.DataFrame:
        return df[self.mask(df, include_employee=include_employee)]

    def employee_mask(self, df: pd.DataFrame) -> pd.Series:
        """Mask for the employee constraint alone."""
        if not is_active(self.employee_id):
            return pd.Series(True, index=df.index)
        return df['employee_id'] == self.employee_id


# =============================================================================
# EXPORT FILTER
# =============================================================================

@dataclass(frozen=True)
class ExportFilter:
    """Summary/export filter; every field is an exact match when set."""
    week: str = ''
    date: str = ''
    employee_id: str = ''
    status: str = ''

    def apply(self, df: pd.DataFrame) -> pd.DataFrame:
        mask = pd.Series(True, index=df.index)
        if is_active(self.week):
            mask &= df['week_number'] == self.week
        if is_active(self.date):
            mask &= df['date'] == self.date
        if is_active(self.employee_id):
            mask &= df['employee_id'] == self.employee_id
        if is_active(self.status):
            mask &= df['status'] == self.status
        return df[mask]

    def file_suffix(self, today: date = None) -> str:
        """Date if set, else week without spaces, else today's ISO date."""
        if self.date:
            return self.date
        if self.week:
            return self.week.replace(' ', '')
        return (today or date.today()).isoformat()


def week_labels() -> List[str]:
    return [WEEK_LABEL_FORMAT.format(i + 1) for i in range(WEEKS_PER_YEAR)]


# =============================================================================
# STREAMLIT RENDERERS
# =============================================================================

def render_dashboard_filters(
    employees: List[User],
    years: List[str],
    weeks: List[str],
    key_prefix: str = "dash",
) -> DashboardFilter:
    """Render the dashboard filter row and return the selection."""
    current_year = str(datetime.now().year)
    year_options = [ALL_OPTION] + sorted(set(years) | {current_year})
    employee_options = [ALL_OPTION] + [u.employee_id for u in employees]
    names = {u.employee_id: u.employee_name for u in employees}

    col1, col2, col3, col4 = st.columns(4)

    with col1:
        employee_id = st.selectbox(
            "Nhân viên",
            options=employee_options,
            format_func=lambda v: "Tất cả nhân viên" if v == ALL_OPTION else names.get(v, v),
            key=f"{key_prefix}_employee",
        )
    with col2:
        year = st.selectbox(
            "Năm",
            options=year_options,
            index=year_options.index(current_year),
            format_func=lambda v: "Tất cả năm" if v == ALL_OPTION else v,
            key=f"{key_prefix}_year",
        )
    with col3:
        month = st.selectbox(
            "Tháng",
            options=[ALL_OPTION] + [str(m) for m in range(1, 13)],
            format_func=lambda v: "Tất cả tháng" if v == ALL_OPTION else f"Tháng {v}",
            key=f"{key_prefix}_month",
        )
    with col4:
        week = st.selectbox(
            "Tuần",
            options=[ALL_OPTION] + list(weeks),
            format_func=lambda v: "Tất cả tuần" if v == ALL_OPTION else v,
            key=f"{key_prefix}_week",
        )

    return DashboardFilter(year=year, month=month, week=week, employee_id=employee_id)


def render_export_filters(users: List[User], key_prefix: str = "export") -> ExportFilter:
    """Render the export filter row (week, date, employee, status)."""
    if st.button("🔄 Reset", key=f"{key_prefix}_reset"):
        for suffix in ("week", "date", "employee", "status"):
            st.session_state.pop(f"{key_prefix}_{suffix}", None)

    names = {u.employee_id: u.employee_name for u in users}
    col1, col2, col3, col4 = st.columns(4)

    with col1:
        week = st.selectbox(
            "Tuần",
            options=[''] + week_labels(),
            format_func=lambda v: v or "Tất cả",
            key=f"{key_prefix}_week",
        )
    with col2:
        picked = st.date_input("Ngày", value=None, key=f"{key_prefix}_date")
    with col3:
        employee_id = st.selectbox(
            "Nhân viên",
            options=[''] + [u.employee_id for u in users],
            format_func=lambda v: names.get(v, v) if v else "Tất cả",
            key=f"{key_prefix}_employee",
        )
    with col4:
        status = st.selectbox(
            "Trạng thái",
            options=[''] + list(STATUS_LABELS),
            format_func=lambda v: STATUS_LABELS.get(v, v) if v else "Tất cả",
            key=f"{key_prefix}_status",
        )

    return ExportFilter(
        week=week,
        date=picked.isoformat() if picked else '',
        employee_id=employee_id,
        status=status,
    )
