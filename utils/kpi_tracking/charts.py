# utils/kpi_tracking/charts.py
"""
Chart Builders for KPI Tracking

- KPI summary cards (st.metric)
- Per-service target vs actual bars (Altair)
- Weekly target vs actual trend (Altair)
- Employee ranking bars colored by band (Altair)
- Monthly radar for the AI review page (Plotly)
"""

import logging
from typing import Dict

import altair as alt
import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from .constants import BAND_LABELS, CHART_HEIGHT, COLORS, MONEY_DIVISOR, RADAR_CAP_PERCENT, RADAR_HEIGHT

logger = logging.getLogger(__name__)

SERIES_DOMAIN = ['Kế hoạch', 'Thực hiện']
SERIES_SCALE = alt.Scale(domain=SERIES_DOMAIN, range=[COLORS['target'], COLORS['actual']])


def _plotly_layout_defaults(fig, height: int = 400) -> go.Figure:
    fig.update_layout(
        height=height,
        margin=dict(l=30, r=30, t=40, b=30),
        font=dict(size=11),
        plot_bgcolor="rgba(0,0,0,0)",
        paper_bgcolor="rgba(0,0,0,0)",
        hoverlabel=dict(bgcolor="white"),
        showlegend=False,
    )
    return fig


class KPICharts:
    """
    Chart builders for the KPI dashboard and AI review pages.

    All methods are static.

    Usage:
        KPICharts.render_kpi_cards(stats.summary)
        st.altair_chart(KPICharts.build_service_chart(stats.service_totals), use_container_width=True)
    """

    # =========================================================================
    # KPI CARDS
    # =========================================================================

    @staticmethod
    def render_kpi_cards(summary: Dict):
        col1, col2, col3, col4, col5 = st.columns(5)
        with col1:
            st.metric("Tổng sản lượng", f"{summary['total_output']:,}")
        with col2:
            st.metric("Tỷ lệ đạt KH TB", f"{summary['avg_plan_percent']}%")
        with col3:
            st.metric("Nhân viên", summary['employee_count'])
        with col4:
            weak = summary['weak']
            st.metric(
                "Cần hỗ trợ",
                len(weak),
                help=", ".join(weak['employee_name']) if not weak.empty else None,
            )
        with col5:
            st.metric(
                "Khách hàng tiếp cận",
                f"{summary['customers_contacted']:,}",
                help=f"Hợp đồng đã ký: {summary['contracts_signed']:,}",
            )

        excellent = summary['excellent']
        if not excellent.empty:
            st.caption("🏆 Xuất sắc: " + ", ".join(
                f"{row.employee_name} ({row.ratio}%)" for row in excellent.itertuples()
            ))

    @staticmethod
    def _empty_chart(message: str = "Chưa có dữ liệu") -> alt.Chart:
        return alt.Chart(pd.DataFrame({'text': [message]})).mark_text(
            size=14, color='gray'
        ).encode(
            text='text:N'
        ).properties(height=CHART_HEIGHT)

    # =========================================================================
    # SERVICE CHART
    # =========================================================================

    @staticmethod
    def build_service_chart(service_totals: pd.DataFrame, title: str = "📊 Kế hoạch vs Thực hiện theo dịch vụ") -> alt.Chart:
        """Grouped bars per service line with the achievement ratio in the tooltip."""
        if service_totals.empty:
            return KPICharts._empty_chart()

        data = service_totals.rename(columns={'target': 'Kế hoạch', 'actual': 'Thực hiện'}).melt(
            id_vars=['name', 'ratio'],
            value_vars=SERIES_DOMAIN,
            var_name='Series',
            value_name='Value',
        )
        order = list(service_totals['name'])

        return alt.Chart(data).mark_bar().encode(
            x=alt.X('name:N', sort=order, title=None),
            y=alt.Y('Value:Q', title='Sản lượng'),
            color=alt.Color('Series:N', scale=SERIES_SCALE, legend=alt.Legend(orient='bottom', title=None)),
            xOffset='Series:N',
            tooltip=[
                alt.Tooltip('name:N', title='Dịch vụ'),
                alt.Tooltip('Series:N', title='Loại'),
                alt.Tooltip('Value:Q', title='Giá trị', format=',.0f'),
                alt.Tooltip('ratio:Q', title='Tỷ lệ đạt (%)'),
            ],
        ).properties(height=CHART_HEIGHT, title=title)

    # =========================================================================
    # WEEKLY TREND
    # =========================================================================

    @staticmethod
    def build_weekly_chart(weekly: pd.DataFrame, title: str = "📈 Xu hướng theo tuần") -> alt.Chart:
        if weekly.empty:
            return KPICharts._empty_chart()

        data = weekly.rename(columns={'target': 'Kế hoạch', 'actual': 'Thực hiện'}).melt(
            id_vars=['week'],
            value_vars=SERIES_DOMAIN,
            var_name='Series',
            value_name='Value',
        )
        order = list(weekly['week'])

        lines = alt.Chart(data).mark_line(point=True, strokeWidth=2).encode(
            x=alt.X('week:N', sort=order, title=None),
            y=alt.Y('Value:Q', title='Sản lượng'),
            color=alt.Color('Series:N', scale=SERIES_SCALE, legend=alt.Legend(orient='bottom', title=None)),
            tooltip=[
                alt.Tooltip('week:N', title='Tuần'),
                alt.Tooltip('Series:N', title='Loại'),
                alt.Tooltip('Value:Q', title='Giá trị', format=',.0f'),
            ],
        )
        return lines.properties(height=CHART_HEIGHT, title=title)

    # =========================================================================
    # EMPLOYEE RANKING
    # =========================================================================

    @staticmethod
    def build_ranking_chart(employees: pd.DataFrame, title: str = "🏅 Xếp hạng nhân viên") -> alt.Chart:
        """Horizontal bars of actual output, colored by performance band."""
        if employees.empty:
            return KPICharts._empty_chart()

        data = employees.assign(band_label=employees['band'].map(BAND_LABELS))
        bands = list(BAND_LABELS)
        color_scale = alt.Scale(
            domain=[BAND_LABELS[b] for b in bands],
            range=[COLORS[b] for b in bands],
        )

        bars = alt.Chart(data).mark_bar().encode(
            y=alt.Y('employee_name:N', sort=list(data['employee_name']), title=None),
            x=alt.X('actual:Q', title='Thực hiện'),
            color=alt.Color('band_label:N', scale=color_scale, legend=alt.Legend(orient='bottom', title=None)),
            tooltip=[
                alt.Tooltip('employee_name:N', title='Nhân viên'),
                alt.Tooltip('target:Q', title='Kế hoạch', format=',.0f'),
                alt.Tooltip('actual:Q', title='Thực hiện', format=',.0f'),
                alt.Tooltip('ratio:Q', title='Tỷ lệ (%)'),
                alt.Tooltip('band_label:N', title='Xếp loại'),
            ],
        )
        text = alt.Chart(data).mark_text(align='left', dx=4, fontSize=10).encode(
            y=alt.Y('employee_name:N', sort=list(data['employee_name'])),
            x=alt.X('actual:Q'),
            text=alt.Text('ratio:Q', format='.0f'),
        )
        height = max(CHART_HEIGHT, len(data) * 28)
        return alt.layer(bars, text).properties(height=height, title=title)

    # =========================================================================
    # RADAR
    # =========================================================================

    @staticmethod
    def build_radar_chart(radar: pd.DataFrame, title: str = "Mức độ hoàn thành (%)") -> go.Figure:
        """Closed polar trace of achievement percentages, capped at 120."""
        fig = go.Figure()
        if radar.empty:
            return _plotly_layout_defaults(fig, height=RADAR_HEIGHT)

        subjects = list(radar['subject'])
        values = list(radar['value'])
        hover = []
        for row in radar.itertuples():
            if row.is_revenue:
                hover.append(f"{row.actual / MONEY_DIVISOR:.1f} / {row.target / MONEY_DIVISOR:.1f} triệu")
            else:
                hover.append(f"{row.actual:,.0f} / {row.target:,.0f}")

        fig.add_trace(go.Scatterpolar(
            r=values + values[:1],
            theta=subjects + subjects[:1],
            customdata=hover + hover[:1],
            fill='toself',
            line=dict(color=COLORS['radar'], width=2),
            name=title,
            hovertemplate="%{theta}: %{r:.0f}%<br>%{customdata}<extra></extra>",
        ))
        fig = _plotly_layout_defaults(fig, height=RADAR_HEIGHT)
        fig.update_layout(
            title=dict(text=title, x=0.5),
            polar=dict(
                radialaxis=dict(range=[0, RADAR_CAP_PERCENT], gridcolor=COLORS['grid']),
                angularaxis=dict(gridcolor=COLORS['grid']),
            ),
        )
        return fig
