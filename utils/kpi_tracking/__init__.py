# utils/kpi_tracking/__init__.py
"""
KPI Tracking Module

Weekly business plans of VNPT sales staff: targets, results, manager
approval, summary export and AI review.

Components:
- models: User / Plan / SystemData records and the TargetPatch
- data_service: Store access (users, plans) with error translation
- metrics: Dashboard aggregations and AI inputs
- filters: Dashboard / export filter state and Streamlit components
- charts: Altair and Plotly visualizations
- export: Two-row-header Excel summary report
- approval: Manager approve / reject of plans and adjustments
- plan_workflow: Submission, adjustment request, results, rating
- ai_analysis: Gemini performance review
- fragments: Cached page snapshot loader and load-error banner

Usage:
    from utils.kpi_tracking import (
        KPIDataService,
        KPIMetrics,
        DashboardFilter,
        KPICharts,
        ApprovalWorkflow,
    )
"""

from .models import (
    Role,
    PlanStatus,
    AdjustmentStatus,
    PerformanceBand,
    User,
    Plan,
    SystemData,
    TargetPatch,
)
from .exceptions import (
    KPITrackingError,
    StoreError,
    SchemaMismatchError,
    WorkflowError,
    ValidationError,
    InvalidTransitionError,
    ApprovalPermissionError,
    AdjustmentPayloadError,
    AIAnalysisError,
    AIConfigurationError,
    AIResponseError,
)
from .data_service import KPIDataService
from .metrics import KPIMetrics, MonthlyTotals, DashboardStats
from .filters import DashboardFilter, ExportFilter
from .charts import KPICharts
from .export import PlanExport, build_table
from .approval import ApprovalWorkflow, pending_plans, pending_adjustments
from .plan_workflow import PlanWorkflow
from .ai_analysis import AnalysisResult, analyze_performance

# Constants
from .constants import (
    COLORS,
    DASHBOARD_SERVICES,
    STATUS_LABELS,
    BAND_LABELS,
    ROLE_LABELS,
    CACHE_TTL_SECONDS,
)

__all__ = [
    # Records
    'Role',
    'PlanStatus',
    'AdjustmentStatus',
    'PerformanceBand',
    'User',
    'Plan',
    'SystemData',
    'TargetPatch',

    # Errors
    'KPITrackingError',
    'StoreError',
    'SchemaMismatchError',
    'WorkflowError',
    'ValidationError',
    'InvalidTransitionError',
    'ApprovalPermissionError',
    'AdjustmentPayloadError',
    'AIAnalysisError',
    'AIConfigurationError',
    'AIResponseError',

    # Classes
    'KPIDataService',
    'KPIMetrics',
    'MonthlyTotals',
    'DashboardStats',
    'DashboardFilter',
    'ExportFilter',
    'KPICharts',
    'PlanExport',
    'build_table',
    'ApprovalWorkflow',
    'pending_plans',
    'pending_adjustments',
    'PlanWorkflow',
    'AnalysisResult',
    'analyze_performance',

    # Constants
    'COLORS',
    'DASHBOARD_SERVICES',
    'STATUS_LABELS',
    'BAND_LABELS',
    'ROLE_LABELS',
    'CACHE_TTL_SECONDS',
]

__version__ = '1.0.0'
