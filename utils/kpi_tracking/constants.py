# utils/kpi_tracking/constants.py
"""
Constants for the KPI Tracking Module

Centralized configuration for:
- Role definitions
- Service lines and their plan columns
- Status vocabulary (Vietnamese display labels)
- Performance band thresholds
- Chart and export settings
"""

# =====================================================================
# ROLE DEFINITIONS
# =====================================================================

# Can approve/reject plans and adjustments, rate plans
APPROVER_ROLES = ['admin', 'manager']

# Can create, edit and delete users
ADMIN_ROLES = ['admin']

# Own plans only
EMPLOYEE_ROLES = ['employee']

ROLE_LABELS = {
    'admin': 'Quản trị viên',
    'manager': 'Quản lý',
    'employee': 'Nhân viên',
}

# =====================================================================
# SERVICE LINES
# =====================================================================

# The five service lines tracked on the dashboard (order matters for display)
DASHBOARD_SERVICES = [
    {'key': 'sim', 'name': 'SIM', 'color': '#3B82F6'},
    {'key': 'fiber', 'name': 'Fiber', 'color': '#10B981'},
    {'key': 'mytv', 'name': 'MyTV', 'color': '#8B5CF6'},
    {'key': 'mesh_camera', 'name': 'Mesh/Cam', 'color': '#F59E0B'},
    {'key': 'cntt', 'name': 'CNTT', 'color': '#6366F1'},
]

DASHBOARD_SERVICE_KEYS = [s['key'] for s in DASHBOARD_SERVICES]

# Every target/result pair stored on a plan
PLAN_SERVICE_KEYS = DASHBOARD_SERVICE_KEYS + ['revenue_cntt', 'other_services']

TARGET_FIELDS = [f"{key}_target" for key in PLAN_SERVICE_KEYS]
RESULT_FIELDS = [f"{key}_result" for key in PLAN_SERVICE_KEYS]

# Money-valued service lines (VND), displayed in millions
MONEY_SERVICE_KEYS = ['revenue_cntt']
MONEY_DIVISOR = 1_000_000

# =====================================================================
# STATUS VOCABULARY
# =====================================================================

STATUS_LABELS = {
    'completed': 'Hoàn thành',
    'pending': 'Chờ duyệt',
    'rejected': 'Từ chối',
    'approved': 'Đã duyệt',
}

ADJUSTMENT_STATUS_LABELS = {
    'pending': 'Chờ duyệt điều chỉnh',
    'approved': 'Đã duyệt điều chỉnh',
    'rejected': 'Từ chối điều chỉnh',
}

# =====================================================================
# PERFORMANCE BANDS
# =====================================================================

# Lower bound (inclusive) of each band, checked top-down
BAND_THRESHOLDS = [
    ('excellent', 100),
    ('good', 80),
    ('average', 50),
]
BAND_FALLBACK = 'weak'

BAND_LABELS = {
    'excellent': 'Xuất sắc',
    'good': 'Tốt',
    'average': 'Trung bình',
    'weak': 'Yếu',
}

# =====================================================================
# FILTERS
# =====================================================================

ALL_OPTION = 'All'

WEEKS_PER_YEAR = 53
WEEK_LABEL_FORMAT = "Tuần {}"

# Number of most recent week labels in the weekly series
WEEKLY_SERIES_LENGTH = 8

# =====================================================================
# RADAR CHART
# =====================================================================

RADAR_CAP_PERCENT = 120

# =====================================================================
# COLOR SCHEME
# =====================================================================

COLORS = {
    "target": "#F97316",        # Orange (Kế hoạch)
    "actual": "#2563EB",        # Blue (Thực hiện)
    "excellent": "#059669",
    "good": "#0EA5E9",
    "average": "#64748B",
    "weak": "#E11D48",
    "radar": "#6366F1",
    "grid": "#e0e0e0",
}

# =====================================================================
# CHART DIMENSIONS
# =====================================================================

CHART_HEIGHT = 360
RADAR_HEIGHT = 380

# =====================================================================
# CACHE SETTINGS
# =====================================================================

CACHE_TTL_SECONDS = 300

# =====================================================================
# EXPORT SETTINGS
# =====================================================================

EXPORT_FILE_PREFIX = 'Bao_Cao_Hieu_Qua_Chi_Tiet'
EXPORT_SHEET_NAME = 'TongHop'
EXPORT_TITLE = 'BÁO CÁO TỔNG HỢP KẾT QUẢ KINH DOANH VNPT - CHI TIẾT ĐÁNH GIÁ'

EXCEL_STYLES = {
    "header_fill_color": "1f77b4",
    "header_font_color": "FFFFFF",
    "day_fill_color": "EEF2FF",
    "number_format": '#,##0',
    "money_format": '0.0',
}
