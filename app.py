# app.py
"""
VNPT Business KPI Tracking - Main Entry Point

Version: 1.0.0
"""

import streamlit as st
from utils.auth import AuthManager
from utils.db import check_db_connection
from utils.kpi_tracking.constants import ROLE_LABELS
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ==================== PAGE CONFIGURATION ====================

APP_NAME = "VNPT KPI Tracking"
APP_ICON = "📊"
APP_VERSION = "1.0.0"

st.set_page_config(
    page_title=f"{APP_NAME}",
    page_icon=APP_ICON,
    layout="wide",
    initial_sidebar_state="expanded"
)

# ==================== CUSTOM CSS ====================

st.markdown("""
<style>
    .main-header {
        font-size: 2.5rem;
        font-weight: bold;
        margin-bottom: 0.5rem;
        color: #1f77b4;
    }

    .sub-header {
        font-size: 1.1rem;
        color: #666;
        margin-bottom: 2rem;
    }

    .welcome-box {
        background: linear-gradient(135deg, #1f77b4 0%, #2196f3 100%);
        color: white;
        padding: 2rem;
        border-radius: 0.75rem;
        margin-bottom: 2rem;
    }

    .welcome-title {
        font-size: 1.75rem;
        font-weight: 600;
        margin-bottom: 0.5rem;
    }

    .info-card {
        background: #f8f9fa;
        padding: 1.5rem;
        border-radius: 0.5rem;
        border-left: 4px solid #1f77b4;
        margin-bottom: 1rem;
    }

    .footer {
        text-align: center;
        color: #888;
        padding: 1rem;
        margin-top: 3rem;
        border-top: 1px solid #eee;
        font-size: 0.9rem;
    }
</style>
""", unsafe_allow_html=True)

# ==================== INITIALIZATION ====================

auth = AuthManager()

DASHBOARDS = [
    ("📊 Dashboard", "Kế hoạch vs thực hiện theo dịch vụ, xếp hạng nhân viên, xu hướng 8 tuần gần nhất.", None),
    ("📝 Lập kế hoạch", "Đăng ký kế hoạch tuần, đề nghị điều chỉnh chỉ tiêu, báo cáo kết quả.", None),
    ("✅ Phê duyệt", "Duyệt / từ chối kế hoạch mới và đề nghị điều chỉnh.", ['admin', 'manager']),
    ("📥 Tổng hợp & Xuất Excel", "Bảng tổng hợp chi tiết theo tuần, ngày, nhân viên, trạng thái.", None),
    ("🤖 Phân tích AI", "Đánh giá hiệu quả tháng của nhân viên bằng Gemini.", None),
    ("👤 Quản lý người dùng", "Tạo, sửa, xoá tài khoản nhân viên.", ['admin']),
]

# ==================== HELPER FUNCTIONS ====================

def show_login_page():
    """Display the login page"""
    st.markdown(f'<p class="main-header">{APP_ICON} {APP_NAME}</p>', unsafe_allow_html=True)
    st.markdown('<p class="sub-header">Theo dõi kế hoạch và kết quả kinh doanh hằng tuần</p>', unsafe_allow_html=True)

    # Check database connection
    db_ok, db_error = check_db_connection()
    if not db_ok:
        st.error(f"⚠️ {db_error}")
        st.info("Vui lòng kiểm tra kết nối mạng hoặc liên hệ quản trị viên.")
        return

    col1, col2, col3 = st.columns([1, 2, 1])

    with col2:
        with st.form("login_form", clear_on_submit=False):
            st.markdown("#### 🔐 Đăng nhập")

            employee_id = st.text_input(
                "Mã nhân viên",
                placeholder="Nhập mã nhân viên",
                key="login_employee_id"
            )
            password = st.text_input(
                "Mật khẩu",
                type="password",
                placeholder="Nhập mật khẩu",
                key="login_password"
            )

            submit = st.form_submit_button(
                "🔑 Đăng nhập",
                type="primary",
                use_container_width=True
            )

            if submit:
                if not employee_id or not password:
                    st.warning("Vui lòng nhập mã nhân viên và mật khẩu")
                else:
                    with st.spinner("Đang xác thực..."):
                        success, result = auth.authenticate(employee_id.strip(), password)

                    if success:
                        auth.login(result)
                        st.success("✅ Đăng nhập thành công!")
                        st.rerun()
                    else:
                        st.error(result.get("error", "Đăng nhập thất bại"))


def show_main_app():
    """Display the main application after login"""
    role = st.session_state.get('user_role', 'employee')

    with st.sidebar:
        st.markdown(f"### 👤 {auth.get_user_display_name()}")
        st.caption(f"Vai trò: {ROLE_LABELS.get(role, role)}")
        st.markdown("---")

        if st.button("🚪 Đăng xuất", use_container_width=True):
            auth.logout()
            st.rerun()

    st.markdown(f"""
    <div class="welcome-box">
        <div class="welcome-title">Xin chào, {auth.get_user_display_name()}! 👋</div>
        <div>Chọn chức năng ở thanh bên để bắt đầu.</div>
    </div>
    """, unsafe_allow_html=True)

    st.markdown("### 📋 Chức năng")
    for title, description, roles in DASHBOARDS:
        if roles and role not in roles:
            continue
        st.markdown(f"""
        <div class="info-card">
            <strong>{title}</strong><br>
            <span style="color: #666;">{description}</span>
        </div>
        """, unsafe_allow_html=True)

    if auth.is_admin():
        st.markdown("---")
        with st.expander("🔧 Trạng thái hệ thống (Admin)"):
            from utils.db import get_connection_pool_status
            pool_status = get_connection_pool_status()

            col1, col2, col3 = st.columns(3)
            with col1:
                st.metric("DB Status", pool_status.get("status", "OK"))
            with col2:
                st.metric("Connections Used", pool_status.get("checked_out", 0))
            with col3:
                st.metric("Available", pool_status.get("checked_in", 0))

    st.markdown(f"""
    <div class="footer">
        <strong>{APP_NAME}</strong> v{APP_VERSION}
    </div>
    """, unsafe_allow_html=True)


# ==================== MAIN ====================

def main():
    """Main application entry point"""
    if not auth.check_session():
        show_login_page()
    else:
        show_main_app()


if __name__ == "__main__":
    main()
