# utils/auth.py
"""
Authentication Manager for Streamlit Apps

Version: 2.0.0
Features:
- SHA256 password hashing with per-user salt (stored as "salt$hash")
- Role-based access control (admin / manager / employee)
- Session management with timeout
"""

import streamlit as st
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple, List
from functools import wraps
import logging
from sqlalchemy import text
from .db import get_db_engine
from .config import config

logger = logging.getLogger(__name__)

HASH_SEPARATOR = "$"


# ==================== PASSWORD HASHING ====================

def hash_password(password: str, salt: str = None) -> str:
    """
    Hash password with SHA256 + salt

    Args:
        password: Plain text password
        salt: Optional salt (generated if not provided)

    Returns:
        "salt$hash" digest suitable for the users.password column
    """
    if not salt:
        salt = secrets.token_hex(16)

    pwd_hash = hashlib.sha256((password + salt).encode()).hexdigest()
    return f"{salt}{HASH_SEPARATOR}{pwd_hash}"


def verify_password(password: str, stored: str) -> bool:
    """
    Verify password against a stored "salt$hash" digest

    Args:
        password: Plain text password
        stored: Value of users.password

    Returns:
        True if password matches
    """
    if not stored or HASH_SEPARATOR not in stored:
        return False
    salt, _ = stored.split(HASH_SEPARATOR, 1)
    return hmac.compare_digest(hash_password(password, salt), stored)


class AuthManager:
    """Authentication manager for Streamlit apps"""

    def __init__(self):
        self.session_timeout = timedelta(
            hours=config.get_app_setting("SESSION_TIMEOUT_HOURS", 8)
        )

    # ==================== AUTHENTICATION ====================

    def authenticate(self, employee_id: str, password: str) -> Tuple[bool, Optional[Dict]]:
        """
        Authenticate user against the users table

        Args:
            employee_id: Employee code used as login
            password: Plain text password

        Returns:
            Tuple of (success: bool, user_info: dict or error: dict)
        """
        try:
            engine = get_db_engine()

            query = text("""
                SELECT
                    id,
                    employee_id,
                    employee_name,
                    role,
                    password,
                    position
                FROM users
                WHERE employee_id = :employee_id
            """)

            with engine.connect() as conn:
                result = conn.execute(query, {'employee_id': employee_id}).fetchone()

            if not result:
                logger.warning(f"Login attempt for non-existent user: {employee_id}")
                return False, {"error": "Sai mã nhân viên hoặc mật khẩu"}

            user = dict(result._mapping)

            if not verify_password(password, user['password']):
                logger.warning(f"Invalid password for user: {employee_id}")
                return False, {"error": "Sai mã nhân viên hoặc mật khẩu"}

            logger.info(f"User {employee_id} authenticated successfully")

            return True, {
                'id': user['id'],
                'employee_id': user['employee_id'],
                'employee_name': user['employee_name'] or user['employee_id'],
                'role': user['role'],
                'position': user.get('position'),
                'login_time': datetime.now()
            }

        except Exception as e:
            logger.error(f"Authentication error: {e}")
            return False, {"error": "Đăng nhập thất bại. Vui lòng thử lại."}

    # ==================== SESSION MANAGEMENT ====================

    def check_session(self) -> bool:
        """Check if user session is valid and not expired"""
        if 'authenticated' not in st.session_state:
            return False

        if not st.session_state.authenticated:
            return False

        # Check session timeout
        login_time = st.session_state.get('login_time')
        if login_time:
            elapsed = datetime.now() - login_time
            if elapsed > self.session_timeout:
                logger.info(f"Session expired for user: {st.session_state.get('employee_id')}")
                self.logout()
                return False

        return True

    def login(self, user_info: Dict):
        """Initialize user session after successful authentication"""
        st.session_state.authenticated = True
        st.session_state.user_id = user_info['id']
        st.session_state.employee_id = user_info['employee_id']
        st.session_state.user_fullname = user_info['employee_name']
        st.session_state.user_role = user_info['role']
        st.session_state.user_position = user_info.get('position')
        st.session_state.login_time = user_info['login_time']

        st.session_state.debug_mode = False

        logger.info(f"User {user_info['employee_id']} logged in successfully")

    def logout(self):
        """Clear user session and cache"""
        employee_id = st.session_state.get('employee_id', 'Unknown')

        auth_keys = [
            'authenticated', 'user_id', 'employee_id', 'user_fullname',
            'user_role', 'user_position', 'login_time', 'debug_mode'
        ]

        for key in auth_keys:
            if key in st.session_state:
                del st.session_state[key]

        st.cache_data.clear()

        logger.info(f"User {employee_id} logged out")

    # ==================== ACCESS CONTROL ====================

    def require_auth(self) -> bool:
        """
        Require authentication to access a page
        Use at the beginning of each protected page
        """
        if not self.check_session():
            st.warning("⚠️ Vui lòng đăng nhập để truy cập trang này")
            st.stop()
            return False
        return True

    def require_role(self, allowed_roles: List[str]) -> bool:
        """
        Require specific role(s) to access a page

        Usage:
            auth.require_role(['admin', 'manager'])
        """
        if not self.require_auth():
            return False

        current_role = st.session_state.get('user_role', '')

        if current_role not in allowed_roles:
            st.error(f"🚫 Không có quyền truy cập. Yêu cầu vai trò: {', '.join(allowed_roles)}")
            st.stop()
            return False

        return True

    def has_role(self, role: str) -> bool:
        """Check if current user has specific role"""
        return st.session_state.get('user_role', '') == role

    def is_admin(self) -> bool:
        return self.has_role('admin')

    # ==================== USER INFO HELPERS ====================

    def get_user_display_name(self) -> str:
        """Get user's display name for UI"""
        if st.session_state.get('user_fullname'):
            return st.session_state.user_fullname
        return st.session_state.get('employee_id', 'User')

    def get_current_user(self) -> Dict:
        """Get all current user info as dictionary"""
        return {
            'id': st.session_state.get('user_id'),
            'employee_id': st.session_state.get('employee_id'),
            'employee_name': st.session_state.get('user_fullname'),
            'role': st.session_state.get('user_role'),
            'position': st.session_state.get('user_position'),
        }


# ==================== DECORATORS ====================

def require_login(func):
    """Decorator to require login for a function"""
    @wraps(func)
    def wrapper(*args, **kwargs):
        auth = AuthManager()
        if auth.require_auth():
            return func(*args, **kwargs)
    return wrapper


def require_roles(*roles):
    """Decorator to require specific roles"""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            auth = AuthManager()
            if auth.require_role(list(roles)):
                return func(*args, **kwargs)
        return wrapper
    return decorator


# ==================== MODULE EXPORTS ====================

__all__ = [
    'AuthManager',
    'hash_password',
    'verify_password',
    'require_login',
    'require_roles',
]
