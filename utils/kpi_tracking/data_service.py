# utils/kpi_tracking/data_service.py
"""
Record Store Access for KPI Tracking

Thin pass-through to the hosted Postgres database (Supabase) for the
`users` and `plans` tables:
- fetch-all / insert-one / update-by-id / delete-by-id
- Concurrent snapshot load of both tables
- Missing-column errors surfaced as SchemaMismatchError

Every write replaces the whole record; there is no version check, so two
concurrent approvals of one plan end as last-write-wins.
"""

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from utils.auth import hash_password
from utils.db import execute_query, execute_update, get_db_engine, get_transaction
from .exceptions import SchemaMismatchError, StoreError
from .models import PLAN_COLUMNS, USER_COLUMNS, Plan, SystemData, User

logger = logging.getLogger(__name__)

# Postgres undefined_column, PostgREST schema cache miss, MySQL unknown column
MISSING_COLUMN_CODES = {'42703', 'PGRST204', '1054'}

MISSING_COLUMN_MARKERS = (
    'does not exist',
    'no such column',
    'has no column',
    'unknown column',
    'could not find',
)


def generate_id() -> str:
    return str(uuid.uuid4())


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_code(error: Exception) -> Optional[str]:
    orig = getattr(error, 'orig', None)
    if orig is None:
        return None
    pgcode = getattr(orig, 'pgcode', None)
    if pgcode:
        return str(pgcode)
    args = getattr(orig, 'args', ())
    if args and isinstance(args[0], int):
        return str(args[0])
    return None


def _error_message(error: Exception) -> str:
    orig = getattr(error, 'orig', None)
    return str(orig if orig is not None else error).strip()


def is_missing_column_error(code: Optional[str], message: str) -> bool:
    if code in MISSING_COLUMN_CODES:
        return True
    lowered = (message or '').lower()
    return 'column' in lowered and any(m in lowered for m in MISSING_COLUMN_MARKERS)


def translate_error(error: Exception, action: str) -> StoreError:
    """Map a driver error onto the module's store errors."""
    code = _error_code(error)
    message = _error_message(error)
    logger.error(f"❌ Error {action}: {message} (code={code})")
    if is_missing_column_error(code, message):
        return SchemaMismatchError(message, code)
    return StoreError(message, code)


class KPIDataService:
    """
    Record store for users and plans.

    Usage:
        service = KPIDataService()
        data, error = service.load_system_data()
        if error:
            st.error(error)

        service.update_plan(updated_plan)
        data, error = service.load_system_data()
    """

    def __init__(self, engine=None):
        """
        Args:
            engine: Optional SQLAlchemy engine (defaults to the app singleton)
        """
        self._engine = engine

    @property
    def engine(self):
        """Lazy load database engine."""
        if self._engine is None:
            self._engine = get_db_engine()
        return self._engine

    # =========================================================================
    # READS
    # =========================================================================

    def fetch_users(self) -> List[Dict]:
        return self._fetch_all('users')

    def fetch_plans(self) -> List[Dict]:
        return self._fetch_all('plans')

    def _fetch_all(self, table: str) -> List[Dict]:
        try:
            return execute_query(f"SELECT * FROM {table}", engine=self.engine)
        except SQLAlchemyError as e:
            raise translate_error(e, f"loading {table}") from e

    def load_system_data(self) -> Tuple[SystemData, Optional[str]]:
        """
        Load both tables concurrently and join.

        Returns:
            (snapshot, None) on success, (empty snapshot, message) if either
            read failed.
        """
        with ThreadPoolExecutor(max_workers=2) as pool:
            users_future = pool.submit(self.fetch_users)
            plans_future = pool.submit(self.fetch_plans)

            try:
                user_rows = users_future.result()
            except StoreError as e:
                return SystemData.empty(), f"Users Error: {e}"
            except Exception as e:
                logger.error(f"Lỗi kết nối CSDL: {e}")
                return SystemData.empty(), "Không thể kết nối đến máy chủ dữ liệu."

            try:
                plan_rows = plans_future.result()
            except StoreError as e:
                return SystemData.empty(), f"Plans Error: {e}"
            except Exception as e:
                logger.error(f"Lỗi kết nối CSDL: {e}")
                return SystemData.empty(), "Không thể kết nối đến máy chủ dữ liệu."

        data = SystemData.from_records(user_rows, plan_rows)
        logger.info(f"Loaded {len(data.users)} users, {len(data.plans)} plans")
        return data, None

    # =========================================================================
    # USERS
    # =========================================================================

    def create_user(
        self,
        employee_id: str,
        employee_name: str,
        role: str,
        password: str,
        position: Optional[str] = None,
    ) -> User:
        """Create a user; the password is hashed before it is stored."""
        existing = self._fetch_user_by_employee_id(employee_id)
        if existing is not None:
            raise StoreError(f"Mã nhân viên {employee_id} đã tồn tại")

        user = User.from_record({
            'id': generate_id(),
            'employee_id': employee_id,
            'employee_name': employee_name,
            'role': role,
            'password': hash_password(password) if password else '',
            'position': position,
            'created_at': utc_now_iso(),
        })
        self._insert('users', USER_COLUMNS, user.to_record(), "creating user")
        logger.info(f"Created user {employee_id} ({role})")
        return user

    def update_user(self, user: User):
        """Update profile fields; the password only changes via change_password."""
        columns = [c for c in USER_COLUMNS if c != 'password']
        self._update('users', columns, user.to_record(), "updating user")

    def change_password(self, user_id: str, new_password: str):
        try:
            execute_update(
                "UPDATE users SET password = :password WHERE id = :id",
                {'password': hash_password(new_password), 'id': user_id},
                engine=self.engine,
            )
        except SQLAlchemyError as e:
            raise translate_error(e, "changing password") from e
        logger.info(f"Password changed for user id {user_id}")

    def delete_user(self, user_id: str):
        """Delete a user and every plan owned by its employee_id."""
        try:
            with get_transaction(self.engine) as conn:
                row = conn.execute(
                    text("SELECT employee_id FROM users WHERE id = :id"),
                    {'id': user_id},
                ).fetchone()
                if row is not None:
                    conn.execute(
                        text("DELETE FROM plans WHERE employee_id = :employee_id"),
                        {'employee_id': row._mapping['employee_id']},
                    )
                conn.execute(text("DELETE FROM users WHERE id = :id"), {'id': user_id})
        except SQLAlchemyError as e:
            raise translate_error(e, "deleting user") from e
        logger.info(f"Deleted user id {user_id} and its plans")

    def _fetch_user_by_employee_id(self, employee_id: str) -> Optional[Dict]:
        try:
            rows = execute_query(
                "SELECT * FROM users WHERE employee_id = :employee_id",
                {'employee_id': employee_id},
                engine=self.engine,
            )
        except SQLAlchemyError as e:
            raise translate_error(e, "looking up user") from e
        return rows[0] if rows else None

    # =========================================================================
    # PLANS
    # =========================================================================

    def create_plan(self, plan: Plan) -> Plan:
        """Insert a plan with a fresh id and created_at."""
        new_plan = replace(plan, id=generate_id(), created_at=utc_now_iso())
        self._insert('plans', PLAN_COLUMNS, new_plan.to_record(), "creating plan")
        logger.info(f"Created plan {new_plan.id} for {new_plan.employee_id} ({new_plan.week_number})")
        return new_plan

    def update_plan(self, plan: Plan):
        self._update('plans', PLAN_COLUMNS, plan.to_record(), "updating plan")

    def delete_plan(self, plan_id: str):
        try:
            execute_update("DELETE FROM plans WHERE id = :id", {'id': plan_id}, engine=self.engine)
        except SQLAlchemyError as e:
            raise translate_error(e, "deleting plan") from e
        logger.info(f"Deleted plan {plan_id}")

    # =========================================================================
    # GENERIC WRITES
    # =========================================================================

    def _insert(self, table: str, columns: List[str], record: Dict, action: str):
        column_sql = ", ".join(columns)
        value_sql = ", ".join(f":{c}" for c in columns)
        query = f"INSERT INTO {table} ({column_sql}) VALUES ({value_sql})"
        try:
            execute_update(query, {c: record.get(c) for c in columns}, engine=self.engine)
        except SQLAlchemyError as e:
            raise translate_error(e, action) from e

    def _update(self, table: str, columns: List[str], record: Dict, action: str):
        assignments = ", ".join(f"{c} = :{c}" for c in columns if c != 'id')
        query = f"UPDATE {table} SET {assignments} WHERE id = :id"
        params = {c: record.get(c) for c in columns}
        params['id'] = record.get('id')
        try:
            rowcount = execute_update(query, params, engine=self.engine)
        except SQLAlchemyError as e:
            raise translate_error(e, action) from e
        if rowcount == 0:
            logger.warning(f"{action}: no row with id {record.get('id')}")
