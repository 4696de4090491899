# tests/conftest.py
"""Shared fixtures: sample users/plans and a file-backed SQLite store."""

import pytest
from sqlalchemy import create_engine, text

from utils.kpi_tracking.data_service import KPIDataService
from utils.kpi_tracking.models import (
    NUMERIC_PLAN_FIELDS,
    PLAN_COLUMNS,
    USER_COLUMNS,
    Plan,
    PlanStatus,
    Role,
    SystemData,
    User,
)


def _create_table_sql(table, columns, numeric=()):
    definitions = []
    for column in columns:
        if column == 'id':
            definitions.append("id TEXT PRIMARY KEY")
        elif column in numeric:
            definitions.append(f"{column} NUMERIC DEFAULT 0")
        else:
            definitions.append(f"{column} TEXT")
    return f"CREATE TABLE {table} ({', '.join(definitions)})"


def make_plan(plan_id, employee_id='E001', employee_name='Nguyễn Văn An', **values):
    values.setdefault('date', '2025-03-03')
    values.setdefault('week_number', 'Tuần 10')
    return Plan(id=plan_id, employee_id=employee_id, employee_name=employee_name, **values)


@pytest.fixture
def admin():
    return User(id='u-admin', employee_id='A001', employee_name='Quản Trị', role=Role.ADMIN)


@pytest.fixture
def manager():
    return User(id='u-mgr', employee_id='M001', employee_name='Trần Quản Lý', role=Role.MANAGER)


@pytest.fixture
def employees():
    return [
        User(id='u-1', employee_id='E001', employee_name='Nguyễn Văn An', role=Role.EMPLOYEE),
        User(id='u-2', employee_id='E002', employee_name='lê thị bình', role=Role.EMPLOYEE),
        User(id='u-3', employee_id='E003', employee_name='Phạm Chí', role=Role.EMPLOYEE),
    ]


@pytest.fixture
def sample_plans():
    return [
        make_plan('p1', sim_target=10, sim_result=5, status=PlanStatus.COMPLETED),
        make_plan('p2', sim_target=10, sim_result=7, status=PlanStatus.PENDING),
        make_plan(
            'p3', 'E002', 'lê thị bình',
            date='2025-03-04', fiber_target=4, fiber_result=4,
            status=PlanStatus.COMPLETED,
        ),
        make_plan(
            'p4', 'E003', 'Phạm Chí',
            date='2025-04-01', week_number='Tuần 14', mytv_target=8,
            status=PlanStatus.APPROVED,
        ),
    ]


@pytest.fixture
def system_data(admin, manager, employees, sample_plans):
    return SystemData(users=tuple([admin, manager] + employees), plans=tuple(sample_plans))


@pytest.fixture
def engine(tmp_path):
    """Empty store with the users and plans tables."""
    eng = create_engine(f"sqlite:///{tmp_path / 'kpi.db'}")
    with eng.begin() as conn:
        conn.execute(text(_create_table_sql('users', USER_COLUMNS)))
        conn.execute(text(_create_table_sql('plans', PLAN_COLUMNS, NUMERIC_PLAN_FIELDS)))
    yield eng
    eng.dispose()


@pytest.fixture
def service(engine):
    return KPIDataService(engine=engine)
