# utils/kpi_tracking/models.py
"""
Typed records for the KPI Tracking Module

- Role / PlanStatus / AdjustmentStatus / PerformanceBand: closed variants
- User, Plan: immutable rows of the `users` and `plans` tables
- SystemData: immutable snapshot of both tables, reloaded after every write
- TargetPatch: validated partial-target update staged as an adjustment
"""

import json
import math
import logging
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

import pandas as pd

from .constants import (
    BAND_FALLBACK,
    BAND_THRESHOLDS,
    RESULT_FIELDS,
    TARGET_FIELDS,
)
from .exceptions import AdjustmentPayloadError

logger = logging.getLogger(__name__)


# =============================================================================
# CLOSED VARIANTS
# =============================================================================

class Role(str, Enum):
    ADMIN = 'admin'
    MANAGER = 'manager'
    EMPLOYEE = 'employee'


class PlanStatus(str, Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    COMPLETED = 'completed'


class AdjustmentStatus(str, Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


class PerformanceBand(str, Enum):
    EXCELLENT = 'excellent'
    GOOD = 'good'
    AVERAGE = 'average'
    WEAK = 'weak'

    @classmethod
    def from_ratio(cls, ratio: float) -> 'PerformanceBand':
        """Classify an achievement ratio; each lower bound is inclusive."""
        for band, lower_bound in BAND_THRESHOLDS:
            if ratio >= lower_bound:
                return cls(band)
        return cls(BAND_FALLBACK)


def _coerce_enum(enum_cls, value):
    """Known values become members; unknown ones stay as raw strings."""
    if value is None or value == '':
        return None
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return str(value)


def _enum_value(value):
    return value.value if isinstance(value, Enum) else value


Number = Union[int, float]


def to_number(value: Any) -> Number:
    """Coerce a store value to a number; blanks and garbage count as 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        number = value
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return 0
    if isinstance(number, float):
        if math.isnan(number) or math.isinf(number):
            return 0
        if number.is_integer():
            return int(number)
    return number


def _to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    return str(value)


# =============================================================================
# USER
# =============================================================================

@dataclass(frozen=True)
class User:
    id: str
    employee_id: str
    employee_name: str
    role: Union[Role, str] = Role.EMPLOYEE
    password: str = ''
    position: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'User':
        return cls(
            id=str(record.get('id') or ''),
            employee_id=str(record.get('employee_id') or ''),
            employee_name=str(record.get('employee_name') or ''),
            role=_coerce_enum(Role, record.get('role')) or Role.EMPLOYEE,
            password=str(record.get('password') or ''),
            position=_to_text(record.get('position')),
            created_at=_to_text(record.get('created_at')),
        )

    def to_record(self) -> Dict[str, Any]:
        return {f.name: _enum_value(getattr(self, f.name)) for f in fields(self)}

    @property
    def is_employee(self) -> bool:
        return self.role == Role.EMPLOYEE

    @property
    def can_approve(self) -> bool:
        return self.role in (Role.MANAGER, Role.ADMIN)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


USER_COLUMNS = [f.name for f in fields(User)]


# =============================================================================
# PLAN
# =============================================================================

@dataclass(frozen=True)
class Plan:
    id: str
    employee_id: str
    employee_name: str = ''
    position: Optional[str] = None
    date: str = ''
    week_number: str = ''
    area: Optional[str] = None
    work_content: Optional[str] = None
    collaborators: Optional[str] = None
    challenges: Optional[str] = None

    sim_target: Number = 0
    sim_result: Number = 0
    fiber_target: Number = 0
    fiber_result: Number = 0
    mytv_target: Number = 0
    mytv_result: Number = 0
    mesh_camera_target: Number = 0
    mesh_camera_result: Number = 0
    cntt_target: Number = 0
    cntt_result: Number = 0
    revenue_cntt_target: Number = 0
    revenue_cntt_result: Number = 0
    other_services_target: Number = 0
    other_services_result: Number = 0

    customers_contacted: Number = 0
    contracts_signed: Number = 0

    status: Union[PlanStatus, str] = PlanStatus.PENDING

    adjustment_status: Union[AdjustmentStatus, str, None] = None
    adjustment_reason: Optional[str] = None
    adjustment_data: Optional[str] = None

    rating: Optional[str] = None
    manager_comment: Optional[str] = None
    attitude_score: Optional[str] = None
    discipline_score: Optional[str] = None
    effectiveness_score: Optional[str] = None
    evidence_photo: Optional[str] = None
    bonus_score: Number = 0
    penalty_score: Number = 0

    submitted_at: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[str] = None
    returned_reason: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Plan':
        """Build a plan from a store row; unknown columns are ignored."""
        values = {}
        for f in fields(cls):
            if f.name not in record:
                continue
            raw = record[f.name]
            if f.name in NUMERIC_PLAN_FIELDS:
                values[f.name] = to_number(raw)
            elif f.name == 'status':
                values[f.name] = _coerce_enum(PlanStatus, raw) or PlanStatus.PENDING
            elif f.name == 'adjustment_status':
                values[f.name] = _coerce_enum(AdjustmentStatus, raw)
            elif f.name in ('id', 'employee_id'):
                values[f.name] = str(raw) if raw is not None else ''
            elif f.name in ('employee_name', 'date', 'week_number'):
                values[f.name] = _to_text(raw) or ''
            else:
                values[f.name] = _to_text(raw)
        values.setdefault('id', '')
        values.setdefault('employee_id', '')
        return cls(**values)

    def to_record(self) -> Dict[str, Any]:
        return {f.name: _enum_value(getattr(self, f.name)) for f in fields(self)}

    @property
    def is_completed(self) -> bool:
        return self.status == PlanStatus.COMPLETED

    @property
    def has_pending_adjustment(self) -> bool:
        return self.adjustment_status == AdjustmentStatus.PENDING

    def total_target(self, keys: List[str]) -> Number:
        return sum(getattr(self, f"{key}_target") for key in keys)

    def total_result(self, keys: List[str]) -> Number:
        return sum(getattr(self, f"{key}_result") for key in keys)


NUMERIC_PLAN_FIELDS = set(TARGET_FIELDS + RESULT_FIELDS + [
    'customers_contacted', 'contracts_signed', 'bonus_score', 'penalty_score',
])

PLAN_COLUMNS = [f.name for f in fields(Plan)]


# =============================================================================
# SYSTEM SNAPSHOT
# =============================================================================

@dataclass(frozen=True)
class SystemData:
    """
    Immutable snapshot of `users` and `plans`.

    Views receive it as an argument; a write is followed by a reload that
    produces a new snapshot instead of mutating this one.
    """
    users: Tuple[User, ...] = field(default_factory=tuple)
    plans: Tuple[Plan, ...] = field(default_factory=tuple)

    @classmethod
    def empty(cls) -> 'SystemData':
        return cls()

    @classmethod
    def from_records(cls, user_rows: List[Dict], plan_rows: List[Dict]) -> 'SystemData':
        return cls(
            users=tuple(User.from_record(r) for r in user_rows or []),
            plans=tuple(Plan.from_record(r) for r in plan_rows or []),
        )

    def employees(self) -> List[User]:
        return [u for u in self.users if u.is_employee]

    def find_user(self, employee_id: str) -> Optional[User]:
        for user in self.users:
            if user.employee_id == employee_id:
                return user
        return None

    def find_plan(self, plan_id: str) -> Optional[Plan]:
        for plan in self.plans:
            if plan.id == plan_id:
                return plan
        return None

    def plans_df(self) -> pd.DataFrame:
        return plans_to_dataframe(self.plans)


def plans_to_dataframe(plans) -> pd.DataFrame:
    """Plans as a DataFrame with every plan column present, even when empty."""
    df = pd.DataFrame([p.to_record() for p in plans], columns=PLAN_COLUMNS)
    for column in NUMERIC_PLAN_FIELDS:
        df[column] = pd.to_numeric(df[column], errors='coerce').fillna(0)
    return df


# =============================================================================
# ADJUSTMENT PATCH
# =============================================================================

def _parse_patch_value(name: str, value: Any) -> Number:
    if isinstance(value, bool) or value is None:
        raise AdjustmentPayloadError(f"Giá trị không hợp lệ cho {name}: {value!r}")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise AdjustmentPayloadError(f"Giá trị không hợp lệ cho {name}: {value!r}")
    if not isinstance(value, (int, float)) or math.isnan(value) or math.isinf(value):
        raise AdjustmentPayloadError(f"Giá trị không hợp lệ cho {name}: {value!r}")
    if value < 0:
        raise AdjustmentPayloadError(f"Chỉ tiêu {name} không được âm")
    return to_number(value)


@dataclass(frozen=True)
class TargetPatch:
    """
    Partial update of a plan's targets.

    Only the `*_target` fields are patchable; everything is validated before
    any value reaches a plan.
    """
    changes: Tuple[Tuple[str, Number], ...]

    PATCHABLE_FIELDS = tuple(TARGET_FIELDS)

    @classmethod
    def from_mapping(cls, data: Any) -> 'TargetPatch':
        if not isinstance(data, dict):
            raise AdjustmentPayloadError("Dữ liệu điều chỉnh phải là một đối tượng JSON")
        unknown = sorted(k for k in data if k not in cls.PATCHABLE_FIELDS)
        if unknown:
            raise AdjustmentPayloadError(
                f"Trường không được phép điều chỉnh: {', '.join(unknown)}"
            )
        if not data:
            raise AdjustmentPayloadError("Dữ liệu điều chỉnh trống")
        changes = tuple(
            (name, _parse_patch_value(name, data[name]))
            for name in cls.PATCHABLE_FIELDS
            if name in data
        )
        return cls(changes=changes)

    @classmethod
    def from_json(cls, payload: Optional[str]) -> 'TargetPatch':
        if payload is None or not str(payload).strip():
            raise AdjustmentPayloadError("Không có dữ liệu điều chỉnh")
        try:
            data = json.loads(payload)
        except (TypeError, ValueError) as e:
            raise AdjustmentPayloadError(f"Lỗi dữ liệu điều chỉnh: {e}") from e
        return cls.from_mapping(data)

    def as_dict(self) -> Dict[str, Number]:
        return dict(self.changes)

    def to_json(self) -> str:
        return json.dumps(self.as_dict())

    def apply(self, plan: Plan) -> Plan:
        return replace(plan, **self.as_dict())

    def diff(self, plan: Plan) -> List[Tuple[str, Number, Number]]:
        """(field, current, proposed) for every field that actually changes."""
        return [
            (name, getattr(plan, name), value)
            for name, value in self.changes
            if getattr(plan, name) != value
        ]
