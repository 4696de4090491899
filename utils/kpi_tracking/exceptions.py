# utils/kpi_tracking/exceptions.py
"""
Error types for the KPI Tracking Module

Hierarchy:
    KPITrackingError
    ├── StoreError                 connectivity / record store failure
    │   └── SchemaMismatchError    store is missing a column
    ├── WorkflowError
    │   ├── ValidationError        refused before any store call
    │   ├── InvalidTransitionError
    │   ├── ApprovalPermissionError
    │   └── AdjustmentPayloadError adjustment_data cannot be applied
    └── AIAnalysisError
        ├── AIConfigurationError
        └── AIResponseError
"""

from typing import Optional


class KPITrackingError(Exception):
    """Base error for the module."""


# =============================================================================
# RECORD STORE
# =============================================================================

class StoreError(KPITrackingError):
    """A record store call failed."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        if self.code:
            return f"{self.message} (Code: {self.code})"
        return self.message


class SchemaMismatchError(StoreError):
    """The store rejected a write because a column does not exist."""

    MIGRATION_HINT = (
        'Lỗi CSDL: Bảng "plans" thiếu cột. '
        'Vui lòng chạy script SQL trong sql/schema.sql'
    )

    def __str__(self) -> str:
        return f"{self.MIGRATION_HINT} ({self.message})"


# =============================================================================
# WORKFLOW
# =============================================================================

class WorkflowError(KPITrackingError):
    """A plan lifecycle action was refused."""


class ValidationError(WorkflowError):
    """Operator input is invalid (e.g. blank rejection reason)."""


class InvalidTransitionError(WorkflowError):
    """The plan is not in a state that allows the action."""


class ApprovalPermissionError(WorkflowError):
    """The acting user may not perform the action."""


class AdjustmentPayloadError(WorkflowError):
    """The staged adjustment payload is malformed."""


# =============================================================================
# AI ANALYSIS
# =============================================================================

class AIAnalysisError(KPITrackingError):
    """The AI review could not be produced."""


class AIConfigurationError(AIAnalysisError):
    """No API key configured."""


class AIResponseError(AIAnalysisError):
    """The model answered with something that is not a JSON object."""
