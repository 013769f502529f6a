"""Operation outcome data models."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


class GatewayResult(BaseModel):
    """Outcome of a single GitHub REST call."""

    success: bool
    status_code: Optional[int] = None
    data: Any = None
    error_message: Optional[str] = None

    @classmethod
    def ok(cls, data: Any, status_code: int = 200) -> "GatewayResult":
        return cls(success=True, status_code=status_code, data=data)

    @classmethod
    def failed(cls, error_message: Optional[str] = None, status_code: Optional[int] = None) -> "GatewayResult":
        return cls(success=False, status_code=status_code, error_message=error_message)


class ActionResult(BaseModel):
    """Result of a user-triggered workspace operation."""

    success: bool
    message: Optional[str] = None


class OperationStatus(str, Enum):
    """Lifecycle of a tracked operation."""

    IDLE = "idle"
    LOADING = "loading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class OperationState(BaseModel):
    """Status of one keyed operation."""

    status: OperationStatus = OperationStatus.IDLE
    message: Optional[str] = None
