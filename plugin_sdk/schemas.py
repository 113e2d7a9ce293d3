from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from .settings import settings


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: Optional[Any] = None


class SuccessEnvelope(BaseModel):
    success: Literal[True] = True
    data: Any = None
    message: str = "Success"
    version: str = Field(default_factory=lambda: settings.sdk_version)
    timestamp: str = Field(default_factory=_utc_timestamp)


class ErrorEnvelope(BaseModel):
    success: Literal[False] = False
    error: ErrorDetail
    version: str = Field(default_factory=lambda: settings.sdk_version)
    timestamp: str = Field(default_factory=_utc_timestamp)


class LicenseValidation(BaseModel):
    valid: bool
    valid_until: Optional[int] = None  # epoch ms
    error: Optional[str] = None


class CommandResult(BaseModel):
    """What PluginInterface.execute_command hands back to the dashboard."""
    success: bool
    data: Any = None
    message: Optional[str] = None
    error: Optional[str] = None
