"""Generic API response schemas"""

from pydantic import BaseModel, Field
from typing import Optional, Any, Dict
from datetime import datetime, timezone


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ErrorResponse(BaseModel):
    """Generic API error response"""
    success: bool = False
    error: str
    details: Optional[Any] = None
    path: Optional[str] = None
    timestamp: str = Field(default_factory=_now_iso)


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    timestamp: str = Field(default_factory=_now_iso)
    readiness: Dict[str, Any] = Field(default_factory=dict)
