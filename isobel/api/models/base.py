"""
Isobel Dashboard - Base API Models
==================================

Common response models and utilities.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


# =============================================================================
# Base Models
# =============================================================================

class CamelModel(BaseModel):
    """Model serialized with camelCase keys, as the dashboard expects."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Common Responses
# =============================================================================

class ErrorResponse(BaseModel):
    """Error response model."""

    error: str
    details: Optional[Any] = None


class HealthResponse(BaseModel):
    """Web server health check response."""

    status: str = "ok"
    timestamp: datetime
    uptime: float
    service: str


__all__ = ["CamelModel", "ErrorResponse", "HealthResponse"]
