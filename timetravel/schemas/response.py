"""Response envelope shared by every API endpoint."""

from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, Field


class ResponseMeta(BaseModel):
    timestamp: datetime = Field(..., description="Time the response was produced")
    request_id: str = Field(..., description="Correlation id of the request")
    api_version: str = Field(..., description="API version that served the request")


class ApiResponse(BaseModel):
    """Standard success envelope."""

    status: bool = Field(..., description="Whether the operation succeeded")
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)
    meta: ResponseMeta
