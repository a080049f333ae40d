"""
Shared schema primitives used across the API.
"""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict


class ErrorDetail(BaseModel):
    """A single field-level validation error."""
    field: str
    message: str
    type: str


class ErrorResponse(BaseModel):
    """Standard error envelope returned for all 4xx/5xx responses."""
    model_config = ConfigDict(from_attributes=True)

    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class SuccessResponse(BaseModel):
    """Acknowledgement for writes that return no entity."""
    success: bool = True


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Business-rule validation failed."},
    404: {"model": ErrorResponse, "description": "Entity not found."},
    500: {"model": ErrorResponse, "description": "Store write failed."},
}
