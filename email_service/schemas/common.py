from typing import Optional
from pydantic import BaseModel


class BaseResponse(BaseModel):
    """Base response schema with consistent structure."""

    success: bool = True
    message: Optional[str] = None

    class Config:
        from_attributes = True


class ErrorResponse(BaseResponse):
    """Standard error response."""

    success: bool = False
    error: str
    details: Optional[str] = None
