# backend/app/schemas/errors.py
"""
Error response format shared by every global exception handler in main.py.
"""

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """
    Standard error response format.

    Example:
        {"error": "PortfolioNotFoundError",
         "message": "Portfolio 3f2a... not found",
         "details": {"resource_type": "Portfolio", "resource_id": "3f2a..."}}
    """

    error: str = Field(
        ...,
        description="Error type/code (e.g., 'AssetNotFoundError')"
    )
    message: str = Field(
        ...,
        description="Human-readable error message"
    )
    details: dict | list | None = Field(
        default=None,
        description="Additional error context (optional)"
    )
