"""
Common API models used across different endpoints.

Flow inputs and outputs are defined next to the flows themselves
(linguacraft.pipeline.flows.schemas); only transport-level shapes live here.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List

class ErrorResponse(BaseModel):
    """Standard error response format."""
    error: str = Field(..., description="Error message")
    details: Any = Field(None, description="Validation errors or the underlying cause")

class HealthStatus(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    uptime: float = Field(..., description="Uptime in seconds")
    flows: List[str] = Field(..., description="Registered flows")
    providers: Dict[str, str] = Field(..., description="Configured model providers and their types")
