"""
Shared schema primitives used across the API.
"""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Standard error envelope returned for all 4xx/5xx responses."""
    model_config = ConfigDict(from_attributes=True)

    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class BalancesOut(BaseModel):
    founder_coins: int = Field(description="Current Founder Coin balance.")
    vision_gems: int = Field(description="Current Vision Gem balance.")
    experience_points: int = Field(description="Experience points (not spendable).")
