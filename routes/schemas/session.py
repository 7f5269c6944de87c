"""
Pydantic schemas for game sessions.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

SessionStatus = Literal["preparation", "active", "ended"]


class SessionCreate(BaseModel):
    """Request to open a new game session."""
    name: str = Field(..., min_length=1, max_length=100)
    gm_id: str = Field(..., description="Game master (Keeper) user ID")
    status: SessionStatus = "active"

    model_config = ConfigDict(json_schema_extra={
        "example": {"name": "The Haunting", "gm_id": "keeper_alice"}
    })


class SessionUpdate(BaseModel):
    """Partial update; only the GM who owns the session may apply it."""
    gm_id: str = Field(..., description="Must match the session's GM")
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    status: Optional[SessionStatus] = None
    is_active: Optional[bool] = None


class SessionResponse(BaseModel):
    id: str
    name: str
    code: Optional[str] = None
    gm_id: str
    status: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
