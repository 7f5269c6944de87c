"""
Pydantic schemas for dice rolls and roll history.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

RollType = Literal["skill", "sanity", "damage", "custom"]
Outcome = Literal["extreme_success", "hard_success", "success", "failure"]


class DiceRollRequest(BaseModel):
    formula: str = Field(..., min_length=1, max_length=32, description="e.g. '3d6', '1d100', '2d4+2'")


class DiceRollResponse(BaseModel):
    total: int
    rolls: List[int]
    formula: str


class SkillCheckRequest(BaseModel):
    skill_value: int = Field(..., ge=0, le=500)
    skill_name: Optional[str] = None
    roll: Optional[int] = Field(None, ge=1, le=100, description="Use a physical d100 result instead of rolling")


class SkillCheckResponse(BaseModel):
    skill_name: Optional[str] = None
    skill_value: int
    roll: int
    outcome: Outcome


class SanityCheckRequest(BaseModel):
    formula: str = Field(..., description="Loss on success/failure, e.g. '0/1d6'")
    sanity: int = Field(..., ge=0, le=99, description="Current sanity to roll against")


class SanityCheckResponse(BaseModel):
    roll: int
    outcome: Outcome
    passed: bool
    loss: DiceRollResponse
    remaining_sanity: int
    temporary_insanity_risk: bool


class HorrorCheckRequest(BaseModel):
    """Sanity cost of witnessing a horror, before any roll."""
    horror_level: Literal["minor", "moderate", "major", "extreme"]
    sanity: int = Field(..., ge=0, le=99)
    mythos: int = Field(0, ge=0, le=99, description="Cthulhu Mythos skill")
    lost_this_round: int = Field(0, ge=0, description="Sanity already lost this round")


class HorrorCheckResponse(BaseModel):
    loss: int
    remaining_sanity: int
    sanity_roll_required: bool
    temporary_insanity_risk: bool


class RollRecord(BaseModel):
    """A finished roll to store and broadcast to the session."""
    user_id: str
    roll_type: RollType
    dice_formula: str = Field(..., min_length=1, max_length=32)
    result: int
    rolls: Optional[List[int]] = None
    character_id: Optional[str] = None
    session_id: Optional[str] = None
    skill_name: Optional[str] = None
    skill_value: Optional[int] = None
    outcome: Optional[Outcome] = None
    is_gm_roll: bool = False


class RollHistoryResponse(BaseModel):
    id: str
    user_id: str
    character_id: Optional[str] = None
    session_id: Optional[str] = None
    roll_type: str
    skill_name: Optional[str] = None
    skill_value: Optional[int] = None
    dice_formula: str
    result: int
    rolls: Optional[List[int]] = None
    outcome: Optional[str] = None
    is_gm_roll: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
