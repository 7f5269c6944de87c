"""
Pydantic schemas for investigators (characters), their effects and sanity conditions.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class CharacteristicsSchema(BaseModel):
    """The nine characteristics."""
    strength: int = Field(..., ge=0, le=999)
    constitution: int = Field(..., ge=0, le=999)
    size: int = Field(..., ge=0, le=999)
    dexterity: int = Field(..., ge=0, le=999)
    appearance: int = Field(..., ge=0, le=999)
    intelligence: int = Field(..., ge=0, le=999)
    power: int = Field(..., ge=0, le=999)
    education: int = Field(..., ge=0, le=999)
    luck: int = Field(..., ge=0, le=999)


class DerivedStatsSchema(BaseModel):
    hit_points: int
    sanity: int
    max_sanity: int
    magic_points: int
    damage_bonus: str
    build: int
    movement: int


class RolledCharacteristics(BaseModel):
    method: Literal["standard", "quick"]
    characteristics: CharacteristicsSchema
    derived: DerivedStatsSchema


class CharacterCreate(BaseModel):
    """Request to create an investigator in a session."""
    session_id: str
    user_id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=100)
    occupation: str = Field(..., min_length=1, max_length=100)
    age: Optional[int] = Field(None, ge=15, le=120)
    birthplace: Optional[str] = None
    residence: Optional[str] = None
    gender: Optional[str] = None
    characteristics: CharacteristicsSchema
    skills: Dict[str, int] = Field(default_factory=dict)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "session_id": "b5c2...",
            "name": "Harvey Walters",
            "occupation": "Journalist",
            "characteristics": {
                "strength": 45, "constitution": 50, "size": 60, "dexterity": 50,
                "appearance": 55, "intelligence": 70, "power": 60, "education": 80, "luck": 50,
            },
            "skills": {"Library Use": 60, "Spot Hidden": 45},
        }
    })


class CharacterUpdate(BaseModel):
    """Partial update; characteristics change the derived maxima."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    occupation: Optional[str] = Field(None, min_length=1, max_length=100)
    age: Optional[int] = Field(None, ge=15, le=120)
    birthplace: Optional[str] = None
    residence: Optional[str] = None
    gender: Optional[str] = None
    hit_points: Optional[int] = Field(None, ge=0)
    sanity: Optional[int] = Field(None, ge=0, le=99)
    magic_points: Optional[int] = Field(None, ge=0)
    skills: Optional[Dict[str, int]] = None
    is_active: Optional[bool] = None


class EffectCreate(BaseModel):
    """GM applies an effect to a character."""
    type: Literal["buff", "debuff", "damage", "sanity_loss"]
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    value: Optional[str] = Field(None, description="Number or dice formula, e.g. '3' or '1d6'")
    duration: Optional[int] = Field(None, ge=0)
    applied_by: Optional[str] = None
    has_armor: Optional[bool] = Field(
        None, description="Damage only: reduce by SIZ and armour (at least 1 point still lands)"
    )


class EffectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    value: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class EffectResponse(BaseModel):
    id: str
    character_id: str
    applied_by: Optional[str] = None
    type: str
    name: str
    description: Optional[str] = None
    value: Optional[str] = None
    is_active: bool
    automatic: bool
    duration: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EffectApplied(BaseModel):
    """Outcome of applying an effect."""
    effect: EffectResponse
    amount: int = 0
    hit_points: int
    sanity: int
    magic_points: int
    status_effects: List[str] = Field(default_factory=list)


class SanityConditionCreate(BaseModel):
    type: Literal["phobia", "mania", "temporary_insanity", "indefinite_insanity"]
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    duration: Optional[Literal["temporary", "indefinite", "permanent"]] = None


class SanityConditionResponse(BaseModel):
    id: str
    character_id: str
    type: str
    name: str
    description: Optional[str] = None
    is_active: bool
    duration: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CharacterResponse(BaseModel):
    id: str
    session_id: str
    user_id: Optional[str] = None
    name: str
    occupation: str
    age: Optional[int] = None
    birthplace: Optional[str] = None
    residence: Optional[str] = None
    gender: Optional[str] = None
    characteristics: CharacteristicsSchema
    derived: DerivedStatsSchema
    hit_points: int
    sanity: int
    magic_points: int
    skills: Dict[str, int]
    is_active: bool
    created_at: datetime
    updated_at: datetime


class CharacterDetail(CharacterResponse):
    active_effects: List[EffectResponse] = Field(default_factory=list)
    sanity_conditions: List[SanityConditionResponse] = Field(default_factory=list)


class RestRequest(BaseModel):
    """A day of rest, optionally with First Aid and Medicine care."""
    first_aid: bool = False
    medicine: bool = False


class RestResult(BaseModel):
    healed: int
    hit_points: int
    status_effects: List[str] = Field(default_factory=list)
