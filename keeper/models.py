# models.py
import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from keeper.db import Base
from keeper.dice import CharacterStats, calculate_derived_stats


def new_id():
    return str(uuid.uuid4())


class GameSession(Base):
    __tablename__ = "game_sessions"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    code = Column(String(6), unique=True, index=True)
    gm_id = Column(String, nullable=False, index=True)
    status = Column(String, default="preparation")  # 'preparation', 'active', 'ended'
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    characters = relationship("Character", back_populates="session", cascade="all, delete-orphan")


class Character(Base):
    __tablename__ = "characters"

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, nullable=True, index=True)  # players may not have accounts
    session_id = Column(String, ForeignKey("game_sessions.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    occupation = Column(String, nullable=False)
    age = Column(Integer, nullable=True)
    birthplace = Column(String, nullable=True)
    residence = Column(String, nullable=True)
    gender = Column(String, nullable=True)

    # Characteristics
    strength = Column(Integer, nullable=False)
    constitution = Column(Integer, nullable=False)
    size = Column(Integer, nullable=False)
    dexterity = Column(Integer, nullable=False)
    appearance = Column(Integer, nullable=False)
    intelligence = Column(Integer, nullable=False)
    power = Column(Integer, nullable=False)
    education = Column(Integer, nullable=False)
    luck = Column(Integer, nullable=False)

    # Current pools; maxima are derived from the characteristics
    hit_points = Column(Integer, nullable=False)
    sanity = Column(Integer, nullable=False)
    magic_points = Column(Integer, nullable=False)

    skills = Column(JSON, nullable=False, default=dict)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    session = relationship("GameSession", back_populates="characters")
    active_effects = relationship("ActiveEffect", back_populates="character", cascade="all, delete-orphan")
    sanity_conditions = relationship("SanityCondition", back_populates="character", cascade="all, delete-orphan")

    @property
    def stats(self) -> CharacterStats:
        return CharacterStats(
            strength=self.strength,
            constitution=self.constitution,
            size=self.size,
            dexterity=self.dexterity,
            appearance=self.appearance,
            intelligence=self.intelligence,
            power=self.power,
            education=self.education,
            luck=self.luck,
        )

    @property
    def derived(self):
        return calculate_derived_stats(self.stats)


class ActiveEffect(Base):
    __tablename__ = "active_effects"

    id = Column(String, primary_key=True, default=new_id)
    character_id = Column(String, ForeignKey("characters.id"), nullable=False, index=True)
    applied_by = Column(String, nullable=True)  # GM who applied it
    type = Column(String, nullable=False)  # 'buff', 'debuff', 'damage', 'sanity_loss'
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    value = Column(String, nullable=True)  # dice formula or static value
    is_active = Column(Boolean, default=True)
    automatic = Column(Boolean, default=False)  # derived from HP/sanity thresholds
    duration = Column(Integer, nullable=True)  # rounds
    created_at = Column(DateTime, default=datetime.utcnow)

    character = relationship("Character", back_populates="active_effects")


class SanityCondition(Base):
    __tablename__ = "sanity_conditions"

    id = Column(String, primary_key=True, default=new_id)
    character_id = Column(String, ForeignKey("characters.id"), nullable=False, index=True)
    type = Column(String, nullable=False)  # 'phobia', 'mania', 'temporary_insanity', 'indefinite_insanity'
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)
    duration = Column(String, nullable=True)  # 'temporary', 'indefinite', 'permanent'
    created_at = Column(DateTime, default=datetime.utcnow)

    character = relationship("Character", back_populates="sanity_conditions")


class RollHistory(Base):
    __tablename__ = "roll_history"

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, nullable=False, index=True)
    character_id = Column(String, ForeignKey("characters.id", ondelete="SET NULL"), nullable=True)
    session_id = Column(String, ForeignKey("game_sessions.id", ondelete="CASCADE"), nullable=True, index=True)
    roll_type = Column(String, nullable=False)  # 'skill', 'sanity', 'damage', 'custom'
    skill_name = Column(String, nullable=True)
    skill_value = Column(Integer, nullable=True)
    dice_formula = Column(String, nullable=False)
    result = Column(Integer, nullable=False)
    rolls = Column(JSON, nullable=True)
    outcome = Column(String, nullable=True)  # 'success', 'failure', 'extreme_success', 'hard_success'
    is_gm_roll = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
