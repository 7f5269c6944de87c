# storage.py — database helpers shared by the routes
import logging
import random

from sqlalchemy.orm import Session

from keeper import game_logic
from keeper.dice import calculate_derived_stats, CharacterStats
from keeper.models import ActiveEffect, Character, GameSession, RollHistory, SanityCondition

logger = logging.getLogger(__name__)

# No 0/O or 1/I, they get misread when codes are read aloud at the table
JOIN_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
JOIN_CODE_LENGTH = 6


### 🗝️ Sessions ###
def generate_join_code(db: Session, rng=None) -> str:
    """Generate a unique 6-character join code."""
    rng = rng or random
    while True:
        code = "".join(rng.choice(JOIN_CODE_ALPHABET) for _ in range(JOIN_CODE_LENGTH))
        if not db.query(GameSession).filter(GameSession.code == code).first():
            return code


def create_session(db: Session, name: str, gm_id: str, status: str = "active") -> GameSession:
    session = GameSession(name=name, gm_id=gm_id, status=status, code=generate_join_code(db))
    db.add(session)
    db.commit()
    db.refresh(session)
    logger.info(f"Session {session.id} created by {gm_id} with code {session.code}")
    return session


def get_session_by_code(db: Session, code: str):
    return db.query(GameSession).filter(GameSession.code == code.upper()).first()


def delete_session(db: Session, session: GameSession):
    db.query(RollHistory).filter(RollHistory.session_id == session.id).delete()
    db.delete(session)
    db.commit()


### 🧍 Characters ###
def create_character(db: Session, session_id: str, stats: CharacterStats, **fields) -> Character:
    """Current HP/SAN/MP start at their derived values."""
    derived = calculate_derived_stats(stats)
    character = Character(
        session_id=session_id,
        hit_points=derived.hit_points,
        sanity=derived.sanity,
        magic_points=derived.magic_points,
        **stats.to_dict(),
        **fields,
    )
    db.add(character)
    db.commit()
    db.refresh(character)
    return character


def delete_character(db: Session, character: Character):
    db.query(RollHistory).filter(RollHistory.character_id == character.id).update(
        {RollHistory.character_id: None}
    )
    db.delete(character)
    db.commit()


### ✨ Effects ###
def add_effect(db: Session, character: Character, commit=True, **fields) -> ActiveEffect:
    effect = ActiveEffect(character_id=character.id, **fields)
    db.add(effect)
    if commit:
        db.commit()
        db.refresh(effect)
    return effect


def refresh_status_effects(db: Session, character: Character):
    """
    Replaces the automatic debuffs with the ones implied by the
    character's current HP and sanity.
    """
    db.query(ActiveEffect).filter(
        ActiveEffect.character_id == character.id,
        ActiveEffect.automatic.is_(True),
    ).delete()

    derived = character.derived
    effects = game_logic.automatic_status_effects(
        current_hp=character.hit_points,
        max_hp=derived.hit_points,
        current_sanity=character.sanity,
        max_sanity=derived.sanity,
    )
    for status in effects:
        add_effect(
            db,
            character,
            commit=False,
            type=status.type,
            name=status.name,
            description=status.description,
            value=status.value,
            duration=status.duration,
            automatic=True,
        )
    db.commit()
    return effects


def add_sanity_condition(db: Session, character: Character, **fields) -> SanityCondition:
    condition = SanityCondition(character_id=character.id, **fields)
    db.add(condition)
    db.commit()
    db.refresh(condition)
    return condition


### 🎲 Rolls ###
def store_roll(db: Session, **fields) -> RollHistory:
    roll = RollHistory(**fields)
    db.add(roll)
    db.commit()
    db.refresh(roll)
    return roll


def get_session_rolls(db: Session, session_id: str, limit: int = 50):
    return (
        db.query(RollHistory)
        .filter(RollHistory.session_id == session_id)
        .order_by(RollHistory.created_at.desc())
        .limit(limit)
        .all()
    )
