"""
Character Routes - investigator sheets, characteristic rolls and sanity conditions
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from keeper import game_logic, storage
from keeper.db import get_db
from keeper.dice import (
    CharacterStats,
    calculate_derived_stats,
    generate_quick_characteristics,
    roll_characteristics,
)
from keeper.models import Character, GameSession
from routes.schemas.character import (
    CharacterCreate,
    CharacterDetail,
    CharacterResponse,
    CharacterUpdate,
    EffectResponse,
    RestRequest,
    RestResult,
    RolledCharacteristics,
    SanityConditionCreate,
    SanityConditionResponse,
)

logger = logging.getLogger(__name__)

characters_router = APIRouter(prefix="/api/characters", tags=["Characters"])


def character_to_response(character: Character, detail: bool = False):
    fields = {
        "id": character.id,
        "session_id": character.session_id,
        "user_id": character.user_id,
        "name": character.name,
        "occupation": character.occupation,
        "age": character.age,
        "birthplace": character.birthplace,
        "residence": character.residence,
        "gender": character.gender,
        "characteristics": character.stats.to_dict(),
        "derived": character.derived.to_dict(),
        "hit_points": character.hit_points,
        "sanity": character.sanity,
        "magic_points": character.magic_points,
        "skills": character.skills or {},
        "is_active": bool(character.is_active),
        "created_at": character.created_at,
        "updated_at": character.updated_at,
    }
    if not detail:
        return CharacterResponse(**fields)
    return CharacterDetail(
        **fields,
        active_effects=[
            EffectResponse.model_validate(e) for e in character.active_effects if e.is_active
        ],
        sanity_conditions=[
            SanityConditionResponse.model_validate(c) for c in character.sanity_conditions if c.is_active
        ],
    )


def get_character_or_404(db: Session, character_id: str) -> Character:
    character = db.query(Character).filter(Character.id == character_id).first()
    if not character:
        raise HTTPException(status_code=404, detail="Character not found")
    return character


@characters_router.post("/roll-characteristics", response_model=RolledCharacteristics)
def roll_new_characteristics(method: str = Query("standard", pattern="^(standard|quick)$")):
    """Roll a fresh set of characteristics (3d6×5 / (2d6+6)×5, or the quick-fire allocation)."""
    stats = roll_characteristics() if method == "standard" else generate_quick_characteristics()
    return {
        "method": method,
        "characteristics": stats.to_dict(),
        "derived": calculate_derived_stats(stats).to_dict(),
    }


@characters_router.post("", response_model=CharacterResponse, status_code=201)
def create_character(payload: CharacterCreate, db: Session = Depends(get_db)):
    session = db.query(GameSession).filter(GameSession.id == payload.session_id).first()
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")

    stats = CharacterStats(**payload.characteristics.model_dump())
    character = storage.create_character(
        db,
        session_id=session.id,
        stats=stats,
        **payload.model_dump(exclude={"session_id", "characteristics"}),
    )
    logger.info(f"Character {character.name} ({character.id}) created in session {session.id}")
    return character_to_response(character)


@characters_router.get("/{character_id}", response_model=CharacterDetail)
def get_character(character_id: str, db: Session = Depends(get_db)):
    return character_to_response(get_character_or_404(db, character_id), detail=True)


@characters_router.patch("/{character_id}", response_model=CharacterResponse)
def update_character(character_id: str, payload: CharacterUpdate, db: Session = Depends(get_db)):
    character = get_character_or_404(db, character_id)
    updates = payload.model_dump(exclude_unset=True)

    derived = character.derived
    if updates.get("hit_points") is not None and updates["hit_points"] > derived.hit_points:
        raise HTTPException(status_code=400, detail=f"Hit points cannot exceed {derived.hit_points}")
    if updates.get("magic_points") is not None and updates["magic_points"] > derived.magic_points:
        raise HTTPException(status_code=400, detail=f"Magic points cannot exceed {derived.magic_points}")

    for field, value in updates.items():
        setattr(character, field, value)
    db.commit()

    if "hit_points" in updates or "sanity" in updates:
        storage.refresh_status_effects(db, character)

    db.refresh(character)
    return character_to_response(character)


@characters_router.delete("/{character_id}")
def delete_character(character_id: str, db: Session = Depends(get_db)):
    character = get_character_or_404(db, character_id)
    storage.delete_character(db, character)
    return {"message": "Character deleted successfully"}


@characters_router.post(
    "/{character_id}/sanity-conditions",
    response_model=SanityConditionResponse,
    status_code=201,
)
def add_sanity_condition(character_id: str, payload: SanityConditionCreate, db: Session = Depends(get_db)):
    character = get_character_or_404(db, character_id)
    return storage.add_sanity_condition(db, character, **payload.model_dump())


@characters_router.post("/{character_id}/rest", response_model=RestResult)
def rest(character_id: str, payload: RestRequest, db: Session = Depends(get_db)):
    """Natural healing: CON/10 rounded up, plus 1 for First Aid and 2 for Medicine."""
    character = get_character_or_404(db, character_id)
    amount = game_logic.calculate_natural_healing(
        character.constitution,
        has_first_aid=payload.first_aid,
        has_medicine=payload.medicine,
    )
    final, healed = game_logic.apply_recovery(character.hit_points, amount, character.derived.hit_points)
    character.hit_points = final
    db.commit()

    statuses = [status.name for status in storage.refresh_status_effects(db, character)]
    logger.info(f"{character.name} rested and recovered {healed} HP")
    return {"healed": healed, "hit_points": character.hit_points, "status_effects": statuses}
