"""
Effect Routes - damage, sanity loss, buffs and debuffs applied by the GM
"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from keeper import game_logic, storage
from keeper.db import get_db
from keeper.dice import roll_dice
from keeper.models import ActiveEffect, Character
from keeper.realtime.hub import SessionHub, build_event
from routes.characters import get_character_or_404
from routes.game_websocket import get_hub
from routes.schemas.character import EffectApplied, EffectCreate, EffectResponse, EffectUpdate

logger = logging.getLogger(__name__)

effects_router = APIRouter(prefix="/api", tags=["Effects"])

HEALING_KEYWORDS = ("heal", "first aid", "medicine", "surgery", "treatment", "hp")
SANITY_KEYWORDS = ("sanity", "therapy", "comfort", "psychoanalysis")
MAGIC_KEYWORDS = ("magic", "meditation", "ritual rest")


def resolve_amount(value):
    """'3', '-3' or '1d6' → a non-negative amount."""
    if not value:
        return 0
    return abs(roll_dice(value.strip().lstrip("+-")).total)


def buff_kind(name: str):
    lowered = name.lower()
    for kind, keywords in (
        ("hit_points", HEALING_KEYWORDS),
        ("sanity", SANITY_KEYWORDS),
        ("magic_points", MAGIC_KEYWORDS),
    ):
        if any(keyword in lowered for keyword in keywords):
            return kind
    return None


def apply_to_character(db: Session, character: Character, payload: EffectCreate, amount: int) -> int:
    """Updates the character's pools; returns how much actually changed."""
    derived = character.derived

    if payload.type == "damage":
        if payload.has_armor is not None and amount > 0:
            amount = game_logic.calculate_damage_reduction(amount, character.size, payload.has_armor)
        before = character.hit_points
        character.hit_points = game_logic.apply_loss(before, amount)
        return before - character.hit_points

    if payload.type == "sanity_loss":
        before = character.sanity
        character.sanity = game_logic.apply_loss(before, amount)
        if game_logic.triggers_temporary_insanity(amount):
            bout = game_logic.pick_temporary_insanity()
            storage.add_effect(
                db, character, commit=False,
                type=bout.type, name=bout.name, description=bout.description,
                value=bout.value, duration=bout.duration, applied_by=payload.applied_by,
            )
            storage.add_sanity_condition(
                db, character,
                type="temporary_insanity", name=bout.name,
                description=bout.description, duration="temporary",
            )
        return before - character.sanity

    if payload.type == "buff":
        kind = buff_kind(payload.name)
        if kind is None:
            return 0
        maximum = {
            "hit_points": derived.hit_points,
            "sanity": derived.max_sanity,
            "magic_points": derived.magic_points,
        }[kind]
        final, recovered = game_logic.apply_recovery(getattr(character, kind), amount, maximum)
        setattr(character, kind, final)
        return recovered

    return 0


@effects_router.post("/characters/{character_id}/effects", response_model=EffectApplied, status_code=201)
async def add_effect(
    character_id: str,
    payload: EffectCreate,
    db: Session = Depends(get_db),
    hub: SessionHub = Depends(get_hub),
):
    character = get_character_or_404(db, character_id)
    amount = resolve_amount(payload.value)
    hp_before, sanity_before = character.hit_points, character.sanity

    changed = apply_to_character(db, character, payload, amount)
    effect = storage.add_effect(db, character, **payload.model_dump(exclude={"has_armor"}))

    statuses = []
    if (character.hit_points, character.sanity) != (hp_before, sanity_before):
        statuses = [status.name for status in storage.refresh_status_effects(db, character)]

    db.refresh(character)
    logger.info(f"Effect '{payload.name}' ({payload.type}, {changed}) applied to {character.name}")

    await hub.broadcast(character.session_id, build_event("effect_applied", {
        "character_id": character.id,
        "effect_type": payload.type,
        "name": payload.name,
        "value": changed,
        "hit_points": character.hit_points,
        "sanity": character.sanity,
        "magic_points": character.magic_points,
        "status_effects": statuses,
    }))

    return {
        "effect": EffectResponse.model_validate(effect),
        "amount": changed,
        "hit_points": character.hit_points,
        "sanity": character.sanity,
        "magic_points": character.magic_points,
        "status_effects": statuses,
    }


@effects_router.patch("/effects/{effect_id}", response_model=EffectResponse)
def update_effect(effect_id: str, payload: EffectUpdate, db: Session = Depends(get_db)):
    effect = db.query(ActiveEffect).filter(ActiveEffect.id == effect_id).first()
    if not effect:
        raise HTTPException(status_code=404, detail="Effect not found")

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(effect, field, value)
    db.commit()
    db.refresh(effect)
    return effect
