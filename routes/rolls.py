"""
Roll Routes - dice formulas, skill checks, sanity checks and roll history
"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from keeper import game_logic, storage
from keeper.db import get_db
from keeper.dice import SuccessLevel, determine_success_level, roll_dice, roll_sanity_loss
from keeper.models import GameSession
from keeper.realtime.hub import SessionHub, build_event
from routes.game_websocket import get_hub
from routes.schemas.roll import (
    DiceRollRequest,
    DiceRollResponse,
    HorrorCheckRequest,
    HorrorCheckResponse,
    RollHistoryResponse,
    RollRecord,
    SanityCheckRequest,
    SanityCheckResponse,
    SkillCheckRequest,
    SkillCheckResponse,
)

logger = logging.getLogger(__name__)

rolls_router = APIRouter(prefix="/api/rolls", tags=["Rolls"])


def percentile():
    return roll_dice("1d100").total


@rolls_router.post("/dice", response_model=DiceRollResponse)
def roll(payload: DiceRollRequest):
    """Roll any formula ('3d6', '1d100', '2d4+2' or a plain number)."""
    return roll_dice(payload.formula).to_dict()


@rolls_router.post("/skill", response_model=SkillCheckResponse)
def skill_check(payload: SkillCheckRequest):
    value = payload.roll if payload.roll is not None else percentile()
    return {
        "skill_name": payload.skill_name,
        "skill_value": payload.skill_value,
        "roll": value,
        "outcome": determine_success_level(value, payload.skill_value).value,
    }


@rolls_router.post("/sanity", response_model=SanityCheckResponse)
def sanity_check(payload: SanityCheckRequest):
    """d100 against current sanity, then the matching side of the loss formula."""
    value = percentile()
    outcome = determine_success_level(value, payload.sanity)
    passed = outcome != SuccessLevel.FAILURE
    loss = roll_sanity_loss(payload.formula, passed)
    loss_amount = max(0, loss.total)

    return {
        "roll": value,
        "outcome": outcome.value,
        "passed": passed,
        "loss": loss.to_dict(),
        "remaining_sanity": game_logic.apply_loss(payload.sanity, loss_amount),
        "temporary_insanity_risk": game_logic.triggers_temporary_insanity(loss_amount),
    }


@rolls_router.post("/horror", response_model=HorrorCheckResponse)
def horror_check(payload: HorrorCheckRequest):
    """Sanity cost of a horror, scaled by Mythos knowledge and current sanity."""
    loss = game_logic.calculate_sanity_loss(payload.horror_level, payload.sanity, payload.mythos)
    return {
        "loss": loss,
        "remaining_sanity": game_logic.apply_loss(payload.sanity, loss),
        "sanity_roll_required": game_logic.should_make_sanity_roll(payload.lost_this_round + loss),
        "temporary_insanity_risk": game_logic.triggers_temporary_insanity(loss),
    }


@rolls_router.post("", response_model=RollHistoryResponse, status_code=201)
async def record_roll(
    payload: RollRecord,
    db: Session = Depends(get_db),
    hub: SessionHub = Depends(get_hub),
):
    """Store a finished roll and push it to everyone in the session."""
    if payload.session_id:
        if not db.query(GameSession).filter(GameSession.id == payload.session_id).first():
            raise HTTPException(status_code=404, detail="Session not found")

    record = storage.store_roll(db, **payload.model_dump())
    body = RollHistoryResponse.model_validate(record)

    if payload.session_id:
        await hub.broadcast(payload.session_id, build_event("roll_result", body.model_dump(mode="json")))

    logger.info(f"Roll {record.dice_formula} = {record.result} recorded for {record.user_id}")
    return body
