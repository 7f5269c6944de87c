"""
Session Routes - open, join and manage game sessions
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from keeper import storage
from keeper.config import JOIN_RATE_LIMIT
from keeper.db import get_db
from keeper.models import Character, GameSession
from routes.characters import character_to_response
from routes.schemas.character import CharacterResponse
from routes.schemas.roll import RollHistoryResponse
from routes.schemas.session import SessionCreate, SessionResponse, SessionUpdate

logger = logging.getLogger(__name__)

# Join codes are guessable in principle; throttle lookups per client
limiter = Limiter(key_func=get_remote_address)

sessions_router = APIRouter(prefix="/api/sessions", tags=["Sessions"])


def get_session_or_404(db: Session, session_id: str) -> GameSession:
    session = db.query(GameSession).filter(GameSession.id == session_id).first()
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


@sessions_router.post("", response_model=SessionResponse, status_code=201)
def create_session(payload: SessionCreate, db: Session = Depends(get_db)):
    return storage.create_session(db, name=payload.name, gm_id=payload.gm_id, status=payload.status)


@sessions_router.get("", response_model=List[SessionResponse])
def list_sessions(gm_id: str = Query(...), db: Session = Depends(get_db)):
    return (
        db.query(GameSession)
        .filter(GameSession.gm_id == gm_id)
        .order_by(GameSession.created_at.desc())
        .all()
    )


@sessions_router.get("/join/{code}", response_model=SessionResponse)
@limiter.limit(JOIN_RATE_LIMIT)
def join_session(request: Request, code: str, db: Session = Depends(get_db)):
    """Players look a session up by the code the GM reads out."""
    session = storage.get_session_by_code(db, code)
    if not session or session.status != "active":
        raise HTTPException(status_code=404, detail="Session not found or inactive")
    return session


@sessions_router.get("/{session_id}", response_model=SessionResponse)
def get_session(session_id: str, db: Session = Depends(get_db)):
    return get_session_or_404(db, session_id)


@sessions_router.patch("/{session_id}", response_model=SessionResponse)
def update_session(session_id: str, payload: SessionUpdate, db: Session = Depends(get_db)):
    session = get_session_or_404(db, session_id)
    if session.gm_id != payload.gm_id:
        raise HTTPException(status_code=403, detail="Not authorized")

    updates = payload.model_dump(exclude_unset=True, exclude={"gm_id"})
    for field, value in updates.items():
        setattr(session, field, value)
    db.commit()
    db.refresh(session)
    logger.info(f"Session {session_id} updated: {sorted(updates)}")
    return session


@sessions_router.delete("/{session_id}")
def delete_session(session_id: str, gm_id: str = Query(...), db: Session = Depends(get_db)):
    session = get_session_or_404(db, session_id)
    if session.gm_id != gm_id:
        raise HTTPException(status_code=403, detail="Not authorized")
    storage.delete_session(db, session)
    return {"message": "Session deleted successfully"}


@sessions_router.get("/{session_id}/characters", response_model=List[CharacterResponse])
def list_session_characters(session_id: str, db: Session = Depends(get_db)):
    get_session_or_404(db, session_id)
    characters = (
        db.query(Character)
        .filter(Character.session_id == session_id)
        .order_by(Character.created_at.asc())
        .all()
    )
    return [character_to_response(character) for character in characters]


@sessions_router.get("/{session_id}/rolls", response_model=List[RollHistoryResponse])
def list_session_rolls(
    session_id: str,
    limit: Optional[int] = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    get_session_or_404(db, session_id)
    return storage.get_session_rolls(db, session_id, limit=limit)
