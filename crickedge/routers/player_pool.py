"""
Player pool router - bulk import and browsing of the master player catalog.
"""
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlmodel import Session

from crickedge.database import atomic, get_session
from crickedge.models.enums import PlayerCategory, SkillType
from crickedge.services import pool

router = APIRouter(prefix="/api/auction/player-pool", tags=["player-pool"])


# --- Request Models ---

class PoolPlayerIn(BaseModel):
    player_code: Optional[str] = Field(default=None, max_length=32, description="Stable external code, e.g. P001")
    player_name: str = Field(min_length=1, max_length=120)
    country: str = Field(min_length=1, max_length=60)
    skill_type: SkillType
    category: PlayerCategory
    base_price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)


class ImportPlayersRequest(BaseModel):
    players: list[PoolPlayerIn]


# --- Endpoints ---

@router.post("/import")
def import_player_pool(
    request: ImportPlayersRequest,
    session: Session = Depends(get_session),
):
    """Upsert pool entries by player_code; entries without a code are always inserted."""
    with atomic(session):
        counts = pool.import_players(session, [p.model_dump() for p in request.players])
    return counts


@router.get("")
def list_player_pool(
    country: Optional[str] = None,
    skill_type: Optional[SkillType] = None,
    category: Optional[PlayerCategory] = None,
    search: Optional[str] = Query(default=None, description="Case-insensitive name match"),
    active_only: bool = False,
    session: Session = Depends(get_session),
):
    entries = pool.list_pool(session, country, skill_type, category, search, active_only)
    return {
        "count": len(entries),
        "players": [pool.pool_entry_to_dict(e) for e in entries],
    }
