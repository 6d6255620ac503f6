"""
Squad Players - one row per player won by a participant.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlmodel import Field, SQLModel

from crickedge.models.enums import PlayerCategory, SkillType


class SquadPlayer(SQLModel, table=True):
    __tablename__ = "auction_squad_players"

    id: Optional[int] = Field(default=None, primary_key=True)
    auction_id: int = Field(foreign_key="auction_sessions.id", index=True)
    user_id: str = Field(index=True, max_length=64)
    session_player_id: int = Field(foreign_key="auction_session_players.id", unique=True)
    purchase_price: Decimal = Field(max_digits=10, decimal_places=2)
    skill_type: SkillType
    category: PlayerCategory
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
