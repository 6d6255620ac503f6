"""
Player Pool - catalog of biddable players, maintained by pool import.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlmodel import Field, SQLModel

from crickedge.models.enums import PlayerCategory, SkillType


class PlayerPoolEntry(SQLModel, table=True):
    __tablename__ = "auction_player_pool"

    id: Optional[int] = Field(default=None, primary_key=True)
    player_code: Optional[str] = Field(default=None, index=True, unique=True)  # e.g. "P001"
    player_name: str = Field(index=True)
    country: str = Field(index=True)
    skill_type: SkillType
    category: PlayerCategory
    base_price: Decimal = Field(default=Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    is_active: bool = Field(default=True)  # Entries are deactivated, never deleted
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
