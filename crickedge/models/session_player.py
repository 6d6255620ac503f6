"""
Session Players - a pool player scoped to one auction session, with its sale state.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel, UniqueConstraint

from crickedge.models.enums import SessionPlayerStatus


class SessionPlayer(SQLModel, table=True):
    __tablename__ = "auction_session_players"
    __table_args__ = (
        UniqueConstraint("auction_id", "pool_player_id", name="uq_session_pool_player"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    auction_id: int = Field(foreign_key="auction_sessions.id", index=True)
    pool_player_id: int = Field(foreign_key="auction_player_pool.id", index=True)
    status: SessionPlayerStatus = Field(default=SessionPlayerStatus.PENDING, index=True)

    # Sale outcome
    final_bid_amount: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    sold_to_user_id: Optional[str] = None

    # Cached highest bid of the current round (reset each round)
    last_highest_bid_amount: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    last_highest_bid_user_id: Optional[str] = None
    live_started_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    live_ends_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
