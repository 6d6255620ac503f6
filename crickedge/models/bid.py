"""
Auction Bids - append-only record of every accepted bid.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlmodel import Field, SQLModel


class Bid(SQLModel, table=True):
    __tablename__ = "auction_bids"

    id: Optional[int] = Field(default=None, primary_key=True)
    auction_id: int = Field(foreign_key="auction_sessions.id", index=True)
    session_player_id: int = Field(foreign_key="auction_session_players.id", index=True)
    user_id: str = Field(index=True, max_length=64)
    amount: Decimal = Field(max_digits=10, decimal_places=2)
    is_winning: bool = False  # Flagged when the round settles
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
