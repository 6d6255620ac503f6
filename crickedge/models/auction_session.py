"""
Auction Sessions - one bidding event with its configuration and live-round pointer.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from crickedge.models.enums import SessionStatus


class AuctionSession(SQLModel, table=True):
    __tablename__ = "auction_sessions"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=120)
    status: SessionStatus = Field(default=SessionStatus.NOT_STARTED, index=True)

    # Configuration
    max_squad_size: int = 13
    min_exit_squad_size: int = 11
    initial_wallet_amount: Decimal = Field(default=Decimal("120"), max_digits=10, decimal_places=2)
    bid_timer_seconds: int = 30
    min_bid_increment: Decimal = Field(default=Decimal("0.5"), max_digits=10, decimal_places=2)
    min_player_price: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)

    # Live round
    current_live_session_player_id: Optional[int] = Field(default=None)
    current_round_started_at: Optional[datetime] = Field(
        default=None, sa_type=DateTime(timezone=True)
    )
    current_round_ends_at: Optional[datetime] = Field(
        default=None, sa_type=DateTime(timezone=True), index=True
    )

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
