"""
Auction Wallets - per participant, per session balance.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlmodel import Field, SQLModel, UniqueConstraint


class Wallet(SQLModel, table=True):
    __tablename__ = "auction_wallets"
    __table_args__ = (
        UniqueConstraint("auction_id", "user_id", name="uq_wallet_auction_user"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    auction_id: int = Field(foreign_key="auction_sessions.id", index=True)
    user_id: str = Field(index=True, max_length=64)
    initial_amount: Decimal = Field(max_digits=10, decimal_places=2)
    current_balance: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
