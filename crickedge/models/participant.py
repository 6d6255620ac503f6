"""
Auction Participants - session-scoped membership of a user.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel, UniqueConstraint

from crickedge.models.enums import ParticipantRole, ParticipantStatus


class Participant(SQLModel, table=True):
    __tablename__ = "auction_participants"
    __table_args__ = (
        UniqueConstraint("auction_id", "user_id", name="uq_participant_auction_user"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    auction_id: int = Field(foreign_key="auction_sessions.id", index=True)
    user_id: str = Field(index=True, max_length=64)
    role: ParticipantRole = Field(default=ParticipantRole.PARTICIPANT)
    status: ParticipantStatus = Field(default=ParticipantStatus.ACTIVE, index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
