"""
Push Rules - admin directives that bias which players go live next.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel

from crickedge.models.enums import PlayerCategory, SkillType


class PushRule(SQLModel, table=True):
    __tablename__ = "auction_push_rules"

    id: Optional[int] = Field(default=None, primary_key=True)
    auction_id: int = Field(foreign_key="auction_sessions.id", index=True)
    skill_type: Optional[SkillType] = None  # None matches any skill
    category: Optional[PlayerCategory] = None  # None matches any category
    remaining_count: int = Field(ge=0)
    priority: int = Field(default=1, ge=1)
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
