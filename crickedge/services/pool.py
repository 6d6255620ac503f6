"""
Player pool import and listing.
"""
import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlmodel import Session, select

from crickedge.errors import ValidationFailed
from crickedge.models import PlayerPoolEntry
from crickedge.models.enums import PlayerCategory, SkillType

logger = logging.getLogger(__name__)


def import_players(session: Session, players: Iterable[dict]) -> dict:
    """
    Upsert pool entries.

    Rows with a ``player_code`` update the existing entry with that code (and
    reactivate it); rows without one are always inserted.
    """
    players = list(players)
    if not players:
        raise ValidationFailed("Players array is required and cannot be empty.")

    inserted = 0
    updated = 0
    now = datetime.now(timezone.utc)

    for row in players:
        code = (row.get("player_code") or "").strip() or None
        existing = None
        if code:
            existing = session.exec(
                select(PlayerPoolEntry).where(PlayerPoolEntry.player_code == code)
            ).first()

        if existing:
            existing.player_name = row["player_name"].strip()
            existing.country = row["country"].strip()
            existing.skill_type = SkillType(row["skill_type"])
            existing.category = PlayerCategory(row["category"])
            existing.base_price = row["base_price"]
            existing.is_active = True
            existing.updated_at = now
            session.add(existing)
            updated += 1
        else:
            session.add(
                PlayerPoolEntry(
                    player_code=code,
                    player_name=row["player_name"].strip(),
                    country=row["country"].strip(),
                    skill_type=SkillType(row["skill_type"]),
                    category=PlayerCategory(row["category"]),
                    base_price=row["base_price"],
                    is_active=True,
                    created_at=now,
                    updated_at=now,
                )
            )
            inserted += 1
        # Make the row visible to later rows repeating the same code
        session.flush()

    logger.info("Player pool import: %d inserted, %d updated", inserted, updated)
    return {"total": len(players), "inserted": inserted, "updated": updated}


def list_pool(
    session: Session,
    country: Optional[str] = None,
    skill_type: Optional[SkillType] = None,
    category: Optional[PlayerCategory] = None,
    search: Optional[str] = None,
    active_only: bool = False,
) -> list[PlayerPoolEntry]:
    statement = select(PlayerPoolEntry)
    if country:
        statement = statement.where(PlayerPoolEntry.country == country)
    if skill_type:
        statement = statement.where(PlayerPoolEntry.skill_type == skill_type)
    if category:
        statement = statement.where(PlayerPoolEntry.category == category)
    if search:
        statement = statement.where(PlayerPoolEntry.player_name.ilike(f"%{search}%"))
    if active_only:
        statement = statement.where(PlayerPoolEntry.is_active == True)  # noqa: E712
    statement = statement.order_by(
        PlayerPoolEntry.country, PlayerPoolEntry.category, PlayerPoolEntry.player_name
    )
    return session.exec(statement).all()


def pool_entry_to_dict(entry: PlayerPoolEntry) -> dict:
    return {
        "pool_player_id": entry.id,
        "player_code": entry.player_code,
        "player_name": entry.player_name,
        "country": entry.country,
        "skill_type": entry.skill_type.value,
        "category": entry.category.value,
        "base_price": entry.base_price,
        "is_active": entry.is_active,
    }
