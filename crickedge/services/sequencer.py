"""
Sequencer - decides which player goes live next, honoring admin push rules.

Rules are consumed greedily in ``(priority, created_at)`` order. A rule that
finds a candidate is decremented (and deactivated at zero); a rule that finds
none is deactivated for good, so an unsatisfiable rule never blocks progress.
When no rule yields a candidate the oldest biddable player is used.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Session, func, select

from crickedge import errors
from crickedge.errors import NotFound, ValidationFailed
from crickedge.models import PlayerPoolEntry, PushRule, SessionPlayer
from crickedge.models.enums import BIDDABLE_STATUSES, PlayerCategory, SkillType

logger = logging.getLogger(__name__)


def _candidate_statement(auction_id: int):
    return (
        select(SessionPlayer.id)
        .join(PlayerPoolEntry, PlayerPoolEntry.id == SessionPlayer.pool_player_id)
        .where(SessionPlayer.auction_id == auction_id)
        .where(SessionPlayer.status.in_(BIDDABLE_STATUSES))
        .order_by(SessionPlayer.created_at, SessionPlayer.id)
        .limit(1)
    )


def find_candidate(
    session: Session,
    auction_id: int,
    skill_type: Optional[SkillType] = None,
    category: Optional[PlayerCategory] = None,
) -> Optional[int]:
    """Oldest PENDING/RECLAIMED session player matching the optional filters."""
    statement = _candidate_statement(auction_id)
    if skill_type is not None:
        statement = statement.where(PlayerPoolEntry.skill_type == skill_type)
    if category is not None:
        statement = statement.where(PlayerPoolEntry.category == category)
    return session.exec(statement).first()


def pick_next_session_player_id(session: Session, auction_id: int) -> Optional[int]:
    rules = session.exec(
        select(PushRule)
        .where(PushRule.auction_id == auction_id)
        .where(PushRule.is_active == True)  # noqa: E712
        .where(PushRule.remaining_count > 0)
        .order_by(PushRule.priority, PushRule.created_at, PushRule.id)
        .with_for_update()
    ).all()

    now = datetime.now(timezone.utc)
    for rule in rules:
        candidate_id = find_candidate(session, auction_id, rule.skill_type, rule.category)
        if candidate_id is not None:
            rule.remaining_count -= 1
            rule.is_active = rule.remaining_count > 0
            rule.updated_at = now
            session.add(rule)
            logger.debug("Auction %s: push rule %s picked player %s", auction_id, rule.id, candidate_id)
            return candidate_id

        # Nothing matches this rule any more
        rule.remaining_count = 0
        rule.is_active = False
        rule.updated_at = now
        session.add(rule)
        logger.info("Auction %s: push rule %s has no candidates, deactivated", auction_id, rule.id)

    return find_candidate(session, auction_id)


# --- Rule administration ---

def create_rule(
    session: Session,
    auction_id: int,
    count: int,
    skill_type: Optional[SkillType] = None,
    category: Optional[PlayerCategory] = None,
    priority: Optional[int] = None,
) -> PushRule:
    if count <= 0:
        raise ValidationFailed("count must be a positive integer.")

    if priority is None:
        current_max = session.exec(
            select(func.max(PushRule.priority)).where(PushRule.auction_id == auction_id)
        ).one()
        priority = (current_max or 0) + 1

    rule = PushRule(
        auction_id=auction_id,
        skill_type=skill_type,
        category=category,
        remaining_count=count,
        priority=priority,
        is_active=True,
    )
    session.add(rule)
    return rule


def list_rules(session: Session, auction_id: int) -> list[PushRule]:
    return session.exec(
        select(PushRule)
        .where(PushRule.auction_id == auction_id)
        .order_by(PushRule.priority, PushRule.created_at, PushRule.id)
    ).all()


def get_rule_or_raise(session: Session, rule_id: int) -> PushRule:
    rule = session.get(PushRule, rule_id)
    if rule is None:
        raise NotFound(f"Push rule {rule_id} not found.", reason=errors.PUSH_RULE_NOT_FOUND)
    return rule


def update_rule(
    session: Session,
    rule_id: int,
    is_active: Optional[bool] = None,
    remaining_count: Optional[int] = None,
    priority: Optional[int] = None,
) -> PushRule:
    if is_active is None and remaining_count is None and priority is None:
        raise ValidationFailed("No updatable fields provided.")

    rule = get_rule_or_raise(session, rule_id)
    if is_active is not None:
        rule.is_active = is_active
    if remaining_count is not None:
        rule.remaining_count = remaining_count
    if priority is not None:
        rule.priority = priority
    rule.updated_at = datetime.now(timezone.utc)
    session.add(rule)
    return rule


def delete_rule(session: Session, rule_id: int) -> None:
    session.delete(get_rule_or_raise(session, rule_id))


def rule_to_dict(rule: PushRule) -> dict:
    return {
        "rule_id": rule.id,
        "auction_id": rule.auction_id,
        "skill_type": rule.skill_type.value if rule.skill_type else None,
        "category": rule.category.value if rule.category else None,
        "remaining_count": rule.remaining_count,
        "priority": rule.priority,
        "is_active": rule.is_active,
        "created_at": rule.created_at,
        "updated_at": rule.updated_at,
    }
