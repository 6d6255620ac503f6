"""
Auction terminator - ends a session once nothing is left to auction or nobody is left to bid.
"""
import logging
from datetime import datetime, timezone

from sqlmodel import Session, func, select

from crickedge.models import AuctionSession, Participant, SessionPlayer
from crickedge.models.enums import (
    BIDDABLE_STATUSES,
    ParticipantRole,
    ParticipantStatus,
    SessionPlayerStatus,
    SessionStatus,
)

logger = logging.getLogger(__name__)


def remaining_player_count(session: Session, auction_id: int) -> int:
    return int(
        session.exec(
            select(func.count(SessionPlayer.id))
            .where(SessionPlayer.auction_id == auction_id)
            .where(SessionPlayer.status.in_(BIDDABLE_STATUSES))
        ).one()
        or 0
    )


def active_participant_count(session: Session, auction_id: int) -> int:
    return int(
        session.exec(
            select(func.count(Participant.id))
            .where(Participant.auction_id == auction_id)
            .where(Participant.status == ParticipantStatus.ACTIVE)
            .where(Participant.role == ParticipantRole.PARTICIPANT)
        ).one()
        or 0
    )


def has_live_round(session: Session, auction: AuctionSession) -> bool:
    if auction.current_live_session_player_id is None:
        return False
    live = session.get(SessionPlayer, auction.current_live_session_player_id)
    return live is not None and live.status == SessionPlayerStatus.LIVE


def close_out_live_player(session: Session, auction: AuctionSession) -> None:
    """Mark a round interrupted by the session ending as UNSOLD."""
    if auction.current_live_session_player_id is None:
        return
    live = session.get(SessionPlayer, auction.current_live_session_player_id)
    if live is not None and live.status == SessionPlayerStatus.LIVE:
        live.status = SessionPlayerStatus.UNSOLD
        live.final_bid_amount = None
        live.sold_to_user_id = None
        live.updated_at = datetime.now(timezone.utc)
        session.add(live)


def maybe_end_auction(session: Session, auction: AuctionSession) -> bool:
    """
    End the (locked) session when it is exhausted.

    Exhausted means no PENDING/RECLAIMED player remains, or no ACTIVE
    participant with the PARTICIPANT role remains. Returns True only when
    this call ended the session; sessions that are not RUNNING or PAUSED
    are left untouched, so repeated calls are no-ops.
    """
    if auction.status not in (SessionStatus.RUNNING, SessionStatus.PAUSED):
        return False

    remaining = remaining_player_count(session, auction.id)
    if has_live_round(session, auction):
        # The player on the block has not been disposed of yet
        remaining += 1
    active = active_participant_count(session, auction.id)
    if remaining > 0 and active > 0:
        return False

    close_out_live_player(session, auction)
    auction.status = SessionStatus.ENDED
    auction.current_live_session_player_id = None
    auction.current_round_started_at = None
    auction.current_round_ends_at = None
    auction.updated_at = datetime.now(timezone.utc)
    session.add(auction)

    logger.info(
        "Auction %s ended automatically (remaining players=%d, active participants=%d)",
        auction.id,
        remaining,
        active,
    )
    return True
