"""
Round state machine, bid processor and round closer.

Every function here expects to run inside one database transaction (see
``crickedge.database.atomic``) and takes the auction session row lock before
reading cached round state, so bids, closes and round starts on the same
auction are applied one at a time.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlmodel import Session, select

from crickedge import errors
from crickedge.clock import ensure_utc
from crickedge.errors import BidRejected, Forbidden, NotFound, StateConflict
from crickedge.models import AuctionSession, Bid, SessionPlayer
from crickedge.models.enums import (
    BIDDABLE_STATUSES,
    ParticipantStatus,
    SessionPlayerStatus,
    SessionStatus,
)
from crickedge.services import ledger, sequencer, stuck, terminator
from crickedge.services.queries import (
    get_auction_or_raise,
    get_participant,
    get_pool_entry,
    get_session_player,
)

logger = logging.getLogger(__name__)


@dataclass
class RoundResult:
    auction_id: int
    session_player_id: int
    player_name: str
    result: str  # "SOLD" or "UNSOLD"
    amount: Optional[Decimal] = None
    winner_user_id: Optional[str] = None
    new_wallet_balance: Optional[Decimal] = None
    new_squad_size: Optional[int] = None
    winner_completed: bool = False
    stuck_resolution: Optional[stuck.StuckResolution] = None
    auto_ended: bool = False
    next_session_player_id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "auction_id": self.auction_id,
            "session_player_id": self.session_player_id,
            "player_name": self.player_name,
            "result": self.result,
            "amount": self.amount,
            "winner_user_id": self.winner_user_id,
            "new_wallet_balance": self.new_wallet_balance,
            "new_squad_size": self.new_squad_size,
            "winner_completed": self.winner_completed,
            "auto_redeem": self.stuck_resolution.to_dict() if self.stuck_resolution else None,
            "auto_ended": self.auto_ended,
            "next_session_player_id": self.next_session_player_id,
        }


def minimum_required_bid(auction: AuctionSession, session_player: SessionPlayer, base_price: Decimal) -> Decimal:
    """(cached highest bid, or base price when nobody has bid) + increment."""
    floor = session_player.last_highest_bid_amount
    if floor is None:
        floor = base_price
    return Decimal(floor) + Decimal(auction.min_bid_increment)


# --- Round start ---

def start_round(
    session: Session,
    auction: AuctionSession,
    session_player_id: int,
    now: datetime,
) -> SessionPlayer:
    """
    Put one player on the block for a (locked) RUNNING session.

    This is the only place a player becomes LIVE. A pointer left at a player
    that is no longer LIVE is cleared first; a pointer at a player that is
    still LIVE means a round is in progress and is rejected.
    """
    if auction.status != SessionStatus.RUNNING:
        raise StateConflict(
            f"Auction is not running (status: {auction.status.value}).",
            reason=errors.AUCTION_NOT_RUNNING,
        )

    if auction.current_live_session_player_id is not None:
        current = get_session_player(session, auction.id, auction.current_live_session_player_id, for_update=True)
        if current is not None and current.status == SessionPlayerStatus.LIVE:
            raise StateConflict(
                "A player is already LIVE. Close the current round before starting the next.",
                reason=errors.ROUND_IN_PROGRESS,
            )
        auction.current_live_session_player_id = None

    session_player = get_session_player(session, auction.id, session_player_id, for_update=True)
    if session_player is None:
        raise NotFound(f"Session player {session_player_id} not found.", reason=errors.SESSION_PLAYER_NOT_FOUND)
    if session_player.status not in BIDDABLE_STATUSES:
        raise StateConflict(
            f"Player {session_player_id} cannot go live from status {session_player.status.value}.",
            reason=errors.PLAYER_NOT_BIDDABLE,
        )

    ends_at = now + timedelta(seconds=auction.bid_timer_seconds)

    auction.current_live_session_player_id = session_player.id
    auction.current_round_started_at = now
    auction.current_round_ends_at = ends_at
    auction.updated_at = now
    session.add(auction)

    session_player.status = SessionPlayerStatus.LIVE
    session_player.live_started_at = now
    session_player.live_ends_at = ends_at
    session_player.last_highest_bid_amount = None
    session_player.last_highest_bid_user_id = None
    session_player.updated_at = now
    session.add(session_player)

    logger.info("Auction %s: player %s is live until %s", auction.id, session_player.id, ends_at.isoformat())
    return session_player


def start_next_round(session: Session, auction: AuctionSession, now: datetime) -> Optional[SessionPlayer]:
    """Ask the sequencer for the next player and start its round; None when none remain."""
    next_id = sequencer.pick_next_session_player_id(session, auction.id)
    if next_id is None:
        return None
    return start_round(session, auction, next_id, now)


def advance(session: Session, auction_id: int, now: datetime) -> Optional[SessionPlayer]:
    """
    Start the next round of a RUNNING session that has no live player.

    Ends the session through the terminator when nothing is left to auction.
    """
    auction = get_auction_or_raise(session, auction_id, for_update=True)
    if auction.status != SessionStatus.RUNNING:
        raise StateConflict(
            f"Auction is not running (status: {auction.status.value}).",
            reason=errors.AUCTION_NOT_RUNNING,
        )
    live = start_next_round(session, auction, now)
    if live is None:
        terminator.maybe_end_auction(session, auction)
    return live


# --- Bids ---

def place_bid(
    session: Session,
    auction_id: int,
    session_player_id: int,
    user_id: str,
    amount: Decimal,
    now: datetime,
) -> dict:
    """
    Validate and record one bid.

    Rejections raise BidRejected (or Forbidden for unregistered users) with a
    stable reason before anything is written.
    """
    amount = Decimal(amount)
    auction = get_auction_or_raise(session, auction_id, for_update=True)

    if auction.status != SessionStatus.RUNNING:
        raise BidRejected(
            f"Auction is not running (status: {auction.status.value}).",
            reason=errors.AUCTION_NOT_RUNNING,
        )

    if auction.current_live_session_player_id != session_player_id:
        raise BidRejected("This player is not the current live player.", reason=errors.PLAYER_NOT_LIVE)

    session_player = get_session_player(session, auction_id, session_player_id, for_update=True)
    if session_player is None or session_player.status != SessionPlayerStatus.LIVE:
        raise BidRejected("This player is not LIVE.", reason=errors.PLAYER_NOT_LIVE)

    ends_at = ensure_utc(auction.current_round_ends_at)
    if ends_at is not None and now >= ends_at:
        raise BidRejected("Bidding time is over for this player.", reason=errors.ROUND_EXPIRED)

    participant = get_participant(session, auction_id, user_id)
    if participant is None:
        raise Forbidden(
            "User is not registered as a participant for this auction.",
            reason=errors.PARTICIPANT_NOT_REGISTERED,
        )
    if participant.status != ParticipantStatus.ACTIVE:
        raise BidRejected(
            f"Participant is not active (status: {participant.status.value}).",
            reason=errors.PARTICIPANT_NOT_ACTIVE,
        )

    if ledger.squad_size(session, auction_id, user_id) >= auction.max_squad_size:
        raise BidRejected("You already reached maximum squad size.", reason=errors.SQUAD_FULL)

    entry = get_pool_entry(session, session_player.pool_player_id)
    min_required = minimum_required_bid(auction, session_player, Decimal(entry.base_price))
    if amount < min_required:
        raise BidRejected(
            f"Bid too low. Minimum allowed is {min_required}.",
            reason=errors.BID_TOO_LOW,
            min_required_bid=min_required,
        )

    wallet = ledger.get_wallet_or_raise(session, auction_id, user_id)
    if amount > Decimal(wallet.current_balance):
        raise BidRejected(
            "Insufficient balance for this bid.",
            reason=errors.INSUFFICIENT_BALANCE,
            current_balance=wallet.current_balance,
        )

    session.add(
        Bid(
            auction_id=auction_id,
            session_player_id=session_player_id,
            user_id=user_id,
            amount=amount,
            created_at=now,
        )
    )
    session_player.last_highest_bid_amount = amount
    session_player.last_highest_bid_user_id = user_id
    session_player.updated_at = now
    session.add(session_player)

    logger.debug("Auction %s: %s bid %s on player %s", auction_id, user_id, amount, session_player_id)
    return {
        "auction_id": auction_id,
        "session_player_id": session_player_id,
        "last_highest_bid_amount": amount,
        "last_highest_bid_user_id": user_id,
        "min_next_bid_amount": amount + Decimal(auction.min_bid_increment),
    }


# --- Round close ---

def close_live_round(
    session: Session,
    auction_id: int,
    now: datetime,
    expired_only: bool = False,
    auto_advance: bool = True,
    expected_session_player_id: Optional[int] = None,
) -> Optional[RoundResult]:
    """
    Resolve the live round to SOLD or UNSOLD.

    Returns None, without touching anything, when there is no LIVE player to
    close (for instance a concurrent close got there first), when
    ``expected_session_player_id`` names a round that is no longer the live
    one or, with ``expired_only``, when the deadline has not passed under the
    lock. After the sale the winner's stuck check and the terminator run in
    the same transaction; with ``auto_advance`` the next round is started.
    """
    auction = get_auction_or_raise(session, auction_id, for_update=True)
    live_id = auction.current_live_session_player_id
    if live_id is None:
        return None
    if expected_session_player_id is not None and live_id != expected_session_player_id:
        logger.info(
            "Auction %s: round for player %s already closed, skipping",
            auction_id,
            expected_session_player_id,
        )
        return None

    if expired_only:
        ends_at = ensure_utc(auction.current_round_ends_at)
        if auction.status != SessionStatus.RUNNING or ends_at is None or ends_at > now:
            return None

    session_player = get_session_player(session, auction_id, live_id, for_update=True)
    if session_player is None or session_player.status != SessionPlayerStatus.LIVE:
        return None

    entry = get_pool_entry(session, session_player.pool_player_id)
    result = RoundResult(
        auction_id=auction_id,
        session_player_id=session_player.id,
        player_name=entry.player_name,
        result=SessionPlayerStatus.UNSOLD.value,
    )

    winning_amount = session_player.last_highest_bid_amount
    winner_id = session_player.last_highest_bid_user_id

    if winning_amount is not None and winner_id:
        _settle_sale(session, auction, session_player, entry, Decimal(winning_amount), winner_id, result, now)
    else:
        session_player.status = SessionPlayerStatus.UNSOLD
        session_player.final_bid_amount = None
        session_player.sold_to_user_id = None
        session_player.updated_at = now
        session.add(session_player)

    auction.current_live_session_player_id = None
    auction.current_round_started_at = None
    auction.current_round_ends_at = None
    auction.updated_at = now
    session.add(auction)

    result.auto_ended = terminator.maybe_end_auction(session, auction)
    if auto_advance and not result.auto_ended and auction.status == SessionStatus.RUNNING:
        next_player = start_next_round(session, auction, now)
        if next_player is None:
            result.auto_ended = terminator.maybe_end_auction(session, auction)
        else:
            result.next_session_player_id = next_player.id

    logger.info(
        "Auction %s: round for player %s closed %s%s",
        auction_id,
        session_player.id,
        result.result,
        f" to {winner_id} at {winning_amount}" if result.result == SessionPlayerStatus.SOLD.value else "",
    )
    return result


def _settle_sale(
    session: Session,
    auction: AuctionSession,
    session_player: SessionPlayer,
    entry,
    amount: Decimal,
    winner_id: str,
    result: RoundResult,
    now: datetime,
) -> None:
    wallet = ledger.get_wallet_or_raise(session, auction.id, winner_id, for_update=True)
    ledger.purchase(session, wallet, session_player, amount, entry.skill_type, entry.category)

    winning_bid = session.exec(
        select(Bid)
        .where(Bid.auction_id == auction.id)
        .where(Bid.session_player_id == session_player.id)
        .where(Bid.user_id == winner_id)
        .where(Bid.amount == amount)
        .order_by(Bid.created_at.desc(), Bid.id.desc())
    ).first()
    if winning_bid is not None:
        winning_bid.is_winning = True
        session.add(winning_bid)

    session_player.status = SessionPlayerStatus.SOLD
    session_player.final_bid_amount = amount
    session_player.sold_to_user_id = winner_id
    session_player.updated_at = now
    session.add(session_player)

    new_size = ledger.squad_size(session, auction.id, winner_id)
    result.result = SessionPlayerStatus.SOLD.value
    result.amount = amount
    result.winner_user_id = winner_id

    participant = get_participant(session, auction.id, winner_id)
    if new_size >= auction.max_squad_size:
        if participant is not None and participant.status == ParticipantStatus.ACTIVE:
            participant.status = ParticipantStatus.COMPLETED
            participant.updated_at = now
            session.add(participant)
            result.winner_completed = True
    else:
        result.stuck_resolution = stuck.resolve_stuck(session, auction, winner_id)
        if result.stuck_resolution.released_count:
            new_size = result.stuck_resolution.final_squad_size

    result.new_wallet_balance = Decimal(wallet.current_balance)
    result.new_squad_size = new_size
