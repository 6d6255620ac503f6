"""
Auction session lifecycle: creation, participants and admin controls.
"""
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Optional

from sqlmodel import Session, select

from crickedge import config, errors
from crickedge.errors import StateConflict, ValidationFailed
from crickedge.models import AuctionSession, Participant, PlayerPoolEntry, SessionPlayer, Wallet
from crickedge.models.enums import (
    TERMINAL_SESSION_STATUSES,
    ParticipantRole,
    ParticipantStatus,
    SessionPlayerStatus,
    SessionStatus,
)
from crickedge.services import ledger, rounds, stuck, terminator
from crickedge.services.queries import get_auction_or_raise, get_participant_or_raise, get_session_player

logger = logging.getLogger(__name__)


def create_session(
    session: Session,
    name: str,
    max_squad_size: int = config.DEFAULT_MAX_SQUAD_SIZE,
    min_exit_squad_size: int = config.DEFAULT_MIN_EXIT_SQUAD_SIZE,
    initial_wallet_amount: Decimal = config.DEFAULT_INITIAL_WALLET_AMOUNT,
    bid_timer_seconds: int = config.DEFAULT_BID_TIMER_SECONDS,
    min_bid_increment: Decimal = config.DEFAULT_MIN_BID_INCREMENT,
    min_player_price: Optional[Decimal] = None,
    use_entire_pool: bool = True,
) -> tuple[AuctionSession, int]:
    """Create a session and, optionally, attach every active pool player to it."""
    name = (name or "").strip()
    if not name:
        raise ValidationFailed("Auction name is required.")
    if min_exit_squad_size > max_squad_size:
        raise ValidationFailed("min_exit_squad_size cannot exceed max_squad_size.")

    auction = AuctionSession(
        name=name,
        status=SessionStatus.NOT_STARTED,
        max_squad_size=max_squad_size,
        min_exit_squad_size=min_exit_squad_size,
        initial_wallet_amount=initial_wallet_amount,
        bid_timer_seconds=bid_timer_seconds,
        min_bid_increment=min_bid_increment,
        min_player_price=min_player_price,
    )
    session.add(auction)
    session.flush()

    attached = attach_players(session, auction) if use_entire_pool else 0
    logger.info("Created auction %s (%s) with %d players", auction.id, auction.name, attached)
    return auction, attached


def attach_players(
    session: Session,
    auction: AuctionSession,
    pool_player_ids: Optional[Iterable[int]] = None,
) -> int:
    """
    Attach active pool players as PENDING session players.

    Players already attached to the session are skipped. Returns the number
    of newly attached players.
    """
    if auction.status in TERMINAL_SESSION_STATUSES:
        raise StateConflict(
            f"Cannot attach players to an auction that is {auction.status.value}.",
            reason=errors.AUCTION_CLOSED,
        )

    statement = select(PlayerPoolEntry.id).where(PlayerPoolEntry.is_active == True)  # noqa: E712
    if pool_player_ids is not None:
        statement = statement.where(PlayerPoolEntry.id.in_(list(pool_player_ids)))
    candidates = session.exec(statement.order_by(PlayerPoolEntry.id)).all()

    already = set(
        session.exec(
            select(SessionPlayer.pool_player_id).where(SessionPlayer.auction_id == auction.id)
        ).all()
    )

    now = datetime.now(timezone.utc)
    attached = 0
    for pool_player_id in candidates:
        if pool_player_id in already:
            continue
        session.add(
            SessionPlayer(
                auction_id=auction.id,
                pool_player_id=pool_player_id,
                status=SessionPlayerStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
        )
        attached += 1
    session.flush()
    return attached


def register_participant(
    session: Session,
    auction_id: int,
    user_id: str,
    role: ParticipantRole = ParticipantRole.PARTICIPANT,
) -> tuple[Participant, Wallet]:
    """
    Register (or re-register) a user and make sure they hold a wallet.

    Re-registration updates the role and reactivates the participant; an
    existing wallet is kept as it is, so the ledger is never reset.
    """
    user_id = (user_id or "").strip()
    if not user_id:
        raise ValidationFailed("user_id is required.")

    auction = get_auction_or_raise(session, auction_id, for_update=True)
    if auction.status in TERMINAL_SESSION_STATUSES:
        raise StateConflict(
            f"Cannot register for an auction that is {auction.status.value}.",
            reason=errors.AUCTION_CLOSED,
        )

    now = datetime.now(timezone.utc)
    participant = session.exec(
        select(Participant)
        .where(Participant.auction_id == auction_id)
        .where(Participant.user_id == user_id)
    ).first()
    if participant is None:
        participant = Participant(auction_id=auction_id, user_id=user_id, role=role)
    else:
        participant.role = role
        participant.status = ParticipantStatus.ACTIVE
        participant.updated_at = now
    session.add(participant)

    wallet = ledger.get_wallet(session, auction_id, user_id)
    if wallet is None:
        wallet = Wallet(
            auction_id=auction_id,
            user_id=user_id,
            initial_amount=auction.initial_wallet_amount,
            current_balance=auction.initial_wallet_amount,
        )
        session.add(wallet)
    session.flush()
    return participant, wallet


# --- Admin controls ---

def start_session(session: Session, auction_id: int, now: datetime) -> SessionPlayer:
    auction = get_auction_or_raise(session, auction_id, for_update=True)
    if auction.status != SessionStatus.NOT_STARTED:
        raise StateConflict(
            f"Auction is already {auction.status.value}.",
            reason=errors.AUCTION_ALREADY_STARTED,
        )
    if terminator.remaining_player_count(session, auction_id) == 0:
        raise StateConflict("No players available to start the auction.", reason=errors.NO_PLAYERS_AVAILABLE)

    auction.status = SessionStatus.RUNNING
    auction.updated_at = now
    session.add(auction)

    live = rounds.start_next_round(session, auction, now)
    logger.info("Auction %s started", auction_id)
    return live


def pause_session(session: Session, auction_id: int, now: datetime) -> AuctionSession:
    auction = get_auction_or_raise(session, auction_id, for_update=True)
    if auction.status != SessionStatus.RUNNING:
        raise StateConflict(
            f"Cannot pause. Auction status is {auction.status.value}.",
            reason=errors.AUCTION_NOT_RUNNING,
        )
    auction.status = SessionStatus.PAUSED
    auction.updated_at = now
    session.add(auction)
    logger.info("Auction %s paused", auction_id)
    return auction


def resume_session(session: Session, auction_id: int, now: datetime) -> Optional[SessionPlayer]:
    """
    Resume a paused session.

    The live round, if any, gets a fresh full timer. When the round was closed
    during the pause the next player goes live instead, and the session ends
    if nothing is left.
    """
    auction = get_auction_or_raise(session, auction_id, for_update=True)
    if auction.status != SessionStatus.PAUSED:
        raise StateConflict(
            f"Cannot resume. Auction status is {auction.status.value}.",
            reason=errors.AUCTION_NOT_PAUSED,
        )

    auction.status = SessionStatus.RUNNING
    auction.updated_at = now
    session.add(auction)

    live = None
    if auction.current_live_session_player_id is not None:
        live = get_session_player(session, auction_id, auction.current_live_session_player_id, for_update=True)

    if live is not None and live.status == SessionPlayerStatus.LIVE:
        ends_at = now + timedelta(seconds=auction.bid_timer_seconds)
        auction.current_round_started_at = now
        auction.current_round_ends_at = ends_at
        live.live_started_at = now
        live.live_ends_at = ends_at
        live.updated_at = now
        session.add(live)
    else:
        live = rounds.start_next_round(session, auction, now)
        if live is None:
            terminator.maybe_end_auction(session, auction)

    logger.info("Auction %s resumed (status: %s)", auction_id, auction.status.value)
    return live


def end_session(session: Session, auction_id: int, now: datetime) -> AuctionSession:
    """End the session by admin decision; a live player goes back as UNSOLD."""
    auction = get_auction_or_raise(session, auction_id, for_update=True)
    if auction.status in TERMINAL_SESSION_STATUSES:
        return auction

    terminator.close_out_live_player(session, auction)
    auction.status = SessionStatus.ENDED
    auction.current_live_session_player_id = None
    auction.current_round_started_at = None
    auction.current_round_ends_at = None
    auction.updated_at = now
    session.add(auction)
    logger.info("Auction %s ended by admin", auction_id)
    return auction


def exit_participant(session: Session, auction_id: int, user_id: str, now: datetime) -> dict:
    """Voluntary exit, allowed once the squad holds at least ``min_exit_squad_size`` players."""
    auction = get_auction_or_raise(session, auction_id, for_update=True)
    participant = get_participant_or_raise(session, auction_id, user_id)

    if participant.status != ParticipantStatus.ACTIVE:
        raise StateConflict(
            f"Participant is already {participant.status.value}.",
            reason=errors.PARTICIPANT_NOT_ACTIVE,
        )

    size = ledger.squad_size(session, auction_id, user_id)
    if size < auction.min_exit_squad_size:
        raise StateConflict(
            f"You need at least {auction.min_exit_squad_size} players to end your auction.",
            reason=errors.SQUAD_TOO_SMALL_TO_EXIT,
            squad_size=size,
        )

    participant.status = ParticipantStatus.EXITED
    participant.updated_at = now
    session.add(participant)
    session.flush()

    auto_ended = terminator.maybe_end_auction(session, auction)
    logger.info("Auction %s: %s exited with %d players", auction_id, user_id, size)
    return {
        "auction_id": auction_id,
        "user_id": user_id,
        "status": ParticipantStatus.EXITED.value,
        "squad_size": size,
        "auto_ended": auto_ended,
    }


def resolve_participant(session: Session, auction_id: int, user_id: str) -> stuck.StuckResolution:
    """Run the stuck check for one participant on demand."""
    auction = get_auction_or_raise(session, auction_id, for_update=True)
    get_participant_or_raise(session, auction_id, user_id)
    return stuck.resolve_stuck(session, auction, user_id)
