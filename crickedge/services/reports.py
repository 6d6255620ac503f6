"""
Read models for the auction screens: session lists, live state, squads and summaries.
"""
from collections import Counter
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlmodel import Session, func, select

from crickedge.clock import ensure_utc, seconds_remaining
from crickedge.models import AuctionSession, Bid, Participant, PlayerPoolEntry, SessionPlayer, SquadPlayer, Wallet
from crickedge.models.enums import (
    ParticipantRole,
    ParticipantStatus,
    PlayerCategory,
    SessionPlayerStatus,
    SessionStatus,
    SkillType,
)
from crickedge.services import ledger
from crickedge.services.queries import get_auction_or_raise, get_participant, get_participant_or_raise
from crickedge.services.rounds import minimum_required_bid


# --- Serializers ---

def session_to_dict(auction: AuctionSession) -> dict:
    return {
        "auction_id": auction.id,
        "name": auction.name,
        "status": auction.status.value,
        "max_squad_size": auction.max_squad_size,
        "min_exit_squad_size": auction.min_exit_squad_size,
        "initial_wallet_amount": auction.initial_wallet_amount,
        "bid_timer_seconds": auction.bid_timer_seconds,
        "min_bid_increment": auction.min_bid_increment,
        "min_player_price": auction.min_player_price,
        "current_live_session_player_id": auction.current_live_session_player_id,
        "current_round_started_at": ensure_utc(auction.current_round_started_at),
        "current_round_ends_at": ensure_utc(auction.current_round_ends_at),
        "created_at": auction.created_at,
    }


def session_player_to_dict(session_player: SessionPlayer, entry: PlayerPoolEntry) -> dict:
    return {
        "session_player_id": session_player.id,
        "pool_player_id": entry.id,
        "player_code": entry.player_code,
        "player_name": entry.player_name,
        "country": entry.country,
        "skill_type": entry.skill_type.value,
        "category": entry.category.value,
        "base_price": entry.base_price,
        "status": session_player.status.value,
        "final_bid_amount": session_player.final_bid_amount,
        "sold_to_user_id": session_player.sold_to_user_id,
        "last_highest_bid_amount": session_player.last_highest_bid_amount,
        "last_highest_bid_user_id": session_player.last_highest_bid_user_id,
    }


def describe_session_player(session: Session, session_player: Optional[SessionPlayer]) -> Optional[dict]:
    if session_player is None:
        return None
    return session_player_to_dict(session_player, session.get(PlayerPoolEntry, session_player.pool_player_id))


def wallet_to_dict(wallet: Optional[Wallet]) -> Optional[dict]:
    if wallet is None:
        return None
    return {
        "initial_amount": wallet.initial_amount,
        "current_balance": wallet.current_balance,
        "spent": Decimal(wallet.initial_amount) - Decimal(wallet.current_balance),
    }


def participant_to_dict(participant: Participant) -> dict:
    return {
        "user_id": participant.user_id,
        "role": participant.role.value,
        "status": participant.status.value,
        "joined_at": participant.created_at,
    }


# --- Sessions ---

def list_sessions(session: Session, status: Optional[SessionStatus] = None) -> list[dict]:
    """All sessions, newest first, each with its player counts by status."""
    statement = select(AuctionSession)
    if status is not None:
        statement = statement.where(AuctionSession.status == status)
    auctions = session.exec(statement.order_by(AuctionSession.created_at.desc(), AuctionSession.id.desc())).all()

    counts_rows = session.exec(
        select(SessionPlayer.auction_id, SessionPlayer.status, func.count(SessionPlayer.id))
        .group_by(SessionPlayer.auction_id, SessionPlayer.status)
    ).all()
    counts: dict[int, Counter] = {}
    for auction_id, player_status, count in counts_rows:
        counts.setdefault(auction_id, Counter())[player_status.value] = count

    sessions = []
    for auction in auctions:
        by_status = counts.get(auction.id, Counter())
        item = session_to_dict(auction)
        item["total_players"] = sum(by_status.values())
        item["player_counts"] = {s.value: by_status.get(s.value, 0) for s in SessionPlayerStatus}
        sessions.append(item)
    return sessions


def list_session_players(
    session: Session,
    auction_id: int,
    status: Optional[SessionPlayerStatus] = None,
    skill_type: Optional[SkillType] = None,
    category: Optional[PlayerCategory] = None,
) -> list[dict]:
    get_auction_or_raise(session, auction_id)
    statement = (
        select(SessionPlayer, PlayerPoolEntry)
        .join(PlayerPoolEntry, PlayerPoolEntry.id == SessionPlayer.pool_player_id)
        .where(SessionPlayer.auction_id == auction_id)
    )
    if status is not None:
        statement = statement.where(SessionPlayer.status == status)
    if skill_type is not None:
        statement = statement.where(PlayerPoolEntry.skill_type == skill_type)
    if category is not None:
        statement = statement.where(PlayerPoolEntry.category == category)
    rows = session.exec(statement.order_by(SessionPlayer.created_at, SessionPlayer.id)).all()
    return [session_player_to_dict(sp, entry) for sp, entry in rows]


# --- Live state ---

def live_state(session: Session, auction_id: int, now: datetime, user_id: Optional[str] = None) -> dict:
    """
    Snapshot of the session and its live round.

    With ``user_id`` the response also carries that participant's wallet,
    squad size and whether they may bid right now.
    """
    auction = get_auction_or_raise(session, auction_id)
    state = {
        "auction_id": auction.id,
        "name": auction.name,
        "status": auction.status.value,
        "bid_timer_seconds": auction.bid_timer_seconds,
        "min_bid_increment": auction.min_bid_increment,
        "live_player": None,
        "round_started_at": ensure_utc(auction.current_round_started_at),
        "round_ends_at": ensure_utc(auction.current_round_ends_at),
        "time_remaining_seconds": None,
        "min_next_bid_amount": None,
        "server_time": now,
    }

    live = None
    if auction.current_live_session_player_id is not None:
        live = session.get(SessionPlayer, auction.current_live_session_player_id)
    if live is not None and live.status == SessionPlayerStatus.LIVE:
        entry = session.get(PlayerPoolEntry, live.pool_player_id)
        state["live_player"] = session_player_to_dict(live, entry)
        state["time_remaining_seconds"] = seconds_remaining(auction.current_round_ends_at, now)
        state["min_next_bid_amount"] = minimum_required_bid(auction, live, Decimal(entry.base_price))
    else:
        live = None

    if user_id:
        participant = get_participant(session, auction_id, user_id)
        size = ledger.squad_size(session, auction_id, user_id)
        wallet = ledger.get_wallet(session, auction_id, user_id)
        state["user_context"] = {
            "user_id": user_id,
            "registered": participant is not None,
            "participant_status": participant.status.value if participant else None,
            "wallet": wallet_to_dict(wallet),
            "squad_size": size,
            "max_squad_size": auction.max_squad_size,
            "can_bid": bool(
                participant is not None
                and participant.status == ParticipantStatus.ACTIVE
                and auction.status == SessionStatus.RUNNING
                and live is not None
                and size < auction.max_squad_size
            ),
        }
    return state


# --- Participants ---

def participants_overview(session: Session, auction_id: int) -> list[dict]:
    get_auction_or_raise(session, auction_id)
    participants = session.exec(
        select(Participant)
        .where(Participant.auction_id == auction_id)
        .order_by(Participant.created_at, Participant.id)
    ).all()
    wallets = {
        w.user_id: w
        for w in session.exec(select(Wallet).where(Wallet.auction_id == auction_id)).all()
    }
    sizes = dict(
        session.exec(
            select(SquadPlayer.user_id, func.count(SquadPlayer.id))
            .where(SquadPlayer.auction_id == auction_id)
            .group_by(SquadPlayer.user_id)
        ).all()
    )

    overview = []
    for participant in participants:
        item = participant_to_dict(participant)
        item["wallet"] = wallet_to_dict(wallets.get(participant.user_id))
        item["squad_size"] = sizes.get(participant.user_id, 0)
        overview.append(item)
    return overview


def participant_squad(session: Session, auction_id: int, user_id: str) -> dict:
    auction = get_auction_or_raise(session, auction_id)
    participant = get_participant_or_raise(session, auction_id, user_id)
    rows = session.exec(
        select(SquadPlayer, PlayerPoolEntry)
        .join(SessionPlayer, SessionPlayer.id == SquadPlayer.session_player_id)
        .join(PlayerPoolEntry, PlayerPoolEntry.id == SessionPlayer.pool_player_id)
        .where(SquadPlayer.auction_id == auction_id)
        .where(SquadPlayer.user_id == user_id)
        .order_by(SquadPlayer.created_at, SquadPlayer.id)
    ).all()

    players = [
        {
            "session_player_id": squad_player.session_player_id,
            "player_name": entry.player_name,
            "country": entry.country,
            "skill_type": squad_player.skill_type.value,
            "category": squad_player.category.value,
            "purchase_price": squad_player.purchase_price,
            "acquired_at": squad_player.created_at,
        }
        for squad_player, entry in rows
    ]
    by_skill = Counter(p["skill_type"] for p in players)
    return {
        **participant_to_dict(participant),
        "auction_id": auction_id,
        "wallet": wallet_to_dict(ledger.get_wallet(session, auction_id, user_id)),
        "squad_size": len(players),
        "max_squad_size": auction.max_squad_size,
        "min_exit_squad_size": auction.min_exit_squad_size,
        "skill_breakdown": dict(by_skill),
        "players": players,
    }


# --- Bids ---

def bid_to_dict(bid: Bid) -> dict:
    return {
        "bid_id": bid.id,
        "session_player_id": bid.session_player_id,
        "user_id": bid.user_id,
        "amount": bid.amount,
        "is_winning": bid.is_winning,
        "created_at": bid.created_at,
    }


def bid_history(
    session: Session,
    auction_id: int,
    session_player_id: Optional[int] = None,
    user_id: Optional[str] = None,
    limit: int = 100,
) -> list[dict]:
    """Most recent bids first."""
    get_auction_or_raise(session, auction_id)
    statement = select(Bid).where(Bid.auction_id == auction_id)
    if session_player_id is not None:
        statement = statement.where(Bid.session_player_id == session_player_id)
    if user_id:
        statement = statement.where(Bid.user_id == user_id)
    bids = session.exec(statement.order_by(Bid.created_at.desc(), Bid.id.desc()).limit(limit)).all()
    return [bid_to_dict(b) for b in bids]


# --- Summary ---

def summary(session: Session, auction_id: int, top: int = 5) -> dict:
    auction = get_auction_or_raise(session, auction_id)

    player_counts = Counter(
        {
            player_status.value: count
            for player_status, count in session.exec(
                select(SessionPlayer.status, func.count(SessionPlayer.id))
                .where(SessionPlayer.auction_id == auction_id)
                .group_by(SessionPlayer.status)
            ).all()
        }
    )
    participant_counts = Counter(
        {
            participant_status.value: count
            for participant_status, count in session.exec(
                select(Participant.status, func.count(Participant.id))
                .where(Participant.auction_id == auction_id)
                .where(Participant.role == ParticipantRole.PARTICIPANT)
                .group_by(Participant.status)
            ).all()
        }
    )

    spenders = session.exec(
        select(
            SquadPlayer.user_id,
            func.sum(SquadPlayer.purchase_price).label("spent"),
            func.count(SquadPlayer.id).label("players"),
        )
        .where(SquadPlayer.auction_id == auction_id)
        .group_by(SquadPlayer.user_id)
        .order_by(func.sum(SquadPlayer.purchase_price).desc(), SquadPlayer.user_id)
        .limit(top)
    ).all()

    sold = session.exec(
        select(SessionPlayer, PlayerPoolEntry)
        .join(PlayerPoolEntry, PlayerPoolEntry.id == SessionPlayer.pool_player_id)
        .where(SessionPlayer.auction_id == auction_id)
        .where(SessionPlayer.status == SessionPlayerStatus.SOLD)
        .order_by(SessionPlayer.updated_at, SessionPlayer.id)
    ).all()

    return {
        "auction": session_to_dict(auction),
        "players": {
            "total": sum(player_counts.values()),
            **{s.value.lower(): player_counts.get(s.value, 0) for s in SessionPlayerStatus},
        },
        "participants": {
            "total": sum(participant_counts.values()),
            **{s.value.lower(): participant_counts.get(s.value, 0) for s in ParticipantStatus},
        },
        "top_spenders": [
            {"user_id": user_id, "spent": Decimal(str(spent)), "players": players}
            for user_id, spent, players in spenders
        ],
        "sold_players": [
            {
                "session_player_id": sp.id,
                "player_name": entry.player_name,
                "skill_type": entry.skill_type.value,
                "category": entry.category.value,
                "sold_to_user_id": sp.sold_to_user_id,
                "final_bid_amount": sp.final_bid_amount,
            }
            for sp, entry in sold
        ],
    }
