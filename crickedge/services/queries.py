"""
Row lookups shared by the auction services.

``for_update=True`` takes a row lock (``SELECT ... FOR UPDATE``) and reloads
the row from the database so cached state is never read stale. Mutating
paths always lock the session row first; that lock serialises all money and
round changes within one auction.
"""
from typing import Optional

from sqlmodel import Session, select

from crickedge import errors
from crickedge.errors import NotFound
from crickedge.models import AuctionSession, Participant, PlayerPoolEntry, SessionPlayer


def _lock(statement, for_update: bool):
    if for_update:
        return statement.with_for_update().execution_options(populate_existing=True)
    return statement


def get_auction_or_raise(session: Session, auction_id: int, for_update: bool = False) -> AuctionSession:
    auction = session.exec(
        _lock(select(AuctionSession).where(AuctionSession.id == auction_id), for_update)
    ).first()
    if auction is None:
        raise NotFound(f"Auction session {auction_id} not found.", reason=errors.AUCTION_NOT_FOUND)
    return auction


def get_session_player(
    session: Session,
    auction_id: int,
    session_player_id: int,
    for_update: bool = False,
) -> Optional[SessionPlayer]:
    return session.exec(
        _lock(
            select(SessionPlayer)
            .where(SessionPlayer.id == session_player_id)
            .where(SessionPlayer.auction_id == auction_id),
            for_update,
        )
    ).first()


def get_pool_entry(session: Session, pool_player_id: int) -> PlayerPoolEntry:
    entry = session.get(PlayerPoolEntry, pool_player_id)
    if entry is None:
        raise NotFound(f"Pool player {pool_player_id} not found.", reason=errors.POOL_PLAYER_NOT_FOUND)
    return entry


def get_participant(session: Session, auction_id: int, user_id: str) -> Optional[Participant]:
    return session.exec(
        select(Participant)
        .where(Participant.auction_id == auction_id)
        .where(Participant.user_id == user_id)
    ).first()


def get_participant_or_raise(session: Session, auction_id: int, user_id: str) -> Participant:
    participant = get_participant(session, auction_id, user_id)
    if participant is None:
        raise NotFound(
            f"User '{user_id}' is not registered in auction {auction_id}.",
            reason=errors.PARTICIPANT_NOT_FOUND,
        )
    return participant
