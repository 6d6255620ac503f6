"""
Stuck-participant resolver.

A participant is stuck when their balance cannot cover the remaining squad
slots even at the cheapest base price:

    current_balance < (max_squad_size - squad_size) * min_player_price

Resolution releases the participant's most expensive players first (ties go
to the most recently acquired), refunding each purchase price and returning
the player to the session as RECLAIMED, until the condition clears or the
squad is empty.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlmodel import Session, select

from crickedge import config
from crickedge.models import AuctionSession, SessionPlayer, SquadPlayer
from crickedge.models.enums import ParticipantStatus, SessionPlayerStatus
from crickedge.services import ledger
from crickedge.services.queries import get_participant

logger = logging.getLogger(__name__)


@dataclass
class StuckResolution:
    user_id: str
    released_session_player_ids: list[int] = field(default_factory=list)
    refunded: Decimal = Decimal("0")
    final_balance: Optional[Decimal] = None
    final_squad_size: Optional[int] = None

    @property
    def released_count(self) -> int:
        return len(self.released_session_player_ids)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "released_count": self.released_count,
            "released_session_player_ids": self.released_session_player_ids,
            "refunded": self.refunded,
            "final_balance": self.final_balance,
            "final_squad_size": self.final_squad_size,
        }


def price_floor(auction: AuctionSession) -> Decimal:
    """The per-slot minimum used by the stuck check for this session."""
    if auction.min_player_price is not None:
        return Decimal(auction.min_player_price)
    return config.MIN_BASE_PLAYER_PRICE


def is_stuck(balance: Decimal, max_squad_size: int, current_squad_size: int, floor: Decimal) -> bool:
    remaining_slots = max_squad_size - current_squad_size
    if remaining_slots <= 0:
        return False
    return Decimal(balance) < remaining_slots * Decimal(floor)


def resolve_stuck(session: Session, auction: AuctionSession, user_id: str) -> StuckResolution:
    """
    Force divestiture for one participant of a (locked) session.

    Only ACTIVE participants are resolved. Always terminates: each pass
    removes one squad row and the loop stops when the squad is empty.
    """
    result = StuckResolution(user_id=user_id)

    participant = get_participant(session, auction.id, user_id)
    if participant is None or participant.status != ParticipantStatus.ACTIVE:
        return result

    wallet = ledger.get_wallet(session, auction.id, user_id, for_update=True)
    if wallet is None:
        return result

    squad = session.exec(
        select(SquadPlayer)
        .where(SquadPlayer.auction_id == auction.id)
        .where(SquadPlayer.user_id == user_id)
        .order_by(
            SquadPlayer.purchase_price.desc(),
            SquadPlayer.created_at.desc(),
            SquadPlayer.id.desc(),
        )
    ).all()

    floor = price_floor(auction)
    size = len(squad)

    for squad_player in squad:
        if not is_stuck(wallet.current_balance, auction.max_squad_size, size, floor):
            break

        session_player = session.exec(
            select(SessionPlayer)
            .where(SessionPlayer.id == squad_player.session_player_id)
            .with_for_update()
        ).first()

        result.refunded += ledger.release(session, wallet, squad_player)
        size -= 1

        if session_player is not None:
            session_player.status = SessionPlayerStatus.RECLAIMED
            session_player.final_bid_amount = None
            session_player.sold_to_user_id = None
            session_player.last_highest_bid_amount = None
            session_player.last_highest_bid_user_id = None
            session_player.live_started_at = None
            session_player.live_ends_at = None
            session_player.updated_at = datetime.now(timezone.utc)
            session.add(session_player)
            result.released_session_player_ids.append(session_player.id)

    result.final_balance = Decimal(wallet.current_balance)
    result.final_squad_size = size

    if result.released_count:
        logger.warning(
            "Auction %s: user %s was stuck, released %d player(s) for %s (balance now %s)",
            auction.id,
            user_id,
            result.released_count,
            result.refunded,
            result.final_balance,
        )
    return result
