"""
Wallet ledger and squad accumulator.

The two tables move together: every debit inserts a squad row at the same
price and every forced release deletes one and credits it back, so for each
participant ``current_balance + SUM(purchase_price) == initial_amount``.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlmodel import Session, func, select

from crickedge import errors
from crickedge.errors import IntegrityViolation, NotFound
from crickedge.models import SessionPlayer, SquadPlayer, Wallet

logger = logging.getLogger(__name__)


def get_wallet(
    session: Session,
    auction_id: int,
    user_id: str,
    for_update: bool = False,
) -> Optional[Wallet]:
    statement = select(Wallet).where(Wallet.auction_id == auction_id, Wallet.user_id == user_id)
    if for_update:
        statement = statement.with_for_update().execution_options(populate_existing=True)
    return session.exec(statement).first()


def get_wallet_or_raise(
    session: Session,
    auction_id: int,
    user_id: str,
    for_update: bool = False,
) -> Wallet:
    wallet = get_wallet(session, auction_id, user_id, for_update=for_update)
    if wallet is None:
        raise NotFound(
            f"Wallet not found for user '{user_id}' in auction {auction_id}.",
            reason=errors.WALLET_NOT_FOUND,
        )
    return wallet


def squad_size(session: Session, auction_id: int, user_id: str) -> int:
    count = session.exec(
        select(func.count(SquadPlayer.id))
        .where(SquadPlayer.auction_id == auction_id)
        .where(SquadPlayer.user_id == user_id)
    ).one()
    return int(count or 0)


def squad_total(session: Session, auction_id: int, user_id: str) -> Decimal:
    total = session.exec(
        select(func.coalesce(func.sum(SquadPlayer.purchase_price), 0))
        .where(SquadPlayer.auction_id == auction_id)
        .where(SquadPlayer.user_id == user_id)
    ).one()
    return Decimal(str(total))


def purchase(
    session: Session,
    wallet: Wallet,
    session_player: SessionPlayer,
    price: Decimal,
    skill_type,
    category,
) -> SquadPlayer:
    """
    Debit the (locked) wallet and add the player to the buyer's squad.

    Raises IntegrityViolation when the debit would leave a negative balance.
    """
    new_balance = Decimal(wallet.current_balance) - Decimal(price)
    if new_balance < 0:
        raise IntegrityViolation(
            f"Wallet of '{wallet.user_id}' cannot cover {price} "
            f"(balance {wallet.current_balance}).",
            reason=errors.INSUFFICIENT_BALANCE,
        )

    wallet.current_balance = new_balance
    wallet.updated_at = datetime.now(timezone.utc)
    session.add(wallet)

    squad_player = SquadPlayer(
        auction_id=wallet.auction_id,
        user_id=wallet.user_id,
        session_player_id=session_player.id,
        purchase_price=price,
        skill_type=skill_type,
        category=category,
    )
    session.add(squad_player)
    return squad_player


def release(session: Session, wallet: Wallet, squad_player: SquadPlayer) -> Decimal:
    """Remove a squad row and credit its purchase price back. Returns the refund."""
    refund = Decimal(squad_player.purchase_price)
    wallet.current_balance = Decimal(wallet.current_balance) + refund
    wallet.updated_at = datetime.now(timezone.utc)
    session.add(wallet)
    session.delete(squad_player)
    return refund
