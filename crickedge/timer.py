"""
Round expiry daemon.

Polls for RUNNING sessions whose live round deadline has passed and closes
each one in its own transaction. The close re-checks the deadline under the
session row lock, so a round already closed by an admin (or a second timer)
is skipped rather than settled twice.
"""
import logging
import threading
from datetime import datetime
from typing import Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from crickedge import config
from crickedge.clock import Clock, system_clock
from crickedge.database import atomic
from crickedge.models import AuctionSession
from crickedge.models.enums import SessionStatus
from crickedge.services import rounds

logger = logging.getLogger(__name__)


class AuctionTimer:
    def __init__(
        self,
        engine: Engine,
        clock: Clock = system_clock,
        interval_seconds: float = config.AUCTION_TIMER_INTERVAL_SECONDS,
    ):
        self.engine = engine
        self.clock = clock
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def expired_auction_ids(self, now: datetime) -> list[int]:
        with Session(self.engine) as session:
            return list(
                session.exec(
                    select(AuctionSession.id)
                    .where(AuctionSession.status == SessionStatus.RUNNING)
                    .where(AuctionSession.current_live_session_player_id.is_not(None))
                    .where(AuctionSession.current_round_ends_at <= now)
                    .order_by(AuctionSession.current_round_ends_at)
                ).all()
            )

    def tick(self, now: Optional[datetime] = None) -> list[rounds.RoundResult]:
        """Close every expired round once. Returns the rounds that were closed."""
        now = now or self.clock.now()
        closed = []
        for auction_id in self.expired_auction_ids(now):
            try:
                with Session(self.engine) as session, atomic(session):
                    result = rounds.close_live_round(session, auction_id, now, expired_only=True)
            except Exception:
                logger.exception("Auction timer failed to close round for auction %s", auction_id)
                continue
            if result is not None:
                closed.append(result)
        return closed

    def _run(self) -> None:
        logger.info("Auction timer started (interval %.2fs)", self.interval_seconds)
        while not self._stop.wait(self.interval_seconds):
            try:
                self.tick()
            except Exception:
                logger.exception("Auction timer poll failed")
        logger.info("Auction timer stopped")

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="auction-timer", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
