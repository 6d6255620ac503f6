"""Shared pytest fixtures for the auction service tests."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from crickedge.clock import Clock, get_clock
from crickedge.database import create_db_and_tables, get_session
from crickedge.main import app
from crickedge.models import PlayerPoolEntry, SessionPlayer
from crickedge.models.enums import ParticipantRole, SessionPlayerStatus
from crickedge.services import ledger, pool, sessions

START = datetime(2026, 3, 1, 18, 0, 0, tzinfo=timezone.utc)

POOL = [
    {"player_code": "P001", "player_name": "Virat Kohli", "country": "India",
     "skill_type": "Batsman", "category": "Legend", "base_price": Decimal("5")},
    {"player_code": "P002", "player_name": "Jasprit Bumrah", "country": "India",
     "skill_type": "Bowler", "category": "Platinum", "base_price": Decimal("5")},
    {"player_code": "P003", "player_name": "Ben Stokes", "country": "England",
     "skill_type": "Allrounder", "category": "Legend", "base_price": Decimal("5")},
    {"player_code": "P004", "player_name": "Jos Buttler", "country": "England",
     "skill_type": "WicketKeeper/Batsman", "category": "Platinum", "base_price": Decimal("5")},
    {"player_code": "P005", "player_name": "Rashid Khan", "country": "Afghanistan",
     "skill_type": "Bowler", "category": "Gold", "base_price": Decimal("5")},
    {"player_code": "P006", "player_name": "Kane Williamson", "country": "New Zealand",
     "skill_type": "Batsman", "category": "Gold", "base_price": Decimal("5")},
]


class ManualClock(Clock):
    """Clock that only moves when a test advances it."""

    def __init__(self, start: datetime = START):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> datetime:
        self.current = self.current + timedelta(seconds=seconds)
        return self.current


# =============================================================================
# Database / App Fixtures
# =============================================================================


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db_and_tables(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def client(engine, clock):
    """HTTP client bound to the test database; the lifespan (and its timer) is not run."""

    def _get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()


# =============================================================================
# Auction Fixtures
# =============================================================================


@pytest.fixture
def pool_players(session) -> list[PlayerPoolEntry]:
    pool.import_players(session, [dict(row) for row in POOL])
    session.commit()
    return sorted(pool.list_pool(session), key=lambda e: e.id)


@pytest.fixture
def make_auction(session, pool_players):
    """
    Factory for a committed NOT_STARTED auction.

    ``pool_player_ids`` limits the attached players (the whole pool by
    default); every id in ``users`` is registered as a PARTICIPANT.
    """

    def _make(users=("alice", "bob"), admin=None, pool_player_ids=None, name="Test Auction", **settings):
        auction, _ = sessions.create_session(
            session,
            name,
            use_entire_pool=pool_player_ids is None,
            **settings,
        )
        if pool_player_ids:
            sessions.attach_players(session, auction, pool_player_ids)
        for user_id in users:
            sessions.register_participant(session, auction.id, user_id)
        if admin:
            sessions.register_participant(session, auction.id, admin, ParticipantRole.ADMIN)
        session.commit()
        return auction

    return _make


@pytest.fixture
def started_auction(session, clock, make_auction):
    """Factory for a RUNNING auction with its first round live."""

    def _start(**kwargs):
        auction = make_auction(**kwargs)
        sessions.start_session(session, auction.id, clock.now())
        session.commit()
        return auction

    return _start


@pytest.fixture
def buy(session):
    """Record a sale directly through the ledger, bypassing bidding."""

    def _buy(auction, user_id, session_player, price):
        wallet = ledger.get_wallet(session, auction.id, user_id)
        entry = session.get(PlayerPoolEntry, session_player.pool_player_id)
        ledger.purchase(session, wallet, session_player, Decimal(price), entry.skill_type, entry.category)
        session_player.status = SessionPlayerStatus.SOLD
        session_player.final_bid_amount = Decimal(price)
        session_player.sold_to_user_id = user_id
        session.add(session_player)
        session.flush()
        return session_player

    return _buy


@pytest.fixture
def players_of(session):
    """Session players of an auction in attach order."""

    def _players(auction_id) -> list[SessionPlayer]:
        return session.exec(
            select(SessionPlayer).where(SessionPlayer.auction_id == auction_id).order_by(SessionPlayer.id)
        ).all()

    return _players
