"""
Tests for bid validation and acceptance.

Every rejected bid must leave wallets, squads and the bid log untouched.
"""

from decimal import Decimal

import pytest
from sqlmodel import func, select

from crickedge.errors import BidRejected, Forbidden
from crickedge.models import Bid
from crickedge.models.enums import ParticipantStatus
from crickedge.services import ledger, rounds
from crickedge.services.queries import get_participant


def bid_count(session, auction_id):
    return session.exec(select(func.count(Bid.id)).where(Bid.auction_id == auction_id)).one()


class TestBidValidation:
    def test_bid_below_minimum_is_rejected(self, session, clock, started_auction):
        auction = started_auction()
        live_id = auction.current_live_session_player_id

        with pytest.raises(BidRejected) as exc:
            rounds.place_bid(session, auction.id, live_id, "alice", Decimal("5.2"), clock.now())

        assert exc.value.reason == "BID_TOO_LOW"
        assert exc.value.extra["min_required_bid"] == Decimal("5.5")
        assert bid_count(session, auction.id) == 0
        assert ledger.get_wallet(session, auction.id, "alice").current_balance == Decimal("120")
        assert ledger.squad_size(session, auction.id, "alice") == 0

    def test_next_bid_must_clear_increment(self, session, clock, started_auction):
        auction = started_auction()
        live_id = auction.current_live_session_player_id
        rounds.place_bid(session, auction.id, live_id, "alice", Decimal("6"), clock.now())

        with pytest.raises(BidRejected) as exc:
            rounds.place_bid(session, auction.id, live_id, "bob", Decimal("6.4"), clock.now())
        assert exc.value.extra["min_required_bid"] == Decimal("6.5")

        accepted = rounds.place_bid(session, auction.id, live_id, "bob", Decimal("6.5"), clock.now())
        assert accepted["last_highest_bid_user_id"] == "bob"
        assert accepted["min_next_bid_amount"] == Decimal("7.0")

    def test_only_the_live_player_takes_bids(self, session, clock, started_auction, players_of):
        auction = started_auction()
        other = players_of(auction.id)[1]

        with pytest.raises(BidRejected) as exc:
            rounds.place_bid(session, auction.id, other.id, "alice", Decimal("6"), clock.now())
        assert exc.value.reason == "PLAYER_NOT_LIVE"

    def test_bid_at_deadline_is_rejected(self, session, clock, started_auction):
        auction = started_auction()
        clock.advance(30)

        with pytest.raises(BidRejected) as exc:
            rounds.place_bid(
                session, auction.id, auction.current_live_session_player_id, "alice", Decimal("6"), clock.now()
            )
        assert exc.value.reason == "ROUND_EXPIRED"

    def test_unregistered_user_is_forbidden(self, session, clock, started_auction):
        auction = started_auction()

        with pytest.raises(Forbidden) as exc:
            rounds.place_bid(
                session, auction.id, auction.current_live_session_player_id, "mallory", Decimal("6"), clock.now()
            )
        assert exc.value.reason == "PARTICIPANT_NOT_REGISTERED"
        assert exc.value.status_code == 403

    def test_inactive_participant_is_rejected(self, session, clock, started_auction):
        auction = started_auction()
        participant = get_participant(session, auction.id, "alice")
        participant.status = ParticipantStatus.EXITED
        session.add(participant)
        session.commit()

        with pytest.raises(BidRejected) as exc:
            rounds.place_bid(
                session, auction.id, auction.current_live_session_player_id, "alice", Decimal("6"), clock.now()
            )
        assert exc.value.reason == "PARTICIPANT_NOT_ACTIVE"

    def test_full_squad_is_rejected(self, session, clock, started_auction, buy, players_of):
        auction = started_auction(max_squad_size=1, min_exit_squad_size=0)
        buy(auction, "alice", players_of(auction.id)[5], 5)
        session.commit()

        with pytest.raises(BidRejected) as exc:
            rounds.place_bid(
                session, auction.id, auction.current_live_session_player_id, "alice", Decimal("6"), clock.now()
            )
        assert exc.value.reason == "SQUAD_FULL"

    def test_bid_above_balance_is_rejected(self, session, clock, started_auction):
        auction = started_auction(initial_wallet_amount=Decimal("10"))

        with pytest.raises(BidRejected) as exc:
            rounds.place_bid(
                session, auction.id, auction.current_live_session_player_id, "alice", Decimal("11"), clock.now()
            )
        assert exc.value.reason == "INSUFFICIENT_BALANCE"
        assert exc.value.extra["current_balance"] == Decimal("10")


class TestBidAcceptance:
    def test_accepted_bid_is_logged_and_cached(self, session, clock, started_auction, players_of):
        auction = started_auction()
        live_id = auction.current_live_session_player_id

        accepted = rounds.place_bid(session, auction.id, live_id, "alice", Decimal("6"), clock.now())
        session.commit()

        assert accepted["last_highest_bid_amount"] == Decimal("6")
        assert accepted["min_next_bid_amount"] == Decimal("6.5")
        live = players_of(auction.id)[0]
        assert live.last_highest_bid_amount == Decimal("6")
        assert live.last_highest_bid_user_id == "alice"
        assert bid_count(session, auction.id) == 1
        # Money only moves when the round closes
        assert ledger.get_wallet(session, auction.id, "alice").current_balance == Decimal("120")

    def test_accepted_bids_strictly_increase(self, session, clock, started_auction):
        auction = started_auction()
        live_id = auction.current_live_session_player_id

        for user_id, amount in [("alice", "6"), ("bob", "6.5"), ("alice", "8"), ("bob", "8.5")]:
            rounds.place_bid(session, auction.id, live_id, user_id, Decimal(amount), clock.now())
            clock.advance(1)
        session.commit()

        amounts = session.exec(
            select(Bid.amount).where(Bid.auction_id == auction.id).order_by(Bid.id)
        ).all()
        assert all(later > earlier for earlier, later in zip(amounts, amounts[1:]))
