"""
Rounds router - live round state, bidding and round control.
"""
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlmodel import Session

from crickedge import errors
from crickedge.clock import Clock, get_clock
from crickedge.database import atomic, get_session
from crickedge.errors import StateConflict
from crickedge.services import reports, rounds
from crickedge.services.queries import get_auction_or_raise

router = APIRouter(prefix="/api/auction/sessions", tags=["rounds"])


# --- Request Models ---

class PlaceBidRequest(BaseModel):
    session_player_id: int
    user_id: str = Field(min_length=1, max_length=64)
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)


class CloseRoundRequest(BaseModel):
    session_player_id: Optional[int] = Field(default=None, description="The round the caller means to close")


class StartRoundRequest(BaseModel):
    session_player_id: Optional[int] = Field(default=None, description="Omit to let the sequencer pick")


# --- Endpoints ---

@router.get("/{auction_id}/live")
def get_live_state(
    auction_id: int,
    user_id: Optional[str] = Query(default=None, description="Adds wallet and eligibility for this user"),
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    return reports.live_state(session, auction_id, clock.now(), user_id)


@router.post("/{auction_id}/bids")
def place_bid(
    auction_id: int,
    request: PlaceBidRequest,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    with atomic(session):
        accepted = rounds.place_bid(
            session,
            auction_id,
            request.session_player_id,
            request.user_id.strip(),
            request.amount,
            clock.now(),
        )
    return accepted


@router.get("/{auction_id}/bids")
def list_bids(
    auction_id: int,
    session_player_id: Optional[int] = None,
    user_id: Optional[str] = None,
    limit: int = Query(default=100, ge=1, le=500),
    session: Session = Depends(get_session),
):
    bids = reports.bid_history(session, auction_id, session_player_id, user_id, limit)
    return {"auction_id": auction_id, "count": len(bids), "bids": bids}


@router.post("/{auction_id}/live/close")
def close_live_round(
    auction_id: int,
    request: Optional[CloseRoundRequest] = None,
    advance: bool = Query(default=True, description="Start the next round after closing"),
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    """
    Force-resolve the live round now, regardless of the deadline.

    Naming the session_player_id makes the close safe to retry: if that round
    was already closed (by the timer, say) nothing else is touched.
    """
    expected_id = request.session_player_id if request is not None else None
    with atomic(session):
        result = rounds.close_live_round(
            session,
            auction_id,
            clock.now(),
            auto_advance=advance,
            expected_session_player_id=expected_id,
        )
        if result is None:
            raise StateConflict("There is no live player to close.", reason=errors.NO_LIVE_PLAYER)
    return result.to_dict()


@router.post("/{auction_id}/next-player")
def start_next_player(
    auction_id: int,
    request: Optional[StartRoundRequest] = None,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    """
    Put the next player on the block.

    Without a session_player_id the sequencer picks (push rules first, then
    oldest pending); the session ends when nothing is left.
    """
    now = clock.now()
    with atomic(session):
        if request is not None and request.session_player_id is not None:
            auction = get_auction_or_raise(session, auction_id, for_update=True)
            live = rounds.start_round(session, auction, request.session_player_id, now)
        else:
            live = rounds.advance(session, auction_id, now)
            auction = get_auction_or_raise(session, auction_id)
        payload = {
            "auction_id": auction_id,
            "status": auction.status.value,
            "live_player": reports.describe_session_player(session, live),
            "round_ends_at": live.live_ends_at if live else None,
        }
    return payload
