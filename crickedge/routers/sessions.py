"""
Sessions router - auction session setup, participants and admin lifecycle controls.
"""
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlmodel import Session

from crickedge import config
from crickedge.clock import Clock, get_clock
from crickedge.database import atomic, get_session
from crickedge.models.enums import ParticipantRole, PlayerCategory, SessionPlayerStatus, SessionStatus, SkillType
from crickedge.services import reports, sessions
from crickedge.services.queries import get_auction_or_raise

router = APIRouter(prefix="/api/auction/sessions", tags=["sessions"])


# --- Request Models ---

class CreateSessionRequest(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    max_squad_size: int = Field(default=config.DEFAULT_MAX_SQUAD_SIZE, ge=1)
    min_exit_squad_size: int = Field(default=config.DEFAULT_MIN_EXIT_SQUAD_SIZE, ge=0)
    initial_wallet_amount: Decimal = Field(default=config.DEFAULT_INITIAL_WALLET_AMOUNT, ge=0, max_digits=10, decimal_places=2)
    bid_timer_seconds: int = Field(default=config.DEFAULT_BID_TIMER_SECONDS, ge=1)
    min_bid_increment: Decimal = Field(default=config.DEFAULT_MIN_BID_INCREMENT, gt=0, max_digits=10, decimal_places=2)
    min_player_price: Optional[Decimal] = Field(
        default=None,
        ge=0,
        max_digits=10,
        decimal_places=2,
        description="Per-slot floor for the stuck check; the service default applies when omitted",
    )
    use_entire_pool: bool = True


class AttachPlayersRequest(BaseModel):
    pool_player_ids: Optional[list[int]] = Field(default=None, description="Omit to attach every active pool player")


class RegisterParticipantRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=64)
    role: ParticipantRole = ParticipantRole.PARTICIPANT


# --- Endpoints ---

@router.post("")
def create_session(
    request: CreateSessionRequest,
    session: Session = Depends(get_session),
):
    with atomic(session):
        auction, attached = sessions.create_session(session, **request.model_dump())
        payload = reports.session_to_dict(auction)
    payload["attached_players"] = attached
    return payload


@router.get("")
def list_sessions(
    status: Optional[SessionStatus] = None,
    session: Session = Depends(get_session),
):
    return {"sessions": reports.list_sessions(session, status)}


@router.post("/{auction_id}/attach-players")
def attach_players(
    auction_id: int,
    request: AttachPlayersRequest,
    session: Session = Depends(get_session),
):
    with atomic(session):
        auction = get_auction_or_raise(session, auction_id, for_update=True)
        attached = sessions.attach_players(session, auction, request.pool_player_ids)
    return {"auction_id": auction_id, "attached_players": attached}


@router.get("/{auction_id}/players")
def list_session_players(
    auction_id: int,
    status: Optional[SessionPlayerStatus] = None,
    skill_type: Optional[SkillType] = None,
    category: Optional[PlayerCategory] = None,
    session: Session = Depends(get_session),
):
    players = reports.list_session_players(session, auction_id, status, skill_type, category)
    return {"auction_id": auction_id, "count": len(players), "players": players}


# --- Participants ---

@router.post("/{auction_id}/participants")
def register_participant(
    auction_id: int,
    request: RegisterParticipantRequest,
    session: Session = Depends(get_session),
):
    with atomic(session):
        participant, wallet = sessions.register_participant(session, auction_id, request.user_id, request.role)
        payload = {
            "auction_id": auction_id,
            **reports.participant_to_dict(participant),
            "wallet": reports.wallet_to_dict(wallet),
        }
    return payload


@router.get("/{auction_id}/participants")
def list_participants(
    auction_id: int,
    session: Session = Depends(get_session),
):
    return {"auction_id": auction_id, "participants": reports.participants_overview(session, auction_id)}


@router.get("/{auction_id}/participants/{user_id}/squad")
def get_participant_squad(
    auction_id: int,
    user_id: str,
    session: Session = Depends(get_session),
):
    return reports.participant_squad(session, auction_id, user_id)


@router.post("/{auction_id}/participants/{user_id}/exit")
def exit_participant(
    auction_id: int,
    user_id: str,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    """Leave the auction early; requires at least min_exit_squad_size players."""
    with atomic(session):
        result = sessions.exit_participant(session, auction_id, user_id, clock.now())
    return result


@router.post("/{auction_id}/participants/{user_id}/resolve-stuck")
def resolve_stuck_participant(
    auction_id: int,
    user_id: str,
    session: Session = Depends(get_session),
):
    with atomic(session):
        resolution = sessions.resolve_participant(session, auction_id, user_id)
    return {"auction_id": auction_id, **resolution.to_dict()}


# --- Admin lifecycle ---

@router.post("/{auction_id}/start")
def start_session(
    auction_id: int,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    with atomic(session):
        live = sessions.start_session(session, auction_id, clock.now())
        payload = {
            "auction_id": auction_id,
            "status": SessionStatus.RUNNING.value,
            "live_player": reports.describe_session_player(session, live),
            "round_ends_at": live.live_ends_at,
        }
    return payload


@router.post("/{auction_id}/pause")
def pause_session(
    auction_id: int,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    with atomic(session):
        auction = sessions.pause_session(session, auction_id, clock.now())
        payload = {"auction_id": auction_id, "status": auction.status.value}
    return payload


@router.post("/{auction_id}/resume")
def resume_session(
    auction_id: int,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    with atomic(session):
        live = sessions.resume_session(session, auction_id, clock.now())
        auction = get_auction_or_raise(session, auction_id)
        payload = {
            "auction_id": auction_id,
            "status": auction.status.value,
            "live_player": reports.describe_session_player(session, live),
            "round_ends_at": live.live_ends_at if live else None,
        }
    return payload


@router.post("/{auction_id}/end")
def end_session(
    auction_id: int,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    with atomic(session):
        auction = sessions.end_session(session, auction_id, clock.now())
        payload = {"auction_id": auction_id, "status": auction.status.value}
    return payload


@router.get("/{auction_id}/summary")
def get_summary(
    auction_id: int,
    session: Session = Depends(get_session),
):
    return reports.summary(session, auction_id)
