"""
Push rules router - admin directives that steer which players go live next.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlmodel import Session

from crickedge.database import atomic, get_session
from crickedge.models.enums import PlayerCategory, SkillType
from crickedge.services import sequencer
from crickedge.services.queries import get_auction_or_raise

router = APIRouter(prefix="/api/auction", tags=["push-rules"])


# --- Request Models ---

class CreatePushRuleRequest(BaseModel):
    skill_type: Optional[SkillType] = Field(default=None, description="Omit to match any skill")
    category: Optional[PlayerCategory] = Field(default=None, description="Omit to match any category")
    count: int = Field(gt=0, description="How many players this rule pushes")
    priority: Optional[int] = Field(default=None, ge=1, description="Lower runs first; defaults to last")


class UpdatePushRuleRequest(BaseModel):
    is_active: Optional[bool] = None
    remaining_count: Optional[int] = Field(default=None, ge=0)
    priority: Optional[int] = Field(default=None, ge=1)


# --- Endpoints ---

@router.post("/sessions/{auction_id}/push-rules")
def create_push_rule(
    auction_id: int,
    request: CreatePushRuleRequest,
    session: Session = Depends(get_session),
):
    with atomic(session):
        get_auction_or_raise(session, auction_id, for_update=True)
        rule = sequencer.create_rule(
            session,
            auction_id,
            request.count,
            skill_type=request.skill_type,
            category=request.category,
            priority=request.priority,
        )
        session.flush()
        payload = sequencer.rule_to_dict(rule)
    return payload


@router.get("/sessions/{auction_id}/push-rules")
def list_push_rules(
    auction_id: int,
    session: Session = Depends(get_session),
):
    get_auction_or_raise(session, auction_id)
    rules = sequencer.list_rules(session, auction_id)
    return {"auction_id": auction_id, "rules": [sequencer.rule_to_dict(r) for r in rules]}


@router.patch("/push-rules/{rule_id}")
def update_push_rule(
    rule_id: int,
    request: UpdatePushRuleRequest,
    session: Session = Depends(get_session),
):
    with atomic(session):
        rule = sequencer.update_rule(
            session,
            rule_id,
            is_active=request.is_active,
            remaining_count=request.remaining_count,
            priority=request.priority,
        )
        payload = sequencer.rule_to_dict(rule)
    return payload


@router.delete("/push-rules/{rule_id}")
def delete_push_rule(
    rule_id: int,
    session: Session = Depends(get_session),
):
    with atomic(session):
        sequencer.delete_rule(session, rule_id)
    return {"rule_id": rule_id, "deleted": True}
