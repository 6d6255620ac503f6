"""
Enumerated values shared by the auction tables and request schemas.
"""
from enum import Enum


class SkillType(str, Enum):
    BATSMAN = "Batsman"
    BOWLER = "Bowler"
    ALLROUNDER = "Allrounder"
    WICKETKEEPER_BATSMAN = "WicketKeeper/Batsman"


class PlayerCategory(str, Enum):
    LEGEND = "Legend"
    PLATINUM = "Platinum"
    GOLD = "Gold"


class SessionStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    ENDED = "ENDED"
    COMPLETED = "COMPLETED"


class SessionPlayerStatus(str, Enum):
    PENDING = "PENDING"
    LIVE = "LIVE"
    SOLD = "SOLD"
    UNSOLD = "UNSOLD"
    RECLAIMED = "RECLAIMED"


class ParticipantRole(str, Enum):
    PARTICIPANT = "PARTICIPANT"
    ADMIN = "ADMIN"


class ParticipantStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    EXITED = "EXITED"


# Session players that can still be put up for bidding
BIDDABLE_STATUSES = (SessionPlayerStatus.PENDING, SessionPlayerStatus.RECLAIMED)

# Sessions that no longer accept any round activity
TERMINAL_SESSION_STATUSES = (SessionStatus.ENDED, SessionStatus.COMPLETED)
