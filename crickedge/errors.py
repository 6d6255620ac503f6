"""
Auction error taxonomy.

Every rejection carries a stable, machine-readable ``reason`` so clients can
map failures to UI messages without parsing prose. The HTTP layer turns these
into ``{"error": reason, "detail": message, ...}`` responses.
"""
from typing import Any, Optional


class AuctionError(Exception):
    status_code = 400
    default_reason = "AUCTION_ERROR"

    def __init__(self, message: str, reason: Optional[str] = None, **extra: Any):
        super().__init__(message)
        self.message = message
        self.reason = reason or self.default_reason
        self.extra = extra

    def to_dict(self) -> dict:
        return {"error": self.reason, "detail": self.message, **self.extra}


class ValidationFailed(AuctionError):
    """Missing or malformed input."""

    default_reason = "VALIDATION_ERROR"


class StateConflict(AuctionError):
    """The session, round or participant is in the wrong state."""

    default_reason = "STATE_CONFLICT"


class IntegrityViolation(AuctionError):
    """The change would break wallet non-negativity or a uniqueness rule."""

    status_code = 409
    default_reason = "INTEGRITY_VIOLATION"


class NotFound(AuctionError):
    status_code = 404
    default_reason = "NOT_FOUND"


class Forbidden(AuctionError):
    status_code = 403
    default_reason = "FORBIDDEN"


class BidRejected(StateConflict):
    """A bid failed validation; nothing was written."""

    default_reason = "BID_REJECTED"


# Bid rejection reasons
AUCTION_NOT_RUNNING = "AUCTION_NOT_RUNNING"
PLAYER_NOT_LIVE = "PLAYER_NOT_LIVE"
BID_TOO_LOW = "BID_TOO_LOW"
ROUND_EXPIRED = "ROUND_EXPIRED"
PARTICIPANT_NOT_REGISTERED = "PARTICIPANT_NOT_REGISTERED"
PARTICIPANT_NOT_ACTIVE = "PARTICIPANT_NOT_ACTIVE"
SQUAD_FULL = "SQUAD_FULL"
INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"

# Lifecycle and round control reasons
AUCTION_CLOSED = "AUCTION_CLOSED"
AUCTION_ALREADY_STARTED = "AUCTION_ALREADY_STARTED"
AUCTION_NOT_PAUSED = "AUCTION_NOT_PAUSED"
NO_PLAYERS_AVAILABLE = "NO_PLAYERS_AVAILABLE"
NO_LIVE_PLAYER = "NO_LIVE_PLAYER"
ROUND_IN_PROGRESS = "ROUND_IN_PROGRESS"
PLAYER_NOT_BIDDABLE = "PLAYER_NOT_BIDDABLE"
SQUAD_TOO_SMALL_TO_EXIT = "SQUAD_TOO_SMALL_TO_EXIT"

# Lookup reasons
AUCTION_NOT_FOUND = "AUCTION_NOT_FOUND"
POOL_PLAYER_NOT_FOUND = "POOL_PLAYER_NOT_FOUND"
SESSION_PLAYER_NOT_FOUND = "SESSION_PLAYER_NOT_FOUND"
PARTICIPANT_NOT_FOUND = "PARTICIPANT_NOT_FOUND"
WALLET_NOT_FOUND = "WALLET_NOT_FOUND"
PUSH_RULE_NOT_FOUND = "PUSH_RULE_NOT_FOUND"
