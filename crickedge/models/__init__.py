"""
SQLModel models for the live player auction.
"""
from crickedge.models.player_pool import PlayerPoolEntry
from crickedge.models.auction_session import AuctionSession
from crickedge.models.session_player import SessionPlayer
from crickedge.models.participant import Participant
from crickedge.models.wallet import Wallet
from crickedge.models.squad_player import SquadPlayer
from crickedge.models.push_rule import PushRule
from crickedge.models.bid import Bid

__all__ = [
    "PlayerPoolEntry",
    "AuctionSession",
    "SessionPlayer",
    "Participant",
    "Wallet",
    "SquadPlayer",
    "PushRule",
    "Bid",
]
