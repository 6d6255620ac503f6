"""
Service configuration - loads database and auction settings from environment variables.
"""
import os
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()

PGHOST = os.getenv("PGHOST")
PGUSER = os.getenv("PGUSER")
PGPORT = os.getenv("PGPORT", "5432")
PGDATABASE = os.getenv("PGDATABASE")
PGPASSWORD = os.getenv("PGPASSWORD")

if os.getenv("DATABASE_URL"):
    DATABASE_URL = os.environ["DATABASE_URL"]
elif all([PGHOST, PGUSER, PGDATABASE, PGPASSWORD]):
    DATABASE_URL = (
        f"postgresql://{PGUSER}:{PGPASSWORD}@{PGHOST}:{PGPORT}/{PGDATABASE}?sslmode=require"
    )
else:
    DATABASE_URL = "sqlite:///./crickedge_auction.db"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Cheapest base price a player can carry (Gold tier); drives the stuck check
MIN_BASE_PLAYER_PRICE = Decimal(os.getenv("MIN_BASE_PLAYER_PRICE", "5.5"))

# Background round-expiry poll
AUCTION_TIMER_ENABLED = _env_flag("AUCTION_TIMER_ENABLED", "true")
AUCTION_TIMER_INTERVAL_SECONDS = float(os.getenv("AUCTION_TIMER_INTERVAL_SECONDS", "1"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "*").split(",")
    if origin.strip()
]

# Defaults applied when a session is created without explicit configuration
DEFAULT_MAX_SQUAD_SIZE = 13
DEFAULT_MIN_EXIT_SQUAD_SIZE = 11
DEFAULT_INITIAL_WALLET_AMOUNT = Decimal("120")
DEFAULT_BID_TIMER_SECONDS = 30
DEFAULT_MIN_BID_INCREMENT = Decimal("0.5")
