"""
Player pool file loader - turns a CSV or JSON export into import rows.

Columns (CSV headers or JSON keys): player_code, player_name, country,
skill_type, category, base_price. JSON may be a list of rows or
{"players": [...]}.
"""
import json
import logging
from decimal import Decimal
from pathlib import Path

import pandas as pd

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["player_name", "country", "skill_type", "category", "base_price"]
TEXT_COLUMNS = ["player_code", "player_name", "country", "skill_type", "category"]


def read_pool_frame(path: Path) -> pd.DataFrame:
    """
    Read the file into a tidy DataFrame with the pool columns.

    Rows missing a required value or a numeric base price are dropped; when a
    player_code repeats, the last row wins.
    """
    path = Path(path)
    if path.suffix.lower() == ".csv":
        df = pd.read_csv(path, dtype=str)
    else:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        df = pd.DataFrame(data["players"] if isinstance(data, dict) else data)

    if df.empty:
        return pd.DataFrame(columns=["player_code"] + REQUIRED_COLUMNS)

    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing columns in {path.name}: {', '.join(missing)}")
    if "player_code" not in df.columns:
        df["player_code"] = None

    for c in TEXT_COLUMNS:
        df[c] = df[c].astype("string").str.strip().replace("", pd.NA)
    df["base_price"] = pd.to_numeric(df["base_price"], errors="coerce")

    before = len(df)
    df = df.dropna(subset=REQUIRED_COLUMNS)
    if len(df) < before:
        logger.warning("Skipped %d incomplete row(s) from %s", before - len(df), path.name)

    has_code = df["player_code"].notna()
    df = pd.concat(
        [df[has_code].drop_duplicates("player_code", keep="last"), df[~has_code]]
    ).sort_index()
    return df[["player_code"] + REQUIRED_COLUMNS]


def frame_to_rows(df: pd.DataFrame) -> list[dict]:
    rows = []
    for record in df.to_dict(orient="records"):
        rows.append(
            {
                "player_code": None if pd.isna(record["player_code"]) else str(record["player_code"]),
                "player_name": str(record["player_name"]),
                "country": str(record["country"]),
                "skill_type": str(record["skill_type"]),
                "category": str(record["category"]),
                "base_price": Decimal(str(record["base_price"])),
            }
        )
    return rows


def load_pool_file(path: Path) -> list[dict]:
    """Rows ready for ``pool.import_players``."""
    return frame_to_rows(read_pool_frame(path))
