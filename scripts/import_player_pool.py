"""
Seed the auction player pool from a CSV or JSON file.

Usage:  python scripts/import_player_pool.py data/players.csv
"""
import logging
import sys
from pathlib import Path

from sqlmodel import Session

from crickedge.database import atomic, create_db_and_tables, engine
from crickedge.services import pool
from crickedge.services.pool_loader import load_pool_file

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def import_pool(path: Path) -> dict:
    """Upsert the file's players into the pool. Returns the import counts."""
    rows = load_pool_file(path)
    with Session(engine) as session, atomic(session):
        return pool.import_players(session, rows)


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else PROJECT_ROOT / "data" / "players.csv"

    print("Creating database tables...")
    create_db_and_tables()

    print(f"Importing player pool from {path}...")
    counts = import_pool(path)
    print(f"Done! {counts['inserted']} inserted, {counts['updated']} updated.")


if __name__ == "__main__":
    main()
