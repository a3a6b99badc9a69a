# scripts/backfill.py
"""
Backfill the movement log one day at a time.
Safe to re-run: already stored movements are ignored.
Usage: python scripts/backfill.py 2025-01-01 [2025-01-31] [--delay 1.0]
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import argparse
import asyncio
from typing import Optional
from app.database import create_tables
from app.services.ingestion import FAILED, get_ingestion_job
from app.services.provider_client import get_provider_client
from app.utils.dates import today_string


async def backfill(start_date: str, end_date: str, delay: Optional[float]):
    try:
        return await get_ingestion_job().backfill(start_date, end_date, delay_seconds=delay)
    finally:
        await get_provider_client().aclose()


def main():
    parser = argparse.ArgumentParser(description="Backfill parking movements from the provider")
    parser.add_argument("start_date", help="First day, YYYY-MM-DD")
    parser.add_argument("end_date", nargs="?", default=None, help="Last day, YYYY-MM-DD (default: today)")
    parser.add_argument("--delay", type=float, default=None,
                        help="Seconds to wait between days (default: BACKFILL_DELAY_SECONDS)")
    args = parser.parse_args()

    end_date = args.end_date or today_string()
    print(f"📥 Backfill {args.start_date} ~ {end_date}")
    create_tables()

    outcome = asyncio.run(backfill(args.start_date, end_date, args.delay))
    print(f"   Fetched:      {outcome.fetched}")
    print(f"   New:          {outcome.inserted}")
    print(f"   Parked now:   {outcome.currently_parked}")
    if outcome.status == FAILED:
        print(f"❌ Stopped early — {outcome.error}")
        sys.exit(1)
    print("✅ Done")


if __name__ == "__main__":
    main()
