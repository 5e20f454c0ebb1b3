"""
Print the CPK stats payload for one user straight from the database.

Runs the same StatsService.cpk_stats the /stats/cpk endpoint serves, so a
mismatch between this output and the API points at the transport, not the
aggregation.

    python scripts/diagnose_cpk.py <user_id> --start 2024-03-01 --end 2024-03-31
"""
import argparse
import asyncio
import sys
from datetime import date
from pathlib import Path

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from findriver.core.config import settings
from findriver.core.exceptions import MetricsError
from findriver.db.mongo import close_mongo_connection, connect_to_mongo
from findriver.services.stats_service import StatsService


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Compute CPK stats for a user")
    parser.add_argument("user_id")
    parser.add_argument("--start", type=date.fromisoformat, help="YYYY-MM-DD")
    parser.add_argument("--end", type=date.fromisoformat, help="YYYY-MM-DD")
    parser.add_argument("--estimate-km", action="store_true", help="infer km from fuel spend")
    parser.add_argument("--bucket-tz", default=None, help=f"default {settings.BUCKET_TIMEZONE}")
    return parser.parse_args(argv)


async def run(args) -> int:
    print(f"Database: {settings.MONGODB_URL} / {settings.DATABASE_NAME}", file=sys.stderr)
    await connect_to_mongo()
    try:
        stats = await StatsService.cpk_stats(
            args.user_id,
            start_date=args.start,
            end_date=args.end,
            estimate_km=args.estimate_km,
            bucket_tz=args.bucket_tz
        )
    except MetricsError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    finally:
        await close_mongo_connection()

    print(stats.model_dump_json(by_alias=True, indent=2))
    return 0


def main(argv=None):
    return asyncio.run(run(parse_args(argv)))


if __name__ == "__main__":
    sys.exit(main())
