"""Command-line sync: ``python -m app.cli [full|products|locations|sales|inventory]``"""
import argparse
import asyncio
import logging
import sys

from app.db.database import SessionLocal
from app.services.sync_service import SYNC_TYPES, SyncService

logger = logging.getLogger("app.cli")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync Square data into the inventory database")
    parser.add_argument(
        "sync_type", nargs="?", default="full",
        help=f"one of: {', '.join(SYNC_TYPES)}",
    )
    return parser.parse_args(argv)


async def run_sync(sync_type: str) -> dict:
    db = SessionLocal()
    try:
        return await SyncService(db).run(sync_type)
    finally:
        db.close()


def main(argv=None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    args = parse_args(argv)
    if args.sync_type not in SYNC_TYPES:
        logger.error(f"Unknown sync type: {args.sync_type}")
        return 1
    try:
        summary = asyncio.run(run_sync(args.sync_type))
    except Exception as e:
        logger.error(f"{args.sync_type} sync failed: {e}", exc_info=True)
        return 1
    logger.info(f"{args.sync_type} sync finished: {summary}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
