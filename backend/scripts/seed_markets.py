import argparse

from loguru import logger

from odds_backend.core.config import get_settings
from odds_backend.db import init_db, session_scope
from odds_backend.repositories import MarketRepository


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the market catalogue if it is empty")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report the current market count without inserting anything",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    settings = get_settings()
    init_db()

    with session_scope() as session:
        repo = MarketRepository(session)
        if args.dry_run:
            logger.info("{} markets present in {}", repo.count_markets(), settings.database_url)
            return
        inserted = repo.seed_if_empty()

    if inserted:
        logger.info("Seeded {} markets into {}", inserted, settings.database_url)
    else:
        logger.info("Markets already present; nothing to seed")


if __name__ == "__main__":
    main()
