import argparse
import asyncio
import logging
import sys

from backend.app.core.config import get_settings
from backend.app.core.logging_config import configure_logging
from backend.app.db.session import create_engine, create_tables

logger = logging.getLogger(__name__)


async def init_models(drop: bool = False):
    settings = get_settings()
    configure_logging(settings)
    engine = create_engine(settings)
    try:
        logger.info(f"Creating tables on {settings.DATABASE_ENGINE}...")
        # drop=True wipes every table first - DEV MODE ONLY
        await create_tables(engine, drop=drop)
        logger.info("Tables created successfully")
    except Exception as e:
        logger.error(f"Unable to create tables: {e}")
        raise
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the Strongbox tables")
    parser.add_argument("--drop", action="store_true", help="drop existing tables first")
    args = parser.parse_args()

    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    asyncio.run(init_models(drop=args.drop))
