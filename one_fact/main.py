"""Command-line entry point.

Fetches today's fact (or today's fact for ONE_FACT_CATEGORY) and prints it.
Environment variables are loaded from .env file.
"""

import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

# Load environment variables before any other imports that might need them
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


async def show_fact(category: str | None = None) -> None:
    """Fetch one fact and print it.

    Args:
        category: Category to fetch today's fact for. None means the daily fact.
    """
    from one_fact.client import FactClient

    async with FactClient() as client:
        if category:
            fact = await client.fetch_by_category(category)
        else:
            fact = await client.fetch_daily()

    print(f"[{fact.category or 'General'}] {fact.content}")
    if fact.source:
        print(f"Source: {fact.source}")


def main() -> None:
    """Application entry point.

    Set ONE_FACT_CATEGORY to fetch a category's fact instead of the daily one.
    """
    from one_fact.errors import FactServiceError

    category = os.getenv("ONE_FACT_CATEGORY") or None
    logger.info(f"Fetching {'daily fact' if category is None else category + ' fact'}")

    try:
        asyncio.run(show_fact(category))
    except FactServiceError as e:
        logger.error(f"Could not fetch a fact: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
