#!/usr/bin/env python3
"""
Question Tree Schema Bootstrap
==============================
Creates the questions / question_options tables if they do not exist.

Usage:
    python scripts/init_schema.py
    python scripts/init_schema.py --database-url postgresql://...
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.questions import QuestionsConfig, QuestionStore, QuestionStoreError  # noqa: E402

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create the question tree tables")
    parser.add_argument("--database-url", help="Postgres DSN (defaults to DATABASE_URL / PG* env vars)")
    args = parser.parse_args(argv)

    database_url = args.database_url or QuestionsConfig.from_env().database_url
    store = QuestionStore(database_url)

    try:
        store.ensure_schema()
    except QuestionStoreError as e:
        logger.error(f"Schema bootstrap failed: {e}")
        return 1

    logger.info("Schema bootstrap complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
