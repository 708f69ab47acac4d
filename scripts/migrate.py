#!/usr/bin/env python3
"""
Create or upgrade the dashboard database schema.

Usage:
    python scripts/migrate.py [path/to/isobel.db]

Without an argument the DATABASE_PATH environment variable (or .env) is
used. Safe to run repeatedly.
"""

import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from isobel.core.database import DatabaseManager
from isobel.core.logger import logger


def main() -> int:
    load_dotenv()

    if len(sys.argv) > 1:
        db_path = Path(sys.argv[1])
    else:
        db_path = Path(os.getenv("DATABASE_PATH", str(Path("data") / "isobel.db")))

    db = DatabaseManager(db_path)
    try:
        tables = [
            row["name"] for row in db.fetchall(
                "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name"
            )
        ]
        removed = db.cleanup_expired_sessions()
    finally:
        db.close()

    logger.tree("Migration Complete", [
        ("Database", str(db_path)),
        ("Tables", ", ".join(tables)),
        ("Expired Sessions Removed", str(removed)),
    ], emoji="🗄️")
    return 0


if __name__ == "__main__":
    sys.exit(main())
