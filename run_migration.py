"""
Generic migration runner script
Usage: python run_migration.py <migration_file.sql>
"""
import logging
import sys
from pathlib import Path

from sqlalchemy import text

from spinbook.database import engine

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def strip_comment(line: str) -> str:
    """Drop a trailing '--' comment unless it sits inside a quoted literal"""
    in_quote = False
    for i, char in enumerate(line):
        if char == "'":
            in_quote = not in_quote
        elif not in_quote and line.startswith("--", i):
            return line[:i].rstrip()
    return line


def split_statements(sql: str) -> list[str]:
    """Strip '--' comments, then split on ';'"""
    body = "\n".join(strip_comment(line) for line in sql.splitlines())
    return [stmt.strip() for stmt in body.split(";") if stmt.strip()]


def run_migration(migration_file_path: str):
    """Run a SQL migration file"""
    migration_file = Path(migration_file_path)

    if not migration_file.exists():
        logger.error(f"Migration file not found: {migration_file}")
        sys.exit(1)

    logger.info(f"Reading migration file: {migration_file}")
    statements = split_statements(migration_file.read_text())
    logger.info(f"Found {len(statements)} SQL statements to execute")

    with engine.connect() as conn:
        for i, stmt in enumerate(statements, 1):
            logger.info(f"Executing statement {i}/{len(statements)}...")
            conn.execute(text(stmt))
        conn.commit()

    logger.info("✅ Migration completed successfully!")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        logger.error("Usage: python run_migration.py <migration_file.sql>")
        sys.exit(1)

    try:
        run_migration(sys.argv[1])
    except Exception as e:
        logger.error(f"❌ Migration failed: {e}")
        sys.exit(1)
