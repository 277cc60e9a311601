"""
Database migration system for gridgame.
Handles index creation on top of the tables SQLModel creates.
"""

from sqlmodel import SQLModel, Field, text, Session, select
from typing import Optional
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)


class Migration(SQLModel, table=True):
    """Track applied migrations"""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    applied_at: datetime


MIGRATIONS = [
    (
        "001_move_log_indexes",
        """
        -- Move log is read by game, ordered by move number
        CREATE INDEX IF NOT EXISTS idx_move_game_number ON move(game_id, move_number);
        CREATE INDEX IF NOT EXISTS idx_move_game_player ON move(game_id, player_id)
        """,
    ),
    (
        "002_participant_indexes",
        """
        CREATE INDEX IF NOT EXISTS idx_participant_player ON participant(player_id)
        """,
    ),
    (
        "003_leaderboard_indexes",
        """
        CREATE INDEX IF NOT EXISTS idx_playerstats_won_efficiency ON playerstats(games_won, efficiency)
        """,
    ),
]


def ensure_migration_table(engine):
    """Ensure the migration tracking table exists"""
    Migration.metadata.create_all(engine, tables=[Migration.__table__])


def has_migration_been_applied(engine, migration_name: str) -> bool:
    ensure_migration_table(engine)

    with Session(engine) as session:
        result = session.exec(
            select(Migration).where(Migration.name == migration_name)
        ).first()
        return result is not None


def apply_migration(engine, migration_name: str, migration_sql: str) -> bool:
    """Apply a migration and record it; returns False if it was already applied"""
    if has_migration_been_applied(engine, migration_name):
        logger.info(f"Migration {migration_name} already applied, skipping")
        return False

    logger.info(f"Applying migration: {migration_name}")

    with Session(engine) as session:
        try:
            for statement in migration_sql.strip().split(';'):
                statement = "\n".join(
                    line for line in statement.splitlines() if not line.strip().startswith("--")
                ).strip()
                if statement:
                    session.execute(text(statement))

            session.add(Migration(name=migration_name, applied_at=datetime.now(timezone.utc)))
            session.commit()

            logger.info(f"Migration {migration_name} applied successfully")
            return True

        except Exception as e:
            session.rollback()
            logger.error(f"Failed to apply migration {migration_name}: {e}")
            raise


def run_migrations(engine) -> int:
    """Run all pending migrations, returns how many were applied"""
    applied = 0
    for name, sql in MIGRATIONS:
        if apply_migration(engine, name, sql):
            applied += 1
    logger.info("All migrations completed")
    return applied
