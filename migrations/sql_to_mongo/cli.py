import asyncio
import logging
import re

import typer
from sqlalchemy import make_url
from sqlalchemy.exc import ArgumentError

from db.config import settings
from migrations.sql_to_mongo.migrator import SqlToMongoMigration
from migrations.sql_to_mongo.stats import log_status_summary

# Set up logging with more detailed format
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] - %(message)s",
)
logger = logging.getLogger(__name__)

app = typer.Typer()


def redact_uri(uri: str) -> str:
    """Hide credentials before a connection string reaches the logs"""
    try:
        return make_url(uri).render_as_string(hide_password=True)
    except (ArgumentError, ValueError):
        return re.sub(r"//[^@/]+@", "//***@", uri)


@app.command()
def migrate(
    sql: str = typer.Option(
        settings.sql_conn,
        "--sql",
        envvar="SQL_CONN",
        help="SQLAlchemy URL of the source database (or set SQL_CONN)",
    ),
    mongo: str = typer.Option(
        settings.mongo_uri,
        "--mongo",
        envvar="MONGO_URI",
        help="MongoDB URI (or set MONGO_URI)",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="If set, do not write to MongoDB; just log what would be done",
    ),
    batch_size: int = typer.Option(settings.migration_batch_size, help="Records read per upsert batch"),
    concurrency: int = typer.Option(
        settings.migration_concurrency,
        help="Maximum concurrent upserts within a batch",
    ),
):
    """Copy users, tasks and subtasks into MongoDB and seed the id counters.

    Users are auxiliary: an unreadable Users table or a failed user write is
    logged and the run continues. Any failure on tasks or subtasks aborts the
    run with a non-zero exit code.

    Examples:
      # Verify the migration plan without writing anything
      python -m migrations.sql_to_mongo migrate --sql "mssql+aioodbc://..." --dry-run

      # Run it for real
      python -m migrations.sql_to_mongo migrate --sql "mssql+aioodbc://..." --mongo mongodb://localhost:27017
    """

    async def run_migration():
        migration = SqlToMongoMigration(
            sql,
            mongo,
            dry_run=dry_run,
            batch_size=batch_size,
            concurrency=concurrency,
        )
        logger.info(f"SQL_CONN: {redact_uri(sql)}")
        logger.info(f"MONGO_URI: {redact_uri(mongo)}")
        if dry_run:
            logger.info("🧪 DRY RUN: no writes will be performed to MongoDB")

        try:
            await migration.init_connections()
            return await migration.run()
        except Exception as e:
            logger.exception(f"Migration failed: {str(e)}")
            raise typer.Exit(code=1)
        finally:
            await migration.close_connections()

    typer.echo("Starting migration...")
    stats = asyncio.run(run_migration())
    for line in stats.summary_lines():
        typer.echo(line)
    if dry_run:
        typer.echo("Dry run finished, no changes were written.")
    else:
        typer.echo("Migration finished successfully.")


@app.command()
def status(
    sql: str = typer.Option(settings.sql_conn, "--sql", envvar="SQL_CONN", help="SQLAlchemy URL of the source database"),
    mongo: str = typer.Option(settings.mongo_uri, "--mongo", envvar="MONGO_URI", help="MongoDB URI"),
):
    """Show source vs. MongoDB counts, the highest id and the counter value per entity type"""

    async def run_status():
        migration = SqlToMongoMigration(sql, mongo, dry_run=True)
        try:
            await migration.init_connections()
            return await migration.collect_status()
        except Exception as e:
            logger.exception(f"Status check failed: {str(e)}")
            raise typer.Exit(code=1)
        finally:
            await migration.close_connections()

    statuses = asyncio.run(run_status())
    log_status_summary(statuses)

    behind = [s.entity_type.collection for s in statuses if s.counter_behind]
    pending = [s.entity_type.collection for s in statuses if s.source_count is not None and not s.is_complete]
    if behind:
        typer.echo(f"⚠️  Counters below the highest persisted id: {', '.join(behind)}")
    if pending:
        typer.echo(f"⏳ Pending collections: {', '.join(pending)}")
    if not behind and not pending:
        typer.echo("✅ All collections are fully migrated!")


if __name__ == "__main__":
    app()
