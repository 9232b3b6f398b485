"""
Entry point for running alertmail as a module.

Usage:
    python -m alertmail
    python -m alertmail --config /path/to/config.yaml
    python -m alertmail --run-once
"""

import argparse
import logging
import logging.handlers
import sys
from pathlib import Path

from alertmail.alerting import DispatchError, MailApiTransport, NotificationDispatcher
from alertmail.api import create_app
from alertmail.config import LogSettings, Settings
from alertmail.database import get_conn
from alertmail.directory import RecipientDirectory, RecipientResolver
from alertmail.scheduler import DigestJob, create_scheduler

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(log_settings: LogSettings) -> None:
    """Apply level, format and handlers to the root logger."""
    handlers: list[logging.Handler] = []
    if log_settings.console:
        handlers.append(logging.StreamHandler())
    if log_settings.file_path:
        log_settings.file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                log_settings.file_path,
                maxBytes=log_settings.max_bytes,
                backupCount=log_settings.backup_count,
                encoding="utf-8",
            )
        )
    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=getattr(logging, log_settings.level),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def build_job(settings: Settings, db) -> DigestJob:
    """Wire directory, resolver, transport and dispatcher into a digest job."""
    directory = RecipientDirectory.from_file(settings.directory.path)
    resolver = RecipientResolver(directory, settings.directory.fallback_address)
    transport = MailApiTransport(settings.mail)
    dispatcher = NotificationDispatcher(resolver, transport, settings.directory.fallback_address)
    return DigestJob(db, dispatcher, settings.schedule)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Alert ingestion service with scheduled per-recipient email digests"
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config.yaml"),
        help="Path to configuration file (default: config.yaml)",
    )
    parser.add_argument(
        "--run-once",
        action="store_true",
        help="Send today's digests once, then exit (for batch/cron use)",
    )
    args = parser.parse_args(argv)

    # Load and validate configuration
    try:
        settings = Settings.from_yaml(args.config)
    except FileNotFoundError:
        print(f"Error: Configuration file not found: {args.config}", file=sys.stderr)
        print("Create a config.yaml file based on config.example.yaml", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        return 1

    configure_logging(settings.log)
    logger = logging.getLogger(__name__)

    db = get_conn(str(settings.database.db_path))
    logger.info(f"Using SQLite database: {settings.database.db_path}")

    job = build_job(settings, db)

    if args.run_once:
        logger.info("Running in batch mode (run-once)")
        try:
            summary = job.run()
        except DispatchError as e:
            logger.error(f"Digest run failed: {e}")
            return 1
        finally:
            db.close()

        if summary is None:
            logger.info("No alerts in window")
        else:
            logger.info(
                f"Digest run complete: {summary.success_count} sent, "
                f"{len(summary.unresolved_tokens)} unresolved"
            )
        return 0

    scheduler = create_scheduler(settings.schedule, job)
    if scheduler is not None:
        scheduler.start()

    app = create_app(settings, db, job)
    logger.info(f"Serving on {settings.server.host}:{settings.server.port}")
    try:
        app.run(host=settings.server.host, port=settings.server.port)
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=False)
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
